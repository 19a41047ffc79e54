import shlex, sys
from typing import List
import pytest
import yaml
from crible.config import CorefConfig
from crible.errors import DistributedJobError, SieveOrderingError, UnknownSieveError
from crible.optimize import (
    DistributedTrialRunner,
    PoolTrialRunner,
    SequentialTrialRunner,
    SieveOrderConstraint,
    SieveOrderOptimizer,
    make_trial_runner,
    parse_sieve_order_constraints,
    selectable_sieves,
    wait_for_files,
)
from crible.system import SieveCoreferenceSystem
from factories import story_document


NAMES = ["MarkRole", "ExactStringMatch", "PronounMatch"]


def _system(sieves: List[str], **kwargs) -> SieveCoreferenceSystem:
    return SieveCoreferenceSystem(
        CorefConfig(sieves=sieves, optimize_score="pairwise.Recall", **kwargs)
    )


def test_parse_constraints():
    constraints = parse_sieve_order_constraints(
        "MarkRole < *, ExactStringMatch < PronounMatch", NAMES
    )
    assert constraints == [
        SieveOrderConstraint("MarkRole", None),
        SieveOrderConstraint("ExactStringMatch", "PronounMatch"),
    ]
    assert str(constraints[0]) == "MarkRole < *"
    assert parse_sieve_order_constraints(None, NAMES) == []


@pytest.mark.parametrize(
    "constraints",
    [
        "* < *",
        "MarkRole",
        "MarkRole < ExactStringMatch < PronounMatch",
        "MarkRole < *, PronounMatch < *",
        "* < MarkRole, * < PronounMatch",
        "MarkRole < PronounMatch, PronounMatch < MarkRole",
        "MarkRole < *, * < MarkRole",
        "PronounMatch < MarkRole, MarkRole < ExactStringMatch, ExactStringMatch < PronounMatch",
    ],
)
def test_invalid_constraints(constraints: str):
    with pytest.raises(SieveOrderingError):
        parse_sieve_order_constraints(constraints, NAMES)


def test_unknown_sieve_in_constraints():
    with pytest.raises(UnknownSieveError):
        parse_sieve_order_constraints("MarkRole < Nope", NAMES)


def test_selectable_sieves():
    constraints = parse_sieve_order_constraints(
        "ExactStringMatch < PronounMatch, * < MarkRole", NAMES
    )
    assert selectable_sieves(NAMES, constraints) == ["ExactStringMatch"]
    assert selectable_sieves(["MarkRole", "PronounMatch"], constraints) == [
        "PronounMatch"
    ]
    assert selectable_sieves(["MarkRole"], constraints) == ["MarkRole"]

    first = parse_sieve_order_constraints("PronounMatch < *", NAMES)
    assert selectable_sieves(NAMES, first) == ["PronounMatch"]
    assert selectable_sieves(NAMES[:2], first) == NAMES[:2]


def test_optimizer_greedy_selection():
    system = _system(["ExactStringMatch", "PronounMatch"])
    documents = [story_document()]
    optimizer = SieveOrderOptimizer(system, SequentialTrialRunner(system))
    ordering = optimizer.optimize(documents)

    # PronounMatch alone finds 2 of the 4 gold pairs, ExactStringMatch
    # alone only 1
    assert ordering == ["PronounMatch", "ExactStringMatch"]
    assert optimizer.history == [
        (["PronounMatch"], pytest.approx(0.5)),
        (["PronounMatch", "ExactStringMatch"], pytest.approx(1.0)),
    ]
    assert optimizer.best_score() == pytest.approx(1.0)
    # trials never modify the corpus
    assert len(documents[0].coref_clusters) == 5


def test_optimizer_scores_never_decrease():
    system = _system(list(NAMES))
    optimizer = SieveOrderOptimizer(system)
    optimizer.optimize([story_document()])
    scores = [score for _, score in optimizer.history]
    assert len(scores) == len(NAMES)
    assert all(s1 <= s2 for s1, s2 in zip(scores, scores[1:]))


def test_optimizer_respects_constraints():
    system = _system(
        ["ExactStringMatch", "PronounMatch"],
        optimize_constraints="ExactStringMatch < PronounMatch",
    )
    optimizer = SieveOrderOptimizer(system)
    assert optimizer.optimize([story_document()]) == [
        "ExactStringMatch",
        "PronounMatch",
    ]


def test_pool_runner_matches_sequential_runner():
    system = _system(["ExactStringMatch", "PronounMatch"])
    documents = [story_document()]
    trials = {0: ["ExactStringMatch"], 1: ["PronounMatch"]}
    sequential = SequentialTrialRunner(system).run_trials(0, trials, documents)
    pooled = PoolTrialRunner(system, "thread", 2).run_trials(0, trials, documents)
    assert pooled == sequential


def test_process_pool_runner_matches_sequential_runner():
    system = _system(["ExactStringMatch", "PronounMatch"])
    documents = [story_document()]
    trials = {0: ["ExactStringMatch"], 1: ["PronounMatch", "ExactStringMatch"]}
    sequential = SequentialTrialRunner(system).run_trials(0, trials, documents)
    pooled = PoolTrialRunner(system, "process", 2).run_trials(0, trials, documents)
    assert pooled == sequential
    assert pooled[1] == pytest.approx(1.0)


def test_make_trial_runner():
    assert isinstance(make_trial_runner(_system(NAMES)), SequentialTrialRunner)
    assert isinstance(
        make_trial_runner(_system(NAMES, optimize_executor="thread")), PoolTrialRunner
    )
    assert isinstance(
        make_trial_runner(_system(NAMES, dist_cmd="true")), DistributedTrialRunner
    )


_STUB_JOB = """
import sys, yaml
props_file = sys.argv[sys.argv.index("-props") + 1]
with open(props_file) as f:
    props = yaml.safe_load(f)
weights = {"ExactStringMatch": 0.25, "PronounMatch": 0.5}
score = sum(weights[s] for s in props["crible.sieves"])
with open(props["crible.score.file"], "w") as f:
    f.write(str(score))
"""


def test_distributed_optimizer(tmp_path):
    script = tmp_path / "job.py"
    script.write_text(_STUB_JOB)
    cmd = f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"

    system = _system(["ExactStringMatch", "PronounMatch"])
    runner = DistributedTrialRunner(
        system, cmd, workdir=str(tmp_path / "work"), poll_seconds=0.01, timestamp="t"
    )
    optimizer = SieveOrderOptimizer(system, runner)
    assert optimizer.optimize([story_document()]) == [
        "PronounMatch",
        "ExactStringMatch",
    ]
    assert optimizer.history[-1][1] == pytest.approx(0.75)

    step_dir = tmp_path / "work-t" / "0"
    props = yaml.safe_load((step_dir / "sieves.0.1.props").read_text())
    assert props["crible.sieves"] == ["PronounMatch"]
    assert not props["crible.optimize.sieves"]
    assert props["crible.score"]
    assert props["crible.log"] == str(step_dir / "0.1" / "sieves.0.1.log")
    assert (step_dir / "sieves.0.0.score").exists()
    assert (tmp_path / "work-t" / "corpus.pkl").exists()


def test_distributed_failing_job_raises(tmp_path):
    cmd = f"{shlex.quote(sys.executable)} -c 'import sys; sys.exit(3)'"
    system = _system(["ExactStringMatch", "PronounMatch"])
    runner = DistributedTrialRunner(
        system, cmd, workdir=str(tmp_path / "work"), poll_seconds=0.01, timestamp="t"
    )
    with pytest.raises(DistributedJobError):
        runner.run_trials(0, {0: ["ExactStringMatch"]}, [story_document()])


def test_distributed_jobdir_substitution(tmp_path):
    system = _system(NAMES, dist_cmd="run --out ${JOBDIR}out")
    runner = DistributedTrialRunner(system, "run", workdir=str(tmp_path / "work"))
    props = runner.job_properties(
        2, 1, ["MarkRole"], tmp_path, tmp_path / "2.1", tmp_path / "corpus.pkl"
    )
    assert props["crible.dist.cmd"] == f"run --out {tmp_path / '2.1'}/out"
    assert props["crible.score.file"] == str(tmp_path / "sieves.2.1.score")


def test_read_scores(tmp_path):
    system = _system(NAMES)
    runner = DistributedTrialRunner(system, "run", workdir=str(tmp_path / "work"))
    (tmp_path / "sieves.0.2.score").write_text(".5")
    assert runner.read_scores([tmp_path / "sieves.0.2.score"]) == {2: 0.5}

    (tmp_path / "bad.score").write_text(".5")
    with pytest.raises(DistributedJobError):
        runner.read_scores([tmp_path / "bad.score"])

    (tmp_path / "sieves.0.3.score").write_text("not a score")
    with pytest.raises(DistributedJobError):
        runner.read_scores([tmp_path / "sieves.0.3.score"])


def test_wait_for_files(tmp_path):
    (tmp_path / "a.score").write_text("1")
    (tmp_path / "b.props").write_text("")
    (tmp_path / "c.score").write_text("1")
    files = wait_for_files(tmp_path, ".score", 2, 0.01)
    assert [f.name for f in files] == ["a.score", "c.score"]

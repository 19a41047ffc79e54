"""Greedy search of a sieve ordering.

Starting from an empty ordering, the optimizer tries each remaining
sieve as the next pass, scores the resulting system on a corpus and
commits the best sieve, until no sieve remain.  Ordering constraints
can restrict the sieves that can be selected at each step.
"""
from __future__ import annotations
from typing import Dict, List, Literal, Optional, Sequence, Tuple
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import copy, logging, pickle, re, shlex, subprocess, time
import networkx as nx
from crible.config import CorefConfig, save_config
from crible.dictionaries import Dictionaries
from crible.document import Document
from crible.errors import DistributedJobError, SieveOrderingError, UnknownSieveError
from crible.progress import ProgressReport, get_progress_reporter
from crible.system import SieveCoreferenceSystem


@dataclass(frozen=True)
class SieveOrderConstraint:
    """``first < second``: ``first`` must come before ``second``.

    A ``None`` side is a wildcard: ``X < *`` forces ``X`` to be the
    first sieve, and ``* < X`` forces ``X`` to be the last sieve.
    """

    first: Optional[str]
    second: Optional[str]

    def __str__(self) -> str:
        return f"{self.first or '*'} < {self.second or '*'}"


def parse_sieve_order_constraint(
    constraint: str, sieve_names: Sequence[str]
) -> SieveOrderConstraint:
    """
    :raise SieveOrderingError: if the constraint is malformed
    :raise UnknownSieveError: if the constraint mentions an unknown
        sieve
    """
    parts = constraint.split("<")
    if len(parts) != 2:
        raise SieveOrderingError(f"invalid sieve ordering constraint: {constraint}")

    def parse_name(name: str) -> Optional[str]:
        name = name.strip()
        if name == "*":
            return None
        if not name in sieve_names:
            raise UnknownSieveError(f"invalid sieve name in constraint {constraint}: {name}")
        return name

    parsed = SieveOrderConstraint(parse_name(parts[0]), parse_name(parts[1]))
    if parsed.first is None and parsed.second is None:
        raise SieveOrderingError(f"invalid sieve ordering constraint: {constraint}")
    return parsed


def parse_sieve_order_constraints(
    constraints: Optional[str], sieve_names: Sequence[str]
) -> List[SieveOrderConstraint]:
    """Parse comma separated sieve ordering constraints.

    :raise SieveOrderingError: if a constraint is malformed, if
        several sieves are constrained to be first (or last), or if
        the constraints are contradictory
    """
    if constraints is None or constraints.strip() == "":
        return []
    parsed = [
        parse_sieve_order_constraint(c, sieve_names)
        for c in constraints.split(",")
        if c.strip() != ""
    ]

    firsts = [c for c in parsed if c.second is None]
    if len(firsts) > 1:
        raise SieveOrderingError(
            f"more than one sieve constrained to be first: {', '.join(map(str, firsts))}"
        )
    lasts = [c for c in parsed if c.first is None]
    if len(lasts) > 1:
        raise SieveOrderingError(
            f"more than one sieve constrained to be last: {', '.join(map(str, lasts))}"
        )

    G = nx.DiGraph()
    G.add_nodes_from(sieve_names)
    for c in parsed:
        befores = [c.first] if not c.first is None else [n for n in sieve_names if n != c.second]
        afters = [c.second] if not c.second is None else [n for n in sieve_names if n != c.first]
        G.add_edges_from((b, a) for b in befores for a in afters)
    try:
        cycle = nx.find_cycle(G)
    except nx.NetworkXNoCycle:
        return parsed
    raise SieveOrderingError(
        f"contradictory sieve ordering constraints: {' -> '.join(e[0] for e in cycle)} -> {cycle[0][0]}"
    )


def selectable_sieves(
    remaining: Sequence[str],
    constraints: Sequence[SieveOrderConstraint],
    logger: Optional[logging.Logger] = None,
) -> List[str]:
    """Find the sieves that can be selected as the next sieve.

    :param remaining: sieves not selected yet, in their configured
        order
    :return: selectable sieves, in their configured order
    """
    logger = logger or logging.getLogger("crible")
    selectable = list(remaining)
    for c in constraints:
        if c.second is None:
            if c.first in remaining:
                logger.info(f"restrict selection to {c.first} because of constraint {c}")
                return [c.first]
        elif c.first is None:
            if len(remaining) > 1 and c.second in selectable:
                logger.info(f"remove selection {c.second} because of constraint {c}")
                selectable.remove(c.second)
        elif c.first in remaining and c.second in selectable:
            logger.info(f"remove selection {c.second} because of constraint {c}")
            selectable.remove(c.second)
    return selectable


def _run_trial(
    config: CorefConfig,
    dictionaries: Dictionaries,
    documents: List[Document],
    logger: Optional[logging.Logger] = None,
) -> float:
    system = SieveCoreferenceSystem(config, dictionaries, logger)
    return system.run_and_score(copy.deepcopy(documents))


class TrialRunner:
    """Scores candidate sieve orderings

    .. note::

        Derived classes must override :meth:`run_trials`.
    """

    def __init__(self, system: SieveCoreferenceSystem, logger: Optional[logging.Logger] = None):
        """
        :param system: the system being optimized.  Trials use its
            configuration and dictionaries.
        """
        self.system = system
        self.logger = logger or system.logger

    def trial_config(self, sieve_names: Sequence[str]) -> CorefConfig:
        return self.system.config.with_updates(
            sieves=list(sieve_names),
            optimize_sieves=False,
            score=True,
            score_file=None,
        )

    def run_trials(
        self, step: int, trials: Dict[int, List[str]], documents: List[Document]
    ) -> Dict[int, float]:
        """Score candidate orderings.

        :param step: index of the sieve being selected
        :param trials: candidate index -> sieve ordering
        :param documents: documents used for scoring.  They are never
            modified.
        :return: candidate index -> score
        """
        raise NotImplementedError


class SequentialTrialRunner(TrialRunner):
    def run_trials(
        self, step: int, trials: Dict[int, List[str]], documents: List[Document]
    ) -> Dict[int, float]:
        scores = {}
        for idx, sieve_names in trials.items():
            self.logger.info(f"trying sieves: {', '.join(sieve_names)}")
            scores[idx] = _run_trial(
                self.trial_config(sieve_names),
                self.system.dictionaries,
                documents,
                self.logger,
            )
            self.logger.info(f"trying sieves score: {scores[idx]}")
        return scores


class PoolTrialRunner(TrialRunner):
    """Runs trials concurrently, in a thread or a process pool"""

    def __init__(
        self,
        system: SieveCoreferenceSystem,
        executor: Literal["thread", "process"] = "thread",
        max_workers: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(system, logger)
        self.executor = executor
        self.max_workers = max_workers

    def _make_executor(self) -> Executor:
        if self.executor == "process":
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers)

    def run_trials(
        self, step: int, trials: Dict[int, List[str]], documents: List[Document]
    ) -> Dict[int, float]:
        # worker processes use the default logger
        logger = self.logger if self.executor == "thread" else None
        with self._make_executor() as executor:
            futures = {
                idx: executor.submit(
                    _run_trial,
                    self.trial_config(sieve_names),
                    self.system.dictionaries,
                    documents,
                    logger,
                )
                for idx, sieve_names in trials.items()
            }
            wait(futures.values())
        return {idx: future.result() for idx, future in futures.items()}


SCORE_FILE_PATTERN = re.compile(r"sieves\.(\d+)\.(\d+)\.score")


def wait_for_files(
    directory: Path,
    suffix: str,
    how_many: int,
    poll_seconds: float,
    logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Block until ``directory`` contains at least ``how_many`` files
    ending with ``suffix``, checking every ``poll_seconds``.

    .. note::

        there is no timeout: this waits forever for a stuck job.

    :return: the matching files
    """
    logger = logger or logging.getLogger("crible")
    logger.info(f"waiting until we see {how_many} {suffix} files in directory {directory}...")
    waited = 0.0
    next_report = 600.0
    while True:
        files = sorted(p for p in directory.iterdir() if p.name.endswith(suffix))
        if len(files) >= how_many:
            logger.info(f"found {len(files)} {suffix} files. Continuing execution.")
            return files
        time.sleep(poll_seconds)
        waited += poll_seconds
        if waited >= next_report:
            logger.info(f"still waiting... {waited / 60:.0f} minutes have passed.")
            next_report += 600.0


def _substitute_jobdir(value, jobdir: str):
    if isinstance(value, str):
        return value.replace("${JOBDIR}", jobdir)
    if isinstance(value, list):
        return [_substitute_jobdir(v, jobdir) for v in value]
    return value


class DistributedTrialRunner(TrialRunner):
    """Runs each trial as an external job.

    For each trial, a property file is written and the configured
    command is launched with ``-props <property file>``.  The job
    must write its score to the ``crible.score.file`` given in the
    property file.  Jobs are launched concurrently, then the runner
    waits until every score file exists.

    The layout of the work directory is::

        {workdir}-{timestamp}/
            corpus.pkl
            {step}/
                sieves.{step}.{idx}.props
                sieves.{step}.{idx}.score
                {step}.{idx}/
                    sieves.{step}.{idx}.log

    ``${JOBDIR}`` in property values is replaced by the job directory.
    """

    def __init__(
        self,
        system: SieveCoreferenceSystem,
        cmd: str,
        workdir: Optional[str] = None,
        poll_seconds: Optional[float] = None,
        timestamp: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(system, logger)
        self.cmd = cmd
        timestamp = timestamp or datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        workdir = workdir or system.config.dist_workdir
        self.main_workdir = Path(f"{workdir}-{timestamp}").absolute()
        self.poll_seconds = (
            poll_seconds if not poll_seconds is None else system.config.dist_poll
        )
        self._corpus_path: Optional[Path] = None

    def corpus_path(self, documents: List[Document]) -> Path:
        """Path of the pickled corpus read by jobs, written on first
        use unless the configuration already names one."""
        if not self.system.config.corpus is None:
            return Path(self.system.config.corpus)
        if self._corpus_path is None:
            self.main_workdir.mkdir(parents=True, exist_ok=True)
            self._corpus_path = self.main_workdir / "corpus.pkl"
            with open(self._corpus_path, "wb") as f:
                pickle.dump(documents, f)
        return self._corpus_path

    def job_properties(self, step: int, idx: int, sieve_names: List[str], workdir: Path, jobdir: Path, corpus: Path) -> dict:
        selection_id = f"{step}.{idx}"
        config = self.trial_config(sieve_names).with_updates(
            log_file=str(jobdir / f"sieves.{selection_id}.log"),
            score_file=str(workdir / f"sieves.{selection_id}.score"),
            corpus=str(corpus),
        )
        jobdir_str = str(jobdir) + "/"
        return {
            key: _substitute_jobdir(value, jobdir_str)
            for key, value in config.to_properties().items()
        }

    def launch_job(self, cmd: str, props_file: Path) -> subprocess.CompletedProcess:
        """Launch a job and wait for the launching command to exit

        :raise DistributedJobError: if the command cannot be run, or
            if it exits with a non zero status
        """
        args = shlex.split(cmd) + ["-props", str(props_file)]
        self.logger.info(f"running distributed coref: {' '.join(args)}")
        try:
            completed = subprocess.run(args, capture_output=True, text=True)
        except OSError as e:
            raise DistributedJobError(f"could not run {' '.join(args)}") from e
        self.logger.info(f"finished distributed coref: {cmd}, props={props_file}")
        if completed.stdout:
            self.logger.info(f"output: {completed.stdout}")
        if completed.stderr:
            self.logger.info(f"error: {completed.stderr}")
        if completed.returncode != 0:
            raise DistributedJobError(
                f"{' '.join(args)} exited with status {completed.returncode}"
            )
        return completed

    def run_trials(
        self, step: int, trials: Dict[int, List[str]], documents: List[Document]
    ) -> Dict[int, float]:
        corpus = self.corpus_path(documents)
        workdir = self.main_workdir / str(step)
        workdir.mkdir(parents=True, exist_ok=True)

        with ThreadPoolExecutor() as executor:
            futures = []
            for idx, sieve_names in trials.items():
                jobdir = workdir / f"{step}.{idx}"
                jobdir.mkdir(parents=True, exist_ok=True)
                props = self.job_properties(step, idx, sieve_names, workdir, jobdir, corpus)
                props_file = workdir / f"sieves.{step}.{idx}.props"
                save_config(CorefConfig.from_properties(props), props_file)
                cmd = props.get("crible.dist.cmd") or self.cmd
                futures.append(executor.submit(self.launch_job, cmd, props_file))
            wait(futures)
            for future in futures:
                future.result()

        score_files = wait_for_files(
            workdir, ".score", len(trials), self.poll_seconds, self.logger
        )
        return self.read_scores(score_files)

    def read_scores(self, score_files: List[Path]) -> Dict[int, float]:
        """
        :raise DistributedJobError: if a score file name is invalid,
            or if a score file cannot be read
        """
        scores = {}
        for path in score_files:
            match = SCORE_FILE_PATTERN.fullmatch(path.name)
            if match is None:
                raise DistributedJobError(f"bad score file name: {path}")
            try:
                scores[int(match.group(2))] = float(path.read_text().strip())
            except (OSError, ValueError) as e:
                raise DistributedJobError(f"could not read score file {path}") from e
        return scores


def make_trial_runner(
    system: SieveCoreferenceSystem, logger: Optional[logging.Logger] = None
) -> TrialRunner:
    """Create the trial runner selected by the system configuration"""
    config = system.config
    if not config.dist_cmd is None:
        return DistributedTrialRunner(system, config.dist_cmd, logger=logger)
    if config.optimize_executor in ("thread", "process"):
        return PoolTrialRunner(
            system, config.optimize_executor, config.optimize_workers, logger
        )
    return SequentialTrialRunner(system, logger)


class SieveOrderOptimizer:
    """Greedy forward selection of a sieve ordering.

    :ivar history: the committed ``(ordering, score)`` pairs, one per
        step
    """

    def __init__(
        self,
        system: SieveCoreferenceSystem,
        runner: Optional[TrialRunner] = None,
        logger: Optional[logging.Logger] = None,
        progress_report: Optional[ProgressReport] = None,
    ):
        """
        :param system: the system whose sieves are ordered.  Its
            configuration gives the score metric and the ordering
            constraints.
        :param runner: defaults to the runner selected by the system
            configuration (see :func:`make_trial_runner`)

        :raise SieveOrderingError: if ordering constraints are invalid
        """
        self.system = system
        self.logger = logger or system.logger
        self.runner = runner or make_trial_runner(system, self.logger)
        self.progress_report = progress_report
        self.sieve_names = list(system.sieve_names)
        self.constraints = parse_sieve_order_constraints(
            system.config.optimize_constraints, self.sieve_names
        )
        self.history: List[Tuple[List[str], float]] = []

    def optimize(self, documents: List[Document]) -> List[str]:
        """Find a sieve ordering.

        :param documents: scoring corpus, with gold mentions.  It is
            never modified.
        :return: the selected ordering

        :raise SieveOrderingError: if constraints leave no sieve to
            select at some step
        """
        self.logger.info("=============SIEVE OPTIMIZATION START ====================")
        self.logger.info(
            f"optimize sieves using score: {self.system.score_metric}.{self.system.score_sub_type.value}"
        )
        self.history = []
        ordering: List[str] = []
        remaining = list(self.sieve_names)
        reporter = get_progress_reporter(self.progress_report, self.logger)
        reporter.start_(len(remaining))

        while len(remaining) > 0:
            step = len(ordering)
            self.logger.info(f"*** optimizing sieve ordering for pass {step} ***")
            selectable = selectable_sieves(remaining, self.constraints, self.logger)
            if len(selectable) == 0:
                raise SieveOrderingError(
                    "Unable to find sieve ordering to satisfy all ordering constraints"
                )
            if len(selectable) == 1:
                self.logger.info("only one choice for next sieve")

            trials = {
                self.sieve_names.index(name): ordering + [name] for name in selectable
            }
            scores = self.runner.run_trials(step, trials, documents)

            selected_idx = None
            best_score = -1.0
            for idx in sorted(scores):
                if selected_idx is None or scores[idx] > best_score:
                    selected_idx = idx
                    best_score = scores[idx]
            assert not selected_idx is None

            for idx, score in sorted(scores.items(), key=lambda kv: kv[1], reverse=True):
                self.logger.info(
                    f"sieve optimization pass {step} scores: sieve={self.sieve_names[idx]}, score={score}"
                )

            selected = self.sieve_names[selected_idx]
            ordering.append(selected)
            remaining.remove(selected)
            self.history.append((list(ordering), best_score))
            self.logger.info(f"adding sieve {step}={selected} to existing sieves")
            self.logger.info(f" current sieves: {', '.join(ordering)}")
            reporter.update_message_(selected)
            reporter.update_progress_(1)

        reporter.finish_()
        self.logger.info(f"final sieve ordering: {', '.join(ordering)}")
        self.logger.info("=============SIEVE OPTIMIZATION DONE ====================")
        return ordering

    def best_score(self) -> Optional[float]:
        """:return: the score of the final ordering, if optimized"""
        if len(self.history) == 0:
            return None
        return self.history[-1][1]

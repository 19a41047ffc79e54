import pickle
from crible.__main__ import main
from crible.config import CorefConfig, save_config
from factories import story_document


def test_main_scores_corpus(tmp_path):
    corpus = tmp_path / "corpus.pkl"
    with open(corpus, "wb") as f:
        pickle.dump([story_document()], f)
    score_file = tmp_path / "out.score"
    props = tmp_path / "props.yaml"
    save_config(
        CorefConfig(
            sieves=["ExactStringMatch", "PronounMatch"],
            optimize_sieves=True,
            optimize_score="pairwise.Recall",
            score_file=str(score_file),
            log_file=str(tmp_path / "crible.log"),
            corpus=str(corpus),
        ),
        props,
    )

    assert main(["-props", str(props), "--progress", "log"]) == 0
    assert score_file.read_text() == "1"
    log = (tmp_path / "crible.log").read_text()
    assert "final sieve ordering: PronounMatch, ExactStringMatch" in log
    assert "progress: 1/2 (PronounMatch)" in log


def test_main_without_corpus(tmp_path):
    props = tmp_path / "props.yaml"
    save_config(CorefConfig(), props)
    assert main(["-props", str(props)]) == 1

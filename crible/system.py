from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Tuple
import logging
from crible.config import CorefConfig
from crible.dictionaries import Dictionaries
from crible.document import Document
from crible.chain import CorefChain
from crible.data import Mention, MentionType
from crible.cluster import CorefCluster
from crible.errors import InvalidMetricError
from crible.scoring import (
    BCubedType,
    CorefScorer,
    ScorerBCubed,
    ScorerMUC,
    ScorerPairwise,
    SubScoreType,
    format_score,
)
from crible.sieves import DeterministicCorefSieve, make_sieve
from crible.progress import ProgressReport, get_progress_reporter, progress_


SCORE_METRICS = ("muc", "pairwise", "bcub", "bcubed", "combined")


def parse_score_metric(score: str) -> Tuple[str, SubScoreType]:
    """Parse a score selector such as ``"muc.F1"``.

    :return: ``(metric, sub score type)``
    :raise InvalidMetricError: if the metric or the sub score is
        unknown
    """
    metric, sep, sub = score.partition(".")
    metric = metric.lower()
    if sep == "" or not metric in SCORE_METRICS:
        raise InvalidMetricError(
            f"invalid score metric: {score} (expected <metric>.<sub> with metric in {', '.join(SCORE_METRICS)})"
        )
    try:
        sub_score_type = SubScoreType[sub]
    except KeyError as e:
        raise InvalidMetricError(
            f"invalid sub score type in {score} (expected one of {', '.join(t.name for t in SubScoreType)})"
        ) from e
    return metric, sub_score_type


class PassScores:
    """Scores of each sieve pass, accumulated over a corpus.

    :ivar links_count_in_pass: for each pass, the number of correct
        links and the number of links added by the pass
    """

    def __init__(self, pass_names: Sequence[str], logger: Optional[logging.Logger] = None):
        self.pass_names = list(pass_names)
        self.logger = logger or logging.getLogger("crible")
        self.muc = [ScorerMUC(self.logger) for _ in self.pass_names]
        self.bcubed = [
            ScorerBCubed(BCubedType.BCONLL, self.logger) for _ in self.pass_names
        ]
        self.pairwise = [ScorerPairwise(self.logger) for _ in self.pass_names]
        self.links_count_in_pass: List[Tuple[int, int]] = [(0, 0) for _ in self.pass_names]

    def scorers(self, pass_index: int) -> List[CorefScorer]:
        return [
            self.muc[pass_index],
            self.bcubed[pass_index],
            self.pairwise[pass_index],
        ]

    def add_links(self, pass_index: int, correct: int, total: int):
        prev_correct, prev_total = self.links_count_in_pass[pass_index]
        self.links_count_in_pass[pass_index] = (prev_correct + correct, prev_total + total)

    def final_score(self, metric: str, sub_score_type: SubScoreType) -> float:
        """
        :param metric: one of ``muc``, ``pairwise``, ``bcub``,
            ``bcubed`` or ``combined``
        :return: the score of the last pass
        """
        if len(self.pass_names) == 0:
            return 0.0
        muc = self.muc[-1].get_score(sub_score_type)
        bcubed = self.bcubed[-1].get_score(sub_score_type)
        pairwise = self.pairwise[-1].get_score(sub_score_type)
        if metric == "combined":
            return (muc + bcubed + pairwise) / 3
        if metric == "muc":
            return muc
        if metric in ("bcub", "bcubed"):
            return bcubed
        if metric == "pairwise":
            return pairwise
        raise InvalidMetricError(f"invalid score metric: {metric}")

    def log_scores(self):
        for i, name in enumerate(self.pass_names):
            correct, total = self.links_count_in_pass[i]
            self.logger.info(
                f"pass {i} ({name}): {correct} correct links out of {total} added links"
            )
            for scorer in self.scorers(i):
                scorer.print_f1()


class SieveCoreferenceSystem:
    """A multi pass deterministic coreference system.

    Sieve passes are applied one at a time, in order, to each
    document.  Each pass looks for an antecedent for each mention, and
    merges the mention cluster into the antecedent cluster when the
    pass decides they are coreferent.
    """

    def __init__(
        self,
        config: Optional[CorefConfig] = None,
        dictionaries: Optional[Dictionaries] = None,
        logger: Optional[logging.Logger] = None,
        progress_report: Optional[ProgressReport] = None,
    ):
        """
        :param config: defaults to the default configuration
        :param dictionaries: word lists used by sieve passes
        :param logger: defaults to the ``crible`` logger
        :param progress_report: ``"tqdm"`` or ``"log"`` to report
            progress over documents in :meth:`run_and_score`

        :raise UnknownSieveError: if a configured sieve does not exist
        :raise InvalidMetricError: if the configured score metric is
            invalid
        """
        self.config = config or CorefConfig()
        self.dictionaries = dictionaries or Dictionaries()
        self.logger = logger or logging.getLogger("crible")
        self.progress_report = progress_report
        self.sieve_names = list(self.config.sieves)
        self.sieves: List[DeterministicCorefSieve] = [
            make_sieve(name, self.logger) for name in self.sieve_names
        ]
        self.score_metric, self.score_sub_type = parse_score_metric(
            self.config.optimize_score
        )

    def __repr__(self) -> str:
        return f"SieveCoreferenceSystem({', '.join(self.sieve_names)})"

    def with_sieves(self, sieve_names: Sequence[str]) -> SieveCoreferenceSystem:
        """
        :return: a system with the same configuration, using the given
            sieve passes
        """
        return SieveCoreferenceSystem(
            self.config.with_updates(sieves=list(sieve_names)),
            self.dictionaries,
            self.logger,
            self.progress_report,
        )

    def new_pass_scores(self) -> PassScores:
        return PassScores(self.sieve_names, self.logger)

    def coref(
        self, document: Document, scores: Optional[PassScores] = None
    ) -> Dict[int, CorefChain]:
        """Resolve coreference in a document.

        :param document: the document is modified in place
        :param scores: if given, each pass is scored and the scores
            are accumulated in ``scores``.  If not given and the
            ``score`` configuration option is set, each pass is scored
            and scores are logged.

        :return: a mapping from a cluster id to its chain
        """
        log_scores = False
        if scores is None and self.config.score:
            scores = self.new_pass_scores()
            log_scores = True

        single_doc_scores: List[ScorerPairwise] = []
        for i, sieve in enumerate(self.sieves):
            self._coreference(document, i, sieve, scores, single_doc_scores)

        if log_scores:
            assert not scores is None
            scores.log_scores()

        if (
            not self.config.use_gold_mentions and self.config.postprocessing
        ) or self.config.replicate_conll:
            self.post_processing(document)

        return {
            c.cluster_id: CorefChain.from_cluster(c, document.positions)
            for c in document.coref_clusters.values()
        }

    def _coreference(
        self,
        document: Document,
        pass_index: int,
        sieve: DeterministicCorefSieve,
        scores: Optional[PassScores],
        single_doc_scores: List[ScorerPairwise],
    ):
        """Apply a sieve pass to a document"""
        self.logger.debug(f"coreference: sieve {sieve.name} {sieve.flags_to_string()}")
        ordered_mentions_by_sentence = document.get_ordered_mentions()
        clusters = document.coref_clusters
        role_set = document.role_set
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                f"role set (skip exact string match): {[m.span_to_string() for m in role_set]}"
            )

        for sent_i, ordered_mentions in enumerate(ordered_mentions_by_sentence):
            for mention_i, m1 in enumerate(ordered_mentions):
                if sieve.skip_this_mention(
                    document, m1, document.cluster_of(m1), self.dictionaries
                ):
                    continue
                self._resolve_mention(
                    document,
                    sieve,
                    sent_i,
                    ordered_mentions,
                    mention_i,
                    m1,
                    pass_index,
                    scores,
                )

        if self.logger.isEnabledFor(logging.DEBUG):
            document.check_clusters(sieve.name)

        if not scores is None:
            for scorer in scores.scorers(pass_index):
                scorer.calculate_score(document)
            single_doc_score = ScorerPairwise(self.logger)
            single_doc_score.calculate_score(document)
            correct = single_doc_score.precision_num_sum
            total = single_doc_score.precision_den_sum
            if len(single_doc_scores) > 0:
                correct -= single_doc_scores[-1].precision_num_sum
                total -= single_doc_scores[-1].precision_den_sum
            single_doc_scores.append(single_doc_score)
            scores.add_links(pass_index, int(correct), int(total))

    def _resolve_mention(
        self,
        document: Document,
        sieve: DeterministicCorefSieve,
        sent_i: int,
        ordered_mentions: List[Mention],
        mention_i: int,
        m1: Mention,
        pass_index: int,
        scores: Optional[PassScores],
    ):
        """Look for an antecedent of ``m1``, merging ``m1`` cluster
        into the cluster of the first antecedent found."""
        ordered_mentions_by_sentence = document.get_ordered_mentions()
        max_dist = self.config.max_dist

        for sent_j in range(sent_i, -1, -1):
            if max_dist != -1 and sent_i - sent_j > max_dist:
                continue
            antecedents = sieve.get_ordered_antecedents(
                sent_j,
                sent_i,
                ordered_mentions,
                ordered_mentions_by_sentence,
                m1,
                mention_i,
                document.coref_clusters,
                self.dictionaries,
            )
            for m2 in antecedents:
                # singleton predictor, only for non named entity mentions
                if (
                    self.config.singleton_predictor
                    and m1.is_singleton
                    and m1.mention_type != MentionType.PROPER
                    and m2.is_singleton
                    and m2.mention_type != MentionType.PROPER
                ):
                    continue
                if m1.coref_cluster_id == m2.coref_cluster_id:
                    continue
                c1 = document.cluster_of(m1)
                c2 = document.cluster_of(m2)

                if sieve.use_role_skip():
                    if m1.is_role_appositive(m2, self.dictionaries):
                        document.role_set.add(m1)
                    elif m2.is_role_appositive(m1, self.dictionaries):
                        document.role_set.add(m2)
                    continue

                if sieve.coreferent(
                    document, c1, c2, m1, m2, self.dictionaries, document.role_set
                ):
                    if document.merge(c1, c2) and not scores is None:
                        self._log_link(c1, c2, m1, m2, document, pass_index)
                    return

    def _log_link(
        self,
        c1: CorefCluster,
        c2: CorefCluster,
        m1: Mention,
        m2: Mention,
        document: Document,
        pass_index: int,
    ):
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        gold1 = document.all_gold_mentions.get(m1.mention_id)
        gold2 = document.all_gold_mentions.get(m2.mention_id)
        correct = (
            not gold1 is None
            and not gold2 is None
            and gold1.gold_coref_cluster_id == gold2.gold_coref_cluster_id
        )
        self.logger.debug(
            f"pass {pass_index} ({self.sieve_names[pass_index]}): "
            f"{'correct' if correct else 'incorrect'} link "
            f"{m1.span_to_string()} ({m1.mention_id}, cluster {c1.cluster_id}) -> "
            f"{m2.span_to_string()} ({m2.mention_id}, cluster {c2.cluster_id})"
        )

    def post_processing(self, document: Document):
        """Detach appositions, predicate nominatives and relative
        pronouns from their clusters, then remove singleton clusters
        (depending on configuration).

        A detached mention becomes a singleton cluster, with its own
        mention id as cluster id unless that id still names a live
        cluster (the one the mention founded), in which case a new id
        is allocated.  Like any singleton, it is dropped from the
        output when singletons are removed.

        .. note::

            clusters left without any mention are always removed.
        """
        remove_list: List[Mention] = []
        remove_cluster_set = set()
        for cluster in document.coref_clusters.values():
            remove_mentions = set()
            if self.config.remove_appositions:
                for m in cluster.coref_mentions:
                    if (
                        len(m.appositions) > 0
                        or len(m.predicate_nominatives) > 0
                        or len(m.relative_pronouns) > 0
                    ):
                        remove_mentions.add(m)
            cluster.coref_mentions -= remove_mentions
            remove_list += sorted(remove_mentions, key=lambda m: m.mention_id)
            if len(cluster.coref_mentions) == 0 or (
                self.config.remove_singletons and len(cluster.coref_mentions) == 1
            ):
                remove_cluster_set.add(cluster.cluster_id)

        for cluster_id in remove_cluster_set:
            del document.coref_clusters[cluster_id]

        next_id = (
            max(
                max(document.coref_clusters, default=-1),
                max(document.all_predicted_mentions, default=-1),
            )
            + 1
        )
        for m in remove_list:
            cluster_id = m.mention_id
            if cluster_id in document.coref_clusters:
                cluster_id = next_id
                next_id += 1
            m.coref_cluster_id = cluster_id
            if self.config.remove_singletons:
                document.positions.pop(m, None)
            else:
                document.coref_clusters[cluster_id] = CorefCluster(cluster_id, [m])

    def run_and_score(self, documents: Sequence[Document]) -> float:
        """Resolve and score a corpus.

        Each document must have gold mentions.  Documents are modified
        in place.

        :return: the final score for the configured metric (see the
            ``optimize_score`` configuration option).  It is also
            written to the configured score file, if any.
        """
        scores = self.new_pass_scores()
        reporter = get_progress_reporter(self.progress_report, self.logger)
        for document in progress_(reporter, documents):
            if document.gold_coref_clusters is None:
                document.extract_gold_coref_clusters()
            self.coref(document, scores)

        scores.log_scores()
        final_score = scores.final_score(self.score_metric, self.score_sub_type)
        self.logger.info(
            f"final score ({self.score_metric}.{self.score_sub_type.value}) for sieves {', '.join(self.sieve_names)}: {final_score}"
        )
        if not self.config.score_file is None:
            with open(self.config.score_file, "w") as f:
                f.write(format_score(final_score))
        return final_score

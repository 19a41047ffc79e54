"""Coreference scorers.

Scorers accumulate precision and recall numerators and denominators
over all the documents given to :meth:`CorefScorer.calculate_score`,
so that scores are computed at the corpus level.
"""
from __future__ import annotations
from typing import Dict, Optional
from decimal import Decimal, ROUND_HALF_EVEN
from enum import Enum
import logging
from crible.cluster import CorefCluster
from crible.document import Document


class ScoreType(Enum):
    MUC = "MUC"
    BCUBED = "BCubed"
    PAIRWISE = "Pairwise"


class SubScoreType(Enum):
    Precision = "Precision"
    Recall = "Recall"
    F1 = "F1"


class CorefScorer:
    """Base class of coreference scorers

    .. note::

        Derived classes must override :meth:`calculate_precision` and
        :meth:`calculate_recall`.
    """

    def __init__(self, score_type: ScoreType, logger: Optional[logging.Logger] = None):
        self.score_type = score_type
        self.logger = logger or logging.getLogger("crible")
        self.precision_num_sum = 0.0
        self.precision_den_sum = 0.0
        self.recall_num_sum = 0.0
        self.recall_den_sum = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(P={self.get_precision():.4f}, R={self.get_recall():.4f}, F1={self.get_f1():.4f})"

    def calculate_score(self, document: Document):
        """Add the scores of ``document`` to the running sums.

        .. note::

            gold clusters are extracted from the document if needed.
        """
        if document.gold_coref_clusters is None:
            document.extract_gold_coref_clusters()
        self.calculate_precision(document)
        self.calculate_recall(document)

    def calculate_precision(self, document: Document):
        raise NotImplementedError

    def calculate_recall(self, document: Document):
        raise NotImplementedError

    def get_score(self, sub_score_type: SubScoreType) -> float:
        if sub_score_type == SubScoreType.Precision:
            return self.get_precision()
        if sub_score_type == SubScoreType.Recall:
            return self.get_recall()
        return self.get_f1()

    def get_precision(self) -> float:
        if self.precision_den_sum == 0:
            return 0.0
        return self.precision_num_sum / self.precision_den_sum

    def get_recall(self) -> float:
        if self.recall_den_sum == 0:
            return 0.0
        return self.recall_num_sum / self.recall_den_sum

    def get_f1(self) -> float:
        p = self.get_precision()
        r = self.get_recall()
        if p + r == 0:
            return 0.0
        return 2 * p * r / (p + r)

    def print_f1(self, print_score_summary: bool = True) -> str:
        """Log the current scores at ``INFO`` level.

        :return: the logged message
        """
        p = self.get_precision()
        r = self.get_recall()
        f1 = self.get_f1()
        message = (
            f"{self.score_type.value}: "
            f"Recall: ({self.recall_num_sum:.2f} / {self.recall_den_sum:.2f}) = {r * 100:.2f}\t"
            f"Precision: ({self.precision_num_sum:.2f} / {self.precision_den_sum:.2f}) = {p * 100:.2f}\t"
            f"F1: {f1 * 100:.2f}"
        )
        if print_score_summary:
            self.logger.info(message)
        return message


def _gold_clusters(document: Document) -> Dict[int, CorefCluster]:
    assert not document.gold_coref_clusters is None
    return document.gold_coref_clusters


class ScorerMUC(CorefScorer):
    """The link based MUC score (Vilain et al., 1995)"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(ScoreType.MUC, logger)

    def calculate_recall(self, document: Document):
        predicted = document.all_predicted_mentions
        for g in _gold_clusters(document).values():
            if len(g.coref_mentions) == 0:
                self.logger.warning(f"NO MENTIONS for cluster {g.cluster_id}")
                continue
            self.recall_den_sum += len(g.coref_mentions) - 1
            self.recall_num_sum += len(g.coref_mentions)
            partitions = set()
            for gold in g.coref_mentions:
                p = predicted.get(gold.mention_id)
                if p is None:
                    # twinless gold mention
                    self.recall_num_sum -= 1
                else:
                    partitions.add(p.coref_cluster_id)
            self.recall_num_sum -= len(partitions)

    def calculate_precision(self, document: Document):
        gold_mentions = document.all_gold_mentions
        for c in document.coref_clusters.values():
            if len(c.coref_mentions) == 0:
                continue
            self.precision_den_sum += len(c.coref_mentions) - 1
            self.precision_num_sum += len(c.coref_mentions)
            partitions = set()
            for predicted in c.coref_mentions:
                g = gold_mentions.get(predicted.mention_id)
                if g is None:
                    self.precision_num_sum -= 1
                else:
                    partitions.add(g.gold_coref_cluster_id)
            self.precision_num_sum -= len(partitions)


class ScorerPairwise(CorefScorer):
    """Precision and recall over pairs of coreferent mentions"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(ScoreType.PAIRWISE, logger)

    def calculate_recall(self, document: Document):
        predicted = document.all_predicted_mentions
        for g in _gold_clusters(document).values():
            n = len(g.coref_mentions)
            self.recall_den_sum += n * (n - 1) / 2
            for m1 in g.coref_mentions:
                p1 = predicted.get(m1.mention_id)
                if p1 is None:
                    continue
                for m2 in g.coref_mentions:
                    if m1.mention_id >= m2.mention_id:
                        continue
                    p2 = predicted.get(m2.mention_id)
                    if not p2 is None and p1.coref_cluster_id == p2.coref_cluster_id:
                        self.recall_num_sum += 1

    def calculate_precision(self, document: Document):
        gold_mentions = document.all_gold_mentions
        for c in document.coref_clusters.values():
            n = len(c.coref_mentions)
            self.precision_den_sum += n * (n - 1) / 2
            for m1 in c.coref_mentions:
                g1 = gold_mentions.get(m1.mention_id)
                if g1 is None:
                    continue
                for m2 in c.coref_mentions:
                    if m1.mention_id >= m2.mention_id:
                        continue
                    g2 = gold_mentions.get(m2.mention_id)
                    if (
                        not g2 is None
                        and g1.gold_coref_cluster_id == g2.gold_coref_cluster_id
                    ):
                        self.precision_num_sum += 1


class BCubedType(Enum):
    #: predicted singletons missing from gold are ignored (Cai and
    #: Strube, 2010)
    BCAI = "Bcai"
    #: all mentions are counted
    BALL = "Ball"
    #: like ``BCAI``, and each twinless predicted mention in a non
    #: singleton cluster adds a perfect recall entry, as in the CoNLL
    #: 2011 scorer
    BCONLL = "Bconll"


class ScorerBCubed(CorefScorer):
    """The mention based B-cubed score (Bagga and Baldwin, 1998)

    .. note::

        In the ``BCONLL`` variant, a predicted mention missing from
        gold is excluded from precision when its cluster is a
        singleton, while recall gets a perfect entry for every such
        mention that is *not* in a singleton cluster.  This
        asymmetry follows the CoNLL 2011 scorer.
    """

    def __init__(
        self,
        bcubed_type: BCubedType = BCubedType.BCONLL,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(ScoreType.BCUBED, logger)
        self.bcubed_type = bcubed_type

    def calculate_precision(self, document: Document):
        gold_mentions = document.all_gold_mentions
        for m_id in sorted(document.all_predicted_mentions):
            m = document.all_predicted_mentions[m_id]
            cluster = document.get_cluster(m.coref_cluster_id)
            gold = gold_mentions.get(m_id)
            if (
                self.bcubed_type != BCubedType.BALL
                and gold is None
                and len(cluster.coref_mentions) == 1
            ):
                continue
            correct = 0.0
            total = 0.0
            for m2 in cluster.coref_mentions:
                gold2 = gold_mentions.get(m2.mention_id)
                if m2 is m or (
                    not gold is None
                    and not gold2 is None
                    and gold.gold_coref_cluster_id == gold2.gold_coref_cluster_id
                ):
                    correct += 1
                total += 1
            self.precision_num_sum += correct / total
            self.precision_den_sum += 1

    def calculate_recall(self, document: Document):
        predicted_mentions = document.all_predicted_mentions
        gold_clusters = _gold_clusters(document)
        for m_id in sorted(document.all_gold_mentions):
            m = document.all_gold_mentions[m_id]
            gold_cluster = gold_clusters[m.gold_coref_cluster_id]
            predicted = predicted_mentions.get(m_id)
            correct = 0.0
            total = 0.0
            for m2 in gold_cluster.coref_mentions:
                predicted2 = predicted_mentions.get(m2.mention_id)
                if m2 is m or (
                    not predicted is None
                    and not predicted2 is None
                    and predicted.coref_cluster_id == predicted2.coref_cluster_id
                ):
                    correct += 1
                total += 1
            self.recall_num_sum += correct / total
            self.recall_den_sum += 1

        if self.bcubed_type == BCubedType.BCONLL:
            for m_id, m in predicted_mentions.items():
                if m_id in document.all_gold_mentions:
                    continue
                cluster = document.get_cluster(m.coref_cluster_id)
                if len(cluster.coref_mentions) != 1:
                    self.recall_num_sum += 1
                    self.recall_den_sum += 1


def format_score(score: float) -> str:
    """Format a score with at most 2 decimals, rounding half to even,
    without trailing zeros or leading zero (``0.5`` is ``".5"``)."""
    rounded = Decimal(score).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    if rounded == 0:
        return "0"
    text = format(rounded, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text.startswith("0."):
        text = text[1:]
    elif text.startswith("-0."):
        text = "-" + text[2:]
    return text

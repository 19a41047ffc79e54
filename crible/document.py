from __future__ import annotations
from typing import Dict, List, Optional, Set, Tuple
from collections import defaultdict, deque
from enum import Enum
import logging
from more_itertools import map_reduce
from crible.data import Mention, SpeakerInfo
from crible.cluster import CorefCluster
from crible.errors import ConsistencyError


#: ids of twinless predicted mentions are shifted by this offset when
#: matching mentions against gold, so that they are easy to
#: recognize
TWINLESS_ID_OFFSET = 10000


class DocType(Enum):
    CONVERSATION = "CONVERSATION"
    ARTICLE = "ARTICLE"


Position = Tuple[int, int]


class Document:
    """A document being resolved.

    The document owns the partition of its predicted mentions into
    :class:`.CorefCluster`, indexed by cluster id.  Clusters must only
    be merged using :meth:`merge`, which keeps mention backlinks and
    the incompatibility relation consistent.
    """

    def __init__(
        self,
        predicted_mentions: List[List[Mention]],
        gold_mentions: Optional[List[List[Mention]]] = None,
        doc_type: DocType = DocType.ARTICLE,
        speakers: Optional[Dict[int, str]] = None,
        speaker_info_map: Optional[Dict[str, SpeakerInfo]] = None,
        speaker_pairs: Optional[Set[Tuple[int, int]]] = None,
        strict_twins: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        """
        :param predicted_mentions: predicted mentions, for each
            sentence, in tree traversal order
        :param gold_mentions: gold mentions, for each sentence.  When
            given, predicted mentions are matched against gold
            mentions (see :meth:`find_twin_mentions`).
        :param doc_type: ``CONVERSATION`` or ``ARTICLE``
        :param speakers: a mapping from an utterance index to the
            speaker of this utterance
        :param speaker_info_map: a mapping from a speaker id to its
            :class:`.SpeakerInfo`
        :param speaker_pairs: pairs of mention ids ``(mention,
            speaker)`` where the second mention is the speaker of the
            first one
        :param strict_twins: whether to match gold mentions using
            their exact boundaries, or their head as a fallback.
        :param logger: defaults to the ``crible`` logger
        """
        self.logger = logger or logging.getLogger("crible")

        self.predicted_ordered_mentions_by_sentence = predicted_mentions
        self.gold_ordered_mentions_by_sentence = gold_mentions
        self.doc_type = doc_type

        self.speakers: Dict[int, str] = speakers or {}
        self.speaker_info_map: Dict[str, SpeakerInfo] = speaker_info_map or {}
        self.speaker_pairs: Set[Tuple[int, int]] = speaker_pairs or set()

        self.coref_clusters: Dict[int, CorefCluster] = {}
        self.gold_coref_clusters: Optional[Dict[int, CorefCluster]] = None
        self.all_predicted_mentions: Dict[int, Mention] = {}
        self.all_gold_mentions: Dict[int, Mention] = {}

        #: mentions for which exact string match is disabled
        self.role_set: Set[Mention] = set()

        #: position of each mention : ``(sentence index, index in sentence)``
        self.positions: Dict[Mention, Position] = {}

        #: pairs of incompatible mention ids ``(min, max)``
        self.incompatibles: Set[Tuple[int, int]] = set()
        #: pairs of incompatible cluster ids ``(min, max)``
        self.incompatible_clusters: Set[Tuple[int, int]] = set()
        #: ``(min cluster id, max cluster id) -> is acronym``
        self.acronym_cache: Dict[Tuple[int, int], bool] = {}

        self._gold_links: Optional[List[Tuple[Position, Position]]] = None

        self._initialize(strict_twins)

    def get_ordered_mentions(self) -> List[List[Mention]]:
        return self.predicted_ordered_mentions_by_sentence

    def _initialize(self, strict_twins: bool):
        if self.gold_ordered_mentions_by_sentence is None:
            self.assign_original_id()
        else:
            for i, sentence_mentions in enumerate(
                self.gold_ordered_mentions_by_sentence
            ):
                for mention in sentence_mentions:
                    mention.sent_num = i
            self.find_twin_mentions(strict_twins)
            for sentence_mentions in self.gold_ordered_mentions_by_sentence:
                for mention in sentence_mentions:
                    if mention.mention_id in self.all_gold_mentions:
                        raise ConsistencyError(
                            f"gold mention {mention.mention_id} appears twice"
                        )
                    self.all_gold_mentions[mention.mention_id] = mention
        self._initialize_coref_clusters()

    def _initialize_coref_clusters(self):
        """Put each mention in its own cluster"""
        for i, sentence_mentions in enumerate(
            self.predicted_ordered_mentions_by_sentence
        ):
            for j, mention in enumerate(sentence_mentions):
                if mention.mention_id in self.all_predicted_mentions:
                    old = self.all_predicted_mentions[mention.mention_id]
                    self.logger.warning(
                        f"already contains mention {mention.mention_id} (old: {old}, new: {mention})"
                    )
                    raise ConsistencyError(
                        f"duplicate mention id: {mention.mention_id}"
                    )
                self.all_predicted_mentions[mention.mention_id] = mention
                self.positions[mention] = (i, j)
                mention.sent_num = i
                mention.coref_cluster_id = mention.mention_id
                self.coref_clusters[mention.mention_id] = CorefCluster(
                    mention.mention_id, [mention]
                )

    def assign_original_id(self):
        """When mentions have no id (``-1``), assign sequential ids
        to all mentions."""
        mentions = [m for ms in self.get_ordered_mentions() for m in ms]
        if all(m.mention_id != -1 for m in mentions):
            return
        for i, mention in enumerate(mentions):
            mention.mention_id = i

    def find_twin_mentions(self, strict: bool):
        """Match predicted mentions with gold mentions.

        A predicted mention matched with a gold mention takes its id,
        and both mentions are marked as twinned.

        :param strict: if ``True``, mentions boundaries must match
            exactly.  Otherwise, mentions can also be matched using
            their heads.
        """
        if strict:
            self._find_twin_mentions_strict()
        else:
            self._find_twin_mentions_relaxed()

    def _find_twin_mentions_strict(self):
        assert not self.gold_ordered_mentions_by_sentence is None
        for golds, predicts in zip(
            self.gold_ordered_mentions_by_sentence,
            self.predicted_ordered_mentions_by_sentence,
        ):
            gold_positions: Dict[Tuple[int, int], deque] = defaultdict(deque)
            for g in golds:
                ip = (g.start_idx, g.end_idx)
                if ip in gold_positions:
                    existing = ",".join(str(eg.mention_id) for eg in gold_positions[ip])
                    self.logger.warning(
                        f"gold mentions with the same offsets: {ip} mentions={g.mention_id},{existing}, {g.span_to_string()}"
                    )
                gold_positions[ip].append(g)

            for p in predicts:
                candidates = gold_positions.get((p.start_idx, p.end_idx))
                if candidates:
                    g = candidates.popleft()
                    p.mention_id = g.mention_id
                    p.twinless = False
                    g.twinless = False

            for p in predicts:
                if p.twinless:
                    p.mention_id += TWINLESS_ID_OFFSET

    def _find_twin_mentions_relaxed(self):
        assert not self.gold_ordered_mentions_by_sentence is None
        for golds, predicts in zip(
            self.gold_ordered_mentions_by_sentence,
            self.predicted_ordered_mentions_by_sentence,
        ):
            gold_positions = {(g.start_idx, g.end_idx): g for g in golds}
            gold_head_positions: Dict[int, deque] = defaultdict(deque)
            for g in golds:
                gold_head_positions[g.head_idx].append(g)

            remains = []
            for p in predicts:
                # a gold mention is twinned at most once
                g = gold_positions.pop((p.start_idx, p.end_idx), None)
                if g is None:
                    remains.append(p)
                    continue
                p.mention_id = g.mention_id
                p.twinless = False
                g.twinless = False
                same_head = gold_head_positions.get(g.head_idx)
                if not same_head is None and g in same_head:
                    same_head.remove(g)
                    if len(same_head) == 0:
                        del gold_head_positions[g.head_idx]

            for r in remains:
                if not r.head_idx in gold_head_positions:
                    continue
                g = gold_head_positions[r.head_idx].popleft()
                r.mention_id = g.mention_id
                r.twinless = False
                g.twinless = False
                if len(gold_head_positions[g.head_idx]) == 0:
                    del gold_head_positions[g.head_idx]

            for p in predicts:
                if p.twinless:
                    p.mention_id += TWINLESS_ID_OFFSET

    def find_cluster(self, cluster_id: int) -> Optional[CorefCluster]:
        """
        :return: the cluster with the given id, or ``None`` if it
            does not exist (for example, if it was merged into another
            cluster)
        """
        return self.coref_clusters.get(cluster_id)

    def get_cluster(self, cluster_id: int) -> CorefCluster:
        """
        :raise ConsistencyError: if the cluster does not exist
        """
        cluster = self.coref_clusters.get(cluster_id)
        if cluster is None:
            raise ConsistencyError(f"cluster not found: {cluster_id}")
        return cluster

    def cluster_of(self, mention: Mention) -> CorefCluster:
        return self.get_cluster(mention.coref_cluster_id)

    def merge(self, c1: CorefCluster, c2: CorefCluster) -> bool:
        """Merge cluster ``c1`` into cluster ``c2``.

        All mentions of ``c1`` are moved to ``c2``, ``c1`` is removed
        from the document, and constraints involving ``c1`` are
        rewritten to involve ``c2`` instead.

        :return: ``True`` if the merge happened.  Merging a cluster
            into itself is a no-op, and incompatible clusters are
            never merged.
        """
        if c1 is c2 or c1.cluster_id == c2.cluster_id:
            return False
        if self.is_incompatible(c1, c2):
            self.logger.debug(
                f"refusing to merge incompatible clusters {c1.cluster_id} and {c2.cluster_id}"
            )
            return False
        CorefCluster.merge_clusters(c2, c1)
        self.merge_incompatibles(c2, c1)
        self.merge_acronym_cache(c2, c1)
        del self.coref_clusters[c1.cluster_id]
        return True

    def is_incompatible(self, c1: CorefCluster, c2: CorefCluster) -> bool:
        """Was any pair of mentions of these clusters marked as
        incompatible ?"""
        return _ordered(c1.cluster_id, c2.cluster_id) in self.incompatible_clusters

    def is_incompatible_mentions(self, m1: Mention, m2: Mention) -> bool:
        return _ordered(m1.mention_id, m2.mention_id) in self.incompatibles

    def add_incompatible(self, m1: Mention, m2: Mention):
        """Forbid ``m1`` and ``m2`` from ever being in the same
        cluster."""
        self.incompatibles.add(_ordered(m1.mention_id, m2.mention_id))
        self.incompatible_clusters.add(
            _ordered(m1.coref_cluster_id, m2.coref_cluster_id)
        )

    def merge_incompatibles(self, to: CorefCluster, frm: CorefCluster):
        """Update incompatibilities for two clusters about to be
        merged: each pair involving ``frm`` now involves ``to``."""
        replacements = []
        for pair in self.incompatible_clusters:
            other = _other(pair, frm.cluster_id)
            if not other is None and other != to.cluster_id:
                replacements.append((pair, _ordered(other, to.cluster_id)))
        for old, new in replacements:
            self.incompatible_clusters.discard(old)
            self.incompatible_clusters.add(new)

    def merge_acronym_cache(self, to: CorefCluster, frm: CorefCluster):
        replacements = []
        for pair, is_acronym in self.acronym_cache.items():
            if not is_acronym:
                continue
            other = _other(pair, frm.cluster_id)
            if not other is None and other != to.cluster_id:
                replacements.append(_ordered(other, to.cluster_id))
        for pair in replacements:
            self.acronym_cache[pair] = True

    def extract_gold_coref_clusters(self):
        """Build gold clusters from gold mentions.

        :raise ConsistencyError: if a gold mention has no gold cluster
            id
        """
        assert not self.gold_ordered_mentions_by_sentence is None
        gold_mentions = [m for ms in self.gold_ordered_mentions_by_sentence for m in ms]
        for mention in gold_mentions:
            if mention.gold_coref_cluster_id == -1:
                raise ConsistencyError(f"no gold cluster info for {mention}")
        by_cluster = map_reduce(gold_mentions, lambda m: m.gold_coref_cluster_id)
        self.gold_coref_clusters = {
            cluster_id: CorefCluster(cluster_id, mentions)
            for cluster_id, mentions in by_cluster.items()
        }

    def get_gold_links(self) -> List[Tuple[Position, Position]]:
        if self._gold_links is None:
            self._gold_links = self._extract_gold_links()
        return self._gold_links

    def _extract_gold_links(self) -> List[Tuple[Position, Position]]:
        """Extract gold links ``(mention position, antecedent
        position)`` from gold mentions ``original_ref``.

        :raise ConsistencyError: if a mention refers to an unknown
            gold mention
        """
        assert not self.gold_ordered_mentions_by_sentence is None
        golds = self.gold_ordered_mentions_by_sentence

        links: List[Tuple[Position, Position]] = []
        positions: Dict[int, Position] = {}
        antecedents: Dict[int, List[Position]] = {}
        for i, sentence_mentions in enumerate(golds):
            for j, mention in enumerate(sentence_mentions):
                positions[mention.mention_id] = (i, j)
                antecedents[mention.mention_id] = []

        for sentence_mentions in golds:
            for mention in sentence_mentions:
                mid = mention.mention_id
                src = positions[mid]
                if mention.original_ref < 0:
                    continue
                dst = positions.get(mention.original_ref)
                if dst is None:
                    raise ConsistencyError(
                        f"cannot find gold mention with id {mention.original_ref}"
                    )
                # cataphoric annotation: swap the references so that
                # the antecedent always comes first
                while dst > src:
                    dst_mention = golds[dst[0]][dst[1]]
                    mention.original_ref = dst_mention.original_ref
                    dst_mention.original_ref = mid
                    if mention.original_ref < 0:
                        break
                    dst = positions[mention.original_ref]
                if mention.original_ref < 0:
                    continue

                # A B C: if A <- B and A <- C, then B <- C
                for k in range(dst[0], src[0] + 1):
                    for l in range(len(golds[k])):
                        if k == dst[0] and l < dst[1]:
                            continue
                        if k == src[0] and l > src[1]:
                            break
                        missed = (k, l)
                        if (missed, dst) in links:
                            antecedents[mid].append(missed)
                            links.append((src, missed))

                links.append((src, dst))
                antecedents[mid].append(dst)
                for ant in antecedents[mention.original_ref]:
                    antecedents[mid].append(ant)
                    links.append((src, ant))

        return links

    def get_speaker_info(self, speaker: str) -> Optional[SpeakerInfo]:
        return self.speaker_info_map.get(speaker)

    def number_of_speakers(self) -> int:
        return len(self.speaker_info_map)

    def check_clusters(self, tag: str = "") -> bool:
        """Check that each mention belongs to exactly one existing
        cluster.

        :return: ``True`` if the partition is consistent.  Problems
            are reported as warnings.
        """
        clusters_ok = True
        seen: Dict[Mention, int] = {}
        for cluster in self.coref_clusters.values():
            for mention in cluster.coref_mentions:
                if mention in seen:
                    self.logger.warning(
                        f"{tag}: mention {mention} is in clusters {seen[mention]} and {cluster.cluster_id}"
                    )
                    clusters_ok = False
                seen[mention] = cluster.cluster_id
        for sentence_mentions in self.get_ordered_mentions():
            for mention in sentence_mentions:
                cluster = self.find_cluster(mention.coref_cluster_id)
                if cluster is None:
                    self.logger.warning(f"{tag}: cluster not found for mention {mention}")
                    clusters_ok = False
                elif not mention in cluster.coref_mentions:
                    self.logger.warning(
                        f"{tag}: cluster {cluster.cluster_id} does not contain mention {mention}"
                    )
                    clusters_ok = False
        return clusters_ok


def _ordered(a: int, b: int) -> Tuple[int, int]:
    return (min(a, b), max(a, b))


def _other(pair: Tuple[int, int], cluster_id: int) -> Optional[int]:
    if pair[0] == cluster_id:
        return pair[1]
    if pair[1] == cluster_id:
        return pair[0]
    return None

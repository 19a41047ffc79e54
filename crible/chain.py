from __future__ import annotations
from typing import Dict, List, Optional, Set, Tuple
from dataclasses import dataclass, field
from crible.data import Animacy, Gender, Mention, MentionType, Number
from crible.cluster import CorefCluster


@dataclass(frozen=True)
class CorefMention:
    """An immutable view of a mention in a :class:`CorefChain`.

    .. note::

        All indices start from 1, and ``end_index`` is exclusive.

    :ivar position: ``(sentence, index of the mention in the
        sentence)``
    """

    mention_type: MentionType
    number: Number
    gender: Gender
    animacy: Animacy
    start_index: int
    end_index: int
    head_index: int
    coref_cluster_id: int
    mention_id: int
    sent_num: int
    position: Tuple[int, int]
    mention_span: str

    @staticmethod
    def from_mention(mention: Mention, position: Tuple[int, int]) -> CorefMention:
        return CorefMention(
            mention.mention_type,
            mention.number,
            mention.gender,
            mention.animacy,
            mention.start_idx + 1,
            mention.end_idx + 1,
            mention.head_idx + 1,
            mention.coref_cluster_id,
            mention.mention_id,
            mention.sent_num + 1,
            (position[0] + 1, position[1] + 1),
            mention.span_to_string(),
        )

    def __str__(self) -> str:
        return f'"{self.mention_span}" in sentence {self.sent_num}'

    def more_representative_than(self, m: Optional[CorefMention]) -> bool:
        """A proper mention is preferred, then a mention with more
        pre-modifiers, then a longer mention."""
        if m is None:
            return True
        if self.mention_type != m.mention_type:
            return self.mention_type == MentionType.PROPER or (
                self.mention_type == MentionType.NOMINAL
                and m.mention_type == MentionType.PRONOMINAL
            )
        keys = [
            (self.head_index - self.start_index, m.head_index - m.start_index),
            (self.end_index - self.start_index, m.end_index - m.start_index),
            (-self.sent_num, -m.sent_num),
            (-self.head_index, -m.head_index),
            (-self.start_index, -m.start_index),
        ]
        for mine, theirs in keys:
            if mine != theirs:
                return mine > theirs
        return False

    def textual_order_key(self) -> Tuple[int, int, int]:
        """Sort key: sentence, then start, then longer span first"""
        return (self.sent_num, self.start_index, -self.end_index)


@dataclass
class CorefChain:
    """The output view of a final cluster.

    :ivar chain_id: id of the cluster the chain was built from
    :ivar mentions: mentions, in textual order
    :ivar mention_map: ``(sentence, head index) -> mentions``
    :ivar representative: the representative mention of the chain
    """

    chain_id: int
    mentions: List[CorefMention]
    mention_map: Dict[Tuple[int, int], Set[CorefMention]] = field(default_factory=dict)
    representative: Optional[CorefMention] = None

    @staticmethod
    def from_cluster(
        cluster: CorefCluster, positions: Dict[Mention, Tuple[int, int]]
    ) -> CorefChain:
        """
        :param cluster: a final cluster
        :param positions: position of each mention of the document
        """
        mentions = sorted(
            (CorefMention.from_mention(m, positions[m]) for m in cluster.coref_mentions),
            key=CorefMention.textual_order_key,
        )
        mention_map: Dict[Tuple[int, int], Set[CorefMention]] = {}
        representative = None
        for mention in mentions:
            mention_map.setdefault((mention.sent_num, mention.head_index), set()).add(
                mention
            )
            if mention.more_representative_than(representative):
                representative = mention
        return CorefChain(cluster.cluster_id, mentions, mention_map, representative)

    def __str__(self) -> str:
        return f"CHAIN{self.chain_id}-{[str(m) for m in self.mentions]}"

    def get_mentions_in_textual_order(self) -> List[CorefMention]:
        return self.mentions

    def get_mentions_with_same_head(
        self, sent_num: int, head_index: int
    ) -> Set[CorefMention]:
        """
        :param sent_num: 1-based sentence number
        :param head_index: 1-based head index
        :return: mentions with the given head, possibly an empty set
        """
        return self.mention_map.get((sent_num, head_index), set())

    def get_representative_mention(self) -> CorefMention:
        assert not self.representative is None
        return self.representative

    def delete_mention(self, mention: CorefMention):
        self.mentions.remove(mention)
        self.mention_map.pop((mention.sent_num, mention.head_index), None)


Link = Tuple[Tuple[int, int], Tuple[int, int]]


def get_links(result: Dict[int, CorefChain]) -> List[Link]:
    """List coreference links of a resolution result.

    :param result: ``chain id -> chain``
    :return: a list of ``(mention position, antecedent position)``,
        where the antecedent comes before the mention in textual order
    """
    links = []
    for chain in result.values():
        for m1 in chain.mentions:
            for m2 in chain.mentions:
                if m1.textual_order_key() > m2.textual_order_key():
                    links.append((m1.position, m2.position))
    return links

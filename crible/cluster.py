from __future__ import annotations
from typing import TYPE_CHECKING, Iterable, Optional, Set
from crible.data import Animacy, Gender, Mention, Number

if TYPE_CHECKING:
    from crible.dictionaries import Dictionaries


class CorefCluster:
    """A set of mentions referring to the same entity.

    A cluster caches attributes of its members (numbers, genders,
    animacies, NER strings, heads and words), its first mention in
    textual order and its representative mention.
    """

    def __init__(self, cluster_id: int, mentions: Optional[Iterable[Mention]] = None):
        self.cluster_id = cluster_id
        self.coref_mentions: Set[Mention] = set()
        self.numbers: Set[Number] = set()
        self.genders: Set[Gender] = set()
        self.animacies: Set[Animacy] = set()
        self.ner_strings: Set[Optional[str]] = set()
        self.heads: Set[str] = set()
        self.words: Set[str] = set()
        self.first_mention: Optional[Mention] = None
        self.representative: Optional[Mention] = None

        for mention in mentions or []:
            self.add_mention(mention)

    def __repr__(self) -> str:
        return f"CorefCluster({self.cluster_id}, {sorted(m.mention_id for m in self.coref_mentions)})"

    def __len__(self) -> int:
        return len(self.coref_mentions)

    def add_mention(self, mention: Mention):
        """Add a mention to the cluster, updating cached attributes.

        .. note::

            this does not modify ``mention.coref_cluster_id``.
        """
        self.coref_mentions.add(mention)
        self.numbers.add(mention.number)
        self.genders.add(mention.gender)
        self.animacies.add(mention.animacy)
        self.ner_strings.add(mention.ner)
        self.heads.add(mention.head_string)
        if not mention.is_pronominal():
            for token in mention.tokens:
                self.words.add(token.text.lower())

        if self.first_mention is None or mention.appear_earlier_than(
            self.first_mention
        ):
            self.first_mention = mention
        if mention.more_representative_than(self.representative):
            self.representative = mention

    def get_first_mention(self) -> Mention:
        assert not self.first_mention is None
        return self.first_mention

    def get_representative_mention(self) -> Mention:
        assert not self.representative is None
        return self.representative

    def is_single_pronoun_cluster(self, dictionaries: Dictionaries) -> bool:
        """:return: ``True`` if the cluster holds a single pronoun"""
        if len(self.coref_mentions) > 1:
            return False
        return any(
            m.is_pronominal()
            or m.lowercase_normalized_span_string() in dictionaries.all_pronouns
            for m in self.coref_mentions
        )

    @staticmethod
    def merge_clusters(to: CorefCluster, frm: CorefCluster):
        """Merge ``frm`` into ``to``.  Every mention of ``frm`` is
        reassigned to ``to``.

        .. note::

            ``frm`` is left untouched, and must be discarded by the
            caller.  Use :meth:`.Document.merge`, which also takes
            care of incompatibilities.
        """
        for m in frm.coref_mentions:
            m.coref_cluster_id = to.cluster_id

        to.numbers |= frm.numbers
        to.genders |= frm.genders
        to.animacies |= frm.animacies
        to.ner_strings |= frm.ner_strings
        to.heads |= frm.heads
        to.words |= frm.words

        if (
            not frm.first_mention is None
            and not to.first_mention is None
            and frm.first_mention.appear_earlier_than(to.first_mention)
            and not frm.first_mention.is_pronominal()
        ):
            to.first_mention = frm.first_mention

        to.coref_mentions |= frm.coref_mentions
        to.representative = None
        for m in to.coref_mentions:
            if m.more_representative_than(to.representative):
                to.representative = m

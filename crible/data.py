from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional, Set
from dataclasses import dataclass, field
from enum import Enum
import re

if TYPE_CHECKING:
    from crible.dictionaries import Dictionaries


class Gender(Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    NEUTRAL = "NEUTRAL"
    UNKNOWN = "UNKNOWN"


class Number(Enum):
    SINGULAR = "SINGULAR"
    PLURAL = "PLURAL"
    UNKNOWN = "UNKNOWN"


class Animacy(Enum):
    ANIMATE = "ANIMATE"
    INANIMATE = "INANIMATE"
    UNKNOWN = "UNKNOWN"


class Person(Enum):
    I = "I"
    YOU = "YOU"
    HE = "HE"
    SHE = "SHE"
    WE = "WE"
    THEY = "THEY"
    IT = "IT"
    UNKNOWN = "UNKNOWN"


class MentionType(Enum):
    """Type of a mention.  Each type has a representativeness rank,
    used to choose the representative mention of a cluster."""

    PRONOMINAL = 1
    LIST = 2
    NOMINAL = 3
    PROPER = 4

    @property
    def representativeness(self) -> int:
        return self.value


@dataclass
class Token:
    """An annotated token, as produced by an external NLP pipeline."""

    text: str
    pos: str = ""
    ner: str = "O"
    lemma: Optional[str] = None
    #: speaker of the utterance the token belongs to
    speaker: Optional[str] = None
    #: index of the utterance the token belongs to (0 outside quotes)
    utterance: int = 0


_WHITESPACE_PATTERN = re.compile(r"\s+|_")


@dataclass(eq=False)
class SpeakerInfo:
    """A speaker in a document.

    :ivar speaker_id: speaker identifier, as found in token annotations
    :ivar speaker_name: speaker name, if known
    :ivar speaker_desc: an optional description of the speaker
        (for example, ``"the president"``)
    """

    speaker_id: str
    speaker_name: Optional[str] = None
    speaker_desc: Optional[str] = None
    mentions: Set[Mention] = field(default_factory=set)
    coref_cluster_id: int = -1

    def __post_init__(self):
        if self.speaker_name is None:
            self.speaker_name = self.speaker_id

    def get_speaker_name_strings(self) -> List[str]:
        assert not self.speaker_name is None
        return [s for s in _WHITESPACE_PATTERN.split(self.speaker_name) if s]

    def add_mention(self, mention: Mention):
        self.mentions.add(mention)
        if self.coref_cluster_id < 0:
            self.coref_cluster_id = mention.coref_cluster_id

    def contains_mention(self, mention: Mention) -> bool:
        return mention in self.mentions


@dataclass(eq=False)
class Mention:
    """A mention of an entity in a sentence.

    Mentions are compared by identity: two distinct mention objects
    are never equal, even if they cover the same span.  This is
    needed since a document holds both gold and predicted mentions
    over the same spans.

    :ivar sentence: all the tokens of the sentence of the mention
    :ivar start_idx: index of the first token of the mention in its
        sentence
    :ivar end_idx: index of the token *after* the last token of the
        mention in its sentence (exclusive)
    :ivar head_idx: index of the head token in the sentence
    :ivar coref_cluster_id: id of the cluster the mention currently
        belongs to.  Only modified by :meth:`.Document.merge` and
        post-processing.
    :ivar gold_coref_cluster_id: gold cluster id, used for scoring
    :ivar original_ref: id of the gold antecedent, or ``-1``
    """

    mention_id: int
    sentence: List[Token]
    start_idx: int
    end_idx: int
    head_idx: int
    mention_type: MentionType = MentionType.NOMINAL
    gender: Gender = Gender.UNKNOWN
    number: Number = Number.UNKNOWN
    animacy: Animacy = Animacy.UNKNOWN
    person: Person = Person.UNKNOWN
    ner: Optional[str] = "O"
    sent_num: int = -1
    coref_cluster_id: int = -1
    gold_coref_cluster_id: int = -1
    original_ref: int = -1
    twinless: bool = True
    #: set by an external singleton predictor
    is_singleton: bool = False
    generic: bool = False
    is_subject: bool = False
    is_direct_object: bool = False
    is_indirect_object: bool = False
    is_preposition_object: bool = False
    #: index of the verb the mention depends on, if any
    depending_verb: Optional[int] = None
    speaker_info: Optional[SpeakerInfo] = None
    appositions: Set[Mention] = field(default_factory=set)
    predicate_nominatives: Set[Mention] = field(default_factory=set)
    relative_pronouns: Set[Mention] = field(default_factory=set)
    list_members: Set[Mention] = field(default_factory=set)
    belong_to_lists: Set[Mention] = field(default_factory=set)

    def __repr__(self) -> str:
        return f"Mention({self.mention_id}, {self.span_to_string()!r}, sent={self.sent_num}, [{self.start_idx}, {self.end_idx}))"

    @property
    def tokens(self) -> List[Token]:
        return self.sentence[self.start_idx : self.end_idx]

    @property
    def head_word(self) -> Token:
        return self.sentence[self.head_idx]

    @property
    def head_string(self) -> str:
        return self.head_word.text.lower()

    @property
    def speaker(self) -> Optional[str]:
        return self.head_word.speaker

    @property
    def utterance(self) -> int:
        return self.head_word.utterance

    def span_to_string(self) -> str:
        return " ".join([t.text for t in self.tokens])

    def lowercase_normalized_span_string(self) -> str:
        return self.span_to_string().lower()

    def is_pronominal(self) -> bool:
        return self.mention_type == MentionType.PRONOMINAL

    def same_sentence(self, m: Mention) -> bool:
        return self.sentence is m.sentence or (
            self.sent_num >= 0 and self.sent_num == m.sent_num
        )

    def included_in(self, m: Mention) -> bool:
        """
        :return: ``True`` if this mention span is included in ``m``
            span, in the same sentence
        """
        if not m.same_sentence(self):
            return False
        return self.start_idx >= m.start_idx and self.end_idx <= m.end_idx

    def inside_in(self, m: Mention) -> bool:
        return (
            self.sent_num == m.sent_num
            and m.start_idx <= self.start_idx
            and self.end_idx <= m.end_idx
        )

    def appear_earlier_than(self, m: Mention) -> bool:
        """Find which mention appears first in a document"""
        if self.sent_num != m.sent_num:
            return self.sent_num < m.sent_num
        if self.start_idx != m.start_idx:
            return self.start_idx < m.start_idx
        if self.end_idx != m.end_idx:
            return self.end_idx > m.end_idx
        if self.head_idx != m.head_idx:
            return self.head_idx < m.head_idx
        if self.mention_type != m.mention_type:
            return (
                self.mention_type.representativeness
                > m.mention_type.representativeness
            )
        return self.mention_id < m.mention_id

    def more_representative_than(self, m: Optional[Mention]) -> bool:
        """
        :param m: another mention, or ``None``
        :return: ``True`` if this mention would be a better
            representative of a cluster than ``m``
        """
        if m is None:
            return True
        if self.mention_type != m.mention_type:
            return (
                self.mention_type.representativeness
                > m.mention_type.representativeness
            )

        # pick mention with better NER
        if not self.ner is None and m.ner is None:
            return True
        if self.ner is None and not m.ner is None:
            return False
        if not self.ner is None and self.ner != m.ner:
            for worse in ("O", "MISC"):
                if m.ner == worse:
                    return True
                if self.ner == worse:
                    return False

        if self.head_idx - self.start_idx != m.head_idx - m.start_idx:
            return self.head_idx - self.start_idx > m.head_idx - m.start_idx
        if self.sent_num != m.sent_num:
            return self.sent_num < m.sent_num
        if self.head_idx != m.head_idx:
            return self.head_idx < m.head_idx
        if self.start_idx != m.start_idx:
            return self.start_idx < m.start_idx
        return self.end_idx - self.start_idx > m.end_idx - m.start_idx

    def numbers_agree(self, m: Mention, strict: bool = False) -> bool:
        if strict:
            return self.number == m.number
        return (
            self.number == Number.UNKNOWN
            or m.number == Number.UNKNOWN
            or self.number == m.number
        )

    def genders_agree(self, m: Mention, strict: bool = False) -> bool:
        if strict:
            return self.gender == m.gender
        return (
            self.gender == Gender.UNKNOWN
            or m.gender == Gender.UNKNOWN
            or self.gender == m.gender
        )

    def animacies_agree(self, m: Mention, strict: bool = False) -> bool:
        if strict:
            return self.animacy == m.animacy
        return (
            self.animacy == Animacy.UNKNOWN
            or m.animacy == Animacy.UNKNOWN
            or self.animacy == m.animacy
        )

    def add_apposition(self, m: Mention):
        self.appositions.add(m)

    def is_apposition(self, m: Mention) -> bool:
        return m in self.appositions

    def add_predicate_nominatives(self, m: Mention):
        self.predicate_nominatives.add(m)

    def is_predicate_nominatives(self, m: Mention) -> bool:
        return m in self.predicate_nominatives

    def add_relative_pronoun(self, m: Mention):
        self.relative_pronouns.add(m)

    def is_relative_pronoun(self, m: Mention) -> bool:
        return m in self.relative_pronouns

    def add_list_member(self, m: Mention):
        self.list_members.add(m)
        m.belong_to_lists.add(self)

    def is_list_member_of(self, m: Mention) -> bool:
        return self in m.list_members

    def heads_agree(self, m: Mention) -> bool:
        """Check if heads agree.  Same type named entities are
        allowed to match partially (``"George"`` and ``"George
        Bush"``)"""
        if (
            self.ner != "O"
            and m.ner != "O"
            and self.ner == m.ner
            and (
                _included(self.head_word, m.tokens)
                or _included(m.head_word, self.tokens)
            )
        ):
            return True
        return self.head_string == m.head_string

    def is_role_appositive(self, m: Mention, dictionaries: Dictionaries) -> bool:
        """Check if this mention is a role appositive of ``m`` (as in
        ``"[[President] Obama]"``)"""
        this_string = self.span_to_string()
        this_string_lower = self.lowercase_normalized_span_string()
        if self.is_pronominal() or this_string_lower in dictionaries.all_pronouns:
            return False
        for ner in (m.ner, self.ner):
            if ner is None or not (ner.startswith("PER") or ner == "O"):
                return False
        m_string = m.span_to_string()
        if not self.same_sentence(m) or not m_string.startswith(this_string):
            return False
        if "'" in m_string or " and " in m_string:
            return False
        if (
            not self.animacies_agree(m)
            or self.animacy == Animacy.INANIMATE
            or self.gender == Gender.NEUTRAL
            or m.gender == Gender.NEUTRAL
            or not self.numbers_agree(m)
        ):
            return False
        if (
            this_string_lower in dictionaries.demonym_set
            or m.lowercase_normalized_span_string() in dictionaries.demonym_set
        ):
            return False
        return True

    def is_demonym(self, m: Mention, dictionaries: Dictionaries) -> bool:
        """Check if one mention is a demonym of the other (``"Italy"``
        and ``"Italian"``)"""
        this_cased = self.span_to_string()
        ant_cased = m.span_to_string()
        # the US state matching part is done cased
        this_normed = dictionaries.lookup_canonical_american_state_name(this_cased)
        ant_normed = dictionaries.lookup_canonical_american_state_name(ant_cased)
        if not this_normed is None and this_normed == ant_normed:
            return True

        this_string = this_cased.lower()
        ant_string = ant_cased.lower()
        if this_string.startswith("the "):
            this_string = this_string[4:]
        if ant_string.startswith("the "):
            ant_string = ant_string[4:]
        return ant_string in dictionaries.get_demonyms(
            this_string
        ) or this_string in dictionaries.get_demonyms(ant_string)

    def remove_phrase_after_head(self) -> str:
        """Remove the part of the span located after the head, when
        it starts with a comma or a WH-word.

        :return: the shortened span string, or an empty string if the
            head is not before the cut point
        """
        pos_comma = -1
        pos_wh = -1
        for i, token in enumerate(self.tokens):
            if pos_comma == -1 and token.pos == ",":
                pos_comma = self.start_idx + i
            if pos_wh == -1 and token.pos.startswith("W"):
                pos_wh = self.start_idx + i

        if pos_comma != -1:
            if self.head_idx < pos_comma:
                return " ".join(
                    [t.text for t in self.tokens[: pos_comma - self.start_idx]]
                )
            return ""
        if pos_wh != -1:
            if self.head_idx < pos_wh:
                return " ".join(
                    [t.text for t in self.tokens[: pos_wh - self.start_idx]]
                )
            return ""
        return self.span_to_string()


def _included(small: Token, big: List[Token]) -> bool:
    if small.pos == "NNP":
        for w in big:
            if small.text == w.text or (
                len(small.text) > 2 and w.text.startswith(small.text)
            ):
                return True
    return False

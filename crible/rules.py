"""Rule predicates used by the sieve passes.

Rules over clusters take the cluster of the mention being resolved
(``mention_cluster``) and the cluster of the candidate antecedent
(``potential_antecedent``).
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Collection, List, Optional, Set, TypeVar
import re
from crible.data import (
    Animacy,
    Gender,
    Mention,
    MentionType,
    Number,
    Person,
    SpeakerInfo,
    Token,
)
from crible.dictionaries import Dictionaries, location_modifiers, number_words
from crible.cluster import CorefCluster

if TYPE_CHECKING:
    from crible.document import Document


T = TypeVar("T")


def _has_extra(mine: Set[T], theirs: Set[T], unknowns: Collection) -> bool:
    """Does ``theirs`` have a known value ``mine`` does not have ?
    Always ``False`` if ``mine`` contains an unknown value."""
    if any(u in mine for u in unknowns):
        return False
    return any(not v in unknowns and not v in mine for v in theirs)


def _attributes_disagree(s1: Set[T], s2: Set[T], unknowns: Collection) -> bool:
    return _has_extra(s1, s2, unknowns) and _has_extra(s2, s1, unknowns)


def entity_attributes_agree(
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
    ignore_gender: bool = False,
) -> bool:
    """Two clusters agree if, for each attribute (number, gender,
    animacy and named entity type), it is not the case that both
    clusters have a known value missing from the other cluster."""
    if _attributes_disagree(
        mention_cluster.numbers, potential_antecedent.numbers, {Number.UNKNOWN}
    ):
        return False
    if not ignore_gender and _attributes_disagree(
        mention_cluster.genders, potential_antecedent.genders, {Gender.UNKNOWN}
    ):
        return False
    if _attributes_disagree(
        mention_cluster.animacies, potential_antecedent.animacies, {Animacy.UNKNOWN}
    ):
        return False
    return not _attributes_disagree(
        mention_cluster.ner_strings, potential_antecedent.ner_strings, {None, "O", "MISC"}
    )


def _is_pronoun(mention: Mention, dictionaries: Dictionaries) -> bool:
    return (
        mention.is_pronominal()
        or mention.lowercase_normalized_span_string() in dictionaries.all_pronouns
    )


def _exact_match(m_span: str, ant_span: str) -> bool:
    return (
        m_span == ant_span
        or m_span == ant_span + " 's"
        or ant_span == m_span + " 's"
    )


def entity_exact_string_match(
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
    dictionaries: Dictionaries,
    role_set: Optional[Set[Mention]],
) -> bool:
    """Does any non-pronominal mention of ``mention_cluster`` have
    the same text as any non-pronominal mention of
    ``potential_antecedent`` (modulo a final ``'s``) ?"""
    matched = False
    for m in mention_cluster.coref_mentions:
        if not role_set is None and m in role_set:
            return False
        if _is_pronoun(m, dictionaries):
            continue
        m_span = m.lowercase_normalized_span_string()
        for ant in potential_antecedent.coref_mentions:
            if _is_pronoun(ant, dictionaries):
                continue
            if _exact_match(m_span, ant.lowercase_normalized_span_string()):
                matched = True
    return matched


def entity_relaxed_exact_string_match(
    mention: Mention,
    ant: Mention,
    dictionaries: Dictionaries,
    role_set: Optional[Set[Mention]],
) -> bool:
    """Exact string match, ignoring the part of the mentions after
    their head (``"Mr. Bickford"`` and ``"Mr. Bickford, an
    18-year mediation veteran"``)."""
    if not role_set is None and mention in role_set:
        return False
    if MentionType.LIST in (mention.mention_type, ant.mention_type):
        return False
    if _is_pronoun(mention, dictionaries) or _is_pronoun(ant, dictionaries):
        return False
    mention_span = mention.remove_phrase_after_head()
    ant_span = ant.remove_phrase_after_head()
    if mention_span == "" or ant_span == "":
        return False
    return _exact_match(mention_span, ant_span)


def entity_i_within_i(m1: Mention, m2: Mention, dictionaries: Dictionaries) -> bool:
    """Are the two mentions nested, without being in an apposition,
    relative pronoun or role appositive relation ?"""
    if (
        m1.is_apposition(m2)
        or m2.is_apposition(m1)
        or m1.is_relative_pronoun(m2)
        or m2.is_relative_pronoun(m1)
        or m1.is_role_appositive(m2, dictionaries)
        or m2.is_role_appositive(m1, dictionaries)
    ):
        return False
    return m1.included_in(m2) or m2.included_in(m1)


_INCOMPATIBLE_LOCATION_MODIFIERS = {
    "east",
    "west",
    "north",
    "south",
    "eastern",
    "western",
    "northern",
    "southern",
    "upper",
    "lower",
}


def _is_content_pos(pos: str) -> bool:
    return (
        pos.startswith("N") or pos.startswith("JJ") or pos == "CD" or pos.startswith("V")
    )


def mention_has_incompatible_modifier(m: Mention, ant: Mention) -> bool:
    """Only applies to mentions with the same head.

    :return: ``True`` if ``m`` has a content modifier ``ant`` does
        not have, or if ``ant`` has a location modifier ``m`` does
        not have
    """
    if ant.head_string != m.head_string:
        return False
    this_words = {
        t.text.lower()
        for t in m.tokens
        if _is_content_pos(t.pos) and t.text.lower() != m.head_string
    }
    ant_words = {t.text.lower() for t in ant.tokens}
    if any(not w in ant_words for w in this_words):
        return True
    return any(
        l in ant_words and not l in this_words for l in _INCOMPATIBLE_LOCATION_MODIFIERS
    )


def entity_have_incompatible_modifier(
    mention_cluster: CorefCluster, potential_antecedent: CorefCluster
) -> bool:
    return any(
        mention_has_incompatible_modifier(m, ant)
        for m in mention_cluster.coref_mentions
        for ant in potential_antecedent.coref_mentions
    )


_WORDS_TO_EXCLUDE = {
    "the",
    "this",
    "mr.",
    "miss",
    "mrs.",
    "dr.",
    "ms.",
    "inc.",
    "ltd.",
    "corp.",
    "'s",
}


def entity_words_included(
    mention_cluster: CorefCluster, potential_antecedent: CorefCluster, mention: Mention
) -> bool:
    """Are all the words of ``mention_cluster`` (except stop words and
    the mention head) included in the words of
    ``potential_antecedent`` ?"""
    words = mention_cluster.words - _WORDS_TO_EXCLUDE - {mention.head_string}
    return words <= potential_antecedent.words


def entity_heads_agree(
    potential_antecedent: CorefCluster,
    m: Mention,
    ant: Mention,
    dictionaries: Dictionaries,
) -> bool:
    """Does a mention of ``potential_antecedent`` have the same head
    as ``m`` ?"""
    if _is_pronoun(m, dictionaries) or _is_pronoun(ant, dictionaries):
        return False
    return any(a.head_string == m.head_string for a in potential_antecedent.coref_mentions)


def entity_relaxed_heads_agree_between_mentions(m: Mention, ant: Mention) -> bool:
    if m.is_pronominal() or ant.is_pronominal():
        return False
    return m.heads_agree(ant)


def entity_is_apposition(
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
    m1: Mention,
    m2: Mention,
) -> bool:
    if not entity_attributes_agree(mention_cluster, potential_antecedent):
        return False
    if m1.mention_type == MentionType.PROPER and m2.mention_type == MentionType.PROPER:
        return False
    if m1.ner == "LOCATION":
        return False
    return m1.is_apposition(m2) or m2.is_apposition(m1)


def entity_is_predicate_nominatives(
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
    m1: Mention,
    m2: Mention,
) -> bool:
    if not entity_attributes_agree(mention_cluster, potential_antecedent):
        return False
    if (m1.start_idx <= m2.start_idx and m1.end_idx >= m2.end_idx) or (
        m1.start_idx >= m2.start_idx and m1.end_idx <= m2.end_idx
    ):
        return False
    return m1.is_predicate_nominatives(m2) or m2.is_predicate_nominatives(m1)


def entity_is_relative_pronoun(m1: Mention, m2: Mention) -> bool:
    return m1.is_relative_pronoun(m2) or m2.is_relative_pronoun(m1)


def entity_is_role_appositive(
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
    m1: Mention,
    m2: Mention,
    dictionaries: Dictionaries,
) -> bool:
    if not entity_attributes_agree(mention_cluster, potential_antecedent):
        return False
    return m1.is_role_appositive(m2, dictionaries) or m2.is_role_appositive(
        m1, dictionaries
    )


def entity_is_acronym(
    document: Document,
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
) -> bool:
    """Is a non-pronominal mention of ``mention_cluster`` an acronym of
    a mention of ``potential_antecedent`` (or the reverse) ?

    .. note::

        The result is cached in the document for each pair of
        clusters.
    """
    key = (
        min(mention_cluster.cluster_id, potential_antecedent.cluster_id),
        max(mention_cluster.cluster_id, potential_antecedent.cluster_id),
    )
    if not key in document.acronym_cache:
        document.acronym_cache[key] = any(
            is_acronym(m.tokens, ant.tokens)
            for m in mention_cluster.coref_mentions
            if not m.is_pronominal()
            for ant in potential_antecedent.coref_mentions
        )
    return document.acronym_cache[key]


def is_acronym(first: List[Token], second: List[Token]) -> bool:
    """Is one of the token lists an acronym of the other ?

    The acronym must be a single token made of uppercase letters, and
    the uppercase letters of the other token list must spell the
    acronym exactly (``"IBM"`` and ``"International Business
    Machines"``).
    """
    if len(first) > 1 and len(second) > 1:
        return False
    if len(first) == 0 and len(second) == 0:
        return False

    if len(first) == len(second):
        first_longer = len(first[0].text) > len(second[0].text)
        longer, shorter = (first, second) if first_longer else (second, first)
    else:
        longer = first if len(first) > 0 and len(first) > len(second) else second
        shorter = second if len(second) > 0 and len(first) > len(second) else first

    acronym = shorter[0].text if len(shorter) > 0 else "<UNK>"
    if not all("A" <= c <= "Z" for c in acronym):
        return False

    uppercases = "".join(c for token in longer for c in token.text if "A" <= c <= "Z")
    if uppercases != acronym:
        return False

    return not any(acronym in token.text for token in longer)


def entity_have_different_location(
    m: Mention, a: Mention, dictionaries: Dictionaries
) -> bool:
    """Do the two mentions refer to different locations ?"""
    # state and country cannot be coreferent
    if not dictionaries.lookup_canonical_american_state_name(
        a.span_to_string()
    ) is None and m.head_string in ("country", "nation"):
        return True

    def locations(mention: Mention) -> Optional[Set[str]]:
        """:return: ``None`` if the mention has a location modifier"""
        locs = set()
        for token in mention.tokens:
            lowercased = token.text.lower()
            if lowercased in location_modifiers:
                return None
            if token.ner == "LOCATION":
                locs.add(lowercased)
        return locs

    location_m = locations(m)
    location_a = locations(a)
    if location_m is None or location_a is None:
        return True

    m_string = m.lowercase_normalized_span_string()
    a_string = a.lowercase_normalized_span_string()
    m_has_extra = any(not s in a_string for s in location_m)
    a_has_extra = any(not s in m_string for s in location_a)
    return m_has_extra and a_has_extra


def _is_proper_noun(token: Token) -> bool:
    return token.pos.startswith("NNP")


def mentions_same_proper_head_last_word(m: Mention, a: Mention) -> bool:
    """Do the two mentions have the same proper head, in last
    position, without incompatible proper modifiers ?"""
    if m.head_string != a.head_string:
        return False
    if not _is_proper_noun(m.head_word) or not _is_proper_noun(a.head_word):
        return False
    if not m.remove_phrase_after_head().lower().endswith(
        m.head_string
    ) or not a.remove_phrase_after_head().lower().endswith(a.head_string):
        return False
    m_proper_nouns = {
        t.text for t in m.sentence[m.start_idx : m.head_idx] if _is_proper_noun(t)
    }
    a_proper_nouns = {
        t.text for t in a.sentence[a.start_idx : a.head_idx] if _is_proper_noun(t)
    }
    m_has_extra = len(m_proper_nouns - a_proper_nouns) > 0
    a_has_extra = len(a_proper_nouns - m_proper_nouns) > 0
    return not (m_has_extra and a_has_extra)


def entity_same_proper_head_last_word(
    mention_cluster: CorefCluster, potential_antecedent: CorefCluster
) -> bool:
    return any(
        mentions_same_proper_head_last_word(m, a)
        for m in mention_cluster.coref_mentions
        for a in potential_antecedent.coref_mentions
    )


def _is_float(word: str) -> bool:
    try:
        float(word)
    except ValueError:
        return False
    return True


def entity_number_in_later_mention(mention: Mention, ant: Mention) -> bool:
    """Does ``mention`` contain a number ``ant`` does not contain ?"""
    antecedent_words = {t.text for t in ant.tokens}
    for token in mention.tokens:
        word = token.text
        if _is_float(word) or word.lower() in number_words:
            if not word in antecedent_words:
                return True
    return False


_DECIMAL_INTEGER_PATTERN = re.compile(r"^-?\d+$")


def get_speaker_cluster_id(document: Document, speaker: Optional[str]) -> int:
    """Find the cluster a speaker belongs to.

    :param speaker: a speaker string, either a speaker id from the
        document speaker infos or a mention id
    :return: a cluster id, or -1 if the speaker is not in any cluster
    """
    if speaker is None:
        return -1
    cluster_id = -1
    speaker_info = document.get_speaker_info(speaker)
    if not speaker_info is None:
        cluster_id = speaker_info.coref_cluster_id
    if cluster_id < 0 and _DECIMAL_INTEGER_PATTERN.match(speaker):
        # the speaker string is the id of the speaker mention
        mention = document.all_predicted_mentions.get(int(speaker))
        if not mention is None:
            cluster_id = mention.coref_cluster_id
            if not speaker_info is None:
                speaker_info.add_mention(mention)
    return cluster_id


def entity_same_speaker(document: Document, m: Mention, ant: Mention) -> bool:
    """Do the two mentions share the same speaker ?"""
    m_speaker = m.speaker
    ant_speaker = ant.speaker
    if m_speaker is None or ant_speaker is None:
        return False
    if m_speaker == ant_speaker:
        return True
    m_cluster_id = get_speaker_cluster_id(document, m_speaker)
    ant_cluster_id = get_speaker_cluster_id(document, ant_speaker)
    if m_cluster_id >= 0 and ant_cluster_id >= 0:
        return m_cluster_id == ant_cluster_id
    return False


_WHITESPACE_PATTERN = re.compile(r"\s+")


def mention_matches_speaker(
    mention: Mention, speaker_info: SpeakerInfo, strict_match: bool
) -> bool:
    if not mention.speaker_info is None and mention.speaker_info is speaker_info:
        return True
    if speaker_info.contains_mention(mention):
        return True

    mention_str = _WHITESPACE_PATTERN.sub("", mention.span_to_string()).lower()
    if strict_match:
        assert not speaker_info.speaker_name is None
        speaker_str = _WHITESPACE_PATTERN.sub("", speaker_info.speaker_name).lower()
        if speaker_str == mention_str:
            speaker_info.add_mention(mention)
            return True
        return False

    if not _is_proper_noun(mention.head_word):
        return False
    for s in speaker_info.get_speaker_name_strings():
        if mention.head_string == s.lower():
            speaker_info.add_mention(mention)
            return True
    if not speaker_info.speaker_desc is None:
        desc_str = _WHITESPACE_PATTERN.sub("", speaker_info.speaker_desc).lower()
        if desc_str == mention_str:
            return True
    return False


def antecedent_matches_mention_speaker_annotation(
    mention: Mention, ant: Mention, document: Optional[Document]
) -> bool:
    speaker = mention.speaker
    if speaker is None:
        return False
    speaker_info = None if document is None else document.get_speaker_info(speaker)
    if not speaker_info is None:
        return mention_matches_speaker(ant, speaker_info, False)
    return any(ant.head_string == s.lower() for s in speaker.split(" ") if s)


def antecedent_is_mention_speaker(document: Document, mention: Mention, ant: Mention) -> bool:
    """Is ``ant`` the speaker of ``mention`` ?"""
    if (mention.mention_id, ant.mention_id) in document.speaker_pairs:
        return True
    return antecedent_matches_mention_speaker_annotation(mention, ant, document)


def entity_subject_object(m1: Mention, m2: Mention) -> bool:
    """Is one mention the subject and the other an object of the same
    verb ?"""
    if m1.sent_num != m2.sent_num:
        return False
    if m1.depending_verb is None or m2.depending_verb is None:
        return False
    if m1.depending_verb != m2.depending_verb:
        return False

    def is_object(m: Mention) -> bool:
        return m.is_direct_object or m.is_indirect_object or m.is_preposition_object

    return (m1.is_subject and is_object(m2)) or (m2.is_subject and is_object(m1))


def mentions_person_disagree(document: Document, m: Mention, ant: Mention) -> bool:
    """Do the two mentions disagree in grammatical person, taking
    speakers into account ?"""
    same_speaker = entity_same_speaker(document, m, ant)

    if same_speaker and m.person != ant.person:
        if (m.person, ant.person) in (
            (Person.IT, Person.THEY),
            (Person.THEY, Person.IT),
        ):
            return False
        if m.person != Person.UNKNOWN and ant.person != Person.UNKNOWN:
            return True

    if same_speaker:
        speaking_persons = (Person.I, Person.WE, Person.YOU)
        if not ant.is_pronominal():
            if m.person in speaking_persons:
                return True
        elif not m.is_pronominal():
            if ant.person in speaking_persons:
                return True

    # "you" refers to the previous speaker
    if m.person == Person.YOU and not m is ant and ant.appear_earlier_than(m):
        return _you_not_previous_speaker(document, m, ant)
    if ant.person == Person.YOU and not m is ant and m.appear_earlier_than(ant):
        return _you_not_previous_speaker(document, ant, m)

    return False


def _you_not_previous_speaker(document: Document, you: Mention, other: Mention) -> bool:
    previous_speaker = document.speakers.get(you.utterance - 1)
    if previous_speaker is None:
        return True
    previous_speaker_cluster_id = get_speaker_cluster_id(document, previous_speaker)
    if previous_speaker_cluster_id < 0:
        return True
    return (
        other.coref_cluster_id != previous_speaker_cluster_id
        and other.person != Person.I
    )


def entity_person_disagree(
    document: Document,
    mention_cluster: CorefCluster,
    potential_antecedent: CorefCluster,
) -> bool:
    return any(
        mentions_person_disagree(document, m, ant)
        for m in mention_cluster.coref_mentions
        for ant in potential_antecedent.coref_mentions
    )


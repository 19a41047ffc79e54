from __future__ import annotations
from typing import Dict, List, Optional, Set
from dataclasses import dataclass, fields
import logging
from crible.data import Mention, Number, Person
from crible.dictionaries import Dictionaries
from crible.cluster import CorefCluster
from crible.document import Document, DocType
from crible import rules


@dataclass
class SieveOptions:
    """Flags selecting the rules used by a sieve pass"""

    use_incompatibles: bool = True
    use_role_skip: bool = False
    use_discourse_match: bool = False
    use_discourse_constraints: bool = True
    use_exact_string_match: bool = False
    use_relaxed_exact_string_match: bool = False
    use_apposition: bool = False
    use_predicate_nominatives: bool = False
    use_acronym: bool = False
    use_relative_pronoun: bool = False
    use_role_apposition: bool = False
    use_demonym: bool = False
    use_i_within_i: bool = False
    use_inclusion_head_match: bool = False
    use_relaxed_head_match: bool = False
    use_words_inclusion: bool = False
    use_incompatible_modifier: bool = False
    use_proper_head_at_last: bool = False
    use_attributes_agree: bool = False
    use_different_location: bool = False
    use_number_in_mention: bool = False
    do_pronoun: bool = False

    def __str__(self) -> str:
        enabled = [f.name for f in fields(self) if getattr(self, f.name)]
        return "{" + ", ".join(enabled) + "}"


class DeterministicCorefSieve:
    """A deterministic sieve pass.

    A sieve decides which mentions are considered for resolution
    (:meth:`skip_this_mention`), in which order their candidate
    antecedents are examined (:meth:`get_ordered_antecedents`), and
    whether a mention cluster and a candidate antecedent cluster are
    coreferent (:meth:`coreferent`).  The rules applied by
    :meth:`coreferent` are selected by the sieve
    :class:`SieveOptions`.
    """

    def __init__(
        self,
        options: Optional[SieveOptions] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.options = options or SieveOptions()
        self.logger = logger or logging.getLogger("crible")

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"{self.name}({self.options})"

    def flags_to_string(self) -> str:
        return str(self.options)

    def use_role_skip(self) -> bool:
        return self.options.use_role_skip

    def skip_this_mention(
        self,
        document: Document,
        m1: Mention,
        cluster: CorefCluster,
        dictionaries: Dictionaries,
    ) -> bool:
        """Should ``m1`` be left out of this pass ?

        Passes without string match or precise constructs only
        resolve the first mention of each cluster.  Mentions starting
        with an indefinite article or an indefinite pronoun are
        unlikely to have an antecedent, and are skipped.
        """
        o = self.options
        if (
            not o.use_exact_string_match
            and not o.use_role_apposition
            and not o.use_predicate_nominatives
            and not o.use_acronym
            and not o.use_apposition
            and not o.use_relative_pronoun
            and not cluster.get_first_mention() is m1
        ):
            return True

        span = m1.lowercase_normalized_span_string()
        skip = False
        # "A commission was set up to..."
        if (
            len(m1.appositions) == 0
            and len(m1.predicate_nominatives) == 0
            and (span.startswith("a ") or span.startswith("an "))
            and not o.use_exact_string_match
        ):
            skip = True
        # "Some say that..."
        if span in dictionaries.indefinite_pronouns:
            skip = True
        # "Another opinion on the topic is..."
        if any(span.startswith(indef + " ") for indef in dictionaries.indefinite_pronouns):
            skip = True

        if skip:
            self.logger.debug(
                f"mention skipped: {m1.span_to_string()} ({m1.sent_num}) originalRef: {m1.original_ref} in discourse {m1.utterance}"
            )
        return skip

    def get_ordered_antecedents(
        self,
        antecedent_sentence: int,
        my_sentence: int,
        ordered_mentions: List[Mention],
        ordered_mentions_by_sentence: List[List[Mention]],
        m1: Mention,
        m1_position: int,
        clusters: Dict[int, CorefCluster],
        dictionaries: Dictionaries,
    ) -> List[Mention]:
        """Order the candidate antecedents of ``m1`` in a sentence.

        In the sentence of ``m1``, candidates are the mentions before
        ``m1`` (in reverse order when ``m1`` is a relative pronoun).
        In a previous sentence, candidates are all the mentions of the
        sentence.  When two candidates of the same sentence have the
        same head and the same start, the longest one comes first.

        :param antecedent_sentence: index of the sentence to search
            antecedents in
        :param my_sentence: index of the sentence of ``m1``
        :param ordered_mentions: mentions of the sentence of ``m1``
        :param ordered_mentions_by_sentence: mentions of all
            sentences
        :param m1_position: index of ``m1`` in ``ordered_mentions``
        """
        if antecedent_sentence == my_sentence:
            antecedents = list(ordered_mentions[:m1_position])
            if m1.span_to_string() in dictionaries.relative_pronouns:
                antecedents.reverse()
        else:
            antecedents = list(ordered_mentions_by_sentence[antecedent_sentence])
        self.sort_same_head_antecedents(antecedents)
        return antecedents

    def sort_same_head_antecedents(self, l: List[Mention]):
        """Put longer mentions first, whenever two mentions of the same
        sentence have the same head and the same start, in place."""
        for i in range(len(l)):
            for j in range(i + 1, len(l)):
                if (
                    l[i].head_string == l[j].head_string
                    and l[i].start_idx == l[j].start_idx
                    and l[i].same_sentence(l[j])
                    and len(l[i].span_to_string()) < len(l[j].span_to_string())
                ):
                    self.logger.debug(
                        f"flipped: {l[i].span_to_string()} ({i}), {l[j].span_to_string()} ({j})"
                    )
                    l[i], l[j] = l[j], l[i]

    def coreferent(
        self,
        document: Document,
        mention_cluster: CorefCluster,
        potential_antecedent: CorefCluster,
        mention2: Mention,
        ant: Mention,
        dictionaries: Dictionaries,
        role_set: Optional[Set[Mention]],
    ) -> bool:
        """Are two clusters coreferent according to this pass ?

        .. note::

            this may record new incompatibilities in ``document``.

        :param mention_cluster: cluster of the mention being resolved
        :param potential_antecedent: cluster of the candidate
            antecedent
        :param mention2: the mention being resolved
        :param ant: the candidate antecedent
        :param role_set: mentions for which exact string match is
            disabled
        """
        o = self.options
        ret = False
        mention = mention_cluster.get_representative_mention()

        if o.use_incompatibles and document.is_incompatible(
            mention_cluster, potential_antecedent
        ):
            self.logger.debug(
                f"incompatible clusters: {ant.span_to_string()} ({ant.mention_id}) :: {mention.span_to_string()} ({mention.mention_id})"
            )
            return False

        sent_dist = abs(mention2.sent_num - ant.sent_num)
        if o.do_pronoun and sent_dist > 3 and not mention2.person in (Person.I, Person.YOU):
            return False
        if mention2.lowercase_normalized_span_string() == "this" and sent_dist > 3:
            return False
        if (
            mention2.person == Person.YOU
            and document.doc_type == DocType.ARTICLE
            and mention2.speaker == "PER0"
        ):
            return False
        if ant.generic and ant.person == Person.YOU:
            return False
        if mention2.generic:
            return False
        if mention2.inside_in(ant) or ant.inside_in(mention2):
            return False

        if o.use_discourse_match and self._discourse_match(
            document, mention, ant, dictionaries
        ):
            return True

        if (
            o.use_discourse_constraints
            and not o.use_exact_string_match
            and not o.use_relaxed_exact_string_match
            and not o.use_apposition
            and not o.use_words_inclusion
        ):
            if self._discourse_incompatible(document, mention_cluster, potential_antecedent):
                return False

        # incompatibility constraints, before match checks
        if o.use_i_within_i and rules.entity_i_within_i(mention, ant, dictionaries):
            self.logger.debug(
                f"incompatibles: iwithini: {ant.span_to_string()} :: {mention.span_to_string()}"
            )
            document.add_incompatible(mention, ant)
            return False

        # match checks
        if o.use_exact_string_match and rules.entity_exact_string_match(
            mention_cluster, potential_antecedent, dictionaries, role_set
        ):
            return True
        if o.use_relaxed_exact_string_match and rules.entity_relaxed_exact_string_match(
            mention, ant, dictionaries, role_set
        ):
            return True
        if o.use_apposition and rules.entity_is_apposition(
            mention_cluster, potential_antecedent, mention, ant
        ):
            self.logger.debug(f"apposition: {mention.span_to_string()} vs {ant.span_to_string()}")
            return True
        if o.use_predicate_nominatives and rules.entity_is_predicate_nominatives(
            mention_cluster, potential_antecedent, mention, ant
        ):
            self.logger.debug(
                f"predicate nominatives: {mention.span_to_string()} vs {ant.span_to_string()}"
            )
            return True
        if o.use_acronym and rules.entity_is_acronym(
            document, mention_cluster, potential_antecedent
        ):
            self.logger.debug(f"acronym: {mention.span_to_string()} vs {ant.span_to_string()}")
            return True
        if o.use_relative_pronoun and rules.entity_is_relative_pronoun(mention, ant):
            self.logger.debug(
                f"relative pronoun: {mention.span_to_string()} vs {ant.span_to_string()}"
            )
            return True
        if o.use_demonym and mention.is_demonym(ant, dictionaries):
            self.logger.debug(f"demonym: {mention.span_to_string()} vs {ant.span_to_string()}")
            return True

        if o.use_role_apposition and rules.entity_is_role_appositive(
            mention_cluster, potential_antecedent, mention, ant, dictionaries
        ):
            self.logger.debug(
                f"role appositive: {mention.span_to_string()} vs {ant.span_to_string()}"
            )
            ret = True
        if o.use_inclusion_head_match and rules.entity_heads_agree(
            potential_antecedent, mention, ant, dictionaries
        ):
            self.logger.debug(
                f"entity heads agree: {mention.span_to_string()} vs {ant.span_to_string()}"
            )
            ret = True
        if o.use_relaxed_head_match and rules.entity_relaxed_heads_agree_between_mentions(
            mention, ant
        ):
            ret = True

        if (
            o.use_words_inclusion
            and ret
            and not rules.entity_words_included(mention_cluster, potential_antecedent, mention)
        ):
            return False
        if (
            o.use_incompatible_modifier
            and ret
            and rules.entity_have_incompatible_modifier(mention_cluster, potential_antecedent)
        ):
            return False
        if (
            o.use_proper_head_at_last
            and ret
            and not rules.entity_same_proper_head_last_word(
                mention_cluster, potential_antecedent
            )
        ):
            return False
        if o.use_attributes_agree and not rules.entity_attributes_agree(
            mention_cluster, potential_antecedent
        ):
            return False
        if o.use_different_location and rules.entity_have_different_location(
            mention, ant, dictionaries
        ):
            return False
        if o.use_number_in_mention and rules.entity_number_in_later_mention(mention, ant):
            return False

        if o.do_pronoun:
            m = mention2 if mention2 in mention.predicate_nominatives else mention
            if (
                m.is_pronominal() or m.span_to_string() in dictionaries.all_pronouns
            ) and rules.entity_attributes_agree(mention_cluster, potential_antecedent):
                if (
                    ant.lowercase_normalized_span_string() in dictionaries.demonym_set
                    and m.head_string in dictionaries.not_organization_prp
                ):
                    document.add_incompatible(m, ant)
                    return False
                if o.use_discourse_constraints and rules.entity_person_disagree(
                    document, mention_cluster, potential_antecedent
                ):
                    self.logger.debug(
                        f"incompatibles: person disagree: {ant.span_to_string()} :: {mention.span_to_string()}"
                    )
                    document.add_incompatible(m, ant)
                    return False
                return True

        return ret

    def _discourse_match(
        self,
        document: Document,
        mention: Mention,
        ant: Mention,
        dictionaries: Dictionaries,
    ) -> bool:
        m_string = mention.lowercase_normalized_span_string()
        ant_string = ant.lowercase_normalized_span_string()
        first_person = dictionaries.first_person_pronouns
        second_person = dictionaries.second_person_pronouns

        def is_singular_first_person(m: Mention, string: str) -> bool:
            return m.number == Number.SINGULAR and string in first_person

        # both mentions map to the same speaker
        if not mention.speaker_info is None and mention.speaker_info is ant.speaker_info:
            self.logger.debug(
                f"discourse match: same speaker: {mention.span_to_string()} matched {ant.span_to_string()}"
            )
            return True

        # (I - I) in the same speaker's quotation
        if (
            is_singular_first_person(mention, m_string)
            and is_singular_first_person(ant, ant_string)
            and rules.entity_same_speaker(document, mention, ant)
        ):
            self.logger.debug(
                f"discourse match: 1st person same speaker: {mention.span_to_string()} matched {ant.span_to_string()}"
            )
            return True

        # (speaker - I)
        if is_singular_first_person(
            mention, m_string
        ) and rules.antecedent_is_mention_speaker(document, mention, ant):
            if mention.speaker_info is None and not ant.speaker_info is None:
                mention.speaker_info = ant.speaker_info
            self.logger.debug(
                f"discourse match: 1st person mention speaker matches antecedent: {mention.span_to_string()} matched {ant.span_to_string()}"
            )
            return True

        # (I - speaker)
        if is_singular_first_person(
            ant, ant_string
        ) and rules.antecedent_is_mention_speaker(document, ant, mention):
            if ant.speaker_info is None and not mention.speaker_info is None:
                ant.speaker_info = mention.speaker_info
            self.logger.debug(
                f"discourse match: 1st person antecedent speaker matches mention: {mention.span_to_string()} matched {ant.span_to_string()}"
            )
            return True

        if (
            m_string in second_person
            and ant_string in second_person
            and rules.entity_same_speaker(document, mention, ant)
        ):
            self.logger.debug(
                f"discourse match: 2nd person same speaker: {mention.span_to_string()} matched {ant.span_to_string()}"
            )
            return True

        # previous I - you or previous you - I in a two person conversation
        if (
            (mention.person, ant.person) in ((Person.I, Person.YOU), (Person.YOU, Person.I))
            and mention.utterance - ant.utterance == 1
            and document.doc_type == DocType.CONVERSATION
        ):
            self.logger.debug(
                f"discourse match: between two persons: {mention.span_to_string()} matched {ant.span_to_string()}"
            )
            return True

        if mention.head_string in dictionaries.reflexive_pronouns and rules.entity_subject_object(
            mention, ant
        ):
            self.logger.debug(
                f"discourse match: reflexive pronoun: {ant.span_to_string()} :: {mention.span_to_string()}"
            )
            return True

        return False

    def _discourse_incompatible(
        self,
        document: Document,
        mention_cluster: CorefCluster,
        potential_antecedent: CorefCluster,
    ) -> bool:
        """Look for discourse constraints between the two clusters,
        recording an incompatibility when one is found."""
        for m in mention_cluster.coref_mentions:
            for a in potential_antecedent.coref_mentions:
                if (
                    m.person != Person.I
                    and a.person != Person.I
                    and (
                        rules.antecedent_is_mention_speaker(document, m, a)
                        or rules.antecedent_is_mention_speaker(document, a, m)
                    )
                ):
                    self.logger.debug(
                        f"incompatibles: not match (speaker): {a.span_to_string()} :: {m.span_to_string()}"
                    )
                    document.add_incompatible(m, a)
                    return True

                dist = abs(m.utterance - a.utterance)
                if (
                    document.doc_type != DocType.ARTICLE
                    and dist == 1
                    and not rules.entity_same_speaker(document, m, a)
                ):
                    for person in (Person.I, Person.YOU, Person.WE):
                        if m.person == person and a.person == person:
                            self.logger.debug(
                                f"incompatibles: neighbor {person.value}: {a.span_to_string()} :: {m.span_to_string()}"
                            )
                            document.add_incompatible(m, a)
                            return True

        if document.doc_type == DocType.ARTICLE:
            for m in mention_cluster.coref_mentions:
                for a in potential_antecedent.coref_mentions:
                    if rules.entity_subject_object(m, a):
                        self.logger.debug(
                            f"incompatibles: subject-object: {a.span_to_string()} :: {m.span_to_string()}"
                        )
                        document.add_incompatible(m, a)
                        return True

        return False

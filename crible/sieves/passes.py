from __future__ import annotations
from typing import Optional
import logging
from crible.sieves.core import DeterministicCorefSieve, SieveOptions
from crible.sieves.registry import register_sieve


@register_sieve
class MarkRole(DeterministicCorefSieve):
    """Only marks role appositives, to disable exact string match on
    them in later passes"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(SieveOptions(use_role_skip=True), logger)


@register_sieve
class DiscourseMatch(DeterministicCorefSieve):
    """Speaker and first/second person pronoun matches"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(SieveOptions(use_discourse_match=True), logger)


@register_sieve
class ExactStringMatch(DeterministicCorefSieve):
    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(SieveOptions(use_exact_string_match=True), logger)


@register_sieve
class RelaxedExactStringMatch(DeterministicCorefSieve):
    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(SieveOptions(use_relaxed_exact_string_match=True), logger)


@register_sieve
class PreciseConstructs(DeterministicCorefSieve):
    """Appositions, predicate nominatives, acronyms, relative
    pronouns, role appositions and demonyms"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(
            SieveOptions(
                use_apposition=True,
                use_predicate_nominatives=True,
                use_acronym=True,
                use_relative_pronoun=True,
                use_role_apposition=True,
                use_demonym=True,
            ),
            logger,
        )


@register_sieve
class StrictHeadMatch1(DeterministicCorefSieve):
    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(
            SieveOptions(
                use_i_within_i=True,
                use_inclusion_head_match=True,
                use_words_inclusion=True,
                use_incompatible_modifier=True,
            ),
            logger,
        )


@register_sieve
class StrictHeadMatch2(DeterministicCorefSieve):
    """Same as :class:`StrictHeadMatch1`, without the incompatible
    modifier check"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(
            SieveOptions(
                use_i_within_i=True,
                use_inclusion_head_match=True,
                use_words_inclusion=True,
            ),
            logger,
        )


@register_sieve
class StrictHeadMatch3(DeterministicCorefSieve):
    """Same as :class:`StrictHeadMatch1`, without the words inclusion
    check"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(
            SieveOptions(
                use_i_within_i=True,
                use_inclusion_head_match=True,
                use_incompatible_modifier=True,
            ),
            logger,
        )


@register_sieve
class StrictHeadMatch4(DeterministicCorefSieve):
    """Head match between proper nouns, with location and number
    checks"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(
            SieveOptions(
                use_i_within_i=True,
                use_inclusion_head_match=True,
                use_proper_head_at_last=True,
                use_different_location=True,
                use_number_in_mention=True,
            ),
            logger,
        )


@register_sieve
class RelaxedHeadMatch(DeterministicCorefSieve):
    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(
            SieveOptions(
                use_i_within_i=True,
                use_relaxed_head_match=True,
                use_words_inclusion=True,
                use_attributes_agree=True,
            ),
            logger,
        )


@register_sieve
class PronounMatch(DeterministicCorefSieve):
    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__(SieveOptions(use_i_within_i=True, do_pronoun=True), logger)

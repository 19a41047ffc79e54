from __future__ import annotations
from typing import Dict, Optional, Set
from dataclasses import dataclass, field


female_pronouns = {"her", "hers", "herself", "she"}
male_pronouns = {"he", "him", "himself", "his"}
neutral_pronouns = {"it", "its", "itself", "where", "here", "there", "which"}
possessive_pronouns = {"my", "your", "his", "her", "its", "our", "their", "whose"}
other_pronouns = {"who", "whom", "whose", "where", "when", "which"}
third_person_pronouns = {
    "he",
    "him",
    "himself",
    "his",
    "she",
    "her",
    "herself",
    "hers",
    "it",
    "itself",
    "its",
    "one",
    "oneself",
    "one's",
    "they",
    "them",
    "themself",
    "themselves",
    "theirs",
    "their",
    "'em",
}
second_person_pronouns = {"you", "yourself", "yours", "your", "yourselves"}
first_person_pronouns = {
    "i",
    "me",
    "myself",
    "mine",
    "my",
    "we",
    "us",
    "ourself",
    "ourselves",
    "ours",
    "our",
}
animate_pronouns = (
    first_person_pronouns
    | second_person_pronouns
    | (third_person_pronouns - {"it", "itself", "its"})
    | {"who", "whom", "whose"}
)
indefinite_pronouns = {
    "another",
    "anybody",
    "anyone",
    "anything",
    "each",
    "either",
    "enough",
    "everybody",
    "everyone",
    "everything",
    "less",
    "little",
    "much",
    "neither",
    "no one",
    "nobody",
    "nothing",
    "one",
    "other",
    "plenty",
    "somebody",
    "someone",
    "something",
    "both",
    "few",
    "fewer",
    "many",
    "others",
    "several",
    "all",
    "any",
    "more",
    "most",
    "none",
    "some",
    "such",
}
relative_pronouns = {"that", "who", "which", "whom", "where", "whose"}
reflexive_pronouns = {
    "myself",
    "yourself",
    "yourselves",
    "himself",
    "herself",
    "itself",
    "ourselves",
    "themselves",
    "oneself",
}
not_organization_prp = {
    "i",
    "me",
    "myself",
    "mine",
    "my",
    "yourself",
    "he",
    "him",
    "himself",
    "his",
    "she",
    "her",
    "herself",
    "hers",
    "here",
}
base_stop_words = {
    "a",
    "an",
    "the",
    "of",
    "at",
    "on",
    "upon",
    "in",
    "to",
    "from",
    "out",
    "as",
    "so",
    "such",
    "or",
    "and",
    "those",
    "this",
    "these",
    "that",
    "for",
    ",",
    "is",
    "was",
    "am",
    "are",
    "'s",
    "been",
    "were",
}
location_modifiers = {
    "east",
    "west",
    "north",
    "south",
    "eastern",
    "western",
    "northern",
    "southern",
    "northwestern",
    "southwestern",
    "northeastern",
    "southeastern",
    "upper",
    "lower",
}
number_words = {
    "one",
    "two",
    "three",
    "four",
    "five",
    "six",
    "seven",
    "eight",
    "nine",
    "ten",
    "hundred",
    "thousand",
    "million",
    "billion",
}


@dataclass
class Dictionaries:
    """Word lists used by coreference rules.

    .. note::

        Pronoun lists are built-in.  Gazetteers (demonyms, US states)
        are not loaded by crible and must be given by the caller.

    :ivar demonyms: a mapping from a lowercased place name (``"italy"``)
        to its lowercased demonyms (``{"italian", "italians"}``)
    :ivar states_abbreviation: a mapping from a US state abbreviation
        (``"Calif."``) to its full cased name (``"California"``)
    """

    demonyms: Dict[str, Set[str]] = field(default_factory=dict)
    states_abbreviation: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.female_pronouns = set(female_pronouns)
        self.male_pronouns = set(male_pronouns)
        self.neutral_pronouns = set(neutral_pronouns)
        self.possessive_pronouns = set(possessive_pronouns)
        self.first_person_pronouns = set(first_person_pronouns)
        self.second_person_pronouns = set(second_person_pronouns)
        self.third_person_pronouns = set(third_person_pronouns)
        self.indefinite_pronouns = set(indefinite_pronouns)
        self.relative_pronouns = set(relative_pronouns)
        self.reflexive_pronouns = set(reflexive_pronouns)
        self.not_organization_prp = set(not_organization_prp)
        self.person_pronouns = set(animate_pronouns)
        self.all_pronouns = (
            first_person_pronouns
            | second_person_pronouns
            | third_person_pronouns
            | other_pronouns
        )
        self.stop_words = base_stop_words | self.all_pronouns
        self.demonym_set = {d for ds in self.demonyms.values() for d in ds}
        self._states_canonical = {
            **{name: name for name in self.states_abbreviation.values()},
            **self.states_abbreviation,
        }

    def get_demonyms(self, name: str) -> Set[str]:
        """
        :return: the demonyms of a lowercased place name, or an empty
            set if none are known
        """
        return self.demonyms.get(name, set())

    def lookup_canonical_american_state_name(self, name: str) -> Optional[str]:
        return self._states_canonical.get(name)

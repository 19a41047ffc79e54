import pytest
from crible.data import MentionType
from crible.dictionaries import Dictionaries
from crible.document import Document
from crible.errors import UnknownSieveError
from crible.rules import is_acronym
from crible.sieves import (
    DEFAULT_SIEVES,
    SIEVES,
    DeterministicCorefSieve,
    ExactStringMatch,
    SieveOptions,
    make_sieve,
    register_sieve,
    sieve_names,
)
from factories import mention, sentence, story_document


def test_default_sieves_are_registered():
    assert set(DEFAULT_SIEVES) <= set(sieve_names())
    for name in DEFAULT_SIEVES:
        sieve = make_sieve(name)
        assert sieve.name == name


def test_unknown_sieve_raises():
    with pytest.raises(UnknownSieveError):
        make_sieve("NoSuchSieve")


def test_register_sieve():
    @register_sieve
    class AlwaysSkip(DeterministicCorefSieve):
        def __init__(self, logger=None):
            super().__init__(SieveOptions(), logger)

    try:
        assert isinstance(make_sieve("AlwaysSkip"), AlwaysSkip)
    finally:
        del SIEVES["AlwaysSkip"]


def test_same_head_antecedents_longer_first():
    tokens = sentence("the dog of John barked", pos=["DT", "NN", "IN", "NNP", "VBD"])
    short = mention(0, tokens, 0, 2, head=1)
    long = mention(1, tokens, 0, 4, head=1)
    john = mention(2, tokens, 3, 4)
    m1 = mention(3, tokens, 4, 5)
    ordered = [short, long, john, m1]
    Document([ordered])

    sieve = make_sieve("ExactStringMatch")
    antecedents = sieve.get_ordered_antecedents(
        0, 0, ordered, [ordered], m1, 3, {}, Dictionaries()
    )
    assert antecedents == [long, short, john]


def test_previous_sentence_antecedents_are_all_mentions():
    document = story_document(with_gold=False)
    sentences = document.get_ordered_mentions()
    he = sentences[1][0]
    sieve = make_sieve("PronounMatch")
    antecedents = sieve.get_ordered_antecedents(
        0, 1, sentences[1], sentences, he, 0, document.coref_clusters, Dictionaries()
    )
    assert antecedents == sentences[0]


def test_indefinite_mentions_are_skipped():
    tokens = sentence("a commission was set up", pos=["DT", "NN", "VBD", "VBN", "RP"])
    m = mention(0, tokens, 0, 2)
    document = Document([[m]])
    sieve = make_sieve("StrictHeadMatch1")
    assert sieve.skip_this_mention(document, m, document.cluster_of(m), Dictionaries())


def test_exact_string_match_is_coreferent():
    document = story_document(with_gold=False)
    john1 = document.get_ordered_mentions()[0][0]
    john2 = document.get_ordered_mentions()[2][0]
    sieve = ExactStringMatch()
    assert sieve.coreferent(
        document,
        document.cluster_of(john2),
        document.cluster_of(john1),
        john2,
        john1,
        Dictionaries(),
        document.role_set,
    )


def test_role_set_disables_exact_string_match():
    document = story_document(with_gold=False)
    john1 = document.get_ordered_mentions()[0][0]
    john2 = document.get_ordered_mentions()[2][0]
    document.role_set.add(john2)
    sieve = ExactStringMatch()
    assert not sieve.coreferent(
        document,
        document.cluster_of(john2),
        document.cluster_of(john1),
        john2,
        john1,
        Dictionaries(),
        document.role_set,
    )


def test_pronoun_match_respects_gender():
    document = story_document(with_gold=False)
    mary = document.get_ordered_mentions()[0][1]
    he, her = document.get_ordered_mentions()[1]
    assert mary.mention_type == MentionType.PROPER
    sieve = make_sieve("PronounMatch")
    dictionaries = Dictionaries()
    assert sieve.coreferent(
        document,
        document.cluster_of(her),
        document.cluster_of(mary),
        her,
        mary,
        dictionaries,
        document.role_set,
    )
    assert not sieve.coreferent(
        document,
        document.cluster_of(he),
        document.cluster_of(mary),
        he,
        mary,
        dictionaries,
        document.role_set,
    )


def test_is_acronym():
    ibm = sentence("IBM", pos=["NNP"])
    full = sentence(
        "International Business Machines", pos=["NNP", "NNP", "NNP"]
    )
    assert is_acronym(ibm, full)
    assert is_acronym(full, ibm)
    assert not is_acronym(sentence("Ibm"), full)
    assert not is_acronym(full, full)

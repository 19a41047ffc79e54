from crible.chain import CorefChain, CorefMention, get_links
from crible.data import Animacy, Gender, MentionType, Number
from crible.system import SieveCoreferenceSystem
from factories import story_document


def _coref_mention(
    mention_type: MentionType, sent_num: int, start: int, end: int, head: int
) -> CorefMention:
    return CorefMention(
        mention_type,
        Number.SINGULAR,
        Gender.UNKNOWN,
        Animacy.UNKNOWN,
        start,
        end,
        head,
        1,
        start,
        sent_num,
        (sent_num, start),
        "",
    )


def test_chain_indices_start_from_one():
    document = story_document(with_gold=False)
    result = SieveCoreferenceSystem().coref(document)
    john = next(c for c in result.values() if len(c.mentions) == 3)

    first = john.get_mentions_in_textual_order()[0]
    assert first.mention_span == "John Smith"
    assert (first.start_index, first.end_index, first.head_index) == (1, 3, 2)
    assert first.sent_num == 1
    assert first.position == (1, 1)
    assert [m.sent_num for m in john.mentions] == [1, 2, 3]


def test_chain_representative_is_proper():
    document = story_document(with_gold=False)
    result = SieveCoreferenceSystem().coref(document)
    for chain in result.values():
        representative = chain.get_representative_mention()
        assert representative.mention_type == MentionType.PROPER
        assert representative.sent_num == 1


def test_representative_tie_breaks():
    proper = _coref_mention(MentionType.PROPER, 2, 1, 2, 1)
    nominal = _coref_mention(MentionType.NOMINAL, 1, 1, 4, 3)
    pronoun = _coref_mention(MentionType.PRONOMINAL, 1, 1, 2, 1)
    assert proper.more_representative_than(nominal)
    assert nominal.more_representative_than(pronoun)
    assert not pronoun.more_representative_than(nominal)

    # more pre-modifiers, then longer
    modified = _coref_mention(MentionType.NOMINAL, 2, 1, 4, 3)
    longer = _coref_mention(MentionType.NOMINAL, 1, 1, 5, 2)
    assert modified.more_representative_than(longer)
    shorter = _coref_mention(MentionType.NOMINAL, 1, 1, 4, 2)
    assert longer.more_representative_than(shorter)
    # earlier sentence
    later = _coref_mention(MentionType.NOMINAL, 3, 1, 4, 2)
    assert shorter.more_representative_than(later)
    assert not shorter.more_representative_than(shorter)


def test_textual_order_puts_longer_mentions_first():
    inner = _coref_mention(MentionType.NOMINAL, 1, 1, 2, 1)
    outer = _coref_mention(MentionType.NOMINAL, 1, 1, 4, 3)
    after = _coref_mention(MentionType.NOMINAL, 1, 3, 4, 3)
    ordered = sorted([after, inner, outer], key=CorefMention.textual_order_key)
    assert ordered == [outer, inner, after]


def test_mentions_with_same_head_and_delete():
    document = story_document(with_gold=False)
    result = SieveCoreferenceSystem().coref(document)
    mary = next(c for c in result.values() if len(c.mentions) == 2)

    her = mary.get_mentions_with_same_head(2, 3)
    assert {m.mention_span for m in her} == {"her"}
    assert mary.get_mentions_with_same_head(5, 5) == set()

    mary.delete_mention(next(iter(her)))
    assert [m.mention_span for m in mary.mentions] == ["Mary"]
    assert mary.get_mentions_with_same_head(2, 3) == set()


def test_get_links():
    document = story_document(with_gold=False)
    result = SieveCoreferenceSystem().coref(document)
    links = get_links(result)
    assert set(links) == {
        ((2, 1), (1, 1)),
        ((3, 1), (1, 1)),
        ((3, 1), (2, 1)),
        ((2, 2), (1, 2)),
    }
    assert isinstance(next(iter(result.values())), CorefChain)

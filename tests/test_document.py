from typing import List, Tuple
import pytest
from hypothesis import given
from hypothesis.strategies import integers, lists, tuples
from crible.document import Document, TWINLESS_ID_OFFSET
from crible.errors import ConsistencyError
from factories import letters_document, mention, sentence, story_document


def _document(n: int) -> Document:
    tokens = sentence(" ".join("abcdefghij"[:n]))
    return Document([[mention(i, tokens, i, i + 1) for i in range(n)]])


def test_each_mention_starts_in_its_own_cluster():
    document = _document(4)
    assert len(document.coref_clusters) == 4
    for m in document.all_predicted_mentions.values():
        assert document.cluster_of(m).coref_mentions == {m}
    assert document.check_clusters()


def test_merge_moves_mentions():
    document = _document(3)
    m0, m1, _ = document.get_ordered_mentions()[0]
    c0 = document.cluster_of(m0)
    c1 = document.cluster_of(m1)

    assert document.merge(c1, c0)
    assert m1.coref_cluster_id == c0.cluster_id
    assert c0.coref_mentions == {m0, m1}
    assert document.find_cluster(c1.cluster_id) is None
    assert document.check_clusters()


def test_merge_with_itself_is_noop():
    document = _document(2)
    m0 = document.get_ordered_mentions()[0][0]
    c0 = document.cluster_of(m0)
    assert not document.merge(c0, c0)
    assert document.find_cluster(c0.cluster_id) is c0
    assert len(document.coref_clusters) == 2


def test_get_cluster_raises_on_missing_cluster():
    document = _document(2)
    assert document.find_cluster(42) is None
    with pytest.raises(ConsistencyError):
        document.get_cluster(42)


def test_duplicate_mention_ids_are_rejected():
    tokens = sentence("a b")
    with pytest.raises(ConsistencyError):
        Document([[mention(0, tokens, 0, 1), mention(0, tokens, 1, 2)]])


def test_duplicate_gold_mention_ids_are_rejected():
    tokens = sentence("a b")
    golds = [
        mention(1, tokens, 0, 1, gold_coref_cluster_id=1),
        mention(1, tokens, 1, 2, gold_coref_cluster_id=2),
    ]
    with pytest.raises(ConsistencyError):
        Document([[mention(0, tokens, 0, 1)]], [golds])


def test_incompatible_clusters_are_not_merged():
    document = _document(3)
    m0, m1, m2 = document.get_ordered_mentions()[0]
    document.add_incompatible(m0, m1)
    assert not document.merge(document.cluster_of(m1), document.cluster_of(m0))

    # the incompatibility follows m1 when its cluster is merged
    assert document.merge(document.cluster_of(m1), document.cluster_of(m2))
    assert document.is_incompatible(document.cluster_of(m0), document.cluster_of(m2))
    assert not document.merge(document.cluster_of(m0), document.cluster_of(m2))


@given(lists(tuples(integers(0, 7), integers(0, 7)), max_size=20))
def test_merges_keep_a_partition(merges: List[Tuple[int, int]]):
    document = _document(8)
    mentions = document.get_ordered_mentions()[0]
    for i, j in merges:
        document.merge(document.cluster_of(mentions[i]), document.cluster_of(mentions[j]))

    assert document.check_clusters()
    seen = [m for c in document.coref_clusters.values() for m in c.coref_mentions]
    assert len(seen) == len(mentions)
    assert set(seen) == set(mentions)
    for cluster_id, cluster in document.coref_clusters.items():
        assert all(m.coref_cluster_id == cluster_id for m in cluster.coref_mentions)


@given(
    tuples(integers(0, 5), integers(0, 5)).filter(lambda p: p[0] != p[1]),
    lists(tuples(integers(0, 5), integers(0, 5)), max_size=20),
)
def test_incompatible_mentions_never_share_a_cluster(
    incompatible: Tuple[int, int], merges: List[Tuple[int, int]]
):
    document = _document(6)
    mentions = document.get_ordered_mentions()[0]
    a, b = mentions[incompatible[0]], mentions[incompatible[1]]
    document.add_incompatible(a, b)
    for i, j in merges:
        document.merge(document.cluster_of(mentions[i]), document.cluster_of(mentions[j]))
    assert a.coref_cluster_id != b.coref_cluster_id


def test_strict_twins():
    document, mentions = letters_document(["AB"], "ABX")
    assert mentions["A"].mention_id == 1
    assert not mentions["A"].twinless
    assert mentions["X"].twinless
    assert mentions["X"].mention_id == 100 + 2 + TWINLESS_ID_OFFSET
    assert set(document.all_gold_mentions) == {1, 2}


def test_relaxed_twins_match_heads():
    tokens = sentence("the old man", pos=["DT", "JJ", "NN"])
    gold = mention(7, tokens, 0, 3, head=2, gold_coref_cluster_id=1)
    predicted = mention(0, tokens, 1, 3, head=2)

    document = Document([[predicted]], [[gold]], strict_twins=False)
    assert predicted.mention_id == 7
    assert not predicted.twinless
    assert not gold.twinless
    assert 7 in document.all_predicted_mentions


def test_extract_gold_clusters():
    document = story_document()
    document.extract_gold_coref_clusters()
    assert not document.gold_coref_clusters is None
    assert {
        cluster_id: {m.mention_id for m in c.coref_mentions}
        for cluster_id, c in document.gold_coref_clusters.items()
    } == {1: {0, 2, 4}, 2: {1, 3}}


def test_gold_links_are_transitive():
    tokens = sentence("a b c")
    golds = [
        mention(1, tokens, 0, 1, gold_coref_cluster_id=1),
        mention(2, tokens, 1, 2, gold_coref_cluster_id=1, original_ref=1),
        mention(3, tokens, 2, 3, gold_coref_cluster_id=1, original_ref=2),
    ]
    predicted = [mention(i, tokens, i, i + 1) for i in range(3)]
    document = Document([predicted], [golds])
    assert set(document.get_gold_links()) == {
        ((0, 1), (0, 0)),
        ((0, 2), (0, 1)),
        ((0, 2), (0, 0)),
    }


def test_cataphoric_gold_links_are_reversed():
    tokens = sentence("a b")
    golds = [
        mention(1, tokens, 0, 1, gold_coref_cluster_id=1, original_ref=2),
        mention(2, tokens, 1, 2, gold_coref_cluster_id=1),
    ]
    predicted = [mention(i, tokens, i, i + 1) for i in range(2)]
    document = Document([predicted], [golds])
    assert document.get_gold_links() == [((0, 1), (0, 0))]


def test_gold_link_to_unknown_mention_raises():
    tokens = sentence("a b")
    golds = [
        mention(1, tokens, 0, 1, gold_coref_cluster_id=1),
        mention(2, tokens, 1, 2, gold_coref_cluster_id=1, original_ref=99),
    ]
    document = Document([[mention(0, tokens, 0, 1)]], [golds])
    with pytest.raises(ConsistencyError):
        document.get_gold_links()


def test_relaxed_twins_with_a_shared_span():
    tokens = sentence("the old man", pos=["DT", "JJ", "NN"])
    gold = mention(7, tokens, 0, 3, head=2, gold_coref_cluster_id=1)
    first = mention(0, tokens, 0, 3, head=2)
    second = mention(1, tokens, 0, 3, head=2)

    document = Document([[first, second]], [[gold]], strict_twins=False)
    assert first.mention_id == 7
    assert not first.twinless
    assert second.twinless
    assert second.mention_id == 1 + TWINLESS_ID_OFFSET
    assert document.check_clusters()


def test_relaxed_twinless_ids_are_shifted():
    tokens = sentence("a b")
    gold = mention(1, tokens, 0, 1, gold_coref_cluster_id=1)
    predicted = [mention(0, tokens, 0, 1), mention(1, tokens, 1, 2)]

    document = Document([predicted], [[gold]], strict_twins=False)
    assert [m.mention_id for m in predicted] == [1, 1 + TWINLESS_ID_OFFSET]
    assert set(document.all_predicted_mentions) == {1, 1 + TWINLESS_ID_OFFSET}


def test_merge_remaps_acronym_cache():
    document = _document(3)
    m0, m1, m2 = document.get_ordered_mentions()[0]
    document.acronym_cache[(1, 2)] = True
    document.acronym_cache[(0, 2)] = False

    assert document.merge(document.cluster_of(m2), document.cluster_of(m0))
    # cluster 2 was merged into cluster 0
    assert document.acronym_cache[(0, 1)]
    assert document.acronym_cache[(1, 2)]
    assert not document.acronym_cache[(0, 2)]

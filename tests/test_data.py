from crible.cluster import CorefCluster
from crible.data import Gender, SpeakerInfo
from crible.dictionaries import Dictionaries
from crible.document import Document
from factories import mention, sentence


def test_genders_agree():
    tokens = sentence("he she it")
    he = mention(0, tokens, 0, 1, gender=Gender.MALE)
    she = mention(1, tokens, 1, 2, gender=Gender.FEMALE)
    it = mention(2, tokens, 2, 3)

    assert not he.genders_agree(she)
    assert he.genders_agree(it)
    assert not he.genders_agree(it, strict=True)
    assert he.genders_agree(he, strict=True)


def test_list_members():
    tokens = sentence("cats and dogs")
    whole = mention(0, tokens, 0, 3)
    cats = mention(1, tokens, 0, 1)
    whole.add_list_member(cats)
    assert cats in whole.list_members
    assert whole in cats.belong_to_lists
    assert whole.is_list_member_of(cats) is False
    assert cats.is_list_member_of(whole)


def test_relations_are_one_way():
    tokens = sentence("the man who left")
    man = mention(0, tokens, 0, 2)
    who = mention(1, tokens, 2, 3)
    man.add_relative_pronoun(who)
    man.add_predicate_nominatives(who)
    assert man.is_relative_pronoun(who)
    assert not who.is_relative_pronoun(man)
    assert man.is_predicate_nominatives(who)


def test_document_speakers():
    tokens = sentence("a b")
    speakers = {"1": SpeakerInfo("1", "John Smith"), "2": SpeakerInfo("2")}
    document = Document([[mention(0, tokens, 0, 1)]], speaker_info_map=speakers)
    assert document.number_of_speakers() == 2
    assert document.get_speaker_info("1").get_speaker_name_strings() == ["John", "Smith"]
    assert document.get_speaker_info("2").speaker_name == "2"
    assert document.get_speaker_info("3") is None


def test_incompatible_mentions():
    tokens = sentence("a b c")
    mentions = [mention(i, tokens, i, i + 1) for i in range(3)]
    document = Document([mentions])
    document.add_incompatible(mentions[2], mentions[0])
    assert document.is_incompatible_mentions(mentions[0], mentions[2])
    assert not document.is_incompatible_mentions(mentions[0], mentions[1])


def test_single_pronoun_cluster():
    tokens = sentence("John saw him")
    john = mention(0, tokens, 0, 1)
    him = mention(1, tokens, 2, 3)
    dictionaries = Dictionaries()
    assert CorefCluster(0, [him]).is_single_pronoun_cluster(dictionaries)
    assert not CorefCluster(1, [john]).is_single_pronoun_cluster(dictionaries)
    assert not CorefCluster(2, [john, him]).is_single_pronoun_cluster(dictionaries)

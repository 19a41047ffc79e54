from typing import Dict, List, Optional, Sequence, Tuple
from crible.data import Animacy, Gender, Mention, MentionType, Number, Person, Token
from crible.document import Document


def sentence(text: str, pos: Optional[Sequence[str]] = None, ner: Optional[Sequence[str]] = None) -> List[Token]:
    words = text.split(" ")
    pos = pos or ["NN" for _ in words]
    ner = ner or ["O" for _ in words]
    return [Token(w, p, n) for w, p, n in zip(words, pos, ner)]


def mention(
    mention_id: int,
    tokens: List[Token],
    start: int,
    end: int,
    head: Optional[int] = None,
    **kwargs,
) -> Mention:
    return Mention(
        mention_id, tokens, start, end, end - 1 if head is None else head, **kwargs
    )


def letters_document(
    gold_clusters: List[str], predicted: str
) -> Tuple[Document, Dict[str, Mention]]:
    """Build a one sentence document where each letter is a one token
    mention.

    :param gold_clusters: gold clusters, as strings of letters (``"ABC"``)
    :param predicted: letters of predicted mentions, each in its own
        cluster
    :return: the document, and its predicted mentions by letter
    """
    letters = sorted(set("".join(gold_clusters)) | set(predicted))
    tokens = sentence(" ".join(letters), pos=["NNP" for _ in letters])

    gold_mentions = []
    for cluster_id, cluster in enumerate(gold_clusters):
        for letter in cluster:
            i = letters.index(letter)
            gold_mentions.append(
                mention(i + 1, tokens, i, i + 1, gold_coref_cluster_id=cluster_id + 1)
            )
    gold_mentions.sort(key=lambda m: m.start_idx)

    predicted_mentions = {}
    for letter in sorted(predicted):
        i = letters.index(letter)
        predicted_mentions[letter] = mention(100 + i, tokens, i, i + 1)

    document = Document([list(predicted_mentions.values())], [gold_mentions])
    return document, predicted_mentions


def merge_letters(document: Document, mentions: Dict[str, Mention], *groups: str):
    """Merge predicted mentions so that each group of letters forms a
    cluster"""
    for group in groups:
        first = mentions[group[0]]
        for letter in group[1:]:
            m = mentions[letter]
            assert document.merge(document.cluster_of(m), document.cluster_of(first))


def story_document(with_gold: bool = True) -> Document:
    """``John Smith met Mary . He thanked her . John Smith left .``

    The expected entities are {John Smith, He, John Smith} and {Mary,
    her}.
    """

    def make_mentions() -> List[List[Mention]]:
        s0 = sentence(
            "John Smith met Mary .",
            pos=["NNP", "NNP", "VBD", "NNP", "."],
            ner=["PERSON", "PERSON", "O", "PERSON", "O"],
        )
        s1 = sentence("He thanked her .", pos=["PRP", "VBD", "PRP", "."])
        s2 = sentence(
            "John Smith left .",
            pos=["NNP", "NNP", "VBD", "."],
            ner=["PERSON", "PERSON", "O", "O"],
        )
        john = dict(
            mention_type=MentionType.PROPER,
            gender=Gender.MALE,
            number=Number.SINGULAR,
            animacy=Animacy.ANIMATE,
            ner="PERSON",
        )
        return [
            [
                mention(0, s0, 0, 2, gold_coref_cluster_id=1, **john),
                mention(
                    1,
                    s0,
                    3,
                    4,
                    gold_coref_cluster_id=2,
                    mention_type=MentionType.PROPER,
                    gender=Gender.FEMALE,
                    number=Number.SINGULAR,
                    animacy=Animacy.ANIMATE,
                    ner="PERSON",
                ),
            ],
            [
                mention(
                    2,
                    s1,
                    0,
                    1,
                    gold_coref_cluster_id=1,
                    mention_type=MentionType.PRONOMINAL,
                    gender=Gender.MALE,
                    number=Number.SINGULAR,
                    animacy=Animacy.ANIMATE,
                    person=Person.HE,
                ),
                mention(
                    3,
                    s1,
                    2,
                    3,
                    gold_coref_cluster_id=2,
                    mention_type=MentionType.PRONOMINAL,
                    gender=Gender.FEMALE,
                    number=Number.SINGULAR,
                    animacy=Animacy.ANIMATE,
                    person=Person.SHE,
                ),
            ],
            [mention(4, s2, 0, 2, gold_coref_cluster_id=1, **john)],
        ]

    if with_gold:
        return Document(make_mentions(), make_mentions())
    return Document(make_mentions())

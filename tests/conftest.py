"""
Shared fixtures: a small bilingual corpus and stub embedding providers.
"""

import json

import numpy as np
import pytest

from bible_search.core.corpus import BibleCorpus, parse_bible_document
from bible_search.vector.embeddings import DeterministicHashEmbedding, EmbeddingGateway, IEmbeddingProvider


class StubEmbedding(IEmbeddingProvider):
    """Embedding provider that returns fixed vectors for known texts."""

    def __init__(self, mapping=None, default=None, dimension=4):
        self.mapping = dict(mapping or {})
        self.dimension = dimension
        self.default = default if default is not None else [0.0] * (dimension - 1) + [1.0]
        self.calls = []

    def embed_text(self, text):
        self.calls.append(text)
        return list(self.mapping.get(text, self.default))

    def get_dimension(self):
        return self.dimension


KRV_DOCUMENT = {
    "version": "KRV",
    "books": [
        {
            "bookName": "창세기", "bookShort": "창", "testament": 1, "bookNumber": 1,
            "chapters": [
                {"chapter": 1, "verses": [
                    {"verse": 1, "title": "천지 창조", "text": "태초에 하나님이 천지를 창조하시니라"},
                    {"verse": 2, "text": "땅이 혼돈하고 공허하며 흑암이 깊음 위에 있고"},
                ]},
                {"chapter": 2, "verses": [
                    {"verse": 1, "text": "천지와 만물이 다 이루어지니라"},
                ]},
            ],
        },
        {
            "bookName": "사사기", "bookShort": "삿", "testament": 1, "bookNumber": 7,
            "chapters": [
                {"chapter": 16, "verses": [
                    {"verse": 1, "text": "삼손이 가사에 가서 거기서 한 기생을 보고 그에게로 들어갔더니"},
                ]},
            ],
        },
        {
            "bookName": "예레미야", "bookShort": "렘", "testament": 1, "bookNumber": 24,
            "chapters": [
                {"chapter": 50, "verses": [
                    {"verse": 1, "text": "여호와께서 선지자 예레미야를 통하여 바벨론과 갈대아인의 땅에 대하여 하신 말씀이라"},
                ]},
            ],
        },
        {
            "bookName": "마태복음", "bookShort": "마", "testament": 2, "bookNumber": 40,
            "chapters": [
                {"chapter": 22, "verses": [
                    {"verse": 39, "text": "둘째도 그와 같으니 네 이웃을 네 자신 같이 사랑하라 하셨으니"},
                ]},
            ],
        },
        {
            "bookName": "요한복음", "bookShort": "요", "testament": 2, "bookNumber": 43,
            "chapters": [
                {"chapter": 3, "verses": [
                    {"verse": 16, "text": "하나님이 세상을 이처럼 사랑하사 독생자를 주셨으니"},
                ]},
            ],
        },
        {
            "bookName": "요한계시록", "bookShort": "계", "testament": 2, "bookNumber": 66,
            "chapters": [
                {"chapter": 18, "verses": [
                    {"verse": 2, "text": "힘찬 음성으로 외쳐 이르되 무너졌도다 무너졌도다 큰 성 바벨론이여"},
                ]},
            ],
        },
    ],
}

ASV_DOCUMENT = {
    "version": "ASV",
    "books": [
        {
            "bookName": "Genesis", "bookShort": "Gen", "testament": 1, "bookNumber": 1,
            "chapters": [
                {"chapter": 1, "verses": [
                    {"verse": 1, "text": "In the beginning God created the heavens and the earth."},
                ]},
            ],
        },
        {
            "bookName": "Matthew", "bookShort": "Matt", "testament": 2, "bookNumber": 40,
            "chapters": [
                {"chapter": 22, "verses": [
                    {"verse": 39, "text": "Thou shalt love thy neighbor as thyself"},
                ]},
            ],
        },
        {
            "bookName": "John", "bookShort": "John", "testament": 2, "bookNumber": 43,
            "chapters": [
                {"chapter": 3, "verses": [
                    {"verse": 16, "text": "For God so loved the world, that he gave his only begotten Son"},
                ]},
            ],
        },
        {
            "bookName": "Romans", "bookShort": "Rom", "testament": 2, "bookNumber": 45,
            "chapters": [
                {"chapter": 5, "verses": [
                    {"verse": 1, "text": "Being therefore justified by faith, we have peace with God"},
                ]},
            ],
        },
    ],
}


@pytest.fixture
def verses():
    return parse_bible_document(KRV_DOCUMENT, "KRV") + parse_bible_document(ASV_DOCUMENT, "ASV")


@pytest.fixture
def corpus(verses):
    return BibleCorpus(verses)


@pytest.fixture
def bible_files(tmp_path):
    """The sample documents written to disk as (krv_path, asv_path)."""
    krv_path = tmp_path / "bible_krv.json"
    asv_path = tmp_path / "bible_asv.json"
    krv_path.write_text(json.dumps(KRV_DOCUMENT, ensure_ascii=False), encoding="utf-8")
    asv_path.write_text(json.dumps(ASV_DOCUMENT), encoding="utf-8")
    return str(krv_path), str(asv_path)


@pytest.fixture
def hash_gateway():
    return EmbeddingGateway(DeterministicHashEmbedding(dimension=384))


def unit(*components):
    """A float32 vector from its components."""
    return np.array(components, dtype=np.float32)

"""
Tests for corpus loading, verse keys and the corpus lookups.
"""

import pytest

from bible_search.core.corpus import BibleCorpus, Verse, load_bible_json, matches_version, parse_bible_document

from conftest import KRV_DOCUMENT


def test_parse_flattens_in_document_order():
    verses = parse_bible_document(KRV_DOCUMENT, "KRV")

    assert len(verses) == 8
    assert [v.key for v in verses[:3]] == ["KRV:창:1:1", "KRV:창:1:2", "KRV:창:2:1"]
    assert verses[0].title == "천지 창조"
    assert verses[1].title is None
    assert verses[0].testament == 1
    assert verses[0].book_number == 1


def test_parse_uses_default_version_and_skips_bad_books():
    document = {
        "books": [
            {"bookName": "Genesis", "bookShort": "Gen", "testament": 1, "bookNumber": 1},
            {"bookName": "Exodus", "bookShort": "Exod", "testament": 1, "bookNumber": 2,
             "chapters": [{"chapter": 1, "verses": [{"verse": 1, "text": "Now these are the names"}]}]},
        ]
    }

    verses = parse_bible_document(document, "ASV")

    assert len(verses) == 1
    assert verses[0].version == "ASV"
    assert verses[0].key == "ASV:Exod:1:1"


def test_embedding_text_format():
    titled = Verse("KRV", "창세기", "창", 1, 1, 1, 1, "태초에 하나님이 천지를 창조하시니라", title="천지 창조")
    plain = Verse("ASV", "Matthew", "Matt", 2, 40, 22, 39, "Thou shalt love thy neighbor as thyself")

    assert titled.embedding_text == "[KRV] 창세기 1:1 <천지 창조> 태초에 하나님이 천지를 창조하시니라"
    assert plain.embedding_text == "[ASV] Matthew 22:39 Thou shalt love thy neighbor as thyself"
    assert plain.reference == "Matthew 22:39"


def test_load_bible_json(bible_files):
    krv_path, asv_path = bible_files

    assert len(load_bible_json(krv_path, "KRV")) == 8
    assert len(load_bible_json(asv_path, "ASV")) == 4


def test_from_paths_skips_missing_files(bible_files, tmp_path):
    krv_path, _ = bible_files

    corpus = BibleCorpus.from_paths({"KRV": krv_path, "ASV": str(tmp_path / "nope.json")})

    assert len(corpus) == 8
    assert len(BibleCorpus.from_paths({"KRV": None})) == 0


def test_get_verse_by_key(corpus):
    verse = corpus.get_verse_by_key("ASV:Matt:22:39")

    assert verse is not None
    assert verse.text == "Thou shalt love thy neighbor as thyself"
    assert corpus.get_verse_by_key("ASV:Matt:99:1") is None


def test_keyword_search_is_exact_substring(corpus):
    assert [v.key for v in corpus.search_by_keyword("바벨론")] == ["KRV:렘:50:1", "KRV:계:18:2"]
    assert [v.key for v in corpus.search_by_keyword("love")] == ["ASV:Matt:22:39", "ASV:John:3:16"]
    # Case-sensitive
    assert corpus.search_by_keyword("LOVE") == []
    assert corpus.search_by_keyword("") == []
    assert corpus.search_by_keyword(None) == []


def test_get_chapter_verses(corpus):
    verses = corpus.get_chapter_verses("창", 1)
    assert [v.verse_number for v in verses] == [1, 2]

    assert [v.version for v in corpus.get_chapter_verses("gen", 1, "ASV")] == ["ASV"]
    assert corpus.get_chapter_verses("Gen", 1, "KRV") == []
    assert corpus.get_chapter_verses("창", 99) == []


def test_get_book_info(corpus):
    assert corpus.get_book_info("창") == {
        "bookName": "창세기",
        "bookShort": "창",
        "version": "KRV",
        "totalChapters": 2
    }
    assert corpus.get_book_info("Unknown") == {}


def test_statistics(corpus):
    assert corpus.statistics() == {"totalVerses": 12, "krvVerses": 8, "asvVerses": 4}


@pytest.mark.parametrize("verse_version,filter_version,expected", [
    ("KRV", None, True),
    ("KRV", "  ", True),
    ("KRV", "krv", True),
    ("KRV", "개역개정", True),
    ("KRV", "개역한글", True),
    ("ASV", "American Standard Version", True),
    ("ASV", "asv", True),
    ("ASV", "KRV", False),
    ("KRV", "NIV", False),
])
def test_matches_version(verse_version, filter_version, expected):
    assert matches_version(verse_version, filter_version) is expected


def test_to_verse_result(corpus):
    verse = corpus.get_verse_by_key("KRV:창:1:1")
    result = BibleCorpus.to_verse_result(verse, 0.8, 0.85)

    assert result.reference == "창세기 1:1"
    assert result.title == "천지 창조"
    assert result.score == 0.8
    assert result.reranked_score == 0.85
    assert result.model_dump(by_alias=True)["bookShort"] == "창"

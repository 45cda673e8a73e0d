"""
Bible corpus: verse records loaded from the per-version JSON documents,
plus the lookups the search pipeline and the reading endpoints need.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..api.schemas import VerseResult
from ..util.logging import logger

# Version aliases for flexible filtering
VERSION_ALIASES = {
    "KRV": {"KRV", "개역개정", "개역한글", "krv"},
    "ASV": {"ASV", "asv", "American Standard Version"},
    "개역개정": {"KRV", "개역개정", "개역한글", "krv"},
}


def matches_version(verse_version: str, filter_version: Optional[str]) -> bool:
    """Check if a verse version matches the requested filter, honouring aliases."""
    if filter_version is None or not filter_version.strip():
        return True

    if filter_version.lower() == verse_version.lower():
        return True

    aliases = VERSION_ALIASES.get(filter_version.upper())
    if aliases and any(a.lower() == verse_version.lower() for a in aliases):
        return True

    verse_aliases = VERSION_ALIASES.get(verse_version)
    if verse_aliases and any(a.lower() == filter_version.lower() for a in verse_aliases):
        return True

    return False


@dataclass(frozen=True)
class Verse:
    """One verse of one Bible version."""

    version: str
    book_name: str
    book_short: str
    testament: int
    book_number: int
    chapter: int
    verse_number: int
    text: str
    title: Optional[str] = None

    @property
    def key(self) -> str:
        """Unique key: version:book_short:chapter:verse."""
        return f"{self.version}:{self.book_short}:{self.chapter}:{self.verse_number}"

    @property
    def reference(self) -> str:
        return f"{self.book_name} {self.chapter}:{self.verse_number}"

    @property
    def embedding_text(self) -> str:
        """The exact string that is embedded: "[VERSION] Book C:V <Title> Text"."""
        text = f"[{self.version}] {self.book_name} {self.chapter}:{self.verse_number}"
        if self.title:
            text += f" <{self.title}>"
        return f"{text} {self.text}"


def parse_bible_document(document: Dict[str, Any], default_version: str) -> List[Verse]:
    """Flatten one Bible JSON document into verses, in document order."""
    version = document.get("version") or default_version
    verses = []

    for book in document.get("books") or []:
        chapters = book.get("chapters")
        if not isinstance(chapters, list):
            continue
        for chapter in chapters:
            chapter_verses = chapter.get("verses")
            if not isinstance(chapter_verses, list):
                continue
            for item in chapter_verses:
                verses.append(Verse(
                    version=version,
                    book_name=book["bookName"],
                    book_short=book["bookShort"],
                    testament=int(book.get("testament") or 0),
                    book_number=int(book.get("bookNumber") or 0),
                    chapter=int(chapter["chapter"]),
                    verse_number=int(item["verse"]),
                    text=item.get("text") or "",
                    title=item.get("title") or None
                ))

    return verses


def load_bible_json(path: str, default_version: str) -> List[Verse]:
    """Load one Bible JSON document from disk."""
    with open(path, "r", encoding="utf-8") as f:
        document = json.load(f)
    verses = parse_bible_document(document, default_version)
    logger.info(f"Loaded {len(verses)} verses of {verses[0].version if verses else default_version} from {path}")
    return verses


class BibleCorpus:
    """In-memory verse collection with key, keyword, chapter and book lookups."""

    def __init__(self, verses: Iterable[Verse]):
        self._verses = list(verses)
        self._by_key = {v.key: v for v in self._verses}

    @classmethod
    def from_paths(cls, paths: Dict[str, str]) -> "BibleCorpus":
        """Load several versions; paths maps the default version tag to a JSON file."""
        verses = []
        for version, path in paths.items():
            if not path or not Path(path).exists():
                logger.warning(f"Bible JSON file not found for {version}: {path}")
                continue
            verses.extend(load_bible_json(path, version))

        if not verses:
            logger.warning("No verses loaded; the corpus is empty")
        return cls(verses)

    @property
    def all_verses(self) -> List[Verse]:
        return list(self._verses)

    def __len__(self) -> int:
        return len(self._verses)

    def get_verse_by_key(self, key: str) -> Optional[Verse]:
        return self._by_key.get(key)

    def search_by_keyword(self, keyword: Optional[str]) -> List[Verse]:
        """Exact, case-sensitive substring match over verse text, in corpus order."""
        if not keyword:
            return []
        return [v for v in self._verses if keyword in v.text]

    def get_chapter_verses(self, book_short: str, chapter: int, version: Optional[str] = None) -> List[Verse]:
        """All verses of a chapter, ordered by verse number."""
        verses = [
            v for v in self._verses
            if v.book_short.lower() == book_short.lower()
            and v.chapter == chapter
            and matches_version(v.version, version)
        ]
        return sorted(verses, key=lambda v: v.verse_number)

    def get_book_info(self, book_short: str, version: Optional[str] = None) -> Dict[str, Any]:
        """Book name, version and chapter count; empty when the book is unknown."""
        verses = [
            v for v in self._verses
            if v.book_short.lower() == book_short.lower() and matches_version(v.version, version)
        ]
        if not verses:
            return {}

        sample = verses[0]
        return {
            "bookName": sample.book_name,
            "bookShort": sample.book_short,
            "version": sample.version,
            "totalChapters": max(v.chapter for v in verses)
        }

    def statistics(self) -> Dict[str, int]:
        return {
            "totalVerses": len(self._verses),
            "krvVerses": sum(1 for v in self._verses if v.version == "KRV"),
            "asvVerses": sum(1 for v in self._verses if v.version == "ASV")
        }

    @staticmethod
    def to_verse_result(verse: Verse, score: float, reranked_score: Optional[float] = None) -> VerseResult:
        return VerseResult(
            reference=verse.reference,
            book_name=verse.book_name,
            book_short=verse.book_short,
            chapter=verse.chapter,
            verse=verse.verse_number,
            title=verse.title,
            text=verse.text,
            version=verse.version,
            score=score,
            reranked_score=reranked_score
        )

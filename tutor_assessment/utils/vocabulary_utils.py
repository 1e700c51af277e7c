import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tutor_assessment.core.config import LEXICON_PATH
from tutor_assessment.models.analysis_model import LEVEL_ORDER

# Setup logging
logger = logging.getLogger(__name__)


class LexicalEntry:
    """Read-only view of one lexicon word"""

    __slots__ = ("word", "level", "synonyms", "simpler", "advanced")

    def __init__(self, word: str, level: str, synonyms: Tuple[str, ...], simpler: Tuple[str, ...], advanced: Tuple[str, ...]):
        self.word = word
        self.level = level
        self.synonyms = synonyms
        self.simpler = simpler
        self.advanced = advanced

    def __repr__(self) -> str:
        return f"LexicalEntry({self.word!r}, level={self.level!r})"


class LexicalTable:
    """
    Word -> {level, synonyms, simpler, advanced} reference table.

    Built once and never mutated afterwards; the underlying mappings are
    exposed through MappingProxyType so instances can be shared freely
    between analyzers and concurrent calls.
    """

    def __init__(self, entries: Dict[str, LexicalEntry], focus_areas: Dict[str, frozenset]):
        self._entries: Mapping[str, LexicalEntry] = MappingProxyType(dict(entries))
        self._focus_areas: Mapping[str, frozenset] = MappingProxyType(dict(focus_areas))

    @classmethod
    def from_file(cls, file_path: Optional[str] = None) -> "LexicalTable":
        """Load the lexicon JSON file shipped with the package."""
        file_path = Path(file_path or LEXICON_PATH)

        if not file_path.exists():
            raise FileNotFoundError(f"Lexicon data file not found at {file_path}")

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON format in lexicon data file: {e}")

        table = cls.from_dict(raw_data)
        logger.info(f"Loaded lexicon with {len(table)} words from {file_path}")
        return table

    @classmethod
    def from_dict(cls, raw_data: Dict[str, Any]) -> "LexicalTable":
        entries: Dict[str, LexicalEntry] = {}
        for item in raw_data.get("words", []):
            if not isinstance(item, dict) or 'word' not in item or 'level' not in item:
                continue
            if item['level'] not in LEVEL_ORDER:
                logger.warning(f"Skipping lexicon word {item['word']!r} with unknown level {item['level']!r}")
                continue
            word = item['word'].lower()
            entries[word] = LexicalEntry(
                word=word,
                level=item['level'],
                synonyms=tuple(item.get('synonyms', [])),
                simpler=tuple(item.get('simpler', [])),
                advanced=tuple(item.get('advanced', [])),
            )

        focus_areas = {
            area: frozenset(word.lower() for word in words)
            for area, words in raw_data.get("focus_areas", {}).items()
        }
        return cls(entries, focus_areas)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, word: str) -> bool:
        return self.lookup(word) is not None

    @property
    def entries(self) -> Mapping[str, LexicalEntry]:
        return self._entries

    def lookup(self, word: str) -> Optional[LexicalEntry]:
        word = word.lower()
        entry = self._entries.get(word)
        if entry is None and len(word) > 3 and word.endswith("s"):
            entry = self._entries.get(word[:-1])
        return entry

    def level_of(self, word: str) -> str:
        """Tier of a word; unknown words fall back to length buckets"""
        entry = self.lookup(word)
        if entry:
            return entry.level

        length = len(word)
        if length <= 3:
            return "beginner"
        if length <= 5:
            return "elementary"
        if length <= 7:
            return "intermediate"
        if length <= 9:
            return "upper-intermediate"
        if length <= 12:
            return "advanced"
        return "proficient"

    def synonyms(self, word: str) -> List[str]:
        entry = self.lookup(word)
        return list(entry.synonyms) if entry else []

    def simpler_alternatives(self, word: str) -> List[str]:
        entry = self.lookup(word)
        return list(entry.simpler) if entry else []

    def advanced_alternatives(self, word: str) -> List[str]:
        entry = self.lookup(word)
        return list(entry.advanced) if entry else []

    def focus_area_words(self, area: str) -> frozenset:
        return self._focus_areas.get(area, frozenset())

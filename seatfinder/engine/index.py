"""Searchable guest index with ranked approximate name matching."""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from loguru import logger

from . import bitap
from .error_handling import InvalidConfiguration
from .models import DirectoryRecord, FieldMatch, MatchResult

SEARCHABLE_KEYS = ("first_name", "last_name")
JOINT_KEY = "full_name"


@dataclass(frozen=True)
class MatchOptions:
    """Matching knobs, fixed for the lifetime of an index."""
    threshold: float = 0.4
    distance: int = 100
    location: int = 0
    ignore_location: bool = False
    min_match_char_length: int = 1
    find_all_matches: bool = False
    include_matches: bool = False
    is_case_sensitive: bool = False
    keys: Tuple[str, ...] = SEARCHABLE_KEYS
    joint_match: bool = True

    def validate(self) -> None:
        """Raise InvalidConfiguration for any out-of-range option."""
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, (int, float)):
            raise InvalidConfiguration(f"threshold must be a number, got {self.threshold!r}")
        if not 0.0 <= self.threshold <= 1.0:
            raise InvalidConfiguration(f"threshold must be between 0 and 1, got {self.threshold}")

        for name in ("distance", "location"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidConfiguration(f"{name} must be a non-negative integer, got {value!r}")

        if (isinstance(self.min_match_char_length, bool)
                or not isinstance(self.min_match_char_length, int)
                or self.min_match_char_length < 1):
            raise InvalidConfiguration(
                f"min_match_char_length must be a positive integer, got {self.min_match_char_length!r}"
            )

        if not self.keys:
            raise InvalidConfiguration("at least one search key is required")
        unknown = [key for key in self.keys if key not in SEARCHABLE_KEYS]
        if unknown:
            raise InvalidConfiguration(f"unsupported search keys: {', '.join(unknown)}")

    def bitap_kwargs(self) -> Dict[str, object]:
        return {
            "threshold": self.threshold,
            "distance": self.distance,
            "location": self.location,
            "ignore_location": self.ignore_location,
            "find_all_matches": self.find_all_matches,
            "min_match_char_length": self.min_match_char_length,
            "include_matches": self.include_matches,
        }


@dataclass(frozen=True)
class _Entry:
    """Precomputed, case-folded search values of one record."""
    record: DirectoryRecord
    values: Tuple[Tuple[str, str, str], ...]  # (key, original, folded)
    joined: Optional[Tuple[str, str]]  # (original, folded)


class SearchableIndex:
    """
    Immutable fuzzy index over a snapshot of directory records.

    The index never changes after construction, so one instance can be
    queried from any number of threads. To pick up new records build a new
    index and swap the reference.
    """

    def __init__(self, records: Iterable[DirectoryRecord], options: Optional[MatchOptions] = None):
        self._options = options or MatchOptions()
        self._options.validate()

        self._records: Tuple[DirectoryRecord, ...] = tuple(records)
        self._entries: Tuple[_Entry, ...] = tuple(self._prepare(r) for r in self._records)

        logger.debug(f"Built index over {len(self._records)} record(s)")

    @property
    def options(self) -> MatchOptions:
        return self._options

    @property
    def records(self) -> Tuple[DirectoryRecord, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DirectoryRecord]:
        return iter(self._records)

    def _fold(self, value: str) -> str:
        return value if self._options.is_case_sensitive else value.lower()

    def _prepare(self, record: DirectoryRecord) -> _Entry:
        values = []
        for key in self._options.keys:
            value = getattr(record, key)
            # Blank fields are not searchable.
            if value and value.strip():
                values.append((key, value, self._fold(value)))

        joined = None
        joint_keys = set(SEARCHABLE_KEYS) <= set(self._options.keys)
        if self._options.joint_match and joint_keys and record.first_name and record.last_name:
            original = f"{record.first_name} {record.last_name}"
            joined = (original, self._fold(original))

        return _Entry(record=record, values=tuple(values), joined=joined)

    def search(self, text: str, limit: Optional[int] = None) -> List[MatchResult]:
        """
        Rank records against ``text``.

        Returns an empty list for blank queries and for an empty index.
        Results are sorted by score with ties kept in insertion order.
        """
        if not text or not text.strip() or not self._entries:
            return []

        query = self._fold(" ".join(text.split()))
        pattern = _Pattern(query, self._options)

        results = []
        for position, entry in enumerate(self._entries):
            scored = self._score_entry(entry, pattern)
            if scored is None:
                continue
            score, matches = scored
            results.append(MatchResult(
                record=entry.record,
                score=score,
                ref_index=position,
                matches=matches if self._options.include_matches else (),
            ))

        results.sort(key=lambda r: (r.score, r.ref_index))

        if limit is not None and limit >= 0:
            results = results[:limit]

        logger.debug(f"Query {text!r} matched {len(results)} of {len(self._entries)} record(s)")
        return results

    def _score_entry(self, entry: _Entry, pattern: "_Pattern") -> Optional[Tuple[float, Tuple[FieldMatch, ...]]]:
        best: Optional[float] = None
        matches: List[FieldMatch] = []

        def consider(score: float) -> None:
            nonlocal best
            if best is None or score < best:
                best = score

        for key, original, folded in entry.values:
            result = pattern.match(folded)
            if result.is_match:
                consider(result.score)
                matches.append(FieldMatch(key, original, result.score, result.indices))

        if entry.joined is not None and len(pattern.words) > 1:
            original, folded = entry.joined
            result = pattern.match(folded)
            if result.is_match:
                consider(result.score)
                matches.append(FieldMatch(JOINT_KEY, original, result.score, result.indices))

            split = self._score_split(entry.record, pattern)
            if split is not None:
                consider(split[0])
                matches.extend(split[1])

        if best is None:
            return None
        return best, tuple(matches)

    def _score_split(self, record: DirectoryRecord,
                     pattern: "_Pattern") -> Optional[Tuple[float, Tuple[FieldMatch, ...]]]:
        """Score the first word against the first name and the rest against the last name."""
        first_pattern, last_pattern = pattern.split()

        first = first_pattern.match(self._fold(record.first_name))
        if not first.is_match:
            return None
        last = last_pattern.match(self._fold(record.last_name))
        if not last.is_match:
            return None

        score = (first.score + last.score) / 2
        return score, (
            FieldMatch("first_name", record.first_name, first.score, first.indices),
            FieldMatch("last_name", record.last_name, last.score, last.indices),
        )


class _Pattern:
    """A folded query with its bitap alphabet computed once per search."""

    def __init__(self, text: str, options: MatchOptions):
        self.text = text
        self.words = text.split(" ")
        self._options = options
        self._kwargs = options.bitap_kwargs()
        self._alphabet = bitap.create_pattern_alphabet(text)
        self._split: Optional[Tuple["_Pattern", "_Pattern"]] = None

    def match(self, value: str) -> bitap.BitapResult:
        return bitap.search(value, self.text, self._alphabet, **self._kwargs)

    def split(self) -> Tuple["_Pattern", "_Pattern"]:
        if self._split is None:
            self._split = (
                _Pattern(self.words[0], self._options),
                _Pattern(" ".join(self.words[1:]), self._options),
            )
        return self._split


def build(records: Iterable[DirectoryRecord], options: Optional[MatchOptions] = None) -> SearchableIndex:
    """Build an index; raises InvalidConfiguration for bad options."""
    return SearchableIndex(records, options)


def query(index: SearchableIndex, text: str, limit: Optional[int] = None) -> List[MatchResult]:
    """Run one ranked approximate-name query against ``index``."""
    return index.search(text, limit=limit)

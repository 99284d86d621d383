"""Data models for the SeatFinder engine."""

from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional, Sequence, Tuple


class RawRow(NamedTuple):
    """One spreadsheet row as delivered by a row source.

    Cells are positional: given name, family name, table number, photo.
    Any cell may be missing or carry an unexpected type.
    """
    first_name: Any = None
    last_name: Any = None
    table: Any = None
    photo: Any = None

    @classmethod
    def from_cells(cls, cells: Sequence[Any]) -> "RawRow":
        """Pad or truncate an arbitrary cell sequence to the four known columns."""
        cells = list(cells)[:4]
        cells.extend([None] * (4 - len(cells)))
        return cls(*cells)


@dataclass(frozen=True)
class DirectoryRecord:
    """A guest and the table they are seated at."""
    first_name: str
    last_name: str
    table: int
    photo: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def initials(self) -> str:
        return f"{self.first_name[:1]}{self.last_name[:1]}".upper()


@dataclass(frozen=True)
class FieldMatch:
    """Where a query matched inside one searchable field."""
    key: str
    value: str
    score: float
    indices: Tuple[Tuple[int, int], ...] = ()


@dataclass(frozen=True)
class MatchResult:
    """A ranked hit. Lower score is better; 0 means identical."""
    record: DirectoryRecord
    score: float
    ref_index: int
    matches: Tuple[FieldMatch, ...] = field(default=())

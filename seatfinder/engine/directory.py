"""Guest directory: owns the current index and swaps in rebuilt ones."""

import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger

from .index import MatchOptions, SearchableIndex, build
from .models import MatchResult
from .normalizer import normalize
from .sources import RowSource, describe


class GuestDirectory:
    """
    Answers guest lookups against the most recently loaded snapshot.

    Rebuilds never touch a live index: a new one is built off to the side
    and the reference is replaced in a single assignment. A query reads the
    reference once, so it always runs against one consistent snapshot even
    while a refresh is in flight.
    """

    def __init__(self, source: Optional[RowSource] = None, options: Optional[MatchOptions] = None):
        self.source = source
        self.options = options or MatchOptions()
        # Fail on bad options before any rows are fetched.
        self.options.validate()

        self._index: Optional[SearchableIndex] = None
        self._swap_lock = threading.Lock()

        self.stats = {
            "refresh_count": 0,
            "record_count": 0,
            "dropped_rows": 0,
            "last_refreshed": None,
        }

    @property
    def index(self) -> Optional[SearchableIndex]:
        return self._index

    @property
    def is_loaded(self) -> bool:
        return self._index is not None

    def load(self, rows: Iterable[Any]) -> SearchableIndex:
        """Normalize ``rows``, build a fresh index and make it current."""
        rows = list(rows)
        records = normalize(rows)
        index = build(records, self.options)

        with self._swap_lock:
            self._index = index
            self.stats["refresh_count"] += 1
            self.stats["record_count"] = len(records)
            self.stats["dropped_rows"] = len(rows) - len(records)
            self.stats["last_refreshed"] = datetime.utcnow()

        logger.info(f"Guest directory loaded: {len(records)} guest(s), {len(rows) - len(records)} row(s) dropped")
        return index

    async def refresh(self) -> SearchableIndex:
        """
        Fetch rows from the source and swap in a new index.

        FetchError propagates to the caller; the previous index stays current.
        """
        if self.source is None:
            raise RuntimeError("GuestDirectory has no row source to refresh from")

        logger.debug(f"Refreshing guest directory from {describe(self.source)}")
        rows = await self.source.fetch_rows()
        return self.load(rows)

    def search(self, text: str, limit: Optional[int] = None) -> List[MatchResult]:
        index = self._index
        if index is None:
            return []
        return index.search(text, limit=limit)

    def get_status(self) -> Dict[str, Any]:
        status = dict(self.stats)
        status["loaded"] = self.is_loaded
        if self.source is not None:
            status["source"] = describe(self.source)
        return status

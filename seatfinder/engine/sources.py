"""
Row sources: where the raw guest rows come from.

Every source returns a complete list of RawRow or raises FetchError. A
partially parsed payload is never handed to the normalizer.
"""

import asyncio
import csv
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import httpx
from loguru import logger

from .error_handling import FetchError, RetryPolicy
from .models import RawRow

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq"


class RowSource(Protocol):
    """Anything that can deliver the current guest rows."""

    name: str

    async def fetch_rows(self) -> List[RawRow]:
        ...


class StaticSource:
    """Rows held in memory."""

    name = "static"

    def __init__(self, rows: Iterable[Any]):
        self._rows = [r if isinstance(r, RawRow) else RawRow.from_cells(r) for r in rows]

    async def fetch_rows(self) -> List[RawRow]:
        return list(self._rows)


class CsvSource:
    """Rows read from the first four columns of a CSV file."""

    name = "csv"

    def __init__(self, path: Path, has_header: bool = True, encoding: str = "utf-8"):
        self.path = Path(path)
        self.has_header = has_header
        self.encoding = encoding

    def _read_rows(self) -> List[RawRow]:
        with open(self.path, newline="", encoding=self.encoding) as f:
            reader = csv.reader(f)
            if self.has_header:
                next(reader, None)
            return [RawRow.from_cells(cells) for cells in reader]

    async def fetch_rows(self) -> List[RawRow]:
        try:
            rows = await asyncio.to_thread(self._read_rows)
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise FetchError(f"Cannot read {self.path}: {e}", source=self.name, cause=e) from e

        logger.debug(f"Read {len(rows)} row(s) from {self.path}")
        return rows


class GoogleSheetSource:
    """
    Rows from a published Google Sheet via the visualization (gviz) endpoint.

    The endpoint answers with JSON wrapped in a JavaScript callback, e.g.
    ``/*O_o*/ google.visualization.Query.setResponse({...});``.
    """

    name = "google_sheet"

    def __init__(self,
                 sheet_id: str,
                 sheet_name: str = "Sheet1",
                 timeout: float = 10.0,
                 retry: Optional[RetryPolicy] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.sheet_id = sheet_id
        self.sheet_name = sheet_name
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self._transport = transport

    @property
    def url(self) -> str:
        return GVIZ_URL.format(sheet_id=self.sheet_id)

    async def fetch_rows(self) -> List[RawRow]:
        try:
            text = await self.retry.execute(self._download, retry_on=(httpx.TransportError,))
        except httpx.HTTPError as e:
            raise FetchError(f"Unable to load guest sheet: {e}", source=self.name, cause=e) from e

        rows = parse_gviz_response(text, source=self.name)
        logger.info(f"Fetched {len(rows)} row(s) from sheet {self.sheet_id}")
        return rows

    async def _download(self) -> str:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                self.url,
                params={"tqx": "out:json", "sheet": self.sheet_name},
            )
            response.raise_for_status()
            return response.text


def parse_gviz_response(text: str, source: str = GoogleSheetSource.name) -> List[RawRow]:
    """Strip the callback wrapper from a gviz payload and read its rows."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise FetchError("Sheet response does not contain a JSON payload", source=source)

    try:
        payload = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise FetchError(f"Malformed sheet payload: {e}", source=source, cause=e) from e

    if not isinstance(payload, dict):
        raise FetchError("Malformed sheet payload: expected an object", source=source)

    if payload.get("status") == "error":
        errors = payload.get("errors") or []
        detail = "; ".join(str(e.get("detailed_message") or e.get("message", "")) for e in errors if isinstance(e, dict))
        raise FetchError(f"Sheet query failed: {detail or 'unknown error'}", source=source)

    table = payload.get("table")
    if not isinstance(table, dict) or not isinstance(table.get("rows"), list):
        raise FetchError("Malformed sheet payload: missing table rows", source=source)

    return [RawRow.from_cells(_cell_values(row)) for row in table["rows"]]


def _cell_values(row: Any) -> List[Any]:
    # Blank rows come back as null or without "c"; blank cells as null.
    if not isinstance(row, dict):
        return []
    cells = row.get("c") or []
    values = []
    for cell in cells:
        values.append(cell.get("v") if isinstance(cell, dict) else None)
    return values


def describe(source: RowSource) -> Dict[str, Any]:
    """Short description of a source for logs and the CLI."""
    info: Dict[str, Any] = {"kind": source.name}
    if isinstance(source, GoogleSheetSource):
        info.update(sheet_id=source.sheet_id, sheet_name=source.sheet_name)
    elif isinstance(source, CsvSource):
        info.update(path=str(source.path))
    return info

"""Remote store gateway: the single reader and writer of spreadsheet state."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, Field

from core.context import PortalContext
from core.errors import NotFoundError, ValidationError
from gateway.codec import (
    Record,
    RowParser,
    company_from_row,
    parse_grid,
    placement_from_row,
    record_key,
    student_from_row,
    to_row,
)
from gateway.http_client import Grid, SheetsClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")

FULL_ROW_COLUMNS = "A:Z"


class WriteResult(BaseModel):
    """Outcome of a successful write."""

    sheet: str
    rows_written: int
    requests: int
    updated_ranges: list[str] = Field(default_factory=list)
    response: dict[str, Any] = Field(default_factory=dict)


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``size`` items."""
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def sheet_of(range_: str) -> str:
    """Sheet name of an A1 range (``'Students'!A2:Z2`` -> ``Students``)."""
    return range_.split("!", 1)[0].strip("'")


class RemoteStoreGateway:
    """Uniform get/add/update/batch contract over the spreadsheet.

    Reads go through the context's cache; every successful write invalidates
    the sheets it touched. Every completed read or write is recorded in the
    activity log.
    """

    def __init__(self, client: SheetsClient, ctx: PortalContext):
        self.client = client
        self.ctx = ctx
        sheets = ctx.portal.sheets
        self._parsers: dict[str, RowParser] = {
            sheets.students: student_from_row,
            sheets.companies: company_from_row,
            sheets.placements: placement_from_row,
        }
        self._headed: set[str] = set()

    @property
    def batch_size(self) -> int:
        return self.ctx.settings.batch_size

    # Reads

    async def fetch_rows(self, sheet: str) -> list[Any]:
        """Return every data row of ``sheet`` as typed records.

        Served from cache while the entry is fresh; otherwise read over the
        network and cached.
        """
        cached = self.ctx.cache.get(sheet)
        if cached is not None:
            logger.debug("Cache hit", sheet=sheet, rows=len(cached))
            self.ctx.log_activity("sheet_read", sheet, f"Loaded {len(cached)} rows from {sheet} (cached)")
            return cached

        grid = await self.client.get_values(f"{sheet}!{FULL_ROW_COLUMNS}")
        rows = parse_grid(grid, self._parsers.get(sheet), sheet)
        self.ctx.cache.put(sheet, rows)
        self.ctx.log_activity("sheet_read", sheet, f"Loaded {len(rows)} rows from {sheet}")
        return list(rows)

    async def locate_rows(self, sheet: str, keys: Sequence[str]) -> dict[str, int]:
        """Map each key to its 1-based sheet row number from a fresh read.

        Never served from cache: row positions must reflect the sheet as it
        is right now. Raises ``NotFoundError`` naming the missing keys.
        """
        grid: Grid = await self.client.get_values(f"{sheet}!A:A")
        self.ctx.log_activity("sheet_read", sheet, f"Located {len(keys)} rows in {sheet}")

        positions: dict[str, int] = {}
        # Row 1 is the header; data row i (0-based) lives at sheet row i + 2.
        for index, row in enumerate(grid[1:]):
            key = str(row[0]).strip() if row else ""
            if key and key not in positions:
                positions[key] = index + 2

        missing = [k for k in keys if k not in positions]
        if missing:
            raise NotFoundError(f"No row in {sheet} with key {', '.join(missing)}")
        return {k: positions[k] for k in keys}

    # Writes

    async def ensure_headers(self, sheet: str, columns: Sequence[str]) -> bool:
        """Write ``columns`` as row 1 of ``sheet`` when row 1 is blank.

        A non-blank row 1 is left untouched, with a warning if it differs from
        ``columns``. Returns True when the header was written. Sheets already
        checked by this gateway are not read again.
        """
        if sheet in self._headed:
            return False

        range_ = f"{sheet}!A1:Z1"
        grid = await self.client.get_values(range_)
        existing = [str(cell).strip() for cell in grid[0]] if grid else []

        written = False
        if not any(existing):
            await self.client.update_values(range_, [list(columns)])
            self._invalidate(sheet)
            self.ctx.log_activity("header_written", sheet, f"Wrote header row to {sheet}")
            written = True
        elif existing[: len(columns)] != list(columns):
            logger.warning("Unexpected header row", sheet=sheet, header=existing)

        self._headed.add(sheet)
        return written

    async def append_row(self, sheet: str, record: Record) -> WriteResult:
        """Append one record to ``sheet``."""
        response = await self.client.append_values(f"{sheet}!{FULL_ROW_COLUMNS}", [to_row(record)])
        self._invalidate(sheet)

        key = record_key(record)
        self.ctx.log_activity("row_appended", key, f"Appended {key} to {sheet}")
        return WriteResult(
            sheet=sheet,
            rows_written=1,
            requests=1,
            updated_ranges=_updated_ranges(response),
            response=response,
        )

    async def update_row(self, sheet: str, match_key: str, record: Record) -> WriteResult:
        """Overwrite the row whose key column equals ``match_key``."""
        position = (await self.locate_rows(sheet, [match_key]))[match_key]
        range_ = f"{sheet}!A{position}:Z{position}"

        response = await self.client.update_values(range_, [to_row(record)])
        self._invalidate(sheet)

        self.ctx.log_activity("row_updated", match_key, f"Updated {match_key} in {sheet}")
        return WriteResult(
            sheet=sheet,
            rows_written=1,
            requests=1,
            updated_ranges=[response.get("updatedRange", range_)],
            response=response,
        )

    async def batch_append(self, sheet: str, records: Sequence[Record]) -> WriteResult:
        """Append many records, at most ``batch_size`` rows per request."""
        if not records:
            raise ValidationError(f"Nothing to append to {sheet}")

        requests = 0
        ranges: list[str] = []
        response: dict[str, Any] = {}
        try:
            for chunk in chunked(records, self.batch_size):
                response = await self.client.append_values(
                    f"{sheet}!{FULL_ROW_COLUMNS}", [to_row(r) for r in chunk]
                )
                requests += 1
                ranges.extend(_updated_ranges(response))
        finally:
            if requests:
                self._invalidate(sheet)

        self.ctx.log_activity("rows_appended", sheet, f"Appended {len(records)} rows to {sheet}")
        return WriteResult(
            sheet=sheet,
            rows_written=len(records),
            requests=requests,
            updated_ranges=ranges,
            response=response,
        )

    async def batch_update(self, updates: Sequence[tuple[str, Sequence[Record]]]) -> WriteResult:
        """Overwrite several explicit ranges, at most ``batch_size`` ranges per request."""
        if not updates:
            raise ValidationError("Nothing to update")

        sheets = sorted({sheet_of(range_) for range_, _ in updates})
        requests = 0
        ranges: list[str] = []
        response: dict[str, Any] = {}
        try:
            for chunk in chunked(updates, self.batch_size):
                response = await self.client.batch_update_values(
                    [(range_, [to_row(r) for r in records]) for range_, records in chunk]
                )
                requests += 1
                ranges.extend(
                    r.get("updatedRange", "") for r in response.get("responses", [])
                )
        finally:
            if requests:
                for sheet in sheets:
                    self._invalidate(sheet)

        rows = sum(len(records) for _, records in updates)
        self.ctx.log_activity("batch_updated", ", ".join(sheets), f"Updated {rows} rows in {', '.join(sheets)}")
        return WriteResult(
            sheet=", ".join(sheets),
            rows_written=rows,
            requests=requests,
            updated_ranges=[r for r in ranges if r],
            response=response,
        )

    async def update_rows(self, sheet: str, records: Sequence[Record]) -> WriteResult:
        """Overwrite existing rows matched by each record's key, in one batch."""
        keys = [record_key(r) for r in records]
        positions = await self.locate_rows(sheet, keys)
        return await self.batch_update(
            [
                (f"{sheet}!A{positions[key]}:Z{positions[key]}", [record])
                for key, record in zip(keys, records)
            ]
        )

    def _invalidate(self, sheet: str) -> None:
        if self.ctx.cache.invalidate(sheet):
            logger.debug("Cache invalidated", sheet=sheet)


def _updated_ranges(response: dict[str, Any]) -> list[str]:
    updated = response.get("updates", {}).get("updatedRange")
    return [updated] if updated else []

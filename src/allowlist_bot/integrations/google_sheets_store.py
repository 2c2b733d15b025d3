"""Wallet submission store backed by Google Sheets (service-account based).

One sheet per tier, fixed columns:

    A: Discord Username | B: Discord ID | C: Role | D: EVM Wallet

Row 1 is the header row. Sheets has no uniqueness constraint, so "one row per
(tier, user)" is enforced here by scanning the tier's sheet before writing.

Goals
- Keep all network calls in `GoogleSheetsSubmissionStore`.
- Keep row parsing/aggregation in plain functions that are unit-testable.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from googleapiclient.errors import HttpError

from src.allowlist_bot.integrations.retry import DEFAULT_BACKOFF, BackoffPolicy, call_with_retry
from src.allowlist_bot.use_cases.tier_policy import Tier, TierPolicy

logger = logging.getLogger(__name__)

HEADER_ROW = ["Discord Username", "Discord ID", "Role", "EVM Wallet"]
UNKNOWN_ROLE = "Unknown"
_TOKEN_URI = "https://oauth2.googleapis.com/token"
_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class UpsertAction(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class SubmissionRecord:
    tier: Tier
    display_name: str
    user_id: str
    role_label: str
    wallet_address: str
    row_number: int | None = None


@dataclass(slots=True)
class TierStatistics:
    total: int = 0
    by_role: dict[str, int] = field(default_factory=dict)


def quote_sheet_name(sheet_name: str) -> str:
    """A1-notation sheet reference; quoted so names like `2GTD` parse."""

    return "'" + sheet_name.replace("'", "''") + "'"


def data_range(sheet_name: str) -> str:
    return f"{quote_sheet_name(sheet_name)}!A2:D"


def header_range(sheet_name: str) -> str:
    return f"{quote_sheet_name(sheet_name)}!A1:D1"


def row_range(sheet_name: str, row_number: int) -> str:
    return f"{quote_sheet_name(sheet_name)}!A{row_number}:D{row_number}"


def header_matches(first_row: list[str] | None) -> bool:
    row = first_row or []
    if not row:
        return False
    return all(i < len(row) and row[i] == h for i, h in enumerate(HEADER_ROW))


def _cell(row: list[str], index: int) -> str:
    return row[index] if index < len(row) and row[index] is not None else ""


def find_user_row(rows: list[list[str]], user_id: str) -> int | None:
    """Sheet row number (1-based, header included) of the user's first row.

    `rows` is the data range starting at row 2.
    """

    for i, row in enumerate(rows):
        if _cell(row, 1) == user_id:
            return i + 2
    return None


def rows_to_records(
    rows: list[list[str]],
    tier: Tier,
    *,
    user_id: str | None = None,
) -> list[SubmissionRecord]:
    out: list[SubmissionRecord] = []
    for i, row in enumerate(rows):
        if not row:
            continue
        if user_id is not None and _cell(row, 1) != user_id:
            continue
        out.append(
            SubmissionRecord(
                tier=tier,
                display_name=_cell(row, 0),
                user_id=_cell(row, 1),
                role_label=_cell(row, 2),
                wallet_address=_cell(row, 3),
                row_number=i + 2,
            )
        )
    return out


def summarize_rows(rows: list[list[str]]) -> TierStatistics:
    stats = TierStatistics()
    for row in rows:
        if not row or not any((c or "").strip() for c in row):
            continue
        stats.total += 1
        role = _cell(row, 2).strip() or UNKNOWN_ROLE
        stats.by_role[role] = stats.by_role.get(role, 0) + 1
    return stats


class GoogleSheetsSubmissionStore:
    def __init__(
        self,
        *,
        spreadsheet_id: str,
        service_account_email: str,
        private_key: str,
        sheet_names: Mapping[Tier, str],
        backoff: BackoffPolicy = DEFAULT_BACKOFF,
    ) -> None:
        self._spreadsheet_id = spreadsheet_id
        self._service_account_email = service_account_email
        self._private_key = private_key
        # Dict order is the scan order for multi-tier lookups.
        self._sheet_names = dict(sheet_names)
        self._backoff = backoff
        self._credentials: Any = None
        self._row_locks: weakref.WeakValueDictionary[tuple[Tier, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "GoogleSheetsSubmissionStore":
        return cls(
            spreadsheet_id=settings.spreadsheet_id,
            service_account_email=settings.service_account_email,
            private_key=settings.service_account_private_key,
            sheet_names=sheet_names_for(settings.policy),
        )

    @property
    def sheet_names(self) -> dict[Tier, str]:
        return dict(self._sheet_names)

    def _build_sheets_service(self) -> Any:
        # Credentials are built on first use so helpers and tests need no key.
        from google.oauth2 import service_account
        from googleapiclient.discovery import build

        if self._credentials is None:
            self._credentials = service_account.Credentials.from_service_account_info(
                {
                    "type": "service_account",
                    "client_email": self._service_account_email,
                    "private_key": self._private_key,
                    "token_uri": _TOKEN_URI,
                },
                scopes=_SCOPES,
            )

        return build(
            "sheets",
            "v4",
            credentials=self._credentials,
            cache_discovery=False,
        )

    async def _service(self) -> Any:
        # Discovery-document parsing is blocking; keep it off the event loop.
        return await asyncio.to_thread(self._build_sheets_service)

    async def _execute(self, request: Any, description: str) -> dict[str, Any]:
        resp = await call_with_retry(
            lambda: asyncio.to_thread(request.execute),
            description=description,
            policy=self._backoff,
        )
        return resp or {}

    async def _fetch_rows(self, sheets: Any, sheet_name: str, description: str) -> list[list[str]]:
        resp = await self._execute(
            sheets.spreadsheets()
            .values()
            .get(spreadsheetId=self._spreadsheet_id, range=data_range(sheet_name)),
            description,
        )
        rows = resp.get("values", [])
        return rows if isinstance(rows, list) else []

    async def _sheet_ids(self, sheets: Any) -> dict[str, Any]:
        meta = await self._execute(
            sheets.spreadsheets().get(
                spreadsheetId=self._spreadsheet_id,
                fields="sheets(properties(title,sheetId))",
            ),
            "spreadsheets.get",
        )
        out: dict[str, Any] = {}
        for s in meta.get("sheets", []):
            props = s.get("properties", {})
            out[props.get("title")] = props.get("sheetId")
        return out

    async def ensure_schema(self, sheets: Any = None) -> None:
        """Create missing tier sheets and (re)write header rows that are off.

        Idempotent and lock-free; concurrent callers may race on creating the
        same sheet, and the loser re-reads the sheet list instead of failing.
        """

        if sheets is None:
            sheets = await self._service()

        existing = await self._sheet_ids(sheets)
        missing = [name for name in self._sheet_names.values() if name not in existing]
        if missing:
            logger.info("Creating missing sheets: %s", ", ".join(missing))
            try:
                await self._execute(
                    sheets.spreadsheets().batchUpdate(
                        spreadsheetId=self._spreadsheet_id,
                        body={"requests": [{"addSheet": {"properties": {"title": n}}} for n in missing]},
                    ),
                    "spreadsheets.batchUpdate create sheets",
                )
            except HttpError:
                existing = await self._sheet_ids(sheets)
                if any(name not in existing for name in missing):
                    raise
                logger.info("Sheets were created concurrently: %s", ", ".join(missing))

        for sheet_name in self._sheet_names.values():
            current = await self._execute(
                sheets.spreadsheets()
                .values()
                .get(spreadsheetId=self._spreadsheet_id, range=header_range(sheet_name)),
                "values.get header",
            )
            first_row = (current.get("values") or [[]])[0]
            if not header_matches(first_row):
                logger.info("Writing header row on sheet %s", sheet_name)
                await self._execute(
                    sheets.spreadsheets()
                    .values()
                    .update(
                        spreadsheetId=self._spreadsheet_id,
                        range=header_range(sheet_name),
                        valueInputOption="RAW",
                        body={"values": [HEADER_ROW]},
                    ),
                    "values.update header",
                )

    def _row_lock(self, tier: Tier, user_id: str) -> asyncio.Lock:
        key = (tier, user_id)
        lock = self._row_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._row_locks[key] = lock
        return lock

    async def upsert(
        self,
        *,
        tier: Tier | str,
        user_id: str,
        display_name: str,
        role_label: str | None,
        wallet_address: str,
    ) -> UpsertAction:
        sheets = await self._service()
        await self.ensure_schema(sheets)

        parsed = tier if isinstance(tier, Tier) else Tier.parse(tier)
        sheet_name = self._sheet_names.get(parsed) if parsed is not None else None
        if parsed is None or sheet_name is None:
            logger.warning("Upsert skipped; no sheet for tier %r", tier)
            return UpsertAction.SKIPPED

        values = [[display_name, user_id, role_label or "", wallet_address]]

        # Scan-then-write is serialized per (tier, user) inside this process.
        async with self._row_lock(parsed, user_id):
            rows = await self._fetch_rows(sheets, sheet_name, "values.get check target")
            existing_row = find_user_row(rows, user_id)

            if existing_row is not None:
                await self._execute(
                    sheets.spreadsheets()
                    .values()
                    .update(
                        spreadsheetId=self._spreadsheet_id,
                        range=row_range(sheet_name, existing_row),
                        valueInputOption="RAW",
                        body={"values": values},
                    ),
                    "values.update upsert",
                )
                logger.info("Updated %s submission for user %s (row %d)", parsed.value, user_id, existing_row)
                return UpsertAction.UPDATED

            await self._execute(
                sheets.spreadsheets()
                .values()
                .append(
                    spreadsheetId=self._spreadsheet_id,
                    range=data_range(sheet_name),
                    valueInputOption="RAW",
                    insertDataOption="INSERT_ROWS",
                    body={"values": values},
                ),
                "values.append upsert",
            )
            logger.info("Inserted %s submission for user %s", parsed.value, user_id)
            return UpsertAction.INSERTED

    async def get_one(self, user_id: str) -> SubmissionRecord | None:
        """First record for the user, scanning tiers in priority order."""

        sheets = await self._service()
        await self.ensure_schema(sheets)
        for tier, sheet_name in self._sheet_names.items():
            rows = await self._fetch_rows(sheets, sheet_name, "values.get get_one")
            matches = rows_to_records(rows, tier, user_id=user_id)
            if matches:
                return matches[0]
        return None

    async def get_all(self, user_id: str) -> list[SubmissionRecord] | None:
        """Every record for the user across tiers; None when there are none."""

        sheets = await self._service()
        await self.ensure_schema(sheets)
        records: list[SubmissionRecord] = []
        for tier, sheet_name in self._sheet_names.items():
            rows = await self._fetch_rows(sheets, sheet_name, "values.get get_all")
            records.extend(rows_to_records(rows, tier, user_id=user_id))
        return records or None

    async def list_records(self) -> list[SubmissionRecord]:
        sheets = await self._service()
        await self.ensure_schema(sheets)
        records: list[SubmissionRecord] = []
        for tier, sheet_name in self._sheet_names.items():
            rows = await self._fetch_rows(sheets, sheet_name, "values.get list")
            records.extend(rows_to_records(rows, tier))
        return records

    async def statistics(self) -> dict[Tier, TierStatistics]:
        sheets = await self._service()
        await self.ensure_schema(sheets)
        stats: dict[Tier, TierStatistics] = {}
        for tier, sheet_name in self._sheet_names.items():
            rows = await self._fetch_rows(sheets, sheet_name, "values.get statistics")
            stats[tier] = summarize_rows(rows)
        return stats

    async def delete_row(self, tier: Tier, row_number: int) -> bool:
        """Delete one sheet row by its 1-based row number (the header is protected).

        Returns False when the tier's sheet does not exist.
        """

        if row_number < 2:
            raise ValueError("row_number must be >= 2 (row 1 is the header)")

        sheet_name = self._sheet_names.get(tier)
        if sheet_name is None:
            return False

        sheets = await self._service()
        sheet_id = (await self._sheet_ids(sheets)).get(sheet_name)
        if sheet_id is None:
            return False

        await self._execute(
            sheets.spreadsheets().batchUpdate(
                spreadsheetId=self._spreadsheet_id,
                body={
                    "requests": [
                        {
                            "deleteDimension": {
                                "range": {
                                    "sheetId": sheet_id,
                                    "dimension": "ROWS",
                                    "startIndex": row_number - 1,
                                    "endIndex": row_number,
                                }
                            }
                        }
                    ]
                },
            ),
            "spreadsheets.batchUpdate delete row",
        )
        logger.info("Deleted row %d from sheet %s", row_number, sheet_name)
        return True


def sheet_names_for(policy: TierPolicy) -> dict[Tier, str]:
    return {config.tier: config.sheet_name for config in policy.ordered}

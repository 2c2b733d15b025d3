"""Smoke test: verify the service account can reach the submissions spreadsheet.

Creates any missing tier sheets / header rows, then prints per-tier counts.

Env vars:
- GOOGLE_SHEETS_SPREADSHEET_ID
- GOOGLE_SERVICE_ACCOUNT_EMAIL
- GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY

Run:
  python scripts/check_sheets_access.py
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure `import src.*` works when running as `python scripts/...` from repo root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from src.allowlist_bot.config.settings import build_tier_policy, unescape_private_key
from src.allowlist_bot.integrations.google_sheets_store import (
    GoogleSheetsSubmissionStore,
    sheet_names_for,
)


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise SystemExit(f"Missing env var {name}. Put it in your .env and export it before running.")
    return value


async def _run() -> int:
    policy = build_tier_policy()
    store = GoogleSheetsSubmissionStore(
        spreadsheet_id=_require_env("GOOGLE_SHEETS_SPREADSHEET_ID"),
        service_account_email=_require_env("GOOGLE_SERVICE_ACCOUNT_EMAIL"),
        private_key=unescape_private_key(_require_env("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")),
        sheet_names=sheet_names_for(policy),
    )

    await store.ensure_schema()
    print(f"✅ Sheets ready: {', '.join(store.sheet_names.values())}")

    stats = await store.statistics()
    for tier, sheet_name in store.sheet_names.items():
        tier_stats = stats[tier]
        print(f"- {sheet_name}: {tier_stats.total} row(s)")
        for role, count in sorted(tier_stats.by_role.items()):
            print(f"    {role}: {count}")
    return 0


def main() -> int:
    load_dotenv(dotenv_path=".env", override=False)
    return asyncio.run(_run())


if __name__ == "__main__":
    raise SystemExit(main())

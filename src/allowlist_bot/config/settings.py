"""Runtime configuration for the allowlist bot.

All values come from the environment (optionally via `.env`). Settings are read
once at process start and are immutable afterwards.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import dotenv_values, load_dotenv

from src.allowlist_bot.use_cases.tier_policy import Tier, TierConfig, TierPolicy

load_dotenv(override=False)

# Convenience: allow local runs with only `.env.example` filled.
# Blank placeholders in `.env.example` must not override real values.
if not os.environ.get("DISCORD_TOKEN"):
    example_path = os.path.abspath(".env.example")
    if os.path.exists(example_path):
        for k, v in (dotenv_values(example_path) or {}).items():
            if not k or not v:
                continue
            if not os.environ.get(k):
                os.environ[k] = v

logger = logging.getLogger(__name__)


# Built-in tier table. Role ids and channel links can be overridden per tier
# with TIER_<NAME>_ROLE_IDS / TIER_<NAME>_CHANNEL_LINK.
_DEFAULT_TIERS: dict[Tier, dict] = {
    Tier.TWO_GTD: {
        "env_prefix": "TIER_2GTD",
        "sheet_name": "2GTD",
        "command_name": "setup-2gtd",
        "description": "Post 2GTD tier wallet submission message (2 GTD allocation)",
        "role_ids": ("1334873841780002937",),
        "channel_link": "https://discord.com/channels/1282268775709802568/1437876379982237766",
    },
    Tier.GTD: {
        "env_prefix": "TIER_GTD",
        # The middle tier is matched as "GTD" but stored on the "1GTD" sheet.
        "sheet_name": "1GTD",
        "command_name": "setup-gtd",
        "description": "Post GTD tier wallet submission message (1 GTD allocation)",
        "role_ids": (
            "1334873106854187008",
            "1360990505021870144",
            "1405560532223922287",
            "1362770935886774284",
            "1407649035657019463",
            "1284341434564083763",
        ),
        "channel_link": "https://discord.com/channels/1282268775709802568/1437876707502592143",
    },
    Tier.FCFS: {
        "env_prefix": "TIER_FCFS",
        "sheet_name": "FCFS",
        "command_name": "setup-fcfs",
        "description": "Post FCFS tier wallet submission message",
        "role_ids": (
            "1334873797085626398",
            "1408402916452208702",
            "1411717220605886616",
        ),
        "channel_link": "https://discord.com/channels/1282268775709802568/1437876834476884100",
    },
}


def _split_ids(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def unescape_private_key(raw: str) -> str:
    """Accept both raw PEM keys and keys with literal `\\n` sequences."""

    return raw.replace("\\n", "\n")


def build_tier_policy(env: Mapping[str, str] | None = None) -> TierPolicy:
    env = os.environ if env is None else env
    tiers: list[TierConfig] = []
    for tier, defaults in _DEFAULT_TIERS.items():
        prefix = defaults["env_prefix"]
        role_ids = _split_ids(env.get(f"{prefix}_ROLE_IDS")) or defaults["role_ids"]
        channel_link = env.get(f"{prefix}_CHANNEL_LINK") or defaults["channel_link"]
        tiers.append(
            TierConfig(
                tier=tier,
                role_ids=tuple(role_ids),
                sheet_name=defaults["sheet_name"],
                command_name=defaults["command_name"],
                description=defaults["description"],
                channel_link=channel_link,
            )
        )

    override_role_id = (env.get("STACKING_ROLE_ID") or "").strip() or None
    if override_role_id is None:
        logger.info("STACKING_ROLE_ID not set; stacking into the lowest tier is disabled")

    return TierPolicy(tiers=tuple(tiers), override_role_id=override_role_id)


@dataclass(frozen=True, slots=True)
class BotSettings:
    discord_token: str
    client_id: str
    guild_id: str | None
    spreadsheet_id: str
    service_account_email: str
    service_account_private_key: str
    stats_admin_ids: frozenset[str]
    policy: TierPolicy
    log_level: str = "INFO"
    third_party_log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "BotSettings":
        # Be defensive: ensure .env has been loaded even if this module
        # was imported in an unusual order.
        load_dotenv(override=False)

        token = os.environ.get("DISCORD_TOKEN")
        client_id = os.environ.get("DISCORD_CLIENT_ID")
        if not token or not client_id:
            raise ValueError("Missing DISCORD_TOKEN or DISCORD_CLIENT_ID")

        spreadsheet_id = os.environ.get("GOOGLE_SHEETS_SPREADSHEET_ID")
        if not spreadsheet_id:
            raise ValueError("Missing GOOGLE_SHEETS_SPREADSHEET_ID")

        sa_email = os.environ.get("GOOGLE_SERVICE_ACCOUNT_EMAIL")
        if not sa_email:
            raise ValueError("Missing GOOGLE_SERVICE_ACCOUNT_EMAIL")

        sa_key = os.environ.get("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")
        if not sa_key:
            raise ValueError("Missing GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY")

        return cls(
            discord_token=token,
            client_id=client_id,
            guild_id=os.environ.get("GUILD_ID") or None,
            spreadsheet_id=spreadsheet_id,
            service_account_email=sa_email,
            service_account_private_key=unescape_private_key(sa_key),
            stats_admin_ids=frozenset(_split_ids(os.environ.get("STATS_ADMIN_IDS"))),
            policy=build_tier_policy(),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            third_party_log_level=os.environ.get("DISCORD_LOG_LEVEL", "WARNING"),
        )

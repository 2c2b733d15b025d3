"""Discord application-command registration over the REST API (v10).

Used by the operator scripts in `scripts/`. The running bot syncs its own
command tree; this client exists for inspecting and resetting registrations
without starting the bot.
"""

from __future__ import annotations

import os
from typing import Any

import requests
from dotenv import load_dotenv

from src.allowlist_bot.use_cases.tier_policy import TierPolicy

load_dotenv(override=False)

API_BASE = "https://discord.com/api/v10"


def command_definitions(policy: TierPolicy) -> list[dict[str, Any]]:
    commands: list[dict[str, Any]] = [
        {"name": config.command_name, "description": config.description}
        for config in policy.ordered
    ]
    commands.append(
        {"name": "stats", "description": "Get wallet submission statistics (admin only)"}
    )
    return commands


class DiscordCommandsClient:
    def __init__(
        self,
        *,
        token: str,
        application_id: str,
        guild_id: str | None = None,
        timeout_seconds: int = 30,
    ) -> None:
        self._token = token
        self._application_id = application_id
        self._guild_id = guild_id
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_env(cls) -> "DiscordCommandsClient":
        load_dotenv(override=False)
        token = os.environ.get("DISCORD_TOKEN")
        application_id = os.environ.get("DISCORD_CLIENT_ID")
        if not token or not application_id:
            raise ValueError("Missing DISCORD_TOKEN or DISCORD_CLIENT_ID")
        return cls(
            token=token,
            application_id=application_id,
            guild_id=os.environ.get("GUILD_ID") or None,
            timeout_seconds=int(os.environ.get("DISCORD_HTTP_TIMEOUT_SECONDS", "30")),
        )

    @property
    def guild_id(self) -> str | None:
        return self._guild_id

    def _global_path(self) -> str:
        return f"/applications/{self._application_id}/commands"

    def _guild_path(self) -> str:
        if not self._guild_id:
            raise ValueError("GUILD_ID is not configured")
        return f"/applications/{self._application_id}/guilds/{self._guild_id}/commands"

    def _request_json(self, method: str, path: str, *, body: Any = None) -> Any:
        resp = requests.request(
            method,
            f"{API_BASE}{path}",
            headers={
                "Authorization": f"Bot {self._token}",
                "Content-Type": "application/json",
            },
            json=body,
            timeout=self._timeout_seconds,
        )
        if resp.status_code >= 400:
            raise RuntimeError(f"HTTP {resp.status_code}: {resp.text}")
        return resp.json() if resp.text else None

    def list_global_commands(self) -> list[dict[str, Any]]:
        return self._request_json("GET", self._global_path()) or []

    def list_guild_commands(self) -> list[dict[str, Any]]:
        return self._request_json("GET", self._guild_path()) or []

    def register(self, commands: list[dict[str, Any]]) -> str:
        """Bulk-overwrite commands; guild-scoped when a guild is configured.

        Returns the scope written ("guild" or "global").
        """

        if self._guild_id:
            self._request_json("PUT", self._guild_path(), body=commands)
            return "guild"
        self._request_json("PUT", self._global_path(), body=commands)
        return "global"

    def clear(self) -> list[str]:
        cleared = []
        if self._guild_id:
            self._request_json("PUT", self._guild_path(), body=[])
            cleared.append("guild")
        self._request_json("PUT", self._global_path(), body=[])
        cleared.append("global")
        return cleared

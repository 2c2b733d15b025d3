from __future__ import annotations

import asyncio
from types import SimpleNamespace

import discord

from src.allowlist_bot.integrations.discord_roles import (
    RoleSource,
    resolve_role_label,
    resolve_role_set,
)


def _not_found() -> discord.NotFound:
    return discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Member")


class _StubGuild:
    def __init__(self, *, member_roles=(), roles=(), error: Exception | None = None) -> None:
        self.member_roles = list(member_roles)
        self.roles = list(roles)
        self.error = error
        self.member_fetches = 0

    async def fetch_member(self, user_id: int):
        self.member_fetches += 1
        if self.error is not None:
            raise self.error
        return SimpleNamespace(id=user_id, roles=self.member_roles)

    async def fetch_roles(self):
        if self.error is not None:
            raise self.error
        return self.roles


def _role(role_id: int, name: str = "") -> SimpleNamespace:
    return SimpleNamespace(id=role_id, name=name)


def test_uses_member_snapshot_from_interaction() -> None:
    guild = _StubGuild()
    interaction = SimpleNamespace(guild=guild, user=SimpleNamespace(id=7, roles=[_role(1), _role(2)]))
    snapshot = asyncio.run(resolve_role_set(interaction))
    assert snapshot.role_ids == frozenset({"1", "2"})
    assert snapshot.source is RoleSource.PAYLOAD
    assert guild.member_fetches == 0


def test_fetches_member_when_snapshot_missing() -> None:
    guild = _StubGuild(member_roles=[_role(3)])
    interaction = SimpleNamespace(guild=guild, user=SimpleNamespace(id=7))
    snapshot = asyncio.run(resolve_role_set(interaction))
    assert snapshot.role_ids == frozenset({"3"})
    assert snapshot.source is RoleSource.FETCHED
    assert not snapshot.degraded


def test_unreadable_snapshot_falls_back_to_fetch() -> None:
    guild = _StubGuild(member_roles=[_role(4)])
    interaction = SimpleNamespace(guild=guild, user=SimpleNamespace(id=7, roles=[object()]))
    snapshot = asyncio.run(resolve_role_set(interaction))
    assert snapshot.source is RoleSource.FETCHED
    assert snapshot.role_ids == frozenset({"4"})


def test_failed_fetch_yields_empty_degraded_set() -> None:
    guild = _StubGuild(error=_not_found())
    interaction = SimpleNamespace(guild=guild, user=SimpleNamespace(id=7))
    snapshot = asyncio.run(resolve_role_set(interaction))
    assert snapshot.role_ids == frozenset()
    assert snapshot.degraded


def test_no_guild_yields_empty_set() -> None:
    interaction = SimpleNamespace(guild=None, user=SimpleNamespace(id=7, roles=[_role(1)]))
    snapshot = asyncio.run(resolve_role_set(interaction))
    assert snapshot.role_ids == frozenset()
    assert snapshot.source is RoleSource.FAILED


def test_resolve_role_label() -> None:
    guild = _StubGuild(roles=[_role(1, "Genesis"), _role(2, "OG")])
    assert asyncio.run(resolve_role_label(guild, "2")) == "OG"
    assert asyncio.run(resolve_role_label(guild, "9")) is None
    assert asyncio.run(resolve_role_label(guild, "not-a-snowflake")) is None
    assert asyncio.run(resolve_role_label(guild, None)) is None
    assert asyncio.run(resolve_role_label(None, "1")) is None


def test_resolve_role_label_lookup_failure() -> None:
    guild = _StubGuild(error=_not_found())
    assert asyncio.run(resolve_role_label(guild, "1")) is None

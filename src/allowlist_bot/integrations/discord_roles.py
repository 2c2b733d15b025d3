"""Role lookups against the Discord guild of an interaction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

import discord

logger = logging.getLogger(__name__)


class RoleSource(str, Enum):
    PAYLOAD = "payload"
    FETCHED = "fetched"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RoleSnapshot:
    """Role ids a user held at one point of an interaction flow.

    `source` tells how the set was obtained: from the member snapshot that came
    with the interaction, from one member fetch, or not at all (empty set).
    """

    role_ids: frozenset[str]
    source: RoleSource

    @property
    def degraded(self) -> bool:
        return self.source is RoleSource.FAILED


def _role_ids(roles: Any) -> frozenset[str]:
    return frozenset(str(role.id) for role in roles)


async def resolve_role_set(interaction: discord.Interaction) -> RoleSnapshot:
    guild = interaction.guild
    if guild is None:
        return RoleSnapshot(role_ids=frozenset(), source=RoleSource.FAILED)

    roles = getattr(interaction.user, "roles", None)
    if roles is not None:
        try:
            return RoleSnapshot(role_ids=_role_ids(roles), source=RoleSource.PAYLOAD)
        except (AttributeError, TypeError):
            logger.debug("Unreadable member snapshot for user %s; fetching", interaction.user.id)

    try:
        member = await guild.fetch_member(interaction.user.id)
    except discord.HTTPException as e:
        logger.warning("Member fetch failed for user %s: %s", interaction.user.id, e)
        return RoleSnapshot(role_ids=frozenset(), source=RoleSource.FAILED)

    return RoleSnapshot(role_ids=_role_ids(member.roles), source=RoleSource.FETCHED)


async def resolve_role_label(guild: discord.Guild | None, role_id: str | None) -> str | None:
    """Display name of a role, or None when it cannot be resolved right now."""

    if guild is None or not role_id:
        return None
    try:
        wanted = int(role_id)
    except ValueError:
        return None

    try:
        roles = await guild.fetch_roles()
    except discord.HTTPException as e:
        logger.warning("Role lookup failed for role %s: %s", role_id, e)
        return None

    for role in roles:
        if role.id == wanted:
            return role.name
    return None

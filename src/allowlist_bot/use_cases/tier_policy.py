"""Tier eligibility rules.

Three ordered allocation tiers (2GTD > GTD > FCFS) plus one override role that
lets holders of a higher tier also submit to the lowest tier ("stacking").

No network calls here: functions accept an already-resolved set of role ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class Tier(str, Enum):
    TWO_GTD = "2GTD"
    GTD = "GTD"
    FCFS = "FCFS"

    @classmethod
    def parse(cls, value: str | None) -> "Tier | None":
        try:
            return cls(value)
        except ValueError:
            return None


class RejectionReason(str, Enum):
    NO_ROLE = "no_role"
    HIGHER_TIER_AVAILABLE = "higher_tier_available"
    INVALID_TIER = "invalid_tier"


@dataclass(frozen=True, slots=True)
class TierConfig:
    tier: Tier
    role_ids: tuple[str, ...]
    sheet_name: str
    command_name: str
    description: str
    channel_link: str

    def matching_role_id(self, role_ids: Iterable[str]) -> str | None:
        """First configured role (in configuration order) that the user holds."""

        held = set(role_ids)
        for role_id in self.role_ids:
            if role_id in held:
                return role_id
        return None


@dataclass(frozen=True, slots=True)
class EligibilityDecision:
    allowed: bool
    target_tier: Tier
    reason: RejectionReason | None = None
    user_tier: Tier | None = None
    is_stacking: bool = False

    @property
    def primary_tier(self) -> Tier | None:
        """The tier the user actually belongs to, when this is a stacking grant."""

        return self.user_tier if self.is_stacking else None


@dataclass(frozen=True, slots=True)
class TierPolicy:
    tiers: tuple[TierConfig, ...]
    override_role_id: str | None = None

    def __post_init__(self) -> None:
        seen = [c.tier for c in self.tiers]
        if len(set(seen)) != len(seen):
            raise ValueError("Each tier may only be configured once")

    @property
    def ordered(self) -> tuple[TierConfig, ...]:
        """Tier configs in priority order, highest first."""

        rank = {t: i for i, t in enumerate(Tier)}
        return tuple(sorted(self.tiers, key=lambda c: rank[c.tier]))

    @property
    def lowest_tier(self) -> Tier:
        return self.ordered[-1].tier

    def config_for(self, tier: Tier) -> TierConfig:
        for config in self.tiers:
            if config.tier == tier:
                return config
        raise KeyError(f"Tier not configured: {tier}")

    def priority(self, tier: Tier) -> int:
        """Lower number = higher priority."""

        for i, config in enumerate(self.ordered):
            if config.tier == tier:
                return i
        raise KeyError(f"Tier not configured: {tier}")

    def highest_tier(self, role_ids: Iterable[str]) -> Tier | None:
        held = set(role_ids)
        for config in self.ordered:
            if held.intersection(config.role_ids):
                return config.tier
        return None

    def has_override(self, role_ids: Iterable[str]) -> bool:
        return self.override_role_id is not None and self.override_role_id in set(role_ids)

    def can_submit(self, role_ids: Iterable[str], target_tier: Tier) -> EligibilityDecision:
        held = frozenset(role_ids)
        user_tier = self.highest_tier(held)

        if user_tier is None:
            return EligibilityDecision(
                allowed=False,
                target_tier=target_tier,
                reason=RejectionReason.NO_ROLE,
            )

        user_priority = self.priority(user_tier)
        target_priority = self.priority(target_tier)

        if user_priority < target_priority:
            # Stacking only ever targets the lowest tier.
            if target_tier == self.lowest_tier and self.has_override(held):
                return EligibilityDecision(
                    allowed=True,
                    target_tier=target_tier,
                    user_tier=user_tier,
                    is_stacking=True,
                )
            return EligibilityDecision(
                allowed=False,
                target_tier=target_tier,
                reason=RejectionReason.HIGHER_TIER_AVAILABLE,
                user_tier=user_tier,
            )

        if user_priority == target_priority:
            return EligibilityDecision(
                allowed=True,
                target_tier=target_tier,
                user_tier=user_tier,
            )

        return EligibilityDecision(
            allowed=False,
            target_tier=target_tier,
            reason=RejectionReason.INVALID_TIER,
            user_tier=user_tier,
        )

    def label_role_id(self, role_ids: Iterable[str], decision: EligibilityDecision) -> str | None:
        """Pick the role whose display name is recorded with a submission.

        Normally the user's role inside the target tier. A stacking grant may
        come without any role in the target tier; the override role is
        recorded then.
        """

        if not decision.allowed:
            return None
        held = frozenset(role_ids)
        role_id = self.config_for(decision.target_tier).matching_role_id(held)
        if role_id is None and decision.is_stacking:
            return self.override_role_id
        return role_id

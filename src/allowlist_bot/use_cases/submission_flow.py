"""Wallet submission flow.

Sequences role lookup -> tier policy -> (address check) -> store write for one
user action, and returns a plain outcome object for the UI layer to render.

Roles are passed in already resolved for the current step. Every step
re-evaluates the policy; nothing is carried over from an earlier step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol

from src.allowlist_bot.integrations.discord_roles import RoleSnapshot
from src.allowlist_bot.integrations.google_sheets_store import (
    SubmissionRecord,
    TierStatistics,
    UpsertAction,
)
from src.allowlist_bot.use_cases.tier_policy import EligibilityDecision, Tier, TierPolicy
from src.allowlist_bot.use_cases.wallet_checks import is_valid_evm_address, normalize_wallet_input

logger = logging.getLogger(__name__)

LabelResolver = Callable[[str | None], Awaitable[str | None]]


class SubmissionStore(Protocol):
    async def upsert(
        self,
        *,
        tier: Tier | str,
        user_id: str,
        display_name: str,
        role_label: str | None,
        wallet_address: str,
    ) -> UpsertAction: ...

    async def get_all(self, user_id: str) -> list[SubmissionRecord] | None: ...

    async def statistics(self) -> dict[Tier, TierStatistics]: ...


@dataclass(frozen=True, slots=True)
class Submitter:
    """Who is acting, and the roles they hold at this step."""

    user_id: str
    display_name: str
    roles: RoleSnapshot


class GateStatus(str, Enum):
    OPEN = "open"
    INELIGIBLE = "ineligible"
    LABEL_UNRESOLVED = "label_unresolved"


class CommitStatus(str, Enum):
    SAVED = "saved"
    UPDATED = "updated"
    INELIGIBLE = "ineligible"
    LABEL_UNRESOLVED = "label_unresolved"
    INVALID_ADDRESS = "invalid_address"
    NOT_SAVED = "not_saved"


@dataclass(frozen=True, slots=True)
class GateOutcome:
    status: GateStatus
    decision: EligibilityDecision
    role_label: str | None = None


@dataclass(frozen=True, slots=True)
class CommitOutcome:
    status: CommitStatus
    decision: EligibilityDecision
    wallet_address: str = ""
    role_label: str | None = None


class StatsPermissionError(PermissionError):
    """Raised when a caller outside the admin list asks for statistics."""


class SubmissionFlow:
    def __init__(
        self,
        *,
        policy: TierPolicy,
        store: SubmissionStore,
        stats_admin_ids: frozenset[str] = frozenset(),
    ) -> None:
        self.policy = policy
        self.store = store
        self.stats_admin_ids = stats_admin_ids

    async def _eligibility(
        self,
        submitter: Submitter,
        tier: Tier,
        resolve_label: LabelResolver,
    ) -> tuple[EligibilityDecision, str | None]:
        decision = self.policy.can_submit(submitter.roles.role_ids, tier)
        if not decision.allowed:
            logger.info(
                "User %s rejected for %s: %s (roles via %s)",
                submitter.user_id,
                tier.value,
                decision.reason.value if decision.reason else "unknown",
                submitter.roles.source.value,
            )
            return decision, None
        role_id = self.policy.label_role_id(submitter.roles.role_ids, decision)
        return decision, await resolve_label(role_id)

    async def open_submission(
        self,
        submitter: Submitter,
        tier: Tier,
        resolve_label: LabelResolver,
    ) -> GateOutcome:
        """First step: may the user see the wallet form for this tier?"""

        decision, label = await self._eligibility(submitter, tier, resolve_label)
        if not decision.allowed:
            return GateOutcome(status=GateStatus.INELIGIBLE, decision=decision)
        if not label:
            return GateOutcome(status=GateStatus.LABEL_UNRESOLVED, decision=decision)
        return GateOutcome(status=GateStatus.OPEN, decision=decision, role_label=label)

    async def commit_submission(
        self,
        submitter: Submitter,
        tier: Tier,
        wallet_input: str | None,
        resolve_label: LabelResolver,
    ) -> CommitOutcome:
        """Final step: re-check eligibility, validate the address, then write."""

        decision, label = await self._eligibility(submitter, tier, resolve_label)
        if not decision.allowed:
            return CommitOutcome(status=CommitStatus.INELIGIBLE, decision=decision)
        if not label:
            return CommitOutcome(status=CommitStatus.LABEL_UNRESOLVED, decision=decision)

        wallet = normalize_wallet_input(wallet_input)
        if not is_valid_evm_address(wallet):
            return CommitOutcome(
                status=CommitStatus.INVALID_ADDRESS,
                decision=decision,
                wallet_address=wallet,
                role_label=label,
            )

        action = await self.store.upsert(
            tier=tier,
            user_id=submitter.user_id,
            display_name=submitter.display_name,
            role_label=label,
            wallet_address=wallet,
        )
        status = {
            UpsertAction.INSERTED: CommitStatus.SAVED,
            UpsertAction.UPDATED: CommitStatus.UPDATED,
        }.get(action, CommitStatus.NOT_SAVED)
        return CommitOutcome(status=status, decision=decision, wallet_address=wallet, role_label=label)

    async def submission_status(self, user_id: str) -> list[SubmissionRecord] | None:
        return await self.store.get_all(user_id)

    def is_stats_admin(self, user_id: str) -> bool:
        return user_id in self.stats_admin_ids

    async def statistics_for(self, caller_id: str) -> dict[Tier, TierStatistics]:
        if not self.is_stats_admin(caller_id):
            raise StatsPermissionError(f"User {caller_id} may not view statistics")
        return await self.store.statistics()

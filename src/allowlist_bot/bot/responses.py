"""User-facing message text.

Plain strings only; the Discord layer decides whether they go into a reply,
an edit, an embed or a DM.
"""

from __future__ import annotations

from typing import Iterable

from src.allowlist_bot.integrations.google_sheets_store import SubmissionRecord, TierStatistics
from src.allowlist_bot.use_cases.submission_flow import CommitOutcome, CommitStatus
from src.allowlist_bot.use_cases.tier_policy import (
    EligibilityDecision,
    RejectionReason,
    Tier,
    TierPolicy,
)

GENERIC_ERROR = "There was an error. Please try again."
ROLE_LOOKUP_FAILED = "❌ Could not fetch your role information. Please try again."
INVALID_ADDRESS = "❌ Invalid EVM address. Please submit a valid 0x... address (42 characters)."
SAVE_FAILED = "❌ Failed to save wallet. Please try again."
NO_SUBMISSIONS = "You have not submitted a wallet yet."
STATS_DENIED = "❌ You do not have permission to use this command."
STATS_SENT = "📬 Statistics sent to admin DMs."

_MAX_MESSAGE_LENGTH = 1900


def _clamp_text(text: str) -> str:
    """Ensure Discord-compatible message length."""

    if len(text) <= _MAX_MESSAGE_LENGTH:
        return text
    return text[: _MAX_MESSAGE_LENGTH - 1].rstrip() + "…"


def _format_message(lines: Iterable[str | None]) -> str:
    message = "\n".join(line for line in lines if line is not None)
    return _clamp_text(message)


def rejection_message(decision: EligibilityDecision, policy: TierPolicy) -> str:
    tier = decision.target_tier.value
    if decision.reason is RejectionReason.NO_ROLE:
        return "❌ You don't have any of the required roles to submit a wallet."
    if decision.reason is RejectionReason.HIGHER_TIER_AVAILABLE and decision.user_tier is not None:
        correct = policy.config_for(decision.user_tier)
        return _format_message(
            [
                f"❌ You have a **{decision.user_tier.value}** tier role, "
                f"so you cannot submit to the **{tier}** tier.",
                "",
                "➡️ **Please go to the correct channel:**",
                correct.channel_link,
            ]
        )
    return f"❌ You cannot submit to the {tier} tier."


def commit_message(outcome: CommitOutcome, policy: TierPolicy) -> str:
    tier = outcome.decision.target_tier.value
    if outcome.status is CommitStatus.INELIGIBLE:
        return rejection_message(outcome.decision, policy)
    if outcome.status is CommitStatus.LABEL_UNRESOLVED:
        return ROLE_LOOKUP_FAILED
    if outcome.status is CommitStatus.INVALID_ADDRESS:
        return INVALID_ADDRESS
    if outcome.status is CommitStatus.NOT_SAVED:
        return SAVE_FAILED

    verb = "updated" if outcome.status is CommitStatus.UPDATED else "saved"
    lines = [f"✅ Wallet {verb} successfully in **{tier}** tier!"]
    primary = outcome.decision.primary_tier
    if outcome.decision.is_stacking and primary is not None:
        lines += [
            "",
            f"ℹ️ This is a stacked submission: your primary tier is **{primary.value}**. "
            f"Your **{primary.value}** submission is kept separately.",
        ]
    return _format_message(lines)


def entry_post_title(tier: Tier) -> str:
    return f"{tier.value} Tier - Submit your EVM Wallet"


def status_title(records: list[SubmissionRecord]) -> str:
    if len(records) > 1:
        return f"Your Wallet Submissions ({len(records)} tiers, stacked)"
    return "Your Wallet Submission"


def status_fields(record: SubmissionRecord) -> list[tuple[str, str, bool]]:
    """(name, value, inline) triples for one record."""

    return [
        ("Tier", record.tier.value, True),
        ("Discord Username", record.display_name or "Unknown", True),
        ("Discord ID", record.user_id or "Unknown", True),
        ("Role", record.role_label or "N/A", True),
        ("EVM Wallet", record.wallet_address or "N/A", False),
    ]


def statistics_message(stats: dict[Tier, TierStatistics], policy: TierPolicy) -> str:
    lines = ["📊 **Wallet Submission Statistics**", ""]
    grand_total = 0
    for config in policy.ordered:
        tier_stats = stats.get(config.tier) or TierStatistics()
        grand_total += tier_stats.total
        lines.append(f"**{config.sheet_name}**: {tier_stats.total} submission(s)")
        for role, count in sorted(tier_stats.by_role.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"  • {role}: {count}")
        lines.append("")
    lines.append(f"**Total:** {grand_total}")
    return _format_message(lines)

from __future__ import annotations

from src.allowlist_bot.bot.responses import (
    INVALID_ADDRESS,
    SAVE_FAILED,
    _clamp_text,
    commit_message,
    rejection_message,
    statistics_message,
    status_fields,
    status_title,
)
from src.allowlist_bot.integrations.google_sheets_store import SubmissionRecord, TierStatistics
from src.allowlist_bot.use_cases.submission_flow import CommitOutcome, CommitStatus
from src.allowlist_bot.use_cases.tier_policy import Tier

WALLET = "0x" + "c" * 40


def test_rejection_message_points_to_correct_channel(tier_policy) -> None:
    decision = tier_policy.can_submit({"r-2gtd"}, Tier.FCFS)
    text = rejection_message(decision, tier_policy)
    assert "**2GTD**" in text
    assert "https://discord.test/2gtd" in text


def test_rejection_message_no_role_and_invalid_tier(tier_policy) -> None:
    assert "required roles" in rejection_message(tier_policy.can_submit(set(), Tier.GTD), tier_policy)
    text = rejection_message(tier_policy.can_submit({"r-fcfs"}, Tier.GTD), tier_policy)
    assert text == "❌ You cannot submit to the GTD tier."


def test_commit_message_variants(tier_policy) -> None:
    decision = tier_policy.can_submit({"r-fcfs"}, Tier.FCFS)
    saved = CommitOutcome(status=CommitStatus.SAVED, decision=decision, wallet_address=WALLET)
    updated = CommitOutcome(status=CommitStatus.UPDATED, decision=decision, wallet_address=WALLET)

    assert commit_message(saved, tier_policy) == "✅ Wallet saved successfully in **FCFS** tier!"
    assert "updated" in commit_message(updated, tier_policy)
    assert commit_message(CommitOutcome(CommitStatus.INVALID_ADDRESS, decision), tier_policy) == INVALID_ADDRESS
    assert commit_message(CommitOutcome(CommitStatus.NOT_SAVED, decision), tier_policy) == SAVE_FAILED


def test_commit_message_mentions_primary_tier_when_stacking(tier_policy) -> None:
    decision = tier_policy.can_submit({"r-gtd-a", "stack"}, Tier.FCFS)
    text = commit_message(CommitOutcome(CommitStatus.SAVED, decision, WALLET), tier_policy)
    assert "stacked submission" in text
    assert "**GTD**" in text


def test_status_title_and_fields() -> None:
    record = SubmissionRecord(
        tier=Tier.GTD,
        display_name="alice",
        user_id="42",
        role_label="",
        wallet_address=WALLET,
    )
    assert status_title([record]) == "Your Wallet Submission"
    assert status_title([record, record]) == "Your Wallet Submissions (2 tiers, stacked)"
    fields = dict((name, value) for name, value, _ in status_fields(record))
    assert fields["Tier"] == "GTD"
    assert fields["Role"] == "N/A"
    assert fields["EVM Wallet"] == WALLET


def test_statistics_message(tier_policy) -> None:
    stats = {
        Tier.TWO_GTD: TierStatistics(total=1, by_role={"Genesis": 1}),
        Tier.GTD: TierStatistics(total=3, by_role={"OG": 2, "Unknown": 1}),
    }
    text = statistics_message(stats, tier_policy)
    assert "**2GTD**: 1 submission(s)" in text
    assert "**1GTD**: 3 submission(s)" in text
    assert "**FCFS**: 0 submission(s)" in text
    assert "  • OG: 2" in text
    assert text.endswith("**Total:** 4")


def test_clamp_text() -> None:
    assert _clamp_text("short") == "short"
    clamped = _clamp_text("x" * 5000)
    assert len(clamped) == 1900
    assert clamped.endswith("…")

from __future__ import annotations

import pytest

from src.allowlist_bot.use_cases.tier_policy import (
    RejectionReason,
    Tier,
    TierConfig,
    TierPolicy,
)


def test_highest_tier_single_tier_roles(tier_policy) -> None:
    assert tier_policy.highest_tier({"r-2gtd"}) is Tier.TWO_GTD
    assert tier_policy.highest_tier({"r-gtd-b"}) is Tier.GTD
    assert tier_policy.highest_tier({"r-fcfs", "unrelated"}) is Tier.FCFS


def test_highest_tier_prefers_highest_match(tier_policy) -> None:
    assert tier_policy.highest_tier({"r-fcfs", "r-gtd-a"}) is Tier.GTD
    assert tier_policy.highest_tier({"r-fcfs", "r-gtd-a", "r-2gtd"}) is Tier.TWO_GTD


def test_highest_tier_none_without_tier_roles(tier_policy) -> None:
    assert tier_policy.highest_tier(set()) is None
    # The override role alone confers no tier.
    assert tier_policy.highest_tier({"stack"}) is None


@pytest.mark.parametrize(
    "roles, tier",
    [
        ({"r-2gtd"}, Tier.TWO_GTD),
        ({"r-gtd-a"}, Tier.GTD),
        ({"r-fcfs"}, Tier.FCFS),
        ({"r-gtd-b", "r-fcfs", "stack"}, Tier.GTD),
    ],
)
def test_can_submit_own_tier(tier_policy, roles, tier) -> None:
    decision = tier_policy.can_submit(roles, tier)
    assert decision.allowed is True
    assert decision.is_stacking is False
    assert decision.user_tier is tier
    assert decision.primary_tier is None


def test_can_submit_no_role(tier_policy) -> None:
    decision = tier_policy.can_submit({"stack", "other"}, Tier.FCFS)
    assert decision.allowed is False
    assert decision.reason is RejectionReason.NO_ROLE


def test_higher_tier_blocked_from_lower_tier_without_override(tier_policy) -> None:
    decision = tier_policy.can_submit({"r-2gtd"}, Tier.FCFS)
    assert decision.allowed is False
    assert decision.reason is RejectionReason.HIGHER_TIER_AVAILABLE
    assert decision.user_tier is Tier.TWO_GTD


@pytest.mark.parametrize("roles, primary", [({"r-2gtd", "stack"}, Tier.TWO_GTD), ({"r-gtd-a", "stack"}, Tier.GTD)])
def test_override_role_allows_stacking_into_lowest_tier(tier_policy, roles, primary) -> None:
    decision = tier_policy.can_submit(roles, Tier.FCFS)
    assert decision.allowed is True
    assert decision.is_stacking is True
    assert decision.primary_tier is primary


def test_override_role_does_not_stack_into_middle_tier(tier_policy) -> None:
    decision = tier_policy.can_submit({"r-2gtd", "stack"}, Tier.GTD)
    assert decision.allowed is False
    assert decision.reason is RejectionReason.HIGHER_TIER_AVAILABLE
    assert decision.is_stacking is False


def test_lower_tier_user_cannot_reach_higher_tier(tier_policy) -> None:
    decision = tier_policy.can_submit({"r-fcfs"}, Tier.TWO_GTD)
    assert decision.allowed is False
    assert decision.reason is RejectionReason.INVALID_TIER

    # The override role never lifts a user upwards.
    decision = tier_policy.can_submit({"r-fcfs", "stack"}, Tier.GTD)
    assert decision.reason is RejectionReason.INVALID_TIER


def test_stacking_disabled_without_configured_override(tier_policy) -> None:
    policy = TierPolicy(tiers=tier_policy.tiers, override_role_id=None)
    decision = policy.can_submit({"r-2gtd", "stack"}, Tier.FCFS)
    assert decision.allowed is False
    assert decision.reason is RejectionReason.HIGHER_TIER_AVAILABLE


def test_label_role_id_uses_target_tier_role_then_override(tier_policy) -> None:
    roles = {"r-gtd-b", "r-gtd-a"}
    decision = tier_policy.can_submit(roles, Tier.GTD)
    # Configuration order decides between several held roles.
    assert tier_policy.label_role_id(roles, decision) == "r-gtd-a"

    stacked = {"r-2gtd", "stack"}
    decision = tier_policy.can_submit(stacked, Tier.FCFS)
    assert tier_policy.label_role_id(stacked, decision) == "stack"

    stacked_with_fcfs = {"r-2gtd", "stack", "r-fcfs"}
    decision = tier_policy.can_submit(stacked_with_fcfs, Tier.FCFS)
    assert tier_policy.label_role_id(stacked_with_fcfs, decision) == "r-fcfs"

    rejected = tier_policy.can_submit({"r-fcfs"}, Tier.GTD)
    assert tier_policy.label_role_id({"r-fcfs"}, rejected) is None


def test_lookup_helpers(tier_policy) -> None:
    assert [c.tier for c in tier_policy.ordered] == [Tier.TWO_GTD, Tier.GTD, Tier.FCFS]
    assert tier_policy.lowest_tier is Tier.FCFS
    assert tier_policy.config_for(Tier.GTD).sheet_name == "1GTD"
    assert Tier.parse("GTD") is Tier.GTD
    assert Tier.parse("1GTD") is None


def test_ordered_ignores_declaration_order(tier_policy) -> None:
    policy = TierPolicy(tiers=tuple(reversed(tier_policy.tiers)), override_role_id="stack")
    assert policy.highest_tier({"r-fcfs", "r-2gtd"}) is Tier.TWO_GTD
    assert policy.lowest_tier is Tier.FCFS


def test_duplicate_tier_rejected() -> None:
    config = TierConfig(
        tier=Tier.FCFS,
        role_ids=("a",),
        sheet_name="FCFS",
        command_name="setup-fcfs",
        description="",
        channel_link="",
    )
    with pytest.raises(ValueError):
        TierPolicy(tiers=(config, config))

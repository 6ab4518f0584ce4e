"""Tests for benefit lookup and donation conversion."""

from __future__ import annotations

import pytest

from frontier_influence.domain.benefits import compute_benefits, donation_influence
from frontier_influence.domain.enums import ControlLevel
from frontier_influence.domain.models import NO_BENEFITS, ControlState
from frontier_influence.domain.rules_config import DEFAULT_RULES, DonationRules, RulesConfig


def _state(level: ControlLevel, controller: str | None) -> ControlState:
    return ControlState(level=level, controlling_faction=controller)


class TestComputeBenefits:
    def test_dominated_controller_gets_high_tier(self):
        benefits = compute_benefits("a", _state(ControlLevel.DOMINATED, "a"))
        assert benefits.shop_discount == pytest.approx(0.25)
        assert benefits == DEFAULT_RULES.benefits.dominated

    def test_non_controller_gets_nothing(self):
        benefits = compute_benefits("b", _state(ControlLevel.DOMINATED, "a"))
        assert benefits == NO_BENEFITS
        assert benefits.is_empty

    @pytest.mark.parametrize(
        ("level", "tier"),
        [
            (ControlLevel.DISPUTED, DEFAULT_RULES.benefits.disputed),
            (ControlLevel.CONTROLLED, DEFAULT_RULES.benefits.controlled),
            (ControlLevel.DOMINATED, DEFAULT_RULES.benefits.dominated),
        ],
    )
    def test_tiers_follow_level(self, level, tier):
        assert compute_benefits("a", _state(level, "a")) == tier

    def test_tiers_increase_with_control(self):
        table = DEFAULT_RULES.benefits
        assert (
            table.disputed.shop_discount
            < table.controlled.shop_discount
            < table.dominated.shop_discount
        )

    def test_contested_grants_nothing(self):
        assert compute_benefits("a", _state(ControlLevel.CONTESTED, None)).is_empty
        assert DEFAULT_RULES.benefits.for_level(ControlLevel.CONTESTED) is NO_BENEFITS


class TestDonationInfluence:
    def test_linear_below_cap(self):
        assert donation_influence(500) == pytest.approx(5.0)

    def test_capped(self):
        assert donation_influence(1_000_000) == pytest.approx(10.0)

    def test_non_positive_is_zero(self):
        assert donation_influence(0) == 0.0
        assert donation_influence(-50) == 0.0

    def test_custom_rate(self):
        rules = RulesConfig(donation=DonationRules(influence_per_gold=0.1, max_influence=3))
        assert donation_influence(20, rules=rules) == pytest.approx(2.0)
        assert donation_influence(100, rules=rules) == pytest.approx(3.0)

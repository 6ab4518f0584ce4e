"""Tests for rule configuration, settings and world seed loading."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from frontier_influence.config import Settings
from frontier_influence.domain.enums import ControlLevel, TerritoryCategory
from frontier_influence.domain.models import BenefitSet
from frontier_influence.domain.rules_config import (
    BenefitTable,
    load_benefit_table,
    rules_from_settings,
)
from frontier_influence.seeding import WorldSeed, load_world


class TestBenefitTable:
    def test_partial_override_keeps_other_tiers(self, tmp_path):
        path = tmp_path / "benefits.json"
        path.write_text(json.dumps({"dominated": {"shop_discount": 0.3}}), encoding="utf-8")

        table = load_benefit_table(path)

        assert table.dominated == BenefitSet(shop_discount=0.3)
        assert table.controlled == BenefitTable().controlled
        assert table.for_level(ControlLevel.DOMINATED).shop_discount == 0.3

    def test_contested_entry_rejected(self, tmp_path):
        path = tmp_path / "benefits.json"
        path.write_text(json.dumps({"contested": {"shop_discount": 0.1}}), encoding="utf-8")

        with pytest.raises(ValueError, match="Contested"):
            load_benefit_table(path)

    def test_unknown_level_rejected(self, tmp_path):
        path = tmp_path / "benefits.json"
        path.write_text(json.dumps({"legendary": {}}), encoding="utf-8")

        with pytest.raises(ValidationError):
            load_benefit_table(path)


class TestRulesFromSettings:
    def test_defaults(self):
        rules = rules_from_settings(Settings())
        assert rules.influence.default_floor == 5.0
        assert rules.decay.rate == 0.01
        assert rules.decay.max_step == 2.0
        assert rules.thresholds.dominated == 70.0

    def test_overrides(self, tmp_path):
        path = tmp_path / "benefits.json"
        path.write_text(json.dumps({"disputed": {"job_income_bonus": 0.07}}), encoding="utf-8")
        settings = Settings(
            default_floor=2.5,
            decay_rate=0.05,
            decay_max_step=1.0,
            influence_per_gold=0.02,
            max_donation_influence=4.0,
            benefit_table_path=path,
        )

        rules = rules_from_settings(settings)

        assert rules.influence.default_floor == 2.5
        assert rules.decay.rate == 0.05
        assert rules.decay.max_step == 1.0
        assert rules.donation.influence_per_gold == 0.02
        assert rules.donation.max_influence == 4.0
        assert rules.benefits.disputed.job_income_bonus == 0.07

    def test_settings_validate_ranges(self):
        with pytest.raises(ValidationError):
            Settings(default_floor=150)


class TestWorldSeed:
    def _document(self) -> dict:
        return {
            "factions": [
                {"id": "settler_alliance", "name": "Settler Alliance"},
                {"id": "frontera_cartel", "name": "Frontera Cartel", "default_floor": 0},
            ],
            "territories": [
                {
                    "id": "red_gulch",
                    "name": "Red Gulch",
                    "strategic_value": 8,
                    "influence": {"settler_alliance": 35},
                    "floors": {"frontera_cartel": 2},
                },
                {"id": "sangre_canyon", "name": "Sangre Canyon", "category": "wilderness"},
            ],
        }

    def test_load_world(self, tmp_path):
        path = tmp_path / "world.json"
        path.write_text(json.dumps(self._document()), encoding="utf-8")

        world = load_world(path)
        seeds = world.territory_seeds()

        assert [f.id for f in world.factions] == ["settler_alliance", "frontera_cartel"]
        assert world.factions[1].default_floor == 0
        assert seeds[0].influence == {"settler_alliance": 35.0}
        assert seeds[0].floors == {"frontera_cartel": 2.0}
        assert seeds[1].category is TerritoryCategory.WILDERNESS

    def test_unknown_faction_reference_rejected(self):
        document = self._document()
        document["territories"][0]["influence"]["nahi_coalition"] = 10

        with pytest.raises(ValidationError, match="unknown factions"):
            WorldSeed.model_validate(document)

    def test_out_of_range_value_rejected(self):
        document = self._document()
        document["territories"][0]["influence"]["settler_alliance"] = 120

        with pytest.raises(ValidationError, match="outside"):
            WorldSeed.model_validate(document)

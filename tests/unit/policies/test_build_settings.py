"""
Test policy serialization and the BuildSettings configuration surface.

This module verifies that all policy classes:
- Round-trip through JSON serialization without data loss
- Ignore unknown keys in from_dict
- Pick up environment overrides through BuildSettings.from_env
"""

import json
import pytest

from asg_policies import (
    BuildSettings,
    CompoundPolicy,
    GenerationPolicy,
    OperationReport,
    PlacementPolicy,
    RepairPolicy,
    RoutingPolicy,
    ValidationPolicy,
    coerce_vec3,
)


ALL_POLICY_CLASSES = [
    GenerationPolicy,
    RepairPolicy,
    CompoundPolicy,
    ValidationPolicy,
    RoutingPolicy,
    PlacementPolicy,
]


class TestPolicySerialization:
    """Tests for to_dict / from_dict round trips."""

    @pytest.mark.parametrize("policy_class", ALL_POLICY_CLASSES)
    def test_json_round_trip(self, policy_class):
        """Every policy survives a JSON round trip unchanged."""
        policy = policy_class()
        data = json.loads(json.dumps(policy.to_dict()))
        assert policy_class.from_dict(data) == policy

    @pytest.mark.parametrize("policy_class", ALL_POLICY_CLASSES)
    def test_unknown_keys_ignored(self, policy_class):
        """from_dict drops keys that are not fields."""
        data = policy_class().to_dict()
        data["not_a_field"] = 123
        assert policy_class.from_dict(data) == policy_class()

    def test_validation_policy_footprints_merge_with_defaults(self):
        """Overriding one footprint keeps the others."""
        policy = ValidationPolicy.from_dict({"min_footprints": {"house": [6, 5, 6]}})
        assert policy.min_footprint_for("house") == (6, 5, 6)
        assert policy.min_footprint_for("castle") == (15, 10, 15)
        assert policy.min_footprint_for("unknown") == (2, 2, 2)

    def test_placement_offset(self):
        """Candidate distance is reach minus padding."""
        assert PlacementPolicy(reach=4.5, padding=1.0).offset == pytest.approx(3.5)
        assert PlacementPolicy(reach=0.5, padding=1.0).offset == 0.0

    def test_operation_report_to_json(self):
        """OperationReport serializes its metrics."""
        report = OperationReport(operation="merge", metrics={"fills_created": 2})
        report.add_warning("merged")
        data = json.loads(report.to_json())
        assert data["metrics"]["fills_created"] == 2
        assert data["warnings"] == ["merged"]


class TestBuildSettings:
    """Tests for BuildSettings loading."""

    def test_defaults(self):
        """Default values come from the policies."""
        settings = BuildSettings()
        assert settings.generation.max_attempts == 3
        assert settings.compound.max_components == 10
        assert settings.compound.max_calls == 15
        assert settings.routing.catalog_threshold == 0.6
        assert settings.validation.world_max_y == 320

    def test_from_dict_partial_sections(self):
        """Missing sections fall back to defaults."""
        settings = BuildSettings.from_dict({"routing": {"catalog_threshold": 0.75}})
        assert settings.routing.catalog_threshold == 0.75
        assert settings.repair.max_attempts == 3

    def test_from_json_file(self, tmp_path):
        """Settings load from a JSON file."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"repair": {"max_attempts": 5}}))
        settings = BuildSettings.from_json_file(path)
        assert settings.repair.max_attempts == 5

    def test_from_env_overrides(self):
        """Environment variables override the base settings."""
        env = {
            "BUILDER_V2_ENABLED": "true",
            "ASG_CATALOG_DIR": "/srv/schematics",
            "ASG_LLM_TIMEOUT": "45",
        }
        settings = BuildSettings.from_env(environ=env)
        assert settings.routing.builder_v2_enabled is True
        assert settings.routing.catalog_dir == "/srv/schematics"
        assert settings.generation.timeout_s == 45.0

    def test_from_env_false_flag(self):
        """A falsy flag disables V2 even if the base enabled it."""
        base = BuildSettings.from_dict({"routing": {"builder_v2_enabled": True}})
        settings = BuildSettings.from_env(base, environ={"BUILDER_V2_ENABLED": "0"})
        assert settings.routing.builder_v2_enabled is False


class TestCoercion:
    """Tests for coordinate coercion helpers."""

    def test_coerce_vec3_forms(self):
        """Dicts, sequences and rounding are accepted."""
        assert coerce_vec3({"x": 1, "y": 2}) == (1, 2, 0)
        assert coerce_vec3([1.4, 2.6, 3]) == (1, 3, 3)
        assert coerce_vec3("nope") is None
        assert coerce_vec3(None) is None

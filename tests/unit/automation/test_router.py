"""
Unit tests for request routing and per-pathway failure policies.
"""

import copy
import json

from asg_policies import BuildSettings, RoutingPolicy
from automation.context import BuildContext
from automation.errors import FailureCategory
from automation.resilient_client import StructuredResult
from automation.router import (
    FailurePolicy,
    RequestRouter,
    RoutingPathway,
    explicit_asset_path,
)
from generation.core import BuildRequest


PLAN = {
    "dimensions": {"width": 7, "height": 6, "depth": 7},
    "materials": {
        "foundation": "cobblestone",
        "primary": "oak_planks",
        "roof": "oak_stairs",
        "door": "oak_door",
    },
    "features": ["door"],
}

HOUSE = {
    "size": {"width": 7, "height": 6, "depth": 7},
    "palette": ["cobblestone", "oak_planks", "oak_stairs", "oak_door"],
    "buildType": "house",
    "steps": [
        {"op": "fill", "block": "cobblestone", "from": [0, 0, 0], "to": [6, 0, 6]},
        {"op": "hollow_box", "block": "oak_planks", "from": [0, 1, 0], "to": [6, 4, 6]},
        {"op": "roof_gable", "block": "oak_stairs", "from": [0, 5, 0], "to": [6, 5, 6]},
        {"op": "door", "block": "oak_door", "pos": [3, 1, 0]},
    ],
}


class LabelClient:
    """Generation client answering by prompt label."""

    def __init__(self):
        self.payloads = []

    def invoke(self, payload, schema_hint=None):
        self.payloads.append(payload)
        if payload.label == "design_plan":
            data = PLAN
        elif payload.label == "compound_layout":
            data = {"components": [
                {"name": "north", "description": "small oak house", "offset": {"x": 0, "y": 0, "z": 0}},
                {"name": "south", "description": "small oak house", "offset": {"x": 0, "y": 0, "z": 12}},
            ]}
        else:
            data = {"steps": HOUSE["steps"]}
        return StructuredResult(data=copy.deepcopy(data), raw_text="", attempts=1)

    def usage(self):
        return {"calls": len(self.payloads)}


def _context(catalog_dir=None, client=None):
    settings = BuildSettings(routing=RoutingPolicy(catalog_dir=str(catalog_dir) if catalog_dir else None))
    return BuildContext(settings=settings, client=client if client is not None else LabelClient())


class TestExplicitAssetPath:
    """Tests for explicit asset detection."""

    def test_single_reference(self):
        assert explicit_asset_path(BuildRequest(text="load castle.schem here")) == "castle.schem"

    def test_ambiguous_reference(self):
        assert explicit_asset_path(BuildRequest(text="a.json or b.json")) is None

    def test_asset_path_wins(self):
        request = BuildRequest(text="load castle.schem", asset_path="tower.json")
        assert explicit_asset_path(request) == "tower.json"

    def test_no_reference(self):
        assert explicit_asset_path(BuildRequest(text="small oak cabin")) is None


class TestFastPath:
    """Tests for the pre-generation feasibility gate."""

    def test_impossible_height_rejected_without_calls(self):
        context = _context()

        result = RequestRouter(context).route("a tower 500 blocks tall")

        assert not result.success
        assert result.stage == "fast_path"
        assert result.errors[0].startswith("EXCEEDS_HEIGHT")
        assert result.error_kind == FailureCategory.ROUTING
        assert result.decisions == []
        assert context.client.payloads == []


class TestAssetPathway:
    """Tests for the explicit asset pathway (abort on failure)."""

    def test_load_failure_aborts(self):
        context = _context()

        result = RequestRouter(context).route("load missing_house.json")

        assert not result.success
        assert result.stage == "explicit_asset"
        assert result.error_kind == FailureCategory.ROUTING
        assert result.errors[0].startswith("Asset load failed")
        assert len(result.decisions) == 1
        assert result.decisions[0].failure_policy == FailurePolicy.ABORT
        assert result.decisions[0].succeeded is False
        assert context.client.payloads == []

    def test_load_success(self, tmp_path):
        path = tmp_path / "cabin.json"
        path.write_text(json.dumps(HOUSE))
        context = _context()

        result = RequestRouter(context).route(BuildRequest(text="build this", asset_path=str(path)))

        assert result.success
        assert result.pathway == RoutingPathway.EXPLICIT_ASSET
        assert result.blueprint.generation_method == "asset"
        assert context.client.payloads == []

    def test_resolved_from_catalog_dir(self, tmp_path):
        (tmp_path / "cabin.json").write_text(json.dumps(HOUSE))
        context = _context(catalog_dir=tmp_path)

        result = RequestRouter(context).route("load cabin.json")

        assert result.success
        assert result.pathway == RoutingPathway.EXPLICIT_ASSET


class TestCatalogPathway:
    """Tests for the catalog pathway (continue on failure)."""

    def test_match_loaded(self, tmp_path):
        (tmp_path / "stone_cottage.json").write_text(json.dumps(HOUSE))
        context = _context(catalog_dir=tmp_path)

        result = RequestRouter(context).route("build a stone cottage")

        assert result.success
        assert result.pathway == RoutingPathway.CATALOG_MATCH
        assert result.metadata["catalog_match"]["name"] == "stone_cottage"
        assert context.client.payloads == []

    def test_load_failure_continues_to_generation(self, tmp_path):
        (tmp_path / "stone_cottage.json").write_text("{broken")
        context = _context(catalog_dir=tmp_path)

        result = RequestRouter(context).route("build a stone cottage")

        assert result.success, result.errors
        assert result.pathway == RoutingPathway.GENERATION_V1
        assert [d.pathway for d in result.decisions] == [RoutingPathway.CATALOG_MATCH, RoutingPathway.GENERATION_V1]
        assert result.decisions[0].succeeded is False
        assert result.decisions[0].failure_policy == FailurePolicy.CONTINUE
        assert any("could not be loaded, generating instead" in w for w in result.warnings)
        assert len(context.client.payloads) == 2


class TestGenerationPathways:
    """Tests for V1/V2 selection and generation failures."""

    def test_default_v1(self):
        context = _context()

        result = RequestRouter(context).route("small oak house with a door")

        assert result.success, result.errors
        assert result.pathway == RoutingPathway.GENERATION_V1
        assert result.analysis.build_type == "house"
        assert result.metadata["pipeline"]["generation_calls"] == 2

    def test_landmark_selects_v2(self):
        context = _context()

        result = RequestRouter(context).route("build the eiffel tower")

        assert result.success, result.errors
        assert result.pathway == RoutingPathway.GENERATION_V2
        assert "landmark 'eiffel'" in result.decisions[0].reason
        assert result.blueprint.generation_method == "llm_v2"

    def test_session_toggle_selects_v2(self):
        context = _context()
        context.set_builder_version("v2")

        result = RequestRouter(context).route("small oak house with a door")

        assert result.pathway == RoutingPathway.GENERATION_V2
        assert result.decisions[0].reason == "builder v2 enabled"

    def test_analysis_failure_substitutes_default(self):
        class BrokenAnalyzer:
            def analyze(self, text):
                raise RuntimeError("analyzer crashed")

        context = _context()
        context.analyzer = BrokenAnalyzer()

        result = RequestRouter(context).route("small oak house with a door")

        assert result.success, result.errors
        assert result.analysis.build_type == "house"
        assert result.analysis.confidence == 0.0
        assert any("Analysis failed (analyzer crashed)" in w for w in result.warnings)
        assert result.metadata["analysis_failure_policy"] == "substitute_default"

    def test_generation_failure_reports_stage(self):
        context = BuildContext()

        result = RequestRouter(context).route("small oak house")

        assert not result.success
        assert result.stage == "generation_v1:plan"
        assert result.error_kind == FailureCategory.ROUTING
        assert result.errors == ["No generation client configured"]

    def test_malformed_plan_is_a_failed_result(self):
        class ListDimensionsClient(LabelClient):
            def invoke(self, payload, schema_hint=None):
                self.payloads.append(payload)
                return StructuredResult(data=dict(PLAN, dimensions=[7, 6, 7]), raw_text="", attempts=1)

        context = _context(client=ListDimensionsClient())

        result = RequestRouter(context).route("small oak house with a door")

        assert not result.success
        assert result.stage == "generation_v1:plan"
        assert result.error_kind == FailureCategory.VALIDATION
        assert "dimensions must be an object" in result.errors[0]

    def test_compound_request(self):
        context = _context()

        result = RequestRouter(context).route("a small village of houses")

        assert result.success, result.errors
        assert result.blueprint.build_type == "compound"
        assert result.metadata["compound"]["succeeded"] == ["north", "south"]

    def test_cancelled_before_analysis(self):
        context = _context()
        context.cancel()

        result = RequestRouter(context).route("small oak house")

        assert not result.success
        assert result.stage == "analyze"
        assert result.metadata["cancelled"] is True
        assert context.client.payloads == []

    def test_result_to_dict(self):
        result = RequestRouter(_context()).route("small oak house with a door")

        data = result.to_dict()

        assert data["success"] is True
        assert data["pathway"] == "generation_v1"
        assert data["decisions"][0]["failure_policy"] == "abort"

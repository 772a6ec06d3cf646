"""
Unit tests for the agentic-build command-line interface.
"""

import json

import pytest

from automation.cli import build_parser, main
from generation.core import Vec3


HOUSE = {
    "size": {"width": 7, "height": 6, "depth": 7},
    "palette": ["cobblestone", "oak_planks", "oak_stairs", "oak_door"],
    "buildType": "house",
    "steps": [
        {"op": "door", "block": "oak_door", "pos": [3, 1, 0]},
        {"op": "roof_gable", "block": "oak_stairs", "from": [0, 5, 0], "to": [6, 5, 6]},
        {"op": "hollow_box", "block": "oak_planks", "from": [0, 1, 0], "to": [6, 4, 6]},
        {"op": "fill", "block": "cobblestone", "from": [0, 0, 0], "to": [6, 0, 6]},
    ],
}


@pytest.fixture
def house_file(tmp_path):
    path = tmp_path / "house.json"
    path.write_text(json.dumps(HOUSE))
    return path


@pytest.fixture(autouse=True)
def no_api_keys(monkeypatch):
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "BUILDER_V2_ENABLED", "ASG_CATALOG_DIR"):
        monkeypatch.delenv(name, raising=False)


class TestParser:
    """Tests for argument parsing."""

    def test_origin_parsed(self):
        args = build_parser().parse_args(["plan-stations", "bp.json", "--origin", "100,64,-20"])
        assert args.origin == Vec3(100, 64, -20)
        assert args.provider == "openai"

    def test_bad_origin(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["plan-stations", "bp.json", "--origin", "1,2"])

    def test_no_command(self, capsys):
        assert main([]) == 1


class TestValidateCommand:
    """Tests for the validate command."""

    def test_valid_blueprint(self, house_file, capsys):
        assert main(["validate", str(house_file)]) == 0
        assert "Status: valid" in capsys.readouterr().out

    def test_invalid_blueprint(self, tmp_path, capsys):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"size": {"width": 3, "height": 3, "depth": 3}, "steps": []}))
        assert main(["validate", str(path)]) == 1
        assert "Status: invalid" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert main(["validate", str(tmp_path / "nope.json")]) == 1
        assert "cannot read" in capsys.readouterr().out


class TestOrderCommand:
    """Tests for the order and plan-stations commands."""

    def test_order_puts_foundation_first(self, house_file, capsys):
        assert main(["order", str(house_file)]) == 0
        out = capsys.readouterr().out
        assert out.index('"fill"') < out.index('"door"')
        assert "Moved" in out

    def test_plan_stations(self, house_file, capsys):
        assert main(["plan-stations", str(house_file), "--origin", "10,64,10"]) == 0
        out = capsys.readouterr().out
        assert '"station_count"' in out
        assert '"total_blocks"' in out

    def test_unloadable_blueprint(self, tmp_path):
        assert main(["order", str(tmp_path / "castle.schem")]) == 1


class TestGenerateCommand:
    """Tests for the generate command."""

    def test_explicit_asset(self, house_file, tmp_path, capsys):
        output = tmp_path / "out.json"

        code = main(["generate", "load my house", "--asset", str(house_file), "-O", str(output)])

        assert code == 0
        assert "Pathway: explicit_asset" in capsys.readouterr().out
        assert json.loads(output.read_text())["generationMethod"] == "asset"

    def test_no_client_fails_at_generation(self, capsys):
        code = main(["generate", "small oak house", "--no-stations"])

        assert code == 1
        assert "Failed at stage: generation_v1:plan" in capsys.readouterr().out

    def test_bad_settings_file(self, tmp_path, capsys):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert main(["order", "x.json", "--settings", str(path)]) == 1
        assert "cannot load settings" in capsys.readouterr().out

"""
Unit tests for the keyword prompt analyzer and the landmark registry.
"""

from automation.analyzer import (
    LOW_CONFIDENCE,
    MEDIUM_CONFIDENCE,
    PromptAnalyzer,
    detect_build_type,
    detect_features,
    detect_materials,
    parse_dimension_hints,
)
from automation.landmarks import LANDMARKS, find_landmark, is_known_landmark, scale_from_text
from generation.core.types import Dimensions


class TestPromptAnalyzer:
    """Tests for PromptAnalyzer.analyze."""

    def test_medieval_tower(self):
        analysis = PromptAnalyzer().analyze("medieval stone tower with a door")

        assert analysis.build_type == "tower"
        assert analysis.confidence > MEDIUM_CONFIDENCE
        assert analysis.theme == "medieval"
        assert "door" in analysis.features
        assert "stone" in analysis.materials
        assert analysis.prompt == "medieval stone tower with a door"

    def test_unmatched_uses_default(self):
        analysis = PromptAnalyzer(default_build_type="generic").analyze("something nice")
        assert analysis.build_type == "generic"
        assert analysis.confidence == LOW_CONFIDENCE

    def test_dimensions_raise_confidence(self):
        analysis = PromptAnalyzer().analyze("something 10x5x8")
        assert analysis.dimensions == Dimensions(10, 5, 8)
        assert analysis.confidence == MEDIUM_CONFIDENCE

    def test_empty_text(self):
        analysis = PromptAnalyzer().analyze("")
        assert analysis.build_type == "house"
        assert analysis.features == []


class TestKeywordHelpers:
    """Tests for the analyzer helper functions."""

    def test_specific_type_first(self):
        assert detect_build_type("a tree house in the woods")[0] == "treehouse"
        assert detect_build_type("wizard castle")[0] == "castle"

    def test_landmark_type(self):
        assert detect_build_type("build the eiffel tower") == ("landmark", 0.9)

    def test_word_boundaries(self):
        """Keywords inside longer words do not match."""
        assert "door" not in detect_features("outdoors picnic")

    def test_dimension_words(self):
        assert parse_dimension_hints("a wall 20 blocks long and 4 tall") == Dimensions(0, 4, 20)
        assert parse_dimension_hints("a wall") is None

    def test_materials_prefer_longest(self):
        assert detect_materials("dark oak cabin with stone brick base") == ["dark_oak", "stone_brick"]


class TestLandmarks:
    """Tests for landmark lookup."""

    def test_alias_match(self):
        assert find_landmark("Build the Leaning Tower of Pisa").key == "leaning_tower"
        assert find_landmark("lady liberty please").key == "statue_of_liberty"

    def test_longest_name_wins(self):
        """A specific alias beats a shorter alias of another landmark."""
        assert find_landmark("the sphinx of giza").key == "sphinx"
        assert find_landmark("pyramids of giza").key == "pyramid"

    def test_underscored_key(self):
        assert find_landmark("big_ben").key == "big_ben"

    def test_no_match(self):
        assert find_landmark("small oak cabin") is None
        assert find_landmark("") is None
        assert not is_known_landmark("castle")

    def test_bounds_scale(self):
        eiffel = LANDMARKS["eiffel"]
        assert eiffel.bounds() == Dimensions(50, 110, 50)
        assert eiffel.bounds(0.5) == Dimensions(25, 55, 25)

    def test_scale_words(self):
        assert scale_from_text("a small eiffel tower") == 0.5
        assert scale_from_text("massive-colosseum") == 2.0
        assert scale_from_text("eiffel tower") == 1.0

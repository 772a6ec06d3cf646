"""
Lightweight prompt analyzer.

Keyword-driven, no model calls. Extracts a build type, theme, dimension
hints, feature hints and material hints that guide the generation stages.
It never fails: an unmatched prompt yields the default build type with low
confidence.
"""

from typing import Dict, List, Optional, Tuple
import logging
import re

from generation.core.blueprint import Analysis
from generation.core.types import Dimensions
from automation.landmarks import find_landmark

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.6
LOW_CONFIDENCE = 0.3

# Checked in order: more specific types first
BUILD_TYPE_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("pixel_art", ("pixel art", "pixelart", "pixel", "sprite", "2d", "8-bit", "16-bit")),
    ("statue", ("statue", "sculpture", "figure", "bust", "effigy", "pikachu", "creeper",
                "character", "creature", "dragon", "dinosaur")),
    ("treehouse", ("treehouse", "tree house")),
    ("castle", ("castle", "fortress", "fort", "citadel", "stronghold", "keep", "palace")),
    ("ship", ("ship", "boat", "galleon", "yacht", "airship")),
    ("bridge", ("bridge", "overpass", "walkway", "viaduct", "aqueduct")),
    ("tower", ("tower", "lighthouse", "watchtower", "spire", "turret", "minaret")),
    ("tree", ("tree", "oak tree", "birch tree", "bonsai", "willow", "jungle tree")),
    ("wall", ("wall", "rampart", "palisade", "barrier")),
    ("house", ("house", "cottage", "cabin", "home", "hut", "shack", "bungalow", "villa")),
]

THEME_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "medieval": ("medieval", "historic", "traditional", "ancient", "old"),
    "modern": ("modern", "contemporary", "minimalist", "sleek", "futuristic"),
    "fantasy": ("fantasy", "magical", "enchanted", "fairy", "mystical", "wizard"),
    "rustic": ("rustic", "wooden", "cozy", "countryside", "rural", "log"),
    "japanese": ("japanese", "pagoda", "zen", "oriental", "shrine"),
}

FEATURE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "door": ("door", "entrance", "doorway", "gate"),
    "window": ("window", "windows", "glass"),
    "roof": ("roof", "rooftop", "attic"),
    "chimney": ("chimney", "fireplace"),
    "garden": ("garden", "yard", "flowers", "hedge"),
    "tower": ("tower", "turret", "spire"),
    "foundation": ("foundation", "basement", "plinth"),
}

MATERIAL_KEYWORDS = (
    "dark oak", "oak", "spruce", "birch", "jungle", "acacia", "cherry",
    "cobblestone", "stone brick", "stone", "deepslate", "brick", "sandstone",
    "quartz", "glass", "concrete", "terracotta", "iron", "gold",
)

_DIMS_XYZ = re.compile(r"(\d+)\s*[x×]\s*(\d+)\s*[x×]\s*(\d+)")
_DIM_WORD = re.compile(r"(\d+)\s*(?:blocks?\s*)?(tall|high|wide|long|deep)\b")
_DIM_AXIS = {"tall": "height", "high": "height", "wide": "width", "long": "depth", "deep": "depth"}


def _has_word(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def detect_build_type(text: str, default: str = "house") -> Tuple[str, float]:
    """
    Detect the build type of a prompt.

    Returns
    -------
    tuple
        (build_type, confidence)
    """
    lowered = text.lower()
    if find_landmark(lowered) is not None:
        return "landmark", HIGH_CONFIDENCE
    for build_type, keywords in BUILD_TYPE_KEYWORDS:
        for keyword in keywords:
            if _has_word(lowered, keyword):
                return build_type, HIGH_CONFIDENCE
    return default, LOW_CONFIDENCE


def detect_theme(text: str) -> Optional[str]:
    lowered = text.lower()
    for theme, keywords in THEME_KEYWORDS.items():
        if any(_has_word(lowered, k) for k in keywords):
            return theme
    return None


def parse_dimension_hints(text: str) -> Optional[Dimensions]:
    """
    Parse dimension hints.

    ``WxHxD`` gives all three axes; ``N blocks tall/wide/long`` fill the
    named axis. Axes not mentioned are 0.
    """
    lowered = text.lower()
    match = _DIMS_XYZ.search(lowered)
    if match:
        w, h, d = (int(v) for v in match.groups())
        return Dimensions(width=w, height=h, depth=d)
    axes = {"width": 0, "height": 0, "depth": 0}
    found = False
    for value, word in _DIM_WORD.findall(lowered):
        axes[_DIM_AXIS[word]] = int(value)
        found = True
    return Dimensions(**axes) if found else None


def detect_features(text: str) -> List[str]:
    lowered = text.lower()
    return [
        feature for feature, keywords in FEATURE_KEYWORDS.items()
        if any(_has_word(lowered, k) for k in keywords)
    ]


def detect_materials(text: str) -> List[str]:
    lowered = text.lower()
    found: List[str] = []
    for material in MATERIAL_KEYWORDS:
        if _has_word(lowered, material) and not any(material in f for f in found):
            found.append(material.replace(" ", "_"))
    return found


class PromptAnalyzer:
    """
    Keyword analyzer producing an Analysis.

    Parameters
    ----------
    default_build_type : str
        Build type used when nothing matches
    """

    def __init__(self, default_build_type: str = "house"):
        self.default_build_type = default_build_type

    def analyze(self, request_text: str) -> Analysis:
        """
        Analyze a request.

        Parameters
        ----------
        request_text : str
            Raw request text

        Returns
        -------
        Analysis
            Build type, confidence, theme, dimension, feature and material hints
        """
        text = request_text or ""
        build_type, confidence = detect_build_type(text, self.default_build_type)
        dimensions = parse_dimension_hints(text)
        if dimensions is not None and confidence < MEDIUM_CONFIDENCE:
            confidence = MEDIUM_CONFIDENCE
        analysis = Analysis(
            build_type=build_type,
            confidence=confidence,
            theme=detect_theme(text),
            dimensions=dimensions,
            features=detect_features(text),
            materials=detect_materials(text),
            prompt=text,
        )
        logger.info(f"Analyzed prompt: type={build_type} (confidence {confidence:.2f}), theme={analysis.theme}")
        return analysis


__all__ = [
    "PromptAnalyzer",
    "detect_build_type",
    "detect_theme",
    "parse_dimension_hints",
    "detect_features",
    "detect_materials",
    "BUILD_TYPE_KEYWORDS",
    "THEME_KEYWORDS",
    "FEATURE_KEYWORDS",
]

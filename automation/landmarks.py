"""
Landmark registry.

Known famous structures with aliases, default bounds, materials and
deterministic component hints. A match routes a request to the scene
(V2) generation path and seeds its prompt.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import logging
import re

from generation.core.types import Dimensions

logger = logging.getLogger(__name__)

SCALE_WORDS = {
    "tiny": 0.25,
    "small": 0.5,
    "medium": 1.0,
    "large": 1.5,
    "massive": 2.0,
}


@dataclass(frozen=True)
class Landmark:
    """A known structure with deterministic component hints."""
    key: str
    name: str
    aliases: Tuple[str, ...]
    default_bounds: Dimensions
    materials: Dict[str, str] = field(default_factory=dict)
    components: Tuple[str, ...] = ()

    def bounds(self, scale: float = 1.0) -> Dimensions:
        w, h, d = self.default_bounds.as_tuple()
        return Dimensions(
            width=max(int(round(w * scale)), 1),
            height=max(int(round(h * scale)), 1),
            depth=max(int(round(d * scale)), 1),
        )


LANDMARKS: Dict[str, Landmark] = {
    "eiffel": Landmark(
        key="eiffel",
        name="Eiffel Tower",
        aliases=("eiffel_tower", "eiffel tower", "the eiffel tower"),
        default_bounds=Dimensions(50, 110, 50),
        materials={"primary": "iron_block", "secondary": "iron_bars", "accent": "smooth_stone"},
        components=(
            "four tapering lattice legs (iron_block) meeting at the spire, base width 40, taper 0.15",
            "observation platforms (smooth_stone) at 33%, 66% and 100% of the height",
            "iron_bars cross bracing between the legs",
        ),
    ),
    "leaning_tower": Landmark(
        key="leaning_tower",
        name="Leaning Tower of Pisa",
        aliases=("leaning tower", "pisa", "tower of pisa", "leaning tower of pisa"),
        default_bounds=Dimensions(20, 60, 20),
        materials={"primary": "white_concrete", "secondary": "smooth_quartz", "accent": "chiseled_quartz_block"},
        components=(
            "hollow cylinder radius 8, height 55 (white_concrete)",
            "arcade rings of smooth_quartz every 8 blocks",
        ),
    ),
    "statue_of_liberty": Landmark(
        key="statue_of_liberty",
        name="Statue of Liberty",
        aliases=("liberty", "statue of liberty", "lady liberty"),
        default_bounds=Dimensions(25, 65, 25),
        materials={"primary": "oxidized_copper", "secondary": "weathered_copper", "pedestal": "stone_bricks"},
        components=(
            "pedestal 20x15x20 of stone_bricks at the origin",
            "humanoid figure 45 tall (oxidized_copper) centred on the pedestal top, raised torch arm",
        ),
    ),
    "big_ben": Landmark(
        key="big_ben",
        name="Big Ben",
        aliases=("big ben", "elizabeth tower", "clock tower", "westminster"),
        default_bounds=Dimensions(20, 80, 20),
        materials={"primary": "stone_bricks", "secondary": "chiseled_stone_bricks", "accent": "gold_block"},
        components=(
            "square tower 15x60x15 of stone_bricks",
            "clock faces (gold_block) on all four sides near y=50",
            "spire roof on top of the tower",
        ),
    ),
    "taj_mahal": Landmark(
        key="taj_mahal",
        name="Taj Mahal",
        aliases=("taj mahal", "taj", "the taj mahal"),
        default_bounds=Dimensions(65, 50, 65),
        materials={"primary": "white_concrete", "secondary": "smooth_quartz", "trim": "gold_block"},
        components=(
            "platform 60x3x60",
            "main hall 40x25x40 with a south door",
            "central dome radius 20 on the hall roof",
        ),
    ),
    "pyramid": Landmark(
        key="pyramid",
        name="Great Pyramid",
        aliases=("pyramids", "giza", "egyptian pyramid", "great pyramid", "pyramid of giza"),
        default_bounds=Dimensions(55, 52, 55),
        materials={"primary": "sandstone", "secondary": "smooth_sandstone", "accent": "chiseled_sandstone"},
        components=(
            "we_pyramid of sandstone, base centred at the footprint centre, height 26, with a roof_hip fallback",
        ),
    ),
    "colosseum": Landmark(
        key="colosseum",
        name="Colosseum",
        aliases=("colosseum", "coliseum", "roman colosseum", "the colosseum"),
        default_bounds=Dimensions(95, 30, 95),
        materials={"primary": "stone_bricks", "secondary": "cracked_stone_bricks", "accent": "mossy_stone_bricks"},
        components=(
            "outer hollow cylinder radius 45, height 25",
            "inner hollow cylinder radius 35, height 20",
        ),
    ),
    "sphinx": Landmark(
        key="sphinx",
        name="Great Sphinx",
        aliases=("sphinx", "great sphinx", "sphinx of giza"),
        default_bounds=Dimensions(20, 20, 60),
        materials={"primary": "sandstone", "secondary": "smooth_sandstone", "accent": "cut_sandstone"},
        components=(
            "lying lion body 14 wide, 10 tall, 45 long (sandstone)",
            "human head 10x12x10 raised at the front",
            "front paws extending 10 blocks forward",
        ),
    ),
}


def _normalize(text: str) -> str:
    return re.sub(r"[_\-]+", " ", text.lower()).strip()


def find_landmark(text: str) -> Optional[Landmark]:
    """
    Find a landmark named in a request.

    Parameters
    ----------
    text : str
        Request text or keyword

    Returns
    -------
    Landmark or None
        Landmark with the longest key or alias appearing in the text
    """
    if not text or not isinstance(text, str):
        return None
    normalized = _normalize(text)
    best: Optional[Tuple[str, Landmark]] = None
    for key, landmark in LANDMARKS.items():
        names = (_normalize(key),) + tuple(_normalize(a) for a in landmark.aliases)
        for name in names:
            if best is not None and len(name) <= len(best[0]):
                continue
            if re.search(rf"\b{re.escape(name)}\b", normalized):
                best = (name, landmark)
    if best is None:
        return None
    logger.debug(f"Landmark match '{best[1].key}' via '{best[0]}'")
    return best[1]


def is_known_landmark(text: str) -> bool:
    return find_landmark(text) is not None


def scale_from_text(text: str) -> float:
    """Scale factor named in a request ("small", "massive", ...), default 1.0."""
    words = set(_normalize(text or "").split())
    for word, factor in SCALE_WORDS.items():
        if word in words:
            return factor
    return 1.0


__all__ = [
    "Landmark",
    "LANDMARKS",
    "find_landmark",
    "is_known_landmark",
    "scale_from_text",
]

"""
Local structure catalog with fuzzy matching, and the asset loader.

The catalog indexes structure files in a directory, derives keywords from
their file names, and scores requests against them. The loader reads
blueprint JSON files; binary schematic formats are not decoded.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union
import json
import logging
import re
import time

from generation.core.blueprint import Blueprint
from generation.ops.sanitize import sanitize_blueprint

logger = logging.getLogger(__name__)

CATALOG_EXTENSIONS = (".json", ".schem", ".schematic", ".nbt")
BINARY_EXTENSIONS = (".schem", ".schematic", ".nbt")

# Request words that say nothing about the structure itself
FILLER_WORDS = {
    "build", "make", "create", "place", "construct", "generate", "me", "us",
    "a", "an", "the", "please", "can", "you", "some", "of",
}


class AssetLoadError(Exception):
    """Raised when a structure file cannot be loaded."""

    def __init__(self, path: Union[str, Path], message: str):
        super().__init__(f"{path}: {message}")
        self.path = str(path)


@dataclass
class CatalogEntry:
    """An indexed structure file."""
    name: str
    path: Path
    ext: str
    size: int = 0
    keywords: List[str] = field(default_factory=list)


@dataclass
class CatalogMatch:
    """Best fuzzy match for a request."""
    name: str
    path: Path
    score: float


def keywords_from_name(name: str) -> List[str]:
    return [k for k in re.split(r"[-_\s]+", name.lower()) if len(k) > 1]


def calculate_similarity(query: str, entry: CatalogEntry) -> float:
    """
    Score a query against a catalog entry in [0, 1].

    An exact name match (spaces read as ``_``, ``-`` or nothing) scores 1.0.
    Otherwise each query word scores 1 for an exact keyword and 0.5 for a
    partial containment, normalized by the number of query words.
    """
    lowered = query.lower().strip()
    words = [w for w in re.sub(r"[^a-z0-9\s]", "", lowered).split() if len(w) > 1]
    if not words:
        return 0.0

    name = entry.name.lower()
    if name in (re.sub(r"\s+", "_", lowered), re.sub(r"\s+", "-", lowered), re.sub(r"\s+", "", lowered)):
        return 1.0

    matches = 0.0
    for word in words:
        if word in entry.keywords:
            matches += 1.0
            continue
        for keyword in entry.keywords:
            if keyword in word or word in keyword:
                matches += 0.5
                break
    return matches / len(words)


def catalog_query(text: str) -> str:
    """Strip filler words from a request before matching."""
    words = [w for w in re.sub(r"[^a-z0-9\s_-]", " ", (text or "").lower()).split() if w not in FILLER_WORDS]
    return " ".join(words)


class SchematicCatalog:
    """
    Cached index over a directory of structure files.

    Parameters
    ----------
    directory : str or Path, optional
        Directory to scan. A missing directory yields an empty index.
    ttl_s : float
        Seconds before the index is rescanned
    clock : callable
        Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        ttl_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.directory = Path(directory) if directory else None
        self.ttl_s = ttl_s
        self._clock = clock
        self._index: Optional[List[CatalogEntry]] = None
        self._scanned_at = 0.0

    def scan(self) -> List[CatalogEntry]:
        """Scan the directory and return a fresh index."""
        if self.directory is None or not self.directory.is_dir():
            logger.info(f"Catalog folder not found: {self.directory}")
            return []

        entries = []
        for path in sorted(self.directory.iterdir()):
            ext = path.suffix.lower()
            if not path.is_file() or ext not in CATALOG_EXTENSIONS:
                continue
            entries.append(CatalogEntry(
                name=path.stem,
                path=path,
                ext=ext,
                size=path.stat().st_size,
                keywords=keywords_from_name(path.stem),
            ))
        logger.info(f"Indexed {len(entries)} catalog entries from {self.directory}")
        return entries

    def index(self) -> List[CatalogEntry]:
        """Cached index, rescanned once older than ttl_s."""
        now = self._clock()
        if self._index is not None and (now - self._scanned_at) < self.ttl_s:
            return self._index
        self._index = self.scan()
        self._scanned_at = now
        return self._index

    def find_best_match(self, text: str, threshold: float = 0.6) -> Optional[CatalogMatch]:
        """
        Find the best entry scoring at least ``threshold``.

        Parameters
        ----------
        text : str
            Request text
        threshold : float
            Minimum similarity

        Returns
        -------
        CatalogMatch or None
            Highest-scoring entry; the first one wins ties
        """
        query = catalog_query(text)
        best: Optional[CatalogMatch] = None
        for entry in self.index():
            score = calculate_similarity(query, entry)
            if score >= threshold and (best is None or score > best.score):
                best = CatalogMatch(name=entry.name, path=entry.path, score=score)
        if best is not None:
            logger.info(f"Catalog match: '{best.name}' (score {best.score:.2f})")
        return best

    def list_entries(self) -> List[str]:
        return [e.name for e in self.index()]


def load_asset(path: Union[str, Path]) -> Blueprint:
    """
    Load a structure file as a Blueprint.

    Parameters
    ----------
    path : str or Path
        Blueprint JSON file

    Returns
    -------
    Blueprint
        Sanitized blueprint tagged with generation method "asset"

    Raises
    ------
    AssetLoadError
        If the file is missing, unreadable, malformed, or in a binary
        schematic format
    """
    path = Path(path)
    ext = path.suffix.lower()
    if ext in BINARY_EXTENSIONS:
        raise AssetLoadError(path, f"binary format '{ext}' is not supported; export the structure as JSON")
    if not path.is_file():
        raise AssetLoadError(path, "file not found")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise AssetLoadError(path, f"cannot read blueprint JSON: {e}") from e
    if not isinstance(raw, dict):
        raise AssetLoadError(path, "blueprint JSON must be an object")

    sanitized, report = sanitize_blueprint(raw)
    if not sanitized.get("steps"):
        raise AssetLoadError(path, "blueprint has no usable steps")
    for warning in report.warnings:
        logger.warning(f"{path.name}: {warning}")

    try:
        blueprint = Blueprint.from_dict(sanitized)
    except (ValueError, TypeError) as e:
        raise AssetLoadError(path, f"invalid blueprint: {e}") from e

    logger.info(f"Loaded asset {path.name} ({len(blueprint.steps)} steps)")
    return Blueprint(
        size=blueprint.size,
        palette=blueprint.palette,
        steps=blueprint.steps,
        build_type=blueprint.build_type,
        generation_method="asset",
        metadata={**blueprint.metadata, "source": str(path)},
    )


__all__ = [
    "AssetLoadError",
    "CatalogEntry",
    "CatalogMatch",
    "SchematicCatalog",
    "calculate_similarity",
    "catalog_query",
    "keywords_from_name",
    "load_asset",
]

"""
Build context.

Explicit context object passed to the router, pipeline, decomposer and
executor at construction. Holds the read-only settings, the generation
client, the external collaborators, the cooperative cancel flag and the
per-session builder version toggle.
"""

from typing import Any, Dict, Optional
import logging
import threading

from asg_policies import BuildSettings
from automation.analyzer import PromptAnalyzer
from automation.catalog import SchematicCatalog

logger = logging.getLogger(__name__)

BUILDER_VERSIONS = ("v1", "v2")


class BuildContext:
    """
    Per-session state shared by the orchestration stages.

    Parameters
    ----------
    settings : BuildSettings, optional
        Configuration surface; defaults are used when omitted
    client : ResilientGenerationClient, optional
        Generation client. Stages that need a model call fail with a
        routing error when no client is configured.
    analyzer : object, optional
        Object with ``analyze(text) -> Analysis``
    catalog : SchematicCatalog, optional
        Local structure catalog
    reference_service : object, optional
        Object with ``describe(image_bytes, text) -> dict``
    bulk_available : bool
        Whether the bulk-region editing capability is available

    Examples
    --------
    >>> context = BuildContext(settings=BuildSettings.from_env(), client=client)
    >>> router = RequestRouter(context)
    >>> context.cancel()  # from another thread
    """

    def __init__(
        self,
        settings: Optional[BuildSettings] = None,
        client=None,
        analyzer=None,
        catalog: Optional[SchematicCatalog] = None,
        reference_service=None,
        bulk_available: bool = False,
    ):
        self.settings = settings or BuildSettings()
        self.client = client
        self.analyzer = analyzer or PromptAnalyzer(self.settings.routing.default_build_type)
        if catalog is None:
            catalog = SchematicCatalog(self.settings.routing.catalog_dir, self.settings.routing.catalog_ttl_s)
        self.catalog = catalog
        self.reference_service = reference_service
        self.bulk_available = bulk_available
        self._cancel_flag = threading.Event()
        self._builder_version: Optional[str] = None

    def cancel(self) -> None:
        """Request cooperative cancellation of the running build."""
        self._cancel_flag.set()
        logger.info("Build cancellation requested")

    def is_cancelled(self) -> bool:
        return self._cancel_flag.is_set()

    def reset_cancel(self) -> None:
        self._cancel_flag.clear()

    def set_builder_version(self, version: Optional[str]) -> None:
        """
        Set the session builder version ("v1" or "v2"); None clears it.

        Raises
        ------
        ValueError
            For an unknown version
        """
        if version is not None:
            version = version.lower()
            if version not in BUILDER_VERSIONS:
                raise ValueError(f"Unknown builder version '{version}', expected one of {BUILDER_VERSIONS}")
        self._builder_version = version
        logger.info(f"Session builder version set to {version or 'default'}")

    @property
    def builder_version(self) -> str:
        if self._builder_version is not None:
            return self._builder_version
        return "v2" if self.settings.routing.builder_v2_enabled else "v1"

    def use_v2(self) -> bool:
        """Whether V2 generation is explicitly opted into."""
        return self.builder_version == "v2"

    def usage(self) -> Dict[str, Any]:
        if self.client is None or not hasattr(self.client, "usage"):
            return {}
        return self.client.usage()


__all__ = ["BuildContext", "BUILDER_VERSIONS"]

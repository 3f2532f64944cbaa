"""Resource kind registry for kind-name dispatch.

This module provides the ResourceRegistry class that manages registration
and lookup of resource kinds by the document key they are listed under
(e.g. "gcs_buckets").
"""

import logging
from typing import Dict, List, Optional, Type

from .base import PolicyStep, Resource, ResourceState

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Registry for resource kinds with kind-name dispatch.

    Usage:
        @resource_kind
        class PubsubTopic(Resource):
            KIND = "pubsub_topics"
            ...

        # Later:
        kind_cls = ResourceRegistry.get_kind("pubsub_topics")
        if kind_cls:
            topic = decode(kind_cls, definition)
    """

    _kinds: Dict[str, Type[Resource]] = {}

    @classmethod
    def register(cls, kind_class: Type[Resource]) -> Type[Resource]:
        """Register a resource kind class.

        Args:
            kind_class: Resource subclass to register

        Returns:
            The kind class (unchanged)

        Raises:
            ValueError: If the class declares no KIND or the KIND is taken
                by another class
        """
        if not kind_class.KIND:
            raise ValueError(f"{kind_class.__name__} does not declare KIND")

        existing = cls._kinds.get(kind_class.KIND)
        if existing is not None and existing is not kind_class:
            raise ValueError(
                f"Kind '{kind_class.KIND}' already registered by {existing.__name__}"
            )

        cls._kinds[kind_class.KIND] = kind_class
        logger.debug(f"Registered resource kind {kind_class.__name__} for {kind_class.KIND}")
        return kind_class

    @classmethod
    def get_kind(cls, kind: str) -> Optional[Type[Resource]]:
        """Get the resource class for a document key.

        Args:
            kind: Document key (e.g., "gcs_buckets")

        Returns:
            Resource class or None if no kind registered
        """
        ensure_kinds_registered()
        return cls._kinds.get(kind)

    @classmethod
    def get_all_kinds(cls) -> List[str]:
        """Get all registered kind names, sorted."""
        ensure_kinds_registered()
        return sorted(cls._kinds)

    @classmethod
    def get_all_classes(cls) -> List[Type[Resource]]:
        ensure_kinds_registered()
        return [cls._kinds[kind] for kind in sorted(cls._kinds)]

    @classmethod
    def clear(cls) -> None:
        """Clear all registered kinds.

        Primarily for testing.
        """
        cls._kinds = {}


def resource_kind(cls: Type[Resource]) -> Type[Resource]:
    """Decorator to register a resource kind class."""
    return ResourceRegistry.register(cls)


def _register_all_kinds() -> None:
    """Import all kind modules to trigger registration."""
    from .bigquery import dataset  # noqa: F401
    from .compute import instance  # noqa: F401
    from .healthcare import dataset as healthcare_dataset  # noqa: F401
    from .pubsub import topic  # noqa: F401
    from .storage import gcs_bucket  # noqa: F401

    # Re-register in case the registry was cleared after the modules were
    # first imported.
    for kind_class in (
        dataset.BigqueryDataset,
        instance.GCEInstance,
        healthcare_dataset.HealthcareDataset,
        topic.PubsubTopic,
        gcs_bucket.GCSBucket,
    ):
        ResourceRegistry.register(kind_class)

    logger.debug(f"Registered {len(ResourceRegistry._kinds)} resource kinds")


_kinds_registered = False


def ensure_kinds_registered() -> None:
    """Ensure all resource kinds are registered.

    Called lazily on first lookup.
    """
    global _kinds_registered
    if not _kinds_registered:
        _kinds_registered = True
        _register_all_kinds()


__all__ = [
    "PolicyStep",
    "Resource",
    "ResourceRegistry",
    "ResourceState",
    "ensure_kinds_registered",
    "resource_kind",
]

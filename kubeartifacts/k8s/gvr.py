"""Resolution of free-text resource names into group/version/resource."""

from typing import Any, Dict, List, Optional

from ..errors import UnknownResourceError
from ..model.kubernetes import ResourceIdentity
from ..utils.logger import get_logger
from .resources import (
    DEFAULT_CLUSTER_RESOURCES,
    DEFAULT_NAMESPACED_RESOURCES,
    is_cluster_scoped,
)

logger = get_logger(__name__)


class GvrResolver:
    """Maps kind, plural, singular or short names onto ResourceIdentity.

    Discovery is read from the cluster on every resolve_all call; nothing is
    cached between calls.
    """

    def __init__(self, cluster):
        self.cluster = cluster

    def resolve(self, name: str, discovery: Optional[List[Dict[str, Any]]] = None) -> ResourceIdentity:
        """Resolve one resource name, raising UnknownResourceError if no API serves it."""
        if discovery is None:
            discovery = self.cluster.api_resources()

        wanted = name.strip().lower()
        group_hint = ""
        if "." in wanted:
            # deployments.apps style
            wanted, group_hint = wanted.split(".", 1)

        for record in discovery:
            if group_hint and record.get("group") != group_hint:
                continue
            names = {
                record.get("name", "").lower(),
                record.get("singularName", "").lower(),
                record.get("kind", "").lower(),
            }
            names.update(short.lower() for short in record.get("shortNames", []))
            if wanted in names:
                return ResourceIdentity(
                    group=record.get("group", ""),
                    version=record.get("version", ""),
                    resource=record.get("name", ""),
                    kind=record.get("kind") or None,
                    namespaced=record.get("namespaced"),
                )

        raise UnknownResourceError(f"the server doesn't have a resource type \"{name}\"")

    def resolve_all(self, namespaced: bool, resources: Optional[List[str]] = None) -> List[ResourceIdentity]:
        """Resolve the caller's resources, or the default set when none are given."""
        if not resources:
            resources = list(DEFAULT_NAMESPACED_RESOURCES)
            if not namespaced:
                resources.extend(DEFAULT_CLUSTER_RESOURCES)

        discovery = self.cluster.api_resources()
        identities = [self.resolve(name, discovery) for name in resources]
        logger.debug(f"Resolved {len(identities)} resource types")
        return identities

    @staticmethod
    def is_cluster_scoped(gvr: ResourceIdentity) -> bool:
        return is_cluster_scoped(gvr.resource)

"""Kubernetes resource scanner."""

import copy
import json
from typing import Any, Dict, List, Optional

from ..core.artifacts import from_resource
from ..errors import ForbiddenError, NotFoundError
from ..model.config import ScanOptions
from ..model.kubernetes import Artifact, ResourceIdentity
from ..utils.logger import get_logger
from .auth import CredentialResolver
from .gvr import GvrResolver
from .resources import (
    KIND_NODE,
    LAST_APPLIED_ANNOTATION,
    is_cluster_scoped,
    is_node_ready,
    is_owned_by_builtin,
)

logger = get_logger(__name__)


def filter_resources(include: List[str], exclude: List[str], key: str) -> bool:
    """Return True when key is filtered out.

    Include and exclude lists are mutually exclusive: when both or neither
    are set nothing is filtered.
    """
    if bool(include) == bool(exclude):
        return False
    key = key.lower()
    if exclude:
        return key in {value.lower() for value in exclude}
    return key not in {value.lower() for value in include}


class ResourceScanner:
    """Scans Kubernetes cluster for artifacts."""

    def __init__(
        self,
        cluster,
        options: Optional[ScanOptions] = None,
        resolver: Optional[GvrResolver] = None,
        credentials: Optional[CredentialResolver] = None,
    ):
        self.cluster = cluster
        self.options = options or ScanOptions()
        self.resolver = resolver or GvrResolver(cluster)
        self.credentials = credentials or CredentialResolver(cluster)

    def scan(self) -> List[Artifact]:
        """Scan cluster for all artifacts."""
        logger.info("Starting cluster scan")

        gvrs = self.resolver.resolve_all(self.options.namespaced, self.options.resources)
        logger.info(f"Found {len(gvrs)} resource types to scan")

        all_artifacts = []
        for gvr in gvrs:
            all_artifacts.extend(self._scan_resource_type(gvr))

        logger.info(f"Scan complete. Found {len(all_artifacts)} artifacts")
        return all_artifacts

    def _list(self, gvr: ResourceIdentity) -> Optional[List[Dict[str, Any]]]:
        namespace = None
        if not is_cluster_scoped(gvr.resource) and self.options.namespace:
            namespace = self.options.namespace
        try:
            return self.cluster.list_resources(gvr, namespace)
        except (NotFoundError, ForbiddenError) as e:
            logger.error(f"Unable to list resources for {gvr}: {e}")
            return None

    def _scan_resource_type(self, gvr: ResourceIdentity) -> List[Artifact]:
        """Scan all objects of a specific resource type."""
        logger.debug(f"Scanning {gvr.resource} resources")

        items = self._list(gvr)
        if items is None:
            return []

        artifacts = []
        for item in items:
            if self._should_skip(item):
                continue

            obj = self._last_applied(item)
            if obj is None:
                continue
            auths = self.credentials.auths_for_resource(obj)
            artifacts.append(from_resource(obj, auths))

        logger.debug(f"Found {len(artifacts)} {gvr.resource} artifacts")
        return artifacts

    def _should_skip(self, obj: Dict[str, Any]) -> bool:
        kind = obj.get("kind", "")
        metadata = obj.get("metadata") or {}

        if kind == KIND_NODE:
            if not is_node_ready(obj):
                logger.debug(f"Skipping node {metadata.get('name')}: not ready")
                return True
        elif not self.options.resources and is_owned_by_builtin(obj):
            return True

        if self.options.exclude_owned and is_owned_by_builtin(obj):
            return True

        if filter_resources(self.options.include_kinds, self.options.exclude_kinds, kind):
            return True

        return filter_resources(
            self.options.include_namespaces,
            self.options.exclude_namespaces,
            metadata.get("namespace", ""),
        )

    def _last_applied(self, obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the last applied manifest when kubectl recorded one.

        Returns None when the recorded manifest cannot be used.
        """
        metadata = obj.get("metadata") or {}
        manifest = (metadata.get("annotations") or {}).get(LAST_APPLIED_ANNOTATION)
        if not manifest:
            return obj

        try:
            applied = json.loads(manifest)
        except ValueError as e:
            logger.warning(
                f"Skipping unparsable last-applied configuration of "
                f"{obj.get('kind')} {metadata.get('name')}: {e}"
            )
            return None
        if not isinstance(applied, dict):
            logger.warning(f"Skipping {metadata.get('name')}: last-applied configuration is not an object")
            return None

        applied = copy.deepcopy(applied)
        applied_metadata = applied.setdefault("metadata", {})
        if not applied_metadata.get("namespace") and metadata.get("namespace"):
            applied_metadata["namespace"] = metadata["namespace"]
        applied.setdefault("kind", obj.get("kind", ""))
        return applied

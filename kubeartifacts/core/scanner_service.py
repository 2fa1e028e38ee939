"""Artifact service: discovery, node collection and BOM behind one facade."""

import json
from typing import Dict, List, Optional

from .artifacts import from_resource
from .bom import BomAssembler, bom_to_artifacts
from ..errors import KubeArtifactsError
from ..jobs.collector import NodeCollector, ignore_node_by_labels
from ..k8s.auth import CredentialResolver
from ..k8s.gvr import GvrResolver
from ..k8s.resources import KIND_NODE, is_cluster_scoped
from ..k8s.scanner import ResourceScanner, filter_resources
from ..model.config import NodeCollectorOptions, ScanOptions
from ..model.kubernetes import Artifact
from ..utils.logger import get_logger

logger = get_logger(__name__)

KIND_NODE_INFO = "NodeInfo"


class ArtifactService:
    """Lists scannable artifacts of a cluster."""

    def __init__(self, cluster, options: Optional[ScanOptions] = None):
        self.cluster = cluster
        self.options = options or ScanOptions()
        self.node_errors: Dict[str, str] = {}

    def namespace(self, namespace: str) -> "ArtifactService":
        self.options = self.options.copy(update={"namespace": namespace})
        return self

    def all_namespaces(self) -> "ArtifactService":
        self.options = self.options.copy(update={"all_namespaces": True})
        return self

    def resources(self, resources: str) -> "ArtifactService":
        """Restrict discovery to a comma separated list of resources."""
        if not resources:
            return self
        names = [r.strip() for r in resources.split(",") if r.strip()]
        self.options = self.options.copy(update={"resources": names})
        return self

    def list_artifacts(self) -> List[Artifact]:
        """Discover artifacts; whole-cluster scans also include the BOM."""
        artifacts = ResourceScanner(self.cluster, self.options).scan()
        if not self.options.namespaced:
            artifacts.extend(self.list_cluster_bom_info())
        return artifacts

    def list_artifacts_and_node_info(
        self,
        collector_options: Optional[NodeCollectorOptions] = None,
        collector: Optional[NodeCollector] = None,
    ) -> List[Artifact]:
        """Discover artifacts and add a NodeInfo artifact per collected node.

        A node whose collection fails is logged and recorded in node_errors;
        the other artifacts are still returned.
        """
        artifacts = self.list_artifacts()
        collector = collector or NodeCollector(self.cluster, collector_options)
        ignore_labels = collector.options.ignore_labels
        self.node_errors = {}

        nodes = [a for a in artifacts if a.kind == KIND_NODE]
        try:
            for node in nodes:
                if ignore_node_by_labels(node.labels, ignore_labels):
                    logger.info(f"Skipping node {node.name}: matches ignore labels")
                    continue
                try:
                    output = collector.apply_and_collect(node.name)
                    info = json.loads(output)
                except (KubeArtifactsError, ValueError) as e:
                    logger.error(f"Failed to collect node info from {node.name}: {e}")
                    self.node_errors[node.name] = str(e)
                    continue
                artifacts.append(Artifact(kind=KIND_NODE_INFO, name=node.name, raw_resource=info))
        finally:
            collector.cleanup()

        return artifacts

    def list_cluster_bom_info(self) -> List[Artifact]:
        """Return the cluster BOM as artifacts, honouring namespace and node filters."""
        bom = BomAssembler(self.cluster).assemble()
        bom.components = [
            c
            for c in bom.components
            if not filter_resources(
                self.options.include_namespaces, self.options.exclude_namespaces, c.namespace
            )
        ]
        if "node" in [k.lower() for k in self.options.exclude_kinds]:
            bom.nodes_info = []
        return bom_to_artifacts(bom)

    def get_artifact(self, kind: str, name: str) -> Artifact:
        """Fetch one object by kind and name and return it as an artifact."""
        gvr = GvrResolver(self.cluster).resolve(kind)
        namespace = None
        if not is_cluster_scoped(gvr.resource) and gvr.namespaced is not False:
            namespace = self.options.namespace or self.cluster.current_namespace()
        obj = self.cluster.get_resource(gvr, name, namespace)
        obj.setdefault("kind", gvr.kind or kind)
        auths = CredentialResolver(self.cluster).auths_for_resource(obj)
        artifact = from_resource(obj, auths)
        logger.info(f"Fetched {artifact.display_name} with {len(artifact.images)} images")
        return artifact

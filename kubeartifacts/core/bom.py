"""Cluster bill of materials."""

from typing import Any, Dict, List, Optional

from ..errors import ClusterError, NotFoundError
from ..model.bom import BomResult, Component, Container, NodeInfo
from ..model.kubernetes import Artifact
from ..utils.logger import get_logger
from ..utils.reference import parse_reference

logger = get_logger(__name__)

CLUSTER_ID = "k8s.io/kubernetes"

KIND_CONTROL_PLANE_COMPONENTS = "ControlPlaneComponents"
KIND_NODE_COMPONENTS = "NodeComponents"
KIND_CLUSTER = "Cluster"

# namespace -> label key; an empty namespace means all namespaces
CONTROL_PLANE_LABELS = {"": "component"}
OPENSHIFT_LABELS = {
    "openshift-kube-apiserver": "apiserver",
    "openshift-kube-controller-manager": "kube-controller-manager",
    "openshift-kube-scheduler": "scheduler",
    "openshift-etcd": "etcd",
}
ADDON_LABELS = {"kube-system": "k8s-app"}

OPENSHIFT_MARKER_NAMESPACE = "openshift-kube-apiserver"

UPSTREAM_ORG_NAME = {
    "k8s.io": "controller-manager,kubelet,apiserver,kubectl,kubernetes,kube-scheduler,kube-proxy",
    "sigs.k8s.io": "secrets-store-csi-driver",
    "go.etcd.io": "etcd/v3",
}

UPSTREAM_REPO_NAME = {
    "kube-controller-manager": "controller-manager",
    "kubelet": "kubelet",
    "kube-apiserver": "apiserver",
    "kubectl": "kubectl",
    "kubernetes": "kubernetes",
    "kube-scheduler": "kube-scheduler",
    "kube-proxy": "kube-proxy",
    "api server": "apiserver",
    "etcd": "etcd/v3",
    "secrets-store-csi-driver": "secrets-store-csi-driver",
}

CORE_COMPONENT_TYPE = {
    "controller-manager": "controlPlane",
    "apiserver": "controlPlane",
    "kube-scheduler": "controlPlane",
    "etcd/v3": "controlPlane",
    "kube-proxy": "node",
}

CONTROL_PLANE_ROLE_LABELS = (
    "node-role.kubernetes.io/control-plane",
    "node-role.kubernetes.io/master",
)


def trim_version(version: str) -> str:
    return version.strip("vV").strip()


def upstream_org(component: str) -> str:
    for org, components in UPSTREAM_ORG_NAME.items():
        if component.lower() in (c.strip() for c in components.split(",")):
            return org
    return ""


def upstream_repo(component: str) -> str:
    return UPSTREAM_REPO_NAME.get(component, component)


def image_id(status_image_id: str, image: str) -> str:
    """Return the sha256 digest a container status reports for its image.

    Runtimes report imageID either as a bare digest or as
    docker-pullable://repo@sha256:...; when it is empty the digest part
    of the image itself is used.
    """
    if status_image_id:
        if "@" in status_image_id:
            return status_image_id.split("@", 1)[1]
        return status_image_id
    parts = image.split("@")
    if len(parts) > 1 and parts[1].startswith("sha256"):
        return parts[1]
    return ""


def container_from_status(status: Dict[str, Any]) -> Optional[Container]:
    """Build a Container from a pod container status; raise ValueError on bad images."""
    image = status.get("image", "")
    reference = parse_reference(image)
    digest = image_id(status.get("imageID", ""), image)
    if not digest:
        return None

    return Container(
        id=f"{reference.repository}:{reference.identifier}",
        version=reference.identifier,
        repository=reference.repository,
        registry=reference.registry,
        digest=digest.split(":", 1)[-1],
    )


def pod_component(pod: Dict[str, Any], label_key: str) -> Component:
    """Describe a component pod selected by label_key."""
    metadata = pod.get("metadata") or {}
    containers = []
    for status in (pod.get("status") or {}).get("containerStatuses") or []:
        container = container_from_status(status)
        if container is not None:
            containers.append(container)

    properties = {}
    labels = metadata.get("labels") or {}
    component_value = labels.get(label_key, "")
    if label_key in labels:
        properties["Name"] = metadata.get("name", "")

    repo_name = upstream_repo(component_value)
    if repo_name in CORE_COMPONENT_TYPE:
        properties["Type"] = CORE_COMPONENT_TYPE[repo_name]

    org = upstream_org(repo_name)
    name = f"{org}/{repo_name}" if org else repo_name

    version = next((c.version for c in containers if component_value in c.id), "")
    return Component(
        namespace=metadata.get("namespace", ""),
        name=name,
        version=trim_version(version),
        properties=properties,
        containers=containers,
    )


def node_info(node: Dict[str, Any]) -> NodeInfo:
    """Describe a node's versions and role."""
    metadata = node.get("metadata") or {}
    labels = metadata.get("labels") or {}
    info = (node.get("status") or {}).get("nodeInfo") or {}

    role = "master" if any(label in labels for label in CONTROL_PLANE_ROLE_LABELS) else "worker"
    return NodeInfo(
        node_name=metadata.get("name", ""),
        kubelet_version=info.get("kubeletVersion", ""),
        container_runtime_version=info.get("containerRuntimeVersion", ""),
        os_image=info.get("osImage", ""),
        kube_proxy_version=info.get("kubeProxyVersion", ""),
        properties={
            "NodeRole": role,
            "HostName": metadata.get("name", ""),
            "KernelVersion": info.get("kernelVersion", ""),
            "OperatingSystem": info.get("operatingSystem", ""),
            "Architecture": info.get("architecture", ""),
        },
    )


class BomAssembler:
    """Builds the cluster bill of materials from live pods and nodes."""

    def __init__(self, cluster):
        self.cluster = cluster

    def is_openshift(self) -> bool:
        try:
            self.cluster.get_namespace(OPENSHIFT_MARKER_NAMESPACE)
        except NotFoundError:
            return False
        except ClusterError as e:
            logger.debug(f"Cannot check for OpenShift: {e}")
        return True

    def collect_components(self, selectors: Dict[str, str]) -> List[Component]:
        components = []
        for namespace, label_key in selectors.items():
            try:
                pods = self.cluster.list_pods(namespace or None, label_selector=label_key)
            except ClusterError as e:
                logger.warning(f"Skipping components labelled {label_key}: {e}")
                continue
            for pod in pods:
                try:
                    components.append(pod_component(pod, label_key))
                except ValueError as e:
                    name = (pod.get("metadata") or {}).get("name")
                    logger.debug(f"Skipping pod {name}: {e}")
        return components

    def collect_nodes(self, components: List[Component]) -> List[NodeInfo]:
        keys = [c.image_key for component in components for c in component.containers]
        nodes = []
        for node in self.cluster.list_nodes():
            info = node_info(node)
            for image in (node.get("status") or {}).get("images") or []:
                names = image.get("names") or []
                info.images.extend(key for key in keys if key in names)
            nodes.append(info)
        return nodes

    def assemble(self) -> BomResult:
        """Collect components, node info and the cluster summary."""
        logger.info("Collecting cluster bill of materials")
        selectors = OPENSHIFT_LABELS if self.is_openshift() else CONTROL_PLANE_LABELS
        components = self.collect_components(selectors)
        components.extend(self.collect_components(ADDON_LABELS))
        nodes = self.collect_nodes(components)

        version = self.cluster.server_version().get("gitVersion", "")
        return BomResult(
            id=CLUSTER_ID,
            type="Cluster",
            version=trim_version(version),
            properties={"Name": self.cluster.cluster_name(), "Type": "cluster"},
            components=components,
            nodes_info=nodes,
        )


def bom_to_artifacts(bom: BomResult) -> List[Artifact]:
    """Convert a BomResult into ControlPlaneComponents, NodeComponents and Cluster artifacts."""
    artifacts = [
        Artifact(
            kind=KIND_CONTROL_PLANE_COMPONENTS,
            namespace=component.namespace,
            name=component.name,
            raw_resource=component.dict(by_alias=True),
        )
        for component in bom.components
    ]
    artifacts.extend(
        Artifact(
            kind=KIND_NODE_COMPONENTS,
            name=node.node_name,
            raw_resource=node.dict(by_alias=True),
        )
        for node in bom.nodes_info
    )

    summary = BomResult(
        id=bom.id, type="ClusterInfo", version=bom.version, properties=bom.properties
    )
    artifacts.append(
        Artifact(
            kind=KIND_CLUSTER,
            name=bom.id,
            raw_resource=summary.dict(by_alias=True, exclude={"components", "nodes_info"}),
        )
    )
    return artifacts

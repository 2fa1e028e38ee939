"""Static knowledge about Kubernetes kinds and resources."""

from typing import Any, Dict, Optional, Tuple

from ..utils.nested import nested_map

KIND_POD = "Pod"
KIND_JOB = "Job"
KIND_CRONJOB = "CronJob"
KIND_REPLICASET = "ReplicaSet"
KIND_REPLICATION_CONTROLLER = "ReplicationController"
KIND_STATEFULSET = "StatefulSet"
KIND_DAEMONSET = "DaemonSet"
KIND_DEPLOYMENT = "Deployment"
KIND_NODE = "Node"

DEFAULT_NAMESPACED_RESOURCES = [
    "deployments",
    "pods",
    "replicasets",
    "replicationcontrollers",
    "statefulsets",
    "daemonsets",
    "cronjobs",
    "jobs",
    "services",
    "serviceaccounts",
    "configmaps",
    "roles",
    "rolebindings",
    "networkpolicies",
    "ingresses",
    "resourcequotas",
    "limitranges",
]

DEFAULT_CLUSTER_RESOURCES = [
    "clusterroles",
    "clusterrolebindings",
    "nodes",
]

CLUSTER_SCOPED_RESOURCES = frozenset(DEFAULT_CLUSTER_RESOURCES)

BUILTIN_OWNER_KINDS = frozenset(
    {
        KIND_REPLICASET,
        KIND_REPLICATION_CONTROLLER,
        KIND_STATEFULSET,
        KIND_DEPLOYMENT,
        KIND_CRONJOB,
        KIND_DAEMONSET,
        KIND_JOB,
    }
)

POD_TEMPLATE_PATH: Tuple[str, ...] = ("spec", "template", "spec")

# Where the pod spec lives for each workload kind. Kinds not listed use
# POD_TEMPLATE_PATH when extracting images.
POD_SPEC_PATHS: Dict[str, Tuple[str, ...]] = {
    KIND_POD: ("spec",),
    KIND_CRONJOB: ("spec", "jobTemplate", "spec", "template", "spec"),
    KIND_DEPLOYMENT: POD_TEMPLATE_PATH,
    KIND_REPLICASET: POD_TEMPLATE_PATH,
    KIND_REPLICATION_CONTROLLER: POD_TEMPLATE_PATH,
    KIND_STATEFULSET: POD_TEMPLATE_PATH,
    KIND_DAEMONSET: POD_TEMPLATE_PATH,
    KIND_JOB: POD_TEMPLATE_PATH,
}

CONTAINER_LIST_FIELDS = ("containers", "ephemeralContainers", "initContainers")

LAST_APPLIED_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"


def is_cluster_scoped(resource: str) -> bool:
    """Return True for the resources listed without a namespace."""
    return resource in CLUSTER_SCOPED_RESOURCES


def is_workload(kind: str) -> bool:
    return kind in POD_SPEC_PATHS


def container_base_path(kind: str) -> Tuple[str, ...]:
    """Return the path of the pod spec that holds containers for kind."""
    return POD_SPEC_PATHS.get(kind, POD_TEMPLATE_PATH)


def workload_pod_spec(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the pod spec of a workload object, or None for other kinds."""
    kind = obj.get("kind", "")
    if not is_workload(kind):
        return None
    return nested_map(obj, *POD_SPEC_PATHS[kind])


def is_owned_by_builtin(obj: Dict[str, Any]) -> bool:
    """Return True when a built-in workload controller owns obj."""
    owners = (obj.get("metadata") or {}).get("ownerReferences") or []
    return any(owner.get("kind") in BUILTIN_OWNER_KINDS for owner in owners)


def is_node_ready(obj: Dict[str, Any]) -> bool:
    conditions = (obj.get("status") or {}).get("conditions") or []
    for condition in conditions:
        if condition.get("type") == "Ready":
            return condition.get("status") == "True"
    return False

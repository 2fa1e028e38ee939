"""Test configuration and fixtures."""

import copy
import threading
from typing import Any, Dict, List, Optional

import pytest

from kubeartifacts.errors import AlreadyExistsError, ForbiddenError, NotFoundError
from kubeartifacts.k8s.platform import platform_from_version
from kubeartifacts.model.kubernetes import ResourceIdentity

JOB_UID = "3f0c9a52-7d1e-4b8a-9c61-2a5e0d4f7b10"


def _record(group, version, name, kind, namespaced=True, short_names=()):
    return {
        "group": group,
        "version": version,
        "name": name,
        "kind": kind,
        "namespaced": namespaced,
        "singularName": kind.lower(),
        "shortNames": list(short_names),
    }


DISCOVERY = [
    _record("", "v1", "pods", "Pod", short_names=["po"]),
    _record("", "v1", "services", "Service", short_names=["svc"]),
    _record("", "v1", "serviceaccounts", "ServiceAccount", short_names=["sa"]),
    _record("", "v1", "configmaps", "ConfigMap", short_names=["cm"]),
    _record("", "v1", "secrets", "Secret"),
    _record("", "v1", "replicationcontrollers", "ReplicationController", short_names=["rc"]),
    _record("", "v1", "resourcequotas", "ResourceQuota", short_names=["quota"]),
    _record("", "v1", "limitranges", "LimitRange", short_names=["limits"]),
    _record("", "v1", "namespaces", "Namespace", namespaced=False, short_names=["ns"]),
    _record("", "v1", "nodes", "Node", namespaced=False, short_names=["no"]),
    _record("apps", "v1", "deployments", "Deployment", short_names=["deploy"]),
    _record("apps", "v1", "replicasets", "ReplicaSet", short_names=["rs"]),
    _record("apps", "v1", "statefulsets", "StatefulSet", short_names=["sts"]),
    _record("apps", "v1", "daemonsets", "DaemonSet", short_names=["ds"]),
    _record("batch", "v1", "jobs", "Job"),
    _record("batch", "v1", "cronjobs", "CronJob", short_names=["cj"]),
    _record("rbac.authorization.k8s.io", "v1", "roles", "Role"),
    _record("rbac.authorization.k8s.io", "v1", "rolebindings", "RoleBinding"),
    _record("rbac.authorization.k8s.io", "v1", "clusterroles", "ClusterRole", namespaced=False),
    _record(
        "rbac.authorization.k8s.io", "v1", "clusterrolebindings", "ClusterRoleBinding", namespaced=False
    ),
    _record("networking.k8s.io", "v1", "networkpolicies", "NetworkPolicy", short_names=["netpol"]),
    _record("networking.k8s.io", "v1", "ingresses", "Ingress", short_names=["ing"]),
]


class FakeWatchStream:
    """Yields scripted events, then blocks until stopped."""

    def __init__(self, events: Optional[List[Dict[str, Any]]] = None):
        self.events = list(events or [])
        self._stopped = threading.Event()

    def __iter__(self):
        for event in self.events:
            if self._stopped.is_set():
                return
            yield copy.deepcopy(event)
        self._stopped.wait()

    def stop(self) -> None:
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()


def _matches_selector(labels: Dict[str, str], selector: Optional[str]) -> bool:
    if not selector:
        return True
    for term in selector.split(","):
        key, sep, value = term.partition("=")
        if sep and labels.get(key) != value:
            return False
        if not sep and key not in labels:
            return False
    return True


class FakeCluster:
    """In-memory gateway that records what the code under test asks for."""

    def __init__(self):
        self.discovery: List[Dict[str, Any]] = copy.deepcopy(DISCOVERY)
        self.objects: Dict[str, List[Dict[str, Any]]] = {}
        self.forbidden: set = set()
        self.service_accounts: Dict[tuple, Dict[str, Any]] = {}
        self.secrets: Dict[tuple, Dict[str, Any]] = {}
        self.pods: List[Dict[str, Any]] = []
        self.nodes: List[Dict[str, Any]] = []
        self.namespaces: set = set()
        self.git_version = "v1.27.4"
        self.name = "test-cluster"
        self.node_configs: Dict[str, Dict[str, Any]] = {}
        self.logs = '{"type": "NodeInfo"}'
        self.job_events: List[Dict[str, Any]] = []
        self.events: List[Dict[str, Any]] = []
        self.created_jobs: List[Dict[str, Any]] = []
        self.deleted_jobs: List[tuple] = []
        self.deleted_namespaces: List[str] = []
        self.log_requests: List[Dict[str, Any]] = []
        self.list_calls: List[tuple] = []
        self.streams: List[FakeWatchStream] = []

    # Context and discovery

    def current_context(self) -> str:
        return "test-context"

    def current_namespace(self) -> str:
        return "default"

    def cluster_name(self) -> str:
        return self.name

    def server_version(self) -> Dict[str, Any]:
        return {"gitVersion": self.git_version}

    def platform(self):
        return platform_from_version(self.git_version)

    def api_resources(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.discovery)

    def list_resources(self, gvr: ResourceIdentity, namespace: Optional[str] = None):
        self.list_calls.append((gvr.resource, namespace))
        if gvr.resource in self.forbidden:
            raise ForbiddenError(f"listing {gvr}: 403 Forbidden", status=403, reason="Forbidden")
        items = copy.deepcopy(self.objects.get(gvr.resource, []))
        if namespace:
            items = [i for i in items if (i.get("metadata") or {}).get("namespace") == namespace]
        return items

    def get_resource(self, gvr: ResourceIdentity, name: str, namespace: Optional[str] = None):
        for item in self.objects.get(gvr.resource, []):
            metadata = item.get("metadata") or {}
            if metadata.get("name") != name:
                continue
            if namespace and metadata.get("namespace") != namespace:
                continue
            return copy.deepcopy(item)
        raise NotFoundError(f"getting {gvr} {name}: 404 Not Found", status=404, reason="NotFound")

    # Core objects

    def get_service_account(self, namespace: str, name: str) -> Dict[str, Any]:
        try:
            return copy.deepcopy(self.service_accounts[(namespace, name)])
        except KeyError:
            raise NotFoundError(f"service account {namespace}/{name} not found", status=404)

    def get_secret(self, namespace: str, name: str) -> Dict[str, Any]:
        secret = self.secrets.get((namespace, name))
        if secret is None:
            raise NotFoundError(f"secret {namespace}/{name} not found", status=404)
        if secret == "forbidden":
            raise ForbiddenError(f"secret {namespace}/{name} forbidden", status=403)
        return copy.deepcopy(secret)

    def list_pods(self, namespace: Optional[str] = None, label_selector: Optional[str] = None):
        pods = []
        for pod in self.pods:
            metadata = pod.get("metadata") or {}
            if namespace and metadata.get("namespace") != namespace:
                continue
            if not _matches_selector(metadata.get("labels") or {}, label_selector):
                continue
            pods.append(copy.deepcopy(pod))
        return pods

    def list_nodes(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self.nodes)

    def get_namespace(self, name: str) -> Dict[str, Any]:
        if name not in self.namespaces:
            raise NotFoundError(f"namespace {name} not found", status=404)
        return {"metadata": {"name": name}}

    def create_namespace(self, name: str) -> Dict[str, Any]:
        if name in self.namespaces:
            raise AlreadyExistsError(f"namespace {name} exists", status=409)
        self.namespaces.add(name)
        return {"metadata": {"name": name}}

    def delete_namespace(self, name: str) -> None:
        self.namespaces.discard(name)
        self.deleted_namespaces.append(name)

    # Jobs

    def create_job(self, namespace: str, job: Dict[str, Any]) -> Dict[str, Any]:
        created = copy.deepcopy(job)
        created.setdefault("metadata", {})["uid"] = JOB_UID
        created["metadata"]["namespace"] = namespace
        created.setdefault("spec", {})["selector"] = {"matchLabels": {"controller-uid": JOB_UID}}
        self.created_jobs.append(created)
        return copy.deepcopy(created)

    def get_job(self, namespace: str, name: str) -> Dict[str, Any]:
        for job in self.created_jobs:
            metadata = job["metadata"]
            if metadata.get("namespace") == namespace and metadata.get("name") == name:
                return copy.deepcopy(job)
        raise NotFoundError(f"job {namespace}/{name} not found", status=404)

    def delete_job(self, namespace: str, name: str, propagation: str = "Background") -> None:
        self.deleted_jobs.append((namespace, name, propagation))

    def watch_jobs(self, namespace: str, timeout_seconds: int = 60) -> FakeWatchStream:
        stream = FakeWatchStream(self.job_events)
        self.streams.append(stream)
        return stream

    def watch_events(self, namespace: str, timeout_seconds: int = 60) -> FakeWatchStream:
        stream = FakeWatchStream(self.events)
        self.streams.append(stream)
        return stream

    def stream_pod_logs(self, namespace: str, pod: str, container: Optional[str] = None, follow: bool = True):
        self.log_requests.append(
            {"namespace": namespace, "pod": pod, "container": container, "follow": follow}
        )
        return iter([self.logs])

    def node_config(self, node_name: str) -> Dict[str, Any]:
        try:
            return self.node_configs[node_name]
        except KeyError:
            raise NotFoundError(f"configz of node {node_name} not found", status=404)


def job_condition_event(condition: str, reason: str = "", message: str = "") -> Dict[str, Any]:
    """A MODIFIED event for the fake job carrying one True condition."""
    return {
        "type": "MODIFIED",
        "object": {
            "metadata": {"uid": JOB_UID},
            "status": {
                "conditions": [
                    {"type": condition, "status": "True", "reason": reason, "message": message}
                ]
            },
        },
    }


def job_pod(phase_state: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """The pod the fake job controller created."""
    pod = {
        "metadata": {
            "name": "node-collector-abc12",
            "namespace": "kubeartifacts-temp",
            "labels": {"controller-uid": JOB_UID},
        },
        "status": {"containerStatuses": []},
    }
    if phase_state is not None:
        pod["status"]["containerStatuses"].append(
            {"name": "node-collector", "state": {"terminated": phase_state}}
        )
    return pod


@pytest.fixture
def job_uid():
    """UID the fake cluster assigns to every created job."""
    return JOB_UID


@pytest.fixture
def fake_cluster():
    """Empty in-memory cluster."""
    return FakeCluster()


@pytest.fixture
def job_condition():
    """Factory for job condition watch events."""
    return job_condition_event


@pytest.fixture
def collector_pod():
    """Factory for the pod created by a collector job."""
    return job_pod


@pytest.fixture
def nginx_pod():
    """A bare pod without owners."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "nginx", "namespace": "default", "uid": "pod-1"},
        "spec": {"containers": [{"name": "nginx", "image": "nginx:1.14"}]},
    }


@pytest.fixture
def owned_pod():
    """A pod created by a ReplicaSet."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": "web-5d9c7b-xk2lp",
            "namespace": "default",
            "ownerReferences": [{"kind": "ReplicaSet", "name": "web-5d9c7b"}],
        },
        "spec": {"containers": [{"name": "web", "image": "nginx:1.25"}]},
    }


@pytest.fixture
def sample_deployment():
    """A deployment using a private registry."""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": "api", "namespace": "prod"},
        "spec": {
            "template": {
                "spec": {
                    "serviceAccountName": "api",
                    "initContainers": [{"name": "migrate", "image": "registry.example.com/api/migrate:2.0"}],
                    "containers": [{"name": "api", "image": "registry.example.com/api/server:2.0"}],
                }
            }
        },
    }


@pytest.fixture
def sample_cronjob():
    """A cronjob whose pod spec is nested under the job template."""
    return {
        "apiVersion": "batch/v1",
        "kind": "CronJob",
        "metadata": {"name": "hello", "namespace": "default"},
        "spec": {
            "jobTemplate": {
                "spec": {
                    "template": {
                        "spec": {"containers": [{"name": "hello", "image": "busybox:1.28"}]}
                    }
                }
            }
        },
    }


@pytest.fixture
def ready_node():
    """A ready worker node."""
    return {
        "apiVersion": "v1",
        "kind": "Node",
        "metadata": {"name": "worker-1", "labels": {"kubernetes.io/hostname": "worker-1"}},
        "status": {
            "conditions": [{"type": "Ready", "status": "True"}],
            "nodeInfo": {
                "kubeletVersion": "v1.27.4",
                "containerRuntimeVersion": "containerd://1.7.2",
                "osImage": "Ubuntu 22.04.3 LTS",
                "kubeProxyVersion": "v1.27.4",
                "kernelVersion": "5.15.0-86-generic",
                "operatingSystem": "linux",
                "architecture": "amd64",
            },
        },
    }

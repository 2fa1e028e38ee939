"""Kubernetes API gateway."""

import json
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from ..errors import AlreadyExistsError, ClusterError, ForbiddenError, NotFoundError
from ..model.kubernetes import ResourceIdentity
from ..utils.logger import get_logger
from .platform import Platform, platform_from_version
from .resources import is_cluster_scoped

logger = get_logger(__name__)

DEFAULT_NAMESPACE = "default"

_STATUS_ERRORS = {
    403: ForbiddenError,
    404: NotFoundError,
    409: AlreadyExistsError,
}


def translate_api_exception(e: ApiException, action: str) -> ClusterError:
    """Map an ApiException onto the kubeartifacts error hierarchy."""
    error_class = _STATUS_ERRORS.get(e.status, ClusterError)
    return error_class(f"{action}: {e.status} {e.reason}", status=e.status, reason=e.reason or "")


@contextmanager
def _api_call(action: str):
    try:
        yield
    except ApiException as e:
        raise translate_api_exception(e, action) from e


class WatchStream:
    """Restartable watch over a namespaced list call.

    Each pass of the underlying watch lasts at most timeout_seconds; when it
    ends a new pass starts, which replays the current objects as ADDED
    events. Iteration ends once stop() is called.
    """

    def __init__(self, list_func: Callable, namespace: str, timeout_seconds: int):
        self.list_func = list_func
        self.namespace = namespace
        self.timeout_seconds = timeout_seconds
        self._stopped = threading.Event()
        self._watch: Optional[watch.Watch] = None
        self._lock = threading.Lock()

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        while not self._stopped.is_set():
            with self._lock:
                self._watch = watch.Watch()
            try:
                for event in self._watch.stream(
                    self.list_func,
                    namespace=self.namespace,
                    timeout_seconds=self.timeout_seconds,
                ):
                    if self._stopped.is_set():
                        return
                    yield {"type": event["type"], "object": event.get("raw_object") or {}}
            except ApiException as e:
                if e.status == 410:
                    logger.debug(f"Watch in {self.namespace} expired, restarting")
                    continue
                raise translate_api_exception(e, f"watching {self.namespace}") from e

    def stop(self) -> None:
        self._stopped.set()
        with self._lock:
            if self._watch is not None:
                self._watch.stop()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()


class Cluster:
    """Thin wrapper over the Kubernetes API that speaks plain dicts."""

    def __init__(
        self,
        context: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        api_client: Optional[client.ApiClient] = None,
    ):
        self.context = context
        self.kubeconfig = kubeconfig
        self._context_info: Optional[Dict[str, Any]] = None
        self.api_client = api_client or self._load_api_client()
        self.core_v1 = client.CoreV1Api(self.api_client)
        self.batch_v1 = client.BatchV1Api(self.api_client)
        self.version_api = client.VersionApi(self.api_client)

    def _load_api_client(self) -> client.ApiClient:
        """Load kubeconfig, falling back to in-cluster credentials."""
        try:
            return config.new_client_from_config(config_file=self.kubeconfig, context=self.context)
        except config.ConfigException as e:
            if self.kubeconfig or self.context:
                raise ClusterError(f"Cannot load kubeconfig: {e}")
            logger.debug(f"No kubeconfig found ({e}), trying in-cluster config")

        try:
            config.load_incluster_config()
        except config.ConfigException as e:
            raise ClusterError(f"No Kubernetes configuration available: {e}")
        self._context_info = {}
        return client.ApiClient()

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        return self.api_client.sanitize_for_serialization(obj)

    def _get_json(self, path: str, query: Optional[List] = None) -> Dict[str, Any]:
        return self.api_client.call_api(
            path,
            "GET",
            query_params=query or [],
            header_params={"Accept": "application/json"},
            response_type="object",
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
        )

    # Context

    def _active_context(self) -> Dict[str, Any]:
        if self._context_info is None:
            try:
                contexts, active = config.list_kube_config_contexts(config_file=self.kubeconfig)
            except config.ConfigException:
                contexts, active = [], None
            if self.context:
                active = next((c for c in contexts if c.get("name") == self.context), active)
            self._context_info = active or {}
        return self._context_info

    def current_context(self) -> str:
        return self._active_context().get("name", "")

    def current_namespace(self) -> str:
        return (self._active_context().get("context") or {}).get("namespace") or DEFAULT_NAMESPACE

    def cluster_name(self) -> str:
        return (self._active_context().get("context") or {}).get("cluster", "")

    # Version and discovery

    def server_version(self) -> Dict[str, Any]:
        with _api_call("getting server version"):
            return self._to_dict(self.version_api.get_code())

    def platform(self) -> Platform:
        return platform_from_version(self.server_version().get("gitVersion", ""))

    def api_resources(self) -> List[Dict[str, Any]]:
        """Return listable resources of the core and preferred group versions."""
        resources = []
        with _api_call("discovering API resources"):
            core = self._get_json("/api/v1")
            resources.extend(self._discovery_records(core, group="", version="v1"))

            groups = self._get_json("/apis")
            for group in groups.get("groups", []):
                preferred = group.get("preferredVersion") or {}
                group_version = preferred.get("groupVersion")
                if not group_version:
                    continue
                try:
                    data = self._get_json(f"/apis/{group_version}")
                except ApiException as e:
                    # Aggregated APIs may be unavailable; skip them.
                    logger.warning(f"Skipping API group {group_version}: {e.status} {e.reason}")
                    continue
                resources.extend(
                    self._discovery_records(
                        data, group=group.get("name", ""), version=preferred.get("version", "")
                    )
                )
        return resources

    @staticmethod
    def _discovery_records(data: Dict[str, Any], group: str, version: str) -> List[Dict[str, Any]]:
        records = []
        for resource in data.get("resources", []):
            name = resource.get("name", "")
            if "/" in name or "list" not in resource.get("verbs", []):
                continue
            records.append(
                {
                    "group": group,
                    "version": version,
                    "name": name,
                    "kind": resource.get("kind", ""),
                    "namespaced": resource.get("namespaced", False),
                    "singularName": resource.get("singularName", ""),
                    "shortNames": resource.get("shortNames") or [],
                }
            )
        return records

    def _resource_path(
        self, gvr: ResourceIdentity, namespace: Optional[str], name: Optional[str] = None
    ) -> str:
        base = f"/apis/{gvr.group}/{gvr.version}" if gvr.group else f"/api/{gvr.version}"
        if namespace and not is_cluster_scoped(gvr.resource):
            base = f"{base}/namespaces/{namespace}"
        path = f"{base}/{gvr.resource}"
        return f"{path}/{name}" if name else path

    def list_resources(
        self, gvr: ResourceIdentity, namespace: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List objects of a resource type, across namespaces when namespace is empty."""
        with _api_call(f"listing {gvr}"):
            data = self._get_json(self._resource_path(gvr, namespace))

        # List items come back without kind and apiVersion.
        list_kind = data.get("kind", "")
        kind = list_kind[: -len("List")] if list_kind.endswith("List") else gvr.kind or ""
        api_version = data.get("apiVersion", gvr.api_version)
        items = data.get("items") or []
        for item in items:
            item.setdefault("kind", kind)
            item.setdefault("apiVersion", api_version)
        return items

    def get_resource(
        self, gvr: ResourceIdentity, name: str, namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        with _api_call(f"getting {gvr} {name}"):
            return self._get_json(self._resource_path(gvr, namespace, name))

    # Core objects

    def get_service_account(self, namespace: str, name: str) -> Dict[str, Any]:
        with _api_call(f"getting service account {namespace}/{name}"):
            return self._to_dict(self.core_v1.read_namespaced_service_account(name, namespace))

    def get_secret(self, namespace: str, name: str) -> Dict[str, Any]:
        with _api_call(f"getting secret {namespace}/{name}"):
            return self._to_dict(self.core_v1.read_namespaced_secret(name, namespace))

    def list_pods(
        self, namespace: Optional[str] = None, label_selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        kwargs = {"label_selector": label_selector} if label_selector else {}
        with _api_call(f"listing pods in {namespace or 'all namespaces'}"):
            if namespace:
                pods = self.core_v1.list_namespaced_pod(namespace, **kwargs)
            else:
                pods = self.core_v1.list_pod_for_all_namespaces(**kwargs)
        return self._to_dict(pods).get("items") or []

    def list_nodes(self) -> List[Dict[str, Any]]:
        with _api_call("listing nodes"):
            return self._to_dict(self.core_v1.list_node()).get("items") or []

    def get_namespace(self, name: str) -> Dict[str, Any]:
        with _api_call(f"getting namespace {name}"):
            return self._to_dict(self.core_v1.read_namespace(name))

    def create_namespace(self, name: str) -> Dict[str, Any]:
        body = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}}
        with _api_call(f"creating namespace {name}"):
            return self._to_dict(self.core_v1.create_namespace(body))

    def delete_namespace(self, name: str) -> None:
        with _api_call(f"deleting namespace {name}"):
            self.core_v1.delete_namespace(name)

    # Jobs

    def create_job(self, namespace: str, job: Dict[str, Any]) -> Dict[str, Any]:
        name = (job.get("metadata") or {}).get("name", "")
        with _api_call(f"creating job {namespace}/{name}"):
            return self._to_dict(self.batch_v1.create_namespaced_job(namespace, job))

    def get_job(self, namespace: str, name: str) -> Dict[str, Any]:
        with _api_call(f"getting job {namespace}/{name}"):
            return self._to_dict(self.batch_v1.read_namespaced_job(name, namespace))

    def delete_job(self, namespace: str, name: str, propagation: str = "Background") -> None:
        with _api_call(f"deleting job {namespace}/{name}"):
            self.batch_v1.delete_namespaced_job(
                name, namespace, body=client.V1DeleteOptions(propagation_policy=propagation)
            )

    def watch_jobs(self, namespace: str, timeout_seconds: int = 60) -> WatchStream:
        return WatchStream(self.batch_v1.list_namespaced_job, namespace, timeout_seconds)

    def watch_events(self, namespace: str, timeout_seconds: int = 60) -> WatchStream:
        return WatchStream(self.core_v1.list_namespaced_event, namespace, timeout_seconds)

    def stream_pod_logs(
        self, namespace: str, pod: str, container: Optional[str] = None, follow: bool = True
    ) -> Iterator[str]:
        """Yield decoded log chunks until the log stream closes."""
        kwargs = {"follow": follow, "_preload_content": False}
        if container:
            kwargs["container"] = container
        with _api_call(f"reading logs of {namespace}/{pod}"):
            response = self.core_v1.read_namespaced_pod_log(pod, namespace, **kwargs)
        try:
            for chunk in response.stream(4096):
                yield chunk.decode("utf-8", errors="replace")
        finally:
            response.release_conn()

    def node_config(self, node_name: str) -> Dict[str, Any]:
        """Return the kubelet configuration served on the node's configz endpoint."""
        with _api_call(f"reading configz of node {node_name}"):
            response = self.core_v1.connect_get_node_proxy_with_path(
                node_name, "configz", _preload_content=False
            )
        try:
            return json.loads(response.data)
        except ValueError as e:
            raise ClusterError(f"Invalid configz response from node {node_name}: {e}")

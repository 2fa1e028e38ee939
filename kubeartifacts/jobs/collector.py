"""Node collector: runs a privileged job on a node and returns its output."""

import json
import threading
from typing import Any, Dict, Optional

from ..errors import AlreadyExistsError, ClusterError, CollectorError, JobError, NotFoundError
from ..model.config import DEFAULT_COLLECTOR_NAMESPACE, NodeCollectorOptions
from ..utils.hashing import compress_and_encode, compute_hash
from ..utils.logger import get_logger
from .builder import JobSpecParams, build_job
from .commands import CollectorArgs, CommandCatalog
from .loader import TemplateCatalog
from .logs import LogsReader
from .runner import JobRunner

logger = get_logger(__name__)

NODE_COLLECTOR_NAME = "node-collector"
NODE_INFO_KIND = "Node-Info"

LABEL_COLLECTOR_NAME = "kubeartifacts.collector.name"
LABEL_AUTO_CREATED = "kubeartifacts.automatic.created"
LABEL_RESOURCE_NAME = "kubeartifacts.resource.name"
LABEL_RESOURCE_KIND = "kubeartifacts.resource.kind"


def job_name(template: str, node_name: str, namespace: str) -> str:
    """Deterministic job name for a template, target node and namespace."""
    ref = {"kind": NODE_INFO_KIND, "name": node_name, "namespace": namespace}
    return f"{template}-{compute_hash(ref)}"


def ignore_node_by_labels(labels: Dict[str, str], ignore_labels: Dict[str, str]) -> bool:
    """Return True only when every ignore label matches the node's labels."""
    if not ignore_labels:
        return False
    return all(labels.get(key) == value for key, value in ignore_labels.items())


class NodeCollector:
    """Deploys the node-collector job on nodes and gathers its output."""

    def __init__(
        self,
        cluster,
        options: Optional[NodeCollectorOptions] = None,
        template: str = NODE_COLLECTOR_NAME,
        labels: Optional[Dict[str, str]] = None,
        annotations: Optional[Dict[str, str]] = None,
        templates: Optional[TemplateCatalog] = None,
        commands: Optional[CommandCatalog] = None,
        logs_reader: Optional[LogsReader] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.cluster = cluster
        self.options = options or NodeCollectorOptions()
        self.template = template
        self.labels = {LABEL_COLLECTOR_NAME: NODE_COLLECTOR_NAME, LABEL_AUTO_CREATED: "true"}
        self.labels.update(labels or {})
        self.annotations = dict(annotations or {})
        self.templates = templates
        self._commands = commands
        self.logs_reader = logs_reader or LogsReader(cluster)
        self.cancel = cancel

    @property
    def namespace(self) -> str:
        return self.options.namespace

    def _command_catalog(self) -> CommandCatalog:
        if self._commands is None:
            if self.options.commands_path:
                self._commands = CommandCatalog.from_directory(self.options.commands_path)
            else:
                self._commands = CommandCatalog.embedded()
        return self._commands

    def collector_args(self) -> CollectorArgs:
        """Encode the node commands and config blobs for the collector."""
        platform = ""
        if not self.options.spec_command_ids:
            platform = self.cluster.platform().name
        return self._command_catalog().collector_args(self.options.spec_command_ids, platform)

    def ensure_namespace(self) -> None:
        try:
            self.cluster.get_namespace(self.namespace)
            return
        except NotFoundError:
            pass
        try:
            self.cluster.create_namespace(self.namespace)
            logger.info(f"Created namespace {self.namespace}")
        except AlreadyExistsError:
            logger.debug(f"Namespace {self.namespace} already exists")

    def load_node_config(self, node_name: str) -> str:
        """Return the node's kubelet configz, compressed and encoded."""
        config = self.cluster.node_config(node_name)
        return compress_and_encode(json.dumps(config))

    def _job_params(self, node_name: str, args: CollectorArgs, **overrides: Any) -> JobSpecParams:
        values = dict(
            template=self.template,
            namespace=self.namespace,
            node_name=node_name,
            labels={**self.labels, LABEL_RESOURCE_NAME: node_name, LABEL_RESOURCE_KIND: "Node"},
            annotations=self.annotations,
            image_ref=self.options.image_ref,
            affinity=self.options.affinity,
            tolerations=self.options.tolerations,
            service_account=self.options.service_account or "",
            timeout=self.options.timeout,
            node_commands=args.commands,
            kubelet_config_mapping=args.kubelet_config_mapping,
            node_config_data=args.node_config_data,
        )
        values.update(overrides)
        return JobSpecParams(**values)

    def apply_and_collect(self, node_name: str) -> str:
        """Run the collector on node_name and return its raw output.

        The job is deleted before returning on every path. Failures raise
        with whatever log output could be read attached.
        """
        self.ensure_namespace()
        args = self.collector_args()

        kubelet_config = ""
        if self.options.node_config:
            try:
                kubelet_config = self.load_node_config(node_name)
            except ClusterError as e:
                raise CollectorError(f"loading node config: {e}", node=node_name)

        params = self._job_params(
            node_name,
            args,
            name=job_name(self.template, node_name, self.namespace),
            node_config=self.options.node_config,
            use_node_selector=True,
            kubelet_config=kubelet_config,
        )
        job = build_job(params, self.templates)

        runner = JobRunner(
            self.cluster, timeout=self.options.timeout, cancel=self.cancel, logs_reader=self.logs_reader
        )
        error: Optional[JobError] = None
        try:
            try:
                runner.run(job)
            except JobError as e:
                error = e

            try:
                output = self._read_logs(job, follow=error is None)
            except Exception as e:
                if error is None:
                    raise CollectorError(f"reading logs: {e}", node=node_name)
                output = ""
        finally:
            self._delete_job(job)

        if error is not None:
            error.logs = output
            raise error
        return output

    def apply(self, node_name: str, name: str = "") -> Dict[str, Any]:
        """Create the collector job for node_name without waiting for it."""
        args = self.collector_args()
        params = self._job_params(
            node_name,
            args,
            name=name,
            node_config=False,
            use_node_selector=self.options.use_node_selector,
            replace_resource_requirements=False,
        )
        job = build_job(params, self.templates)
        return self.cluster.create_job(self.namespace, job)

    def _read_logs(self, job: Dict[str, Any], follow: bool = True) -> str:
        stream = self.logs_reader.get_logs_by_job_and_container(job, NODE_COLLECTOR_NAME, follow=follow)
        return "".join(stream)

    def _delete_job(self, job: Dict[str, Any]) -> None:
        metadata = job.get("metadata") or {}
        try:
            self.cluster.delete_job(metadata.get("namespace"), metadata.get("name"), propagation="Background")
        except ClusterError as e:
            logger.warning(f"Failed to delete job {metadata.get('name')}: {e}")

    def cleanup(self) -> None:
        """Delete the scratch namespace when it is the default one."""
        if self.namespace != DEFAULT_COLLECTOR_NAMESPACE:
            return
        try:
            self.cluster.delete_namespace(self.namespace)
            logger.info(f"Deleted namespace {self.namespace}")
        except ClusterError as e:
            logger.warning(f"Failed to delete namespace {self.namespace}: {e}")

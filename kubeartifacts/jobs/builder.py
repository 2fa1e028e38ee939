"""Job manifest builder."""

import copy
from datetime import timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .loader import TemplateCatalog

HOSTNAME_LABEL = "kubernetes.io/hostname"


class JobSpecParams(BaseModel):
    """Everything needed to render one job from a template."""

    template: str
    namespace: str
    name: str = ""
    node_name: str = ""
    image_ref: str = ""
    service_account: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    affinity: Optional[Dict[str, Any]] = None
    tolerations: List[Dict[str, Any]] = Field(default_factory=list)
    priority_class_name: str = ""
    pod_security_context: Optional[Dict[str, Any]] = None
    security_context: Optional[Dict[str, Any]] = None
    volumes: List[Dict[str, Any]] = Field(default_factory=list)
    volume_mounts: List[Dict[str, Any]] = Field(default_factory=list)
    image_pull_secrets: List[Dict[str, str]] = Field(default_factory=list)
    resource_requirements: Dict[str, Any] = Field(default_factory=dict)
    replace_resource_requirements: bool = False
    timeout: Optional[timedelta] = None
    node_config: bool = False
    use_node_selector: bool = False
    kubelet_config: str = ""
    kubelet_config_mapping: str = ""
    node_config_data: str = ""
    node_commands: str = ""

    class Config:
        frozen = True


def _pod_spec(job: Dict[str, Any]) -> Dict[str, Any]:
    return job.setdefault("spec", {}).setdefault("template", {}).setdefault("spec", {})


def _first_container(job: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    containers = (((job.get("spec") or {}).get("template") or {}).get("spec") or {}).get(
        "containers"
    )
    if not containers:
        return None
    return containers[0]


def collector_args(params: JobSpecParams) -> List[str]:
    """Return the extra arguments passed to the collector container."""
    args = []
    if params.kubelet_config and params.node_config:
        args.extend(["--kubelet-config", params.kubelet_config])
    if not params.node_config:
        args.extend(["--node", params.node_name])
    if params.node_config_data:
        args.extend(["--node-config", params.node_config_data])
    if params.kubelet_config_mapping:
        args.extend(["--kubelet-config-mapping", params.kubelet_config_mapping])
    if params.node_commands:
        args.extend(["--node-commands", params.node_commands])
    return args


def build_job(params: JobSpecParams, catalog: Optional[TemplateCatalog] = None) -> Dict[str, Any]:
    """Render a Job manifest from a template and params.

    The catalog is never modified. An unknown template yields a Job with no
    pod template, which the API server rejects on submission.
    """
    catalog = catalog or TemplateCatalog.embedded()
    job = catalog.get(params.template)
    job.setdefault("apiVersion", "batch/v1")
    job.setdefault("kind", "Job")

    metadata = job.setdefault("metadata", {})
    metadata["namespace"] = params.namespace
    if params.name:
        metadata["name"] = params.name

    container = _first_container(job)
    if container is not None:
        if params.image_ref:
            container["image"] = params.image_ref
        container["args"] = list(container.get("args") or []) + collector_args(params)
        if params.security_context is not None:
            container["securityContext"] = copy.deepcopy(params.security_context)
        if params.replace_resource_requirements:
            container["resources"] = copy.deepcopy(params.resource_requirements)
        if params.volume_mounts:
            container["volumeMounts"] = copy.deepcopy(params.volume_mounts)

    if params.labels:
        metadata.setdefault("labels", {}).update(params.labels)

    if params.annotations:
        template_metadata = job.setdefault("spec", {}).setdefault("template", {}).setdefault(
            "metadata", {}
        )
        template_metadata.setdefault("annotations", {}).update(params.annotations)

    if params.timeout and params.timeout.total_seconds() > 0:
        job.setdefault("spec", {})["activeDeadlineSeconds"] = int(params.timeout.total_seconds())

    if container is None:
        return job

    pod_spec = _pod_spec(job)
    if params.use_node_selector:
        pod_spec["nodeSelector"] = {HOSTNAME_LABEL: params.node_name}
    if params.service_account:
        pod_spec["serviceAccountName"] = params.service_account
    if params.affinity is not None:
        pod_spec["affinity"] = copy.deepcopy(params.affinity)
    if params.tolerations:
        pod_spec["tolerations"] = copy.deepcopy(params.tolerations)
    if params.priority_class_name:
        pod_spec["priorityClassName"] = params.priority_class_name
    if params.pod_security_context is not None:
        pod_spec["securityContext"] = copy.deepcopy(params.pod_security_context)
    if params.volumes:
        pod_spec["volumes"] = copy.deepcopy(params.volumes)
    if params.image_pull_secrets:
        pod_spec["imagePullSecrets"] = copy.deepcopy(params.image_pull_secrets)

    return job

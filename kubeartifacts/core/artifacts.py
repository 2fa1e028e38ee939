"""Conversion of raw cluster objects into artifacts."""

from typing import Any, Dict, List, Optional

from ..k8s.auth import RegistryAuths, auth_for_image
from ..k8s.resources import CONTAINER_LIST_FIELDS, KIND_NODE, container_base_path
from ..model.kubernetes import Artifact, RegistryAuth
from ..utils.nested import nested_list, nested_map, nested_str


def extract_images(obj: Dict[str, Any]) -> List[str]:
    """Return images of containers, ephemeral containers and init containers, in that order."""
    kind = obj.get("kind", "")
    base = container_base_path(kind)
    pod_spec = nested_map(obj, *base)
    if pod_spec is None:
        return []

    images = []
    for field in CONTAINER_LIST_FIELDS:
        for container in nested_list(pod_spec, field) or []:
            if not isinstance(container, dict):
                continue
            image = container.get("image")
            if image:
                images.append(image)
    return images


def from_resource(obj: Dict[str, Any], auths: Optional[RegistryAuths] = None) -> Artifact:
    """Build an Artifact from a cluster object and the credentials available to it."""
    kind = obj.get("kind", "")
    images = extract_images(obj)

    credentials: List[RegistryAuth] = []
    for image in images:
        auth = auth_for_image(image, auths or {})
        if auth is not None:
            credentials.append(auth)

    labels: Dict[str, str] = {}
    if kind == KIND_NODE:
        labels = nested_map(obj, "metadata", "labels") or {}

    return Artifact(
        namespace=nested_str(obj, "metadata", "namespace"),
        kind=kind,
        name=nested_str(obj, "metadata", "name"),
        labels=labels,
        images=images,
        credentials=credentials,
        raw_resource=obj,
    )

"""Cluster bill of materials models."""

from typing import Dict, List

from pydantic import BaseModel, Field


class Container(BaseModel):
    """Image running in a component pod."""

    id: str = Field(alias="ID")
    version: str = Field(alias="Version")
    repository: str = Field(alias="Repository")
    registry: str = Field(alias="Registry")
    digest: str = Field("", alias="Digest")

    class Config:
        populate_by_name = True

    @property
    def image_key(self) -> str:
        """Return registry/repository:version as reported in node images."""
        return f"{self.registry}/{self.repository}:{self.version}"


class Component(BaseModel):
    """A control plane component or cluster add-on."""

    namespace: str = Field(alias="Namespace")
    name: str = Field(alias="Name")
    version: str = Field("", alias="Version")
    properties: Dict[str, str] = Field(default_factory=dict, alias="Properties")
    containers: List[Container] = Field(default_factory=list, alias="Containers")

    class Config:
        populate_by_name = True


class NodeInfo(BaseModel):
    """Versions and properties reported by one node."""

    node_name: str = Field(alias="NodeName")
    kubelet_version: str = Field("", alias="KubeletVersion")
    container_runtime_version: str = Field("", alias="ContainerRuntimeVersion")
    os_image: str = Field("", alias="OsImage")
    kube_proxy_version: str = Field("", alias="KubeProxyVersion")
    properties: Dict[str, str] = Field(default_factory=dict, alias="Properties")
    images: List[str] = Field(default_factory=list, alias="Images")

    class Config:
        populate_by_name = True


class BomResult(BaseModel):
    """Cluster level inventory of components and nodes."""

    id: str = Field(alias="name")
    type: str = Field("", alias="type")
    version: str = Field("", alias="version")
    properties: Dict[str, str] = Field(default_factory=dict, alias="properties")
    components: List[Component] = Field(default_factory=list, alias="components")
    nodes_info: List[NodeInfo] = Field(default_factory=list, alias="nodesInfo")

    class Config:
        populate_by_name = True

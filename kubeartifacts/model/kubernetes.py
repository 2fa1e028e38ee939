"""Kubernetes resource models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ResourceIdentity(BaseModel):
    """Group/version/resource triple identifying a listable resource type."""

    group: str = ""
    version: str
    resource: str
    kind: Optional[str] = None
    namespaced: Optional[bool] = None

    class Config:
        frozen = True

    @property
    def api_version(self) -> str:
        """Return apiVersion in manifest form (e.g. apps/v1)."""
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.resource}.{self.api_version}"


class RegistryAuth(BaseModel):
    """Credentials for one image registry host."""

    server: str
    username: str = ""
    password: str = ""

    class Config:
        frozen = True


class Artifact(BaseModel):
    """A scannable unit extracted from the cluster."""

    namespace: str = ""
    kind: str
    name: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    images: List[str] = Field(default_factory=list)
    credentials: List[RegistryAuth] = Field(default_factory=list)
    raw_resource: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @property
    def display_name(self) -> str:
        """Return kind/namespace/name for listings."""
        if self.namespace:
            return f"{self.kind}/{self.namespace}/{self.name}"
        return f"{self.kind}/{self.name}"

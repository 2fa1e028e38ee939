"""Data models for kubeartifacts."""

from .bom import BomResult, Component, Container, NodeInfo
from .config import AppConfig, ClusterSettings, NodeCollectorOptions, ScanOptions
from .kubernetes import Artifact, RegistryAuth, ResourceIdentity
from .report import ReportFormat

__all__ = [
    "BomResult",
    "Component",
    "Container",
    "NodeInfo",
    "AppConfig",
    "ClusterSettings",
    "NodeCollectorOptions",
    "ScanOptions",
    "Artifact",
    "RegistryAuth",
    "ResourceIdentity",
    "ReportFormat",
]

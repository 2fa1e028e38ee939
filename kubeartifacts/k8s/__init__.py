"""Kubernetes interaction module."""

from .auth import CredentialResolver
from .cluster import Cluster
from .gvr import GvrResolver

__all__ = ["Cluster", "CredentialResolver", "GvrResolver"]

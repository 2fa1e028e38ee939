"""Core business logic."""

from .artifacts import from_resource
from .bom import BomAssembler, bom_to_artifacts
from .reporter import ArtifactReporter

__all__ = ["from_resource", "BomAssembler", "bom_to_artifacts", "ArtifactReporter"]

"""Short-lived collector jobs."""

from .builder import JobSpecParams, build_job
from .collector import NodeCollector
from .commands import CommandCatalog
from .loader import TemplateCatalog
from .logs import LogsReader
from .runner import CompletionSignal, JobRunner

__all__ = [
    "JobSpecParams",
    "build_job",
    "NodeCollector",
    "CommandCatalog",
    "TemplateCatalog",
    "LogsReader",
    "CompletionSignal",
    "JobRunner",
]

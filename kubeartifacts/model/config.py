"""Configuration models and parsers for CLI and file input."""

from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..errors import ConfigError

DEFAULT_COLLECTOR_NAMESPACE = "kubeartifacts-temp"
DEFAULT_COLLECTOR_IMAGE = "ghcr.io/aquasecurity/node-collector:0.3.1"
DEFAULT_COLLECTOR_TIMEOUT = timedelta(minutes=5)

TAINT_EFFECTS = ("NoSchedule", "PreferNoSchedule", "NoExecute")


class ScanOptions(BaseModel):
    """What to discover and which objects to keep."""

    namespace: Optional[str] = None
    all_namespaces: bool = False
    resources: List[str] = Field(default_factory=list)
    include_kinds: List[str] = Field(default_factory=list)
    exclude_kinds: List[str] = Field(default_factory=list)
    include_namespaces: List[str] = Field(default_factory=list)
    exclude_namespaces: List[str] = Field(default_factory=list)
    exclude_owned: bool = False

    @property
    def namespaced(self) -> bool:
        return bool(self.namespace) or self.all_namespaces


class NodeCollectorOptions(BaseModel):
    """Per-call settings for node collector jobs."""

    namespace: str = DEFAULT_COLLECTOR_NAMESPACE
    image_ref: str = DEFAULT_COLLECTOR_IMAGE
    tolerations: List[Dict[str, Any]] = Field(default_factory=list)
    affinity: Optional[Dict[str, Any]] = None
    ignore_labels: Dict[str, str] = Field(default_factory=dict)
    commands_path: Optional[Path] = None
    spec_command_ids: List[str] = Field(default_factory=list)
    timeout: timedelta = DEFAULT_COLLECTOR_TIMEOUT
    node_config: bool = True
    use_node_selector: bool = True
    service_account: Optional[str] = None

    class Config:
        frozen = True


class ClusterSettings(BaseModel):
    """How to reach the cluster."""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None


class AppConfig(BaseModel):
    """Settings read from a configuration file."""

    kubernetes: ClusterSettings = Field(default_factory=ClusterSettings)
    scan: ScanOptions = Field(default_factory=ScanOptions)
    node_collector: NodeCollectorOptions = Field(default_factory=NodeCollectorOptions)


def parse_tolerations(values: List[str]) -> List[Dict[str, Any]]:
    """Parse key=value:Effect[:seconds] strings into toleration dicts."""
    tolerations = []
    for value in values:
        parts = value.split(":")
        if len(parts) < 2 or len(parts) > 3:
            raise ConfigError(f"toleration must include key and effect: {value}")

        key_value, effect = parts[0], parts[1]
        if effect not in TAINT_EFFECTS:
            raise ConfigError(f"toleration effect must be one of {', '.join(TAINT_EFFECTS)}")
        if "=" not in key_value:
            raise ConfigError(f"toleration must be in key=value form: {value}")

        key, _, val = key_value.partition("=")
        toleration: Dict[str, Any] = {
            "key": key,
            "operator": "Equal" if val else "Exists",
            "effect": effect,
        }
        if val:
            toleration["value"] = val

        if len(parts) == 3:
            try:
                toleration["tolerationSeconds"] = int(parts[2])
            except ValueError:
                raise ConfigError(f"toleration seconds must be a number: {value}")

        tolerations.append(toleration)
    return tolerations


def parse_label_pairs(values: List[str]) -> Dict[str, str]:
    """Parse key:value strings into a label map."""
    labels = {}
    for value in values:
        key, sep, val = value.partition(":")
        if not sep or not key:
            raise ConfigError(f"label must be in key:value form: {value}")
        labels[key] = val
    return labels


def load_config(path: Union[str, Path]) -> AppConfig:
    """Load an AppConfig from a YAML file."""
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    collector = data.get("node_collector") or {}
    if isinstance(collector, dict) and collector.get("tolerations"):
        if all(isinstance(t, str) for t in collector["tolerations"]):
            collector["tolerations"] = parse_tolerations(collector["tolerations"])

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}")

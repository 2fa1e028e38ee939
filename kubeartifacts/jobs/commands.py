"""Compliance command catalogs for the node collector."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel

from ..errors import CollectorError
from ..k8s.platform import DEFAULT_PLATFORM
from ..utils.hashing import compress_and_encode
from ..utils.logger import get_logger

logger = get_logger(__name__)

BUNDLE_DIR = Path(__file__).parent / "bundle"
COMMANDS_DIR = "commands"
KUBERNETES_DIR = "kubernetes"
CONFIG_DIR = "config"

KUBELET_MAPPING_FILE = "kubelet_mapping.yaml"
NODE_CONFIG_FILE = "node.yaml"


class CollectorArgs(BaseModel):
    """Encoded payloads handed to the collector container."""

    commands: str
    kubelet_config_mapping: str
    node_config_data: str

    class Config:
        frozen = True


class CommandCatalog:
    """Node commands and their configuration blobs."""

    def __init__(self, commands: List[Dict[str, Any]], configs: Dict[str, bytes]):
        self.commands = commands
        self.configs = configs

    @classmethod
    def from_directory(cls, root: Union[str, Path]) -> "CommandCatalog":
        """Load commands/kubernetes/**/*.yaml and commands/config/**/*.yaml under root."""
        base = Path(root) / COMMANDS_DIR
        if not base.is_dir():
            raise CollectorError(f"Command directory not found: {base}")

        commands = []
        for path in sorted((base / KUBERNETES_DIR).rglob("*.yaml")):
            with open(path, "r") as f:
                try:
                    data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise CollectorError(f"Invalid command file {path}: {e}")
            if isinstance(data, list) and data and isinstance(data[0], dict):
                commands.append(data[0])
            else:
                logger.warning(f"Ignoring command file without a command entry: {path}")

        configs = {
            path.name: path.read_bytes() for path in sorted((base / CONFIG_DIR).rglob("*.yaml"))
        }
        logger.debug(f"Loaded {len(commands)} commands and {len(configs)} configs from {base}")
        return cls(commands, configs)

    @classmethod
    def embedded(cls) -> "CommandCatalog":
        return cls.from_directory(BUNDLE_DIR)

    def by_platform(self) -> Dict[str, List[Dict[str, Any]]]:
        index: Dict[str, List[Dict[str, Any]]] = {}
        for command in self.commands:
            platforms = command.get("platforms")
            if not isinstance(platforms, list):
                continue
            for platform in platforms:
                index.setdefault(str(platform), []).append(command)
        return index

    def by_check_id(self) -> Dict[str, List[Dict[str, Any]]]:
        index: Dict[str, List[Dict[str, Any]]] = {}
        for command in self.commands:
            check_id = command.get("id")
            if isinstance(check_id, str):
                index.setdefault(check_id, []).append(command)
        return index

    def select(self, spec_command_ids: Optional[List[str]] = None, platform: str = "") -> List[Dict[str, Any]]:
        """Pick commands by check id, or by platform when no ids are given.

        Platforms without commands of their own use the plain k8s set.
        """
        if spec_command_ids:
            index = self.by_check_id()
            return [c for check_id in spec_command_ids for c in index.get(check_id, [])]

        index = self.by_platform()
        if platform not in index:
            logger.debug(f"No commands for platform {platform!r}, using {DEFAULT_PLATFORM}")
            platform = DEFAULT_PLATFORM
        return list(index.get(platform, []))

    def collector_args(self, spec_command_ids: Optional[List[str]] = None, platform: str = "") -> CollectorArgs:
        commands = self.select(spec_command_ids, platform)
        if not commands:
            raise CollectorError("no compliance commands found")

        if KUBELET_MAPPING_FILE not in self.configs:
            raise CollectorError("missing kubelet config mapping")
        if NODE_CONFIG_FILE not in self.configs:
            raise CollectorError("missing node config data")

        payload = yaml.safe_dump({"commands": commands}, sort_keys=False)
        return CollectorArgs(
            commands=compress_and_encode(payload),
            kubelet_config_mapping=compress_and_encode(self.configs[KUBELET_MAPPING_FILE]),
            node_config_data=compress_and_encode(self.configs[NODE_CONFIG_FILE]),
        )

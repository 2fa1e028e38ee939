"""Job manifest templates."""

import copy
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..utils.logger import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_embedded: Optional["TemplateCatalog"] = None
_embedded_lock = threading.Lock()


class TemplateCatalog:
    """Read-only table of job manifests keyed by metadata.name."""

    def __init__(self, templates: Optional[Dict[str, Dict[str, Any]]] = None):
        self._templates = {name: copy.deepcopy(t) for name, t in (templates or {}).items()}

    @classmethod
    def from_directory(cls, directory: Path) -> "TemplateCatalog":
        """Load every *.yaml manifest in directory that carries metadata.name."""
        templates = {}
        for path in sorted(Path(directory).glob("*.yaml")):
            with open(path, "r") as f:
                manifest = yaml.safe_load(f)
            name = ((manifest or {}).get("metadata") or {}).get("name")
            if not isinstance(name, str) or not name:
                logger.warning(f"Ignoring job template without metadata.name: {path.name}")
                continue
            templates[name] = manifest
        return cls(templates)

    @classmethod
    def embedded(cls) -> "TemplateCatalog":
        """Return the templates shipped with the package, loaded once per process."""
        global _embedded
        with _embedded_lock:
            if _embedded is None:
                _embedded = cls.from_directory(TEMPLATES_DIR)
                logger.debug(f"Loaded {len(_embedded)} embedded job templates")
            return _embedded

    def get(self, name: str) -> Dict[str, Any]:
        """Return a copy of the named template, or an empty manifest for unknown names."""
        return copy.deepcopy(self._templates.get(name, {}))

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

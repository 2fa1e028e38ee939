"""Artifact report formatting."""

import json
from collections import defaultdict
from typing import List

import yaml

from ..model.kubernetes import Artifact
from ..model.report import ReportFormat
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ArtifactReporter:
    """Renders artifact lists for the command line."""

    def __init__(self, include_raw: bool = False):
        self.include_raw = include_raw

    def _records(self, artifacts: List[Artifact]) -> List[dict]:
        exclude = None if self.include_raw else {"raw_resource"}
        return [a.dict(exclude=exclude) for a in artifacts]

    def generate_report(self, artifacts: List[Artifact], output_format: ReportFormat) -> str:
        logger.debug(f"Formatting {len(artifacts)} artifacts as {output_format.value}")
        if output_format == ReportFormat.JSON:
            return json.dumps(self._records(artifacts), indent=2, default=str)
        elif output_format == ReportFormat.YAML:
            return yaml.dump(self._records(artifacts), default_flow_style=False, sort_keys=False)
        else:
            return self._format_text_report(artifacts)

    def _format_text_report(self, artifacts: List[Artifact]) -> str:
        """Format artifacts as human-readable text."""
        lines = []
        lines.append("=" * 80)
        lines.append("KUBERNETES ARTIFACTS")
        lines.append("=" * 80)

        by_kind = defaultdict(list)
        for artifact in artifacts:
            by_kind[artifact.kind].append(artifact)

        for kind in sorted(by_kind):
            lines.append("")
            lines.append(f"{kind} ({len(by_kind[kind])})")
            lines.append("-" * 40)
            for artifact in by_kind[kind]:
                name = f"{artifact.namespace}/{artifact.name}" if artifact.namespace else artifact.name
                lines.append(f"- {name}")
                for image in artifact.images:
                    lines.append(f"  image: {image}")
                if artifact.credentials:
                    servers = sorted({c.server for c in artifact.credentials})
                    lines.append(f"  credentials: {', '.join(servers)}")

        lines.append("")
        lines.append(f"Total Artifacts: {len(artifacts)}")
        return "\n".join(lines)

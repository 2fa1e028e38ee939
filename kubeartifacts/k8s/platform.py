"""Cluster platform detection from the server version string."""

import re

from pydantic import BaseModel

_PLATFORM_RE = re.compile(r"v(\d+\.\d+)\.\d+[-+](\w+)(?:[.\-])\w+")
_VERSION_RE = re.compile(r"v(\d+\.\d+)\.\d+")

DEFAULT_PLATFORM = "k8s"


class Platform(BaseModel):
    """Distribution name and major.minor version."""

    name: str = DEFAULT_PLATFORM
    version: str = ""


def major_version(version: str) -> str:
    """Return major.minor of a semantic version, tolerating a missing v prefix."""
    if not version.startswith("v"):
        version = f"v{version}"
    match = _VERSION_RE.search(version)
    return match.group(1) if match else ""


def platform_from_version(git_version: str) -> Platform:
    """Detect the platform encoded in a server gitVersion.

    Managed distributions append a build suffix, e.g. v1.27.4-eks-2d98532
    or v1.25.10-gke.2700; anything else is reported as plain k8s.
    """
    match = _PLATFORM_RE.search(git_version)
    if not match:
        return Platform(name=DEFAULT_PLATFORM, version=major_version(git_version))
    return Platform(name=match.group(2), version=match.group(1))

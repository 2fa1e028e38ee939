"""Container image reference parsing."""

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"

_DOCKER_HUB_ALIASES = {"docker.io", "index.docker.io", "registry-1.docker.io"}
_COMPONENT = r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*"
_REPOSITORY_RE = re.compile(rf"^{_COMPONENT}(?:/{_COMPONENT})*$")
_TAG_RE = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST_RE = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-fA-F0-9]{32,}$")


@dataclass(frozen=True)
class ImageReference:
    """A parsed image reference such as registry/repo:tag or repo@sha256:..."""

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def identifier(self) -> str:
        """The digest when present, otherwise the tag."""
        return self.digest or self.tag or DEFAULT_TAG

    def __str__(self) -> str:
        separator = "@" if self.digest else ":"
        return f"{self.registry}/{self.repository}{separator}{self.identifier}"


def _strip_ecr_arn(ref: str) -> str:
    # arn:partition:service:region:account:resource
    parts = ref.split(":", 5)
    if len(parts) != 6 or not parts[5]:
        raise ValueError(f"invalid ECR ARN: {ref}")
    resource = parts[5]
    if resource.startswith("repository/"):
        resource = resource[len("repository/"):]
    return resource


def normalize_registry(host: str) -> str:
    """Map Docker Hub aliases onto the canonical registry host."""
    host = host.lower()
    return DEFAULT_REGISTRY if host in _DOCKER_HUB_ALIASES else host


def parse_reference(ref: str) -> ImageReference:
    """Parse an image reference; raise ValueError when it is malformed."""
    if not ref or ref != ref.strip():
        raise ValueError(f"invalid image reference: {ref!r}")

    if ref.startswith("arn:aws:ecr"):
        ref = _strip_ecr_arn(ref)

    name = ref
    tag = None
    digest = None

    if "@" in name:
        name, digest = name.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ValueError(f"invalid digest in image reference: {ref}")

    last = name.rfind(":")
    if last > name.rfind("/"):
        name, tag = name[:last], name[last + 1:]
        if not _TAG_RE.match(tag):
            raise ValueError(f"invalid tag in image reference: {ref}")

    registry = DEFAULT_REGISTRY
    repository = name
    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        registry = normalize_registry(first)
        repository = rest

    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"library/{repository}"

    if not _REPOSITORY_RE.match(repository):
        raise ValueError(f"invalid repository in image reference: {ref}")

    if digest is None and tag is None:
        tag = DEFAULT_TAG

    return ImageReference(registry=registry, repository=repository, tag=tag, digest=digest)


def server_from_auth_key(key: str) -> str:
    """Extract the registry host from a docker config auth key.

    Keys may be bare hosts, host:port, or full URLs such as
    https://index.docker.io/v1/.
    """
    server = key.strip()
    if "://" in server:
        server = server.split("://", 1)[1]
    server = server.split("/", 1)[0]
    if not server:
        raise ValueError(f"invalid registry auth key: {key!r}")
    return normalize_registry(server)

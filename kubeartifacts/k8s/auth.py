"""Image pull credential resolution."""

import base64
import binascii
import json
from typing import Any, Dict, List, Optional

from ..errors import CredentialError, ForbiddenError, NotFoundError
from ..model.kubernetes import RegistryAuth
from ..utils.logger import get_logger
from ..utils.reference import parse_reference, server_from_auth_key
from .resources import workload_pod_spec

logger = get_logger(__name__)

DEFAULT_SERVICE_ACCOUNT = "default"

SECRET_TYPE_DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
SECRET_TYPE_DOCKERCFG = "kubernetes.io/dockercfg"
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"
DOCKERCFG_KEY = ".dockercfg"

RegistryAuths = Dict[str, RegistryAuth]


def read_docker_config(payload: bytes, legacy: bool = False) -> Dict[str, Dict[str, str]]:
    """Return the auth key -> {username, password} map of a docker config blob."""
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise CredentialError(f"invalid docker config: {e}")
    if not isinstance(data, dict):
        raise CredentialError("invalid docker config: expected a JSON object")

    entries = data if legacy else data.get("auths") or {}
    auths = {}
    for key, entry in entries.items():
        if not isinstance(entry, dict):
            raise CredentialError(f"invalid docker config entry for {key}")
        username = entry.get("username", "")
        password = entry.get("password", "")
        if entry.get("auth") and not (username or password):
            try:
                decoded = base64.b64decode(entry["auth"]).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                raise CredentialError(f"invalid auth field for {key}: {e}")
            username, _, password = decoded.partition(":")
        auths[key] = {"username": username, "password": password}
    return auths


def _secret_payload(secret: Dict[str, Any]) -> Optional[tuple]:
    secret_type = secret.get("type")
    if secret_type == SECRET_TYPE_DOCKER_CONFIG_JSON:
        key, legacy = DOCKER_CONFIG_JSON_KEY, False
    elif secret_type == SECRET_TYPE_DOCKERCFG:
        key, legacy = DOCKERCFG_KEY, True
    else:
        return None

    encoded = (secret.get("data") or {}).get(key)
    if not encoded:
        return None
    try:
        return base64.b64decode(encoded), legacy
    except binascii.Error as e:
        raise CredentialError(f"invalid {key} data in secret {secret_ref(secret)}: {e}")


def secret_ref(secret: Dict[str, Any]) -> str:
    metadata = secret.get("metadata") or {}
    return f"{metadata.get('namespace', '')}/{metadata.get('name', '')}"


def map_registry_auths(secrets: List[Dict[str, Any]]) -> RegistryAuths:
    """Build registry host -> RegistryAuth from pull secrets.

    Hosts found in more than one secret keep every credential, joined with
    commas in the order the secrets were given.
    """
    auths: RegistryAuths = {}
    for secret in secrets:
        payload = _secret_payload(secret)
        if payload is None:
            continue
        data, legacy = payload
        try:
            entries = read_docker_config(data, legacy)
        except CredentialError as e:
            raise CredentialError(f"reading pull secret {secret_ref(secret)}: {e}")

        for key, entry in entries.items():
            try:
                server = server_from_auth_key(key)
            except ValueError as e:
                raise CredentialError(str(e))
            existing = auths.get(server)
            if existing is not None:
                auths[server] = RegistryAuth(
                    server=server,
                    username=f"{existing.username},{entry['username']}",
                    password=f"{existing.password},{entry['password']}",
                )
            else:
                auths[server] = RegistryAuth(server=server, **entry)
    return auths


def auth_for_image(image: str, auths: RegistryAuths) -> Optional[RegistryAuth]:
    """Find the credential for an image: exact host first, then wildcard hosts."""
    if not auths:
        return None
    try:
        server = parse_reference(image).registry
    except ValueError as e:
        logger.debug(f"Cannot parse image {image}: {e}")
        return None

    if server in auths:
        return auths[server]

    best = None
    for candidate in auths:
        if not candidate.startswith("*."):
            continue
        if server.endswith(candidate[1:]) and (best is None or len(candidate) > len(best)):
            best = candidate
    return auths[best] if best else None


class CredentialResolver:
    """Collects pull secrets reachable from a workload's pod spec."""

    def __init__(self, cluster):
        self.cluster = cluster

    def auths_for_pod_spec(self, pod_spec: Dict[str, Any], namespace: str) -> RegistryAuths:
        service_account = pod_spec.get("serviceAccountName") or DEFAULT_SERVICE_ACCOUNT
        refs: List[Dict[str, Any]] = []
        try:
            account = self.cluster.get_service_account(namespace, service_account)
            refs.extend(account.get("imagePullSecrets") or [])
        except (NotFoundError, ForbiddenError) as e:
            logger.debug(f"Service account {namespace}/{service_account} unavailable: {e}")
        refs.extend(pod_spec.get("imagePullSecrets") or [])

        secrets = []
        for ref in refs:
            name = ref.get("name")
            if not name:
                continue
            try:
                secrets.append(self.cluster.get_secret(namespace, name))
            except (NotFoundError, ForbiddenError) as e:
                logger.debug(f"Skipping pull secret {namespace}/{name}: {e}")
        return map_registry_auths(secrets)

    def auths_for_resource(self, obj: Dict[str, Any]) -> RegistryAuths:
        """Return credentials for a workload object; other kinds get none."""
        pod_spec = workload_pod_spec(obj)
        if pod_spec is None:
            return {}
        namespace = (obj.get("metadata") or {}).get("namespace", "")
        return self.auths_for_pod_spec(pod_spec, namespace)

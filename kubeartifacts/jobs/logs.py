"""Pod logs and container statuses of collector jobs."""

from typing import Any, Dict, Iterator, Optional

from ..errors import PodNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)

CONTROLLER_UID_LABELS = ("controller-uid", "batch.kubernetes.io/controller-uid")


def terminated_container_statuses(pod: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Map container name to its terminated state, init containers first."""
    states: Dict[str, Dict[str, Any]] = {}
    if not pod:
        return states
    status = pod.get("status") or {}
    for field in ("initContainerStatuses", "containerStatuses"):
        for container in status.get(field) or []:
            terminated = (container.get("state") or {}).get("terminated")
            if terminated is not None:
                states[container.get("name", "")] = terminated
    return states


class LogsReader:
    """Finds the pod a job created and reads from it."""

    def __init__(self, cluster):
        self.cluster = cluster

    def _pod_for_job(self, job: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        metadata = job.get("metadata") or {}
        namespace = metadata.get("namespace", "")
        refreshed = self.cluster.get_job(namespace, metadata.get("name", ""))

        match_labels = (((refreshed.get("spec") or {}).get("selector") or {}).get("matchLabels")) or {}
        key = CONTROLLER_UID_LABELS[0]
        value = match_labels.get(key)
        if not value:
            key = CONTROLLER_UID_LABELS[1]
            value = match_labels.get(key, "")

        pods = self.cluster.list_pods(namespace, label_selector=f"{key}={value}")
        return pods[0] if pods else None

    def get_logs_by_job_and_container(
        self, job: Dict[str, Any], container: str, follow: bool = True
    ) -> Iterator[str]:
        """Return the log stream of container in the job's pod."""
        pod = self._pod_for_job(job)
        if pod is None:
            metadata = job.get("metadata") or {}
            raise PodNotFoundError(
                f"getting pod controlled by job {metadata.get('namespace')}/{metadata.get('name')}: "
                "pod for job not found"
            )
        pod_metadata = pod.get("metadata") or {}
        return self.cluster.stream_pod_logs(
            pod_metadata.get("namespace", ""), pod_metadata.get("name", ""), container, follow=follow
        )

    def get_terminated_container_statuses_by_job(self, job: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        return terminated_container_statuses(self._pod_for_job(job))

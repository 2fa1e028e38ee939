"""Tests for job pod logs and container statuses."""

import pytest

from kubeartifacts.errors import PodNotFoundError
from kubeartifacts.jobs.logs import LogsReader, terminated_container_statuses


def collector_job():
    return {"metadata": {"name": "node-collector-1a2b3c", "namespace": "kubeartifacts-temp"}}


@pytest.mark.unit
class TestTerminatedContainerStatuses:
    """Unit tests for terminated_container_statuses."""

    def test_running_containers_are_ignored(self):
        pod = {
            "status": {
                "initContainerStatuses": [{"name": "init", "state": {"terminated": {"exitCode": 0}}}],
                "containerStatuses": [
                    {"name": "main", "state": {"running": {}}},
                    {"name": "sidecar", "state": {"terminated": {"exitCode": 137, "reason": "OOMKilled"}}},
                ],
            }
        }
        assert terminated_container_statuses(pod) == {
            "init": {"exitCode": 0},
            "sidecar": {"exitCode": 137, "reason": "OOMKilled"},
        }

    def test_no_pod(self):
        assert terminated_container_statuses(None) == {}


@pytest.mark.unit
class TestLogsReader:
    """Unit tests for LogsReader."""

    def test_logs_of_job_pod(self, fake_cluster, collector_pod):
        job = fake_cluster.create_job("kubeartifacts-temp", collector_job())
        fake_cluster.pods = [collector_pod()]
        fake_cluster.logs = "collector output"

        stream = LogsReader(fake_cluster).get_logs_by_job_and_container(job, "node-collector", follow=False)

        assert "".join(stream) == "collector output"
        assert fake_cluster.log_requests == [
            {
                "namespace": "kubeartifacts-temp",
                "pod": "node-collector-abc12",
                "container": "node-collector",
                "follow": False,
            }
        ]

    def test_newer_controller_uid_label(self, fake_cluster, collector_pod, job_uid):
        job = fake_cluster.create_job("kubeartifacts-temp", collector_job())
        fake_cluster.created_jobs[0]["spec"]["selector"] = {
            "matchLabels": {"batch.kubernetes.io/controller-uid": job_uid}
        }
        pod = collector_pod()
        pod["metadata"]["labels"] = {"batch.kubernetes.io/controller-uid": job_uid}
        fake_cluster.pods = [pod]

        stream = LogsReader(fake_cluster).get_logs_by_job_and_container(job, "node-collector")
        assert "".join(stream) == fake_cluster.logs

    def test_pod_not_found(self, fake_cluster):
        job = fake_cluster.create_job("kubeartifacts-temp", collector_job())
        with pytest.raises(PodNotFoundError, match="pod for job not found"):
            LogsReader(fake_cluster).get_logs_by_job_and_container(job, "node-collector")

    def test_statuses_by_job(self, fake_cluster, collector_pod):
        job = fake_cluster.create_job("kubeartifacts-temp", collector_job())
        fake_cluster.pods = [collector_pod({"exitCode": 1, "reason": "Error"})]

        statuses = LogsReader(fake_cluster).get_terminated_container_statuses_by_job(job)
        assert statuses == {"node-collector": {"exitCode": 1, "reason": "Error"}}

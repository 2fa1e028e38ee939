"""Tests for the command line interface."""

import pytest
from unittest.mock import patch
from typer.testing import CliRunner

from kubeartifacts.cli.main import app
from kubeartifacts.errors import ClusterError

runner = CliRunner()


@pytest.mark.unit
class TestCli:
    """Unit tests for CLI commands."""

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "kubeartifacts" in result.output

    def test_artifacts_table(self, fake_cluster, nginx_pod):
        fake_cluster.objects["pods"] = [nginx_pod]
        with patch("kubeartifacts.cli.main.Cluster", return_value=fake_cluster):
            result = runner.invoke(app, ["artifacts", "--namespace", "default"])

        assert result.exit_code == 0
        assert "nginx" in result.output
        assert "Found 1 artifacts" in result.output
        assert "Using context: test-context" in result.output

    def test_artifacts_json(self, fake_cluster, nginx_pod):
        fake_cluster.objects["pods"] = [nginx_pod]
        with patch("kubeartifacts.cli.main.Cluster", return_value=fake_cluster) as mock_cluster:
            result = runner.invoke(
                app, ["artifacts", "-A", "--resources", "pods", "--format", "json", "--context", "staging"]
            )

        assert result.exit_code == 0
        assert '"kind": "Pod"' in result.output
        assert '"raw_resource"' not in result.output
        mock_cluster.assert_called_once_with(context="staging", kubeconfig=None)

    def test_connection_error(self):
        with patch("kubeartifacts.cli.main.Cluster", side_effect=ClusterError("No Kubernetes configuration available")):
            result = runner.invoke(app, ["artifacts"])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "No Kubernetes configuration available" in result.output

    def test_invalid_toleration(self, fake_cluster):
        with patch("kubeartifacts.cli.main.Cluster", return_value=fake_cluster):
            result = runner.invoke(app, ["nodes", "--toleration", "dedicated=infra:Sometimes"])

        assert result.exit_code == 1
        assert "toleration effect" in result.output

    def test_config_file_context(self, fake_cluster, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("kubernetes:\n  context: from-file\n")
        with patch("kubeartifacts.cli.main.Cluster", return_value=fake_cluster) as mock_cluster:
            result = runner.invoke(app, ["artifacts", "-n", "default", "--config", str(config)])

        assert result.exit_code == 0
        mock_cluster.assert_called_once_with(context="from-file", kubeconfig=None)

    def test_get(self, fake_cluster, sample_deployment):
        fake_cluster.objects["deployments"] = [sample_deployment]
        with patch("kubeartifacts.cli.main.Cluster", return_value=fake_cluster):
            result = runner.invoke(app, ["get", "deploy", "api", "-n", "prod", "--format", "yaml"])

        assert result.exit_code == 0
        assert "kind: Deployment" in result.output
        assert "registry.example.com/api/server:2.0" in result.output

    def test_bom(self, fake_cluster):
        with patch("kubeartifacts.cli.main.Cluster", return_value=fake_cluster):
            result = runner.invoke(app, ["bom", "--format", "json"])

        assert result.exit_code == 0
        assert '"kind": "Cluster"' in result.output

    def test_debug_flag(self):
        with patch("kubeartifacts.cli.main.set_log_level") as mock_set_level:
            result = runner.invoke(app, ["--debug", "version"])

        assert result.exit_code == 0
        mock_set_level.assert_called_once_with("DEBUG")

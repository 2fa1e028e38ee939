"""Tests for configuration parsing."""

from datetime import timedelta

import pytest

from kubeartifacts.errors import ConfigError
from kubeartifacts.model.config import (
    DEFAULT_COLLECTOR_NAMESPACE,
    NodeCollectorOptions,
    ScanOptions,
    load_config,
    parse_label_pairs,
    parse_tolerations,
)


@pytest.mark.unit
class TestParseTolerations:
    """Unit tests for parse_tolerations."""

    def test_key_value_effect(self):
        tolerations = parse_tolerations(["dedicated=infra:NoSchedule"])
        assert tolerations == [
            {"key": "dedicated", "operator": "Equal", "value": "infra", "effect": "NoSchedule"}
        ]

    def test_empty_value_uses_exists(self):
        tolerations = parse_tolerations(["node-role.kubernetes.io/control-plane=:NoSchedule"])
        assert tolerations[0]["operator"] == "Exists"
        assert "value" not in tolerations[0]

    def test_toleration_seconds(self):
        tolerations = parse_tolerations(["spot=true:NoExecute:300"])
        assert tolerations[0]["tolerationSeconds"] == 300

    def test_seconds_omitted_when_not_given(self):
        tolerations = parse_tolerations(["spot=true:NoExecute"])
        assert "tolerationSeconds" not in tolerations[0]

    @pytest.mark.parametrize(
        "value",
        ["dedicated=infra", "dedicated=infra:Sometimes", "dedicated:NoSchedule", "a=b:NoExecute:soon"],
    )
    def test_invalid_tolerations(self, value):
        with pytest.raises(ConfigError):
            parse_tolerations([value])


@pytest.mark.unit
class TestParseLabelPairs:
    """Unit tests for parse_label_pairs."""

    def test_pairs(self):
        labels = parse_label_pairs(["kubernetes.io/os:windows", "pool:gpu"])
        assert labels == {"kubernetes.io/os": "windows", "pool": "gpu"}

    def test_missing_separator(self):
        with pytest.raises(ConfigError):
            parse_label_pairs(["pool=gpu"])


@pytest.mark.unit
class TestOptions:
    """Unit tests for option models."""

    def test_scan_options_namespaced(self):
        assert not ScanOptions().namespaced
        assert ScanOptions(namespace="prod").namespaced
        assert ScanOptions(all_namespaces=True).namespaced

    def test_collector_defaults(self):
        options = NodeCollectorOptions()
        assert options.namespace == DEFAULT_COLLECTOR_NAMESPACE
        assert options.timeout == timedelta(minutes=5)
        assert options.node_config is True


@pytest.mark.unit
class TestLoadConfig:
    """Unit tests for load_config."""

    def test_load_full_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "kubernetes:\n"
            "  context: staging\n"
            "scan:\n"
            "  exclude_namespaces: [kube-system]\n"
            "node_collector:\n"
            "  namespace: scanners\n"
            "  timeout: 120\n"
            "  tolerations:\n"
            "    - dedicated=infra:NoSchedule\n"
        )
        config = load_config(path)
        assert config.kubernetes.context == "staging"
        assert config.scan.exclude_namespaces == ["kube-system"]
        assert config.node_collector.namespace == "scanners"
        assert config.node_collector.timeout == timedelta(seconds=120)
        assert config.node_collector.tolerations[0]["key"] == "dedicated"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scan: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("scan:\n  exclude_owned: [not, a, bool]\n")
        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config(path)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        config = load_config(path)
        assert config.scan == ScanOptions()

"""Tests for resource name resolution."""

import pytest

from kubeartifacts.errors import UnknownResourceError
from kubeartifacts.k8s.gvr import GvrResolver
from kubeartifacts.k8s.resources import DEFAULT_CLUSTER_RESOURCES, DEFAULT_NAMESPACED_RESOURCES


@pytest.mark.unit
class TestGvrResolver:
    """Unit tests for GvrResolver."""

    @pytest.mark.parametrize("name", ["deployments", "deployment", "Deployment", "deploy", "DEPLOY"])
    def test_resolve_aliases(self, fake_cluster, name):
        """Test that plural, singular, kind and short names all resolve."""
        gvr = GvrResolver(fake_cluster).resolve(name)
        assert (gvr.group, gvr.version, gvr.resource) == ("apps", "v1", "deployments")
        assert gvr.kind == "Deployment"
        assert gvr.api_version == "apps/v1"

    def test_resolve_core_resource(self, fake_cluster):
        gvr = GvrResolver(fake_cluster).resolve("po")
        assert gvr.api_version == "v1"
        assert str(gvr) == "pods.v1"

    def test_resolve_with_group_hint(self, fake_cluster):
        fake_cluster.discovery.append(
            {"group": "example.com", "version": "v1", "name": "jobs", "kind": "Job",
             "namespaced": True, "singularName": "job", "shortNames": []}
        )
        resolver = GvrResolver(fake_cluster)
        assert resolver.resolve("jobs.example.com").group == "example.com"
        assert resolver.resolve("jobs.batch").group == "batch"

    def test_unknown_resource(self, fake_cluster):
        with pytest.raises(UnknownResourceError, match="widgets"):
            GvrResolver(fake_cluster).resolve("widgets")

    def test_resolve_all_defaults_whole_cluster(self, fake_cluster):
        gvrs = GvrResolver(fake_cluster).resolve_all(namespaced=False)
        assert [g.resource for g in gvrs] == DEFAULT_NAMESPACED_RESOURCES + DEFAULT_CLUSTER_RESOURCES

    def test_resolve_all_defaults_namespaced(self, fake_cluster):
        gvrs = GvrResolver(fake_cluster).resolve_all(namespaced=True)
        assert [g.resource for g in gvrs] == DEFAULT_NAMESPACED_RESOURCES
        assert not any(GvrResolver.is_cluster_scoped(g) for g in gvrs)

    def test_resolve_all_requested(self, fake_cluster):
        gvrs = GvrResolver(fake_cluster).resolve_all(namespaced=True, resources=["po", "nodes"])
        assert [g.resource for g in gvrs] == ["pods", "nodes"]

    def test_resolve_all_fails_on_unknown(self, fake_cluster):
        with pytest.raises(UnknownResourceError):
            GvrResolver(fake_cluster).resolve_all(namespaced=True, resources=["pods", "gizmos"])

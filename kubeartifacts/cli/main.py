"""Main CLI interface using Typer."""

from datetime import timedelta
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..core import ArtifactReporter
from ..core.scanner_service import ArtifactService
from ..k8s import Cluster
from ..model.config import (
    AppConfig,
    NodeCollectorOptions,
    ScanOptions,
    load_config,
    parse_label_pairs,
    parse_tolerations,
)
from ..model.kubernetes import Artifact
from ..model.report import ReportFormat
from ..utils.logger import get_logger, set_log_level

# Create CLI app
app = typer.Typer(
    name="kubeartifacts",
    help="List scannable artifacts, node info and the BOM of a Kubernetes cluster",
    add_completion=True,
)

console = Console()
logger = get_logger(__name__)


def _load_app_config(config_file: Optional[Path]) -> AppConfig:
    if config_file is None:
        return AppConfig()
    return load_config(config_file)


def _connect(app_config: AppConfig, context: Optional[str], kubeconfig: Optional[str]) -> Cluster:
    context = context or app_config.kubernetes.context
    kubeconfig = kubeconfig or app_config.kubernetes.kubeconfig
    cluster = Cluster(context=context, kubeconfig=kubeconfig)
    current = cluster.current_context()
    if current:
        console.print(f"Using context: [cyan]{current}[/cyan]")
    return cluster


def _scan_options(
    base: ScanOptions,
    namespace: Optional[str],
    all_namespaces: bool,
    include_kinds: List[str],
    exclude_kinds: List[str],
    include_namespaces: List[str],
    exclude_namespaces: List[str],
    exclude_owned: bool,
) -> ScanOptions:
    """Overlay command line values on the scan options from the config file."""
    update = {}
    if namespace:
        update["namespace"] = namespace
    if all_namespaces:
        update["all_namespaces"] = True
    if include_kinds:
        update["include_kinds"] = include_kinds
    if exclude_kinds:
        update["exclude_kinds"] = exclude_kinds
    if include_namespaces:
        update["include_namespaces"] = include_namespaces
    if exclude_namespaces:
        update["exclude_namespaces"] = exclude_namespaces
    if exclude_owned:
        update["exclude_owned"] = True
    return base.copy(update=update)


def _print_artifacts_table(artifacts: List[Artifact]) -> None:
    """Print artifacts in a formatted table."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Kind", style="cyan")
    table.add_column("Namespace", style="blue")
    table.add_column("Name", style="green")
    table.add_column("Images", style="white")
    table.add_column("Credentials", style="yellow")

    for artifact in artifacts:
        servers = sorted({c.server for c in artifact.credentials})
        table.add_row(
            artifact.kind,
            artifact.namespace or "-",
            artifact.name,
            "\n".join(artifact.images),
            ", ".join(servers),
        )

    console.print(table)


def _output(artifacts: List[Artifact], format: ReportFormat, include_raw: bool = False) -> None:
    if format == ReportFormat.TEXT:
        if not artifacts:
            console.print("[yellow]No artifacts found matching the criteria[/yellow]")
            return
        _print_artifacts_table(artifacts)
        console.print(f"Found [green]{len(artifacts)}[/green] artifacts")
        return
    report = ArtifactReporter(include_raw=include_raw).generate_report(artifacts, format)
    typer.echo(report)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Kubernetes artifact discovery."""
    if debug:
        set_log_level("DEBUG")


@app.command()
def artifacts(
    namespace: Optional[str] = typer.Option(
        None, "--namespace", "-n", help="Only scan this namespace (default: whole cluster)"
    ),
    all_namespaces: bool = typer.Option(
        False, "--all-namespaces", "-A", help="Scan namespaced resources of every namespace"
    ),
    resources: str = typer.Option(
        "", "--resources", "-r", help="Comma separated resources to scan (e.g. pods,deployments)"
    ),
    include_kinds: List[str] = typer.Option(
        [], "--include-kind", help="Only keep these kinds (can be used multiple times)"
    ),
    exclude_kinds: List[str] = typer.Option(
        [], "--exclude-kind", help="Drop these kinds (can be used multiple times)"
    ),
    include_namespaces: List[str] = typer.Option(
        [], "--include-namespace", help="Only keep objects of these namespaces"
    ),
    exclude_namespaces: List[str] = typer.Option(
        [], "--exclude-namespace", help="Drop objects of these namespaces"
    ),
    exclude_owned: bool = typer.Option(
        False, "--exclude-owned", help="Drop objects owned by built-in controllers even when resources are given"
    ),
    format: ReportFormat = typer.Option(
        ReportFormat.TEXT, "--format", "-f", help="Output format"
    ),
    include_raw: bool = typer.Option(
        False, "--raw", help="Include the raw object in json and yaml output"
    ),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML config file"),
):
    """List scannable artifacts of the cluster."""
    try:
        app_config = _load_app_config(config_file)
        options = _scan_options(
            app_config.scan,
            namespace,
            all_namespaces,
            include_kinds,
            exclude_kinds,
            include_namespaces,
            exclude_namespaces,
            exclude_owned,
        )
        with console.status("[bold green]Discovering artifacts..."):
            cluster = _connect(app_config, context, kubeconfig)
            service = ArtifactService(cluster, options).resources(resources)
            found = service.list_artifacts()
        _output(found, format, include_raw)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def nodes(
    tolerations: List[str] = typer.Option(
        [], "--toleration", "-t", help="Collector toleration (format: key=value:Effect[:seconds])"
    ),
    exclude_nodes: List[str] = typer.Option(
        [], "--exclude-nodes", help="Skip nodes carrying all these labels (format: key:value)"
    ),
    collector_namespace: Optional[str] = typer.Option(
        None, "--node-collector-namespace", help="Namespace for node collector jobs"
    ),
    image: Optional[str] = typer.Option(None, "--node-collector-image", help="Node collector image"),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", help="Seconds to wait for each node collector job"
    ),
    format: ReportFormat = typer.Option(
        ReportFormat.TEXT, "--format", "-f", help="Output format"
    ),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML config file"),
):
    """Collect node info by running a collector job on every node."""
    try:
        app_config = _load_app_config(config_file)
        update = {}
        if tolerations:
            update["tolerations"] = parse_tolerations(tolerations)
        if exclude_nodes:
            update["ignore_labels"] = parse_label_pairs(exclude_nodes)
        if collector_namespace:
            update["namespace"] = collector_namespace
        if image:
            update["image_ref"] = image
        if timeout:
            update["timeout"] = timedelta(seconds=timeout)
        collector_options: NodeCollectorOptions = app_config.node_collector.copy(update=update)

        with console.status("[bold green]Collecting node info..."):
            cluster = _connect(app_config, context, kubeconfig)
            service = ArtifactService(cluster, app_config.scan).resources("nodes")
            found = service.list_artifacts_and_node_info(collector_options)

        node_info = [a for a in found if a.kind == "NodeInfo"]
        if format == ReportFormat.TEXT:
            console.print(f"Collected node info from [green]{len(node_info)}[/green] nodes")
            for node_name, error in service.node_errors.items():
                console.print(f"[red]✗[/red] {node_name}: {error}")
        else:
            _output(node_info, format, include_raw=True)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def bom(
    include_namespaces: List[str] = typer.Option(
        [], "--include-namespace", help="Only keep components of these namespaces"
    ),
    exclude_namespaces: List[str] = typer.Option(
        [], "--exclude-namespace", help="Drop components of these namespaces"
    ),
    exclude_kinds: List[str] = typer.Option(
        [], "--exclude-kind", help="Drop these kinds (use 'node' to skip node components)"
    ),
    format: ReportFormat = typer.Option(
        ReportFormat.TEXT, "--format", "-f", help="Output format"
    ),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML config file"),
):
    """Show the cluster bill of materials."""
    try:
        app_config = _load_app_config(config_file)
        options = _scan_options(
            app_config.scan, None, False, [], exclude_kinds, include_namespaces, exclude_namespaces, False
        )
        with console.status("[bold green]Building cluster BOM..."):
            cluster = _connect(app_config, context, kubeconfig)
            found = ArtifactService(cluster, options).list_cluster_bom_info()
        _output(found, format, include_raw=True)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def get(
    kind: str = typer.Argument(help="Resource kind or name (e.g. deployment, deploy, pods)"),
    name: str = typer.Argument(help="Object name"),
    namespace: Optional[str] = typer.Option(None, "--namespace", "-n", help="Namespace of the object"),
    format: ReportFormat = typer.Option(
        ReportFormat.YAML, "--format", "-f", help="Output format"
    ),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file"),
):
    """Show one object as an artifact."""
    try:
        cluster = _connect(AppConfig(), context, kubeconfig)
        service = ArtifactService(cluster)
        if namespace:
            service.namespace(namespace)
        artifact = service.get_artifact(kind, name)
        _output([artifact], format)
    except Exception as e:
        console.print(f"[red]Error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    console.print("[bold]kubeartifacts[/bold] version 0.1.0")
    console.print("Kubernetes artifact, node info and BOM discovery for security scanners")


if __name__ == "__main__":
    app()

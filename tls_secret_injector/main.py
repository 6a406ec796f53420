"""
TLS Secret Injector — CLI Entry Point

Usage:
    tls-secret-injector --source-namespace certs run
    tls-secret-injector --source-namespace certs sync
    tls-secret-injector --source-namespace certs refresh tls-example-io
    tls-secret-injector check-config
"""

from __future__ import annotations

# Load .env file FIRST, before any other imports that might read env vars
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

from typing import Optional

import click

from .cli import get_settings, get_store
from .cli.config import check_config
from .cli.ops import health, metrics_cmd
from .cli.replicas import refresh, replicas, sync
from .config.settings import load_settings
from .config.validator import check_settings_on_startup
from .logging_config import setup_logging
from .validation import ConfigurationError


@click.group()
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML file with settings")
@click.option("--source-namespace", default=None,
              help="Namespace containing the original TLS Secret from which we want to copy")
@click.option("--log-level", default=None, help="Log verbosity level")
@click.option("--log-format", default=None, help="Log output format (text, json)")
@click.option("--cert-dir", default=None, help="Directory that holds the tls.crt and tls.key files")
@click.option("--webhook-port", type=int, default=None, help="Port the admission webhook listens on")
@click.option("--probe-port", type=int, default=None, help="Port serving /healthz and /readyz")
@click.option("--metrics-port", type=int, default=None, help="Port serving /metrics")
@click.option("--leader-election-resource", default=None,
              help="Resource name that the leader election will use for holding the leader lock")
@click.option("--leader-election-namespace", default=None,
              help="Namespace in which the leader election resource will be created")
@click.option("--workers", type=int, default=None, help="Reconcile workers per controller")
@click.option("--kubeconfig", default=None, help="Path to a kubeconfig file (default: in-cluster)")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[Path], **overrides) -> None:
    """TLS Secret Injector — Copy TLS Secrets to the namespaces whose Ingresses use them."""
    ctx.ensure_object(dict)
    try:
        settings = load_settings(overrides, config_file)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    try:
        setup_logging(settings.log_level, settings.log_format)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level/--log-format")

    ctx.obj["settings"] = settings


@cli.command()
@click.option("--insecure", is_flag=True, help="Serve the webhook without TLS (local development only)")
@click.pass_context
def run(ctx: click.Context, insecure: bool) -> None:
    """Run the webhook and the controllers until interrupted."""
    from .controllers.manager import Manager

    settings = get_settings(ctx)
    try:
        check_settings_on_startup(settings, require_certs=not insecure)
    except ConfigurationError as e:
        raise click.ClickException(str(e))

    Manager(settings, get_store(ctx)).run()


cli.add_command(check_config)
cli.add_command(sync)
cli.add_command(refresh)
cli.add_command(replicas)
cli.add_command(health)
cli.add_command(metrics_cmd)


if __name__ == "__main__":
    cli()

"""
CLI replica commands — one-shot reconciles and replica listing.

Usage:
    tls-secret-injector sync
    tls-secret-injector refresh NAME
    tls-secret-injector replicas [NAME] [--json]

These run the same reconcilers as the controllers, once, without
leader election. Use them to catch up after downtime or to check what
the injector has created.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, List, Optional

import click

from . import get_store, require_source_namespace


def _echo_result(result) -> None:
    colors = {"ok": "green", "skipped": "cyan", "retry": "red"}
    click.secho(f"  {result.status:8}", fg=colors.get(result.status), nl=False)
    click.echo(f" {result.key}", nl=False)
    details = []
    if result.created:
        details.append(f"created {', '.join(result.created)}")
    if result.updated:
        details.append(f"updated {', '.join(result.updated)}")
    if result.failed:
        details.append(f"failed {', '.join(result.failed)}")
    if result.reason:
        details.append(result.reason)
    if result.error:
        details.append(result.error)
    click.echo(f" — {'; '.join(details)}" if details else "")


@click.command("sync")
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Create missing replicas for every Ingress in the cluster."""
    from ..controllers.declaration import DeclarationReconciler
    from ..engine.replication import ReplicationEngine
    from ..models.resources import KIND_INGRESS, NamespacedName
    from ..store.errors import StoreError

    source_namespace = require_source_namespace(ctx)
    store = get_store(ctx)
    reconciler = DeclarationReconciler(store, ReplicationEngine(store), source_namespace)

    try:
        ingresses = store.list(KIND_INGRESS)
    except StoreError as e:
        raise click.ClickException(f"could not list Ingresses: {e}")

    click.echo(f"\n🔄 Reconciling {len(ingresses)} Ingress(es)\n")
    created = 0
    retries = 0
    for meta in ingresses:
        result = reconciler.reconcile(NamespacedName(meta.namespace, meta.name))
        _echo_result(result)
        created += len(result.created)
        retries += int(result.retryable)

    click.echo()
    click.secho(f"Summary: {created} Secret(s) created, {retries} failure(s)", bold=True)
    if retries:
        raise SystemExit(1)


@click.command("refresh")
@click.argument("name")
@click.pass_context
def refresh(ctx: click.Context, name: str) -> None:
    """Push the data of source Secret NAME to all of its replicas."""
    from ..controllers.credential import CredentialReconciler
    from ..models.resources import NamespacedName

    source_namespace = require_source_namespace(ctx)
    reconciler = CredentialReconciler(get_store(ctx), source_namespace)
    result = reconciler.reconcile(NamespacedName(source_namespace, name))

    click.echo()
    _echo_result(result)
    click.echo()
    if result.retryable or result.failed:
        raise SystemExit(1)


@click.command("replicas")
@click.argument("name", required=False)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def replicas(ctx: click.Context, name: Optional[str], as_json: bool) -> None:
    """List replicas of source Secret NAME, or of every source Secret."""
    from ..models.resources import APP_NAME, IDENTITY_LABEL, KIND_SECRET, SOURCE_NAME_LABEL, provenance_labels
    from ..store.errors import StoreError

    source_namespace = require_source_namespace(ctx)
    store = get_store(ctx)
    selector = provenance_labels(name) if name else {IDENTITY_LABEL: APP_NAME}
    try:
        items = store.list(KIND_SECRET, selector)
    except StoreError as e:
        raise click.ClickException(f"could not list Secrets: {e}")

    by_source: Dict[str, List[str]] = defaultdict(list)
    for meta in items:
        if meta.namespace == source_namespace:
            continue
        by_source[meta.labels.get(SOURCE_NAME_LABEL, "")].append(f"{meta.namespace}/{meta.name}")

    if as_json:
        import json
        click.echo(json.dumps(dict(by_source), indent=2, sort_keys=True))
        return

    if not by_source:
        click.echo("No replicas found")
        return

    for source in sorted(by_source):
        click.secho(f"{source_namespace}/{source}", bold=True)
        for target in by_source[source]:
            click.echo(f"  → {target}")

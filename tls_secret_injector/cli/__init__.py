"""
CLI Module — Command groups and the helpers they share.
"""

from __future__ import annotations

import click

from ..config.settings import Settings
from ..store import ResourceStore, create_store


def get_settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def get_store(ctx: click.Context) -> ResourceStore:
    """The store for this invocation, built on first use."""
    store = ctx.obj.get("store")
    if store is None:
        settings = get_settings(ctx)
        store = create_store("kubernetes", settings.kubeconfig or None)
        ctx.obj["store"] = store
    return store


def require_source_namespace(ctx: click.Context) -> str:
    namespace = get_settings(ctx).source_namespace
    if not namespace:
        raise click.UsageError("--source-namespace (or SOURCE_NAMESPACE) is required")
    return namespace

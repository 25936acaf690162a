"""Memento CLI - maintenance and retrieval commands for the relevance engine."""
import asyncio
import json
from typing import Awaitable, Callable, Optional, TypeVar

import click

from scitrera_app_framework import Variables, get_variables

from .config import MEMENTO_TASKS_ENABLED, DEFAULT_HYBRID_ALPHA, DEFAULT_RESULT_LIMIT

T = TypeVar('T')


def _run(fn: Callable[[Variables], Awaitable[T]]) -> T:
    """Bring services up, run ``fn`` and shut everything down again."""
    from .dependencies import initialize_services, shutdown_services

    async def _main():
        v = get_variables()
        v.set(MEMENTO_TASKS_ENABLED, "false")  # one-shot commands never start recurring schedules
        v = await initialize_services(v)
        try:
            return await fn(v)
        finally:
            await shutdown_services(v)

    return asyncio.run(_main())


async def _workspaces(v: Variables, workspace: Optional[str]) -> list[str]:
    if workspace:
        return [workspace]
    from .services.storage import get_storage_backend
    return await get_storage_backend(v).list_all_workspace_ids()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logs")
def cli(verbose: bool):
    """Memento - relevance scoring, decay and consolidation for agent memories."""
    v = get_variables()  # get variables instance prior to preconfigure() call
    if verbose:
        v.set("LOGGING_LEVEL", "DEBUG")


@cli.command()
def version():
    """Show version information."""
    from memento_engine import __version__
    click.echo(f"memento-engine v{__version__}")


@cli.command()
@click.option('--workspace', '-w', default=None, help='Workspace ID (default: all workspaces)')
def decay(workspace: Optional[str]):
    """Recompute the cached relevance of active memories."""
    from .services.decay import get_decay_service

    async def _decay(v: Variables):
        service = get_decay_service(v)
        for workspace_id in await _workspaces(v, workspace):
            result = await service.decay_workspace(workspace_id)
            click.echo(f"{workspace_id}: {result.processed} processed, {result.decayed} decayed, "
                       f"{result.errors} errors")

    _run(_decay)


@cli.command()
@click.option('--workspace', '-w', default=None, help='Workspace ID (default: all workspaces)')
def consolidate(workspace: Optional[str]):
    """Consolidate clusters of memories that share tags."""
    from .services.consolidation import get_consolidation_service

    async def _consolidate(v: Variables):
        service = get_consolidation_service(v)
        for workspace_id in await _workspaces(v, workspace):
            await service.reconcile_workspace(workspace_id)
            result = await service.consolidate_workspace(workspace_id)
            click.echo(f"{workspace_id}: {result.groups} groups, {result.memories} memories consolidated")

    _run(_consolidate)


@cli.command()
@click.argument('memory_ids', nargs=-1, required=True)
@click.option('--workspace', '-w', required=True, help='Workspace ID')
@click.option('--content', default=None, help='Content for the merged memory (default: summary)')
@click.option('--type', 'memory_type', default=None, help='Type for the merged memory (default: majority type)')
@click.option('--tag', 'tags', multiple=True, help='Extra tag for the merged memory (repeatable)')
def merge(memory_ids: tuple[str, ...], workspace: str, content: Optional[str], memory_type: Optional[str],
          tags: tuple[str, ...]):
    """Merge the given memories into a new memory."""
    from .models import ConsolidateInput
    from .services.consolidation import get_consolidation_service

    async def _merge(v: Variables):
        service = get_consolidation_service(v)
        result = await service.consolidate_explicit(workspace, ConsolidateInput(
            source_ids=list(memory_ids),
            content=content,
            type=memory_type,
            tags=list(tags),
        ))
        wait_for_background = getattr(service, 'wait_for_background', None)
        if wait_for_background is not None:
            await wait_for_background()
        return result

    result = _run(_merge)
    if not result.accepted:
        click.echo(f"Error: {result.message}", err=True)
        raise SystemExit(1)
    click.echo(result.message)


@cli.command()
@click.option('--workspace', '-w', default=None, help='Workspace ID (default: all workspaces)')
def reconcile(workspace: Optional[str]):
    """Complete or remove partially-written consolidations."""
    from .services.consolidation import get_consolidation_service

    async def _reconcile(v: Variables):
        service = get_consolidation_service(v)
        for workspace_id in await _workspaces(v, workspace):
            result = await service.reconcile_workspace(workspace_id)
            click.echo(f"{workspace_id}: {result.rolled_forward} rolled forward, "
                       f"{result.orphans_removed} orphans removed")

    _run(_reconcile)


@cli.command()
@click.option('--workspace', '-w', default=None, help='Workspace ID (default: all workspaces)')
def backfill(workspace: Optional[str]):
    """Embed memories that have not been indexed yet."""
    from .services.embedding import get_embedding_service
    from .services.storage import get_storage_backend

    async def _backfill(v: Variables):
        service = get_embedding_service(v)
        storage = get_storage_backend(v)
        if not service.is_available:
            click.echo("Embedding is not configured; nothing to backfill", err=True)
            return
        for workspace_id in await _workspaces(v, workspace):
            result = await service.backfill_workspace(storage, workspace_id)
            click.echo(f"{workspace_id}: {result.embedded} embedded, {result.skipped} skipped, "
                       f"{result.errors} errors")

    _run(_backfill)


@cli.command()
@click.argument('query')
@click.option('--workspace', '-w', required=True, help='Workspace ID')
@click.option('--limit', default=DEFAULT_RESULT_LIMIT, type=int, help='Maximum number of results')
@click.option('--alpha', default=DEFAULT_HYBRID_ALPHA, type=click.FloatRange(0.0, 1.0),
              help='Keyword weight for hybrid ranking (1.0 = keyword only)')
def search(query: str, workspace: str, limit: int, alpha: float):
    """Search a workspace with keyword and (when configured) vector retrieval. Hits count as accesses."""
    from .services.embedding import get_embedding_service
    from .services.retrieval import search_workspace
    from .services.storage import get_storage_backend

    async def _search(v: Variables):
        return await search_workspace(
            get_storage_backend(v), get_embedding_service(v), workspace, query,
            limit=limit, alpha=alpha, v=v,
        )

    for hit in _run(_search):
        click.echo(f"{hit.score:.3f}  [{hit.memory.id}] ({hit.memory.type}) {hit.memory.content[:80]}")


@cli.command()
@click.option("--format", "output_format", default="text", type=click.Choice(["text", "json"]))
def info(output_format: str):
    """Show configuration and per-workspace statistics."""
    from .services.storage import get_storage_backend

    v = get_variables()
    v.set("LOGGING_LEVEL", "ERROR")  # suppress logs during info output

    async def _info(v: Variables):
        storage = get_storage_backend(v)
        return [await storage.get_workspace_stats(w) for w in await storage.list_all_workspace_ids()]

    stats = _run(_info)
    settings = {
        k.removeprefix('MEMENTO_'): '(redacted)' if any(
            x in k.lower() for x in ('password', 'secret', 'token', 'key')) else val
        for (k, val) in sorted(v.export_all_variables().items(), key=lambda kv: kv[0])
        if k.startswith('MEMENTO')
    }

    if output_format == "json":
        click.echo(json.dumps({"settings": settings, "workspaces": stats}, indent=2, default=str))
    else:
        click.echo("Memento Configuration")
        click.echo("=" * 40)
        for k, val in settings.items():
            click.echo(f"{k}: {val}")
        click.echo("")
        click.echo("Workspaces")
        click.echo("=" * 40)
        for ws in stats:
            click.echo(f"{ws['workspace_id']}: {ws['total_memories']} memories, "
                       f"{ws['consolidated_memories']} consolidated, {ws['embedded_memories']} embedded, "
                       f"{ws['consolidations']} consolidation records")


if __name__ == "__main__":
    cli()

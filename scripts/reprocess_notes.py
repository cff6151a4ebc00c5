#!/usr/bin/env python3
"""
Reprocess Notes Script

Runs notes that have no embedding yet back through the note processor
(classify -> embed -> persist). Useful after a model outage or after
switching embedding provider.

Usage:
    Requires the database and model endpoints from .env:
    $ python scripts/reprocess_notes.py --limit 100
    $ python scripts/reprocess_notes.py --owner <user-uuid> --dry-run
    $ python scripts/reprocess_notes.py --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from notekeeper.core.config import settings
from notekeeper.core.database import dispose_engine, get_session_factory
from notekeeper.core.logging import setup_logging
from notekeeper.repositories.notes import note_repository
from notekeeper.services.processor import build_note_processor

console = Console()
logger = logging.getLogger("notekeeper.scripts.reprocess")


async def find_candidates(
    owner_id: uuid.UUID | None,
    limit: int | None,
) -> list[uuid.UUID]:
    """Ids of notes without an embedding, oldest first."""
    factory = get_session_factory()
    async with factory() as session:
        ids = await note_repository.find_note_ids_missing_embedding(
            session,
            owner_id=owner_id,
            limit=limit,
        )
    return list(ids)


async def reprocess(note_ids: list[uuid.UUID]) -> tuple[int, int, int]:
    """Process notes one by one; returns (succeeded, skipped, failed)."""
    processor = build_note_processor()
    succeeded = skipped = failed = 0

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console,
    ) as progress:
        task = progress.add_task("Reprocessing notes...", total=len(note_ids))

        for note_id in note_ids:
            try:
                pattern = await processor.process_note_created(note_id)
                if pattern is None:
                    skipped += 1
                else:
                    succeeded += 1
            except Exception:
                logger.exception("Reprocessing failed for note %s", note_id)
                failed += 1
            progress.advance(task)

    return succeeded, skipped, failed


async def run(args: argparse.Namespace) -> int:
    try:
        note_ids = await find_candidates(args.owner, args.limit)
        console.print(f"[blue]ℹ[/blue] {len(note_ids)} notes without embedding")

        if args.dry_run:
            for note_id in note_ids:
                console.print(f"  • {note_id}")
            return 0
        if not note_ids:
            return 0

        succeeded, skipped, failed = await reprocess(note_ids)
    finally:
        await dispose_engine()

    console.print(f"[green]✓[/green] {succeeded} processed")
    if skipped:
        console.print(
            f"[yellow]![/yellow] {skipped} skipped (no note, topics or result)"
        )
    if failed:
        console.print(f"[red]✗[/red] {failed} failed (see log)")
        return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Reprocess notes missing an embedding")
    parser.add_argument(
        "--owner", type=uuid.UUID, default=None, help="Only this user's notes"
    )
    parser.add_argument(
        "--limit", type=int, default=None, help="Maximum number of notes"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List candidate notes without processing them",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log notekeeper at DEBUG level"
    )
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)
    title = f"[bold]{settings.PROJECT_NAME}: reprocess notes[/bold]"
    console.print(Panel(title, style="blue"))
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for anchorsched."""

from __future__ import annotations

import csv
import itertools
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Annotated

import typer

from . import applicability, context, propagation, template_sync
from .config import Settings, discover_settings
from .exceptions import AnchorschedError
from .logger import setup_logger
from .models import (
    BatchSyncResult,
    PropagationChange,
    PropagationSkip,
    ResolvedItem,
    TemplateSyncChange,
)
from .parser import ProjectDocument, ScheduleFileParser
from .scheduler import resolve, summarize, validate

app = typer.Typer(
    name="anchorsched",
    help="Anchor-based schedule resolution, propagation and template sync for supplier checklists",
    add_completion=False,
)

FileArgument = Annotated[Path, typer.Argument(help="Path to the project document YAML file")]


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity: 0=warnings only (default), 1=changes, 2=all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to settings file (default: anchorsched.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for anchorsched commands."""
    setup_logger(verbose)
    context.set_settings_path(config)


def _load_document(file: Path) -> ProjectDocument:
    """Parse a project document, exiting with a message on failure."""
    try:
        return ScheduleFileParser().parse_file(file)
    except AnchorschedError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _load_settings() -> Settings:
    """Load settings, exiting with a message on failure."""
    try:
        return discover_settings()
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _status_label(resolved: ResolvedItem) -> str:
    if resolved.error is not None:
        return f"error: {resolved.error}"
    if resolved.planned_date is None:
        return "pending"
    return "ok"


def _display_resolved(resolved_items: list[ResolvedItem]) -> None:
    """Display resolved dates to stdout."""
    typer.echo("Schedule Results")
    typer.echo("=" * 80)
    for resolved in resolved_items:
        planned = resolved.planned_date.isoformat() if resolved.planned_date else "-"
        typer.echo(f"{resolved.name} ({resolved.id})")
        typer.echo(f"  Planned: {planned}  [{_status_label(resolved)}]")

    summary = summarize(resolved_items)
    typer.echo("")
    typer.echo(
        f"{summary.total} items: {summary.dated} dated, {summary.pending} pending, "
        f"{summary.errored} errors"
    )


def _export_resolved_csv(resolved_items: list[ResolvedItem]) -> None:
    """Write resolved dates as CSV to stdout."""
    writer = csv.writer(sys.stdout)
    writer.writerow(["item_id", "item_name", "planned_date", "status"])
    for resolved in resolved_items:
        planned = resolved.planned_date.isoformat() if resolved.planned_date else ""
        writer.writerow([resolved.id, resolved.name, planned, _status_label(resolved)])


@app.command()
def schedule(
    file: FileArgument,
    *,
    business_days: Annotated[
        bool | None,
        typer.Option(
            "--business-days/--calendar-days",
            help="Offset by business days or calendar days. Overrides settings",
        ),
    ] = None,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (text or csv)"),
    ] = "text",
) -> None:
    """Resolve planned dates for the document's schedule items."""
    if output_format not in ("text", "csv"):
        typer.echo(
            f"Error: Invalid format '{output_format}'. Must be 'text' or 'csv'.",
            err=True,
        )
        raise typer.Exit(1)

    document = _load_document(file)
    settings = _load_settings()
    use_business_days = (
        settings.propagation.use_business_days if business_days is None else business_days
    )

    resolved_items = resolve(
        document.items, use_business_days, document.actual_dates, document.milestone_dates
    )

    if output_format == "csv":
        _export_resolved_csv(resolved_items)
    else:
        _display_resolved(resolved_items)


@app.command(name="validate")
def validate_command(file: FileArgument) -> None:
    """Check the document's schedule items for structural problems."""
    document = _load_document(file)
    problems = validate(document.items)

    if not problems:
        typer.echo(f"{len(document.items)} schedule items, no problems found")
        return

    typer.echo(f"Found {len(problems)} problem(s):")
    for problem in problems:
        typer.echo(f"  - {problem}")
    raise typer.Exit(1)


def _format_change(change: PropagationChange) -> str:
    return (
        f"  {change.supplier_name} / {change.item_name}: "
        f"{change.current_date or '-'} -> {change.new_date or '-'}"
    )


def _format_skip(skip: PropagationSkip) -> str:
    return f"  {skip.supplier_name} / {skip.item_name}: {skip.reason}"


@app.command()
def propagate(
    file: FileArgument,
    *,
    supplier: Annotated[
        list[str] | None,
        typer.Option("--supplier", "-s", help="Only apply changes for these supplier IDs"),
    ] = None,
    cascade: Annotated[
        bool,
        typer.Option("--cascade", help="Re-apply until no further changes appear"),
    ] = False,
) -> None:
    """Show how recomputed dates would propagate to supplier instances."""
    document = _load_document(file)
    settings = _load_settings()
    policy = settings.propagation
    selected = set(supplier) if supplier else None

    if cascade:
        result, iterations = propagation.cascade(
            document.project_id,
            document.items,
            document.milestone_dates,
            document.suppliers,
            policy,
            selected,
            settings.max_propagation_iterations,
        )
        if result.errors:
            typer.echo(f"Did not settle after {iterations} iteration(s)")
        else:
            typer.echo(f"Settled after {iterations} iteration(s)")
    else:
        preview = propagation.preview(
            document.project_id,
            document.items,
            document.milestone_dates,
            document.suppliers,
            policy,
        )
        if selected is None:
            typer.echo(f"Will change ({len(preview.will_change)}):")
            for change in preview.will_change:
                typer.echo(_format_change(change))
            typer.echo(f"Won't change ({len(preview.wont_change)}):")
            for skip in preview.wont_change:
                typer.echo(_format_skip(skip))
            return
        result = propagation.filter_changes(preview, selected)

    typer.echo(f"Updated ({len(result.updated)}):")
    for change in result.updated:
        typer.echo(_format_change(change))
    typer.echo(f"Skipped ({len(result.skipped)}):")
    for skip in result.skipped:
        typer.echo(_format_skip(skip))
    if result.errors:
        typer.echo("\nErrors:", err=True)
        for entity_id, message in result.errors:
            typer.echo(f"  - {entity_id}: {message}", err=True)
        raise typer.Exit(1)


def _new_id_factory(documents: list[ProjectDocument]) -> Callable[[str], str]:
    """Build an ID factory that never reuses an ID already present in the documents."""
    taken = {item.id for document in documents for item in document.items}
    counter = itertools.count(1)

    def new_id(entity_id: str) -> str:
        while True:
            candidate = f"{entity_id}-{next(counter)}"
            if candidate not in taken:
                taken.add(candidate)
                return candidate

    return new_id


def _show_sync_changes(changes: Sequence[TemplateSyncChange]) -> None:
    for change in changes:
        typer.echo(f"[{change.type.value}] {change.item_name}: {change.details}")


@app.command()
def sync(
    files: Annotated[
        list[Path], typer.Argument(help="Project document YAML files to compare or sync")
    ],
    *,
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Materialize the template into every document"),
    ] = False,
) -> None:
    """Show or apply changes bringing project items in line with the template."""
    if not apply:
        for file in files:
            document = _load_document(file)
            if len(files) > 1:
                typer.echo(f"== {document.project_id} ==")
            changes = template_sync.diff(document.items, document.template_items)
            if not changes:
                typer.echo("Project items are in sync with the template")
            _show_sync_changes(changes)
        return

    # A document that fails to load is one failed entity; the rest still sync
    failures: list[BatchSyncResult] = []
    documents: list[ProjectDocument] = []
    parser = ScheduleFileParser()
    for file in files:
        try:
            documents.append(parser.parse_file(file))
        except AnchorschedError as e:
            failures.append(BatchSyncResult(entity_id=str(file), success=False, error=str(e)))

    results = failures + template_sync.sync_all(
        ((d.project_id, d.items, d.template_items) for d in documents),
        _new_id_factory(documents),
    )

    for result in results:
        if result.success:
            typer.echo(f"{result.entity_id}: synced ({len(result.changes)} change(s))")
            _show_sync_changes(result.changes)
            for item in result.items:
                typer.echo(f"  {item.id}: {item.name}")

    errors = [(r.entity_id, r.error) for r in results if not r.success]
    if errors:
        typer.echo("\nErrors:", err=True)
        for entity_id, message in errors:
            typer.echo(f"  - {entity_id}: {message}", err=True)
        raise typer.Exit(1)



@app.command()
def applicable(file: FileArgument) -> None:
    """Evaluate applicability rules for the document's context."""
    document = _load_document(file)
    settings = _load_settings()

    results = applicability.evaluate_many(
        document.templates,
        document.applicability_context,
        settings.ranks.nmr_ranks,
        settings.ranks.pa_ranks,
    )
    for template_id, is_applicable in results.items():
        typer.echo(f"{template_id}: {'applicable' if is_applicable else 'not applicable'}")


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()

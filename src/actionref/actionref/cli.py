# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""CLI commands for reference resolution and workflow inspection."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from .config import ActionRefConfig, load_and_validate_config
from .errors import ContentParseError, show_error
from .logconfig import configure_logging
from .model.builder import build_tree
from .references.cache import ResolvedEntry
from .references.parser import ReferenceDescriptor, parse_reference
from .references.resolver import Resolver

console = Console()


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for actionref commands."""
    parser = argparse.ArgumentParser(
        description="Resolve CI workflow 'uses:' references and inspect workflow files",
        prog="actionref",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (default: ACTIONREF_LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--logfile",
        type=str,
        default=None,
        help="Write logs to this file instead of stderr",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Command to run",
        required=True,
    )

    # resolve subcommand
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve references and show their inputs and outputs",
        description=(
            "Fetch the action manifest or reusable workflow behind each reference "
            "and list the inputs and outputs it declares."
        ),
    )
    resolve_parser.add_argument("references", nargs="+", help="Values of 'uses:' fields")
    resolve_parser.add_argument(
        "--format",
        choices=["text", "table", "json"],
        default="text",
        help="Output format (default: text)",
    )

    # scan subcommand
    scan_parser = subparsers.add_parser(
        "scan",
        help="List jobs, dependencies and references of a workflow file",
    )
    scan_parser.add_argument("path", help="Path to a workflow YAML file")
    scan_parser.add_argument(
        "--resolve",
        action="store_true",
        help="Also resolve every referenced action and workflow",
    )
    scan_parser.add_argument(
        "--workspace-root",
        type=str,
        default=None,
        help="Directory local './' references are read from (default: ACTIONREF_WORKSPACE_ROOT)",
    )

    # parse subcommand
    parse_parser = subparsers.add_parser(
        "parse",
        help="Show how a reference string is interpreted, without fetching it",
    )
    parse_parser.add_argument("reference", help="Value of a 'uses:' field")
    parse_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )

    return parser


def descriptor_to_dict(descriptor: ReferenceDescriptor) -> Dict[str, Any]:
    return {
        "reference": descriptor.raw_reference,
        "kind": descriptor.kind.value,
        "slug": descriptor.slug,
        "ref": descriptor.ref,
        "subpath": descriptor.subpath,
        "name": descriptor.name,
        "is_local": descriptor.is_local,
        "download_location": descriptor.download_location,
        "browse_url": descriptor.browse_url,
        "marketplace_url": descriptor.marketplace_url,
    }


def entry_to_dict(entry: ResolvedEntry) -> Dict[str, Any]:
    data = descriptor_to_dict(entry.descriptor)
    data.update(
        available=entry.is_available,
        expires_at=entry.expires_at,
        inputs=dict(entry.inputs),
        outputs=dict(entry.outputs),
    )
    return data


def _mark(available: bool) -> str:
    return "[green]✓[/green]" if available else "[red]✗[/red]"


def print_entries_text(entries: List[ResolvedEntry]):
    """Print resolved entries in text format."""
    for entry in entries:
        descriptor = entry.descriptor
        console.print(
            f"{_mark(entry.is_available)} [bold]{descriptor.raw_reference}[/bold] "
            f"[dim]({descriptor.kind.value})[/dim]"
        )
        if descriptor.marketplace_url:
            console.print(f"  marketplace: {descriptor.marketplace_url}")
        if descriptor.browse_url:
            console.print(f"  source: {descriptor.browse_url}")
        for label, params in (("inputs", entry.inputs), ("outputs", entry.outputs)):
            if not params:
                continue
            console.print(f"  {label}:")
            for name, description in params.items():
                console.print(f"    [cyan]{name}[/cyan]" + (f"  {description}" if description else ""))


def print_entries_table(entries: List[ResolvedEntry]):
    """Print resolved entries in table format."""
    table = Table(title="Resolved References")
    table.add_column("Reference", style="cyan")
    table.add_column("Kind")
    table.add_column("Available", justify="center")
    table.add_column("Inputs", style="green")
    table.add_column("Outputs", style="magenta")

    for entry in entries:
        table.add_row(
            entry.descriptor.raw_reference,
            entry.descriptor.kind.value,
            _mark(entry.is_available),
            ", ".join(entry.inputs) or "-",
            ", ".join(entry.outputs) or "-",
        )

    console.print(table)


def cmd_resolve(args: argparse.Namespace, resolver: Resolver) -> int:
    """Execute the resolve command."""
    entries = resolver.resolve_all(args.references)

    if args.format == "json":
        print(json.dumps([entry_to_dict(e) for e in entries], indent=2))
    elif args.format == "table":
        print_entries_table(entries)
    else:
        print_entries_text(entries)

    unavailable = [e for e in entries if not e.is_available]
    if unavailable and args.format != "json":
        console.print(
            f"\n[red]{len(unavailable)} of {len(entries)} reference"
            f"{'s' if len(entries) != 1 else ''} unavailable[/red]"
        )
    return 1 if unavailable else 0


def cmd_scan(args: argparse.Namespace, resolver: Optional[Resolver]) -> int:
    """Execute the scan command."""
    path = Path(args.path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        show_error(f"Cannot read {path}", str(exc))
        return 1

    try:
        tree = build_tree(content, name=str(path), require_mapping=True)
    except ContentParseError as exc:
        show_error(f"Cannot parse {path}", str(exc))
        return 1
    context = tree.context.init()

    jobs = Table(title=f"Jobs in {path.name}")
    jobs.add_column("Job", style="cyan")
    jobs.add_column("Line", style="magenta")
    jobs.add_column("Needs")
    for job_id, job in context.jobs.items():
        jobs.add_row(job_id, str(job.line or "-"), ", ".join(context.dependencies(job_id)) or "-")
    console.print(jobs)

    references: List[str] = []
    steps = Table(title="References")
    steps.add_column("Line", style="magenta")
    steps.add_column("Job", style="cyan")
    steps.add_column("Step")
    steps.add_column("Uses", style="green")
    for node in context.references:
        job = node.find_parent_job()
        step = node.find_parent_step()
        steps.add_row(
            str(node.line or "-"),
            (job.key_or_id_or_name if job else None) or "-",
            ((step.name or step.id) if step else None) or "-",
            node.scalar,
        )
        if node.scalar not in references:
            references.append(node.scalar)
    console.print(steps)

    if not args.resolve or resolver is None or not references:
        return 0

    entries = resolver.resolve_all(references)
    print_entries_table(entries)
    return 1 if any(not e.is_available for e in entries) else 0


def cmd_parse(args: argparse.Namespace, config: ActionRefConfig) -> int:
    """Execute the parse command."""
    descriptor = parse_reference(
        args.reference,
        raw_content_host=config.raw_content_host,
        github_host=config.github_host,
    )
    data = descriptor_to_dict(descriptor)

    if args.format == "json":
        print(json.dumps(data, indent=2))
    else:
        for field_name, value in data.items():
            console.print(f"[cyan]{field_name}[/cyan]: {value if value not in (None, '') else '-'}")
    return 0 if descriptor.is_resolvable else 1


def dispatch(args: argparse.Namespace, config: ActionRefConfig) -> int:
    """Dispatch to the appropriate command handler."""
    if args.command == "parse":
        return cmd_parse(args, config)

    if getattr(args, "workspace_root", None):
        config = config.model_copy(update={"workspace_root": Path(args.workspace_root)})

    if args.command == "resolve":
        resolver = Resolver.from_config(config)
        with resolver.cache:
            return cmd_resolve(args, resolver)
    if args.command == "scan":
        resolver = Resolver.from_config(config) if args.resolve else None
        try:
            return cmd_scan(args, resolver)
        finally:
            if resolver is not None:
                resolver.cache.close()

    console.print(f"[red]Unknown command: {args.command}[/red]")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the actionref CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_and_validate_config()
    except ValidationError as exc:
        show_error("Invalid configuration", str(exc))
        return 1

    configure_logging(
        level=(args.log_level or config.log_level).upper(),
        logfile=args.logfile,
        max_bytes=config.max_log_file_bytes,
        backup_count=config.log_backup_count,
    )
    return dispatch(args, config)


if __name__ == "__main__":
    sys.exit(main())

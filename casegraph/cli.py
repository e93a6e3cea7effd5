"""Command-line interface for casegraph."""

import argparse
import asyncio
import json
import sys
from typing import Any, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigManager
from .errors import CaseGraphError
from .graph.engine import AnalysisType, GraphAnalysisEngine
from .graph.importance import analyze_entity_importance
from .graph.layout import LayoutOptions, build_layout_edges, calculate_graph_layout
from .graph.models import Entity, EntityScore
from .graph.search import search_entities
from .logging_config import log_context, setup_logging
from .store import NetworkXStore, load_snapshot_file, populate_store

console = Console()
err_console = Console(stderr=True)


def _emit(payload: Any, output: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
        err_console.print(f"[green]Results saved to:[/green] {escape(output)}")
    else:
        print(text)


def _score_table(scores: Sequence[EntityScore]) -> Table:
    table = Table(title="Entity importance", box=box.ROUNDED)
    table.add_column("Entity", style="cyan")
    table.add_column("Types")
    table.add_column("Connections", justify="right")
    table.add_column("Centrality", justify="right")
    table.add_column("Score", justify="right", style="bold")
    for s in scores:
        table.add_row(
            escape(s.entity.id),
            ", ".join(s.entity.type_names()),
            str(s.connections),
            f"{s.centrality_score:.3f}",
            f"{s.score:.3f}",
        )
    return table


def _summary_tables(results: dict) -> List[Table]:
    tables = []
    if "entityScores" in results:
        tables.append(_score_table(results["entityScores"]))

    if "relationPatterns" in results:
        table = Table(title="Relation patterns", box=box.ROUNDED)
        table.add_column("Predicate", style="cyan")
        table.add_column("Count", justify="right")
        table.add_column("Entities", justify="right")
        for p in results["relationPatterns"]:
            table.add_row(escape(p.predicate), str(p.count), str(len(p.entities)))
        tables.append(table)

    if "clusters" in results:
        table = Table(title="Clusters", box=box.ROUNDED)
        table.add_column("Cluster", style="cyan")
        table.add_column("Entities", justify="right")
        table.add_column("Relations", justify="right")
        table.add_column("Density", justify="right")
        table.add_column("Common predicates")
        for c in results["clusters"]:
            table.add_row(
                escape(c.id), str(len(c.entities)), str(len(c.relations)),
                f"{c.density:.3f}", escape(", ".join(c.common_predicates)),
            )
        tables.append(table)

    if "suggestedRelations" in results:
        table = Table(title="Suggested relations", box=box.ROUNDED)
        table.add_column("Subject", style="cyan")
        table.add_column("Predicate")
        table.add_column("Object", style="cyan")
        table.add_column("Confidence", justify="right")
        table.add_column("Reason")
        for s in results["suggestedRelations"]:
            table.add_row(
                escape(s.subject_id), escape(s.predicate), escape(s.object_id),
                f"{s.confidence:.2f}", escape(s.reason),
            )
        tables.append(table)

    return tables


def _entity_table(query: str, entities: Sequence[Entity]) -> Table:
    table = Table(title=f"Search: {escape(query)}", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Entity", style="cyan")
    table.add_column("Types")
    table.add_column("Created")
    for rank, entity in enumerate(entities, 1):
        created = entity.created_at.isoformat() if entity.created_at else ""
        table.add_row(str(rank), escape(entity.id), ", ".join(entity.type_names()), created)
    return table


def run_analyze(args, config) -> int:
    """Run analyses over a snapshot file."""
    entities, relations = load_snapshot_file(args.snapshot)
    engine = GraphAnalysisEngine(
        min_confidence=args.min_confidence if args.min_confidence is not None else config.analysis.min_confidence,
        suggestion_limit=args.limit if args.limit is not None else config.analysis.suggestion_limit,
    )
    report = engine.run(AnalysisType(args.type), entities, relations)

    if args.table:
        for table in _summary_tables(report.results):
            console.print(table)
        return 0

    _emit({"results": report.to_dict()}, args.output)
    return 0


def run_search(args, config) -> int:
    """Search a snapshot file."""
    entities, relations = load_snapshot_file(args.snapshot)
    matches = search_entities(entities, [] if args.no_relations else relations, args.query)[:args.limit]

    if args.table:
        console.print(_entity_table(args.query, matches))
        return 0

    _emit({"results": [e.to_dict() for e in matches], "query": args.query}, args.output)
    return 0


def run_layout(args, config) -> int:
    """Compute diagram nodes and edges for a snapshot file."""
    entities, relations = load_snapshot_file(args.snapshot)
    options = LayoutOptions(
        node_spacing=config.layout.node_spacing,
        level_height=config.layout.level_height,
        component_spacing=config.layout.component_spacing,
    ).merged(node_spacing=args.node_spacing, level_height=args.level_height)

    scores = analyze_entity_importance(entities, relations)
    nodes = calculate_graph_layout(entities, relations, scores, options)
    edges = build_layout_edges(relations, nodes)
    _emit(
        {"nodes": [n.to_dict() for n in nodes], "edges": [e.to_dict() for e in edges]},
        args.output,
    )
    return 0


def run_graphml(args, config) -> int:
    """Export a snapshot's structure as GraphML."""
    entities, relations = load_snapshot_file(args.snapshot)
    store = NetworkXStore()
    entity_count, relation_count = asyncio.run(populate_store(store, entities, relations))
    store.to_graphml(args.output)
    err_console.print(
        f"[green]Wrote {entity_count} entities and {relation_count} relations to:[/green] {escape(args.output)}"
    )
    return 0


def run_serve(args, config) -> int:
    """Start the HTTP API."""
    from .api.server import main as serve

    if args.host:
        config.api.host = args.host
    if args.port:
        config.api.port = args.port
    if args.snapshot:
        config.snapshot_path = args.snapshot
    serve(config)
    return 0


def generate_config(args, config) -> int:
    """Write the default configuration as a JSON template."""
    if args.output:
        ConfigManager().save_template(args.output)
        err_console.print(f"[green]Configuration template saved to:[/green] {escape(args.output)}")
    else:
        print(json.dumps(ConfigManager.DEFAULT_CONFIG, indent=2))
    return 0


COMMANDS = {
    "analyze": run_analyze,
    "search": run_search,
    "layout": run_layout,
    "graphml": run_graphml,
    "serve": run_serve,
    "generate-config": generate_config,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="casegraph",
        description="Graph analytics and layout over entities and relations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run every analysis over a snapshot
  python -m casegraph analyze snapshot.json

  # Only clusters, as a table
  python -m casegraph analyze snapshot.json --type clusters --table

  # Search entities
  python -m casegraph search snapshot.json knows --limit 5

  # Serve a snapshot over HTTP
  python -m casegraph serve --snapshot snapshot.json --port 8080
""",
    )
    parser.add_argument("-c", "--config", help="Path to configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    analyze_parser = subparsers.add_parser("analyze", help="Run graph analyses over a snapshot")
    analyze_parser.add_argument("snapshot", help="Path to snapshot JSON file")
    analyze_parser.add_argument(
        "--type",
        choices=[t.value for t in AnalysisType],
        default=AnalysisType.ALL.value,
        help="Analysis to run",
    )
    analyze_parser.add_argument("--min-confidence", type=float, help="Suggestion confidence threshold")
    analyze_parser.add_argument("--limit", type=int, help="Maximum number of suggestions")
    analyze_parser.add_argument("--table", action="store_true", help="Print tables instead of JSON")
    analyze_parser.add_argument("-o", "--output", help="Save results to file")

    search_parser = subparsers.add_parser("search", help="Keyword search over a snapshot")
    search_parser.add_argument("snapshot", help="Path to snapshot JSON file")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--limit", type=int, default=20, help="Maximum number of results")
    search_parser.add_argument(
        "--no-relations", action="store_true", help="Do not match relation predicates"
    )
    search_parser.add_argument("--table", action="store_true", help="Print a table instead of JSON")
    search_parser.add_argument("-o", "--output", help="Save results to file")

    layout_parser = subparsers.add_parser("layout", help="Compute a diagram layout")
    layout_parser.add_argument("snapshot", help="Path to snapshot JSON file")
    layout_parser.add_argument("--node-spacing", type=float, help="Horizontal distance between nodes")
    layout_parser.add_argument("--level-height", type=float, help="Vertical distance between levels")
    layout_parser.add_argument("-o", "--output", help="Save layout to file")

    graphml_parser = subparsers.add_parser("graphml", help="Export a snapshot as GraphML")
    graphml_parser.add_argument("snapshot", help="Path to snapshot JSON file")
    graphml_parser.add_argument("-o", "--output", required=True, help="GraphML file to write")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--snapshot", help="Snapshot to load at startup")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Bind port")

    config_parser = subparsers.add_parser("generate-config", help="Generate configuration template")
    config_parser.add_argument("-o", "--output", help="Save to file (default: print to stdout)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = ConfigManager(args.config).load()
        if args.command != "serve":
            # stdout carries command output
            setup_logging(
                format=config.logging.format,
                level="DEBUG" if args.verbose else "WARNING",
                log_file=config.logging.file,
                stream=sys.stderr,
            )
        with log_context(command=args.command):
            return COMMANDS[args.command](args, config)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted by user[/yellow]")
        return 1
    except (CaseGraphError, OSError) as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Command-line interface.

    python -m signet inspect DOCUMENT
    python -m signet analyze DOCUMENT [--run layout communities ...] [--year 1905] [--output out.json]
    python -m signet search DOCUMENT "query text" [--top-k 5]
"""

import argparse
import json
import sys
from typing import List, Optional

from .analytics.embeddings import EmbeddingServiceConfig
from .contracts.base import SignetError
from .observability.logging import configure_logging
from .offload.contracts import AlgorithmKind
from .offload.coordinator import OffloadConfig
from .session import DEFAULT_ANALYSES, GraphSession
from .settings import settings


def _session(args) -> GraphSession:
    config = OffloadConfig(executor=args.executor, max_workers=args.workers)
    return GraphSession(offload_config=config)


def _load(session: GraphSession, path: str) -> None:
    report = session.load_file(path)
    print(f"[*] Loaded {path} ({report.source_shape})")
    print(f"    nodes={report.nodes_added} edges={report.edges_added} "
          f"myths={report.myths_added} skipped={report.skipped}")
    for defect in report.defects:
        print(f"    [WARN] {defect.record_type} #{defect.index} {defect.key or ''}: {defect.message}")


def _print_stats(session: GraphSession) -> None:
    stats = session.stats()
    print(f"[INFO] nodes={stats.node_count} edges={stats.edge_count} "
          f"density={stats.density:.4f} avg_degree={stats.average_degree:.2f}")
    for key, score in stats.top_influencers:
        print(f"    {key:<30} betweenness={score:.4f}")


def cmd_inspect(args) -> int:
    with _session(args) as session:
        _load(session, args.document)
        _print_stats(session)
    return 0


def cmd_analyze(args) -> int:
    kinds = [AlgorithmKind(name) for name in args.run] if args.run else list(DEFAULT_ANALYSES)
    failures = 0
    with _session(args) as session:
        _load(session, args.document)
        if args.year is not None:
            summary = session.set_year(args.year)
            print(f"[*] Year {args.year}: {summary.visible_nodes} nodes, "
                  f"{summary.visible_edges} edges visible")
        for response in session.analyze_all(kinds, visible_only=args.year is not None):
            if response.succeeded:
                print(f"[PASS] {response.kind.value} ({response.duration_ms:.0f} ms)")
            else:
                failures += 1
                reason = response.error.message if response.error else response.status.value
                print(f"[FAIL] {response.kind.value}: {reason}")

        frustration = session.store.get_attribute("frustration_index")
        if frustration is not None:
            print(f"[INFO] frustration index: {frustration:.4f}")
        _print_stats(session)

        if args.output:
            with open(args.output, "w", encoding="utf-8") as handle:
                handle.write(session.dumps())
            print(f"[*] Exported to {args.output}")
    return 1 if failures else 0


def cmd_search(args) -> int:
    with _session(args) as session:
        _load(session, args.document)
        embedding = EmbeddingServiceConfig(enabled=not args.no_model)
        embedded = session.analyze(AlgorithmKind.EMBEDDINGS, embedding)
        if not embedded.succeeded:
            print(f"[FAIL] embeddings: {embedded.error.message if embedded.error else embedded.status.value}")
            return 1
        hits = session.search(args.query, top_k=args.top_k, embedding=embedding)
        print(json.dumps([hit.to_dict() for hit in hits], indent=2, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signet", description="Temporal signed-graph analytics")
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--plain-logs", action="store_true", help="Human-readable logs instead of JSON")
    parser.add_argument("--executor", choices=("process", "thread"), default=settings.executor)
    parser.add_argument("--workers", type=int, default=settings.max_workers)

    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Load a document and print statistics")
    inspect_parser.add_argument("document")

    analyze_parser = subparsers.add_parser("analyze", help="Run analyses and optionally export")
    analyze_parser.add_argument("document")
    analyze_parser.add_argument("--run", nargs="+", choices=[k.value for k in AlgorithmKind
                                                             if k is not AlgorithmKind.SEARCH])
    analyze_parser.add_argument("--year", type=int, help="Restrict analyses to items valid in this year")
    analyze_parser.add_argument("--output", help="Write the canonical document here")

    search_parser = subparsers.add_parser("search", help="Semantic node search")
    search_parser.add_argument("document")
    search_parser.add_argument("query")
    search_parser.add_argument("--top-k", type=int, default=10)
    search_parser.add_argument("--no-model", action="store_true", help="Use the deterministic fallback vectors")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_output=settings.log_json and not args.plain_logs)

    commands = {"inspect": cmd_inspect, "analyze": cmd_analyze, "search": cmd_search}
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 2
    try:
        return command(args)
    except SignetError as exc:
        print(f"[FAIL] {exc.code.name}: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

"""
Vector Search -- Command Line Interface
=========================================
Entry point for all user-facing operations.

Commands:
  prepare     -- Embed a question/answer CSV and store it in SQLite
  embed       -- Print the embedding of one or more texts
  similarity  -- Cosine similarity between two texts
  search      -- Rank stored documents against a query
  documents   -- List stored documents
  devices     -- List available OpenVINO hardware devices

Usage examples:
  python cli.py prepare --dataset data/dataset.csv
  python cli.py embed "Hello" "Bonjour"
  python cli.py similarity "How do I cancel?" "Can I cancel my reservation?"
  python cli.py search "How to cancel booking?" --top-k 3
  python cli.py documents
  python cli.py devices

Design notes:
  - Uses argparse from the standard library.
  - Each command maps to a handler function; async pipeline calls are
    driven with ``asyncio.run``.
  - Output is JSON for embed / similarity / search so it can be piped.
  - Logging is configured at startup based on --verbose flag.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root (resolve regardless of where the script is invoked from)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))

from vector_search.config import EmbeddingConfig, StoreConfig, load_settings  # noqa: E402
from vector_search.errors import StartupError, VectorSearchError  # noqa: E402


def setup_logging(verbose: bool = False) -> None:
    """Configure root logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _build_service(settings: dict):
    from vector_search.embeddings.pipeline import EmbeddingPipeline
    from vector_search.service import VectorSearchService
    from vector_search.store.document_store import SQLiteDocumentStore

    pipeline = EmbeddingPipeline.from_config(EmbeddingConfig.from_settings(settings))
    store = SQLiteDocumentStore(StoreConfig.from_settings(settings).database_path)
    return VectorSearchService(pipeline, store)


# ===================================================================
# Command handlers
# ===================================================================

def cmd_prepare(args: argparse.Namespace, settings: dict) -> None:
    """
    Preparation pipeline: load CSV -> embed each Q&A pair -> store.
    The database is recreated from scratch on every run.
    """
    from vector_search.embeddings.pipeline import EmbeddingPipeline
    from vector_search.ingestion.loader import load_qa_csv, prepare_documents
    from vector_search.store.document_store import SQLiteDocumentStore

    store_config = StoreConfig.from_settings(settings)
    dataset = Path(args.dataset) if args.dataset else store_config.dataset_path
    database = Path(args.database) if args.database else store_config.database_path

    logging.info("=== PREPARE START (dataset=%s) ===", dataset)
    records = load_qa_csv(dataset)
    if args.max_records:
        records = records[: args.max_records]
    if not records:
        logging.warning("No records loaded.")
        return

    pipeline = EmbeddingPipeline.from_config(EmbeddingConfig.from_settings(settings))
    try:
        store = SQLiteDocumentStore(database)
        store.initialize(reset=True)
        inserted = asyncio.run(
            prepare_documents(pipeline, store, records, show_progress=True)
        )
    finally:
        pipeline.close()

    logging.info("=== PREPARE COMPLETE ===")
    print(
        f"\nPreparation complete:\n"
        f"  Records loaded:    {len(records)}\n"
        f"  Documents stored:  {inserted}\n"
        f"  Database:          {database.resolve()}"
    )


def cmd_embed(args: argparse.Namespace, settings: dict) -> None:
    service = _build_service(settings)
    try:
        if len(args.texts) == 1:
            result = asyncio.run(service.embed(args.texts[0]))
        else:
            result = asyncio.run(service.embed_many(args.texts))
    finally:
        service.pipeline.close()
    _print_json(result.to_dict())


def cmd_similarity(args: argparse.Namespace, settings: dict) -> None:
    service = _build_service(settings)
    try:
        report = asyncio.run(
            service.similarity(args.text1, args.text2, include_embeddings=args.include_embeddings)
        )
    finally:
        service.pipeline.close()
    _print_json(report.to_dict())


def cmd_search(args: argparse.Namespace, settings: dict) -> None:
    """
    Semantic search: embed query -> score every stored document -> top-k.
    """
    service = _build_service(settings)
    try:
        report = asyncio.run(
            service.search(
                args.query, top_k=args.top_k, include_embeddings=args.include_embeddings
            )
        )
    finally:
        service.pipeline.close()

    if args.json:
        _print_json(report.to_dict())
        return

    if not report.results:
        print("No results found.")
        return

    print(f"\n{'='*60}")
    print(f"Search results for: \"{report.query_text}\" "
          f"({report.result_count} of {report.total_documents} documents)")
    print(f"{'='*60}")
    for i, r in enumerate(report.results, 1):
        print(f"\n--- Result {i} (similarity: {r.score:.4f}) ---")
        print(f"Document: {r.document.id}")
        print(f"Question: {r.document.question}")
        print(f"Answer:   {r.document.answer[:300]}")
    print(f"\n{'='*60}")


def cmd_documents(args: argparse.Namespace, settings: dict) -> None:
    """List stored documents without loading the model."""
    from vector_search.store.document_store import SQLiteDocumentStore

    store = SQLiteDocumentStore(StoreConfig.from_settings(settings).database_path)
    documents = store.list_all()
    if args.json:
        _print_json([d.to_dict(include_embedding=args.include_embeddings) for d in documents])
        return
    print(f"\n{len(documents)} documents in {store.database_path}\n")
    for doc in documents:
        print(f"  {doc.id:6d}  [{doc.embedding_dimensions}d]  {doc.question[:70]}")


def cmd_devices(args: argparse.Namespace, settings: dict) -> None:
    """List available OpenVINO devices."""
    from vector_search.openvino.device_manager import DeviceManager

    print(f"\n{'='*60}")
    print("OpenVINO Device Discovery")
    print(f"{'='*60}\n")
    dm = DeviceManager()
    summaries = dm.device_summary()
    if not summaries:
        print("  No devices found.")
    for s in summaries:
        print(f"  {s['device']:8s}  {s['name']}")
    preferred = EmbeddingConfig.from_settings(settings).device
    print(f"\n  Configured device: {preferred} -> {dm.select(preferred)}")
    print(f"\n{'='*60}")


# ===================================================================
# Argument parser
# ===================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vector-search",
        description=(
            "Multilingual semantic search over a question/answer collection.  "
            "Powered by OpenVINO for on-device inference."
        ),
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        help="Path to settings.yaml (default: configs/settings.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # -- prepare --
    p_prepare = subparsers.add_parser(
        "prepare",
        help="Embed a question/answer CSV and store it in SQLite",
    )
    p_prepare.add_argument(
        "--dataset",
        type=str,
        default=None,
        help="CSV file with id,question,answer columns (default: from settings)",
    )
    p_prepare.add_argument(
        "--database",
        type=str,
        default=None,
        help="SQLite file to (re)create (default: from settings)",
    )
    p_prepare.add_argument(
        "--max-records",
        type=int,
        default=0,
        dest="max_records",
        help="Limit the number of records embedded (0 = all, default: 0)",
    )
    p_prepare.set_defaults(func=cmd_prepare)

    # -- embed --
    p_embed = subparsers.add_parser("embed", help="Print embeddings for one or more texts")
    p_embed.add_argument("texts", nargs="+", help="Text(s) to embed")
    p_embed.set_defaults(func=cmd_embed)

    # -- similarity --
    p_sim = subparsers.add_parser("similarity", help="Cosine similarity between two texts")
    p_sim.add_argument("text1", type=str)
    p_sim.add_argument("text2", type=str)
    p_sim.add_argument(
        "--include-embeddings",
        action="store_true",
        dest="include_embeddings",
        help="Include both vectors in the output",
    )
    p_sim.set_defaults(func=cmd_similarity)

    # -- search --
    p_search = subparsers.add_parser("search", help="Rank stored documents against a query")
    p_search.add_argument("query", type=str, help="Natural-language search query")
    p_search.add_argument(
        "--top-k",
        type=int,
        default=5,
        dest="top_k",
        help="Number of results to return (default: 5)",
    )
    p_search.add_argument(
        "--include-embeddings",
        action="store_true",
        dest="include_embeddings",
        help="Include vectors in JSON output",
    )
    p_search.add_argument("--json", action="store_true", help="Print JSON instead of text")
    p_search.set_defaults(func=cmd_search)

    # -- documents --
    p_docs = subparsers.add_parser("documents", help="List stored documents")
    p_docs.add_argument("--json", action="store_true", help="Print JSON instead of text")
    p_docs.add_argument(
        "--include-embeddings",
        action="store_true",
        dest="include_embeddings",
        help="Include vectors in JSON output",
    )
    p_docs.set_defaults(func=cmd_documents)

    # -- devices --
    p_devices = subparsers.add_parser(
        "devices",
        help="List available OpenVINO hardware devices",
    )
    p_devices.set_defaults(func=cmd_devices)

    return parser


# ===================================================================
# Main entry point
# ===================================================================

def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=getattr(args, "verbose", False))

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = load_settings(args.settings)
        args.func(args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(130)
    except StartupError as exc:
        logging.error("Startup failed: %s", exc)
        sys.exit(1)
    except (VectorSearchError, FileNotFoundError) as exc:
        logging.error("Command failed: %s", exc)
        sys.exit(1)
    except Exception as exc:
        logging.error("Command failed: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

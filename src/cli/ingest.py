# =============================================================================
# src/cli/ingest.py -- CLI Ingest Command (Knowledge Base Management)
# =============================================================================
#
# Standalone CLI for managing ragdesk knowledge bases.  Each knowledge base
# is a SQLite record plus one Qdrant collection (knowledge_base_{id}) whose
# vector size is fixed by the embedding model chosen at creation.
#
# Supported subcommands:
#
#   create-kb    -- Create a knowledge base and its empty collection
#   list-kbs     -- List knowledge bases and their files
#   delete-kb    -- Delete a knowledge base and its collection
#   add-file     -- Register a document and ingest it into a knowledge base
#   remove-file  -- Remove a document's chunks from a knowledge base
#
# add-file prints the ingestion progress events as they are emitted:
#   extract text -> chunk -> embed in batches -> upsert into Qdrant.
#
# Usage examples:
#   python -m src.cli.ingest create-kb --name docs --model text-embedding-3-small
#   python -m src.cli.ingest add-file --kb <kb-id> --file /path/to/manual.pdf
#   python -m src.cli.ingest list-kbs
#   python -m src.cli.ingest delete-kb --kb <kb-id> --yes
# =============================================================================

"""Standalone CLI for ragdesk knowledge bases.

Usage::

    python -m src.cli.ingest create-kb --name docs --model text-embedding-3-small
    python -m src.cli.ingest add-file --kb <kb-id> --file notes.txt
    python -m src.cli.ingest list-kbs
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any

from src.main import bootstrap, build_services, close_services
from src.utils.errors import OperationCancelledError, RagDeskError

# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_create_kb(args: argparse.Namespace, services: dict[str, Any]) -> int:
    model = args.model or services["settings"].default_embedding_model
    kb = await services["knowledge_service"].create_knowledge_base(
        name=args.name, embedding_model=model, description=args.description
    )
    print("Knowledge base created:")
    print(f"  ID:          {kb.id}")
    print(f"  Model:       {kb.embedding_model}")
    print(f"  Vector size: {kb.vector_size}")
    print(f"  Collection:  {kb.collection_name}")
    return 0


async def _handle_list_kbs(services: dict[str, Any]) -> int:
    knowledge_bases = await services["knowledge_service"].list_knowledge_bases()
    if not knowledge_bases:
        print("No knowledge bases.")
        return 0

    storage = services["storage"]
    for kb in knowledge_bases:
        files = await storage.list_files_for_knowledge_base(kb.id)
        print(f"{kb.id}  {kb.name}  ({kb.embedding_model}, {kb.vector_size}d)")
        for f in files:
            print(f"    {f.status.value:<10} {f.name}  [{f.id}]")
    return 0


async def _handle_delete_kb(args: argparse.Namespace, services: dict[str, Any]) -> int:
    if not args.yes:
        confirm = input(f"  Delete knowledge base {args.kb}? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0
    await services["knowledge_service"].delete_knowledge_base(args.kb)
    print(f"Deleted knowledge base {args.kb}")
    return 0


async def _handle_add_file(args: argparse.Namespace, services: dict[str, Any]) -> int:
    knowledge_service = services["knowledge_service"]
    events = services["events"]

    def _print_progress(event_name: str, payload: dict[str, Any]) -> None:
        print(f"  [{payload['status']:<10} {payload['progress']:>3}%] {payload['message']}")

    managed = await knowledge_service.register_file(args.file)
    print(f"Ingesting {managed.name} ({managed.mime_type}, {managed.size} bytes)")

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, services["ingestion"].cancel, managed.id)
    events.subscribe("file-processing-progress", _print_progress)
    try:
        result = await knowledge_service.add_file_to_knowledge_base(args.kb, managed.id)
    except OperationCancelledError:
        print("\n[cancelled]", file=sys.stderr)
        return 130
    finally:
        events.unsubscribe("file-processing-progress", _print_progress)
        loop.remove_signal_handler(signal.SIGINT)

    print("\nIngestion complete:")
    print(f"  File ID:        {result.file_id}")
    print(f"  Chunks indexed: {result.chunk_count}")
    print(f"  Time:           {result.elapsed_ms / 1000:.2f}s")
    return 0


async def _handle_remove_file(args: argparse.Namespace, services: dict[str, Any]) -> int:
    await services["knowledge_service"].remove_file_from_knowledge_base(args.kb, args.file_id)
    print(f"Removed file {args.file_id} from knowledge base {args.kb}")
    return 0


async def _dispatch(args: argparse.Namespace, config_path: str) -> int:
    services = build_services(bootstrap(config_path))
    try:
        await services["storage"].initialize()
        if args.command == "create-kb":
            return await _handle_create_kb(args, services)
        if args.command == "list-kbs":
            return await _handle_list_kbs(services)
        if args.command == "delete-kb":
            return await _handle_delete_kb(args, services)
        if args.command == "add-file":
            return await _handle_add_file(args, services)
        if args.command == "remove-file":
            return await _handle_remove_file(args, services)
        return 1
    except RagDeskError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_services(services)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Manage ragdesk knowledge bases.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to the YAML config file"
    )
    subparsers = parser.add_subparsers(dest="command", help="Knowledge base commands")

    # -- create-kb --
    create_parser = subparsers.add_parser("create-kb", help="Create a knowledge base")
    create_parser.add_argument("--name", required=True, help="Knowledge base name")
    create_parser.add_argument(
        "--model", default=None, help="Embedding model (default: settings default)"
    )
    create_parser.add_argument("--description", default="", help="Free-text description")

    # -- list-kbs --
    subparsers.add_parser("list-kbs", help="List knowledge bases and their files")

    # -- delete-kb --
    delete_parser = subparsers.add_parser("delete-kb", help="Delete a knowledge base")
    delete_parser.add_argument("--kb", required=True, help="Knowledge base ID")
    delete_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )

    # -- add-file --
    add_parser = subparsers.add_parser("add-file", help="Ingest a document")
    add_parser.add_argument("--kb", required=True, help="Knowledge base ID")
    add_parser.add_argument("--file", required=True, help="Path to a PDF or text file")

    # -- remove-file --
    remove_parser = subparsers.add_parser("remove-file", help="Remove a document")
    remove_parser.add_argument("--kb", required=True, help="Knowledge base ID")
    remove_parser.add_argument("--file-id", required=True, dest="file_id", help="File ID")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_dispatch(args, args.config)))


if __name__ == "__main__":
    main()

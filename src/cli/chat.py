# =============================================================================
# src/cli/chat.py -- CLI Chat Command (Assistants, Sessions, Providers)
# =============================================================================
#
# Standalone CLI for chatting with ragdesk assistants.  An assistant binds a
# chat model, a system prompt and zero or more knowledge bases; a session
# holds the message history of one conversation with it.
#
# Supported subcommands:
#
#   create-assistant -- Create an assistant bound to knowledge bases
#   create-session   -- Open a chat session with an assistant
#   ask              -- Send one message and stream the answer to stdout
#   providers        -- Test provider connections / list their models
#
# `ask` subscribes to chat-stream-chunk-{sessionId} and prints each chunk as
# it arrives.  Ctrl-C cancels the generation; nothing is persisted then.
#
# Usage examples:
#   python -m src.cli.chat create-assistant --name helper --model gpt-4 --kb <kb-id>
#   python -m src.cli.chat create-session --assistant <assistant-id>
#   python -m src.cli.chat ask --session <session-id> "What does the manual say?"
#   python -m src.cli.chat providers test openai
#   python -m src.cli.chat providers models ollama
# =============================================================================

"""Standalone CLI for ragdesk chat.

Usage::

    python -m src.cli.chat create-assistant --name helper --model gpt-4 --kb <kb-id>
    python -m src.cli.chat create-session --assistant <assistant-id>
    python -m src.cli.chat ask --session <session-id> "question"
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import uuid
from typing import Any

from src.interfaces.event_sink import chat_chunk_event
from src.main import bootstrap, build_services, close_services
from src.models.knowledge import Assistant, ChatSession
from src.utils.errors import OperationCancelledError, RagDeskError

# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_create_assistant(args: argparse.Namespace, services: dict[str, Any]) -> int:
    storage = services["storage"]
    for kb_id in args.kb:
        if await storage.get_knowledge_base(kb_id) is None:
            print(f"Error: knowledge base {kb_id} not found", file=sys.stderr)
            return 1

    assistant = await storage.create_assistant(
        Assistant(
            id=str(uuid.uuid4()),
            name=args.name,
            model=args.model or services["settings"].default_chat_model,
            system_prompt=args.system_prompt,
            temperature=args.temperature,
            max_tokens=args.max_tokens,
            knowledge_base_ids=tuple(args.kb),
        )
    )
    print("Assistant created:")
    print(f"  ID:              {assistant.id}")
    print(f"  Model:           {assistant.model}")
    print(f"  Knowledge bases: {', '.join(assistant.knowledge_base_ids) or '(none)'}")
    return 0


async def _handle_create_session(args: argparse.Namespace, services: dict[str, Any]) -> int:
    storage = services["storage"]
    if await storage.get_assistant(args.assistant) is None:
        print(f"Error: assistant {args.assistant} not found", file=sys.stderr)
        return 1
    session = await storage.create_chat_session(
        ChatSession(id=str(uuid.uuid4()), assistant_id=args.assistant, title=args.title)
    )
    print(f"Session created: {session.id}")
    return 0


async def _handle_ask(args: argparse.Namespace, services: dict[str, Any]) -> int:
    retrieval = services["retrieval"]
    events = services["events"]
    chunk_event = chat_chunk_event(args.session)

    def _print_chunk(event_name: str, payload: dict[str, Any]) -> None:
        sys.stdout.write(payload["content"])
        sys.stdout.flush()

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGINT, retrieval.cancel, args.session)
    events.subscribe(chunk_event, _print_chunk)
    try:
        result = await retrieval.run(args.session, " ".join(args.message))
    except OperationCancelledError:
        print("\n[cancelled]", file=sys.stderr)
        return 130
    finally:
        events.unsubscribe(chunk_event, _print_chunk)
        loop.remove_signal_handler(signal.SIGINT)

    print()
    if args.verbose:
        print(
            f"[context: {result.retrieved_count} chunks, web: {result.web_result_count} results]",
            file=sys.stderr,
        )
    return 0


async def _handle_providers(args: argparse.Namespace, services: dict[str, Any]) -> int:
    provider_service = services["provider_service"]
    if args.action == "test":
        connected = await provider_service.test_connection(args.provider)
        print(f"{args.provider}: {'connected' if connected else 'not connected'}")
        return 0 if connected else 1

    models = await provider_service.list_available_models(args.provider)
    if not models:
        print(f"No models available from {args.provider}.")
        return 1
    for model in models:
        print(f"  {model.type:<10} {model.id}")
    return 0


async def _dispatch(args: argparse.Namespace) -> int:
    services = build_services(bootstrap(args.config))
    try:
        await services["storage"].initialize()
        if args.command == "create-assistant":
            return await _handle_create_assistant(args, services)
        if args.command == "create-session":
            return await _handle_create_session(args, services)
        if args.command == "ask":
            return await _handle_ask(args, services)
        if args.command == "providers":
            return await _handle_providers(args, services)
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
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.chat",
        description="Chat with ragdesk assistants.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to the YAML config file"
    )
    subparsers = parser.add_subparsers(dest="command", help="Chat commands")

    # -- create-assistant --
    assistant_parser = subparsers.add_parser("create-assistant", help="Create an assistant")
    assistant_parser.add_argument("--name", required=True, help="Assistant name")
    assistant_parser.add_argument(
        "--model", default=None, help="Chat model (default: settings default)"
    )
    assistant_parser.add_argument(
        "--system-prompt", default="", dest="system_prompt", help="System prompt"
    )
    assistant_parser.add_argument("--temperature", type=float, default=None)
    assistant_parser.add_argument("--max-tokens", type=int, default=None, dest="max_tokens")
    assistant_parser.add_argument(
        "--kb", action="append", default=[], help="Knowledge base ID (repeatable)"
    )

    # -- create-session --
    session_parser = subparsers.add_parser("create-session", help="Open a chat session")
    session_parser.add_argument("--assistant", required=True, help="Assistant ID")
    session_parser.add_argument("--title", default="New chat", help="Session title")

    # -- ask --
    ask_parser = subparsers.add_parser("ask", help="Send a message and stream the reply")
    ask_parser.add_argument("--session", required=True, help="Chat session ID")
    ask_parser.add_argument("--verbose", "-v", action="store_true", help="Print retrieval stats")
    ask_parser.add_argument("message", nargs="+", help="Message text")

    # -- providers --
    providers_parser = subparsers.add_parser("providers", help="Inspect LLM providers")
    providers_parser.add_argument("action", choices=["test", "models"])
    providers_parser.add_argument("provider", help="Provider ID, e.g. openai, ollama")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the chat tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_dispatch(args)))


if __name__ == "__main__":
    main()

# =============================================================================
# src/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line tools for ragdesk.  Each submodule is a self-contained CLI
# run via `python -m src.cli.<module>`:
#
#   1. INGESTION (ingest.py)
#      Knowledge base lifecycle: create/list/delete knowledge bases and
#      add/remove documents (PDF or text) with live progress output.
#
#   2. CHAT (chat.py)
#      Assistants, chat sessions and streamed answers; also connection
#      tests and model listings for LLM providers.
#
# Architecture Notes:
#   - argparse for argument parsing.
#   - Both tools build their dependencies through src.main.build_services
#     and run one command per process.
# =============================================================================

"""CLI tools for ragdesk.

- ``python -m src.cli.ingest`` -- manage knowledge bases and their documents.
- ``python -m src.cli.chat`` -- assistants, sessions and streamed chat.
"""

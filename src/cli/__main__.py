# =============================================================================
# src/cli/__main__.py -- Package Entry Point
# =============================================================================
#
# `python -m src.cli` delegates to the ingestion CLI.  For chat run:
#     python -m src.cli.chat ask --session <id> "question"
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

from src.cli.ingest import main

main()

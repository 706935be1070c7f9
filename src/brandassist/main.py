"""
brandassist entry point.

This file handles startup concerns (arg-parsing, logging) and launches the appropriate interface
(Slack events API or local CLI).
"""

import argparse
import logging
import sys

from brandassist.config import settings
from brandassist.core.schema import ConversationKind

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("slack_sdk").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the brandassist application.

    Sets up the command-line interface, initializes logging, and starts either the Slack events
    API or the local CLI.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(description="Run the Brand Solutions Assistant")
    parser.add_argument(
        "--mode",
        choices=["api", "cli"],
        type=str.lower,
        default="api",
        help="Serve the Slack events API or start a local CLI session (default: api)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in ConversationKind],
        default=ConversationKind.DIRECT_MESSAGE.value,
        help="Conversation kind simulated by the CLI (default: %(default)s)",
    )
    parser.add_argument(
        "--persona",
        default=None,
        help="System prompt persona, e.g. general or trend (default from env: PERSONA)",
    )
    args = parser.parse_args(argv)

    # Override settings with command-line arguments
    settings.LOG_LEVEL = args.log_level
    if args.persona:
        settings.PERSONA = args.persona

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting brandassist [%s mode]", args.mode)
    logger.debug(
        "Planner=%s persona=%s max_turns=%d", settings.PLANNER, settings.PERSONA, settings.MAX_TURNS
    )

    if args.mode == "api":
        # Lazy import to avoid web dependencies in CLI mode
        from brandassist.api.app import run_api  # pylint: disable=import-outside-toplevel

        run_api(host="0.0.0.0", port=settings.API_PORT, reload=settings.DEBUG)
    else:
        from brandassist.client.cli import run_cli  # pylint: disable=import-outside-toplevel

        run_cli(kind=ConversationKind(args.kind), persona=settings.PERSONA)


if __name__ == "__main__":
    main()

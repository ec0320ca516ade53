from __future__ import annotations

import logging
import sys
from typing import Callable, Dict, List, Optional

from devtoolkit.core.context.toolkit_context import ToolkitContext
from devtoolkit.core.handlers.analyze_handler import handle_analyze, analyze_help_text
from devtoolkit.core.handlers.color_handler import handle_color, color_help_text
from devtoolkit.core.handlers.retention_handler import handle_sweep, sweep_help_text
from devtoolkit.core.handlers.snippet_handler import handle_snippet, snippet_help_text
from devtoolkit.core.loop_runner import shutdown_background_loop
from devtoolkit.core.managers.config_manager import config_manager
from devtoolkit.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)

CommandHandler = Callable[[List[str], ToolkitContext], int]

COMMANDS: Dict[str, CommandHandler] = {
    "analyze": handle_analyze,
    "color": handle_color,
    "snippet": handle_snippet,
    "sweep": handle_sweep,
}

HELP_TEXT = "\n\n".join([
    "Usage: devtoolkit [-v] <command> [<args>]",
    analyze_help_text,
    color_help_text,
    snippet_help_text,
    sweep_help_text,
])


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the 'devtoolkit' command line."""
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = False
    if args and args[0] in ("-v", "--verbose"):
        verbose = True
        args = args[1:]

    configure_logger(
        "DEBUG" if verbose else config_manager.get_nested("debug.level", "WARNING"),
        silenced_loggers={"asyncio": "WARNING"},
    )

    if not args or args[0] in ("-h", "--help", "help"):
        print(HELP_TEXT)
        return 0 if args else 1

    name, rest = args[0], args[1:]
    handler = COMMANDS.get(name)
    if handler is None:
        print(f"Unknown command: {name}\n\n{HELP_TEXT}")
        return 1

    ctx = ToolkitContext()
    try:
        return handler(rest, ctx)
    except Exception as e:
        logger.error("Command '%s' failed: %s", name, e, exc_info=True)
        print(f"❌ {name} failed: {e}")
        return 1
    finally:
        ctx.close()
        shutdown_background_loop()


if __name__ == "__main__":
    sys.exit(main())

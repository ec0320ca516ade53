# src/devtoolkit/core/handlers/color_handler.py
from typing import List

from devtoolkit.core.commands import PickColor
from devtoolkit.core.context.toolkit_context import ToolkitContext
from devtoolkit.core.managers.store_coordinator import COLOR_HISTORY, PersistenceError

color_help_text = """
COLOR HISTORY:
  color add <color>   Records a picked color (newest first, last 20 kept).
  color list          Shows the color history, newest first.
""".strip()

USAGE = """
Usage:
  color add <color>
  color list
"""


def handle_color(args: List[str], ctx: ToolkitContext) -> int:
    """Handles the 'color' command."""
    if not args:
        print(USAGE)
        return 1

    subcommand = args[0]

    if subcommand == "add":
        if len(args) != 2:
            print(USAGE)
            return 1
        try:
            colors = ctx.run(ctx.dispatcher().dispatch(PickColor(color=args[1])))
        except PersistenceError as e:
            print(f"❌ {e}")
            return 1
        except ValueError as e:
            print(f"❌ Invalid color: {e}")
            return 1
        print(f"✅ Saved. History now holds {len(colors)} color(s).")
        return 0

    elif subcommand == "list":
        entries = ctx.run(ctx.coordinator.items(COLOR_HISTORY))
        if not entries:
            print("🤷 Color history is empty.")
            return 0
        for entry in entries:
            print(f"{entry.color:<24} {entry.timestamp.isoformat()}")
        return 0

    else:
        print(f"Unknown subcommand for 'color': {subcommand}.\n{USAGE}")
        return 1

# src/devtoolkit/core/handlers/retention_handler.py
from typing import List

from devtoolkit.core.context.toolkit_context import ToolkitContext
from devtoolkit.core.managers.store_coordinator import PersistenceError

sweep_help_text = """
  sweep               Runs the retention sweep: clears session data and trims
                      every store to its retention policy.
""".strip()


def handle_sweep(args: List[str], ctx: ToolkitContext) -> int:
    """Handles the 'sweep' command."""
    if args:
        print("Usage:\n  sweep")
        return 1
    try:
        removed = ctx.run(ctx.coordinator.run_retention_sweep())
    except PersistenceError as e:
        print(f"❌ Retention sweep incomplete: {e}")
        return 1

    for name, count in removed.items():
        print(f"{name:<20} removed {count}")
    print("✅ Retention sweep complete.")
    return 0

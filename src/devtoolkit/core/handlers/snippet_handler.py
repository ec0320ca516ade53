# src/devtoolkit/core/handlers/snippet_handler.py
import argparse
import sys
from pathlib import Path
from typing import List

from devtoolkit.core.commands import SaveSnippet
from devtoolkit.core.context.toolkit_context import ToolkitContext
from devtoolkit.core.managers.store_coordinator import CODE_SNIPPETS, PersistenceError

snippet_help_text = """
CODE SNIPPETS:
  snippet save <file|-> --language <lang> [--title <title>]
                      Saves a code snippet from a file or stdin.
  snippet list        Lists saved snippets, newest first.
""".strip()

USAGE = """
Usage:
  snippet save <file|-> --language <lang> [--title <title>]
  snippet list
"""


def handle_snippet(args: List[str], ctx: ToolkitContext) -> int:
    """Handles the 'snippet' command."""
    if not args:
        print(USAGE)
        return 1

    subcommand = args[0]

    if subcommand == "save":
        parser = argparse.ArgumentParser(prog="snippet save", description="Save a code snippet.", usage=USAGE)
        parser.add_argument("source", help="File to read the code from, or '-' for stdin.")
        parser.add_argument("--language", required=True)
        parser.add_argument("--title", default=None)
        try:
            parsed = parser.parse_args(args[1:])
        except SystemExit:
            return 1

        try:
            code = sys.stdin.read() if parsed.source == "-" else Path(parsed.source).read_text(encoding="utf-8")
        except OSError as e:
            print(f"❌ Could not read {parsed.source}: {e}")
            return 1

        command = SaveSnippet(language=parsed.language, code=code, title=parsed.title)
        try:
            snippet = ctx.run(ctx.dispatcher().dispatch(command))
        except PersistenceError as e:
            print(f"❌ {e}")
            return 1
        print(f"✅ Snippet {snippet.id} saved as '{snippet.title}'.")
        return 0

    elif subcommand == "list":
        snippets = ctx.run(ctx.coordinator.items(CODE_SNIPPETS))
        if not snippets:
            print("🤷 No snippets saved.")
            return 0
        for snippet in snippets:
            first_line = snippet.code.strip().splitlines()[0] if snippet.code.strip() else ""
            print(f"[{snippet.id}] {snippet.title} ({snippet.language}) - {first_line[:60]}")
        return 0

    else:
        print(f"Unknown subcommand for 'snippet': {subcommand}.\n{USAGE}")
        return 1

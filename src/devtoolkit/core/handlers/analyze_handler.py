# src/devtoolkit/core/handlers/analyze_handler.py
import argparse
import logging
from pathlib import Path
from typing import List

from tqdm import tqdm

from page_diagnostics.dom.core import InvalidSnapshotError
from devtoolkit.core.commands import Analyze
from devtoolkit.core.context.toolkit_context import ToolkitContext
from devtoolkit.core.host import StaticPageHost
from devtoolkit.core.services.json_service import to_json
from devtoolkit.core.services.report_export_service import ReportExportService

logger = logging.getLogger(__name__)

analyze_help_text = """
  analyze <file> [<file> ...] [--url URL] [--width W --height H] [--csv PATH]
                      Runs page diagnostics on local HTML files.
                      One file prints the full JSON report; several files print
                      a summary table, optionally written to CSV.
""".strip()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devtoolkit analyze", description="Analyze HTML documents.")
    parser.add_argument("files", nargs="+", help="HTML files to analyze.")
    parser.add_argument("--url", default=None, help="URL to report for a single file (default: file URI).")
    parser.add_argument("--width", type=int, default=0, help="Viewport width to report.")
    parser.add_argument("--height", type=int, default=0, help="Viewport height to report.")
    parser.add_argument("--csv", dest="csv_path", default=None, help="Write the summary table to this CSV file.")
    return parser


def handle_analyze(args: List[str], ctx: ToolkitContext) -> int:
    """
    Handles the 'analyze' command.

    Returns:
        0 for success, 1 for errors.
    """
    try:
        parsed = _build_parser().parse_args(args)
    except SystemExit:
        return 1

    if parsed.url and len(parsed.files) > 1:
        print("❌ --url can only be used with a single file.")
        return 1

    reports = []
    for file_name in tqdm(parsed.files, desc="Analyzing", unit="page", disable=len(parsed.files) == 1):
        path = Path(file_name)
        try:
            html = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Could not read %s: %s", path, e)
            print(f"❌ Could not read {path}: {e}")
            return 1

        host = StaticPageHost(
            url=parsed.url or path.resolve().as_uri(),
            html=html,
            viewport=(parsed.width, parsed.height),
        )
        dispatcher = ctx.dispatcher(host)
        try:
            reports.append(ctx.run(dispatcher.dispatch(Analyze())))
        except InvalidSnapshotError as e:
            print(f"❌ {path}: {e}")
            return 1

    if len(reports) == 1 and not parsed.csv_path:
        print(to_json(reports[0].to_payload()))
        return 0

    export_service = ReportExportService()
    print(export_service.to_dataframe(reports).to_string(index=False))
    if parsed.csv_path:
        output = export_service.export_csv(reports, Path(parsed.csv_path).expanduser())
        print(f"✅ Summary written to {output}")
    return 0

# src/devtoolkit/core/services/report_export_service.py
import logging
from pathlib import Path
from typing import Iterable, List

import pandas as pd

from page_diagnostics.model import PageReport

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "url", "title", "elements", "images", "links", "forms", "scripts", "stylesheets",
    "headings", "has_h1", "multiple_h1", "images_without_alt", "inputs_without_label",
    "contrast_scanned", "contrast_issues", "load_time_ms", "dom_ready_ms",
]


class ReportExportService:
    """Flattens page reports into a one-row-per-page DataFrame for comparison and export."""

    @staticmethod
    def _flatten(report: PageReport) -> dict:
        a11y = report.accessibility
        return {
            "url": report.url,
            "title": report.title,
            "elements": report.elements,
            "images": report.images,
            "links": report.links,
            "forms": report.forms,
            "scripts": report.scripts,
            "stylesheets": report.stylesheets,
            "headings": a11y.heading_structure.total,
            "has_h1": a11y.heading_structure.has_h1,
            "multiple_h1": a11y.heading_structure.multiple_h1,
            "images_without_alt": a11y.images_without_alt,
            "inputs_without_label": a11y.inputs_without_label,
            "contrast_scanned": a11y.contrast_findings.scanned,
            "contrast_issues": a11y.contrast_findings.potential_issues,
            "load_time_ms": report.timing.load_time_ms if report.timing else None,
            "dom_ready_ms": report.timing.dom_ready_ms if report.timing else None,
        }

    def to_dataframe(self, reports: Iterable[PageReport]) -> pd.DataFrame:
        rows: List[dict] = [self._flatten(r) for r in reports]
        # Nullable integers keep missing timings as <NA> instead of turning the column into floats
        df = pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
        return df.astype({"load_time_ms": "Int64", "dom_ready_ms": "Int64"})

    def export_csv(self, reports: Iterable[PageReport], output_file: Path) -> Path:
        df = self.to_dataframe(reports)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(output_file, index=False)
        logger.info("Exported %d report row(s) to %s", len(df), output_file)
        return output_file

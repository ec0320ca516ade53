# src/page_diagnostics/dom/engine.py
from collections import Counter
from typing import List, Optional

from .models import DocumentSnapshot, NavigationTiming
from .core import SnapshotElement, InvalidSnapshotError
from .registry import ElementRegistry
from .elements.heading import heading_level, heading_text
from ..model import (
    PageReport,
    PageTiming,
    ViewportSize,
    AccessibilityReport,
    HeadingStructure,
    HeadingEntry,
    ContrastFindings,
)


class DiagnosticsEngine:
    """
    Diagnostics engine for document snapshots.

    It walks the element tree once in document order, tallies the count
    categories and rule findings declared by the registered element
    definitions, and folds the tallies into an immutable PageReport.
    The engine holds no per-call state, so one instance can serve
    concurrent callers.
    """

    def __init__(self):
        """Initializes the engine by discovering all element definitions."""
        ElementRegistry.discover()

    def analyze(self, snapshot: DocumentSnapshot) -> PageReport:
        """
        Produces the diagnostics report for a snapshot.

        Args:
            snapshot (DocumentSnapshot): The read-only document snapshot.

        Returns:
            PageReport: The fully populated report. An empty snapshot yields all-zero counts.

        Raises:
            InvalidSnapshotError: If the input is not a snapshot or its elements do not form a tree.
        """
        if not isinstance(snapshot, DocumentSnapshot):
            raise InvalidSnapshotError(
                f"Expected a DocumentSnapshot, got {type(snapshot).__name__}"
            )

        elements = 0
        categories: Counter = Counter()
        findings: Counter = Counter()
        heading_counts = {level: 0 for level in range(1, 7)}
        entries: List[HeadingEntry] = []

        # Iterative pre-order walk; deep documents must not hit the recursion limit.
        visited = set()
        stack = [snapshot.root] if snapshot.root is not None else []

        while stack:
            node = stack.pop()
            if not isinstance(node, SnapshotElement):
                raise InvalidSnapshotError(f"Unexpected node in element tree: {type(node).__name__}")
            if id(node) in visited:
                raise InvalidSnapshotError(f"Element <{node.tag}> is reachable more than once; not a tree")
            visited.add(id(node))

            elements += 1

            for defn in ElementRegistry.get_definitions(node.tag):
                if not defn.matches(node):
                    continue
                if defn.category:
                    categories[defn.category] += 1
                for rule in defn.rules:
                    findings.update(rule(node))

            level = heading_level(node)
            if level is not None:
                heading_counts[level] += 1
                entries.append(HeadingEntry(level=level, text=heading_text(node)))

            # Reverse so the leftmost child is visited first
            stack.extend(reversed(node.children))

        h1_count = heading_counts[1]

        accessibility = AccessibilityReport(
            images_without_alt=findings["MISSING_ALT"],
            inputs_without_label=findings["UNLABELLED_INPUT"],
            heading_structure=HeadingStructure(
                total=len(entries),
                has_h1=h1_count > 0,
                multiple_h1=h1_count > 1,
                entries=entries,
            ),
            contrast_findings=ContrastFindings(
                scanned=categories["contrast_candidates"],
                potential_issues=findings["DEFAULT_COLORS"],
            ),
        )

        return PageReport(
            title=snapshot.title,
            url=snapshot.url,
            elements=elements,
            images=categories["images"],
            links=categories["links"],
            forms=categories["forms"],
            scripts=categories["scripts"],
            stylesheets=categories["stylesheets"],
            heading_counts=heading_counts,
            viewport=ViewportSize(width=snapshot.viewport.width, height=snapshot.viewport.height),
            timing=self._compute_timing(snapshot.timing),
            accessibility=accessibility,
        )

    @staticmethod
    def _compute_timing(timing: Optional[NavigationTiming]) -> Optional[PageTiming]:
        """
        Derives load and DOM-ready durations from raw navigation timestamps.

        A negative duration means the event has not fired yet (its timestamp is
        still 0) or the data is corrupt, so that field is reported as absent.
        """
        if timing is None:
            return None

        load_time = timing.load_event_end - timing.navigation_start
        dom_ready = timing.dom_content_loaded_event_end - timing.navigation_start

        load_time_ms = load_time if load_time >= 0 else None
        dom_ready_ms = dom_ready if dom_ready >= 0 else None

        if load_time_ms is None and dom_ready_ms is None:
            return None
        return PageTiming(load_time_ms=load_time_ms, dom_ready_ms=dom_ready_ms)


_DEFAULT_ENGINE: Optional[DiagnosticsEngine] = None


def analyze(snapshot: DocumentSnapshot) -> PageReport:
    """Module-level convenience wrapper around a shared DiagnosticsEngine."""
    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        _DEFAULT_ENGINE = DiagnosticsEngine()
    return _DEFAULT_ENGINE.analyze(snapshot)

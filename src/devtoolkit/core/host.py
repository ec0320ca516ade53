# src/devtoolkit/core/host.py
import abc
import logging
from typing import Any, Dict, List, Optional, Tuple

from page_diagnostics.dom.builder import SnapshotBuilder
from page_diagnostics.dom.models import DocumentSnapshot

logger = logging.getLogger(__name__)

MAX_RESOURCE_ENTRIES = 10


class HostRuntime(metaclass=abc.ABCMeta):
    """
    The browser runtime the toolkit runs inside: tab lookup, script and style
    injection, and snapshot capture. Every call is a coroutine; cancelling the
    awaiting task cancels the host call where the runtime supports it.
    """

    @abc.abstractmethod
    async def active_tab_id(self) -> int:
        """Id of the active tab in the current window."""
        raise NotImplementedError

    @abc.abstractmethod
    async def capture_snapshot(self, tab_id: int) -> DocumentSnapshot:
        """Snapshot of the tab's document as of the call."""
        raise NotImplementedError

    @abc.abstractmethod
    async def performance_metrics(self, tab_id: int) -> Optional[Dict[str, Any]]:
        """Raw performance data of the tab (timing, navigation, memory, resources) or None."""
        raise NotImplementedError

    @abc.abstractmethod
    async def insert_css(self, tab_id: int, css: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def remove_css(self, tab_id: int, css: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def open_tab(self, url: str) -> int:
        """Opens a new tab and returns its id."""
        raise NotImplementedError

    @abc.abstractmethod
    async def send_message(self, tab_id: int, message: Dict[str, Any]) -> None:
        """Forwards a message to the content script of a tab."""
        raise NotImplementedError


class StaticPageHost(HostRuntime):
    """
    A host serving a single static HTML document as tab 1.

    Used by the command line and by tests: the snapshot is built from the HTML
    with SnapshotBuilder, injected styles are only recorded, and performance
    data is whatever was handed in.
    """

    TAB_ID = 1

    def __init__(
            self,
            url: str,
            html: str,
            viewport: Optional[Tuple[int, int]] = None,
            timing: Optional[Dict[str, int]] = None,
            metrics: Optional[Dict[str, Any]] = None
    ):
        self.url = url
        self.html = html
        self.viewport = viewport
        self.timing = timing
        self.metrics = metrics
        self.injected_css: List[str] = []
        self.opened_urls: List[str] = []
        self.sent_messages: List[Tuple[int, Dict[str, Any]]] = []
        self._builder = SnapshotBuilder()

    def _check_tab(self, tab_id: int) -> None:
        if tab_id != self.TAB_ID:
            raise LookupError(f"No tab with id {tab_id}")

    async def active_tab_id(self) -> int:
        return self.TAB_ID

    async def capture_snapshot(self, tab_id: int) -> DocumentSnapshot:
        self._check_tab(tab_id)
        return self._builder.build(self.url, self.html, viewport=self.viewport, timing=self.timing)

    async def performance_metrics(self, tab_id: int) -> Optional[Dict[str, Any]]:
        self._check_tab(tab_id)
        if self.metrics is None:
            return None
        metrics = dict(self.metrics)
        metrics["resources"] = list(metrics.get("resources") or [])[:MAX_RESOURCE_ENTRIES]
        return metrics

    async def insert_css(self, tab_id: int, css: str) -> None:
        self._check_tab(tab_id)
        self.injected_css.append(css)

    async def remove_css(self, tab_id: int, css: str) -> None:
        self._check_tab(tab_id)
        # Only the first matching injection is removed
        if css in self.injected_css:
            self.injected_css.remove(css)
        else:
            logger.debug("remove_css: stylesheet was not injected in tab %s", tab_id)

    async def open_tab(self, url: str) -> int:
        self.opened_urls.append(url)
        return self.TAB_ID + len(self.opened_urls)

    async def send_message(self, tab_id: int, message: Dict[str, Any]) -> None:
        self._check_tab(tab_id)
        self.sent_messages.append((tab_id, dict(message)))

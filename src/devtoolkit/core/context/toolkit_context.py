# src/devtoolkit/core/context/toolkit_context.py
import logging
from pathlib import Path
from typing import Optional

from page_diagnostics.dom.engine import DiagnosticsEngine
from devtoolkit.core.commands import CommandDispatcher
from devtoolkit.core.host import HostRuntime, StaticPageHost
from devtoolkit.core.loop_runner import ensure_background_loop, run_on_main_loop
from devtoolkit.core.managers.storage_manager import StorageManager
from devtoolkit.core.managers.store_coordinator import StoreCoordinator
from devtoolkit.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class ToolkitContext:
    """
    Holds the long-lived collaborators of a command-line session: the storage
    tiers, the store coordinator (running on the background loop) and the
    diagnostics engine.
    """

    def __init__(self, data_dir: Optional[Path] = None, storage: Optional[StorageManager] = None):
        self.data_dir = data_dir or PathUtils.get_user_data_dir()
        self.storage = storage or StorageManager.on_disk(self.data_dir)
        self.engine = DiagnosticsEngine()
        self.coordinator = StoreCoordinator(self.storage)
        self._started = False

    def start(self) -> None:
        """Starts the background loop and the coordinator on it."""
        if self._started:
            return
        ensure_background_loop()
        run_on_main_loop(self.coordinator.start())
        self._started = True
        logger.debug("Toolkit context started; data dir: %s", self.data_dir)

    def run(self, coro):
        """Runs a coroutine on the coordinator's loop and returns its result."""
        self.start()
        return run_on_main_loop(coro)

    def dispatcher(self, host: Optional[HostRuntime] = None) -> CommandDispatcher:
        """A dispatcher bound to this context; without a host, a blank page stands in."""
        return CommandDispatcher(host or StaticPageHost("about:blank", ""), self.coordinator, self.engine)

    def close(self) -> None:
        if self._started:
            run_on_main_loop(self.coordinator.stop())
            self._started = False

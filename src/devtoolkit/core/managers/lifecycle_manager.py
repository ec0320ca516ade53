# src/devtoolkit/core/managers/lifecycle_manager.py
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from devtoolkit.core.commands import Analyze, CommandDispatcher, analytics_key
from devtoolkit.core.host import HostRuntime
from devtoolkit.core.managers.config_manager import config_manager
from devtoolkit.core.managers.store_coordinator import StoreCoordinator
from devtoolkit.model import Settings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "settings"

# Context menu item ids registered by the add-on
MENU_PICK_COLOR = "pickColor"
MENU_ANALYZE_PAGE = "analyyzePage"
ANALYZE_MENU_ITEMS = (MENU_ANALYZE_PAGE, "analyzePage")


class LifecycleManager:
    """
    One handler per runtime lifecycle event: install/update, tab load completion,
    context menu clicks and the periodic cleanup alarm. Scheduling the alarm is the runtime's job;
    this class only holds the policy each event triggers.
    """

    def __init__(self, host: HostRuntime, coordinator: StoreCoordinator):
        self.host = host
        self.coordinator = coordinator
        self.dispatcher = CommandDispatcher(host, coordinator)
        self.alarm_name = config_manager.get_nested("retention.alarm_name", "cleanup")

    def retention_schedule(self) -> Dict[str, int]:
        """Delay and period (minutes) the runtime should register the cleanup alarm with."""
        return {
            "delay_minutes": int(config_manager.get_nested("retention.delay_minutes", 60)),
            "period_minutes": int(config_manager.get_nested("retention.period_minutes", 1440)),
        }

    async def on_installed(self, reason: str, version: Optional[str] = None) -> None:
        """
        Handles both first installs and updates.

        Default settings are seeded without overwriting stored values, so an
        update never resets preferences or the color history.
        """
        await self._seed_default_settings()

        if reason == "install":
            logger.info("DevToolkit installed")
            welcome_url = config_manager.get_nested("welcome_url")
            if welcome_url:
                await self.host.open_tab(welcome_url)
        elif reason == "update":
            logger.info("DevToolkit updated to version %s", version or "unknown")
        else:
            logger.debug("Ignoring install reason '%s'", reason)

    async def on_tab_updated(self, tab_id: int, status: str) -> bool:
        """Drops the tab's cached report once a (re)load completes. Returns True if it did."""
        if status != "complete":
            return False
        await asyncio.to_thread(self.coordinator.storage.session.remove, analytics_key(tab_id))
        return True

    async def on_alarm(self, name: str, now: Optional[datetime] = None) -> Optional[Dict[str, int]]:
        """Runs the retention sweep for the cleanup alarm; other alarms are not ours."""
        if name != self.alarm_name:
            logger.debug("Ignoring alarm '%s'", name)
            return None
        return await self.coordinator.run_retention_sweep(now)

    async def on_context_menu(self, item_id: str, tab_id: int) -> Optional[Any]:
        """
        Routes a context menu click. The color picker runs in the page, so that
        item is only forwarded to the tab; page analysis returns the PageReport.
        """
        if item_id == MENU_PICK_COLOR:
            await self.host.send_message(tab_id, {"action": "startColorPicker"})
            return None
        if item_id in ANALYZE_MENU_ITEMS:
            return await self.dispatcher.dispatch(Analyze(tab_id=tab_id))
        logger.debug("Ignoring context menu item '%s'", item_id)
        return None

    async def _seed_default_settings(self) -> None:
        sync = self.coordinator.storage.sync
        stored = await asyncio.to_thread(sync.get, SETTINGS_KEY, None) or {}
        defaults = Settings.model_validate(config_manager.get_nested("defaults", {}) or {})
        merged = {**defaults.model_dump(by_alias=True), **stored}
        if merged != stored:
            await asyncio.to_thread(sync.set, SETTINGS_KEY, merged)
            logger.debug("Seeded default settings: %s", merged)

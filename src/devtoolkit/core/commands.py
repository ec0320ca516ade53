# src/devtoolkit/core/commands.py
import asyncio
import logging
import time
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from page_diagnostics.dom.engine import DiagnosticsEngine
from page_diagnostics.model import PageReport
from devtoolkit.core.host import HostRuntime
from devtoolkit.core.managers.storage_manager import StorageError
from devtoolkit.core.managers.store_coordinator import (
    StoreCoordinator,
    PersistenceError,
    COLOR_HISTORY,
    CODE_SNIPPETS,
    RECENT_ANALYSES,
)
from devtoolkit.core.stores.bounded_store import BoundedRecordStore
from devtoolkit.model import ColorEntry, CodeSnippet, AnalysisRecord

logger = logging.getLogger(__name__)

ANALYTICS_KEY_PREFIX = "analytics_"

# Message names used by earlier releases of the extension.
LEGACY_ACTIONS: Dict[str, str] = {
    "colorPicked": "pickColor",
    "saveCodeSnippet": "saveSnippet",
    "getPerformanceMetrics": "getMetrics",
    "injectCSS": "injectStyle",
    "removeCSS": "removeStyle",
    "analyyzePage": "analyze",
    "analyzePage": "analyze",
}


class UnknownCommandError(ValueError):
    """Raised for a message whose action is not a known command."""


class InvalidCommandError(ValueError):
    """Raised when a known command carries missing or malformed fields."""


def analytics_key(tab_id: int) -> str:
    """Session storage key of the cached report for a tab."""
    return f"{ANALYTICS_KEY_PREFIX}{tab_id}"


class CommandModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PickColor(CommandModel):
    action: Literal["pickColor"] = "pickColor"
    color: str


class SaveSnippet(CommandModel):
    action: Literal["saveSnippet"] = "saveSnippet"
    language: str
    code: str
    title: Optional[str] = None


class GetMetrics(CommandModel):
    action: Literal["getMetrics"] = "getMetrics"
    tab_id: Optional[int] = None


class InjectStyle(CommandModel):
    action: Literal["injectStyle"] = "injectStyle"
    css: str
    tab_id: Optional[int] = None


class RemoveStyle(CommandModel):
    action: Literal["removeStyle"] = "removeStyle"
    css: str
    tab_id: Optional[int] = None


class Analyze(CommandModel):
    action: Literal["analyze"] = "analyze"
    tab_id: Optional[int] = None


Command = Annotated[
    Union[PickColor, SaveSnippet, GetMetrics, InjectStyle, RemoveStyle, Analyze],
    Field(discriminator="action"),
]
COMMAND_ACTIONS = ("pickColor", "saveSnippet", "getMetrics", "injectStyle", "removeStyle", "analyze")

_COMMAND_ADAPTER = TypeAdapter(Command)


def parse_command(payload: Dict[str, Any]) -> Command:
    """
    Turns a raw message into a typed command. Legacy action names are accepted.

    Raises:
        UnknownCommandError: If the action is missing or not a known command.
        InvalidCommandError: If the command's fields do not validate.
    """
    if not isinstance(payload, dict):
        raise InvalidCommandError(f"Message must be a mapping, got {type(payload).__name__}")

    action = payload.get("action")
    action = LEGACY_ACTIONS.get(action, action)
    if action not in COMMAND_ACTIONS:
        raise UnknownCommandError(f"Unknown action: {payload.get('action')!r}")

    try:
        return _COMMAND_ADAPTER.validate_python({**payload, "action": action})
    except ValidationError as e:
        raise InvalidCommandError(f"Invalid '{action}' message: {e}") from e


def _new_snippet(command: SaveSnippet):
    """Factory run inside the coordinator so id allocation sees the current store."""
    def build(store: BoundedRecordStore) -> CodeSnippet:
        snippet_id = int(time.time() * 1000)
        highest = max((snippet.id for snippet in store), default=None)
        if highest is not None and snippet_id <= highest:
            snippet_id = highest + 1
        return CodeSnippet(
            id=snippet_id,
            language=command.language,
            code=command.code,
            title=command.title,
        )
    return build


class CommandDispatcher:
    """
    Routes typed commands to the host runtime, the diagnostics engine and the
    store coordinator. Dispatch is exhaustive; anything else raises.
    """

    def __init__(
            self,
            host: HostRuntime,
            coordinator: StoreCoordinator,
            engine: Optional[DiagnosticsEngine] = None
    ):
        self.host = host
        self.coordinator = coordinator
        self.engine = engine or DiagnosticsEngine()

    async def handle_message(self, payload: Dict[str, Any]) -> Any:
        """Parses a raw message and dispatches it."""
        return await self.dispatch(parse_command(payload))

    async def dispatch(self, command: Command) -> Any:
        logger.debug("Dispatching %s", type(command).__name__)
        if isinstance(command, PickColor):
            return await self._pick_color(command)
        if isinstance(command, SaveSnippet):
            return await self._save_snippet(command)
        if isinstance(command, GetMetrics):
            return await self.host.performance_metrics(await self._resolve_tab(command.tab_id))
        if isinstance(command, InjectStyle):
            await self.host.insert_css(await self._resolve_tab(command.tab_id), command.css)
            return None
        if isinstance(command, RemoveStyle):
            await self.host.remove_css(await self._resolve_tab(command.tab_id), command.css)
            return None
        if isinstance(command, Analyze):
            return await self._analyze(command)
        raise UnknownCommandError(f"No handler for command {type(command).__name__}")

    async def _resolve_tab(self, tab_id: Optional[int]) -> int:
        return tab_id if tab_id is not None else await self.host.active_tab_id()

    async def _pick_color(self, command: PickColor):
        items = await self.coordinator.insert(COLOR_HISTORY, ColorEntry(color=command.color))
        return [entry.color for entry in items]

    async def _save_snippet(self, command: SaveSnippet) -> CodeSnippet:
        items = await self.coordinator.insert(CODE_SNIPPETS, _new_snippet(command))
        snippet = items[0]
        logger.info("Saved snippet %s (%s)", snippet.id, snippet.language)
        return snippet

    async def _analyze(self, command: Analyze) -> PageReport:
        tab_id = await self._resolve_tab(command.tab_id)
        snapshot = await self.host.capture_snapshot(tab_id)
        report = self.engine.analyze(snapshot)

        try:
            await asyncio.to_thread(
                self.coordinator.storage.session.set, analytics_key(tab_id), report.to_payload()
            )
        except StorageError as e:
            raise PersistenceError(f"Could not cache report for tab {tab_id}: {e}", store="session", applied=False) from e

        await self.coordinator.insert(
            RECENT_ANALYSES,
            AnalysisRecord(tab_id=tab_id, url=report.url, title=report.title, elements=report.elements),
        )
        return report

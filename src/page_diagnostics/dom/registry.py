# src/page_diagnostics/dom/registry.py
import importlib
import pkgutil
import logging
from collections import defaultdict
from typing import Dict, List, Set

from .core import ElementDefinition

logger = logging.getLogger(__name__)


class ElementRegistry:
    """
    Central registry for element definitions and their rules.

    Dynamically discovers and loads ElementDefinition objects from the
    'page_diagnostics.dom.elements' package. A module exposes either a single
    `DEFINITION` or a list of `DEFINITIONS`; one tag may be claimed by
    several definitions (e.g. <a> is both a link and a contrast candidate).
    """

    _definitions: Dict[str, List[ElementDefinition]] = defaultdict(list)
    _categories: Set[str] = set()
    _all_codes: Set[str] = set()
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        """
        Discovers and registers all element definitions found in 'page_diagnostics.dom.elements'.

        Raises:
            ImportError: If the elements package or one of its modules cannot be imported.
        """
        if cls._loaded:
            return

        import page_diagnostics.dom.elements as elements_pkg

        for _, name, _ in pkgutil.iter_modules(elements_pkg.__path__):
            full_name = f"page_diagnostics.dom.elements.{name}"
            module = importlib.import_module(full_name)

            definitions = list(getattr(module, "DEFINITIONS", []))
            if isinstance(getattr(module, "DEFINITION", None), ElementDefinition):
                definitions.append(module.DEFINITION)

            for defn in definitions:
                cls.register(defn)
            logger.debug("Element module loaded: %s (%d definitions)", name, len(definitions))

        cls._loaded = True

    @classmethod
    def register(cls, defn: ElementDefinition) -> None:
        """Registers a definition under each of its tag names."""
        for tag in defn.tag_names:
            cls._definitions[tag].append(defn)
        if defn.category:
            cls._categories.add(defn.category)
        cls._all_codes.update(defn.codes)

    @classmethod
    def get_definitions(cls, tag_name: str) -> List[ElementDefinition]:
        """Retrieves the definitions registered for a specific tag."""
        return cls._definitions.get(tag_name, [])

    @classmethod
    def get_categories(cls) -> List[str]:
        """Returns all count categories declared by the loaded definitions."""
        return sorted(cls._categories)

    @classmethod
    def get_all_possible_codes(cls) -> List[str]:
        """Returns a list of all unique finding codes registered in the system."""
        return sorted(cls._all_codes)

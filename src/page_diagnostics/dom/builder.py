# src/page_diagnostics/dom/builder.py
import logging
import re
from typing import Dict, Any, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString, CData

from .models import DocumentSnapshot, Viewport, NavigationTiming
from .core import SnapshotElement, DEFAULT_TEXT_COLOR, DEFAULT_BACKGROUND_COLOR

logger = logging.getLogger(__name__)

_STYLE_DECLARATION = re.compile(r"\s*([a-zA-Z-]+)\s*:\s*([^;]+)")
_HEX_COLOR = re.compile(r"^#([0-9a-f]{3,4}|[0-9a-f]{6}|[0-9a-f]{8})$")
_FUNC_COLOR = re.compile(r"^(rgba?)\(\s*([^)]*)\)$")

_TEXT_STRING_TYPES = (NavigableString, CData)

NAMED_COLORS = {
    "black": "rgb(0, 0, 0)",
    "white": "rgb(255, 255, 255)",
    "red": "rgb(255, 0, 0)",
    "green": "rgb(0, 128, 0)",
    "blue": "rgb(0, 0, 255)",
    "gray": "rgb(128, 128, 128)",
    "grey": "rgb(128, 128, 128)",
    "transparent": "rgba(0, 0, 0, 0)",
}


def normalize_color(value: str) -> str:
    """
    Converts a CSS color value into the serialization browsers use for computed styles,
    e.g. '#000' -> 'rgb(0, 0, 0)' and 'transparent' -> 'rgba(0, 0, 0, 0)'.
    Values it does not understand are returned lower-cased and stripped.
    """
    color = value.strip().lower()
    if color in NAMED_COLORS:
        return NAMED_COLORS[color]

    hex_match = _HEX_COLOR.match(color)
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) in (3, 4):
            digits = "".join(ch * 2 for ch in digits)
        channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
        if len(channels) == 4:
            alpha = round(channels[3] / 255, 3)
            return _format_rgb(channels[:3], alpha)
        return _format_rgb(channels, None)

    func_match = _FUNC_COLOR.match(color)
    if func_match:
        parts = [p.strip() for p in re.split(r"[,\s/]+", func_match.group(2)) if p.strip()]
        if len(parts) in (3, 4):
            try:
                channels = [int(float(p)) for p in parts[:3]]
                alpha = _parse_alpha(parts[3]) if len(parts) == 4 else None
            except ValueError:
                return color
            return _format_rgb(channels, alpha)

    return color


def _parse_alpha(raw: str) -> float:
    if raw.endswith("%"):
        return float(raw[:-1]) / 100
    return float(raw)


def _format_rgb(channels, alpha: Optional[float]) -> str:
    r, g, b = channels
    if alpha is None or alpha == 1:
        return f"rgb({r}, {g}, {b})"
    # Computed styles print 0 and 0.5, not 0.0
    alpha_text = f"{alpha:g}"
    return f"rgba({r}, {g}, {b}, {alpha_text})"


class SnapshotBuilder:
    """
    Builder responsible for turning raw HTML into a DocumentSnapshot.

    Without a rendering engine there are no real computed styles; colors are
    approximated from inline `style` attributes, with `color` inherited from
    the parent and `background-color` falling back to transparent.
    """

    def build(
            self,
            url: str,
            html: str,
            viewport: Optional[Tuple[int, int]] = None,
            timing: Optional[Dict[str, int]] = None
    ) -> DocumentSnapshot:
        """
        Parses raw HTML content into a DocumentSnapshot.

        Args:
            url (str): The URL the document was loaded from.
            html (str): The raw HTML string.
            viewport (Optional[Tuple[int, int]]): Width and height of the viewport, if known.
            timing (Optional[Dict[str, int]]): Navigation timing timestamps, if known.

        Returns:
            DocumentSnapshot: The snapshot; empty (no root) if there is no HTML.
        """
        view = Viewport(width=viewport[0], height=viewport[1]) if viewport else Viewport()
        nav_timing = NavigationTiming.model_validate(timing) if timing else None

        if not html or not html.strip():
            return DocumentSnapshot(url=url, viewport=view, timing=nav_timing)

        # Basic cleanup of potentially dirty HTML (e.g., BOM)
        clean_html = html.replace('\ufeff', '').strip()
        soup = BeautifulSoup(clean_html, 'html.parser')

        title_tag = soup.find('title')
        title = title_tag.get_text(strip=True) if title_tag else ""

        # html.parser keeps fragments as-is; wrap them so the tree has a single root.
        root_tag = soup.find('html')
        if root_tag is None:
            logger.debug("No <html> root in document at %s; wrapping fragment.", url)
            wrapper = soup.new_tag('html')
            for child in list(soup.contents):
                wrapper.append(child.extract())
            soup.append(wrapper)
            root_tag = wrapper

        root = self._build_tree(root_tag, inherited_color=DEFAULT_TEXT_COLOR)

        return DocumentSnapshot(
            title=title,
            url=url,
            viewport=view,
            timing=nav_timing,
            root=root
        )

    def _build_tree(self, root_tag: Tag, inherited_color: str) -> SnapshotElement:
        """
        Builds the snapshot element tree from a BeautifulSoup Tag.

        Uses an explicit stack: colors flow down on the first visit of a tag,
        and the element is assembled on the second visit, once all its children
        are built. Text content is gathered bottom-up in the same pass, matching
        what `Tag.get_text()` returns for each element.
        """
        built: Dict[int, SnapshotElement] = {}
        texts: Dict[int, str] = {}
        stack = [(root_tag, inherited_color, None, False)]

        while stack:
            tag, color, background, expanded = stack.pop()
            child_tags = [child for child in tag.children if isinstance(child, Tag)]

            if not expanded:
                styles = self._parse_inline_style(tag.get('style'))
                if 'color' in styles:
                    color = normalize_color(styles['color'])
                background = (
                    normalize_color(styles['background-color'])
                    if 'background-color' in styles
                    else DEFAULT_BACKGROUND_COLOR
                )
                stack.append((tag, color, background, True))
                stack.extend((child, color, None, False) for child in child_tags)
                continue

            # Text as a parent's get_text() sees it: plain strings only
            parts = []
            for child in tag.children:
                if isinstance(child, Tag):
                    parts.append(texts.pop(id(child)))
                elif type(child) in _TEXT_STRING_TYPES:
                    parts.append(str(child))
            texts[id(tag)] = "".join(parts)

            built[id(tag)] = SnapshotElement(
                tag=tag.name,
                attrs=self._normalize_attrs(tag.attrs),
                text=self._own_text(tag, texts[id(tag)]),
                color=color,
                background_color=background,
                children=[built.pop(id(child)) for child in child_tags]
            )

        return built[id(root_tag)]

    @staticmethod
    def _own_text(tag: Tag, plain_text: str) -> str:
        """
        Tags such as <script> or <rt> hold their own string types, which only
        their own get_text() includes.
        """
        kinds = getattr(tag, 'interesting_string_types', _TEXT_STRING_TYPES)
        if isinstance(kinds, type):
            kinds = (kinds,)
        if set(kinds) <= set(_TEXT_STRING_TYPES):
            return plain_text
        return "".join(str(child) for child in tag.children if type(child) in kinds)

    @staticmethod
    def _normalize_attrs(attrs: Dict[str, Any]) -> Dict[str, str]:
        """Lower-cases attribute names and joins multi-valued attributes (class, rel)."""
        out: Dict[str, str] = {}
        for key, value in attrs.items():
            if isinstance(value, (list, tuple)):
                value = " ".join(value)
            out[key.lower()] = value if value is not None else ""
        return out

    @staticmethod
    def _parse_inline_style(style: Optional[str]) -> Dict[str, str]:
        """Extracts declarations from a style attribute; the last one wins."""
        if not style:
            return {}
        declarations: Dict[str, str] = {}
        for chunk in style.split(';'):
            match = _STYLE_DECLARATION.match(chunk)
            if match:
                value = match.group(2).replace('!important', '').strip()
                declarations[match.group(1).lower()] = value
        return declarations

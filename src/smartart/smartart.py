"""Fenced-block diagram descriptions (pyramid, chevron, venn) to SVG."""
from __future__ import annotations

from dataclasses import dataclass, field
import html
import logging
import math
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence
from typing import Callable, Dict, List, Optional, Tuple, Union

from PIL import ImageColor

SVG_NS = "http://www.w3.org/2000/svg"
XHTML_NS = "http://www.w3.org/1999/xhtml"
ET.register_namespace("", SVG_NS)

logger = logging.getLogger(__name__)

OptionValue = Union[int, float, bool, str]
OptionsMap = Dict[str, OptionValue]

GRAMMAR_AUTO = "auto"
GRAMMAR_POSITIONAL = "positional-numeric"
GRAMMAR_KEY_EQUALS = "key=value"
GRAMMAR_KEY_COLON = "key:value"

POSITIONAL_KEYS = ("width", "height", "fontSize")

DIAGRAM_KINDS = ("pyramid", "chevron", "venn")
UNIFIED_TAG = "smartart"
MERMAID_TAG = "mermaid"

DEFAULT_FONT_SIZE = 14
SOLID_COLORS = ("#4285F4", "#34A853", "#FBBC05", "#EA4335", "#5F6368", "#185ABC")
TRANSLUCENT_COLORS = (
    "rgba(66, 133, 244, 0.5)",
    "rgba(52, 168, 83, 0.5)",
    "rgba(251, 188, 5, 0.5)",
    "rgba(234, 67, 53, 0.5)",
    "rgba(95, 99, 104, 0.5)",
    "rgba(24, 90, 188, 0.5)",
)
LIGHT_TEXT = "#ffffff"
DARK_TEXT = "#333333"
SHAPE_STROKE = "#333"
OVERLAP_CONTENT_STYLE = "max-width:100%;max-height:100%;display:inline-block;padding:3px;"

TOP_LAYER_CONTENT_RATIO = 0.3
CHEVRON_INDENT_RATIO = 0.2
VENN_OVERLAP_RATIO = 0.4
VENN_PAIR_BOX_RATIO = 0.8
VENN_CENTER_BOX_RATIO = 0.7
VENN_LABEL_BOX_RATIO = 0.6
VENN_LABEL_OFFSET_RATIO = 0.8
VENN_REGION_COUNT = 4
VENN_MAX_ITEMS = 7

_POSITIONAL_RE = re.compile(r"^\d+(?:\s+\d+){0,2}$")
_KEY_EQUALS_RE = re.compile(r"(\w+)=(\S+)")
_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d+\.\d+$")
_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")
# Commas inside parentheses belong to values such as rgba(...).
_PAIR_SPLIT_RE = re.compile(r"[,\n](?![^(]*\))")
_ITEM_RE = re.compile(r"^(.*?)(?:\s*\{\s*(.*?)\s*\})?$")
_TYPE_LINE_RE = re.compile(r"^type:\s*(\S+)$")
# Attribute values escape angle brackets, so only element text can match.
_CONTENT_MARKER_RE = re.compile(r">@@smartart-content-(\d+)@@<")
_GLOBAL_LINE_RE = re.compile(r"^\w+\s*:\s*\S")


@dataclass(frozen=True)
class CanvasDefaults:
    width: float
    height: float


PYRAMID_DEFAULTS = CanvasDefaults(width=400, height=200)
CHEVRON_DEFAULTS = CanvasDefaults(width=200, height=100)
VENN_DEFAULTS = CanvasDefaults(width=600, height=400)


@dataclass(frozen=True)
class DiagramItem:
    """One layer, panel or region of a diagram, in source order."""

    content: str
    options: OptionsMap = field(default_factory=dict)


@dataclass(frozen=True)
class DiagramSpec:
    """Parsed, generator-ready representation of one block."""

    items: Tuple[DiagramItem, ...]
    global_options: OptionsMap = field(default_factory=dict)

    @property
    def contents(self) -> List[str]:
        return [item.content for item in self.items]

    @property
    def options(self) -> List[OptionsMap]:
        return [item.options for item in self.items]


@dataclass(frozen=True)
class _Region:
    name: str
    cx: float
    cy: float
    size: float


# ---------------------------------------------------------------------------
# Option parsing
# ---------------------------------------------------------------------------


def parse_options(options_str: Optional[str], grammar: str = GRAMMAR_AUTO) -> OptionsMap:
    """Parse an options string into a typed mapping.

    ``GRAMMAR_AUTO`` picks the positional form when the whole string is one to
    three integers and falls back to ``key=value`` tokens otherwise. Malformed
    tokens are dropped; this function never raises.
    """
    if not options_str:
        return {}
    text = options_str.strip()
    if not text:
        return {}
    if grammar == GRAMMAR_AUTO:
        grammar = GRAMMAR_POSITIONAL if _POSITIONAL_RE.match(text) else GRAMMAR_KEY_EQUALS
    if grammar == GRAMMAR_POSITIONAL:
        return _parse_positional(text)
    if grammar == GRAMMAR_KEY_EQUALS:
        return _parse_key_equals(text)
    if grammar == GRAMMAR_KEY_COLON:
        return _parse_key_colon(text)
    logger.debug("unknown option grammar %r, ignoring %r", grammar, text)
    return {}


def coerce_value(value: str) -> OptionValue:
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    if value == "true":
        return True
    if value == "false":
        return False
    return _strip_quotes(value)


def is_color_code(token: Optional[str]) -> bool:
    return bool(token) and _COLOR_RE.match(token) is not None


def _parse_positional(text: str) -> OptionsMap:
    if not _POSITIONAL_RE.match(text):
        logger.debug("positional options must be 1-3 integers, got %r", text)
        return {}
    return {key: int(value) for key, value in zip(POSITIONAL_KEYS, text.split())}


def _parse_key_equals(text: str) -> OptionsMap:
    options: OptionsMap = {}
    for token in text.split():
        match = _KEY_EQUALS_RE.search(token)
        if match is None:
            logger.debug("dropping option token %r", token)
            continue
        options[match.group(1)] = coerce_value(match.group(2))
    return options


def _parse_key_colon(text: str) -> OptionsMap:
    options: OptionsMap = {}
    for pair in _PAIR_SPLIT_RE.split(text):
        key, sep, value = pair.partition(":")
        key = key.strip()
        value = value.strip()
        if not sep or not key or not value:
            if pair.strip():
                logger.debug("dropping option pair %r", pair.strip())
            continue
        options[key] = coerce_value(value)
    return options


# ---------------------------------------------------------------------------
# Content-line splitting
# ---------------------------------------------------------------------------


def split_content(raw_text: str, diagram_tag: str) -> DiagramSpec:
    """Split a block body into items and global options.

    Bodies with a ``type:`` header, or a ``---`` separator preceded only by
    ``key: value`` lines, use the declarative grammar (``content { key: value }``
    items); everything else uses the pipe grammar (``content | #color | override``).
    """
    lines = [line.strip() for line in (raw_text or "").strip().splitlines()]
    if _is_declarative(lines):
        return _split_declarative(lines)
    return _split_legacy(lines, diagram_tag)


def _is_declarative(lines: List[str]) -> bool:
    if _first_line("\n".join(lines)).startswith("type:"):
        return True
    if "---" not in lines:
        return False
    # A pipe body may use --- as an ordinary item line.
    header = [line for line in lines[:lines.index("---")] if line]
    return all(_GLOBAL_LINE_RE.match(line) for line in header)


def _split_legacy(lines: List[str], diagram_tag: str) -> DiagramSpec:
    body = [line for line in lines if line]
    index = 0
    if body and body[0] == diagram_tag:
        index = 1
    global_options: OptionsMap = {}
    if index < len(body) and body[index].startswith("options:"):
        global_options = parse_options(body[index][len("options:"):])
        index += 1
    items = tuple(_split_pipe_line(line) for line in body[index:])
    return DiagramSpec(items=items, global_options=global_options)


def _split_pipe_line(line: str) -> DiagramItem:
    parts = [part.strip() for part in line.split("|", 2)]
    content = parts[0]
    options: OptionsMap = {}
    if len(parts) > 1:
        if is_color_code(parts[1]):
            options["color"] = parts[1]
        elif "=" in parts[1]:
            options = parse_options(parts[1], GRAMMAR_KEY_EQUALS)
    if len(parts) > 2:
        if is_color_code(parts[2]):
            options["color"] = parts[2]
        else:
            content = parts[2]
    return DiagramItem(content=content, options=options)


def _split_declarative(lines: List[str]) -> DiagramSpec:
    global_options: OptionsMap = {}
    if "---" in lines:
        separator = lines.index("---")
        for line in lines[:separator]:
            if not line or _TYPE_LINE_RE.match(line):
                continue
            key, sep, value = line.partition(":")
            key = key.strip()
            value = value.strip()
            if sep and key and value:
                global_options[key] = coerce_value(value)
            else:
                logger.debug("dropping global option line %r", line)
        body = lines[separator + 1:]
    else:
        body = lines[1:]

    items: List[DiagramItem] = []
    for line in body:
        if not line:
            continue
        match = _ITEM_RE.match(line)
        content = match.group(1).strip() if match else line
        options = parse_options(match.group(2), GRAMMAR_KEY_COLON) if match else {}
        items.append(DiagramItem(content=content, options=options))
    return DiagramSpec(items=tuple(items), global_options=global_options)


# ---------------------------------------------------------------------------
# Style and default registry
# ---------------------------------------------------------------------------


def default_colors(translucent: bool = False) -> Tuple[str, ...]:
    return TRANSLUCENT_COLORS if translucent else SOLID_COLORS


def default_style_string(
    font_size: float, color: Optional[str] = None, overlap: bool = False
) -> str:
    """Inline style for the XHTML container of a content box.

    Overlap boxes (venn regions) size to their content as ``inline-block``
    with tighter padding and are capped at the box size.
    """
    display = "inline-block" if overlap else "flex"
    padding = 3 if overlap else 10
    style = (
        f"width:100%;height:100%;display:{display};align-items:center;justify-content:center;"
        "font-family:Arial,sans-serif;"
        f"padding:{padding}px;box-sizing:border-box;text-align:center;overflow:hidden;"
        f"font-size:{_fmt(font_size)}px;"
    )
    if color:
        style += f"color:{color};"
    if overlap:
        style += "max-width:100%;max-height:100%;"
    return style


def error_placeholder(message: str, kind: str = "diagram") -> str:
    return f'<div class="{kind}-error">Error: {html.escape(message)}</div>'


def resolve_positive(*candidates: object, default: float) -> float:
    """Return the first candidate that is a positive number, else ``default``.

    Candidates are ordered most specific first (item, then global). ``None``
    means "not given" and is skipped quietly.
    """
    for candidate in candidates:
        if candidate is None:
            continue
        number = _positive_number(candidate)
        if number is not None:
            return number
        logger.debug("rejecting size override %r", candidate)
    return default


def text_color_for(fill: str) -> str:
    """Pick a readable text color for content drawn over ``fill``."""
    try:
        rgb = ImageColor.getrgb(fill)
    except ValueError:
        return LIGHT_TEXT
    red, green, blue = rgb[:3]
    luminance = (0.299 * red + 0.587 * green + 0.114 * blue) / 255
    return DARK_TEXT if luminance > 0.6 else LIGHT_TEXT


def _positive_number(value: object) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _color_option(value: object) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if value is not None:
        logger.debug("rejecting color override %r", value)
    return None


def _fill_color(item_options: Mapping, palette: Tuple[str, ...], index: int) -> str:
    return _color_option(item_options.get("color")) or palette[index % len(palette)]


def _text_color(item_options: Mapping, global_options: Mapping, fill: str) -> str:
    return (
        _color_option(item_options.get("textColor"))
        or _color_option(global_options.get("textColor"))
        or text_color_for(fill)
    )


def _font_size(item_options: Mapping, global_options: Mapping) -> float:
    return resolve_positive(
        item_options.get("fontSize"), global_options.get("fontSize"), default=DEFAULT_FONT_SIZE
    )


def _canvas_size(global_options: Mapping, defaults: CanvasDefaults) -> Tuple[float, float]:
    width = resolve_positive(global_options.get("width"), default=defaults.width)
    height = resolve_positive(global_options.get("height"), default=defaults.height)
    return width, height


# ---------------------------------------------------------------------------
# SVG assembly
# ---------------------------------------------------------------------------


class _SvgCanvas:
    """Builds one diagram's SVG tree and splices raw item markup on output."""

    def __init__(self, kind: str, width: float, height: float) -> None:
        self.kind = kind
        self.root = ET.Element(
            _q("svg"),
            {
                "width": _fmt(width),
                "height": _fmt(height),
                "viewBox": f"0 0 {_fmt(width)} {_fmt(height)}",
                "class": f"{kind}-diagram",
            },
        )
        self._contents: List[str] = []

    def path(self, points: List[Tuple[float, float]], fill: str) -> ET.Element:
        return ET.SubElement(
            self.root,
            _q("path"),
            {
                "d": _points_to_path_d(points),
                "fill": fill,
                "stroke": SHAPE_STROKE,
                "stroke-width": "1",
            },
        )

    def circle(self, cx: float, cy: float, radius: float, fill: str) -> ET.Element:
        return ET.SubElement(
            self.root,
            _q("circle"),
            {
                "cx": _fmt(cx),
                "cy": _fmt(cy),
                "r": _fmt(radius),
                "fill": fill,
                "stroke": SHAPE_STROKE,
                "stroke-width": "1",
            },
        )

    def content_box(
        self,
        content: str,
        x: float,
        y: float,
        width: float,
        height: float,
        style: str,
        inner_style: Optional[str] = None,
    ) -> ET.Element:
        foreign = ET.SubElement(
            self.root,
            _q("foreignObject"),
            {"x": _fmt(x), "y": _fmt(y), "width": _fmt(width), "height": _fmt(height)},
        )
        container = ET.SubElement(foreign, "div", {"xmlns": XHTML_NS, "style": style})
        inner = ET.SubElement(container, "div", {"class": f"{self.kind}-content"})
        if inner_style:
            inner.set("style", inner_style)
        # Item markup is HTML, not XML, so it is spliced in after serialization.
        inner.text = f"@@smartart-content-{len(self._contents)}@@"
        self._contents.append(content)
        return foreign

    def to_string(self) -> str:
        text = _pretty_xml(self.root)
        return _CONTENT_MARKER_RE.sub(lambda m: f">{self._contents[int(m.group(1))]}<", text)


def _points_to_path_d(points: List[Tuple[float, float]]) -> str:
    commands = [f"M {_fmt(points[0][0])},{_fmt(points[0][1])}"]
    for x, y in points[1:]:
        commands.append(f"L {_fmt(x)},{_fmt(y)}")
    commands.append("Z")
    return " ".join(commands)


def _has_items(contents: object) -> bool:
    return (
        isinstance(contents, Sequence)
        and not isinstance(contents, (str, bytes))
        and len(contents) > 0
    )


def _options_at(options_list: object, index: int) -> Mapping:
    if isinstance(options_list, Sequence) and index < len(options_list):
        entry = options_list[index]
        if isinstance(entry, Mapping):
            return entry
    return {}


def _content_text(content: object) -> str:
    return "" if content is None else str(content)


# ---------------------------------------------------------------------------
# Shape generators
# ---------------------------------------------------------------------------


def create_pyramid_svg(
    contents: Sequence[str],
    options_list: Sequence[OptionsMap] = (),
    global_options: Optional[OptionsMap] = None,
) -> str:
    """Stack the items top to bottom as a triangle over widening trapezoids."""
    if not _has_items(contents):
        logger.debug("pyramid diagram has no items")
        return error_placeholder("No pyramid content provided", "pyramid")
    global_options = global_options or {}
    width, height = _canvas_size(global_options, PYRAMID_DEFAULTS)
    count = len(contents)
    layer_height = height / count
    palette = default_colors()
    canvas = _SvgCanvas("pyramid", width, height)

    for index, raw_content in enumerate(contents):
        item_options = _options_at(options_list, index)
        fill = _fill_color(item_options, palette, index)
        top = index * layer_height
        bottom = top + layer_height
        top_width = width * index / count
        bottom_width = width * (index + 1) / count
        top_left = (width - top_width) / 2
        bottom_left = (width - bottom_width) / 2

        if index == 0:
            points = [
                (width / 2, top),
                (bottom_left + bottom_width, bottom),
                (bottom_left, bottom),
            ]
            box_width = width * TOP_LAYER_CONTENT_RATIO
            box_x = (width - box_width) / 2
        else:
            points = [
                (top_left, top),
                (top_left + top_width, top),
                (bottom_left + bottom_width, bottom),
                (bottom_left, bottom),
            ]
            box_width = top_width
            box_x = top_left
        canvas.path(points, fill)

        content = _content_text(raw_content)
        if not content.strip():
            continue
        style = default_style_string(
            _font_size(item_options, global_options),
            _text_color(item_options, global_options, fill),
        )
        canvas.content_box(content, box_x, top, box_width, layer_height, style)

    return canvas.to_string()


def create_chevron_svg(
    contents: Sequence[str],
    options_list: Sequence[OptionsMap] = (),
    global_options: Optional[OptionsMap] = None,
) -> str:
    """Lay the items out left to right as nested arrow panels."""
    if not _has_items(contents):
        logger.debug("chevron diagram has no items")
        return error_placeholder("No chevron content provided", "chevron")
    global_options = global_options or {}
    panel_width, height = _canvas_size(global_options, CHEVRON_DEFAULTS)
    count = len(contents)
    indent = panel_width * CHEVRON_INDENT_RATIO
    total_width = panel_width * count - indent * (count - 1)
    palette = default_colors()
    canvas = _SvgCanvas("chevron", total_width, height)

    x = 0.0
    for index, raw_content in enumerate(contents):
        item_options = _options_at(options_list, index)
        fill = _fill_color(item_options, palette, index)
        next_x = x + panel_width - indent
        points = [
            (x, 0),
            (next_x, 0),
            (next_x + indent, height / 2),
            (next_x, height),
            (x, height),
        ]
        if index > 0:
            points.append((x + indent, height / 2))
        canvas.path(points, fill)

        content = _content_text(raw_content)
        if content.strip():
            left_inset = indent if index > 0 else 0.0
            style = default_style_string(
                _font_size(item_options, global_options),
                _text_color(item_options, global_options, fill),
            )
            canvas.content_box(
                content, x + left_inset, 0, panel_width - left_inset - indent, height, style
            )
        x = next_x

    return canvas.to_string()


def create_venn_svg(
    contents: Sequence[str],
    options_list: Sequence[OptionsMap] = (),
    global_options: Optional[OptionsMap] = None,
) -> str:
    """Draw three overlapping circles and fill the AB, BC, AC and ABC regions.

    Items five to seven, when given, label circles A, B and C from outside
    the shared area. Further items are ignored.
    """
    if not _has_items(contents):
        logger.debug("venn diagram has no items")
        return error_placeholder("No venn content provided", "venn")
    global_options = global_options or {}
    width, height = _canvas_size(global_options, VENN_DEFAULTS)
    radius = min(width, height) / 4
    overlap = radius * VENN_OVERLAP_RATIO
    centers = [
        (width / 2 - radius + overlap, height / 2 - radius + overlap),
        (width / 2 + radius - overlap, height / 2 - radius + overlap),
        (width / 2, height / 2 + radius - overlap),
    ]
    palette = default_colors(translucent=True)
    canvas = _SvgCanvas("venn", width, height)
    for index, (cx, cy) in enumerate(centers):
        canvas.circle(cx, cy, radius, palette[index])

    regions = _venn_regions(centers, radius, overlap)
    if len(contents) > VENN_MAX_ITEMS:
        logger.debug("venn diagram ignores %d extra items", len(contents) - VENN_MAX_ITEMS)
    for index, raw_content in enumerate(contents[:VENN_MAX_ITEMS]):
        content = _content_text(raw_content)
        if not content.strip():
            continue
        region = regions[index]
        item_options = _options_at(options_list, index)
        color = _color_option(item_options.get("color")) or _color_option(
            global_options.get("color")
        )
        style = default_style_string(_font_size(item_options, global_options), color, overlap=True)
        box_x = _clamp(region.cx - region.size / 2, 0.0, width - region.size)
        box_y = _clamp(region.cy - region.size / 2, 0.0, height - region.size)
        canvas.content_box(
            content, box_x, box_y, region.size, region.size, style, OVERLAP_CONTENT_STYLE
        )

    return canvas.to_string()


def _venn_regions(
    centers: List[Tuple[float, float]], radius: float, overlap: float
) -> List[_Region]:
    (ax, ay), (bx, by), (cx, cy) = centers
    pair_size = radius * VENN_PAIR_BOX_RATIO
    regions = [
        _Region("AB", (ax + bx) / 2, (ay + by) / 2 - overlap / 2, pair_size),
        _Region("BC", (bx + cx) / 2, (by + cy) / 2, pair_size),
        _Region("AC", (ax + cx) / 2, (ay + cy) / 2, pair_size),
        _Region("ABC", (ax + bx + cx) / 3, (ay + by + cy) / 3, radius * VENN_CENTER_BOX_RATIO),
    ]
    mid_x = (ax + bx + cx) / 3
    mid_y = (ay + by + cy) / 3
    for name, (px, py) in zip("ABC", centers):
        dx = px - mid_x
        dy = py - mid_y
        distance = math.hypot(dx, dy) or 1.0
        offset = radius * VENN_LABEL_OFFSET_RATIO
        regions.append(
            _Region(
                name,
                px + dx / distance * offset,
                py + dy / distance * offset,
                radius * VENN_LABEL_BOX_RATIO,
            )
        )
    return regions


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, max(low, high)))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


_GENERATORS: Dict[str, Callable[..., str]] = {
    "pyramid": create_pyramid_svg,
    "chevron": create_chevron_svg,
    "venn": create_venn_svg,
}


def kind_from_body(body: str) -> Optional[str]:
    """Diagram kind named by the body's first line (``venn`` or ``type: venn``)."""
    first = _first_line(body)
    if first in DIAGRAM_KINDS:
        return first
    return _declared_kind(first)


def detect_kind(tag: str, body: str) -> Optional[str]:
    tag = (tag or "").strip().lower()
    if tag in DIAGRAM_KINDS:
        return tag
    first = _first_line(body)
    if tag == UNIFIED_TAG:
        return _declared_kind(first)
    if tag == MERMAID_TAG and first in DIAGRAM_KINDS:
        return first
    return None


def _first_line(body: str) -> str:
    return next((line.strip() for line in (body or "").splitlines() if line.strip()), "")


def _declared_kind(line: str) -> Optional[str]:
    match = _TYPE_LINE_RE.match(line)
    if match and match.group(1) in DIAGRAM_KINDS:
        return match.group(1)
    return None


def process_diagram(kind: str, body: str, info_options: str = "") -> str:
    """Split ``body`` and render it with the ``kind`` generator.

    Options from a fence info string sit under the options found in the body.
    """
    parsed = split_content(body, kind)
    global_options = parsed.global_options
    if info_options:
        global_options = {**parse_options(info_options), **parsed.global_options}
    contents = parsed.contents
    options_list = parsed.options
    if kind == "venn" and len(contents) < VENN_REGION_COUNT:
        missing = VENN_REGION_COUNT - len(contents)
        contents += [""] * missing
        options_list += [{} for _ in range(missing)]
    return _GENERATORS[kind](contents, options_list, global_options)


def process_pyramid_diagram(body: str) -> str:
    return process_diagram("pyramid", body)


def process_chevron_diagram(body: str) -> str:
    return process_diagram("chevron", body)


def process_venn_diagram(body: str) -> str:
    return process_diagram("venn", body)


def render_block(tag: str, body: str, info_options: str = "") -> Optional[str]:
    """Render one fenced block, or return ``None`` when the block is not ours."""
    kind = detect_kind(tag, body)
    if kind is None:
        logger.debug("no diagram renderer for block tag %r", tag)
        return None
    return process_diagram(kind, body, info_options)


# ---------------------------------------------------------------------------
# Document transform
# ---------------------------------------------------------------------------


_FENCE_OPEN_RE = re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})(?P<info>.*)$")


def render_document(text: str) -> str:
    """Replace every recognized fenced diagram block in a Markdown document.

    Fences this module does not recognize are copied through unchanged.
    """
    lines = text.splitlines(keepends=True)
    output: List[str] = []
    index = 0
    while index < len(lines):
        line = lines[index]
        match = _FENCE_OPEN_RE.match(line.rstrip("\r\n"))
        if match is None or (match.group("fence")[0] == "`" and "`" in match.group("info")):
            output.append(line)
            index += 1
            continue
        close = _find_fence_close(lines, index + 1, match.group("fence"))
        if close is None:
            output.extend(lines[index:])
            break
        info_parts = match.group("info").strip().split(None, 1)
        tag = info_parts[0] if info_parts else ""
        info_options = info_parts[1] if len(info_parts) > 1 else ""
        body = "".join(lines[index + 1:close]).strip()
        rendered = render_block(tag, body, info_options)
        if rendered is None:
            output.extend(lines[index:close + 1])
        else:
            output.append(rendered)
            if lines[close].endswith("\n"):
                output.append("\n")
        index = close + 1
    return "".join(output)


def _find_fence_close(lines: List[str], start: int, fence: str) -> Optional[int]:
    closing = re.compile(rf"^ {{0,3}}{re.escape(fence[0])}{{{len(fence)},}}\s*$")
    for index in range(start, len(lines)):
        if closing.match(lines[index].rstrip("\r\n")):
            return index
    return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _pretty_xml(element: ET.Element) -> str:
    ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and (
        (value.startswith('"') and value.endswith('"'))
        or (value.startswith("'") and value.endswith("'"))
    ):
        return value[1:-1]
    return value


def _fmt(value: float) -> str:
    if math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


__all__ = [
    "DIAGRAM_KINDS",
    "DiagramItem",
    "DiagramSpec",
    "GRAMMAR_AUTO",
    "GRAMMAR_KEY_COLON",
    "GRAMMAR_KEY_EQUALS",
    "GRAMMAR_POSITIONAL",
    "coerce_value",
    "create_chevron_svg",
    "create_pyramid_svg",
    "create_venn_svg",
    "default_colors",
    "default_style_string",
    "detect_kind",
    "error_placeholder",
    "is_color_code",
    "kind_from_body",
    "parse_options",
    "process_chevron_diagram",
    "process_diagram",
    "process_pyramid_diagram",
    "process_venn_diagram",
    "render_block",
    "render_document",
    "resolve_positive",
    "split_content",
    "text_color_for",
]

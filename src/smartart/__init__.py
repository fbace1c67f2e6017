"""Public API for smartart."""
from .smartart import (
    DIAGRAM_KINDS,
    DiagramItem,
    DiagramSpec,
    create_chevron_svg,
    create_pyramid_svg,
    create_venn_svg,
    parse_options,
    render_block,
    render_document,
    split_content,
)

__all__ = [
    "DIAGRAM_KINDS",
    "DiagramItem",
    "DiagramSpec",
    "create_chevron_svg",
    "create_pyramid_svg",
    "create_venn_svg",
    "parse_options",
    "render_block",
    "render_document",
    "split_content",
]

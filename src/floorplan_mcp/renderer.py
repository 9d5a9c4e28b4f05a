"""Floorplan renderer using Pillow — draws flattened module layouts to PNG."""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .layout import content_origin, flatten
from .models import Floorplan, GLOBAL_HEADER, LayoutRect, OverlapMarker
from .themes import get_theme, ThemePalette

logger = logging.getLogger(__name__)


# --- Font handling ---

def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _load_bold_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a bold font, falling back to regular."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return _load_font(size)


# --- Color helpers ---

def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert hex color to RGB tuple. Supports both 3-char and 6-char hex."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = hex_color[0]*2 + hex_color[1]*2 + hex_color[2]*2
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Convert hex color to RGBA tuple."""
    r, g, b = _hex_to_rgb(hex_color)
    return (r, g, b, alpha)


# --- Main renderer ---

class FloorplanRenderer:
    """Renders a Floorplan model to a PNG image.

    Physical units map to pixels by ``scale`` (pixels per unit).  When no
    scale is given the root footprint is fitted into ``max_size`` pixels
    on its longer side.
    """

    # Layout constants (pixels)
    PADDING = 40
    TITLE_HEIGHT = 50
    MIN_LABEL_PX = 10       # skip labels on boxes shorter than this

    def __init__(self, scale: Optional[float] = None, max_size: int = 1600):
        self.scale = scale
        self.max_size = max_size
        self.font_title = _load_bold_font(24)
        self.font_label = _load_bold_font(12)
        self.font_small = _load_font(11)
        self.theme: ThemePalette = get_theme("dark")  # Default theme

    def resolve_scale(self, root_w: float, root_h: float) -> float:
        """Pixels per physical unit for a root footprint of this size."""
        if self.scale:
            return self.scale
        longest = max(root_w, root_h)
        if longest <= 0:
            return 1.0
        return self.max_size / longest

    def render(
        self,
        floorplan: Floorplan,
        output_path: Optional[str] = None,
        overlaps: Optional[dict[str, list[OverlapMarker]]] = None,
    ) -> bytes:
        """Render the floorplan to PNG bytes. Optionally save to file.

        Args:
            floorplan: The floorplan to render.
            output_path: Optional path to save the PNG.
            overlaps: Optional overlap markers keyed by the module id they
                      were detected in; drawn on top of everything else.
        """
        self.theme = get_theme(floorplan.theme)

        rects, root_w, root_h = flatten(floorplan.root, floorplan.tech)
        scale = self.resolve_scale(root_w, root_h)

        img_width = int(root_w * scale) + self.PADDING * 2
        img_height = int(root_h * scale) + self.PADDING * 2 + self.TITLE_HEIGHT
        img = Image.new("RGBA", (max(img_width, 1), max(img_height, 1)), _hex_to_rgba(self.theme.background))
        draw = ImageDraw.Draw(img, "RGBA")

        ox = self.PADDING
        oy = self.PADDING + self.TITLE_HEIGHT

        self._draw_title(draw, floorplan, img_width)

        depth: dict[str, int] = {}
        for rect in rects:
            if rect.is_internal:
                self._draw_local_logic(draw, rect, ox, oy, scale)
            else:
                depth[rect.id] = depth.get(rect.parent_id, -1) + 1
                self._draw_container(draw, rect, depth[rect.id], ox, oy, scale)

        for module_id, markers in (overlaps or {}).items():
            try:
                cx, cy = content_origin(rects, module_id)
            except KeyError:
                logger.warning("Overlap markers for unknown module '%s' skipped", module_id)
                continue
            for marker in markers:
                self._draw_overlap(draw, marker, ox + cx * scale, oy + cy * scale, scale)

        logger.debug("Rendered %d rects at %.4f px/unit", len(rects), scale)

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _box(self, rect: LayoutRect, ox: float, oy: float, scale: float) -> tuple[float, float, float, float]:
        return (
            ox + rect.x * scale,
            oy + rect.y * scale,
            ox + (rect.x + rect.w) * scale,
            oy + (rect.y + rect.h) * scale,
        )

    def _draw_title(self, draw: ImageDraw.ImageDraw, floorplan: Floorplan, img_width: int):
        """Draw the title and process name centered at the top."""
        title = f"{floorplan.title}  ·  {floorplan.tech.name}"
        bbox = self.font_title.getbbox(title)
        tw = bbox[2] - bbox[0]
        draw.text(((img_width - tw) / 2, 15), title, fill=self.theme.title_color, font=self.font_title)

    def _draw_container(
        self, draw: ImageDraw.ImageDraw, rect: LayoutRect, depth: int,
        ox: float, oy: float, scale: float,
    ):
        """Draw a module's footprint with its name in the header strip."""
        x1, y1, x2, y2 = self._box(rect, ox, oy, scale)
        if x2 <= x1 or y2 <= y1:
            return

        fills = self.theme.container_fills
        fill_hex = rect.node.color or fills[depth % len(fills)]
        draw.rounded_rectangle(
            [x1, y1, x2, y2],
            radius=int(min(4, (x2 - x1) / 2, (y2 - y1) / 2)),
            fill=_hex_to_rgba(fill_hex, self.theme.container_fill_alpha),
            outline=self.theme.container_border,
            width=1,
        )

        if GLOBAL_HEADER * scale >= self.MIN_LABEL_PX:
            draw.text((x1 + 6, y1 + 4), rect.node.get_label(), fill=self.theme.container_label, font=self.font_label)

    def _draw_local_logic(
        self, draw: ImageDraw.ImageDraw, rect: LayoutRect,
        ox: float, oy: float, scale: float,
    ):
        """Draw a local-logic block as a translucent filled box."""
        x1, y1, x2, y2 = self._box(rect, ox, oy, scale)
        if x2 <= x1 or y2 <= y1:
            return

        draw.rectangle(
            [x1, y1, x2, y2],
            fill=_hex_to_rgba(self.theme.logic_fill, self.theme.logic_fill_alpha),
            outline=self.theme.logic_border,
            width=1,
        )
        if y2 - y1 >= self.MIN_LABEL_PX * 2:
            draw.text((x1 + 4, y1 + 3), rect.name, fill=self.theme.logic_label, font=self.font_small)

    def _draw_overlap(
        self, draw: ImageDraw.ImageDraw, marker: OverlapMarker,
        origin_x: float, origin_y: float, scale: float,
    ):
        """Draw an overlap marker given the module's content origin in pixels."""
        x1 = origin_x + marker.x * scale
        y1 = origin_y + marker.y * scale
        x2 = x1 + marker.w * scale
        y2 = y1 + marker.h * scale
        draw.rectangle(
            [x1, y1, x2, y2],
            fill=_hex_to_rgba(self.theme.overlap_fill, self.theme.overlap_fill_alpha),
            outline=self.theme.overlap_border,
            width=2,
        )

"""
PNG Renderer module for timeline frames.

Renders a ``GanttFrame`` as a PNG image: a date header (weekends shaded,
today highlighted, ISO week labels on Mondays), one band per board column,
task bars in their priority color, and dependency arrows with arrowheads.
Blocked arrows are drawn red and thicker.
"""

import logging
import math
import os
from typing import Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .arrows import DependencyArrow
from .dates import iso_week_number
from .engine import GanttFrame

logger = logging.getLogger(__name__)


def visible_columns(frame: GanttFrame, padding: int = 7) -> Tuple[int, int]:
    """
    Column range worth drawing: every positioned bar plus ``padding`` days.

    Falls back to the whole window when nothing is positioned; an empty
    window gives an empty range.
    """
    if not frame.cells:
        return 0, -1
    last = len(frame.cells) - 1
    if not frame.positions:
        return 0, last
    width = frame.column_width
    first_col = min(int(p.x // width) for p in frame.positions.values())
    last_col = max(int((p.x + p.width) // width) - 1 for p in frame.positions.values())
    return max(0, first_col - padding), min(last, last_col + padding)


class TimelinePNGRenderer:
    """Renders timeline frames as PNG images."""

    def __init__(
        self,
        header_height: int = 44,
        font_size: int = 11,
        font_path: str | None = None,
        scale: int = 2,
        margin: int = 20,
    ):
        self.header_height = header_height
        self.font_size = font_size
        self.font_path = font_path
        self.scale = scale
        self.margin = margin

        # Colors
        self.bg_color = (255, 255, 255)
        self.grid_color = (229, 231, 235)
        self.weekend_color = (243, 244, 246)
        self.today_color = (219, 234, 254)
        self.group_color = (249, 250, 251)
        self.text_color = (17, 24, 39)
        self.muted_text_color = (107, 114, 128)
        self.bar_text_color = (255, 255, 255)
        self.selected_outline = (17, 24, 39)

        self.font = None

    def _get_font(self) -> ImageFont.FreeTypeFont:
        """Get a font for rendering text."""
        if self.font is not None:
            return self.font

        font_size = self.font_size * self.scale

        if self.font_path and os.path.exists(self.font_path):
            try:
                self.font = ImageFont.truetype(self.font_path, font_size)
                return self.font
            except OSError:
                logger.warning("Could not load font %s", self.font_path)

        font_options = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
            "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
            "/usr/share/fonts/truetype/ubuntu/Ubuntu-R.ttf",
        ]
        for path in font_options:
            if os.path.exists(path):
                try:
                    self.font = ImageFont.truetype(path, font_size)
                    return self.font
                except OSError:
                    continue

        self.font = ImageFont.load_default()
        return self.font

    def _text_size(self, text: str, draw: ImageDraw.ImageDraw) -> Tuple[int, int]:
        bbox = draw.textbbox((0, 0), text, font=self._get_font())
        return bbox[2] - bbox[0], bbox[3] - bbox[1]

    @staticmethod
    def _rgb(color: str, fallback=(128, 128, 128)):
        try:
            return ImageColor.getrgb(color)[:3]
        except ValueError:
            return fallback

    def render(
        self,
        frame: GanttFrame,
        output_path: str = "timeline.png",
        columns: Optional[Tuple[int, int]] = None,
    ) -> str:
        """
        Render the frame as a PNG image.

        Args:
            frame: Output of ``GanttEngine.render``.
            output_path: Path to save the PNG file.
            columns: Inclusive (first, last) day columns to draw; defaults
                to ``visible_columns(frame)``.

        Returns:
            Path to the saved PNG file
        """
        s = self.scale
        first, last = columns if columns is not None else visible_columns(frame)
        first, last = max(0, first), min(last, len(frame.cells) - 1)
        day_count = max(0, last - first + 1)

        if day_count == 0:
            img = Image.new("RGB", (200, 100), self.bg_color)
            img.save(output_path)
            return output_path

        col_w = frame.column_width
        origin_x = self.margin * s
        origin_y = (self.margin + self.header_height) * s
        width = (2 * self.margin + day_count * col_w) * s
        height = origin_y + int(frame.height * s) + self.margin * s

        img = Image.new("RGB", (width, height), self.bg_color)
        draw = ImageDraw.Draw(img)

        def to_x(x: float) -> float:
            return origin_x + (x - first * col_w) * s

        def to_y(y: float) -> float:
            return origin_y + y * s

        self._draw_day_columns(draw, frame, first, last, to_x, height)
        self._draw_groups(draw, frame, to_y, width)

        for task in frame.tasks:
            position = frame.positions.get(task.id)
            if position is None:
                continue
            self._draw_bar(
                draw,
                to_x(position.x),
                to_y(position.y),
                position.width * s,
                position.height * s,
                task.ticket or task.title,
                self._rgb(task.priority_color),
                selected=task.id in frame.selected,
            )

        for arrow in frame.arrows:
            self._draw_arrow(draw, arrow, to_x, to_y)

        img.save(output_path, "PNG", dpi=(300, 300))
        logger.info("Wrote %s (%dx%d)", output_path, width, height)
        return output_path

    def _draw_day_columns(self, draw, frame, first, last, to_x, image_height):
        """Header labels and vertical day stripes."""
        s = self.scale
        col_w = frame.column_width * s
        top = self.margin * s
        header_bottom = (self.margin + self.header_height) * s
        font = self._get_font()

        for position in range(first, last + 1):
            cell = frame.cells[position]
            x = to_x(position * frame.column_width)
            fill = None
            if cell.is_today:
                fill = self.today_color
            elif cell.is_weekend:
                fill = self.weekend_color
            if fill:
                draw.rectangle([x, top, x + col_w, image_height - self.margin * s], fill=fill)
            draw.line([(x, top), (x, image_height - self.margin * s)], fill=self.grid_color, width=1)

            day = cell.calendar_date
            label = str(day.day)
            w, h = self._text_size(label, draw)
            draw.text(
                (x + (col_w - w) / 2, header_bottom - h - 6 * s),
                label,
                fill=self.text_color,
                font=font,
            )
            if day.weekday() == 0 or position == first:
                week = f"W{iso_week_number(day)} {day.strftime('%b')}"
                draw.text((x + 2 * s, top + 2 * s), week, fill=self.muted_text_color, font=font)

        draw.line(
            [(self.margin * s, header_bottom), (to_x((last + 1) * frame.column_width), header_bottom)],
            fill=self.grid_color,
            width=max(1, s),
        )

    def _draw_groups(self, draw, frame, to_y, image_width):
        """Column group header bands with the column title."""
        s = self.scale
        font = self._get_font()
        for column_id, (band_top, band_bottom) in frame.group_bands.items():
            top, bottom = to_y(band_top), to_y(band_bottom)
            draw.rectangle(
                [self.margin * s, top, image_width - self.margin * s, bottom],
                fill=self.group_color,
            )
            title = frame.column_titles.get(column_id, column_id)
            _, h = self._text_size(title, draw)
            draw.text(
                (self.margin * s + 4 * s, top + (bottom - top - h) / 2),
                title,
                fill=self.muted_text_color,
                font=font,
            )

    def _draw_bar(self, draw, x, y, w, h, label, color, selected=False):
        """Draw a task bar with its label when it fits."""
        s = self.scale
        outline = self.selected_outline if selected else None
        draw.rounded_rectangle(
            [x + s, y, x + w - s, y + h],
            radius=4 * s,
            fill=color,
            outline=outline,
            width=2 * s if selected else 0,
        )
        text_w, text_h = self._text_size(label, draw)
        if text_w + 8 * s <= w:
            draw.text(
                (x + 4 * s, y + (h - text_h) / 2),
                label,
                fill=self.bar_text_color,
                font=self._get_font(),
            )

    def _draw_arrow(self, draw, arrow: DependencyArrow, to_x, to_y):
        """Draw a routed dependency arrow."""
        points = [(to_x(x), to_y(y)) for x, y in arrow.points]
        if len(points) < 2:
            return
        color = self._rgb(arrow.color)
        line_width = max(1, arrow.stroke_width * self.scale // 2)
        for p1, p2 in zip(points, points[1:]):
            draw.line([p1, p2], fill=color, width=line_width)
        self._draw_arrowhead(draw, points[-2], points[-1], color)

    def _draw_arrowhead(
        self,
        draw: ImageDraw.ImageDraw,
        from_point: Tuple[float, float],
        to_point: Tuple[float, float],
        color,
    ):
        """Draw an arrowhead at the end of a line."""
        x1, y1 = from_point
        x2, y2 = to_point

        arrow_size = 6 * self.scale
        angle = math.atan2(y2 - y1, x2 - x1)
        angle1 = angle + math.pi * 0.8
        angle2 = angle - math.pi * 0.8

        ax1 = x2 + arrow_size * math.cos(angle1)
        ay1 = y2 + arrow_size * math.sin(angle1)
        ax2 = x2 + arrow_size * math.cos(angle2)
        ay2 = y2 + arrow_size * math.sin(angle2)

        draw.polygon([(x2, y2), (ax1, ay1), (ax2, ay2)], fill=color)


def render_to_png(frame: GanttFrame, output_path: str = "timeline.png", **kwargs) -> str:
    """
    Convenience function to render a frame to PNG.

    Args:
        frame: GanttFrame to draw
        output_path: Path to save the PNG file
        **kwargs: Additional parameters for TimelinePNGRenderer

    Returns:
        Path to the saved PNG file
    """
    renderer = TimelinePNGRenderer(**kwargs)
    return renderer.render(frame, output_path)

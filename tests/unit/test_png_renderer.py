"""Tests for the PNG renderer module."""

import asyncio
import copy

import pytest
from PIL import Image

from ganttflow.date_index import DateIndex
from ganttflow.engine import GanttFrame
from ganttflow.png_renderer import TimelinePNGRenderer, render_to_png, visible_columns


@pytest.fixture
def frame(engine, backend, parent_edges):
    backend.relationships.extend(copy.deepcopy(parent_edges))
    asyncio.run(engine.load("b1", client_width=1200))
    return engine.render()


def empty_frame():
    return GanttFrame(
        cells=(),
        index=DateIndex(()),
        tasks=[],
        groups={},
        rows={},
        group_bands={},
        positions={},
        arrows=[],
        column_width=40,
        scroll_width=0,
        height=0,
    )


class TestVisibleColumns:
    """Tests for visible_columns."""

    def test_pads_around_positioned_bars(self, frame):
        first, last = visible_columns(frame, padding=7)
        # t4 starts 2024-06-01 (column 86), t2 ends 2024-06-14 (column 99)
        assert (first, last) == (79, 106)

    def test_empty_frame(self):
        assert visible_columns(empty_frame()) == (0, -1)


class TestTimelinePNGRenderer:
    """Tests for TimelinePNGRenderer class."""

    def test_render_frame(self, frame, tmp_path):
        """Render a loaded board to PNG."""
        output_path = str(tmp_path / "timeline.png")
        result = TimelinePNGRenderer().render(frame, output_path)
        assert result == output_path
        with Image.open(output_path) as img:
            assert img.size[0] == (2 * 20 + 28 * 40) * 2
            assert img.size[1] == (20 + 44 + 20) * 2 + int(frame.height * 2)

    def test_render_with_scale_and_columns(self, frame, tmp_path):
        output_path = str(tmp_path / "scaled.png")
        TimelinePNGRenderer(scale=1).render(frame, output_path, columns=(0, 9))
        with Image.open(output_path) as img:
            assert img.size[0] == 2 * 20 + 10 * 40

    def test_empty_frame_placeholder(self, tmp_path):
        output_path = str(tmp_path / "empty.png")
        render_to_png(empty_frame(), output_path)
        with Image.open(output_path) as img:
            assert img.size == (200, 100)

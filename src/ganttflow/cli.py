"""
Command-line interface.

    ganttflow render BOARD_JSON [-r RELATIONSHIPS_JSON] [-o timeline.png]
                     [--center YYYY-MM-DD] [--env-file .env] [-v]
    ganttflow order BOARD_JSON [-r RELATIONSHIPS_JSON]

BOARD_JSON is a board export: ``{"boardId": ..., "columns": {...},
"priorities": [...]}`` or a bare ``{column_id: column}`` mapping.
RELATIONSHIPS_JSON is a list of relationship rows.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from . import __version__
from .arrows import is_blocked
from .backend import InMemoryTaskBackend
from .config import GanttSettings
from .dates import parse_local_date
from .engine import GanttEngine
from .exceptions import GanttError
from .models import BoardSnapshot, Priority, RelationshipEdge, RelationshipKind
from .png_renderer import TimelinePNGRenderer
from .window import Placement

logger = logging.getLogger(__name__)

DEFAULT_BOARD_ID = "board"


def _die(msg: str, rc: int = 2) -> int:
    print(f"[ganttflow] ERROR: {msg}", file=sys.stderr)
    return rc


def _load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def load_board(path: Path) -> Tuple[BoardSnapshot, List[Priority]]:
    data = _load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"board export must be a JSON object; got {type(data).__name__}")
    priorities = [Priority.from_dict(p) for p in data.get("priorities") or []]
    board_data = {k: v for k, v in data.items() if k != "priorities"}
    snapshot = BoardSnapshot.from_dict(board_data)
    snapshot.board_id = snapshot.board_id or DEFAULT_BOARD_ID
    return snapshot, priorities


def load_relationships(path: Optional[Path]) -> List[RelationshipEdge]:
    if path is None:
        return []
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("relationships") or []
    if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
        raise ValueError("relationships export must be a list of objects")
    return [RelationshipEdge.from_dict(row) for row in data]


def _build_engine(ns) -> GanttEngine:
    snapshot, priorities = load_board(Path(ns.board))
    edges = load_relationships(Path(ns.relationships) if ns.relationships else None)
    backend = InMemoryTaskBackend({snapshot.board_id: snapshot}, edges)
    settings = GanttSettings.from_env(getattr(ns, "env_file", None))
    engine = GanttEngine(backend, settings=settings, priorities=priorities)
    engine.board_id = snapshot.board_id
    return engine


async def _render(ns) -> str:
    engine = _build_engine(ns)
    await engine.load(engine.board_id, client_width=ns.width)
    if ns.center:
        await engine.navigate_to_date(parse_local_date(ns.center), Placement.CENTER)
    else:
        await engine.jump_to_earliest()
    frame = engine.render()
    if len(frame.arrows) < len(engine.relationships):
        logger.info(
            "%d of %d relationship(s) drawn",
            len(frame.arrows),
            len(engine.relationships),
        )
    renderer = TimelinePNGRenderer(scale=ns.scale)
    return renderer.render(frame, ns.output)


async def _order(ns) -> List[str]:
    engine = _build_engine(ns)
    await engine.load(engine.board_id)
    by_id = {task.id: task for task in engine.gantt_tasks()}
    blocked = {
        edge.to_task_id
        for edge in engine.relationships.edges
        if edge.kind is RelationshipKind.PARENT
        and edge.from_task_id in by_id
        and edge.to_task_id in by_id
        and is_blocked(by_id[edge.from_task_id], by_id[edge.to_task_id])
    }
    lines = []
    for task_id in engine.relationships.scheduling_order(list(by_id)):
        task = by_id[task_id]
        flag = "  BLOCKED" if task_id in blocked else ""
        lines.append(
            f"{task.start_date.isoformat()}  {task.end_date.isoformat()}  "
            f"{task.ticket or task.id}  {task.title}{flag}"
        )
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="ganttflow",
        description="Render and inspect Gantt timelines of board exports.",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Render a board export to PNG")
    render.add_argument("board", help="Board export JSON path")
    render.add_argument("-r", "--relationships", default=None, help="Relationships JSON path")
    render.add_argument("-o", "--output", default="timeline.png", help="Output PNG path")
    render.add_argument("--center", default=None, help="Center the window on YYYY-MM-DD")
    render.add_argument("--width", type=int, default=1200, help="Viewport width in pixels")
    render.add_argument("--scale", type=int, default=2, help="Pixel scale factor")
    render.add_argument("--env-file", default=None, help="Load GANTTFLOW_* settings from this file")

    order = sub.add_parser("order", help="List tasks in dependency order")
    order.add_argument("board", help="Board export JSON path")
    order.add_argument("-r", "--relationships", default=None, help="Relationships JSON path")
    order.add_argument("--env-file", default=None, help="Load GANTTFLOW_* settings from this file")

    ns = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not Path(ns.board).exists():
        return _die(f"Missing board JSON: {ns.board}")

    try:
        if ns.command == "render":
            path = asyncio.run(_render(ns))
            print(path)
        else:
            for line in asyncio.run(_order(ns)):
                print(line)
    except (GanttError, ValueError, OSError) as e:
        return _die(str(e), rc=1)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

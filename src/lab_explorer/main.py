"""
Lab Explorer - Command line entry point

Replays a sequence of node clicks against the live catalog/HAL APIs and
writes the resulting graph as a JSON snapshot or a standalone HTML page.

Run with: python -m lab_explorer.main --click root --click group-projects -o graph.html
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

from lab_explorer.explorer.renderer import ExplorerRenderer
from lab_explorer.explorer.session import ExplorerSession
from lab_explorer.tools.gateway import RemoteDataGateway
from lab_explorer.utils.config import ExplorerSettings, load_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Incremental lab knowledge-graph explorer")
    parser.add_argument("--config", type=str, default=None, help="Path to config file")
    parser.add_argument(
        "--click",
        action="append",
        default=[],
        metavar="NODE_ID",
        help="Node id to click, in order (repeatable)",
    )
    parser.add_argument(
        "-o", "--output", type=str, default=None,
        help="Write the graph to this path (.html renders a page, anything else JSON)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


async def replay_clicks(session: ExplorerSession, clicks: List[str]) -> None:
    """Click each node in turn, printing the status line after each."""
    for node_id in clicks:
        outcome = await session.click(node_id)
        # Let researcher detail prefetches land before the next click
        await session.wait_idle()
        print(f"[{outcome.action:>9}] {node_id}: {outcome.status}")


def write_output(session: ExplorerSession, output: str) -> Path:
    path = Path(output)
    snapshot = session.snapshot()
    if path.suffix.lower() in (".html", ".htm"):
        ExplorerRenderer().write(snapshot, path, title=session.settings.root_label, status=session.status)
    else:
        path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


async def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    settings = ExplorerSettings.from_config(config)
    session = ExplorerSession(RemoteDataGateway.from_settings(settings), settings)
    try:
        await replay_clicks(session, args.click)
    finally:
        await session.close()

    if args.output:
        path = write_output(session, args.output)
        print(f"Wrote {len(session.store)} nodes to {path}")
    else:
        for node in session.store.nodes:
            print(f"{node.id}\t{node.kind.value}\t{node.name}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())

"""
Explorer renderer using Jinja2 templates.

Embeds a graph snapshot in a standalone HTML page; the browser-side
force-graph library does the layout. Uses custom delimiters {= =} to avoid
conflicts with JS {{ }}.
"""

import json
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape


TEMPLATE_DIR = Path(__file__).parent / "templates"


class ExplorerRenderer:
    """Renders knowledge graph HTML from graph data."""

    def __init__(self):
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
            variable_start_string="{=",
            variable_end_string="=}",
            block_start_string="{%",
            block_end_string="%}",
            comment_start_string="{#",
            comment_end_string="#}",
        )
        self._template = self._env.get_template("explorer.html")

    def render(self, graph_data: dict, title: str = "Lab Explorer", status: Optional[str] = None) -> str:
        """Render the explorer HTML with embedded graph data."""
        # "</" would end the <script> block early
        graph_json = json.dumps(graph_data).replace("</", "<\\/")
        return self._template.render(graph_json=graph_json, title=title, status=status or "")

    def write(self, graph_data: dict, path: Path, **kwargs) -> Path:
        path = Path(path)
        path.write_text(self.render(graph_data, **kwargs), encoding="utf-8")
        return path

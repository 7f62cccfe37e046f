"""Dependency graph export helpers for JSON, DOT and standalone HTML outputs."""

from __future__ import annotations

import html
import json
from pathlib import Path

from .errors import ValidationError
from .models import DependencyGraph

EXPORT_FORMATS = ("json", "dot", "html")

# Graphviz fill colours per node type; unknown types fall back to white
NODE_COLORS = {
    "entry": "#ffd166",
    "utility": "#06d6a0",
    "config": "#118ab2",
    "documentation": "#cdb4db",
    "test": "#ef476f",
}


def render_json(graph: DependencyGraph) -> str:
    return json.dumps(graph.to_dict(), indent=2)


def render_dot(graph: DependencyGraph) -> str:
    lines = ["digraph Dependencies {"]
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box, style=filled];")

    for node in graph.nodes:
        color = NODE_COLORS.get(node.type, "#ffffff")
        label = f"{node.label}\\n({node.type})"
        lines.append(f'  "{_esc(node.id)}" [label="{_esc(label)}", fillcolor="{color}"];')

    for edge in graph.edges:
        lines.append(
            f'  "{_esc(edge.src)}" -> "{_esc(edge.dst)}" [label="{_esc(edge.edge_type)}"];'
        )

    lines.append("}")
    return "\n".join(lines)


def render_html(graph: DependencyGraph, title: str = "Dependency Graph") -> str:
    """Self-contained HTML page listing nodes and edges."""
    payload = json.dumps(graph.to_dict())
    return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8" />
  <title>{html.escape(title)}</title>
  <style>
    body {{ font-family: ui-monospace, SFMono-Regular, Menlo, monospace; margin: 20px; }}
    #container {{ display: grid; grid-template-columns: 1fr 1fr; gap: 18px; }}
    .panel {{ border: 1px solid #ddd; border-radius: 8px; padding: 10px; }}
    ul {{ list-style: none; padding: 0; margin: 0; }}
    li {{ margin: 4px 0; }}
    .type {{ color: #888; }}
  </style>
</head>
<body>
  <h1>{html.escape(title)}</h1>
  <div id="container">
    <div class="panel">
      <h2>Files</h2>
      <ul id="nodes"></ul>
    </div>
    <div class="panel">
      <h2>Dependencies</h2>
      <ul id="edges"></ul>
    </div>
  </div>
  <script>
    const graph = {payload};
    const nodesEl = document.getElementById('nodes');
    const edgesEl = document.getElementById('edges');
    graph.nodes.forEach(n => {{
      const li = document.createElement('li');
      li.textContent = `${{n.label}} [${{n.type}}] (${{n.id}})`;
      nodesEl.appendChild(li);
    }});
    graph.edges.forEach(e => {{
      const li = document.createElement('li');
      li.textContent = `${{e.from}} --${{e.type}}--> ${{e.to}}`;
      edgesEl.appendChild(li);
    }});
  </script>
</body>
</html>
"""


def export_graph(graph: DependencyGraph, output_file: Path, fmt: str = "json") -> None:
    """Write *graph* to *output_file* in one of :data:`EXPORT_FORMATS`."""
    fmt = fmt.lower()
    if fmt == "json":
        doc = render_json(graph)
    elif fmt == "dot":
        doc = render_dot(graph)
    elif fmt == "html":
        doc = render_html(graph)
    else:
        raise ValidationError(f"Unsupported export format '{fmt}'; expected one of: {', '.join(EXPORT_FORMATS)}")
    output_file.write_text(doc, encoding="utf-8")


def _esc(text: str) -> str:
    return text.replace('"', '\\"')

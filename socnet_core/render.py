"""
SocNet Frame Rendering - PNG frames from render snapshots
=========================================================

render_frame() draws one RenderSnapshot with matplotlib; FrameWriter is the
default frame sink, writing for each frame:

    <output_dir>/<chan>/<chan>-00000042.png   archive frame
    <output_dir>/<chan>/<chan>-current.png    latest frame
    <output_dir>/<chan>/<chan>-restore.json   restore point

Node coordinates are mapped from the snapshot's fitted bounds into the area
inside the border (the right border is half as wide again, leaving room
for labels).
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import LineCollection
from matplotlib.colors import to_rgb
from matplotlib.figure import Figure
from matplotlib.patches import Circle, Rectangle

from socnet_core.config import SocnetConfig
from socnet_core.snapshot import RenderSnapshot, channel_dir, restore_path, strip_channel, write_restore_point
from socnet_core.version import ENGINE_VERSION

if TYPE_CHECKING:  # pragma: no cover
    from socnet_core.graph import Graph

logger = logging.getLogger(__name__)

DPI = 100
TITLE = "A Social Network Diagram for a Chat Channel"
LEGEND = "Blue edge thickness and shortness represents strength of relationship"


# =============================================================================
# Drawing
# =============================================================================

def _project(snapshot: RenderSnapshot, x: float, y: float) -> Tuple[float, float]:
    """Map graph coordinates to pixel coordinates."""
    render = snapshot.render
    bounds = snapshot.bounds
    inner_w = render.width - render.border_size * 3
    inner_h = render.height - render.border_size * 2
    px = inner_w * (x - bounds.min_x) / bounds.width + render.border_size
    py = inner_h * (y - bounds.min_y) / bounds.height + render.border_size
    return px, py


def edge_style(weight: float, max_weight: float) -> Tuple[float, float]:
    """Line width (pixels) and alpha (0-1) of an edge."""
    width = math.log(weight + 1) * 0.5 + 1
    alpha = (102 + int(153 * weight / max_weight)) / 255 if max_weight > 0 else 0.4
    return width, min(alpha, 1.0)


def render_frame(
    snapshot: RenderSnapshot,
    path: Union[str, Path],
    footer: Optional[List[str]] = None,
) -> Path:
    """
    Draw a snapshot to a PNG file.

    Args:
        snapshot: Frame to draw
        path: Output PNG path
        footer: Extra lines printed at the bottom (credits, timestamps)

    Returns:
        The written path
    """
    render = snapshot.render
    colors = render.colors
    width, height = render.width, render.height
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Figure owns its canvas; nothing is registered with pyplot
    fig = Figure(figsize=(width / DPI, height / DPI), dpi=DPI)
    FigureCanvasAgg(fig)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)  # Pixel rows grow downwards
    ax.axis("off")

    ax.add_patch(Rectangle((0, 0), width, height, facecolor=colors["background"],
                           edgecolor=colors["border"], linewidth=1))

    border = render.border_size
    inner_h = height - border * 2
    ax.text(border + 20, 80, snapshot.label, color=colors["channel"],
            fontsize=48, fontweight="bold", family="sans-serif")
    ax.text(border, border - render.node_radius - 15, TITLE, color=colors["title"],
            fontsize=13, fontweight="bold", family="sans-serif")

    bottom = inner_h + border * 2 - 5
    if snapshot.caption:
        ax.text(border, bottom - 50, snapshot.caption, color=colors["title"],
                fontsize=13, fontweight="bold", family="sans-serif")
    for i, line in enumerate(reversed(footer or [])):
        ax.text(border, bottom - 15 * i, line, color=colors["title"],
                fontsize=8, family="sans-serif")

    # Edges
    if render.show_edges:
        max_weight = snapshot.bounds.max_weight
        positions = {n.name: (n.x, n.y) for n in snapshot.nodes}
        edge_rgb = to_rgb(colors["edge"])
        segments, widths, rgba = [], [], []
        for edge in snapshot.visible_edges():
            if edge.source not in positions or edge.target not in positions:
                continue
            segments.append([_project(snapshot, *positions[edge.source]),
                             _project(snapshot, *positions[edge.target])])
            line_width, alpha = edge_style(edge.weight, max_weight)
            widths.append(line_width)
            rgba.append((*edge_rgb, alpha))
        if segments:
            # Linewidths are in points; convert from pixels
            ax.add_collection(LineCollection(segments, linewidths=[w * 72 / DPI for w in widths], colors=rgba))

    # Nodes
    radius = render.node_radius
    for node in snapshot.nodes:
        px, py = _project(snapshot, node.x, node.y)
        ax.add_patch(Circle((px, py), radius, facecolor=colors["node"],
                            edgecolor=colors["edge"], linewidth=1.5))
        ax.text(px + radius, py - radius, node.name, color=colors["label"],
                fontsize=7, family="sans-serif")

    fig.savefig(path, format="png", dpi=DPI)

    return path


# =============================================================================
# Frame Sink
# =============================================================================

class FrameWriter:
    """
    Default frame sink: archive/current PNG files and restore points.

    Returns the path that should be offered as the channel's latest
    artifact, or None if no image was written.
    """

    def __init__(self, config: SocnetConfig):
        self.config = config
        self.output_dir = Path(config.output.output_dir)

    def footer(self) -> List[str]:
        mon = self.config.monitor
        return [
            f"Generated by {mon.nick} on {mon.server} using {ENGINE_VERSION}",
            LEGEND,
            f"This frame was drawn at {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        ]

    def __call__(self, graph: "Graph", snapshot: RenderSnapshot) -> Optional[Path]:
        out = self.config.output
        stripped = strip_channel(graph.label)
        directory = channel_dir(self.output_dir, graph.label)
        directory.mkdir(parents=True, exist_ok=True)

        archive = directory / f"{stripped}-{snapshot.frame:08d}.png"
        current = directory / f"{stripped}-current.png"
        latest: Optional[Path] = None

        if out.create_archive:
            render_frame(snapshot, archive, footer=self.footer())
            latest = archive

        if out.create_current:
            render_frame(snapshot, current, footer=self.footer())
            if latest is None:
                latest = current

        if out.create_restore_points:
            write_restore_point(graph.export_state(), restore_path(self.output_dir, graph.label))

        return latest

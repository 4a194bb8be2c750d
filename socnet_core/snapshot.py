"""
SocNet Snapshots - Render snapshots and versioned restore points
================================================================

Two extracts of a channel graph leave the engine:

    RenderSnapshot  visible nodes, edges and bounds of one frame; handed to
                    every frame sink (renderer, archivers, ...)
    GraphState      the full graph (nodes, edges, positions, weights and
                    heuristic state) written as a restore point

Restore point layout (JSON, keys in this order):

    {
      "version": "SocNet 0.4.0",
      "label": "#channel",
      "nodes": [{"name": ..., "weight": ..., "x": ..., "y": ...}, ...],
      "edges": [{"source": name, "target": name, "weight": ...}, ...],
      "heuristics": {"adjacency": {...}, "binary_sequence": {...}}
    }

A restore point whose version differs from ENGINE_VERSION is never decoded.
"""

import json
import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from socnet_core.config import RenderConfig
from socnet_core.layout import Bounds
from socnet_core.version import ENGINE_VERSION

logger = logging.getLogger(__name__)

RESTORE_SUFFIX = "-restore.json"

# Characters that would split a channel name into several path components
_PATH_SEPARATORS = re.compile(r"[\\/\x00]")


# =============================================================================
# Channel Paths
# =============================================================================

def strip_channel(channel: str) -> str:
    """
    Lower-case a channel name and drop its prefix character ('#', '&', ...).

    The result is always a single path component inside the output
    directory: separators become '_', and names made only of dots
    (or nothing) have their dots replaced as well.
    """
    stripped = _PATH_SEPARATORS.sub("_", channel.lower()[1:])
    if not stripped.strip("."):
        stripped = "_" * max(len(stripped), 1)
    return stripped


def channel_dir(output_dir: Union[str, Path], channel: str) -> Path:
    """Directory holding the frames and restore point of a channel."""
    return Path(output_dir) / strip_channel(channel)


def restore_path(output_dir: Union[str, Path], channel: str) -> Path:
    """Location of the restore point of a channel."""
    stripped = strip_channel(channel)
    return Path(output_dir) / stripped / f"{stripped}{RESTORE_SUFFIX}"


# =============================================================================
# Render Snapshot
# =============================================================================

@dataclass
class NodeView:
    """A visible node as drawn."""
    name: str
    x: float
    y: float
    weight: float


@dataclass
class EdgeView:
    """An edge as drawn, by endpoint names."""
    source: str
    target: str
    weight: float


@dataclass
class RenderSnapshot:
    """
    Everything a renderer needs to draw one frame.

    raw_bounds are the node extents (after minimum-size expansion); bounds
    are the same extents stretched to the render aspect ratio.
    """
    label: str
    frame: int
    nodes: List[NodeView]
    edges: List[EdgeView]
    raw_bounds: Bounds
    bounds: Bounds
    render: RenderConfig
    caption: str = ""

    def visible_edges(self) -> List[EdgeView]:
        """Edges at or above the display threshold."""
        return [e for e in self.edges if e.weight >= self.render.edge_threshold]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# Persisted Graph State
# =============================================================================

@dataclass
class NodeRecord:
    name: str
    weight: float
    x: float
    y: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeRecord":
        return cls(
            name=str(data["name"]),
            weight=float(data["weight"]),
            x=float(data["x"]),
            y=float(data["y"]),
        )


@dataclass
class EdgeRecord:
    source: str
    target: str
    weight: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EdgeRecord":
        return cls(
            source=str(data["source"]),
            target=str(data["target"]),
            weight=float(data["weight"]),
        )


@dataclass
class GraphState:
    """Serializable state of a channel graph."""
    label: str
    nodes: List[NodeRecord] = field(default_factory=list)
    edges: List[EdgeRecord] = field(default_factory=list)
    heuristics: Dict[str, Any] = field(default_factory=dict)
    version: str = ENGINE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "label": self.label,
            "nodes": [asdict(n) for n in self.nodes],
            "edges": [asdict(e) for e in self.edges],
            "heuristics": self.heuristics,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GraphState":
        heuristics = data.get("heuristics") or {}
        if not isinstance(heuristics, dict):
            raise ValueError("heuristics must be a mapping")
        return cls(
            version=str(data["version"]),
            label=str(data["label"]),
            nodes=[NodeRecord.from_dict(n) for n in data["nodes"]],
            edges=[EdgeRecord.from_dict(e) for e in data["edges"]],
            heuristics=heuristics,
        )


def encode_graph_state(state: GraphState) -> str:
    """Serialize a GraphState to JSON text."""
    return json.dumps(state.to_dict(), ensure_ascii=False, indent=2)


def decode_graph_state(payload: Union[str, bytes]) -> Optional[GraphState]:
    """
    Decode a restore point.

    Returns:
        The GraphState, or None when the payload is not valid JSON, is not a
        restore point, or was written by a different engine version
    """
    try:
        data = json.loads(payload)
    except (ValueError, TypeError) as e:
        logger.debug(f"Restore point is not valid JSON: {e}")
        return None

    if not isinstance(data, dict):
        logger.debug("Restore point is not a JSON object")
        return None

    version = data.get("version")
    if version != ENGINE_VERSION:
        logger.info(f"Discarding restore point for version {version!r} (running {ENGINE_VERSION!r})")
        return None

    try:
        return GraphState.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        logger.debug(f"Restore point is malformed: {e}")
        return None


def write_restore_point(state: GraphState, path: Union[str, Path]) -> Path:
    """
    Write a restore point, replacing any previous one atomically.

    Raises:
        OSError: if the file cannot be written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(encode_graph_state(state), encoding="utf-8")
    tmp_path.replace(path)
    logger.debug(f"Saved restore point: {path} ({len(state.nodes)} nodes, {len(state.edges)} edges)")
    return path


def read_restore_point(path: Union[str, Path]) -> Optional[GraphState]:
    """Read a restore point; None if missing, unreadable or foreign."""
    path = Path(path)
    try:
        payload = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"No restore point at {path}: {e}")
        return None
    return decode_graph_state(payload)

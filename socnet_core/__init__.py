"""
SocNet Core - Social network inference for chat channels

Turns (channel, nick, message) events into per-channel weighted graphs of
who talks to whom, and lays them out with a spring embedder for drawing.
"""

from .version import __version__, ENGINE_VERSION

from .config import (
    SocnetConfig,
    MonitorConfig,
    GraphConfig,
    HeuristicsConfig,
    LayoutConfig,
    RenderConfig,
    OutputConfig,
    LoggingConfig,
    load_config,
    save_config,
)
from .entities import Node, Edge, name_key, edge_key
from .heuristics import (
    HeuristicKind,
    HeuristicPipeline,
    DirectAddressing,
    IndirectAddressing,
    Adjacency,
    BinarySequence,
    MIN_SEQ_SIZE,
)
from .layout import Bounds, SpringEmbedder, calc_bounds
from .snapshot import (
    RenderSnapshot,
    NodeView,
    EdgeView,
    GraphState,
    encode_graph_state,
    decode_graph_state,
    read_restore_point,
    write_restore_point,
    restore_path,
)
from .graph import Graph, FrameSink, load_graph
from .monitor import ChannelMonitor
from .text import remove_formatting_and_colors, tokenize

__all__ = [
    "__version__",
    "ENGINE_VERSION",
    # Configuration
    "SocnetConfig",
    "MonitorConfig",
    "GraphConfig",
    "HeuristicsConfig",
    "LayoutConfig",
    "RenderConfig",
    "OutputConfig",
    "LoggingConfig",
    "load_config",
    "save_config",
    # Entities
    "Node",
    "Edge",
    "name_key",
    "edge_key",
    # Heuristics
    "HeuristicKind",
    "HeuristicPipeline",
    "DirectAddressing",
    "IndirectAddressing",
    "Adjacency",
    "BinarySequence",
    "MIN_SEQ_SIZE",
    # Layout
    "Bounds",
    "SpringEmbedder",
    "calc_bounds",
    # Snapshots
    "RenderSnapshot",
    "NodeView",
    "EdgeView",
    "GraphState",
    "encode_graph_state",
    "decode_graph_state",
    "read_restore_point",
    "write_restore_point",
    "restore_path",
    # Graph
    "Graph",
    "FrameSink",
    "load_graph",
    "ChannelMonitor",
    # Text
    "remove_formatting_and_colors",
    "tokenize",
]

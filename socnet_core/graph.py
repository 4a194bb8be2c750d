"""
SocNet Graph Store
==================

One Graph per channel. The Graph owns the channel's nodes and edges, its
inference heuristics, and the frame cycle run after every change:

    add_edge -> layout -> bounds -> snapshot to sinks -> decay

Storage:
    _nodes      handle -> Node
    _index      name key (lower-cased name) -> handle
    _edges      (low handle, high handle) -> Edge

Handles never change, so renaming a node (merge_node) only moves one entry
of _index; nodes and edges stay where they are.

Every public method takes the graph's re-entrant lock, so a Graph may be
shared between threads while its operations stay serialized.
"""

import logging
import math
import threading
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple, Union

import numpy as np

from socnet_core.config import SocnetConfig
from socnet_core.entities import Edge, Node, edge_key, name_key
from socnet_core.heuristics import HeuristicKind, HeuristicPipeline
from socnet_core.layout import Bounds, SpringEmbedder, calc_bounds
from socnet_core.snapshot import (
    EdgeRecord,
    EdgeView,
    GraphState,
    NodeRecord,
    NodeView,
    RenderSnapshot,
    read_restore_point,
)

logger = logging.getLogger(__name__)

# A sink receives the graph and the snapshot of the frame just laid out.
# It may return the path of an artifact it produced.
FrameSink = Callable[["Graph", RenderSnapshot], Optional[Path]]


class Graph:
    """
    Weighted social network of one channel.

    Args:
        label: Channel name, used in captions and output paths
        config: Engine configuration (defaults if None)
        sinks: Callables receiving each frame's RenderSnapshot
    """

    def __init__(
        self,
        label: str,
        config: Optional[SocnetConfig] = None,
        sinks: Optional[List[FrameSink]] = None,
    ):
        self.label = label
        self.config = config or SocnetConfig()
        self.sinks: List[FrameSink] = list(sinks or [])

        self.caption = ""
        self.frame_count = 0
        self.last_file: Optional[Path] = None

        self._nodes: Dict[int, Node] = {}
        self._index: Dict[str, int] = {}
        self._edges: Dict[Tuple[int, int], Edge] = {}
        self._next_handle = 0

        self.raw_bounds = Bounds()
        self.bounds = Bounds()

        self._rng = np.random.default_rng(self.config.layout.seed)
        self._embedder = SpringEmbedder(self.config.layout, self._rng)
        self._lock = threading.RLock()

        # Processed in this order
        self.heuristics = HeuristicPipeline.from_config(self.config)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def contains(self, name: str) -> bool:
        """True if a node with this name exists (visible or not)."""
        with self._lock:
            return name_key(name) in self._index

    def get_node(self, name: str) -> Optional[Node]:
        with self._lock:
            handle = self._index.get(name_key(name))
            return self._nodes.get(handle) if handle is not None else None

    def get_edge(self, a: str, b: str) -> Optional[Edge]:
        """The edge between two names, in either order."""
        with self._lock:
            ha = self._index.get(name_key(a))
            hb = self._index.get(name_key(b))
            if ha is None or hb is None or ha == hb:
                return None
            return self._edges.get(edge_key(ha, hb))

    def nodes(self) -> List[Node]:
        with self._lock:
            return list(self._nodes.values())

    def edges(self) -> List[Edge]:
        with self._lock:
            return list(self._edges.values())

    def edge_endpoints(self, edge: Edge) -> Tuple[Node, Node]:
        with self._lock:
            return self._nodes[edge.source], self._nodes[edge.target]

    def connected_nodes(self) -> Set[Node]:
        """Nodes with at least one edge: the ones that get drawn."""
        with self._lock:
            handles = set()
            for edge in self._edges.values():
                handles.add(edge.source)
                handles.add(edge.target)
            return {self._nodes[h] for h in handles}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes())

    def __str__(self) -> str:
        return f"Graph: {len(self._nodes)} nodes and {len(self._edges)} edges."

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add_node(self, name: str) -> Node:
        """
        Return the node for name, creating it if needed, and count one mention.
        """
        with self._lock:
            handle = self._index.get(name_key(name))
            if handle is None:
                node = self._create_node(name)
            else:
                node = self._nodes[handle]
            node.weight += 1
            return node

    def _create_node(self, name: str) -> Node:
        handle = self._next_handle
        self._next_handle += 1
        k = self.config.layout.k
        x, y = self._rng.random(2) * k
        node = Node(handle=handle, name=name, x=float(x), y=float(y))
        self._nodes[handle] = node
        self._index[node.key] = handle
        return node

    def add_edge(self, source: str, target: str, weight: float) -> bool:
        """
        Reinforce the relationship between two names.

        Self-edges and non-positive or non-finite weights are rejected
        without touching the graph. On success a new frame is produced.

        Returns:
            True if the graph changed
        """
        if name_key(source) == name_key(target) or not math.isfinite(weight) or weight <= 0:
            return False

        with self._lock:
            a = self.add_node(source)
            b = self.add_node(target)

            key = edge_key(a.handle, b.handle)
            edge = self._edges.get(key)
            if edge is None:
                edge = Edge(a.handle, b.handle)
                self._edges[key] = edge
            edge.weight += weight

            self.make_next_frame()
            return True

    def remove_node(self, name: str) -> bool:
        """
        Remove a node and every edge touching it.

        Returns:
            True if the node existed
        """
        with self._lock:
            handle = self._index.pop(name_key(name), None)
            if handle is None:
                return False
            del self._nodes[handle]
            for key in [k for k, e in self._edges.items() if e.touches(handle)]:
                del self._edges[key]
            return True

    def remove_and_redraw(self, name: str) -> bool:
        """
        Remove a node and produce a new frame without releasing the lock.

        Returns:
            True if the node existed (no frame is produced otherwise)
        """
        with self._lock:
            if not self.remove_node(name):
                return False
            self.make_next_frame()
            return True

    def merge_node(self, old_name: str, new_name: str) -> None:
        """
        Rename old_name to new_name, keeping its weight, position and edges.

        Any existing node called new_name is removed first (with its edges),
        unless the two names differ only in case. Nothing happens if
        old_name is unknown.
        """
        with self._lock:
            handle = self._index.get(name_key(old_name))
            if handle is None:
                return

            if name_key(old_name) != name_key(new_name):
                self.remove_node(new_name)

            node = self._nodes[handle]
            del self._index[node.key]
            node.name = new_name
            self._index[node.key] = handle

            if any(e.touches(handle) for e in self._edges.values()):
                # The renamed node is visible, so it needs redrawing
                self.make_next_frame()

    def decay(self, amount: float) -> None:
        """
        Age every relationship by amount.

        Edges that fall to zero or below are removed; node weights stop at
        zero and nodes are never removed here.

        Raises:
            ValueError: if amount is not a finite number
        """
        if not math.isfinite(amount):
            raise ValueError(f"Decay amount must be finite, got {amount!r}")
        with self._lock:
            for key in list(self._edges):
                edge = self._edges[key]
                edge.weight -= amount
                if edge.weight <= 0:
                    del self._edges[key]

            for node in self._nodes.values():
                node.weight = max(0.0, node.weight - amount)

    # -------------------------------------------------------------------------
    # Inference
    # -------------------------------------------------------------------------

    def infer(self, nick: str, message: str) -> List[HeuristicKind]:
        """
        Pass a (formatting-free) message through the inference heuristics.

        Returns:
            The heuristics that reinforced an edge
        """
        with self._lock:
            return self.heuristics.infer(self, nick, message)

    # -------------------------------------------------------------------------
    # Layout and Frames
    # -------------------------------------------------------------------------

    def _layout_edges(self) -> List[Tuple[Node, Node, float]]:
        return [(self._nodes[e.source], self._nodes[e.target], e.weight) for e in self._edges.values()]

    def do_layout(self, iterations: Optional[int] = None) -> None:
        """Run the spring embedder over the visible nodes."""
        if iterations is None:
            iterations = self.config.layout.iterations
        with self._lock:
            visible = sorted(self.connected_nodes(), key=lambda n: n.handle)
            self._embedder.run(visible, self._layout_edges(), iterations)

    def calc_bounds(self, width: Optional[int] = None, height: Optional[int] = None) -> Bounds:
        """
        Recompute the drawing bounds for a width x height frame.

        Returns:
            The aspect-fitted bounds (also kept as self.bounds)
        """
        width = width or self.config.render.width
        height = height or self.config.render.height
        with self._lock:
            self.raw_bounds, self.bounds = calc_bounds(
                list(self.connected_nodes()),
                [e.weight for e in self._edges.values()],
                width,
                height,
                self.config.layout.min_diagram_size,
            )
            return self.bounds

    def snapshot(self) -> RenderSnapshot:
        """Extract the render snapshot of the current layout and bounds."""
        with self._lock:
            nodes = [
                NodeView(name=n.name, x=n.x, y=n.y, weight=n.weight)
                for n in sorted(self.connected_nodes(), key=lambda n: n.handle)
            ]
            edges = [
                EdgeView(
                    source=self._nodes[e.source].name,
                    target=self._nodes[e.target].name,
                    weight=e.weight,
                )
                for e in self._edges.values()
            ]
            return RenderSnapshot(
                label=self.label,
                frame=self.frame_count,
                nodes=nodes,
                edges=edges,
                raw_bounds=self.raw_bounds,
                bounds=self.bounds,
                render=self.config.render,
                caption=self.caption,
            )

    def make_next_frame(self) -> RenderSnapshot:
        """
        Lay out the graph, hand a snapshot to every sink, then apply decay.

        A failing sink is logged and skipped; decay always runs.
        """
        with self._lock:
            self.frame_count += 1
            self.do_layout(self.config.layout.iterations)
            self.calc_bounds(self.config.render.width, self.config.render.height)
            snapshot = self.snapshot()

            for sink in self.sinks:
                try:
                    produced = sink(self, snapshot)
                    if produced is not None:
                        self.last_file = produced
                except Exception:
                    logger.exception(f"Frame {self.frame_count} of {self.label} could not be written")

            logger.debug(f"{self.label} frame {self.frame_count}: {self}")

            # Apply the temporal decay after each frame is created
            self.decay(self.config.graph.temporal_decay_amount)
            return snapshot

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def export_state(self) -> GraphState:
        """Full graph state for a restore point."""
        with self._lock:
            ordered = sorted(self._nodes.values(), key=lambda n: n.handle)
            return GraphState(
                label=self.label,
                nodes=[NodeRecord(n.name, n.weight, n.x, n.y) for n in ordered],
                edges=[
                    EdgeRecord(self._nodes[e.source].name, self._nodes[e.target].name, e.weight)
                    for e in self._edges.values()
                ],
                heuristics=self.heuristics.state(),
            )

    @classmethod
    def from_state(
        cls,
        state: GraphState,
        config: Optional[SocnetConfig] = None,
        sinks: Optional[List[FrameSink]] = None,
    ) -> "Graph":
        """
        Rebuild a graph from a restore point.

        Raises:
            ValueError: if the state is inconsistent (duplicate nodes, edges
                to unknown nodes, self-edges, negative, non-positive or
                non-finite weights, non-finite positions)
        """
        graph = cls(state.label, config=config, sinks=sinks)

        for record in state.nodes:
            if graph.contains(record.name):
                raise ValueError(f"Duplicate node {record.name!r}")
            if not math.isfinite(record.weight) or record.weight < 0:
                raise ValueError(f"Invalid weight for node {record.name!r}")
            if not (math.isfinite(record.x) and math.isfinite(record.y)):
                raise ValueError(f"Non-finite position for node {record.name!r}")
            node = graph._create_node(record.name)
            node.weight = record.weight
            node.x = record.x
            node.y = record.y

        for record in state.edges:
            a = graph.get_node(record.source)
            b = graph.get_node(record.target)
            if a is None or b is None:
                raise ValueError(f"Edge {record.source!r} - {record.target!r} refers to an unknown node")
            if a.handle == b.handle:
                raise ValueError(f"Self-edge on {record.source!r}")
            if not math.isfinite(record.weight) or record.weight <= 0:
                raise ValueError(f"Invalid edge weight {record.source!r} - {record.target!r}")
            key = edge_key(a.handle, b.handle)
            if key in graph._edges:
                raise ValueError(f"Duplicate edge {record.source!r} - {record.target!r}")
            graph._edges[key] = Edge(a.handle, b.handle, record.weight)

        graph.heuristics.restore(state.heuristics)
        return graph


def load_graph(
    path: Union[str, Path],
    config: Optional[SocnetConfig] = None,
    sinks: Optional[List[FrameSink]] = None,
) -> Optional[Graph]:
    """
    Restore a graph from a restore point file.

    Returns:
        The graph, or None if the file is missing, unreadable, from another
        engine version, or inconsistent
    """
    state = read_restore_point(path)
    if state is None:
        return None
    try:
        graph = Graph.from_state(state, config=config, sinks=sinks)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Ignoring inconsistent restore point {path}: {e}")
        return None
    logger.info(f"Restored {graph.label} from {path}: {graph}")
    return graph

"""
SocNet Layout Engine - Spring embedder and drawing bounds
=========================================================

Force-directed placement of the visible nodes of a channel graph:

    - every pair of nodes closer than the cutoff repels with k^2 / d
    - every edge attracts with (d^2 - k^2) / k, scaled up for heavy edges
    - each node then moves by c * force, clamped per axis

Coincident nodes (squared distance below NEAR_ZERO) are separated by a
small random displacement so the force never divides by zero.

Pair and edge forces are computed with numpy; node positions are read from
and written back to the Node objects around the loop.
"""

import logging
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from socnet_core.config import LayoutConfig
from socnet_core.entities import Node

logger = logging.getLogger(__name__)

NEAR_ZERO = 0.01


# =============================================================================
# Bounds
# =============================================================================

@dataclass
class Bounds:
    """Drawing extents of a graph plus its heaviest edge weight."""
    min_x: float = 0.0
    max_x: float = 0.0
    min_y: float = 0.0
    max_y: float = 0.0
    max_weight: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def aspect(self) -> float:
        return self.width / self.height

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bounds":
        return cls(**data)


def _expand(lo: float, hi: float, min_size: float) -> Tuple[float, float]:
    if hi - lo < min_size:
        mid = (hi + lo) / 2
        return mid - min_size / 2, mid + min_size / 2
    return lo, hi


def calc_bounds(
    nodes: Sequence[Node],
    edge_weights: Sequence[float],
    width: int,
    height: int,
    min_size: float,
) -> Tuple[Bounds, Bounds]:
    """
    Work out the drawing boundaries for a width x height frame.

    Args:
        nodes: Visible nodes
        edge_weights: Weights of all edges
        width, height: Target frame size
        min_size: Smallest span allowed on either axis

    Returns:
        (raw, fitted): raw extents after the minimum-size expansion, and the
        same extents stretched so that fitted.aspect == width / height
    """
    if nodes:
        xs = [n.x for n in nodes]
        ys = [n.y for n in nodes]
        min_x, max_x = min(xs), max(xs)
        min_y, max_y = min(ys), max(ys)
    else:
        min_x = max_x = min_y = max_y = 0.0

    min_x, max_x = _expand(min_x, max_x, min_size)
    min_y, max_y = _expand(min_y, max_y, min_size)

    max_weight = max(edge_weights, default=0.0)
    raw = Bounds(min_x, max_x, min_y, max_y, max_weight)

    xy_ratio = ((max_x - min_x) / (max_y - min_y)) / (width / height)
    if xy_ratio > 1:
        # Wider than the frame: grow vertically
        dy = max_y - min_y
        dy = dy * xy_ratio - dy
        min_y -= dy / 2
        max_y += dy / 2
    elif xy_ratio < 1:
        # Taller than the frame: grow horizontally
        dx = max_x - min_x
        dx = dx / xy_ratio - dx
        min_x -= dx / 2
        max_x += dx / 2

    return raw, Bounds(min_x, max_x, min_y, max_y, max_weight)


# =============================================================================
# Spring Embedder
# =============================================================================

class SpringEmbedder:
    """
    Iterative force-directed relaxation.

    The embedder is stateless apart from its random generator, which is
    only consulted to separate coincident nodes.
    """

    def __init__(self, config: LayoutConfig, rng: Optional[np.random.Generator] = None):
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)

    def _separate_coincident(self, delta: np.ndarray) -> np.ndarray:
        """Replace near-zero displacements with a small random positive one."""
        dist_sq = np.einsum("ij,ij->i", delta, delta)
        near = dist_sq < NEAR_ZERO
        count = int(near.sum())
        if count:
            delta[near] = self.rng.random((count, 2)) / 10 + 0.1
        return delta

    def run(
        self,
        nodes: List[Node],
        edges: List[Tuple[Node, Node, float]],
        iterations: int,
    ) -> None:
        """
        Move nodes in place.

        Args:
            nodes: Visible nodes; every edge endpoint must be among them
            edges: (node_a, node_b, weight) triples
            iterations: Number of relaxation steps
        """
        if iterations <= 0 or not nodes:
            return

        k = self.config.k
        c = self.config.c
        cutoff = self.config.max_repulsive_force_distance
        max_move = self.config.max_node_movement

        index = {node.handle: i for i, node in enumerate(nodes)}
        pos = np.array([[n.x, n.y] for n in nodes], dtype=float)

        pair_a, pair_b = np.triu_indices(len(nodes), k=1)

        if edges:
            edge_a = np.array([index[a.handle] for a, _, _ in edges], dtype=int)
            edge_b = np.array([index[b.handle] for _, b, _ in edges], dtype=int)
            weights = np.array([w for _, _, w in edges], dtype=float)
            # Make edges stronger if people know each other
            strength = np.log(np.maximum(weights, 1.0)) * 0.5 + 1.0
        else:
            edge_a = edge_b = np.empty(0, dtype=int)
            strength = np.empty(0, dtype=float)

        for _ in range(iterations):
            force = np.zeros_like(pos)

            # Node-node repulsion
            if len(pair_a):
                delta = self._separate_coincident(pos[pair_b] - pos[pair_a])
                dist = np.sqrt(np.einsum("ij,ij->i", delta, delta))
                close = dist < cutoff
                if close.any():
                    d = dist[close]
                    push = (k * k / d)[:, None] * delta[close] / d[:, None]
                    np.add.at(force, pair_b[close], push)
                    np.add.at(force, pair_a[close], -push)

            # Edge attraction
            if len(edge_a):
                delta = self._separate_coincident(pos[edge_b] - pos[edge_a])
                dist = np.sqrt(np.einsum("ij,ij->i", delta, delta))
                dist = np.minimum(dist, cutoff)
                pull = (dist * dist - k * k) / k * strength
                pull = pull[:, None] * delta / dist[:, None]
                np.add.at(force, edge_b, -pull)
                np.add.at(force, edge_a, pull)

            # Move, limiting movement to stop nodes flying into oblivion
            pos += np.clip(c * force, -max_move, max_move)

        for i, node in enumerate(nodes):
            node.x = float(pos[i, 0])
            node.y = float(pos[i, 1])
            node.fx = 0.0
            node.fy = 0.0

        if not np.isfinite(pos).all():
            logger.warning("Layout produced non-finite coordinates")


def separation(a: Node, b: Node) -> float:
    """Euclidean distance between two nodes."""
    return math.hypot(b.x - a.x, b.y - a.y)

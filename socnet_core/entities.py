"""
SocNet Entity Model - Nodes and Edges of a channel graph

Node identity is an integer handle assigned by the owning Graph when the
node is created. The display name is an ordinary mutable field; the Graph
keeps a separate name-key index, so a rename never relocates a node or its
edges. Two names that differ only in case share one name key.

Edges join two distinct handles and are keyed by the sorted handle pair.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


def name_key(name: str) -> str:
    """Case-insensitive lookup key for a display name."""
    return name.lower()


def edge_key(a: int, b: int) -> Tuple[int, int]:
    """Key of the unordered edge between two node handles."""
    if a == b:
        raise ValueError(f"Self-edges are not allowed (handle {a})")
    return (a, b) if a < b else (b, a)


# =============================================================================
# Node
# =============================================================================

@dataclass(eq=False)
class Node:
    """
    A participant in a channel.

    Attributes:
        handle: Stable identity within the owning Graph
        name: Display name (as last seen)
        weight: Activity counter, never negative
        x, y: Layout position
        fx, fy: Force accumulator. SpringEmbedder sums forces in a numpy
            array instead and only resets these to zero after a run, so
            they read 0 whenever a layout is not in progress.
    """
    handle: int
    name: str
    weight: float = 0.0
    x: float = 0.0
    y: float = 0.0
    fx: float = 0.0
    fy: float = 0.0

    @property
    def key(self) -> str:
        return name_key(self.name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.handle == other.handle

    def __hash__(self) -> int:
        return hash(self.handle)

    def __str__(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "weight": self.weight,
            "x": self.x,
            "y": self.y,
        }


# =============================================================================
# Edge
# =============================================================================

@dataclass(eq=False)
class Edge:
    """
    An undirected weighted relationship between two nodes.

    source/target are node handles; their order carries no meaning.
    """
    source: int
    target: int
    weight: float = 0.0

    def __post_init__(self):
        if self.source == self.target:
            raise ValueError(f"Self-edges are not allowed (handle {self.source})")

    @property
    def key(self) -> Tuple[int, int]:
        return edge_key(self.source, self.target)

    def touches(self, handle: int) -> bool:
        return handle == self.source or handle == self.target

    def other(self, handle: int) -> int:
        """Return the endpoint opposite to handle."""
        if handle == self.source:
            return self.target
        if handle == self.target:
            return self.source
        raise ValueError(f"Handle {handle} is not an endpoint of {self.key}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

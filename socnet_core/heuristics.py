"""
SocNet Inference Heuristics
===========================

Rules that look at one chat message and decide which relationship, if any,
it evidences. Each rule reinforces at most one edge per message through
Graph.add_edge, with a weight taken from configuration.

Processing order (fixed):
    1. DIRECT_ADDRESSING    "alice: hi"       -> speaker - alice
    2. INDIRECT_ADDRESSING  "ask alice later" -> speaker - alice (first known nick)
    3. ADJACENCY            consecutive lines -> speaker - previous speaker
    4. BINARY_SEQUENCE      only two speakers over the last 5 lines -> those two

Adjacency and binary sequence keep state between messages; one pipeline is
owned by each Graph so channels never share it.
"""

import logging
from collections import deque
from enum import Enum
from typing import TYPE_CHECKING, Any, Deque, Dict, List, Optional

from socnet_core.entities import name_key
from socnet_core.text import first_token, tokenize

if TYPE_CHECKING:  # pragma: no cover
    from socnet_core.config import SocnetConfig
    from socnet_core.graph import Graph

logger = logging.getLogger(__name__)

MIN_SEQ_SIZE = 5


class HeuristicKind(str, Enum):
    """Inference heuristic identities (also their configuration keys)."""
    DIRECT_ADDRESSING = "direct_addressing"
    INDIRECT_ADDRESSING = "indirect_addressing"
    ADJACENCY = "adjacency"
    BINARY_SEQUENCE = "binary_sequence"


# =============================================================================
# Heuristics
# =============================================================================

class DirectAddressing:
    """The first word of the message names someone already in the graph."""
    kind = HeuristicKind.DIRECT_ADDRESSING

    def __init__(self, weight: float):
        self.weight = weight

    def infer(self, graph: "Graph", nick: str, message: str) -> bool:
        target = first_token(message)
        if target and graph.contains(target):
            return graph.add_edge(nick, target, self.weight)
        return False


class IndirectAddressing:
    """The first word anywhere in the message that names someone in the graph."""
    kind = HeuristicKind.INDIRECT_ADDRESSING

    def __init__(self, weight: float):
        self.weight = weight

    def infer(self, graph: "Graph", nick: str, message: str) -> bool:
        for word in tokenize(message):
            if graph.contains(word):
                return graph.add_edge(nick, word, self.weight)
        return False


class Adjacency:
    """Each speaker is linked to whoever spoke just before them."""
    kind = HeuristicKind.ADJACENCY

    def __init__(self, weight: float, last_nick: Optional[str] = None):
        self.weight = weight
        self.last_nick = last_nick

    def infer(self, graph: "Graph", nick: str, message: str) -> bool:
        fired = False
        if self.last_nick is not None:
            fired = graph.add_edge(nick, self.last_nick, self.weight)
        self.last_nick = nick
        return fired

    def state(self) -> Dict[str, Any]:
        return {"last_nick": self.last_nick}

    def restore(self, state: Dict[str, Any]) -> None:
        last_nick = state.get("last_nick")
        self.last_nick = str(last_nick) if last_nick is not None else None


class BinarySequence:
    """
    Two people alone in the recent window are talking to each other.

    The window is cleared after it fires so overlapping windows do not
    award the same conversation twice.
    """
    kind = HeuristicKind.BINARY_SEQUENCE

    def __init__(self, weight: float, history: Optional[List[str]] = None):
        self.weight = weight
        self.history: Deque[str] = deque(history or [], maxlen=MIN_SEQ_SIZE)

    def infer(self, graph: "Graph", nick: str, message: str) -> bool:
        self.history.append(nick)
        if len(self.history) < MIN_SEQ_SIZE:
            return False

        unique: Dict[str, str] = {}
        for seen in self.history:
            unique.setdefault(name_key(seen), seen)
        if len(unique) != 2:
            return False

        nick1, nick2 = unique.values()
        self.history.clear()
        return graph.add_edge(nick1, nick2, self.weight)

    def state(self) -> Dict[str, Any]:
        return {"history": list(self.history)}

    def restore(self, state: Dict[str, Any]) -> None:
        history = state.get("history") or []
        if not isinstance(history, list):
            raise ValueError("binary sequence history must be a list")
        self.history = deque((str(n) for n in history), maxlen=MIN_SEQ_SIZE)


HEURISTIC_TYPES = {
    HeuristicKind.DIRECT_ADDRESSING: DirectAddressing,
    HeuristicKind.INDIRECT_ADDRESSING: IndirectAddressing,
    HeuristicKind.ADJACENCY: Adjacency,
    HeuristicKind.BINARY_SEQUENCE: BinarySequence,
}

PIPELINE_ORDER = (
    HeuristicKind.DIRECT_ADDRESSING,
    HeuristicKind.INDIRECT_ADDRESSING,
    HeuristicKind.ADJACENCY,
    HeuristicKind.BINARY_SEQUENCE,
)


# =============================================================================
# Pipeline
# =============================================================================

class HeuristicPipeline:
    """The ordered heuristics of one channel graph."""

    def __init__(self, weights: Dict[HeuristicKind, float]):
        self.heuristics = [HEURISTIC_TYPES[kind](weights.get(kind, 0.0)) for kind in PIPELINE_ORDER]

    @classmethod
    def from_config(cls, config: "SocnetConfig") -> "HeuristicPipeline":
        weights = {kind: config.heuristic_weight(kind.value) for kind in PIPELINE_ORDER}
        return cls(weights)

    def get(self, kind: HeuristicKind):
        for heuristic in self.heuristics:
            if heuristic.kind == kind:
                return heuristic
        raise KeyError(kind)

    def infer(self, graph: "Graph", nick: str, message: str) -> List[HeuristicKind]:
        """
        Pass one message through every heuristic in order.

        Returns:
            The kinds of the heuristics that reinforced an edge
        """
        fired = []
        for heuristic in self.heuristics:
            if heuristic.infer(graph, nick, message):
                logger.debug(f"{heuristic.kind.value} awarded {heuristic.weight} for <{nick}> in {graph.label}")
                fired.append(heuristic.kind)
        return fired

    def state(self) -> Dict[str, Any]:
        """Cross-message state of the stateful heuristics."""
        return {
            h.kind.value: h.state()
            for h in self.heuristics
            if hasattr(h, "state")
        }

    def restore(self, state: Dict[str, Any]) -> None:
        for heuristic in self.heuristics:
            if hasattr(heuristic, "restore") and heuristic.kind.value in state:
                heuristic.restore(state[heuristic.kind.value])

"""
SocNet Channel Monitor
======================

Bridges a chat client to the per-channel graphs. A client library calls
the on_* handlers from its own event callbacks; the monitor applies the
ignore list, strips formatting, creates (or restores) channel graphs on
first sight, and answers password-gated administrative commands.

Commands (private message, prefixed by the password):
    stats               one line per channel graph
    ignore <nick>       ignore a nick and remove it from every graph
    remove <nick>       same as ignore
    draw <#channel>     report the latest frame of a channel
    join <#channel>     remember a channel to (re)join
    part <#channel>     forget a channel
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from socnet_core.config import SocnetConfig
from socnet_core.graph import FrameSink, Graph, load_graph
from socnet_core.snapshot import restore_path
from socnet_core.text import remove_formatting_and_colors

logger = logging.getLogger(__name__)

CHANNEL_PREFIXES = "#&!+"


class ChannelMonitor:
    """
    Per-channel graph registry driven by chat events.

    Args:
        config: Engine configuration
        sink_factory: Builds the frame sinks of each new graph (none if None)
    """

    def __init__(
        self,
        config: Optional[SocnetConfig] = None,
        sink_factory: Optional[Callable[[SocnetConfig], List[FrameSink]]] = None,
    ):
        self.config = config or SocnetConfig()
        self.sink_factory = sink_factory
        self.ignore_set: Set[str] = {nick.lower() for nick in self.config.monitor.ignore}
        self.channels: Set[str] = set()
        self._graphs: Dict[str, Graph] = {}
        self._lock = threading.Lock()

    @property
    def nick(self) -> str:
        return self.config.monitor.nick

    def is_ignored(self, nick: str) -> bool:
        return nick.lower() in self.ignore_set

    # -------------------------------------------------------------------------
    # Graph Registry
    # -------------------------------------------------------------------------

    def get_graph(self, channel: str) -> Optional[Graph]:
        with self._lock:
            return self._graphs.get(channel.lower())

    def graphs(self) -> Dict[str, Graph]:
        with self._lock:
            return dict(self._graphs)

    def _sinks(self) -> List[FrameSink]:
        return self.sink_factory(self.config) if self.sink_factory else []

    def _open_graph(self, channel: str) -> Graph:
        """Return the graph of a channel, restoring or creating it if needed."""
        key = channel.lower()
        with self._lock:
            graph = self._graphs.get(key)
            if graph is not None:
                return graph

            if self.config.output.create_restore_points:
                path = restore_path(self.config.output.output_dir, key)
                graph = load_graph(path, config=self.config, sinks=self._sinks())
            if graph is None:
                graph = Graph(channel, config=self.config, sinks=self._sinks())
                logger.info(f"Tracking new channel {channel}")

            self._graphs[key] = graph
            return graph

    def add(self, channel: str, nick: str) -> Optional[Graph]:
        """Count one sighting of nick in channel."""
        if self.is_ignored(nick):
            return None
        graph = self._open_graph(channel)
        graph.add_node(nick)
        return graph

    # -------------------------------------------------------------------------
    # Chat Events
    # -------------------------------------------------------------------------

    def on_message(self, channel: str, sender: str, message: str) -> None:
        if self.is_ignored(sender):
            return
        graph = self.add(channel, sender)
        graph.infer(sender, remove_formatting_and_colors(message))

    def on_action(self, target: str, sender: str, action: str) -> None:
        """Channel actions ("/me waves") count as messages."""
        if target and target[0] in CHANNEL_PREFIXES:
            self.on_message(target, sender, action)

    def on_join(self, channel: str, sender: str) -> None:
        self.add(channel, sender)
        if sender.lower() == self.nick.lower():
            self.channels.add(channel.lower())

    def on_user_list(self, channel: str, nicks: Iterable[str]) -> None:
        for nick in nicks:
            self.add(channel, nick)

    def on_kick(self, channel: str, kicker: str, recipient: str) -> None:
        self.add(channel, kicker)
        self.add(channel, recipient)

    def on_mode(self, channel: str, source: str) -> None:
        self.add(channel, source)

    def on_nick_change(self, old_nick: str, new_nick: str) -> None:
        for graph in self.graphs().values():
            graph.merge_node(old_nick, new_nick)

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def remove_everywhere(self, nick: str) -> List[str]:
        """
        Ignore nick from now on and remove it from every graph.

        Graphs that lost the node are redrawn.

        Returns:
            Labels of the graphs that changed
        """
        self.ignore_set.add(nick.lower())
        changed = []
        for graph in self.graphs().values():
            if graph.remove_and_redraw(nick):
                changed.append(graph.label)
        return changed

    def last_artifact(self, channel: str) -> Optional[Path]:
        graph = self.get_graph(channel)
        return graph.last_file if graph is not None else None

    def handle_command(self, sender: str, message: str) -> List[str]:
        """
        Handle a private message.

        Returns:
            Reply lines for the sender (empty when the password is wrong)
        """
        password = self.config.monitor.password
        if not password or not message.startswith(password):
            return []

        message = message[len(password):].strip()
        lower = message.lower()
        logger.info(f"Command from {sender}: {lower.split(' ', 1)[0] if lower else '(empty)'}")

        if lower == "stats":
            return [f"{key}: {graph}" for key, graph in sorted(self.graphs().items())]

        if lower.startswith("ignore ") or lower.startswith("remove "):
            nick = message[7:].strip()
            changed = self.remove_everywhere(nick)
            return [f"Ignoring {nick}; removed from {len(changed)} channel(s)."]

        if lower == "draw" or lower.startswith("draw "):
            tokens = message[4:].split()
            if not tokens:
                return ['Example of correct use is "draw <#channel>"']
            channel = tokens[0]
            graph = self.get_graph(channel)
            if graph is None:
                return ["Sorry, I don't know much about that channel yet."]
            if graph.last_file is None:
                return [f"I have not generated any images for {channel} yet."]
            return [f"Latest frame for {channel}: {graph.last_file}"]

        if lower.startswith("join "):
            channel = message[5:].strip()
            self.channels.add(channel.lower())
            return [f"Joining {channel}."]

        if lower.startswith("part "):
            channel = message[5:].strip()
            self.channels.discard(channel.lower())
            return [f"Parting {channel}."]

        return ["Sorry, I don't support that command yet."]

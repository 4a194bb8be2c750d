"""
Tests for the Channel Monitor
"""

from pathlib import Path

import pytest

from socnet_core.graph import Graph
from socnet_core.monitor import ChannelMonitor
from socnet_core.snapshot import restore_path, write_restore_point
from socnet_core.text import BOLD, COLOR


@pytest.fixture
def monitor(quiet_config) -> ChannelMonitor:
    quiet_config.monitor.nick = "socnet"
    quiet_config.monitor.password = "s3cret"
    quiet_config.monitor.ignore = ["chanserv"]
    return ChannelMonitor(quiet_config)


def talk(monitor: ChannelMonitor, channel: str, lines):
    for nick, message in lines:
        monitor.on_message(channel, nick, message)


class TestEvents:
    """Tests for chat event handling."""

    def test_message_creates_graph_and_node(self, monitor):
        monitor.on_message("#Chat", "alice", "hello")

        graph = monitor.get_graph("#chat")
        assert graph is not None
        assert graph.label == "#Chat"
        assert graph.get_node("alice").weight == 1

    def test_direct_address_links_speakers(self, monitor):
        talk(monitor, "#chat", [("bob", "morning"), ("alice", "bob: hi there")])

        edge = monitor.get_graph("#chat").get_edge("alice", "bob")
        assert edge is not None
        assert edge.weight == pytest.approx(1.3)

    def test_formatting_removed_before_inference(self, monitor):
        talk(monitor, "#chat", [
            ("bob", "morning"),
            ("alice", f"{BOLD}bob{BOLD}: {COLOR}4,1hello"),
        ])

        assert monitor.get_graph("#chat").get_edge("alice", "bob") is not None

    def test_ignored_nick_not_recorded(self, monitor):
        talk(monitor, "#chat", [("bob", "hi"), ("ChanServ", "bob: registered")])

        graph = monitor.get_graph("#chat")
        assert not graph.contains("chanserv")
        assert graph.edges() == []

    def test_channels_kept_apart(self, monitor):
        talk(monitor, "#one", [("bob", "hi"), ("alice", "bob: yo")])
        talk(monitor, "#two", [("carol", "hi")])

        assert monitor.get_graph("#two").get_edge("alice", "bob") is None
        assert not monitor.get_graph("#two").contains("alice")
        assert set(monitor.graphs()) == {"#one", "#two"}

    def test_action_in_channel(self, monitor):
        monitor.on_message("#chat", "bob", "hi")
        monitor.on_action("#chat", "alice", "waves at bob")

        assert monitor.get_graph("#chat").get_edge("alice", "bob") is not None

    def test_private_action_ignored(self, monitor):
        monitor.on_action("socnet", "alice", "waves")

        assert monitor.graphs() == {}

    def test_join_user_list_kick_mode(self, monitor):
        monitor.on_join("#chat", "alice")
        monitor.on_user_list("#chat", ["bob", "carol", "chanserv"])
        monitor.on_kick("#chat", "op", "bob")
        monitor.on_mode("#chat", "op")

        graph = monitor.get_graph("#chat")
        assert {n.name for n in graph.nodes()} == {"alice", "bob", "carol", "op"}
        assert graph.get_node("op").weight == 2
        assert graph.get_node("bob").weight == 2
        assert graph.edges() == []

    def test_own_join_remembers_channel(self, monitor):
        monitor.on_join("#Chat", "SocNet")

        assert "#chat" in monitor.channels

    def test_nick_change_in_every_graph(self, monitor):
        talk(monitor, "#one", [("bob", "hi"), ("alice", "bob: yo")])
        talk(monitor, "#two", [("alice", "hi")])

        monitor.on_nick_change("alice", "alicia")

        one, two = monitor.get_graph("#one"), monitor.get_graph("#two")
        assert one.get_edge("alicia", "bob") is not None
        assert not one.contains("alice")
        assert two.contains("alicia")


class TestCommands:
    """Tests for password-gated administration."""

    def test_wrong_password(self, monitor):
        assert monitor.handle_command("mallory", "password stats") == []
        assert monitor.handle_command("mallory", "stats") == []

    def test_stats(self, monitor):
        talk(monitor, "#chat", [("bob", "hi"), ("alice", "bob: yo")])

        replies = monitor.handle_command("admin", "s3cret stats")

        assert replies == ["#chat: Graph: 2 nodes and 1 edges."]

    @pytest.mark.parametrize("verb", ["ignore", "remove", "IGNORE"])
    def test_ignore_removes_everywhere(self, monitor, verb):
        talk(monitor, "#one", [("bob", "hi"), ("alice", "bob: yo")])
        talk(monitor, "#two", [("bob", "hi")])
        talk(monitor, "#three", [("carol", "hi")])

        replies = monitor.handle_command("admin", f"s3cret {verb} Bob")

        assert replies == ["Ignoring Bob; removed from 2 channel(s)."]
        assert not monitor.get_graph("#one").contains("bob")
        assert not monitor.get_graph("#two").contains("bob")
        assert monitor.is_ignored("BOB")

        monitor.on_message("#one", "bob", "I'm back")
        assert not monitor.get_graph("#one").contains("bob")

    def test_remove_redraws_changed_graphs(self, monitor):
        talk(monitor, "#one", [("bob", "hi"), ("alice", "bob: yo")])
        graph = monitor.get_graph("#one")
        frames = graph.frame_count

        monitor.remove_everywhere("bob")

        assert graph.frame_count == frames + 1

    def test_draw_usage(self, monitor):
        assert monitor.handle_command("admin", "s3cret draw") == ['Example of correct use is "draw <#channel>"']

    def test_draw_unknown_channel(self, monitor):
        assert monitor.handle_command("admin", "s3cret draw #nowhere") == [
            "Sorry, I don't know much about that channel yet."
        ]

    def test_draw_without_frames(self, monitor):
        monitor.on_message("#chat", "alice", "hi")

        assert monitor.handle_command("admin", "s3cret draw #chat") == [
            "I have not generated any images for #chat yet."
        ]

    def test_draw_latest_frame(self, monitor):
        monitor.sink_factory = lambda cfg: [lambda g, snap: Path(f"/frames/{snap.frame}.png")]
        talk(monitor, "#chat", [("bob", "hi"), ("alice", "bob: yo")])

        replies = monitor.handle_command("admin", "s3cret draw #CHAT")

        assert replies == [f"Latest frame for #CHAT: {Path('/frames/2.png')}"]
        assert monitor.last_artifact("#chat") == Path("/frames/2.png")

    def test_drawing_is_not_a_command(self, monitor):
        assert monitor.handle_command("admin", "s3cret drawing") == ["Sorry, I don't support that command yet."]

    def test_join_and_part(self, monitor):
        assert monitor.handle_command("admin", "s3cret join #New") == ["Joining #New."]
        assert "#new" in monitor.channels

        assert monitor.handle_command("admin", "s3cret part #new") == ["Parting #new."]
        assert "#new" not in monitor.channels

    def test_unknown_command(self, monitor):
        assert monitor.handle_command("admin", "s3cret dance") == ["Sorry, I don't support that command yet."]


class TestRestore:
    """Tests for picking up graphs from restore points."""

    def test_graph_restored_on_first_sight(self, monitor, temp_dir):
        monitor.config.output.create_restore_points = True
        old = Graph("#chat", config=monitor.config)
        old.add_edge("alice", "bob", 3.0)
        write_restore_point(old.export_state(), restore_path(monitor.config.output.output_dir, "#chat"))

        monitor.on_message("#Chat", "carol", "hello")

        graph = monitor.get_graph("#chat")
        assert graph.get_edge("alice", "bob").weight == pytest.approx(3.0)
        assert graph.contains("carol")

    def test_restore_points_disabled(self, monitor):
        old = Graph("#chat", config=monitor.config)
        old.add_edge("alice", "bob", 3.0)
        write_restore_point(old.export_state(), restore_path(monitor.config.output.output_dir, "#chat"))

        monitor.on_message("#chat", "carol", "hello")

        assert not monitor.get_graph("#chat").contains("alice")

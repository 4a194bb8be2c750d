"""
Tests for the Command Line Interface
"""

import pytest
import yaml

from socnet_core.cli import main, read_log

CHAT_LOG = """\
# channel\tnick\tmessage
#chat\tbob\tmorning all
#chat\talice\tbob: morning!
#chat\tbob\talice: how was the trip?
#chat\talice\tlong, but fine

this line is malformed
#other\tcarol\tanyone here?
"""


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "socnet.yaml"
    path.write_text(yaml.safe_dump({
        "layout": {"iterations": 10, "seed": 5},
        "output": {"output_dir": str(temp_dir / "images")},
    }), encoding="utf-8")
    return path


@pytest.fixture
def chat_log(temp_dir):
    path = temp_dir / "chat.log"
    path.write_text(CHAT_LOG, encoding="utf-8")
    return path


class TestReadLog:
    """Tests for the replay log reader."""

    def test_skips_comments_blanks_and_malformed(self, chat_log):
        events = list(read_log(chat_log))

        assert len(events) == 5
        assert events[0] == ("#chat", "bob", "morning all")
        assert events[-1] == ("#other", "carol", "anyone here?")


class TestCommands:
    """Tests for the socnet subcommands."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0

        assert "SocNet v" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])

        assert exc.value.code == 0

    def test_replay_writes_frames(self, config_file, chat_log, temp_dir, capsys):
        assert main(["--config", str(config_file), "replay", str(chat_log)]) == 0

        out = capsys.readouterr().out
        assert "5 messages processed" in out
        assert "#chat: Graph: 2 nodes and 1 edges." in out

        directory = temp_dir / "images" / "chat"
        assert (directory / "chat-current.png").exists()
        assert (directory / "chat-restore.json").exists()
        assert list(directory.glob("chat-0*.png"))

    def test_replay_without_frames(self, config_file, chat_log, temp_dir):
        output_dir = temp_dir / "elsewhere"

        code = main(["--config", str(config_file), "replay", str(chat_log), "--no-frames", "-o", str(output_dir)])

        assert code == 0
        assert list(output_dir.glob("*/*.png")) == []
        assert (output_dir / "chat" / "chat-restore.json").exists()
        assert not (temp_dir / "images").exists()

    def test_replay_missing_log(self, config_file, temp_dir, capsys):
        assert main(["--config", str(config_file), "replay", str(temp_dir / "missing.log")]) == 1

        assert "Log file not found" in capsys.readouterr().out

    def test_render_restore_point(self, config_file, chat_log, temp_dir):
        main(["--config", str(config_file), "replay", str(chat_log), "--no-frames"])
        restore = temp_dir / "images" / "chat" / "chat-restore.json"
        output = temp_dir / "render" / "chat.png"

        code = main(["--config", str(config_file), "render", str(restore), "-o", str(output), "-n", "5"])

        assert code == 0
        assert output.read_bytes()[:4] == b"\x89PNG"

    def test_render_missing_restore_point(self, config_file, temp_dir, capsys):
        code = main(["--config", str(config_file), "render", str(temp_dir / "nope.json"), "-o", str(temp_dir / "x.png")])

        assert code == 1
        assert "No usable restore point" in capsys.readouterr().out

    def test_stats(self, config_file, chat_log, capsys):
        main(["--config", str(config_file), "replay", str(chat_log), "--no-frames"])
        capsys.readouterr()

        assert main(["--config", str(config_file), "stats"]) == 0

        out = capsys.readouterr().out
        assert "#chat: 2 nodes, 1 edges" in out
        # No edge was ever drawn in #other, so it has no restore point
        assert "#other" not in out

    def test_stats_without_output_dir(self, config_file, capsys):
        assert main(["--config", str(config_file), "stats"]) == 0

        assert "does not exist" in capsys.readouterr().out

    def test_config_shows_loaded_values(self, config_file, capsys):
        assert main(["--config", str(config_file), "config"]) == 0

        data = yaml.safe_load(capsys.readouterr().out)
        assert data["layout"]["iterations"] == 10

    def test_config_default(self, config_file, capsys):
        assert main(["--config", str(config_file), "config", "--default"]) == 0

        data = yaml.safe_load(capsys.readouterr().out)
        assert data["layout"]["iterations"] == 1000

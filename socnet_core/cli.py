#!/usr/bin/env python3
"""
SocNet Command Line Interface
=============================

Offline front end to the engine: replays chat logs through the channel
monitor and renders frames from restore points.

Usage:
    socnet replay LOGFILE       Feed a tab-separated chat log through the monitor
    socnet render RESTORE -o F  Lay out a restore point and draw one frame
    socnet stats                List restore points in the output directory
    socnet config               Show current configuration

Log format (one event per line, '#' comments and blank lines skipped):
    <channel>\\t<nick>\\t<message>
"""

import argparse
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import yaml

from socnet_core.config import SocnetConfig, get_default_config_yaml, load_config
from socnet_core.graph import load_graph
from socnet_core.logging_utils import setup_logging
from socnet_core.monitor import ChannelMonitor
from socnet_core.render import FrameWriter, render_frame
from socnet_core.snapshot import RESTORE_SUFFIX, read_restore_point
from socnet_core.version import __version__, get_short_banner


# =============================================================================
# ANSI Colors
# =============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    RED = '\033[0;31m'
    GREEN = '\033[0;32m'
    YELLOW = '\033[1;33m'
    BLUE = '\033[0;34m'
    CYAN = '\033[0;36m'
    BOLD = '\033[1m'
    NC = '\033[0m'  # No Color

    @classmethod
    def disable(cls):
        """Disable colors (for non-TTY output)."""
        cls.RED = cls.GREEN = cls.YELLOW = cls.BLUE = ''
        cls.CYAN = cls.BOLD = cls.NC = ''


def print_ok(msg: str) -> None:
    print(f"{Colors.GREEN}✓{Colors.NC} {msg}")


def print_warn(msg: str) -> None:
    print(f"{Colors.YELLOW}⚠{Colors.NC} {msg}")


def print_error(msg: str) -> None:
    print(f"{Colors.RED}✗{Colors.NC} {msg}")


def print_info(msg: str) -> None:
    print(f"{Colors.BLUE}ℹ{Colors.NC} {msg}")


def print_header(msg: str) -> None:
    print(f"\n{Colors.BOLD}{Colors.CYAN}{msg}{Colors.NC}")
    print("=" * len(msg))


# =============================================================================
# Helpers
# =============================================================================

def read_log(path: Path) -> Iterator[Tuple[str, str, str]]:
    """
    Yield (channel, nick, message) events from a tab-separated log.

    Malformed lines are skipped.
    """
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.rstrip("\n")
            if not line.strip() or line.startswith("#"):
                continue
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            yield parts[0], parts[1], parts[2]


def _config(args: argparse.Namespace) -> SocnetConfig:
    config = args.loaded_config
    if getattr(args, "output_dir", None):
        config.output.output_dir = args.output_dir
    return config


# =============================================================================
# Commands
# =============================================================================

def cmd_replay(args: argparse.Namespace) -> int:
    """Replay a chat log through the channel monitor."""
    config = _config(args)
    if args.no_frames:
        config.output.create_archive = False
        config.output.create_current = False

    log_path = Path(args.logfile)
    if not log_path.exists():
        print_error(f"Log file not found: {log_path}")
        return 1

    sink_factory = (lambda cfg: [FrameWriter(cfg)])
    monitor = ChannelMonitor(config, sink_factory=sink_factory)

    print_header(f"Replaying {log_path.name}")
    count = 0
    for channel, nick, message in read_log(log_path):
        monitor.on_message(channel, nick, message)
        count += 1

    print_ok(f"{count} messages processed")
    for key, graph in sorted(monitor.graphs().items()):
        print_info(f"{key}: {graph} ({graph.frame_count} frames)")
        if graph.last_file:
            print(f"    latest: {graph.last_file}")
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Render a single frame from a restore point."""
    config = _config(args)
    if args.iterations is not None:
        config.layout.iterations = args.iterations

    graph = load_graph(Path(args.restore), config=config)
    if graph is None:
        print_error(f"No usable restore point at {args.restore}")
        return 1

    graph.frame_count += 1
    graph.do_layout()
    graph.calc_bounds()
    snapshot = graph.snapshot()
    path = render_frame(snapshot, Path(args.output), footer=FrameWriter(config).footer())
    print_ok(f"{graph.label}: {graph} -> {path}")
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """List restore points under the output directory."""
    config = _config(args)
    output_dir = Path(config.output.output_dir)

    print_header(f"Restore points in {output_dir}")
    if not output_dir.is_dir():
        print_warn("Output directory does not exist")
        return 0

    found = 0
    for path in sorted(output_dir.glob(f"*/*{RESTORE_SUFFIX}")):
        state = read_restore_point(path)
        if state is None:
            print_warn(f"{path.name}: unreadable or from another version")
            continue
        print_info(f"{state.label}: {len(state.nodes)} nodes, {len(state.edges)} edges")
        found += 1

    if not found:
        print_info("No restore points found")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Show the effective configuration."""
    if args.default:
        print(get_default_config_yaml())
        return 0
    config = _config(args)
    print(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))
    return 0


# =============================================================================
# Main
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="socnet",
        description="Social network diagrams from chat channels",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", help="Path to socnet.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    replay_parser = subparsers.add_parser("replay", help="Replay a chat log")
    replay_parser.add_argument("logfile", help="Tab-separated log: channel, nick, message")
    replay_parser.add_argument("--output-dir", "-o", help="Override output directory")
    replay_parser.add_argument("--no-frames", action="store_true", help="Do not write PNG frames")
    replay_parser.set_defaults(func=cmd_replay)

    render_parser = subparsers.add_parser("render", help="Render a restore point")
    render_parser.add_argument("restore", help="Restore point file")
    render_parser.add_argument("--output", "-o", required=True, help="Output PNG")
    render_parser.add_argument("--iterations", "-n", type=int, help="Layout iterations")
    render_parser.set_defaults(func=cmd_render)

    stats_parser = subparsers.add_parser("stats", help="List restore points")
    stats_parser.add_argument("--output-dir", "-o", help="Override output directory")
    stats_parser.set_defaults(func=cmd_stats)

    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.add_argument("--default", action="store_true", help="Show built-in defaults")
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    if args.no_color or not sys.stdout.isatty():
        Colors.disable()

    if not args.command:
        print(get_short_banner())
        parser.print_help()
        return 0

    args.loaded_config = load_config(Path(args.config) if args.config else None)
    setup_logging(args.loaded_config.logging, verbose=args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""
SocNet Unified Configuration System
===================================

Loads and manages configuration from socnet.yaml with environment variable overrides.
"""

import os
import math
import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, List

from socnet_core.version import __version__

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "socnet.yaml"


# =============================================================================
# Configuration Data Classes
# =============================================================================

@dataclass
class MonitorConfig:
    """Chat-side settings used by the channel monitor and frame captions."""
    nick: str = "socnet"
    server: str = "localhost"
    password: str = "password"
    channels: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)


@dataclass
class GraphConfig:
    """Graph mutation policy."""
    temporal_decay_amount: float = 0.02


@dataclass
class HeuristicsConfig:
    """Per-heuristic edge weight contributions, keyed by heuristic name."""
    weights: Dict[str, Any] = field(default_factory=lambda: {
        "direct_addressing": 1.0,
        "indirect_addressing": 0.3,
        "adjacency": 0.0,
        "binary_sequence": 1.0,
    })


@dataclass
class LayoutConfig:
    """Spring embedder constants."""
    iterations: int = 1000
    k: float = 2.0                              # ideal edge length
    c: float = 0.01                             # damping
    max_repulsive_force_distance: float = 6.0   # repulsion/attraction cutoff
    max_node_movement: float = 0.5              # per axis, per iteration
    min_diagram_size: float = 10.0
    seed: Optional[int] = None


@dataclass
class RenderConfig:
    """Frame image parameters."""
    width: int = 800
    height: int = 600
    border_size: int = 50
    node_radius: int = 5
    edge_threshold: float = 0.0
    show_edges: bool = True
    colors: Dict[str, str] = field(default_factory=lambda: {
        "background": "#ffffff",
        "border": "#666666",
        "channel": "#eeeeff",
        "title": "#666666",
        "label": "#000000",
        "node": "#ffff00",
        "edge": "#6666ff",
    })


@dataclass
class OutputConfig:
    """Where and what to write for each frame."""
    output_dir: str = "./images"
    create_archive: bool = True
    create_current: bool = True
    create_restore_points: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_file: Optional[str] = None
    max_log_size_mb: int = 10
    backup_count: int = 3


@dataclass
class SocnetConfig:
    """Root configuration container."""
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    heuristics: HeuristicsConfig = field(default_factory=HeuristicsConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    version: str = __version__

    def heuristic_weight(self, name: str) -> float:
        """
        Look up the weight contribution of a heuristic.

        A missing, non-numeric or non-finite entry disables the heuristic
        (weight 0) and is reported as a warning.
        """
        raw = self.heuristics.weights.get(name)
        if raw is None:
            logger.warning(f"Could not find a set weighting for {name}, using 0")
            return 0.0
        try:
            weight = float(raw)
        except (TypeError, ValueError):
            weight = math.nan
        if not math.isfinite(weight):
            logger.warning(f"Invalid weighting {raw!r} for {name}, using 0")
            return 0.0
        return weight

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# Configuration Loader
# =============================================================================

def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """
    Find socnet.yaml by searching upward from start_path.

    Search order:
    1. start_path / socnet.yaml
    2. Parent directories (recursive)
    3. ~/.config/socnet/socnet.yaml

    Args:
        start_path: Starting directory (defaults to cwd)

    Returns:
        Path to config file or None if not found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = Path(start_path).resolve()
    for _ in range(10):  # Max 10 levels up
        candidate = current / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    user_config = Path.home() / ".config" / "socnet" / CONFIG_FILE_NAME
    if user_config.exists():
        return user_config

    return None


def load_config(config_path: Optional[Path] = None) -> SocnetConfig:
    """
    Load configuration from YAML file with environment variable overrides.

    Environment variables override config file values:
    - SOCNET_OUTPUT_DIR -> output.output_dir
    - SOCNET_PASSWORD -> monitor.password
    - SOCNET_LOG_LEVEL -> logging.level
    - SOCNET_LAYOUT_ITERATIONS -> layout.iterations
    - SOCNET_DECAY -> graph.temporal_decay_amount

    Args:
        config_path: Path to config file (auto-detected if None)

    Returns:
        SocnetConfig instance
    """
    config = SocnetConfig()

    if config_path is None:
        config_path = find_config_file()

    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            config = _parse_config_dict(data)
        except Exception as e:
            logger.warning(f"Failed to load config: {e}, using defaults")
            config = SocnetConfig()
    else:
        logger.info("No config file found, using defaults")

    config = _apply_env_overrides(config)
    _validate_config(config)

    return config


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    return value


def _parse_config_dict(data: Dict[str, Any]) -> SocnetConfig:
    """Parse configuration dictionary into SocnetConfig."""
    config = SocnetConfig()

    if "monitor" in data:
        mon = _section(data, "monitor")
        config.monitor = MonitorConfig(
            nick=mon.get("nick", config.monitor.nick),
            server=mon.get("server", config.monitor.server),
            password=str(mon.get("password", config.monitor.password)),
            channels=list(mon.get("channels") or []),
            ignore=[str(n).lower() for n in (mon.get("ignore") or [])],
        )

    if "graph" in data:
        graph = _section(data, "graph")
        config.graph = GraphConfig(
            temporal_decay_amount=float(graph.get("temporal_decay_amount", config.graph.temporal_decay_amount)),
        )

    if "heuristics" in data:
        heur = _section(data, "heuristics")
        # Replaces the defaults entirely; omitted heuristics get weight 0
        config.heuristics = HeuristicsConfig(weights=dict(heur.get("weights") or {}))

    if "layout" in data:
        lay = _section(data, "layout")
        seed = lay.get("seed", config.layout.seed)
        config.layout = LayoutConfig(
            iterations=int(lay.get("iterations", config.layout.iterations)),
            k=float(lay.get("k", config.layout.k)),
            c=float(lay.get("c", config.layout.c)),
            max_repulsive_force_distance=float(lay.get("max_repulsive_force_distance", config.layout.max_repulsive_force_distance)),
            max_node_movement=float(lay.get("max_node_movement", config.layout.max_node_movement)),
            min_diagram_size=float(lay.get("min_diagram_size", config.layout.min_diagram_size)),
            seed=int(seed) if seed is not None else None,
        )

    if "render" in data:
        ren = _section(data, "render")
        colors = dict(config.render.colors)
        colors.update(ren.get("colors") or {})
        config.render = RenderConfig(
            width=int(ren.get("width", config.render.width)),
            height=int(ren.get("height", config.render.height)),
            border_size=int(ren.get("border_size", config.render.border_size)),
            node_radius=int(ren.get("node_radius", config.render.node_radius)),
            edge_threshold=float(ren.get("edge_threshold", config.render.edge_threshold)),
            show_edges=bool(ren.get("show_edges", config.render.show_edges)),
            colors=colors,
        )

    if "output" in data:
        out = _section(data, "output")
        config.output = OutputConfig(
            output_dir=str(out.get("output_dir", config.output.output_dir)),
            create_archive=bool(out.get("create_archive", config.output.create_archive)),
            create_current=bool(out.get("create_current", config.output.create_current)),
            create_restore_points=bool(out.get("create_restore_points", config.output.create_restore_points)),
        )

    if "logging" in data:
        log = _section(data, "logging")
        config.logging = LoggingConfig(
            level=str(log.get("level", config.logging.level)).upper(),
            log_file=log.get("log_file", config.logging.log_file),
            max_log_size_mb=int(log.get("max_log_size_mb", config.logging.max_log_size_mb)),
            backup_count=int(log.get("backup_count", config.logging.backup_count)),
        )

    config.version = str(data.get("version", config.version))

    return config


def _apply_env_overrides(config: SocnetConfig) -> SocnetConfig:
    """Apply environment variable overrides to config."""

    if os.environ.get("SOCNET_OUTPUT_DIR"):
        config.output.output_dir = os.environ["SOCNET_OUTPUT_DIR"]

    if os.environ.get("SOCNET_PASSWORD"):
        config.monitor.password = os.environ["SOCNET_PASSWORD"]

    if os.environ.get("SOCNET_LOG_LEVEL"):
        config.logging.level = os.environ["SOCNET_LOG_LEVEL"].upper()

    if os.environ.get("SOCNET_LAYOUT_ITERATIONS"):
        try:
            config.layout.iterations = int(os.environ["SOCNET_LAYOUT_ITERATIONS"])
        except ValueError:
            logger.warning(f"Ignoring non-integer SOCNET_LAYOUT_ITERATIONS={os.environ['SOCNET_LAYOUT_ITERATIONS']!r}")

    if os.environ.get("SOCNET_DECAY"):
        try:
            config.graph.temporal_decay_amount = float(os.environ["SOCNET_DECAY"])
        except ValueError:
            logger.warning(f"Ignoring non-numeric SOCNET_DECAY={os.environ['SOCNET_DECAY']!r}")

    return config


def _validate_config(config: SocnetConfig) -> None:
    """Validate configuration and log warnings."""
    defaults_layout = LayoutConfig()
    defaults_render = RenderConfig()

    if config.layout.iterations < 0:
        logger.warning(f"Negative layout iterations ({config.layout.iterations}), using 0")
        config.layout.iterations = 0

    for name in ("k", "c", "max_repulsive_force_distance", "max_node_movement", "min_diagram_size"):
        value = getattr(config.layout, name)
        if not math.isfinite(value) or value <= 0:
            default = getattr(defaults_layout, name)
            logger.warning(f"layout.{name} must be positive, defaulting to {default}")
            setattr(config.layout, name, default)

    for name in ("width", "height"):
        if getattr(config.render, name) <= 0:
            default = getattr(defaults_render, name)
            logger.warning(f"render.{name} must be positive, defaulting to {default}")
            setattr(config.render, name, default)

    decay = config.graph.temporal_decay_amount
    if not math.isfinite(decay) or decay < 0:
        logger.warning(f"Invalid temporal decay amount {decay!r}, defaulting to 0")
        config.graph.temporal_decay_amount = 0.0

    valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    if config.logging.level not in valid_levels:
        logger.warning(f"Unknown log level '{config.logging.level}', defaulting to 'INFO'")
        config.logging.level = "INFO"


def save_config(config: SocnetConfig, path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: SocnetConfig instance
        path: Output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.info(f"Configuration saved to: {path}")


def get_default_config_yaml() -> str:
    """Get default configuration as YAML string."""
    return yaml.safe_dump(SocnetConfig().to_dict(), default_flow_style=False, sort_keys=False)

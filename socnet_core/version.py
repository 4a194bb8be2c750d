"""
SocNet Version Management - Centralized version for all components

This module provides a single source of truth for the SocNet version.
The engine tag is written at the head of every restore point; a restore
point carrying a different tag is discarded.
"""

# =============================================================================
# SocNet Version - Single Source of Truth
# =============================================================================

__version__ = "0.4.0"

# Semantic versioning components
VERSION_MAJOR = 0
VERSION_MINOR = 4
VERSION_PATCH = 0
VERSION_SUFFIX = ""  # e.g., "alpha", "beta", "rc1", ""

# Full version string with optional suffix
VERSION_FULL = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
if VERSION_SUFFIX:
    VERSION_FULL = f"{VERSION_FULL}-{VERSION_SUFFIX}"

# Tag compared on restore
ENGINE_VERSION = f"SocNet {VERSION_FULL}"


def get_version() -> str:
    """Get the current SocNet version string."""
    return __version__


def get_version_info() -> dict:
    """Get detailed version information."""
    return {
        "version": __version__,
        "major": VERSION_MAJOR,
        "minor": VERSION_MINOR,
        "patch": VERSION_PATCH,
        "suffix": VERSION_SUFFIX,
        "full": VERSION_FULL,
        "engine": ENGINE_VERSION,
    }


def get_short_banner() -> str:
    """Get a compact version banner."""
    return f"SocNet v{__version__} | chat social network diagrams"


# For module-level access
VERSION = __version__

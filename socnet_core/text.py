"""
SocNet Text Utilities - Message normalization and tokenization

Chat clients deliver message text with inline formatting control codes
(bold, colours, reverse, ...). These are stripped before the text reaches
the inference heuristics, which then split it into candidate nick tokens.
"""

import re
from typing import List

# =============================================================================
# Formatting Codes
# =============================================================================

BOLD = "\x02"
COLOR = "\x03"
HEX_COLOR = "\x04"
RESET = "\x0f"
REVERSE = "\x16"
ITALIC = "\x1d"
STRIKETHROUGH = "\x1e"
MONOSPACE = "\x11"
UNDERLINE = "\x1f"

# Colour code with optional "fg" or "fg,bg" numeric arguments
_COLOR_RE = re.compile(r"\x03(?:\d{1,2}(?:,\d{1,2})?)?")
_HEX_COLOR_RE = re.compile(r"\x04(?:[0-9a-fA-F]{6}(?:,[0-9a-fA-F]{6})?)?")
_FORMAT_RE = re.compile("[" + BOLD + RESET + REVERSE + ITALIC + STRIKETHROUGH + MONOSPACE + UNDERLINE + "]")

# Delimiters between words when looking for nicks in a message
TOKEN_DELIMITERS = re.compile(r"[\s:.()\-,/&!?\"<>]+")


def remove_colors(text: str) -> str:
    """Remove colour codes (and their numeric arguments) from text."""
    text = _COLOR_RE.sub("", text)
    return _HEX_COLOR_RE.sub("", text)


def remove_formatting(text: str) -> str:
    """Remove bold, underline, reverse, italic and reset codes from text."""
    return _FORMAT_RE.sub("", text)


def remove_formatting_and_colors(text: str) -> str:
    """
    Strip every inline formatting control sequence from a message.

    Args:
        text: Raw message text as received from the chat client

    Returns:
        Plain message text
    """
    return remove_formatting(remove_colors(text))


def first_token(message: str) -> str:
    """
    Return the first word of a message.

    A message that starts with a delimiter yields an empty token.
    """
    return TOKEN_DELIMITERS.split(message, maxsplit=1)[0]


def tokenize(message: str) -> List[str]:
    """Split a message into its non-empty words."""
    return [word for word in TOKEN_DELIMITERS.split(message) if word]

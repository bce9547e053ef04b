"""Text metrics that understand, but do not depend on, ANSI styling.

Width is counted in code points, so a character outside the BMP counts
once. Fitting always pads to the exact target width.
"""

from dataclasses import dataclass
from typing import Literal

WrapMode = Literal["truncate", "ellipsis"]

ESC = "\x1b"
RESET = "\x1b[0m"
ELLIPSIS = "…"


@dataclass(frozen=True, slots=True)
class AnsiToken:
    """Either one escape sequence or one visible character."""

    is_escape: bool
    value: str


def strip_ansi(text: str) -> str:
    return "".join(token.value for token in tokenize_ansi(text) if not token.is_escape)


def visible_width(text: str) -> int:
    """Number of visible code points, ignoring escape sequences.

    Uses the same sequence boundaries as ``tokenize_ansi``, so colon
    separated SGR parameters such as ``38:5:1`` count as zero width.
    """
    return sum(1 for token in tokenize_ansi(text) if not token.is_escape)


def tokenize_ansi(text: str) -> list[AnsiToken]:
    """Split text into alternating escape-sequence and character tokens.

    An escape sequence runs from ``ESC [`` to the first final byte in
    0x40-0x7E; an unterminated sequence swallows the rest of the string.
    """
    tokens: list[AnsiToken] = []
    i = 0
    length = len(text)
    while i < length:
        if text[i] == ESC and i + 1 < length and text[i + 1] == "[":
            j = i + 2
            while j < length:
                code = ord(text[j])
                j += 1
                if 0x40 <= code <= 0x7E:
                    break
            tokens.append(AnsiToken(True, text[i:j]))
            i = j
            continue
        tokens.append(AnsiToken(False, text[i]))
        i += 1
    return tokens


def fit_plain_text(text: str, width: int, wrap_mode: WrapMode = "truncate") -> str:
    """Truncate or pad unstyled text to exactly ``width`` characters."""
    target = max(0, int(width))
    if target == 0:
        return ""

    result = text
    if len(text) > target:
        if wrap_mode == "ellipsis":
            result = ELLIPSIS if target == 1 else text[: target - 1] + ELLIPSIS
        else:
            result = text[:target]

    return result + " " * (target - len(result))


def fit_ansi_text(text: str, width: int, wrap_mode: WrapMode = "truncate") -> str:
    """Truncate or pad styled text to exactly ``width`` visible characters.

    Escape sequences are kept up to the cut point. If any were seen, a
    reset is emitted at the cut so styling never bleeds past the cell.
    """
    target = max(0, int(width))
    if target == 0:
        return ""

    tokens = tokenize_ansi(text)
    total_visible = sum(1 for token in tokens if not token.is_escape)
    if total_visible <= target:
        return text + " " * (target - total_visible)

    keep = target - 1 if wrap_mode == "ellipsis" else target
    visible = 0
    saw_escape = False
    parts: list[str] = []
    for token in tokens:
        if token.is_escape:
            saw_escape = True
            if keep > 0 and visible <= keep:
                parts.append(token.value)
            continue
        if visible >= keep:
            break
        parts.append(token.value)
        visible += 1

    if wrap_mode == "ellipsis":
        parts.append(ELLIPSIS)

    output = "".join(parts)
    if saw_escape and not output.endswith(RESET):
        output += RESET

    return output + " " * max(0, target - visible_width(output))


def fit_rendered_text(
    text: str,
    width: int,
    wrap_mode: WrapMode = "truncate",
    styled: bool = True,
) -> str:
    """Fit text to ``width``, choosing plain or escape-aware fitting.

    Args:
        text: Text that may contain escape sequences.
        width: Exact visible width of the result.
        wrap_mode: Plain truncation or truncation with an ellipsis mark.
        styled: When False, escape sequences are stripped first.
    """
    raw = text if styled else strip_ansi(text)
    if not styled or "\x1b[" not in raw:
        return fit_plain_text(raw, width, wrap_mode)
    return fit_ansi_text(raw, width, wrap_mode)

"""Theme roles and their styling transforms.

The Color stage is the only consumer. Styles are resolved through Rich
once, when the theme is built, so styling a segment is a plain function
call.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Literal, Optional, get_args

from rich.color import ColorSystem
from rich.style import Style

ThemeRole = Literal[
    "plain",
    "bar_fill",
    "bar_empty",
    "bar_bracket",
    "spinner",
    "status_done",
    "status_failed",
    "text",
    "units",
    "eta",
    "elapsed",
    "tree_connector",
]

THEME_ROLES: tuple[str, ...] = get_args(ThemeRole)

TextTransform = Callable[[str], str]
DepthPalette = Callable[[int, ThemeRole], Optional[TextTransform]]


def identity(text: str) -> str:
    return text


def rich_transform(
    style: str, color_system: ColorSystem = ColorSystem.TRUECOLOR
) -> TextTransform:
    """Build a transform that wraps text in the ANSI codes for ``style``.

    Args:
        style: Any Rich style definition, e.g. ``"bold red"``.
        color_system: Palette to downgrade colors to.

    Raises:
        rich.errors.StyleSyntaxError: If ``style`` cannot be parsed.
    """
    parsed = Style.parse(style)
    if not parsed:
        return identity

    def transform(text: str) -> str:
        if not text:
            return text
        return parsed.render(text, color_system=color_system)

    return transform


@dataclass(frozen=True)
class Theme:
    """Per-role text transforms plus an optional depth palette.

    A depth palette takes precedence over ``styles`` whenever it returns a
    transform for a (depth, role) pair.
    """

    styles: Mapping[str, TextTransform] = field(default_factory=dict)
    depth_palette: Optional[DepthPalette] = None
    fallback: TextTransform = identity

    def transform_for(self, role: ThemeRole, depth: int) -> TextTransform:
        if self.depth_palette is not None:
            by_depth = self.depth_palette(depth, role)
            if by_depth is not None:
                return by_depth
        return self.styles.get(role) or self.styles.get("plain") or self.fallback

    def style(self, text: str, role: ThemeRole, depth: int) -> str:
        return self.transform_for(role, depth)(text)

    @classmethod
    def from_styles(
        cls,
        styles: Mapping[str, str],
        depth_palette: Optional[DepthPalette] = None,
        color_system: ColorSystem = ColorSystem.TRUECOLOR,
    ) -> "Theme":
        """Build a theme from Rich style strings keyed by role.

        Unknown roles are rejected so a typo does not silently fall back
        to plain text.
        """
        unknown = set(styles) - set(THEME_ROLES)
        if unknown:
            raise ValueError(f"Unknown theme roles: {', '.join(sorted(unknown))}")
        return cls(
            styles={
                role: rich_transform(style, color_system) for role, style in styles.items()
            },
            depth_palette=depth_palette,
        )


DEFAULT_STYLES: dict[str, str] = {
    "plain": "",
    "bar_fill": "blue",
    "bar_empty": "dim white",
    "bar_bracket": "dim white",
    "spinner": "yellow",
    "status_done": "green",
    "status_failed": "red",
    "text": "",
    "units": "bright_white",
    "eta": "bright_black",
    "elapsed": "bright_black",
    "tree_connector": "bright_black",
}

DEFAULT_THEME = Theme.from_styles(DEFAULT_STYLES)

PLAIN_THEME = Theme()

"""Pydantic configuration models for taskline.

Renderer and progress-bar settings are decoded and validated here, once,
before a progress session starts using them. Everything downstream receives
frozen, already-valid models.
"""

from collections.abc import Mapping
from typing import Any, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from rich.spinner import SPINNERS

DEFAULT_SPINNER_FRAMES = list(SPINNERS["dots"]["frames"])

# Keys from older releases that are no longer accepted
_REMOVED_RENDERER_KEYS = {
    "maxTaskWidth": "width",
    "max_task_width": "width",
}

M = TypeVar("M", bound=BaseModel)


class RendererConfig(BaseModel):
    """Settings for the render loop and the shrink/fit stage."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    disable_user_input: bool = True
    render_interval_ms: int = Field(default=100, gt=0)
    max_log_lines: int = Field(default=0, ge=0)
    non_tty_update_step: int = Field(default=5, ge=1)
    width: Union[int, Literal["fullwidth"]] = 120
    column_gap: int = Field(default=1, ge=0)
    determinate_layout: Literal["single-line", "two-lines"] = "single-line"

    @model_validator(mode="before")
    @classmethod
    def reject_removed_keys(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            for key, replacement in _REMOVED_RENDERER_KEYS.items():
                if key in data:
                    raise ValueError(f"{key} has been removed. Use {replacement} instead.")
        return data

    @field_validator("width")
    @classmethod
    def width_positive(cls, value: Union[int, str]) -> Union[int, str]:
        if isinstance(value, int) and value < 1:
            raise ValueError("width must be at least 1 or 'fullwidth'")
        return value

    @property
    def render_interval(self) -> float:
        """Tick interval in seconds."""
        return self.render_interval_ms / 1000

    @property
    def max_width(self) -> Optional[int]:
        """Row width cap, or None when only the terminal width applies."""
        return None if self.width == "fullwidth" else self.width


class ProgressBarConfig(BaseModel):
    """Per-task bar and spinner appearance.

    Resolved once when a task is added, by merging the parent's resolved
    config with the task's own override.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    spinner_frames: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SPINNER_FRAMES), min_length=1
    )
    bar_width: int = Field(default=40, ge=1)
    fill_char: str = Field(default="━", min_length=1, max_length=1)
    empty_char: str = Field(default="─", min_length=1, max_length=1)
    left_bracket: str = ""
    right_bracket: str = ""


def merge_config(
    base: Mapping[str, Any],
    override: Union[Mapping[str, Any], BaseModel, None],
) -> dict[str, Any]:
    """Deep-merge an override into a base mapping.

    Nested mappings merge key by key; any other value, lists included,
    replaces the base value outright.

    Args:
        base: Fully populated mapping (usually a model dump).
        override: Partial mapping or partially-set model, or None.

    Returns:
        New merged dict. Neither input is modified.
    """
    merged: dict[str, Any] = {
        key: merge_config(value, None) if isinstance(value, Mapping) else value
        for key, value in base.items()
    }
    if override is None:
        return merged
    if isinstance(override, BaseModel):
        override = override.model_dump(exclude_unset=True)

    for key, value in override.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = merge_config(current, value)
        elif isinstance(value, list):
            merged[key] = list(value)
        else:
            merged[key] = value
    return merged


def resolve_config(
    model: type[M],
    base: Optional[M],
    override: Union[Mapping[str, Any], BaseModel, None],
) -> M:
    """Validate ``override`` merged over ``base`` (or the model defaults).

    Raises:
        pydantic.ValidationError: If the merged values are out of range.
    """
    if override is None and base is not None:
        return base
    base_data = base.model_dump() if base is not None else model().model_dump()
    return model.model_validate(merge_config(base_data, override))

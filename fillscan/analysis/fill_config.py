"""Detection parameters: defaults, override merging and validation.

Overrides may use either snake_case or the camelCase keys of the chart
tooling (``windowBeats``, ``thresholds.densityZ``). Partial ``thresholds``
dicts are merged onto the defaults.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from fillscan.analysis.errors import InvalidConfigError

Difficulty = Literal["expert", "hard", "medium", "easy"]


class Thresholds(BaseModel):
    """Detection and segmentation thresholds."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True)

    density_z: float = Field(1.2, gt=0)
    dist: float = Field(2.0, gt=0)  # Mahalanobis distance
    tom_jump: float = Field(1.5, gt=0)
    min_beats: float = Field(0.75, gt=0)
    max_beats: float = Field(4.0, gt=0)
    merge_gap_beats: float = Field(0.25, ge=0)
    burst_ms: float = Field(120.0, gt=0)

    @model_validator(mode="after")
    def check_duration_range(self):
        if self.max_beats <= self.min_beats:
            raise ValueError("maxBeats must be greater than minBeats")
        return self


class FillConfig(BaseModel):
    """Complete configuration for one extraction call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid", frozen=True)

    difficulty: Difficulty = "expert"
    quant_div: int = Field(4, gt=0)  # grid cells per beat for n-grams
    window_beats: float = Field(1.0, gt=0)
    stride_beats: float = Field(0.25, gt=0)
    lookback_bars: float = Field(8.0, gt=0)
    ngram_beats: float = Field(1.0, gt=0)
    ngram_stride_beats: float = Field(0.25, gt=0)
    thresholds: Thresholds = Field(default_factory=Thresholds)

    def lookback_window_count(self) -> int:
        """Number of preceding windows that form the rolling baseline (4/4 bars)."""
        return max(1, int(self.lookback_bars * 4 // self.stride_beats))


DEFAULT_CONFIG = FillConfig()


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def validate_config(overrides: FillConfig | dict[str, Any] | None = None) -> FillConfig:
    """Merge *overrides* onto the defaults and validate the result.

    Every call returns its own frozen instance.

    Raises:
        InvalidConfigError: if any value is out of range or unknown.
    """
    if overrides is None:
        return FillConfig()
    if isinstance(overrides, FillConfig):
        # Re-run validation in case the instance was built with model_construct
        overrides = overrides.model_dump()
    if not isinstance(overrides, dict):
        raise InvalidConfigError(f"expected a mapping, got {type(overrides).__name__}")
    try:
        return FillConfig.model_validate(overrides)
    except ValidationError as exc:
        raise InvalidConfigError(_describe(exc)) from exc

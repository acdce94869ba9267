"""Exceptions raised by the fill detection pipeline."""


class FillDetectionError(Exception):
    """Base class for all pipeline errors."""


class InvalidChartError(FillDetectionError, ValueError):
    """The chart is structurally unusable (resolution, tempos, track list)."""


class InvalidTempoError(FillDetectionError, ValueError):
    """The tempo map is empty, unsorted, duplicated or has a non-positive BPM."""


class InvalidConfigError(FillDetectionError, ValueError):
    """A configuration override is out of range."""

    def __init__(self, message: str):
        super().__init__(f"Invalid configuration: {message}")


class DrumTrackNotFoundError(FillDetectionError, LookupError):
    """No drums track exists for the requested difficulty."""

    def __init__(self, difficulty: str):
        super().__init__(f"No drum track found for difficulty: {difficulty}")
        self.difficulty = difficulty

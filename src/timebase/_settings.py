"""Configuration via pydantic-settings.

Configuration is loaded from environment variables and/or ``.env``
files.  Nested models use ``__`` as the delimiter in env var names,
e.g. ``CLOCK__ALLOWABLE_ERROR_MILLISECONDS=50``.

The schema covers two concerns:

* **Clock** — decoupling, interpolation allowance and handoff cadence
  used by :func:`~timebase.build_clock_stack`.
* **Logging** — level, format, optional file sink, rotation.

Embedding applications subclass :class:`Settings` and add their own
``env_prefix`` plus any application-specific fields.  The base
``Settings`` sets **no** ``env_prefix`` so the library stays neutral.

All clock durations are in **milliseconds**.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from timebase._interpolating import DEFAULT_ALLOWABLE_ERROR_MILLISECONDS

# -------------------------------------------------------------------
# Sub-models (BaseModel, NOT BaseSettings — nested via composition)
# -------------------------------------------------------------------


class ClockSettings(BaseModel):
    """Behaviour of a decoupling + interpolating clock stack.

    Environment variables (with ``__`` nesting)::

        CLOCK__ALLOW_DECOUPLING=true
        CLOCK__ALLOWABLE_ERROR_MILLISECONDS=33.3
        CLOCK__HANDOFF_RETRY_INTERVAL_MILLISECONDS=8
    """

    allow_decoupling: bool = Field(
        default=True,
        description=(
            "Let the clock keep running, and accept seeks, where the "
            "source cannot follow.  False makes the coupling layer a "
            "pure passthrough."
        ),
    )
    allowable_error_milliseconds: Annotated[float, Field(ge=0, allow_inf_nan=False)] = Field(
        default=DEFAULT_ALLOWABLE_ERROR_MILLISECONDS,
        description=(
            "Largest divergence (at rate 1) the interpolation layer "
            "tolerates before falling back to the source's time."
        ),
    )
    handoff_retry_interval_milliseconds: Annotated[
        float, Field(ge=0, allow_inf_nan=False)
    ] = Field(
        default=0.0,
        description=(
            "Minimum real time between attempts to hand a free-running "
            "clock back to its source.  0 retries every frame.  May not "
            "exceed ``allowable_error_milliseconds``."
        ),
    )
    process_source_clock_frames: bool = Field(
        default=True,
        description="Process frame-based sources before reading them.",
    )

    @model_validator(mode="after")
    def _retry_within_allowance(self) -> ClockSettings:
        if self.handoff_retry_interval_milliseconds > self.allowable_error_milliseconds:
            msg = (
                "handoff_retry_interval_milliseconds "
                f"({self.handoff_retry_interval_milliseconds}) must not exceed "
                f"allowable_error_milliseconds ({self.allowable_error_milliseconds})"
            )
            raise ValueError(msg)
        return self


class LoggingSettings(BaseModel):
    """Logging configuration.

    When ``file`` is set, logs are also written to a rotating file
    (size-based rotation, ``backup_count`` generations kept).  When
    ``None``, logs go to stderr only.

    The ``format`` field selects the output format:

    - ``"json"`` (default) — structured JSON lines, one object per record.
    - ``"text"`` — human-readable timestamped lines for development.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level.",
    )
    clock_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | None = Field(
        default=None,
        description=(
            "Level of the ``timebase`` logger. ``None`` inherits ``level``; "
            "``DEBUG`` shows coupling transitions and lost interpolation."
        ),
    )
    format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: 'json' lines or human-readable 'text'.",
    )
    file: str | None = Field(
        default=None,
        description="Optional log file path. ``None`` means stderr only.",
    )
    max_file_size_mb: Annotated[int, Field(ge=1)] = Field(
        default=10,
        description=(
            "Maximum log file size in megabytes before rotation. "
            "Only applies when ``file`` is set."
        ),
    )
    backup_count: Annotated[int, Field(ge=0)] = Field(
        default=3,
        description="Number of rotated log files to keep.",
    )


# -------------------------------------------------------------------
# Root settings
# -------------------------------------------------------------------


class Settings(BaseSettings):
    """Root settings for timebase.

    Loaded from environment variables with the nested delimiter
    ``__`` and an optional ``.env`` file in the working directory.

    Example ``.env``::

        CLOCK__ALLOW_DECOUPLING=false
        CLOCK__ALLOWABLE_ERROR_MILLISECONDS=50
        LOGGING__LEVEL=DEBUG
        LOGGING__FORMAT=text

    Example with an application prefix (subclass)::

        class PlayerSettings(Settings):
            model_config = SettingsConfigDict(
                env_prefix="PLAYER_",
                env_nested_delimiter="__",
                env_file=".env",
                env_file_encoding="utf-8",
            )
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    """``extra="ignore"`` because no ``env_prefix`` is set: every
    environment variable is visible, and unrelated ones (``PATH``,
    ``HOME``) must not fail validation.
    """

    clock: ClockSettings = Field(
        default_factory=ClockSettings,
        description="Clock stack behaviour.",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration.",
    )

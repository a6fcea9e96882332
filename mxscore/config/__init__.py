from __future__ import annotations

"""Parser settings loader from environment variables."""

from dataclasses import dataclass
import os


def _env_int(name: str, default: int) -> int:
    """Read an int env var with a default."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Parse behavior switches.

    validate_measure_duration: reconcile note durations against the time signature.
    measure_duration_fatal: raise instead of warn when that reconciliation fails.
    skip_invalid_notes: drop notes that fail validation (with a warning) instead of
    aborting the parse.
    """
    validate_measure_duration: bool = False
    measure_duration_fatal: bool = False
    skip_invalid_notes: bool = False
    max_diagnostics: int = 1000
    max_archive_entry_bytes: int = 64 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        """Construct settings from environment variables."""
        max_diagnostics = _env_int("MXSCORE_MAX_DIAGNOSTICS", 1000)
        if max_diagnostics <= 0:
            raise ValueError("MXSCORE_MAX_DIAGNOSTICS must be positive.")
        max_entry_mb = _env_int("MXSCORE_MAX_ARCHIVE_ENTRY_MB", 64)
        if max_entry_mb <= 0:
            raise ValueError("MXSCORE_MAX_ARCHIVE_ENTRY_MB must be positive.")
        return cls(
            validate_measure_duration=_env_bool("MXSCORE_VALIDATE_MEASURE_DURATION", False),
            measure_duration_fatal=_env_bool("MXSCORE_MEASURE_DURATION_FATAL", False),
            skip_invalid_notes=_env_bool("MXSCORE_SKIP_INVALID_NOTES", False),
            max_diagnostics=max_diagnostics,
            max_archive_entry_bytes=max_entry_mb * 1024 * 1024,
        )

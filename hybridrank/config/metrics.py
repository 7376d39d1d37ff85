"""Metrics collection for scoring configuration loading."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class ConfigMetrics:
    """Metrics for scoring configuration loading.

    Attributes:
        config_validation_duration_ms: Time taken to validate the last file.
        config_validation_errors_total: Total validation errors.
        files_loaded: Number of scoring files loaded successfully.
        defaults_used: Number of loads that fell back to built-in defaults.
        last_file_sha256: Checksum of the most recently loaded file.
    """

    config_validation_duration_ms: float = 0.0
    config_validation_errors_total: int = 0
    files_loaded: int = 0
    defaults_used: int = 0
    last_file_sha256: str = ""

    _instance: ClassVar["ConfigMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ConfigMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_validation_error(self) -> None:
        """Record a validation error."""
        self.config_validation_errors_total += 1

    def record_defaults(self) -> None:
        """Record a load that used built-in defaults."""
        self.defaults_used += 1

    def record_file_loaded(self, checksum: str, duration_ms: float) -> None:
        """Record a successfully validated file.

        Args:
            checksum: SHA-256 of the file content.
            duration_ms: Time spent reading and validating it.
        """
        self.files_loaded += 1
        self.last_file_sha256 = checksum
        self.config_validation_duration_ms = duration_ms

    def to_dict(self) -> dict[str, float | int | str]:
        """Convert metrics to dictionary."""
        return {
            "config_validation_duration_ms": self.config_validation_duration_ms,
            "config_validation_errors_total": self.config_validation_errors_total,
            "files_loaded": self.files_loaded,
            "defaults_used": self.defaults_used,
            "last_file_sha256": self.last_file_sha256,
        }

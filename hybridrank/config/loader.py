"""Scoring configuration loader with validation."""

import hashlib
import time
from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from hybridrank.config.metrics import ConfigMetrics
from hybridrank.config.schemas import ScoringConfig


logger = structlog.get_logger()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class ConfigLoader:
    """Loads and validates ``scoring.yaml``.

    A missing path yields the built-in defaults. Once loaded the
    configuration is immutable (all schemas are frozen models).
    """

    def __init__(self, run_id: str | None = None) -> None:
        """Initialize the loader.

        Args:
            run_id: Optional run identifier for log context.
        """
        self._run_id = run_id
        self._checksum: str | None = None
        self._validation_errors: list[dict[str, str]] = []
        self._validation_duration_ms: float = 0.0
        self._metrics = ConfigMetrics.get_instance()
        self._log = logger.bind(component="config", run_id=run_id)

    @property
    def checksum(self) -> str | None:
        """SHA-256 of the last loaded file, if any."""
        return self._checksum

    @property
    def validation_errors(self) -> list[dict[str, str]]:
        """Get validation errors if any."""
        return self._validation_errors.copy()

    @property
    def validation_duration_ms(self) -> float:
        """Get validation duration in milliseconds."""
        return self._validation_duration_ms

    def load(self, path: Path | None = None) -> ScoringConfig:
        """Load scoring configuration.

        Args:
            path: Path to a YAML file, or None for defaults.

        Returns:
            Validated ScoringConfig.

        Raises:
            ConfigValidationError: If the file is missing, unparseable or invalid.
        """
        if path is None:
            self._metrics.record_defaults()
            self._log.info("scoring_config_defaults")
            return ScoringConfig()

        start = time.perf_counter()
        self._validation_errors = []
        self._log.info("loading_config_file", file_path=str(path))

        try:
            content = path.read_bytes()
        except FileNotFoundError as e:
            self._fail(path, "file", str(e), "file_not_found")
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        self._checksum = hashlib.sha256(content).hexdigest()

        try:
            data = yaml.safe_load(content.decode("utf-8")) or {}
        except yaml.YAMLError as e:
            self._fail(path, "yaml", str(e), "yaml_parse_error")
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        try:
            config = ScoringConfig.model_validate(data)
        except ValidationError as e:
            for err in e.errors():
                self._validation_errors.append(
                    {
                        "loc": ".".join(str(loc) for loc in err["loc"]),
                        "msg": err["msg"],
                        "type": err["type"],
                    }
                )
                self._metrics.record_validation_error()
            self._log.error(
                "config_validation_failed",
                file_path=str(path),
                validation_error_count=len(self._validation_errors),
                errors=self._validation_errors,
            )
            raise ConfigValidationError(self._validation_errors, str(path)) from e

        self._validation_duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_file_loaded(self._checksum, self._validation_duration_ms)

        self._log.info(
            "config_file_loaded",
            file_path=str(path),
            file_sha256=self._checksum,
            weights_balanced=config.hybrid.weights.is_balanced,
            config_validation_duration_ms=round(self._validation_duration_ms, 2),
        )
        return config

    def _fail(self, path: Path, loc: str, message: str, error_type: str) -> None:
        """Record a load failure that happened before schema validation."""
        self._validation_errors.append(
            {"loc": loc, "msg": message, "type": error_type}
        )
        self._metrics.record_validation_error()
        self._log.error(
            "config_load_failed",
            file_path=str(path),
            error_type=error_type,
            error=message,
        )

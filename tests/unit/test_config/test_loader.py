"""Unit tests for the scoring configuration loader."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest

from hybridrank.config.loader import ConfigLoader, ConfigValidationError
from hybridrank.config.metrics import ConfigMetrics
from hybridrank.config.schemas import ScoringConfig


@pytest.fixture
def config_dir() -> Generator[Path]:
    """Create a temporary directory for scoring files."""
    ConfigMetrics.reset()
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _write(config_dir: Path, content: str) -> Path:
    path = config_dir / "scoring.yaml"
    path.write_text(content)
    return path


class TestConfigLoader:
    """Tests for ConfigLoader.load."""

    @pytest.mark.unit
    def test_defaults_without_path(self) -> None:
        """No path yields the built-in defaults."""
        ConfigMetrics.reset()
        config = ConfigLoader().load(None)

        assert config == ScoringConfig()
        assert config.hybrid.weights.is_balanced
        assert ConfigMetrics.get_instance().defaults_used == 1

    @pytest.mark.integration
    def test_partial_file_merges_with_defaults(self, config_dir: Path) -> None:
        """Unspecified sections keep their defaults."""
        path = _write(
            config_dir,
            """
version: "1.0"
keyword:
  max_keyword_score: 5.0
hybrid:
  weights:
    keyword: 0.2
    similarity: 0.6
    feedback: 0.2
""",
        )
        loader = ConfigLoader()
        config = loader.load(path)

        assert config.keyword.max_keyword_score == 5.0
        assert config.keyword.title_weight == 2.0
        assert config.hybrid.weights.similarity == 0.6
        assert config.similarity.thresholds.tier4_min == 0.8
        assert loader.checksum is not None
        assert ConfigMetrics.get_instance().files_loaded == 1

    @pytest.mark.integration
    def test_empty_file_is_defaults(self, config_dir: Path) -> None:
        """An empty file is the same as no file."""
        path = _write(config_dir, "")
        assert ConfigLoader().load(path) == ScoringConfig()

    @pytest.mark.integration
    def test_unbalanced_weights_are_accepted(self, config_dir: Path) -> None:
        """Weights that do not sum to 1 load but are flagged."""
        path = _write(
            config_dir,
            "hybrid:\n  weights:\n    keyword: 0.5\n    similarity: 0.5\n"
            "    feedback: 0.5\n",
        )
        config = ConfigLoader().load(path)
        assert not config.hybrid.weights.is_balanced
        assert config.hybrid.weights.total == pytest.approx(1.5)

    @pytest.mark.integration
    def test_negative_weight_rejected(self, config_dir: Path) -> None:
        """Negative weights fail validation."""
        path = _write(config_dir, "hybrid:\n  weights:\n    keyword: -0.1\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(path)

        assert any("hybrid.weights.keyword" in e["loc"] for e in exc_info.value.errors)
        assert ConfigMetrics.get_instance().config_validation_errors_total >= 1

    @pytest.mark.integration
    def test_thresholds_must_descend(self, config_dir: Path) -> None:
        """Tier thresholds out of order fail validation."""
        path = _write(
            config_dir,
            "similarity:\n  thresholds:\n    tier4_min: 0.5\n"
            "    tier3_min: 0.65\n    tier2_min: 0.4\n",
        )
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(path)
        assert any("tier4_min > tier3_min" in e["msg"] for e in exc_info.value.errors)

    @pytest.mark.integration
    def test_unknown_key_rejected(self, config_dir: Path) -> None:
        """Typos in keys are reported instead of ignored."""
        path = _write(config_dir, "keyword:\n  max_keywrd_score: 5\n")
        with pytest.raises(ConfigValidationError):
            ConfigLoader().load(path)

    @pytest.mark.integration
    def test_invalid_yaml(self, config_dir: Path) -> None:
        """YAML syntax errors are reported with their type."""
        path = _write(config_dir, "keyword: [unclosed\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(path)
        assert exc_info.value.errors[0]["type"] == "yaml_parse_error"

    @pytest.mark.integration
    def test_missing_file(self, config_dir: Path) -> None:
        """A path that does not exist is a load error."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(config_dir / "absent.yaml")
        assert exc_info.value.errors[0]["type"] == "file_not_found"
        assert exc_info.value.file_path.endswith("absent.yaml")

    @pytest.mark.integration
    def test_batch_size_bounds(self, config_dir: Path) -> None:
        """Batch size is limited to 1..1000."""
        path = _write(config_dir, "enrichment:\n  batch_size: 5000\n")
        with pytest.raises(ConfigValidationError):
            ConfigLoader().load(path)

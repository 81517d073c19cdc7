"""
Unit tests for the command-line interface.
"""

import json

import pytest
from click.testing import CliRunner

from activity_sense.cli import cli
from activity_sense.config.settings import get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("AI_API_KEY", "API_KEY", "BACKEND", "SOURCE", "ENVIRONMENT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def write_config(tmp_path, text: str) -> str:
    path = tmp_path / "test.env"
    path.write_text(text)
    return str(path)


class TestConfigCommands:
    def test_show_hides_secrets(self, tmp_path):
        config = write_config(tmp_path, "API_KEY=super-secret\nBACKEND=gemini\nLOG_LEVEL=WARNING\n")
        result = CliRunner().invoke(cli, ["--config", config, "config", "show"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["backend"] == "gemini"
        assert data["api_key_configured"] is True
        assert "super-secret" not in result.output

    def test_validate_passes(self, tmp_path):
        config = write_config(tmp_path, "BACKEND=heuristic\n")
        result = CliRunner().invoke(cli, ["--config", config, "config", "validate"])
        assert result.exit_code == 0
        assert "validation passed" in result.output

    def test_validate_reports_missing_key(self, tmp_path):
        config = write_config(tmp_path, "BACKEND=gemini\n")
        result = CliRunner().invoke(cli, ["--config", config, "config", "validate"])
        assert result.exit_code == 1
        assert "API_KEY" in result.output

    def test_invalid_config_file(self, tmp_path):
        config = write_config(tmp_path, "BACKEND=oracle\n")
        result = CliRunner().invoke(cli, ["--config", config, "config", "show"])
        assert result.exit_code == 1


class TestSessionCommands:
    def test_run_prints_labels(self, tmp_path):
        config = write_config(
            tmp_path,
            "BACKEND=heuristic\nSAMPLE_RATE_HZ=100\nWINDOW_SECONDS=1\nTICK_INTERVAL=0.2\n",
        )
        result = CliRunner().invoke(
            cli,
            ["--config", config, "run", "--duration", "1.5", "--profile", "still", "--format", "json"],
        )
        assert result.exit_code == 0, result.output
        labels = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        assert labels
        assert labels[-1]["activity"] == "Stationary"

    def test_collect_exports_file(self, tmp_path):
        config = write_config(
            tmp_path,
            "BACKEND=heuristic\nSAMPLE_RATE_HZ=100\nWINDOW_SECONDS=1\nRECORDER_INTERVAL=0.1\n",
        )
        output = tmp_path / "walking.json"
        result = CliRunner().invoke(
            cli,
            ["--config", config, "collect", "--label", "Walking",
             "--duration", "1.0", "--output", str(output)],
        )
        assert result.exit_code == 0, result.output
        rows = json.loads(output.read_text())
        assert rows
        assert rows[0]["label"] == "Walking"

    def test_collect_requires_label(self):
        result = CliRunner().invoke(cli, ["collect"])
        assert result.exit_code != 0


class TestVersion:
    def test_version(self):
        result = CliRunner().invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "activity-sense version" in result.output


class TestBuildBackend:
    def test_heuristic_thresholds_come_from_settings(self):
        from activity_sense.commands.run import build_backend
        from activity_sense.config.settings import Settings
        from activity_sense.sensing.feature_extractor import MotionFeatures

        # acc std norm ~1.7 m/s^2, gyro std norm ~34.6 deg/s
        features = MotionFeatures(
            acc_y_mean=9.8, acc_x_std=1.0, acc_y_std=1.0, acc_z_std=1.0,
            gyro_alpha_std=20.0, gyro_beta_std=20.0, gyro_gamma_std=20.0,
            n_samples=100,
        )

        default = build_backend(Settings(backend="heuristic"))
        tuned = build_backend(Settings(backend="heuristic", heuristic_phone_rotation_threshold=30.0))

        assert default.predict(features).activity == "Walking"
        assert tuned.predict(features).activity == "Phone Usage"

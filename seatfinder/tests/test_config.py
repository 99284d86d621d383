"""Tests for configuration loading."""

import pytest
import yaml
from pydantic import ValidationError

from seatfinder.engine.config import Config, MatcherConfig, SourceConfig
from seatfinder.engine.error_handling import InvalidConfiguration
from seatfinder.engine.index import MatchOptions, build
from seatfinder.engine.sources import CsvSource, GoogleSheetSource


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep real config files and env vars out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("SEATFINDER_SHEET_ID", raising=False)
    monkeypatch.delenv("SEATFINDER_LOG_LEVEL", raising=False)


def test_defaults_match_engine_defaults():
    config = Config.load()

    assert config.matcher.to_options() == MatchOptions()
    assert config.source.kind == "google_sheet"
    assert config.log_level == "WARNING"


def test_load_yaml(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({
        "matcher": {"threshold": 0.3, "keys": ["last_name"]},
        "source": {"sheet_id": "sheet-1", "sheet_name": "Guests"},
        "log_level": "debug",
    }))

    config = Config.load(path)

    assert config.matcher.threshold == 0.3
    assert config.matcher.to_options().keys == ("last_name",)
    assert config.source.sheet_name == "Guests"
    assert config.log_level == "DEBUG"


def test_default_location_is_picked_up(tmp_path):
    (tmp_path / "seatfinder.yaml").write_text("source:\n  sheet_id: from-cwd\n")

    assert Config.load().source.sheet_id == "from-cwd"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert Config.load(path) == Config()


def test_malformed_yaml_is_invalid_configuration(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("matcher: [unclosed\n")

    with pytest.raises(InvalidConfiguration, match="Cannot parse"):
        Config.load(path)


def test_non_mapping_yaml_is_invalid_configuration(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- threshold\n- 0.3\n")

    with pytest.raises(InvalidConfiguration, match="mapping"):
        Config.load(path)


def test_save_and_reload(tmp_path):
    config = Config(source=SourceConfig(sheet_id="abc"), matcher=MatcherConfig(distance=50))
    path = tmp_path / "nested" / "config.yaml"

    config.save(path)

    assert Config.load(path) == config


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SEATFINDER_SHEET_ID", "env-sheet")
    monkeypatch.setenv("SEATFINDER_LOG_LEVEL", "info")

    config = Config.load()

    assert config.source.sheet_id == "env-sheet"
    assert config.log_level == "INFO"


def test_out_of_range_threshold_fails_at_build():
    config = Config(matcher=MatcherConfig(threshold=1.2))

    with pytest.raises(InvalidConfiguration):
        build([], config.matcher.to_options())


def test_invalid_log_level():
    with pytest.raises(ValidationError):
        Config(log_level="loud")


def test_csv_source_requires_path():
    with pytest.raises(ValidationError):
        SourceConfig(kind="csv")


def test_negative_retries_rejected():
    with pytest.raises(ValidationError):
        SourceConfig(max_retries=-1)


def test_create_source(tmp_path):
    sheet = SourceConfig(sheet_id="abc", sheet_name="Tab", max_retries=0).create_source()
    assert isinstance(sheet, GoogleSheetSource)
    assert sheet.sheet_name == "Tab"
    assert sheet.retry.max_retries == 0

    csv_source = SourceConfig(kind="csv", csv_path=tmp_path / "g.csv").create_source()
    assert isinstance(csv_source, CsvSource)

    with pytest.raises(ValueError):
        SourceConfig().create_source()

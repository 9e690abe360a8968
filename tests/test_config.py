"""Tests for tracker configuration."""

import json
import pytest
import tempfile
from pathlib import Path

from outreach_tracker.followup import ConfigManager, DEFAULT_SEQUENCE, FollowUpScheduler
from outreach_tracker.storage import Platform


@pytest.fixture
def config_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "config.json"


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_defaults_without_file(self, config_path):
        config = ConfigManager(config_path).config

        assert config.sequence == DEFAULT_SEQUENCE
        assert config.follow_up_hour == 9
        assert config.default_profile == "main"
        assert config.max_attempts == 5

    def test_save_and_reload(self, config_path):
        manager = ConfigManager(config_path)
        manager.set_sequence({1: Platform.EMAIL, 2: Platform.WHATSAPP, 3: Platform.EMAIL})
        manager.set_follow_up_hour(10)
        manager.set_default_profile("agency")

        config = ConfigManager(config_path).config
        assert config.sequence == {1: Platform.EMAIL, 2: Platform.WHATSAPP, 3: Platform.EMAIL}
        assert config.follow_up_hour == 10
        assert config.default_profile == "agency"

        scheduler = FollowUpScheduler.from_config(config)
        assert scheduler.max_attempts == 3
        assert scheduler.follow_up_hour == 10

    def test_invalid_hour(self, config_path):
        with pytest.raises(ValueError):
            ConfigManager(config_path).set_follow_up_hour(24)

    def test_invalid_sequence(self, config_path):
        with pytest.raises(ValueError):
            ConfigManager(config_path).set_sequence({})

    def test_corrupt_file_falls_back_to_defaults(self, config_path):
        config_path.write_text("{broken")
        assert ConfigManager(config_path).config.sequence == DEFAULT_SEQUENCE

    def test_out_of_range_hour_falls_back_to_defaults(self, config_path):
        config_path.write_text(json.dumps({"follow_up_hour": 25, "default_profile": "agency"}))
        config = ConfigManager(config_path).config

        assert config.follow_up_hour == 9
        assert config.default_profile == "main"
        assert FollowUpScheduler.from_config(config).follow_up_hour == 9

    def test_home_directory_resolved_at_call_time(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        manager = ConfigManager()

        assert manager.config_path == tmp_path / ".outreach-tracker" / "config.json"
        assert manager.config.db_path == tmp_path / ".outreach-tracker" / "leads.db"

    def test_unknown_platform_falls_back_to_defaults(self, config_path):
        config_path.write_text(json.dumps({"sequence": {"1": "MySpace"}, "follow_up_hour": 8}))
        config = ConfigManager(config_path).config

        assert config.sequence == DEFAULT_SEQUENCE
        assert config.follow_up_hour == 9

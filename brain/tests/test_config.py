"""Tests for config loading, env overrides and saving."""

import json
import os
import pytest
from unittest.mock import patch


class TestDefaults:
    def test_llm_config_defaults(self):
        from brain.common.config import LLMConfig
        cfg = LLMConfig()
        assert cfg.provider == "google"
        assert cfg.model == cfg.google_model
        assert cfg.anthropic_api_key == ""

    def test_model_follows_provider(self):
        from brain.common.config import LLMConfig
        assert LLMConfig(provider="openai").model == "gpt-4o-mini"
        assert LLMConfig(provider="nope").model == ""

    def test_orchestrator_defaults(self):
        from brain.common.config import OrchestratorConfig
        cfg = OrchestratorConfig()
        assert cfg.language == "de"
        assert cfg.mail_days == 14
        assert cfg.calendar_days == 7
        assert cfg.login_urls["ms_graph"] == "/api/auth/microsoft/login"
        assert cfg.sync_terms is None

    def test_login_urls_not_shared(self):
        from brain.common.config import OrchestratorConfig
        a = OrchestratorConfig()
        a.login_urls["gmail"] = "/changed"
        assert OrchestratorConfig().login_urls["gmail"] == "/api/auth/google/login"

    def test_storage_paths(self, tmp_path):
        from brain.common.config import StorageConfig
        cfg = StorageConfig(data_dir=str(tmp_path))
        assert cfg.brain_path == tmp_path / "personal_brain.json"
        assert cfg.memory_path == tmp_path / "memory.json"


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        from brain.common.config import load_config
        with patch("brain.common.config.CONFIG_PATH", tmp_path / "absent.json"):
            cfg = load_config()
        assert cfg.policy.morning_shield_end_hour == 10

    def test_sections_are_parsed(self, tmp_path):
        from brain.common.config import load_config
        config_data = {
            "llm": {"provider": "openai", "openai_api_key": "sk-test", "openai_model": "gpt-4o"},
            "policy": {"morning_shield_end_hour": 9},
            "orchestrator": {
                "language": "en",
                "mail_days": "3",
                "login_urls": {"gmail": "https://example.test/login"},
                "sync_terms": ["digest"],
            },
        }
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps(config_data))

        with patch("brain.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.llm.provider == "openai"
        assert cfg.llm.model == "gpt-4o"
        assert cfg.policy.morning_shield_end_hour == 9
        assert cfg.orchestrator.language == "en"
        assert cfg.orchestrator.mail_days == 3
        assert cfg.orchestrator.login_urls["gmail"] == "https://example.test/login"
        assert cfg.orchestrator.login_urls["salesforce"] == "/api/auth/salesforce/login"
        assert cfg.orchestrator.sync_terms == ["digest"]

    def test_corrupt_file_logs_warning(self, tmp_path, caplog):
        import logging
        from brain.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{oops")
        with patch("brain.common.config.CONFIG_PATH", config_file), \
             caplog.at_level(logging.WARNING, logger="brain.common.config"):
            cfg = load_config()
        assert cfg.llm.provider in ("google", os.getenv("BRAIN_LLM_PROVIDER"))
        assert "Failed to load config file" in caplog.text

    def test_env_var_overrides(self, tmp_path):
        from brain.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"llm": {"provider": "google"}}))

        env = {"OPENAI_API_KEY": "sk-env", "BRAIN_LLM_PROVIDER": "openai", "BRAIN_LANGUAGE": "en"}
        with patch("brain.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=False):
            cfg = load_config()

        assert cfg.llm.openai_api_key == "sk-env"
        assert cfg.llm.provider == "openai"
        assert cfg.orchestrator.language == "en"

    def test_gemini_api_key_env_var(self, tmp_path):
        """GEMINI_API_KEY should also set google_api_key."""
        from brain.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        env = {"GEMINI_API_KEY": "gem-key"}
        with patch("brain.common.config.CONFIG_PATH", config_file), \
             patch.dict(os.environ, env, clear=False):
            cfg = load_config()

        assert cfg.llm.google_api_key == "gem-key"


class TestSaveConfig:
    def test_save_config_omits_env_keys(self, tmp_path):
        from brain.common.config import load_config, save_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{}")

        env = {"ANTHROPIC_API_KEY": "sk-from-env"}
        with patch("brain.common.config.CONFIG_PATH", config_file), \
             patch("brain.common.config.CONFIG_DIR", tmp_path), \
             patch.dict(os.environ, env, clear=False):
            cfg = load_config()
            save_config(cfg)

        saved = json.loads(config_file.read_text())
        assert saved["llm"]["anthropic_api_key"] == ""

    def test_save_round_trip(self, tmp_path):
        from brain.common.config import BrainConfig, OrchestratorConfig, load_config, save_config
        config_file = tmp_path / "config.json"
        cfg = BrainConfig(orchestrator=OrchestratorConfig(language="en", calendar_days=5, sync_terms=["digest"]))
        cfg.llm.openai_api_key = "sk-file"

        with patch("brain.common.config.CONFIG_PATH", config_file), \
             patch("brain.common.config.CONFIG_DIR", tmp_path):
            save_config(cfg)
            loaded = load_config()

        saved = json.loads(config_file.read_text())
        assert saved["llm"]["openai_api_key"] == "sk-file"
        assert "domain_terms" not in saved["orchestrator"]
        assert loaded.orchestrator.calendar_days == 5
        assert loaded.orchestrator.sync_terms == ["digest"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_saved_file_is_private(self, tmp_path):
        from brain.common.config import BrainConfig, save_config
        config_file = tmp_path / "config.json"
        with patch("brain.common.config.CONFIG_PATH", config_file), \
             patch("brain.common.config.CONFIG_DIR", tmp_path):
            save_config(BrainConfig())
        assert config_file.stat().st_mode & 0o777 == 0o600

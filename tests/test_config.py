"""Tests for configuration loading."""

from pathlib import Path

import pytest

from hypertroq.config import AIConfiguration, load_app_config, reset_config_cache


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "hypertroq.yaml"
    path.write_text("log_level: DEBUG\ntier_cache_ttl: 60\nwarp_speed: 9\n", encoding="utf-8")
    return path


class TestLoadAppConfig:
    """Tests for load_app_config."""

    def test_defaults(self, tmp_path):
        config = load_app_config()
        assert config.data_dir == tmp_path / "data"
        assert config.db_path == tmp_path / "data" / "hypertroq.db"
        assert config.log_level == "INFO"
        assert config.embedding_dimensions == 768

    def test_yaml_values(self, config_file):
        config = load_app_config(config_file, use_cache=False)
        assert config.log_level == "DEBUG"
        assert config.tier_cache_ttl == 60
        assert not hasattr(config, "warp_speed")

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("APP_ENV", "production")
        config = load_app_config(config_file, use_cache=False)
        assert config.log_level == "WARNING"
        assert config.app_env == "production"

    def test_config_path_from_env(self, config_file, monkeypatch):
        monkeypatch.setenv("HYPERTROQ_CONFIG", str(config_file))
        reset_config_cache()
        assert load_app_config().tier_cache_ttl == 60

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")
        assert load_app_config(path, use_cache=False).tier_cache_ttl == 300

    def test_cached(self):
        first = load_app_config()
        assert load_app_config() is first
        reset_config_cache()
        assert load_app_config() is not first

    def test_api_key(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "secret")
        assert load_app_config().get_api_key() == "secret"
        monkeypatch.delenv("GEMINI_API_KEY")
        assert load_app_config().get_api_key() is None


class TestAIConfiguration:
    def test_from_dict(self):
        config = AIConfiguration.from_dict({"temperature": 0.7, "unknown": True, "top_k": None})
        assert config.temperature == 0.7
        assert config.top_k == 40

    def test_round_trip_keys(self):
        assert set(AIConfiguration().to_dict()) == {
            "system_prompt",
            "free_model_name",
            "pro_model_name",
            "temperature",
            "top_p",
            "top_k",
            "max_tokens",
            "rag_max_chunks",
            "rag_similarity_threshold",
            "rag_high_relevance_threshold",
            "strict_muscle_priority",
            "use_knowledge_base",
            "hypertrophy_instructions",
        }

    def test_data_dir_is_path(self, monkeypatch):
        monkeypatch.setenv("HYPERTROQ_DATA_DIR", "relative/data")
        assert load_app_config(use_cache=False).data_dir == Path("relative/data")

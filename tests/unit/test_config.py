"""
Unit tests for configuration loading and validation.
"""

import logging

import pytest
import yaml

from ai_code_reviewer.config import AppConfig, ConfigManager, DEFAULT_INCLUDE, DEFAULT_MODEL_NAME


CONFIG_ENV_NAMES = [
    "GITHUB_TOKEN", "OPENAI_API_KEY", "OPENAI_API_MODEL", "INCLUDE", "INCLUDE_PATTERNS",
    "INPUT_GITHUB_TOKEN", "INPUT_OPENAI_API_KEY", "INPUT_OPENAI_API_MODEL", "INPUT_INCLUDE",
    "INPUT_PULL_NUMBER", "PULL_NUMBER", "COMMIT_POLICY", "INPUT_COMMIT_POLICY", "REVIEWER",
    "INPUT_REVIEWER", "MAX_CONCURRENCY", "INPUT_MAX_CONCURRENCY", "LOG_LEVEL", "LOG_FILE",
    "MODEL_PROVIDER", "MODEL_TEMPERATURE", "MODEL_MAX_TOKENS", "FALLBACK_POLICY", "BASE_BRANCH",
    "EXCLUDE_BASE_MERGES", "INPUT_TEMPERATURE", "INPUT_MAX_TOKENS", "INPUT_MODEL_PROVIDER",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in CONFIG_ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestAppConfigFromEnv:
    """Unit tests for AppConfig.from_env."""

    def test_defaults(self, clean_env):
        config = AppConfig.from_env()

        assert config.github.token is None
        assert config.model.model_name == DEFAULT_MODEL_NAME
        assert config.model.temperature == 0.2
        assert config.model.max_tokens == 700
        assert config.review.include_patterns == DEFAULT_INCLUDE
        assert config.review.max_concurrency == 1
        assert config.commits.policy == "cross_request"
        assert config.commits.exclude_base_merges is True
        assert config.pull_number is None

    def test_missing_model_warns(self, clean_env, caplog):
        with caplog.at_level(logging.WARNING):
            AppConfig.from_env()

        assert "OPENAI_API_MODEL is not provided" in caplog.text

    def test_action_inputs_take_precedence(self, clean_env):
        """Test INPUT_<NAME> values win over plain environment variables."""
        clean_env.setenv("GITHUB_TOKEN", "env-token")
        clean_env.setenv("INPUT_GITHUB_TOKEN", "input-token")
        clean_env.setenv("INPUT_OPENAI_API_MODEL", "gpt-4o-mini")
        clean_env.setenv("INPUT_PULL_NUMBER", "42")
        clean_env.setenv("INPUT_INCLUDE", "**/*.ts, **/*.tsx")

        config = AppConfig.from_env()

        assert config.github.token == "input-token"
        assert config.model.model_name == "gpt-4o-mini"
        assert config.pull_number == 42
        assert config.review.include_patterns == "**/*.ts, **/*.tsx"

    def test_blank_include_uses_default(self, clean_env):
        clean_env.setenv("INPUT_INCLUDE", "   ")

        assert AppConfig.from_env().review.include_patterns == DEFAULT_INCLUDE

    def test_non_numeric_pull_number_ignored(self, clean_env):
        clean_env.setenv("INPUT_PULL_NUMBER", "abc")

        assert AppConfig.from_env().pull_number is None


class TestAppConfigValidation:
    """Unit tests for AppConfig.validate."""

    def make_config(self, **overrides):
        config = AppConfig()
        config.github.token = "token"
        config.model.api_key = "key"
        for section, values in overrides.items():
            for key, value in values.items():
                setattr(getattr(config, section), key, value)
        return config

    def test_valid_config(self):
        self.make_config().validate()

    def test_errors_collected(self):
        """Test every problem is reported in one error."""
        config = self.make_config(
            github={"token": None},
            model={"temperature": 3.0},
            review={"fallback_policy": "drop"},
        )

        with pytest.raises(ValueError) as exc_info:
            config.validate()

        message = str(exc_info.value)
        assert "GitHub token is required" in message
        assert "Temperature" in message
        assert "Invalid fallback policy" in message

    def test_openai_key_required(self):
        with pytest.raises(ValueError, match="OpenAI API key"):
            self.make_config(model={"api_key": None}).validate()

    def test_local_model_needs_no_key(self):
        self.make_config(model={"api_key": None, "provider": "transformers"}).validate()

    def test_reviewer_scoped_needs_reviewer(self):
        with pytest.raises(ValueError, match="Reviewer is required"):
            self.make_config(commits={"policy": "reviewer_scoped"}).validate()

    def test_unknown_commit_policy(self):
        with pytest.raises(ValueError, match="Invalid commit policy"):
            self.make_config(commits={"policy": "latest"}).validate()

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            self.make_config(logging={"level": "LOUD"}).validate()


class TestAppConfigYaml:
    def test_from_yaml(self, tmp_path):
        config_file = tmp_path / "reviewer.yml"
        config_file.write_text(yaml.safe_dump({
            "github": {"token": "yaml-token"},
            "model": {"api_key": "yaml-key", "model_name": "gpt-4o-mini"},
            "review": {"include_patterns": "**/*.py", "max_concurrency": 4},
            "commits": {"policy": "branch_comparison", "base_branch": "develop"},
            "pull_number": 9,
        }), encoding="utf-8")

        config = AppConfig.from_yaml(str(config_file))

        assert config.github.token == "yaml-token"
        assert config.model.model_name == "gpt-4o-mini"
        assert config.review.max_concurrency == 4
        assert config.commits.base_branch == "develop"
        assert config.pull_number == 9
        config.validate()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.from_yaml(str(tmp_path / "absent.yml"))

    def test_to_dict_redacts_secrets(self):
        config = AppConfig()
        config.github.token = "secret"
        config.model.api_key = "secret"

        data = config.to_dict()

        assert "token" not in data["github"]
        assert "api_key" not in data["model"]
        assert data["commits"]["policy"] == "cross_request"


class TestConfigManager:
    def test_validates_on_creation(self):
        with pytest.raises(ValueError):
            ConfigManager(AppConfig())

    def test_exposes_config(self):
        config = AppConfig()
        config.github.token = "token"
        config.model.api_key = "key"

        assert ConfigManager(config).config is config

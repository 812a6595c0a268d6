import pytest


def test_settings_loads_from_env(monkeypatch):
    monkeypatch.setenv("GITLAB_TOKEN", "test-token")
    monkeypatch.setenv("GITLAB_WEBHOOK_SECRET", "test-secret")
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("LINTER_CONFIG_PATH", "/etc/lint-review/config.yaml")

    from lint_review.config import Settings
    settings = Settings()

    assert settings.gitlab_token == "test-token"
    assert settings.gitlab_webhook_secret == "test-secret"
    assert settings.github_token == "gh-token"
    assert settings.linter_config_path == "/etc/lint-review/config.yaml"


def test_settings_defaults(monkeypatch):
    for name in ("GITLAB_TOKEN", "GITHUB_TOKEN", "MAX_CONCURRENCY", "LINTER_TIMEOUT", "REVIEWER_NAME"):
        monkeypatch.delenv(name, raising=False)

    from lint_review.config import Settings
    settings = Settings(_env_file=None)
    assert settings.gitlab_url == "https://gitlab.com"
    assert settings.github_api_url == "https://api.github.com"
    assert settings.max_concurrency == 4
    assert settings.linter_timeout == 600.0
    assert settings.reviewer_name == "Lint Review"

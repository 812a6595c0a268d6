from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    # GitLab
    gitlab_url: str = "https://gitlab.com"
    gitlab_token: str | None = None
    gitlab_webhook_secret: str | None = None

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: str | None = None
    github_webhook_secret: str | None = None

    # Linters
    linter_config_path: str | None = "config.yaml"
    linter_timeout: float = 600.0
    max_concurrency: int = 4
    workspace_root: str | None = None

    # Alerts for unexpected linter output
    notify_webhook_url: str | None = None

    # Defaults
    reviewer_name: str = "Lint Review"
    log_level: str = "INFO"

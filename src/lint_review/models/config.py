from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ConfigError(Exception):
    """Linter configuration document could not be loaded."""
    pass


class ReportType(str, Enum):
    PR_REVIEW = "github_pr_review"
    CHECK_RUN = "github_check_run"


class Enablement(str, Enum):
    INHERIT = "inherit"
    ENABLED = "enabled"
    DISABLED = "disabled"


# linter name -> GlobalConfig attribute holding its shared config file
SHARED_CONFIG_FIELDS = {
    "golangci-lint": "golangci_lint_config",
    "pmdcheck": "java_pmd_check_rule_config",
    "stylecheck": "java_style_check_rule_config",
}


class GlobalConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    github_report_type: ReportType = Field(ReportType.PR_REVIEW, alias="githubReportType")
    golangci_lint_config: str = Field("", alias="golangciLintConfig")
    java_pmd_check_rule_config: str = Field("", alias="javapmdcheckruleConfig")
    java_style_check_rule_config: str = Field("", alias="javastylecheckruleConfig")

    @field_validator("github_report_type", mode="before")
    @classmethod
    def _empty_report_type(cls, value):
        return value or ReportType.PR_REVIEW

    def default_config_path(self, linter: str) -> str | None:
        """Shared config file for a linter, None if there is none."""
        attr = SHARED_CONFIG_FIELDS.get(linter)
        if attr is None:
            return None
        return getattr(self, attr) or None


class LinterSettings(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enable: Enablement = Enablement.INHERIT
    # None: tool default args; []: explicitly no args
    args: list[str] | None = None
    config_path: str = Field("", alias="configPath")
    work_dir: str = Field("", alias="workDir")

    @field_validator("enable", mode="before")
    @classmethod
    def _parse_enable(cls, value):
        if value is None:
            return Enablement.INHERIT
        if value is True:
            return Enablement.ENABLED
        if value is False:
            return Enablement.DISABLED
        return value

    @field_validator("config_path", "work_dir", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @property
    def enabled(self) -> bool:
        return self.enable is Enablement.ENABLED


class Config(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    global_default_config: GlobalConfig = Field(default_factory=GlobalConfig, alias="globalDefaultConfig")
    custom_config: dict[str, dict[str, LinterSettings]] = Field(default_factory=dict, alias="customConfig")

    @field_validator("global_default_config", mode="before")
    @classmethod
    def _empty_global(cls, value):
        return {} if value is None else value

    @field_validator("custom_config", mode="before")
    @classmethod
    def _empty_custom(cls, value):
        if value is None:
            return {}
        if not isinstance(value, dict):
            return value
        custom = {}
        for scope, linters in value.items():
            if isinstance(linters, dict):
                # `luacheck:` with no body is an empty block
                linters = {name: block or {} for name, block in linters.items()}
            custom[scope] = linters or {}
        return custom

    def scope(self, org: str, repo: str | None = None) -> dict[str, LinterSettings]:
        """Linter blocks configured for an org, or for one repo of that org."""
        key = f"{org}/{repo}" if repo else org
        return self.custom_config.get(key, {})

    def has_scope(self, org: str, repo: str | None = None) -> bool:
        key = f"{org}/{repo}" if repo else org
        return key in self.custom_config

    def get(self, org: str, repo: str, linter: str) -> LinterSettings:
        """Resolve settings for a linter in org/repo.

        The most specific scope that mentions the linter is returned as a
        whole; blocks from different scopes are never merged. Only the shared
        config path from the global defaults fills an empty config_path.
        """
        settings = None
        for scope in (self.scope(org, repo), self.scope(org)):
            if linter in scope:
                settings = scope[linter]
                break
        if settings is None:
            # a configured org or repo that leaves the linter out disables it
            if self.has_scope(org, repo) or self.has_scope(org):
                settings = LinterSettings(enable=Enablement.DISABLED)
            else:
                settings = LinterSettings()

        if not settings.config_path:
            default_path = self.global_default_config.default_config_path(linter)
            if default_path:
                settings = settings.model_copy(update={"config_path": default_path})
        return settings

    @property
    def report_type(self) -> ReportType:
        return self.global_default_config.github_report_type


def parse_config(raw: str, source: str = "<string>") -> Config:
    """Parse a YAML configuration document."""
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {source}: {e}") from e

    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"Config {source} must be a mapping, got {type(data).__name__}")

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {source}: {e}") from e


def load_config(path: str | Path | None) -> Config:
    """Load the linter configuration file; a missing file means defaults."""
    if not path:
        return Config()
    config_file = Path(path)
    if not config_file.exists():
        return Config()
    try:
        raw = config_file.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config {config_file}: {e}") from e
    return parse_config(raw, source=str(config_file))

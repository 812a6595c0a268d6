from .config import (
    Config,
    ConfigError,
    Enablement,
    GlobalConfig,
    LinterSettings,
    ReportType,
    load_config,
)
from .finding import Finding, Severity
from .review import NotificationPayload, PostedComment, ReviewInfo
from .webhook import GitHubPullRequestEvent, GitLabMREvent, GitLabNoteEvent

__all__ = [
    "Config",
    "ConfigError",
    "Enablement",
    "GlobalConfig",
    "LinterSettings",
    "ReportType",
    "load_config",
    "Finding",
    "Severity",
    "NotificationPayload",
    "PostedComment",
    "ReviewInfo",
    "GitHubPullRequestEvent",
    "GitLabMREvent",
    "GitLabNoteEvent",
]

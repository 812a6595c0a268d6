from enum import Enum
from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    STYLE = "style"
    NOTE = "note"


class Finding(BaseModel):
    """One diagnostic emitted by a linter, independent of its output format."""
    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    column: int = 0
    message: str
    severity: Severity | None = None
    # first line of a multi-line finding
    start_line: int | None = None

from pydantic import BaseModel


class ReviewInfo(BaseModel):
    org: str
    repo: str
    number: int
    url: str
    head_sha: str = ""
    clone_url: str = ""
    fetch_ref: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.repo}"


class PostedComment(BaseModel):
    """A comment the bot posted on an earlier run."""
    id: int | str
    linter: str
    fingerprint: str
    file: str = ""
    line: int | None = None
    body: str = ""


class NotificationPayload(BaseModel):
    org: str
    repo: str
    url: str
    request_id: str
    linter: str
    message: str

from abc import ABC, abstractmethod
from collections.abc import Callable

from lint_review.models.finding import Finding
from lint_review.models.review import PostedComment, ReviewInfo


FilePredicate = Callable[[str], bool]


class Provider(ABC):
    """Review system backend for one pull/merge request."""

    supports_check_runs = False

    @abstractmethod
    async def get_review_info(self) -> ReviewInfo:
        pass

    @abstractmethod
    async def get_files(self, predicate: FilePredicate | None = None) -> list[str]:
        """Paths changed by the review, deleted files excluded."""
        pass

    @abstractmethod
    async def get_changed_lines(self) -> dict[str, set[int]]:
        """Added or modified line numbers per changed file."""
        pass

    @abstractmethod
    async def list_comments(self, linter: str) -> list[PostedComment]:
        """Comments posted by the bot for a linter."""
        pass

    @abstractmethod
    async def post_comment(self, finding: Finding, body: str) -> None:
        pass

    @abstractmethod
    async def delete_comment(self, comment: PostedComment) -> None:
        pass

    async def create_check_run(self, linter: str, findings: list[Finding]) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not support check runs")

    def git_auth_header(self) -> str | None:
        """HTTP Authorization header for fetching the repository."""
        return None

import base64
import logging
from typing import Any
import httpx

from lint_review.models.finding import Finding, Severity
from lint_review.models.review import PostedComment, ReviewInfo
from lint_review.review.diff import parse_file_patch
from lint_review.review.reconcile import parse_marker
from .base import FilePredicate, Provider


logger = logging.getLogger(__name__)

# GitHub accepts at most 50 annotations per check run request
ANNOTATIONS_PER_REQUEST = 50

ANNOTATION_LEVELS = {
    Severity.ERROR: "failure",
    Severity.WARNING: "warning",
}


class GitHubClient:
    def __init__(self, token: str, api_url: str = "https://api.github.com"):
        self.token = token
        self.api_url = api_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        }

    async def _get_all(self, path: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        async with httpx.AsyncClient() as client:
            while True:
                response = await client.get(
                    f"{self.api_url}{path}",
                    headers=self._headers(),
                    params={"per_page": 100, "page": page},
                    timeout=30.0,
                )
                response.raise_for_status()
                batch = response.json()
                items.extend(batch)
                if len(batch) < 100:
                    return items
                page += 1

    async def get_authenticated_user(self) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_url}/user",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def get_pull(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_url}/repos/{owner}/{repo}/pulls/{number}",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def list_pull_files(self, owner: str, repo: str, number: int) -> list[dict[str, Any]]:
        return await self._get_all(f"/repos/{owner}/{repo}/pulls/{number}/files")

    async def list_review_comments(self, owner: str, repo: str, number: int) -> list[dict[str, Any]]:
        return await self._get_all(f"/repos/{owner}/{repo}/pulls/{number}/comments")

    async def create_review_comment(
        self,
        owner: str,
        repo: str,
        number: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.api_url}/repos/{owner}/{repo}/pulls/{number}/comments",
                headers=self._headers(),
                json=payload,
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def delete_review_comment(self, owner: str, repo: str, comment_id: int | str) -> None:
        async with httpx.AsyncClient() as client:
            response = await client.delete(
                f"{self.api_url}/repos/{owner}/{repo}/pulls/comments/{comment_id}",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()

    async def create_check_run(self, owner: str, repo: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.api_url}/repos/{owner}/{repo}/check-runs",
                headers=self._headers(),
                json=payload,
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def update_check_run(
        self,
        owner: str,
        repo: str,
        check_run_id: int,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.patch(
                f"{self.api_url}/repos/{owner}/{repo}/check-runs/{check_run_id}",
                headers=self._headers(),
                json=payload,
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()


def _annotation(finding: Finding) -> dict[str, Any]:
    annotation = {
        "path": finding.file,
        "start_line": finding.start_line or finding.line,
        "end_line": finding.line,
        "annotation_level": ANNOTATION_LEVELS.get(finding.severity, "notice"),
        "message": finding.message,
    }
    # columns are only allowed on single-line annotations
    if finding.column and annotation["start_line"] == finding.line:
        annotation["start_column"] = finding.column
        annotation["end_column"] = finding.column
    return annotation


class GitHubProvider(Provider):
    """Provider for one GitHub pull request."""

    supports_check_runs = True

    def __init__(self, client: GitHubClient, owner: str, repo: str, number: int):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.number = number
        self._info: ReviewInfo | None = None
        self._files: list[dict[str, Any]] | None = None
        self._login: str | None = None
        self._login_loaded = False

    async def _load_files(self) -> list[dict[str, Any]]:
        if self._files is None:
            self._files = await self.client.list_pull_files(self.owner, self.repo, self.number)
        return self._files

    async def _bot_login(self) -> str | None:
        if not self._login_loaded:
            try:
                user = await self.client.get_authenticated_user()
                self._login = user.get("login")
            except httpx.HTTPStatusError as e:
                # app installation tokens cannot read /user
                logger.warning(f"Cannot resolve bot login, matching comments by marker only: {e}")
            self._login_loaded = True
        return self._login

    async def get_review_info(self) -> ReviewInfo:
        if self._info is None:
            pull = await self.client.get_pull(self.owner, self.repo, self.number)
            self._info = ReviewInfo(
                org=self.owner,
                repo=self.repo,
                number=self.number,
                url=pull.get("html_url", ""),
                head_sha=pull["head"]["sha"],
                clone_url=(pull.get("base", {}).get("repo") or {}).get(
                    "clone_url", f"https://github.com/{self.owner}/{self.repo}.git"
                ),
                fetch_ref=f"refs/pull/{self.number}/head",
            )
        return self._info

    async def get_files(self, predicate: FilePredicate | None = None) -> list[str]:
        files = [f["filename"] for f in await self._load_files() if f.get("status") != "removed"]
        if predicate is not None:
            files = [f for f in files if predicate(f)]
        return files

    async def get_changed_lines(self) -> dict[str, set[int]]:
        changed = {}
        for item in await self._load_files():
            if item.get("status") == "removed":
                continue
            diff_file = parse_file_patch(
                item["filename"],
                item.get("patch", ""),
                old_path=item.get("previous_filename"),
                is_new=item.get("status") == "added",
            )
            changed[diff_file.path] = set(diff_file.added_lines)
        return changed

    async def list_comments(self, linter: str) -> list[PostedComment]:
        login = await self._bot_login()
        comments = []
        for item in await self.client.list_review_comments(self.owner, self.repo, self.number):
            if login and (item.get("user") or {}).get("login") != login:
                continue
            marker = parse_marker(item.get("body", ""))
            if marker is None or marker[0] != linter:
                continue
            comments.append(PostedComment(
                id=item["id"],
                linter=linter,
                fingerprint=marker[1],
                file=item.get("path", ""),
                line=item.get("line"),
                body=item.get("body", ""),
            ))
        return comments

    async def post_comment(self, finding: Finding, body: str) -> None:
        info = await self.get_review_info()
        payload: dict[str, Any] = {
            "body": body,
            "commit_id": info.head_sha,
            "path": finding.file,
            "line": finding.line,
            "side": "RIGHT",
        }
        if finding.start_line and finding.start_line < finding.line:
            payload["start_line"] = finding.start_line
            payload["start_side"] = "RIGHT"
        await self.client.create_review_comment(self.owner, self.repo, self.number, payload)

    async def delete_comment(self, comment: PostedComment) -> None:
        await self.client.delete_review_comment(self.owner, self.repo, comment.id)

    async def create_check_run(self, linter: str, findings: list[Finding]) -> None:
        info = await self.get_review_info()
        annotations = [_annotation(f) for f in findings]
        title = f"{len(findings)} issue(s) found" if findings else "No issues found"
        output = {"title": title, "summary": f"{linter}: {title}"}

        check_run = await self.client.create_check_run(self.owner, self.repo, {
            "name": linter,
            "head_sha": info.head_sha,
            "status": "completed",
            "conclusion": "failure" if findings else "success",
            "output": {**output, "annotations": annotations[:ANNOTATIONS_PER_REQUEST]},
        })

        for start in range(ANNOTATIONS_PER_REQUEST, len(annotations), ANNOTATIONS_PER_REQUEST):
            batch = annotations[start:start + ANNOTATIONS_PER_REQUEST]
            await self.client.update_check_run(self.owner, self.repo, check_run["id"], {
                "output": {**output, "annotations": batch},
            })

    def git_auth_header(self) -> str | None:
        credentials = base64.b64encode(f"x-access-token:{self.client.token}".encode()).decode()
        return f"Basic {credentials}"

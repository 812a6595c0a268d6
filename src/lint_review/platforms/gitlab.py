import base64
import logging
from typing import Any
from urllib.parse import quote
import httpx

from lint_review.models.finding import Finding
from lint_review.models.review import PostedComment, ReviewInfo
from lint_review.review.diff import parse_file_patch
from lint_review.review.reconcile import parse_marker
from .base import FilePredicate, Provider


logger = logging.getLogger(__name__)


class GitLabClient:
    def __init__(self, token: str, base_url: str = "https://gitlab.com"):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.api_url = f"{self.base_url}/api/v4"

    def _headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self.token}

    async def get_current_user(self) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_url}/user",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def get_mr_changes(self, project_id: int, mr_iid: int) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_url}/projects/{project_id}/merge_requests/{mr_iid}/changes",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def get_mr_info(self, project_id: int, mr_iid: int) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_url}/projects/{project_id}/merge_requests/{mr_iid}",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def get_project(self, project_id: int | str) -> dict[str, Any]:
        """Get project info by id or path (e.g., 'group/repo')."""
        encoded = quote(str(project_id), safe="")
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.api_url}/projects/{encoded}",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def get_project_by_path(self, path: str) -> dict[str, Any]:
        return await self.get_project(path)

    async def list_mr_notes(self, project_id: int, mr_iid: int) -> list[dict[str, Any]]:
        """All notes of an MR, following pagination."""
        notes: list[dict[str, Any]] = []
        page = "1"
        async with httpx.AsyncClient() as client:
            while page:
                response = await client.get(
                    f"{self.api_url}/projects/{project_id}/merge_requests/{mr_iid}/notes",
                    headers=self._headers(),
                    params={"per_page": 100, "page": page},
                    timeout=30.0,
                )
                response.raise_for_status()
                notes.extend(response.json())
                page = response.headers.get("x-next-page", "")
        return notes

    async def post_inline_comment(
        self,
        project_id: int,
        mr_iid: int,
        file_path: str,
        line: int,
        comment: str,
        diff_refs: dict[str, str],
    ) -> dict[str, Any]:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.api_url}/projects/{project_id}/merge_requests/{mr_iid}/discussions",
                headers=self._headers(),
                json={
                    "body": comment,
                    "position": {
                        "position_type": "text",
                        "new_path": file_path,
                        "new_line": line,
                        "base_sha": diff_refs["base_sha"],
                        "head_sha": diff_refs["head_sha"],
                        "start_sha": diff_refs["start_sha"],
                    }
                },
                timeout=30.0,
            )
            response.raise_for_status()
            return response.json()

    async def delete_mr_note(self, project_id: int, mr_iid: int, note_id: int | str) -> None:
        async with httpx.AsyncClient() as client:
            response = await client.delete(
                f"{self.api_url}/projects/{project_id}/merge_requests/{mr_iid}/notes/{note_id}",
                headers=self._headers(),
                timeout=30.0,
            )
            response.raise_for_status()


class GitLabProvider(Provider):
    """Provider for one GitLab merge request."""

    def __init__(self, client: GitLabClient, project_id: int, mr_iid: int):
        self.client = client
        self.project_id = project_id
        self.mr_iid = mr_iid
        self._info: ReviewInfo | None = None
        self._changes: dict[str, Any] | None = None
        self._username: str | None = None
        self._username_loaded = False

    async def _load_changes(self) -> dict[str, Any]:
        if self._changes is None:
            self._changes = await self.client.get_mr_changes(self.project_id, self.mr_iid)
        return self._changes

    async def _bot_username(self) -> str | None:
        if not self._username_loaded:
            try:
                user = await self.client.get_current_user()
                self._username = user.get("username")
            except httpx.HTTPStatusError as e:
                logger.warning(f"Cannot resolve bot username, matching notes by marker only: {e}")
            self._username_loaded = True
        return self._username

    async def get_review_info(self) -> ReviewInfo:
        if self._info is None:
            project = await self.client.get_project(self.project_id)
            mr_info = await self.client.get_mr_info(self.project_id, self.mr_iid)
            namespace, _, name = project["path_with_namespace"].rpartition("/")
            self._info = ReviewInfo(
                org=namespace,
                repo=name,
                number=self.mr_iid,
                url=mr_info.get("web_url", ""),
                head_sha=mr_info.get("sha") or "",
                clone_url=project.get("http_url_to_repo", ""),
                fetch_ref=f"refs/merge-requests/{self.mr_iid}/head",
            )
        return self._info

    async def get_files(self, predicate: FilePredicate | None = None) -> list[str]:
        data = await self._load_changes()
        files = [c["new_path"] for c in data["changes"] if not c.get("deleted_file")]
        if predicate is not None:
            files = [f for f in files if predicate(f)]
        return files

    async def get_changed_lines(self) -> dict[str, set[int]]:
        data = await self._load_changes()
        changed = {}
        for change in data["changes"]:
            if change.get("deleted_file"):
                continue
            diff_file = parse_file_patch(
                change["new_path"],
                change.get("diff", ""),
                old_path=change.get("old_path"),
                is_new=change.get("new_file", False),
            )
            changed[diff_file.path] = set(diff_file.added_lines)
        return changed

    async def list_comments(self, linter: str) -> list[PostedComment]:
        username = await self._bot_username()
        comments = []
        for note in await self.client.list_mr_notes(self.project_id, self.mr_iid):
            if note.get("system"):
                continue
            if username and (note.get("author") or {}).get("username") != username:
                continue
            marker = parse_marker(note.get("body", ""))
            if marker is None or marker[0] != linter:
                continue
            position = note.get("position") or {}
            comments.append(PostedComment(
                id=note["id"],
                linter=linter,
                fingerprint=marker[1],
                file=position.get("new_path") or "",
                line=position.get("new_line"),
                body=note.get("body", ""),
            ))
        return comments

    async def post_comment(self, finding: Finding, body: str) -> None:
        data = await self._load_changes()
        await self.client.post_inline_comment(
            project_id=self.project_id,
            mr_iid=self.mr_iid,
            file_path=finding.file,
            line=finding.line,
            comment=body,
            diff_refs=data["diff_refs"],
        )

    async def delete_comment(self, comment: PostedComment) -> None:
        await self.client.delete_mr_note(self.project_id, self.mr_iid, comment.id)

    def git_auth_header(self) -> str | None:
        credentials = base64.b64encode(f"oauth2:{self.client.token}".encode()).decode()
        return f"Basic {credentials}"

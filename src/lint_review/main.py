import hashlib
import hmac
import re
import logging
import uuid
from contextlib import asynccontextmanager
from functools import lru_cache
from fastapi import FastAPI, Header, HTTPException, BackgroundTasks, Request
from pydantic import BaseModel, model_validator

from lint_review.config import Settings
from lint_review.linters.dispatcher import Dispatcher
from lint_review.linters.registry import LinterRegistry, default_registry
from lint_review.models.config import Config, load_config
from lint_review.models.webhook import GitHubPullRequestEvent, GitLabMREvent, GitLabNoteEvent
from lint_review.notify import Notifier
from lint_review.platforms.base import Provider
from lint_review.platforms.github import GitHubClient, GitHubProvider
from lint_review.platforms.gitlab import GitLabClient, GitLabProvider
from lint_review.review.engine import ReviewEngine


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

GITLAB_MR_ACTIONS = ("open", "reopen", "update")
GITHUB_PR_ACTIONS = ("opened", "reopened", "synchronize")
LINT_COMMAND = "/lint"


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_lint_config() -> Config:
    return load_config(get_settings().linter_config_path)


@lru_cache
def get_registry() -> LinterRegistry:
    return default_registry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    # fail fast on a broken linter config
    config = get_lint_config()
    logger.info(
        f"Lint Review starting: {len(get_registry())} linters, "
        f"{len(config.custom_config)} custom scopes, report type {config.report_type.value}"
    )
    yield
    logger.info("Lint Review shutting down...")


app = FastAPI(title="Lint Review", lifespan=lifespan)


class WebhookResponse(BaseModel):
    status: str
    message: str | None = None


class ReviewRequest(BaseModel):
    url: str | None = None
    project_id: int | None = None
    mr_iid: int | None = None

    @model_validator(mode="after")
    def check_params(self):
        if not self.url and not (self.project_id and self.mr_iid):
            raise ValueError("Either url or project_id+mr_iid required")
        return self


class ReviewResponse(BaseModel):
    status: str
    request_id: str | None = None
    linters_run: list[str] | None = None
    comments_posted: int | None = None
    comments_deleted: int | None = None
    summary: str | None = None
    error: str | None = None


def parse_gitlab_mr_url(url: str) -> tuple[str, int]:
    """Parse GitLab MR URL -> (project_path, mr_iid)."""
    match = re.match(r"https?://[^/]+/(.+?)/-/merge_requests/(\d+)", url)
    if not match:
        raise ValueError(f"Invalid GitLab MR URL: {url}")
    return match.group(1), int(match.group(2))


def parse_github_pr_url(url: str) -> tuple[str, str, int]:
    """Parse GitHub PR URL -> (owner, repo, number)."""
    match = re.match(r"https?://[^/]+/([^/]+)/([^/]+)/pull/(\d+)", url)
    if not match:
        raise ValueError(f"Invalid GitHub PR URL: {url}")
    return match.group(1), match.group(2), int(match.group(3))


def verify_github_signature(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(f"sha256={expected}", signature)


def build_engine(settings: Settings) -> ReviewEngine:
    dispatcher = Dispatcher(
        registry=get_registry(),
        config=get_lint_config(),
        notifier=Notifier(settings.notify_webhook_url),
        timeout=settings.linter_timeout,
        max_concurrency=settings.max_concurrency,
    )
    return ReviewEngine(
        dispatcher=dispatcher,
        reviewer_name=settings.reviewer_name,
        workspace_root=settings.workspace_root,
    )


def gitlab_client(settings: Settings) -> GitLabClient:
    if not settings.gitlab_token:
        raise ValueError("GitLab token is not configured")
    return GitLabClient(token=settings.gitlab_token, base_url=settings.gitlab_url)


def gitlab_provider(settings: Settings, project_id: int, mr_iid: int) -> GitLabProvider:
    return GitLabProvider(gitlab_client(settings), project_id, mr_iid)


def github_provider(settings: Settings, owner: str, repo: str, number: int) -> GitHubProvider:
    if not settings.github_token:
        raise ValueError("GitHub token is not configured")
    client = GitHubClient(token=settings.github_token, api_url=settings.github_api_url)
    return GitHubProvider(client, owner, repo, number)


@app.get("/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}


@app.post("/webhook/gitlab", response_model=WebhookResponse)
async def gitlab_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_gitlab_token: str = Header(...),
):
    settings = get_settings()

    # Verify webhook token
    if not settings.gitlab_webhook_secret or not hmac.compare_digest(
        x_gitlab_token, settings.gitlab_webhook_secret
    ):
        raise HTTPException(status_code=401, detail="Invalid webhook token")

    body = await request.json()
    object_kind = body.get("object_kind")

    if object_kind == "merge_request":
        event = GitLabMREvent(**body)

        if event.object_attributes.action in GITLAB_MR_ACTIONS:
            background_tasks.add_task(
                run_gitlab_review,
                project_id=event.project.id,
                mr_iid=event.object_attributes.iid,
            )
            return WebhookResponse(status="accepted", message="Lint scheduled")

    elif object_kind == "note":
        event = GitLabNoteEvent(**body)

        if (
            event.object_attributes.noteable_type == "MergeRequest"
            and event.merge_request
            and LINT_COMMAND in event.object_attributes.note
        ):
            background_tasks.add_task(
                run_gitlab_review,
                project_id=event.project.id,
                mr_iid=event.merge_request.iid,
            )
            return WebhookResponse(status="accepted", message="Lint scheduled")

    return WebhookResponse(status="ignored", message="Event not relevant")


@app.post("/webhook/github", response_model=WebhookResponse)
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: str = Header(...),
    x_hub_signature_256: str | None = Header(None),
):
    settings = get_settings()
    body = await request.body()

    if not settings.github_webhook_secret or not verify_github_signature(
        settings.github_webhook_secret, body, x_hub_signature_256
    ):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    if x_github_event == "ping":
        return WebhookResponse(status="ok", message="pong")

    if x_github_event == "pull_request":
        event = GitHubPullRequestEvent.model_validate_json(body)

        if event.action in GITHUB_PR_ACTIONS:
            background_tasks.add_task(
                run_github_review,
                owner=event.repository.owner.login,
                repo=event.repository.name,
                number=event.number,
            )
            return WebhookResponse(status="accepted", message="Lint scheduled")

    return WebhookResponse(status="ignored", message="Event not relevant")


@app.post("/api/review", response_model=ReviewResponse)
async def trigger_review(request: ReviewRequest):
    """Manually lint a merge request or pull request."""
    settings = get_settings()
    request_id = uuid.uuid4().hex[:12]

    try:
        provider: Provider
        if request.url and "/pull/" in request.url:
            owner, repo, number = parse_github_pr_url(request.url)
            provider = github_provider(settings, owner, repo, number)
        elif request.url:
            project_path, mr_iid = parse_gitlab_mr_url(request.url)
            client = gitlab_client(settings)
            project = await client.get_project_by_path(project_path)
            provider = GitLabProvider(client, project["id"], mr_iid)
        else:
            provider = gitlab_provider(settings, request.project_id, request.mr_iid)

        engine = build_engine(settings)
        result = await engine.review(provider, request_id=request_id)

        return ReviewResponse(
            status="completed",
            request_id=request_id,
            linters_run=result.linters_run,
            comments_posted=result.comments_created,
            comments_deleted=result.comments_deleted,
            summary=result.summary,
        )

    except ValueError as e:
        return ReviewResponse(status="error", request_id=request_id, error=str(e))
    except Exception as e:
        logger.exception(f"[{request_id}] Review failed: {e}")
        return ReviewResponse(status="error", request_id=request_id, error=str(e))


async def run_gitlab_review(project_id: int, mr_iid: int):
    """Background task to lint a GitLab merge request."""
    settings = get_settings()
    request_id = uuid.uuid4().hex[:12]
    try:
        provider = gitlab_provider(settings, project_id, mr_iid)
        await build_engine(settings).review(provider, request_id=request_id)
        logger.info(f"[{request_id}] Lint completed for MR !{mr_iid}")
    except Exception as e:
        logger.exception(f"[{request_id}] Lint failed for MR !{mr_iid}: {e}")


async def run_github_review(owner: str, repo: str, number: int):
    """Background task to lint a GitHub pull request."""
    settings = get_settings()
    request_id = uuid.uuid4().hex[:12]
    try:
        provider = github_provider(settings, owner, repo, number)
        await build_engine(settings).review(provider, request_id=request_id)
        logger.info(f"[{request_id}] Lint completed for {owner}/{repo}#{number}")
    except Exception as e:
        logger.exception(f"[{request_id}] Lint failed for {owner}/{repo}#{number}: {e}")

import pytest
import httpx
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch
from lint_review.linters.dispatcher import Dispatcher, LinterRun
from lint_review.linters.registry import default_registry
from lint_review.models.config import ReportType, parse_config
from lint_review.models.finding import Finding
from lint_review.models.review import ReviewInfo
from lint_review.review.engine import ReviewEngine
from lint_review.review.reporter import ReportResult


CONFIG = parse_config("""
globalDefaultConfig:
  githubReportType: github_check_run
customConfig:
  qbox:
    shellcheck:
      enable: true
    luacheck:
      enable: true
""")


@pytest.fixture
def mock_provider():
    provider = AsyncMock()
    provider.git_auth_header = lambda: None
    provider.get_review_info.return_value = ReviewInfo(
        org="qbox",
        repo="net-cache",
        number=3,
        url="https://github.com/qbox/net-cache/pull/3",
        head_sha="abc",
        clone_url="https://github.com/qbox/net-cache.git",
        fetch_ref="refs/pull/3/head",
    )
    provider.get_files.return_value = ["deploy.sh", "init.lua"]
    return provider


@asynccontextmanager
async def fake_checkout(info, auth_header=None, root=None):
    yield "/tmp/repo"


@pytest.mark.asyncio
async def test_engine_reports_every_linter_run(mock_provider):
    dispatcher = Dispatcher(default_registry(), CONFIG)
    finding = Finding(file="deploy.sh", line=2, message="quote it")
    dispatcher.run = AsyncMock(return_value={
        "shellcheck": LinterRun(linter="shellcheck", findings={"deploy.sh": [finding]}),
        "luacheck": LinterRun(linter="luacheck", failed=True),
    })

    with patch("lint_review.review.engine.checkout", fake_checkout), \
         patch("lint_review.review.engine.Reporter") as reporter_cls:
        reporter_cls.return_value.report = AsyncMock(return_value=ReportResult(created=1, deleted=2))
        engine = ReviewEngine(dispatcher=dispatcher)
        result = await engine.review(mock_provider, request_id="req")

    dispatcher.run.assert_called_once_with(mock_provider, "/tmp/repo", request_id="req")
    calls = reporter_cls.return_value.report.call_args_list
    assert [c.args for c in calls] == [
        ("shellcheck", [finding], ReportType.CHECK_RUN),
        ("luacheck", [], ReportType.CHECK_RUN),
    ]
    assert result.linters_run == ["shellcheck", "luacheck"]
    assert result.failed_linters == ["luacheck"]
    assert result.findings_count == 1
    assert result.comments_created == 2
    assert result.comments_deleted == 4
    assert "failed: luacheck" in result.summary


@pytest.mark.asyncio
async def test_engine_skips_checkout_without_linters(mock_provider):
    mock_provider.get_files.return_value = ["README.md"]
    dispatcher = Dispatcher(default_registry(), CONFIG)
    dispatcher.run = AsyncMock()

    with patch("lint_review.review.engine.checkout") as checkout:
        result = await ReviewEngine(dispatcher=dispatcher).review(mock_provider)

    checkout.assert_not_called()
    dispatcher.run.assert_not_called()
    assert result.summary == "No linters applied"


@pytest.mark.asyncio
async def test_engine_reports_other_linters_when_listing_fails(mock_provider):
    mock_provider.supports_check_runs = False
    mock_provider.get_changed_lines.return_value = {"deploy.sh": {2}, "init.lua": {1}}

    async def list_comments(linter):
        if linter == "shellcheck":
            raise httpx.ConnectError("transient")
        return []

    mock_provider.list_comments.side_effect = list_comments
    dispatcher = Dispatcher(default_registry(), CONFIG)
    dispatcher.run = AsyncMock(return_value={
        "shellcheck": LinterRun(
            linter="shellcheck",
            findings={"deploy.sh": [Finding(file="deploy.sh", line=2, message="quote it")]},
        ),
        "luacheck": LinterRun(
            linter="luacheck",
            findings={"init.lua": [Finding(file="init.lua", line=1, message="unused x")]},
        ),
    })

    with patch("lint_review.review.engine.checkout", fake_checkout):
        result = await ReviewEngine(dispatcher=dispatcher).review(mock_provider)

    assert mock_provider.post_comment.call_count == 1
    assert mock_provider.post_comment.call_args.args[0].file == "init.lua"
    assert result.comments_created == 1
    assert result.linters_run == ["shellcheck", "luacheck"]

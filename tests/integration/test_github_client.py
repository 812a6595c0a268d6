import json

import pytest
from lint_review.models.finding import Finding, Severity
from lint_review.platforms.github import GitHubClient, GitHubProvider
from lint_review.review.reconcile import comment_marker


API = "https://api.github.com/repos/qbox/net-cache"

PULL = {
    "number": 7,
    "html_url": "https://github.com/qbox/net-cache/pull/7",
    "head": {"sha": "headsha", "ref": "feature"},
    "base": {"repo": {"clone_url": "https://github.com/qbox/net-cache.git"}},
}


def make_provider():
    return GitHubProvider(GitHubClient(token="gh-token"), "qbox", "net-cache", 7)


@pytest.mark.integration
@pytest.mark.asyncio
async def test_review_info(httpx_mock):
    httpx_mock.add_response(url=f"{API}/pulls/7", json=PULL)

    info = await make_provider().get_review_info()

    assert info.org == "qbox"
    assert info.repo == "net-cache"
    assert info.head_sha == "headsha"
    assert info.clone_url == "https://github.com/qbox/net-cache.git"
    assert info.fetch_ref == "refs/pull/7/head"
    assert httpx_mock.get_request().headers["Authorization"] == "Bearer gh-token"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_files_skip_removed(httpx_mock):
    httpx_mock.add_response(
        url=f"{API}/pulls/7/files?per_page=100&page=1",
        json=[
            {"filename": "deploy.sh", "status": "modified", "patch": "@@ -1,1 +1,2 @@\n echo a\n+echo $b\n"},
            {"filename": "gone.lua", "status": "removed", "patch": "@@ -1 +0,0 @@\n-x = 1\n"},
            {"filename": "logo.png", "status": "added"},
        ],
    )

    provider = make_provider()

    assert await provider.get_files() == ["deploy.sh", "logo.png"]
    assert await provider.get_changed_lines() == {"deploy.sh": {2}, "logo.png": set()}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_files_pagination(httpx_mock):
    first_page = [{"filename": f"f{i}.sh", "status": "added"} for i in range(100)]
    httpx_mock.add_response(url=f"{API}/pulls/7/files?per_page=100&page=1", json=first_page)
    httpx_mock.add_response(
        url=f"{API}/pulls/7/files?per_page=100&page=2",
        json=[{"filename": "last.sh", "status": "added"}],
    )

    files = await make_provider().get_files()

    assert len(files) == 101
    assert files[-1] == "last.sh"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_list_comments_filters_by_linter(httpx_mock):
    httpx_mock.add_response(url="https://api.github.com/user", json={"login": "lint-bot"})
    httpx_mock.add_response(
        url=f"{API}/pulls/7/comments?per_page=100&page=1",
        json=[
            {"id": 11, "body": "human comment", "path": "deploy.sh", "line": 2, "user": {"login": "alice"}},
            {
                "id": 12,
                "user": {"login": "lint-bot"},
                "body": f"quote it\n\n{comment_marker('shellcheck', '0123456789abcdef')}",
                "path": "deploy.sh",
                "line": 2,
            },
            {
                "id": 13,
                "user": {"login": "alice"},
                "body": f"copied\n\n{comment_marker('shellcheck', 'fedcba9876543210')}",
                "path": "deploy.sh",
                "line": 2,
            },
        ],
    )

    comments = await make_provider().list_comments("shellcheck")

    assert len(comments) == 1
    assert comments[0].id == 12
    assert comments[0].fingerprint == "0123456789abcdef"
    assert comments[0].file == "deploy.sh"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_list_comments_by_marker_when_login_unknown(httpx_mock):
    httpx_mock.add_response(url="https://api.github.com/user", status_code=403)
    comment = {
        "id": 12,
        "user": {"login": "my-app[bot]"},
        "body": f"quote it\n\n{comment_marker('shellcheck', '0123456789abcdef')}",
    }
    for _ in range(2):
        httpx_mock.add_response(url=f"{API}/pulls/7/comments?per_page=100&page=1", json=[comment])
    provider = make_provider()

    assert [c.id for c in await provider.list_comments("shellcheck")] == [12]
    # the failed lookup is not repeated
    assert [c.id for c in await provider.list_comments("luacheck")] == []
    assert len(httpx_mock.get_requests(url="https://api.github.com/user")) == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_post_comment(httpx_mock):
    httpx_mock.add_response(url=f"{API}/pulls/7", json=PULL)
    httpx_mock.add_response(method="POST", url=f"{API}/pulls/7/comments", json={"id": 99})

    await make_provider().post_comment(
        Finding(file="main.go", line=12, start_line=10, message="too complex"), "body"
    )

    payload = json.loads(httpx_mock.get_request(method="POST").content)
    assert payload == {
        "body": "body",
        "commit_id": "headsha",
        "path": "main.go",
        "line": 12,
        "side": "RIGHT",
        "start_line": 10,
        "start_side": "RIGHT",
    }


@pytest.mark.integration
@pytest.mark.asyncio
async def test_delete_comment(httpx_mock):
    httpx_mock.add_response(method="DELETE", url=f"{API}/pulls/comments/12", status_code=204)
    from lint_review.models.review import PostedComment

    await make_provider().delete_comment(
        PostedComment(id=12, linter="shellcheck", fingerprint="0123456789abcdef")
    )

    assert httpx_mock.get_request().method == "DELETE"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_check_run_batches_annotations(httpx_mock):
    httpx_mock.add_response(url=f"{API}/pulls/7", json=PULL)
    httpx_mock.add_response(method="POST", url=f"{API}/check-runs", json={"id": 5})
    httpx_mock.add_response(method="PATCH", url=f"{API}/check-runs/5", json={"id": 5})
    httpx_mock.add_response(method="PATCH", url=f"{API}/check-runs/5", json={"id": 5})

    findings = [
        Finding(file="a.sh", line=i + 1, column=2, message=f"issue {i}", severity=Severity.ERROR)
        for i in range(120)
    ]
    await make_provider().create_check_run("shellcheck", findings)

    created = json.loads(httpx_mock.get_request(method="POST").content)
    assert created["name"] == "shellcheck"
    assert created["head_sha"] == "headsha"
    assert created["conclusion"] == "failure"
    assert len(created["output"]["annotations"]) == 50
    assert created["output"]["annotations"][0]["annotation_level"] == "failure"
    assert created["output"]["annotations"][0]["start_column"] == 2

    patches = httpx_mock.get_requests(method="PATCH")
    assert [len(json.loads(p.content)["output"]["annotations"]) for p in patches] == [50, 20]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_check_run_without_findings_succeeds(httpx_mock):
    httpx_mock.add_response(url=f"{API}/pulls/7", json=PULL)
    httpx_mock.add_response(method="POST", url=f"{API}/check-runs", json={"id": 5})

    await make_provider().create_check_run("luacheck", [])

    created = json.loads(httpx_mock.get_request(method="POST").content)
    assert created["conclusion"] == "success"
    assert created["output"]["annotations"] == []

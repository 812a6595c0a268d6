import pytest
import httpx
from lint_review.models.review import NotificationPayload
from lint_review.notify import Notifier, construct_unknown_msg, limit_join


PAYLOAD = NotificationPayload(
    org="qbox",
    repo="net-cache",
    url="https://github.com/qbox/net-cache/pull/3",
    request_id="req-1",
    linter="luacheck",
    message="weird line",
)


def test_limit_join():
    assert limit_join(["a", "b", "c"], 100) == "a\nb\nc"
    assert limit_join(["aaaa", "bbbb", "cccc"], 9) == "aaaa\nbbbb"
    assert limit_join([], 10) == ""


def test_construct_unknown_msg():
    text = construct_unknown_msg(PAYLOAD)

    assert "luacheck" in text
    assert "qbox/net-cache" in text
    assert "req-1" in text
    assert text.endswith("weird line")


@pytest.mark.asyncio
async def test_notify_posts_text(httpx_mock):
    httpx_mock.add_response(url="https://hooks.example.com/alert", json={"ok": True})

    await Notifier("https://hooks.example.com/alert").notify(PAYLOAD)

    request = httpx_mock.get_request()
    assert b"weird line" in request.content


@pytest.mark.asyncio
async def test_notify_failure_is_logged_not_raised(httpx_mock):
    httpx_mock.add_response(url="https://hooks.example.com/alert", status_code=500)

    await Notifier("https://hooks.example.com/alert").notify(PAYLOAD)


@pytest.mark.asyncio
async def test_notify_without_url_is_noop():
    await Notifier(None).notify(PAYLOAD)

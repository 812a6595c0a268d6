import logging
from collections.abc import Iterable

import httpx

from lint_review.models.review import NotificationPayload


logger = logging.getLogger(__name__)


def limit_join(lines: Iterable[str], limit: int = 1000) -> str:
    """Join lines with newlines, stopping before `limit` characters."""
    parts: list[str] = []
    size = 0
    for line in lines:
        if size + len(line) > limit:
            break
        parts.append(line)
        size += len(line) + 1
    return "\n".join(parts)


def construct_unknown_msg(payload: NotificationPayload) -> str:
    return (
        f"Unexpected output from {payload.linter}\n"
        f"Repo: {payload.org}/{payload.repo}\n"
        f"Review: {payload.url}\n"
        f"Request: {payload.request_id}\n"
        f"Output:\n{payload.message}"
    )


class Notifier:
    """Sends text alerts to an incoming-webhook URL (Slack compatible)."""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = webhook_url

    async def notify(self, payload: NotificationPayload) -> None:
        text = construct_unknown_msg(payload)
        if not self.webhook_url:
            logger.debug(f"No notification webhook configured, dropping: {text}")
            return

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.webhook_url,
                    json={"text": text},
                    timeout=10.0,
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send notification for {payload.linter}: {e}")

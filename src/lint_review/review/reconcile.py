import hashlib
import re

from lint_review.models.finding import Finding
from lint_review.models.review import PostedComment


MARKER_RE = re.compile(r"<!-- lint-review:(?P<linter>[\w.\-]+):(?P<fingerprint>[0-9a-f]+) -->")


def fingerprint_of(file: str, line: int, message: str, start_line: int | None = None) -> str:
    position = f"{start_line}-{line}" if start_line is not None and start_line != line else str(line)
    raw = "\x00".join([file, position, message.strip()])
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]


def fingerprint(finding: Finding) -> str:
    return fingerprint_of(finding.file, finding.line, finding.message, finding.start_line)


def comment_marker(linter: str, fp: str) -> str:
    return f"<!-- lint-review:{linter}:{fp} -->"


def parse_marker(body: str) -> tuple[str, str] | None:
    """(linter, fingerprint) from a comment body, None for foreign comments."""
    match = MARKER_RE.search(body or "")
    if not match:
        return None
    return match.group("linter"), match.group("fingerprint")


def _sort_key(finding: Finding) -> tuple:
    return (finding.file, finding.line, finding.column, finding.message)


def reconcile(
    existing: list[PostedComment],
    findings: list[Finding],
) -> tuple[list[Finding], list[PostedComment]]:
    """Comment operations that make the posted state match `findings`.

    Returns (to_create, to_delete). Matching is by fingerprint as a set, so
    finding order never causes churn. Comments whose fingerprint is still
    found are left alone; duplicated comments are reduced to one.
    """
    wanted: dict[str, Finding] = {}
    for finding in sorted(findings, key=_sort_key):
        wanted.setdefault(fingerprint(finding), finding)

    kept: set[str] = set()
    to_delete: list[PostedComment] = []
    for comment in existing:
        if comment.fingerprint in wanted and comment.fingerprint not in kept:
            kept.add(comment.fingerprint)
        else:
            to_delete.append(comment)

    to_create = [f for fp, f in wanted.items() if fp not in kept]
    return to_create, to_delete

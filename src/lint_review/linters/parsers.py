import re
from collections.abc import Callable, Iterable

from lint_review.models.finding import Finding, Severity


FindingMap = dict[str, list[Finding]]
ParseResult = tuple[FindingMap, list[str]]
Parser = Callable[[bytes | str], ParseResult]

# path:line[:column]: message
DIAGNOSTIC_RE = re.compile(
    r"^(?P<file>[^\s:][^:]*):(?P<line>\d+)(?::(?P<column>\d+))?:\s*(?P<message>.*\S)\s*$"
)
SEVERITY_RE = re.compile(
    r"^(?P<severity>error|warning|note|info|style):\s*(?P<message>.*)$",
    re.IGNORECASE,
)

LUACHECK_NOISE = [
    re.compile(r"^Total: \d+ warnings? / \d+ errors? in \d+ files?"),
    re.compile(r"^Checking \S+"),
]
GOLANGCI_LINT_NOISE = [
    re.compile(r"^level=\w+ "),
    re.compile(r"^\d+ issues?[.:]?"),
]


def _decode(output: bytes | str) -> str:
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output


def parse_line(line: str, with_severity: bool = False) -> Finding | None:
    """Parse one diagnostic line, None if it is not one."""
    match = DIAGNOSTIC_RE.match(line)
    if not match:
        return None

    message = match.group("message")
    severity = None
    if with_severity:
        sev_match = SEVERITY_RE.match(message)
        if sev_match:
            severity = Severity(sev_match.group("severity").lower())
            message = sev_match.group("message")

    column = match.group("column")
    return Finding(
        file=match.group("file"),
        line=int(match.group("line")),
        column=int(column) if column else 0,
        message=message,
        severity=severity,
    )


def general_parse(
    output: bytes | str,
    noise: Iterable[re.Pattern] = (),
    with_severity: bool = False,
) -> ParseResult:
    """Group `path:line:column: message` lines by file.

    Lines matching one of the noise patterns are dropped. Anything else that
    is not a diagnostic goes into the unexpected list; parsing never fails.
    """
    noise = list(noise)
    findings: FindingMap = {}
    unexpected: list[str] = []

    for raw_line in _decode(output).splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if any(pattern.match(line) for pattern in noise):
            continue

        finding = parse_line(line, with_severity=with_severity)
        if finding is None:
            unexpected.append(line)
            continue
        findings.setdefault(finding.file, []).append(finding)

    return findings, unexpected


def parse_luacheck(output: bytes | str) -> ParseResult:
    return general_parse(output, noise=LUACHECK_NOISE)


def parse_shellcheck(output: bytes | str) -> ParseResult:
    # expects `-f gcc`: file:line:col: warning: message [SC2086]
    return general_parse(output, with_severity=True)


def parse_golangci_lint(output: bytes | str) -> ParseResult:
    return general_parse(output, noise=GOLANGCI_LINT_NOISE)


def parse_staticcheck(output: bytes | str) -> ParseResult:
    return general_parse(output)

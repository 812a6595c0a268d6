from dataclasses import dataclass, field
from unidiff import PatchSet


@dataclass
class DiffFile:
    path: str
    is_new: bool
    is_deleted: bool
    added_lines: list[int] = field(default_factory=list)


def parse_diff(diff_text: str) -> list[DiffFile]:
    """Parse unified diff and extract file information."""
    patch = PatchSet(diff_text)
    files = []

    for patched_file in patch:
        added_lines = []

        for hunk in patched_file:
            for line in hunk:
                if line.is_added and line.target_line_no is not None:
                    added_lines.append(line.target_line_no)

        files.append(DiffFile(
            path=patched_file.path,
            is_new=patched_file.is_added_file,
            is_deleted=patched_file.is_removed_file,
            added_lines=added_lines,
        ))

    return files


def parse_file_patch(
    path: str,
    patch: str,
    old_path: str | None = None,
    is_new: bool = False,
    is_deleted: bool = False,
) -> DiffFile:
    """Parse the header-less hunks GitLab and GitHub return per file."""
    source = "/dev/null" if is_new else f"a/{old_path or path}"
    target = "/dev/null" if is_deleted else f"b/{path}"
    files = parse_diff(f"--- {source}\n+++ {target}\n{patch}") if patch else []
    if files:
        diff_file = files[0]
        diff_file.path = path
        return diff_file
    return DiffFile(path=path, is_new=is_new, is_deleted=is_deleted)

# sandboxfs/services/edits.py
"""
Text edit application and diff rendering.

Edits are applied in the order given, each one against the content produced
by the edits before it. An edit first tries an exact substring match (first
occurrence only), then a line-block match that ignores leading/trailing
whitespace on every line. Callers depend on order: edits are never reordered.
"""
from __future__ import annotations

import difflib
import re
from dataclasses import dataclass
from typing import Iterable, List

from sandboxfs.errors import MatchFailure

_LEADING_WS = re.compile(r"^\s*")
_BACKTICK_RUN = re.compile(r"`+")
_LINE_END = re.compile(r"(?<=\n)")
_HUNK_RANGE = re.compile(r"([-+]\d+)(,\d+)?(?= )")


@dataclass(frozen=True)
class EditOperation:
    old_text: str
    new_text: str


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n")


def _indent(line: str) -> str:
    return _LEADING_WS.match(line).group(0)


def _fuzzy_replace(content: str, old: str, new: str) -> str | None:
    old_lines = old.split("\n")
    content_lines = content.split("\n")

    for i in range(len(content_lines) - len(old_lines) + 1):
        window = content_lines[i:i + len(old_lines)]
        if not all(o.strip() == c.strip() for o, c in zip(old_lines, window)):
            continue

        original_indent = _indent(content_lines[i])
        new_lines: List[str] = []
        for j, line in enumerate(new.split("\n")):
            if j == 0:
                new_lines.append(original_indent + line.lstrip())
                continue
            # Relative indent is only reprojected when both sides are indented;
            # extra lines beyond the old block keep their authored indent.
            old_indent = _indent(old_lines[j]) if j < len(old_lines) else ""
            new_indent = _indent(line)
            if old_indent and new_indent:
                relative = len(new_indent) - len(old_indent)
                new_lines.append(original_indent + " " * max(0, relative) + line.lstrip())
            else:
                new_lines.append(line)

        content_lines[i:i + len(old_lines)] = new_lines
        return "\n".join(content_lines)

    return None


def apply_edits(content: str, edits: Iterable[EditOperation]) -> str:
    """
    Apply `edits` to `content` and return the result.

    Raises MatchFailure, quoting the old text verbatim, for the first edit that
    matches neither exactly nor fuzzily. Nothing is written here; callers
    persist only after every edit succeeded.
    """
    modified = normalize_line_endings(content)
    for edit in edits:
        old = normalize_line_endings(edit.old_text)
        new = normalize_line_endings(edit.new_text)

        if old in modified:
            modified = modified.replace(old, new, 1)
            continue

        replaced = _fuzzy_replace(modified, old, new)
        if replaced is None:
            raise MatchFailure(f"Could not find exact match for edit:\n{edit.old_text}")
        modified = replaced

    return modified


def _split_lines(text: str) -> List[str]:
    # only "\n" ends a line; form feeds and other separators stay in content
    return [line for line in _LINE_END.split(text) if line]


def _hunk_lines(lines: Iterable[str]) -> Iterable[str]:
    for line in lines:
        if line.startswith("@@"):
            # always write start,count
            yield _HUNK_RANGE.sub(lambda m: m.group(0) if m.group(2) else m.group(1) + ",1", line)
        elif line.endswith("\n"):
            yield line
        else:
            yield line + "\n"
            yield "\\ No newline at end of file\n"


def create_unified_diff(original: str, modified: str, filepath: str = "file") -> str:
    original = normalize_line_endings(original)
    modified = normalize_line_endings(modified)

    header = [
        f"Index: {filepath}\n",
        "=" * 67 + "\n",
        f"--- {filepath}\toriginal\n",
        f"+++ {filepath}\tmodified\n",
    ]
    diff = difflib.unified_diff(
        _split_lines(original),
        _split_lines(modified),
        fromfile=filepath,
        tofile=filepath,
        n=4,
    )
    # difflib emits its own ---/+++ pair first; the header above replaces it
    body = [line for n, line in enumerate(diff) if n >= 2]
    return "".join(header) + "".join(_hunk_lines(body))


def format_diff(diff: str) -> str:
    """Fence `diff` with more backticks than any run found inside it."""
    longest = max((len(m) for m in _BACKTICK_RUN.findall(diff)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}diff\n{diff}{fence}\n\n"

"""Offline syntax heuristics. Ambiguous input produces no issues."""

from __future__ import annotations

import re

from codeproof.models import Issue


PYTHON_BLOCK_STATEMENT = re.compile(
    r"^(if|elif|else|for|while|def|class|try|except|finally|with|async\s+(?:def|for|with))\b"
)

BRACKET_PAIRS = (
    ("(", ")", "parentheses"),
    ("[", "]", "brackets"),
    ("{", "}", "braces"),
)

OPENING = {"(", "[", "{"}
CLOSING = {")", "]", "}"}


def check_syntax(code: str, language: str) -> list[Issue]:
    if language == "python":
        return _check_python(code)
    if language in {"javascript", "typescript"}:
        return _check_bracket_balance(strip_strings_and_comments(code, "javascript"))
    return []


def _check_python(code: str) -> list[Issue]:
    issues: list[Issue] = []
    stripped = strip_strings_and_comments(code, "python")
    raw_lines = code.split("\n")
    stripped_lines = stripped.split("\n")

    depth = 0
    continued = False
    for index, raw_line in enumerate(raw_lines):
        stripped_line = stripped_lines[index] if index < len(stripped_lines) else ""
        trimmed = raw_line.strip()
        statement = stripped_line.strip()

        if depth == 0 and not continued and statement and not trimmed.startswith("#"):
            match = PYTHON_BLOCK_STATEMENT.match(statement)
            if match and ":" not in trimmed and not trimmed.endswith("\\"):
                keyword = " ".join(match.group(1).split())
                issues.append(
                    Issue(
                        source="syntax",
                        severity="error",
                        message=f"Missing colon after `{keyword}` statement",
                        line=index + 1,
                        suggestion=f"Add a colon at the end: `{trimmed}:`",
                    )
                )

        for char in stripped_line:
            if char in OPENING:
                depth += 1
            elif char in CLOSING and depth > 0:
                depth -= 1
        continued = trimmed.endswith("\\")

    issues.extend(_check_bracket_balance(stripped))
    return issues


def _check_bracket_balance(stripped: str) -> list[Issue]:
    issues: list[Issue] = []
    for opening, closing, name in BRACKET_PAIRS:
        open_count = stripped.count(opening)
        close_count = stripped.count(closing)
        if open_count == close_count:
            continue

        if open_count > close_count:
            suggestion = f"Add {open_count - close_count} closing `{closing}`"
        else:
            suggestion = (
                f"Remove {close_count - open_count} extra closing `{closing}` "
                f"or add opening `{opening}`"
            )
        issues.append(
            Issue(
                source="syntax",
                severity="error",
                message=(
                    f"Unbalanced {name}: {open_count} opening `{opening}` "
                    f"vs {close_count} closing `{closing}`"
                ),
                suggestion=suggestion,
            )
        )
    return issues


def strip_strings_and_comments(code: str, family: str) -> str:
    """Remove string literals and comments, keeping every newline in place.

    ``family`` is ``"python"`` or anything else for the C-like syntax used by
    JavaScript and TypeScript.
    """
    python = family == "python"
    out: list[str] = []
    length = len(code)
    i = 0

    while i < length:
        char = code[i]
        pair = code[i : i + 2]

        if (python and char == "#") or (not python and pair == "//"):
            while i < length and code[i] != "\n":
                i += 1
            continue

        if not python and pair == "/*":
            end = code.find("*/", i + 2)
            end = length if end == -1 else end + 2
            out.append("\n" * code.count("\n", i, end))
            i = end
            continue

        triple = code[i : i + 3]
        if python and triple in ('"""', "'''"):
            end = code.find(triple, i + 3)
            end = length if end == -1 else end + 3
            out.append("\n" * code.count("\n", i, end))
            i = end
            continue

        if char in ('"', "'") or (char == "`" and not python):
            i = _skip_quoted(code, i, out)
            continue

        out.append(char)
        i += 1

    return "".join(out)


def _skip_quoted(code: str, start: int, out: list[str]) -> int:
    quote = code[start]
    i = start + 1
    length = len(code)
    while i < length and code[i] != quote:
        if code[i] == "\\":
            if code[i + 1 : i + 2] == "\n":
                out.append("\n")
            i += 2
            continue
        if code[i] == "\n":
            out.append("\n")
            # Unterminated single-line strings stop at the newline.
            if quote != "`":
                return i + 1
        i += 1
    return i + 1

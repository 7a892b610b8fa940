from __future__ import annotations

import re

from codeproof.models import RuleMatch
from codeproof.rules.base import Rule


LITERAL_PATTERNS = [
    re.compile(r'"""[\s\S]*?"""'),
    re.compile(r"'''[\s\S]*?'''"),
    re.compile(r"`[\s\S]*?`"),
    re.compile(r'"(?:[^"\\]|\\.)*"'),
    re.compile(r"'(?:[^'\\]|\\.)*'"),
    re.compile(r"#.*"),
    re.compile(r"//.*"),
    re.compile(r"/\*[\s\S]*?\*/"),
]

PY_FROM_IMPORT = re.compile(r"^from\s+\S+\s+import\s+(.+)$")
PY_SIMPLE_IMPORT = re.compile(r"^import\s+(\w+)(?:\s+as\s+(\w+))?$")
JS_NAMED_IMPORT = re.compile(r"import\s+\{([^}]+)\}\s+from")
JS_DEFAULT_IMPORT = re.compile(r"import\s+(\w+)\s+from")
JS_EMPTY_BODY = re.compile(r"\)\s*\{\s*\}")
JS_EMPTY_CATCH = re.compile(r"catch\s*\([^)]*\)\s*\{\s*\}")
PY_DEF_OR_CLASS = re.compile(r"^(?:def|class)\s")


def _strip_literals(code: str) -> str:
    for pattern in LITERAL_PATTERNS:
        code = pattern.sub("", code)
    return code


def _check_balanced_brackets(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    stripped = _strip_literals(code)

    for opening, closing, name in (("(", ")", "parentheses"), ("[", "]", "brackets"), ("{", "}", "braces")):
        count = stripped.count(opening) - stripped.count(closing)
        if count > 0:
            matches.append(RuleMatch(message=f"{count} unclosed {name}, missing `{closing}`"))
        elif count < 0:
            matches.append(RuleMatch(message=f"{abs(count)} extra closing {name}, unexpected `{closing}`"))

    return matches


def _is_used_elsewhere(lines: list[str], name: str, import_index: int) -> bool:
    regex = re.compile(rf"\b{re.escape(name)}\b")
    return any(regex.search(line) for index, line in enumerate(lines) if index != import_index)


def _split_import_names(raw: str) -> list[str]:
    names = []
    for item in raw.split(","):
        name = re.split(r"\s+as\s+", item.strip())[-1].strip()
        if name:
            names.append(name)
    return names


def _check_unused_imports(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    lines = code.split("\n")

    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        unused: list[str] = []

        if language == "python":
            from_import = PY_FROM_IMPORT.search(line)
            if from_import:
                names = [name for name in _split_import_names(from_import.group(1)) if not name.startswith("(")]
                unused.extend(name for name in names if not _is_used_elsewhere(lines, name, index))

            simple_import = PY_SIMPLE_IMPORT.search(line)
            if simple_import:
                name = simple_import.group(2) or simple_import.group(1)
                if not _is_used_elsewhere(lines, name, index):
                    unused.append(name)

        if language in {"javascript", "typescript"}:
            named_import = JS_NAMED_IMPORT.search(line)
            if named_import:
                names = _split_import_names(named_import.group(1))
                unused.extend(name for name in names if not _is_used_elsewhere(lines, name, index))

            default_import = JS_DEFAULT_IMPORT.search(line)
            if default_import and "{" not in line:
                name = default_import.group(1)
                if name != "type" and not _is_used_elsewhere(lines, name, index):
                    unused.append(name)

        for name in unused:
            matches.append(RuleMatch(line=index + 1, message=f"Imported `{name}` is not used"))

    return matches


def _check_empty_blocks(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []

    if language == "python":
        lines = code.split("\n")
        for index in range(1, len(lines)):
            previous = lines[index - 1].strip()
            if lines[index].strip() == "pass" and PY_DEF_OR_CLASS.search(previous):
                keyword = re.split(r"[\s(]", previous)[0]
                matches.append(
                    RuleMatch(
                        line=index + 1,
                        message=f"Empty `{keyword}` body only contains `pass`",
                        suggestion="Add implementation or remove if not needed",
                    )
                )

    if language in {"javascript", "typescript"}:
        for found in JS_EMPTY_BODY.finditer(code):
            matches.append(
                RuleMatch(
                    line=code.count("\n", 0, found.start()) + 1,
                    message="Empty function body",
                    suggestion="Add an implementation or explain why the body is empty",
                )
            )
        for found in JS_EMPTY_CATCH.finditer(code):
            matches.append(
                RuleMatch(
                    line=code.count("\n", 0, found.start()) + 1,
                    message="Empty `catch` block swallows errors silently",
                    suggestion="Log the error or re-throw it",
                )
            )

    return matches


balanced_brackets = Rule(
    id="code-quality/balanced-brackets",
    name="Balanced brackets",
    message="Unbalanced brackets, parentheses, or braces",
    severity="error",
    check=_check_balanced_brackets,
)

no_unused_imports = Rule(
    id="code-quality/no-unused-imports",
    name="No unused imports",
    message="Imported name does not appear to be used in the code",
    severity="warning",
    check=_check_unused_imports,
)

no_empty_blocks = Rule(
    id="code-quality/no-empty-blocks",
    name="No empty blocks",
    message="Empty code block that likely needs an implementation",
    severity="info",
    check=_check_empty_blocks,
)

CODE_QUALITY_RULES = [
    balanced_brackets,
    no_unused_imports,
    no_empty_blocks,
]

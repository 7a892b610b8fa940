from __future__ import annotations

import re

from codeproof.models import RuleMatch
from codeproof.rules.base import Rule


PLACEHOLDER_PATTERNS = [
    (re.compile(r"YOUR_API_KEY", re.IGNORECASE), "YOUR_API_KEY placeholder"),
    (re.compile(r"YOUR[_-]?TOKEN", re.IGNORECASE), "YOUR_TOKEN placeholder"),
    (re.compile(r"YOUR[_-]?SECRET", re.IGNORECASE), "YOUR_SECRET placeholder"),
    (re.compile(r"<your[_-][^>]+>", re.IGNORECASE), "Template placeholder (e.g., <your-api-key>)"),
    (re.compile(r"REPLACE[_-]?ME", re.IGNORECASE), "REPLACE_ME placeholder"),
    (re.compile(r"INSERT[_-].*[_-]HERE", re.IGNORECASE), "INSERT_*_HERE placeholder"),
    (re.compile(r"xxx+", re.IGNORECASE), "xxx placeholder"),
    (re.compile(r"\bTODO\b"), "TODO marker"),
    (re.compile(r"\bFIXME\b"), "FIXME marker"),
    (re.compile(r"your[_-].*[_-]here", re.IGNORECASE), "your-*-here placeholder"),
    (re.compile(r"example\.com(?!/)", re.IGNORECASE), "example.com placeholder URL"),
]

HASH_INCOMPLETE = re.compile(r"^#\s*(?:rest of|remaining|more|continue|your|add)\s", re.IGNORECASE)
SLASH_INCOMPLETE = re.compile(r"^//\s*(?:\.{3}|rest of|remaining|more|continue)", re.IGNORECASE)
STANDALONE_ELLIPSIS = re.compile(r"^\.\.\.\s*$")
PASS_PARENT = re.compile(r"^(?:def|class|if|for|while|try|except)\b")

FAKE_PYTHON_PACKAGES = frozenset(
    {
        "langchain_magic",
        "openai_helpers",
        "transformers_utils",
        "pytorch_lightning_utils",
        "sklearn_helpers",
        "tensorflow_utils",
        "auto_ml",
        "ai_utils",
        "ml_helpers",
        "data_utils",
        "api_wrapper",
    }
)

FAKE_NODE_PACKAGES = frozenset(
    {
        "openai-helpers",
        "react-ai-utils",
        "next-auth-helpers",
        "express-utils",
        "api-helper",
        "ai-sdk-utils",
    }
)

PYTHON_IMPORT = re.compile(r"^\s*(?:from|import)\s+([\w.]+)")
NODE_IMPORT = re.compile(r"(?:require|from)\s*\(?\s*[\"']([^\"']+)[\"']")


def _check_placeholders(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    for line_index, line in enumerate(code.split("\n"), start=1):
        # Placeholders inside comments are instructions, not values.
        if line.strip().startswith(("#", "//", "*")):
            continue

        for regex, description in PLACEHOLDER_PATTERNS:
            if regex.search(line):
                matches.append(RuleMatch(line=line_index, message=f"Placeholder value found: {description}"))
                break

    return matches


def _check_incomplete_code(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    lines = code.split("\n")

    for index, line in enumerate(lines):
        trimmed = line.strip()
        if not trimmed:
            continue
        previous = lines[index - 1].strip() if index > 0 else None

        if HASH_INCOMPLETE.search(trimmed) or SLASH_INCOMPLETE.search(trimmed):
            matches.append(RuleMatch(line=index + 1, message=f'Incomplete code marker: "{trimmed}"'))

        if STANDALONE_ELLIPSIS.search(trimmed) and previous is not None and not previous.endswith(","):
            matches.append(RuleMatch(line=index + 1, message="Standalone `...` suggests truncated code"))

        if trimmed == "pass" and previous is not None and PASS_PARENT.search(previous):
            matches.append(
                RuleMatch(
                    line=index + 1,
                    message="Empty block with only `pass` is likely a placeholder",
                    suggestion="Implement the function body or remove it if not needed",
                )
            )

    return matches


def _check_mixed_syntax(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    for line_index, line in enumerate(code.split("\n"), start=1):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith(("#", "//")):
            continue

        if language in {"javascript", "typescript"}:
            if re.search(r"^def\s+\w+\s*\(", trimmed):
                matches.append(RuleMatch(line=line_index, message="Python `def` syntax in JavaScript/TypeScript file"))
            if re.search(r"^elif\s", trimmed):
                matches.append(
                    RuleMatch(line=line_index, message="Python `elif` in JavaScript/TypeScript, use `else if`")
                )
            if re.search(r"\bself\.\w+", trimmed) and not re.search(r"['\"`].*self\.", trimmed):
                matches.append(
                    RuleMatch(line=line_index, message="Python `self.` reference in JavaScript/TypeScript, use `this.`")
                )

        if language == "python":
            if re.search(r"^(?:const|let|var)\s+", trimmed):
                matches.append(RuleMatch(line=line_index, message="JavaScript variable declaration in Python file"))
            if re.search(r"=>\s*\{", trimmed):
                matches.append(RuleMatch(line=line_index, message="JavaScript arrow function `=>` in Python file"))
            if re.search(r"\bconsole\.log\s*\(", trimmed):
                matches.append(
                    RuleMatch(line=line_index, message="`console.log()` is JavaScript, use `print()` in Python")
                )

    return matches


def _check_hallucinated_imports(code: str, language: str) -> list[RuleMatch]:
    matches: list[RuleMatch] = []
    for line_index, line in enumerate(code.split("\n"), start=1):
        if language == "python":
            found = PYTHON_IMPORT.search(line)
            if found:
                package = found.group(1).split(".")[0]
                if package in FAKE_PYTHON_PACKAGES:
                    matches.append(
                        RuleMatch(
                            line=line_index,
                            message=f"Possibly hallucinated package: `{package}`",
                            suggestion=f"Verify this package exists on PyPI: https://pypi.org/project/{package}/",
                        )
                    )

        if language in {"javascript", "typescript"}:
            found = NODE_IMPORT.search(line)
            if found:
                specifier = found.group(1)
                if specifier.startswith("@"):
                    package = "/".join(specifier.split("/")[:2])
                else:
                    package = specifier.split("/")[0]
                if package in FAKE_NODE_PACKAGES:
                    matches.append(
                        RuleMatch(
                            line=line_index,
                            message=f"Possibly hallucinated package: `{package}`",
                            suggestion=f"Verify this package exists on npm: https://www.npmjs.com/package/{package}",
                        )
                    )

    return matches


no_placeholder_values = Rule(
    id="ai-mistakes/no-placeholder-values",
    name="No placeholder values",
    message="Placeholder value that should be replaced with a real value",
    severity="error",
    suggestion="Replace placeholder with actual value or use an environment variable",
    check=_check_placeholders,
)

no_incomplete_code = Rule(
    id="ai-mistakes/no-incomplete-code",
    name="No incomplete code",
    message="Code appears to be truncated or incomplete",
    severity="warning",
    suggestion="Ensure the code is complete and includes all necessary logic",
    check=_check_incomplete_code,
)

no_mixed_syntax = Rule(
    id="ai-mistakes/no-mixed-syntax",
    name="No mixed language syntax",
    message="Code contains syntax from a different programming language",
    severity="warning",
    suggestion="Verify the code matches the specified language",
    check=_check_mixed_syntax,
)

no_hallucinated_imports = Rule(
    id="ai-mistakes/no-hallucinated-imports",
    name="No hallucinated imports",
    message="Import appears to reference a non-existent or commonly hallucinated package",
    severity="warning",
    suggestion="Verify this package exists on PyPI or npm",
    check=_check_hallucinated_imports,
)

AI_MISTAKE_RULES = [
    no_placeholder_values,
    no_incomplete_code,
    no_mixed_syntax,
    no_hallucinated_imports,
]

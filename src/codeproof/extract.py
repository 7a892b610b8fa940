from __future__ import annotations

import re
from pathlib import Path

from codeproof.models import UNKNOWN_LANGUAGE, CodeBlock, VerifyOptions, resolve_language


FENCE_PATTERN = re.compile(
    r"^(?:`{3,}|~{3,})(\w+)?[ \t]*\n(.*?)^(?:`{3,}|~{3,})[ \t]*$",
    re.MULTILINE | re.DOTALL,
)

EXTENSION_LANGUAGE_MAP = {
    ".py": "python",
    ".pyw": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".rs": "rust",
}


class InputError(ValueError):
    pass


def extract_code_blocks(text: str) -> list[CodeBlock]:
    blocks: list[CodeBlock] = []

    for match in FENCE_PATTERN.finditer(text):
        code = match.group(2)
        if not code or not code.strip():
            continue

        start_line = text.count("\n", 0, match.start()) + 1
        end_line = start_line + match.group(0).count("\n")

        blocks.append(
            CodeBlock(
                language=resolve_language(match.group(1)) or UNKNOWN_LANGUAGE,
                code=code.rstrip(),
                start_line=start_line,
                end_line=end_line,
            )
        )

    return blocks


def language_from_path(path: str | Path) -> str | None:
    return EXTENSION_LANGUAGE_MAP.get(Path(path).suffix.lower())


def resolve_input(options: VerifyOptions) -> list[CodeBlock]:
    provided = [item for item in (options.code, options.text, options.file) if item is not None]
    if not provided:
        raise InputError("One of `code`, `text`, or `file` must be provided")
    if len(provided) > 1:
        raise InputError("Only one of `code`, `text`, or `file` can be provided")

    explicit_language = resolve_language(options.language)

    if options.code is not None:
        return [CodeBlock(language=explicit_language or UNKNOWN_LANGUAGE, code=options.code)]

    if options.text is not None:
        blocks = extract_code_blocks(options.text)
        # Unfenced text is treated as a single block of code.
        if not blocks and options.text.strip():
            return [CodeBlock(language=explicit_language or UNKNOWN_LANGUAGE, code=options.text)]
        return blocks

    file_path = Path(str(options.file))
    try:
        content = file_path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError as exc:
        raise InputError(f"File not found: {file_path}") from exc

    language = explicit_language or language_from_path(file_path) or UNKNOWN_LANGUAGE
    return [CodeBlock(language=language, code=content)]

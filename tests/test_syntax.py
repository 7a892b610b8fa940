from codeproof.syntax import check_syntax, strip_strings_and_comments


def test_unbalanced_braces_in_javascript():
    issues = check_syntax("function f() {\n  return 1;\n", "javascript")

    assert len(issues) == 1
    assert issues[0].source == "syntax"
    assert issues[0].severity == "error"
    assert "braces" in issues[0].message
    assert issues[0].message == "Unbalanced braces: 1 opening `{` vs 0 closing `}`"
    assert issues[0].suggestion == "Add 1 closing `}`"


def test_balanced_javascript_has_no_issues():
    assert check_syntax("function f() {\n  return [1, 2];\n}\n", "javascript") == []


def test_brackets_inside_strings_and_comments_are_ignored():
    js = 'const s = "{"; // }\nconst t = `(\n`;\n/* [ */\n'
    py = 'x = "((("  # )))\ny = \'[\'\n'

    assert check_syntax(js, "typescript") == []
    assert check_syntax(py, "python") == []


def test_extra_closing_paren_suggests_removal():
    issues = check_syntax("print(1))\n", "python")

    assert len(issues) == 1
    assert "parentheses" in issues[0].message
    assert issues[0].suggestion == "Remove 1 extra closing `)` or add opening `(`"


def test_python_missing_colon_reports_line():
    issues = check_syntax("def greet(name)\n    return name\n", "python")

    assert len(issues) == 1
    assert issues[0].line == 1
    assert issues[0].message == "Missing colon after `def` statement"
    assert issues[0].suggestion == "Add a colon at the end: `def greet(name):`"


def test_python_async_keyword_is_reported_whole():
    issues = check_syntax("async def main()\n    pass\n", "python")

    assert [issue.message for issue in issues] == ["Missing colon after `async def` statement"]


def test_python_colon_check_skips_lines_inside_brackets():
    code = (
        "config = {\n"
        '    "if": 1,\n'
        "}\n"
        "value = compute(\n"
        "    x\n"
        "    if flag\n"
        "    else y\n"
        ")\n"
        "if config\n"
        "    pass\n"
    )

    issues = check_syntax(code, "python")

    assert [issue.line for issue in issues] == [9]


def test_python_colon_check_skips_backslash_continuation():
    code = "y = a \\\nif b else c\n"

    assert check_syntax(code, "python") == []


def test_python_line_numbers_survive_multiline_strings():
    code = 'doc = """\nline (\n"""\nwhile True\n    pass\n'

    issues = check_syntax(code, "python")

    assert len(issues) == 1
    assert issues[0].line == 4


def test_comments_are_not_checked_for_colons():
    assert check_syntax("# if this then that\nx = 1\n", "python") == []


def test_other_languages_are_not_checked():
    assert check_syntax("fn main() {", "rust") == []
    assert check_syntax("func main() {", "go") == []
    assert check_syntax("(((", "unknown") == []


def test_strip_preserves_newlines():
    code = "a = '''x\ny\nz'''\nb = 1\n"
    stripped = strip_strings_and_comments(code, "python")

    assert stripped.count("\n") == code.count("\n")
    assert "x" not in stripped
    assert "b = 1" in stripped

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import platform
import sys

from codeproof.config import ConfigError, load_config, load_rules
from codeproof.extract import InputError
from codeproof.models import AppConfig, VerifyOptions
from codeproof.pipeline import verify_sync
from codeproof.reporting import format_json, format_result, format_summary, write_reports
from codeproof.rules import ALL_RULES, RULE_SETS, resolve_rules
from codeproof.sandbox import SANDBOX_CHOICES, is_docker_available, is_e2b_available


logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
RULE_CHOICES = ("all", "none", *RULE_SETS)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeproof",
        description="Verify machine-generated code with syntax checks, rules and sandboxed execution",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="WARNING")
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify_parser = subparsers.add_parser("verify", help="Verify code, markdown text or a file")
    verify_parser.add_argument("-c", "--code", default=None, help="Code string to verify")
    verify_parser.add_argument("-t", "--text", default=None, help="Markdown/text containing code blocks")
    verify_parser.add_argument("-f", "--file", default=None, help="Path to a file to verify")
    verify_parser.add_argument("--stdin", action="store_true", help="Read code from stdin")
    verify_parser.add_argument("-l", "--language", default=None)
    verify_parser.add_argument("--install", nargs="+", default=None, help="Packages to install in the sandbox")
    verify_parser.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable for the sandbox (repeatable)",
    )
    verify_parser.add_argument("--timeout", type=float, default=None, help="Sandbox timeout in seconds")
    _add_common_arguments(verify_parser)

    check_parser = subparsers.add_parser("check", help="Verify a file (shorthand for verify --file)")
    check_parser.add_argument("file")
    _add_common_arguments(check_parser)

    rules_parser = subparsers.add_parser("rules", help="Inspect built-in rules")
    rules_subparsers = rules_parser.add_subparsers(dest="rules_command", required=True)
    list_parser = rules_subparsers.add_parser("list", help="List built-in rules")
    list_parser.add_argument("--json", action="store_true")

    subparsers.add_parser("doctor", help="Check which sandbox providers are available")

    return parser


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-s", "--sandbox", choices=SANDBOX_CHOICES, default=None)
    parser.add_argument("-r", "--rules", choices=RULE_CHOICES, default=None)
    parser.add_argument("--rules-file", default=None, help="JSON file with additional pattern rules")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--output-dir", default=None, help="Write verify_summary.json and issues.csv here")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command in {"verify", "check"}:
        try:
            options = build_options(args)
        except (ConfigError, InputError) as exc:
            parser.error(str(exc))
            return 2
        return _run_verify(args, options)

    if args.command == "rules":
        return _list_rules(as_json=args.json)

    if args.command == "doctor":
        return _doctor()

    parser.error(f"Unsupported command: {args.command}")
    return 2


def build_options(args: argparse.Namespace) -> VerifyOptions:
    config = load_config(args.config) if args.config else AppConfig()

    rules = resolve_rules(args.rules or config.rules)
    rules_path = args.rules_file or config.rules_path
    if rules_path:
        rules = rules + load_rules(rules_path)

    code = getattr(args, "code", None)
    if getattr(args, "stdin", False):
        if code is not None:
            raise InputError("Use either --code or --stdin, not both")
        code = "" if sys.stdin.isatty() else sys.stdin.read()

    install = getattr(args, "install", None)
    timeout = getattr(args, "timeout", None)

    return VerifyOptions(
        code=code,
        text=getattr(args, "text", None),
        file=args.file,
        language=getattr(args, "language", None),
        sandbox=args.sandbox or config.sandbox,
        rules=rules,
        install=tuple(install) if install else config.install,
        env={**config.env, **_parse_env(getattr(args, "env", []))},
        timeout=timeout if timeout is not None else config.timeout,
        limits=config.limits,
    )


def _parse_env(items: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigError(f"Invalid --env value (expected KEY=VALUE): {item}")
        env[key.strip()] = value
    return env


def _run_verify(args: argparse.Namespace, options: VerifyOptions) -> int:
    try:
        result = verify_sync(options)
    except InputError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:
        logger.debug("Verification failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    if args.json:
        print(format_json(result))
    else:
        print(format_result(result, verbose=args.verbose))

    if args.output_dir:
        write_reports(result, args.output_dir)
        print(format_summary(result), file=sys.stderr)

    return 0 if result.passed else 1


def _list_rules(*, as_json: bool) -> int:
    if as_json:
        payload = [
            {
                "id": rule.id,
                "name": rule.name,
                "severity": rule.severity,
                "languages": sorted(rule.languages) if rule.languages else "all",
                "message": rule.message,
            }
            for rule in ALL_RULES
        ]
        print(json.dumps(payload, indent=2, ensure_ascii=True))
        return 0

    lines = ["", "  Built-in Rules", "  " + "─" * 33, ""]
    for category, rules in RULE_SETS.items():
        lines.append(f"  {category}")
        for rule in rules:
            languages = f" [{', '.join(sorted(rule.languages))}]" if rule.languages else ""
            lines.append(f"    ● {rule.id} ({rule.severity}){languages}")
            lines.append(f"      {rule.message}")
        lines.append("")
    print("\n".join(lines))
    return 0


def _doctor() -> int:
    docker = asyncio.run(is_docker_available())
    e2b = is_e2b_available()

    lines = ["", "  codeproof doctor", "  " + "─" * 33, ""]
    if docker:
        lines.append("  ✓ Docker is available")
    else:
        lines.append("  ✗ Docker is not available")
        lines.append("    Install: https://docs.docker.com/get-docker/")

    if e2b:
        lines.append("  ✓ E2B is available (API key set)")
    else:
        lines.append("  ○ E2B not configured (optional)")

    lines.append(f"  ✓ Python {platform.python_version()}")
    lines.append("")

    if docker:
        lines.append("  ✓ Ready to verify code")
    elif e2b:
        lines.append("  ✓ Ready (using E2B cloud sandbox)")
    else:
        lines.append("  ⚠ No sandbox available, only rules and syntax checks will run")
    lines.append("")

    print("\n".join(lines))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
cli.py

Responsibility: Process entrypoint for the daily publish run.

High-level flow:
1) Load `.env` (if present) and configuration -> `ChronicleConfig`
2) Wire components -> `PublishWorkflow`
3) Run once; exit 0 when published, 1 when a stage failed, 2 on setup errors

The program needs no arguments; `--config` and `--log-level` are optional.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from chronicles.config import DEFAULT_CONFIG_FILENAME, ConfigError, load_config
from chronicles.workflow import build_workflow

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SETUP = 2


class CLIError(RuntimeError):
    pass


def _resolve_config_path(arg: str | None) -> Path | None:
    if arg:
        return Path(arg)
    default = Path(DEFAULT_CONFIG_FILENAME)
    return default if default.exists() else None


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise CLIError(f"Unknown log level: {level}")
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_cmd(args: argparse.Namespace) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    config = load_config(_resolve_config_path(args.config))
    workflow = build_workflow(config)

    report = workflow.run()
    if not report.ok:
        stage = report.failed_stage.value if report.failed_stage else "unknown"
        print(f"Run failed at {stage}: {report.error}", file=sys.stderr)
        return EXIT_FAILED

    if report.outcome is None:
        raise CLIError("Run reported success without a publish outcome")
    print(f"Published {report.outcome.commit_sha} ({', '.join(report.outcome.moved_files)})")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="chronicles",
        description="Generate a project with an LLM, commit it, and push it to the configured repository",
    )
    p.add_argument(
        "--config",
        default=None,
        help=f"YAML config file (default: ./{DEFAULT_CONFIG_FILENAME} when present)",
    )
    p.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    p.set_defaults(func=run_cmd)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        _configure_logging(args.log_level)
        return int(args.func(args))
    except (CLIError, ConfigError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_SETUP


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from .config import VALIDATOR_CHOICES, AuditConfig
from .log import setup_default_logging
from .main import AuditApp
from .reporter import TapReporter, summary_to_dict, write_json_report


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mojibake-audit",
        description="Check Perl sources for encoding declaration mismatches.",
    )
    parser.add_argument(
        "targets",
        nargs="*",
        help="Files/directories to scan (default: blib if present, else lib).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON config file (default: ./mojibake_audit.json if present).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of files checked concurrently.",
    )
    parser.add_argument(
        "--validator",
        choices=VALIDATOR_CHOICES,
        default=None,
        help="UTF-8 validator implementation (default: auto).",
    )
    parser.add_argument(
        "--format",
        choices=("tap", "json"),
        default="tap",
        help="Output format on stdout (default: tap).",
    )
    parser.add_argument(
        "--json-report",
        type=Path,
        default=None,
        help="Also write a JSON report to this path.",
    )
    parser.add_argument(
        "--gate-env",
        default=None,
        help="Skip all checks unless this environment variable is set "
        "(e.g. RELEASE_TESTING).",
    )
    parser.add_argument(
        "--cron",
        default=None,
        help="Keep running and re-audit on this crontab schedule.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AuditConfig:
    cfg = AuditConfig.load(args.config)
    workers = args.workers if args.workers and args.workers > 0 else None
    return cfg.with_overrides(
        workers=workers,
        validator=args.validator,
        gate_env=args.gate_env,
        log_level=logging.DEBUG if args.verbose else None,
    )


async def amain(args: argparse.Namespace) -> int:
    cfg = build_config(args)
    setup_default_logging(cfg.log_level)
    app = AuditApp(cfg)

    if args.cron:
        if not app.add_watch("cli", args.cron, args.targets):
            print(f"[ERR] invalid cron expression: {args.cron}", file=sys.stderr)
            return 2
        await app.run_forever()
        return 0

    reporter = TapReporter() if args.format == "tap" else None
    summary = await app.run_once(args.targets or None, reporter)
    if args.format == "json":
        json.dump(summary_to_dict(summary), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    if args.json_report:
        write_json_report(args.json_report, summary)
    return 0 if summary.ok else 1


def main(argv: list[str] | None = None) -> int:
    return asyncio.run(amain(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())

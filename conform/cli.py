from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from datetime import datetime


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="conform", add_help=True)
    sub = parser.add_subparsers(dest="command", required=True)

    enforce = sub.add_parser("enforce", help="Enforce policies, build the pipeline and run the script")
    enforce.add_argument("--config", default=None, help="Path to conform.yaml (default: repo root)")
    enforce.add_argument("--log-dir", default=None, help="Also write a DEBUG log file here")
    enforce.add_argument(
        "--render-dir", default=None, help="Write one rendered <stage>.Dockerfile per stage here"
    )
    enforce.add_argument("-v", "--verbose", action="store_true", help="Log DEBUG records to stderr")

    sub.add_parser("list-policies", help="List available policy types")

    metadata = sub.add_parser("metadata", help="Print the collected repository metadata as YAML")
    metadata.add_argument("--config", default=None, help="Path to conform.yaml (default: repo root)")

    return parser


def _run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _enforce(args: argparse.Namespace) -> int:
    from conform.app.run import Conform
    from conform.foundation.logging_utils import setup_operational_logger
    from conform.framework.enforcement import format_violation
    from conform.framework.errors import ConformError, PolicyViolationError

    logger, _log_file = setup_operational_logger(
        _run_id(), log_dir=args.log_dir, verbose=args.verbose
    )
    try:
        Conform.load(args.config, logger=logger).run(render_dir=args.render_dir)
    except PolicyViolationError as exc:
        for line in format_violation(exc):
            print(line)
        return 1
    except ConformError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    logger.info("Run completed successfully")
    return 0


def _list_policies() -> int:
    from conform.policies.registry import get_policy_registry

    for row in get_policy_registry().describe():
        print(f"{row['id']}: {row['doc']}" if row["doc"] else row["id"])
    return 0


def _metadata(args: argparse.Namespace) -> int:
    import yaml

    from conform.app.run import Conform
    from conform.framework.errors import ConformError

    try:
        conform = Conform.load(args.config)
    except ConformError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    sys.stdout.write(yaml.safe_dump(conform.metadata.to_dict(), sort_keys=False))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    if args.command == "enforce":
        return _enforce(args)

    if args.command == "list-policies":
        return _list_policies()

    if args.command == "metadata":
        return _metadata(args)

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))

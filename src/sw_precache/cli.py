"""CLI entrypoint for precache builds."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from sw_precache.config import load_config
from sw_precache.core.errors import PrecacheError
from sw_precache.core.logging import add_file_handler, configure_logging
from sw_precache.entry_points import generate_sw, get_manifest, inject_manifest

logger = logging.getLogger(__name__)

_COMMANDS = {
    "get-manifest": get_manifest,
    "generate-sw": generate_sw,
    "inject-manifest": inject_manifest,
}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Build a precache manifest for a service worker")
    parser.add_argument("command", choices=sorted(_COMMANDS), help="Build mode to run")
    parser.add_argument("--config", required=True, help="Path to the build configuration (YAML or JSON)")
    parser.add_argument("--cwd", help="Directory relative paths are resolved against (default: current)")
    parser.add_argument("--log-file", help="Also write build logs to this file")
    parser.add_argument("--verbose", action="store_true", help="Log per-file detail")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when the build produced warnings",
    )
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    configure_logging(level=level)
    if args.log_file:
        add_file_handler(Path(args.log_file), level=level)

    cwd = Path(args.cwd).resolve() if args.cwd else None
    try:
        config = load_config(Path(args.config))
        result = _COMMANDS[args.command](config, cwd=cwd)
    except PrecacheError as exc:
        payload = {
            "status": "FAIL",
            "error": type(exc).__name__,
            "message": str(exc),
            "stage": exc.stage,
            "detail": exc.detail,
            "warnings": exc.warnings,
        }
        print(json.dumps(payload, sort_keys=True, default=str))
        raise SystemExit(1) from exc

    payload = {"status": "WARN" if result.warnings else "OK", **result.as_dict()}
    print(json.dumps(payload, sort_keys=True))
    raise SystemExit(1 if args.strict and result.warnings else 0)


if __name__ == "__main__":
    main()

"""
geofill command-line interface

Usage:
    geofill [--config FILE] [--log-level LEVEL] [--log-format json|text] <command> ...

Commands:
    validate    Validate the three geo reference documents as a bundle
    lock        Check or refresh the embedded drift locks of one document
    fill        Fill a price grid from observed rows
    status      Summarize a filled price grid
    ui          Compact price matrix of a filled grid
    config      Show the effective configuration

Exit codes: 0 success, 1 usage or I/O error, 2 configuration validation
failure (the message starts with ``CONFIG_VALIDATION_FAILED``), 3 unhealthy
filled grid.

--log-level and --log-format override GEOFILL_LOG_LEVEL and
GEOFILL_LOG_FORMAT, which in turn override the --config file.

Copyright (c) 2024 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml

from geofill import __version__
from geofill.config import ConfigError, GeoFillConfig, load_config
from geofill.core import load_json, write_json
from geofill.errors import GeoConfigError
from geofill.fallback import FallbackResolver, FilledRow
from geofill.locks import (
    LOCKED_FIELDS,
    build_expected_lock,
    locked_fields,
    refresh_document_locks,
    verify_document_locks,
)
from geofill.observability import configure_logging
from geofill.projection import build_price_matrix
from geofill.schema import check_document_schema
from geofill.status import summarize_fill
from geofill.validators import load_geo_configs

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_CONFIG = 2
EXIT_UNHEALTHY = 3


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
    return json.dumps(data, indent=2, sort_keys=True, default=str)


def _utc_now() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _config(args: argparse.Namespace) -> GeoFillConfig:
    return getattr(args, "config_obj", None) or load_config(getattr(args, "config", None))


def _config_dir(args: argparse.Namespace, config: GeoFillConfig) -> pathlib.Path:
    return pathlib.Path(getattr(args, "config_dir", None) or config.documents.config_dir.get())


def _read_json(path: pathlib.Path, what: str) -> Any:
    if not path.exists():
        raise CLIError(f"{what} not found: {path}")
    try:
        return load_json(path)
    except json.JSONDecodeError as e:
        raise CLIError(f"{what} is not valid JSON: {path}: {e}") from e


def _document_kind(path: pathlib.Path, explicit: Optional[str]) -> str:
    kind = explicit or path.stem
    if kind not in LOCKED_FIELDS:
        raise CLIError(
            f"cannot infer document kind from {path.name}; pass --kind "
            f"({', '.join(sorted(LOCKED_FIELDS))})"
        )
    return kind


def _load_rows(path: pathlib.Path) -> List[Any]:
    data = _read_json(path, "rows file")
    if isinstance(data, dict):
        data = data.get("rows")
    if not isinstance(data, list):
        raise CLIError(f"rows file must hold a JSON list or an object with a 'rows' list: {path}")
    return data


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_validate(args: argparse.Namespace) -> int:
    config = _config(args)
    config_dir = _config_dir(args, config)
    if not config_dir.is_dir():
        raise CLIError(f"config directory not found: {config_dir}")

    result = load_geo_configs(config_dir, config.to_context(), config.file_names())
    bundle = result.unwrap()
    report = {"ok": True, "config_dir": str(config_dir), "documents": bundle.report()}
    print(format_output(report, OutputFormat(args.format)))
    return EXIT_OK


def cmd_lock(args: argparse.Namespace) -> int:
    config = _config(args)
    path = pathlib.Path(args.file)
    kind = _document_kind(path, args.kind)
    doc = _read_json(path, "document")
    if not isinstance(doc, dict):
        raise CLIError(f"document must be a JSON object: {path}")

    sample_size = config.to_context().lock_sample_size

    if args.write:
        if any(name not in doc for name in locked_fields(kind)):
            check_document_schema(doc, kind)
        refreshed = refresh_document_locks(kind, doc, sample_size=sample_size)
        check_document_schema(refreshed, kind)
        write_json(path, refreshed)
        logger.info("refreshed locks for %s in %s", kind, path)
        print(f"OK: wrote locks for {kind} to {path}")
        return EXIT_OK

    check_document_schema(doc, kind)
    if args.check:
        verify_document_locks(kind, doc)
        print(f"OK: {path} locks match ({kind})")
        return EXIT_OK

    print(format_output(build_expected_lock(kind, doc, sample_size=sample_size), OutputFormat(args.format)))
    return EXIT_OK


def cmd_fill(args: argparse.Namespace) -> int:
    config = _config(args)
    config_dir = _config_dir(args, config)
    bundle = load_geo_configs(config_dir, config.to_context(), config.file_names()).unwrap()
    rows = _load_rows(pathlib.Path(args.rows))

    result = FallbackResolver.from_bundle(bundle).resolve(rows)
    out: Dict[str, Any] = {"generated_at": _utc_now()}
    out.update(result.to_dict())

    if args.out:
        out_path = pathlib.Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        write_json(out_path, out)
        print(format_output(out["counts"], OutputFormat(args.format)))
    else:
        print(format_output(out, OutputFormat(args.format)))
    return EXIT_OK


def _read_filled(path: pathlib.Path) -> Dict[str, Any]:
    data = _read_json(path, "filled file")
    if not isinstance(data, dict) or not isinstance(data.get("rows_filled"), list):
        raise CLIError(f"filled file has no 'rows_filled' list: {path}")
    return data


def _filled_rows(data: Dict[str, Any]) -> List[FilledRow]:
    return [FilledRow.from_dict(r) for r in data["rows_filled"] if isinstance(r, dict)]


def cmd_status(args: argparse.Namespace) -> int:
    data = _read_filled(pathlib.Path(args.file))
    status = summarize_fill(_filled_rows(data))
    report = status.to_dict()
    if data.get("generated_at"):
        report["generated_at"] = data["generated_at"]
    print(format_output(report, OutputFormat(args.format)))
    return EXIT_OK if status.ok else EXIT_UNHEALTHY


def cmd_ui(args: argparse.Namespace) -> int:
    config = _config(args)
    bundle = load_geo_configs(_config_dir(args, config), config.to_context(), config.file_names()).unwrap()
    data = _read_filled(pathlib.Path(args.file))

    matrix = build_price_matrix(
        _filled_rows(data),
        bundle.universe,
        bundle.display_names.geo_display_names,
    )
    out: Dict[str, Any] = {
        "ok": True,
        "meta": {"generated_at": _utc_now(), "source_generated_at": data.get("generated_at")},
    }
    out.update(matrix.to_dict())

    if args.out:
        out_path = pathlib.Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        write_json(out_path, out)
        print(format_output({"fuels": len(matrix.fuels), "geos": len(matrix.geos)}, OutputFormat(args.format)))
    else:
        print(format_output(out, OutputFormat(args.format)))
    return EXIT_OK


def cmd_config(args: argparse.Namespace) -> int:
    config = _config(args)
    if args.format == OutputFormat.JSON.value:
        print(format_output(config.to_dict(), OutputFormat.JSON))
    else:
        print(config.to_yaml(), end="")
    return EXIT_OK


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="geofill", description="Geo fallback price-grid tooling")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--config", default=None, help="YAML configuration file")
    ap.add_argument("--log-level", default=None, choices=["debug", "info", "warning", "error", "critical"],
                    help="Log level; overrides GEOFILL_LOG_LEVEL")
    ap.add_argument("--log-format", default=None, choices=["json", "text"],
                    help="Log format; overrides GEOFILL_LOG_FORMAT")
    ap.add_argument("--format", default="json", choices=[f.value for f in OutputFormat])
    sub = ap.add_subparsers(dest="cmd", required=True)

    v = sub.add_parser("validate", help="Validate the geo reference documents")
    v.add_argument("config_dir", nargs="?", default=None, help="Directory holding the three documents")
    v.set_defaults(func=cmd_validate)

    l = sub.add_parser("lock", help="Check or refresh a document's embedded locks")
    l.add_argument("file")
    l.add_argument("--kind", default=None, choices=sorted(LOCKED_FIELDS))
    mode = l.add_mutually_exclusive_group()
    mode.add_argument("--write", action="store_true", help="Rewrite the lock blocks in place")
    mode.add_argument("--check", action="store_true", help="Fail if the lock blocks drifted")
    l.set_defaults(func=cmd_lock)

    f = sub.add_parser("fill", help="Fill a price grid using fallback chains")
    f.add_argument("rows", help="JSON list of observed rows, or an object with a 'rows' list")
    f.add_argument("--config-dir", dest="config_dir", default=None)
    f.add_argument("--out", default="")
    f.set_defaults(func=cmd_fill)

    s = sub.add_parser("status", help="Summarize a filled price grid")
    s.add_argument("file")
    s.set_defaults(func=cmd_status)

    u = sub.add_parser("ui", help="Compact price matrix of a filled grid")
    u.add_argument("file", help="Output of the fill command")
    u.add_argument("--config-dir", dest="config_dir", default=None)
    u.add_argument("--out", default="")
    u.set_defaults(func=cmd_ui)

    c = sub.add_parser("config", help="Show the effective configuration")
    c.set_defaults(func=cmd_config)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.log_level:
            config.override("observability.log_level", args.log_level)
        if args.log_format:
            config.override("observability.log_format", args.log_format)
        configure_logging(config.observability.log_level.get(), config.observability.log_format.get())
        args.config_obj = config
        return int(args.func(args))
    except GeoConfigError as e:
        print(str(e), file=sys.stderr)
        return EXIT_INVALID_CONFIG
    except (ConfigError, ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    except CLIError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code


if __name__ == "__main__":
    raise SystemExit(main())

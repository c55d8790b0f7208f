# SPDX-License-Identifier: AGPL-3.0-or-later
"""Command line interface for previewing local files."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys

from .engine import build_preview, parse_for_import
from .errors import PreviewError
from .schema import FileCategory
from .sniff import CATEGORIES, classify

_TYPE_CHOICES = list(CATEGORIES)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarise CSV, Excel, DICOM and NIfTI files")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity written to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    preview_parser = subparsers.add_parser("preview", help="Print the preview JSON for a file")
    preview_parser.add_argument("path", type=Path, help="File to preview")
    preview_parser.add_argument("--type", dest="declared_type", choices=_TYPE_CHOICES, help="Declared file type hint")
    preview_parser.add_argument(
        "--key",
        help="Storage key used for classification (defaults to the file path)",
    )
    mode = preview_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--sheets",
        action="store_true",
        help="Preview every worksheet of a spreadsheet",
    )
    mode.add_argument(
        "--import",
        dest="import_mode",
        action="store_true",
        help="Parse a .csv or .xlsx upload into all importable rows",
    )
    preview_parser.add_argument("--indent", type=int, default=2, help="JSON indentation")

    classify_parser = subparsers.add_parser("classify", help="Print the category a key resolves to")
    classify_parser.add_argument("key", help="Storage key or file name")
    classify_parser.add_argument("--type", dest="declared_type", choices=_TYPE_CHOICES, help="Declared file type hint")

    return parser.parse_args(argv)


def _emit(payload: dict, indent: int | None) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=indent or None) + "\n")


def _handle_preview(args: argparse.Namespace) -> int:
    path: Path = args.path.expanduser()
    data = path.read_bytes()
    key = args.key or path.as_posix()
    declared: FileCategory | None = args.declared_type
    try:
        if args.import_mode:
            payload = parse_for_import(key, data)
        else:
            payload = build_preview(key, data, declared, multi_sheet=args.sheets)
    except PreviewError as exc:
        _emit(exc.to_dict(), args.indent)
        return 2
    _emit(payload, args.indent)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), stream=sys.stderr)
    if args.command == "preview":
        return _handle_preview(args)
    if args.command == "classify":
        sys.stdout.write(classify(args.key, args.declared_type) + "\n")
        return 0
    raise ValueError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

#!/usr/bin/env python3
"""
Swift binding generator for `#[swift_bridge::bridge]` Rust modules.

This entrypoint wires together:
- Parsing of bridge modules (extern "Rust" blocks) into signature models
- Signature transformation (built-in vs opaque handle) per function
- Emitting (Jinja2-based) Swift wrappers, extern declarations and C headers

Outputs:
- <output_dir>/<module>.swift
- <output_dir>/<module>.h          (unless --no-header)
- <output_dir>/manifest.json       (unless --no-manifest)

Usage (example):
  python -m swift_bridge_generator.generate_bindings \
    --input src/lib.rs \
    --input src/bridge \
    --output-dir generated
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .emitters.swift_emitter import DuplicateModuleError, EmitterConfig, SwiftEmitter
from .manifest import emit_manifest
from .models import GenerationContext
from .parsing.bridge_parser import BridgeParseError, collect_modules_from_files
from .type_mapping import MappingConfig, UnresolvedTypeError
from .utils import TemplateRenderer, configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TEMPLATES = 1
EXIT_NO_INPUT = 2
EXIT_PARSE = 3
EXIT_EMIT = 4
EXIT_MANIFEST = 5


# --------------------------
# Helpers
# --------------------------

def discover_source_files(paths: List[str]) -> List[Path]:
    """
    Expand files and directories into a unique list of .rs files, preserving order.
    """
    found: Dict[Path, None] = {}
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            found.update(dict.fromkeys(sorted(f.resolve() for f in path.rglob("*.rs"))))
        elif path.is_file() and path.suffix == ".rs":
            found[path.resolve()] = None
        else:
            logger.warning("Skipping non-existent or non-Rust path: %s", raw)
    return list(found)


def resolve_log_level(ns: argparse.Namespace) -> int:
    if ns.log_level:
        return getattr(logging, str(ns.log_level).upper(), logging.INFO)
    if ns.verbose >= 1:
        return logging.DEBUG
    if ns.quiet >= 2:
        return logging.ERROR
    if ns.quiet == 1:
        return logging.WARNING
    return logging.INFO


# --------------------------
# CLI
# --------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate Swift bindings for swift_bridge Rust modules")

    p.add_argument(
        "--input",
        action="append",
        default=[],
        help="Rust file or directory containing bridge modules (repeatable). Directories are searched for *.rs.",
    )
    p.add_argument(
        "--output-dir",
        default="generated",
        help="Output directory for generated Swift sources and headers.",
    )
    p.add_argument(
        "--templates-dir",
        default=None,
        help="Optional templates directory; templates found there override the packaged ones.",
    )
    p.add_argument(
        "--lenient-types",
        action="store_true",
        help="Treat types that are neither built-in nor declared as opaque instead of failing.",
    )
    p.add_argument(
        "--no-header",
        action="store_true",
        help="Do not emit the C header alongside each Swift file.",
    )
    p.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not emit the JSON manifest alongside generated sources.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Run parsing and transformation, log what would be written, and write nothing.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for DEBUG).",
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (-q for WARNING, -qq for ERROR).",
    )
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"],
        default=None,
        help="Explicit log level (overrides -v/-q).",
    )
    p.add_argument(
        "--log-format",
        default="%(levelname)s: %(message)s",
        help="Logging format string.",
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional file to write logs to.",
    )

    return p.parse_args(argv)


# --------------------------
# Main
# --------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ns = parse_args(argv)

    configure_logging(level=resolve_log_level(ns), to_file=ns.log_file, fmt=ns.log_format)

    ctx = GenerationContext(
        output_dir=Path(ns.output_dir).resolve(),
        templates_dir=Path(ns.templates_dir).resolve() if ns.templates_dir else None,
        dry_run=ns.dry_run,
    )
    mapping_config = MappingConfig(strict=not ns.lenient_types)

    try:
        renderer = TemplateRenderer(ctx.templates_dir)
    except Exception:
        logger.exception("Failed to initialize templating")
        return EXIT_TEMPLATES

    sources = discover_source_files(ns.input)
    if not sources:
        logger.error("No Rust sources found to parse. Provide --input.")
        return EXIT_NO_INPUT

    try:
        modules = collect_modules_from_files(sources)
    except (BridgeParseError, OSError, UnicodeDecodeError):
        logger.exception("Failed to parse bridge modules")
        return EXIT_PARSE

    if not modules:
        logger.error("No #[swift_bridge::bridge] module found in %d Rust file(s).", len(sources))
        return EXIT_NO_INPUT

    logger.info("Discovered %d module(s)", len(modules))
    for m in modules:
        logger.debug(
            "Module %s: types=%s, functions=%d, methods=%d",
            m.name, ", ".join(m.opaque_types) or "-", len(m.free_functions), len(m.functions) - len(m.free_functions),
        )

    try:
        emitter = SwiftEmitter(
            ctx=ctx,
            renderer=renderer,
            config=EmitterConfig(emit_c_header=not ns.no_header),
            mapping_config=mapping_config,
        )
        emitter.emit(modules)
    except (UnresolvedTypeError, DuplicateModuleError) as ex:
        logger.error("Failed to generate files: %s", ex)
        return EXIT_EMIT
    except Exception:
        logger.exception("Failed to generate files")
        return EXIT_EMIT

    if not ns.no_manifest:
        try:
            emit_manifest(ctx, modules, mapping_config)
        except Exception:
            logger.exception("Failed to emit generation manifest")
            return EXIT_MANIFEST

    if ctx.dry_run:
        logger.info("Dry-run complete (no files written).")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

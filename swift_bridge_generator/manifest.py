#!/usr/bin/env python3
"""
JSON manifest of a generation run, for debugging and review of generated bindings.
"""

import json
import logging
import os
import platform
import shlex
import sys
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata
from typing import Optional, Sequence

from .models import BridgeModule, GenerationContext
from .signature_transform import transform_module
from .type_mapping import MappingConfig
from .utils import write_text

logger = logging.getLogger(__name__)

DIST_NAME = "swift-bridge-generator"


def generator_version() -> str:
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


def build_manifest(
    ctx: GenerationContext,
    modules: Sequence[BridgeModule],
    mapping_config: Optional[MappingConfig] = None,
) -> dict:
    """
    Collect generator metadata, invocation, environment and, per function,
    the rendered Swift fragments.
    """
    argv = list(getattr(sys, "argv", []) or [])
    return {
        "generator": {
            "name": DIST_NAME,
            "version": generator_version(),
        },
        "invocation": {
            "argv": argv,
            "command_line": " ".join(shlex.quote(a) for a in argv),
        },
        "environment": {
            "python_version": sys.version,
            "platform": platform.platform(),
            "cwd": os.getcwd(),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        },
        "context": ctx.to_dict(),
        "module_count": len(modules),
        "modules": [
            {
                **m.to_dict(),
                "rendered": [ts.to_dict() for ts in transform_module(m, config=mapping_config)],
            }
            for m in modules
        ],
    }


def emit_manifest(
    ctx: GenerationContext,
    modules: Sequence[BridgeModule],
    mapping_config: Optional[MappingConfig] = None,
) -> None:
    """
    Write <output_dir>/manifest.json. Write failures are logged and swallowed;
    the manifest is never required by the generated code.
    """
    manifest_path = ctx.output_dir / "manifest.json"
    content = json.dumps(build_manifest(ctx, modules, mapping_config), indent=2)
    try:
        write_text(manifest_path, content + "\n", dry_run=ctx.dry_run)
    except OSError:
        logger.exception("Failed to write manifest to %s; continuing without manifest", manifest_path)


__all__ = [
    "build_manifest",
    "emit_manifest",
    "generator_version",
]

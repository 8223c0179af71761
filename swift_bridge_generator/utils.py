#!/usr/bin/env python3
"""
Shared helpers of the Swift bridge generator.

- logging setup used by the CLI (console plus optional log file)
- a Jinja2 renderer that looks up templates in a user directory before the
  templates shipped with the package, with filters for Swift and C output
- idempotent file writes, so regenerating unchanged bindings leaves files untouched
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Union

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

logger = logging.getLogger(__name__)

PACKAGE_NAME = "swift_bridge_generator"
PACKAGE_TEMPLATES_DIR = Path(__file__).parent / "templates"
DEFAULT_LOG_FORMAT = "%(levelname)s: %(message)s"


# ----------------------------------------
# Logging
# ----------------------------------------

def _level_number(level: Optional[Union[int, str]]) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def configure_logging(
    level: Optional[Union[int, str]] = None,
    *,
    to_file: Optional[Union[str, Path]] = None,
    fmt: Optional[str] = None,
    stream: Optional[TextIO] = None,
    propagate_package_loggers: bool = True,
) -> None:
    """
    Route generator logs to `stream` (stderr by default) and, if `to_file` is
    given, to that file as well. Any handlers already on the root logger are
    replaced, so calling this twice does not duplicate output.
    """
    threshold = _level_number(level)
    formatter = logging.Formatter(fmt or DEFAULT_LOG_FORMAT)

    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(threshold)

    console = logging.StreamHandler(stream or sys.stderr)
    outputs: List[logging.Handler] = [console]
    if to_file:
        outputs.append(logging.FileHandler(str(to_file), mode="w", encoding="utf-8"))
    for handler in outputs:
        handler.setFormatter(formatter)
        handler.setLevel(threshold)
        root.addHandler(handler)

    package_logger = logging.getLogger(PACKAGE_NAME)
    package_logger.setLevel(threshold)
    package_logger.propagate = propagate_package_loggers


# ----------------------------------------
# Templates
# ----------------------------------------

class TemplateRenderer:
    """
    Jinja2 environment for the Swift and C templates.

    Lookup order: `templates_dir` (if it exists), then swift_bridge_generator/templates.
    A user directory only needs to contain the templates it overrides.
    """

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        self.search_path: List[Path] = []
        if templates_dir:
            user_dir = Path(templates_dir)
            if user_dir.is_dir():
                self.search_path.append(user_dir)
            else:
                logger.warning("Templates directory %s does not exist; using package templates", user_dir)
        self.search_path.append(PACKAGE_TEMPLATES_DIR)

        self.env = Environment(
            loader=ChoiceLoader([FileSystemLoader(str(d)) for d in self.search_path]),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters.update(
            swift_string=swift_string_literal,
            include_guard=include_guard,
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as e:
            searched = ", ".join(str(d) for d in self.search_path)
            raise RuntimeError(f"Template not found: {template_name} (searched {searched})") from e
        return template.render(**context)


def swift_string_literal(value: str) -> str:
    """
    Quote a string as a Swift string literal: '__swift_bridge__$Foo$new' -> '"__swift_bridge__$Foo$new"'.
    """
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def include_guard(name: str) -> str:
    """
    C include guard for a module name: 'ffi' -> 'SWIFT_BRIDGE_FFI_H'.
    """
    token = re.sub(r"\W", "_", str(name)).upper()
    return f"SWIFT_BRIDGE_{token}_H"


# ----------------------------------------
# Output files
# ----------------------------------------

def ensure_dir(p: Path) -> None:
    Path(p).mkdir(parents=True, exist_ok=True)


def normalize_newlines(text: str) -> str:
    """Generated files always use '\\n'."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _current_content(path: Path, encoding: str) -> Optional[str]:
    if not path.is_file():
        return None
    return normalize_newlines(path.read_bytes().decode(encoding))


def atomic_write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    only_if_changed: bool = True,
) -> bool:
    """
    Replace `path` with `content` through a sibling temp file, so readers never
    see a half-written binding. With `only_if_changed`, identical content (after
    newline normalization) is not rewritten and the file's mtime is kept.

    Returns True if the file was written.
    """
    target = Path(path)
    text = normalize_newlines(content)
    ensure_dir(target.parent)

    if only_if_changed and _current_content(target, encoding) == text:
        logger.debug("[skip] %s (unchanged)", target)
        return False

    fd, staging = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(text.encode(encoding))
        os.chmod(staging, 0o644)
        os.replace(staging, target)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(staging)
        raise
    logger.info("[write] %s", target)
    return True


def write_text(path: Path, content: str, encoding: str = "utf-8", dry_run: bool = False) -> bool:
    """
    atomic_write_text, or only a log line when `dry_run` is set.
    """
    if dry_run:
        logger.info("[dry-run] would write %s", path)
        return False
    return atomic_write_text(Path(path), content, encoding=encoding)


__all__ = [
    "PACKAGE_NAME",
    "PACKAGE_TEMPLATES_DIR",
    "TemplateRenderer",
    "configure_logging",
    "swift_string_literal",
    "include_guard",
    "ensure_dir",
    "normalize_newlines",
    "atomic_write_text",
    "write_text",
]

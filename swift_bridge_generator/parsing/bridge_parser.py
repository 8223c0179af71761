#!/usr/bin/env python3
"""
Parsing of `#[swift_bridge::bridge]` modules into signature models.

This module reads the Rust source of a bridge module:

    #[swift_bridge::bridge]
    mod ffi {
        extern "Rust" {
            type Foo;
            fn make() -> Foo;
            fn value(&self, scale: u8) -> u32;
        }
    }

and produces a `BridgeModule` with the declared opaque types and one
`ExternFunction` per `fn` declaration, in source order.

It is a lightweight item scanner, not a Rust parser: it understands exactly the
declarations that may appear in an `extern "Rust"` block (type declarations and
function signatures without bodies). Only modules marked
`#[swift_bridge::bridge]` are read from files; other modules, comments and
attributes are ignored. Generic and variadic functions are rejected.

Receivers are kept in the spelling they were written in: `self`, `&self` and
`&mut self` become a `Receiver`; `self: Foo`, `self: &Foo` and `self: &mut Foo`
become a named `self` parameter. The signature transformer treats both the same.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from ..models import (
    BridgeModule,
    ExternFunction,
    FunctionSignature,
    NamedParameter,
    Parameter,
    Receiver,
    ReceiverKind,
    RustType,
    SELF_IDENTIFIER,
)

logger = logging.getLogger(__name__)

_STRING_RE = re.compile(r'"(?:\\.|[^"\\])*"', re.DOTALL)
_CHAR_RE = re.compile(r"'(?:\\.|[^\\'])'")
_ATTRIBUTE_RE = re.compile(r'#!?\[(?:"(?:\\.|[^"\\])*"|[^\]"])*\]')
_BRIDGE_MOD_RE = re.compile(
    r'#\[\s*swift_bridge::bridge\b(?:"(?:\\.|[^"\\])*"|[^\]"])*\]\s*'
    r'(?:#\[(?:"(?:\\.|[^"\\])*"|[^\]"])*\]\s*)*'
    r"(?:pub(?:\s*\([^)]*\))?\s+)?mod\s+(\w+)\s*\{"
)
_LIFETIME_RE = re.compile(r"'\w+")
_MOD_RE = re.compile(r"\bmod\s+(\w+)\s*\{")
_EXTERN_RE = re.compile(r'\bextern\s+"(\w+)"\s*\{')
_TYPE_RE = re.compile(r"^type\s+(\w+)$")
_FN_RE = re.compile(r"^(?:pub(?:\s*\([^)]*\))?\s+)?fn\s+(\w+)\s*")
_IDENT_RE = re.compile(r"^[A-Za-z_]\w*$")

_RECEIVER_SPELLINGS = {
    "self": ReceiverKind.BY_VALUE,
    "mutself": ReceiverKind.BY_VALUE,
    "&self": ReceiverKind.BY_REF,
    "&mutself": ReceiverKind.BY_MUT_REF,
}


class BridgeParseError(ValueError):
    """
    Raised for bridge module source that cannot be turned into signatures.
    """

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


# --------------------------
# Helpers
# --------------------------

def _skip_literal(text: str, i: int) -> int:
    """
    End index of the string or char literal starting at `i`, or `i` if there is none
    (a lone `'` starts a lifetime, not a literal).
    """
    pattern = _STRING_RE if text[i] == '"' else _CHAR_RE
    m = pattern.match(text, i)
    if m:
        return m.end()
    return len(text) if text[i] == '"' else i


def _strip_comments(source: str) -> str:
    """
    Remove `//` and (nested) `/* */` comments. String and char literals are
    copied through untouched, so `"http://..."` survives.
    """
    out: List[str] = []
    i, n = 0, len(source)
    while i < n:
        ch = source[i]
        if ch in "\"'":
            end = _skip_literal(source, i)
            if end > i:
                out.append(source[i:end])
                i = end
                continue
        elif source.startswith("//", i):
            newline = source.find("\n", i)
            i = n if newline < 0 else newline
            continue
        elif source.startswith("/*", i):
            depth = 0
            while i < n:
                if source.startswith("/*", i):
                    depth += 1
                    i += 2
                elif source.startswith("*/", i):
                    depth -= 1
                    i += 2
                    if depth == 0:
                        break
                else:
                    i += 1
            out.append(" ")
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _matching_close(text: str, open_idx: int, open_ch: str = "{", close_ch: str = "}") -> int:
    """
    Index of the bracket closing the one at `open_idx`, or -1 if unbalanced.
    Brackets inside string and char literals do not count.
    """
    depth = 0
    i = open_idx
    while i < len(text):
        ch = text[i]
        if ch in "\"'":
            end = _skip_literal(text, i)
            if end > i:
                i = end
                continue
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _extern_blocks(body: str, path: Optional[Path]) -> List[Tuple[str, str]]:
    """
    Return (abi, block body) for every `extern "<abi>" { ... }` block.
    """
    blocks: List[Tuple[str, str]] = []
    pos = 0
    while True:
        m = _EXTERN_RE.search(body, pos)
        if not m:
            break
        open_idx = m.end() - 1
        close_idx = _matching_close(body, open_idx)
        if close_idx < 0:
            raise BridgeParseError(f'Unterminated extern "{m.group(1)}" block', path)
        blocks.append((m.group(1), body[open_idx + 1:close_idx]))
        pos = close_idx + 1
    return blocks


def _split_statements(block: str) -> List[str]:
    text = _ATTRIBUTE_RE.sub("", block)
    return [" ".join(s.split()) for s in text.split(";") if s.strip()]


# --------------------------
# Signatures
# --------------------------

def parse_parameter(text: str, path: Optional[Path] = None) -> Parameter:
    """
    Parse one parameter: a receiver or `name: Type`.
    """
    s = " ".join(_LIFETIME_RE.sub("", text).split())
    compact = s.replace(" ", "")
    if compact in _RECEIVER_SPELLINGS:
        return Receiver(kind=_RECEIVER_SPELLINGS[compact])

    if ":" not in s:
        raise BridgeParseError(f"Expected 'name: Type' parameter, got '{text.strip()}'", path)
    pattern, ty = s.split(":", 1)
    name = pattern.strip()
    if name.startswith("mut "):
        name = name[4:].strip()
    if not _IDENT_RE.match(name):
        raise BridgeParseError(f"Unsupported parameter pattern '{pattern.strip()}'", path)
    if "<" in ty:
        raise BridgeParseError(f"Generic parameter type '{ty.strip()}' is not supported", path)
    try:
        return NamedParameter(name=name, ty=RustType.from_spelling(ty))
    except ValueError as ex:
        raise BridgeParseError(str(ex), path) from ex


def parse_function(
    text: str,
    block_types: Iterable[str] = (),
    path: Optional[Path] = None,
) -> ExternFunction:
    """
    Parse a single `fn name(params) -> Ret` declaration (without the trailing ';').

    `block_types` are the types declared in the same extern block; a bare
    `&self` receiver attaches the method to the only one of them.
    """
    s = " ".join(text.split())
    m = _FN_RE.match(s)
    if not m:
        raise BridgeParseError(f"Unsupported item in extern block: '{s}'", path)
    name = m.group(1)
    rest = s[m.end():]
    if rest.startswith("<"):
        raise BridgeParseError(f"Generic function '{name}' is not supported", path)
    if not rest.startswith("("):
        raise BridgeParseError(f"Expected parameter list after 'fn {name}'", path)

    close_idx = _matching_close(rest, 0, "(", ")")
    if close_idx < 0:
        raise BridgeParseError(f"Unterminated parameter list in 'fn {name}'", path)
    params_text = rest[1:close_idx]
    tail = rest[close_idx + 1:].strip()

    if "..." in params_text:
        raise BridgeParseError(f"Variadic function '{name}' is not supported", path)
    parameters = [parse_parameter(p, path) for p in params_text.split(",") if p.strip()]

    return_type: Optional[RustType] = None
    if tail:
        if not tail.startswith("->"):
            raise BridgeParseError(f"Unexpected '{tail}' after parameters of 'fn {name}'", path)
        ret = tail[2:].strip()
        if "<" in ret:
            raise BridgeParseError(f"Generic return type '{ret}' is not supported", path)
        if ret.replace(" ", "") != "()":
            try:
                return_type = RustType.from_spelling(ret)
            except ValueError as ex:
                raise BridgeParseError(str(ex), path) from ex

    host_type = _host_type(name, parameters, list(block_types), path)
    return ExternFunction(
        name=name,
        signature=FunctionSignature.of(parameters, return_type),
        host_type=host_type,
    )


def _host_type(name: str, parameters: List[Parameter], block_types: List[str], path: Optional[Path]) -> Optional[str]:
    for p in parameters:
        if isinstance(p, NamedParameter) and p.name == SELF_IDENTIFIER:
            return p.ty.base
        if isinstance(p, Receiver):
            if len(block_types) != 1:
                raise BridgeParseError(
                    f"Cannot tell which type '{p.spelling}' of 'fn {name}' belongs to; "
                    f"declare exactly one type in the extern block or write 'self: &Type'",
                    path,
                )
            return block_types[0]
    return None


# --------------------------
# Modules
# --------------------------

def _module_body(text: str, open_idx: int, mod_name: str, path: Optional[Path]) -> str:
    close_idx = _matching_close(text, open_idx)
    if close_idx < 0:
        raise BridgeParseError(f"Unterminated module '{mod_name}'", path)
    return text[open_idx + 1:close_idx]


def _parse_module_body(mod_name: str, body: str, path: Optional[Path]) -> BridgeModule:
    module = BridgeModule(name=mod_name, source_path=path)

    for abi, block in _extern_blocks(body, path):
        if abi != "Rust":
            logger.warning('Skipping extern "%s" block in module %s (only extern "Rust" is generated)', abi, mod_name)
            continue

        statements = _split_statements(block)
        block_types: List[str] = []
        fn_statements: List[str] = []
        for stmt in statements:
            tm = _TYPE_RE.match(stmt)
            if tm:
                block_types.append(tm.group(1))
            else:
                fn_statements.append(stmt)

        for t in block_types:
            if t not in module.opaque_types:
                module.opaque_types.append(t)

        for stmt in fn_statements:
            fn = parse_function(stmt, block_types, path)
            logger.debug("Parsed %s::%s%s", mod_name, fn.name, fn.signature.rust_signature)
            module.functions.append(fn)

    return module


def parse_bridge_modules(source: str, path: Optional[Path] = None) -> List[BridgeModule]:
    """
    Every `#[swift_bridge::bridge] mod <name> { ... }` in `source`, in source order.
    Other modules are ignored; a source without a bridge module gives an empty list.
    """
    text = _strip_comments(source)
    modules: List[BridgeModule] = []
    pos = 0
    while True:
        m = _BRIDGE_MOD_RE.search(text, pos)
        if not m:
            break
        mod_name = m.group(1)
        open_idx = m.end() - 1
        body = _module_body(text, open_idx, mod_name, path)
        modules.append(_parse_module_body(mod_name, body, path))
        pos = open_idx + len(body) + 2
    return modules


def parse_bridge_module(source: str, path: Optional[Path] = None) -> BridgeModule:
    """
    Parse the module marked `#[swift_bridge::bridge]` in `source`.

    Snippets without the attribute are accepted too: the first `mod <name> { ... }`
    is used, and a source without any module is read as the body of a module
    named after the file (or 'ffi').
    """
    modules = parse_bridge_modules(source, path)
    if modules:
        if len(modules) > 1:
            logger.warning(
                "%s declares %d bridge modules; using %s",
                path or "source", len(modules), modules[0].name,
            )
        return modules[0]

    text = _strip_comments(source)
    m = _MOD_RE.search(text)
    if m:
        mod_name = m.group(1)
        body = _module_body(text, m.end() - 1, mod_name, path)
    else:
        mod_name = path.stem if path else "ffi"
        body = text
    return _parse_module_body(mod_name, body, path)


def collect_modules_from_files(paths: Iterable[Path]) -> List[BridgeModule]:
    """
    Parse the bridge modules of each file, in the given order. Files without a
    `#[swift_bridge::bridge]` module are skipped.
    """
    modules: List[BridgeModule] = []
    for p in paths:
        path = Path(p)
        source = path.read_text(encoding="utf-8")
        found = parse_bridge_modules(source, path)
        if not found:
            logger.info("Skipping %s: no #[swift_bridge::bridge] module", path)
            continue
        for module in found:
            logger.info(
                "Parsed module %s from %s: %d type(s), %d function(s)",
                module.name, path, len(module.opaque_types), len(module.functions),
            )
        modules.extend(found)
    return modules


__all__ = [
    "BridgeParseError",
    "parse_parameter",
    "parse_function",
    "parse_bridge_modules",
    "parse_bridge_module",
    "collect_modules_from_files",
]

#!/usr/bin/env python3
"""
Data models for the Swift bridge binding generator.

This module provides immutable, serializable data structures to describe:
- Rust types as written in a signature position (base identifier + reference qualifier)
- Function parameters (receivers and named parameters)
- Function signatures and extern functions
- Bridge modules (declared opaque types + extern functions)
- Generation context (paths, flags)

The models are designed to be consumed by:
- The parsing layer (to populate instances)
- The signature transformer (to render Swift declarations and forwarding calls)
- The emitters/templates (Jinja2) to render Swift sources and C headers

Signatures are read-only once constructed: nothing downstream of the parser
mutates them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

# Identifier used by Rust for the method receiver, in any of its spellings.
SELF_IDENTIFIER = "self"

# Prefix of every exported Rust symbol the generated Swift code links against.
LINK_NAME_PREFIX = "__swift_bridge__"

_LIFETIME_RE = re.compile(r"'\w+")


# --------------------------
# Rust type model
# --------------------------

class RefKind(Enum):
    VALUE = auto()
    SHARED_REF = auto()
    MUT_REF = auto()


@dataclass(frozen=True)
class RustType:
    """
    Structural representation of a Rust type in a signature position.

    Only the outermost reference qualifier is kept; the base identifier is the
    type name with references, `mut` and lifetimes removed. Two spellings that
    differ only in whitespace or lifetimes produce equal instances.
    """
    base: str
    ref_kind: RefKind = RefKind.VALUE

    @staticmethod
    def from_spelling(spelling: str) -> RustType:
        """
        Parse a Rust type spelling such as `Foo`, `& Foo`, `&mut Foo` or `&'a mut Foo`.
        """
        s = _LIFETIME_RE.sub("", spelling or "").strip()
        ref_kind = RefKind.VALUE
        if s.startswith("&"):
            s = s[1:].lstrip()
            ref_kind = RefKind.SHARED_REF
            if s == "mut" or s.startswith("mut ") or s.startswith("mut\t"):
                s = s[3:].lstrip()
                ref_kind = RefKind.MUT_REF
        base = "".join(s.split())
        if not base:
            raise ValueError(f"Empty type in spelling {spelling!r}")
        return RustType(base=base, ref_kind=ref_kind)

    @property
    def is_reference(self) -> bool:
        return self.ref_kind != RefKind.VALUE

    @property
    def is_mutable_reference(self) -> bool:
        return self.ref_kind == RefKind.MUT_REF

    @property
    def spelling(self) -> str:
        """
        Canonical Rust spelling, e.g. '&mut Foo'.
        """
        if self.ref_kind == RefKind.SHARED_REF:
            return f"&{self.base}"
        if self.ref_kind == RefKind.MUT_REF:
            return f"&mut {self.base}"
        return self.base

    def to_dict(self) -> Dict:
        return {
            "base": self.base,
            "ref_kind": self.ref_kind.name,
            "spelling": self.spelling,
        }


# --------------------------
# Parameter models
# --------------------------

class ReceiverKind(Enum):
    BY_VALUE = auto()
    BY_REF = auto()
    BY_MUT_REF = auto()


@dataclass(frozen=True)
class Receiver:
    """
    The implicit `self`, `&self` or `&mut self` parameter.
    """
    kind: ReceiverKind = ReceiverKind.BY_REF

    @property
    def spelling(self) -> str:
        if self.kind == ReceiverKind.BY_REF:
            return "&self"
        if self.kind == ReceiverKind.BY_MUT_REF:
            return "&mut self"
        return "self"

    def to_dict(self) -> Dict:
        return {"receiver": self.kind.name, "spelling": self.spelling}


@dataclass(frozen=True)
class NamedParameter:
    name: str
    ty: RustType

    @property
    def spelling(self) -> str:
        return f"{self.name}: {self.ty.spelling}"

    def to_dict(self) -> Dict:
        return {"name": self.name, "type": self.ty.to_dict(), "spelling": self.spelling}


Parameter = Union[Receiver, NamedParameter]


@dataclass(frozen=True)
class FunctionSignature:
    """
    Ordered parameters (receiver, if any, conventionally first) and an optional return type.
    A missing return type means the function returns `()`.
    """
    parameters: Tuple[Parameter, ...] = ()
    return_type: Optional[RustType] = None

    @staticmethod
    def of(parameters: Iterable[Parameter], return_type: Optional[RustType] = None) -> FunctionSignature:
        return FunctionSignature(parameters=tuple(parameters), return_type=return_type)

    @property
    def rust_signature(self) -> str:
        """
        Human-friendly Rust spelling of the signature, used for diagnostics.
        """
        params = ", ".join(p.spelling for p in self.parameters)
        ret = f" -> {self.return_type.spelling}" if self.return_type is not None else ""
        return f"({params}){ret}"

    def to_dict(self) -> Dict:
        return {
            "parameters": [p.to_dict() for p in self.parameters],
            "return_type": self.return_type.to_dict() if self.return_type is not None else None,
            "rust_signature": self.rust_signature,
        }


# --------------------------
# Function/module models
# --------------------------

@dataclass(frozen=True)
class ExternFunction:
    """
    A function declared in an `extern "Rust"` block.

    `host_type` is set for methods (functions with a receiver) and names the
    opaque type whose Swift class receives the generated method.
    """
    name: str
    signature: FunctionSignature
    host_type: Optional[str] = None

    @property
    def is_method(self) -> bool:
        return self.host_type is not None

    @property
    def link_name(self) -> str:
        """
        Exported Rust symbol, e.g. '__swift_bridge__$Foo$bar'.
        """
        if self.host_type:
            return f"{LINK_NAME_PREFIX}${self.host_type}${self.name}"
        return f"{LINK_NAME_PREFIX}${self.name}"

    @property
    def swift_symbol(self) -> str:
        """
        Swift identifier bound to `link_name` ('$' is not valid in Swift identifiers).
        """
        if self.host_type:
            return f"{LINK_NAME_PREFIX}{self.host_type}_{self.name}"
        return f"{LINK_NAME_PREFIX}{self.name}"

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "host_type": self.host_type,
            "is_method": self.is_method,
            "link_name": self.link_name,
            "swift_symbol": self.swift_symbol,
            "signature": self.signature.to_dict(),
        }


@dataclass
class BridgeModule:
    name: str
    source_path: Optional[Path] = None
    opaque_types: List[str] = field(default_factory=list)
    functions: List[ExternFunction] = field(default_factory=list)

    @property
    def free_functions(self) -> List[ExternFunction]:
        return [f for f in self.functions if not f.is_method]

    def methods_of(self, type_name: str) -> List[ExternFunction]:
        return [f for f in self.functions if f.host_type == type_name]

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "source_path": str(self.source_path) if self.source_path else None,
            "opaque_types": list(self.opaque_types),
            "functions": [f.to_dict() for f in self.functions],
        }


# --------------------------
# Generation context
# --------------------------

@dataclass
class GenerationContext:
    """
    Parameters for a single generation run.

    Paths are absolute. Emitters should rely on these rather than guessing.
    """
    output_dir: Path
    templates_dir: Optional[Path] = None
    dry_run: bool = False

    def to_dict(self) -> Dict:
        return {
            "output_dir": str(self.output_dir),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "dry_run": self.dry_run,
        }


__all__ = [
    "SELF_IDENTIFIER",
    "LINK_NAME_PREFIX",
    "RefKind",
    "RustType",
    "ReceiverKind",
    "Receiver",
    "NamedParameter",
    "Parameter",
    "FunctionSignature",
    "ExternFunction",
    "BridgeModule",
    "GenerationContext",
]

#!/usr/bin/env python3
"""
Type classification for Swift bridge bindings.

This module answers, for every type reachable from a bridge signature, the one
question the signature transformer needs: does the value cross the boundary
natively, and if so how is it spelled in the target language, or is it an
opaque, handle-backed type?

It provides:

- A catalog of built-in (boundary-native) Rust types and their Swift and C spellings
- The fixed spelling of an opaque handle per target language
- A `TypeClassifier` returning a `BuiltIn` or `Opaque` classification

Typical usage:

    from .type_mapping import TypeClassifier, MappingConfig, BuiltIn

    classifier = TypeClassifier.from_module(module, config=MappingConfig())
    c = classifier.classify(RustType.from_spelling("&mut Foo"))
    if isinstance(c, BuiltIn):
        ...

Design notes:
- Classification depends on the base identifier only. `u8`, `&u8` and
  `&mut u8` are all built-in; `Foo`, `&Foo` and `&mut Foo` are all opaque.
- A type that is neither built-in nor declared in the bridge module is an
  integration defect. The strict classifier raises; the lenient one treats it
  as opaque and logs a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Union

from .models import BridgeModule, RustType

logger = logging.getLogger(__name__)


class TargetLanguage(Enum):
    SWIFT = "swift"
    C = "c"


# Spelling of an untyped mutable pointer, i.e. an opaque handle, per target.
OPAQUE_HANDLE_SPELLING: Dict[TargetLanguage, str] = {
    TargetLanguage.SWIFT: "UnsafeMutableRawPointer",
    TargetLanguage.C: "void*",
}


class UnresolvedTypeError(LookupError):
    """
    Raised when a type is neither built-in nor a declared opaque type.
    """

    def __init__(self, ty: RustType) -> None:
        super().__init__(f"Cannot classify type '{ty.spelling}': not a built-in and not declared in the bridge module")
        self.ty = ty


# --------------------------
# Built-in catalog
# --------------------------

class BuiltInType(Enum):
    """
    Rust types with a direct native representation on both sides of the boundary.
    Value: (rust spelling, swift spelling, c spelling).
    """
    U8 = ("u8", "UInt8", "uint8_t")
    I8 = ("i8", "Int8", "int8_t")
    U16 = ("u16", "UInt16", "uint16_t")
    I16 = ("i16", "Int16", "int16_t")
    U32 = ("u32", "UInt32", "uint32_t")
    I32 = ("i32", "Int32", "int32_t")
    U64 = ("u64", "UInt64", "uint64_t")
    I64 = ("i64", "Int64", "int64_t")
    USIZE = ("usize", "UInt", "uintptr_t")
    ISIZE = ("isize", "Int", "intptr_t")
    F32 = ("f32", "Float", "float")
    F64 = ("f64", "Double", "double")
    BOOL = ("bool", "Bool", "bool")

    @property
    def rust(self) -> str:
        return self.value[0]

    def to_swift(self) -> str:
        return self.value[1]

    def to_c(self) -> str:
        return self.value[2]

    def spelling(self, target: TargetLanguage) -> str:
        if target == TargetLanguage.C:
            return self.to_c()
        return self.to_swift()

    @staticmethod
    def with_type(ty: RustType) -> Optional[BuiltInType]:
        return _BUILT_INS_BY_RUST_NAME.get(ty.base)


_BUILT_INS_BY_RUST_NAME: Dict[str, BuiltInType] = {b.rust: b for b in BuiltInType}


# --------------------------
# Classification
# --------------------------

@dataclass(frozen=True)
class BuiltIn:
    built_in: BuiltInType
    spelling: str


@dataclass(frozen=True)
class Opaque:
    name: str


Classification = Union[BuiltIn, Opaque]


@dataclass
class MappingConfig:
    """
    Settings for the classifier.
    """
    # Default target language for built-in spellings.
    target: TargetLanguage = TargetLanguage.SWIFT
    # Raise UnresolvedTypeError for unknown types instead of treating them as opaque.
    strict: bool = True
    # Extra opaque type names known to exist outside the parsed bridge modules.
    extra_opaque_types: FrozenSet[str] = field(default_factory=frozenset)


class TypeClassifier:
    """
    Classify Rust types as built-in or opaque.

    Build with:
      - from_module(module, config): declared opaque types of one bridge module
      - or TypeClassifier(declared_types, config)
    """

    def __init__(self, declared_types: Iterable[str] = (), config: Optional[MappingConfig] = None) -> None:
        self.config = config or MappingConfig()
        self.declared_types: FrozenSet[str] = frozenset(declared_types) | self.config.extra_opaque_types

    @staticmethod
    def from_module(module: BridgeModule, config: Optional[MappingConfig] = None) -> TypeClassifier:
        return TypeClassifier(module.opaque_types, config=config)

    @property
    def target(self) -> TargetLanguage:
        return self.config.target

    def classify(self, ty: RustType, target: Optional[TargetLanguage] = None) -> Classification:
        built_in = BuiltInType.with_type(ty)
        if built_in is not None:
            return BuiltIn(built_in=built_in, spelling=built_in.spelling(target or self.config.target))
        if ty.base in self.declared_types:
            return Opaque(name=ty.base)
        if self.config.strict:
            raise UnresolvedTypeError(ty)
        logger.warning("Type '%s' is not declared in the bridge module; treating it as opaque", ty.spelling)
        return Opaque(name=ty.base)

    def opaque_spelling(self, target: Optional[TargetLanguage] = None) -> str:
        return OPAQUE_HANDLE_SPELLING[target or self.config.target]


__all__ = [
    "TargetLanguage",
    "OPAQUE_HANDLE_SPELLING",
    "UnresolvedTypeError",
    "BuiltInType",
    "BuiltIn",
    "Opaque",
    "Classification",
    "MappingConfig",
    "TypeClassifier",
]

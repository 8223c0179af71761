#!/usr/bin/env python3
"""
Signature transformation for Rust functions exposed to Swift.

Given a parsed `FunctionSignature` and a `TypeClassifier`, this module renders
the three text fragments that emitters splice into Swift declarations:

- the parameter list of the Swift-side declaration:
    fn foo(&self, other: &Foo, n: u8)  ->  "_ this: UnsafeMutableRawPointer, _ other: Foo, _ n: UInt8"
- the argument list used to forward a call back into Rust:
    fn foo(&self, other: &Foo, n: u8)  ->  "ptr, other.ptr, n"
- the return clause:
    -> Foo                             ->  " -> UnsafeMutableRawPointer"

Built-in values cross the boundary by value. Opaque values only ever cross as
a pointer to their handle, whatever their reference qualifier in Rust. The
receiver, in any spelling, is materialized as a single anonymous handle
parameter when requested.

All functions are pure: the same signature and flag always give the same text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, cast

from .models import BridgeModule, ExternFunction, FunctionSignature, NamedParameter, Parameter, Receiver, RustType, SELF_IDENTIFIER
from .type_mapping import BuiltIn, MappingConfig, TargetLanguage, TypeClassifier

logger = logging.getLogger(__name__)

# Argument label meaning "no external name at the call site".
ANONYMOUS_LABEL = "_"
# Local name of the synthetic receiver parameter in extern declarations.
RECEIVER_PARAM_NAME = "this"
# Field holding the opaque pointer on every generated handle class.
HANDLE_FIELD = "ptr"


def is_receiver(param: Parameter) -> bool:
    """
    True for `self`, `&self`, `&mut self` and for a named parameter called `self`,
    whatever its declared type (`self: Foo`, `self: &Foo`, `self: &mut Foo`).
    """
    if isinstance(param, Receiver):
        return True
    return param.name == SELF_IDENTIFIER


def _receiver_param(classifier: TypeClassifier) -> str:
    return f"{ANONYMOUS_LABEL} {RECEIVER_PARAM_NAME}: {classifier.opaque_spelling(TargetLanguage.SWIFT)}"


def render_parameter_list(signature: FunctionSignature, include_receiver: bool, classifier: TypeClassifier) -> str:
    params: List[str] = []

    for param in signature.parameters:
        if is_receiver(param):
            if include_receiver:
                params.append(_receiver_param(classifier))
            continue

        named = cast(NamedParameter, param)
        c = classifier.classify(named.ty, TargetLanguage.SWIFT)
        if isinstance(c, BuiltIn):
            params.append(f"{ANONYMOUS_LABEL} {named.name}: {c.spelling}")
        else:
            # Foo, &Foo and &mut Foo all map to the Swift class Foo.
            params.append(f"{ANONYMOUS_LABEL} {named.name}: {named.ty.base}")

    return ", ".join(params)


def render_call_arguments(signature: FunctionSignature, include_receiver: bool, classifier: TypeClassifier) -> str:
    """
    Arguments forwarded from a Swift wrapper to the extern Rust function.

    fn foo (&self, arg1: u8, arg2: u32)
     becomes..
    ptr, arg1, arg2
    """
    args: List[str] = []

    for param in signature.parameters:
        if is_receiver(param):
            if include_receiver:
                args.append(HANDLE_FIELD)
            continue

        named = cast(NamedParameter, param)
        c = classifier.classify(named.ty, TargetLanguage.SWIFT)
        if isinstance(c, BuiltIn):
            args.append(named.name)
        else:
            args.append(f"{named.name}.{HANDLE_FIELD}")

    return ", ".join(args)


def render_return_clause(signature: FunctionSignature, classifier: TypeClassifier) -> str:
    if signature.return_type is None:
        return ""
    c = classifier.classify(signature.return_type, TargetLanguage.SWIFT)
    if isinstance(c, BuiltIn):
        return f" -> {c.spelling}"
    return f" -> {classifier.opaque_spelling(TargetLanguage.SWIFT)}"


def render_extern_parameter_list(signature: FunctionSignature, classifier: TypeClassifier) -> str:
    """
    Parameters of the `@_silgen_name` declaration bound to the Rust symbol.

    Unlike `render_parameter_list`, opaque values are spelled as the handle type,
    matching the `other.ptr` arguments of `render_call_arguments`:

    fn foo (&self, other: &Foo, n: u8)
     becomes..
    _ this: UnsafeMutableRawPointer, _ other: UnsafeMutableRawPointer, _ n: UInt8
    """
    handle = classifier.opaque_spelling(TargetLanguage.SWIFT)
    params: List[str] = []

    for param in signature.parameters:
        if is_receiver(param):
            params.append(_receiver_param(classifier))
            continue

        named = cast(NamedParameter, param)
        c = classifier.classify(named.ty, TargetLanguage.SWIFT)
        spelling = c.spelling if isinstance(c, BuiltIn) else handle
        params.append(f"{ANONYMOUS_LABEL} {named.name}: {spelling}")

    return ", ".join(params)


# --------------------------
# Transformer
# --------------------------

@dataclass(frozen=True)
class TransformedSignature:
    """
    All rendered fragments for one extern function, ready for templates.
    """
    function: ExternFunction
    # Swift wrapper (method or free function) exposed to callers.
    wrapper_params: str
    # Extern declaration bound to the Rust symbol; receiver materialized, opaque values as handles.
    extern_params: str
    call_args: str
    return_clause: str

    def to_dict(self) -> Dict:
        return {
            "name": self.function.name,
            "host_type": self.function.host_type,
            "link_name": self.function.link_name,
            "swift_symbol": self.function.swift_symbol,
            "wrapper_params": self.wrapper_params,
            "extern_params": self.extern_params,
            "call_args": self.call_args,
            "return_clause": self.return_clause,
        }


class SignatureTransformer:
    """
    Bind a classifier and render the Swift fragments of bridge signatures.

    Usage:
        transformer = SignatureTransformer(TypeClassifier.from_module(module))
        for fn in module.functions:
            ts = transformer.transform(fn)
    """

    def __init__(self, classifier: TypeClassifier) -> None:
        self.classifier = classifier

    def render_parameter_list(self, signature: FunctionSignature, include_receiver: bool) -> str:
        return render_parameter_list(signature, include_receiver, self.classifier)

    def render_call_arguments(self, signature: FunctionSignature, include_receiver: bool) -> str:
        return render_call_arguments(signature, include_receiver, self.classifier)

    def render_return_clause(self, signature: FunctionSignature) -> str:
        return render_return_clause(signature, self.classifier)

    def transform(self, function: ExternFunction) -> TransformedSignature:
        sig = function.signature
        ts = TransformedSignature(
            function=function,
            wrapper_params=self.render_parameter_list(sig, include_receiver=False),
            extern_params=render_extern_parameter_list(sig, self.classifier),
            call_args=self.render_call_arguments(sig, include_receiver=True),
            return_clause=self.render_return_clause(sig),
        )
        logger.debug("Transformed %s%s -> (%s)%s", function.name, sig.rust_signature, ts.extern_params, ts.return_clause)
        return ts

    def render_c_prototype(self, function: ExternFunction) -> str:
        """
        C declaration of the exported Rust symbol, e.g.
        'uint8_t __swift_bridge__$Foo$bar(void* self, void* other);'
        """
        opaque = self.classifier.opaque_spelling(TargetLanguage.C)
        params: List[str] = []
        for param in function.signature.parameters:
            if is_receiver(param):
                params.append(f"{opaque} {SELF_IDENTIFIER}")
                continue
            named = cast(NamedParameter, param)
            params.append(f"{self._c_spelling(named.ty)} {named.name}")

        ret = function.signature.return_type
        ret_text = "void" if ret is None else self._c_spelling(ret)
        return f"{ret_text} {function.link_name}({', '.join(params) or 'void'});"

    def _c_spelling(self, ty: RustType) -> str:
        c = self.classifier.classify(ty, TargetLanguage.C)
        if isinstance(c, BuiltIn):
            return c.spelling
        return self.classifier.opaque_spelling(TargetLanguage.C)


def transform_module(module: BridgeModule, config: Optional[MappingConfig] = None) -> List[TransformedSignature]:
    """
    Transform every function of a module, in source order, against its declared types.
    """
    transformer = SignatureTransformer(TypeClassifier.from_module(module, config=config))
    return [transformer.transform(fn) for fn in module.functions]


__all__ = [
    "ANONYMOUS_LABEL",
    "RECEIVER_PARAM_NAME",
    "HANDLE_FIELD",
    "is_receiver",
    "render_parameter_list",
    "render_call_arguments",
    "render_return_clause",
    "render_extern_parameter_list",
    "TransformedSignature",
    "SignatureTransformer",
    "transform_module",
]

#!/usr/bin/env python3
"""
Emitter module for generating Swift sources from parsed bridge modules.

This module takes the parsed data model (modules, functions) and the rendered
signature fragments, and uses the Jinja2-based renderer to emit, per module:

- <output_dir>/<module>.swift
    free function wrappers, `extension <Type>` blocks with method wrappers,
    and one `@_silgen_name` extern declaration per Rust function
- <output_dir>/<module>.h
    C prototypes of the exported Rust symbols (optional)

The opaque handle classes themselves (and their allocation/release glue) are
not generated here; the extensions assume each class exposes its handle as `ptr`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..models import BridgeModule, GenerationContext
from ..signature_transform import SignatureTransformer, TransformedSignature
from ..type_mapping import MappingConfig, TypeClassifier
from ..utils import TemplateRenderer, ensure_dir, write_text

logger = logging.getLogger(__name__)


class DuplicateModuleError(ValueError):
    """
    Raised when two bridge modules would be written to the same output files.
    """


# --------------------------
# Configuration
# --------------------------

@dataclass(frozen=True)
class EmitterConfig:
    """
    Configuration for the Swift emitter.

    Override template names to use custom ones from a templates directory
    (see utils.TemplateRenderer for loader layering).
    """
    swift_template: str = "swift_module.swift.j2"
    header_template: str = "c_header.h.j2"
    emit_c_header: bool = True


# --------------------------
# Emitter
# --------------------------

class SwiftEmitter:
    """
    Emit Swift bindings for bridge modules.

    Usage:
        emitter = SwiftEmitter(ctx, renderer, config, mapping_config)
        written = emitter.emit(modules)
    """

    def __init__(
        self,
        ctx: GenerationContext,
        renderer: TemplateRenderer,
        config: Optional[EmitterConfig] = None,
        mapping_config: Optional[MappingConfig] = None,
    ) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.config = config or EmitterConfig()
        self.mapping_config = mapping_config or MappingConfig()

    # ---- Public API ----

    def emit(self, modules: Sequence[BridgeModule]) -> List[Path]:
        """
        Generate the outputs of every module. Returns the paths of the generated files
        (including unchanged ones).
        """
        self.check_output_names(modules)
        if not self.ctx.dry_run:
            ensure_dir(self.ctx.output_dir)

        outputs: List[Path] = []
        for module in modules:
            outputs.extend(self._emit_module(module))

        logger.info("Generation complete under: %s", self.ctx.output_dir)
        return outputs

    def check_output_names(self, modules: Sequence[BridgeModule]) -> None:
        """
        Fail before anything is written if two modules share a name, since
        both would generate <name>.swift and <name>.h.
        """
        seen: Dict[str, BridgeModule] = {}
        for module in modules:
            first = seen.setdefault(module.name, module)
            if first is not module:
                raise DuplicateModuleError(
                    f"Bridge module '{module.name}' is declared in both {first.source_path or '<source>'} "
                    f"and {module.source_path or '<source>'}; both would generate {module.name}.swift"
                )

    def build_context(self, module: BridgeModule) -> Dict:
        """
        Template context for one module. Raises UnresolvedTypeError if a
        signature references an undeclared type.
        """
        transformer = SignatureTransformer(TypeClassifier.from_module(module, config=self.mapping_config))
        transformed: List[TransformedSignature] = [transformer.transform(fn) for fn in module.functions]

        extensions = []
        for type_name in module.opaque_types:
            methods = [ts.to_dict() for ts in transformed if ts.function.host_type == type_name]
            if methods:
                extensions.append({"type_name": type_name, "methods": methods})

        # Methods on types declared in other modules still need an extension block.
        known = set(module.opaque_types)
        foreign_hosts: List[str] = []
        for ts in transformed:
            host = ts.function.host_type
            if host and host not in known and host not in foreign_hosts:
                foreign_hosts.append(host)
        for type_name in foreign_hosts:
            methods = [ts.to_dict() for ts in transformed if ts.function.host_type == type_name]
            extensions.append({"type_name": type_name, "methods": methods})

        return {
            "module": module.to_dict(),
            "free_functions": [ts.to_dict() for ts in transformed if not ts.function.is_method],
            "extensions": extensions,
            "externs": [ts.to_dict() for ts in transformed],
            "c_prototypes": [transformer.render_c_prototype(fn) for fn in module.functions],
        }

    # ---- Internals ----

    def _emit_module(self, module: BridgeModule) -> List[Path]:
        context = self.build_context(module)
        if not module.functions:
            logger.warning("Module %s declares no extern \"Rust\" functions; generating an empty file", module.name)

        try:
            swift_content = self.renderer.render(self.config.swift_template, context)
            header_content = (
                self.renderer.render(self.config.header_template, context) if self.config.emit_c_header else None
            )
        except Exception:
            logger.exception("Failed to render templates for module %s; aborting generation", module.name)
            raise

        swift_path = self.ctx.output_dir / f"{module.name}.swift"
        write_text(swift_path, swift_content, dry_run=self.ctx.dry_run)
        outputs = [swift_path]

        if header_content is not None:
            header_path = self.ctx.output_dir / f"{module.name}.h"
            write_text(header_path, header_content, dry_run=self.ctx.dry_run)
            outputs.append(header_path)

        logger.debug("Module %s: %d function(s) emitted", module.name, len(module.functions))
        return outputs


__all__ = [
    "DuplicateModuleError",
    "EmitterConfig",
    "SwiftEmitter",
]

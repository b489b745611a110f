"""
WASI Trampoline Generator Package

Parses WITX interface descriptions and generates C source containing
weakly-linked trampolines: for every allow-listed WASI hook function, a
stub named after the libc import (``__imported_*`` or legacy ``__wasi_*``)
that forwards to a ``wasi_vfs_*`` implementation.
"""

from .errors import TrampgenError, AbiVariantError, WitxParseError, UnsupportedTypeError
from .types import (
    AbiVariant, IntRepr, WasmType, Param, InterfaceFunction, Module, Document,
)
from .parser import WitxParser, load, loads
from .type_mapper import TypeMapper
from .signature import wasm_signature
from .hooks import WASI_HOOK_FUNCTIONS
from .trampoline_generator import TrampolineGenerator, generate, to_snake_case

__all__ = [
    'TrampgenError', 'AbiVariantError', 'WitxParseError', 'UnsupportedTypeError',
    'AbiVariant', 'IntRepr', 'WasmType', 'Param', 'InterfaceFunction', 'Module', 'Document',
    'WitxParser', 'load', 'loads', 'TypeMapper', 'wasm_signature',
    'WASI_HOOK_FUNCTIONS', 'TrampolineGenerator', 'generate', 'to_snake_case',
]

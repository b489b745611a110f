"""Type mapping from WITX scalar kinds to C types"""

from typing import Iterable, Sequence, Union
from .types import IntRepr, WasmType


class TypeMapper:
    """Maps IntRepr and WasmType values to C primitive types"""

    # Integer representations (tags, flag words)
    INT_REPR_TYPES = {
        IntRepr.U8: 'uint8_t',
        IntRepr.U16: 'uint16_t',
        IntRepr.U32: 'uint32_t',
        IntRepr.U64: 'uint64_t',
    }

    # Core wasm value types
    WASM_TYPES = {
        WasmType.I32: 'int32_t',
        WasmType.I64: 'int64_t',
        WasmType.F32: 'float',
        WasmType.F64: 'double',
    }

    @classmethod
    def to_c(cls, kind: Union[IntRepr, WasmType]) -> str:
        """Convert a scalar kind to its C type"""
        if isinstance(kind, IntRepr):
            return cls.INT_REPR_TYPES[kind]
        return cls.WASM_TYPES[kind]

    @classmethod
    def to_c_params(cls, kinds: Iterable[WasmType]) -> str:
        """Comma-joined C parameter types, ``void`` for an empty list"""
        return ", ".join(cls.to_c(k) for k in kinds) or "void"

    @classmethod
    def to_c_result(cls, results: Sequence[WasmType]) -> str:
        """C return type for a lowered result list of at most one value"""
        if not results:
            return "void"
        return cls.to_c(results[0])

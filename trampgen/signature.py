"""Lowering of interface function signatures to core wasm types"""

from .errors import UnsupportedTypeError
from .types import (
    Builtin, Document, Handle, IntRepr, InterfaceFunction, ListType, Pointer,
    Record, TypeRef, Variant, WasmType,
)

BUILTIN_WASM_TYPES = {
    'bool': WasmType.I32,
    'char': WasmType.I32,
    'u8': WasmType.I32,
    's8': WasmType.I32,
    'u16': WasmType.I32,
    's16': WasmType.I32,
    'u32': WasmType.I32,
    's32': WasmType.I32,
    'u64': WasmType.I64,
    's64': WasmType.I64,
    'f32': WasmType.F32,
    'f64': WasmType.F64,
}

INT_REPR_WASM_TYPES = {
    IntRepr.U8: WasmType.I32,
    IntRepr.U16: WasmType.I32,
    IntRepr.U32: WasmType.I32,
    IntRepr.U64: WasmType.I64,
}


def wasm_signature(func: InterfaceFunction, doc: Document) -> tuple[list[WasmType], list[WasmType]]:
    """Return the (params, results) core wasm types of ``func``.

    Results returned through memory (the ok payload of an ``expected``)
    become extra trailing pointer parameters.
    """
    params: list[WasmType] = []
    results: list[WasmType] = []

    for param in func.params:
        params.extend(_lower_param(doc.resolve(param.type)))

    for result in func.results:
        tref = doc.resolve(result.type)
        if isinstance(tref, Variant):
            results.append(INT_REPR_WASM_TYPES[tref.tag_repr])
            ok = tref.expected_ok()
            if ok is not None:
                params.extend(_out_pointers(doc.resolve(ok)))
        else:
            results.append(_lower_result(tref, result.name))

    return params, results


def _lower_param(tref: TypeRef) -> list[WasmType]:
    if isinstance(tref, Builtin):
        return [BUILTIN_WASM_TYPES[tref.kind]]
    if isinstance(tref, (Pointer, Handle)):
        return [WasmType.I32]
    if isinstance(tref, ListType):
        # pointer, length
        return [WasmType.I32, WasmType.I32]
    if isinstance(tref, Record):
        if tref.bitflags_repr is not None:
            return [INT_REPR_WASM_TYPES[tref.bitflags_repr]]
        return [WasmType.I32]
    if isinstance(tref, Variant):
        if tref.has_payloads():
            return [WasmType.I32]
        return [INT_REPR_WASM_TYPES[tref.tag_repr]]
    raise UnsupportedTypeError(f"cannot lower parameter type {tref!r}")


def _lower_result(tref: TypeRef, name: str) -> WasmType:
    if isinstance(tref, Builtin):
        return BUILTIN_WASM_TYPES[tref.kind]
    if isinstance(tref, (Pointer, Handle)):
        return WasmType.I32
    if isinstance(tref, Record) and tref.bitflags_repr is not None:
        return INT_REPR_WASM_TYPES[tref.bitflags_repr]
    raise UnsupportedTypeError(f"result ${name} has no core wasm representation")


def _out_pointers(ok: TypeRef) -> list[WasmType]:
    if isinstance(ok, Record) and ok.is_tuple:
        return [WasmType.I32 for _ in ok.members]
    return [WasmType.I32]

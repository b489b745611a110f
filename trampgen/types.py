"""Data types for WITX documents and trampoline generation"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .errors import AbiVariantError, WitxParseError


class IntRepr(Enum):
    """Fixed-width unsigned integer representation"""
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"


class WasmType(Enum):
    """Core WebAssembly scalar type"""
    I32 = "i32"
    I64 = "i64"
    F32 = "f32"
    F64 = "f64"


class AbiVariant(str, Enum):
    """Naming convention for the externally visible trampoline symbols"""
    LEGACY = "legacy"
    LATEST = "latest"

    @classmethod
    def parse(cls, token: str) -> "AbiVariant":
        for variant in cls:
            if variant.value == token:
                return variant
        raise AbiVariantError(f"unsupported abi variant {token}")


@dataclass(frozen=True)
class Builtin:
    """Builtin scalar: u8..u64, s8..s64, f32, f64 or char"""
    kind: str


@dataclass(frozen=True)
class Pointer:
    """(@witx pointer T) or (@witx const_pointer T)"""
    pointee: "TypeRef"
    is_const: bool = False


@dataclass(frozen=True)
class ListType:
    """(list T); string is a list of char"""
    element: "TypeRef"


@dataclass(frozen=True)
class RecordMember:
    name: str
    type: "TypeRef"


@dataclass(frozen=True)
class Record:
    """Record, tuple or bitflags.

    Flags are records of bools whose in-memory form is ``bitflags_repr``.
    """
    members: tuple[RecordMember, ...] = ()
    is_tuple: bool = False
    bitflags_repr: Optional[IntRepr] = None


@dataclass(frozen=True)
class Case:
    name: str
    payload: Optional["TypeRef"] = None


@dataclass(frozen=True)
class Variant:
    """Enum, union, variant or expected, all tagged by ``tag_repr``"""
    tag_repr: IntRepr
    cases: tuple[Case, ...] = ()
    is_expected: bool = False

    def has_payloads(self) -> bool:
        return any(c.payload is not None for c in self.cases)

    def expected_ok(self) -> Optional["TypeRef"]:
        """Payload of the ok case when this is an ``expected``"""
        if not self.is_expected:
            return None
        return self.cases[0].payload


@dataclass(frozen=True)
class Handle:
    """Opaque resource handle"""


@dataclass(frozen=True)
class NamedType:
    """Reference to a typename, resolved through Document.typenames"""
    name: str


TypeRef = Union[Builtin, Pointer, ListType, Record, Variant, Handle, NamedType]


@dataclass
class Param:
    """Function parameter or result"""
    name: str
    type: TypeRef


@dataclass
class InterfaceFunction:
    """Function declared by a module"""
    name: str
    params: list[Param] = field(default_factory=list)
    results: list[Param] = field(default_factory=list)


@dataclass
class Module:
    """Named group of interface functions"""
    name: str
    funcs: list[InterfaceFunction] = field(default_factory=list)


@dataclass
class Document:
    """Complete parsed WITX result"""
    modules: list[Module] = field(default_factory=list)
    typenames: dict[str, TypeRef] = field(default_factory=dict)

    def resolve(self, tref: TypeRef) -> TypeRef:
        """Follow typename references down to a concrete type"""
        seen = set()
        while isinstance(tref, NamedType):
            if tref.name in seen:
                raise WitxParseError(f"cyclic typename ${tref.name}")
            seen.add(tref.name)
            if tref.name not in self.typenames:
                raise WitxParseError(f"unknown typename ${tref.name}")
            tref = self.typenames[tref.name]
        return tref

"""WITX interface description parser"""

import re
from pathlib import Path
from typing import Iterable, Optional, Union

from .errors import WitxParseError
from .types import (
    Builtin, Case, Document, Handle, IntRepr, InterfaceFunction, ListType,
    Module, NamedType, Param, Pointer, Record, RecordMember, TypeRef, Variant,
)

BUILTINS = {'u8', 'u16', 'u32', 'u64', 's8', 's16', 's32', 's64',
            'f32', 'f64', 'char', 'bool'}

INT_REPRS = {r.value: r for r in IntRepr}

_TOKEN_RE = re.compile(r'''
    (?P<block>\(;.*?;\))
  | (?P<line>;;[^\n]*)
  | (?P<open>\()
  | (?P<close>\))
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<atom>[^\s()";]+)
  | (?P<space>\s+)
  | (?P<bad>.)
''', re.VERBOSE | re.DOTALL)


class Quoted(str):
    """String literal token, kept apart from keywords and $ids"""


SExpr = Union[str, list]


class WitxParser:
    """Parses WITX s-expression syntax.

    ``typenames`` holds names already defined by previously loaded files so
    that union tags can refer to enums declared elsewhere.
    """

    def __init__(self, content: str, path=None, typenames: Optional[dict] = None):
        self.path = path
        self.content = content
        self.known = dict(typenames or {})
        self.uses: list[str] = []

    def _error(self, message: str) -> WitxParseError:
        return WitxParseError(message, self.path)

    def parse(self) -> Document:
        result = Document()
        for form in self._read_forms():
            if not isinstance(form, list) or not form:
                raise self._error(f"expected a top-level form, found {form!r}")
            head = form[0]
            if head == 'typename':
                name = self._id(form, 1)
                if name in self.known:
                    raise self._error(f"duplicate typename ${name}")
                result.typenames[name] = self.known[name] = self._parse_type(self._arg(form, 2))
            elif head == 'module':
                result.modules.append(self._parse_module(form))
            elif head == 'use':
                target = self._arg(form, 1)
                if not isinstance(target, Quoted):
                    raise self._error("use expects a file name string")
                self.uses.append(str(target))
            else:
                raise self._error(f"unknown top-level form {head!r}")
        return result

    def find_uses(self) -> list[str]:
        """File names named by top-level (use "...") forms"""
        return [str(form[1]) for form in self._read_forms()
                if isinstance(form, list) and len(form) == 2
                and form[0] == 'use' and isinstance(form[1], Quoted)]

    def _read_forms(self) -> list[SExpr]:
        stack: list[list] = [[]]
        for m in _TOKEN_RE.finditer(self.content):
            kind = m.lastgroup
            if kind == 'open':
                stack.append([])
            elif kind == 'close':
                if len(stack) == 1:
                    raise self._error("unbalanced ')'")
                done = stack.pop()
                stack[-1].append(done)
            elif kind == 'string':
                stack[-1].append(Quoted(m.group()[1:-1]))
            elif kind == 'atom':
                stack[-1].append(m.group())
            elif kind == 'bad':
                raise self._error(f"unexpected character {m.group()!r}")
        if len(stack) != 1:
            raise self._error("unbalanced '('")
        return stack[0]

    def _arg(self, form: list, index: int) -> SExpr:
        if index >= len(form):
            raise self._error(f"missing argument {index} in ({form[0]} ...)")
        return form[index]

    def _id(self, form: list, index: int) -> str:
        value = self._arg(form, index)
        if isinstance(value, Quoted) or not isinstance(value, str) or not value.startswith('$'):
            raise self._error(f"expected $identifier in ({form[0]} ...), found {value!r}")
        return value[1:]

    def _parse_module(self, form: list) -> Module:
        module = Module(name=self._id(form, 1))
        for item in form[2:]:
            if not isinstance(item, list) or not item:
                raise self._error(f"unexpected {item!r} in module ${module.name}")
            if item[0] == 'import':
                continue
            if item[0] == '@interface' and len(item) > 1 and item[1] == 'func':
                module.funcs.append(self._parse_func(item))
            else:
                raise self._error(f"unknown module form {item[0]!r}")
        return module

    def _parse_func(self, form: list) -> InterfaceFunction:
        export = self._arg(form, 2)
        if not (isinstance(export, list) and len(export) == 2
                and export[0] == 'export' and isinstance(export[1], Quoted)):
            raise self._error("expected (export \"name\") in function")
        func = InterfaceFunction(name=str(export[1]))
        for item in form[3:]:
            if not isinstance(item, list) or not item:
                raise self._error(f"unexpected {item!r} in function {func.name}")
            if item[0] == 'param':
                func.params.append(Param(self._id(item, 1), self._parse_type(self._arg(item, 2))))
            elif item[0] == 'result':
                func.results.append(Param(self._id(item, 1), self._parse_type(self._arg(item, 2))))
            elif item == ['@witx', 'noreturn']:
                # does not change the lowered signature
                continue
            else:
                raise self._error(f"unknown function form {item[0]!r} in {func.name}")
        return func

    def _parse_type(self, expr: SExpr) -> TypeRef:
        if isinstance(expr, Quoted):
            raise self._error(f"expected a type, found string {str(expr)!r}")
        if isinstance(expr, str):
            if expr.startswith('$'):
                return NamedType(expr[1:])
            if expr in BUILTINS:
                return Builtin(expr)
            if expr == 'string':
                return ListType(Builtin('char'))
            raise self._error(f"unknown type {expr!r}")
        if not expr:
            raise self._error("empty type expression")

        head, rest = expr[0], expr[1:]
        if head == '@witx':
            if rest and rest[0] in ('pointer', 'const_pointer'):
                return Pointer(self._parse_type(self._arg(expr, 2)), is_const=rest[0] == 'const_pointer')
            if rest == ['usize']:
                return Builtin('u32')
            if rest == ['char8']:
                return Builtin('u8')
            raise self._error(f"unknown @witx type {rest!r}")
        if head == 'list':
            return ListType(self._parse_type(self._arg(expr, 1)))
        if head == 'handle':
            return Handle()
        if head == 'record':
            members = []
            for f in rest:
                if not (isinstance(f, list) and f and f[0] == 'field'):
                    raise self._error(f"expected (field ...) in record, found {f!r}")
                members.append(RecordMember(self._id(f, 1), self._parse_type(self._arg(f, 2))))
            return Record(members=tuple(members))
        if head == 'tuple':
            members = tuple(RecordMember(str(i), self._parse_type(t)) for i, t in enumerate(rest))
            return Record(members=members, is_tuple=True)
        if head == 'flags':
            repr_, names = self._annotation(rest, 'repr')
            members = tuple(RecordMember(self._name(n), Builtin('bool')) for n in names)
            return Record(members=members, bitflags_repr=repr_ or IntRepr.U32)
        if head == 'enum':
            tag, names = self._annotation(rest, 'tag')
            cases = tuple(Case(self._name(n)) for n in names)
            return Variant(tag_repr=tag or self._infer_tag(len(cases)), cases=cases)
        if head == 'variant':
            tag, items = self._annotation(rest, 'tag')
            cases = []
            for c in items:
                if not (isinstance(c, list) and len(c) in (2, 3) and c[0] == 'case'):
                    raise self._error(f"expected (case $name [type]) in variant, found {c!r}")
                payload = self._parse_type(c[2]) if len(c) == 3 else None
                cases.append(Case(self._id(c, 1), payload))
            return Variant(tag_repr=tag or self._infer_tag(len(cases)), cases=tuple(cases))
        if head == 'union':
            return self._parse_union(rest)
        if head == 'expected':
            return self._parse_expected(rest)
        raise self._error(f"unknown type constructor {head!r}")

    def _parse_union(self, rest: list) -> Variant:
        tag_names: Optional[list[str]] = None
        tag_repr = None
        if rest and isinstance(rest[0], list) and rest[0][:2] == ['@witx', 'tag']:
            tag_ref = self._parse_type(self._arg(rest[0], 2))
            tag_type = self._lookup(tag_ref)
            if not isinstance(tag_type, Variant) or tag_type.has_payloads():
                raise self._error("union tag must be an enum")
            tag_names = [c.name for c in tag_type.cases]
            tag_repr = tag_type.tag_repr
            rest = rest[1:]
        payloads = [self._parse_type(t) for t in rest]
        if tag_names is not None and len(tag_names) != len(payloads):
            raise self._error("union tag and payload counts differ")
        names = tag_names or [str(i) for i in range(len(payloads))]
        cases = tuple(Case(n, p) for n, p in zip(names, payloads))
        return Variant(tag_repr=tag_repr or self._infer_tag(len(cases)), cases=cases)

    def _parse_expected(self, rest: list) -> Variant:
        if not rest or not (isinstance(rest[-1], list) and len(rest[-1]) == 2 and rest[-1][0] == 'error'):
            raise self._error("expected needs a trailing (error T)")
        if len(rest) > 2:
            raise self._error("expected takes at most one ok type")
        ok = self._parse_type(rest[0]) if len(rest) == 2 else None
        err = self._parse_type(rest[-1][1])
        return Variant(tag_repr=IntRepr.U32, cases=(Case('ok', ok), Case('err', err)), is_expected=True)

    def _annotation(self, rest: list, key: str) -> tuple[Optional[IntRepr], list]:
        """Split a leading (@witx <key> uN) off a type body"""
        if rest and isinstance(rest[0], list) and rest[0][:2] == ['@witx', key]:
            value = self._arg(rest[0], 2)
            if not isinstance(value, str) or value not in INT_REPRS:
                raise self._error(f"invalid {key} representation {value!r}")
            return INT_REPRS[value], rest[1:]
        return None, rest

    def _name(self, value: SExpr) -> str:
        if isinstance(value, Quoted) or not isinstance(value, str) or not value.startswith('$'):
            raise self._error(f"expected $identifier, found {value!r}")
        return value[1:]

    def _lookup(self, tref: TypeRef) -> TypeRef:
        seen = set()
        while isinstance(tref, NamedType):
            if tref.name in seen or tref.name not in self.known:
                raise self._error(f"unknown typename ${tref.name}")
            seen.add(tref.name)
            tref = self.known[tref.name]
        return tref

    @staticmethod
    def _infer_tag(count: int) -> IntRepr:
        if count <= 1 << 8:
            return IntRepr.U8
        if count <= 1 << 16:
            return IntRepr.U16
        if count <= 1 << 32:
            return IntRepr.U32
        return IntRepr.U64


def loads(content: str) -> Document:
    """Parse a single self-contained WITX source"""
    parser = WitxParser(content)
    doc = parser.parse()
    if parser.uses:
        raise WitxParseError("use is only supported when loading from files")
    validate(doc)
    return doc


def load(paths: Iterable[Union[str, Path]]) -> Document:
    """Load WITX files, following (use "...") relative to each file"""
    doc = Document()
    loaded: set[Path] = set()
    for path in paths:
        _load_file(Path(path), doc, loaded)
    validate(doc)
    return doc


def _load_file(path: Path, doc: Document, loaded: set) -> None:
    key = path.resolve()
    if key in loaded:
        return
    loaded.add(key)
    try:
        content = path.read_text()
    except OSError as e:
        raise WitxParseError(f"cannot read file: {e.strerror}", path) from e

    # Dependencies must define their typenames first
    for use in WitxParser(content, path).find_uses():
        _load_file(path.parent / use, doc, loaded)

    parser = WitxParser(content, path, doc.typenames)
    parsed = parser.parse()
    doc.typenames.update(parsed.typenames)
    doc.modules.extend(parsed.modules)


def validate(doc: Document) -> None:
    """Check that every typename reference resolves"""
    for tref in doc.typenames.values():
        _check_refs(tref, doc)
    for module in doc.modules:
        for func in module.funcs:
            for p in func.params + func.results:
                _check_refs(p.type, doc)


def _check_refs(tref: TypeRef, doc: Document) -> None:
    if isinstance(tref, NamedType):
        doc.resolve(tref)
    elif isinstance(tref, Pointer):
        _check_refs(tref.pointee, doc)
    elif isinstance(tref, ListType):
        _check_refs(tref.element, doc)
    elif isinstance(tref, Record):
        for m in tref.members:
            _check_refs(m.type, doc)
    elif isinstance(tref, Variant):
        for c in tref.cases:
            if c.payload is not None:
                _check_refs(c.payload, doc)

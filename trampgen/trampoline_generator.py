"""Trampoline Generator - generates weakly-linked C stubs for hook functions"""

import re
from typing import Callable, Collection, Union

from .hooks import WASI_HOOK_FUNCTIONS
from .signature import wasm_signature
from .types import AbiVariant, Document, InterfaceFunction, Module, WasmType
from .type_mapper import TypeMapper

HookFunctions = Union[Collection[str], Callable[[str], bool]]

HEADER = [
    "// This file is automatically generated, DO NOT EDIT",
    "//",
    "// To regenerate this file run the `trampgen` command",
    "// This file is written in C to add `__attribute__((weak))` to the functions so",
    "// that they won't be linked if the user doesn't use those WASI functions.",
    "",
    "#include <stdint.h>",
    "",
]


def to_snake_case(name: str) -> str:
    """Convert an identifier to snake_case, keeping digits on their word"""
    words = []
    for chunk in re.split(r'[^A-Za-z0-9]+', name):
        words.extend(re.findall(r'[A-Z]+[0-9]*(?![a-z])|[A-Z]?[a-z0-9]+|[0-9]+', chunk))
    return "_".join(w.lower() for w in words)


class TrampolineGenerator:
    """Generates weak trampolines forwarding to wasi_vfs_* implementations"""

    def __init__(self, doc: Document, variant: AbiVariant,
                 hook_functions: HookFunctions = WASI_HOOK_FUNCTIONS):
        self.doc = doc
        self.variant = variant
        if isinstance(hook_functions, str):
            raise TypeError("hook_functions must be a collection of names, not a str")
        if callable(hook_functions):
            self.is_hook = hook_functions
        else:
            self.is_hook = frozenset(hook_functions).__contains__

    def generate(self) -> str:
        lines = list(HEADER)
        for module in self.doc.modules:
            lines.extend(self._module(module))
            lines.append("")
        return "\n".join(lines) + "\n"

    def _module(self, module: Module) -> list[str]:
        lines = []
        for func in module.funcs:
            if not self.is_hook(func.name):
                continue
            params, results = wasm_signature(func, self.doc)
            lines.extend(self._hook_point(
                params,
                results,
                self.abi_name(module, func),
                self.trampoline_name(module, func),
            ))
            lines.append("")
        return lines

    def abi_name(self, module: Module, func: InterfaceFunction) -> str:
        """Externally visible symbol libc calls for ``func``"""
        if self.variant is AbiVariant.LATEST:
            return f"__imported_{to_snake_case(module.name)}_{to_snake_case(func.name)}"
        # Legacy wasi-libc names carry no module
        return f"__wasi_{to_snake_case(func.name)}"

    @staticmethod
    def trampoline_name(module: Module, func: InterfaceFunction) -> str:
        return f"wasi_vfs_{to_snake_case(module.name)}_{to_snake_case(func.name)}"

    def _hook_point(self, params: list[WasmType], results: list[WasmType],
                    name: str, trampoline_name: str) -> list[str]:
        if len(results) > 1:
            raise AssertionError(f"{name} has {len(results)} results, C allows one")

        ret = TypeMapper.to_c_result(results)
        decl_params = ", ".join(
            f"{TypeMapper.to_c(ty)} arg{i}" for i, ty in enumerate(params)
        ) or "void"
        args = ", ".join(f"arg{i}" for i in range(len(params)))
        call = f"{trampoline_name}({args})"

        return [
            "__attribute__((weak))",
            f"{ret} {name}({decl_params}) {{",
            f"  extern {ret} {trampoline_name}({TypeMapper.to_c_params(params)});",
            f"  return {call};" if results else f"  {call};",
            "}",
        ]


def generate(doc: Document, variant: AbiVariant,
             hook_functions: HookFunctions = WASI_HOOK_FUNCTIONS) -> str:
    """Render the trampoline C source for ``doc``"""
    return TrampolineGenerator(doc, variant, hook_functions).generate()

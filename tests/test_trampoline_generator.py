"""Tests for the weak trampoline generator."""

import os
import re
import subprocess
import sys
from pathlib import Path

import pytest
from trampgen.errors import AbiVariantError
from trampgen.hooks import WASI_HOOK_FUNCTIONS
from trampgen.parser import loads
from trampgen.trampoline_generator import HEADER, TrampolineGenerator, generate, to_snake_case
from trampgen.types import AbiVariant, WasmType

ROOT = Path(__file__).resolve().parent.parent

FD_WRITE_LATEST = """\
__attribute__((weak))
int32_t __imported_wasi_snapshot_preview1_fd_write(int32_t arg0, int32_t arg1, int32_t arg2, int32_t arg3) {
  extern int32_t wasi_vfs_wasi_snapshot_preview1_fd_write(int32_t, int32_t, int32_t, int32_t);
  return wasi_vfs_wasi_snapshot_preview1_fd_write(arg0, arg1, arg2, arg3);
}
"""

FD_WRITE_LEGACY = """\
__attribute__((weak))
int32_t __wasi_fd_write(int32_t arg0, int32_t arg1, int32_t arg2, int32_t arg3) {
  extern int32_t wasi_vfs_wasi_snapshot_preview1_fd_write(int32_t, int32_t, int32_t, int32_t);
  return wasi_vfs_wasi_snapshot_preview1_fd_write(arg0, arg1, arg2, arg3);
}
"""


def _definitions(source):
    return re.findall(r'^\S+ (\w+)\(', source, flags=re.MULTILINE)


class TestAbiVariant:
    def test_parse_tokens(self):
        assert AbiVariant.parse("legacy") is AbiVariant.LEGACY
        assert AbiVariant.parse("latest") is AbiVariant.LATEST

    def test_unknown_token_names_it(self):
        with pytest.raises(AbiVariantError, match="future"):
            AbiVariant.parse("future")

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            AbiVariant.parse("LATEST")


class TestSnakeCase:
    @pytest.mark.parametrize("name,expected", [
        ("fd_write", "fd_write"),
        ("wasi_snapshot_preview1", "wasi_snapshot_preview1"),
        ("fdWrite", "fd_write"),
        ("FdWrite", "fd_write"),
        ("HTTPServer", "http_server"),
        ("wasi-ephemeral-fd", "wasi_ephemeral_fd"),
    ])
    def test_to_snake_case(self, name, expected):
        assert to_snake_case(name) == expected


class TestGenerate:
    def test_header(self, preview1):
        source = generate(preview1, AbiVariant.LATEST)
        assert source.startswith("// This file is automatically generated, DO NOT EDIT\n")
        assert "#include <stdint.h>\n\n" in source

    def test_latest_fd_write(self, preview1):
        assert FD_WRITE_LATEST in generate(preview1, AbiVariant.LATEST)

    def test_legacy_fd_write(self, preview1):
        assert FD_WRITE_LEGACY in generate(preview1, AbiVariant.LEGACY)

    @pytest.mark.parametrize("variant", list(AbiVariant))
    def test_only_hook_functions_are_emitted(self, preview1, variant):
        names = _definitions(generate(preview1, variant))
        assert len(names) == 6
        for excluded in ("proc_exit", "random_get"):
            assert not any(n.endswith(excluded) for n in names)

    def test_latest_names_include_module(self, preview1):
        names = _definitions(generate(preview1, AbiVariant.LATEST))
        assert all(n.startswith("__imported_wasi_snapshot_preview1_") for n in names)

    def test_legacy_names_omit_module(self, preview1):
        names = _definitions(generate(preview1, AbiVariant.LEGACY))
        assert names[0] == "__wasi_fd_close"
        assert not any("preview1" in n for n in names)

    def test_trampoline_names_match_across_variants(self, preview1):
        latest = re.findall(r'extern .*', generate(preview1, AbiVariant.LATEST))
        legacy = re.findall(r'extern .*', generate(preview1, AbiVariant.LEGACY))
        assert latest == legacy
        assert len(latest) == 6

    def test_every_definition_is_weak(self, preview1):
        source = generate(preview1, AbiVariant.LATEST)
        assert source.count("__attribute__((weak))\n") == len(_definitions(source))

    def test_mixed_width_forwarding(self, preview1):
        source = generate(preview1, AbiVariant.LATEST)
        assert (
            "int32_t __imported_wasi_snapshot_preview1_fd_seek("
            "int32_t arg0, int64_t arg1, int32_t arg2, int32_t arg3) {\n"
            "  extern int32_t wasi_vfs_wasi_snapshot_preview1_fd_seek(int32_t, int64_t, int32_t, int32_t);\n"
            "  return wasi_vfs_wasi_snapshot_preview1_fd_seek(arg0, arg1, arg2, arg3);\n"
        ) in source

    def test_deterministic(self, preview1):
        assert generate(preview1, AbiVariant.LATEST) == generate(preview1, AbiVariant.LATEST)

    def test_layout_blank_lines(self):
        doc = loads("""
            (module $m (@interface func (export "f") (param $x u32) (result $r u32)))
        """)
        source = generate(doc, AbiVariant.LEGACY, {"f"})
        assert source == "\n".join(HEADER) + (
            "\n"
            "__attribute__((weak))\n"
            "int32_t __wasi_f(int32_t arg0) {\n"
            "  extern int32_t wasi_vfs_m_f(int32_t);\n"
            "  return wasi_vfs_m_f(arg0);\n"
            "}\n"
            "\n"
            "\n"
        )

    def test_empty_document(self):
        source = generate(loads(""), AbiVariant.LATEST)
        assert source.endswith("#include <stdint.h>\n\n")
        assert _definitions(source) == []


class TestHookInjection:
    SOURCE = """
        (module $env
          (@interface func (export "clock") (result $r u64))
          (@interface func (export "tick") (param $dt f64)))
    """

    def test_default_allow_list(self):
        assert "fd_write" in WASI_HOOK_FUNCTIONS
        assert "proc_exit" not in WASI_HOOK_FUNCTIONS
        assert _definitions(generate(loads(self.SOURCE), AbiVariant.LATEST)) == []

    def test_custom_set(self):
        source = generate(loads(self.SOURCE), AbiVariant.LATEST, {"clock"})
        assert _definitions(source) == ["__imported_env_clock"]
        assert "int64_t __imported_env_clock(void) {\n" in source
        assert "  extern int64_t wasi_vfs_env_clock(void);\n" in source
        assert "  return wasi_vfs_env_clock();\n" in source

    def test_bare_string_is_rejected(self):
        with pytest.raises(TypeError, match="str"):
            TrampolineGenerator(loads(self.SOURCE), AbiVariant.LATEST, "clock")

    def test_membership_is_exact(self):
        source = generate(loads(self.SOURCE), AbiVariant.LATEST, ["clock_and_more", "tic"])
        assert _definitions(source) == []

    def test_iterator_is_frozen(self):
        source = generate(loads(self.SOURCE), AbiVariant.LATEST, iter(["tick"]))
        assert _definitions(source) == ["__imported_env_tick"]

    def test_predicate(self):
        source = generate(loads(self.SOURCE), AbiVariant.LEGACY, lambda name: name.startswith("t"))
        assert _definitions(source) == ["__wasi_tick"]
        assert "void __wasi_tick(double arg0) {\n" in source
        assert "  extern void wasi_vfs_env_tick(double);\n" in source
        assert "  wasi_vfs_env_tick(arg0);\n" in source
        assert "return" not in source


class TestResultInvariant:
    SOURCE = """
        (module $m
          (@interface func (export "ok") (result $r u32))
          (@interface func (export "pair") (result $a u32) (result $b u32)))
    """

    def test_two_results_abort(self):
        with pytest.raises(AssertionError, match="__wasi_pair"):
            generate(loads(self.SOURCE), AbiVariant.LEGACY, {"ok", "pair"})

    def test_renderer_checks_before_emitting(self):
        gen = TrampolineGenerator(loads(""), AbiVariant.LATEST)
        with pytest.raises(AssertionError):
            gen._hook_point([], [WasmType.I32, WasmType.I64], "f", "wasi_vfs_m_f")

    def test_two_results_abort_under_optimize(self):
        code = (
            "from trampgen import AbiVariant, generate, loads\n"
            f"generate(loads({self.SOURCE!r}), AbiVariant.LEGACY, {{'pair'}})\n"
        )
        result = subprocess.run(
            [sys.executable, "-O", "-c", code],
            cwd=ROOT, capture_output=True, text=True,
            env={**os.environ, "PYTHONPATH": str(ROOT)},
        )
        assert result.returncode != 0
        assert "AssertionError: __wasi_pair has 2 results" in result.stderr
        assert "__attribute__" not in result.stdout

    def test_non_hook_with_two_results_is_ignored(self):
        source = generate(loads(self.SOURCE), AbiVariant.LEGACY, {"ok"})
        assert _definitions(source) == ["__wasi_ok"]

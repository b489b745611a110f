from pathlib import Path

import pytest

from trampgen import load

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def preview1_path():
    return FIXTURES / "wasi_snapshot_preview1.witx"


@pytest.fixture
def preview1(preview1_path):
    return load([preview1_path])

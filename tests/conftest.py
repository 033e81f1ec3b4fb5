from __future__ import annotations

from pathlib import Path

import pytest

# cache-lab yi.trace: with s=4 E=1 b=4 this gives hits:4 misses:5 evictions:3
YI_TRACE = (
    " L 10,1\n"
    " M 20,1\n"
    " L 22,1\n"
    " S 18,1\n"
    " L 110,1\n"
    " L 210,1\n"
    " M 12,1\n"
)


@pytest.fixture
def write_trace(tmp_path: Path):
    def _write(text: str, name: str = "test.trace") -> str:
        path = tmp_path / name
        path.write_bytes(text.encode("latin-1"))
        return str(path)

    return _write


@pytest.fixture
def yi_trace(write_trace) -> str:
    return write_trace(YI_TRACE, "yi.trace")

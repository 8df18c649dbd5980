"""运行时特性检测：检查可选依赖。

Runtime feature detection for optional extras.
"""
from __future__ import annotations

import importlib.util


def _check_import(module_name: str) -> bool:
    """Check if a module is importable without importing it."""
    return importlib.util.find_spec(module_name) is not None


# HTTP/2 support for httpx clients (pip install chimera-api-python[http2])
HAS_HTTP2: bool = _check_import("h2")

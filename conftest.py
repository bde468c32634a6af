"""Ensure the checkout's own source is importable, even when pytest
is launched by a Python whose site-packages hold another install of
determinant."""

import importlib
import sys
from pathlib import Path

_src = str(Path(__file__).resolve().parent / "src")
if _src not in sys.path:
    sys.path.insert(0, _src)
    # Force re-import so this checkout's determinant is loaded
    for mod_name in [m for m in sys.modules if m == "determinant" or m.startswith("determinant.")]:
        del sys.modules[mod_name]
    importlib.invalidate_caches()

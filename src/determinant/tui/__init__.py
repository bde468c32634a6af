"""Textual front end: the terminal driver for Determinant.

Requires the ``textual`` package::

    pip install determinant
"""

from __future__ import annotations


def require_textual() -> None:
    """Raise a clear error if textual is not installed."""
    try:
        import textual  # noqa: F401
    except ImportError as exc:
        raise SystemExit(
            "The 'textual' package is required for determinant chat.\n" "Install it with: pip install textual"
        ) from exc

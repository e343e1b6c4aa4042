"""Utility helpers for working with uploaded files."""

from __future__ import annotations

import math

PDF_MAGIC = b"%PDF"


def format_file_size(size: int | float) -> str:
    """Human-readable size (B, KB, MB); empty for unknown or non-positive sizes."""
    if not isinstance(size, (int, float)) or not math.isfinite(size) or size <= 0:
        return ""
    if size < 1024:
        return f"{int(size)} B"
    kilobytes = size / 1024
    if kilobytes < 1024:
        return f"{kilobytes:.1f} KB"
    return f"{kilobytes / 1024:.1f} MB"


def looks_like_pdf(filename: str, data: bytes) -> bool:
    """Detect PDFs by suffix or magic header."""
    return filename.lower().endswith(".pdf") or data[:4] == PDF_MAGIC

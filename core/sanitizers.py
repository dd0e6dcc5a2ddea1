# core/sanitizers.py
"""
Input sanitization for free text the engine stores (review notes, reasons).
"""
import re
from typing import Optional

import bleach


def sanitize_text(text: Optional[str], max_length: Optional[int] = None, strip: bool = True) -> str:
    """
    Sanitize plain text input.

    - Strips leading/trailing whitespace
    - Removes control characters
    - Enforces maximum length
    - Returns empty string for None input
    """
    if text is None:
        return ""

    if strip:
        text = text.strip()

    # Remove control characters except newlines and tabs
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_note(note: Optional[str], max_length: int = 2000) -> Optional[str]:
    """
    Reviewer notes and revocation reasons: no markup at all.

    Returns None for empty input so "no note" stays NULL in the database.
    """
    if note is None:
        return None
    clean = bleach.clean(note, tags=[], attributes={}, strip=True)
    clean = sanitize_text(clean, max_length=max_length)
    return clean or None


def normalize_email(email: Optional[str]) -> str:
    """Case-insensitive, trimmed form used for all email matching."""
    return (email or "").strip().lower()

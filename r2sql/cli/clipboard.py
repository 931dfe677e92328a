"""System clipboard access."""

from __future__ import annotations

import pyperclip

from r2sql.core.exceptions import ClipboardError


def copy_text(text: str) -> None:
    """Place text on the system clipboard, raising ClipboardError when none is available."""
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(str(e) or "no clipboard mechanism available") from e

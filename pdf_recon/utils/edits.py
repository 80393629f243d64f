"""
Edit records for downstream editors.

An editor works on TextEdit records, not on recognition results. Records are
re-extracted from a document's native text layer; a reconstructed PDF has
one, so its words come back here like any other PDF's.

EditHistory is a bounded undo/redo stack of record snapshots.
"""

import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 12.0
DEFAULT_COLOR = "#000000"
DEFAULT_FONT_FAMILY = "Helvetica"


@dataclass(frozen=True)
class TextEdit:
    """One editable text item, positioned from the page's top-left corner."""
    id: str
    page_number: int
    x: float
    y: float
    text: str
    original_text: str
    font_size: float = DEFAULT_FONT_SIZE
    color: str = DEFAULT_COLOR
    font_family: str = DEFAULT_FONT_FAMILY
    is_modified: bool = False
    width: Optional[float] = None
    height: Optional[float] = None

    def with_text(self, text: str) -> "TextEdit":
        """Copy with new text; modified only if it differs from the original."""
        return replace(self, text=text, is_modified=text != self.original_text)

    def moved_to(self, x: float, y: float) -> "TextEdit":
        return replace(self, x=x, y=y, is_modified=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "page_number": self.page_number,
            "x": self.x,
            "y": self.y,
            "text": self.text,
            "original_text": self.original_text,
            "font_size": self.font_size,
            "color": self.color,
            "font_family": self.font_family,
            "is_modified": self.is_modified,
            "width": self.width,
            "height": self.height
        }


def _font_family(fontname: Optional[str]) -> str:
    """Map an embedded font name like 'ABCDEF+Times-Roman' to its family."""
    if not fontname:
        return DEFAULT_FONT_FAMILY
    base = fontname.split("+", 1)[-1]
    return base.split("-", 1)[0] or DEFAULT_FONT_FAMILY


def extract_text_edits(source, page_index: int) -> List[TextEdit]:
    """
    Build edit records from one page's native text layer.

    Args:
        source: PdfSource (anything with page_words(index))
        page_index: 0-indexed page

    Returns:
        TextEdit records in text-layer order, blank items dropped
    """
    page_number = page_index + 1
    edits = []

    for index, word in enumerate(source.page_words(page_index)):
        text = word.get("text", "")
        if not text.strip():
            continue

        size = word.get("size") or 0
        edits.append(TextEdit(
            id=f"scan-{page_number}-{index}",
            page_number=page_number,
            x=float(word["x0"]),
            y=float(word["top"]),
            text=text,
            original_text=text,
            font_size=float(abs(size)) or DEFAULT_FONT_SIZE,
            font_family=_font_family(word.get("fontname")),
            width=float(word["x1"]) - float(word["x0"]),
            height=float(word["bottom"]) - float(word["top"])
        ))

    logger.debug(f"Extracted {len(edits)} edit records from page {page_number}")
    return edits


# ============================================================================
# Undo / Redo
# ============================================================================

Snapshot = Tuple[TextEdit, ...]


class EditHistory:
    """
    Bounded undo/redo history of edit-record snapshots.

    push() records the state before a change. When the undo stack is full
    the oldest snapshot is dropped.
    """

    def __init__(self, max_depth: int = 100):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self._undo: deque = deque(maxlen=max_depth)
        self._redo: deque = deque(maxlen=max_depth)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def push(self, current: Sequence[TextEdit]):
        """Record `current` before it is replaced. Clears redo."""
        self._undo.append(tuple(current))
        self._redo.clear()

    def undo(self, current: Sequence[TextEdit]) -> Snapshot:
        """Return the previous state; `current` becomes redoable."""
        if not self._undo:
            raise IndexError("Nothing to undo")
        self._redo.append(tuple(current))
        return self._undo.pop()

    def redo(self, current: Sequence[TextEdit]) -> Snapshot:
        """Return the next state; `current` becomes undoable."""
        if not self._redo:
            raise IndexError("Nothing to redo")
        self._undo.append(tuple(current))
        return self._redo.pop()

    def clear(self):
        self._undo.clear()
        self._redo.clear()

    def __len__(self) -> int:
        return len(self._undo)

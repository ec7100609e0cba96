"""
Editor session shared by all API endpoints
"""

from typing import Optional

from fastapi import HTTPException

from polybox.editor import Editor
from polybox.models import ImageRecord
from backend.config import SURFACE_MAX_WIDTH, SURFACE_MAX_HEIGHT

# One editor per process
_editor: Optional[Editor] = None


def get_editor() -> Editor:
    """Get the editor, creating it on first use."""
    global _editor
    if _editor is None:
        _editor = Editor(viewport=(SURFACE_MAX_WIDTH, SURFACE_MAX_HEIGHT))
    return _editor


def reset_editor() -> Editor:
    """Drop all images, labels and annotations."""
    global _editor
    _editor = None
    return get_editor()


def get_current_image() -> ImageRecord:
    """Get the current image."""
    image = get_editor().store.current_image
    if image is None:
        raise HTTPException(status_code=400, detail="No image loaded")
    return image

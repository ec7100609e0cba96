"""
Editor API endpoints - pointer and keyboard input, mode, frame
"""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from polybox.editor import KeyEvent, PointerEvent
from polybox.models import Mode
from backend.api.session import get_editor, get_current_image

router = APIRouter()


class PointerRequest(BaseModel):
    type: Literal["down", "move", "up", "click", "dblclick"]
    x: float  # Surface pixels
    y: float


class KeyRequest(BaseModel):
    key: str
    ctrl: bool = False
    meta: bool = False


class ModeRequest(BaseModel):
    mode: Mode


class SurfaceRequest(BaseModel):
    width: int
    height: int


class EditorResponse(BaseModel):
    mode: str
    surface: tuple[int, int]
    warning: Optional[str] = None  # Advisory, nothing was changed
    frame: dict


class AnnotationsResponse(BaseModel):
    image: str
    mode: str
    shapes: list[dict]


def _editor_response() -> EditorResponse:
    editor = get_editor()
    return EditorResponse(
        mode=editor.state.mode.value,
        surface=editor.state.surface,
        warning=editor.last_warning,
        frame=editor.frame().to_dict(),
    )


@router.get("/frame", response_model=EditorResponse)
async def get_frame():
    """Describe what should be drawn right now."""
    return _editor_response()


@router.post("/pointer", response_model=EditorResponse)
async def pointer(request: PointerRequest):
    """Feed a pointer event in surface pixel coordinates."""
    editor = get_editor()
    event = PointerEvent(x=request.x, y=request.y)

    handlers = {
        "down": editor.pointer_down,
        "move": editor.pointer_move,
        "up": editor.pointer_up,
        "click": editor.click,
        "dblclick": editor.double_click,
    }
    handlers[request.type](event)
    return _editor_response()


@router.post("/key", response_model=EditorResponse)
async def key(request: KeyRequest):
    """Feed a key press."""
    get_editor().key_down(KeyEvent(key=request.key, ctrl=request.ctrl, meta=request.meta))
    return _editor_response()


@router.put("/mode", response_model=EditorResponse)
async def set_mode(request: ModeRequest):
    """Switch between box and polygon mode. Purges the other type on the current image."""
    get_editor().set_mode(request.mode)
    return _editor_response()


@router.put("/surface", response_model=EditorResponse)
async def set_surface(request: SurfaceRequest):
    """Override the surface size. Existing shapes are not rescaled."""
    if request.width < 1 or request.height < 1:
        raise HTTPException(status_code=400, detail="Surface size must be positive")

    get_editor().resize_surface(request.width, request.height)
    return _editor_response()


@router.get("/annotations", response_model=AnnotationsResponse)
async def get_annotations():
    """Shapes of the current image, normalized."""
    image = get_current_image()
    ann = get_editor().store.get_annotations(image.name)

    if ann is None:
        return AnnotationsResponse(image=image.name, mode=get_editor().store.mode.value, shapes=[])

    return AnnotationsResponse(
        image=image.name,
        mode=ann.mode.value,
        shapes=[s.to_dict() for s in ann.shapes],
    )

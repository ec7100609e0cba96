"""
Labels API endpoints
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional

from backend.api.session import get_editor

router = APIRouter()


class LabelResponse(BaseModel):
    index: int
    name: str
    color: str
    active: bool


class CreateLabelRequest(BaseModel):
    name: str
    color: Optional[str] = None  # If not provided, auto-assign


class ActiveLabelRequest(BaseModel):
    name: Optional[str] = None  # None clears the active label


class DeleteLabelResponse(BaseModel):
    name: str
    shapes_removed: int
    active_label: Optional[str] = None


def _label_responses() -> list[LabelResponse]:
    labels = get_editor().store.labels
    return [
        LabelResponse(
            index=idx,
            name=label.name,
            color=label.color_hex,
            active=label.name == labels.active,
        )
        for idx, label in enumerate(labels)
    ]


@router.get("", response_model=list[LabelResponse])
async def list_labels():
    """List all labels in label-set order."""
    return _label_responses()


@router.post("", response_model=list[LabelResponse])
async def create_label(request: CreateLabelRequest):
    """Create a label. Existing names are left as they are."""
    label = get_editor().add_label(request.name, request.color)

    if label is None:
        raise HTTPException(status_code=400, detail="Label name is empty")

    return _label_responses()


@router.put("/active", response_model=list[LabelResponse])
async def set_active_label(request: ActiveLabelRequest):
    """Select the label new shapes get."""
    if not get_editor().set_active_label(request.name):
        raise HTTPException(status_code=404, detail="Label not found")

    return _label_responses()


@router.delete("/{name}", response_model=DeleteLabelResponse)
async def delete_label(name: str):
    """Delete a label and every shape that uses it."""
    editor = get_editor()
    known = name in editor.store.labels

    removed = editor.delete_label(name)
    if not known and not removed:
        raise HTTPException(status_code=404, detail="Label not found")

    return DeleteLabelResponse(
        name=name,
        shapes_removed=removed,
        active_label=editor.store.active_label,
    )

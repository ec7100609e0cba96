"""
Export API endpoints
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel
from typing import Optional

from polybox.export import (
    ARCHIVE_NAME, COCO_NAME, base_name, box_lines, dumps_coco,
    export_all, export_box_batch, export_coco, pack_box_archive,
)
from polybox.masks import encode_mask_png, rasterize_mask
from backend.api.session import get_editor, get_current_image
from backend.config import EXPORT_DIR

router = APIRouter()


class ExportRequest(BaseModel):
    output_dir: Optional[str] = None  # Defaults to EXPORT_DIR
    masks: bool = True


class ExportResponse(BaseModel):
    total_images: int
    exported_images: int
    boxes: int
    polygons: int
    files: list[str]
    warnings: list[str]


def _attachment(content: bytes, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/yolo/current")
async def export_yolo_current():
    """YOLO box lines for the current image."""
    image = get_current_image()
    text = box_lines(get_editor().store, image.name)
    return _attachment(text.encode("utf-8"), f"{base_name(image.name)}.txt", "text/plain")


@router.get("/yolo/all")
async def export_yolo_all():
    """Zip of YOLO box files for every annotated image."""
    batch = export_box_batch(get_editor().store)
    return _attachment(pack_box_archive(batch), ARCHIVE_NAME, "application/zip")


@router.get("/coco")
async def export_coco_json():
    """COCO-style polygon document for all images."""
    doc = dumps_coco(export_coco(get_editor().store))
    return _attachment(doc.encode("utf-8"), COCO_NAME, "application/json")


@router.get("/mask/current")
async def export_mask_current():
    """Binary mask PNG of the current image's polygons."""
    image = get_current_image()
    mask = rasterize_mask(get_editor().store, image.name)

    if mask is None:
        raise HTTPException(status_code=404, detail="No polygons on the current image")

    return _attachment(encode_mask_png(mask), f"{base_name(image.name)}_mask.png", "image/png")


@router.post("", response_model=ExportResponse)
async def export_to_directory(request: ExportRequest):
    """Write all export formats to a directory on the server."""
    out_dir = request.output_dir or str(EXPORT_DIR)

    try:
        report = export_all(get_editor().store, out_dir, masks=request.masks)
    except OSError as e:
        raise HTTPException(status_code=400, detail=f"Invalid output directory: {e}")

    return ExportResponse(
        total_images=report.total_images,
        exported_images=report.exported_images,
        boxes=report.boxes,
        polygons=report.polygons,
        files=report.files,
        warnings=report.warnings,
    )

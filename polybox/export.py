"""
Annotation export.

- YOLO detection text: one "<class> <xc> <yc> <w> <h>" line per box
- Batch YOLO export: one text file per annotated image, optionally zipped
- COCO-style JSON for polygons
- Binary masks (see polybox.masks)
"""

import io
import json
import logging
import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from polybox.masks import encode_mask_png, mask_area, rasterize_mask
from polybox.models import Box, Polygon
from polybox.store import AnnotationStore

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "annotations.zip"
COCO_NAME = "annotations_coco.json"


@dataclass
class ExportReport:
    """Report of export operation."""
    total_images: int = 0
    exported_images: int = 0
    boxes: int = 0
    polygons: int = 0
    skipped_shapes: int = 0  # Shapes the chosen format cannot hold
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def format_number(value: float) -> str:
    """
    Shortest text that reads back as the same float.

    Integral values are written without a fractional part ("1", not "1.0").
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def base_name(image_name: str) -> str:
    """Image name without its extension."""
    return os.path.splitext(image_name)[0]


def box_line(box: Box, class_idx: int) -> str:
    """Format a single box as a YOLO detection line."""
    coords = " ".join(format_number(v) for v in (box.xc, box.yc, box.w, box.h))
    return f"{class_idx} {coords}\n"


def box_lines(store: AnnotationStore, image_name: str) -> str:
    """
    YOLO text for one image. Polygons are not part of this format.

    Returns:
        One line per box, empty string if there are none
    """
    ann = store.get_annotations(image_name)
    if ann is None:
        return ""
    return "".join(
        box_line(shape, store.labels.index(shape.label))
        for shape in ann.shapes
        if isinstance(shape, Box)
    )


def export_box_batch(store: AnnotationStore) -> dict[str, str]:
    """
    YOLO text for every image that holds shapes.

    Returns:
        Mapping "<image stem>.txt" -> file contents, in image order
    """
    batch = {}
    for image, ann in store.annotated_images():
        if not ann.shapes:
            continue
        batch[f"{base_name(image.name)}.txt"] = box_lines(store, image.name)
    return batch


def pack_box_archive(batch: dict[str, str]) -> bytes:
    """Zip a batch export in memory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, text in batch.items():
            zf.writestr(name, text)
    return buffer.getvalue()


def write_box_archive(batch: dict[str, str], out_path: str) -> str:
    """
    Write a batch export into a zip archive.

    Args:
        batch: Mapping file name -> text, as from export_box_batch
        out_path: Zip file path, or a directory to place ARCHIVE_NAME in

    Returns:
        Path of the written archive
    """
    path = Path(out_path)
    if path.is_dir():
        path = path / ARCHIVE_NAME
    path.parent.mkdir(parents=True, exist_ok=True)

    path.write_bytes(pack_box_archive(batch))
    logger.info(f"Wrote {len(batch)} label file(s) to {path}")
    return str(path)


def export_coco(store: AnnotationStore) -> dict:
    """
    COCO-style document for all polygons.

    Category and image ids are 1-based positions in the label set and the
    image list. Annotation ids are "<image id>_<position of the shape in the
    image's annotation set>", both 1-based. Segmentations are in the image's
    own pixel coordinates.
    """
    labels = store.labels.names
    coco = {
        "images": [],
        "annotations": [],
        "categories": [{"id": idx + 1, "name": name} for idx, name in enumerate(labels)],
    }

    for image_idx, image in enumerate(store.list_images(), start=1):
        coco["images"].append({
            "id": image_idx,
            "file_name": image.name,
            "width": image.width,
            "height": image.height,
        })

        ann = store.get_annotations(image.name)
        if ann is None:
            continue

        for shape_idx, shape in enumerate(ann.shapes, start=1):
            if not isinstance(shape, Polygon):
                continue
            segmentation = [
                v * image.width if i % 2 == 0 else v * image.height
                for i, v in enumerate(shape.points)
            ]
            coco["annotations"].append({
                "id": f"{image_idx}_{shape_idx}",
                "image_id": image_idx,
                "category_id": store.labels.index(shape.label) + 1,
                "segmentation": [segmentation],
                "iscrowd": 0,
            })

    return coco


def dumps_coco(coco: dict) -> str:
    return json.dumps(coco, indent=2)


def export_all(
    store: AnnotationStore,
    out_dir: str,
    masks: bool = True,
) -> ExportReport:
    """
    Write every export format into a directory.

    Writes labels/<stem>.txt per annotated image, annotations.zip with the
    same files, annotations_coco.json, and masks/<stem>_mask.png per image
    with polygons.

    Args:
        store: Store to export
        out_dir: Output directory, created if missing
        masks: Also write binary masks

    Returns:
        ExportReport with statistics
    """
    out_path = Path(out_dir)
    (out_path / "labels").mkdir(parents=True, exist_ok=True)

    images = store.list_images()
    report = ExportReport(total_images=len(images))

    if not len(store.labels):
        report.warnings.append("No labels defined")
    if not images:
        report.warnings.append("No images loaded")
        return report

    batch = export_box_batch(store)
    for name, text in batch.items():
        label_path = out_path / "labels" / name
        label_path.write_text(text)
        report.files.append(str(label_path))
    report.files.append(write_box_archive(batch, str(out_path / ARCHIVE_NAME)))
    report.exported_images = len(batch)

    coco_path = out_path / COCO_NAME
    coco_path.write_text(dumps_coco(export_coco(store)))
    report.files.append(str(coco_path))

    for image, ann in store.annotated_images():
        report.boxes += len(ann.boxes())
        report.polygons += len(ann.polygons())

        if not masks:
            continue
        mask = rasterize_mask(store, image.name)
        if mask is None:
            continue
        mask_path = out_path / "masks" / f"{base_name(image.name)}_mask.png"
        mask_path.parent.mkdir(parents=True, exist_ok=True)
        mask_path.write_bytes(encode_mask_png(mask))
        report.files.append(str(mask_path))
        logger.debug(f"Mask for {image.name}: {mask_area(mask)} foreground pixels")

    if report.polygons > 0:
        report.skipped_shapes += report.polygons
        report.warnings.append(
            f"{report.polygons} polygon(s) are not part of the YOLO box files; "
            f"see {COCO_NAME}"
        )

    return report


def verify_box_lines(text: str, num_classes: Optional[int] = None) -> tuple[bool, list[str]]:
    """
    Verify YOLO detection text.

    Args:
        text: File contents
        num_classes: If given, class indices must be below it

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    for line_num, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line:
            continue

        tokens = line.split()
        if len(tokens) != 5:
            errors.append(f"{line_num}: Expected 5 tokens, got {len(tokens)}")
            continue

        try:
            class_idx = int(tokens[0])
        except ValueError:
            errors.append(f"{line_num}: Class index not an integer: {tokens[0]}")
            continue

        if class_idx < 0 or (num_classes is not None and class_idx >= num_classes):
            errors.append(f"{line_num}: Invalid class index {class_idx}")

        for i, tok in enumerate(tokens[1:], 1):
            try:
                val = float(tok)
            except ValueError:
                errors.append(f"{line_num}: Invalid float: {tok}")
                continue
            if val < 0 or val > 1:
                errors.append(f"{line_num}: Coordinate {i} out of range [0,1]: {val}")

    return len(errors) == 0, errors

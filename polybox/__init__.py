"""
polybox - box and polygon image annotation: data model, editor and export
"""

__version__ = "0.1.0"

from polybox.models import (
    Mode, Handle, ImageRecord, Box, Polygon, Shape, AnnotationSet,
)
from polybox.labels import Label, LabelSet
from polybox.store import AnnotationStore
from polybox.editor import (
    Editor, EditorState, PointerEvent, KeyEvent,
    AnnotationError, MissingLabelError,
)
from polybox.export import (
    box_lines, export_box_batch, write_box_archive, export_coco, dumps_coco,
    export_all, verify_box_lines, ExportReport,
)
from polybox.masks import rasterize_mask, encode_mask_png

__all__ = [
    "Mode", "Handle", "ImageRecord", "Box", "Polygon", "Shape", "AnnotationSet",
    "Label", "LabelSet",
    "AnnotationStore",
    "Editor", "EditorState", "PointerEvent", "KeyEvent",
    "AnnotationError", "MissingLabelError",
    "box_lines", "export_box_batch", "write_box_archive", "export_coco", "dumps_coco",
    "export_all", "verify_box_lines", "ExportReport",
    "rasterize_mask", "encode_mask_png",
]

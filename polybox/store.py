"""
AnnotationStore - in-memory images, per-image annotation sets and labels.
"""

import logging
from typing import Optional

from polybox.labels import Label, LabelSet
from polybox.models import (
    AnnotationSet, Box, ImageRecord, Mode, Polygon, Shape, shape_from_dict,
)

logger = logging.getLogger(__name__)


class AnnotationStore:
    """
    Holds everything the editor works on.

    Images keep their load order. Annotation sets are keyed by image name and
    their shape order is the z-order (last added is topmost).
    """

    def __init__(self, mode: Mode = Mode.BOX):
        self.mode = mode
        self.labels = LabelSet()
        self._images: list[ImageRecord] = []
        self._annotations: dict[str, AnnotationSet] = {}
        self.current_index = -1

    # ==================== Image Operations ====================

    def add_image(self, record: ImageRecord) -> ImageRecord:
        """
        Add a loaded image. The first image loaded becomes current.

        Re-adding a name replaces the record and keeps its annotations.
        """
        for idx, existing in enumerate(self._images):
            if existing.name == record.name:
                self._images[idx] = record
                break
        else:
            self._images.append(record)

        self.ensure(record.name)
        if self.current_index == -1:
            self.current_index = 0
        return record

    def delete_image(self, name: str) -> bool:
        """
        Delete an image and its annotation set.

        Returns:
            True if the image existed
        """
        for idx, record in enumerate(self._images):
            if record.name == name:
                break
        else:
            return False

        del self._images[idx]
        self._annotations.pop(name, None)

        if idx < self.current_index or self.current_index >= len(self._images):
            self.current_index -= 1
        logger.info(f"Deleted image {name} ({len(self._images)} left)")
        return True

    def list_images(self) -> list[ImageRecord]:
        return list(self._images)

    def get_image(self, name: str) -> Optional[ImageRecord]:
        for record in self._images:
            if record.name == name:
                return record
        return None

    def get_image_count(self) -> int:
        return len(self._images)

    @property
    def current_image(self) -> Optional[ImageRecord]:
        if 0 <= self.current_index < len(self._images):
            return self._images[self.current_index]
        return None

    def select_image(self, index: int) -> bool:
        """Make the image at index current. Out of range is a no-op."""
        if not 0 <= index < len(self._images):
            return False
        self.current_index = index
        return True

    # ==================== Annotation Operations ====================

    def ensure(self, image_name: str) -> AnnotationSet:
        """Get the annotation set of an image, creating an empty one if needed."""
        ann = self._annotations.get(image_name)
        if ann is None:
            ann = AnnotationSet(mode=self.mode)
            self._annotations[image_name] = ann
        return ann

    def get_annotations(self, image_name: str) -> Optional[AnnotationSet]:
        return self._annotations.get(image_name)

    def add_shape(self, image_name: str, shape: Shape) -> Shape:
        self.ensure(image_name).shapes.append(shape)
        return shape

    def remove_shape(self, image_name: str, shape: Shape) -> bool:
        """
        Remove a shape by identity.

        Returns:
            False if the image has no such shape
        """
        ann = self._annotations.get(image_name)
        if ann is None:
            return False
        for idx, existing in enumerate(ann.shapes):
            if existing is shape:
                del ann.shapes[idx]
                return True
        return False

    def pop_shape(self, image_name: str) -> Optional[Shape]:
        """Remove and return the most recently added shape of an image."""
        ann = self._annotations.get(image_name)
        if ann is None or not ann.shapes:
            return None
        return ann.shapes.pop()

    def shapes_of(self, image_name: str, kind: Mode) -> list:
        ann = self._annotations.get(image_name)
        if ann is None:
            return []
        return ann.boxes() if kind == Mode.BOX else ann.polygons()

    def annotated_images(self) -> list[tuple[ImageRecord, AnnotationSet]]:
        """Images in load order paired with their annotation sets, if any."""
        return [
            (record, self._annotations[record.name])
            for record in self._images
            if record.name in self._annotations
        ]

    # ==================== Label Operations ====================

    def add_label(self, name: str, color_hex: Optional[str] = None) -> Optional[Label]:
        return self.labels.add(name, color_hex)

    def remove_label(self, name: str) -> int:
        """
        Delete a label and every shape carrying it, on every image.

        Returns:
            Number of shapes removed
        """
        removed = 0
        for ann in self._annotations.values():
            kept = [s for s in ann.shapes if s.label != name]
            removed += len(ann.shapes) - len(kept)
            ann.shapes = kept

        self.labels.remove(name)
        logger.info(f"Deleted label {name!r} and {removed} shape(s)")
        return removed

    def set_active_label(self, name: Optional[str]) -> bool:
        return self.labels.set_active(name)

    @property
    def active_label(self) -> Optional[str]:
        return self.labels.active

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        """Labels, mode and annotations as plain JSON-ready data."""
        return {
            "mode": self.mode.value,
            "labels": [
                {"name": label.name, "color": label.color_hex}
                for label in self.labels
            ],
            "annotations": {
                name: ann.to_dict() for name, ann in self._annotations.items()
            },
        }

    def load_dict(self, data: dict) -> None:
        """
        Merge data produced by to_dict.

        Labels are added in order; annotations for images not loaded yet are
        kept and show up once the image is added.
        """
        for label in data.get("labels", []):
            self.labels.add(label["name"], label.get("color"))

        for name, entry in data.get("annotations", {}).items():
            ann = self.ensure(name)
            ann.mode = Mode(entry.get("mode", self.mode.value))
            ann.shapes.extend(shape_from_dict(s) for s in entry.get("shapes", []))

        if "mode" in data:
            self.mode = Mode(data["mode"])

    # ==================== Mode ====================

    def set_mode(self, new_mode: Mode) -> int:
        """
        Switch the global mode.

        Shapes of the other type are dropped from the current image only.
        Other images keep whatever they hold.

        Returns:
            Number of shapes purged from the current image
        """
        new_mode = Mode(new_mode)
        if new_mode == self.mode:
            return 0

        purged = 0
        image = self.current_image
        if image is not None:
            ann = self._annotations.get(image.name)
            if ann is not None:
                dropped = Polygon if new_mode == Mode.BOX else Box
                kept = [s for s in ann.shapes if not isinstance(s, dropped)]
                purged = len(ann.shapes) - len(kept)
                ann.shapes = kept

        logger.info(f"Mode {self.mode.value} -> {new_mode.value}, purged {purged} shape(s)")
        self.mode = new_mode
        return purged

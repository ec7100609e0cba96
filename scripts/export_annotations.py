#!/usr/bin/env python
"""
Export annotations of an image folder to YOLO text, COCO JSON and masks.

Usage:
    python scripts/export_annotations.py <image_dir> <annotations.json> <output_dir> [--no-masks]

annotations.json is the data returned by AnnotationStore.to_dict().
"""

import argparse
import json
import sys

from polybox.export import export_all
from polybox.images import load_image_dir
from polybox.store import AnnotationStore


def main():
    parser = argparse.ArgumentParser(description="Export annotations to YOLO, COCO and mask formats")
    parser.add_argument("image_dir", help="Directory with the annotated images")
    parser.add_argument("annotations", help="Annotation JSON file")
    parser.add_argument("output_dir", help="Output directory for export")
    parser.add_argument("--no-masks", action="store_true", help="Skip binary mask export")

    args = parser.parse_args()

    print(f"Images: {args.image_dir}")
    print(f"Annotations: {args.annotations}")
    print(f"Output directory: {args.output_dir}")
    print("-" * 50)

    try:
        with open(args.annotations, "r") as f:
            data = json.load(f)

        store = AnnotationStore()
        store.load_dict(data)
        for record in load_image_dir(args.image_dir):
            store.add_image(record)

        report = export_all(store, args.output_dir, masks=not args.no_masks)
    except (OSError, ValueError, KeyError) as e:
        print(f"✗ Export failed: {e}")
        sys.exit(1)

    print(f"\nExport Report:")
    print(f"  Total images: {report.total_images}")
    print(f"  Exported images: {report.exported_images}")
    print(f"  Boxes: {report.boxes}")
    print(f"  Polygons: {report.polygons}")
    print(f"  Files written: {len(report.files)}")

    if report.warnings:
        print(f"\nWarnings:")
        for warning in report.warnings:
            print(f"  ⚠ {warning}")

    print(f"\n✓ Export complete: {args.output_dir}")


if __name__ == "__main__":
    main()

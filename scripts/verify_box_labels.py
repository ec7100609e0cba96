#!/usr/bin/env python
"""
Verify YOLO box label files.

Usage:
    python scripts/verify_box_labels.py <labels_dir> [--num-classes N]
"""

import argparse
import sys
from pathlib import Path

from polybox.export import verify_box_lines


def main():
    parser = argparse.ArgumentParser(description="Verify YOLO box label files")
    parser.add_argument("labels_dir", help="Directory with <image>.txt label files")
    parser.add_argument("--num-classes", type=int, default=None, help="Number of classes")
    args = parser.parse_args()

    labels_dir = Path(args.labels_dir)

    print(f"Verifying box labels: {labels_dir}")
    print("-" * 50)

    errors = []
    for lbl_file in sorted(labels_dir.glob("*.txt")):
        _, file_errors = verify_box_lines(lbl_file.read_text(), args.num_classes)
        errors.extend(f"{lbl_file.name}:{e}" for e in file_errors)

    if not errors:
        print("✓ Labels are valid!")
        sys.exit(0)

    print(f"✗ Found {len(errors)} error(s):\n")
    for error in errors[:20]:  # Limit output
        print(f"  - {error}")
    if len(errors) > 20:
        print(f"  ... and {len(errors) - 20} more errors")
    sys.exit(1)


if __name__ == "__main__":
    main()

"""
Dataset Loader for the image classification samples.

This module provides functionality for:
- Scanning a directory tree for .jpg and .png images
- Labeling each image by its parent folder or by its file name prefix
- Splitting the labeled records into seeded train and test sets
- Tabulating records with the ImagePath and Label columns
"""

from .loader import (
    ImageDirectory,
    frame_to_records,
    label_from_filename_prefix,
    label_from_parent_folder,
    load_images,
    records_to_frame,
)
from .split import label_distribution, train_test_split_records

__all__ = [
    "ImageDirectory",
    "frame_to_records",
    "label_distribution",
    "label_from_filename_prefix",
    "label_from_parent_folder",
    "load_images",
    "records_to_frame",
    "train_test_split_records",
]

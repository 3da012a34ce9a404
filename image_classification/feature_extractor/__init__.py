"""
Image transforms and pretrained feature extraction.
"""

from .extractor import (
    PooledBackbone,
    PretrainedFeatureExtractor,
    extract_record_features,
)
from .transforms import ImageTransformPipeline, extract_pixels, load_image, resize_image

__all__ = [
    "ImageTransformPipeline",
    "PooledBackbone",
    "PretrainedFeatureExtractor",
    "extract_pixels",
    "extract_record_features",
    "load_image",
    "resize_image",
]

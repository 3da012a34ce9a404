"""
Image classification samples.

Loads labeled images from disk, extracts features with a pretrained network,
trains a classifier head and scores new images.
"""

__version__ = "0.1.0"

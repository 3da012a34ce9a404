"""
Utility library for the image classification samples.

This module provides the data model and common utilities used across the
loader, feature extractor, trainers and predictor.
"""

from .errors import DirectoryNotFound
from .logger import setup_logger, set_verbosity
from .pandas import pandas
from .models import EpochStatistics, ImageFormat, ImagePrediction, ImageRecord
from .tracking import ExperimentTracker

__all__ = [
    "DirectoryNotFound",
    "EpochStatistics",
    "ExperimentTracker",
    "ImageFormat",
    "ImagePrediction",
    "ImageRecord",
    "pandas",
    "set_verbosity",
    "setup_logger",
]

"""
Scoring of new images with a trained classifier.
"""

from .scorer import ModelScorer, format_prediction

__all__ = ["ModelScorer", "format_prediction"]

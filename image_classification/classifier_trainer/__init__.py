"""
Classifier training for the image classification samples.

This module provides:
- Training configuration loaded from YAML or JSON
- A maximum entropy trainer on features of a frozen pretrained backbone
- A transfer-learning trainer fine-tuning the backbone with a new head
- Multiclass metrics and the trained classifier artifacts
"""

from .classifier import (
    MaximumEntropyClassifier,
    TrainedClassifier,
    TransferLearningClassifier,
    load_classifier,
)
from .config import TrainerType, TrainingConfig, load_config_file
from .maximum_entropy import MaximumEntropyTrainer
from .metrics import MulticlassMetrics, compute_multiclass_metrics
from .transfer_learning import TransferLearningTrainer

__all__ = [
    "MaximumEntropyClassifier",
    "MaximumEntropyTrainer",
    "MulticlassMetrics",
    "TrainedClassifier",
    "TrainerType",
    "TrainingConfig",
    "TransferLearningClassifier",
    "TransferLearningTrainer",
    "compute_multiclass_metrics",
    "load_classifier",
    "load_config_file",
]

from pathlib import Path
from typing import Any, Dict, List, Sequence, Union, cast

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from pydantic import BaseModel
from sklearn.metrics import classification_report, confusion_matrix

from image_classification.lib import setup_logger

logger = setup_logger(__name__)

PROBABILITY_EPSILON = 1e-15


class MulticlassMetrics(BaseModel):
    """Quality metrics of a multiclass classifier on a labeled set."""

    # Fraction of all samples predicted correctly
    micro_accuracy: float
    # Mean of the per-class accuracies, classes present in the truth only
    macro_accuracy: float
    log_loss: float
    # 1 - log_loss / entropy of the class prior; 1 is perfect, 0 is no better than the prior
    log_loss_reduction: float
    per_class_log_loss: Dict[str, float]
    confusion_matrix: Dict[str, Dict[str, int]]
    classification_report: Dict[str, Any]

    def summary(self) -> Dict[str, float]:
        return {
            "micro_accuracy": self.micro_accuracy,
            "macro_accuracy": self.macro_accuracy,
            "log_loss": self.log_loss,
            "log_loss_reduction": self.log_loss_reduction,
        }


def compute_multiclass_metrics(
    label_ids: Sequence[int],
    probabilities: np.ndarray,
    label_names: List[str],
) -> MulticlassMetrics:
    """
    Compute multiclass metrics from true label ids and predicted probabilities.

    Args:
        label_ids: True class index of each sample
        probabilities: Array of shape (samples, classes), rows summing to 1
        label_names: Class names, index i naming column i of probabilities

    Returns:
        MulticlassMetrics
    """
    labels = np.asarray(label_ids, dtype=np.int64)
    probabilities = np.asarray(probabilities, dtype=np.float64)

    if len(labels) == 0:
        raise ValueError("Cannot compute metrics on an empty set")
    if probabilities.shape != (len(labels), len(label_names)):
        raise ValueError(
            f"Expected probabilities of shape {(len(labels), len(label_names))}, got {probabilities.shape}"
        )

    preds = probabilities.argmax(axis=1)
    micro_accuracy = float(np.mean(preds == labels))

    present_classes = np.unique(labels)
    macro_accuracy = float(
        np.mean([np.mean(preds[labels == c] == c) for c in present_classes])
    )

    true_probabilities = np.clip(
        probabilities[np.arange(len(labels)), labels], PROBABILITY_EPSILON, 1.0
    )
    sample_log_loss = -np.log(true_probabilities)
    log_loss = float(np.mean(sample_log_loss))

    prior = np.bincount(labels, minlength=len(label_names)) / len(labels)
    prior = prior[prior > 0]
    prior_log_loss = float(-np.sum(prior * np.log(prior)))
    log_loss_reduction = (
        1.0 - log_loss / prior_log_loss if prior_log_loss > 0 else 0.0
    )

    per_class_log_loss = {
        label_names[c]: float(np.mean(sample_log_loss[labels == c]))
        for c in present_classes
    }

    class_indices = list(range(len(label_names)))
    cm = confusion_matrix(labels, preds, labels=class_indices)
    cm_df = pd.DataFrame(cm, index=label_names, columns=label_names)

    report = cast(
        Dict[str, Any],
        classification_report(
            labels,
            preds,
            labels=class_indices,
            target_names=label_names,
            output_dict=True,
            zero_division=0,
        ),
    )

    return MulticlassMetrics(
        micro_accuracy=micro_accuracy,
        macro_accuracy=macro_accuracy,
        log_loss=log_loss,
        log_loss_reduction=log_loss_reduction,
        per_class_log_loss=per_class_log_loss,
        confusion_matrix={
            actual: {predicted: int(count) for predicted, count in row.items()}
            for actual, row in cm_df.to_dict(orient="index").items()
        },
        classification_report=report,
    )


def log_multiclass_metrics(trainer_name: str, metrics: MulticlassMetrics) -> None:
    logger.info(f"*** Metrics for {trainer_name} multi-class classification model ***")
    logger.info(f"    MicroAccuracy = {metrics.micro_accuracy:.4f}, a value between 0 and 1, the closer to 1, the better")
    logger.info(f"    MacroAccuracy = {metrics.macro_accuracy:.4f}, a value between 0 and 1, the closer to 1, the better")
    logger.info(f"    LogLoss = {metrics.log_loss:.4f}, the closer to 0, the better")
    logger.info(f"    LogLossReduction = {metrics.log_loss_reduction:.4f}, the closer to 1, the better")
    for label, value in metrics.per_class_log_loss.items():
        logger.info(f"    LogLoss for class {label} = {value:.4f}, the closer to 0, the better")


def save_confusion_matrix_plot(
    metrics: MulticlassMetrics, output_path: Union[str, Path]
) -> str:
    """Draw the confusion matrix as a heatmap and save it as an image."""
    cm_df = pd.DataFrame.from_dict(metrics.confusion_matrix, orient="index")

    plt.figure(figsize=(10, 7))
    sns.heatmap(cm_df, annot=True, fmt="d", cmap="Blues")
    plt.title("Confusion Matrix")
    plt.ylabel("Actual")
    plt.xlabel("Predicted")
    plt.savefig(output_path)
    plt.close()

    logger.info(f"Confusion matrix saved to {output_path}")
    return str(output_path)

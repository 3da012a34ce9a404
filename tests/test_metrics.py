import math
from pathlib import Path

import numpy as np
import pytest

from image_classification.classifier_trainer.metrics import (
    compute_multiclass_metrics,
    save_confusion_matrix_plot,
)

LABELS = ["rose", "tulip"]


def test_perfect_predictions() -> None:
    probabilities = np.array([[1.0, 0.0], [0.0, 1.0], [1.0, 0.0], [0.0, 1.0]])

    metrics = compute_multiclass_metrics([0, 1, 0, 1], probabilities, LABELS)

    assert metrics.micro_accuracy == 1.0
    assert metrics.macro_accuracy == 1.0
    assert metrics.log_loss == pytest.approx(0.0)
    assert metrics.log_loss_reduction == pytest.approx(1.0)
    assert metrics.confusion_matrix == {
        "rose": {"rose": 2, "tulip": 0},
        "tulip": {"rose": 0, "tulip": 2},
    }


def test_micro_and_macro_accuracy_differ_on_imbalance() -> None:
    probabilities = np.array([[0.9, 0.1]] * 4)

    metrics = compute_multiclass_metrics([0, 0, 0, 1], probabilities, LABELS)

    assert metrics.micro_accuracy == pytest.approx(0.75)
    assert metrics.macro_accuracy == pytest.approx(0.5)
    assert metrics.per_class_log_loss["rose"] == pytest.approx(-math.log(0.9))
    assert metrics.per_class_log_loss["tulip"] == pytest.approx(-math.log(0.1))


def test_uniform_predictions_do_not_reduce_log_loss() -> None:
    probabilities = np.full((4, 2), 0.5)

    metrics = compute_multiclass_metrics([0, 1, 0, 1], probabilities, LABELS)

    assert metrics.log_loss == pytest.approx(math.log(2))
    assert metrics.log_loss_reduction == pytest.approx(0.0)


def test_single_class_truth_has_no_reduction() -> None:
    metrics = compute_multiclass_metrics([0, 0], np.array([[0.8, 0.2]] * 2), LABELS)

    assert metrics.log_loss_reduction == 0.0
    assert set(metrics.per_class_log_loss) == {"rose"}


def test_zero_probability_is_clipped() -> None:
    metrics = compute_multiclass_metrics([1], np.array([[1.0, 0.0]]), LABELS)

    assert math.isfinite(metrics.log_loss)
    assert metrics.log_loss == pytest.approx(-math.log(1e-15))


def test_shape_mismatch() -> None:
    with pytest.raises(ValueError):
        compute_multiclass_metrics([0, 1], np.full((2, 3), 1 / 3), LABELS)


def test_empty_set() -> None:
    with pytest.raises(ValueError):
        compute_multiclass_metrics([], np.zeros((0, 2)), LABELS)


def test_confusion_matrix_plot(tmp_path: Path) -> None:
    metrics = compute_multiclass_metrics(
        [0, 1], np.array([[0.7, 0.3], [0.4, 0.6]]), LABELS
    )

    path = save_confusion_matrix_plot(metrics, tmp_path / "cm.png")

    assert Path(path).is_file()

from pathlib import Path

import numpy as np
import pytest
import torch

from conftest import TINY_FEATURE_DIM, tiny_backbone
from image_classification.classifier_trainer import (
    TransferLearningClassifier,
    TransferLearningTrainer,
)
from image_classification.dataset_loader import load_images
from image_classification.lib import EpochStatistics


def _records(directory: Path):
    return sorted(load_images(directory), key=lambda r: r.image_path)


@pytest.fixture
def statistics():
    return []


@pytest.fixture
def trainer(tmp_path: Path, color_dataset, training_config, statistics):
    torch.manual_seed(0)
    train_dir, test_dir = color_dataset
    return TransferLearningTrainer(
        training_config,
        _records(train_dir),
        _records(test_dir),
        output_dir=str(tmp_path / "models"),
        backbone=tiny_backbone(),
        feature_dim=TINY_FEATURE_DIM,
        statistics_callback=statistics.append,
    )


def test_reports_statistics_every_epoch(trainer, statistics) -> None:
    trainer.train()

    assert [s.epoch for s in statistics] == [0, 1, 2]
    for s in statistics:
        assert isinstance(s, EpochStatistics)
        assert 0.0 <= s.accuracy <= 1.0
        assert s.cross_entropy >= 0.0
    assert trainer.best_cross_entropy == min(s.cross_entropy for s in statistics)


def test_checkpoints_and_evaluation(trainer) -> None:
    trainer.train()
    metrics = trainer.evaluate()

    assert Path(trainer.best_model_path).is_file()
    assert Path(trainer.final_model_path).is_file()
    assert metrics is not None
    assert 0.0 <= metrics.micro_accuracy <= 1.0
    assert set(metrics.confusion_matrix) == {"rose", "tulip"}
    assert (Path(trainer.output_dir) / "metrics.json").is_file()


def test_final_checkpoint_round_trip(trainer, color_dataset) -> None:
    classifier = trainer.train()
    _, test_dir = color_dataset
    records = _records(test_dir)
    expected = classifier.predict_proba(records)

    loaded = TransferLearningClassifier.load(
        trainer.final_model_path, backbone=tiny_backbone(), feature_dim=TINY_FEATURE_DIM
    )

    assert loaded.label_names == ["rose", "tulip"]
    np.testing.assert_allclose(loaded.predict_proba(records), expected, rtol=1e-5)
    np.testing.assert_allclose(expected.sum(axis=1), 1.0, rtol=1e-5)


def test_custom_backbone_needs_feature_dim(tmp_path: Path, color_dataset, training_config) -> None:
    train_dir, _ = color_dataset

    with pytest.raises(ValueError, match="feature_dim"):
        TransferLearningTrainer(
            training_config,
            _records(train_dir),
            output_dir=str(tmp_path),
            backbone=tiny_backbone(),
        )


def test_load_rejects_other_artifacts(tmp_path: Path) -> None:
    path = tmp_path / "other.pth"
    torch.save({"kind": "something_else"}, path)

    with pytest.raises(ValueError):
        TransferLearningClassifier.load(path, backbone=tiny_backbone(), feature_dim=4)

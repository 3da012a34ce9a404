from pathlib import Path

import numpy as np
import pytest

from image_classification.classifier_trainer import (
    MaximumEntropyClassifier,
    MaximumEntropyTrainer,
)
from image_classification.dataset_loader import load_images
from image_classification.lib import ImageRecord


def _records(directory: Path):
    return sorted(load_images(directory), key=lambda r: r.image_path)


@pytest.fixture
def trainer(tmp_path: Path, color_dataset, training_config, fake_extractor):
    train_dir, test_dir = color_dataset
    return MaximumEntropyTrainer(
        training_config,
        _records(train_dir),
        _records(test_dir),
        output_dir=str(tmp_path / "models"),
        extractor=fake_extractor,
    )


def test_train_and_evaluate(trainer: MaximumEntropyTrainer) -> None:
    classifier = trainer.train()
    metrics = trainer.evaluate()

    assert isinstance(classifier, MaximumEntropyClassifier)
    assert classifier.label_names == ["rose", "tulip"]
    assert metrics is not None
    assert metrics.micro_accuracy == 1.0
    assert metrics.macro_accuracy == 1.0

    output_dir = Path(trainer.output_dir)
    assert output_dir.parts[-2:] == ("flowers", "1.0.0")
    for name in ["maximum_entropy.joblib", "metrics.json", "confusion_matrix.png"]:
        assert (output_dir / name).is_file()


def test_saved_model_predicts_the_same(
    trainer: MaximumEntropyTrainer, color_dataset, fake_extractor
) -> None:
    classifier = trainer.train()
    _, test_dir = color_dataset
    records = _records(test_dir)

    loaded = MaximumEntropyClassifier.load(trainer.model_path, extractor=fake_extractor)

    assert loaded.label_names == classifier.label_names
    assert loaded.pipeline.settings() == classifier.pipeline.settings()
    np.testing.assert_allclose(
        loaded.predict_proba(records), classifier.predict_proba(records)
    )
    predictions = loaded.predict_batch(records)
    assert [p.predicted_label for p in predictions] == [r.label for r in records]
    assert all(len(p.score) == 2 for p in predictions)


def test_predict_accepts_a_bare_path(trainer: MaximumEntropyTrainer, color_dataset) -> None:
    classifier = trainer.train()
    _, test_dir = color_dataset

    prediction = classifier.predict(test_dir / "tulip" / "tulip0.png")

    assert prediction.predicted_label == "tulip"
    assert prediction.max_score == max(prediction.score)


def test_evaluate_without_test_set(
    tmp_path: Path, color_dataset, training_config, fake_extractor
) -> None:
    train_dir, _ = color_dataset
    trainer = MaximumEntropyTrainer(
        training_config,
        _records(train_dir),
        output_dir=str(tmp_path / "models"),
        extractor=fake_extractor,
    )
    trainer.train()

    assert trainer.evaluate() is None


def test_needs_two_labels(tmp_path: Path, training_config, fake_extractor) -> None:
    records = [ImageRecord(image_path=f"/x/rose/{i}.jpg", label="rose") for i in range(3)]

    with pytest.raises(ValueError, match="at least 2 labels"):
        MaximumEntropyTrainer(
            training_config, records, output_dir=str(tmp_path), extractor=fake_extractor
        )


def test_unknown_test_label(tmp_path: Path, training_config, fake_extractor) -> None:
    train = [
        ImageRecord(image_path="/x/rose/1.jpg", label="rose"),
        ImageRecord(image_path="/x/tulip/1.jpg", label="tulip"),
    ]
    test = [ImageRecord(image_path="/x/daisy/1.jpg", label="daisy")]

    with pytest.raises(ValueError, match="daisy"):
        MaximumEntropyTrainer(
            training_config, train, test, output_dir=str(tmp_path), extractor=fake_extractor
        )


def test_no_training_images(tmp_path: Path, training_config, fake_extractor) -> None:
    with pytest.raises(ValueError, match="No training images"):
        MaximumEntropyTrainer(
            training_config, [], output_dir=str(tmp_path), extractor=fake_extractor
        )

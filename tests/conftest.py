from pathlib import Path
from typing import Callable, List, Tuple

import pytest
import torch
import torch.nn as nn
from PIL import Image

from image_classification.classifier_trainer.config import TrainingConfig

RED = (255, 0, 0)
BLUE = (0, 0, 255)


class FakeExtractor:
    """Stands in for a pretrained backbone: the features are the mean of each channel."""

    model_name = "fake/mean-color"
    feature_dim = 3

    def pixel_normalisation(self) -> Tuple[List[float], List[float]]:
        return [0.0, 0.0, 0.0], [1.0 / 255.0] * 3

    def extract_features(self, pixel_values: torch.Tensor) -> torch.Tensor:
        return pixel_values.mean(dim=(2, 3))


def tiny_backbone() -> nn.Module:
    return nn.Sequential(nn.AdaptiveAvgPool2d(1), nn.Flatten(), nn.Linear(3, 4))


TINY_FEATURE_DIM = 4


@pytest.fixture
def write_image() -> Callable[..., Path]:
    def _write(path: Path, color=RED, size=(8, 8)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", size, color).save(path)
        return path

    return _write


@pytest.fixture
def touch() -> Callable[[Path], Path]:
    def _touch(path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")
        return path

    return _touch


@pytest.fixture
def flowers_dir(tmp_path: Path, write_image) -> Path:
    root = tmp_path / "flowers"
    write_image(root / "rose" / "a.jpg", RED)
    write_image(root / "rose" / "b.png", RED)
    write_image(root / "tulip" / "c.jpg", BLUE)
    (root / "readme.txt").write_text("three flowers", encoding="utf-8")
    return root


@pytest.fixture
def color_dataset(tmp_path: Path, write_image) -> Tuple[Path, Path]:
    """Red roses and blue tulips, in separate train and test directories."""
    train = tmp_path / "train"
    test = tmp_path / "test"
    for i in range(4):
        write_image(train / "rose" / f"rose{i}.png", RED)
        write_image(train / "tulip" / f"tulip{i}.png", BLUE)
    for i in range(2):
        write_image(test / "rose" / f"rose{i}.png", RED)
        write_image(test / "tulip" / f"tulip{i}.png", BLUE)
    return train, test


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def training_config() -> TrainingConfig:
    return TrainingConfig.model_validate(
        {
            "model_information": {"name": "flowers", "version": "1.0.0"},
            "image_settings": {"width": 8, "height": 8},
            "hyperparameters": {
                "batch_size": 4,
                "num_epochs": 3,
                "learning_rate": 0.01,
            },
            "tracking": {"enabled": False},
        }
    )

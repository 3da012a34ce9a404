from enum import Enum
import json
from pathlib import Path
import re
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from image_classification.feature_extractor.extractor import DEFAULT_MODEL_NAME
from image_classification.feature_extractor.transforms import (
    DEFAULT_IMAGE_HEIGHT,
    DEFAULT_IMAGE_WIDTH,
)


class Task(str, Enum):
    """The intended task of the model."""

    IMAGE_CLASSIFICATION = "image_classification"


class TrainerType(str, Enum):
    """How the classifier is trained on top of the pretrained backbone."""

    # Multinomial logistic regression (L-BFGS) on frozen, pre-extracted features
    MAXIMUM_ENTROPY = "maximum_entropy"
    # Backbone and linear head fine-tuned end to end
    TRANSFER_LEARNING = "transfer_learning"


DEFAULT_LEARNING_RATE = 0.0001
DEFAULT_BATCH_SIZE = 100
DEFAULT_NUM_EPOCHS = 100
DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_L2_REGULARIZATION = 1.0
DEFAULT_TEST_FRACTION = 0.2
DEFAULT_SEED = 1


class ModelInformation(BaseModel):
    """Information about the model to train."""

    name: str = Field(..., description="Name of the model")
    description: str = Field("", description="Description of the model")
    version: str = Field(..., description="Version of the model")
    task: Task = Field(
        Task.IMAGE_CLASSIFICATION, description="The intended task of the model"
    )

    @field_validator("version")
    def validate_version(cls, v: str) -> str:
        """Validate the version of the model."""
        if not re.match(r"^\d+\.\d+\.\d+$", v):
            raise ValueError("Version must be in the semver format x.x.x")
        return v


class FeatureExtractorSettings(BaseModel):
    """Pretrained backbone used for features (and fine-tuned by transfer learning)."""

    model_config = ConfigDict(protected_namespaces=())

    model_name: str = Field(
        DEFAULT_MODEL_NAME, description="Hugging Face id of the pretrained backbone"
    )


class ImageSettings(BaseModel):
    """Resize and pixel extraction settings."""

    width: int = Field(DEFAULT_IMAGE_WIDTH, description="Resize width", ge=1)
    height: int = Field(DEFAULT_IMAGE_HEIGHT, description="Resize height", ge=1)
    offset: Optional[List[float]] = Field(
        None,
        description="Value subtracted from each 0-255 pixel, one value or one per channel. Defaults to the backbone's mean.",
    )
    scale: Optional[List[float]] = Field(
        None,
        description="Factor applied after the offset, one value or one per channel. Defaults to the backbone's std.",
    )

    @field_validator("offset", "scale")
    @classmethod
    def validate_channels(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        """Validate that there is one value for all channels or one per RGB channel."""
        if v is not None and len(v) not in (1, 3):
            raise ValueError("must contain 1 or 3 values")
        return v


class Hyperparameters(BaseModel):
    """Hyperparameters for the training process."""

    learning_rate: float = Field(
        DEFAULT_LEARNING_RATE,
        description="Learning rate for the model",
        ge=0,
    )
    batch_size: int = Field(
        DEFAULT_BATCH_SIZE, description="Batch size for training", ge=1
    )
    num_epochs: int = Field(
        DEFAULT_NUM_EPOCHS, description="Number of epochs to train", ge=1
    )
    max_iterations: int = Field(
        DEFAULT_MAX_ITERATIONS,
        description="L-BFGS iterations for the maximum entropy trainer",
        ge=1,
    )
    l2_regularization: float = Field(
        DEFAULT_L2_REGULARIZATION,
        description="L2 weight for the maximum entropy trainer",
        gt=0,
    )


class SplitSettings(BaseModel):
    """How to split a single image directory when no test directory is given."""

    test_fraction: float = Field(
        DEFAULT_TEST_FRACTION, description="Ratio of test data", gt=0, lt=1
    )
    stratify: bool = Field(False, description="Stratify the split by label")


class TrackingSettings(BaseModel):
    """Aim experiment tracking."""

    enabled: bool = Field(False, description="Record the run with Aim")


class TrainingConfig(BaseModel):
    """Configuration for training a classifier."""

    model_config = ConfigDict(protected_namespaces=())

    model_information: ModelInformation = Field(
        ..., description="Information about the model to train"
    )
    trainer: TrainerType = Field(
        TrainerType.MAXIMUM_ENTROPY, description="How to train the classifier"
    )
    feature_extractor: FeatureExtractorSettings = Field(
        default_factory=FeatureExtractorSettings,
        description="Pretrained backbone settings",
    )
    image_settings: ImageSettings = Field(
        default_factory=ImageSettings, description="Image transform settings"
    )
    hyperparameters: Hyperparameters = Field(
        default_factory=Hyperparameters,
        description="Hyperparameters for the training process",
    )
    split: SplitSettings = Field(
        default_factory=SplitSettings, description="Train/test split settings"
    )
    seed: int = Field(DEFAULT_SEED, description="Random seed for reproducibility")
    tracking: TrackingSettings = Field(
        default_factory=TrackingSettings, description="Experiment tracking settings"
    )

    @property
    def experiment_name(self) -> str:
        return f"{self.model_information.name}_v{self.model_information.version}"


def load_config_file(config_file: Union[str, Path]) -> TrainingConfig:
    """Load and validate a YAML or JSON training configuration."""
    config_path = Path(config_file)
    if config_path.suffix.lower() in [".yaml", ".yml"]:
        with open(config_path, "r") as f:
            config_data: Dict[str, Any] = yaml.safe_load(f)
    elif config_path.suffix.lower() == ".json":
        with open(config_path, "r") as f:
            config_data = json.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    return TrainingConfig.model_validate(config_data)

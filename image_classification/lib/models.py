from enum import Enum
from pathlib import Path
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ImageFormat(str, Enum):
    """File extensions accepted when scanning an image directory (case-sensitive)."""

    JPG = ".jpg"
    PNG = ".png"

    @classmethod
    def extensions(cls) -> List[str]:
        return [fmt.value for fmt in cls]


class ImageRecord(BaseModel):
    """Represents a single image with its label.

    The label is derived from the path by the dataset loader and never set
    independently. On the tabular surface the fields are named ``ImagePath``
    and ``Label``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    image_path: str = Field(..., alias="ImagePath")
    label: str = Field(..., alias="Label")

    @property
    def file_name(self) -> str:
        return Path(self.image_path).name


class ImagePrediction(BaseModel):
    """The output of a trained classifier for one image."""

    image_path: str
    predicted_label: str
    # Probabilities in the label order of the classifier that produced them
    score: List[float]

    @property
    def max_score(self) -> float:
        return max(self.score) if self.score else 0.0


class EpochStatistics(BaseModel):
    """Training statistics reported once per transfer-learning epoch."""

    epoch: int
    accuracy: float
    cross_entropy: float

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import joblib
import numpy as np
import torch
import torch.nn as nn
from sklearn.linear_model import LogisticRegression

from image_classification.feature_extractor.extractor import (
    DEFAULT_BATCH_SIZE,
    PretrainedFeatureExtractor,
    extract_record_features,
)
from image_classification.feature_extractor.transforms import ImageTransformPipeline
from image_classification.lib import ImagePrediction, ImageRecord, setup_logger

from .model import TransferLearningModel

logger = setup_logger(__name__)

MAXIMUM_ENTROPY_SUFFIX = ".joblib"
TRANSFER_LEARNING_SUFFIX = ".pth"

ImageInput = Union[ImageRecord, str, Path]


def _as_record(image: ImageInput) -> ImageRecord:
    # Images to score may come without a label
    if isinstance(image, ImageRecord):
        return image
    return ImageRecord(image_path=str(image), label="")


class TrainedClassifier:
    """Common prediction surface of the trained classifiers."""

    label_names: List[str]

    def predict_proba(self, records: Sequence[ImageRecord]) -> np.ndarray:
        raise NotImplementedError

    def predict_batch(self, images: Sequence[ImageInput]) -> List[ImagePrediction]:
        records = [_as_record(image) for image in images]
        if not records:
            return []

        probabilities = self.predict_proba(records)
        return [
            ImagePrediction(
                image_path=record.image_path,
                predicted_label=self.label_names[int(np.argmax(scores))],
                score=[float(s) for s in scores],
            )
            for record, scores in zip(records, probabilities)
        ]

    def predict(self, image: ImageInput) -> ImagePrediction:
        return self.predict_batch([image])[0]

    def save(self, path: Union[str, Path]) -> None:
        raise NotImplementedError


class MaximumEntropyClassifier(TrainedClassifier):
    """Multinomial logistic regression on features of a frozen pretrained backbone."""

    kind = "maximum_entropy"

    def __init__(
        self,
        extractor: PretrainedFeatureExtractor,
        pipeline: ImageTransformPipeline,
        estimator: LogisticRegression,
        label_names: List[str],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        self.extractor = extractor
        self.pipeline = pipeline
        self.estimator = estimator
        self.label_names = list(label_names)
        self.batch_size = batch_size

    def predict_features(self, features: np.ndarray) -> np.ndarray:
        return self.estimator.predict_proba(features)

    def predict_proba(self, records: Sequence[ImageRecord]) -> np.ndarray:
        features = extract_record_features(
            self.extractor,
            self.pipeline,
            records,
            batch_size=self.batch_size,
            desc="Scoring",
        )
        return self.predict_features(features)

    def save(self, path: Union[str, Path]) -> None:
        artifact: Dict[str, Any] = {
            "kind": self.kind,
            "model_name": self.extractor.model_name,
            "pipeline": self.pipeline.settings(),
            "label_names": self.label_names,
            "estimator": self.estimator,
        }
        joblib.dump(artifact, path)
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        extractor: Optional[PretrainedFeatureExtractor] = None,
    ) -> "MaximumEntropyClassifier":
        artifact: Dict[str, Any] = joblib.load(path)
        if artifact.get("kind") != cls.kind:
            raise ValueError(f"{path} is not a {cls.kind} model")

        if extractor is None:
            extractor = PretrainedFeatureExtractor(artifact["model_name"])

        logger.info(f"Model loaded from {path}")
        return cls(
            extractor=extractor,
            pipeline=ImageTransformPipeline(**artifact["pipeline"]),
            estimator=artifact["estimator"],
            label_names=artifact["label_names"],
        )


class TransferLearningClassifier(TrainedClassifier):
    """A fine-tuned backbone with its classifier head."""

    kind = "transfer_learning"

    def __init__(
        self,
        model: TransferLearningModel,
        pipeline: ImageTransformPipeline,
        label_names: List[str],
        model_name: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        device: Optional[torch.device] = None,
    ):
        self.device = device or torch.device(
            "cuda" if torch.cuda.is_available() else "cpu"
        )
        self.model = model.to(self.device)
        self.pipeline = pipeline
        self.label_names = list(label_names)
        self.model_name = model_name
        self.batch_size = batch_size

    def predict_proba(self, records: Sequence[ImageRecord]) -> np.ndarray:
        self.model.eval()
        batches: List[np.ndarray] = []
        with torch.no_grad():
            for start in range(0, len(records), self.batch_size):
                pixel_values = self.pipeline.transform_batch(
                    records[start : start + self.batch_size]
                ).to(self.device)
                logits = self.model(pixel_values)
                batches.append(torch.softmax(logits, dim=1).cpu().numpy())
        return np.concatenate(batches, axis=0)

    def save(self, path: Union[str, Path]) -> None:
        checkpoint: Dict[str, Any] = {
            "kind": self.kind,
            "model_name": self.model_name,
            "pipeline": self.pipeline.settings(),
            "label_names": self.label_names,
            "state_dict": self.model.state_dict(),
        }
        torch.save(checkpoint, path)
        logger.info(f"Model saved to {path}")

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        backbone: Optional[nn.Module] = None,
        feature_dim: Optional[int] = None,
    ) -> "TransferLearningClassifier":
        """
        Load a checkpoint written by ``save``.

        The pretrained backbone named in the checkpoint is rebuilt unless a
        backbone (and its feature_dim) is passed in.
        """
        checkpoint: Dict[str, Any] = torch.load(
            path, map_location="cpu", weights_only=True
        )
        if checkpoint.get("kind") != cls.kind:
            raise ValueError(f"{path} is not a {cls.kind} model")

        if backbone is None:
            extractor = PretrainedFeatureExtractor(checkpoint["model_name"])
            backbone = extractor.backbone
            feature_dim = extractor.feature_dim
        elif feature_dim is None:
            raise ValueError("feature_dim is required with a custom backbone")

        model = TransferLearningModel(
            backbone, feature_dim=feature_dim, num_classes=len(checkpoint["label_names"])
        )
        model.load_state_dict(checkpoint["state_dict"])

        logger.info(f"Model loaded from {path}")
        return cls(
            model=model,
            pipeline=ImageTransformPipeline(**checkpoint["pipeline"]),
            label_names=checkpoint["label_names"],
            model_name=checkpoint["model_name"],
        )


def load_classifier(path: Union[str, Path]) -> TrainedClassifier:
    """Load a trained classifier, picking its kind from the file suffix."""
    suffix = Path(path).suffix
    if suffix == MAXIMUM_ENTROPY_SUFFIX:
        return MaximumEntropyClassifier.load(path)
    if suffix == TRANSFER_LEARNING_SUFFIX:
        return TransferLearningClassifier.load(path)
    raise ValueError(f"Unsupported model file format: {suffix}")

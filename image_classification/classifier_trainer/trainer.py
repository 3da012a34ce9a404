import json
import os
from typing import Dict, List, Optional, Sequence

import numpy as np

from image_classification.classifier_trainer.classifier import TrainedClassifier
from image_classification.classifier_trainer.config import ImageSettings, TrainingConfig
from image_classification.classifier_trainer.dataset import (
    build_label_mapping,
    encode_labels,
)
from image_classification.classifier_trainer.metrics import (
    MulticlassMetrics,
    compute_multiclass_metrics,
    log_multiclass_metrics,
    save_confusion_matrix_plot,
)
from image_classification.feature_extractor.extractor import PretrainedFeatureExtractor
from image_classification.feature_extractor.transforms import ImageTransformPipeline
from image_classification.lib import ExperimentTracker, ImageRecord, setup_logger

logger = setup_logger(__name__)

# Used when neither the settings nor a pretrained processor define a normalisation
DEFAULT_PIXEL_OFFSET = [0.0]
DEFAULT_PIXEL_SCALE = [1.0 / 255.0]


def build_pipeline(
    image_settings: ImageSettings,
    extractor: Optional[PretrainedFeatureExtractor] = None,
) -> ImageTransformPipeline:
    """Transform pipeline from the settings, normalised like the extractor's processor unless overridden."""
    if extractor is not None:
        offset, scale = extractor.pixel_normalisation()
    else:
        offset, scale = DEFAULT_PIXEL_OFFSET, DEFAULT_PIXEL_SCALE

    return ImageTransformPipeline(
        width=image_settings.width,
        height=image_settings.height,
        offset=image_settings.offset if image_settings.offset is not None else offset,
        scale=image_settings.scale if image_settings.scale is not None else scale,
    )


class BaseTrainer:
    """
    Shared plumbing of the trainers: output directory, label mapping,
    experiment tracking and test-set reporting.
    """

    trainer_name = "classifier"

    def __init__(
        self,
        config: TrainingConfig,
        train_records: Sequence[ImageRecord],
        test_records: Optional[Sequence[ImageRecord]] = None,
        output_dir: str = "training_output",
    ):
        self.config = config
        self.train_records = list(train_records)
        self.test_records = list(test_records) if test_records else []

        if not self.train_records:
            raise ValueError("No training images were provided")

        self.output_dir = os.path.join(
            output_dir,
            self.config.model_information.name,
            self.config.model_information.version,
        )
        os.makedirs(self.output_dir, exist_ok=True)
        logger.info(f"Training output will be saved to: {self.output_dir}")

        self.label_mapping = build_label_mapping(self.train_records)
        if len(self.label_mapping) < 2:
            raise ValueError(
                f"Need at least 2 labels to train a classifier, found {list(self.label_mapping)}"
            )
        self.label_names = sorted(self.label_mapping, key=lambda x: self.label_mapping[x])
        self.num_classes = len(self.label_names)

        self.train_label_ids = encode_labels(self.train_records, self.label_mapping)
        self.test_label_ids = encode_labels(self.test_records, self.label_mapping)

        logger.info(
            f"Loaded {len(self.train_records)} training images and {len(self.test_records)} test images"
        )
        logger.info(f"Label Mapping: {self.label_mapping}")

        self.tracker = ExperimentTracker(
            config.experiment_name, enabled=config.tracking.enabled
        )
        self.tracker.log_config(config)

        self.train_distribution = self._get_distribution(self.train_records)
        self.tracker.set("train_distribution", self.train_distribution)

        self.classifier: Optional[TrainedClassifier] = None

    def _get_distribution(self, records: Sequence[ImageRecord]) -> Dict[str, int]:
        """Get the distribution of classes and warn about imbalanced ones."""
        total_count = len(records)

        distribution: Dict[str, int] = {}
        for record in records:
            distribution[record.label] = distribution.get(record.label, 0) + 1

        num_classes = len(distribution)
        ideal_percentage = 100 / num_classes if num_classes > 0 else 0

        imbalanced_classes: List[str] = []
        for label, count in distribution.items():
            # More than 5 points away from an even share
            if abs(count / total_count * 100 - ideal_percentage) > 5:
                imbalanced_classes.append(label)

        if imbalanced_classes:
            logger.warning(
                f"Class imbalance detected: {len(imbalanced_classes)} out of {num_classes} classes deviate from ideal representation by >5%."
            )
            for label in imbalanced_classes:
                logger.warning(
                    f"Class '{label}' has {distribution[label]} samples "
                    f"({distribution[label] / total_count * 100:.1f}%, ideal {ideal_percentage:.1f}%)."
                )

        return distribution

    def train(self) -> TrainedClassifier:
        raise NotImplementedError

    def _test_probabilities(self) -> np.ndarray:
        raise NotImplementedError

    def evaluate(self) -> Optional[MulticlassMetrics]:
        """Score the test images and report the multiclass metrics."""
        if not self.test_records:
            logger.warning("No test set available for evaluation.")
            return None
        if self.classifier is None:
            raise RuntimeError("The model must be trained before it is evaluated")

        logger.info("Evaluating on the test set...")
        probabilities = self._test_probabilities()

        for record, scores in zip(self.test_records, probabilities):
            logger.info(
                f"ImagePath: [{record.file_name}] original label: {record.label} "
                f"predicted: {self.label_names[int(np.argmax(scores))]} "
                f"with score: {float(np.max(scores)):.4f}"
            )

        metrics = compute_multiclass_metrics(
            self.test_label_ids, probabilities, self.label_names
        )
        log_multiclass_metrics(self.trainer_name, metrics)

        for name, value in metrics.summary().items():
            self.tracker.track(value, name=f"test_{name}", subset="test")

        with open(os.path.join(self.output_dir, "metrics.json"), "w") as f:
            json.dump(metrics.model_dump(), f, indent=2)

        try:
            cm_path = save_confusion_matrix_plot(
                metrics, os.path.join(self.output_dir, "confusion_matrix.png")
            )
            self.tracker.track_image(cm_path, name="confusion_matrix")
        except Exception as e:
            logger.error(f"Could not generate or save confusion matrix plot: {e}")

        self.tracker.close()
        return metrics

import os
import time
from typing import Optional, Sequence

import numpy as np
from sklearn.linear_model import LogisticRegression

from image_classification.classifier_trainer.classifier import (
    MAXIMUM_ENTROPY_SUFFIX,
    MaximumEntropyClassifier,
)
from image_classification.classifier_trainer.config import TrainingConfig
from image_classification.classifier_trainer.trainer import BaseTrainer, build_pipeline
from image_classification.feature_extractor.extractor import (
    PretrainedFeatureExtractor,
    extract_record_features,
)
from image_classification.lib import ImageRecord, setup_logger

logger = setup_logger(__name__)

PREVIEW_COUNT = 2


class MaximumEntropyTrainer(BaseTrainer):
    """
    Trains a multinomial logistic regression (L-BFGS) on features extracted
    by a frozen pretrained backbone.
    """

    trainer_name = "LbfgsMaximumEntropy"

    def __init__(
        self,
        config: TrainingConfig,
        train_records: Sequence[ImageRecord],
        test_records: Optional[Sequence[ImageRecord]] = None,
        output_dir: str = "training_output",
        extractor: Optional[PretrainedFeatureExtractor] = None,
    ):
        super().__init__(config, train_records, test_records, output_dir=output_dir)

        self.extractor = extractor or PretrainedFeatureExtractor(
            config.feature_extractor.model_name
        )
        self.pipeline = build_pipeline(config.image_settings, self.extractor)
        logger.info(f"Image pipeline: {self.pipeline}")

        self.model_path = os.path.join(
            self.output_dir, f"maximum_entropy{MAXIMUM_ENTROPY_SUFFIX}"
        )

    def _extract(self, records: Sequence[ImageRecord], desc: str) -> np.ndarray:
        return extract_record_features(
            self.extractor,
            self.pipeline,
            records,
            batch_size=self.config.hyperparameters.batch_size,
            desc=desc,
        )

    def train(self) -> MaximumEntropyClassifier:
        """Extract the training features, fit the estimator and save the model."""
        logger.info("Starting training...")
        self.pipeline.preview(self.train_records, count=PREVIEW_COUNT)

        watch = time.perf_counter()

        train_features = self._extract(self.train_records, "Extracting train features")
        logger.info(f"Detected Feature Dimension: {train_features.shape[1]}")

        hyperparameters = self.config.hyperparameters
        estimator = LogisticRegression(
            solver="lbfgs",
            C=1.0 / hyperparameters.l2_regularization,
            max_iter=hyperparameters.max_iterations,
            random_state=self.config.seed,
        )
        estimator.fit(train_features, np.asarray(self.train_label_ids))

        elapsed = time.perf_counter() - watch
        logger.info(f"Training with transfer learning took: {elapsed:.1f} seconds")
        self.tracker.track(elapsed, name="training_seconds")

        train_accuracy = float(
            np.mean(estimator.predict(train_features) == np.asarray(self.train_label_ids))
        )
        logger.info(f"Train | Acc: {train_accuracy:.4f}")
        self.tracker.track(train_accuracy, name="accuracy", subset="train")

        self.classifier = MaximumEntropyClassifier(
            extractor=self.extractor,
            pipeline=self.pipeline,
            estimator=estimator,
            label_names=self.label_names,
            batch_size=hyperparameters.batch_size,
        )
        self.classifier.save(self.model_path)

        if not self.test_records:
            self.tracker.close()

        logger.info("Training finished.")
        return self.classifier

    def _test_probabilities(self) -> np.ndarray:
        assert isinstance(self.classifier, MaximumEntropyClassifier)
        test_features = self._extract(self.test_records, "Extracting test features")
        return self.classifier.predict_features(test_features)

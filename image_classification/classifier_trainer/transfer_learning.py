import os
import time
from typing import Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import torch
import torch.nn as nn
from torch.utils.data import DataLoader
from tqdm import tqdm

from image_classification.classifier_trainer.classifier import (
    TRANSFER_LEARNING_SUFFIX,
    TransferLearningClassifier,
)
from image_classification.classifier_trainer.config import TrainingConfig
from image_classification.classifier_trainer.dataset import ImageRecordDataset
from image_classification.classifier_trainer.model import TransferLearningModel
from image_classification.classifier_trainer.trainer import BaseTrainer, build_pipeline
from image_classification.feature_extractor.extractor import PretrainedFeatureExtractor
from image_classification.lib import EpochStatistics, ImageRecord, setup_logger

logger = setup_logger(__name__)

StatisticsCallback = Callable[[EpochStatistics], None]


def log_epoch_statistics(statistics: EpochStatistics) -> None:
    logger.info(
        f"Epoch/training-cycle: {statistics.epoch}, "
        f"Accuracy: {statistics.accuracy * 100:.2f}%, "
        f"Cross-Entropy: {statistics.cross_entropy:.4f}"
    )


class TransferLearningTrainer(BaseTrainer):
    """
    Fine-tunes a pretrained backbone together with a new linear head.

    Pass a backbone (and its feature_dim) to train on top of something other
    than the pretrained model named in the config.
    """

    trainer_name = "ImageClassification (transfer learning)"

    def __init__(
        self,
        config: TrainingConfig,
        train_records: Sequence[ImageRecord],
        test_records: Optional[Sequence[ImageRecord]] = None,
        output_dir: str = "training_output",
        backbone: Optional[nn.Module] = None,
        feature_dim: Optional[int] = None,
        statistics_callback: Optional[StatisticsCallback] = log_epoch_statistics,
    ):
        super().__init__(config, train_records, test_records, output_dir=output_dir)
        self.statistics_callback = statistics_callback

        # Set device
        self.device = torch.device("cuda" if torch.cuda.is_available() else "cpu")
        logger.info(f"Using device: {self.device}")

        # Set seeds for reproducibility
        torch.manual_seed(config.seed)
        np.random.seed(config.seed)
        if torch.cuda.is_available():
            torch.cuda.manual_seed_all(config.seed)

        # --- Backbone ---
        if backbone is None:
            extractor = PretrainedFeatureExtractor(config.feature_extractor.model_name)
            backbone = extractor.backbone
            feature_dim = extractor.feature_dim
            self.pipeline = build_pipeline(config.image_settings, extractor)
        else:
            if feature_dim is None:
                raise ValueError("feature_dim is required with a custom backbone")
            self.pipeline = build_pipeline(config.image_settings)
        logger.info(f"Image pipeline: {self.pipeline}")

        # --- Datasets and Dataloaders ---
        batch_size = config.hyperparameters.batch_size
        self.train_dataset = ImageRecordDataset(
            self.train_records, self.label_mapping, self.pipeline
        )
        self.train_loader = DataLoader(
            self.train_dataset,
            batch_size=batch_size,
            shuffle=True,
            generator=torch.Generator().manual_seed(config.seed),
        )

        # --- Model ---
        self.model = TransferLearningModel(
            backbone, feature_dim=feature_dim, num_classes=self.num_classes
        )
        self.model.to(self.device)

        self.criterion = nn.CrossEntropyLoss()
        self.criterion.to(self.device)

        self.optimizer = torch.optim.AdamW(
            self.model.parameters(), lr=config.hyperparameters.learning_rate
        )

        # --- Tracking Best Model ---
        # Lower cross-entropy is better
        self.best_cross_entropy = float("inf")
        self.best_epoch = -1
        self.best_model_path = os.path.join(
            self.output_dir, f"best_model{TRANSFER_LEARNING_SUFFIX}"
        )
        self.final_model_path = os.path.join(
            self.output_dir, f"final_model{TRANSFER_LEARNING_SUFFIX}"
        )

        self.classifier = TransferLearningClassifier(
            model=self.model,
            pipeline=self.pipeline,
            label_names=self.label_names,
            model_name=config.feature_extractor.model_name,
            batch_size=batch_size,
            device=self.device,
        )

    def _run_epoch(
        self, loader: DataLoader[Tuple[torch.Tensor, torch.Tensor]]
    ) -> Dict[str, float]:
        """Runs a single training epoch and returns the sample-weighted metrics."""
        self.model.train()

        total_loss = 0.0
        total_correct = 0
        total_samples = 0

        pbar = tqdm(loader, desc="Train", leave=False)
        for pixel_values, labels in pbar:
            pixel_values, labels = pixel_values.to(self.device), labels.to(self.device)

            self.optimizer.zero_grad()
            logits = self.model(pixel_values)
            loss = self.criterion(logits, labels)
            loss.backward()
            self.optimizer.step()

            batch_size = labels.size(0)
            total_loss += loss.item() * batch_size
            total_correct += int((torch.argmax(logits, dim=1) == labels).sum().item())
            total_samples += batch_size

            pbar.set_postfix({"loss": f"{loss.item():.4f}"})

        return {
            "cross_entropy": total_loss / total_samples,
            "accuracy": total_correct / total_samples,
        }

    def train(self) -> TransferLearningClassifier:
        """Runs the main training loop."""
        logger.info(
            "*** Training the image classification model with DNN Transfer Learning on top of the selected pre-trained model ***"
        )
        self.pipeline.preview(self.train_records)
        total_epochs = self.config.hyperparameters.num_epochs
        watch = time.perf_counter()

        for epoch in range(total_epochs):
            metrics = self._run_epoch(self.train_loader)
            statistics = EpochStatistics(
                epoch=epoch,
                accuracy=metrics["accuracy"],
                cross_entropy=metrics["cross_entropy"],
            )
            if self.statistics_callback is not None:
                self.statistics_callback(statistics)

            self.tracker.track(
                statistics.cross_entropy,
                name="epoch_cross_entropy",
                epoch=epoch,
                subset="train",
            )
            self.tracker.track(
                statistics.accuracy, name="epoch_accuracy", epoch=epoch, subset="train"
            )

            # --- Checkpointing ---
            if statistics.cross_entropy < self.best_cross_entropy:
                self.best_cross_entropy = statistics.cross_entropy
                self.best_epoch = epoch
                logger.info(
                    f"New best cross-entropy ({self.best_cross_entropy:.4f}) at epoch {epoch}. Saving model..."
                )
                self.classifier.save(self.best_model_path)

        elapsed = time.perf_counter() - watch
        logger.info(f"Training with transfer learning took: {elapsed:.1f} seconds")
        logger.info(
            f"Best cross-entropy ({self.best_cross_entropy:.4f}) achieved at epoch {self.best_epoch}"
        )
        self.tracker.track(elapsed, name="training_seconds")

        self.classifier.save(self.final_model_path)

        if not self.test_records:
            self.tracker.close()

        return self.classifier

    def load_best_model(self) -> None:
        """Restore the weights of the best epoch, if a checkpoint was written."""
        if not os.path.exists(self.best_model_path):
            logger.warning(
                "Best model checkpoint not found. Evaluating with the current model state."
            )
            return

        logger.info(f"Loading best model from {self.best_model_path}")
        checkpoint = torch.load(
            self.best_model_path, map_location=self.device, weights_only=True
        )
        self.model.load_state_dict(checkpoint["state_dict"])

    def _test_probabilities(self) -> np.ndarray:
        self.load_best_model()
        return self.classifier.predict_proba(self.test_records)

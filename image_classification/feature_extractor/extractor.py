import logging
from typing import List, Sequence, Tuple

import numpy as np
import torch
import torch.nn as nn
from transformers import AutoImageProcessor, AutoModel
from tqdm import tqdm

from image_classification.lib import ImageRecord, setup_logger

from .transforms import ImageTransformPipeline

logger = setup_logger(__name__, level=logging.INFO)

DEFAULT_MODEL_NAME = "facebook/dinov2-base"
DEFAULT_BATCH_SIZE = 16


class PooledBackbone(nn.Module):
    """Wraps a Hugging Face vision model so it maps pixels to one feature vector per image."""

    def __init__(self, model: nn.Module):
        super().__init__()
        self.model = model

    def forward(self, pixel_values: torch.Tensor) -> torch.Tensor:
        outputs = self.model(pixel_values=pixel_values)
        features: torch.Tensor = outputs.last_hidden_state
        logger.debug(f"Features shape: {features.shape}")

        # Average over the token dimension
        return features.mean(dim=1)


class PretrainedFeatureExtractor:
    """Extracts features from images using a pretrained vision backbone."""

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME):
        self.model_name = model_name
        self.processor = AutoImageProcessor.from_pretrained(model_name)
        self.model = AutoModel.from_pretrained(model_name)
        self.model.eval()
        self.backbone = PooledBackbone(self.model)

        logger.info(f"Loaded pretrained backbone {model_name} ({self.feature_dim} features)")

    @property
    def feature_dim(self) -> int:
        return int(self.model.config.hidden_size)

    def pixel_normalisation(self) -> Tuple[List[float], List[float]]:
        """
        Offset and scale for ``extract_pixels`` matching the processor.

        The processor normalises ``value / 255`` with mean and std; on raw
        0-255 values that is an offset of ``mean * 255`` and a scale of
        ``1 / (std * 255)``.
        """
        mean: Sequence[float] = self.processor.image_mean
        std: Sequence[float] = self.processor.image_std
        offset = [m * 255.0 for m in mean]
        scale = [1.0 / (s * 255.0) for s in std]
        return offset, scale

    def extract_features(self, pixel_values: torch.Tensor) -> torch.Tensor:
        """
        Takes a batch of channel-first pixel tensors and returns one pooled
        feature vector per image.
        """
        with torch.no_grad():
            averaged_features = self.backbone(pixel_values)
        logger.debug(f"Averaged feature shape: {averaged_features.shape}")

        assert isinstance(averaged_features, torch.Tensor)
        return averaged_features


def extract_record_features(
    extractor: PretrainedFeatureExtractor,
    pipeline: ImageTransformPipeline,
    records: Sequence[ImageRecord],
    batch_size: int = DEFAULT_BATCH_SIZE,
    desc: str = "Extracting features",
) -> np.ndarray:
    """Run the transform pipeline and the extractor over records, batch by batch."""
    batches: List[np.ndarray] = []
    for start in tqdm(range(0, len(records), batch_size), desc=desc):
        batch = records[start : start + batch_size]
        pixel_values = pipeline.transform_batch(batch)
        features = extractor.extract_features(pixel_values)
        batches.append(features.cpu().numpy())

    if not batches:
        return np.zeros((0, extractor.feature_dim), dtype=np.float32)
    return np.concatenate(batches, axis=0)

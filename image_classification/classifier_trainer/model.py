import torch
import torch.nn as nn

from image_classification.lib import setup_logger

logger = setup_logger(__name__)


class LinearClassifierHead(nn.Module):
    """Linear classifier head producing one logit per class."""

    def __init__(self, input_dim: int, num_classes: int):
        super().__init__()
        if input_dim <= 0:
            raise ValueError("input_dim must be greater than 0")
        if num_classes <= 0:
            raise ValueError("num_classes must be greater than 0")
        self.fc = nn.Linear(input_dim, num_classes)
        logger.info(
            f"LinearClassifierHead initialized with {input_dim} input dimensions and {num_classes} classes"
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.fc(x)


class TransferLearningModel(nn.Module):
    """
    A pretrained backbone followed by a new classifier head.

    The backbone maps a batch of pixel tensors to a batch of feature vectors
    of size feature_dim; both parts are trained together.
    """

    def __init__(self, backbone: nn.Module, feature_dim: int, num_classes: int):
        super().__init__()
        self.backbone = backbone
        self.head = LinearClassifierHead(input_dim=feature_dim, num_classes=num_classes)

    def forward(self, pixel_values: torch.Tensor) -> torch.Tensor:
        features = self.backbone(pixel_values)
        return self.head(features)

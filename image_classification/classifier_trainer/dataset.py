from typing import Dict, List, Sequence, Tuple

import torch
from torch.utils.data import Dataset as TorchDataset

from image_classification.feature_extractor.transforms import ImageTransformPipeline
from image_classification.lib import ImageRecord


def build_label_mapping(records: Sequence[ImageRecord]) -> Dict[str, int]:
    """Map each label to an index, labels in sorted order."""
    return {label: idx for idx, label in enumerate(sorted({r.label for r in records}))}


def encode_labels(records: Sequence[ImageRecord], label_mapping: Dict[str, int]) -> List[int]:
    """Label ids of records; a label missing from the mapping is an error."""
    unknown = sorted({r.label for r in records if r.label not in label_mapping})
    if unknown:
        raise ValueError(
            f"Labels {unknown} are not among the trained labels {list(label_mapping)}"
        )
    return [label_mapping[r.label] for r in records]


class ImageRecordDataset(TorchDataset[Tuple[torch.Tensor, torch.Tensor]]):
    """PyTorch Dataset decoding and transforming labeled images on access."""

    def __init__(
        self,
        records: Sequence[ImageRecord],
        label_mapping: Dict[str, int],
        pipeline: ImageTransformPipeline,
    ):
        self.records = list(records)
        self.label_ids = encode_labels(self.records, label_mapping)
        self.pipeline = pipeline

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, idx: int) -> Tuple[torch.Tensor, torch.Tensor]:
        pixels = self.pipeline(self.records[idx].image_path)
        # CrossEntropyLoss expects long
        label_tensor = torch.tensor(self.label_ids[idx], dtype=torch.long)
        return pixels, label_tensor

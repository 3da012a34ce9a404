from typing import Dict, Iterable, List, Tuple

from sklearn.model_selection import train_test_split

from image_classification.lib import ImageRecord, setup_logger

logger = setup_logger(__name__)

DEFAULT_TEST_FRACTION = 0.2
DEFAULT_SEED = 1


def train_test_split_records(
    records: Iterable[ImageRecord],
    test_fraction: float = DEFAULT_TEST_FRACTION,
    seed: int = DEFAULT_SEED,
    stratify: bool = False,
) -> Tuple[List[ImageRecord], List[ImageRecord]]:
    """
    Split records into a train and a test set.

    Records are sorted by path before the seeded shuffle, so the result does
    not depend on the order the filesystem walk produced them in.

    Args:
        records: Records to split
        test_fraction: Ratio of the test split, strictly between 0 and 1
        seed: Random seed for reproducibility
        stratify: Keep the label distribution equal in both splits

    Returns:
        Tuple of (train_records, test_records)
    """
    if not 0 < test_fraction < 1:
        raise ValueError(f"test_fraction must be between 0 and 1, got {test_fraction}")

    items = sorted(records, key=lambda record: record.image_path)
    if len(items) < 2:
        raise ValueError(f"Need at least 2 records to split, got {len(items)}")

    stratify_labels = [item.label for item in items] if stratify else None

    idx_train, idx_test = train_test_split(
        range(len(items)),
        test_size=test_fraction,
        random_state=seed,
        stratify=stratify_labels,
    )

    train_items = [items[i] for i in idx_train]
    test_items = [items[i] for i in idx_test]

    logger.info(
        f"Split {len(items)} records into {len(train_items)} train and {len(test_items)} test records"
    )
    return train_items, test_items


def label_distribution(records: Iterable[ImageRecord]) -> Dict[str, int]:
    """Count records per label, labels in sorted order."""
    distribution: Dict[str, int] = {}
    for record in records:
        distribution[record.label] = distribution.get(record.label, 0) + 1
    return dict(sorted(distribution.items()))

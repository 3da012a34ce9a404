import random

import pytest

from image_classification.dataset_loader import label_distribution, train_test_split_records
from image_classification.lib import ImageRecord


def _records(count_per_label: int, labels=("rose", "tulip")):
    return [
        ImageRecord(image_path=f"/images/{label}/{label}{i:02d}.jpg", label=label)
        for label in labels
        for i in range(count_per_label)
    ]


def test_split_sizes() -> None:
    train, test = train_test_split_records(_records(5), test_fraction=0.2, seed=1)

    assert len(train) == 8
    assert len(test) == 2
    assert set(train).isdisjoint(test)


def test_split_ignores_input_order() -> None:
    records = _records(10)
    shuffled = list(records)
    random.Random(7).shuffle(shuffled)

    assert train_test_split_records(records, seed=3) == train_test_split_records(
        shuffled, seed=3
    )


def test_split_depends_on_seed() -> None:
    records = _records(20)

    _, test_a = train_test_split_records(records, seed=1)
    _, test_b = train_test_split_records(records, seed=2)

    assert test_a != test_b


def test_stratified_split_keeps_label_balance() -> None:
    _, test = train_test_split_records(_records(5), test_fraction=0.4, seed=1, stratify=True)

    assert label_distribution(test) == {"rose": 2, "tulip": 2}


@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.5, 1.5])
def test_split_rejects_bad_fraction(fraction: float) -> None:
    with pytest.raises(ValueError):
        train_test_split_records(_records(5), test_fraction=fraction)


def test_split_needs_two_records() -> None:
    with pytest.raises(ValueError):
        train_test_split_records(_records(1, labels=("rose",)))


def test_label_distribution() -> None:
    records = _records(3, labels=("tulip",)) + _records(1, labels=("daisy",))

    assert label_distribution(records) == {"daisy": 1, "tulip": 3}

import json
from typing import List, Optional, Tuple

import typer
from pydantic import ValidationError

from image_classification.dataset_loader import load_images, train_test_split_records
from image_classification.lib import (
    DirectoryNotFound,
    ImageRecord,
    set_verbosity,
    setup_logger,
)

from .config import TrainerType, TrainingConfig, load_config_file
from .maximum_entropy import MaximumEntropyTrainer
from .trainer import BaseTrainer
from .transfer_learning import TransferLearningTrainer

app = typer.Typer(help="Image Classifier Training Component")

logger = setup_logger(__name__)


def load_train_test_records(
    config: TrainingConfig,
    train_dir: str,
    test_dir: Optional[str] = None,
    use_parent_folder_as_label: bool = True,
) -> Tuple[List[ImageRecord], List[ImageRecord]]:
    """
    Records for training and testing.

    With a separate test directory both directories are loaded as they are;
    otherwise the training directory is split with the configured seed.
    """
    train_records = load_images(train_dir, use_parent_folder_as_label)
    if test_dir:
        test_records = list(load_images(test_dir, use_parent_folder_as_label))
        return list(train_records), test_records

    return train_test_split_records(
        train_records,
        test_fraction=config.split.test_fraction,
        seed=config.seed,
        stratify=config.split.stratify,
    )


def build_trainer(
    config: TrainingConfig,
    train_records: List[ImageRecord],
    test_records: List[ImageRecord],
    output_dir: str,
) -> BaseTrainer:
    if config.trainer == TrainerType.TRANSFER_LEARNING:
        return TransferLearningTrainer(
            config, train_records, test_records, output_dir=output_dir
        )
    return MaximumEntropyTrainer(
        config, train_records, test_records, output_dir=output_dir
    )


@app.command()
def train(
    train_dir: str = typer.Argument(..., help="Path to the training image directory"),
    config_file: str = typer.Argument(
        ..., help="Path to the training configuration file (YAML/JSON)"
    ),
    test_dir: Optional[str] = typer.Option(
        None, help="Separate test image directory; split the training directory if omitted"
    ),
    output_dir: str = typer.Option(
        "./tmp/output/models", help="Path to save the trained models"
    ),
    prefix_labels: bool = typer.Option(
        False,
        "--prefix-labels",
        help="Label images by file name prefix instead of parent folder",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Train an image classifier on the images below a directory.
    """
    set_verbosity(verbose)
    try:
        try:
            config = load_config_file(config_file)
        except ValidationError as e:
            logger.critical(e, exc_info=True)
            raise typer.Exit(code=1)

        try:
            train_records, test_records = load_train_test_records(
                config, train_dir, test_dir, not prefix_labels
            )
        except DirectoryNotFound as e:
            logger.critical(e)
            raise typer.Exit(code=1)

        trainer = build_trainer(config, train_records, test_records, output_dir)

        typer.echo(f"Training {config.trainer.value} model...")
        trainer.train()
        logger.info("Training completed successfully.")

        logger.info("Evaluating model...")
        metrics = trainer.evaluate()
        if metrics is not None:
            logger.info("Test results:")
            logger.info(json.dumps(metrics.summary(), indent=4))
            logger.info("Evaluation completed successfully.")

        typer.echo(f"Model saved to {trainer.output_dir}")

    except typer.Exit:
        raise
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

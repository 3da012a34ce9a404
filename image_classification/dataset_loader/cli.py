from pathlib import Path
from typing import Optional

import typer

from image_classification.lib import (
    DirectoryNotFound,
    pandas,
    set_verbosity,
    setup_logger,
)

from .loader import load_images, records_to_frame
from .split import (
    DEFAULT_SEED,
    DEFAULT_TEST_FRACTION,
    label_distribution,
    train_test_split_records,
)

app = typer.Typer(help="Dataset Loader Component")

logger = setup_logger(__name__)


@app.command("list")
def list_images(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    prefix_labels: bool = typer.Option(
        False,
        "--prefix-labels",
        help="Label images by file name prefix instead of parent folder",
    ),
    output: Optional[str] = typer.Option(
        None, help="Write the ImagePath/Label records to this CSV file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    List the labeled images found below a directory.
    """
    set_verbosity(verbose)
    try:
        records = list(
            load_images(image_dir, use_parent_folder_as_label=not prefix_labels)
        )
    except DirectoryNotFound as e:
        logger.critical(e)
        raise typer.Exit(code=1)

    typer.echo(f"Found {len(records)} images in {image_dir}")
    for label, count in label_distribution(records).items():
        typer.echo(f"  - {label}: {count} images")

    if output:
        pandas.write_csv(records_to_frame(records), output)
        typer.echo(f"Records saved to {output}")


@app.command("split")
def split_images(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    output_dir: str = typer.Argument(
        ..., help="Directory to write train.csv and test.csv to"
    ),
    prefix_labels: bool = typer.Option(
        False,
        "--prefix-labels",
        help="Label images by file name prefix instead of parent folder",
    ),
    test_fraction: float = typer.Option(
        DEFAULT_TEST_FRACTION, help="Ratio of test data"
    ),
    seed: int = typer.Option(DEFAULT_SEED, help="Random seed for reproducibility"),
    stratify: bool = typer.Option(False, help="Stratify the split by label"),
):
    """
    Split the labeled images below a directory into seeded train/test CSV files.
    """
    try:
        records = load_images(image_dir, use_parent_folder_as_label=not prefix_labels)
        train_records, test_records = train_test_split_records(
            records, test_fraction=test_fraction, seed=seed, stratify=stratify
        )
    except (DirectoryNotFound, ValueError) as e:
        logger.critical(e)
        raise typer.Exit(code=1)

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    pandas.write_csv(records_to_frame(train_records), output_path / "train.csv")
    pandas.write_csv(records_to_frame(test_records), output_path / "test.csv")

    typer.echo(f"Records successfully split and saved to {output_dir}")
    typer.echo(f"  - Train set: {len(train_records)} images")
    typer.echo(f"  - Test set: {len(test_records)} images")


if __name__ == "__main__":
    app()

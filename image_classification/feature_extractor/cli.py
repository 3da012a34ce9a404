from pathlib import Path

import numpy as np
import typer

from image_classification.dataset_loader import load_images
from image_classification.lib import set_verbosity, setup_logger

from .extractor import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MODEL_NAME,
    PretrainedFeatureExtractor,
    extract_record_features,
)
from .transforms import DEFAULT_IMAGE_HEIGHT, DEFAULT_IMAGE_WIDTH, ImageTransformPipeline

app = typer.Typer(help="Dataset Feature Extraction Component")

logger = setup_logger(__name__)


@app.command()
def extract(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    output_file: str = typer.Argument(..., help="Path of the .npz file to write"),
    model_name: str = typer.Option(DEFAULT_MODEL_NAME, help="Pretrained backbone"),
    width: int = typer.Option(DEFAULT_IMAGE_WIDTH, help="Resize width"),
    height: int = typer.Option(DEFAULT_IMAGE_HEIGHT, help="Resize height"),
    batch_size: int = typer.Option(DEFAULT_BATCH_SIZE, help="Images per forward pass"),
    prefix_labels: bool = typer.Option(
        False,
        "--prefix-labels",
        help="Label images by file name prefix instead of parent folder",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Extract features from images using a pretrained backbone.
    """
    set_verbosity(verbose)
    try:
        records = sorted(
            load_images(image_dir, use_parent_folder_as_label=not prefix_labels),
            key=lambda record: record.image_path,
        )

        extractor = PretrainedFeatureExtractor(model_name)
        offset, scale = extractor.pixel_normalisation()
        pipeline = ImageTransformPipeline(width, height, offset=offset, scale=scale)

        features = extract_record_features(extractor, pipeline, records, batch_size)

        output_path = Path(output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        np.savez(
            output_path,
            features=features,
            labels=np.array([record.label for record in records]),
            image_paths=np.array([record.image_path for record in records]),
        )

        typer.echo(
            f"Features of {len(records)} images successfully extracted and saved to {output_file}"
        )

    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

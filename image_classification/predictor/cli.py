import typer

from image_classification.lib import DirectoryNotFound, set_verbosity, setup_logger

from .scorer import ModelScorer

app = typer.Typer(help="Image Classifier Prediction Component")

logger = setup_logger(__name__)


@app.command()
def predict(
    images_dir: str = typer.Argument(..., help="Path to the images to classify"),
    model_path: str = typer.Argument(
        ..., help="Path to a trained model (.joblib or .pth)"
    ),
    prefix_labels: bool = typer.Option(
        False,
        "--prefix-labels",
        help="Label images by file name prefix instead of parent folder",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """
    Classify the first image of a folder, then every image in it.
    """
    set_verbosity(verbose)
    try:
        scorer = ModelScorer(
            images_dir, model_path, use_parent_folder_as_label=not prefix_labels
        )
        scorer.classify_images()
    except DirectoryNotFound as e:
        logger.critical(e)
        raise typer.Exit(code=1)
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

import time
from pathlib import Path
from typing import List, Optional, Union

import typer

from image_classification.classifier_trainer.classifier import (
    TrainedClassifier,
    load_classifier,
)
from image_classification.dataset_loader import ImageDirectory
from image_classification.lib import ImagePrediction, setup_logger

logger = setup_logger(__name__)


def format_prediction(prediction: ImagePrediction) -> str:
    scores = ",".join(f"{score:.4f}" for score in prediction.score)
    return (
        f"ImageFile : [{Path(prediction.image_path).name}], "
        f"Scores : [{scores}], "
        f"Predicted Label : {prediction.predicted_label}"
    )


class ModelScorer:
    """Scores the images of a folder with a trained classifier."""

    def __init__(
        self,
        images_folder: Union[str, Path],
        model_location: Union[str, Path],
        use_parent_folder_as_label: bool = True,
        classifier: Optional[TrainedClassifier] = None,
    ):
        self.images = ImageDirectory(images_folder, use_parent_folder_as_label)
        self.model_location = Path(model_location)
        self._classifier = classifier

    @property
    def classifier(self) -> TrainedClassifier:
        if self._classifier is None:
            self._classifier = load_classifier(self.model_location)
            logger.info(f"Model loaded: {self.model_location}")
        return self._classifier

    def classify_first_image(self) -> ImagePrediction:
        """Predict the first image of the folder, reporting how long it took."""
        classifier = self.classifier

        # Model loading is not part of the measured prediction
        watch_e2e = time.perf_counter()

        image_to_predict = next(iter(self.images), None)
        if image_to_predict is None:
            raise ValueError(f"No images to classify in {self.images.root_directory}")

        watch_predict = time.perf_counter()
        prediction = classifier.predict(image_to_predict.image_path)
        elapsed_predict_ms = (time.perf_counter() - watch_predict) * 1000

        typer.echo(f"Only .predict() took: {elapsed_predict_ms:.0f} milliseconds")
        typer.echo(format_prediction(prediction))

        elapsed_e2e_ms = (time.perf_counter() - watch_e2e) * 1000
        typer.echo(f"Prediction execution took: {elapsed_e2e_ms:.0f} milliseconds")

        return prediction

    def classify_images(self) -> List[ImagePrediction]:
        """Predict the first image on its own, then every image of the folder."""
        self.classify_first_image()

        typer.echo("Predicting several images...")
        predictions: List[ImagePrediction] = []
        for record in self.images:
            prediction = self.classifier.predict(record.image_path)
            typer.echo(format_prediction(prediction))
            predictions.append(prediction)

        logger.info(f"Classified {len(predictions)} images")
        return predictions

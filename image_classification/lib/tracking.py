import json
from typing import Any, Dict, Optional

from pydantic import BaseModel

from image_classification.lib.logger import setup_logger

logger = setup_logger(__name__)


class ExperimentTracker:
    """
    Thin wrapper over an Aim run.

    When tracking is disabled every call is a no-op, so trainers can track
    unconditionally. ``aim`` is only imported once a run is actually opened.
    """

    def __init__(self, experiment: str, enabled: bool = False):
        self.experiment = experiment
        self.enabled = enabled
        self._run: Optional[Any] = None

        if enabled:
            import aim

            self._run = aim.Run(experiment=experiment)
            logger.info(f"Aim run initialized. Check UI or logs at: {self._run.repo.path}")

    def log_config(self, config: BaseModel) -> None:
        if self._run is None:
            return
        # Aim does not accept pydantic models directly
        self._run["hparams"] = json.loads(config.model_dump_json())

    def set(self, key: str, value: Dict[str, Any]) -> None:
        if self._run is None:
            return
        self._run[key] = value

    def track(
        self,
        value: float,
        name: str,
        epoch: Optional[int] = None,
        subset: Optional[str] = None,
    ) -> None:
        if self._run is None:
            return
        context = {"subset": subset} if subset else None
        self._run.track(value, name=name, epoch=epoch, context=context)

    def track_image(self, path: str, name: str) -> None:
        if self._run is None:
            return
        import aim

        self._run.track(aim.Image(path), name=name)

    def close(self) -> None:
        if self._run is None:
            return
        self._run.close()
        self._run = None

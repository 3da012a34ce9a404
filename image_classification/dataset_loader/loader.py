import os
from pathlib import Path
from typing import Callable, Iterable, Iterator, Union

import pandas as pd

from image_classification.lib import (
    DirectoryNotFound,
    ImageFormat,
    ImageRecord,
    pandas as pandas_lib,
    setup_logger,
)

logger = setup_logger(__name__)

IMAGE_PATH_COLUMN = "ImagePath"
LABEL_COLUMN = "Label"


def _extension(file_name: str) -> str:
    """Everything from the last dot on, or an empty string."""
    index = file_name.rfind(".")
    return file_name[index:] if index >= 0 else ""


def label_from_parent_folder(path: Union[str, Path]) -> str:
    """Label an image with the name of its immediate containing directory."""
    return Path(path).parent.name


def label_from_filename_prefix(path: Union[str, Path]) -> str:
    """
    Label an image with the leading run of letters of its file name.

    The name is cut at the first non-letter character. When the part before
    the extension is letters only, nothing is cut and the whole file name,
    extension included, becomes the label: ``rose12.jpg`` gives ``rose`` but
    ``ABCtag.png`` gives ``ABCtag.png``. Callers relying on prefix labels
    should name their files with a non-letter after the category. A dot-file
    such as ``.png`` has no letters before its first non-letter and gets an
    empty label.
    """
    file_name = Path(path).name
    stem_length = len(file_name) - len(_extension(file_name))
    if stem_length == 0:
        # Dot-files such as ".png" stop at the leading dot
        return ""

    for index, character in enumerate(file_name[:stem_length]):
        if not character.isalpha():
            return file_name[:index]

    return file_name


def _raise_walk_error(error: OSError) -> None:
    raise error


def _walk_images(
    root: Path, labeler: Callable[[Union[str, Path]], str]
) -> Iterator[ImageRecord]:
    accepted = ImageFormat.extensions()

    for directory, _, file_names in os.walk(root, onerror=_raise_walk_error):
        for file_name in file_names:
            if _extension(file_name) not in accepted:
                continue

            image_path = os.path.join(directory, file_name)
            yield ImageRecord(image_path=image_path, label=labeler(image_path))


def _check_directory(root: Path) -> None:
    """Raise DirectoryNotFound unless root is a directory that can be listed."""
    if not root.is_dir():
        raise DirectoryNotFound(root)
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise DirectoryNotFound(root) from e


def load_images(
    root_directory: Union[str, Path], use_parent_folder_as_label: bool = True
) -> Iterator[ImageRecord]:
    """
    Lazily enumerate the labeled images below a directory.

    Every file in every subdirectory is visited; only ``.jpg`` and ``.png``
    files (exact, case-sensitive extension) are yielded, anything else is
    skipped silently. The order is the order of the filesystem walk, so sort
    or shuffle downstream when a reproducible order is needed.

    Args:
        root_directory: Directory to scan recursively
        use_parent_folder_as_label: Label images with their containing folder
            name, otherwise with the letter prefix of their file name

    Returns:
        A single-use iterator of ImageRecord. Call again for a fresh traversal.

    Raises:
        DirectoryNotFound: if root_directory is missing, not a directory or
            cannot be listed. Raised by this call, before any record is produced.
        OSError: during iteration, if a subdirectory cannot be listed.
    """
    root = Path(root_directory)
    _check_directory(root)

    labeler = (
        label_from_parent_folder
        if use_parent_folder_as_label
        else label_from_filename_prefix
    )
    logger.debug(
        f"Scanning {root} for {ImageFormat.extensions()} files "
        f"({'parent folder' if use_parent_folder_as_label else 'filename prefix'} labels)"
    )

    return _walk_images(root, labeler)


class ImageDirectory:
    """
    A restartable view of the labeled images below a directory.

    Each iteration performs a fresh ``load_images`` traversal, so the
    directory can be enumerated any number of times.
    """

    def __init__(
        self, root_directory: Union[str, Path], use_parent_folder_as_label: bool = True
    ):
        self.root_directory = Path(root_directory)
        self.use_parent_folder_as_label = use_parent_folder_as_label

        _check_directory(self.root_directory)

    def __iter__(self) -> Iterator[ImageRecord]:
        return load_images(self.root_directory, self.use_parent_folder_as_label)

    def __repr__(self) -> str:
        return (
            f"ImageDirectory({str(self.root_directory)!r}, "
            f"use_parent_folder_as_label={self.use_parent_folder_as_label})"
        )


def records_to_frame(records: Iterable[ImageRecord]) -> pd.DataFrame:
    """Tabulate records with the ``ImagePath`` and ``Label`` columns."""
    rows = [record.model_dump(by_alias=True) for record in records]
    return pandas_lib.from_records(rows, columns=[IMAGE_PATH_COLUMN, LABEL_COLUMN])


def frame_to_records(frame: pd.DataFrame) -> Iterator[ImageRecord]:
    """Inverse of ``records_to_frame``."""
    for image_path, label in zip(frame[IMAGE_PATH_COLUMN], frame[LABEL_COLUMN]):
        yield ImageRecord(image_path=str(image_path), label=str(label))

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd


class pandas:
    """
    A wrapper around pandas with type hints.
    """

    @staticmethod
    def read_csv(path: Union[str, Path]) -> pd.DataFrame:
        return pd.read_csv(path)  # type: ignore

    @staticmethod
    def from_records(
        rows: List[Dict[str, Any]], columns: Optional[Sequence[str]] = None
    ) -> pd.DataFrame:
        return pd.DataFrame.from_records(rows, columns=columns)  # type: ignore

    @staticmethod
    def write_csv(frame: pd.DataFrame, path: Union[str, Path]) -> None:
        frame.to_csv(path, index=False)  # type: ignore

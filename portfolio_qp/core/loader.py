"""
Price Data Loader
=================

Loads daily asset prices for the statistics preprocessor from:
- The built-in three-asset example table
- CSV files
- Excel files (.xlsx, read through openpyxl)
- Direct arrays

Files are laid out one row per date and one column per asset, e.g.:

    Date,A,B,C
    2024-01-02,0.02,0.01,0.10
    2024-01-03,0.03,0.01,0.05

An optional leading date column is dropped. Prices are returned transposed,
one row per asset, as a read-only array.
"""

import logging
import numpy as np
import pandas as pd
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from portfolio_qp.core.statistics import names_or_default, validate_prices
from portfolio_qp.exceptions import InsufficientDataError

logger = logging.getLogger(__name__)

SAMPLE_ASSETS = ["A", "B", "C"]

SAMPLE_PRICES = [
    [.02, .03, .02, .05],
    [.01, .01, .05, .01],
    [.1, .05, .04, .02],
]


def sample_prices() -> Tuple[np.ndarray, List[str]]:
    """
    The built-in example: 3 assets x 4 daily prices.

    Returns:
        Tuple of (prices, asset_names)
    """
    return validate_prices(SAMPLE_PRICES, SAMPLE_ASSETS), list(SAMPLE_ASSETS)


class PriceLoader:
    """
    Loads price tables from files or arrays.

    Example:
        >>> loader = PriceLoader()
        >>> prices, names = loader.load("prices.csv")
    """

    EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")

    def load(self, file_path: Union[str, Path], sheet: Union[str, int] = 0
             ) -> Tuple[np.ndarray, List[str]]:
        """
        Load a price file, choosing the reader from the file suffix.

        Args:
            file_path: Path to a CSV or Excel file
            sheet: Sheet name or index for Excel files

        Returns:
            Tuple of (prices, asset_names)
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Price file not found: {path}")

        if path.suffix.lower() in self.EXCEL_SUFFIXES:
            return self.load_excel(path, sheet)
        return self.load_csv(path)

    def load_csv(self, file_path: Union[str, Path], has_header: bool = True
                 ) -> Tuple[np.ndarray, List[str]]:
        """Load prices from a CSV file (dates in rows, assets in columns)."""
        if has_header:
            df = pd.read_csv(file_path)
        else:
            df = pd.read_csv(file_path, header=None)
        logger.info(f"Read {df.shape[0]} rows x {df.shape[1]} columns from {file_path}")
        return self._from_frame(df, has_header)

    def load_excel(self, file_path: Union[str, Path], sheet: Union[str, int] = 0
                   ) -> Tuple[np.ndarray, List[str]]:
        """Load prices from one sheet of an Excel workbook."""
        df = pd.read_excel(file_path, sheet_name=sheet)
        logger.info(f"Read {df.shape[0]} rows x {df.shape[1]} columns from "
                    f"{file_path} [{sheet}]")
        return self._from_frame(df, True)

    def load_direct(
        self,
        prices: Sequence[Sequence[float]],
        asset_names: Optional[Sequence[str]] = None
    ) -> Tuple[np.ndarray, List[str]]:
        """
        Load prices given one row per asset.

        Args:
            prices: One row of daily prices per asset
            asset_names: Optional names (default: Asset_1, Asset_2, ...)

        Returns:
            Tuple of (prices, asset_names)
        """
        table = validate_prices(prices, asset_names)
        return table, names_or_default(table.shape[0], asset_names)

    def _from_frame(self, df: pd.DataFrame, has_header: bool
                    ) -> Tuple[np.ndarray, List[str]]:
        if df.shape[1] == 0:
            raise InsufficientDataError("insufficient data: price file has no columns")

        # Drop a leading date column (named 'date' or not numeric)
        first = df.columns[0]
        if 'date' in str(first).lower() or not pd.api.types.is_numeric_dtype(df[first]):
            df = df.drop(columns=[first])

        for col in df.columns:
            df[col] = pd.to_numeric(df[col], errors='coerce')

        n_rows = len(df)
        df = df.dropna()
        if len(df) < n_rows:
            logger.warning(f"Dropped {n_rows - len(df)} rows with missing prices")

        if has_header:
            asset_names = [str(c).strip() for c in df.columns]
        else:
            asset_names = names_or_default(df.shape[1])

        prices = df.to_numpy(dtype=float).T
        return validate_prices(prices, asset_names), asset_names

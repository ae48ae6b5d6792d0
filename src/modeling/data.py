import logging
import pathlib
import re

import pandas as pd

logger = logging.getLogger(__name__)

# Contrast codings passed bare, e.g. C(diet, Sum)
_CONTRASTS = {"Treatment", "Sum", "Helmert", "Poly", "Diff"}
# An identifier, and whether it is called like a function
_IDENTIFIER = re.compile(r"([A-Za-z_][A-Za-z0-9_.]*)(\s*\()?")


def parse_formula_columns(formula: str) -> list[str]:
    """
    Return the column names referenced by a patsy-style formula.

    Parameters
    ----------
    formula : str
        Formula such as ``"weight ~ height + C(sex) + height:sex"``.

    Returns
    -------
    list of str
        Column names in order of first appearance, without duplicates.

    Raises
    ------
    ValueError
        If the formula has no ``~`` separating outcome and predictors.

    Examples
    --------
    >>> parse_formula_columns("y ~ x + C(group)")
    ['y', 'x', 'group']
    """
    if formula is None or "~" not in formula:
        raise ValueError(f"Formula must contain '~', got {formula!r}")

    # Quoted level names (e.g. Treatment(reference='a')) are not columns
    stripped = re.sub(r"(['\"]).*?\1", "", formula)
    # Keyword arguments inside function calls
    stripped = re.sub(r"\b[A-Za-z_]\w*\s*=", "", stripped)

    columns = []
    for token, call in _IDENTIFIER.findall(stripped):
        # Function calls (C, I, np.log, scale, bs, ...) and contrasts are not columns
        if call or token in _CONTRASTS:
            continue
        if token not in columns:
            columns.append(token)
    return columns


def load_table(path, required_columns=None) -> pd.DataFrame:
    """
    Load a measurement table from CSV.

    Parameters
    ----------
    path : str or pathlib.Path
        CSV file to read.
    required_columns : list of str, optional
        Columns that must be present. Rows with missing values in any of
        these columns are dropped.

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    ValueError
        If required columns are missing or the table is empty after
        dropping incomplete rows.
    """
    path = pathlib.Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Data file not found: {path}")

    df = pd.read_csv(path)
    logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns from {path.name}")

    if not required_columns:
        return df

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns in {path.name}: {missing}")

    n_before = len(df)
    df = df.dropna(subset=list(required_columns)).reset_index(drop=True)
    n_dropped = n_before - len(df)
    if n_dropped > 0:
        logger.warning(f"Dropped {n_dropped} row(s) with missing values (out of {n_before} total)")

    if df.empty:
        raise ValueError(f"No complete rows left in {path.name}")

    return df

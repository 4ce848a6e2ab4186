"""Pairwise Pearson tests between case rates and religion measures."""

import logging
from typing import Dict, Iterable, List, NamedTuple, Tuple

import numpy as np
import pandas as pd
from scipy import stats

__all__ = [
    "PearsonResult",
    "cohort_correlations",
    "correlation_matrix",
    "pearson",
    "pearson_table",
]

ALPHA = 0.05
MIN_OBSERVATIONS = 3

logger = logging.getLogger(__name__)


class PearsonResult(NamedTuple):
    r: float
    p: float
    n: int


def pearson(x: pd.Series, y: pd.Series) -> PearsonResult:
    """Pearson's r over the pairwise complete observations of x and y.

    r and p are NaN when fewer than MIN_OBSERVATIONS pairs remain or either
    side is constant.
    """
    pairs = pd.concat(
        [pd.to_numeric(x, errors="coerce"), pd.to_numeric(y, errors="coerce")],
        axis=1,
        keys=["x", "y"],
    ).replace([np.inf, -np.inf], np.nan).dropna()
    n = len(pairs)

    if n < MIN_OBSERVATIONS:
        return PearsonResult(np.nan, np.nan, n)
    if pairs["x"].nunique() < 2 or pairs["y"].nunique() < 2:
        return PearsonResult(np.nan, np.nan, n)

    r, p = stats.pearsonr(pairs["x"].to_numpy(float), pairs["y"].to_numpy(float))
    return PearsonResult(float(r), float(p), n)


def pearson_table(
    df: pd.DataFrame, x_cols: Iterable[str], y_col: str, alpha: float = ALPHA
) -> pd.DataFrame:
    """Test each of ``x_cols`` against ``y_col``.

    Returns:
        (DataFrame) x | y | r | p | n | significant
    """
    rows: List[Dict] = []
    for x in x_cols:
        res = pearson(df[x], df[y_col])
        rows.append(
            {
                "x": x,
                "y": y_col,
                "r": res.r,
                "p": res.p,
                "n": res.n,
                "significant": bool(res.p < alpha) if not np.isnan(res.p) else False,
            }
        )
    return pd.DataFrame(rows, columns=["x", "y", "r", "p", "n", "significant"])


def correlation_matrix(
    df: pd.DataFrame, columns: List[str]
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """r and p matrices for every pair of ``columns``."""
    r = pd.DataFrame(np.nan, index=columns, columns=columns)
    p = pd.DataFrame(np.nan, index=columns, columns=columns)
    for i, a in enumerate(columns):
        for b in columns[i:]:
            res = pearson(df[a], df[b])
            r.loc[a, b] = r.loc[b, a] = res.r
            p.loc[a, b] = p.loc[b, a] = res.p
    return r, p


def cohort_correlations(
    cohorts: Dict[str, pd.DataFrame],
    x_cols: Iterable[str],
    y_col: str,
    alpha: float = ALPHA,
) -> pd.DataFrame:
    """Run ``pearson_table`` per cohort and stack the results."""
    x_cols = list(x_cols)
    tables = []
    for name, cohort in cohorts.items():
        logger.info(f"Correlating {y_col} in cohort {name} ({len(cohort)} counties)")
        table = pearson_table(cohort, x_cols, y_col, alpha=alpha)
        table.insert(0, "cohort", name)
        tables.append(table)

    if not tables:
        return pd.DataFrame(columns=["cohort", "x", "y", "r", "p", "n", "significant"])
    return pd.concat(tables, ignore_index=True)

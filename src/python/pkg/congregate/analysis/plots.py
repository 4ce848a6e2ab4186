"""Static scatterplots and heatmaps (matplotlib/seaborn) and county maps (plotly)."""

import logging
from pathlib import Path
from typing import Dict, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import plotly.express as px  # noqa: E402
import seaborn as sns  # noqa: E402

from congregate.analysis.correlation import pearson  # noqa: E402

logger = logging.getLogger(__name__)


def _label(column: str) -> str:
    return column.replace("_", " ").title()


def scatterplot(
    df: pd.DataFrame, x: str, y: str, path: Path, hue: Optional[str] = None
) -> Path:
    """Scatter ``y`` against ``x`` with a fitted line, r and p in the title."""
    path = Path(path)
    path.parent.mkdir(exist_ok=True, parents=True)
    res = pearson(df[x], df[y])
    columns = [x, y] if hue is None else [x, y, hue]
    data = df[columns].dropna(subset=[x, y])

    fig, ax = plt.subplots(figsize=(10, 6))
    if len(data) < 2:
        ax.text(0.5, 0.5, "not enough counties", ha="center", va="center")
    elif hue is None:
        sns.regplot(
            x=x,
            y=y,
            data=data,
            ax=ax,
            scatter_kws={"alpha": 0.5, "s": 12},
            line_kws={"color": "red"},
        )
    else:
        sns.scatterplot(x=x, y=y, hue=hue, data=data, ax=ax, alpha=0.6, s=12)

    ax.set_title(f"{_label(y)} vs {_label(x)} (r = {res.r:.2f}, p = {res.p:.3g}, n = {res.n})")
    ax.set_xlabel(_label(x))
    ax.set_ylabel(_label(y))
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Saved scatterplot {path}")
    return path


def correlation_heatmap(r_matrix: pd.DataFrame, path: Path, title: str = "") -> Path:
    path = Path(path)
    path.parent.mkdir(exist_ok=True, parents=True)

    fig, ax = plt.subplots(figsize=(12, 9))
    # Upper triangle mirrors the lower one
    mask = np.triu(np.ones_like(r_matrix, dtype=bool), k=1)
    sns.heatmap(
        r_matrix.astype(float),
        annot=True,
        fmt=".2f",
        cmap="coolwarm",
        center=0,
        vmin=-1,
        vmax=1,
        mask=mask,
        linewidths=0.5,
        ax=ax,
    )
    ax.set_title(title)
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Saved heatmap {path}")
    return path


def choropleth(
    df: pd.DataFrame,
    column: str,
    geojson: Dict,
    path: Path,
    hover_name: str = "county",
    color_scale: str = "Blues",
) -> Path:
    """County map of ``column`` written as standalone HTML.

    The colour range is clipped to the 2nd-98th percentile so a few extreme
    counties don't wash out the rest of the map.
    """
    path = Path(path)
    path.parent.mkdir(exist_ok=True, parents=True)

    values = pd.to_numeric(df[column], errors="coerce").dropna()
    if values.empty:
        raise ValueError(f"{column} has no values to map")
    range_color = (float(values.quantile(0.02)), float(values.quantile(0.98)))

    fig = px.choropleth(
        df,
        geojson=geojson,
        locations="fips",
        color=column,
        color_continuous_scale=color_scale,
        range_color=range_color,
        scope="usa",
        hover_name=hover_name if hover_name in df.columns else None,
        labels={"fips": "FIPS code ", column: f"{_label(column)} "},
    )
    fig.update_layout(margin={"r": 0, "t": 30, "l": 0, "b": 0}, title=_label(column))
    fig.write_html(str(path), include_plotlyjs=True)

    logger.info(f"Saved choropleth {path}")
    return path

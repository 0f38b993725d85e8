from __future__ import annotations
import stylesheet
import os
from typing import Callable, Mapping, Optional, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib import rcParams as rc


_MARKERS = stylesheet.Markers
_MARKERS_SCALES = stylesheet.MarkerScales

# A reference is either a constant (horizontal line) or a curve y = f(x).
Reference = Union[float, Callable[[np.ndarray], np.ndarray]]


def ensure_dir_for(path: str) -> str:
    directory = os.path.dirname(os.path.abspath(path))
    if directory:
        os.makedirs(directory, exist_ok=True)
    return path


def load_results(csv_path: str) -> pd.DataFrame:
    if not os.path.isfile(csv_path):
        raise FileNotFoundError(f"CSV not found: {csv_path}")
    df = pd.read_csv(csv_path)
    missing = [col for col in ("n", "dtype") if col not in df.columns]
    if missing:
        raise ValueError(f"Missing required column(s) {missing} in CSV")
    return df


def save_figure(fig: plt.Figure, path: str) -> None:
    ensure_dir_for(path)
    fig.savefig(path)
    print(f"Saved plot to {path}")


def _draw_references(ax: plt.Axes, xs: np.ndarray, references: Mapping[str, Reference]) -> None:
    for label, ref in references.items():
        if callable(ref):
            ax.plot(xs, ref(xs), color="gray", linestyle="--", alpha=0.7, label=label)
        else:
            ax.axhline(float(ref), color="gray", linestyle="--", alpha=0.7, label=label)


def plot_metric(
    df: pd.DataFrame,
    metric: str,
    *,
    x_field: str,
    group_by: str,
    metric_std: Optional[str] = None,
    label_fmt: str = "{group}",
    xlabel: str = "X",
    ylabel: Optional[str] = None,
    title: Optional[str] = None,
    logy: bool = False,
    references: Optional[Mapping[str, Reference]] = None,
    ax: Optional[plt.Axes] = None,
) -> Tuple[plt.Figure, plt.Axes]:
    """Plot metric against x_field, one line per group_by value.

    With logy, the +-std band is clipped to positive values and non-positive
    means are dropped, since log axes cannot show them.
    """
    if df.empty:
        raise ValueError("No data to plot")
    if metric not in df.columns:
        raise ValueError(f"Missing metric column '{metric}'")

    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    for idx, (group_value, g) in enumerate(df.groupby(group_by)):
        g_sorted = g.sort_values(x_field)
        if logy:
            g_sorted = g_sorted[g_sorted[metric] > 0]
            if g_sorted.empty:
                continue
        x = g_sorted[x_field].to_numpy()
        y = g_sorted[metric].to_numpy(dtype=float)
        ax.plot(
            x,
            y,
            marker=_MARKERS[idx % len(_MARKERS)],
            markersize=_MARKERS_SCALES[idx % len(_MARKERS_SCALES)]*rc["lines.markersize"],
            linestyle=":",
            label=label_fmt.format(group=group_value),
        )
        if metric_std and metric_std in g_sorted:
            std = g_sorted[metric_std].to_numpy(dtype=float)
            lower = y - std
            if logy:
                lower = np.maximum(lower, y * 1e-3)
            ax.fill_between(x, lower, y + std, alpha=0.15)

    if references:
        xs = np.sort(df[x_field].unique())
        _draw_references(ax, xs, references)

    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel or metric)
    ax.set_xticks(np.sort(df[x_field].unique()))
    if logy:
        ax.set_yscale("log")
    if title:
        ax.set_title(title)
    ax.legend()
    ax.grid(True)
    return fig, ax

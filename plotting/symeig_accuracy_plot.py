from __future__ import annotations

import argparse
import os
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from bench_common import load_results, plot_metric, save_figure
from symeig.accuracy import summarize_sweep


METRIC_INFO = {
    "rel_err": {
        "ylabel": "|Q^T A Q - D|_F / |A|_F",
        "title": "Reconstruction error",
        "logy": True,
    },
    "ortho_err": {
        "ylabel": "|Q^T Q - I|_F",
        "title": "Orthogonality",
        "logy": True,
    },
    "eig_err": {
        "ylabel": "max eigenvalue error / |A|",
        "title": "Eigenvalue error vs LAPACK",
        "logy": True,
    },
    "iterations": {
        "ylabel": "QR iterations",
        "title": "QR iterations to convergence",
        "logy": False,
    },
}


def _default_csv_path() -> str:
    here = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(here, "..", "output", "accuracy", "symeig_accuracy.csv")


def _default_plot_path(metric: str, output_dir: Optional[str] = None) -> str:
    if output_dir is None:
        here = os.path.dirname(os.path.abspath(__file__))
        output_dir = os.path.join(here, "..", "output", "plots")
    return os.path.join(output_dir, f"symeig_{metric}.png")


def summarize_by_dtype(df: pd.DataFrame) -> pd.DataFrame:
    """Per-(dtype, n) means and stds of the sweep metrics."""
    if df.empty:
        raise ValueError("No data to plot")
    parts = []
    for dtype_name, g in df.groupby("dtype"):
        summary = summarize_sweep(g)
        summary["dtype"] = dtype_name
        parts.append(summary)
    return pd.concat(parts, ignore_index=True)


def plot_accuracy_metric(summary: pd.DataFrame, metric: str, savepath: Optional[str] = None) -> None:
    info = METRIC_INFO[metric]
    references = {}
    if metric == "iterations":
        references["2N"] = lambda ns: 2 * ns
    elif metric == "rel_err":
        for dtype_name in summary["dtype"].unique():
            references[f"eps({dtype_name})"] = float(np.finfo(np.dtype(dtype_name)).eps)

    fig, ax = plot_metric(
        summary,
        metric,
        x_field="n",
        group_by="dtype",
        metric_std=f"{metric}_std",
        label_fmt="{group}",
        xlabel="Matrix Size (N)",
        ylabel=info["ylabel"],
        title=info["title"],
        logy=info["logy"],
        references=references,
    )
    save_figure(fig, savepath or _default_plot_path(metric))
    plt.close(fig)


def plot_all(df: pd.DataFrame, output_dir: Optional[str] = None) -> None:
    summary = summarize_by_dtype(df)
    for metric in METRIC_INFO:
        plot_accuracy_metric(summary, metric, savepath=_default_plot_path(metric, output_dir))


def main() -> None:
    parser = argparse.ArgumentParser(description="Plot symmetric eigensolver accuracy sweep results")
    parser.add_argument("--csv", default=_default_csv_path(), help="CSV produced by scripts/run_symeig_accuracy.py")
    parser.add_argument("--output-dir", default=None, help="directory for the plots (default: output/plots)")
    parser.add_argument(
        "--metric",
        choices=sorted(METRIC_INFO),
        default=None,
        help="plot a single metric (default: all)",
    )
    args = parser.parse_args()

    df = load_results(args.csv)
    if args.metric is None:
        plot_all(df, args.output_dir)
    else:
        summary = summarize_by_dtype(df)
        plot_accuracy_metric(summary, args.metric, savepath=_default_plot_path(args.metric, args.output_dir))


if __name__ == "__main__":
    main()

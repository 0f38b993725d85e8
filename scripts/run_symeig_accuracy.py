#!/usr/bin/env python3

import argparse
import logging
import os
import sys
from datetime import datetime

import numpy as np
import pandas as pd

from symeig.accuracy import run_accuracy_sweep, summarize_sweep
from symeig.permutation import SortOrder

# The plotting helpers live next to the other plot scripts.
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "plotting"))


_SORT_CHOICES = {"desc": SortOrder.DESCENDING, "none": SortOrder.NONE, "asc": SortOrder.ASCENDING}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Run symmetric eigensolver accuracy sweeps and generate plots')
    parser.add_argument('--sizes', '-s', type=str, default='2,4,8,16,32',
                        help='Comma-separated matrix sizes (default: 2,4,8,16,32)')
    parser.add_argument('--trials', '-t', type=int, default=4,
                        help='Random matrices per size (default: 4)')
    parser.add_argument('--seed', type=int, default=0,
                        help='Seed for the random matrices (default: 0)')
    parser.add_argument('--max-iterations', '-k', type=int, default=None,
                        help='QR iteration budget per solve (default: 30*N)')
    parser.add_argument('--dtype', type=str, default='float64,float32',
                        help='Comma-separated dtypes (default: float64,float32)')
    parser.add_argument('--sort', choices=sorted(_SORT_CHOICES), default='asc',
                        help='Eigenvalue ordering (default: asc)')
    parser.add_argument('--output', '-o', type=str, default='',
                        help='CSV output file path (default: symeig_accuracy_YYYY-MM-DD_HH-MM-SS.csv)')
    parser.add_argument('--no-plot', action='store_true',
                        help='Skip generating plots')
    parser.add_argument('--output-dir', type=str, default='plots',
                        help='Directory to save plots (default: plots)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging from the solver')
    return parser.parse_args(argv)


def _parse_int_list(value):
    return [int(tok) for tok in value.split(',') if tok.strip()]


def run_sweep(args):
    if not args.output:
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        args.output = f"symeig_accuracy_{timestamp}.csv"

    output_dir = os.path.dirname(os.path.abspath(args.output))
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    sizes = _parse_int_list(args.sizes)
    frames = []
    for dtype_name in [tok.strip() for tok in args.dtype.split(',') if tok.strip()]:
        print(f"Running sweep: dtype={dtype_name} sizes={sizes} trials={args.trials}")
        frames.append(
            run_accuracy_sweep(
                sizes,
                trials=args.trials,
                seed=args.seed,
                max_iterations=args.max_iterations,
                dtype=np.dtype(dtype_name),
                sort=_SORT_CHOICES[args.sort],
            )
        )

    df = pd.concat(frames, ignore_index=True)
    df.to_csv(args.output, index=False)
    print(f"Sweep completed. Results saved to {args.output}")

    not_converged = int((~df["converged"]).sum())
    if not_converged:
        print(f"Warning: {not_converged} solves did not converge")
    for dtype_name, g in df.groupby("dtype"):
        print(f"\n[{dtype_name}]")
        print(summarize_sweep(g).to_string(index=False))
    return df


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    df = run_sweep(args)

    if not args.no_plot:
        from symeig_accuracy_plot import plot_all

        os.makedirs(args.output_dir, exist_ok=True)
        plot_all(df, args.output_dir)
        print(f"All plots saved to: {args.output_dir}")


if __name__ == '__main__':
    main()

"""Plot measured aggregate speedup against Amdahl's Law curves.

Reads scaling.csv (and scaling_fitted_p.txt when present, from the same
directory), draws the theoretical curves for a few parallel fractions and
overlays the measurements plus the best-fit curve.
"""

import argparse
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend (for headless environments)
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from mcarea.scaling import amdahl


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("csv", nargs="?", default="scaling.csv")
    ap.add_argument("--out", default="scaling.png")
    args = ap.parse_args()

    csv_path = Path(args.csv)
    try:
        measured_df = pd.read_csv(csv_path)
    except FileNotFoundError:
        print(f"Error: {csv_path} not found")
        sys.exit(1)

    fitted_p = None
    fitted_file = csv_path.parent / "scaling_fitted_p.txt"
    if fitted_file.exists():
        fitted_p = float(fitted_file.read_text().strip())
        print(f"Fitted parallel fraction: p = {fitted_p:.3f}")

    print("\n" + "=" * 80)
    print("Measured aggregate scaling")
    print("=" * 80)
    print(measured_df.to_string(index=False))

    max_workers = int(measured_df['workers'].max())
    workers = np.arange(1, max(2, max_workers) + 1)
    parallel_fractions = [0.5, 0.75, 0.9, 0.95, 0.99]
    colors = plt.cm.viridis(np.linspace(0.1, 0.9, len(parallel_fractions)))

    fig, ax = plt.subplots(figsize=(12, 8))
    ax.plot([1, workers[-1]], [1, workers[-1]], 'k--', linewidth=2,
            label='Perfect Linear Speedup', alpha=0.4, zorder=1)

    for p, color in zip(parallel_fractions, colors):
        ax.plot(workers, [amdahl(p, int(w)) for w in workers], '-',
                color=color, linewidth=2, alpha=0.6,
                label=f'p = {p:.2f} (max = {1.0 / (1.0 - p):.0f}×)')

    ax.plot(measured_df['workers'], measured_df['speedup'], 'r*',
            markersize=20, markeredgewidth=2, markeredgecolor='darkred',
            label='Measured (aggregate)', zorder=20)

    if fitted_p is not None:
        ax.plot(workers, [amdahl(fitted_p, int(w)) for w in workers], 'r--',
                linewidth=3, alpha=0.8, label=f'Best Fit (p = {fitted_p:.3f})', zorder=15)

    ax.text(0.05, 0.95,
            "Amdahl's Law:\nSpeedup = 1 / [(1-p) + p/N]\n\n"
            "Batches are independent, so p is\nlimited only by pool overhead\nand the final reduction",
            transform=ax.transAxes, fontsize=10,
            verticalalignment='top',
            bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.8))

    ax.set_xlabel('Workers', fontsize=14, fontweight='bold')
    ax.set_ylabel('Speedup Factor', fontsize=14, fontweight='bold')
    ax.set_xscale('log', base=2)
    ax.set_yscale('log', base=2)
    ax.grid(True, which='both', linestyle=':', alpha=0.3)
    ax.legend(loc='lower right', fontsize=10, framealpha=0.95)

    plt.tight_layout()
    plt.savefig(args.out, dpi=150, bbox_inches='tight')
    print(f"\n✓ Scaling plot saved to: {args.out}")


if __name__ == "__main__":
    main()

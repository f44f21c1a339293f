"""Plot estimator spread against sample size from convergence.csv.

Shows the observed standard deviation and mean absolute error of the
estimate next to the theoretical 1/sqrt(n) curve on log-log axes.
"""

import argparse
import sys

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend (for headless environments)
import matplotlib.pyplot as plt
import pandas as pd


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("csv", nargs="?", default="convergence.csv")
    ap.add_argument("--out", default="convergence.png")
    args = ap.parse_args()

    try:
        df = pd.read_csv(args.csv)
    except FileNotFoundError:
        print(f"Error: {args.csv} not found")
        sys.exit(1)

    print("\n" + "=" * 80)
    print("Monte Carlo convergence: spread vs sample size")
    print("=" * 80)
    print(df.to_string(index=False))

    fig, ax = plt.subplots(figsize=(10, 7))

    ax.plot(df['n'], df['theoretical_std'], 'k--', linewidth=2,
            label='Theory: V·sqrt(p(1-p)/n)', alpha=0.6)
    ax.plot(df['n'], df['std'], 'o-', markersize=8, linewidth=2,
            label='Observed std across trials')
    ax.plot(df['n'], df['mean_abs_error'], 's-', markersize=7, linewidth=1.5,
            label='Mean |estimate - true area|', alpha=0.8)

    ax.text(0.05, 0.05,
            "Error ∝ 1/sqrt(n)\n100× more samples → 10× smaller error",
            transform=ax.transAxes, fontsize=10,
            verticalalignment='bottom',
            bbox=dict(boxstyle='round', facecolor='wheat', alpha=0.8))

    ax.set_xscale('log')
    ax.set_yscale('log')
    ax.set_xlabel('Samples per estimate (n)', fontsize=14, fontweight='bold')
    ax.set_ylabel('Error', fontsize=14, fontweight='bold')
    ax.grid(True, which='both', linestyle=':', alpha=0.3)
    ax.legend(loc='upper right', fontsize=10, framealpha=0.95)

    plt.tight_layout()
    plt.savefig(args.out, dpi=150, bbox_inches='tight')
    print(f"\n✓ Convergence plot saved to: {args.out}")


if __name__ == "__main__":
    main()

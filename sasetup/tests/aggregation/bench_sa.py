"""Setup benchmark for the SA hierarchy on model Poisson problems.

  python sasetup/tests/aggregation/bench_sa.py --dim 2 --sizes 64 128 256
  python sasetup/tests/aggregation/bench_sa.py --dim 1 --sizes 10000 --per-level --csv out.csv
"""

from __future__ import annotations

import argparse
import csv
import time

import numpy as np
from scipy.sparse import csr_array, diags_array, eye_array, kron

from sasetup.aggregation import smoothed_aggregation_setup


def _poisson(n: int, dim: int) -> csr_array:
    T = csr_array(diags_array([-1.0, 2.0, -1.0], offsets=[-1, 0, 1], shape=(n, n)))
    if dim == 1:
        return T
    I = eye_array(n)
    return csr_array(kron(T, I) + kron(I, T))


def _operator_complexity(levels) -> float:
    nnz = [lvl.A.nnz for lvl in levels]
    return float(sum(nnz)) / float(nnz[0])


def _run_one(A, *, B, aggregate, smooth, maxiter, max_levels, max_coarse, per_level):
    smooth_spec = None if smooth == "none" else ("energy", {"maxiter": maxiter})

    t0 = time.perf_counter()
    levels = smoothed_aggregation_setup(
        A,
        B=B,
        aggregate=aggregate,
        smooth=smooth_spec,
        max_levels=max_levels,
        max_coarse=max_coarse,
        print_info=per_level,
    )
    setup_time = time.perf_counter() - t0

    phases = {}
    for lvl in levels:
        if lvl.stats is None:
            continue
        for key, val in lvl.stats.timings.items():
            phases[key] = phases.get(key, 0.0) + val

    return dict(
        setup_time=setup_time,
        n_levels=len(levels),
        oc=_operator_complexity(levels),
        sizes=" ".join(str(lvl.A.shape[0]) for lvl in levels),
        **{f"t_{k}": v for k, v in phases.items()},
    )


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--dim", type=int, choices=[1, 2], default=2)
    p.add_argument("--sizes", type=int, nargs="+", default=[64, 128, 256])
    p.add_argument("--candidates", type=int, default=1, help="1 = constant, 2 = constant and linear")
    p.add_argument("--aggregate", choices=["standard", "naive"], default="standard")
    p.add_argument("--smooth", choices=["energy", "none"], default="energy")
    p.add_argument("--maxiter", type=int, default=4)
    p.add_argument("--max-levels", type=int, default=10)
    p.add_argument("--max-coarse", type=int, default=10)
    p.add_argument("--per-level", action="store_true")
    p.add_argument("--csv", type=str, default="")
    args = p.parse_args()

    rows = []
    for size in args.sizes:
        A = _poisson(size, args.dim)
        n = A.shape[0]
        B = np.ones((n, 1))
        if args.candidates > 1:
            B = np.column_stack([B, np.arange(n, dtype=float) / n])

        print(f"\n=== poisson{args.dim}d size={size} (n={n}, nnz={A.nnz}) ===")
        out = _run_one(
            A,
            B=B,
            aggregate=args.aggregate,
            smooth=args.smooth,
            maxiter=args.maxiter,
            max_levels=args.max_levels,
            max_coarse=args.max_coarse,
            per_level=args.per_level,
        )
        print(
            f"setup={out['setup_time']:.3f}s levels={out['n_levels']} "
            f"oc={out['oc']:.2f} sizes=[{out['sizes']}]"
        )

        rows.append(dict(case=f"poisson{args.dim}d", size=size, n=n, **out))

    if args.csv:
        fieldnames = sorted({k for row in rows for k in row})
        with open(args.csv, "w", newline="") as fp:
            w = csv.DictWriter(fp, fieldnames=fieldnames)
            w.writeheader()
            w.writerows(rows)
        print(f"\nWrote {args.csv}")


if __name__ == "__main__":
    main()

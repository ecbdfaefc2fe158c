import time
import numpy as np
from pspline import bspline_basis, uniform_knots
from pspline.fitter import PenalizedFitter

def benchmark(n, n_segments=40):
    print(f"Benchmark N={n}")
    x = np.sort(np.random.uniform(0, 1, n))
    y = np.sin(2 * np.pi * x) + np.random.normal(0, 0.1, n)
    knots = uniform_knots(0, 1, n_segments)

    # Measure basis evaluation
    start = time.time()
    for _ in range(10):
        B = bspline_basis(knots, x)
    end = time.time()
    basis_time = (end - start) / 10.0
    print(f"Basis time (avg of 10): {basis_time:.6f} s")

    fitter = PenalizedFitter(B, 1.0)

    # Measure fit
    start = time.time()
    for _ in range(10):
        fitter.fit(y)
    end = time.time()
    fit_time = (end - start) / 10.0
    print(f"Fit time (avg of 10): {fit_time:.6f} s")

    # Measure compute_df
    start = time.time()
    n_df_runs = 5 if n < 2000 else 1
    for _ in range(n_df_runs):
        fitter.compute_df()
    end = time.time()
    df_time = (end - start) / n_df_runs
    print(f"Compute DF time (avg of {n_df_runs}): {df_time:.6f} s")

    print(f"Ratio (Basis / Fit): {basis_time / fit_time:.2f}x")

if __name__ == "__main__":
    for n in [500, 1000, 5000]:
        benchmark(n)

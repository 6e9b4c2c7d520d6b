"""
Benchmark script for multinomial logit estimation

Tests speed and accuracy across different problem sizes and optimization methods.
"""

import time

import numpy as np

from mnlogit import Objective, make_log_likelihood, multinomial_logit, prepare_data
from mnlogit import simulate_data
from mnlogit.estimation import compute_vcov, optimize


def benchmark_estimation(N, method="trust-exact", with_availability=False, seed=42):
    """
    Benchmark a single estimation run.

    Returns:
        dict: Contains timing, accuracy, and convergence information
    """
    # Simulate data
    t0 = time.time()
    data, utility, true_coefs = simulate_data(
        N, with_availability=with_availability, seed=seed
    )
    sim_time = time.time() - t0

    availability = (
        ["avail_bus", "avail_car", "avail_train"] if with_availability else None
    )
    prepared = prepare_data(data, "chosen", utility, availability)
    objective = Objective(make_log_likelihood(utility, prepared))
    start = np.array(utility.starting_values)

    # First calls include JIT compilation
    t0 = time.time()
    _ = objective.value(start)
    likelihood_time = time.time() - t0

    t0 = time.time()
    _ = objective.gradient(start)
    gradient_time = time.time() - t0

    # Optimize
    t0 = time.time()
    result = optimize(objective, start, method=method)
    opt_time = time.time() - t0

    # Compute accuracy
    truth = np.array([true_coefs[name] for name in utility.coefnames])
    errors = result.x - truth
    mae = np.mean(np.abs(errors))
    rmse = np.sqrt(np.mean(errors**2))
    max_error = np.max(np.abs(errors))

    # Compute standard errors (runtime tracked, values unused in benchmark output)
    t0 = time.time()
    _ = compute_vcov(objective, result.x)
    se_time = time.time() - t0

    return {
        "N": N,
        "method": method,
        "with_availability": with_availability,
        "sim_time": sim_time,
        "likelihood_time": likelihood_time,
        "gradient_time": gradient_time,
        "opt_time": opt_time,
        "se_time": se_time,
        "total_time": sim_time + opt_time + se_time,
        "success": result.success,
        "nit": result.nit,
        "nfev": result.nfev,
        "final_nll": result.fun,
        "mae": mae,
        "rmse": rmse,
        "max_error": max_error,
    }


def benchmark_chunking(N, chunk_size, seed=42):
    """Time a full estimation with the likelihood summed in chunks."""
    data, utility, _ = simulate_data(N, seed=seed)
    t0 = time.time()
    model = multinomial_logit(utility, "chosen", data, chunk_size=chunk_size)
    return {"N": N, "chunk_size": chunk_size, "time": time.time() - t0, "model": model}


def print_results(results):
    """Pretty print benchmark results."""
    print("\n" + "=" * 100)
    print(
        f"{'N':<7} {'Avail':<6} {'Method':<12} {'Opt(s)':<8} {'SE(s)':<8} {'Total(s)':<9} "
        f"{'Iters':<6} {'FEval':<6} {'MAE':<8} {'RMSE':<8} {'MaxErr':<8} {'Success':<7}"
    )
    print("=" * 100)

    for r in results:
        print(
            f"{r['N']:<7} {'yes' if r['with_availability'] else 'no':<6} "
            f"{r['method']:<12} "
            f"{r['opt_time']:<8.3f} {r['se_time']:<8.3f} {r['total_time']:<9.3f} "
            f"{r['nit']:<6} {r['nfev']:<6} "
            f"{r['mae']:<8.4f} {r['rmse']:<8.4f} {r['max_error']:<8.4f} "
            f"{'✓' if r['success'] else '✗':<7}"
        )
    print("=" * 100)


def main():
    print("Multinomial Logit Estimation Benchmark")
    print("=" * 100)

    problem_sizes = [500, 1000, 5000, 20000, 100000]
    methods = ["trust-exact", "trust-ncg", "BFGS", "L-BFGS-B"]

    results = []

    print("\n1. Problem Size Scaling (trust-exact)")
    print("-" * 100)
    for N in problem_sizes:
        print(f"Running: N={N}...", end=" ", flush=True)
        r = benchmark_estimation(N)
        results.append(r)
        print(f"✓ ({r['opt_time']:.2f}s)")

    print("\n2. Optimization Method Comparison (N=5000)")
    print("-" * 100)
    for method in methods:
        print(f"Running: {method}...", end=" ", flush=True)
        try:
            r = benchmark_estimation(5000, method=method)
            results.append(r)
            print(f"✓ ({r['opt_time']:.2f}s)")
        except Exception as e:
            print(f"✗ Failed: {e}")

    print("\n3. Availability Masking (N=5000)")
    print("-" * 100)
    print("Running: with availability...", end=" ", flush=True)
    r = benchmark_estimation(5000, with_availability=True)
    results.append(r)
    print(f"✓ ({r['opt_time']:.2f}s)")

    print_results(results)

    print("\n4. Chunked Likelihood (N=100000)")
    print("-" * 100)
    for chunk_size in [None, 10000, 1000]:
        r = benchmark_chunking(100000, chunk_size)
        print(f"chunk_size={chunk_size}: {r['time']:.2f}s")

    print("\nSummary:")
    print("-" * 100)
    scaling = [r for r in results if r["method"] == "trust-exact"]
    avg_time_per_1k = np.mean([r["opt_time"] / (r["N"] / 1000) for r in scaling])
    print(f"Average optimization time per 1000 observations: {avg_time_per_1k:.3f}s")
    print(f"Average MAE: {np.mean([r['mae'] for r in scaling]):.4f}")
    print(f"Average RMSE: {np.mean([r['rmse'] for r in scaling]):.4f}")


if __name__ == "__main__":
    main()

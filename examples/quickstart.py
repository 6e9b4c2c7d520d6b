"""Minimal quickstart for mnlogit using a named utility specification."""

from __future__ import annotations

from mnlogit import UtilityFunctionSet, multinomial_logit, simulate_data


def main() -> None:
    # Simulate a mode-choice dataset: price_* and quality_* per alternative
    data, _, true_coefs = simulate_data(N=10000, with_availability=True, seed=42)

    # Write utilities with named coefficients; asc_bus is fixed for identification
    utility = UtilityFunctionSet.from_named(
        {
            "bus": lambda b, r: b["asc_bus"]
            + b["beta_price"] * r["price_bus"]
            + b["beta_quality"] * r["quality_bus"],
            "car": lambda b, r: b["asc_car"]
            + b["beta_price"] * r["price_car"]
            + b["beta_quality"] * r["quality_car"],
            "train": lambda b, r: b["asc_train"]
            + b["beta_price"] * r["price_train"]
            + b["beta_quality"] * r["quality_train"],
        },
        starting_values={
            "beta_price": 0.0,
            "beta_quality": 0.0,
            "asc_car": 0.0,
            "asc_train": 0.0,
        },
        fixed_coefs={"asc_bus": 0.0},
    )

    model = multinomial_logit(
        utility,
        "chosen",
        data,
        availability=["avail_bus", "avail_car", "avail_train"],
        verbose="summary",
    )

    print(model.summary())
    print("True parameters:", true_coefs)


if __name__ == "__main__":
    main()

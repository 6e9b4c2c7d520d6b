"""
Example: Load Data from CSV and Estimate a Multinomial Logit Model

This example demonstrates:
1. Saving simulated data to a CSV file
2. Loading data from the CSV file
3. Estimating the model with loaded data
4. Handling real-world data formats (0/1 availability, text labels)
"""

import os

import numpy as np
import pandas as pd

from mnlogit import multinomial_logit, simulate_data


def save_data_to_csv(data, filepath="example_data.csv"):
    """
    Save a choice dataset to CSV, writing availability flags as 0/1.

    Args:
        data: DataFrame with attribute, availability and 'chosen' columns
        filepath: Output file
    """
    out = data.copy()
    for column in out.columns:
        if column.startswith("avail_"):
            out[column] = out[column].astype(int)
    out.to_csv(filepath, index_label="person_id")
    print(f"Data saved to {filepath}")


def load_data_from_csv(filepath="example_data.csv"):
    """
    Load a choice dataset from CSV.

    Returns:
        pd.DataFrame indexed by person_id
    """
    data = pd.read_csv(filepath, index_col="person_id")
    print(f"Data loaded: {len(data)} records, {len(data.columns)} columns")
    print("Choice shares:")
    print(data["chosen"].value_counts(normalize=True).round(3).to_string())
    return data


def main():
    """Main example workflow."""
    print("=" * 80)
    print("Example: CSV Data Loading for Multinomial Logit Estimation")
    print("=" * 80)

    print("\n1. Generating synthetic data...")
    data, utility, true_coefs = simulate_data(N=2000, with_availability=True, seed=42)
    print(f"Generated {len(data)} records")

    print("\n2. Saving data to CSV...")
    save_data_to_csv(data, "example_data.csv")

    print("\n3. Loading data from CSV...")
    loaded = load_data_from_csv("example_data.csv")
    assert np.allclose(loaded["price_car"], data["price_car"])
    assert (loaded["chosen"] == data["chosen"]).all()
    print("✓ Data loaded successfully and matches original")

    print("\n4. Estimating model with loaded data...")
    availability = {alt: f"avail_{alt}" for alt in ("bus", "car", "train")}
    model = multinomial_logit(utility, "chosen", loaded, availability=availability)
    print(f"Iterations: {model.iterations}")
    print(f"Final log-likelihood: {model.final_ll:.4f}")

    print("\n5. Comparing estimates to true parameters...")
    print("-" * 60)
    for name, estimate, se in zip(model.coefnames, model.coefs, model.stderror()):
        truth = true_coefs[name]
        print(
            f"  {name:<14} True={truth:7.4f}, Est={estimate:7.4f} "
            f"(SE: {se:6.4f}), Error={abs(truth - estimate):7.4f}"
        )
    print("-" * 60)

    print("\n6. Full summary")
    print(model.summary())

    os.remove("example_data.csv")
    print("Temporary CSV file cleaned up.")


if __name__ == "__main__":
    main()

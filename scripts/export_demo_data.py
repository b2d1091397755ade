"""Export the demo customers and savings ledger as CSV.

Output: data/customers.csv and data/savings_transactions.csv. The ledger keeps
the backend's raw shape, including ``"NA"``/``"NO"`` placeholders and both
timestamp formats, so it can be replayed against the history filters.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from backoffice import synth


def main() -> None:
    parser = argparse.ArgumentParser(description="Export the synthetic branch dataset to CSV")
    parser.add_argument("--customers", type=int, default=synth.DEFAULT_CUSTOMERS)
    parser.add_argument("--seed", type=int, default=synth.DEFAULT_SEED)
    parser.add_argument("--output-dir", type=Path, default=Path("data"))
    args = parser.parse_args()

    customers_path, ledger_path = synth.write_demo_csvs(
        customers=args.customers,
        seed=args.seed,
        output_dir=args.output_dir,
    )
    print(f"Wrote {customers_path}")
    print(f"Wrote {ledger_path}")


if __name__ == "__main__":
    main()

"""Utility script to print per-branch dashboard stats for the demo dataset."""

from __future__ import annotations

import argparse
import json

from backoffice import synth


def main() -> None:
    parser = argparse.ArgumentParser(description="Print demo dashboard stats per branch")
    parser.add_argument("--customers", type=int, default=synth.DEFAULT_CUSTOMERS)
    parser.add_argument("--seed", type=int, default=synth.DEFAULT_SEED)
    args = parser.parse_args()

    backend = synth.InMemoryBackend(synth.generate_dataset(args.customers, seed=args.seed))
    payload = {branch: backend.dashboard_stats(branch) for branch in backend.list_branches()}
    payload["All branches"] = backend.dashboard_stats("")
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Print a stress-test report for a restaurant driver series.

Usage:
    python scripts/stress_report.py                          # sample drivers, all scenarios
    python scripts/stress_report.py --drivers drivers.xlsx   # uploaded drivers
    python scripts/stress_report.py --scenario S-002 --bundles --mc-sims 500
    python scripts/stress_report.py --json report.json

Scenarios are ranked riskiest first. With ``--bundles`` each scenario is also
evaluated against mitigation bundles A (none), B (defaults) and C (all).
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import pandas as pd

BACKEND_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from stress_engine.config import settings  # noqa: E402
from stress_engine.services.driver_parser import parse_driver_file  # noqa: E402
from stress_engine.services.run_service import evaluate_bundles, rank_scenarios  # noqa: E402
from stress_engine.simulation.breakpoint import BreakpointPolicy  # noqa: E402
from stress_engine.simulation.engine import compute_baseline_run  # noqa: E402
from stress_engine.simulation.monte_carlo import simulate_mitigations  # noqa: E402
from stress_engine.simulation.scenarios import (  # noqa: E402
    get_scenario,
    list_mitigations,
    list_scenarios,
    sample_driver_series,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def _pct(value) -> str:
    return "n/a" if value is None else f"{value * 100:+.1f}%"


def load_drivers(path: str | None):
    if not path:
        logger.info("Using sample driver series")
        return sample_driver_series()
    with open(path, "rb") as f:
        upload = parse_driver_file(f, Path(path).name)
    logger.info("Loaded %d periods from %s", upload.period_count, path)
    return upload.driver_series


def scenario_table(outcomes) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "rank": o.rank,
            "scenario": o.scenario_id,
            "revenue": _pct(o.summary.total_revenue_change_pct),
            "net_profit": _pct(o.summary.net_profit_change_pct),
            "prime_cost": _pct(o.summary.prime_cost_change_pct),
            "breaks": "yes" if o.breakpoint.fails else "no",
            "month": o.breakpoint.first_failure_month or "",
            "risk": round(o.risk.score, 3),
            "survival": None if o.final_survival is None else round(o.final_survival, 3),
        }
        for o in outcomes
    ])


def bundle_table(outcomes) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "rank": o.rank,
            "bundle": o.bundle,
            "mitigations": ", ".join(o.mitigation_ids) or "-",
            "net_profit": _pct(o.summary.net_profit_change_pct),
            "breaks": "yes" if o.breakpoint.fails else "no",
            "risk": round(o.risk.score, 3),
        }
        for o in outcomes
    ])


def main():
    parser = argparse.ArgumentParser(description="Restaurant KPI stress-test report")
    parser.add_argument("--drivers", help="CSV or Excel driver table (default: sample series)")
    parser.add_argument("--scenario", action="append", help="Library scenario id (repeatable; default: all)")
    parser.add_argument("--bundles", action="store_true", help="Also rank mitigation bundles per scenario")
    parser.add_argument("--mc-sims", type=int, default=0, help="Monte Carlo runs per scenario (default: off)")
    parser.add_argument("--opening-cash", type=float, default=settings.OPENING_CASH_BALANCE)
    parser.add_argument("--json", dest="json_out", help="Also write the full report as JSON")
    args = parser.parse_args()

    baseline = compute_baseline_run(load_drivers(args.drivers))
    scenarios = [get_scenario(sid) for sid in args.scenario] if args.scenario else list_scenarios()
    policy = BreakpointPolicy(opening_cash=args.opening_cash)
    mitigations = list_mitigations()

    outcomes = rank_scenarios(baseline, scenarios, policy=policy)
    print("\nScenario ranking (riskiest first)")
    print(scenario_table(outcomes).to_string(index=False))

    report: dict = {
        "baseline_run_id": baseline.id,
        "scenarios": [o.model_dump(mode="json") for o in outcomes],
        "bundles": {},
        "monte_carlo": {},
    }

    for scenario in scenarios:
        if args.bundles:
            bundles = evaluate_bundles(baseline, scenario, mitigations, policy=policy)
            print(f"\nBundles for {scenario.id} ({scenario.name})")
            print(bundle_table(bundles).to_string(index=False))
            report["bundles"][scenario.id] = [b.model_dump(mode="json") for b in bundles]
        if args.mc_sims > 0:
            mc = simulate_mitigations(
                baseline, scenario, mitigations,
                n_simulations=args.mc_sims, seed=settings.MONTE_CARLO_SEED,
            )
            band = mc.net_profit_change_pct
            print(
                f"\nMonte Carlo {scenario.id}: net profit p10 {_pct(band.p10)}  "
                f"p50 {_pct(band.p50)}  p90 {_pct(band.p90)}"
            )
            report["monte_carlo"][scenario.id] = mc.model_dump(mode="json")

    if args.json_out:
        Path(args.json_out).write_text(json.dumps(report, indent=2))
        logger.info("Report written to %s", args.json_out)


if __name__ == "__main__":
    main()

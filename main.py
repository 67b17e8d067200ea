"""
main.py – Demo silnika niezawodnościowego RCM (Weibull / PM / Monte Carlo)
==========================================================================
Uruchom: python main.py
"""

import logging

import numpy as np
import pandas as pd

from rcm import (
    CostParameters,
    InsufficientDataError,
    DegenerateFitError,
    ReliabilityPipeline,
    SimulationParameters,
    analyze_weibull,
    determine_maintenance_strategy,
    fit_weibull,
    optimize,
    run_simulation,
)
from rcm.simulation import simulate

# ---------------------------------------------------------------------------
# Przykładowa historia uszkodzeń pompy (symulacja rekordów z CMMS)
# ---------------------------------------------------------------------------

TRUE_BETA = 2.3
TRUE_ETA = 180.0     # [dni]
N_RECORDS = 25

PM_COST = 1_500.0
CM_COST = 12_000.0
HORIZON = 2 * TRUE_ETA


def print_separator(char: str = "─", width: int = 80) -> None:
    print(char * width)


def build_records(seed: int = 7) -> pd.DataFrame:
    """Syntetyczne rekordy: TBF w dniach, część wyliczana z dat, jeden rekord ocenzurowany."""
    rng = np.random.default_rng(seed)
    tbf = TRUE_ETA * rng.weibull(TRUE_BETA, size=N_RECORDS)

    failure_dates = pd.Timestamp("2022-01-01", tz="UTC") + pd.to_timedelta(np.cumsum(tbf), unit="D")
    last_failure = failure_dates.to_series().shift(1).tolist()

    records = pd.DataFrame({
        "tbf_days": tbf.round(1),
        "failure_date": failure_dates,
        "last_failure_date": last_failure,
        "installation_date": pd.Timestamp("2022-01-01", tz="UTC"),
        "operating_hours_at_failure": (tbf * 16).round(0),
        "equipment_status": ["failed"] * (N_RECORDS - 1) + ["censored"],
        "failure_mechanism": rng.choice(["Wear", "Fatigue", "Corrosion", None], size=N_RECORDS),
    })
    # Brak TBF w co piątym rekordzie, wyliczany z dat
    records.loc[::5, "tbf_days"] = None
    return records


def run_demo() -> None:
    records = build_records()

    print()
    print("=" * 80)
    print("  ANALIZA NIEZAWODNOŚCI RCM – Weibull / optymalizacja PM / Monte Carlo")
    print(f"  Dane: {N_RECORDS} rekordów  |  β_true={TRUE_BETA}  η_true={TRUE_ETA} dni")
    print("=" * 80)

    # ------------------------------------------------------------------
    # 1. Dopasowanie MRR
    # ------------------------------------------------------------------
    print("\n📊 DOPASOWANIE WEIBULLA (regresja rang medianowych)\n")
    try:
        fit_result = fit_weibull(records)
    except (InsufficientDataError, DegenerateFitError) as exc:
        print(f"  ❌ {exc}")
        return

    print(f"  β̂  = {fit_result.beta:>8.3f}   ({fit_result.pattern.value})")
    print(f"  η̂  = {fit_result.eta:>8.1f} dni")
    print(f"  R² = {fit_result.r2:>8.4f}   (w przestrzeni zlinearyzowanej)")
    adjusted = sum(p.adjusted for p in fit_result.data_points)
    print(f"  Punkty: {len(fit_result.data_points)}  (wyliczone z dat: {adjusted})")

    model = fit_result.to_model("days")

    # ------------------------------------------------------------------
    # 2. Krzywe i wskaźniki
    # ------------------------------------------------------------------
    print(f"\n\n📋 KRZYWE NIEZAWODNOŚCI (horyzont {HORIZON:.0f} dni)\n")
    analysis = analyze_weibull(model, HORIZON, points=9)
    header = f"{'t [dni]':>10} | {'R(t)':>8} | {'h(t) [1/dzień]':>15} | {'F(t)':>8}"
    print(header)
    print_separator()
    for _, row in analysis.to_frame().iterrows():
        print(
            f"{row['time']:>10.1f} | {row['reliability']:>8.4f} | "
            f"{row['failure_rate']:>15.6f} | {row['probability']:>8.4f}"
        )
    print_separator()
    print(f"  MTBF = {analysis.mtbf:.1f} dni   B10 = {model.b_life(10):.1f} dni")

    # ------------------------------------------------------------------
    # 3. Optymalizacja interwału PM
    # ------------------------------------------------------------------
    print(f"\n\n🔧 OPTYMALIZACJA INTERWAŁU PM  (C_PM={PM_COST:,.0f}  C_CM={CM_COST:,.0f})\n")
    print(f"  {'Metoda':<10} | {'T* [dni]':>10} | {'C(T*) [/dzień]':>15} | {'R(T*)':>8}")
    print("  " + "─" * 52)
    for method in ("simple", "renewal"):
        result = optimize(model, PM_COST, CM_COST, HORIZON, method=method)
        print(
            f"  {method:<10} | {result.optimal_interval:>10.1f} | "
            f"{result.optimal_cost:>15.2f} | {result.reliability_at_optimum:>8.2%}"
        )
    print(f"\n  Interwał dla R ≥ 90%: {result.reliability_based_interval:.1f} dni")

    # ------------------------------------------------------------------
    # 4. Monte Carlo: run-to-failure vs PM przy T*
    # ------------------------------------------------------------------
    print(f"\n\n🎲 SYMULACJA MONTE CARLO (1000 przebiegów, horyzont 3650 dni)\n")
    for label, interval in (("Run-to-Failure", None), ("PM przy T*", result.optimal_interval)):
        sim = simulate(
            model, 1000, 3650.0,
            pm_interval=interval, pm_cost=PM_COST, failure_cost=CM_COST, rng_seed=42,
        )
        print(
            f"  {label:<16} uszkodzenia={sim.average_failures:>6.2f}  "
            f"PM={sim.average_pm_actions:>6.2f}  koszt/dzień={sim.cost_rate:>8.2f}"
        )

    # ------------------------------------------------------------------
    # 5. Pipeline end-to-end
    # ------------------------------------------------------------------
    print()
    print("=" * 80)
    print("  RELIABILITY PIPELINE (PRZEPŁYW END-TO-END)")
    print("=" * 80)

    pipeline = ReliabilityPipeline(
        records,
        CostParameters(PM_COST, CM_COST, HORIZON, max_downtime=8),
        SimulationParameters(time_horizon=3650.0, number_of_runs=500, rng_seed=1),
        asset={"weibull_beta": 2.0, "weibull_eta": 200.0, "time_unit": "days"},
        cost_method="renewal",
    )
    summary = pipeline.run()
    recommendation = summary["recommendation"]

    print(f"\n  Źródło modelu : {summary['model_source']}  (n={summary['n_samples']})")
    print(f"  Strategia     : {recommendation['strategy']}")
    print(f"  Uzasadnienie  : {recommendation['reason']}")
    print("\n  Mechanizmy uszkodzeń:")
    for mechanism, count in summary["failure_mechanisms"].items():
        print(f"    {mechanism:<12} {count:>3}")

    sim_check = run_simulation(
        pipeline.model,
        SimulationParameters(
            time_horizon=3650.0, number_of_runs=500,
            pm_interval=pipeline.optimization.optimal_interval,
            pm_cost=PM_COST, failure_cost=CM_COST, rng_seed=1,
        ),
    )
    print(
        f"\n  Koszt/dzień: model odnowy {pipeline.optimization.optimal_cost:.2f}  |  "
        f"Monte Carlo {sim_check.cost_rate:.2f}"
    )

    # ------------------------------------------------------------------
    # 6. Macierz RCM (bez danych o uszkodzeniach)
    # ------------------------------------------------------------------
    print("\n\n🧭 MACIERZ RCM\n")
    matrix = determine_maintenance_strategy(
        "Medium", True, CM_COST,
        failure_mode_descriptions=["Bearing wear"],
        current_maintenance_practices="reactive",
    )
    print(f"  Strategia: {matrix.strategy.value}")
    for task in matrix.task_recommendations:
        print(f"    - {task}")

    print()
    print("=" * 80)
    print("  Koniec analizy.")
    print("=" * 80)
    print()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_demo()

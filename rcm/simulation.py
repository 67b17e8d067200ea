"""
simulation.py
-------------
Symulacja Monte Carlo procesu uszkodzeń i odnowy dla dwóch polityk:

    - run-to-failure       (pm_interval = None)
    - PM wg wieku          (pm_interval = T)

Przebieg pojedynczej symulacji:
    1. Losowanie czasu do uszkodzenia metodą odwrotnej dystrybuanty:
           t = η · (−ln(1 − U))^(1/β),   U ~ U[0, 1)
    2. Zdarzenie, które nastąpi pierwsze — uszkodzenie (wiek t) albo PM
       (wiek T) — kończy cykl i zeruje wiek; nalicza failure_cost lub pm_cost.
       Przy równości t = T wygrywa PM.
    3. Powtarzanie aż do osiągnięcia time_horizon (zdarzenia w chwili
       ≥ time_horizon nie są liczone).
       Liczba zdarzeń w przebiegu jest ograniczona przez MAX_EVENTS_PER_RUN.

Agregacja po przebiegach: średni koszt, średnia liczba uszkodzeń, średnia
liczba PM oraz histogram bezwzględnych chwil uszkodzeń na [0, time_horizon].

Determinizm: z jawnym rng_seed wynik jest w pełni powtarzalny (bit w bit);
bez ziarna każde wywołanie losuje świeżą entropię i wyniki się różnią.
Anulowanie (deadline / token) sprawdzane jest między przebiegami, nigdy
w trakcie pojedynczego przebiegu.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import NamedTuple, Protocol

import numpy as np
import pandas as pd

from .errors import InvalidArgumentError, SimulationCancelledError, as_count, as_float
from .weibull import WeibullModel

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stałe
# ---------------------------------------------------------------------------

DEFAULT_SIMULATION_RUNS: int = 1000
MAX_SIMULATION_RUNS: int = 10_000
DEFAULT_HISTOGRAM_BINS: int = 20

# Górna granica liczby zdarzeń (uszkodzeń + PM) w jednym przebiegu
MAX_EVENTS_PER_RUN: int = 1_000_000

_PROGRESS_EVERY: int = 1000


class CancellationToken(Protocol):
    """Dowolny obiekt z metodą is_set(), np. threading.Event."""

    def is_set(self) -> bool: ...


# ---------------------------------------------------------------------------
# Parametry i wynik
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SimulationParameters:
    """Parametry symulacji; walidowane przy konstrukcji."""

    time_horizon: float
    number_of_runs: int = DEFAULT_SIMULATION_RUNS
    pm_interval: float | None = None
    pm_cost: float = 0.0
    failure_cost: float = 0.0
    rng_seed: int | None = None
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS

    def __post_init__(self) -> None:
        runs = as_count("Liczba przebiegów", self.number_of_runs, 1, MAX_SIMULATION_RUNS)
        object.__setattr__(self, "number_of_runs", runs)

        horizon = as_float("Horyzont czasowy", self.time_horizon)
        if not math.isfinite(horizon) or horizon <= 0:
            raise InvalidArgumentError(f"Horyzont czasowy musi być dodatni, otrzymano {horizon}.")
        object.__setattr__(self, "time_horizon", horizon)

        if self.pm_interval is not None:
            interval = as_float("Interwał PM", self.pm_interval)
            if not math.isfinite(interval) or interval <= 0:
                raise InvalidArgumentError(f"Interwał PM musi być dodatni, otrzymano {interval}.")
            if horizon / interval > MAX_EVENTS_PER_RUN:
                raise InvalidArgumentError(
                    f"Interwał PM {interval:g} jest za krótki względem horyzontu {horizon:g}: "
                    f"ponad {MAX_EVENTS_PER_RUN} zdarzeń na przebieg."
                )
            object.__setattr__(self, "pm_interval", interval)

        for name in ("pm_cost", "failure_cost"):
            value = as_float(name, getattr(self, name))
            if not math.isfinite(value) or value < 0:
                raise InvalidArgumentError(f"{name} musi być nieujemny, otrzymano {value}.")
            object.__setattr__(self, name, value)

        object.__setattr__(
            self,
            "histogram_bins",
            as_count("Liczba przedziałów histogramu", self.histogram_bins, 1),
        )


class HistogramBin(NamedTuple):
    bin_start: float
    bin_end: float
    count: int


@dataclass(frozen=True)
class SimulationResult:
    """Zagregowany wynik symulacji (średnie po przebiegach)."""

    total_cost: float
    average_failures: float
    histogram: tuple[HistogramBin, ...]
    average_pm_actions: float
    number_of_runs: int
    time_horizon: float
    rng_seed: int | None = None

    @property
    def cost_rate(self) -> float:
        """Średni koszt na jednostkę czasu — do porównania z optymalizatorem."""
        return self.total_cost / self.time_horizon

    def to_frame(self) -> pd.DataFrame:
        """Histogram jako DataFrame [bin_start, bin_end, count]."""
        return pd.DataFrame(list(self.histogram), columns=["bin_start", "bin_end", "count"])

    def to_dict(self) -> dict:
        return {
            "total_cost": self.total_cost,
            "average_failures": self.average_failures,
            "average_pm_actions": self.average_pm_actions,
            "cost_rate": self.cost_rate,
            "number_of_runs": self.number_of_runs,
        }


@dataclass(frozen=True)
class _RunOutcome:
    cost: float
    failures: int
    pm_actions: int
    failure_times: tuple[float, ...]


# ---------------------------------------------------------------------------
# Pojedynczy przebieg
# ---------------------------------------------------------------------------


def _simulate_run(
    model: WeibullModel,
    rng: np.random.Generator,
    params: SimulationParameters,
) -> _RunOutcome:
    horizon = params.time_horizon
    pm_interval = params.pm_interval

    renewal_time = 0.0
    cost = 0.0
    pm_actions = 0
    failure_times: list[float] = []

    while True:
        if pm_actions + len(failure_times) >= MAX_EVENTS_PER_RUN:
            raise InvalidArgumentError(
                f"Przekroczono limit {MAX_EVENTS_PER_RUN} zdarzeń w jednym przebiegu "
                f"(η = {model.eta:g} względem horyzontu {horizon:g})."
            )
        ttf = model.sample_time_to_failure(rng.random())

        if pm_interval is not None and pm_interval <= ttf:
            event_time = renewal_time + pm_interval
            if event_time >= horizon:
                break
            cost += params.pm_cost
            pm_actions += 1
        else:
            event_time = renewal_time + ttf
            if event_time >= horizon:
                break
            cost += params.failure_cost
            failure_times.append(event_time)

        renewal_time = event_time

    return _RunOutcome(
        cost=cost,
        failures=len(failure_times),
        pm_actions=pm_actions,
        failure_times=tuple(failure_times),
    )


def _histogram(
    failure_times: list[float], time_horizon: float, bins: int
) -> tuple[HistogramBin, ...]:
    counts, edges = np.histogram(
        np.asarray(failure_times, dtype=float), bins=bins, range=(0.0, time_horizon)
    )
    return tuple(
        HistogramBin(float(edges[i]), float(edges[i + 1]), int(counts[i]))
        for i in range(bins)
    )


# ---------------------------------------------------------------------------
# Główne funkcje
# ---------------------------------------------------------------------------


def run_simulation(
    model: WeibullModel,
    params: SimulationParameters,
    *,
    deadline: float | None = None,
    cancel_token: CancellationToken | None = None,
) -> SimulationResult:
    """
    Uruchamia symulację Monte Carlo dla gotowych SimulationParameters.

    Parametry
    ----------
    model : WeibullModel
        Rozkład czasu do uszkodzenia.
    params : SimulationParameters
        Parametry (już zwalidowane).
    deadline : float | None
        Chwila wg time.monotonic(), po której symulacja zostaje przerwana.
    cancel_token : CancellationToken | None
        Obiekt z is_set() (np. threading.Event); sprawdzany przed każdym przebiegiem.

    Rzuca
    ------
    SimulationCancelledError
        Gdy deadline minął lub token został ustawiony.
    """
    rng = np.random.default_rng(params.rng_seed)
    runs = int(params.number_of_runs)

    outcomes: list[_RunOutcome] = []
    for run in range(runs):
        if (cancel_token is not None and cancel_token.is_set()) or (
            deadline is not None and time.monotonic() >= deadline
        ):
            logger.warning("Symulacja przerwana po %d z %d przebiegów", run, runs)
            raise SimulationCancelledError(run, runs)

        outcomes.append(_simulate_run(model, rng, params))

        if (run + 1) % _PROGRESS_EVERY == 0:
            logger.debug("Symulacja: %d/%d przebiegów", run + 1, runs)

    # Redukcja
    all_failure_times = [t for outcome in outcomes for t in outcome.failure_times]
    result = SimulationResult(
        total_cost=sum(o.cost for o in outcomes) / runs,
        average_failures=sum(o.failures for o in outcomes) / runs,
        histogram=_histogram(all_failure_times, params.time_horizon, int(params.histogram_bins)),
        average_pm_actions=sum(o.pm_actions for o in outcomes) / runs,
        number_of_runs=runs,
        time_horizon=params.time_horizon,
        rng_seed=params.rng_seed,
    )

    logger.info(
        "Symulacja zakończona: runs=%d seed=%s koszt=%.4g uszkodzenia=%.4g",
        runs, params.rng_seed, result.total_cost, result.average_failures,
    )
    return result


def simulate(
    model: WeibullModel,
    number_of_runs: int,
    time_horizon: float,
    pm_interval: float | None = None,
    pm_cost: float = 0.0,
    failure_cost: float = 0.0,
    rng_seed: int | None = None,
    *,
    histogram_bins: int = DEFAULT_HISTOGRAM_BINS,
    deadline: float | None = None,
    cancel_token: CancellationToken | None = None,
) -> SimulationResult:
    """
    Symulacja Monte Carlo uszkodzeń (run-to-failure lub PM wg wieku).

    Zwraca
    -------
    SimulationResult
        total_cost — średni koszt na przebieg,
        average_failures — średnia liczba uszkodzeń na przebieg,
        histogram — liczności chwil uszkodzeń w równych przedziałach [0, T_h].

    Rzuca
    ------
    InvalidArgumentError
        Gdy number_of_runs ∉ 1..MAX_SIMULATION_RUNS, time_horizon ≤ 0,
        pm_interval ≤ 0 lub koszty ujemne,
        albo przebieg przekroczyłby MAX_EVENTS_PER_RUN zdarzeń.

    Przykład
    --------
    >>> model = WeibullModel.from_values(beta=1.0, eta=100.0)
    >>> a = simulate(model, 200, time_horizon=1000, failure_cost=10, rng_seed=42)
    >>> b = simulate(model, 200, time_horizon=1000, failure_cost=10, rng_seed=42)
    >>> a == b
    True
    """
    params = SimulationParameters(
        time_horizon=time_horizon,
        number_of_runs=number_of_runs,
        pm_interval=pm_interval,
        pm_cost=pm_cost,
        failure_cost=failure_cost,
        rng_seed=rng_seed,
        histogram_bins=histogram_bins,
    )
    return run_simulation(model, params, deadline=deadline, cancel_token=cancel_token)

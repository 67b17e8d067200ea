"""
optimization.py
---------------
Optymalizacja interwału konserwacji zapobiegawczej (PM) — polityka wymiany
wg wieku (age replacement).

Model kosztowy (domyślny, "simple"):

    C(T) = [ C_PM · R(T) + C_CM · (1 − R(T)) ] / T

Model odnowy ("renewal", wzór dokładny teorii odnowy):

    C(T) = [ C_PM · R(T) + C_CM · (1 − R(T)) ] / ∫₀ᵀ R(t) dt

Oba modele pokrywają się dla β = 1 tylko w granicy T → 0; dla β daleko od 1
rozbieżność jest znaczna, dlatego wynik zawsze zawiera użytą metodę.

Przeszukiwanie: siatka T_k = k · (T_h / N), k = 1..N (N = grid_resolution),
minimum globalne, remis → mniejszy interwał (częstsza konserwacja).

Przypadek brzegowy: C_PM ≥ C_CM → PM nigdy się nie opłaca, wynik = T_h.

Interpretacja wyniku (etykieta strategii) NIE należy do tego modułu —
patrz policy.py.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

import numpy as np
import pandas as pd
from scipy.integrate import cumulative_trapezoid, trapezoid

from .errors import InvalidArgumentError, as_count, as_float
from .weibull import WeibullModel

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stałe domyślne
# ---------------------------------------------------------------------------

DEFAULT_GRID_RESOLUTION: int = 200
DEFAULT_TARGET_RELIABILITY: float = 0.9

# Podział każdego oczka siatki przy całkowaniu R(t) (metoda "renewal")
_RENEWAL_SUBSTEPS: int = 16


class CostMethod(str, Enum):
    SIMPLE = "simple"
    RENEWAL = "renewal"


# ---------------------------------------------------------------------------
# Parametry i wynik
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CostParameters:
    """
    Parametry kosztowe optymalizacji.

    Atrybuty
    --------
    pm_cost : float
        Koszt jednej konserwacji zapobiegawczej (≥ 0).
    cm_cost : float
        Koszt naprawy po uszkodzeniu (> 0).
    time_horizon : float
        Górna granica przeszukiwanych interwałów (> 0), w jednostce η.
    target_reliability : float
        Docelowa niezawodność dla interwału progowego, (0, 1).
    max_downtime : float | None
        Dopuszczalny przestój [h], przekazywany do etykietowania strategii
        (wiersze przestoju w policy.recommend_strategy).
    grid_resolution : int
        Liczba punktów siatki interwałów (≥ 2).
    """

    pm_cost: float
    cm_cost: float
    time_horizon: float
    target_reliability: float = DEFAULT_TARGET_RELIABILITY
    max_downtime: float | None = None
    grid_resolution: int = DEFAULT_GRID_RESOLUTION

    def __post_init__(self) -> None:
        for name in ("pm_cost", "cm_cost", "time_horizon", "target_reliability"):
            object.__setattr__(self, name, as_float(name, getattr(self, name)))
        if self.max_downtime is not None:
            object.__setattr__(self, "max_downtime", as_float("max_downtime", self.max_downtime))

        if not math.isfinite(self.pm_cost) or self.pm_cost < 0:
            raise InvalidArgumentError(
                f"Koszt PM musi być nieujemny, otrzymano {self.pm_cost}."
            )
        if not math.isfinite(self.cm_cost) or self.cm_cost <= 0:
            raise InvalidArgumentError(
                f"Koszt naprawy awaryjnej musi być dodatni, otrzymano {self.cm_cost}."
            )
        if not math.isfinite(self.time_horizon) or self.time_horizon <= 0:
            raise InvalidArgumentError(
                f"Horyzont czasowy musi być dodatni, otrzymano {self.time_horizon}."
            )
        if not 0.0 < self.target_reliability < 1.0:
            raise InvalidArgumentError(
                f"Docelowa niezawodność musi należeć do (0, 1), "
                f"otrzymano {self.target_reliability}."
            )
        if self.max_downtime is not None and (
            math.isnan(self.max_downtime) or self.max_downtime < 0
        ):
            raise InvalidArgumentError(
                f"Dopuszczalny przestój musi być nieujemny, otrzymano {self.max_downtime}."
            )
        object.__setattr__(
            self, "grid_resolution", as_count("Rozdzielczość siatki", self.grid_resolution, 2)
        )


class CostPoint(NamedTuple):
    interval: float
    cost: float


@dataclass(frozen=True)
class MaintenanceOptimizationResult:
    """Wynik przeszukiwania siatki interwałów PM."""

    optimal_interval: float
    optimal_cost: float
    cost_curve: tuple[CostPoint, ...]
    method: CostMethod
    reliability_at_optimum: float
    reliability_based_interval: float
    target_reliability: float
    max_downtime: float | None = None

    @property
    def failure_probability_at_optimum(self) -> float:
        return 1.0 - self.reliability_at_optimum

    def to_frame(self) -> pd.DataFrame:
        """Krzywa kosztu jako DataFrame [interval, cost]."""
        return pd.DataFrame(list(self.cost_curve), columns=["interval", "cost"])

    def to_dict(self) -> dict:
        return {
            "optimal_interval": self.optimal_interval,
            "optimal_cost": self.optimal_cost,
            "method": self.method.value,
            "reliability_at_optimum_pct": round(self.reliability_at_optimum * 100, 2),
            "failure_probability_pct": round(self.failure_probability_at_optimum * 100, 2),
            "reliability_based_interval": self.reliability_based_interval,
            "target_reliability_pct": round(self.target_reliability * 100, 2),
        }


# ---------------------------------------------------------------------------
# Funkcje kosztu
# ---------------------------------------------------------------------------


def _reliability_array(model: WeibullModel, t: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return np.exp(-np.power(t / model.eta, model.beta))


def cost_rate(interval: float, model: WeibullModel, pm_cost: float, cm_cost: float) -> float:
    """Koszt jednostkowy (C_PM·R(T) + C_CM·F(T)) / T dla pojedynczego T > 0."""
    if interval <= 0:
        raise InvalidArgumentError(f"Interwał musi być dodatni, otrzymano {interval}.")
    r = model.reliability(interval)
    return (pm_cost * r + cm_cost * (1.0 - r)) / interval


def renewal_cost_rate(
    interval: float,
    model: WeibullModel,
    pm_cost: float,
    cm_cost: float,
    *,
    steps: int = 1000,
) -> float:
    """Koszt jednostkowy wg teorii odnowy: mianownik = ∫₀ᵀ R(t) dt (trapezy)."""
    if interval <= 0:
        raise InvalidArgumentError(f"Interwał musi być dodatni, otrzymano {interval}.")
    t = np.linspace(0.0, interval, steps + 1)
    r = _reliability_array(model, t)
    expected_cycle = float(trapezoid(r, t))
    r_t = float(r[-1])
    return (pm_cost * r_t + cm_cost * (1.0 - r_t)) / expected_cycle


def _grid_costs(
    model: WeibullModel,
    intervals: np.ndarray,
    pm_cost: float,
    cm_cost: float,
    method: CostMethod,
) -> np.ndarray:
    r = _reliability_array(model, intervals)
    numerator = pm_cost * r + cm_cost * (1.0 - r)

    if method is CostMethod.SIMPLE:
        return numerator / intervals

    # Całka skumulowana R(t) na gęstszej siatce, próbkowana w punktach T_k
    n = len(intervals)
    fine = np.linspace(0.0, intervals[-1], n * _RENEWAL_SUBSTEPS + 1)
    r_fine = _reliability_array(model, fine)
    cumulative = cumulative_trapezoid(r_fine, fine, initial=0.0)
    expected_cycle = cumulative[_RENEWAL_SUBSTEPS::_RENEWAL_SUBSTEPS]
    return numerator / expected_cycle


# ---------------------------------------------------------------------------
# Główna funkcja
# ---------------------------------------------------------------------------


def optimize(
    model: WeibullModel,
    pm_cost: float,
    cm_cost: float,
    time_horizon: float,
    target_reliability: float = DEFAULT_TARGET_RELIABILITY,
    max_downtime: float | None = None,
    grid_resolution: int = DEFAULT_GRID_RESOLUTION,
    *,
    method: CostMethod | str = CostMethod.SIMPLE,
) -> MaintenanceOptimizationResult:
    """
    Szuka interwału PM minimalizującego koszt jednostkowy.

    Parametry
    ----------
    model : WeibullModel
        Model czasu do uszkodzenia.
    pm_cost, cm_cost : float
        Koszt konserwacji zapobiegawczej / naprawy awaryjnej.
    time_horizon : float
        Największy rozważany interwał (siatka obejmuje (0, time_horizon]).
    target_reliability : float
        Docelowa niezawodność dla interwału progowego t = η·(−ln R)^(1/β).
    max_downtime : float | None
        Dopuszczalny przestój [h]; nie wpływa na T*, tylko na wybór
        strategii w policy.recommend_strategy.
    grid_resolution : int
        Liczba punktów siatki. Domyślnie 200.
    method : CostMethod | str
        "simple" (domyślnie) lub "renewal".

    Zwraca
    -------
    MaintenanceOptimizationResult

    Rzuca
    ------
    InvalidArgumentError
        Gdy któryś parametr jest poza dziedziną.

    Przykład
    --------
    >>> model = WeibullModel.from_values(beta=2.5, eta=1000.0)
    >>> result = optimize(model, pm_cost=500, cm_cost=5000, time_horizon=2000)
    >>> 0 < result.optimal_interval < 1000
    True
    """
    params = CostParameters(
        pm_cost=pm_cost,
        cm_cost=cm_cost,
        time_horizon=time_horizon,
        target_reliability=target_reliability,
        max_downtime=max_downtime,
        grid_resolution=grid_resolution,
    )
    try:
        method = CostMethod(method)
    except ValueError:
        raise InvalidArgumentError(
            f"Nieznana metoda kosztowa {method!r}. "
            f"Dostępne: {[m.value for m in CostMethod]}"
        ) from None

    n = int(params.grid_resolution)
    step = params.time_horizon / n
    intervals = np.arange(1, n + 1, dtype=float) * step
    intervals[-1] = params.time_horizon
    costs = _grid_costs(model, intervals, params.pm_cost, params.cm_cost, method)

    if params.pm_cost >= params.cm_cost:
        # PM nie tańsza od awarii → brak korzyści z konserwacji, granica siatki
        best = n - 1
    else:
        # np.argmin zwraca pierwsze minimum → remis rozstrzygany na korzyść mniejszego T
        best = int(np.argmin(costs))

    optimal_interval = float(intervals[best])
    optimal_cost = float(costs[best])

    logger.debug(
        "Optymalizacja PM (%s): T*=%.6g C*=%.6g (beta=%.4g, eta=%.4g, N=%d)",
        method.value, optimal_interval, optimal_cost, model.beta, model.eta, n,
    )

    return MaintenanceOptimizationResult(
        optimal_interval=optimal_interval,
        optimal_cost=optimal_cost,
        cost_curve=tuple(
            CostPoint(float(t), float(c)) for t, c in zip(intervals, costs)
        ),
        method=method,
        reliability_at_optimum=model.reliability(optimal_interval),
        reliability_based_interval=model.time_at_reliability(params.target_reliability),
        target_reliability=params.target_reliability,
        max_downtime=params.max_downtime,
    )

"""
policy.py
---------
Etykietowanie strategii utrzymania.

1) recommend_strategy: interpretacja wyniku optymalizacji.
   Optymalizator zwraca liczbę (interwał); ten moduł ją interpretuje wg stałej
   tablicy decyzyjnej (wiersze sprawdzane od góry):
┌──────────────────────────┬────────────────────────┬───────────────────────────────┐
│ Warunek                  │ Strategia              │ Interwał                      │
├──────────────────────────┼────────────────────────┼───────────────────────────────┤
│ max_downtime = 0         │ Preventive Maintenance │ 0.5 · MTBF                    │
│ 0 < max_downtime ≤ 24 h, │ Preventive Maintenance │ MTBF · max(0.6, 1 − d / 24)   │
│ β ≤ 1                    │                        │                               │
│ β ≤ 1                    │ Run-to-Failure         │ brak (niezależnie od krzywej  │
│                          │                        │ kosztu)                       │
│ β > 1                    │ Preventive Maintenance │ T* z optymalizacji            │
└──────────────────────────┴────────────────────────┴───────────────────────────────┘

2) determine_maintenance_strategy: macierz RCM bez danych o uszkodzeniach,
   na podstawie krytyczności zasobu, przewidywalności uszkodzeń i kosztu awarii:
┌──────────────────┬───────────────────────┬─────────────────────────────┐
│ Przewidywalne?   │ Warunek               │ Strategia                   │
├──────────────────┼───────────────────────┼─────────────────────────────┤
│ tak              │ krytyczność High      │ Predictive Maintenance      │
│ tak              │ koszt awarii > 5000   │ Preventive Maintenance      │
│ tak              │ pozostałe             │ Condition-Based Maintenance │
│ nie              │ krytyczność High      │ Redesign                    │
│ nie              │ koszt awarii > 3000   │ Preventive Maintenance      │
│ nie              │ pozostałe             │ Run-to-Failure              │
└──────────────────┴───────────────────────┴─────────────────────────────┘
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .errors import InvalidArgumentError
from .optimization import MaintenanceOptimizationResult
from .weibull import FailurePattern, WeibullModel

# ---------------------------------------------------------------------------
# Stałe tablicy decyzyjnej
# ---------------------------------------------------------------------------

ZERO_DOWNTIME_MTBF_FACTOR: float = 0.5
CRITICAL_DOWNTIME_HOURS: float = 24.0
MIN_DOWNTIME_MTBF_FACTOR: float = 0.6

PREDICTABLE_COST_THRESHOLD: float = 5000.0
UNPREDICTABLE_COST_THRESHOLD: float = 3000.0


class MaintenanceStrategy(str, Enum):
    RUN_TO_FAILURE = "Run-to-Failure"
    PREVENTIVE = "Preventive Maintenance"
    PREDICTIVE = "Predictive Maintenance"
    CONDITION_BASED = "Condition-Based Maintenance"
    REDESIGN = "Redesign"


class DecisionRule(str, Enum):
    """Wiersz tablicy decyzyjnej, który rozstrzygnął o strategii."""
    ZERO_DOWNTIME = "zero-downtime"
    LIMITED_DOWNTIME = "limited-downtime"
    BETA = "beta"


class AssetCriticality(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# ---------------------------------------------------------------------------
# Wyniki
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MaintenanceRecommendation:
    """Zalecana strategia wraz z uzasadnieniem."""

    strategy: MaintenanceStrategy
    interval: float | None
    pattern: FailurePattern
    reason: str
    rule: DecisionRule = DecisionRule.BETA

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "interval": self.interval,
            "pattern": self.pattern.value,
            "reason": self.reason,
            "rule": self.rule.value,
        }


@dataclass(frozen=True)
class RCMStrategyResult:
    """Strategia z macierzy RCM oraz lista zaleceń dla zadań utrzymaniowych."""

    strategy: MaintenanceStrategy
    task_recommendations: tuple[str, ...]
    asset_criticality: AssetCriticality
    is_predictable: bool
    cost_of_failure: float

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "task_recommendations": list(self.task_recommendations),
            "analysis_inputs": {
                "asset_criticality": self.asset_criticality.value,
                "is_predictable": self.is_predictable,
                "cost_of_failure": self.cost_of_failure,
            },
        }


# ---------------------------------------------------------------------------
# recommend_strategy
# ---------------------------------------------------------------------------


def _downtime_recommendation(
    model: WeibullModel,
    max_downtime: float,
) -> MaintenanceRecommendation | None:
    """Wiersze tablicy wynikające z ograniczenia przestoju; None gdy nie mają zastosowania."""
    unit = model.time_unit.value

    if max_downtime == 0:
        interval = model.mtbf() * ZERO_DOWNTIME_MTBF_FACTOR
        return MaintenanceRecommendation(
            strategy=MaintenanceStrategy.PREVENTIVE,
            interval=interval,
            pattern=model.pattern,
            reason=(
                f"Zerowa tolerancja przestoju: PM przed uszkodzeniem co "
                f"{interval:.4g} [{unit}] (0.5 · MTBF), niezależnie od "
                f"β = {model.beta:.3f}."
            ),
            rule=DecisionRule.ZERO_DOWNTIME,
        )

    if max_downtime <= CRITICAL_DOWNTIME_HOURS and model.beta <= 1.0:
        factor = max(MIN_DOWNTIME_MTBF_FACTOR, 1.0 - max_downtime / CRITICAL_DOWNTIME_HOURS)
        interval = model.mtbf() * factor
        return MaintenanceRecommendation(
            strategy=MaintenanceStrategy.PREVENTIVE,
            interval=interval,
            pattern=model.pattern,
            reason=(
                f"Dopuszczalny przestój {max_downtime:g} h ≤ {CRITICAL_DOWNTIME_HOURS:g} h "
                f"przy β = {model.beta:.3f} ≤ 1: PM co {interval:.4g} [{unit}] "
                f"(MTBF · {factor:.3g})."
            ),
            rule=DecisionRule.LIMITED_DOWNTIME,
        )

    return None


def recommend_strategy(
    model: WeibullModel,
    result: MaintenanceOptimizationResult,
) -> MaintenanceRecommendation:
    """
    Przypisuje strategię utrzymania wg tablicy decyzyjnej z nagłówka modułu.

    Parametry
    ----------
    model : WeibullModel
        Model, dla którego przeprowadzono optymalizację.
    result : MaintenanceOptimizationResult
        Wynik optimize() dla tego modelu; result.max_downtime [h] uruchamia
        wiersze tablicy związane z przestojem.

    Zwraca
    -------
    MaintenanceRecommendation

    Rzuca
    ------
    DomainError
        Gdy wiersz przestoju wymaga MTBF, a Γ(1 + 1/β) przekracza zakres.
    """
    if result.max_downtime is not None:
        recommendation = _downtime_recommendation(model, result.max_downtime)
        if recommendation is not None:
            return recommendation

    pattern = model.pattern

    if model.beta <= 1.0:
        reason = (
            f"β = {model.beta:.3f} ≤ 1 ({pattern.value}): uszkodzenia wczesne lub "
            f"losowe, konserwacja zapobiegawcza nie obniża ryzyka uszkodzenia."
        )
        strategy = MaintenanceStrategy.RUN_TO_FAILURE
        interval = None
    else:
        reason = (
            f"β = {model.beta:.3f} > 1 ({pattern.value}): intensywność uszkodzeń "
            f"rośnie z wiekiem, PM co {result.optimal_interval:.4g} "
            f"[{model.time_unit.value}] minimalizuje koszt jednostkowy."
        )
        if result.cost_curve and result.optimal_interval >= result.cost_curve[-1].interval:
            reason += " Optimum leży na granicy horyzontu, PM opłaca się dopiero przy dłuższym horyzoncie."
        strategy = MaintenanceStrategy.PREVENTIVE
        interval = result.optimal_interval

    if result.max_downtime is not None:
        reason += f" Dopuszczalny przestój: {result.max_downtime:g} h."

    return MaintenanceRecommendation(
        strategy=strategy,
        interval=interval,
        pattern=pattern,
        reason=reason,
    )


# ---------------------------------------------------------------------------
# determine_maintenance_strategy (macierz RCM)
# ---------------------------------------------------------------------------

_STRATEGY_TASKS: dict[MaintenanceStrategy, tuple[str, ...]] = {
    MaintenanceStrategy.PREDICTIVE: (
        "Wdrożyć monitorowanie stanu w celu wykrywania wczesnych oznak uszkodzenia",
        "Określić progi kluczowych parametrów wskazujących na degradację",
        "Opracować procedury reakcji dla różnych poziomów degradacji",
        "Przeszkolić personel w zakresie technik predykcyjnych",
    ),
    MaintenanceStrategy.CONDITION_BASED: (
        "Wdrożyć podstawowe monitorowanie stanu",
        "Ustalić alarmy progowe uruchamiające działania utrzymaniowe",
        "Opracować procedury reakcji na alarmy",
    ),
    MaintenanceStrategy.REDESIGN: (
        "Przeanalizować rodzaje uszkodzeń pod kątem zmian konstrukcyjnych",
        "Rozważyć redundancję w celu poprawy niezawodności",
        "Ocenić alternatywne technologie lub materiały",
        "Przeprowadzić analizę inżynierską przyczyn źródłowych uszkodzeń",
    ),
    MaintenanceStrategy.RUN_TO_FAILURE: (
        "Zapewnić dostępność części zamiennych do szybkiej wymiany",
        "Udokumentować procedury naprawcze w celu skrócenia przestoju",
        "Przeszkolić personel w szybkiej reakcji i naprawie",
    ),
}

_PREVENTIVE_TASKS_PREDICTABLE: tuple[str, ...] = (
    "Ustalić interwały konserwacji oparte na czasie",
    "Opracować szczegółowe procedury dla każdego zadania",
    "Przygotować listę kontrolną czynności konserwacji zapobiegawczej",
)

_PREVENTIVE_TASKS_UNPREDICTABLE: tuple[str, ...] = (
    "Ustalić zachowawcze interwały konserwacji oparte na czasie",
    "Udokumentować szczegółowe procedury konserwacji",
    "Monitorować skuteczność i korygować interwały na podstawie wyników",
)

# (słowa kluczowe, zalecenia); dopasowanie bez rozróżniania wielkości liter
_PRACTICE_TASKS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("reactive", "run to fail"), (
        "Przejść od utrzymania reaktywnego do planowanego",
        "Rejestrować wszystkie uszkodzenia w celu budowy historii do analiz",
    )),
)
_FAILURE_MODE_TASKS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("wear",), (
        "Wdrożyć program smarowania ograniczający uszkodzenia zużyciowe",
        "Rozważyć obróbkę powierzchniową lub utwardzanie zwiększające odporność na zużycie",
    )),
)
_CONSEQUENCE_TASKS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("safety",), (
        "Opracować procedury awaryjne dla uszkodzeń krytycznych dla bezpieczeństwa",
        "Wdrożyć dodatkowe zabezpieczenia i monitorowanie",
    )),
)


def _matching_tasks(texts: Iterable[str], rules) -> list[str]:
    lowered = [str(text).lower() for text in texts]
    tasks: list[str] = []
    for keywords, recommendations in rules:
        if any(keyword in text for text in lowered for keyword in keywords):
            tasks.extend(recommendations)
    return tasks


def determine_maintenance_strategy(
    asset_criticality: AssetCriticality | str,
    is_predictable: bool,
    cost_of_failure: float,
    failure_mode_descriptions: Iterable[str] = (),
    failure_consequences: Iterable[str] = (),
    current_maintenance_practices: str = "",
) -> RCMStrategyResult:
    """
    Wybiera strategię utrzymania z macierzy RCM (druga tablica w nagłówku modułu).

    Parametry
    ----------
    asset_criticality : AssetCriticality | str
        "High", "Medium" lub "Low".
    is_predictable : bool
        Czy uszkodzenia dają się przewidzieć (np. mierzalna degradacja).
    cost_of_failure : float
        Koszt pojedynczej awarii (≥ 0).
    failure_mode_descriptions, failure_consequences : Iterable[str]
        Opisy rodzajów i skutków uszkodzeń; słowa "wear" / "safety" dodają zalecenia.
    current_maintenance_practices : str
        Opis obecnej praktyki; "reactive" / "run to fail" dodają zalecenia.

    Rzuca
    ------
    InvalidArgumentError
        Gdy krytyczność jest nieznana lub koszt awarii ujemny / nieliczbowy.

    Przykład
    --------
    >>> determine_maintenance_strategy("High", True, 10_000).strategy.value
    'Predictive Maintenance'
    """
    try:
        criticality = AssetCriticality(asset_criticality)
    except ValueError:
        valid = ", ".join(c.value for c in AssetCriticality)
        raise InvalidArgumentError(
            f"Krytyczność zasobu musi być jedną z: {valid}, otrzymano {asset_criticality!r}."
        ) from None
    try:
        cost = float(cost_of_failure)
    except (TypeError, ValueError):
        raise InvalidArgumentError(
            f"Koszt awarii musi być liczbą, otrzymano {cost_of_failure!r}."
        ) from None
    if not math.isfinite(cost) or cost < 0:
        raise InvalidArgumentError(f"Koszt awarii musi być nieujemny, otrzymano {cost}.")

    high = criticality is AssetCriticality.HIGH
    if is_predictable:
        if high:
            strategy = MaintenanceStrategy.PREDICTIVE
        elif cost > PREDICTABLE_COST_THRESHOLD:
            strategy = MaintenanceStrategy.PREVENTIVE
        else:
            strategy = MaintenanceStrategy.CONDITION_BASED
    else:
        if high:
            strategy = MaintenanceStrategy.REDESIGN
        elif cost > UNPREDICTABLE_COST_THRESHOLD:
            strategy = MaintenanceStrategy.PREVENTIVE
        else:
            strategy = MaintenanceStrategy.RUN_TO_FAILURE

    if strategy is MaintenanceStrategy.PREVENTIVE:
        tasks = list(_PREVENTIVE_TASKS_PREDICTABLE if is_predictable else _PREVENTIVE_TASKS_UNPREDICTABLE)
    else:
        tasks = list(_STRATEGY_TASKS[strategy])

    tasks += _matching_tasks([current_maintenance_practices or ""], _PRACTICE_TASKS)
    tasks += _matching_tasks(failure_mode_descriptions, _FAILURE_MODE_TASKS)
    tasks += _matching_tasks(failure_consequences, _CONSEQUENCE_TASKS)

    return RCMStrategyResult(
        strategy=strategy,
        task_recommendations=tuple(tasks),
        asset_criticality=criticality,
        is_predictable=bool(is_predictable),
        cost_of_failure=cost,
    )

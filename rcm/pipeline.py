"""
pipeline.py
-----------
Zintegrowany pipeline analizy niezawodności jednego zasobu oraz cztery
operacje udostępniane warstwie zewnętrznej (HTTP / UI):

    fit_weibull          – rekordy uszkodzeń → WeibullFitResult
    analyze_weibull      – parametry → krzywe R(t), h(t), F(t) + MTBF
    optimize_maintenance – model + koszty → optymalny interwał PM
    simulate             – model + parametry symulacji → SimulationResult

Kroki pipeline'u:

    1. Extract Sample      – rekordy historii → FailureSample (jedna baza czasu)
    2. Fit                 – regresja rang medianowych → (β, η, R²)
                             (fallback: parametry z rekordu zasobu)
    3. Analysis            – krzywe i MTBF
    4. Optimize            – siatka interwałów PM, minimum kosztu jednostkowego
    5. Recommend           – etykieta strategii (tablica decyzyjna)
    6. Simulate            – Monte Carlo (opcjonalnie)

Wymagane dane wejściowe
-----------------------
failure_records : tbf_days i/lub failure_date (baza dni) albo
                  operating_hours_at_failure (baza godzin)
asset           : weibull_beta, weibull_eta, time_unit (opcjonalny)

Silnik nie wykonuje I/O — dane dostarcza FailureDataSource.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Protocol

import pandas as pd

from .errors import DegenerateFitError, InsufficientDataError
from .fitting import (
    MIN_FIT_SAMPLES,
    FailureSample,
    TimeBasis,
    WeibullFitResult,
    analyze_failure_mechanisms,
    extract_failure_sample,
    fit,
)
from .optimization import (
    CostMethod,
    CostParameters,
    MaintenanceOptimizationResult,
    optimize,
)
from .policy import MaintenanceRecommendation, recommend_strategy
from .simulation import (
    CancellationToken,
    SimulationParameters,
    SimulationResult,
    run_simulation,
)
from .weibull import (
    DEFAULT_CURVE_POINTS,
    Curve,
    FailurePattern,
    TimeUnit,
    WeibullModel,
    WeibullParameters,
)

logger = logging.getLogger(__name__)

_REQUIRED_ASSET = {"weibull_beta", "weibull_eta"}


# ---------------------------------------------------------------------------
# Warstwa danych (zewnętrzna)
# ---------------------------------------------------------------------------


class FailureDataSource(Protocol):
    """Źródło danych: rekordy uszkodzeń i rekord zasobu dla asset_id."""

    def failure_records(self, asset_id: Any) -> pd.DataFrame: ...

    def asset_record(self, asset_id: Any) -> Mapping[str, Any] | None: ...


def model_from_asset(asset: Mapping[str, Any]) -> WeibullModel:
    """
    Buduje domyślny WeibullModel z rekordu zasobu.

    Rzuca
    ------
    KeyError
        Gdy rekord nie zawiera weibull_beta / weibull_eta.
    InvalidArgumentError
        Gdy parametry są poza dziedziną.
    """
    missing = _REQUIRED_ASSET - set(asset.keys())
    if missing:
        raise KeyError(
            f"Rekord zasobu nie zawiera pól: {missing}. "
            f"Dostępne pola: {set(asset.keys())}"
        )
    return WeibullModel.from_values(
        beta=asset["weibull_beta"],
        eta=asset["weibull_eta"],
        time_unit=asset.get("time_unit") or TimeUnit.HOURS,
    )


# ---------------------------------------------------------------------------
# Wynik analizy Weibulla
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeibullAnalysis:
    """Krzywe i wskaźniki dla zadanych parametrów Weibulla."""

    model: WeibullModel
    reliability_curve: Curve
    failure_rate_curve: Curve
    cumulative_failure_probability: Curve
    mtbf: float

    @property
    def pattern(self) -> FailurePattern:
        return self.model.pattern

    def to_frame(self) -> pd.DataFrame:
        """Jedna tabela [time, reliability, failure_rate, probability]."""
        frame = self.reliability_curve.to_frame()
        frame["failure_rate"] = self.failure_rate_curve.to_frame()["failure_rate"]
        frame["probability"] = self.cumulative_failure_probability.to_frame()["probability"]
        return frame

    def to_dict(self) -> dict:
        return {
            "beta": self.model.beta,
            "eta": self.model.eta,
            "time_unit": self.model.time_unit.value,
            "pattern": self.pattern.value,
            "mtbf": self.mtbf,
            "b10_life": self.model.b_life(10),
        }


# ---------------------------------------------------------------------------
# Operacje zewnętrzne
# ---------------------------------------------------------------------------


def fit_weibull(
    records: pd.DataFrame | Iterable[float],
    use_operating_hours: bool = False,
    *,
    min_count: int = MIN_FIT_SAMPLES,
    **column_overrides: str,
) -> WeibullFitResult:
    """
    Dopasowuje rozkład Weibulla do historii uszkodzeń.

    Parametry
    ----------
    records : pd.DataFrame lub iterowalne float
        Tabela rekordów (patrz extract_failure_sample) albo gotowe czasy.
    use_operating_hours : bool
        Wybór bazy czasu: godziny pracy (True) albo TBF w dniach (False).
    min_count : int
        Minimalna liczba próbek (domyślnie 3).
    **column_overrides
        Nazwy kolumn przekazywane do extract_failure_sample.
    """
    if isinstance(records, pd.DataFrame):
        sample = extract_failure_sample(records, use_operating_hours, **column_overrides)
    else:
        basis = TimeBasis.OPERATING_HOURS if use_operating_hours else TimeBasis.CALENDAR_DAYS
        sample = FailureSample(times=tuple(records), basis=basis)
    return fit(sample, min_count=min_count)


def analyze_weibull(
    params: WeibullParameters | WeibullModel,
    time_horizon: float | None = None,
    *,
    points: int = DEFAULT_CURVE_POINTS,
) -> WeibullAnalysis:
    """
    Krzywe R(t), h(t), F(t) na [0, time_horizon] oraz MTBF.

    Domyślny horyzont (time_horizon=None) to 2·η.
    """
    model = params if isinstance(params, WeibullModel) else WeibullModel(params)
    horizon = 2.0 * model.eta if time_horizon is None else time_horizon
    return WeibullAnalysis(
        model=model,
        reliability_curve=model.reliability_curve(horizon, points),
        failure_rate_curve=model.failure_rate_curve(horizon, points),
        cumulative_failure_probability=model.cdf_curve(horizon, points),
        mtbf=model.mtbf(),
    )


def optimize_maintenance(
    model: WeibullModel,
    cost_params: CostParameters,
    *,
    method: CostMethod | str = CostMethod.SIMPLE,
) -> MaintenanceOptimizationResult:
    """Optymalizacja interwału PM dla zgrupowanych parametrów kosztowych."""
    return optimize(
        model,
        pm_cost=cost_params.pm_cost,
        cm_cost=cost_params.cm_cost,
        time_horizon=cost_params.time_horizon,
        target_reliability=cost_params.target_reliability,
        max_downtime=cost_params.max_downtime,
        grid_resolution=cost_params.grid_resolution,
        method=method,
    )


def simulate(
    model: WeibullModel,
    sim_params: SimulationParameters,
    *,
    deadline: float | None = None,
    cancel_token: CancellationToken | None = None,
) -> SimulationResult:
    """Symulacja Monte Carlo dla zgrupowanych parametrów symulacji."""
    return run_simulation(model, sim_params, deadline=deadline, cancel_token=cancel_token)


# ---------------------------------------------------------------------------
# Klasa główna
# ---------------------------------------------------------------------------


class ReliabilityPipeline:
    """
    Pipeline analizy niezawodności jednego zasobu.

    Parametry
    ----------
    failure_records : pd.DataFrame
        Rekordy historii uszkodzeń zasobu.
    cost_params : CostParameters
        Parametry optymalizacji kosztowej.
    sim_params : SimulationParameters, opcjonalnie
        Parametry symulacji; None → krok symulacji pomijany.
    asset : Mapping, opcjonalnie
        Rekord zasobu (weibull_beta, weibull_eta, time_unit) — parametry
        zapasowe, gdy dopasowanie z danych jest niemożliwe.
    use_operating_hours : bool
        Baza czasu próbki (patrz extract_failure_sample).

    Przykład
    --------
    >>> pipeline = ReliabilityPipeline(records, CostParameters(500, 5000, 2000))
    >>> summary = pipeline.run()
    >>> print(summary["recommendation"]["strategy"])
    """

    def __init__(
        self,
        failure_records: pd.DataFrame,
        cost_params: CostParameters,
        sim_params: SimulationParameters | None = None,
        asset: Mapping[str, Any] | None = None,
        *,
        use_operating_hours: bool = False,
        min_count: int = MIN_FIT_SAMPLES,
        curve_points: int = DEFAULT_CURVE_POINTS,
        cost_method: CostMethod | str = CostMethod.SIMPLE,
    ) -> None:
        self._records = failure_records.copy()
        self._cost_params = cost_params
        self._sim_params = sim_params
        self._asset = dict(asset) if asset is not None else None

        self._use_operating_hours = use_operating_hours
        self._min_count = min_count
        self._curve_points = curve_points
        self._cost_method = CostMethod(cost_method)

        # Wyniki pośrednie (dostępne po run())
        self._ran = False
        self._sample: FailureSample | None = None
        self._fit_result: WeibullFitResult | None = None
        self._model: WeibullModel | None = None
        self._model_source: str | None = None
        self._analysis: WeibullAnalysis | None = None
        self._optimization: MaintenanceOptimizationResult | None = None
        self._recommendation: MaintenanceRecommendation | None = None
        self._simulation: SimulationResult | None = None

    @classmethod
    def from_source(
        cls,
        source: FailureDataSource,
        asset_id: Any,
        cost_params: CostParameters,
        sim_params: SimulationParameters | None = None,
        **kwargs: Any,
    ) -> ReliabilityPipeline:
        """Tworzy pipeline, czytając rekordy i zasób przez FailureDataSource."""
        return cls(
            source.failure_records(asset_id),
            cost_params,
            sim_params,
            source.asset_record(asset_id),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Dostęp do wyników pośrednich
    # ------------------------------------------------------------------

    def _require_run(self) -> None:
        if not self._ran:
            raise RuntimeError("Wywołaj najpierw run().")

    @property
    def sample(self) -> FailureSample:
        """Próbka czasów uszkodzeń po filtracji rekordów."""
        self._require_run()
        return self._sample

    @property
    def fit_result(self) -> WeibullFitResult | None:
        """Wynik dopasowania; None, gdy użyto parametrów zasobu."""
        self._require_run()
        return self._fit_result

    @property
    def model(self) -> WeibullModel:
        self._require_run()
        return self._model

    @property
    def model_source(self) -> str:
        """'fit' albo 'asset'."""
        self._require_run()
        return self._model_source

    @property
    def analysis(self) -> WeibullAnalysis:
        self._require_run()
        return self._analysis

    @property
    def optimization(self) -> MaintenanceOptimizationResult:
        self._require_run()
        return self._optimization

    @property
    def recommendation(self) -> MaintenanceRecommendation:
        self._require_run()
        return self._recommendation

    @property
    def simulation(self) -> SimulationResult | None:
        """Wynik symulacji; None, gdy nie podano sim_params."""
        self._require_run()
        return self._simulation

    # ------------------------------------------------------------------
    # Kroki pipeline'u
    # ------------------------------------------------------------------

    def _step1_extract_sample(self) -> FailureSample:
        """Krok 1: rekordy → FailureSample w jednej bazie czasu."""
        return extract_failure_sample(self._records, self._use_operating_hours)

    def _step2_fit(self, sample: FailureSample) -> tuple[WeibullModel, WeibullFitResult | None]:
        """
        Krok 2: dopasowanie MRR.

        Przy zbyt małej lub zdegenerowanej próbce używane są parametry
        z rekordu zasobu (z ostrzeżeniem); bez rekordu zasobu błąd
        dopasowania jest propagowany.
        """
        try:
            result = fit(sample, min_count=self._min_count)
        except (InsufficientDataError, DegenerateFitError) as exc:
            if self._asset is None:
                raise
            warnings.warn(
                f"Dopasowanie niemożliwe ({exc}). Użyto parametrów z rekordu zasobu.",
                UserWarning,
                stacklevel=3,
            )
            return model_from_asset(self._asset), None
        return result.to_model(sample.basis.time_unit), result

    def _step3_analysis(self, model: WeibullModel) -> WeibullAnalysis:
        """Krok 3: krzywe na horyzoncie optymalizacji."""
        return analyze_weibull(
            model, self._cost_params.time_horizon, points=self._curve_points
        )

    def _step4_optimize(self, model: WeibullModel) -> MaintenanceOptimizationResult:
        """Krok 4: siatka interwałów PM."""
        return optimize_maintenance(model, self._cost_params, method=self._cost_method)

    def _step5_recommend(
        self, model: WeibullModel, result: MaintenanceOptimizationResult
    ) -> MaintenanceRecommendation:
        """Krok 5: etykieta strategii — osobno od optymalizatora."""
        return recommend_strategy(model, result)

    def _step6_simulate(self, model: WeibullModel) -> SimulationResult | None:
        """Krok 6: Monte Carlo (niezależny szacunek do porównania z krokiem 4)."""
        if self._sim_params is None:
            return None
        return run_simulation(model, self._sim_params)

    # ------------------------------------------------------------------
    # Główna metoda
    # ------------------------------------------------------------------

    def run(self) -> dict[str, Any]:
        """
        Uruchamia pełny pipeline.

        Zwraca
        -------
        dict
            - basis, n_samples, model_source
            - fit (dict lub None), analysis (dict)
            - optimization (dict), recommendation (dict)
            - simulation (dict lub None)
            - failure_mechanisms (dict mechanizm → liczność)

        Raises
        ------
        KeyError
            Gdy brakuje kolumny w rekordach lub pola w rekordzie zasobu.
        InsufficientDataError, DegenerateFitError
            Gdy dopasowanie jest niemożliwe i brak rekordu zasobu.
        """
        sample = self._step1_extract_sample()
        self._sample = sample

        model, fit_result = self._step2_fit(sample)
        self._model = model
        self._fit_result = fit_result
        self._model_source = "fit" if fit_result is not None else "asset"

        self._analysis = self._step3_analysis(model)
        self._optimization = self._step4_optimize(model)
        self._recommendation = self._step5_recommend(model, self._optimization)
        self._simulation = self._step6_simulate(model)
        self._ran = True

        logger.info(
            "Pipeline: model=%s beta=%.4g eta=%.4g strategia=%s",
            self._model_source, model.beta, model.eta,
            self._recommendation.strategy.value,
        )

        return {
            "basis": sample.basis.value,
            "n_samples": len(sample),
            "model_source": self._model_source,
            "fit": fit_result.to_dict() if fit_result is not None else None,
            "analysis": self._analysis.to_dict(),
            "optimization": self._optimization.to_dict(),
            "recommendation": self._recommendation.to_dict(),
            "simulation": self._simulation.to_dict() if self._simulation is not None else None,
            "failure_mechanisms": analyze_failure_mechanisms(self._records),
        }

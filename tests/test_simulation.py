"""
tests/test_simulation.py
------------------------
Unit testy dla modułu rcm.simulation.
Determinizm przy stałym ziarnie, walidacja, histogram, anulowanie i zgodność
z modelem kosztowym odnowy.
"""

import threading
import time

import pytest

import rcm.simulation as simulation
from rcm.errors import InvalidArgumentError, SimulationCancelledError
from rcm.optimization import optimize
from rcm.simulation import (
    MAX_EVENTS_PER_RUN,
    MAX_SIMULATION_RUNS,
    SimulationParameters,
    run_simulation,
    simulate,
)
from rcm.weibull import WeibullModel


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def exponential_model() -> WeibullModel:
    """β = 1, η = 100 → proces Poissona z intensywnością 0.01."""
    return WeibullModel.from_values(beta=1.0, eta=100.0)


@pytest.fixture
def wear_out_model() -> WeibullModel:
    return WeibullModel.from_values(beta=3.0, eta=1000.0)


# ---------------------------------------------------------------------------
# Testy: SimulationParameters
# ---------------------------------------------------------------------------


class TestSimulationParameters:
    @pytest.mark.parametrize(
        "runs", [0, -1, MAX_SIMULATION_RUNS + 1, 2.5, True, "abc", None, float("nan")]
    )
    def test_invalid_run_count_raises(self, runs):
        with pytest.raises(InvalidArgumentError, match="przebiegów"):
            SimulationParameters(time_horizon=100.0, number_of_runs=runs)

    @pytest.mark.parametrize("horizon", [0.0, -5.0, float("nan")])
    def test_invalid_horizon_raises(self, horizon):
        with pytest.raises(InvalidArgumentError):
            SimulationParameters(time_horizon=horizon)

    @pytest.mark.parametrize("interval", [0.0, -10.0])
    def test_invalid_pm_interval_raises(self, interval):
        with pytest.raises(InvalidArgumentError, match="PM"):
            SimulationParameters(time_horizon=100.0, pm_interval=interval)

    def test_negative_cost_raises(self):
        with pytest.raises(InvalidArgumentError, match="failure_cost"):
            SimulationParameters(time_horizon=100.0, failure_cost=-1.0)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"time_horizon": "abc"},
            {"time_horizon": None},
            {"pm_interval": "x"},
            {"pm_cost": None},
            {"histogram_bins": "20"},
            {"histogram_bins": 0},
        ],
    )
    def test_non_numeric_values_raise(self, kwargs):
        base = {"time_horizon": 100.0}
        base.update(kwargs)
        with pytest.raises(InvalidArgumentError):
            SimulationParameters(**base)

    def test_pm_interval_too_short_for_horizon_raises(self):
        """1e9 / 1e-3 = 1e12 zdarzeń PM w jednym przebiegu → odrzucone od razu."""
        with pytest.raises(InvalidArgumentError, match="za krótki"):
            SimulationParameters(time_horizon=1e9, pm_interval=1e-3)

    def test_pm_interval_at_event_limit_accepted(self):
        params = SimulationParameters(time_horizon=float(MAX_EVENTS_PER_RUN), pm_interval=1.0)
        assert params.pm_interval == 1.0

    def test_max_runs_accepted(self):
        params = SimulationParameters(time_horizon=1.0, number_of_runs=MAX_SIMULATION_RUNS)
        assert params.number_of_runs == MAX_SIMULATION_RUNS


# ---------------------------------------------------------------------------
# Testy: determinizm
# ---------------------------------------------------------------------------


class TestDeterminism:
    def test_same_seed_same_result(self, exponential_model):
        a = simulate(exponential_model, 300, 1000.0, failure_cost=10, rng_seed=42)
        b = simulate(exponential_model, 300, 1000.0, failure_cost=10, rng_seed=42)
        assert a == b

    def test_different_seed_different_result(self, exponential_model):
        a = simulate(exponential_model, 300, 1000.0, failure_cost=10, rng_seed=1)
        b = simulate(exponential_model, 300, 1000.0, failure_cost=10, rng_seed=2)
        assert a.histogram != b.histogram

    def test_seed_reported(self, exponential_model):
        result = simulate(exponential_model, 10, 100.0, rng_seed=7)
        assert result.rng_seed == 7
        assert result.number_of_runs == 10


# ---------------------------------------------------------------------------
# Testy: run-to-failure
# ---------------------------------------------------------------------------


class TestRunToFailure:
    def test_exponential_failure_count(self, exponential_model):
        """Proces Poissona: E[N(1000)] = 1000 / 100 = 10."""
        result = simulate(exponential_model, 5000, 1000.0, failure_cost=50, rng_seed=3)
        assert result.average_failures == pytest.approx(10.0, abs=0.5)
        assert result.average_pm_actions == 0.0

    def test_cost_is_failures_times_unit_cost(self, exponential_model):
        result = simulate(exponential_model, 200, 1000.0, failure_cost=50, rng_seed=3)
        assert result.total_cost == pytest.approx(result.average_failures * 50)

    def test_histogram_covers_horizon(self, exponential_model):
        result = simulate(exponential_model, 200, 1000.0, rng_seed=5)
        assert len(result.histogram) == 20
        assert result.histogram[0].bin_start == 0.0
        assert result.histogram[-1].bin_end == pytest.approx(1000.0)
        assert result.histogram[1].bin_start == pytest.approx(50.0)

    def test_histogram_counts_all_failures(self, exponential_model):
        result = simulate(exponential_model, 250, 1000.0, rng_seed=11)
        total = sum(b.count for b in result.histogram)
        assert total == round(result.average_failures * result.number_of_runs)

    def test_custom_histogram_bins(self, exponential_model):
        result = simulate(exponential_model, 50, 1000.0, rng_seed=5, histogram_bins=8)
        assert len(result.histogram) == 8


# ---------------------------------------------------------------------------
# Testy: PM wg wieku
# ---------------------------------------------------------------------------


class TestPreventiveMaintenance:
    def test_short_interval_prevents_failures(self, wear_out_model):
        """R(200) ≈ 0.992 → prawie każdy cykl kończy się PM (200, 400, 600, 800)."""
        result = simulate(
            wear_out_model, 1000, 1000.0, pm_interval=200.0, pm_cost=10, failure_cost=100, rng_seed=9
        )
        assert result.average_failures < 0.2
        assert 3.5 < result.average_pm_actions <= 4.0

    def test_interval_beyond_horizon_means_no_pm(self, wear_out_model):
        result = simulate(wear_out_model, 200, 1000.0, pm_interval=5000.0, pm_cost=10, rng_seed=9)
        assert result.average_pm_actions == 0.0

    def test_cost_rate_matches_renewal_optimum(self):
        """Symulacja przy T* daje koszt jednostkowy zgodny z modelem odnowy."""
        model = WeibullModel.from_values(beta=2.5, eta=1000.0)
        optimum = optimize(model, pm_cost=100, cm_cost=1000, time_horizon=2000, method="renewal")
        result = simulate(
            model,
            300,
            50_000.0,
            pm_interval=optimum.optimal_interval,
            pm_cost=100,
            failure_cost=1000,
            rng_seed=2024,
        )
        assert result.cost_rate == pytest.approx(optimum.optimal_cost, rel=0.05)

    def test_to_frame_and_dict(self, wear_out_model):
        result = simulate(wear_out_model, 50, 3000.0, pm_interval=500.0, rng_seed=1)
        df = result.to_frame()
        assert list(df.columns) == ["bin_start", "bin_end", "count"]
        assert len(df) == 20
        assert set(result.to_dict()) >= {"total_cost", "average_failures", "cost_rate"}


# ---------------------------------------------------------------------------
# Testy: anulowanie
# ---------------------------------------------------------------------------


class TestCancellation:
    def test_cancel_token(self, exponential_model):
        token = threading.Event()
        token.set()
        with pytest.raises(SimulationCancelledError) as exc_info:
            simulate(exponential_model, 100, 1000.0, rng_seed=1, cancel_token=token)
        assert exc_info.value.completed_runs == 0
        assert exc_info.value.requested_runs == 100

    def test_past_deadline(self, exponential_model):
        params = SimulationParameters(time_horizon=1000.0, number_of_runs=100, rng_seed=1)
        with pytest.raises(SimulationCancelledError):
            run_simulation(exponential_model, params, deadline=time.monotonic() - 1.0)

    def test_unset_token_completes(self, exponential_model):
        result = simulate(
            exponential_model, 20, 1000.0, rng_seed=1, cancel_token=threading.Event()
        )
        assert result.number_of_runs == 20


# ---------------------------------------------------------------------------
# Testy: limit zdarzeń w przebiegu
# ---------------------------------------------------------------------------


class TestEventLimit:
    def test_run_to_failure_exceeding_limit_raises(self, exponential_model, monkeypatch):
        """Małe η względem horyzontu: przebieg przerwany po MAX_EVENTS_PER_RUN zdarzeniach."""
        monkeypatch.setattr(simulation, "MAX_EVENTS_PER_RUN", 50)
        with pytest.raises(InvalidArgumentError, match="limit"):
            simulate(exponential_model, 5, 1_000_000.0, rng_seed=1)

    def test_within_limit_completes(self, exponential_model, monkeypatch):
        monkeypatch.setattr(simulation, "MAX_EVENTS_PER_RUN", 1000)
        result = simulate(exponential_model, 5, 1000.0, rng_seed=1)
        assert result.average_failures < 1000

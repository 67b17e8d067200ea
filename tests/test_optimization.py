"""
tests/test_optimization.py
--------------------------
Unit testy dla modułu rcm.optimization.
Siatka interwałów PM, przypadki brzegowe kosztów, remisy i metoda odnowy.
"""

import numpy as np
import pytest

import rcm.optimization as optimization
from rcm.errors import InvalidArgumentError
from rcm.optimization import (
    CostMethod,
    CostParameters,
    cost_rate,
    optimize,
    renewal_cost_rate,
)
from rcm.weibull import WeibullModel


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def wear_out_model() -> WeibullModel:
    return WeibullModel.from_values(beta=2.5, eta=1000.0)


# ---------------------------------------------------------------------------
# Testy: CostParameters
# ---------------------------------------------------------------------------


class TestCostParameters:
    def test_defaults(self):
        params = CostParameters(pm_cost=100, cm_cost=1000, time_horizon=2000)
        assert params.target_reliability == 0.9
        assert params.grid_resolution == 200
        assert params.max_downtime is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"pm_cost": -1.0},
            {"cm_cost": 0.0},
            {"time_horizon": 0.0},
            {"time_horizon": float("inf")},
            {"target_reliability": 1.0},
            {"target_reliability": 0.0},
            {"max_downtime": -2.0},
            {"grid_resolution": 1},
            {"grid_resolution": 10.5},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        base = {"pm_cost": 100.0, "cm_cost": 1000.0, "time_horizon": 2000.0}
        base.update(kwargs)
        with pytest.raises(InvalidArgumentError):
            CostParameters(**base)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"grid_resolution": "x"},
            {"grid_resolution": None},
            {"grid_resolution": float("nan")},
            {"pm_cost": "abc"},
            {"time_horizon": None},
            {"target_reliability": float("nan")},
        ],
    )
    def test_non_numeric_values_raise(self, kwargs):
        """Wartości nieliczbowe dają InvalidArgumentError, nie TypeError/ValueError."""
        base = {"pm_cost": 100.0, "cm_cost": 1000.0, "time_horizon": 2000.0}
        base.update(kwargs)
        with pytest.raises(InvalidArgumentError):
            CostParameters(**base)

    def test_numbers_normalised(self):
        params = CostParameters(pm_cost=100, cm_cost=1000, time_horizon=2000, grid_resolution=50.0)
        assert isinstance(params.pm_cost, float)
        assert params.grid_resolution == 50
        assert isinstance(params.grid_resolution, int)

    def test_zero_pm_cost_allowed(self):
        assert CostParameters(pm_cost=0.0, cm_cost=1.0, time_horizon=1.0).pm_cost == 0.0


# ---------------------------------------------------------------------------
# Testy: funkcje kosztu
# ---------------------------------------------------------------------------


class TestCostRate:
    def test_simple_formula(self, wear_out_model):
        r = wear_out_model.reliability(400.0)
        expected = (100 * r + 1000 * (1 - r)) / 400.0
        assert cost_rate(400.0, wear_out_model, 100, 1000) == pytest.approx(expected)

    def test_renewal_exponential_closed_form(self):
        """β = 1: ∫R = η·(1 − R(T)), więc koszt ma postać analityczną."""
        model = WeibullModel.from_values(beta=1.0, eta=500.0)
        t = 300.0
        r = np.exp(-t / 500.0)
        expected = (50 * r + 800 * (1 - r)) / (500.0 * (1 - r))
        assert renewal_cost_rate(t, model, 50, 800) == pytest.approx(expected, rel=1e-6)

    def test_non_positive_interval_raises(self, wear_out_model):
        with pytest.raises(InvalidArgumentError):
            cost_rate(0.0, wear_out_model, 100, 1000)


# ---------------------------------------------------------------------------
# Testy: optimize
# ---------------------------------------------------------------------------


class TestOptimize:
    def test_interior_optimum_for_wear_out(self, wear_out_model):
        result = optimize(wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=2000)
        assert 0 < result.optimal_interval < 1000
        assert result.optimal_cost == pytest.approx(min(p.cost for p in result.cost_curve))
        assert result.method is CostMethod.SIMPLE

    def test_optimum_matches_point_cost(self, wear_out_model):
        result = optimize(wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=2000)
        assert result.optimal_cost == pytest.approx(
            cost_rate(result.optimal_interval, wear_out_model, 100, 1000)
        )

    @pytest.mark.parametrize("pm_cost", [1000.0, 5000.0])
    def test_pm_not_cheaper_returns_horizon(self, wear_out_model, pm_cost):
        result = optimize(wear_out_model, pm_cost=pm_cost, cm_cost=1000, time_horizon=1500)
        assert result.optimal_interval == 1500.0

    def test_grid_layout(self, wear_out_model):
        result = optimize(
            wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=2000, grid_resolution=50
        )
        intervals = [p.interval for p in result.cost_curve]
        assert len(intervals) == 50
        assert intervals[0] == pytest.approx(40.0)
        assert intervals[-1] == 2000.0
        assert all(b > a for a, b in zip(intervals, intervals[1:]))

    def test_all_costs_finite(self, wear_out_model):
        result = optimize(wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=50_000)
        assert all(np.isfinite(p.cost) for p in result.cost_curve)

    def test_tie_breaks_to_smaller_interval(self, wear_out_model, monkeypatch):
        monkeypatch.setattr(
            optimization, "_grid_costs", lambda model, intervals, *args: np.ones_like(intervals)
        )
        result = optimize(
            wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=1000, grid_resolution=10
        )
        assert result.optimal_interval == pytest.approx(100.0)

    def test_reliability_outputs(self, wear_out_model):
        result = optimize(
            wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=2000, target_reliability=0.9
        )
        assert result.reliability_at_optimum == pytest.approx(
            wear_out_model.reliability(result.optimal_interval)
        )
        assert result.failure_probability_at_optimum == pytest.approx(
            1 - result.reliability_at_optimum
        )
        assert wear_out_model.reliability(result.reliability_based_interval) == pytest.approx(0.9)

    def test_max_downtime_carried(self, wear_out_model):
        result = optimize(
            wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=2000, max_downtime=8
        )
        assert result.max_downtime == 8

    def test_unknown_method_raises(self, wear_out_model):
        with pytest.raises(InvalidArgumentError, match="metoda"):
            optimize(wear_out_model, 100, 1000, 2000, method="magic")

    def test_invalid_cost_raises(self, wear_out_model):
        with pytest.raises(InvalidArgumentError):
            optimize(wear_out_model, pm_cost=100, cm_cost=-1, time_horizon=2000)

    def test_to_frame_and_dict(self, wear_out_model):
        result = optimize(
            wear_out_model, pm_cost=100, cm_cost=1000, time_horizon=2000, grid_resolution=20
        )
        df = result.to_frame()
        assert list(df.columns) == ["interval", "cost"]
        assert len(df) == 20
        assert result.to_dict()["method"] == "simple"


# ---------------------------------------------------------------------------
# Testy: metoda odnowy
# ---------------------------------------------------------------------------


class TestRenewalMethod:
    def test_method_recorded(self, wear_out_model):
        result = optimize(wear_out_model, 100, 1000, 2000, method="renewal")
        assert result.method is CostMethod.RENEWAL

    def test_grid_cost_matches_direct_integration(self, wear_out_model):
        result = optimize(wear_out_model, 100, 1000, 2000, method=CostMethod.RENEWAL)
        direct = renewal_cost_rate(result.optimal_interval, wear_out_model, 100, 1000)
        assert result.optimal_cost == pytest.approx(direct, rel=1e-3)

    def test_renewal_optimum_near_analytic_estimate(self, wear_out_model):
        """Dla małego T: T* ≈ η·[C_PM / (C_CM·(β − 1))]^(1/β) ≈ 338."""
        result = optimize(wear_out_model, 100, 1000, 2000, method="renewal")
        assert 250 < result.optimal_interval < 450

    def test_renewal_cost_never_below_simple(self, wear_out_model):
        """∫₀ᵀ R ≤ T, więc koszt odnowy ≥ koszt prosty w każdym punkcie siatki."""
        simple = optimize(wear_out_model, 100, 1000, 2000)
        renewal = optimize(wear_out_model, 100, 1000, 2000, method="renewal")
        for s, r in zip(simple.cost_curve, renewal.cost_curve):
            assert r.cost >= s.cost * (1 - 1e-9)

    def test_exponential_grid_matches_closed_form(self):
        """β = 1: ∫₀ᵀ R = η·(1 − R(T)) w każdym punkcie siatki."""
        model = WeibullModel.from_values(beta=1.0, eta=500.0)
        result = optimize(model, 50, 800, 1000, grid_resolution=50, method="renewal")
        for point in result.cost_curve:
            r = np.exp(-point.interval / 500.0)
            expected = (50 * r + 800 * (1 - r)) / (500.0 * (1 - r))
            assert point.cost == pytest.approx(expected, rel=1e-4)

"""
tests/test_fitting.py
---------------------
Unit testy dla modułu rcm.fitting.
Regresja rang medianowych, budowa próbki z rekordów i zliczanie mechanizmów.
"""

import numpy as np
import pandas as pd
import pytest

from rcm.errors import DegenerateFitError, InsufficientDataError, InvalidArgumentError
from rcm.fitting import (
    FailureSample,
    TimeBasis,
    analyze_failure_mechanisms,
    extract_failure_sample,
    fit,
    median_rank,
)
from rcm.weibull import FailurePattern, TimeUnit, WeibullModel


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _quantile_sample(beta: float, eta: float, n: int) -> list[float]:
    """Czasy leżące dokładnie na prostej Weibulla dla rang medianowych."""
    model = WeibullModel.from_values(beta, eta)
    return [model.b_life(100 * median_rank(i, n)) for i in range(1, n + 1)]


@pytest.fixture
def records_days() -> pd.DataFrame:
    """Rekordy w bazie dni: dwa TBF do wyliczenia z dat, jeden niepoprawny."""
    return pd.DataFrame({
        "tbf_days": [100.0, None, 250.0, -5.0, None],
        "failure_date": ["2023-06-01", "2024-03-11", "2024-08-01", "2024-09-01", "2023-04-11"],
        "last_failure_date": ["2023-02-21", "2024-01-01", None, None, None],
        "installation_date": ["2022-01-01", "2022-01-01", "2022-01-01", "2022-01-01", "2023-01-01"],
        "operating_hours_at_failure": [1200.0, 800.0, None, 950.0, 400.0],
        "failure_mechanism": ["Wear", "Wear", None, "Corrosion", ""],
    })


# ---------------------------------------------------------------------------
# Testy: ranga medianowa
# ---------------------------------------------------------------------------


class TestMedianRank:
    def test_bernard_approximation(self):
        assert median_rank(1, 5) == pytest.approx(0.7 / 5.4)
        assert median_rank(5, 5) == pytest.approx(4.7 / 5.4)

    def test_ranks_within_unit_interval(self):
        ranks = [median_rank(i, 10) for i in range(1, 11)]
        assert all(0 < r < 1 for r in ranks)
        assert ranks == sorted(ranks)

    @pytest.mark.parametrize("position", [0, 6])
    def test_out_of_range_raises(self, position):
        with pytest.raises(InvalidArgumentError):
            median_rank(position, 5)


# ---------------------------------------------------------------------------
# Testy: fit
# ---------------------------------------------------------------------------


class TestFit:
    def test_recovers_exact_parameters(self):
        """Czasy na prostej Weibulla → dokładne β, η oraz R² = 1."""
        result = fit(_quantile_sample(2.0, 1000.0, 50))
        assert result.beta == pytest.approx(2.0, rel=1e-9)
        assert result.eta == pytest.approx(1000.0, rel=1e-9)
        assert result.r2 == pytest.approx(1.0, abs=1e-12)

    def test_recovers_from_random_sample(self):
        rng = np.random.default_rng(12345)
        times = 1000.0 * rng.weibull(2.0, size=500)
        result = fit(times)
        assert result.beta == pytest.approx(2.0, rel=0.15)
        assert result.eta == pytest.approx(1000.0, rel=0.10)
        assert result.r2 > 0.9

    def test_order_does_not_matter(self):
        times = [105.0, 230.0, 340.0, 470.0, 610.0, 88.0, 720.0]
        assert fit(times) == fit(sorted(times)) == fit(reversed(times))

    def test_data_points_sorted_with_ranks(self):
        result = fit([300.0, 100.0, 200.0])
        assert [p.time for p in result.data_points] == [100.0, 200.0, 300.0]
        assert [p.median_rank for p in result.data_points] == pytest.approx(
            [0.7 / 3.4, 1.7 / 3.4, 2.7 / 3.4]
        )

    def test_adjusted_flags_follow_sorting(self):
        sample = FailureSample(times=(300.0, 100.0, 200.0), adjusted=(True, False, False))
        result = fit(sample)
        assert [p.adjusted for p in result.data_points] == [False, False, True]

    def test_wear_out_pattern(self):
        result = fit(_quantile_sample(3.0, 500.0, 10))
        assert result.pattern is FailurePattern.WEAR_OUT

    def test_too_few_samples_raises(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            fit([100.0, 200.0])
        assert exc_info.value.count == 2
        assert exc_info.value.minimum == 3

    def test_custom_min_count(self):
        with pytest.raises(InsufficientDataError):
            fit(_quantile_sample(2.0, 100.0, 5), min_count=6)

    @pytest.mark.parametrize("min_count", [0, 1, -3, 2.5, None, "3"])
    def test_invalid_min_count_raises(self, min_count):
        """Prosta regresji wymaga co najmniej dwóch punktów, także dla pustej próbki."""
        with pytest.raises(InvalidArgumentError, match="Minimalna liczba próbek"):
            fit([], min_count=min_count)

    def test_min_count_two_fits_two_points(self):
        result = fit([100.0, 300.0], min_count=2)
        assert len(result.data_points) == 2
        assert result.beta > 0

    def test_non_numeric_time_raises(self):
        with pytest.raises(InvalidArgumentError, match="Czas uszkodzenia"):
            fit([100.0, "abc", 300.0])

    def test_identical_times_raise_degenerate(self):
        with pytest.raises(DegenerateFitError, match="identyczne"):
            fit([250.0, 250.0, 250.0, 250.0])

    @pytest.mark.parametrize("bad", [0.0, -10.0, float("nan"), float("inf")])
    def test_non_positive_time_raises(self, bad):
        with pytest.raises(InvalidArgumentError):
            fit([100.0, 200.0, bad])

    def test_to_model_carries_unit(self):
        model = fit(_quantile_sample(2.0, 30.0, 8)).to_model(TimeUnit.DAYS)
        assert model.time_unit is TimeUnit.DAYS
        assert model.eta == pytest.approx(30.0)

    def test_to_frame_and_dict(self):
        result = fit(_quantile_sample(1.5, 200.0, 6))
        df = result.to_frame()
        assert list(df.columns) == ["time", "median_rank", "adjusted"]
        assert len(df) == 6
        summary = result.to_dict()
        assert summary["n"] == 6
        assert summary["pattern"] == "wear-out"


# ---------------------------------------------------------------------------
# Testy: extract_failure_sample
# ---------------------------------------------------------------------------


class TestExtractFailureSample:
    def test_calendar_days_with_derived_tbf(self, records_days):
        with pytest.warns(UserWarning, match="Pominięto 1"):
            sample = extract_failure_sample(records_days)
        assert sample.basis is TimeBasis.CALENDAR_DAYS
        assert sample.times == pytest.approx((100.0, 70.0, 250.0, 100.0))
        assert sample.adjusted == (False, True, False, True)

    def test_operating_hours_basis(self, records_days):
        with pytest.warns(UserWarning):
            sample = extract_failure_sample(records_days, use_operating_hours=True)
        assert sample.basis is TimeBasis.OPERATING_HOURS
        assert sample.times == (1200.0, 800.0, 950.0, 400.0)
        assert not any(sample.adjusted)

    def test_missing_hours_column_raises(self, records_days):
        df = records_days.drop(columns=["operating_hours_at_failure"])
        with pytest.raises(KeyError, match="Brakujące kolumny"):
            extract_failure_sample(df, use_operating_hours=True)

    def test_missing_day_columns_raises(self):
        df = pd.DataFrame({"operating_hours_at_failure": [100.0, 200.0]})
        with pytest.raises(KeyError, match="tbf_days"):
            extract_failure_sample(df)

    def test_censored_records_filtered(self):
        df = pd.DataFrame({
            "tbf_days": [10.0, 20.0, 30.0, 40.0],
            "equipment_status": ["failed", "Censored", "failed", "failed"],
        })
        with pytest.warns(UserWarning, match="ocenzurowanych"):
            sample = extract_failure_sample(df)
        assert sample.times == (10.0, 30.0, 40.0)

    def test_custom_column_names(self):
        df = pd.DataFrame({"hours": [120.0, 340.0, 560.0]})
        sample = extract_failure_sample(df, True, hours_col="hours")
        assert sample.times == (120.0, 340.0, 560.0)

    def test_time_unit_of_basis(self):
        assert TimeBasis.OPERATING_HOURS.time_unit is TimeUnit.HOURS
        assert TimeBasis.CALENDAR_DAYS.time_unit is TimeUnit.DAYS


# ---------------------------------------------------------------------------
# Testy: analyze_failure_mechanisms
# ---------------------------------------------------------------------------


class TestAnalyzeFailureMechanisms:
    def test_counts_with_unknown(self, records_days):
        counts = analyze_failure_mechanisms(records_days)
        assert counts == {"Unknown": 2, "Wear": 2, "Corrosion": 1}

    def test_sorted_by_count_then_name(self, records_days):
        counts = analyze_failure_mechanisms(records_days)
        assert list(counts) == ["Unknown", "Wear", "Corrosion"]

    def test_missing_column_counts_all_as_unknown(self):
        df = pd.DataFrame({"tbf_days": [1.0, 2.0, 3.0]})
        assert analyze_failure_mechanisms(df) == {"Unknown": 3}

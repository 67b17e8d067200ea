"""
fitting.py
----------
Estymacja parametrów Weibulla (β, η) z historii uszkodzeń metodą regresji
rang medianowych (Median Rank Regression, MRR).

Algorytm:
    1. Sortowanie czasów rosnąco: t_1 ≤ t_2 ≤ … ≤ t_n
    2. Ranga medianowa (przybliżenie Bernarda):
           MR_i = (i − 0.3) / (n + 0.4)
    3. Linearyzacja dystrybuanty Weibulla:
           x_i = ln(t_i)
           y_i = ln(−ln(1 − MR_i))
    4. Regresja MNK y = β·x + b:
           β̂ = nachylenie,   η̂ = exp(−b / β̂)
    5. R² = 1 − SS_res / SS_tot

UWAGA: R² liczone jest w przestrzeni zlinearyzowanej (x, y), a NIE w
dziedzinie czasu. Jest to jakość dopasowania prostej na siatce Weibulla.
Wartość ujemna jest poprawnym wynikiem (bardzo słabe dopasowanie), nie błędem.

Próbka (FailureSample) budowana jest z rekordów historii uszkodzeń w jednej,
spójnej bazie czasu: godziny pracy ALBO dni kalendarzowe (TBF) — nigdy
mieszanej w ramach jednego dopasowania.
"""

from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import numpy as np
import pandas as pd

from .errors import (
    DegenerateFitError,
    InsufficientDataError,
    InvalidArgumentError,
    as_count,
    as_float,
)
from .weibull import FailurePattern, TimeUnit, WeibullModel, classify_pattern

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Stałe
# ---------------------------------------------------------------------------

MIN_FIT_SAMPLES: int = 3

_SECONDS_PER_DAY: float = 86_400.0


class TimeBasis(str, Enum):
    """Baza czasu próbki uszkodzeń."""

    OPERATING_HOURS = "operating_hours"
    CALENDAR_DAYS = "calendar_days"

    @property
    def time_unit(self) -> TimeUnit:
        return TimeUnit.HOURS if self is TimeBasis.OPERATING_HOURS else TimeUnit.DAYS


# ---------------------------------------------------------------------------
# Typy danych
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FailureSample:
    """
    Niemutowalna próbka dodatnich czasów uszkodzeń w jednej bazie czasu.

    adjusted[i] = True oznacza wartość wyliczoną (np. TBF z różnicy dat),
    a nie odczytaną wprost z rekordu.
    """

    times: tuple[float, ...]
    basis: TimeBasis = TimeBasis.OPERATING_HOURS
    adjusted: tuple[bool, ...] = ()

    def __post_init__(self) -> None:
        times = tuple(as_float("Czas uszkodzenia", t) for t in self.times)
        for t in times:
            if not math.isfinite(t) or t <= 0.0:
                raise InvalidArgumentError(
                    f"Czasy uszkodzeń muszą być skończone i dodatnie, otrzymano {t}."
                )
        adjusted = tuple(bool(a) for a in self.adjusted) or (False,) * len(times)
        if len(adjusted) != len(times):
            raise InvalidArgumentError(
                f"Długość flag 'adjusted' ({len(adjusted)}) różni się od liczby "
                f"czasów ({len(times)})."
            )
        object.__setattr__(self, "times", times)
        object.__setattr__(self, "adjusted", adjusted)
        object.__setattr__(self, "basis", TimeBasis(self.basis))

    def __len__(self) -> int:
        return len(self.times)

    def __iter__(self):
        return iter(self.times)


@dataclass(frozen=True)
class FitDataPoint:
    """Punkt wykresu Weibulla: czas, ranga medianowa, flaga korekty."""

    time: float
    median_rank: float
    adjusted: bool = False


@dataclass(frozen=True)
class WeibullFitResult:
    """Wynik dopasowania MRR. r2 ∈ [−∞, 1] — patrz uwaga w nagłówku modułu."""

    beta: float
    eta: float
    r2: float
    data_points: tuple[FitDataPoint, ...]

    @property
    def pattern(self) -> FailurePattern:
        return classify_pattern(self.beta)

    def to_model(self, time_unit: TimeUnit | str = TimeUnit.HOURS) -> WeibullModel:
        return WeibullModel.from_values(self.beta, self.eta, time_unit)

    def to_frame(self) -> pd.DataFrame:
        """Eksport punktów wykresu do DataFrame [time, median_rank, adjusted]."""
        return pd.DataFrame(
            [(p.time, p.median_rank, p.adjusted) for p in self.data_points],
            columns=["time", "median_rank", "adjusted"],
        )

    def to_dict(self) -> dict:
        return {
            "beta": self.beta,
            "eta": self.eta,
            "r2": self.r2,
            "pattern": self.pattern.value,
            "n": len(self.data_points),
        }


# ---------------------------------------------------------------------------
# Regresja rang medianowych
# ---------------------------------------------------------------------------


def median_rank(position: int, total: int) -> float:
    """Ranga medianowa Bernarda (i − 0.3) / (n + 0.4), pozycja i liczona od 1."""
    if not 1 <= position <= total:
        raise InvalidArgumentError(
            f"Pozycja {position} poza zakresem 1..{total}."
        )
    return (position - 0.3) / (total + 0.4)


def fit(
    samples: FailureSample | Iterable[float],
    min_count: int = MIN_FIT_SAMPLES,
) -> WeibullFitResult:
    """
    Dopasowuje rozkład Weibulla do czasów uszkodzeń metodą MRR.

    Parametry
    ----------
    samples : FailureSample lub iterowalne float
        Dodatnie czasy uszkodzeń (kolejność bez znaczenia).
    min_count : int
        Minimalna liczba próbek. Domyślnie MIN_FIT_SAMPLES (3). Co najmniej 2:
        prosta regresji wymaga dwóch punktów.

    Zwraca
    -------
    WeibullFitResult
        β̂, η̂, R² (zlinearyzowane) oraz posortowane punkty wykresu.

    Rzuca
    ------
    InsufficientDataError
        Gdy liczba próbek < min_count.
    DegenerateFitError
        Gdy wszystkie czasy są identyczne (zerowa wariancja x)
        albo nachylenie regresji wynosi 0.
    InvalidArgumentError
        Gdy któryś czas nie jest skończoną liczbą dodatnią
        albo min_count nie jest liczbą całkowitą ≥ 2.

    Przykład
    --------
    >>> result = fit([105.0, 230.0, 340.0, 470.0, 610.0])
    >>> result.pattern
    <FailurePattern.WEAR_OUT: 'wear-out'>
    """
    min_count = as_count("Minimalna liczba próbek", min_count, 2)
    if not isinstance(samples, FailureSample):
        samples = FailureSample(times=tuple(samples))

    n = len(samples)
    if n < min_count:
        raise InsufficientDataError(n, min_count)

    # Sortowanie razem z flagami: wynik niezależny od kolejności wejścia
    ordered = sorted(zip(samples.times, samples.adjusted))
    times = np.array([t for t, _ in ordered], dtype=float)
    ranks = np.array([median_rank(i, n) for i in range(1, n + 1)], dtype=float)

    x = np.log(times)
    y = np.log(-np.log1p(-ranks))

    if np.all(x == x[0]):
        raise DegenerateFitError(
            f"Wszystkie czasy uszkodzeń są identyczne ({times[0]:g}) — "
            f"brak wariancji, nie można wyznaczyć nachylenia."
        )

    sum_x = float(x.sum())
    sum_y = float(y.sum())
    sum_xy = float((x * y).sum())
    sum_x2 = float((x * x).sum())

    x_mean = sum_x / n
    y_mean = sum_y / n
    s_xx = float(((x - x_mean) ** 2).sum())
    s_xy = float(((x - x_mean) * (y - y_mean)).sum())

    beta = s_xy / s_xx
    if beta == 0.0 or not math.isfinite(beta):
        raise DegenerateFitError(f"Nachylenie regresji β={beta} — nie można wyznaczyć η.")

    intercept = y_mean - beta * x_mean
    eta = math.exp(-intercept / beta)

    ss_total = float(((y - y_mean) ** 2).sum())
    ss_residual = float(((y - (beta * x + intercept)) ** 2).sum())
    if ss_total == 0.0:
        raise DegenerateFitError("SS_tot = 0 — nie można wyznaczyć R².")
    r2 = 1.0 - ss_residual / ss_total

    logger.debug(
        "MRR: n=%d sumX=%.6g sumY=%.6g sumXY=%.6g sumX2=%.6g "
        "beta=%.6g intercept=%.6g eta=%.6g r2=%.6f",
        n, sum_x, sum_y, sum_xy, sum_x2, beta, intercept, eta, r2,
    )

    data_points = tuple(
        FitDataPoint(time=float(t), median_rank=float(r), adjusted=a)
        for (t, a), r in zip(ordered, ranks)
    )
    return WeibullFitResult(beta=beta, eta=eta, r2=r2, data_points=data_points)


# ---------------------------------------------------------------------------
# Rekordy historii uszkodzeń → FailureSample
# ---------------------------------------------------------------------------


def _as_utc_datetimes(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns, UTC]")
    return pd.to_datetime(df[col], errors="coerce", utc=True)


def extract_failure_sample(
    records: pd.DataFrame,
    use_operating_hours: bool = False,
    *,
    tbf_col: str = "tbf_days",
    hours_col: str = "operating_hours_at_failure",
    failure_date_col: str = "failure_date",
    last_failure_col: str = "last_failure_date",
    installation_col: str = "installation_date",
    status_col: str = "equipment_status",
) -> FailureSample:
    """
    Buduje FailureSample z tabeli rekordów historii uszkodzeń.

    Parametry
    ----------
    records : pd.DataFrame
        Rekordy uszkodzeń jednego zasobu.
    use_operating_hours : bool
        True  → baza: godziny pracy w chwili uszkodzenia (hours_col).
        False → baza: TBF w dniach (tbf_col); brakujące TBF wyliczane są
        z failure_date − last_failure_date (dla pierwszego uszkodzenia:
        − installation_date) i oznaczane adjusted=True.

    Zwraca
    -------
    FailureSample
        Próbka w kolejności rekordów; wiersze bez dodatniej wartości czasu
        są pomijane z ostrzeżeniem.

    Rzuca
    ------
    KeyError
        Gdy brakuje kolumny potrzebnej dla wybranej bazy czasu.
    """
    if use_operating_hours:
        if hours_col not in records.columns:
            raise KeyError(f"Brakujące kolumny w DataFrame: {{'{hours_col}'}}")
    elif tbf_col not in records.columns and failure_date_col not in records.columns:
        raise KeyError(
            f"Brakujące kolumny w DataFrame: wymagana '{tbf_col}' "
            f"lub '{failure_date_col}'."
        )

    df = records.copy()

    # Rekordy ocenzurowane (jednostka wciąż pracuje) są tylko odfiltrowane
    if status_col in df.columns:
        censored = df[status_col].astype(str).str.strip().str.lower() == "censored"
        if censored.any():
            warnings.warn(
                f"Pominięto {int(censored.sum())} rekordów ocenzurowanych "
                f"('{status_col}' == 'censored').",
                UserWarning,
                stacklevel=2,
            )
            df = df[~censored]

    if use_operating_hours:
        basis = TimeBasis.OPERATING_HOURS
        values = pd.to_numeric(df[hours_col], errors="coerce").astype(float)
        adjusted = pd.Series(False, index=df.index)
    else:
        basis = TimeBasis.CALENDAR_DAYS
        if tbf_col in df.columns:
            values = pd.to_numeric(df[tbf_col], errors="coerce").astype(float)
        else:
            values = pd.Series(np.nan, index=df.index, dtype=float)

        failure_dates = _as_utc_datetimes(df, failure_date_col)
        reference = _as_utc_datetimes(df, last_failure_col).fillna(
            _as_utc_datetimes(df, installation_col)
        )
        derived = (failure_dates - reference).dt.total_seconds() / _SECONDS_PER_DAY

        missing = values.isna()
        adjusted = missing & derived.notna()
        values = values.where(~missing, derived)

    valid = values.notna() & np.isfinite(values) & (values > 0)
    skipped = int((~valid).sum())
    if skipped:
        warnings.warn(
            f"Pominięto {skipped} z {len(values)} rekordów bez dodatniej wartości "
            f"czasu ({basis.value}).",
            UserWarning,
            stacklevel=2,
        )
    logger.info(
        "Próbka uszkodzeń: %d z %d rekordów (baza=%s, skorygowane=%d)",
        int(valid.sum()), len(records), basis.value, int(adjusted[valid].sum()),
    )

    return FailureSample(
        times=tuple(values[valid].tolist()),
        basis=basis,
        adjusted=tuple(adjusted[valid].tolist()),
    )


def analyze_failure_mechanisms(
    records: pd.DataFrame,
    *,
    mechanism_col: str = "failure_mechanism",
) -> dict[str, int]:
    """
    Zlicza rekordy per mechanizm uszkodzenia (brak → 'Unknown').

    Zwraca słownik posortowany malejąco po liczności, a przy remisie
    alfabetycznie.
    """
    if mechanism_col in records.columns:
        mechanisms = records[mechanism_col].astype("object")
        mechanisms = mechanisms.where(
            mechanisms.notna() & (mechanisms.astype(str).str.strip() != ""), "Unknown"
        )
    else:
        mechanisms = pd.Series("Unknown", index=records.index, dtype="object")

    counts = mechanisms.astype(str).value_counts()
    counts = counts.sort_index().sort_values(ascending=False, kind="stable")
    return {str(k): int(v) for k, v in counts.items()}

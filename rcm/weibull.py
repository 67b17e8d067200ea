"""
weibull.py
----------
Dwuparametrowy model Weibulla (β – kształt, η – skala) i pochodne wskaźniki
niezawodności.

Wzory:
    R(t)  = exp[ −(t/η)^β ]                  niezawodność
    h(t)  = (β/η) · (t/η)^(β − 1)            intensywność uszkodzeń
    F(t)  = 1 − R(t)                          dystrybuanta (prawd. uszkodzenia)
    MTBF  = η · Γ(1 + 1/β)
    B_p   = η · [ −ln(1 − p/100) ]^(1/β)      czas uszkodzenia p% populacji

Klasyfikacja wzorca uszkodzeń (stałe progi, niekonfigurowalne — ta sama
klasyfikacja w każdym raporcie):
┌──────────────────────┬──────────────┐
│ β < 0.95             │ early-life   │
│ 0.95 ≤ β ≤ 1.05      │ random       │
│ β > 1.05             │ wear-out     │
└──────────────────────┴──────────────┘

Przypadek brzegowy h(0):
    β > 1 → 0,   β = 1 → 1/η,   β < 1 → +∞.
Funkcja punktowa zwraca math.inf; generatory krzywych nasycają tę wartość
do FAILURE_RATE_CEILING, więc żadna krzywa nie zawiera NaN ani ∞.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, NamedTuple

import pandas as pd

from .errors import InvalidArgumentError, as_count, as_float
from .gamma_function import gamma

# ---------------------------------------------------------------------------
# Stałe
# ---------------------------------------------------------------------------

EARLY_LIFE_LIMIT: float = 0.95
WEAR_OUT_LIMIT: float = 1.05

DEFAULT_CURVE_POINTS: int = 100

# Górna granica h(t) w krzywych [1 / jednostka czasu]
FAILURE_RATE_CEILING: float = 1.0e9


class TimeUnit(str, Enum):
    """Jednostka czasu, w której wyrażone jest η (i czasy uszkodzeń)."""

    HOURS = "hours"
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class FailurePattern(str, Enum):
    """Wzorzec uszkodzeń wynikający z parametru kształtu β."""

    EARLY_LIFE = "early-life"
    RANDOM = "random"
    WEAR_OUT = "wear-out"


# ---------------------------------------------------------------------------
# Walidacja
# ---------------------------------------------------------------------------


def _check_positive(name: str, value: float) -> float:
    value = as_float(f"Parametr {name}", value)
    if not math.isfinite(value) or value <= 0.0:
        raise InvalidArgumentError(
            f"Parametr {name} musi być skończoną liczbą dodatnią, otrzymano {value}."
        )
    return value


def _check_shape_scale(beta: float, eta: float) -> tuple[float, float]:
    return _check_positive("beta", beta), _check_positive("eta", eta)


def _check_time(t: float) -> float:
    t = as_float("Czas t", t)
    if math.isnan(t) or t < 0.0:
        raise InvalidArgumentError(f"Czas musi być nieujemny, otrzymano t={t}.")
    return t


# ---------------------------------------------------------------------------
# Funkcje punktowe
# ---------------------------------------------------------------------------


def reliability(t: float, beta: float, eta: float) -> float:
    """R(t) = exp[−(t/η)^β]; R(0) = 1, funkcja nierosnąca, R → 0 dla t → ∞."""
    t = _check_time(t)
    beta, eta = _check_shape_scale(beta, eta)
    try:
        z = (t / eta) ** beta
    except OverflowError:
        return 0.0
    return math.exp(-z)


def failure_rate(t: float, beta: float, eta: float) -> float:
    """
    Intensywność uszkodzeń h(t) = (β/η)·(t/η)^(β−1).

    Dla t = 0: 0 gdy β > 1, 1/η gdy β = 1, math.inf gdy β < 1.
    Przepełnienie potęgi (β bliskie 0, t → 0) również daje math.inf.
    """
    t = _check_time(t)
    beta, eta = _check_shape_scale(beta, eta)
    if t == 0.0:
        if beta > 1.0:
            return 0.0
        if beta == 1.0:
            return 1.0 / eta
        return math.inf
    try:
        return (beta / eta) * (t / eta) ** (beta - 1.0)
    except OverflowError:
        return math.inf


def cdf(t: float, beta: float, eta: float) -> float:
    """F(t) = 1 − R(t)."""
    return 1.0 - reliability(t, beta, eta)


def mtbf(beta: float, eta: float) -> float:
    """
    Średni czas między uszkodzeniami MTBF = η · Γ(1 + 1/β).

    Dla β = 1 (rozkład wykładniczy) MTBF = η.

    Rzuca
    ------
    DomainError
        Gdy 1 + 1/β wychodzi poza zakres funkcji gamma (β < ~0.0059).
    """
    beta, eta = _check_shape_scale(beta, eta)
    return eta * gamma(1.0 + 1.0 / beta)


def b_life(percentage: float, beta: float, eta: float) -> float:
    """
    Czas B_p, po którym uszkodzi się `percentage` % populacji (odwrotność F).

    Parametry
    ----------
    percentage : float
        Odsetek uszkodzeń, przedział otwarty (0, 100). Np. 10 → B10.

    Rzuca
    ------
    InvalidArgumentError
        Gdy percentage ∉ (0, 100).

    Przykład
    --------
    >>> round(b_life(10, beta=2.0, eta=1000.0), 1)
    324.6
    """
    beta, eta = _check_shape_scale(beta, eta)
    percentage = as_float("Procent uszkodzeń", percentage)
    if not 0.0 < percentage < 100.0:
        raise InvalidArgumentError(
            f"Procent uszkodzeń musi należeć do (0, 100), otrzymano {percentage}."
        )
    return eta * (-math.log(1.0 - percentage / 100.0)) ** (1.0 / beta)


def time_at_reliability(target: float, beta: float, eta: float) -> float:
    """Czas t, dla którego R(t) = target: t = η·(−ln R)^(1/β), target ∈ (0, 1)."""
    beta, eta = _check_shape_scale(beta, eta)
    target = as_float("Docelowa niezawodność", target)
    if not 0.0 < target < 1.0:
        raise InvalidArgumentError(
            f"Docelowa niezawodność musi należeć do (0, 1), otrzymano {target}."
        )
    return eta * (-math.log(target)) ** (1.0 / beta)


def classify_pattern(beta: float) -> FailurePattern:
    """Klasyfikuje wzorzec uszkodzeń wg progów EARLY_LIFE_LIMIT / WEAR_OUT_LIMIT."""
    beta = _check_positive("beta", beta)
    if beta < EARLY_LIFE_LIMIT:
        return FailurePattern.EARLY_LIFE
    if beta <= WEAR_OUT_LIMIT:
        return FailurePattern.RANDOM
    return FailurePattern.WEAR_OUT


# ---------------------------------------------------------------------------
# Krzywe
# ---------------------------------------------------------------------------


class CurvePoint(NamedTuple):
    time: float
    value: float


@dataclass(frozen=True)
class Curve:
    """
    Skończona, wielokrotnie iterowalna krzywa (t, wartość) na [0, time_horizon].

    Punkty liczone są leniwie przy każdej iteracji — obiekt nie ma stanu,
    więc kolejne przejścia dają identyczne wyniki.
    """

    name: str
    function: Callable[[float], float]
    time_horizon: float
    points: int = DEFAULT_CURVE_POINTS

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "time_horizon", _check_positive("time_horizon", self.time_horizon)
        )
        object.__setattr__(self, "points", as_count("Liczba punktów krzywej", self.points, 2))

    def __len__(self) -> int:
        return int(self.points)

    def __iter__(self) -> Iterator[CurvePoint]:
        n = int(self.points)
        step = self.time_horizon / (n - 1)
        for i in range(n):
            t = self.time_horizon if i == n - 1 else i * step
            yield CurvePoint(t, self._saturate(self.function(t), t))

    def _saturate(self, value: float, t: float) -> float:
        if math.isinf(value) or value > FAILURE_RATE_CEILING:
            warnings.warn(
                f"Krzywa '{self.name}': wartość nieskończona w t={t} "
                f"zastąpiona przez {FAILURE_RATE_CEILING:g}.",
                UserWarning,
                stacklevel=3,
            )
            return FAILURE_RATE_CEILING
        return value

    def to_frame(self) -> pd.DataFrame:
        """Eksport do DataFrame z kolumnami ['time', name]."""
        return pd.DataFrame(list(self), columns=["time", self.name])


# ---------------------------------------------------------------------------
# Parametry i model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeibullParameters:
    """Parametry rozkładu Weibulla; obie wartości ściśle dodatnie."""

    beta: float
    eta: float
    time_unit: TimeUnit = TimeUnit.HOURS

    def __post_init__(self) -> None:
        object.__setattr__(self, "beta", _check_positive("beta", self.beta))
        object.__setattr__(self, "eta", _check_positive("eta", self.eta))
        try:
            object.__setattr__(self, "time_unit", TimeUnit(self.time_unit))
        except ValueError:
            raise InvalidArgumentError(
                f"Nieznana jednostka czasu {self.time_unit!r}. "
                f"Dostępne: {[u.value for u in TimeUnit]}"
            ) from None


@dataclass(frozen=True)
class WeibullModel:
    """
    Bezstanowy model Weibulla zbudowany na WeibullParameters.

    Przykład
    --------
    >>> model = WeibullModel.from_values(beta=2.0, eta=100.0)
    >>> round(model.mtbf(), 2)
    88.62
    >>> model.pattern
    <FailurePattern.WEAR_OUT: 'wear-out'>
    """

    params: WeibullParameters

    @classmethod
    def from_values(
        cls, beta: float, eta: float, time_unit: TimeUnit | str = TimeUnit.HOURS
    ) -> WeibullModel:
        return cls(WeibullParameters(beta=beta, eta=eta, time_unit=time_unit))

    @property
    def beta(self) -> float:
        return self.params.beta

    @property
    def eta(self) -> float:
        return self.params.eta

    @property
    def time_unit(self) -> TimeUnit:
        return self.params.time_unit

    @property
    def pattern(self) -> FailurePattern:
        return classify_pattern(self.beta)

    def reliability(self, t: float) -> float:
        return reliability(t, self.beta, self.eta)

    def failure_rate(self, t: float) -> float:
        return failure_rate(t, self.beta, self.eta)

    def cdf(self, t: float) -> float:
        return cdf(t, self.beta, self.eta)

    def mtbf(self) -> float:
        return mtbf(self.beta, self.eta)

    def b_life(self, percentage: float) -> float:
        return b_life(percentage, self.beta, self.eta)

    def time_at_reliability(self, target: float) -> float:
        return time_at_reliability(target, self.beta, self.eta)

    def sample_time_to_failure(self, u: float) -> float:
        """Odwrotna dystrybuanta: t = η·(−ln(1 − U))^(1/β) dla U ∈ [0, 1)."""
        return self.eta * (-math.log1p(-u)) ** (1.0 / self.beta)

    # --- krzywe ---

    def reliability_curve(
        self, time_horizon: float, points: int = DEFAULT_CURVE_POINTS
    ) -> Curve:
        return Curve("reliability", self.reliability, time_horizon, points)

    def failure_rate_curve(
        self, time_horizon: float, points: int = DEFAULT_CURVE_POINTS
    ) -> Curve:
        return Curve("failure_rate", self.failure_rate, time_horizon, points)

    def cdf_curve(
        self, time_horizon: float, points: int = DEFAULT_CURVE_POINTS
    ) -> Curve:
        return Curve("probability", self.cdf, time_horizon, points)

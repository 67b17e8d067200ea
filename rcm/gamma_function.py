"""
gamma_function.py
-----------------
Funkcja gamma Γ(x) potrzebna do wzoru na MTBF rozkładu Weibulla.

Wzór (aproksymacja Lanczosa, g = 7, 9 współczynników):

    Γ(x) = √(2π) · t^(x − 0.5) · e^(−t) · A_g(x − 1)
    t    = x − 1 + g + 0.5

Dla 0 < x < 0.5 stosowany jest wzór odbicia:

    Γ(x) = π / ( sin(πx) · Γ(1 − x) )

Dokładność ~15 cyfr znaczących w całym zakresie (0, 171.6]; w zakresie
istotnym dla niezawodności, x = 1 + 1/β ∈ (1, 11], z dużym zapasem.
Rekurencja silni nie jest używana — nie działa dla argumentów niecałkowitych.
"""

from __future__ import annotations

import math

from .errors import DomainError

# ---------------------------------------------------------------------------
# Stałe aproksymacji Lanczosa
# ---------------------------------------------------------------------------

LANCZOS_G: float = 7.0

LANCZOS_COEFFICIENTS: tuple[float, ...] = (
    0.99999999999980993,
    676.5203681218851,
    -1259.1392167224028,
    771.32342877765313,
    -176.61502916214059,
    12.507343278686905,
    -0.13857109526572012,
    9.9843695780195716e-6,
    1.5056327351493116e-7,
)

# Powyżej tej wartości Γ(x) nie mieści się w float64
GAMMA_MAX_ARGUMENT: float = 171.6


def log_gamma(x: float) -> float:
    """
    Logarytm naturalny ln Γ(x) dla x > 0 (aproksymacja Lanczosa).

    Rzuca
    ------
    DomainError
        Gdy x ≤ 0 lub x nie jest liczbą skończoną.
    """
    if not math.isfinite(x) or x <= 0.0:
        raise DomainError(f"Funkcja gamma zdefiniowana tylko dla x > 0, otrzymano x={x}.")

    if x < 0.5:
        # Wzór odbicia, sin(πx) > 0 dla 0 < x < 0.5
        return math.log(math.pi / math.sin(math.pi * x)) - log_gamma(1.0 - x)

    z = x - 1.0
    series = LANCZOS_COEFFICIENTS[0]
    for i, coefficient in enumerate(LANCZOS_COEFFICIENTS[1:], start=1):
        series += coefficient / (z + i)

    t = z + LANCZOS_G + 0.5
    return 0.5 * math.log(2.0 * math.pi) + (z + 0.5) * math.log(t) - t + math.log(series)


def gamma(x: float) -> float:
    """
    Oblicza Γ(x) dla x > 0.

    Spełnia Γ(n) = (n − 1)! dla całkowitych n ≥ 1, Γ(1) = Γ(2) = 1,
    Γ(1.5) = √π / 2 ≈ 0.8862.

    Parametry
    ----------
    x : float
        Argument, 0 < x ≤ GAMMA_MAX_ARGUMENT.

    Zwraca
    -------
    float
        Wartość Γ(x).

    Rzuca
    ------
    DomainError
        Gdy x ≤ 0, x nieskończone/NaN albo x > GAMMA_MAX_ARGUMENT
        (wynik przekroczyłby zakres float).

    Przykład
    --------
    >>> round(gamma(1.5), 4)
    0.8862
    """
    if math.isfinite(x) and x > GAMMA_MAX_ARGUMENT:
        raise DomainError(
            f"Γ({x}) przekracza zakres liczb zmiennoprzecinkowych "
            f"(maksymalny argument {GAMMA_MAX_ARGUMENT})."
        )
    return math.exp(log_gamma(x))

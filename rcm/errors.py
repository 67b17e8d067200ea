"""
errors.py
---------
Hierarchia wyjątków silnika niezawodnościowego.

Wszystkie błędy dziedziczą po ReliabilityError, a ten po ValueError —
kod wywołujący, który już łapie ValueError (jak w walidatorach kolumn),
działa bez zmian. Żaden z tych błędów nie jest fatalny dla procesu:
warstwa zewnętrzna zamienia je na komunikat dla użytkownika.
"""

from __future__ import annotations


class ReliabilityError(ValueError):
    """Bazowy wyjątek silnika niezawodnościowego."""


class InvalidArgumentError(ReliabilityError):
    """Parametr poza dziedziną (np. β ≤ 0, procent spoza (0, 100))."""


class InsufficientDataError(ReliabilityError):
    """Za mało próbek do dopasowania rozkładu Weibulla."""

    def __init__(self, count: int, minimum: int) -> None:
        self.count = count
        self.minimum = minimum
        super().__init__(
            f"Za mało danych do dopasowania: {count} próbek, "
            f"wymagane co najmniej {minimum}."
        )


class DegenerateFitError(ReliabilityError):
    """Regresja zdegenerowana (zerowa wariancja X albo zerowe nachylenie)."""


class DomainError(ReliabilityError):
    """Funkcja gamma wywołana poza dziedziną."""


class SimulationCancelledError(ReliabilityError):
    """Symulacja przerwana (deadline lub token anulowania) między przebiegami."""

    def __init__(self, completed_runs: int, requested_runs: int) -> None:
        self.completed_runs = completed_runs
        self.requested_runs = requested_runs
        super().__init__(
            f"Symulacja przerwana po {completed_runs} z {requested_runs} przebiegów."
        )


# ---------------------------------------------------------------------------
# Konwersja argumentów liczbowych
# ---------------------------------------------------------------------------


def as_float(name: str, value) -> float:
    """float(value) albo InvalidArgumentError dla wartości nieliczbowych (str, None)."""
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{name} musi być liczbą, otrzymano {value!r}.") from None


def as_count(name: str, value, minimum: int, maximum: int | None = None) -> int:
    """
    Liczba całkowita z zakresu [minimum, maximum].

    Odrzuca bool, ułamki, NaN/∞ oraz wartości nieliczbowe; float o wartości
    całkowitej (np. 200.0) jest akceptowany.
    """
    valid = not isinstance(value, bool)
    if valid:
        try:
            count = int(value)
            valid = count == value
        except (TypeError, ValueError, OverflowError):
            valid = False
    if valid and count >= minimum and (maximum is None or count <= maximum):
        return count

    allowed = f"{minimum}..{maximum}" if maximum is not None else f"≥ {minimum}"
    raise InvalidArgumentError(
        f"{name} musi być liczbą całkowitą z zakresu {allowed}, otrzymano {value!r}."
    )

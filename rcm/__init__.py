"""
RCM Reliability Package
Analiza Weibulla, optymalizacja interwałów konserwacji i symulacja Monte Carlo
uszkodzeń dla utrzymania ruchu zorientowanego na niezawodność (RCM).
"""

from .pipeline import (
    ReliabilityPipeline,
    FailureDataSource,
    WeibullAnalysis,
    fit_weibull,
    analyze_weibull,
    optimize_maintenance,
    simulate,
    model_from_asset,
)

from .errors import (
    ReliabilityError,
    InvalidArgumentError,
    InsufficientDataError,
    DegenerateFitError,
    DomainError,
    SimulationCancelledError,
)
from .gamma_function import gamma
from .weibull import (
    WeibullParameters,
    WeibullModel,
    TimeUnit,
    FailurePattern,
    classify_pattern,
)
from .fitting import (
    FailureSample,
    WeibullFitResult,
    TimeBasis,
    fit,
    extract_failure_sample,
    analyze_failure_mechanisms,
)
from .optimization import (
    CostParameters,
    CostMethod,
    MaintenanceOptimizationResult,
    optimize,
)
from .policy import (
    MaintenanceStrategy,
    MaintenanceRecommendation,
    DecisionRule,
    AssetCriticality,
    RCMStrategyResult,
    recommend_strategy,
    determine_maintenance_strategy,
)
from .simulation import (
    SimulationParameters,
    SimulationResult,
    run_simulation,
)

__all__ = [
    # Moduł 1 – funkcja gamma
    "gamma",
    # Moduł 2 – model Weibulla
    "WeibullParameters",
    "WeibullModel",
    "TimeUnit",
    "FailurePattern",
    "classify_pattern",
    # Moduł 3 – dopasowanie
    "FailureSample",
    "WeibullFitResult",
    "TimeBasis",
    "fit",
    "extract_failure_sample",
    "analyze_failure_mechanisms",
    # Moduł 4 – optymalizacja i strategia
    "CostParameters",
    "CostMethod",
    "MaintenanceOptimizationResult",
    "optimize",
    "MaintenanceStrategy",
    "MaintenanceRecommendation",
    "recommend_strategy",
    "DecisionRule",
    "AssetCriticality",
    "RCMStrategyResult",
    "determine_maintenance_strategy",
    # Moduł 5 – symulacja
    "SimulationParameters",
    "SimulationResult",
    "run_simulation",
    # Pipeline i operacje zewnętrzne
    "ReliabilityPipeline",
    "FailureDataSource",
    "WeibullAnalysis",
    "fit_weibull",
    "analyze_weibull",
    "optimize_maintenance",
    "simulate",
    "model_from_asset",
    # Błędy
    "ReliabilityError",
    "InvalidArgumentError",
    "InsufficientDataError",
    "DegenerateFitError",
    "DomainError",
    "SimulationCancelledError",
]

"""Enumerations used across the strategy lab."""

from enum import Enum


class ModuleType(str, Enum):
    """Analysis modules whose outputs feed the strategy pipeline."""

    REGIME_DETECTION = "regime_detection"
    ALPHA_SIGNAL = "alpha_signal"
    BACKTESTING = "backtesting"
    PORTFOLIO_OPTIMIZATION = "portfolio_optimization"
    RISK_ANALYSIS = "risk_analysis"
    OPTIONS_PRICING = "options_pricing"


class StoreBackend(str, Enum):
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"

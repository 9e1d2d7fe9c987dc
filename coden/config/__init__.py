from .loader import load_config
from .models import (
    CodenConfig,
    EvaluatorConfig,
    FingerprintConfig,
    ImportanceConfig,
    IntegrationConfig,
    LedgerConfig,
    StorageConfig,
    TrackerConfig,
)

__all__ = [
    "CodenConfig",
    "EvaluatorConfig",
    "FingerprintConfig",
    "ImportanceConfig",
    "IntegrationConfig",
    "LedgerConfig",
    "StorageConfig",
    "TrackerConfig",
    "load_config",
]

from .settings import (
    ArtifactPollingConfig,
    BackendConfig,
    CarePlanConfig,
    Config,
    DEFAULT_SPECIALISTS,
    PollingConfig,
    SecurityConfig,
    SpecialistCategory,
)

__all__ = [
    "ArtifactPollingConfig",
    "BackendConfig",
    "CarePlanConfig",
    "Config",
    "DEFAULT_SPECIALISTS",
    "PollingConfig",
    "SecurityConfig",
    "SpecialistCategory",
]

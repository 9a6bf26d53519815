"""
Configuration management for VisitSync.
"""

import logging
import os
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Dict, List, Optional
import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class PollingConfig:
    """Fixed-interval polling policy for one artifact group."""
    interval_seconds: float = 3.0
    max_attempts: int = 20


@dataclass
class ArtifactPollingConfig:
    """Polling policies per artifact kind."""
    visit_note: PollingConfig = field(default_factory=lambda: PollingConfig(3.0, 20))
    transcript: PollingConfig = field(default_factory=lambda: PollingConfig(3.0, 20))
    care_plan: PollingConfig = field(default_factory=lambda: PollingConfig(5.0, 20))
    specialist: PollingConfig = field(default_factory=lambda: PollingConfig(5.0, 20))


@dataclass
class CarePlanConfig:
    """Care plan readiness configuration."""
    # Entry fields that must be present before the care plan counts as processed
    completeness_keys: List[str] = field(default_factory=lambda: ["diagnosticTests"])


@dataclass
class SpecialistCategory:
    """A specialist recommendation category produced by the pipeline."""
    data_category: str
    title: str


DEFAULT_SPECIALISTS: List[SpecialistCategory] = [
    SpecialistCategory("diabetesExpert", "Certified Diabetes Care and Education Specialist"),
    SpecialistCategory("allergiesExpert", "Allergies Expert"),
    SpecialistCategory("kidneyExpert", "National Kidney Foundation Expert"),
    SpecialistCategory("insurnaceExpert", "Insurance Expert"),  # backend spelling
    SpecialistCategory("nutritionExpert", "Registered Dietitian Nutritionist (RDN)"),
    SpecialistCategory("ophthalmologistExpert", "Ophthalmologist Expert"),
    SpecialistCategory("podiatristExpert", "Podiatrist Expert"),
    SpecialistCategory("hospitalCareTeamExpert", "Hospital Care Team"),
    SpecialistCategory("adaExpert", "American Diabetes Association (ADA) Expert"),
    SpecialistCategory("socialDeterminantsExpert", "Social Determinants of Health Expert"),
    SpecialistCategory("physicalTherapistExpert", "Physical Therapist Expert"),
    SpecialistCategory("pharmacistExpert", "Pharmacist Expert"),
]


@dataclass
class BackendConfig:
    """Visit backend configuration."""
    provider: str = "http"  # http, mock
    base_url: str = ""
    timeout: float = 30.0
    mock_ready_after: int = 3


@dataclass
class SecurityConfig:
    """Audit trail configuration."""
    enable_audit_logging: bool = True
    audit_log_path: str = "./logs/audit.log"


class Config:
    """Main configuration class."""

    def __init__(self, config_path: Optional[str] = None):
        load_dotenv()
        self.config_path = config_path or os.getenv("VISITSYNC_CONFIG", "./config/config.yaml")

        # Default configurations
        self.polling = ArtifactPollingConfig()
        self.care_plan = CarePlanConfig()
        self.backend = BackendConfig()
        self.security = SecurityConfig()
        self.specialists: List[SpecialistCategory] = list(DEFAULT_SPECIALISTS)

        # Application settings
        self.app_name = "VisitSync"
        self.version = "1.0.0"
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_file: Optional[str] = None

        # Load configuration from file if it exists
        self._load_config()

        # Environment variables win over the file
        self.backend.provider = os.getenv("VISITSYNC_BACKEND", self.backend.provider)
        self.backend.base_url = os.getenv("VISITSYNC_BASE_URL", self.backend.base_url)
        self.api_token = os.getenv("VISITSYNC_API_TOKEN")

    def _load_config(self):
        """Load configuration from YAML file."""
        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r') as f:
                    config_data = yaml.safe_load(f)

                if config_data:
                    self._update_from_dict(config_data)
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Could not load config file {self.config_path}: {e}")

    def _update_from_dict(self, config_dict: Dict[str, Any]):
        """Update configuration from dictionary."""
        for section, values in config_dict.items():
            if section == "specialists":
                self.specialists = [SpecialistCategory(**item) for item in values]
            elif hasattr(self, section) and is_dataclass(getattr(self, section)) and isinstance(values, dict):
                self._apply_section(getattr(self, section), values)
            elif hasattr(self, section):
                # Set application-level configuration
                setattr(self, section, values)

    def _apply_section(self, config_obj: Any, values: Dict[str, Any]):
        for key, value in values.items():
            if not hasattr(config_obj, key):
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            current = getattr(config_obj, key)
            if is_dataclass(current) and isinstance(value, dict):
                self._apply_section(current, value)
            else:
                setattr(config_obj, key, value)

    def save_config(self, path: Optional[str] = None):
        """Save current configuration to YAML file."""
        save_path = path or self.config_path

        config_dict = {
            'polling': asdict(self.polling),
            'care_plan': asdict(self.care_plan),
            'backend': asdict(self.backend),
            'security': asdict(self.security),
            'specialists': [asdict(s) for s in self.specialists],
            'app_name': self.app_name,
            'version': self.version,
            'environment': self.environment,
            'debug': self.debug,
            'log_level': self.log_level,
            'log_file': self.log_file
        }

        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(save_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    def validate(self) -> bool:
        """Validate configuration settings."""
        errors = []

        for name in ("visit_note", "transcript", "care_plan", "specialist"):
            policy: PollingConfig = getattr(self.polling, name)
            if policy.interval_seconds <= 0:
                errors.append(f"polling.{name}.interval_seconds must be positive")
            if policy.max_attempts < 1:
                errors.append(f"polling.{name}.max_attempts must be at least 1")

        if self.backend.provider == "http" and not self.backend.base_url:
            errors.append("Base URL is required for the HTTP visit backend")

        if not self.care_plan.completeness_keys:
            errors.append("care_plan.completeness_keys must name at least one field")

        categories = [s.data_category for s in self.specialists]
        if len(categories) != len(set(categories)):
            errors.append("Specialist categories must be unique")

        if errors:
            logger.error("Configuration validation errors:")
            for error in errors:
                logger.error(f"  - {error}")
            return False

        return True

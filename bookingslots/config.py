"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional, Sequence

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.aggregation import STRATEGIES
from .domain.models import ServiceParameters
from .services.batch_loader import MAX_RETRIES


class ProviderConfig(BaseModel):
    """Connection settings for the scheduling provider."""
    base_url: str = ""
    access_token: str = ""
    timeout_seconds: float = 30
    max_retries: int = 1

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure the request timeout is positive."""
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, value: int) -> int:
        """Bulk fetches are retried at most once."""
        if not 0 <= value <= MAX_RETRIES:
            raise ValueError(f"max_retries must be between 0 and {MAX_RETRIES}, got {value}")
        return value


class DefaultsConfig(BaseModel):
    """Default booking parameters for services."""
    duration_minutes: int = 30
    interval_minutes: int = 30
    buffer_minutes: int = 15
    minimum_notice_minutes: int = 0
    strategy: str = "union"
    deadline_seconds: float = 20

    @field_validator("duration_minutes", "interval_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure duration and interval are positive."""
        if value <= 0:
            raise ValueError("duration_minutes and interval_minutes must be greater than zero")
        return value

    @field_validator("buffer_minutes", "minimum_notice_minutes")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        """Ensure buffer and notice are not negative."""
        if value < 0:
            raise ValueError("buffer_minutes and minimum_notice_minutes must not be negative")
        return value

    @field_validator("strategy")
    @classmethod
    def validate_strategy(cls, value: str) -> str:
        """Ensure the aggregation strategy exists."""
        name = value.lower()
        if name not in STRATEGIES:
            raise ValueError(f"strategy must be one of {sorted(STRATEGIES)}, got {value!r}")
        return name

    @field_validator("deadline_seconds")
    @classmethod
    def validate_deadline(cls, value: float) -> float:
        """Ensure the request deadline is positive."""
        if value <= 0:
            raise ValueError("deadline_seconds must be greater than zero")
        return value


class Worker(BaseModel):
    """Worker configuration mapping an alias to a provider id."""
    name: str  # Used as alias
    id: str
    is_default: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value) -> str:
        """Provider ids may be numeric in YAML."""
        return str(value)

    def display_name(self) -> str:
        """Get display name."""
        return self.name


class AppConfig(BaseModel):
    """Application configuration."""
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    timezone: str = "Europe/Berlin"
    workers: List[Worker] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            pendulum.timezone(value)
        except (ValueError, KeyError) as exc:
            raise ValueError(f"Unknown timezone: {value!r}") from exc
        return value

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, value: List[Worker]) -> List[Worker]:
        """Ensure worker aliases and ids are unique."""
        seen_names: set[str] = set()
        seen_ids: set[str] = set()
        for worker in value:
            name_key = worker.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate worker name detected: {worker.name}")
            if worker.id in seen_ids:
                raise ValueError(f"Duplicate worker id detected: {worker.id}")
            seen_names.add(name_key)
            seen_ids.add(worker.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def find_worker_by_name(self, name: str) -> Worker | None:
        """Find a worker by their name (alias)."""
        for worker in self.workers:
            if worker.name.lower() == name.lower():
                return worker
        return None

    def find_worker_by_id(self, worker_id: str) -> Worker | None:
        """Find a worker by their provider id."""
        for worker in self.workers:
            if worker.id == worker_id:
                return worker
        return None

    def resolve_worker(self, identifier: str) -> str:
        """
        Resolve a worker identifier (name/alias or provider id) to a provider id.

        Raises:
            ValueError: If identifier cannot be resolved
        """
        identifier = identifier.strip()

        worker = self.find_worker_by_name(identifier) or self.find_worker_by_id(identifier)
        if worker:
            return worker.id

        # Numeric ids are passed through even if not configured
        if identifier.isdigit():
            return identifier

        raise ValueError(
            f"Unknown worker identifier: '{identifier}'. "
            f"Use a numeric provider id or a configured name."
        )

    def resolve_workers(self, identifiers: Sequence[str]) -> List[str]:
        """
        Resolve multiple worker identifiers, ensuring uniqueness.

        Raises:
            ValueError: If no identifiers are given or any cannot be resolved
        """
        if not identifiers:
            raise ValueError("No workers provided.")

        resolved_ids: List[str] = []
        unknown_identifiers: List[str] = []

        for identifier in identifiers:
            try:
                worker_id = self.resolve_worker(identifier)
            except ValueError:
                unknown_identifiers.append(identifier)
                continue

            if worker_id not in resolved_ids:
                resolved_ids.append(worker_id)

        if unknown_identifiers:
            missing = ", ".join(sorted(set(unknown_identifiers)))
            raise ValueError(
                f"Unknown worker identifier(s): {missing}. "
                "Ensure they exist in the configuration or provide numeric provider ids."
            )

        return resolved_ids

    def default_worker_ids(self) -> List[str]:
        """Ids of workers flagged as default in the configuration."""
        return [worker.id for worker in self.workers if worker.is_default]

    def service_parameters(
        self,
        duration_minutes: Optional[int] = None,
        interval_minutes: Optional[int] = None,
        buffer_minutes: Optional[int] = None,
        minimum_notice_minutes: Optional[int] = None,
    ) -> ServiceParameters:
        """
        Build service parameters from the defaults, applying any overrides.

        Raises:
            InvalidServiceParameters: If an override is out of range
        """
        defaults = self.defaults
        return ServiceParameters(
            duration_minutes=_pick(duration_minutes, defaults.duration_minutes),
            interval_minutes=_pick(interval_minutes, defaults.interval_minutes),
            buffer_minutes=_pick(buffer_minutes, defaults.buffer_minutes),
            minimum_notice_minutes=_pick(minimum_notice_minutes, defaults.minimum_notice_minutes),
        )


def _pick(value: Optional[int], default: int) -> int:
    return default if value is None else value


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path

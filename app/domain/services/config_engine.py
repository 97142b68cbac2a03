"""
CONFIG ENGINE (ENGINE-0)
Load, validate, and expose engine configuration

RESPONSIBILITIES:
- Load YAML configuration files
- Validate configuration integrity
- Expose read-only typed objects

RULES:
❌ No defaults if config missing
❌ No hardcoded policies
✅ Fail fast on invalid config
✅ Deterministic output
"""

import logging
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

from app.domain.models import Policy
from app.utils.time import parse_time_of_day, resolve_zone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DensitySettings:
    """Histogram tiering and peak window settings"""
    green_ratio: float
    peak_window_slots: int


@dataclass(frozen=True)
class RosterSettings:
    """Roster inference settings"""
    recent_dates_count: int
    role_priority: Tuple[str, ...]
    profile_driven_roles: Tuple[str, ...]


@dataclass(frozen=True)
class ComplianceSettings:
    """Clock-in policy defaults"""
    default_grace_minutes: int
    early_clock_in_buffer_minutes: int


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration"""
    timezone: str
    density: DensitySettings
    roster: RosterSettings
    compliance: ComplianceSettings
    policies: Dict[str, Policy]

    def get_policy(self, entity_id: str) -> Policy | None:
        """Get shift policy of an entity"""
        return self.policies.get(entity_id)


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for engine configuration
    """

    CONFIG_FILE = "engine.yml"

    def __init__(self, config_dir: Path):
        """Initialize with config directory"""
        self.config_dir = Path(config_dir)
        self._raw: Dict = None
        self._config: EngineConfig = None

    def load_all(self) -> None:
        """Load all configuration files"""
        config_file = self.config_dir / self.CONFIG_FILE
        if not config_file.exists():
            raise FileNotFoundError(f"Engine config not found: {config_file}")

        with open(config_file, 'r') as f:
            self._raw = yaml.safe_load(f) or {}

        try:
            self._config = self._build(self._raw)
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Invalid engine config in {config_file}: {exc!r}") from exc
        logger.info(
            "Engine config loaded: timezone=%s, %d policies",
            self._config.timezone,
            len(self._config.policies),
        )

    def _build(self, data: Dict[str, Any]) -> EngineConfig:
        """Validate raw YAML and build typed objects"""
        timezone_name = data['timezone']
        density = data['density']
        roster = data['roster']
        compliance = data['compliance']

        resolve_zone(timezone_name)

        density_settings = DensitySettings(
            green_ratio=float(density['green_ratio']),
            peak_window_slots=int(density['peak_window_slots']),
        )
        if not 0 < density_settings.green_ratio <= 1:
            raise ValueError("density.green_ratio must be in (0, 1]")
        if not 0 < density_settings.peak_window_slots <= 96:
            raise ValueError("density.peak_window_slots must be in 1..96")

        roster_settings = RosterSettings(
            recent_dates_count=int(roster['recent_dates_count']),
            role_priority=tuple(roster['role_priority']),
            profile_driven_roles=tuple(roster.get('profile_driven_roles') or ()),
        )
        if roster_settings.recent_dates_count < 1:
            raise ValueError("roster.recent_dates_count must be at least 1")
        if len(set(roster_settings.role_priority)) != len(roster_settings.role_priority):
            raise ValueError("Duplicate roles in roster.role_priority")

        compliance_settings = ComplianceSettings(
            default_grace_minutes=int(compliance['default_grace_minutes']),
            early_clock_in_buffer_minutes=int(compliance['early_clock_in_buffer_minutes']),
        )

        policies = self._load_policies(
            data.get('policies') or [],
            compliance_settings.default_grace_minutes,
        )

        return EngineConfig(
            timezone=timezone_name,
            density=density_settings,
            roster=roster_settings,
            compliance=compliance_settings,
            policies=policies,
        )

    @staticmethod
    def _load_policies(entries, default_grace: int) -> Dict[str, Policy]:
        """Per-entity shift policies"""
        policies: Dict[str, Policy] = {}
        for entry in entries:
            entity_id = entry['entity_id']
            if entity_id in policies:
                raise ValueError(f"Duplicate policy for entity: {entity_id}")

            start = parse_time_of_day(entry.get('nominal_start_of_day'))
            if start is None:
                raise ValueError(f"Invalid nominal_start_of_day for {entity_id}")

            end = None
            if entry.get('nominal_end_of_day') is not None:
                end = parse_time_of_day(entry['nominal_end_of_day'])
                if end is None:
                    raise ValueError(f"Invalid nominal_end_of_day for {entity_id}")

            policies[entity_id] = Policy(
                entity_id=entity_id,
                nominal_start_of_day=start,
                grace_minutes=int(entry.get('grace_minutes', default_grace)),
                nominal_end_of_day=end,
            )
        return policies

    # Public getters

    @property
    def config(self) -> EngineConfig:
        """Get typed engine config"""
        if self._config is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._config

    @property
    def timezone(self) -> str:
        """Get reference timezone name"""
        return self.config.timezone

    def get_setting(self, *keys) -> Any:
        """Get raw setting by nested keys"""
        if self._raw is None:
            raise RuntimeError("Config not loaded. Call load_all() first")

        value = self._raw
        for key in keys:
            value = value[key]
        return value

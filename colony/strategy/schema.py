#colony/strategy/schema.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from colony.strategy.archetypes import DEFAULT_WORKER_TYPES, Archetype, WorkerTypeConfig


@dataclass(frozen=True)
class CacheCfg:
    refresh_interval: int = 50
    expiring_ttl: int = 100
    facility_critical_ratio: float = 0.3

    # reserves_low thresholds
    low_available: int = 200
    low_storage: int = 1000

    trend_alpha: float = 0.1
    history_interval: int = 100
    history_size: int = 50

    # per-source max income and per-work harvest rate
    source_income_max: int = 10
    harvest_per_work: int = 2

    def validate(self) -> None:
        if self.refresh_interval <= 0:
            raise ValueError("cache.refresh_interval must be > 0")
        if not (0.0 < self.facility_critical_ratio <= 1.0):
            raise ValueError("cache.facility_critical_ratio must be in (0, 1]")
        if not (0.0 < self.trend_alpha <= 1.0):
            raise ValueError("cache.trend_alpha must be in (0, 1]")
        if self.history_interval <= 0 or self.history_size <= 0:
            raise ValueError("cache.history_interval and cache.history_size must be > 0")


@dataclass(frozen=True)
class ReserveThresholds:
    """Storage ramp for improvement work: 0 below low, 1.5 at high."""
    low: int = 50_000
    mid: int = 200_000
    high: int = 400_000

    def validate(self) -> None:
        if not (0 <= self.low <= self.mid <= self.high):
            raise ValueError("reserves: expected low <= mid <= high")


@dataclass(frozen=True)
class UtilityWeights:
    gatherer_base: float = 100.0
    min_income_ratio: float = 0.01

    transporter_base: float = 90.0
    transporter_bootstrap_mult: float = 10.0

    upgrader_base: float = 20.0
    upgrader_storage_bonus_at: int = 100_000
    upgrader_storage_bonus: float = 1.5

    builder_base: float = 25.0
    builder_sites_norm: float = 5.0
    builder_sites_cap: float = 2.0
    builder_remote_container_bonus: float = 1.5

    relay_filler_base: float = 70.0

    defender_per_hostile: float = 50.0
    defender_cap: float = 5000.0

    remote_defender_base: float = 45.0
    remote_miner_base: float = 40.0
    remote_hauler_base: float = 35.0
    reserver_base: float = 25.0
    scout_base: float = 5.0

    # sustainability band (projected consumption / income)
    sustain_low: float = 0.8
    sustain_high: float = 1.2
    trend_steepness: float = 0.1

    def validate(self) -> None:
        if self.min_income_ratio <= 0:
            raise ValueError("weights.min_income_ratio must be > 0")
        if self.sustain_high <= self.sustain_low:
            raise ValueError("weights.sustain_high must be > weights.sustain_low")
        if self.defender_cap <= 0:
            raise ValueError("weights.defender_cap must be > 0")


@dataclass(frozen=True)
class TargetsCfg:
    max_tier: int = 8
    upgrader_cap: int = 3
    upgrader_at_max_tier: int = 1
    builder_sites_per_worker: int = 5
    builder_cap: int = 4
    transporter_min_with_storage: int = 2
    relay_filler_tier: int = 5
    relay_filler_reserve: int = 10_000
    remote_tier: int = 4
    scout_tier: int = 3
    remote_haulers_per_miner: float = 1.5

    def validate(self) -> None:
        if self.builder_sites_per_worker <= 0:
            raise ValueError("targets.builder_sites_per_worker must be > 0")
        if self.remote_haulers_per_miner < 0:
            raise ValueError("targets.remote_haulers_per_miner must be >= 0")


@dataclass(frozen=True)
class RemoteCfg:
    scan_stale_after: int = 5000
    reservation_renew_below: int = 1000
    assumed_remote_sites: int = 2
    remote_intel_fresh: int = 1000
    min_home_gatherers: int = 2
    min_home_transporters: int = 1

    def validate(self) -> None:
        if self.scan_stale_after <= 0:
            raise ValueError("remote.scan_stale_after must be > 0")


@dataclass(frozen=True)
class SchedulerCfg:
    log_decisions: bool = True
    # throttle: repeated identical events are logged every N steps
    log_every_steps: int = 25


@dataclass(frozen=True)
class Profile:
    name: str = "default"

    cache: CacheCfg = CacheCfg()
    reserves: ReserveThresholds = ReserveThresholds()
    weights: UtilityWeights = UtilityWeights()
    targets: TargetsCfg = TargetsCfg()
    remote: RemoteCfg = RemoteCfg()
    scheduler: SchedulerCfg = SchedulerCfg()

    worker_types: Dict[Archetype, WorkerTypeConfig] = field(default_factory=lambda: dict(DEFAULT_WORKER_TYPES))

    def validate(self) -> None:
        self.cache.validate()
        self.reserves.validate()
        self.weights.validate()
        self.targets.validate()
        self.remote.validate()
        for a in Archetype:
            if a not in self.worker_types:
                raise KeyError(f"profile '{self.name}': missing worker type for {a.value}")

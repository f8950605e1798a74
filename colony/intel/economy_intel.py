# colony/intel/economy_intel.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from colony.devlog import DevLogger
from colony.engine.modules import Module, count_of
from colony.engine.smoothing import mean
from colony.infra.store import ColonyStore, EconomySample
from colony.mind.world_state import WorkerInfo
from colony.strategy.archetypes import Archetype
from colony.strategy.schema import CacheCfg

UPGRADE_PER_WORK = 1.0
# builders spend 5/work while building; assume half uptime
BUILD_PER_WORK = 2.5


def realized_income(workers: Iterable[WorkerInfo], *, harvest_per_work: int = 2) -> float:
    """Foundational gatherers only; remote miners never count toward home income."""
    work = sum(count_of(w.modules, Module.WORK) for w in workers if w.archetype is Archetype.GATHERER)
    return float(work * harvest_per_work)


def income_max(source_count: int, *, per_source: int = 10) -> float:
    return float(max(0, int(source_count)) * per_source)


def upgrade_consumption(workers: Iterable[WorkerInfo]) -> float:
    work = sum(count_of(w.modules, Module.WORK) for w in workers if w.archetype is Archetype.UPGRADER)
    return work * UPGRADE_PER_WORK


def build_consumption(workers: Iterable[WorkerInfo]) -> float:
    work = sum(count_of(w.modules, Module.WORK) for w in workers if w.archetype is Archetype.BUILDER)
    return work * BUILD_PER_WORK


@dataclass(frozen=True)
class EconomyMetrics:
    stored: int
    income: float
    burn: float
    net_flow: float
    runway: int  # steps until empty; -1 when flow is non-negative
    health_score: int
    status: str


def assess_health(stored: int, net_flow: float, runway: int):
    if runway != -1 and runway < 1000:
        return 10, "CRITICAL"
    if runway != -1 and runway < 5000:
        return 30, "STRUGGLING"
    if net_flow < 0:
        return 50, "STABLE"
    if stored > 300_000:
        return 90, "SURPLUS"
    if stored > 100_000:
        return 75, "THRIVING"
    return 60, "STABLE"


@dataclass
class _Track:
    last_time: int
    last_stock: int
    trend: float = 0.0


class EconomyTracker:
    """
    Resource trend and history.
    - observe() once per step per colony; repeated calls in one step are ignored
    - trend is an EMA of the per-step stock delta
    - samples go to the store every `history_interval` steps
    """

    def __init__(self, *, store: ColonyStore, cfg: Optional[CacheCfg] = None, log: Optional[DevLogger] = None):
        self.store = store
        self.cfg = cfg or CacheCfg()
        self.log = log
        self._tracks: Dict[str, _Track] = {}

    def trend(self, colony_id: str) -> float:
        t = self._tracks.get(colony_id)
        return t.trend if t else 0.0

    def observe(self, colony_id: str, *, now: int, stock: int, income: float, burn: float) -> float:
        now = int(now)
        stock = int(stock)
        t = self._tracks.get(colony_id)
        if t is None:
            self._tracks[colony_id] = _Track(last_time=now, last_stock=stock)
            self._maybe_sample(colony_id, now=now, stock=stock, income=income, burn=burn)
            return 0.0
        if now <= t.last_time:
            return t.trend

        steps = now - t.last_time
        delta = (stock - t.last_stock) / float(steps)
        alpha = float(self.cfg.trend_alpha)
        t.trend = alpha * delta + (1.0 - alpha) * t.trend
        t.last_time = now
        t.last_stock = stock

        self._maybe_sample(colony_id, now=now, stock=stock, income=income, burn=burn)
        return t.trend

    def _maybe_sample(self, colony_id: str, *, now: int, stock: int, income: float, burn: float) -> None:
        if now % int(self.cfg.history_interval) != 0:
            return
        self.store.append_sample(
            colony_id,
            EconomySample(time=now, stored=stock, income=float(income), burn=float(burn)),
        )
        if self.log:
            m = self.metrics(colony_id, stored=stock, income=income, burn=burn)
            self.log.emit(
                "economy_sample",
                {
                    "colony": colony_id,
                    "time": now,
                    "stored": stock,
                    "income": m.income,
                    "burn": m.burn,
                    "net_flow": m.net_flow,
                    "runway": m.runway,
                    "health": m.health_score,
                    "status": m.status,
                    "trend": round(self.trend(colony_id), 2),
                },
                meta={"module": "economy", "component": "economy.tracker"},
            )

    def metrics(self, colony_id: str, *, stored: int, income: float, burn: float) -> EconomyMetrics:
        history = self.store.history(colony_id)
        if history:
            # smooth with recorded history
            income = mean([income] + [s.income for s in history])
            burn = mean([burn] + [s.burn for s in history])
        net = float(income) - float(burn)
        runway = -1 if net >= 0 else int(stored // -net)
        score, status = assess_health(int(stored), net, runway)
        return EconomyMetrics(
            stored=int(stored),
            income=round(float(income), 2),
            burn=round(float(burn), 2),
            net_flow=round(net, 2),
            runway=runway,
            health_score=score,
            status=status,
        )

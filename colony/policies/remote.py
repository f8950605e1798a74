#colony/policies/remote.py
"""
Remote-site resolution over cached intel.

All helpers are pure: they read RemoteSite/AssignmentView and return ids.
A site is a mining target when it has sources, no keepers, and is neither
owned nor reserved by someone else.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Tuple

from colony.api import AdjacentSite
from colony.mind.world_state import AssignmentView, RemoteSite
from colony.strategy.schema import RemoteCfg


def site_view(adjacent: Iterable[AdjacentSite], *, now: int) -> Tuple[RemoteSite, ...]:
    out: List[RemoteSite] = []
    for a in adjacent:
        intel = a.intel
        if intel is None:
            out.append(RemoteSite(site_id=a.site_id))
            continue
        age = None if intel.last_scan is None else max(0, int(now) - int(intel.last_scan))
        out.append(
            RemoteSite(
                site_id=a.site_id,
                source_ids=tuple(intel.source_ids),
                has_keepers=bool(intel.has_keepers),
                owner=intel.owner,
                reserved_by=intel.reserved_by,
                reservation_ticks=int(intel.reservation_ticks),
                hostiles=int(intel.hostiles),
                hostile_combat=int(intel.hostile_combat),
                last_scan=intel.last_scan,
                visible=bool(intel.visible),
                construction_sites=int(intel.construction_sites),
                container_sites=int(intel.container_sites),
                scan_age=age,
            )
        )
    return tuple(out)


def mining_targets(
    sites: Iterable[RemoteSite],
    *,
    username: str,
    max_age: Optional[int] = None,
) -> List[RemoteSite]:
    out: List[RemoteSite] = []
    for s in sites:
        if not s.has_intel or not s.source_ids:
            continue
        if max_age is not None and not s.visible and (s.scan_age or 0) > max_age:
            continue
        if s.has_keepers:
            continue
        if s.owner is not None and s.owner != username:
            continue
        if s.reserved_by is not None and s.reserved_by != username:
            continue
        out.append(s)
    return out


def remote_source_count(targets: Iterable[RemoteSite]) -> int:
    return sum(len(s.source_ids) for s in targets)


def remote_threats(sites: Iterable[RemoteSite]) -> Dict[str, int]:
    # keeper hostiles are permanent and never worth a response
    return {s.site_id: s.hostiles for s in sites if s.hostiles > 0 and not s.has_keepers}


def needs_scout(sites: Iterable[RemoteSite], *, cfg: RemoteCfg) -> bool:
    for s in sites:
        if not s.has_intel:
            return True
        if s.scan_age is not None and s.scan_age > cfg.scan_stale_after:
            return True
    return False


def remote_construction(sites: Iterable[RemoteSite], *, cfg: RemoteCfg) -> Tuple[int, int]:
    """
    (remote sites, remote container sites) across mining targets.
    Without vision, fresh intel is assumed to still hold a small backlog.
    """
    total = 0
    containers = 0
    for s in sites:
        if s.visible:
            total += s.construction_sites
            containers += s.container_sites
        elif s.scan_age is not None and s.scan_age < cfg.remote_intel_fresh:
            total += cfg.assumed_remote_sites
    return total, containers


def site_needing_miner(targets: Iterable[RemoteSite], view: AssignmentView) -> Optional[Tuple[str, str]]:
    """First (site_id, source_id) whose source has no live remote miner."""
    for s in targets:
        for source_id in s.source_ids:
            if not view.has_miner(source_id):
                return s.site_id, source_id
    return None


def site_needing_hauler(targets: Iterable[RemoteSite], view: AssignmentView, *, per_miner: float) -> Optional[str]:
    for s in targets:
        miners = view.miners_by_site.get(s.site_id, 0)
        haulers = view.haulers_by_site.get(s.site_id, 0)
        if miners > 0 and haulers < math.ceil(miners * per_miner):
            return s.site_id
    return None


def reservation_missing(site: RemoteSite, *, username: str, cfg: RemoteCfg) -> bool:
    if site.reserved_by is None:
        return True
    if site.reserved_by != username:
        return True
    # ticks were recorded at scan time
    elapsed = site.scan_age or 0
    return (site.reservation_ticks - elapsed) < cfg.reservation_renew_below


def site_needing_reserver(
    targets: Iterable[RemoteSite],
    view: AssignmentView,
    *,
    username: str,
    cfg: RemoteCfg,
) -> Optional[str]:
    for s in targets:
        if not reservation_missing(s, username=username, cfg=cfg):
            continue
        if view.reservers_by_site.get(s.site_id, 0) > 0:
            continue
        return s.site_id
    return None


def threatened_site(view: AssignmentView, sites: Iterable[RemoteSite] = ()) -> Optional[str]:
    """Open squad missing the most defenders; ties go to the site with more hostiles."""
    hostiles = remote_threats(sites)
    best: Optional[str] = None
    best_key = (0, 0)
    for site, need in view.squad_needs.items():
        key = (need, hostiles.get(site, 0))
        if need > 0 and key > best_key:
            best, best_key = site, key
    return best

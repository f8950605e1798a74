#run.py
from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import List

from colony.api import StaticEnvironment, StructureKind, WorkerRecord
from colony.devlog import DevLogger
from colony.mind.runtime import RuntimeApp
from colony.strategy.loader import load_profile

WORKER_TTL = 1500


def _parse_args():
    p = argparse.ArgumentParser(description="Replay a colony scenario through the production scheduler.")
    p.add_argument("scenario", help="Scenario JSON (see scenarios/)")
    p.add_argument("--profile", default="default", help="Profile name in colony/profiles/<name>.json or a path")
    p.add_argument("--steps", type=int, default=10, help="Scheduling rounds to run")
    p.add_argument("--interval", type=int, default=10, help="Clock steps between rounds")
    p.add_argument("--income", type=int, default=50, help="Resource gain per round, per colony")
    p.add_argument("--log-dir", default="logs", help="Devlog directory")
    p.add_argument("--no-log", action="store_true", help="Disable the JSONL devlog")
    return p.parse_args()


def _free_facilities(env: StaticEnvironment, colony_id: str) -> List[str]:
    return [s.structure_id for s in env.structures(colony_id) if s.kind is StructureKind.FACILITY]


def main() -> None:
    args = _parse_args()
    scenario = Path(args.scenario)
    if not scenario.exists():
        raise SystemExit(f"Scenario not found: {scenario}")

    with scenario.open("r", encoding="utf-8") as f:
        env = StaticEnvironment.from_scenario(json.load(f))

    log = DevLogger(log_dir=args.log_dir, enabled=not args.no_log)
    log.set_file(f"{scenario.stem}__{datetime.now().strftime('%Y%m%d_%H%M%S')}.jsonl")

    app = RuntimeApp.build(env=env, profile=load_profile(args.profile), log=log)

    spawned = 0
    for _ in range(max(0, int(args.steps))):
        for colony_id in list(env.colonies):
            facts = env.facts(colony_id)
            for adm in app.step(colony_id, _free_facilities(env, colony_id)):
                cand = adm.candidate
                spawned += 1
                name = f"{cand.archetype.value}_{spawned}"
                facts.available = max(0, facts.available - cand.cost)
                facts.workers.append(
                    WorkerRecord(
                        name=name,
                        archetype=cand.archetype.value,
                        modules=cand.spec.modules,
                        ttl=WORKER_TTL,
                        target_node=cand.assignment.node_id,
                        target_site=cand.assignment.site_id,
                    )
                )
                app.commit(colony_id, adm, worker=name)
                print(
                    f"[t={env.time():>5}] {colony_id} {adm.facility_id}: {name} "
                    f"u={cand.utility:.1f} cost={cand.cost} modules={','.join(m.value for m in cand.spec.modules)}"
                )
            facts.available = min(facts.capacity, facts.available + int(args.income))
        env.advance(args.interval)

    print(f"\nAdmitted {spawned} worker(s).")


if __name__ == "__main__":
    main()

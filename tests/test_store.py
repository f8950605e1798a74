import pytest

from colony.infra.store import (
    AssignmentKind,
    AssignmentRecord,
    ColonyStore,
    EconomySample,
    SquadRecord,
    SquadStatus,
)


def test_assignment_record_requires_targets_for_kind() -> None:
    AssignmentRecord(AssignmentKind.NODE, "g1", "home", node_id="src_a")

    with pytest.raises(ValueError):
        AssignmentRecord(AssignmentKind.NODE, "g1", "home")
    with pytest.raises(ValueError):
        AssignmentRecord(AssignmentKind.REMOTE_NODE, "rm1", "home", node_id="rs_1")
    with pytest.raises(ValueError):
        AssignmentRecord(AssignmentKind.RESERVATION, "r1", "home", site_id="W1N2", start=-1)
    with pytest.raises(TypeError):
        AssignmentRecord("node", "g1", "home", node_id="src_a")


def test_store_rejects_untyped_records() -> None:
    store = ColonyStore()

    with pytest.raises(TypeError):
        store.assign({"kind": "node", "worker": "g1"})
    with pytest.raises(TypeError):
        store.put_squad("home", {"site_id": "W1N2"})
    with pytest.raises(TypeError):
        store.append_sample("home", (0, 0, 0.0, 0.0))


def test_assignments_by_kind_release_and_prune() -> None:
    store = ColonyStore()
    store.assign(AssignmentRecord(AssignmentKind.NODE, "g1", "home", node_id="src_a"))
    store.assign(AssignmentRecord(AssignmentKind.REMOTE_HAUL, "h1", "home", site_id="W1N2"))
    store.assign(AssignmentRecord(AssignmentKind.REMOTE_HAUL, "h2", "home", site_id="W1N2"))

    assert len(store.assignments("home")) == 3
    assert [r.worker for r in store.assignments("home", AssignmentKind.NODE)] == ["g1"]

    assert store.release("home", "g1")
    assert not store.release("home", "g1")
    assert store.prune("home", live=["h1"]) == 1
    assert [r.worker for r in store.assignments("home")] == ["h1"]
    assert store.assignments("elsewhere") == []


def test_squad_missing_counts_live_members_of_open_squads() -> None:
    forming = SquadRecord("W1N2", SquadStatus.FORMING, required_size=3, members=("d1", "d2"))
    engaged = SquadRecord("W1N2", SquadStatus.ENGAGED, required_size=3, members=())

    assert forming.missing(["d1"]) == 2
    assert forming.missing(["d1", "d2"]) == 1
    assert engaged.missing([]) == 0

    with pytest.raises(TypeError):
        SquadRecord("W1N2", SquadStatus.READY, required_size=2, members=["d1"])


def test_history_ring_keeps_latest_samples() -> None:
    store = ColonyStore(history_size=3)
    for t in range(5):
        store.append_sample("home", EconomySample(time=t * 100, stored=t, income=1.0, burn=0.5))

    assert [s.time for s in store.history("home")] == [200, 300, 400]

    store.reset()
    assert store.history("home") == []


def test_squads_are_keyed_by_site() -> None:
    store = ColonyStore()
    store.put_squad("home", SquadRecord("W1N2", SquadStatus.FORMING, required_size=2))
    store.put_squad("home", SquadRecord("W1N2", SquadStatus.READY, required_size=2, members=("d1",)))

    assert [s.status for s in store.squads("home")] == [SquadStatus.READY]

    store.remove_squad("home", "W1N2")
    store.remove_squad("elsewhere", "W1N2")
    assert store.squads("home") == []

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from wastefleet.errors import ValidationError
from wastefleet.models.domain import DriverStatus, Priority, RouteStatus
from wastefleet.persistence.filesystem import FileStorage
from wastefleet.persistence.state import dump_state, load_state
from wastefleet.services import engine as engine_module
from wastefleet.services.engine import CollectionEngine, build_engine

SEED = Path(__file__).resolve().parents[1] / "data" / "seed.json"


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="plan_test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path / "outputs"


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="plan_test")

    summary_path = run_dir / "summary.json"
    routes_path = run_dir / "routes.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(routes_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert routes_path.read_text(encoding="utf-8") == "a,b\n1,2\n"


def test_build_engine_loads_seed() -> None:
    engine = build_engine(SEED)

    assert len(engine.bins) == 8
    assert [driver.driver_id for driver in engine.drivers.list()] == ["D1", "D2", "D3"]
    assert engine.drivers.get("D2").active_status is DriverStatus.ON_ROUTE
    assert engine.schedules.for_bin("7").priority is Priority.HIGH
    assert engine.routes.get("2").status is RouteStatus.IN_PROGRESS
    assert engine.routes.get("1").driver_id is None
    assert engine.bins.get("1").last_collected == datetime(2024, 4, 23, tzinfo=timezone.utc)


def test_build_engine_without_seed_is_empty(tmp_path: Path) -> None:
    engine = build_engine(tmp_path / "missing.json")

    assert len(engine.bins) == 0
    assert engine.routes.list() == []


def test_dump_and_load_preserve_state() -> None:
    original = build_engine(SEED)
    original.dispatch("1", "D1")
    payload = json.loads(json.dumps(dump_state(original)))

    restored = CollectionEngine()
    load_state(restored, payload)

    assert dump_state(restored) == payload
    assert sorted(payload) == ["bins", "drivers", "routes", "schedules"]
    assert restored.drivers.get("D1").current_route == "1"


def test_seed_with_doubled_bin_is_rejected() -> None:
    payload = json.loads(SEED.read_text(encoding="utf-8"))
    payload["routes"][0]["bin_ids"].append("4")

    with pytest.raises(ValidationError):
        load_state(CollectionEngine(), payload)


def test_seed_with_unheld_in_progress_route_is_rejected() -> None:
    payload = json.loads(SEED.read_text(encoding="utf-8"))
    payload["drivers"][1]["current_route"] = None

    with pytest.raises(ValidationError):
        load_state(CollectionEngine(), payload)


def test_plan_persists_outputs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(engine_module, "FileStorage", lambda: FileStorage(root=tmp_path))
    engine = build_engine(SEED)
    engine.cancel("1")

    result = engine.plan(datetime(2024, 4, 25, 6, 0, tzinfo=timezone.utc), persist=True)

    output_dirs = list((tmp_path / "outputs").glob("plan_R20240425_*"))
    assert output_dirs
    run_dir = output_dirs[0]
    assert result.metadata["output_dir"] == str(run_dir)
    summary = json.loads((run_dir / "summary.json").read_text(encoding="utf-8"))
    assert [route["route_id"] for route in summary["routes"]] == ["R20240425-001"]
    rows = (run_dir / "routes.csv").read_text(encoding="utf-8").splitlines()
    assert rows[0].startswith("route_id,date,sequence,bin_id")
    assert len(rows) == 1 + len(result.routes[0].bin_ids)


def test_write_snapshot_round_trips_engine_state(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    state = dump_state(build_engine(SEED))

    path = storage.write_snapshot(state)

    assert path.name == "state.json"
    assert path.parent.name.startswith("snapshot_")
    restored = CollectionEngine()
    load_state(restored, json.loads(path.read_text(encoding="utf-8")))
    assert dump_state(restored) == state


@pytest.mark.parametrize(
    "driver_row",
    [
        {"active_status": "available", "current_route": "1"},
        {"active_status": "on-route", "current_route": None},
        {"active_status": "on-route", "current_route": "missing"},
        {"active_status": "on-route", "current_route": "2"},
    ],
)
def test_seed_with_inconsistent_driver_is_rejected(driver_row: dict) -> None:
    payload = json.loads(SEED.read_text(encoding="utf-8"))
    payload["drivers"][0].update(driver_row)

    with pytest.raises(ValidationError):
        load_state(CollectionEngine(), payload)


def test_driver_holding_completed_route_is_rejected() -> None:
    payload = json.loads(SEED.read_text(encoding="utf-8"))
    payload["routes"][0].update({"status": "completed", "driver_id": "D1", "actual_duration": 100})
    payload["drivers"][0].update({"active_status": "on-route", "current_route": "1"})

    with pytest.raises(ValidationError):
        load_state(CollectionEngine(), payload)

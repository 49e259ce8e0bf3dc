import re

import pytest

from waystation.store import DB_FILENAME, Store, Trip


@pytest.fixture
def store(tmp_path):
    with Store(tmp_path / "data") as db:
        yield db


def test_open_creates_directory_and_database(tmp_path):
    target = tmp_path / "nested" / "dir"
    with Store(target) as db:
        assert db.count() == 0
    assert (target / DB_FILENAME).is_file()


def test_create_assigns_id_and_timestamp(store):
    trip = store.create(Trip(name="Lisbon", destination="Portugal", budget=120000))
    assert trip.id.isdigit()
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z", trip.created_at)


def test_create_get_round_trip(store):
    created = store.create(
        Trip(
            name="Alps",
            destination="Switzerland",
            start_date="2024-06-01",
            end_date="2024-06-10",
            budget=500000,
            itinerary="[]",
            status="planning",
            notes="pack boots",
        )
    )
    assert store.get(created.id) == created


def test_get_missing_returns_none(store):
    assert store.get("nope") is None


def test_ids_are_unique(store):
    ids = {store.create(Trip(name=f"t{n}")).id for n in range(20)}
    assert len(ids) == 20
    assert store.count() == 20


def test_list_returns_all(store):
    names = {"a", "b", "c"}
    for name in names:
        store.create(Trip(name=name))
    assert {t.name for t in store.list()} == names


def test_list_orders_newest_first(store):
    old = store.create(Trip(name="old"))
    new = store.create(Trip(name="new"))
    store._run("UPDATE trips SET created_at=? WHERE id=?", ("2000-01-01T00:00:00Z", old.id))
    assert [t.id for t in store.list()] == [new.id, old.id]


def test_update_keeps_created_at(store):
    trip = store.create(Trip(name="x", status="planning"))
    changed = Trip(
        id=trip.id, name="y", status="booked", budget=42, created_at="ignored"
    )
    store.update(changed)
    got = store.get(trip.id)
    assert got.name == "y"
    assert got.status == "booked"
    assert got.budget == 42
    assert got.created_at == trip.created_at


def test_delete(store):
    trip = store.create(Trip(name="gone"))
    store.delete(trip.id)
    assert store.get(trip.id) is None
    assert store.count() == 0


def test_search_by_name_is_case_insensitive(store):
    store.create(Trip(name="Paris weekend"))
    store.create(Trip(name="Tokyo"))
    found = store.search("paris", {})
    assert [t.name for t in found] == ["Paris weekend"]


def test_search_by_status(store):
    store.create(Trip(name="a", status="planning"))
    store.create(Trip(name="b", status="done"))
    store.create(Trip(name="ab", status="done"))
    assert {t.name for t in store.search("", {"status": "done"})} == {"b", "ab"}
    assert [t.name for t in store.search("a", {"status": "planning"})] == ["a"]


def test_search_without_criteria_returns_everything(store):
    store.create(Trip(name="a"))
    store.create(Trip(name="b"))
    assert len(store.search("", None)) == store.count()


def test_stats(store):
    store.create(Trip(name="a", status="planning"))
    store.create(Trip(name="b", status="planning"))
    store.create(Trip(name="c", status="done"))
    assert store.stats() == {"total": 3, "by_status": {"planning": 2, "done": 1}}


def test_stats_empty(store):
    assert store.stats() == {"total": 0, "by_status": {}}


def test_extras_default(store):
    assert store.get_extras("trips", "1") == "{}"


def test_extras_set_get_overwrite(store):
    store.set_extras("trips", "1", '{"seat":"12A"}')
    assert store.get_extras("trips", "1") == '{"seat":"12A"}'
    store.set_extras("trips", "1", '{"seat":"3C"}')
    assert store.get_extras("trips", "1") == '{"seat":"3C"}'


def test_extras_empty_data_stored_as_empty_object(store):
    store.set_extras("trips", "1", "")
    assert store.all_extras("trips") == {"1": "{}"}


def test_extras_delete_and_all(store):
    store.set_extras("trips", "1", '{"a":1}')
    store.set_extras("trips", "2", '{"b":2}')
    store.set_extras("other", "3", '{"c":3}')
    store.delete_extras("trips", "1")
    assert store.all_extras("trips") == {"2": '{"b":2}'}
    assert store.all_extras("other") == {"3": '{"c":3}'}


def test_data_persists_across_reopen(tmp_path):
    with Store(tmp_path) as db:
        trip = db.create(Trip(name="kept"))
    with Store(tmp_path) as db:
        assert db.get(trip.id).name == "kept"


def test_trip_dict_round_trip():
    trip = Trip(id="1", name="n", budget=7, status="planning")
    assert Trip.from_dict(trip.to_dict()) == trip


def test_trip_to_dict_keys():
    assert list(Trip().to_dict()) == [
        "id",
        "name",
        "destination",
        "start_date",
        "end_date",
        "budget",
        "itinerary",
        "status",
        "notes",
        "created_at",
    ]


def test_from_dict_ignores_unknown_and_nulls():
    trip = Trip.from_dict({"name": "x", "extra": 1, "notes": None})
    assert trip == Trip(name="x")


@pytest.mark.parametrize(
    "data",
    [
        {"budget": "10"},
        {"budget": 1.5},
        {"budget": True},
        {"name": 3},
        {"budget": 2**63},
        ["name"],
    ],
)
def test_from_dict_rejects_bad_types(data):
    with pytest.raises(ValueError):
        Trip.from_dict(data)


def test_closed_store_rejects_use_and_keeps_data(tmp_path):
    db = Store(tmp_path)
    trip = db.create(Trip(name="before close"))
    db.close()
    with pytest.raises(Exception, match="(?i)closed"):
        db.count()
    with Store(tmp_path) as reopened:
        assert reopened.count() == 1
        assert reopened.get(trip.id).name == "before close"
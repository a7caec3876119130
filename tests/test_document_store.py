"""
Unit tests for the path-addressed document store.
"""

import pytest
from sqlalchemy.exc import OperationalError

from medportal.common.database.document_store import DocumentStore, generate_key, split_path
from medportal.common.errors import StoreError


# ── Helpers / Fakes ──────────────────────────────────────────────────

class FailingSession:
    """AsyncSession stand-in whose every statement fails."""
    def __init__(self):
        self.rolled_back = False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    async def get(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    async def commit(self):
        pass

    async def rollback(self):
        self.rolled_back = True


# ── Tests: paths and keys ────────────────────────────────────────────

def test_split_path_ignores_outer_slashes():
    assert split_path("/users/abc/") == ["users", "abc"]


def test_split_path_rejects_root():
    with pytest.raises(ValueError):
        split_path("/")


def test_generated_keys_sort_in_creation_order():
    keys = [generate_key() for _ in range(50)]
    assert keys == sorted(keys)
    assert len(set(keys)) == 50


# ── Tests: reads and writes ──────────────────────────────────────────

async def test_read_missing_paths_return_none(store):
    assert await store.read_path("users") is None
    assert await store.read_path("users/nobody") is None
    assert await store.read_path("users/nobody/role") is None


async def test_write_and_read_document(store):
    await store.write_path("users/u1", {"role": "patient", "firstName": "Ada"})

    assert await store.read_path("users/u1") == {"role": "patient", "firstName": "Ada"}
    assert await store.read_path("users/u1/role") == "patient"
    assert await store.read_path("users") == {"u1": {"role": "patient", "firstName": "Ada"}}


async def test_write_overwrites_whole_value(store):
    await store.write_path("users/u1", {"role": "patient", "phone": "555"})
    await store.write_path("users/u1", {"role": "doctor"})

    assert await store.read_path("users/u1") == {"role": "doctor"}


async def test_nested_write_creates_parent_and_keeps_siblings(store):
    await store.write_path("users/u1/medicalHistory", {"conditions": []})
    assert await store.read_path("users/u1") == {"medicalHistory": {"conditions": []}}

    await store.write_path("users/u1/role", "patient")
    assert await store.read_path("users/u1") == {
        "medicalHistory": {"conditions": []},
        "role": "patient",
    }


async def test_returned_values_are_copies(store):
    await store.write_path("users/u1", {"tags": ["a"]})
    value = await store.read_path("users/u1")
    value["tags"].append("b")

    assert await store.read_path("users/u1") == {"tags": ["a"]}


async def test_merge_only_touches_named_children(store):
    await store.write_path("users/u1", {"role": "patient", "firstName": "Ada", "phone": "555"})

    await store.merge_path("users/u1", {"phone": "777", "address": "Lagos"})

    assert await store.read_path("users/u1") == {
        "role": "patient",
        "firstName": "Ada",
        "phone": "777",
        "address": "Lagos",
    }


async def test_merge_with_none_deletes_child(store):
    await store.write_path("users/u1", {"role": "patient", "phone": "555"})
    await store.merge_path("users/u1", {"phone": None})

    assert await store.read_path("users/u1") == {"role": "patient"}


async def test_merge_child_keys_may_be_paths(store):
    await store.write_path("appointments/a1", {"feedback": {"diagnosis": "flu", "notes": "rest"}})
    await store.merge_path("appointments/a1", {"feedback/notes": "fluids"})

    assert await store.read_path("appointments/a1/feedback") == {"diagnosis": "flu", "notes": "fluids"}


async def test_append_child_returns_key_and_keeps_order(store):
    first = await store.append_child("appointments", {"n": 1})
    second = await store.append_child("appointments", {"n": 2})

    collection = await store.read_path("appointments")
    assert list(collection) == [first, second]
    assert collection[second] == {"n": 2}


async def test_delete_document_and_collection(store):
    await store.write_path("prescriptions/p1", {"dosage": "5mg"})
    await store.write_path("prescriptions/p2", {"dosage": "10mg"})

    await store.delete_path("prescriptions/p1")
    assert await store.read_path("prescriptions") == {"p2": {"dosage": "10mg"}}

    await store.delete_path("prescriptions")
    assert await store.read_path("prescriptions") is None


async def test_deleting_last_nested_field_removes_document(store):
    await store.write_path("users/u1/medicalHistory", {"conditions": []})
    await store.delete_path("users/u1/medicalHistory")

    assert await store.read_path("users/u1") is None


# ── Tests: change listeners ──────────────────────────────────────────

async def test_change_listeners_get_written_paths(store):
    seen = []

    async def on_change(path):
        seen.append(path)

    unsubscribe = store.on_change("appointments", on_change)
    try:
        key = await store.append_child("appointments", {"n": 1})
        await store.merge_path(f"appointments/{key}", {"n": 2})
        await store.write_path("users/u1", {"role": "patient"})
        await store.read_path("appointments")
    finally:
        unsubscribe()
    await store.delete_path(f"appointments/{key}")

    assert seen == [f"appointments/{key}", f"appointments/{key}"]


async def test_failing_listener_does_not_fail_the_write(store):
    async def on_change(path):
        raise RuntimeError("subscriber went away")

    unsubscribe = store.on_change("prescriptions", on_change)
    try:
        await store.write_path("prescriptions/p1", {"dosage": "5mg"})
    finally:
        unsubscribe()

    assert await store.read_path("prescriptions/p1") == {"dosage": "5mg"}


# ── Tests: failures ──────────────────────────────────────────────────

async def test_driver_errors_surface_as_store_error():
    session = FailingSession()
    store = DocumentStore(session)

    with pytest.raises(StoreError) as e:
        await store.read_path("users/u1")

    assert isinstance(e.value.__cause__, OperationalError)
    assert session.rolled_back

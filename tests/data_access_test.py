"""SupabaseStore request shapes, checked against a recording client."""

from types import SimpleNamespace

import pytest
from postgrest.exceptions import APIError

from programs_admin.data_access import DataAccessError, NotFoundError, SupabaseStore


class RecordingQuery:
    def __init__(self, client, table):
        self.client = client
        self.calls = [("table", table)]

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, *args))
            return self

        return record

    def execute(self):
        self.client.requests.append(self.calls)
        if self.client.fail:
            raise APIError({"message": "boom", "code": "500"})
        return SimpleNamespace(data=self.client.data)


class RecordingClient:
    def __init__(self, data=None, fail=False):
        self.requests = []
        self.data = data or []
        self.fail = fail

    def table(self, name):
        return RecordingQuery(self, name)


def test_cascade_delete_is_one_request():
    client = RecordingClient()
    SupabaseStore(client).delete_agents(["P1", "P2", "G"])
    assert client.requests == [
        [("table", "pennyekart_agents"), ("delete",), ("in_", "id", ["P1", "P2", "G"])]
    ]


def test_empty_delete_sends_nothing():
    client = RecordingClient()
    SupabaseStore(client).delete_agents([])
    assert client.requests == []


def test_reparent_grouped_by_new_parent():
    client = RecordingClient()
    SupabaseStore(client).update_agent_parents([("P1", "G2"), ("P2", "G2")])
    assert client.requests == [
        [
            ("table", "pennyekart_agents"),
            ("update", {"parent_agent_id": "G2"}),
            ("in_", "id", ["P1", "P2"]),
        ]
    ]


def test_update_program_returns_parsed_row():
    client = RecordingClient(data=[{"id": "P1", "name": "Goat Farming", "verification_enabled": True}])
    program = SupabaseStore(client).update_program("P1", {"verification_enabled": True})
    assert program.verification_enabled
    assert client.requests[0][1] == ("update", {"verification_enabled": True})


def test_update_program_missing_row():
    with pytest.raises(NotFoundError):
        SupabaseStore(RecordingClient()).update_program("nope", {"is_active": False})


def test_api_error_wrapped():
    with pytest.raises(DataAccessError):
        SupabaseStore(RecordingClient(fail=True)).delete_agents(["P1"])

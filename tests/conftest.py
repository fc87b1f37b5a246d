import copy

import pytest
import requests
from werkzeug.security import generate_password_hash

from eduresources import config
from eduresources.app import app as flask_app


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class FakeSupabase:
    """In-memory stand-in for the Supabase REST and Storage endpoints."""

    def __init__(self):
        self.tables = {config.RESOURCES_TABLE: [], config.ADMIN_TABLE: [], config.FIELDS_TABLE: []}
        self.storage = {}
        self.writes = []  # (method, table, payload) for every REST write
        self._failures = {}

    def fail(self, method, status=None, message="Backend error", exc=None, target=None):
        """Makes the next ``method`` call fail with an HTTP status or raise ``exc``.

        With ``target``, only a call whose url contains it fails.
        """
        self._failures[method] = (status, message, exc, target)

    def _check_failure(self, method, url):
        if method not in self._failures:
            return None
        status, message, exc, target = self._failures[method]
        if target is not None and target not in url:
            return None
        del self._failures[method]
        if exc is not None:
            raise exc
        return FakeResponse(status, {"message": message}, message)

    def _table(self, url):
        prefix = f"{config.SUPABASE_URL}/rest/v1/"
        assert url.startswith(prefix), url
        return self.tables[url[len(prefix):]]

    @staticmethod
    def _matches(row, params):
        for key, value in (params or {}).items():
            if key in ("select", "order", "limit"):
                continue
            assert value.startswith("eq."), value
            if str(row.get(key)) != value[3:]:
                return False
        return True

    def _with_join(self, row, select):
        row = copy.deepcopy(row)
        if "fields:field_id" in (select or ""):
            match = [f for f in self.tables[config.FIELDS_TABLE] if str(f["id"]) == str(row.get("field_id"))]
            row["fields"] = copy.deepcopy(match[0]) if match else None
        return row

    def get(self, url, headers=None, params=None, timeout=None):
        failure = self._check_failure("get", url)
        if failure:
            return failure
        params = params or {}
        rows = [r for r in self._table(url) if self._matches(r, params)]
        for order in reversed(params.get("order", "").split(",")):
            if not order:
                continue
            column, _, direction = order.partition(".")
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=direction == "desc")
        if "limit" in params:
            rows = rows[:int(params["limit"])]
        return FakeResponse(200, [self._with_join(r, params.get("select")) for r in rows])

    def post(self, url, headers=None, json=None, data=None, params=None, timeout=None):
        failure = self._check_failure("post", url)
        if failure:
            return failure
        storage_prefix = f"{config.SUPABASE_URL}/storage/v1/object/"
        if url.startswith(storage_prefix):
            key = url[len(storage_prefix):]
            self.storage[key] = data
            return FakeResponse(200, {"Key": key})
        row = copy.deepcopy(json)
        self._table(url).append(row)
        self.writes.append(("post", url, copy.deepcopy(json)))
        return FakeResponse(201, [copy.deepcopy(row)])

    def patch(self, url, headers=None, params=None, json=None, timeout=None):
        failure = self._check_failure("patch", url)
        if failure:
            return failure
        self.writes.append(("patch", url, copy.deepcopy(json)))
        updated = []
        for row in self._table(url):
            if self._matches(row, params):
                row.update(copy.deepcopy(json))
                updated.append(copy.deepcopy(row))
        return FakeResponse(200, updated)

    def delete(self, url, headers=None, params=None, timeout=None):
        failure = self._check_failure("delete", url)
        if failure:
            return failure
        table = self._table(url)
        table[:] = [r for r in table if not self._matches(r, params)]
        return FakeResponse(204, None)


@pytest.fixture()
def fake_supabase(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr("requests.get", fake.get)
    monkeypatch.setattr("requests.post", fake.post)
    monkeypatch.setattr("requests.patch", fake.patch)
    monkeypatch.setattr("requests.delete", fake.delete)
    return fake


@pytest.fixture()
def seeded(fake_supabase):
    fake_supabase.tables[config.FIELDS_TABLE] = [
        {"id": "f1", "name": "BCA"},
        {"id": "f2", "name": "BBA"},
    ]
    fake_supabase.tables[config.RESOURCES_TABLE] = [
        {"id": "1", "title": "C Programming Notes", "description": "Pointers and arrays",
         "subject": "Computer Programming", "field_id": "f1", "type": "Notes",
         "semester": 1, "fileUrl": "#", "uploadDate": "2024-01-10"},
        {"id": "2", "title": "Accounting Past Paper", "description": "2023 final exam",
         "subject": "Financial Accounting", "field_id": "f2", "type": "Paper",
         "semester": 2, "fileUrl": "#", "uploadDate": "2024-03-05"},
        {"id": "3", "title": "Data Structures Syllabus", "description": "Trees, graphs and notes on hashing",
         "subject": "Data Structures", "field_id": "f1", "type": "Syllabus",
         "semester": 3, "fileUrl": "#", "uploadDate": "2024-02-01"},
    ]
    fake_supabase.tables[config.ADMIN_TABLE] = [
        {"id": 1, "email": "admin@example.com", "full_name": "Site Admin",
         "password_hash": generate_password_hash("secret123")},
    ]
    return fake_supabase


@pytest.fixture()
def app():
    flask_app.config.update(TESTING=True)
    yield flask_app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_client(client):
    with client.session_transaction() as sess:
        sess['admin'] = {"id": 1, "email": "admin@example.com", "full_name": "Site Admin"}
    return client

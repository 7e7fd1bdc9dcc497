"""Shared pytest fixtures for unit tests that talk to a fake SFTPGo API."""

import json
from types import SimpleNamespace
from urllib.parse import unquote

import httpx
import pytest

from sftpgo_operator.utils.sftpgo_client import SFTPGoClient

API_KEY = "test-api-key"

# collection -> field identifying an object
COLLECTIONS = {
    "users": "username",
    "folders": "name",
    "groups": "name",
    "eventactions": "name",
    "eventrules": "name",
    "roles": "name",
    "admins": "username",
}

DUMP_SCOPES = {
    "folders": ("folders", "folders"),
    "groups": ("groups", "groups"),
    "actions": ("eventactions", "event_actions"),
    "admins": ("admins", "admins"),
}


def _encrypt(value):
    """Mimic the KMS: plain secrets come back encrypted."""
    if isinstance(value, dict) and value.get("status") == "Plain":
        return {
            "status": "Secretbox",
            "payload": "ZW5jcnlwdGVk",
            "key": "a1b2",
            "additional_data": "",
        }
    if isinstance(value, dict):
        return {k: _encrypt(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encrypt(v) for v in value]
    return value


class FakeSFTPGo:
    """
    In-memory SFTPGo REST API served through ``httpx.MockTransport``.

    Stored objects are returned the way SFTPGo does: plain secrets come back
    encrypted, user and admin passwords come back hashed and server assigned
    timestamps are filled in.
    """

    def __init__(self):
        self.objects: dict[str, dict[str, dict]] = {name: {} for name in COLLECTIONS}
        self.ip_lists: dict[int, dict[str, dict]] = {1: {}, 2: {}, 3: {}}
        self.license: dict | None = None
        self.requests: list[httpx.Request] = []
        self.clock = 1700000000000

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def _stamp(self, obj: dict, existing: dict | None = None) -> dict:
        self.clock += 1000
        obj["created_at"] = (existing or {}).get("created_at", self.clock)
        obj["updated_at"] = self.clock
        return obj

    def _store(self, collection: str, payload: dict, existing: dict | None = None) -> dict:
        obj = _encrypt(payload)
        if collection in ("users", "admins"):
            if payload.get("password"):
                obj["password"] = "$2a$10$hashedpasswordvalue"
            elif existing is not None:
                obj["password"] = existing.get("password", "")
        if collection == "eventactions":
            return obj
        return self._stamp(obj, existing)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        raw_path = request.url.raw_path.decode().split("?")[0]
        parts = [unquote(p) for p in raw_path.split("/")[3:]]
        body = json.loads(request.content) if request.content else None

        if parts == ["token"]:
            return httpx.Response(
                200, json={"access_token": "token", "expires_at": "2999-01-01T00:00:00Z"}
            )
        if request.headers.get("X-SFTPGO-API-KEY") != API_KEY and not request.headers.get(
            "Authorization"
        ):
            return httpx.Response(401, json={"error": "unauthorized"})

        if parts == ["dumpdata"]:
            collection, key = DUMP_SCOPES[request.url.params["scopes"]]
            return httpx.Response(200, json={key: list(self.objects[collection].values())})
        if parts[0] == "license":
            return self._handle_license(request, body)
        if parts[0] == "iplists":
            return self._handle_ip_list(request, parts, body)
        return self._handle_collection(request, parts, body)

    def _handle_collection(self, request, parts, body) -> httpx.Response:
        collection = parts[0]
        store = self.objects[collection]
        if len(parts) == 1:
            if request.method == "POST":
                key = body[COLLECTIONS[collection]]
                if key in store:
                    return httpx.Response(409, json={"error": "already exists"})
                store[key] = self._store(collection, body)
                return httpx.Response(201, json=store[key])
            offset = int(request.url.params.get("offset", 0))
            limit = int(request.url.params.get("limit", 100))
            return httpx.Response(200, json=list(store.values())[offset : offset + limit])

        name = parts[1]
        if name not in store:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "GET":
            return httpx.Response(200, json=store[name])
        if request.method == "PUT":
            store[name] = self._store(collection, body, store[name])
            return httpx.Response(200, json={"message": "updated"})
        del store[name]
        return httpx.Response(200, json={"message": "deleted"})

    def _handle_ip_list(self, request, parts, body) -> httpx.Response:
        store = self.ip_lists[int(parts[1])]
        if len(parts) == 2:
            if request.method == "POST":
                store[body["ipornet"]] = self._stamp(dict(body))
                return httpx.Response(201, json={"message": "created"})
            cursor = request.url.params.get("from", "")
            items = [v for k, v in sorted(store.items()) if k > cursor]
            limit = int(request.url.params.get("limit", 100))
            return httpx.Response(200, json=items[:limit])

        ipornet = parts[2]
        if ipornet not in store:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "GET":
            return httpx.Response(200, json=store[ipornet])
        if request.method == "PUT":
            store[ipornet] = self._stamp(dict(body), store[ipornet])
            return httpx.Response(200, json={"message": "updated"})
        del store[ipornet]
        return httpx.Response(200, json={"message": "deleted"})

    def _handle_license(self, request, body) -> httpx.Response:
        if request.method == "POST":
            self.license = {
                "key": "XXXX-" + body["key"][-4:],
                "type": 1,
                "valid_from": 1700000000000,
                "valid_to": 1800000000000,
                "features": {"max_concurrent_transfers": 10, "future_feature": True},
            }
            return httpx.Response(200, json={"message": "license installed"})
        if self.license is None:
            return httpx.Response(404, json={"error": "no license"})
        return httpx.Response(200, json=self.license)


@pytest.fixture
def fake_sftpgo():
    return FakeSFTPGo()


@pytest.fixture
async def sftpgo_client(fake_sftpgo):
    client = SFTPGoClient(
        host="http://sftpgo:8080",
        api_key=API_KEY,
        transport=fake_sftpgo.transport(),
    )
    yield client
    await client.close()


@pytest.fixture
def status():
    """Stand-in for the kopf status wrapper."""
    return SimpleNamespace(conditions=None)

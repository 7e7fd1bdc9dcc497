"""
Unit tests for ResourceReconciler.

Covers the create, import, update, delete and resync flows and the status
fields written along the way.
"""

from unittest.mock import patch

import httpx
import kopf
import pytest

from sftpgo_operator.constants import (
    IMPORT_ANNOTATION,
    PHASE_DEGRADED,
    PHASE_FAILED,
    PHASE_PENDING,
    PHASE_READY,
)
from sftpgo_operator.services.adapters import EventActionAdapter, RoleAdapter, UserAdapter
from sftpgo_operator.services.reconciler import ResourceReconciler, state_patch
from sftpgo_operator.utils.sftpgo_client import SFTPGoClient

USER_SPEC = {"username": "alice", "password": "mypassword", "home_dir": "/srv/alice"}


def merge_patch(stored, patch):
    """Apply a JSON merge patch the way the API server applies kopf status patches."""
    merged = dict(stored or {})
    for key, value in patch.items():
        if value is None:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_patch(merged[key], value)
        else:
            merged[key] = value
    return merged


@pytest.fixture
def reconciler():
    return ResourceReconciler(UserAdapter())


class TestReconcile:
    @pytest.mark.asyncio
    async def test_creates_new_object(self, reconciler, sftpgo_client, fake_sftpgo, status):
        state = await reconciler.reconcile(
            USER_SPEC, "alice", "default", status, sftpgo_client, generation=3
        )

        assert "alice" in fake_sftpgo.objects["users"]
        assert status.phase == PHASE_READY
        assert status.identifier == "alice"
        assert status.state == state
        assert status.state["password"] == "mypassword"
        assert status.observed_generation == 3
        assert status.last_sync_time
        assert status.conditions[-1]["type"] == "Ready"
        assert status.conditions[-1]["status"] == "True"

    @pytest.mark.asyncio
    async def test_known_object_is_refreshed(self, reconciler, sftpgo_client, fake_sftpgo, status):
        state = await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)
        posts_before = sum(r.method == "POST" for r in fake_sftpgo.requests)

        refreshed = await reconciler.reconcile(
            USER_SPEC, "alice", "default", status, sftpgo_client, state=state
        )

        assert refreshed == state
        assert sum(r.method == "POST" for r in fake_sftpgo.requests) == posts_before

    @pytest.mark.asyncio
    async def test_vanished_object_is_recreated(
        self, reconciler, sftpgo_client, fake_sftpgo, status
    ):
        state = await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)
        fake_sftpgo.objects["users"].clear()

        with patch(
            "sftpgo_operator.services.reconciler.metrics_collector.record_recreation"
        ) as mock_record:
            await reconciler.reconcile(
                USER_SPEC, "alice", "default", status, sftpgo_client, state=state
            )

        assert "alice" in fake_sftpgo.objects["users"]
        mock_record.assert_called_once_with("user", "default")

    @pytest.mark.asyncio
    async def test_import_existing_object(self, reconciler, sftpgo_client, fake_sftpgo, status):
        await UserAdapter().create(sftpgo_client, USER_SPEC)
        posts_before = sum(r.method == "POST" for r in fake_sftpgo.requests)

        state = await reconciler.reconcile(
            {"username": "alice"},
            "alice",
            "default",
            status,
            sftpgo_client,
            annotations={IMPORT_ANNOTATION: "true"},
        )

        assert state["username"] == "alice"
        assert sum(r.method == "POST" for r in fake_sftpgo.requests) == posts_before

    @pytest.mark.asyncio
    async def test_import_missing_object_fails_permanently(
        self, reconciler, sftpgo_client, status
    ):
        with pytest.raises(kopf.PermanentError, match="does not exist"):
            await reconciler.reconcile(
                {"username": "ghost"},
                "ghost",
                "default",
                status,
                sftpgo_client,
                annotations={IMPORT_ANNOTATION: "true"},
            )

        assert status.phase == PHASE_FAILED

    @pytest.mark.asyncio
    async def test_invalid_spec_fails_permanently(self, reconciler, sftpgo_client, status):
        with pytest.raises(kopf.PermanentError, match="Invalid user configuration"):
            await reconciler.reconcile(
                {"username": "alice", "quota_size": -1}, "alice", "default", status, sftpgo_client
            )

        assert status.phase == PHASE_FAILED
        assert status.conditions[-1]["status"] == "False"

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, reconciler, status):
        client = SFTPGoClient(
            host="http://sftpgo:8080",
            api_key="k",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom")),
        )

        with pytest.raises(kopf.TemporaryError):
            await reconciler.reconcile(USER_SPEC, "alice", "default", status, client)

        assert status.phase == PHASE_PENDING
        await client.close()

    @pytest.mark.asyncio
    async def test_server_error_on_known_object_degrades(
        self, reconciler, sftpgo_client, status
    ):
        state = await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)
        client = SFTPGoClient(
            host="http://sftpgo:8080",
            api_key="k",
            transport=httpx.MockTransport(lambda request: httpx.Response(503, text="busy")),
        )

        with pytest.raises(kopf.TemporaryError):
            await reconciler.reconcile(
                USER_SPEC, "alice", "default", status, client, state=state
            )

        assert status.phase == PHASE_DEGRADED
        assert status.conditions[-1]["status"] == "False"
        await client.close()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, reconciler, sftpgo_client, status):
        with patch.object(UserAdapter, "create", side_effect=RuntimeError("surprise")):
            with pytest.raises(kopf.TemporaryError, match="Unexpected error during reconcile"):
                await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_in_place(self, reconciler, sftpgo_client, fake_sftpgo, status):
        state = await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)
        new_spec = {**USER_SPEC, "password": "mynewpassword"}

        state = await reconciler.update(
            USER_SPEC, new_spec, "alice", "default", status, sftpgo_client, state=state
        )

        assert state["password"] == "mynewpassword"
        assert status.state["password"] == "mynewpassword"

    @pytest.mark.asyncio
    async def test_identifier_change_replaces_object(
        self, sftpgo_client, fake_sftpgo, status
    ):
        reconciler = ResourceReconciler(RoleAdapter())
        state = await reconciler.reconcile(
            {"name": "old"}, "role", "default", status, sftpgo_client
        )

        await reconciler.update(
            {"name": "old"}, {"name": "new"}, "role", "default", status, sftpgo_client, state=state
        )

        assert list(fake_sftpgo.objects["roles"]) == ["new"]
        assert status.identifier == "new"

    @pytest.mark.asyncio
    async def test_removed_fields_leave_stored_state(self, sftpgo_client, status):
        reconciler = ResourceReconciler(EventActionAdapter())
        old_spec = {
            "name": "notify",
            "type": 1,
            "description": "d",
            "options": {
                "http_config": {
                    "endpoint": "http://127.0.0.1:8082/notify",
                    "password": "mypassword",
                }
            },
        }
        new_spec = {
            "name": "notify",
            "type": 1,
            "options": {"http_config": {"endpoint": "http://127.0.0.1:8082/notify"}},
        }

        await reconciler.reconcile(old_spec, "notify", "default", status, sftpgo_client)
        stored = merge_patch({}, status.state)
        assert stored["options"]["http_config"]["password"] == "mypassword"

        await reconciler.update(
            old_spec, new_spec, "notify", "default", status, sftpgo_client, state=stored
        )
        stored = merge_patch(stored, status.state)

        assert "description" not in stored
        assert "password" not in stored["options"]["http_config"]
        current = await EventActionAdapter().read(sftpgo_client, stored)
        assert "password" not in current["options"]["http_config"]


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_with_state(self, reconciler, sftpgo_client, fake_sftpgo, status):
        state = await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)

        await reconciler.delete(USER_SPEC, "alice", "default", status, sftpgo_client, state=state)

        assert fake_sftpgo.objects["users"] == {}

    @pytest.mark.asyncio
    async def test_delete_without_state_uses_spec_identifier(
        self, reconciler, sftpgo_client, fake_sftpgo, status
    ):
        await UserAdapter().create(sftpgo_client, USER_SPEC)

        await reconciler.delete(USER_SPEC, "alice", "default", status, sftpgo_client)

        assert fake_sftpgo.objects["users"] == {}

    @pytest.mark.asyncio
    async def test_delete_already_gone(self, reconciler, sftpgo_client, status):
        await reconciler.delete(
            USER_SPEC, "alice", "default", status, sftpgo_client, state={"username": "alice"}
        )

        assert status.phase == PHASE_READY


class TestResync:
    @pytest.mark.asyncio
    async def test_skipped_without_state(self, reconciler, sftpgo_client, fake_sftpgo, status):
        assert await reconciler.resync(USER_SPEC, "alice", "default", status, sftpgo_client) is None
        assert fake_sftpgo.requests == []

    @pytest.mark.asyncio
    async def test_recreates_missing_object(self, reconciler, sftpgo_client, fake_sftpgo, status):
        state = await reconciler.reconcile(USER_SPEC, "alice", "default", status, sftpgo_client)
        del fake_sftpgo.objects["users"]["alice"]

        new_state = await reconciler.resync(
            USER_SPEC, "alice", "default", status, sftpgo_client, state=state
        )

        assert "alice" in fake_sftpgo.objects["users"]
        assert new_state["password"] == "mypassword"


class TestStatePatch:
    def test_without_previous_state(self):
        assert state_patch(None, {"name": "r1"}) == {"name": "r1"}

    def test_dropped_keys_are_nulled(self):
        previous = {"name": "a", "description": "d", "options": {"url": "u", "password": "p"}}
        current = {"name": "a", "options": {"url": "u"}}

        assert state_patch(previous, current) == {
            "name": "a",
            "description": None,
            "options": {"url": "u", "password": None},
        }

    def test_lists_replace_the_stored_value(self):
        previous = {"actions": [{"name": "first"}, {"name": "second"}]}
        current = {"actions": [{"name": "second"}]}

        patch = state_patch(previous, current)

        assert patch == current
        assert merge_patch(previous, patch) == current

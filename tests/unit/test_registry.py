"""Unit tests for the session registry."""

from __future__ import annotations

import pytest

from weather_mcp_server.errors import SessionConflict, SessionNotFound
from weather_mcp_server.registry import Session, SessionRegistry, generate_session_id


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


# =============================================================================
# create
# =============================================================================


class TestCreate:
    """Tests for SessionRegistry.create."""

    def test_create_mints_id(self, registry: SessionRegistry) -> None:
        """create without an id mints one and registers a not-ready session."""
        session = registry.create()

        assert isinstance(session, Session)
        assert session.id.startswith("conn_")
        assert session.ready is False
        assert session.id in registry
        assert len(registry) == 1

    def test_create_with_requested_id(self, registry: SessionRegistry) -> None:
        """create honors a client-supplied id."""
        session = registry.create("S1")
        assert session.id == "S1"
        assert session.channel.session_id == "S1"

    def test_create_rejects_live_duplicate(self, registry: SessionRegistry) -> None:
        """A requested id that is already live is rejected, not overwritten."""
        original = registry.create("S1")

        with pytest.raises(SessionConflict) as exc_info:
            registry.create("S1")

        assert exc_info.value.status_code == 409
        assert registry.get("S1") is original
        assert not original.channel.closed

    def test_requested_id_reusable_after_removal(self, registry: SessionRegistry) -> None:
        """Once a session is gone its id can be claimed again."""
        registry.create("S1")
        registry.remove("S1")

        session = registry.create("S1")
        assert session.ready is False

    def test_minted_ids_are_unique(self, registry: SessionRegistry) -> None:
        """Rapid subscriptions never collide."""
        ids = {registry.create().id for _ in range(200)}
        assert len(ids) == 200

    def test_generate_session_id_is_random(self) -> None:
        assert generate_session_id() != generate_session_id()


# =============================================================================
# mark_ready / get
# =============================================================================


class TestReadiness:
    """Tests for mark_ready and get."""

    def test_mark_ready(self, registry: SessionRegistry) -> None:
        session = registry.create()
        registry.mark_ready(session.id)
        assert registry.get(session.id).ready is True

    def test_mark_ready_is_idempotent(self, registry: SessionRegistry) -> None:
        session = registry.create()
        registry.mark_ready(session.id)
        registry.mark_ready(session.id)
        assert session.ready is True

    def test_mark_ready_unknown(self, registry: SessionRegistry) -> None:
        with pytest.raises(SessionNotFound):
            registry.mark_ready("missing")

    def test_get_unknown(self, registry: SessionRegistry) -> None:
        with pytest.raises(SessionNotFound) as exc_info:
            registry.get("missing")
        assert exc_info.value.session_id == "missing"


# =============================================================================
# remove
# =============================================================================


class TestRemove:
    """Tests for SessionRegistry.remove."""

    def test_remove_closes_channel(self, registry: SessionRegistry) -> None:
        session = registry.create()

        removed = registry.remove(session.id)

        assert removed is session
        assert session.id not in registry
        assert session.channel.closed

    def test_remove_twice_is_safe(self, registry: SessionRegistry) -> None:
        session = registry.create()
        registry.remove(session.id)
        assert registry.remove(session.id) is None

    def test_remove_unknown_is_noop(self, registry: SessionRegistry) -> None:
        assert registry.remove("never-registered") is None

    def test_list_sessions(self, registry: SessionRegistry) -> None:
        registry.create("a")
        registry.create("b")
        registry.mark_ready("b")

        listing = {s["connectionId"]: s["ready"] for s in registry.list_sessions()}
        assert listing == {"a": False, "b": True}

"""Tests for utils/actor_context.py."""

from uuid import uuid4

import pytest

from utils.actor_context import (
    SYSTEM_ACTOR_ID,
    actor_context,
    clear_current_actor_id,
    get_current_actor_id,
    peek_current_actor_id,
    set_current_actor_id,
)


class TestGetCurrentActorId:

    def test_raises_when_unset(self):
        with pytest.raises(RuntimeError, match="No actor context"):
            get_current_actor_id()

    def test_returns_set_value(self):
        actor = uuid4()
        set_current_actor_id(actor)
        assert get_current_actor_id() == actor

    def test_peek_returns_none_when_unset(self):
        assert peek_current_actor_id() is None

    def test_clear_removes_actor(self):
        set_current_actor_id(uuid4())
        clear_current_actor_id()
        assert peek_current_actor_id() is None


class TestActorContextManager:

    def test_sets_and_clears(self):
        actor = uuid4()
        with actor_context(actor):
            assert get_current_actor_id() == actor
        assert peek_current_actor_id() is None

    def test_nested_restores_previous(self):
        outer, inner = uuid4(), uuid4()
        with actor_context(outer):
            with actor_context(inner):
                assert get_current_actor_id() == inner
            assert get_current_actor_id() == outer

    def test_restores_on_exception(self):
        actor = uuid4()
        with pytest.raises(KeyError):
            with actor_context(actor):
                raise KeyError("boom")
        assert peek_current_actor_id() is None

    def test_system_actor_is_fixed(self):
        with actor_context(SYSTEM_ACTOR_ID):
            assert get_current_actor_id() == SYSTEM_ACTOR_ID

"""Tests for state values, indexed families and state spaces."""

from __future__ import annotations

import pytest

from protoguard import IndexedState, InvalidStateError, StateFamily, StateSpace, state_label
from tests.conftest import Door


class TestStateFamily:
    """Tests for building members of an indexed family."""

    def test_positional_indices(self) -> None:
        running = StateFamily("Running", ("guesses", "letters"))

        state = running(6, 3)

        assert state == IndexedState("Running", (6, 3))
        assert running.get(state, "letters") == 3
        assert state[0] == 6

    def test_named_indices(self) -> None:
        running = StateFamily("Running", ("guesses", "letters"))

        assert running(letters=2, guesses=5) == running(5, 2)
        assert running(5, letters=2) == running(5, 2)

    def test_wrong_arity_rejected(self) -> None:
        running = StateFamily("Running", ("guesses", "letters"))

        with pytest.raises(InvalidStateError, match="takes 2 indices"):
            running(1)

    def test_unknown_field_rejected(self) -> None:
        running = StateFamily("Running", ("guesses", "letters"))

        with pytest.raises(InvalidStateError, match="no field"):
            running(1, turns=2)

    @pytest.mark.parametrize("bad", [-1, 1.5, True, "3"])
    def test_indices_must_be_natural_numbers(self, bad: object) -> None:
        length = StateFamily("Length", ("n",))

        with pytest.raises(InvalidStateError, match="natural numbers"):
            length(bad)

    def test_contains_checks_tag_and_arity(self) -> None:
        running = StateFamily("Running", ("guesses", "letters"))

        assert running.contains(IndexedState("Running", (0, 0)))
        assert not running.contains(IndexedState("Stopped", (0, 0)))
        assert not running.contains(IndexedState("Running", (1,)))
        assert not running.contains(IndexedState("Running", (-1, 2)))
        assert not running.contains("Running")

    def test_get_on_foreign_state_raises(self) -> None:
        running = StateFamily("Running", ("guesses", "letters"))

        with pytest.raises(InvalidStateError):
            running.get(IndexedState("Stopped"), "guesses")


class TestIndexedState:
    """Tests for IndexedState display and matching."""

    def test_str(self) -> None:
        assert str(IndexedState("Running", (6, 3))) == "Running(6, 3)"
        assert str(IndexedState("NotRunning")) == "NotRunning"

    def test_pattern_matching(self) -> None:
        def describe(state: object) -> str:
            match state:
                case IndexedState("Running", (_, 0)):
                    return "won"
                case IndexedState("Running", (0, _)):
                    return "lost"
                case IndexedState("Running", _):
                    return "playing"
            return "other"

        assert describe(IndexedState("Running", (2, 0))) == "won"
        assert describe(IndexedState("Running", (0, 2))) == "lost"
        assert describe(IndexedState("Running", (1, 1))) == "playing"
        assert describe(Door.OPEN) == "other"


class TestStateSpace:
    """Tests for state space membership."""

    def test_finite_space(self) -> None:
        space = StateSpace(members=Door)

        assert Door.OPEN in space
        assert "open" not in space
        assert space.is_finite
        assert set(space) == set(Door)

    def test_open_space_accepts_any_hashable(self) -> None:
        space = StateSpace()

        assert space.is_open
        assert 42 in space
        assert ("any", "tuple") in space
        assert [1, 2] not in space

    def test_family_space(self) -> None:
        length = StateFamily("Length", ("n",))
        space = StateSpace(members={"Empty"}, families=[length])

        assert "Empty" in space
        assert length(10_000) in space
        assert IndexedState("Width", (1,)) not in space
        assert not space.is_finite

    def test_predicate_space(self) -> None:
        space = StateSpace(contains=lambda s: isinstance(s, int) and 0 <= s <= 3)

        assert 2 in space
        assert 4 not in space

    def test_infinite_space_cannot_be_enumerated(self) -> None:
        space = StateSpace(families=[StateFamily("Length", ("n",))])

        with pytest.raises(TypeError):
            list(space)

    def test_describe(self) -> None:
        space = StateSpace(members={"Empty"}, families=[StateFamily("Length", ("n",))])

        assert space.describe() == "{Empty, Length(n)}"
        assert StateSpace().describe() == "any"


class TestStateLabel:
    def test_enum_uses_member_name(self) -> None:
        assert state_label(Door.LOCKED) == "LOCKED"

    def test_other_values_use_str(self) -> None:
        assert state_label(IndexedState("Running", (1, 2))) == "Running(1, 2)"
        assert state_label(3) == "3"

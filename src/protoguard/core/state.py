"""State values, indexed state families and state spaces.

A state is any hashable value. Finite protocols use plain values or Enum
members; protocols whose state carries a count (guesses left, bytes
buffered, elements held) use an indexed family::

    Running = StateFamily("Running", ("guesses", "letters"))
    state = Running(6, 3)            # IndexedState(tag='Running', index=(6, 3))
    Running.get(state, "letters")    # 3

    space = StateSpace(members={"NotRunning"}, families=[Running])
    Running(0, 0) in space           # True
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from protoguard.errors import ErrorContext, InvalidStateError


@dataclass(frozen=True)
class IndexedState:
    """A state tagged with a tuple of natural-number indices.

    Supports structural pattern matching::

        match state:
            case IndexedState("Running", (_, 0)):
                ...
    """

    __match_args__ = ("tag", "index")

    tag: str
    index: tuple[int, ...] = ()

    def __getitem__(self, position: int) -> int:
        return self.index[position]

    def __str__(self) -> str:
        if not self.index:
            return self.tag
        return f"{self.tag}({', '.join(str(i) for i in self.index)})"


class StateFamily:
    """A parametrised family of states sharing one tag.

    Each index is a natural number, so a family is unbounded but totally
    ordered along every index.
    """

    def __init__(self, tag: str, fields: Iterable[str] = ()) -> None:
        self.tag = tag
        self.fields: tuple[str, ...] = tuple(fields)

    @property
    def arity(self) -> int:
        return len(self.fields)

    def __call__(self, *values: int, **named: int) -> IndexedState:
        """Build a member of the family.

        Raises:
            InvalidStateError: If the arity is wrong or an index is not a natural number.
        """
        if named:
            unknown = set(named) - set(self.fields)
            if unknown:
                raise InvalidStateError(
                    message=f"{self.tag} has no field(s) {sorted(unknown)}",
                    context=ErrorContext(extra={"family": self.tag}),
                )
            remaining = self.fields[len(values):]
            values = values + tuple(named[f] for f in remaining if f in named)
        if len(values) != self.arity:
            raise InvalidStateError(
                message=f"{self.tag} takes {self.arity} indices, got {len(values)}",
                context=ErrorContext(extra={"family": self.tag}),
            )
        for value in values:
            if not _is_natural(value):
                raise InvalidStateError(
                    message=f"{self.tag} indices must be natural numbers, got {value!r}",
                    context=ErrorContext(extra={"family": self.tag}),
                )
        return IndexedState(self.tag, tuple(values))

    def contains(self, state: Any) -> bool:
        return (
            isinstance(state, IndexedState)
            and state.tag == self.tag
            and len(state.index) == self.arity
            and all(_is_natural(i) for i in state.index)
        )

    def get(self, state: IndexedState, field: str) -> int:
        """Read a named index from a member of this family."""
        if not self.contains(state):
            raise InvalidStateError(
                message=f"{state!r} is not a {self.tag} state",
                context=ErrorContext(state=state),
            )
        return state.index[self.fields.index(field)]

    def __repr__(self) -> str:
        return f"StateFamily({self.tag!r}, {self.fields!r})"


class StateSpace:
    """The set of states a resource kind may occupy.

    Membership is the union of explicit members, indexed families and an
    optional predicate. A space with none of these is open: every hashable
    value is a member.
    """

    def __init__(
        self,
        members: Iterable[Hashable] = (),
        families: Iterable[StateFamily] = (),
        contains: Callable[[Any], bool] | None = None,
    ) -> None:
        self._members = frozenset(members)
        self._families = tuple(families)
        self._predicate = contains

    @property
    def members(self) -> frozenset[Hashable]:
        return self._members

    @property
    def families(self) -> tuple[StateFamily, ...]:
        return self._families

    @property
    def is_open(self) -> bool:
        return not self._members and not self._families and self._predicate is None

    @property
    def is_finite(self) -> bool:
        return bool(self._members) and not self._families and self._predicate is None

    def __contains__(self, state: object) -> bool:
        try:
            hash(state)
        except TypeError:
            return False
        if self.is_open:
            return True
        if state in self._members:
            return True
        if any(family.contains(state) for family in self._families):
            return True
        return self._predicate is not None and bool(self._predicate(state))

    def __iter__(self) -> Iterator[Hashable]:
        if not self.is_finite:
            raise TypeError("Only finite state spaces can be enumerated")
        return iter(self._members)

    def describe(self) -> str:
        """Short human-readable description of the space."""
        if self.is_open:
            return "any"
        parts = [state_label(m) for m in sorted(self._members, key=state_label)]
        parts.extend(f"{f.tag}({', '.join(f.fields)})" for f in self._families)
        if self._predicate is not None:
            parts.append(getattr(self._predicate, "__name__", "predicate"))
        return "{" + ", ".join(parts) + "}"


def _is_natural(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def state_label(state: Any) -> str:
    """Display name for a state: Enum member name, else str()."""
    name = getattr(state, "name", None)
    if isinstance(name, str):
        return name
    return str(state)

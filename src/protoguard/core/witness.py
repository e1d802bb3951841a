"""Validated indices into sequences.

``find`` either returns a Witness that the value sits at a given position
or None. ``remove`` takes that witness and deletes by position without
searching again, after checking the container has not changed shape since
the lookup.

Example:
    letters = ["c", "a", "t"]
    witness = find(letters, "a")
    if witness is not None:
        remove(letters, witness)   # letters == ["c", "t"]
"""

from __future__ import annotations

from collections.abc import Callable, MutableSequence, Sequence
from dataclasses import dataclass
from typing import Any

from protoguard.errors import ErrorContext, StaleWitnessError


@dataclass(frozen=True)
class Witness:
    """Evidence that ``value`` was at ``index`` of a container of ``size`` elements."""

    index: int
    value: Any
    size: int
    container_id: int

    def holds_for(self, container: Sequence[Any]) -> bool:
        return (
            id(container) == self.container_id
            and len(container) == self.size
            and 0 <= self.index < len(container)
            and container[self.index] == self.value
        )


def find(container: Sequence[Any], value: Any) -> Witness | None:
    """Look up the first occurrence of ``value``."""
    return find_where(container, lambda item: item == value)


def find_where(container: Sequence[Any], predicate: Callable[[Any], bool]) -> Witness | None:
    """Look up the first element satisfying ``predicate``."""
    for index, item in enumerate(container):
        if predicate(item):
            return Witness(index=index, value=item, size=len(container), container_id=id(container))
    return None


def remove(container: MutableSequence[Any], witness: Witness) -> Any:
    """Remove the witnessed element and return it.

    Raises:
        StaleWitnessError: If the witness came from another container or the
            container changed since the lookup.
    """
    if not witness.holds_for(container):
        raise StaleWitnessError(
            message=f"Witness for {witness.value!r} at index {witness.index} no longer holds",
            context=ErrorContext(extra={"index": witness.index, "size": len(container)}),
        )
    return container.pop(witness.index)

"""Exclusively owned VM stacks.

The engine mutates its stack destructively, so every timed execution must
start from its own private copy of the initial stack. A :class:`StackTemplate`
holds the prepared initial stack and hands out deep copies; each copy is an
:class:`OwnedStack` that can be moved into exactly one execution.
"""

from __future__ import annotations

import copy
from typing import Any, Iterable

from gastiming.core.errors import OwnershipError


class OwnedStack:
    """A stack with a single owner, consumed by the first execution."""

    def __init__(self, items: list[Any] | None = None) -> None:
        self._items: list[Any] = items if items is not None else []
        self._consumed = False

    def is_unique(self) -> bool:
        """True while no execution has taken this stack."""
        return not self._consumed

    def take(self) -> list[Any]:
        """Move the stack contents out, leaving this owner empty."""
        if self._consumed:
            raise OwnershipError("stack was already handed to an execution")
        self._consumed = True
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else f"depth={len(self._items)}"
        return f"OwnedStack({state})"


class StackTemplate:
    """Initial stack shared by every sample of one measurement."""

    def __init__(self, items: Iterable[Any] = ()) -> None:
        self._items = list(items)

    @property
    def depth(self) -> int:
        return len(self._items)

    @property
    def items(self) -> tuple[Any, ...]:
        return tuple(self._items)

    def clone(self) -> OwnedStack:
        """Return a fresh, non-shared copy of the initial stack."""
        return OwnedStack(copy.deepcopy(self._items))

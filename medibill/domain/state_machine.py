"""
Explicit transition tables for status lifecycles.

A table is a list of (source, event, target) transitions checked once per
status change. Bills fire named events; claims request a target status
directly, in which case the event is the target itself.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Hashable, Iterable, Optional, TypeVar

from medibill.domain.errors import InvalidStateError, InvalidTransitionError

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class Transition(Generic[S]):
    """A single legal status change."""

    source: Optional[S]
    target: S
    event: Hashable


class TransitionTable(Generic[S]):
    """
    Lookup structure over a fixed set of transitions.

    Usage:
        table = TransitionTable("claim", transitions, terminal={Status.PAID})
        table.require(Status.DRAFT, Status.SUBMITTED)
        next_status = table.fire(Status.DRAFT, "submit")
    """

    def __init__(self, name: str, transitions: Iterable[Transition[S]], terminal: Iterable[S] = ()):
        self.name = name
        self.transitions: tuple[Transition[S], ...] = tuple(transitions)
        self.terminal: frozenset[S] = frozenset(terminal)

        self._by_event: dict[tuple[Optional[S], Hashable], S] = {}
        self._targets: dict[Optional[S], set[S]] = {}
        for t in self.transitions:
            key = (t.source, t.event)
            if key in self._by_event and self._by_event[key] != t.target:
                raise ValueError(f"Ambiguous {name} transition for {t.source} on {t.event}")
            if t.source in self.terminal:
                raise ValueError(f"Terminal {name} status {t.source} cannot have transitions")
            self._by_event[key] = t.target
            self._targets.setdefault(t.source, set()).add(t.target)

    def targets_from(self, source: Optional[S]) -> frozenset[S]:
        """All statuses reachable in one step from source."""
        return frozenset(self._targets.get(source, ()))

    def events_from(self, source: Optional[S]) -> list[Hashable]:
        return [event for (src, event) in self._by_event if src == source]

    def can_transition(self, source: Optional[S], target: S) -> bool:
        return target in self._targets.get(source, ())

    def can_fire(self, source: Optional[S], event: Hashable) -> bool:
        return (source, event) in self._by_event

    def is_terminal(self, status: Optional[S]) -> bool:
        return status in self.terminal

    def require(self, source: Optional[S], target: S) -> S:
        """
        Check that source may move to target.

        Raises:
            InvalidStateError: If source is terminal
            InvalidTransitionError: If the pair is not in the table
        """
        if self.is_terminal(source):
            raise InvalidStateError(
                source,
                target,
                f"{self.name.capitalize()} in terminal status {source.name} cannot change status",
            )
        if not self.can_transition(source, target):
            raise InvalidTransitionError(source, target)
        return target

    def fire(self, source: Optional[S], event: Hashable) -> S:
        """
        Resolve the status an event leads to from source.

        Raises:
            InvalidStateError: If source is terminal
            InvalidTransitionError: If the event is not legal from source
        """
        if self.is_terminal(source):
            raise InvalidStateError(
                source,
                event,
                f"{self.name.capitalize()} in terminal status {source.name} cannot accept {_event_label(event)}",
            )
        try:
            return self._by_event[(source, event)]
        except KeyError:
            raise InvalidTransitionError(
                source,
                event,
                f"Cannot {_event_label(event)} a {self.name} in status "
                f"{source.name if source is not None else '<unset>'}",
            ) from None


def _event_label(event: Hashable) -> str:
    if isinstance(event, Enum):
        return event.name.lower().replace("_", " ")
    return str(event)

from typing import TYPE_CHECKING

from pllsim.state import WokenBy
from pllsim.error import ElaborationError

if TYPE_CHECKING:
    from pllsim.simulator import Simulator


class EventTrigger:
    """Wake-up condition satisfied when an `Event` fires."""

    __slots__ = ("_event", "_reason")

    def __init__(self, event: "Event", reason: WokenBy = WokenBy.EVENT):
        self._event = event
        self._reason = reason

    @property
    def reason(self) -> WokenBy:
        return self._reason

    def _matches(self, changed_signals, fired_events) -> bool:
        return self._event in fired_events

    def __repr__(self):
        return f"EventTrigger({self._event._get_name()}, {self._reason.name})"


class Event:
    """A fire-once notification with no stored value.

    Any number of units may be sensitive to an event. Notifying with zero
    delay makes the event fire in the next delta cycle of the current instant:
    after the notifying unit has finished its evaluation pass, never inside
    the `notify()` call itself. A positive delay fires it that many time units
    later.

    Events are discovered as module attributes during elaboration, which binds
    them to the simulator.

    Examples
    --------
    >>> class Pll(Module):
    ...     def __init__(self, name):
    ...         self.reset = Input()
    ...         self.start_locking = Event()
    ...         super().__init__(name)
    ...
    ...     @sequential((Edge.ANY, 'reset', WokenBy.RESET), 'start_locking')
    ...     def locking_process(self):
    ...         while True:
    ...             woken = yield
    """

    __slots__ = ("_simulator", "_name")

    def __init__(self):
        self._simulator: "Simulator | None" = None
        self._name = None

    def notify(self, delay: int = 0):
        """Schedule this event to fire `delay` time units from now.

        Raises
        ------
        ElaborationError
            If the event does not belong to an elaborated design.
        ValueError
            If `delay` is negative.
        """
        if self._simulator is None:
            raise ElaborationError(f"Event {self._get_name()} is not attached to a simulator.")
        self._simulator.notify(self, delay)

    def trigger(self, reason: WokenBy = WokenBy.EVENT) -> EventTrigger:
        return EventTrigger(self, reason)

    def _get_name(self):
        return self._name or "<unnamed>"

    def __repr__(self):
        return f"Event({self._get_name()})"

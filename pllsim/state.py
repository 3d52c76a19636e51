from enum import Enum, auto


class Edge(Enum):
    """Specifies which signal transition a trigger is sensitive to.

    Attributes
    ----------
    POS : Enum
        Rising edge (falsy to truthy).
    NEG : Enum
        Falling edge (truthy to falsy).
    ANY : Enum
        Any change of the committed value.
    """

    POS = auto()    #: Rising edge
    NEG = auto()    #: Falling edge
    ANY = auto()    #: Any value change


class WokenBy(Enum):
    """Reason handed to a sequential unit when it resumes.

    A trigger carries one of these tags (``EVENT`` unless declared otherwise)
    and the scheduler sends the tag of the first trigger that fired back into
    the suspended generator. ``TIMEOUT`` is sent when the duration of a
    ``Wait`` or ``Delay`` elapsed first.
    """

    EVENT = auto()
    RESET = auto()
    TIMEOUT = auto()


class ProcessKind(Enum):
    REACTIVE = auto()
    SEQUENTIAL = auto()


class ProcessState(Enum):
    IDLE = auto()
    EXECUTING = auto()
    SUSPENDED = auto()
    TERMINATED = auto()


class LockState(Enum):
    """Lock sequence of the PLL device. ``RESET`` preempts every other state."""

    IDLE = auto()
    ARMED = auto()
    LOCKING = auto()
    LOCKED = auto()
    RESET = auto()


class Verdict(Enum):
    PASS = auto()
    FAIL = auto()

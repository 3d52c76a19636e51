from pllsim.state import Edge, WokenBy
from pllsim.error import SignalInvalidAccess, UnconnectedPortError

_MAX_WIDTH = 64


class _SignalContext:
    __slots__ = ("_name", "_module")

    def __init__(self):
        self._name = None
        self._module = None


class SignalTrigger:
    """Edge condition on a signal, usable only as a wake-up condition.

    Instances are created by `Signal.rose()`, `Signal.fell()` and
    `Signal.changed()` (or the same methods on a port). They have no readable
    value; the scheduler evaluates them after each update phase.

    Parameters
    ----------
    signal : Signal
        The observed signal.
    edge : Edge
        The transition to match.
    reason : WokenBy, optional
        Tag handed to a sequential unit resumed by this trigger.
    """

    __slots__ = ("_signal", "_edge", "_reason")

    def __init__(self, signal, edge: Edge, reason: WokenBy = WokenBy.EVENT):
        self._signal = signal
        self._edge = edge
        self._reason = reason

    @property
    def reason(self) -> WokenBy:
        return self._reason

    def _matches(self, changed_signals, fired_events) -> bool:
        return self._signal in changed_signals and self._signal._is_edge(self._edge)

    def __repr__(self):
        return f"SignalTrigger({self._signal._get_name()}, {self._edge.name}, {self._reason.name})"


class Signal:
    """
    A two-phase shared value used for communication between units.

    A write only stages the next value. The staged value becomes the committed
    value in the update phase that follows the current evaluation pass, so a
    read in the same pass always returns the previous value.

    Parameters
    ----------
    width : int, optional
        Bit width, 1 to 64. Default: 1. A width-1 signal reads back as `bool`,
        wider signals read back as unsigned `int`.
    init : int, optional
        Initial committed value. Default: 0.

    Raises
    ------
    ValueError
        If `width` is out of range.

    Examples
    --------
    >>> class Top(TestBench):
    ...     def __init__(self):
    ...         self.clk = Signal()
    ...         self.bus_addr = Signal(width=32)
    ...         super().__init__("top")

    See Also
    --------
    Input, Output, Event
    """
    __slots__ = ("_width", "_mask", "_value", "_pending", "_prev", "_context")

    def __init__(self, width=1, init=0):
        if not isinstance(width, int) or not 1 <= width <= _MAX_WIDTH:
            raise ValueError(f"Signal width must be between 1 and {_MAX_WIDTH}, got {width!r}.")
        self._width = width
        self._mask = (1 << width) - 1
        self._value = self._to_bits(init)
        self._pending = None
        self._prev = self._value
        self._context = _SignalContext()

    @property
    def width(self) -> int:
        return self._width

    @property
    def name(self):
        """str or None: Hierarchical name assigned during elaboration."""
        return self._context._name

    def read(self):
        """Return the committed value."""
        if self._width == 1:
            return bool(self._value)
        return self._value

    def write(self, value):
        """Stage `value` for the next update phase.

        Writing the committed value again cancels a previously staged change.

        Parameters
        ----------
        value : int or bool
            New value, truncated to the signal width.

        Raises
        ------
        TypeError
            If `value` is not an int or bool.
        """
        bits = self._to_bits(value)
        if bits != self._value:
            self._pending = bits
        else:
            self._pending = None

    def rose(self, reason: WokenBy = WokenBy.EVENT) -> SignalTrigger:
        """Trigger matching a rising transition of this signal."""
        return SignalTrigger(self, Edge.POS, reason)

    def fell(self, reason: WokenBy = WokenBy.EVENT) -> SignalTrigger:
        """Trigger matching a falling transition of this signal."""
        return SignalTrigger(self, Edge.NEG, reason)

    def changed(self, reason: WokenBy = WokenBy.EVENT) -> SignalTrigger:
        """Trigger matching any change of this signal."""
        return SignalTrigger(self, Edge.ANY, reason)

    def _to_bits(self, value):
        if not isinstance(value, int):
            raise TypeError(f"Signal value must be int or bool, got {type(value).__name__}.")
        return int(value) & self._mask

    def _update(self) -> bool:
        """Commit the staged value. Returns True when the committed value changed."""
        if self._pending is None:
            return False
        self._prev = self._value
        self._value = self._pending
        self._pending = None
        return True

    def _is_edge(self, edge: Edge) -> bool:
        posedge = not self._prev and self._value
        negedge = self._prev and not self._value
        if edge == Edge.POS:
            return bool(posedge)
        if edge == Edge.NEG:
            return bool(negedge)
        return self._prev != self._value

    def _get_name(self):
        return self._context._name or "<unnamed>"

    def _get_value(self):
        return self._value

    def __repr__(self):
        return f"Signal({self._get_name()}={self._value:#x}, width={self._width})"


class _Port:
    __slots__ = ("_signal", "_context")

    def __init__(self, signal: Signal | None = None):
        self._signal = None
        self._context = _SignalContext()
        if signal is not None:
            self.bind(signal)

    def bind(self, signal: Signal):
        """Connect this port to `signal`.

        Raises
        ------
        TypeError
            If `signal` is not a `Signal`.
        SignalInvalidAccess
            If the port is already bound to a different signal.
        """
        if not isinstance(signal, Signal):
            raise TypeError(f"Ports can only be bound to a Signal, got {type(signal).__name__}.")
        if self._signal is not None and self._signal is not signal:
            raise SignalInvalidAccess(f"Port {self._get_name()} is already bound to {self._signal._get_name()}.")
        self._signal = signal

    @property
    def signal(self) -> Signal | None:
        return self._signal

    @property
    def is_bound(self) -> bool:
        return self._signal is not None

    @property
    def width(self) -> int:
        return self._bound().width

    def read(self):
        """Return the committed value of the bound signal."""
        return self._bound().read()

    def rose(self, reason: WokenBy = WokenBy.EVENT) -> SignalTrigger:
        return self._bound().rose(reason)

    def fell(self, reason: WokenBy = WokenBy.EVENT) -> SignalTrigger:
        return self._bound().fell(reason)

    def changed(self, reason: WokenBy = WokenBy.EVENT) -> SignalTrigger:
        return self._bound().changed(reason)

    def _bound(self) -> Signal:
        if self._signal is None:
            raise UnconnectedPortError(f"Port {self._get_name()} is not bound to a signal.")
        return self._signal

    def _get_name(self):
        return self._context._name or "<unnamed>"


class Input(_Port):
    """Read-only view of a signal owned by another module.

    Parameters
    ----------
    signal : Signal, optional
        Signal to bind immediately. Unbound ports must be bound with
        `bind()` before the design is elaborated.

    Examples
    --------
    >>> class Pll(Module):
    ...     def __init__(self, name):
    ...         self.clk = Input()
    ...         self.locked = Output()
    ...         super().__init__(name)

    See Also
    --------
    Output, Signal
    """
    __slots__ = ()

    def write(self, value):
        raise SignalInvalidAccess(f"Cannot write through Input port {self._get_name()}.")


class Output(_Port):
    """Writer role of a signal.

    Every signal accepts at most one bound `Output` in the whole design; a
    second one is reported as `SignalWriteConflict` during elaboration.

    See Also
    --------
    Input, Signal
    """
    __slots__ = ()

    def write(self, value):
        """Stage `value` on the bound signal."""
        self._bound().write(value)

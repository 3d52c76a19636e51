import inspect
from functools import wraps

from pllsim.state import Edge, WokenBy, ProcessKind
from pllsim.error import ElaborationError


def _normalize_trigger_specs(decorator_name, trigger_specs):
    normalized = []
    for spec in trigger_specs:
        if isinstance(spec, str):
            normalized.append({"edge": Edge.ANY, "name": spec, "reason": WokenBy.EVENT})
            continue
        if not isinstance(spec, tuple) or len(spec) not in (2, 3):
            raise TypeError(f"@{decorator_name} triggers must be attribute names or (Edge, name[, WokenBy]) tuples.")
        edge_value, name = spec[0], spec[1]
        reason = spec[2] if len(spec) == 3 else WokenBy.EVENT
        if not isinstance(edge_value, Edge):
            raise TypeError(f"@{decorator_name} triggers must use Edge.POS, Edge.NEG or Edge.ANY.")
        if not isinstance(name, str):
            raise TypeError(f"@{decorator_name} trigger signal must be provided as an attribute name (str).")
        if not isinstance(reason, WokenBy):
            raise TypeError(f"@{decorator_name} trigger reason must be a WokenBy member.")
        normalized.append({"edge": edge_value, "name": name, "reason": reason})
    return tuple(normalized)


def _create_unit_decorator(kind: ProcessKind, decorator_name: str, trigger_specs):
    """
    Factory for the unit decorators. The wrapped method keeps its behavior;
    the decorator only attaches the metadata read during elaboration.
    """
    normalized = _normalize_trigger_specs(decorator_name, trigger_specs)

    def _decorator(func):
        is_generator = inspect.isgeneratorfunction(func)
        if kind == ProcessKind.REACTIVE and is_generator:
            raise TypeError(f"@reactive unit '{func.__name__}' cannot suspend; use @sequential for generators.")
        if kind == ProcessKind.SEQUENTIAL and not is_generator:
            raise TypeError(f"@sequential unit '{func.__name__}' must be a generator function.")

        @wraps(func)
        def _wrapper(self, *args, **kwargs):
            return func(self, *args, **kwargs)

        _wrapper._kind = kind
        _wrapper._triggers = normalized
        _wrapper._pllsim_func_name = func.__name__
        return _wrapper
    return _decorator


def reactive(*trigger_specs):
    """reactive decorator.

    Marks a method as a reactive unit: it runs to completion every time one of
    its triggers matches and can never suspend.

    Parameters
    ----------
    *trigger_specs : tuple of (Edge, str) or str
        At least one trigger. A tuple names a signal or port attribute and the
        transition to react to; a bare string names an `Event` attribute (or a
        signal, meaning any change).

    Raises
    ------
    TypeError
        If no trigger is given, a trigger is malformed, or the method is a
        generator function.

    Examples
    --------
    >>> class Pll(Module):
    ...     def __init__(self, name):
    ...         self.clk = Input()
    ...         self.reset = Input()
    ...         super().__init__(name)
    ...
    ...     @reactive((Edge.POS, 'clk'), (Edge.ANY, 'reset'))
    ...     def bus_process(self):
    ...         ...

    See Also
    --------
    sequential, Module, Edge
    """
    if not trigger_specs:
        raise TypeError("@reactive requires at least one trigger.")
    return _create_unit_decorator(ProcessKind.REACTIVE, "reactive", trigger_specs)


def sequential(*trigger_specs):
    """sequential decorator.

    Marks a generator method as a sequential unit. The unit is started once at
    the beginning of the simulation and runs until its first suspension. Each
    `yield` is a suspension point:

    * ``yield`` waits for the static triggers given to the decorator.
    * ``yield Delay(t)`` waits for `t` time units only.
    * ``yield Wait(*triggers, timeout=t)`` waits for the first of the triggers
      (the static ones when none are given) or the timeout.

    The value of the ``yield`` expression is the `WokenBy` tag of the trigger
    that resumed the unit, or ``WokenBy.TIMEOUT``.

    Parameters
    ----------
    *trigger_specs : tuple of (Edge, str[, WokenBy]) or str
        Static sensitivity. May be empty for units that only use explicit
        waits. The optional third tuple element tags the trigger.

    Raises
    ------
    TypeError
        If a trigger is malformed or the method is not a generator function.

    Examples
    --------
    >>> class Driver(Module):
    ...     def __init__(self, name):
    ...         self.clk = Input()
    ...         self.done = Input()
    ...         super().__init__(name)
    ...
    ...     @sequential((Edge.POS, 'clk'))
    ...     def run(self):
    ...         yield                           # next rising edge
    ...         woken = yield Wait(self.done.rose(), timeout=1000)
    ...         if woken is WokenBy.TIMEOUT:
    ...             ...

    See Also
    --------
    reactive, Wait, Delay
    """
    return _create_unit_decorator(ProcessKind.SEQUENTIAL, "sequential", trigger_specs)


class Wait:
    """Suspension command: first of `triggers` or `timeout`.

    Parameters
    ----------
    *triggers : trigger objects or trigger specs
        `SignalTrigger`/`EventTrigger` objects, `Event` objects, or the same
        spec forms accepted by the decorators. When empty, the unit's static
        triggers are used.
    timeout : int, optional
        Maximum number of time units to stay suspended.
    """

    __slots__ = ("triggers", "timeout")

    def __init__(self, *triggers, timeout: int | None = None):
        if timeout is not None and (not isinstance(timeout, int) or timeout < 0):
            raise ValueError(f"Wait timeout must be a non-negative int, got {timeout!r}.")
        self.triggers = triggers
        self.timeout = timeout

    def __repr__(self):
        return f"Wait({', '.join(map(repr, self.triggers))}, timeout={self.timeout})"


class Delay:
    """Suspension command: resume after `duration` time units, triggers ignored."""

    __slots__ = ("duration",)

    def __init__(self, duration: int):
        if not isinstance(duration, int) or duration < 0:
            raise ValueError(f"Delay duration must be a non-negative int, got {duration!r}.")
        self.duration = duration

    def __repr__(self):
        return f"Delay({self.duration})"


class Module:
    """Base class for simulated components.

    Define signals, ports, events and sub-modules as attributes in
    `__init__`, then call `super().__init__(name)` at the end so the module
    tree can be built.

    Parameters
    ----------
    name : str, optional
        Instance identifier. It is only used in log messages and trace
        scopes. When omitted, the attribute name in the parent module is used.

    Examples
    --------
    >>> class Top(TestBench):
    ...     def __init__(self):
    ...         self.clk = Signal()
    ...         self.pll = Pll("pll_inst")
    ...         self.pll.clk.bind(self.clk)
    ...         super().__init__("top")

    See Also
    --------
    TestBench, reactive, sequential, Signal, Input, Output
    """
    def __init__(self, name: str | None = None):
        self._instance_name = name
        self._parent = None
        self._children = []
        self._class_name = self.__class__.__name__
        self._simulator = None
        self._make_module_tree()

    @property
    def name(self) -> str:
        return self._instance_name or self._class_name

    @property
    def path(self) -> str:
        """str: Dotted instance path from the root module."""
        return ".".join(self._get_full_scope())

    @property
    def now(self) -> int:
        """int: Current simulated time."""
        return self._require_simulator().now

    def stop_simulation(self):
        """Ask the simulator to stop once the current instant has settled."""
        self._require_simulator().stop()

    @property
    def _is_testbench(self):
        return False

    def _make_module_tree(self):
        for attr, mod in self.__dict__.items():
            if isinstance(mod, Module) and attr != "_parent":
                mod._parent = self
                if mod._instance_name is None:
                    mod._instance_name = attr
                self._children.append(mod)

    def _get_full_scope(self):
        names = []
        mod = self
        while mod is not None:
            names.append(mod.name)
            mod = mod._parent
        names.reverse()
        return names

    def _require_simulator(self):
        if self._simulator is None:
            raise ElaborationError(f"Module {self.name} is not attached to a simulator.")
        return self._simulator


class TestBench(Module):
    """Root of the module hierarchy.

    The top-level design declares the shared signals, instantiates the
    components and binds their ports. Override the ``log_*`` hooks to observe
    the start and end of a run.
    """
    __test__ = False

    @property
    def _is_testbench(self):
        return True

    def log_sim_start(self, config):
        """Hook method called before simulated time starts."""
        pass

    def log_sim_end(self, now):
        """Hook method called after the simulator stopped."""
        pass

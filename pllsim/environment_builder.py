import logging

from pllsim.module import Module, TestBench
from pllsim.signal import Signal, Input, Output
from pllsim.event import Event
from pllsim.state import ProcessKind
from pllsim.process import _resolve_trigger
from pllsim.error import SignalWriteConflict, UnconnectedPortError

logger = logging.getLogger(__name__)


class _EnvironmentBuilder:
    """Elaborates a design hierarchy into a runnable simulation.

    This internal class walks the module tree starting from a `TestBench`
    and, for every module:

    1. Names its signals, ports and events hierarchically.
    2. Checks that every port is bound and that no signal has more than one
       writer. A writer is an `Output` bound to the signal, or a module other
       than the declaring one that holds the raw `Signal` as an attribute.
    3. Attaches the simulator to its events and to the module itself.
    4. Resolves the triggers of its `@reactive`/`@sequential` methods and
       registers them with the simulator, in tree order.

    All wiring errors are raised here, before simulated time advances.
    """

    def __init__(self):
        self._signals = []
        self._seen_signals = set()
        self._drivers = {}

    def _build(self, testbench: TestBench, simulator) -> list[Signal]:
        """Elaborate `testbench` and return every signal in declaration order.

        Raises
        ------
        UnconnectedPortError
            If a port was never bound.
        SignalWriteConflict
            If two writers drive the same signal.
        ElaborationError
            If a trigger names an attribute that does not exist.
        """
        modules = list(self._walk(testbench))
        for module in modules:
            self._collect_signals(module)
        for module in modules:
            self._collect_ports(module)
        for module in modules:
            self._collect_events(module, simulator)
            module._simulator = simulator
        for module in modules:
            self._collect_processes(module, simulator)
        logger.debug(
            "Elaborated %d modules, %d signals, %d drivers",
            len(modules), len(self._signals), len(self._drivers),
        )
        return self._signals

    def _walk(self, module: Module):
        yield module
        for child in module._children:
            yield from self._walk(child)

    def _append_signal(self, signal: Signal, name: str, module: Module):
        if signal in self._seen_signals:
            return
        self._seen_signals.add(signal)
        signal._context._name = name
        signal._context._module = module
        self._signals.append(signal)

    def _collect_signals(self, module: Module):
        for attr, obj in list(module.__dict__.items()):
            if not isinstance(obj, Signal):
                continue
            self._append_signal(obj, f"{module.path}.{attr}", module)
            # a raw signal held outside the declaring module can be written from there
            if obj._context._module is not module:
                self._claim_driver(obj, module, f"{module.path}.{attr}")

    def _collect_ports(self, module: Module):
        for attr, obj in list(module.__dict__.items()):
            if not isinstance(obj, (Input, Output)):
                continue
            port_name = f"{module.path}.{attr}"
            obj._context._name = port_name
            obj._context._module = module
            if not obj.is_bound:
                raise UnconnectedPortError(f"Port {port_name} is not connected.")
            signal = obj.signal
            # signals that only reach the design through a port take the port name
            self._append_signal(signal, port_name, module)
            if isinstance(obj, Output):
                self._claim_driver(signal, obj, port_name)

    def _claim_driver(self, signal: Signal, owner, role_name: str):
        """Record `owner` as the writer of `signal`; a second distinct writer is a wiring error."""
        existing = self._drivers.get(signal)
        if existing is not None and existing[0] is not owner:
            raise SignalWriteConflict(
                f"Signal {signal._get_name()} already driven by {existing[1]}, "
                f"conflicting with {role_name}."
            )
        self._drivers[signal] = (owner, role_name)

    def _collect_events(self, module: Module, simulator):
        for attr, obj in list(module.__dict__.items()):
            if isinstance(obj, Event):
                obj._name = f"{module.path}.{attr}"
                obj._simulator = simulator

    def _collect_processes(self, module: Module, simulator):
        units = {}
        for klass in reversed(type(module).__mro__):
            for attr, func in vars(klass).items():
                if callable(func) and hasattr(func, '_kind'):
                    units[attr] = func
                elif attr in units:
                    del units[attr]

        for attr, func in units.items():
            bound = getattr(module, attr)
            triggers = [_resolve_trigger(module, spec) for spec in func._triggers]
            name = f"{module.path}.{func._pllsim_func_name}"
            if func._kind == ProcessKind.REACTIVE:
                simulator.register_reactive(bound, triggers, name=name, module=module)
            else:
                simulator.register_sequential(bound, triggers, name=name, module=module)

import heapq
import inspect
import itertools
import logging
from enum import Enum, auto
from typing import List

from pllsim.module import TestBench, Wait, Delay
from pllsim.process import _Process, _resolve_trigger
from pllsim.simconfig import SimConfig
from pllsim.state import ProcessKind, ProcessState, WokenBy
from pllsim.environment_builder import _EnvironmentBuilder
from pllsim.vcdwriter import VCDWriter, _IVCDSignal
from pllsim.error import ElaborationError, SignalUnstableError, SimulationStalled

logger = logging.getLogger(__name__)


class VCDSignalAdapter(_IVCDSignal):
    """Convert pllsim signals to the minimal interface required by VCDWriter.

    Parameters
    ----------
    signal : Signal
        The pllsim signal to adapt.
    """

    def __init__(self, signal):
        self._sig = signal

    @property
    def name(self) -> str:
        """str: The leaf name of the adapted signal."""
        return self._sig._get_name().rsplit(".", 1)[-1]

    @property
    def width(self) -> int:
        """int: The bit width of the adapted signal."""
        return self._sig.width

    @property
    def value(self) -> int:
        """int: The committed value of the adapted signal."""
        return self._sig._get_value()

    @property
    def scope(self) -> List[str]:
        """list of str: The hierarchical scope of the signal."""
        mod = self._sig._context._module
        if mod is None:
            return []
        return mod._get_full_scope()


class _EntryKind(Enum):
    TIMEOUT = auto()
    NOTIFY = auto()


class Simulator:
    """Discrete-event scheduler for reactive and sequential units.

    The Simulator elaborates the design below `testbench`, keeps simulated
    time and a queue of timed entries, and settles every instant as a series
    of delta cycles:

    1. Evaluate: run every runnable unit once, in registration order. A
       reactive unit runs to completion; a sequential unit runs until its next
       suspension point.
    2. Update: commit the values staged on signals.
    3. Notify: deliver the events notified with zero delay and the zero-length
       timeouts, then mark every unit whose trigger matched as runnable.

    When nothing is runnable, `advance()` moves time to the nearest timed
    entry. A timeout entry belonging to a unit that was already resumed by one
    of its triggers is discarded; this resolves the wait-with-timeout race.

    Parameters
    ----------
    config : SimConfig
        Settings of the run.
    testbench : TestBench
        The top-level module of the design to be simulated.
    vcd : VCDWriter, optional
        Waveform collaborator. Every signal is registered with it and a dump
        is emitted at the end of every settled instant.

    Raises
    ------
    UnconnectedPortError, SignalWriteConflict, ElaborationError
        If the design is miswired. Nothing has been simulated at this point.

    Examples
    --------
    >>> top = PllSystem()
    >>> sim = Simulator(SimConfig(), top)
    >>> sim.run()
    850
    """

    def __init__(
            self,
            config: SimConfig,
            testbench: TestBench,
            vcd: VCDWriter = None
    ):
        self._config = config
        self._tb = testbench
        self._now = 0
        self._processes: list[_Process] = []
        self._runnable = {}
        self._timed = []
        self._sequence = itertools.count()
        self._delta_events = []
        self._delta_timeouts = []
        self._stop_requested = False
        self._started = False
        self._finished = False
        self._signals = _EnvironmentBuilder()._build(self._tb, self)
        self.vcd = vcd
        if self.vcd:
            self._register_signals_for_vcd()

    @property
    def now(self) -> int:
        """int: Current simulated time."""
        return self._now

    @property
    def config(self) -> SimConfig:
        return self._config

    @property
    def testbench(self) -> TestBench:
        return self._tb

    @property
    def stopped(self) -> bool:
        """bool: Whether a unit requested the end of the run."""
        return self._stop_requested

    @property
    def processes(self):
        """tuple: Registered process records, in registration order."""
        return tuple(self._processes)

    # ---------------------------------------------------------
    # Registration
    # ---------------------------------------------------------
    def register_reactive(self, unit, triggers, name=None, module=None):
        """Register a plain callable run to completion whenever a trigger matches."""
        if inspect.isgeneratorfunction(inspect.unwrap(unit)):
            raise TypeError(f"Reactive unit {name or unit!r} cannot be a generator function.")
        return self._register(ProcessKind.REACTIVE, unit, triggers, name, module)

    def register_sequential(self, unit, triggers, name=None, module=None):
        """Register a generator function started once at the beginning of the run."""
        return self._register(ProcessKind.SEQUENTIAL, unit, triggers, name, module)

    def _register(self, kind, unit, triggers, name, module):
        if self._started:
            raise ElaborationError("Units cannot be registered after the simulation started.")
        resolved = [_resolve_trigger(module, t) for t in triggers]
        if kind == ProcessKind.REACTIVE and not resolved:
            raise ElaborationError(f"Reactive unit {name or unit!r} has no trigger.")
        proc = _Process(
            len(self._processes), kind, unit, resolved,
            name or getattr(unit, "__qualname__", repr(unit)), module,
        )
        self._processes.append(proc)
        logger.debug("Registered %s unit %s on %s", kind.name.lower(), proc.name, resolved)
        return proc

    # ---------------------------------------------------------
    # Control
    # ---------------------------------------------------------
    def notify(self, event, delay: int = 0):
        """Fire `event` at `now + delay`; zero delay means the next delta cycle."""
        if not isinstance(delay, int) or delay < 0:
            raise ValueError(f"Notification delay must be a non-negative int, got {delay!r}.")
        if delay == 0:
            self._delta_events.append(event)
        else:
            self._push(self._now + delay, _EntryKind.NOTIFY, event)

    def stop(self):
        """Request the end of the run once the current instant has settled."""
        if not self._stop_requested:
            logger.debug("@%dns: stop requested", self._now)
        self._stop_requested = True

    def run(self, until: int | None = None) -> int:
        """Run until a unit requests stop, or until time `until` is reached.

        Parameters
        ----------
        until : int, optional
            Upper time bound. When no stop has been requested before, the run
            ends with `now == until`; entries at later times stay pending and a
            following `run()` continues from there.

        Returns
        -------
        int
            The simulated time at which the run ended.

        Raises
        ------
        SimulationStalled
            If nothing is left to schedule while no stop was requested and no
            time bound was given.
        SignalUnstableError
            If an instant does not settle.
        """
        if until is not None and until < self._now:
            raise ValueError(f"Cannot run until {until}, simulated time is already {self._now}.")
        if not self._started:
            self._initialize()
        while not self._stop_requested:
            if self._has_delta_work():
                # staged between calls; belongs to the current instant
                self._settle()
                self._dump()
                continue
            next_time = self._next_time()
            if next_time is None and until is None:
                raise SimulationStalled(f"Nothing left to schedule at {self._now} and no stop was requested.")
            if next_time is None or (until is not None and next_time > until):
                self._now = until
                break
            self.advance()
        if self._stop_requested and not self._finished:
            self._finished = True
            self._tb.log_sim_end(self._now)
        return self._now

    def advance(self) -> int:
        """Move to the nearest pending timed entry and settle that instant.

        Notifications and signal writes staged since the last settled instant
        are delivered at the current time first.

        Returns
        -------
        int
            The new simulated time.

        Raises
        ------
        SimulationStalled
            If no timed entry is pending.
        """
        if not self._started:
            self._initialize()
        if self._has_delta_work():
            self._settle()
            self._dump()
        next_time = self._next_time()
        if next_time is None:
            raise SimulationStalled(f"No pending entry after {self._now}.")
        self._now = next_time
        fired = []
        while self._timed and self._timed[0][0] == next_time:
            _, _, kind, payload = heapq.heappop(self._timed)
            if kind == _EntryKind.NOTIFY:
                fired.append(payload)
            elif self._is_timeout_valid(payload):
                self._resume(payload[0], WokenBy.TIMEOUT)
        self._wake(set(), fired)
        self._settle()
        self._dump()
        return self._now

    def snapshot(self) -> dict:
        """Return the committed value of every signal, keyed by hierarchical name."""
        return {sig.name: sig.read() for sig in self._signals}

    # ---------------------------------------------------------
    # Instant settling
    # ---------------------------------------------------------
    def _initialize(self):
        self._started = True
        self._tb.log_sim_start(self._config)
        for proc in self._processes:
            if not proc.is_reactive:
                self._runnable[proc.index] = (proc, None)
        self._settle()
        self._dump()

    def _settle(self):
        """Run delta cycles until no unit is runnable."""
        loop_count = 0
        while self._has_delta_work():
            loop_count += 1
            if loop_count > self._config.max_delta_cycles:
                raise SignalUnstableError(
                    f"Instant {self._now} did not settle within {self._config.max_delta_cycles} delta cycles"
                )
            self._evaluate()
            changed = self._update()
            fired, self._delta_events = self._delta_events, []
            timeouts, self._delta_timeouts = self._delta_timeouts, []
            for entry in timeouts:
                if self._is_timeout_valid(entry):
                    self._resume(entry[0], WokenBy.TIMEOUT)
            self._wake(changed, fired)

    def _has_delta_work(self) -> bool:
        return bool(
            self._runnable or self._delta_events or self._delta_timeouts
            or any(sig._pending is not None for sig in self._signals)
        )

    def _evaluate(self):
        batch = [self._runnable[index] for index in sorted(self._runnable)]
        self._runnable = {}
        for proc, reason in batch:
            if proc.is_reactive:
                proc.state = ProcessState.EXECUTING
                proc.func()
                proc.state = ProcessState.IDLE
            else:
                self._step(proc, reason)

    def _update(self):
        changed = set()
        for sig in self._signals:
            if sig._update():
                changed.add(sig)
        return changed

    def _wake(self, changed, fired):
        if not changed and not fired:
            return
        for proc in self._processes:
            if proc.index in self._runnable:
                continue
            if proc.is_reactive:
                if proc._first_match(proc.triggers, changed, fired) is not None:
                    self._runnable[proc.index] = (proc, None)
            elif proc.state == ProcessState.SUSPENDED and proc._waiting:
                trigger = proc._first_match(proc._waiting, changed, fired)
                if trigger is not None:
                    self._resume(proc, trigger.reason)

    # ---------------------------------------------------------
    # Sequential units
    # ---------------------------------------------------------
    def _step(self, proc: _Process, reason):
        proc.state = ProcessState.EXECUTING
        try:
            if proc._generator is None:
                proc._generator = proc.func()
                if not inspect.isgenerator(proc._generator):
                    raise TypeError(f"Sequential unit {proc.name} did not return a generator.")
                command = next(proc._generator)
            else:
                command = proc._generator.send(reason)
        except StopIteration:
            proc.state = ProcessState.TERMINATED
            logger.debug("@%dns: %s finished", self._now, proc.name)
            return
        self._suspend(proc, command)

    def _suspend(self, proc: _Process, command):
        if command is None:
            triggers, timeout = proc.triggers, None
        elif isinstance(command, Delay):
            triggers, timeout = (), command.duration
        elif isinstance(command, Wait):
            triggers = tuple(_resolve_trigger(proc.module, t) for t in command.triggers) or proc.triggers
            timeout = command.timeout
        else:
            raise TypeError(f"Sequential unit {proc.name} yielded unsupported value {command!r}.")

        proc._timeout_token += 1
        proc._waiting = triggers
        proc.state = ProcessState.SUSPENDED
        if timeout is None:
            if not triggers:
                logger.warning("@%dns: %s suspended without trigger or timeout", self._now, proc.name)
            return
        entry = (proc, proc._timeout_token)
        if timeout == 0:
            self._delta_timeouts.append(entry)
        else:
            self._push(self._now + timeout, _EntryKind.TIMEOUT, entry)

    def _resume(self, proc: _Process, reason: WokenBy):
        # invalidates the pending timeout of the finished wait
        proc._timeout_token += 1
        proc._waiting = ()
        self._runnable[proc.index] = (proc, reason)

    @staticmethod
    def _is_timeout_valid(entry) -> bool:
        proc, token = entry
        return proc.state == ProcessState.SUSPENDED and proc._timeout_token == token

    # ---------------------------------------------------------
    # Timed queue
    # ---------------------------------------------------------
    def _push(self, time: int, kind: _EntryKind, payload):
        heapq.heappush(self._timed, (time, next(self._sequence), kind, payload))

    def _next_time(self):
        while self._timed:
            time, _, kind, payload = self._timed[0]
            if kind == _EntryKind.TIMEOUT and not self._is_timeout_valid(payload):
                heapq.heappop(self._timed)
                continue
            return time
        return None

    def _dump(self):
        if self.vcd:
            self.vcd._dump(self._now)

    def _register_signals_for_vcd(self):
        """Register every signal with the VCD writer using the adapter."""
        for sig in self._signals:
            self.vcd._register(VCDSignalAdapter(sig))

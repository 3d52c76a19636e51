"""PLL device model: register file, bus decode and timed lock sequence."""

import logging
from dataclasses import dataclass

from pllsim.module import Module, reactive, sequential, Wait
from pllsim.signal import Input, Output
from pllsim.event import Event
from pllsim.state import Edge, WokenBy, LockState
from pllsim.error import PllConfigError

logger = logging.getLogger(__name__)

PLL_REG_N_ADDR = 0x00
PLL_REG_M_ADDR = 0x04
PLL_REG_OD_ADDR = 0x08
PLL_REG_CTRL_ADDR = 0x0C

CTRL_START = 1
CTRL_STOP = 0

REGISTER_WIDTH = 32
BUS_WIDTH = 32
F_REF_MHZ = 25.0
DEFAULT_LOCK_TIME = 500


def pll_output_frequency(m: int, n: int, od: int, f_ref_mhz: float = F_REF_MHZ) -> float:
    """Return the output frequency in MHz, ``f_ref * M / (N * OD)``.

    Raises
    ------
    PllConfigError
        If N or OD is zero, or M is zero (no output clock).
    """
    if n == 0 or od == 0:
        raise PllConfigError(f"Divider registers must be non-zero (N={n}, OD={od}).")
    if m == 0:
        raise PllConfigError("Multiplier register M must be non-zero.")
    return f_ref_mhz * m / (n * od)


@dataclass(frozen=True)
class _RegisterSpec:
    name: str
    offset: int


REGISTER_MAP = (
    _RegisterSpec("N", PLL_REG_N_ADDR),
    _RegisterSpec("M", PLL_REG_M_ADDR),
    _RegisterSpec("OD", PLL_REG_OD_ADDR),
    _RegisterSpec("CTRL", PLL_REG_CTRL_ADDR),
)


class RegisterFile:
    """Ordered set of named fixed-width registers addressed by byte offset.

    All registers start at zero. Values are stored verbatim, truncated to
    `width` bits.
    """

    def __init__(self, register_map=REGISTER_MAP, width: int = REGISTER_WIDTH):
        self._mask = (1 << width) - 1
        self._by_offset = {spec.offset: spec.name for spec in register_map}
        self._values = {spec.name: 0 for spec in register_map}

    def decode(self, offset: int) -> str | None:
        """Return the register name at `offset`, or None for an undefined address."""
        return self._by_offset.get(offset)

    def index(self, offset: int) -> int:
        return list(self._by_offset).index(offset)

    def write(self, name: str, value: int):
        self._values[name] = value & self._mask

    def reset(self):
        for name in self._values:
            self._values[name] = 0

    def __getitem__(self, name: str) -> int:
        return self._values[name]

    def as_dict(self) -> dict:
        return dict(self._values)

    def __repr__(self):
        return "RegisterFile(" + ", ".join(f"{k}={v:#x}" for k, v in self._values.items()) + ")"


class Pll(Module):
    """Configurable frequency-synthesis block.

    A reactive unit decodes bus writes into the register file; a sequential
    unit runs the timed lock sequence. The two share the enable flag and are
    synchronized by the one-shot `start_locking` event.

    Lock sequence: ``IDLE -> ARMED -> LOCKING -> LOCKED``; ``RESET`` preempts
    any state. `locked` rises exactly `lock_time` units after an accepted start
    command, unless a stop, another start or a reset comes first.

    Parameters
    ----------
    name : str, optional
        Instance identifier, used in log messages.
    lock_time : int, optional
        Lock delay in time units. Defaults to 500.
    f_ref_mhz : float, optional
        Reference clock frequency used to report the output frequency.
    """

    def __init__(
            self,
            name: str | None = None,
            lock_time: int = DEFAULT_LOCK_TIME,
            f_ref_mhz: float = F_REF_MHZ,
    ):
        self.clk = Input()
        self.reset = Input()
        self.bus_addr = Input()
        self.bus_wdata = Input()
        self.bus_we = Input()
        self.locked = Output()
        self.start_locking = Event()

        self.registers = RegisterFile()
        self.pll_enable = False
        self.lock_state = LockState.IDLE
        self.output_frequency_mhz = None
        self.lock_time = lock_time
        self.f_ref_mhz = f_ref_mhz
        super().__init__(name)

    @reactive((Edge.POS, 'clk'), (Edge.ANY, 'reset'))
    def bus_process(self):
        if self.reset.read():
            self.registers.reset()
            self.pll_enable = False
            self.lock_state = LockState.RESET
            logger.debug("@%dns: %s held in reset, registers cleared", self.now, self.name)
            return
        if self.lock_state == LockState.RESET:
            self.lock_state = LockState.IDLE
        if not self.bus_we.read():
            return

        addr = self.bus_addr.read()
        data = self.bus_wdata.read()
        reg = self.registers.decode(addr)
        if reg is None:
            logger.warning(
                "@%dns: %s protocol violation, write of 0x%x to undefined address 0x%x ignored",
                self.now, self.name, data, addr,
            )
            return

        self.registers.write(reg, data)
        if reg == "CTRL":
            if data == CTRL_START:
                self.pll_enable = True
                self.lock_state = LockState.ARMED
                self.start_locking.notify(0)
            else:
                self.pll_enable = False
                self.lock_state = LockState.IDLE
                self.locked.write(False)
        logger.info(
            "@%dns: %s received write to REG[%d] (%s) with data 0x%x",
            self.now, self.name, self.registers.index(addr), reg, data,
        )

    @sequential((Edge.ANY, 'reset', WokenBy.RESET), 'start_locking')
    def locking_process(self):
        woken = yield
        while True:
            if woken == WokenBy.RESET:
                self.locked.write(False)
                woken = yield
                continue
            if woken != WokenBy.EVENT or not self.pll_enable:
                woken = yield
                continue

            # a new start while locking restarts the delay
            self.locked.write(False)
            self.lock_state = LockState.LOCKING
            logger.info(
                "@%dns: %s enabled, waiting %d ns for lock",
                self.now, self.name, self.lock_time,
            )
            woken = yield Wait(timeout=self.lock_time)
            if woken != WokenBy.TIMEOUT:
                continue
            if self.pll_enable:
                self.locked.write(True)
                self.lock_state = LockState.LOCKED
                self._report_output_clock()
            else:
                logger.info("@%dns: %s lock attempt abandoned, PLL disabled", self.now, self.name)
            woken = yield

    def _report_output_clock(self):
        try:
            f_out = pll_output_frequency(
                self.registers["M"], self.registers["N"], self.registers["OD"], self.f_ref_mhz,
            )
        except PllConfigError as exc:
            self.output_frequency_mhz = None
            logger.warning("@%dns: %s protocol violation, %s", self.now, self.name, exc)
            return
        self.output_frequency_mhz = f_out
        logger.info(
            "@%dns: %s locked, output clock %.3f MHz (period %.4g ns)",
            self.now, self.name, f_out, 1000.0 / f_out,
        )

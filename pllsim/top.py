"""Top-level wiring of the clock, the PMU driver and the PLL."""

import logging
from dataclasses import dataclass

from pllsim.module import TestBench
from pllsim.signal import Signal
from pllsim.clock import Clock
from pllsim.pll import Pll, BUS_WIDTH, PLL_REG_CTRL_ADDR, CTRL_STOP
from pllsim.pmu import (
    PmuDriver,
    PllConfig,
    BusWrite,
    Idle,
    compute_pll_config,
    default_program,
    DEFAULT_TARGET_MHZ,
)
from pllsim.simconfig import SimConfig
from pllsim.simulator import Simulator
from pllsim.vcdwriter import VCDWriter
from pllsim.state import Verdict

logger = logging.getLogger(__name__)

SCENARIOS = ("lock", "no-start", "stop")


class PllSystem(TestBench):
    """Clock, PMU driver and PLL connected one to one.

    The clock runs at `SimConfig.clock_period` of the simulator. Keyword
    arguments other than `lock_time` are passed to the `PmuDriver`.
    """

    def __init__(self, lock_time: int = 500, **driver_kwargs):
        self.clk = Signal()
        self.reset = Signal()
        self.bus_addr = Signal(width=BUS_WIDTH)
        self.bus_wdata = Signal(width=BUS_WIDTH)
        self.bus_we = Signal()
        self.locked = Signal()

        self.clock = Clock("clk")
        self.pmu_inst = PmuDriver("pmu_inst", **driver_kwargs)
        self.pll_inst = Pll("pll_inst", lock_time=lock_time)

        self.clock.clk.bind(self.clk)

        self.pmu_inst.clk.bind(self.clk)
        self.pmu_inst.reset.bind(self.reset)
        self.pmu_inst.bus_addr.bind(self.bus_addr)
        self.pmu_inst.bus_wdata.bind(self.bus_wdata)
        self.pmu_inst.bus_we.bind(self.bus_we)
        self.pmu_inst.pll_locked.bind(self.locked)

        self.pll_inst.clk.bind(self.clk)
        self.pll_inst.reset.bind(self.reset)
        self.pll_inst.bus_addr.bind(self.bus_addr)
        self.pll_inst.bus_wdata.bind(self.bus_wdata)
        self.pll_inst.bus_we.bind(self.bus_we)
        self.pll_inst.locked.bind(self.locked)
        super().__init__("top")

    def log_sim_start(self, config):
        logger.info("Starting simulation with %s", config)

    def log_sim_end(self, now):
        logger.info("Simulation finished at %d ns, verdict %s", now, self.pmu_inst.verdict)


@dataclass(frozen=True)
class RunResult:
    verdict: Verdict | None
    lock_time: int | None
    end_time: int
    output_frequency_mhz: float | None
    registers: dict


def scenario_program(
        scenario: str,
        target_mhz: float = DEFAULT_TARGET_MHZ,
        pll_config: PllConfig | None = None,
) -> tuple:
    """Bus program for one of the named `SCENARIOS`.

    ``lock`` programs the PLL and starts it, ``no-start`` sends 0 instead of
    the start code, ``stop`` starts the PLL and stops it 20 clock edges later.
    The register values come from `pll_config`, or are computed for
    `target_mhz` when it is omitted.
    """
    if scenario not in SCENARIOS:
        raise ValueError(f"Unknown scenario {scenario!r}, expected one of {', '.join(SCENARIOS)}.")
    config = pll_config or compute_pll_config(target_mhz)
    if scenario == "lock":
        return default_program(config)
    if scenario == "no-start":
        return default_program(config, ctrl_value=CTRL_STOP)
    return default_program(config) + (Idle(19), BusWrite(PLL_REG_CTRL_ADDR, CTRL_STOP))


def run_system(config: SimConfig | None = None, vcd_path: str | None = None, **system_kwargs) -> RunResult:
    """Build the system, run it to completion and return its outcome.

    The waveform file, when requested, is closed even if the run fails.
    """
    config = config or SimConfig()
    top = PllSystem(**system_kwargs)
    vcd = VCDWriter() if vcd_path else None
    sim = Simulator(config, top, vcd=vcd)
    if vcd:
        vcd.open(vcd_path)
    try:
        end_time = sim.run()
    finally:
        if vcd:
            vcd.close()
    return RunResult(
        verdict=top.pmu_inst.verdict,
        lock_time=top.pmu_inst.lock_time,
        end_time=end_time,
        output_frequency_mhz=top.pll_inst.output_frequency_mhz,
        registers=top.pll_inst.registers.as_dict(),
    )

import logging

import pytest

from pllsim import (
    PllSystem,
    Simulator,
    SimConfig,
    BusWrite,
    Idle,
    PllConfig,
    Verdict,
    Edge,
    compute_pll_config,
    reactive,
    run_system,
)
from pllsim.pll import PLL_REG_N_ADDR, PLL_REG_CTRL_ADDR, CTRL_START
from pllsim.pmu import default_program
from pllsim.top import scenario_program
from pllsim.error import PllConfigError


@pytest.mark.parametrize(
    "target, expected",
    [
        (800.0, PllConfig(n=1, m=32, od=1)),
        (12.5, PllConfig(n=1, m=1, od=2)),
        (200.0, PllConfig(n=1, m=8, od=1)),
    ],
)
def test_compute_pll_config(target, expected):
    assert compute_pll_config(target) == expected


def test_compute_pll_config_other_reference():
    assert compute_pll_config(100.0, f_ref_mhz=10.0) == PllConfig(n=1, m=10, od=1)


@pytest.mark.parametrize("target", [0, -5.0, 1e6])
def test_compute_pll_config_rejects_unreachable_targets(target):
    with pytest.raises(PllConfigError):
        compute_pll_config(target)


def test_default_program_ends_with_control_write():
    program = default_program(PllConfig(n=1, m=32, od=1))
    assert program[0] == BusWrite(PLL_REG_N_ADDR, 1)
    assert program[-1] == BusWrite(PLL_REG_CTRL_ADDR, CTRL_START)
    assert len(program) == 4


class MonitoredSystem(PllSystem):
    def __init__(self, **kwargs):
        self.reset_rises = []
        self.reset_falls = []
        self.lock_rises = []
        super().__init__(**kwargs)

    @reactive('reset')
    def watch_reset(self):
        (self.reset_rises if self.reset.read() else self.reset_falls).append(self.now)

    @reactive((Edge.POS, 'locked'))
    def watch_lock(self):
        self.lock_rises.append(self.now)


def test_host_sequence_timing():
    top = MonitoredSystem()
    sim = Simulator(SimConfig(), top)
    assert sim.run() == 850
    assert top.reset_rises == [0]
    assert top.reset_falls == [50]
    assert top.lock_rises == [600]
    assert top.pmu_inst.wait_started_at == 100
    assert top.pmu_inst.verdict == Verdict.PASS
    assert top.pmu_inst.lock_time == 600


def test_scenario_lock_passes():
    result = run_system()
    assert result.verdict == Verdict.PASS
    assert result.lock_time == 600
    assert result.end_time == 850
    assert result.registers == {"N": 1, "M": 32, "OD": 1, "CTRL": 1}
    assert result.output_frequency_mhz == pytest.approx(800.0)


def test_scenario_without_start_times_out():
    result = run_system(program=scenario_program("no-start"))
    assert result.verdict == Verdict.FAIL
    assert result.lock_time is None
    assert result.end_time == 20100
    assert result.registers["CTRL"] == 0


def test_scenario_stop_before_lock_times_out():
    result = run_system(program=scenario_program("stop"))
    assert result.verdict == Verdict.FAIL
    assert result.end_time == 20300
    assert result.output_frequency_mhz is None


def test_shorter_lock_timeout():
    result = run_system(program=scenario_program("no-start"), lock_timeout=1000)
    assert result.verdict == Verdict.FAIL
    assert result.end_time == 1100


def test_idle_steps_delay_the_start():
    program = default_program(PllConfig(n=1, m=32, od=1))
    program = program[:-1] + (Idle(10),) + program[-1:]
    result = run_system(program=program)
    assert result.lock_time == 700
    assert result.end_time == 850


def test_unknown_program_step_raises():
    with pytest.raises(TypeError):
        run_system(program=(BusWrite(PLL_REG_N_ADDR, 1), "bogus"))


def test_unreachable_target_fails_before_simulation():
    with pytest.raises(PllConfigError):
        run_system(target_mhz=1e6)


def test_unknown_scenario_name():
    with pytest.raises(ValueError):
        scenario_program("warp")


def test_system_clock_follows_simulation_config():
    result = run_system(SimConfig(clock_period=20))
    assert result.verdict == Verdict.PASS
    # start accepted at 200 instead of 100
    assert result.lock_time == 700
    assert result.end_time == 850


def test_explicit_pll_config_is_programmed_and_logged(caplog):
    config = PllConfig(n=2, m=48, od=3)
    with caplog.at_level(logging.INFO, logger="pllsim"):
        result = run_system(pll_config=config)
    assert result.registers == {"N": 2, "M": 48, "OD": 3, "CTRL": 1}
    assert result.output_frequency_mhz == pytest.approx(200.0)
    assert "configuration N=2, M=48, OD=3" in caplog.text


def test_start_of_run_is_logged_once(caplog):
    with caplog.at_level(logging.INFO, logger="pllsim"):
        run_system()
    starts = [r for r in caplog.records if r.getMessage().startswith("Starting simulation")]
    assert len(starts) == 1
    assert starts[0].name == "pllsim.top"
    assert not [r for r in caplog.records if r.name == "pllsim.simulator" and r.levelno >= logging.INFO]

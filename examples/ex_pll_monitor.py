"""Watching the PLL lock handshake.

This sample shows how to:
- Reuse `PllSystem` and add a monitor unit sensitive to two shared signals
- Attach a `VCDWriter` so the run can be inspected in a waveform viewer
- Read the outcome from the driver and the device once the run stopped

A monitor is a plain `@reactive` method. It runs after the signals it is
sensitive to have been committed, so `read()` returns the new values.
"""

from pllsim import *


class MonitoredSystem(PllSystem):
    @reactive('reset', 'locked')
    def monitor(self):
        print(f"{self.now:>5} | reset={int(self.reset.read())} | locked={int(self.locked.read())}")


if __name__ == "__main__":
    top = MonitoredSystem()
    vcd = VCDWriter()
    sim = Simulator(SimConfig(), top, vcd=vcd)
    vcd.open("pll.vcd")
    sim.run()
    vcd.close()
    print(f"verdict={top.pmu_inst.verdict.name} lock_time={top.pmu_inst.lock_time} "
          f"f_out={top.pll_inst.output_frequency_mhz} MHz")

# Example console output:
# >>>     0 | reset=1 | locked=0
# >>>    50 | reset=0 | locked=0
# >>>   600 | reset=0 | locked=1
# >>> verdict=PASS lock_time=600 f_out=800.0 MHz

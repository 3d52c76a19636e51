from pllsim.module import Module, sequential, Delay
from pllsim.signal import Output


class Clock(Module):
    """Periodic boolean toggle driving all synchronous activity.

    The output starts low, rises at t=0 and then toggles every half period,
    so rising edges fall on multiples of `period`.

    Parameters
    ----------
    name : str, optional
        Instance identifier.
    period : int, optional
        Clock period in time units; must be a positive even number. When
        omitted, `SimConfig.clock_period` of the simulator is used.

    Raises
    ------
    ValueError
        If `period` is not a positive even integer.
    """

    def __init__(self, name: str | None = None, period: int | None = None):
        if period is not None and (not isinstance(period, int) or period <= 0 or period % 2):
            raise ValueError(f"Clock period must be a positive even int, got {period!r}")
        self.clk = Output()
        self._period = period
        super().__init__(name)

    @property
    def period(self) -> int:
        if self._period is not None:
            return self._period
        return self._require_simulator().config.clock_period

    @sequential()
    def generate(self):
        half = self.period // 2
        while True:
            self.clk.write(not self.clk.read())
            yield Delay(half)

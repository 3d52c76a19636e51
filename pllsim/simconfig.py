class SimConfig:
    """A class that holds settings for controlling the behavior of the simulation.

    An instance of this class is passed when initializing the `Simulator`.

    Parameters
    ----------
    clock_period : int, optional
        Period of the design clock in time units (nanoseconds). Defaults to `10`.
        Every `Clock` without an explicit period uses it. The clock rises at t=0
        and toggles every half period.
    max_delta_cycles : int, optional
        The maximum number of delta cycles allowed within one instant. Defaults to `30`.
        If an instant has not settled after this many cycles, a `SignalUnstableError` is raised.

    Raises
    ------
    ValueError
        If `clock_period` is not a positive even integer or `max_delta_cycles` is not positive.

    Examples
    --------
    >>> config = SimConfig(clock_period=20)
    >>> sim = Simulator(config, PllSystem())

    See Also
    --------
    Simulator
    """
    def __init__(self, clock_period: int = 10, max_delta_cycles: int = 30):
        if not isinstance(clock_period, int) or clock_period <= 0 or clock_period % 2:
            raise ValueError(f"clock_period must be a positive even int, got {clock_period!r}")
        if not isinstance(max_delta_cycles, int) or max_delta_cycles <= 0:
            raise ValueError(f"max_delta_cycles must be > 0, got {max_delta_cycles!r}")
        self.clock_period = clock_period
        self.max_delta_cycles = max_delta_cycles

    def __iter__(self):
        for attr, value in self.__dict__.items():
            if not attr.startswith("_"):
                yield attr, value

    def __repr__(self):
        return f"SimConfig({', '.join(f'{k}={v!r}' for k, v in self)})"

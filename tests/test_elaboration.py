import pytest

from pllsim import (
    Module,
    TestBench,
    Simulator,
    SimConfig,
    Signal,
    Input,
    Output,
    Event,
    Edge,
    reactive,
    sequential,
)
from pllsim.error import (
    ElaborationError,
    UnconnectedPortError,
    SignalWriteConflict,
)


class Driver(Module):
    def __init__(self, name=None):
        self.clk = Input()
        self.out = Output()
        super().__init__(name)

    @reactive((Edge.POS, 'clk'))
    def drive(self):
        self.out.write(1)


class TbUnconnected(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.driver = Driver()
        self.driver.clk.bind(self.clk)
        super().__init__("tb")


def test_unbound_port_fails_elaboration():
    with pytest.raises(UnconnectedPortError, match="tb.driver.out"):
        Simulator(SimConfig(), TbUnconnected())


class TbTwoDrivers(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.shared = Signal()
        self.first = Driver()
        self.second = Driver()
        for drv in (self.first, self.second):
            drv.clk.bind(self.clk)
            drv.out.bind(self.shared)
        super().__init__("tb")


def test_two_outputs_on_one_signal_conflict():
    with pytest.raises(SignalWriteConflict):
        Simulator(SimConfig(), TbTwoDrivers())


class TbMissingTrigger(TestBench):
    def __init__(self):
        super().__init__("tb")

    @reactive((Edge.POS, 'clk'))
    def unit(self):
        pass


def test_trigger_naming_missing_attribute_fails():
    with pytest.raises(ElaborationError, match="clk"):
        Simulator(SimConfig(), TbMissingTrigger())


class TbEventEdge(TestBench):
    def __init__(self):
        self.go = Event()
        super().__init__("tb")

    @sequential((Edge.POS, 'go'))
    def unit(self):
        yield


def test_event_trigger_cannot_have_an_edge():
    with pytest.raises(TypeError):
        Simulator(SimConfig(), TbEventEdge())


def test_unelaborated_objects_have_no_simulator():
    with pytest.raises(ElaborationError):
        Event().notify()
    with pytest.raises(ElaborationError):
        Driver("loose").now
    with pytest.raises(ElaborationError):
        Driver("loose").stop_simulation()


class TbHierarchy(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.result = Signal()
        self.first = Driver("drv_a")
        self.second = Driver()
        self.first.clk.bind(self.clk)
        self.first.out.bind(self.result)
        self.second.clk.bind(self.clk)
        self.second.out.bind(Signal())
        super().__init__("tb")


def test_hierarchical_names():
    tb = TbHierarchy()
    sim = Simulator(SimConfig(), tb)
    assert tb.first.path == "tb.drv_a"
    assert tb.second.path == "tb.second"
    # a signal reachable only through a port takes the port's name
    assert set(sim.snapshot()) == {"tb.clk", "tb.result", "tb.second.out"}
    assert tb.result.name == "tb.result"
    assert [proc.name for proc in sim.processes] == ["tb.drv_a.drive", "tb.second.drive"]


def test_elaboration_attaches_events_and_modules():
    class TbEvents(TestBench):
        def __init__(self):
            self.go = Event()
            super().__init__("tb")

    tb = TbEvents()
    sim = Simulator(SimConfig(), tb)
    assert tb._simulator is sim
    assert tb.go._get_name() == "tb.go"
    assert tb.now == 0


class RawWriter(Module):
    def __init__(self, sig, name=None):
        self.clk = Input()
        self.sig = sig
        super().__init__(name)

    @reactive((Edge.POS, 'clk'))
    def drive(self):
        self.sig.write(1)


class TbRawAndOutput(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.shared = Signal()
        self.raw = RawWriter(self.shared)
        self.port = Driver()
        self.raw.clk.bind(self.clk)
        self.port.clk.bind(self.clk)
        self.port.out.bind(self.shared)
        super().__init__("tb")


def test_raw_signal_held_by_child_counts_as_writer():
    with pytest.raises(SignalWriteConflict, match="tb.raw.sig"):
        Simulator(SimConfig(), TbRawAndOutput())


class TbTwoRawWriters(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.shared = Signal()
        self.first = RawWriter(self.shared)
        self.second = RawWriter(self.shared)
        self.first.clk.bind(self.clk)
        self.second.clk.bind(self.clk)
        super().__init__("tb")


def test_two_children_holding_one_raw_signal_conflict():
    with pytest.raises(SignalWriteConflict):
        Simulator(SimConfig(), TbTwoRawWriters())


class TbSingleRawWriter(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.shared = Signal()
        self.raw = RawWriter(self.shared)
        self.raw.clk.bind(self.clk)
        super().__init__("tb")


def test_single_raw_writer_is_accepted():
    tb = TbSingleRawWriter()
    sim = Simulator(SimConfig(), tb)
    assert tb.shared.name == "tb.shared"
    assert sim.run(until=0) == 0

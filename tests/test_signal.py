import pytest

from pllsim import (
    Module,
    TestBench,
    Simulator,
    SimConfig,
    Signal,
    SignalTrigger,
    Input,
    Output,
    Clock,
    Edge,
    WokenBy,
    reactive,
)
from pllsim.error import SignalInvalidAccess, UnconnectedPortError


def test_write_is_staged_until_update():
    sig = Signal(width=8)
    sig.write(0x42)
    assert sig.read() == 0
    assert sig._update() is True
    assert sig.read() == 0x42


def test_write_is_truncated_to_width():
    sig = Signal(width=8)
    sig.write(0x1FF)
    sig._update()
    assert sig.read() == 0xFF


def test_single_bit_signal_reads_as_bool():
    sig = Signal(init=1)
    assert sig.read() is True
    sig.write(0)
    sig._update()
    assert sig.read() is False


def test_writing_committed_value_cancels_pending_change():
    sig = Signal(width=4, init=3)
    sig.write(5)
    sig.write(3)
    assert sig._update() is False
    assert sig.read() == 3


@pytest.mark.parametrize("width", [0, 65, "8"])
def test_invalid_width_raises(width):
    with pytest.raises(ValueError):
        Signal(width=width)


def test_non_integer_value_raises():
    sig = Signal(width=8)
    with pytest.raises(TypeError):
        sig.write("1")


def test_edge_queries_return_triggers():
    sig = Signal()
    rose = sig.rose()
    assert isinstance(rose, SignalTrigger)
    assert rose.reason == WokenBy.EVENT
    assert sig.changed(WokenBy.RESET).reason == WokenBy.RESET


def test_edge_detection_after_commit():
    sig = Signal()
    sig.write(1)
    sig._update()
    assert sig._is_edge(Edge.POS)
    assert not sig._is_edge(Edge.NEG)
    assert sig._is_edge(Edge.ANY)


def test_input_port_is_read_only():
    port = Input(Signal())
    with pytest.raises(SignalInvalidAccess):
        port.write(1)


def test_output_port_stages_on_bound_signal():
    sig = Signal(width=4)
    port = Output(sig)
    port.write(9)
    assert port.read() == 0
    sig._update()
    assert port.read() == 9


def test_unbound_port_access_raises():
    with pytest.raises(UnconnectedPortError):
        Input().read()


def test_port_cannot_be_rebound_to_another_signal():
    port = Input(Signal())
    with pytest.raises(SignalInvalidAccess):
        port.bind(Signal())


def test_port_binds_only_signals():
    with pytest.raises(TypeError):
        Output().bind(3)


class Incrementer(Module):
    def __init__(self, name=None):
        self.clk = Input()
        self.count = Output()
        self.seen = []
        super().__init__(name)

    @reactive((Edge.POS, 'clk'))
    def bump(self):
        self.count.write(self.count.read() + 1)
        self.seen.append(self.count.read())


class TbTwoPhase(TestBench):
    def __init__(self):
        self.clk = Signal()
        self.count = Signal(width=8)
        self.clock = Clock("clk")
        self.incrementer = Incrementer("incrementer")
        self.clock.clk.bind(self.clk)
        self.incrementer.clk.bind(self.clk)
        self.incrementer.count.bind(self.count)
        super().__init__("tb")


def test_read_after_write_in_same_pass_sees_previous_value():
    tb = TbTwoPhase()
    sim = Simulator(SimConfig(), tb)
    sim.run(until=25)
    # rising edges at 0, 10 and 20
    assert tb.incrementer.seen == [0, 1, 2]
    assert tb.count.read() == 3
    assert sim.snapshot()["tb.count"] == 3

from pllsim import VCDWriter, run_system
from pllsim.vcdwriter import _IVCDSignal


class FakeSignal(_IVCDSignal):
    def __init__(self, name, width, scope, value=0):
        self._name = name
        self._width = width
        self._scope = scope
        self.current = value

    @property
    def name(self):
        return self._name

    @property
    def width(self):
        return self._width

    @property
    def value(self):
        return self.current

    @property
    def scope(self):
        return self._scope


def test_ids_are_unique_and_short():
    vcd = VCDWriter()
    ids = [vcd._new_vcd_id() for _ in range(66)]
    assert ids[0] == "a"
    assert ids[63] == "$"
    assert ids[64] == "aa"
    assert ids[65] == "ab"
    assert len(set(ids)) == len(ids)


def test_dump_writes_only_changes(tmp_path):
    path = tmp_path / "trace.vcd"
    flag = FakeSignal("flag", 1, ["top"])
    word = FakeSignal("word", 8, ["top", "sub"], value=3)
    vcd = VCDWriter(timescale="1ps")
    vcd._register(flag)
    vcd._register(word)
    vcd.open(str(path))
    vcd._dump(0)
    flag.current = 1
    vcd._dump(5)
    vcd._dump(7)
    word.current = 4
    vcd._dump(9)
    vcd.close()

    text = path.read_text()
    assert "$timescale 1ps $end" in text
    assert "$scope module top $end\n$var wire 1 a flag $end\n$scope module sub $end" in text
    assert "$var wire 8 b word $end" in text
    body = text.split("$enddefinitions $end\n", 1)[1]
    assert body == "$dumpvars\n0a\nb11 b\n$end\n#5\n1a\n#9\nb100 b\n"


def test_run_system_writes_trace(tmp_path):
    path = tmp_path / "pll.vcd"
    result = run_system(vcd_path=str(path))
    text = path.read_text()
    assert result.end_time == 850
    assert "$scope module top $end" in text
    assert " locked $end" in text
    assert "$var wire 32 " in text
    assert "\n#600\n" in text

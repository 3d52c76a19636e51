from abc import ABC, abstractmethod
from typing import List


class _IVCDSignal(ABC):
    """Minimal interface required for recording signal transitions in a VCD file.

    This decouples the VCD writer from the internal implementation of pllsim
    signals.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """str: The simple name of the signal (e.g., 'locked')."""
        ...

    @property
    @abstractmethod
    def width(self) -> int:
        """int: The bit width of the signal."""
        ...

    @property
    @abstractmethod
    def value(self) -> int:
        """int: The current integer value of the signal."""
        ...

    @property
    @abstractmethod
    def scope(self) -> List[str]:
        """list of str: The hierarchical path to the signal (e.g., ['top'])."""
        ...


class VCDWriter:
    """A writer for producing Value Change Dump (VCD) files.

    The writer is an optional observer: the simulator registers every signal
    with it and calls `_dump(now)` once per settled instant. Only values that
    changed since the previous dump are written, under the simulated time.

    Parameters
    ----------
    timescale : str, optional
        Unit of one simulated time step. Defaults to ``"1ns"``.

    Attributes
    ----------
    filename : str or None
        The path to the output VCD file.
    f : file object or None
        The file handle for the VCD file.
    signals : list of tuple(_IVCDSignal, str)
        Registered signals with their VCD identifiers.

    Examples
    --------
    >>> vcd = VCDWriter()
    >>> sim = Simulator(SimConfig(), PllSystem(), vcd=vcd)
    >>> vcd.open("waveform.vcd")
    >>> sim.run()
    >>> vcd.close()
    """

    _id_chars = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_$"

    def __init__(self, timescale: str = "1ns"):
        self.filename = None
        self.f = None
        self.timescale = timescale

        # list of (_IVCDSignal, vid)
        self.signals: List[tuple[_IVCDSignal, str]] = []
        self._last_values = {}
        self._next_id = 0
        self._scopes_finalized = False
        self._last_timestamp = None

    # ---------------------------------------------------------
    # Open / close
    # ---------------------------------------------------------
    def open(self, filename: str):
        """Open a new VCD file and emit the header and initial values.

        Parameters
        ----------
        filename : str
            The name of the VCD file to create.
        """
        self.filename = filename
        self.f = open(filename, "w")
        self._write_header()
        self._dump_initial()

    def close(self):
        """Close the VCD file handle if it was opened."""
        if not self.f:
            return
        self.f.close()
        self.f = None

    # ---------------------------------------------------------
    # Header
    # ---------------------------------------------------------
    def _write_header(self):
        f = self.f
        f.write("$date\n\tpllsim simulation\n$end\n")
        f.write("$version\n\tpllsim\n$end\n")
        f.write(f"$timescale {self.timescale} $end\n")

    # ---------------------------------------------------------
    # Register signal (IVCDSignal)
    # ---------------------------------------------------------
    def _register(self, sig: _IVCDSignal):
        """Add a signal to the dump list and allocate a unique VCD identifier."""
        vid = self._new_vcd_id()
        self.signals.append((sig, vid))
        self._last_values[vid] = None

    # ---------------------------------------------------------
    # Emit scopes + $var
    # ---------------------------------------------------------
    def _finalize_scopes(self):
        """Sort signals by scope and emit $var declarations once before dumping."""
        if self._scopes_finalized:
            return
        self._scopes_finalized = True

        table = sorted(((sig.scope, sig, vid) for sig, vid in self.signals), key=lambda x: x[0])

        prev_path: List[str] = []
        for path, sig, vid in table:
            common = 0
            for a, b in zip(prev_path, path):
                if a != b:
                    break
                common += 1

            for _ in range(len(prev_path) - common):
                self.f.write("$upscope $end\n")
            for p in path[common:]:
                self.f.write(f"$scope module {p} $end\n")

            self.f.write(f"$var wire {sig.width} {vid} {sig.name} $end\n")
            prev_path = path

        for _ in range(len(prev_path)):
            self.f.write("$upscope $end\n")

        self.f.write("$enddefinitions $end\n")

    # ---------------------------------------------------------
    # VCD ID generator
    # ---------------------------------------------------------
    def _new_vcd_id(self) -> str:
        """Generate a short unique ID composed of legal VCD characters."""
        n = self._next_id
        self._next_id += 1
        chars = self._id_chars
        base = len(chars)
        s = ""
        while True:
            s = chars[n % base] + s
            if n < base:
                break
            n = n // base - 1
        return s

    # ---------------------------------------------------------
    # Dumps
    # ---------------------------------------------------------
    def _dump_initial(self):
        """Emit $dumpvars section with initial signal values."""
        self._finalize_scopes()
        self.f.write("$dumpvars\n")
        for sig, vid in self.signals:
            val = sig.value & ((1 << sig.width) - 1)
            self._last_values[vid] = val
            self.f.write(self._format_value(sig, vid, val))
        self.f.write("$end\n")

    def _dump(self, timestamp: int):
        """Append the signal changes since the last dump under `timestamp`.

        Parameters
        ----------
        timestamp : int
            The simulated time of the settled instant.
        """
        if not self.f:
            return
        changes = []
        for sig, vid in self.signals:
            val = sig.value & ((1 << sig.width) - 1)
            if self._last_values[vid] == val:
                continue
            self._last_values[vid] = val
            changes.append(self._format_value(sig, vid, val))
        if not changes:
            return
        if timestamp != self._last_timestamp:
            self.f.write(f"#{timestamp}\n")
            self._last_timestamp = timestamp
        self.f.writelines(changes)

    @staticmethod
    def _format_value(sig: _IVCDSignal, vid: str, val: int) -> str:
        if sig.width == 1:
            return f"{val}{vid}\n"
        return f"b{val:b} {vid}\n"

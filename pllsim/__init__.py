from .signal import Signal, Input, Output, SignalTrigger
from .event import Event, EventTrigger
from .module import reactive, sequential, Module, TestBench, Wait, Delay
from .state import Edge, WokenBy, LockState, Verdict
from .simconfig import SimConfig
from .simulator import Simulator
from .clock import Clock
from .pll import Pll, RegisterFile, pll_output_frequency
from .pmu import PmuDriver, PllConfig, BusWrite, Idle, compute_pll_config
from .top import PllSystem, RunResult, run_system
from .error import (
    PllSimError,
    SignalError,
    SignalWriteConflict,
    SignalInvalidAccess,
    SignalUnstableError,
    ElaborationError,
    UnconnectedPortError,
    SimulationStalled,
    PllConfigError,
)
from .vcdwriter import VCDWriter

__all__ = [
    'Signal',
    'Input',
    'Output',
    'SignalTrigger',
    'Event',
    'EventTrigger',
    'reactive',
    'sequential',
    'Module',
    'TestBench',
    'Wait',
    'Delay',
    'Edge',
    'WokenBy',
    'LockState',
    'Verdict',
    'SimConfig',
    'Simulator',
    'Clock',
    'Pll',
    'RegisterFile',
    'pll_output_frequency',
    'PmuDriver',
    'PllConfig',
    'BusWrite',
    'Idle',
    'compute_pll_config',
    'PllSystem',
    'RunResult',
    'run_system',
    'PllSimError',
    'SignalError',
    'SignalWriteConflict',
    'SignalInvalidAccess',
    'SignalUnstableError',
    'ElaborationError',
    'UnconnectedPortError',
    'SimulationStalled',
    'PllConfigError',
    'VCDWriter',
]

__version__ = '0.1.0'

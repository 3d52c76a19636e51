class PllSimError(Exception):
    """Base class for all exceptions raised by the pllsim library."""
    pass


# --- Signal related ---
class SignalError(PllSimError):
    """Base class for errors related to signal access or behavior."""
    pass


class SignalWriteConflict(SignalError):
    """Raised when more than one writer role is bound to the same signal.

    A signal can only be driven by one `Output` port. The conflict is
    detected while the design is elaborated, before simulated time advances.
    """
    pass


class SignalInvalidAccess(SignalError):
    """Raised when a signal is accessed or written to improperly.

    Examples
    --------
    - Writing through an `Input` port.
    - Reading or writing through a port that was never bound.
    """
    pass


class SignalUnstableError(SignalError):
    """Raised when an instant does not settle.

    The simulator stops after a fixed number of delta cycles at the same
    simulated time, which indicates zero-delay feedback between units.
    """
    pass


# --- Elaboration related ---
class ElaborationError(PllSimError):
    """Raised when the design hierarchy cannot be turned into a simulation."""
    pass


class UnconnectedPortError(ElaborationError):
    """Raised when a port of a module is left unbound at elaboration time."""
    pass


# --- Scheduling related ---
class SimulationStalled(PllSimError):
    """Raised when nothing is left to schedule but no unit requested a stop."""
    pass


# --- Device related ---
class PllConfigError(PllSimError):
    """Raised for PLL divider settings that describe no valid output clock."""
    pass

from pllsim.state import Edge, ProcessKind, ProcessState
from pllsim.signal import Signal, SignalTrigger, Input, Output
from pllsim.event import Event, EventTrigger
from pllsim.module import _normalize_trigger_specs
from pllsim.error import ElaborationError


def _resolve_trigger(module, spec):
    """Turn a trigger spec into a trigger object bound to concrete signals/events.

    Parameters
    ----------
    module : Module or None
        Module used to look up attribute names.
    spec : trigger object, Event, Signal, port, str, tuple or normalized dict

    Returns
    -------
    SignalTrigger or EventTrigger

    Raises
    ------
    ElaborationError
        If a named attribute does not exist on `module`.
    TypeError
        If the spec or the attribute it names cannot be used as a trigger.
    """
    if isinstance(spec, (SignalTrigger, EventTrigger)):
        return spec
    if isinstance(spec, Event):
        return spec.trigger()
    if isinstance(spec, (Signal, Input, Output)):
        return spec.changed()
    if isinstance(spec, (str, tuple)):
        spec = _normalize_trigger_specs("Wait", (spec,))[0]
    if not isinstance(spec, dict):
        raise TypeError(f"Unsupported trigger {spec!r}.")

    name = spec["name"]
    target = module
    try:
        for part in name.split('.'):
            target = getattr(target, part)
    except AttributeError:
        raise ElaborationError(
            f"Trigger '{name}' not found in module '{type(module).__name__}'."
        ) from None

    if isinstance(target, Event):
        if spec["edge"] != Edge.ANY:
            raise TypeError(f"Event '{name}' has no edges; name it without an Edge.")
        return EventTrigger(target, spec["reason"])
    if isinstance(target, (Input, Output)):
        target = target._bound()
    if isinstance(target, Signal):
        return SignalTrigger(target, spec["edge"], spec["reason"])
    raise TypeError(f"Attribute '{name}' of '{type(module).__name__}' cannot be used as a trigger.")


class _Process:
    """Runtime record of one scheduled unit.

    Reactive records only use `triggers`. Sequential records also keep the
    running generator, the triggers of the current suspension and a timeout
    token; a timed entry whose token no longer matches is stale and dropped.
    """

    def __init__(self, index: int, kind: ProcessKind, func, triggers, name: str, module=None):
        self.index = index
        self.kind = kind
        self.func = func
        self.triggers = tuple(triggers)
        self.name = name
        self.module = module
        self.state = ProcessState.IDLE
        self._generator = None
        self._waiting = ()
        self._timeout_token = 0

    @property
    def is_reactive(self) -> bool:
        return self.kind == ProcessKind.REACTIVE

    def _first_match(self, candidates, changed_signals, fired_events):
        for trigger in candidates:
            if trigger._matches(changed_signals, fired_events):
                return trigger
        return None

    def __repr__(self):
        return f"_Process({self.name}, {self.kind.name}, {self.state.name})"

"""Single-assignment authorization capability.

A capability names the one identity allowed to call a privileged entrypoint.
It is bound at construction and can never be rebound.
"""

from src.pm_common.errors import CapabilityAlreadyBoundError, UnauthorizedCallerError


class Capability:
    __slots__ = ("_name", "_holder")

    def __init__(self, name: str, holder: str) -> None:
        if not holder:
            raise ValueError(f"Capability {name} needs a holder")
        self._name = name
        self._holder = holder

    @property
    def holder(self) -> str:
        return self._holder

    def bind(self, holder: str) -> None:
        """Always fails: the holder was fixed at construction."""
        raise CapabilityAlreadyBoundError(self._name)

    def require(self, caller: str) -> None:
        if caller != self._holder:
            raise UnauthorizedCallerError(caller, self._name)

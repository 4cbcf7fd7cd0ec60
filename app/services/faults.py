"""Simulated faults, returned as values rather than raised across layers.

``capture_fault`` runs a callable and turns any exception it raises into a
``Fault``; callers branch on the result instead of wrapping the call in
try/except themselves.
"""

from __future__ import annotations

import traceback
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Fault:
    kind: str
    message: str
    stack: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Fault":
        return cls(
            kind=type(exc).__name__,
            message=str(exc),
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )


class SimulatedApplicationError(Exception):
    pass


def capture_fault(fn: Callable[[], Any]) -> Fault | None:
    try:
        fn()
    except Exception as exc:  # noqa: BLE001
        return Fault.from_exception(exc)
    return None


def _reference_error() -> None:
    non_existent_variable.upper()  # type: ignore[name-defined]  # noqa: F821


def _type_error() -> None:
    len(42)  # type: ignore[arg-type]


def _syntax_error() -> None:
    compile("if True {", "<simulated>", "exec")


def _custom_error() -> None:
    raise SimulatedApplicationError("Custom application error")


def _unknown_error() -> None:
    raise SimulatedApplicationError("Unknown error type")


SIMULATIONS: dict[str, Callable[[], None]] = {
    "reference": _reference_error,
    "type": _type_error,
    "syntax": _syntax_error,
    "custom": _custom_error,
}


def simulate(error_type: str) -> Fault:
    """Trigger the named fault and return it. Unknown types still produce a fault."""

    fault = capture_fault(SIMULATIONS.get(error_type, _unknown_error))
    if fault is None:
        return Fault(
            kind=SimulatedApplicationError.__name__,
            message=f"Simulation {error_type!r} completed without a fault",
            stack="",
        )
    return fault

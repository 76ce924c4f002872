"""Exception hierarchy for timebase.

Clock operation itself never raises: a rejected seek is reported as
``False`` and Source misbehaviour (jitter, coarse updates, refusal to
represent a position) is absorbed by the wrappers.  Exceptions are
reserved for programming errors:

- driving a read-only Source through a mutator that cannot be
  emulated locally (:class:`NotAdjustableError`);
- invalid configuration values (plain ``ValueError`` / ``TypeError``,
  raised at assignment time).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timebase._contracts import Clock


class TimebaseError(Exception):
    """Base class for all timebase exceptions."""


class NotAdjustableError(TimebaseError, TypeError):
    """A mutating call reached a Source that only offers the Clock contract.

    Subclasses :class:`TypeError` so callers that already guard against
    wrong-type arguments catch it without importing timebase.

    Attributes:
        operation: Name of the rejected operation (``"start"``, ...).
        source: The read-only Source the call was forwarded to.
    """

    def __init__(self, operation: str, source: Clock) -> None:
        self.operation = operation
        self.source = source
        super().__init__(
            f"cannot {operation}: source {type(source).__name__} is not adjustable"
        )

"""Error taxonomy for BOM reconciliation.

Every user-facing failure aggregates all of its contributing problems into a
single message instead of stopping at the first one.
"""

from typing import List, Optional


class BomSyncError(Exception):
    """Base class for all bomsync errors."""


class ValidationError(BomSyncError):
    """Pre-flight validation failure.

    Raised before any remote call is made, so it never leaves side effects.
    Always recoverable by fixing the input and retrying.
    """

    def __init__(self, problems: List[str], message: Optional[str] = None):
        self.problems = list(problems)
        header = message or f"Validation failed with {len(self.problems)} problem(s)"
        super().__init__(header + ":\n" + "\n".join(f"  - {p}" for p in self.problems))


class MissingColumnError(ValidationError):
    """No item-number column could be located in the header row."""

    def __init__(self, headers: List[str]):
        self.headers = list(headers)
        super().__init__(
            [f"no item number column found in headers {self.headers!r}"],
            message="Missing required column",
        )


class NotFoundError(BomSyncError):
    """A remote entity does not exist.

    Lookups by number return a LookupResult instead; this is only raised by
    lookups by reference, where absence is unexpected.
    """

    def __init__(self, key: str, kind: str = "item"):
        self.key = key
        self.kind = kind
        super().__init__(f"{kind} not found: {key}")


class TransientError(BomSyncError):
    """Timeout, rate limit or not-yet-visible entity."""


class RemoteError(BomSyncError):
    """Any other failure reported by a remote collaborator."""


class PartialSyncError(BomSyncError):
    """Delete phase ran but the create phase failed partway.

    The remote BOM may be incomplete. It is not compensated automatically;
    re-running the push restores it.
    """

    def __init__(self, line_index: int, reason: str, created_count: int, deleted_count: int):
        self.line_index = line_index
        self.reason = reason
        self.created_count = created_count
        self.deleted_count = deleted_count
        super().__init__(
            f"Create failed at line {line_index}: {reason} "
            f"({created_count} line(s) created, {deleted_count} deleted before failure; "
            f"remote BOM may be incomplete, re-run push to restore it)"
        )


class AggregateError(BomSyncError):
    """Several independent failures surfaced as one."""

    def __init__(self, errors: List[str], message: str = "Multiple errors occurred"):
        self.errors = list(errors)
        super().__init__(message + ":\n" + "\n".join(f"  - {e}" for e in self.errors))

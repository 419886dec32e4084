"""
Typed Exception Hierarchy for the Pricing Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from PricingKernelError:

    PricingKernelError (base)
    |
    +-- EventContextError
    |   +-- MissingEventContextError
    |
    +-- SourceError
    |   +-- SourceUnavailableError
    |   +-- CatalogUnavailableError
    |   +-- RowStoreError
    |
    +-- FeeError
    |   +-- NonConvergentFeeSystemError
    |
    +-- CommitError
    |   +-- RowCommitFailedError
    |   +-- PartialCommitFailureError
    |
    +-- InputError
        +-- InvalidNumericInputError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                       | When Raised
-----------|----------------------------|------------------------------------------
Event      | MISSING_EVENT_CONTEXT      | No event identifier resolved
-----------|----------------------------|------------------------------------------
Source     | SOURCE_UNAVAILABLE         | Row store / bus read failed for a section
           | CATALOG_UNAVAILABLE        | Catalog lookup raised for an item id
           | ROW_STORE_ERROR            | Row store rejected a read or write
-----------|----------------------------|------------------------------------------
Fee        | NON_CONVERGENT_FEE_SYSTEM  | Inclusive fee ratio K >= 1
-----------|----------------------------|------------------------------------------
Commit     | ROW_COMMIT_FAILED          | One create/update/delete in a diff failed
           | PARTIAL_COMMIT_FAILURE     | Diff applied with one or more failures
-----------|----------------------------|------------------------------------------
Input      | INVALID_NUMERIC_INPUT      | Strict parse of a numeric field failed

===============================================================================
HANDLING PATTERNS
===============================================================================

Exceptions are raised by collaborators (stores, catalogs) and inside a
component. They never cross a component boundary: the boundary converts
them into data -- a stale flag on a section, a ``PricingWarning`` on a
snapshot, a failure entry on a ``CommitResult``.

    try:
        item = catalog.get(row.equipment_id)
    except CatalogUnavailableError as e:
        warnings.append(PricingWarning.from_error(e, section="equipment"))
        item = None

The ``code`` class attribute is static per type and is what warnings and
log records carry.
"""


class PricingKernelError(Exception):
    """
    Base exception for all pricing kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "PRICING_KERNEL_ERROR"


# Event context


class EventContextError(PricingKernelError):
    """Base exception for event-context errors."""

    code: str = "EVENT_CONTEXT_ERROR"


class MissingEventContextError(EventContextError):
    """An operation was requested without an event identifier."""

    code: str = "MISSING_EVENT_CONTEXT"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"No event identifier resolved for {operation}")


# Sources


class SourceError(PricingKernelError):
    """Base exception for failing input sources."""

    code: str = "SOURCE_ERROR"


class SourceUnavailableError(SourceError):
    """A section's input source could not be read."""

    code: str = "SOURCE_UNAVAILABLE"

    def __init__(self, source: str, reason: str = ""):
        self.source = source
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Source unavailable: {source}{detail}")


class CatalogUnavailableError(SourceUnavailableError):
    """The catalog lookup for an item failed."""

    code: str = "CATALOG_UNAVAILABLE"

    def __init__(self, item_id: str, reason: str = ""):
        self.item_id = item_id
        super().__init__(f"catalog[{item_id}]", reason)


class RowStoreError(SourceError):
    """The row store rejected a read or write."""

    code: str = "ROW_STORE_ERROR"

    def __init__(self, operation: str, row_id: str | None, reason: str):
        self.operation = operation
        self.row_id = row_id
        self.reason = reason
        super().__init__(f"Row store {operation} failed for {row_id}: {reason}")


# Fees


class FeeError(PricingKernelError):
    """Base exception for extra-fee errors."""

    code: str = "FEE_ERROR"


class NonConvergentFeeSystemError(FeeError):
    """Inclusive percentage fees claim 100% or more of their own total."""

    code: str = "NON_CONVERGENT_FEE_SYSTEM"

    def __init__(self, inclusive_ratio: str, row_ids: list[str]):
        self.inclusive_ratio = inclusive_ratio
        self.row_ids = row_ids
        super().__init__(
            f"Inclusive fee ratio {inclusive_ratio} >= 1 for rows {row_ids}"
        )


# Commit


class CommitError(PricingKernelError):
    """Base exception for draft commit errors."""

    code: str = "COMMIT_ERROR"


class RowCommitFailedError(CommitError):
    """A single row operation in a commit diff failed."""

    code: str = "ROW_COMMIT_FAILED"

    def __init__(self, section: str, operation: str, row_id: str, reason: str):
        self.section = section
        self.operation = operation
        self.row_id = row_id
        self.reason = reason
        super().__init__(
            f"{operation} of {section} row {row_id} failed: {reason}"
        )


class PartialCommitFailureError(CommitError):
    """A commit diff was applied with one or more failed rows."""

    code: str = "PARTIAL_COMMIT_FAILURE"

    def __init__(self, section: str, failed_row_ids: list[str]):
        self.section = section
        self.failed_row_ids = failed_row_ids
        super().__init__(
            f"Commit of {section} left {len(failed_row_ids)} row(s) unsaved"
        )


# Input


class InputError(PricingKernelError):
    """Base exception for operator input errors."""

    code: str = "INPUT_ERROR"


class InvalidNumericInputError(InputError):
    """A numeric field could not be parsed."""

    code: str = "INVALID_NUMERIC_INPUT"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = repr(value)
        super().__init__(f"Invalid numeric input for {field}: {value!r}")

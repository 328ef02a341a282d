"""
Error Taxonomy for the Metering Core

Every failure the generator, indicator engine, or report aggregation
can raise derives from MeteringError. Each error carries a message and
a context dictionary naming the classification, window, or formula
that triggered it, so the API layer can render a structured response
without parsing strings.

Kinds:
- invalid_argument: malformed input (bad interval, bad id, inverted window)
- classification_not_found: referenced classification does not exist
- no_data: the requested window or grouping has no readings
- invalid_formula: unrecognized EnPI formula selector
"""

from typing import Any, Dict


class MeteringError(Exception):
    """Base class for all metering core failures."""

    kind = "metering_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind,
            "message": self.message,
            "context": {
                key: value.isoformat() if hasattr(value, "isoformat") else value
                for key, value in self.context.items()
            },
        }


class InvalidArgumentError(MeteringError, ValueError):
    """Malformed input: non-positive interval or id, end before start."""

    kind = "invalid_argument"


class ClassificationNotFoundError(MeteringError, LookupError):
    """The referenced classification id does not exist in the store."""

    kind = "classification_not_found"

    def __init__(self, classification_id: Any):
        super().__init__(
            f"Classification not found: {classification_id}",
            classification_id=classification_id,
        )


class NoDataError(MeteringError):
    """A calculation or report was requested over zero matching readings."""

    kind = "no_data"


class InvalidFormulaError(MeteringError, ValueError):
    """An unrecognized formula selector was supplied."""

    kind = "invalid_formula"

    def __init__(self, formula: Any):
        super().__init__(f"Invalid formula specified: {formula}", formula=formula)

"""Scoring failures surfaced to callers."""


class ScoringError(ValueError):
    """Base class; the engine never returns a partial score."""


class InvalidPeriodError(ScoringError):
    """End date precedes start date."""


class DataIntegrityError(ScoringError):
    """Stored data violates an invariant the engine cannot resolve (e.g. NaN values)."""

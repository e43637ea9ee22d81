"""Error and advisory types for SpawnIndex.

Validation errors are hard failures and derive from ValueError, so callers
that already guard against bad input with ``except ValueError`` keep working.
Advisories are soft conditions reported through the warnings machinery
(see spawn_index.diagnostics).
"""


class SpawnIndexError(ValueError):
    """Base class for spawn index validation errors."""


class InvalidCategory(SpawnIndexError):
    """Intensity category not valid for the survey year."""


class AmbiguousProtocol(SpawnIndexError):
    """Survey year and recorded fields don't identify a recording protocol."""


class InvalidMeasurement(SpawnIndexError):
    """Measurement outside its documented domain (negative, fraction > 1, ...)."""


class UnknownSubstrate(SpawnIndexError):
    """Understory substrate or algae type without egg density coefficients."""


class NoWidthAvailable(SpawnIndexError):
    """No pool, section, or region width resolves for a location."""


class InvalidConversionFactor(SpawnIndexError):
    """Eggs-to-biomass conversion factor (theta) missing or non-positive."""


class MissingColumns(SpawnIndexError):
    """Input table lacks required columns."""

    def __init__(self, name, missing):
        self.name = name
        self.missing = sorted(missing)
        super().__init__(
            f"`{name}` is missing columns: {', '.join(self.missing)}"
        )


class SpawnIndexAdvisory(UserWarning):
    """Non-fatal condition worth telling the caller about."""

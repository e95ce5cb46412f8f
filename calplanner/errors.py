"""
Exceptions raised by the persistence layer and mapped to HTTP responses.
"""


class PlannerError(Exception):
    pass


class StoreOffline(PlannerError):
    """No database connection was established at startup."""


class PlanNotFound(PlannerError):
    def __init__(self, year: int):
        super().__init__(f"No plan stored for {year}")
        self.year = year


class CorruptPlan(PlannerError):
    """A stored row exists but its documents cannot be decoded."""

    def __init__(self, year: int, reason: str):
        super().__init__(f"Stored plan for {year} is corrupt: {reason}")
        self.year = year
        self.reason = reason


class PlanValidationError(PlannerError):
    pass


class RestoreFailed(PlannerError):
    pass

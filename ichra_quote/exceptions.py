"""
Error taxonomy for the quote engine.

RatingDataError and ConfigurationError describe bad input data; a pass
collects them and keeps going. InvariantViolation is a programming defect
and aborts the pass.
"""


class QuoteEngineError(Exception):
    """Base class for every error raised by the quote engine"""


class RatingDataError(QuoteEngineError):
    """A plan's rate table is missing, malformed or violates tobacco >= regular"""

    def __init__(self, message: str, plan_id: str = None):
        super().__init__(message)
        self.plan_id = plan_id


class ConfigurationError(QuoteEngineError):
    """A benefit class (or engine setting) is authored incorrectly"""

    def __init__(self, message: str, class_id: str = None):
        super().__init__(message)
        self.class_id = class_id


class NoCandidateError(QuoteEngineError):
    """A member has no eligible plan after filtering and pricing"""

    def __init__(self, message: str, member_id: str = None,
                 excluded_plan_ids: tuple = (), issues: tuple = ()):
        super().__init__(message)
        self.member_id = member_id
        self.excluded_plan_ids = tuple(excluded_plan_ids)
        self.issues = tuple(issues)


class InvariantViolation(QuoteEngineError):
    """Internal consistency check failed; the pass cannot be trusted"""


class PassCancelled(QuoteEngineError):
    """A recomputation pass was superseded by newer inputs"""

"""
ICHRA quote engine: rating, contribution, affordability and plan selection
for employer ICHRA quotes.
"""

from ichra_quote.config import EngineSettings, load_settings, configure_logging
from ichra_quote.controller import ControllerState, RecomputationController
from ichra_quote.engine import recompute
from ichra_quote.exceptions import (
    QuoteEngineError,
    RatingDataError,
    ConfigurationError,
    NoCandidateError,
    InvariantViolation,
    PassCancelled,
)
from ichra_quote.quote_types import (
    AgeBand,
    AgeRateTable,
    BenefitClass,
    DataIssue,
    FamilyTierTable,
    FilterSpec,
    GroupSummary,
    MarketSegment,
    Member,
    MemberOutcome,
    OutcomeStatus,
    Plan,
    PriorCoverage,
    QuoteInputs,
    QuoteResult,
    RatePair,
    TriState,
    ValueRange,
)

__version__ = "0.1.0"

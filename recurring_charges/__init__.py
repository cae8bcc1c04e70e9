"""Public interface for the ``recurring_charges`` package.

Re-exports the detection API, configuration and model types as the stable
import surface. No runtime logic lives here.
"""

from .api import analyze_statement, detect_recurring_subscriptions, detect_with_near_misses
from .config import DEFAULT_CONFIG, DetectorConfig, IntervalBand
from .ingest.statement_csv import parse_statement
from .merchants import merchant_similarity, normalize_merchant_name
from .models import (
    DetectedSubscription,
    DetectionReport,
    DetectionReportPayload,
    Frequency,
    MerchantGroup,
    NearMiss,
    ParseResult,
    RawRow,
    RejectionReason,
    SubscriptionPayload,
    Transaction,
)
from .recurrence import amounts_match, classify_interval, detect_recurrence_in_group
from .transactions import to_transactions

__all__ = [
    # API
    "analyze_statement",
    "detect_recurring_subscriptions",
    "detect_with_near_misses",
    "parse_statement",
    "to_transactions",
    "detect_recurrence_in_group",
    "normalize_merchant_name",
    "merchant_similarity",
    "amounts_match",
    "classify_interval",
    # Configuration
    "DetectorConfig",
    "IntervalBand",
    "DEFAULT_CONFIG",
    # Models / types
    "RawRow",
    "ParseResult",
    "Transaction",
    "MerchantGroup",
    "Frequency",
    "DetectedSubscription",
    "RejectionReason",
    "NearMiss",
    "DetectionReport",
    "SubscriptionPayload",
    "DetectionReportPayload",
]

"""Enum definitions for application constants."""

from enum import Enum


class QuoteStatus(str, Enum):
    """Quote lifecycle."""

    DRAFT = "DRAFT"
    QUOTED = "QUOTED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ProjectStatus(str, Enum):
    """Project lifecycle. COMPLETED freezes the profitability snapshot."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class IssueType(str, Enum):
    """
    Billing mode of an issue.

    AUGMENT issues are metered by AI messages, MANUAL issues carry a fixed
    price. UNCATEGORIZED issues are never priced.
    """

    AUGMENT = "AUGMENT"
    MANUAL = "MANUAL"
    UNCATEGORIZED = "UNCATEGORIZED"

    @property
    def is_categorized(self) -> bool:
        return self is not IssueType.UNCATEGORIZED


class IssueStatus(str, Enum):
    """Execution status of a project issue."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    PAYPAL = "PAYPAL"
    STRIPE = "STRIPE"
    WISE = "WISE"
    CRYPTOCURRENCY = "CRYPTOCURRENCY"
    CHECK = "CHECK"
    CASH = "CASH"
    OTHER = "OTHER"


class ReportRange(str, Enum):
    """Time ranges accepted by the reports endpoints."""

    ALL = "all"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

"""Quote service - quote lifecycle and price suggestions."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.structured_logging import build_log_context
from backoffice.db.enums import QuoteStatus
from backoffice.db.models import Project, Quote
from backoffice.schemas.quote import PriceSuggestion, QuoteCreate, QuoteUpdate
from backoffice.services import client_service, github_service, pricing_service
from backoffice.services.errors import InvalidTransitionError, NotFoundError
from backoffice.services.estimation_service import tree_from_rows
from backoffice.services.inclusion_service import QuoteChecklist, quote_checklist

logger = logging.getLogger(__name__)


# Allowed status moves. Extra guards live in change_status.
ALLOWED_TRANSITIONS: dict[QuoteStatus, set[QuoteStatus]] = {
    QuoteStatus.DRAFT: {QuoteStatus.QUOTED, QuoteStatus.REJECTED},
    QuoteStatus.QUOTED: {QuoteStatus.DRAFT, QuoteStatus.ACCEPTED, QuoteStatus.REJECTED},
    QuoteStatus.ACCEPTED: {QuoteStatus.QUOTED, QuoteStatus.REJECTED},
    QuoteStatus.REJECTED: {QuoteStatus.DRAFT},
}


def create_quote(db: Session, data: QuoteCreate) -> Quote:
    """Create a DRAFT quote for an existing client."""
    client_service.get_client(db, data.client_id)

    values = data.model_dump()
    if values.get("external_repository"):
        values["external_repository"] = github_service.normalize_repository(
            values["external_repository"]
        )
    if values.get("ai_message_rate") is None:
        values["ai_message_rate"] = settings.DEFAULT_AI_MESSAGE_RATE
    if values.get("profit_margin_percentage") is None:
        values["profit_margin_percentage"] = settings.DEFAULT_PROFIT_MARGIN

    quote = Quote(status=QuoteStatus.DRAFT.value, **values)
    db.add(quote)
    db.commit()
    db.refresh(quote)
    return quote


def get_quote(db: Session, quote_id: UUID) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id).first()
    if not quote:
        raise NotFoundError("Quote not found")
    return quote


def update_quote(db: Session, quote_id: UUID, data: QuoteUpdate) -> Quote:
    """Partial update of descriptive and pricing fields. Status has its own endpoint."""
    quote = get_quote(db, quote_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "requirements" and value is None:
            value = []
        setattr(quote, field, value)
    db.commit()
    db.refresh(quote)
    return quote


def get_checklist(db: Session, quote_id: UUID) -> QuoteChecklist:
    quote = get_quote(db, quote_id)
    return quote_checklist(quote, tree_from_rows(list(quote.milestone_estimations)))


def has_project(db: Session, quote_id: UUID) -> bool:
    return db.query(Project.id).filter(Project.quote_id == quote_id).first() is not None


def change_status(db: Session, quote_id: UUID, new_status: QuoteStatus) -> Quote:
    """
    Move a quote to ``new_status``.

    - DRAFT -> QUOTED requires every required checklist item
    - a quote with a project cannot leave ACCEPTED

    Raises InvalidTransitionError with the reason; the quote is unchanged.
    """
    quote = get_quote(db, quote_id)
    current = QuoteStatus(quote.status)
    if current == new_status:
        return quote

    if current == QuoteStatus.ACCEPTED and has_project(db, quote_id):
        raise InvalidTransitionError(
            "Cannot change status of an accepted quote that already has a project"
        )

    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move quote from {current.value} to {new_status.value}"
        )

    if new_status == QuoteStatus.QUOTED:
        checklist = quote_checklist(quote, tree_from_rows(list(quote.milestone_estimations)))
        if not checklist.quotable:
            missing = [item.label for item in checklist.items if item.required and not item.completed]
            raise InvalidTransitionError(
                "Quote is not ready to be quoted. Missing: " + ", ".join(missing)
            )

    quote.status = new_status.value
    db.commit()
    db.refresh(quote)

    logger.info(
        "Quote status changed %s -> %s",
        current.value,
        new_status.value,
        extra=build_log_context(quote_id=quote_id),
    )
    return quote


def suggest_prices(db: Session, quote_id: UUID) -> PriceSuggestion:
    """Minimum and recommended price from the included milestones and requirements AI cost."""
    quote = get_quote(db, quote_id)
    tree = tree_from_rows(list(quote.milestone_estimations))
    base = pricing_service.included_total(tree)
    requirements_cost = pricing_service.ai_messages_cost(
        quote.ai_messages_used_for_requirements, quote.ai_message_rate
    )
    minimum = pricing_service.minimum_price(
        base, quote.ai_messages_used_for_requirements, quote.ai_message_rate
    )
    return PriceSuggestion(
        base_milestone_price=base,
        requirements_ai_cost=requirements_cost,
        minimum_price=minimum,
        profit_margin_percentage=quote.profit_margin_percentage,
        recommended_price=pricing_service.recommended_price(
            minimum, quote.profit_margin_percentage
        ),
    )

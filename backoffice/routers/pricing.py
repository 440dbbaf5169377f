"""Stateless pricing of an estimation tree held by the caller."""

from fastapi import APIRouter

from backoffice.routers.estimations import tree_to_response
from backoffice.schemas.estimation import EstimationTreeRead, PriceTreeRequest
from backoffice.services.estimation_tree import EstimationTree, IssueDraft, MilestoneDraft
from backoffice.services.inclusion_service import enforce_inclusion
from backoffice.services.pricing_service import price_tree

router = APIRouter()


@router.post("/tree", response_model=EstimationTreeRead)
def price_estimation_tree(data: PriceTreeRequest):
    """Price every issue and milestone; milestones that cannot be included are excluded."""
    tree = EstimationTree(
        milestones=tuple(
            MilestoneDraft(
                external_id=m.external_id,
                number=m.number,
                title=m.title,
                include_in_quote=m.include_in_quote,
                issues=tuple(
                    IssueDraft(
                        external_id=i.external_id,
                        number=i.number,
                        title=i.title,
                        issue_type=i.issue_type,
                        estimated_messages=i.estimated_messages,
                        fixed_price=i.fixed_price,
                    )
                    for i in m.issues
                ),
            )
            for m in data.milestones
        )
    )
    priced = enforce_inclusion(price_tree(tree, data.ai_message_rate))
    return tree_to_response(priced, data.ai_message_rate)

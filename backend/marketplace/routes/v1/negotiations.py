# backend/marketplace/routes/v1/negotiations.py
"""
Rate negotiation routes - API v1

Endpoints:
    POST /                            → Open a negotiation (customer)
    GET /                             → Negotiations I am party to
    GET /{negotiation_id}             → Negotiation with counter offers and messages
    POST /{negotiation_id}/respond    → Accept, reject or counter
    POST /{negotiation_id}/messages   → Free-text message to the other party
"""

from typing import List

from fastapi import APIRouter, Body, Depends, status

from ...api.dependencies import get_current_actor, get_negotiation_service
from ...core.actor import Actor
from ...core.exceptions import DomainException
from ...schemas.negotiation import (
    NegotiationCreate,
    NegotiationMessageCreate,
    NegotiationRespond,
    NegotiationResponse,
)
from ...services.negotiation_service import NegotiationService
from .common import handle_domain_exception, ulid_path

router = APIRouter(tags=["negotiations-v1"])


@router.post("", response_model=NegotiationResponse, status_code=status.HTTP_201_CREATED)
def open_negotiation(
    data: NegotiationCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: NegotiationService = Depends(get_negotiation_service),
) -> NegotiationResponse:
    try:
        return NegotiationResponse.model_validate(service.propose(actor, data))
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[NegotiationResponse])
def list_negotiations(
    actor: Actor = Depends(get_current_actor),
    service: NegotiationService = Depends(get_negotiation_service),
) -> List[NegotiationResponse]:
    return [NegotiationResponse.model_validate(n) for n in service.list_negotiations(actor)]


@router.get("/{negotiation_id}", response_model=NegotiationResponse)
def get_negotiation(
    negotiation_id: str = ulid_path("Negotiation ULID"),
    actor: Actor = Depends(get_current_actor),
    service: NegotiationService = Depends(get_negotiation_service),
) -> NegotiationResponse:
    try:
        return NegotiationResponse.model_validate(service.get_negotiation(actor, negotiation_id))
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{negotiation_id}/respond",
    response_model=NegotiationResponse,
    responses={
        403: {"description": "Not a party, or answering your own offer"},
        409: {"description": "Negotiation closed or expired"},
    },
)
def respond_to_negotiation(
    negotiation_id: str = ulid_path("Negotiation ULID"),
    payload: NegotiationRespond = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: NegotiationService = Depends(get_negotiation_service),
) -> NegotiationResponse:
    """Only the party who did not make the offer on the table may respond."""
    try:
        negotiation = service.respond(
            actor,
            negotiation_id,
            payload.action,
            counter_rate=payload.counter_rate,
            message=payload.message,
        )
        return NegotiationResponse.model_validate(negotiation)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{negotiation_id}/messages", response_model=NegotiationResponse)
def post_negotiation_message(
    negotiation_id: str = ulid_path("Negotiation ULID"),
    payload: NegotiationMessageCreate = Body(...),
    actor: Actor = Depends(get_current_actor),
    service: NegotiationService = Depends(get_negotiation_service),
) -> NegotiationResponse:
    try:
        negotiation = service.add_message(actor, negotiation_id, payload.content)
        return NegotiationResponse.model_validate(negotiation)
    except DomainException as e:
        handle_domain_exception(e)

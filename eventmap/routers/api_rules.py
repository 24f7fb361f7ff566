from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps.auth import get_rules_service, require_session
from ..schemas.address import ApiMessage
from ..schemas.rules import RulesDocument
from ..services.rules import RulesService

router = APIRouter(prefix="/api", tags=["rules"])


@router.get("/rules", response_model=RulesDocument)
def get_rules(service: RulesService = Depends(get_rules_service)):
    return RulesDocument(rules=service.get_rules())


@router.post("/rules", response_model=ApiMessage, dependencies=[Depends(require_session)])
def update_rules(payload: RulesDocument, service: RulesService = Depends(get_rules_service)):
    service.set_rules(payload.rules)
    return ApiMessage(message="Rules updated successfully.")

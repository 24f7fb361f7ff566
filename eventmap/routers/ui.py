from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from ..core.jinja import get_templates
from ..deps.auth import get_address_service, get_rules_service, require_session
from ..services.addresses import AddressService
from ..services.rules import RulesService

router = APIRouter(tags=["pages"])


@router.get("/", response_class=HTMLResponse)
def index_page(request: Request, service: AddressService = Depends(get_address_service)):
    settings = request.app.state.settings
    return get_templates(request).TemplateResponse(
        request,
        "index.html",
        {
            "address_count": sum(1 for a in service.list_addresses() if "lat" in a and "lon" in a),
            "fallback_center": settings.map_fallback_center,
        },
    )


@router.get("/rules", response_class=HTMLResponse)
def rules_page(request: Request, service: RulesService = Depends(get_rules_service)):
    return get_templates(request).TemplateResponse(request, "rules.html", {"rules": service.get_rules()})


@router.get("/admin", response_class=HTMLResponse, dependencies=[Depends(require_session)])
def admin_page(request: Request):
    settings = request.app.state.settings
    return get_templates(request).TemplateResponse(
        request,
        "admin.html",
        {
            "address_suffix": settings.ADDRESS_SUFFIX,
            "picker_center": settings.picker_fallback_center,
        },
    )

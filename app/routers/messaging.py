from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.deps import get_resolver, get_tenant_repo, get_tracker
from config.settings import settings
from repos.tenant_repo import TenantRepository
from telephony.errors import StoreUnavailable
from telephony.lifecycle import DeliveryTracker
from telephony.resolver import ConfigResolver
from utils.request_context import set_tenant_id

log = logging.getLogger("leadline.router.messaging")
router = APIRouter()


class SendSmsRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1, max_length=128)
    lead_id: str = Field(default="", max_length=128)
    to: str = Field(..., min_length=1, max_length=64)
    message: str = Field(..., min_length=1)


@router.post("/sms/send")
def send_sms(req: SendSmsRequest, tracker: DeliveryTracker = Depends(get_tracker)):
    set_tenant_id(req.tenant_id)
    if len(req.message) > settings.SMS_MAX_BODY_CHARS:
        raise HTTPException(status_code=400, detail="message_too_long")

    result = tracker.send(req.tenant_id, req.lead_id, req.to, req.message)
    if not result.success:
        # Rendered by the TelephonyError handler with the matching status code.
        raise result.error
    return result.to_dict()


@router.get("/twilio/status")
def twilio_status(
    tenant_id: str = Query(..., alias="tenantId", min_length=1),
    tenants: TenantRepository = Depends(get_tenant_repo),
    resolver: ConfigResolver = Depends(get_resolver),
):
    degraded = False
    try:
        tenant_cfg = tenants.get_twilio_config(tenant_id)
    except StoreUnavailable:
        # Store down: report what the platform account alone would give.
        log.warning("twilio_status_store_unavailable", extra={"extra": {"event": "twilio_status_store_unavailable", "tenant_id": tenant_id}})
        tenant_cfg = None
        degraded = True

    eff = resolver.resolve(tenant_cfg)
    out = {
        "connected": eff.is_usable,
        "phoneNumber": eff.credentials.phone_number if eff.credentials else None,
        "source": eff.source.value,
    }
    if degraded:
        out["degraded"] = True
    return out

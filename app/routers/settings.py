from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.deps import get_sms_client, get_tenant_repo
from config.settings import settings
from messaging.sms import SmsClient
from models.telephony import CredentialSet
from repos.tenant_repo import TenantRepository
from telephony.errors import InvalidNumber
from telephony.normalizer import normalize
from telephony.resolver import is_complete
from utils.masking import mask_secret
from utils.request_context import set_tenant_id

log = logging.getLogger("leadline.router.settings")
router = APIRouter()


class TwilioSettingsRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    tenant_id: str = Field(..., min_length=1, max_length=128)
    account_sid: str = ""
    auth_token: str = ""
    phone_number: str = ""


def _require_owner(tenants: TenantRepository, tenant_id: str, user_id: str) -> None:
    owner_id = tenants.get_owner_id(tenant_id)
    if owner_id is None:
        raise HTTPException(status_code=404, detail="tenant_not_found")
    if owner_id != user_id:
        raise HTTPException(status_code=403, detail="not_tenant_owner")


@router.post("/settings/twilio")
def save_twilio_settings(
    req: TwilioSettingsRequest,
    tenants: TenantRepository = Depends(get_tenant_repo),
    sms: SmsClient = Depends(get_sms_client),
):
    set_tenant_id(req.tenant_id)
    _require_owner(tenants, req.tenant_id, req.user_id)

    phone = req.phone_number.strip()
    if phone:
        try:
            phone = str(normalize(phone, default_country_code=settings.SMS_DEFAULT_COUNTRY_CODE))
        except InvalidNumber:
            raise HTTPException(status_code=400, detail="invalid_phone_number")

    creds = CredentialSet(account_sid=req.account_sid.strip(), auth_token=req.auth_token.strip(), phone_number=phone)
    if creds.account_sid and creds.auth_token and not sms.verify_credentials(creds):
        raise HTTPException(status_code=400, detail="invalid_twilio_credentials")

    connected = is_complete(creds)
    tenants.save_twilio_config(req.tenant_id, creds, connected=connected)
    log.info(
        "twilio_settings_saved",
        extra={"extra": {"event": "twilio_settings_saved", "tenant_id": req.tenant_id, "user_id": req.user_id, "connected": connected}},
    )
    return {"success": True, "connected": connected, "phoneNumber": creds.phone_number}


@router.delete("/settings/twilio")
def clear_twilio_settings(
    user_id: str = Query(..., min_length=1),
    tenant_id: str = Query(..., min_length=1),
    tenants: TenantRepository = Depends(get_tenant_repo),
):
    set_tenant_id(tenant_id)
    _require_owner(tenants, tenant_id, user_id)
    tenants.clear_twilio_config(tenant_id)
    log.info("twilio_settings_cleared", extra={"extra": {"event": "twilio_settings_cleared", "tenant_id": tenant_id, "user_id": user_id}})
    return {"success": True}


@router.get("/settings/twilio")
def get_twilio_settings(
    tenant_id: str = Query(..., min_length=1),
    tenants: TenantRepository = Depends(get_tenant_repo),
):
    tenant = tenants.get(tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="tenant_not_found")
    cfg = (tenant.get("settings") or {}).get("twilioConfig") or {}
    # Never return the auth token.
    return {
        "connected": bool(cfg.get("connected", False)),
        "accountSid": mask_secret(str(cfg.get("accountSid") or "")),
        "phoneNumber": cfg.get("phoneNumber") or "",
        "connectedAt": cfg.get("connectedAt"),
    }

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from twilio.request_validator import RequestValidator
from twilio.twiml.messaging_response import MessagingResponse

from app.deps import get_resolver, get_tenant_repo, get_tracker
from config.settings import settings
from repos.tenant_repo import TenantRepository
from telephony.errors import StoreUnavailable
from telephony.lifecycle import DeliveryTracker
from telephony.resolver import ConfigResolver
from telephony.status import coerce_reported_status
from utils.request_context import set_tenant_id

log = logging.getLogger("leadline.router.twilio")
router = APIRouter()


def _ack() -> Response:
    # Empty TwiML; anything but 200 makes Twilio retry.
    return Response(content=str(MessagingResponse()), media_type="application/xml")


def _public_url(request: Request) -> str:
    # Cloud Run forwards proto/host; the signature covers the public URL incl. query string.
    proto = request.headers.get("X-Forwarded-Proto", request.url.scheme)
    host = request.headers.get("X-Forwarded-Host", request.url.netloc)
    url = f"{proto}://{host}{request.url.path}"
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


async def _read_form(request: Request) -> Dict[str, str]:
    # Twilio sends application/x-www-form-urlencoded
    form = await request.form()
    return {k: str(v) for k, v in form.items()}


def _reject_unsigned(
    request: Request,
    params: Dict[str, str],
    tenant_id: str,
    event: str,
    tenants: TenantRepository,
    resolver: ConfigResolver,
) -> Optional[Response]:
    """Return the response to send instead of processing, or None for a genuine request."""
    if not settings.TWILIO_VALIDATE_WEBHOOKS:
        return None

    ctx = {"tenant_id": tenant_id, "message_sid": params.get("MessageSid", "")}
    try:
        eff = resolver.resolve(tenants.get_twilio_config(tenant_id) if tenant_id else None)
    except StoreUnavailable:
        log.error(f"{event}_unverifiable", extra={"extra": {"event": f"{event}_unverifiable", **ctx}})
        return _ack()

    signature = request.headers.get("X-Twilio-Signature", "")
    token = eff.credentials.auth_token if eff.credentials else ""
    if not token or not RequestValidator(token).validate(_public_url(request), params, signature):
        log.warning(f"{event}_bad_signature", extra={"extra": {"event": f"{event}_bad_signature", **ctx}})
        return Response(content="Forbidden", status_code=403)
    return None


@router.post("/twilio/sms-status")
async def sms_status(
    request: Request,
    tracker: DeliveryTracker = Depends(get_tracker),
    tenants: TenantRepository = Depends(get_tenant_repo),
    resolver: ConfigResolver = Depends(get_resolver),
):
    params = await _read_form(request)
    tenant_id = (request.query_params.get("tenantId") or "").strip()
    lead_id = (request.query_params.get("leadId") or "").strip()
    message_sid = params.get("MessageSid", "").strip()
    set_tenant_id(tenant_id)

    rejected = _reject_unsigned(request, params, tenant_id, "sms_status", tenants, resolver)
    if rejected is not None:
        return rejected

    status = coerce_reported_status(params.get("MessageStatus"))
    tracker.apply_status_update(message_sid, tenant_id, status, lead_id=lead_id or None)
    return _ack()


@router.post("/twilio/incoming-message")
async def incoming_message(
    request: Request,
    tracker: DeliveryTracker = Depends(get_tracker),
    tenants: TenantRepository = Depends(get_tenant_repo),
    resolver: ConfigResolver = Depends(get_resolver),
):
    """Reply from a lead. The tenant's number is configured with ``?tenantId=`` on this URL."""
    params = await _read_form(request)
    tenant_id = (request.query_params.get("tenantId") or "").strip()
    lead_id = (request.query_params.get("leadId") or "").strip()
    set_tenant_id(tenant_id)

    rejected = _reject_unsigned(request, params, tenant_id, "sms_inbound", tenants, resolver)
    if rejected is not None:
        return rejected

    tracker.record_inbound(
        tenant_id,
        params.get("From", ""),
        params.get("To", "").strip(),
        params.get("Body", ""),
        message_sid=params.get("MessageSid", "").strip(),
        lead_id=lead_id or None,
    )
    return _ack()

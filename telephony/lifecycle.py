from __future__ import annotations

import functools
import logging
import os
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urlencode

from config.settings import settings
from messaging.dispatcher import MessageDispatcher
from models.telephony import (
    MessageStatus,
    NormalizedNumber,
    OutboundMessage,
    SendResult,
    StatusUpdateOutcome,
)
from repos.delivery_log_repo import DeliveryLogRepository
from repos.message_repo import MessageRepository
from repos.tenant_repo import TenantRepository
from storage.firestore_client import is_valid_doc_id
from telephony.errors import (
    ConfigurationError,
    InvalidNumber,
    InvalidTenantId,
    ProviderError,
    StoreUnavailable,
    TelephonyError,
)
from telephony.normalizer import normalize
from telephony.resolver import ConfigResolver
from telephony.status import REASON_NOT_FOUND, REASON_TERMINAL, coerce_reported_status
from utils.masking import dest_hint

log = logging.getLogger("leadline.lifecycle")

STATUS_CALLBACK_PATH = "/api/twilio/sms-status"

Normalizer = Callable[[str], NormalizedNumber]


class DeliveryTracker:
    """
    Sends outbound SMS and reconciles the provider's delivery callbacks.

    send():                resolve config -> normalize -> dispatch -> persist as queued
    apply_status_update(): one transactional status transition per callback; never raises
    record_inbound():      audit a reply from a lead; never raises

    The tracker is the only writer of OutboundMessage.status.
    """

    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        tenants: Optional[TenantRepository] = None,
        messages: Optional[MessageRepository] = None,
        delivery_logs: Optional[DeliveryLogRepository] = None,
        dispatcher: Optional[MessageDispatcher] = None,
        normalizer: Optional[Normalizer] = None,
        app_base_url: Optional[str] = None,
    ):
        self.resolver = resolver or ConfigResolver.from_settings(settings)
        self.tenants = tenants or TenantRepository()
        self.messages = messages or MessageRepository()
        self.delivery_logs = delivery_logs or DeliveryLogRepository()
        self.dispatcher = dispatcher or MessageDispatcher()
        self.normalizer = normalizer or functools.partial(
            normalize, default_country_code=settings.SMS_DEFAULT_COUNTRY_CODE
        )
        self.app_base_url = settings.APP_BASE_URL if app_base_url is None else app_base_url

    def status_callback_url(self, tenant_id: str, lead_id: str) -> Optional[str]:
        base = (self.app_base_url or "").rstrip("/")
        if not base:
            return None
        return f"{base}{STATUS_CALLBACK_PATH}?{urlencode({'tenantId': tenant_id, 'leadId': lead_id or ''})}"

    def _fail(self, err: TelephonyError, tenant_id: str, lead_id: str, message_sid: Optional[str] = None) -> SendResult:
        level = logging.ERROR if isinstance(err, StoreUnavailable) else logging.WARNING
        log.log(
            level,
            "sms_send_failed",
            extra={
                "extra": {
                    "event": "sms_send_failed",
                    "tenant_id": tenant_id,
                    "lead_id": lead_id,
                    "error_type": type(err).__name__,
                    "error_code": err.code,
                    "message": err.public_message,
                    "message_sid": message_sid,
                }
            },
        )
        return SendResult(success=False, message_sid=message_sid, error=err)

    def _audit(self, tenant_id: str, entry: Dict[str, Any]) -> bool:
        # Audit is best-effort: the message record is the source of truth.
        try:
            self.delivery_logs.write(tenant_id, {**entry, "revision": os.getenv("K_REVISION") or ""})
        except StoreUnavailable as e:
            log.error(
                "delivery_log_write_failed",
                extra={"extra": {"event": "delivery_log_write_failed", "tenant_id": tenant_id, "action": entry.get("action"), "message": str(e)}},
            )
            return False
        return True

    def send(self, tenant_id: str, lead_id: str, to_raw: str, body: str) -> SendResult:
        lead_id = lead_id or ""
        if not is_valid_doc_id(tenant_id):
            return self._fail(InvalidTenantId(), tenant_id, lead_id)

        try:
            tenant_cfg = self.tenants.get_twilio_config(tenant_id)
        except StoreUnavailable as e:
            return self._fail(e, tenant_id, lead_id)

        eff = self.resolver.resolve(tenant_cfg)
        if not eff.is_usable:
            return self._fail(ConfigurationError(), tenant_id, lead_id)

        try:
            to_number = self.normalizer(to_raw)
        except InvalidNumber as e:
            return self._fail(e, tenant_id, lead_id)

        try:
            resp = self.dispatcher.send_sms(
                eff.credentials,
                to_number,
                body,
                status_callback=self.status_callback_url(tenant_id, lead_id),
            )
        except TelephonyError as e:
            return self._fail(e, tenant_id, lead_id)
        except Exception as e:
            return self._fail(ProviderError(str(e) or type(e).__name__), tenant_id, lead_id)

        message_sid = str(resp.get("id") or "")
        if not message_sid:
            return self._fail(ProviderError("provider returned no message id"), tenant_id, lead_id)
        msg = OutboundMessage(
            message_sid=message_sid,
            tenant_id=tenant_id,
            lead_id=lead_id,
            to_number=str(to_number),
            from_number=eff.credentials.phone_number,
            body=body,
            status=MessageStatus.QUEUED,
            credential_source=eff.source,
        )
        try:
            self.messages.create(msg)
        except StoreUnavailable as e:
            # Already accepted by the provider; not resent, just untracked.
            return self._fail(e, tenant_id, lead_id, message_sid=message_sid)

        log.info(
            "sms_queued",
            extra={
                "extra": {
                    "event": "sms_queued",
                    "tenant_id": tenant_id,
                    "lead_id": lead_id,
                    "message_sid": message_sid,
                    "dest": dest_hint(to_number),
                    "credential_source": eff.source.value,
                }
            },
        )
        self._audit(
            tenant_id,
            {
                "action": "message.queued",
                "channel": "sms",
                "messageSid": message_sid,
                "leadId": lead_id,
                "status": MessageStatus.QUEUED.value,
                "notes": f"SMS sent: {body[:100]}",
            },
        )
        return SendResult(success=True, message_sid=message_sid)

    def apply_status_update(
        self,
        message_sid: str,
        tenant_id: str,
        reported_status: Union[MessageStatus, str],
        lead_id: Optional[str] = None,
    ) -> StatusUpdateOutcome:
        """Apply one provider status report. Never raises; the outcome is informational."""
        ctx = {"message_sid": message_sid, "tenant_id": tenant_id, "lead_id": lead_id}
        if not message_sid or not tenant_id:
            log.warning("sms_status_dropped", extra={"extra": {"event": "sms_status_dropped", "reason": "missing_ids", **ctx}})
            return StatusUpdateOutcome.DROPPED_UNKNOWN

        if isinstance(reported_status, MessageStatus):
            status = reported_status
        else:
            status = coerce_reported_status(reported_status)

        try:
            res = self.messages.conditional_update_status(message_sid, tenant_id, status)
        except Exception as e:
            # Webhook callers always ack; a failure here is only ever logged.
            log.error(
                "sms_status_update_failed",
                extra={"extra": {"event": "sms_status_update_failed", "status": status.value, "error_type": type(e).__name__, "message": str(e), **ctx}},
                exc_info=True,
            )
            return StatusUpdateOutcome.FAILED

        if not res.applied:
            if res.reason == REASON_NOT_FOUND:
                log.warning(
                    "sms_status_dropped",
                    extra={"extra": {"event": "sms_status_dropped", "reason": "unknown_message", "status": status.value, **ctx}},
                )
                return StatusUpdateOutcome.DROPPED_UNKNOWN
            log.info(
                "sms_status_skipped",
                extra={
                    "extra": {
                        "event": "sms_status_skipped",
                        "reason": res.reason,
                        "status": status.value,
                        "current": res.previous.value if res.previous else None,
                        **ctx,
                    }
                },
            )
            if res.reason == REASON_TERMINAL:
                return StatusUpdateOutcome.SKIPPED_TERMINAL
            return StatusUpdateOutcome.SKIPPED_STALE

        previous = res.previous.value if res.previous else None
        log.info(
            "sms_status_applied",
            extra={"extra": {"event": "sms_status_applied", "from": previous, "to": status.value, **ctx}},
        )
        self._audit(
            tenant_id,
            {
                "action": "message.status_changed",
                "channel": "sms",
                "messageSid": message_sid,
                "leadId": lead_id or "",
                "fromStatus": previous,
                "status": status.value,
            },
        )
        return StatusUpdateOutcome.APPLIED

    def record_inbound(
        self,
        tenant_id: str,
        from_raw: str,
        to_number: str,
        body: str,
        message_sid: str = "",
        lead_id: Optional[str] = None,
    ) -> bool:
        """Audit a reply from a lead as ``message.inbound``. Never raises; False when nothing was written."""
        ctx = {"message_sid": message_sid, "tenant_id": tenant_id, "lead_id": lead_id}
        if not is_valid_doc_id(tenant_id) or not (from_raw or "").strip() or not body:
            log.warning("sms_inbound_dropped", extra={"extra": {"event": "sms_inbound_dropped", "reason": "missing_fields", **ctx}})
            return False

        try:
            sender = str(self.normalizer(from_raw))
        except InvalidNumber:
            # Short codes and alphanumeric senders are still worth keeping.
            sender = from_raw.strip()

        log.info("sms_inbound_received", extra={"extra": {"event": "sms_inbound_received", "from": dest_hint(sender), **ctx}})
        return self._audit(
            tenant_id,
            {
                "action": "message.inbound",
                "channel": "sms",
                "direction": "inbound",
                "messageSid": message_sid,
                "leadId": lead_id or "",
                "from": sender,
                "to": to_number,
                "notes": f"Inbound Message: {body}",
            },
        )

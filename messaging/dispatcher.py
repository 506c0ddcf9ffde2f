from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

from messaging.sms import SmsClient
from models.telephony import CredentialSet
from telephony.errors import TelephonyError
from utils.masking import dest_hint

log = logging.getLogger("leadline.dispatcher")


class MessageDispatcher:
    def __init__(self, sms: Optional[SmsClient] = None):
        self.sms = sms

    def send_sms(
        self,
        credentials: CredentialSet,
        to_number: str,
        body: str,
        status_callback: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send through the provider with attempt/result logging. Provider errors propagate."""
        rev = os.getenv("K_REVISION") or ""
        t0 = time.time()
        log.info(
            "message_send_attempt",
            extra={"extra": {"event": "message_send_attempt", "channel": "sms", "dest": dest_hint(to_number), "revision": rev}},
        )
        try:
            if not self.sms:
                self.sms = SmsClient()
            resp = self.sms.send_message(credentials, to_number, body, status_callback=status_callback)
        except TelephonyError as e:
            dt_ms = int((time.time() - t0) * 1000)
            log.warning(
                "message_send_rejected",
                extra={
                    "extra": {
                        "event": "message_send_rejected",
                        "channel": "sms",
                        "dest": dest_hint(to_number),
                        "error_type": type(e).__name__,
                        "message": e.public_message,
                        "latency_ms": dt_ms,
                        "revision": rev,
                    }
                },
            )
            raise
        except Exception as e:
            dt_ms = int((time.time() - t0) * 1000)
            log.error(
                "message_send_exception",
                extra={
                    "extra": {
                        "event": "message_send_exception",
                        "channel": "sms",
                        "dest": dest_hint(to_number),
                        "error_type": type(e).__name__,
                        "message": str(e),
                        "latency_ms": dt_ms,
                        "revision": rev,
                    }
                },
                exc_info=True,
            )
            raise

        dt_ms = int((time.time() - t0) * 1000)
        log.info(
            "message_send_result",
            extra={
                "extra": {
                    "event": "message_send_result",
                    "channel": "sms",
                    "dest": dest_hint(to_number),
                    "message_sid": resp.get("id"),
                    "provider_status": resp.get("status"),
                    "latency_ms": dt_ms,
                    "revision": rev,
                }
            },
        )
        return resp

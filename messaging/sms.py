from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client as TwilioClient

from config.settings import settings
from models.telephony import CredentialSet
from telephony.errors import ProviderError, ProviderUnavailable

log = logging.getLogger("leadline.sms")

ClientFactory = Callable[[CredentialSet], TwilioClient]


def _default_client_factory(creds: CredentialSet) -> TwilioClient:
    # One client per call: credentials differ per tenant.
    http = TwilioHttpClient(timeout=settings.TWILIO_TIMEOUT_SECONDS)
    return TwilioClient(creds.account_sid, creds.auth_token, http_client=http)


class SmsClient:
    """Thin wrapper over the Twilio REST client. Raises ProviderError / ProviderUnavailable."""

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self.client_factory = client_factory or _default_client_factory

    def send_message(
        self,
        credentials: CredentialSet,
        to_number: str,
        body: str,
        status_callback: Optional[str] = None,
    ) -> Dict[str, Any]:
        client = self.client_factory(credentials)
        kwargs: Dict[str, Any] = {"to": to_number, "from_": credentials.phone_number, "body": body}
        if status_callback:
            kwargs["status_callback"] = status_callback
        try:
            msg = client.messages.create(**kwargs)
        except TwilioRestException as e:
            if int(e.status or 0) >= 500:
                raise ProviderUnavailable(f"provider returned {e.status}") from e
            raise ProviderError(e.msg or str(e), provider_code=e.code, status=e.status) from e
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(f"provider unreachable: {type(e).__name__}") from e
        except TwilioException as e:
            raise ProviderError(str(e)) from e

        sid = getattr(msg, "sid", None)
        if not sid:
            raise ProviderError("provider accepted message without an id")
        return {"id": sid, "status": getattr(msg, "status", None) or "queued"}

    def verify_credentials(self, credentials: CredentialSet) -> bool:
        """True when the provider recognises the account sid / auth token pair."""
        client = self.client_factory(credentials)
        try:
            client.api.accounts(credentials.account_sid).fetch()
        except TwilioRestException as e:
            if int(e.status or 0) >= 500:
                raise ProviderUnavailable(f"provider returned {e.status}") from e
            log.info(
                "twilio_credentials_rejected",
                extra={"extra": {"event": "twilio_credentials_rejected", "status_code": e.status, "code": e.code}},
            )
            return False
        except requests.exceptions.RequestException as e:
            raise ProviderUnavailable(f"provider unreachable: {type(e).__name__}") from e
        return True

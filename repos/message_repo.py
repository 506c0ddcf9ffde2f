from __future__ import annotations

from typing import NamedTuple, Optional

from google.cloud import firestore
from google.cloud.firestore import Client

from models.schema import COL_COMPANIES, COL_MESSAGES
from models.telephony import MessageStatus, OutboundMessage
from storage.firestore_client import STORE_ERRORS, get_firestore_client, is_valid_doc_id
from telephony.errors import StoreUnavailable
from telephony.status import REASON_NOT_FOUND, REASON_STALE, decide_transition


class TransitionResult(NamedTuple):
    applied: bool
    reason: str
    previous: Optional[MessageStatus] = None


def _ids_ok(tenant_id: str, message_sid: str) -> bool:
    return is_valid_doc_id(tenant_id) and is_valid_doc_id(message_sid)


class MessageRepository:
    """
    Outbound SMS records, keyed by the provider message sid.

    Path: companies/{tenant_id}/messages/{message_sid}
    Only the delivery tracker writes status. Malformed ids never reach
    Firestore: reads treat them as missing, writes are refused.
    """

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _doc_ref(self, tenant_id: str, message_sid: str):
        return self.db.collection(COL_COMPANIES).document(tenant_id).collection(COL_MESSAGES).document(message_sid)

    def create(self, message: OutboundMessage) -> None:
        if not _ids_ok(message.tenant_id, message.message_sid):
            raise StoreUnavailable("message create rejected: malformed id")
        try:
            self._doc_ref(message.tenant_id, message.message_sid).set(message.to_document(), merge=False)
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"message create failed: {type(e).__name__}") from e

    def get(self, message_sid: str, tenant_id: str) -> Optional[OutboundMessage]:
        if not _ids_ok(tenant_id, message_sid):
            return None
        try:
            snap = self._doc_ref(tenant_id, message_sid).get()
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"message read failed: {type(e).__name__}") from e
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d.setdefault("messageSid", message_sid)
        d.setdefault("tenantId", tenant_id)
        return OutboundMessage.from_document(d)

    def conditional_update_status(self, message_sid: str, tenant_id: str, new_status: MessageStatus) -> TransitionResult:
        """
        Move the stored status to ``new_status`` if the transition table allows it.

        Read, check and write happen inside one Firestore transaction, so two
        concurrent callbacks for the same message cannot both apply.
        """
        if not _ids_ok(tenant_id, message_sid):
            return TransitionResult(False, REASON_NOT_FOUND)
        ref = self._doc_ref(tenant_id, message_sid)

        @firestore.transactional
        def _run(tx: firestore.Transaction) -> TransitionResult:
            snap = ref.get(transaction=tx)
            if not snap.exists:
                return TransitionResult(False, REASON_NOT_FOUND)

            d = snap.to_dict() or {}
            try:
                current = MessageStatus(d.get("status") or MessageStatus.QUEUED.value)
            except ValueError:
                return TransitionResult(False, REASON_STALE)

            ok, reason = decide_transition(current, new_status)
            if not ok:
                return TransitionResult(False, reason, current)

            tx.update(
                ref,
                {
                    "status": new_status.value,
                    "previousStatus": current.value,
                    "updatedAt": firestore.SERVER_TIMESTAMP,
                },
            )
            return TransitionResult(True, reason, current)

        try:
            return _run(self.db.transaction())
        except STORE_ERRORS as e:
            raise StoreUnavailable(f"status update failed: {type(e).__name__}") from e

import threading
from typing import Any, Dict, List, Optional

import pytest

from messaging.dispatcher import MessageDispatcher
from models.telephony import CredentialSet, MessageStatus, OutboundMessage, utc_now
from repos.message_repo import TransitionResult
from telephony.errors import StoreUnavailable
from telephony.lifecycle import DeliveryTracker
from telephony.resolver import ConfigResolver
from telephony.status import REASON_NOT_FOUND, decide_transition

TENANT_CFG = {"accountSid": "ACtenant", "authToken": "tenant-token", "phoneNumber": "+15550001111"}
PLATFORM = CredentialSet(account_sid="ACplatform", auth_token="platform-token", phone_number="+15550002222")


class FakeTenantRepo:
    def __init__(self, configs: Optional[Dict[str, Any]] = None, owners: Optional[Dict[str, str]] = None):
        self.configs = dict(configs or {})
        self.owners = dict(owners or {})
        self.fail = False
        self.saved: List[Dict[str, Any]] = []

    def get(self, tenant_id):
        if self.fail:
            raise StoreUnavailable("tenant read failed")
        if tenant_id not in self.owners and tenant_id not in self.configs:
            return None
        cfg = self.configs.get(tenant_id) or {}
        return {"tenant_id": tenant_id, "ownerId": self.owners.get(tenant_id, ""), "settings": {"twilioConfig": cfg}}

    def get_owner_id(self, tenant_id):
        t = self.get(tenant_id)
        return None if t is None else t["ownerId"]

    def get_twilio_config(self, tenant_id):
        if self.fail:
            raise StoreUnavailable("tenant read failed")
        return self.configs.get(tenant_id)

    def save_twilio_config(self, tenant_id, creds, connected):
        cfg = {**creds.to_mapping(), "connected": connected, "connectedAt": 1700000000000}
        self.configs[tenant_id] = cfg
        self.saved.append(cfg)
        return cfg

    def clear_twilio_config(self, tenant_id):
        self.configs[tenant_id] = {}


class FakeMessageRepo:
    """In-memory stand-in; the lock plays the part of the Firestore transaction."""

    def __init__(self):
        self.docs: Dict[Any, OutboundMessage] = {}
        self.transitions: List[Any] = []
        self.get_calls = 0
        self.fail_create = False
        self.fail_update = False
        self._lock = threading.Lock()

    def create(self, message):
        if self.fail_create:
            raise StoreUnavailable("message create failed")
        self.docs[(message.tenant_id, message.message_sid)] = message

    def get(self, message_sid, tenant_id):
        self.get_calls += 1
        return self.docs.get((tenant_id, message_sid))

    def conditional_update_status(self, message_sid, tenant_id, new_status):
        if self.fail_update:
            raise StoreUnavailable("status update failed")
        with self._lock:
            msg = self.docs.get((tenant_id, message_sid))
            if msg is None:
                return TransitionResult(False, REASON_NOT_FOUND)
            ok, reason = decide_transition(msg.status, new_status)
            if not ok:
                return TransitionResult(False, reason, msg.status)
            previous = msg.status
            msg.status = new_status
            msg.updated_at = utc_now()
            self.transitions.append((message_sid, previous, new_status))
            return TransitionResult(True, reason, previous)


class FakeDeliveryLogRepo:
    def __init__(self):
        self.entries: List[Dict[str, Any]] = []

    def write(self, tenant_id, data):
        self.entries.append({"tenant_id": tenant_id, **data})
        return f"log-{len(self.entries)}"


class FakeSmsClient:
    def __init__(self, error: Optional[Exception] = None, valid: bool = True):
        self.error = error
        self.valid = valid
        self.calls: List[Dict[str, Any]] = []
        self.verified: List[CredentialSet] = []

    def send_message(self, credentials, to_number, body, status_callback=None):
        self.calls.append({"credentials": credentials, "to": to_number, "body": body, "status_callback": status_callback})
        if self.error:
            raise self.error
        return {"id": f"SM{len(self.calls):032d}", "status": "queued"}

    def verify_credentials(self, credentials):
        self.verified.append(credentials)
        return self.valid


def seed_message(repo: FakeMessageRepo, sid="SM1", tenant_id="t1", status=MessageStatus.QUEUED) -> OutboundMessage:
    msg = OutboundMessage(
        message_sid=sid,
        tenant_id=tenant_id,
        lead_id="lead-1",
        to_number="+15551234567",
        from_number="+15550001111",
        body="hi",
        status=status,
    )
    repo.create(msg)
    return msg


@pytest.fixture
def tenant_repo():
    return FakeTenantRepo(configs={"t1": dict(TENANT_CFG)}, owners={"t1": "owner-1", "t2": "owner-2"})


@pytest.fixture
def message_repo():
    return FakeMessageRepo()


@pytest.fixture
def delivery_logs():
    return FakeDeliveryLogRepo()


@pytest.fixture
def sms_client():
    return FakeSmsClient()


@pytest.fixture
def make_tracker(tenant_repo, message_repo, delivery_logs, sms_client):
    def _make(platform: Optional[CredentialSet] = None, **kwargs) -> DeliveryTracker:
        opts = {
            "resolver": ConfigResolver(platform),
            "tenants": tenant_repo,
            "messages": message_repo,
            "delivery_logs": delivery_logs,
            "dispatcher": MessageDispatcher(sms=sms_client),
            "app_base_url": "",
        }
        opts.update(kwargs)
        return DeliveryTracker(**opts)

    return _make


@pytest.fixture
def platform_creds():
    return PLATFORM


@pytest.fixture
def seed(message_repo):
    def _seed(sid="SM1", tenant_id="t1", status=MessageStatus.QUEUED):
        return seed_message(message_repo, sid=sid, tenant_id=tenant_id, status=status)

    return _seed


class FakeSnapshot:
    def __init__(self, data):
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db, path):
        self.db = db
        self.path = path

    def collection(self, name):
        return FakeCollection(self.db, self.path + (name,))

    def get(self, transaction=None):
        self.db.reads.append((self.path, transaction))
        if self.db.error:
            raise self.db.error
        return FakeSnapshot(self.db.docs.get(self.path))

    def set(self, data, merge=False):
        if self.db.error:
            raise self.db.error
        self.db.docs[self.path] = dict(data)


class FakeCollection:
    def __init__(self, db, path):
        self.db = db
        self.path = path

    def document(self, doc_id):
        return FakeDocRef(self.db, self.path + (doc_id,))


class FakeTransaction:
    def __init__(self):
        self.updates: List[Any] = []

    def update(self, ref, data):
        self.updates.append((ref.path, data))


class FakeFirestore:
    """Enough of firestore.Client for the repos: nested paths, reads, sets and transactions."""

    def __init__(self):
        self.docs: Dict[Any, Dict[str, Any]] = {}
        self.reads: List[Any] = []
        self.transactions: List[FakeTransaction] = []
        self.error: Optional[Exception] = None
        self.transaction_error: Optional[Exception] = None

    def collection(self, name):
        return FakeCollection(self, (name,))

    def transaction(self):
        if self.transaction_error:
            raise self.transaction_error
        tx = FakeTransaction()
        self.transactions.append(tx)
        return tx


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def plain_transactions(monkeypatch):
    # The real decorator begins and commits over RPC; the body under test is what matters.
    from google.cloud import firestore

    monkeypatch.setattr(firestore, "transactional", lambda fn: fn)

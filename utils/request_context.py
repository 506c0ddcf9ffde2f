from __future__ import annotations

from contextvars import ContextVar

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_tenant_id_var: ContextVar[str] = ContextVar("tenant_id", default="")


def set_request_id(rid: str) -> None:
    _request_id_var.set(rid or "")


def get_request_id() -> str:
    return _request_id_var.get() or ""


def set_tenant_id(tenant_id: str) -> None:
    _tenant_id_var.set(tenant_id or "")


def get_tenant_id() -> str:
    return _tenant_id_var.get() or ""


def clear_request_context() -> None:
    _request_id_var.set("")
    _tenant_id_var.set("")

from __future__ import annotations


def dest_hint(v: str, keep: int = 4) -> str:
    # Last few digits only; enough to correlate log lines without storing PII.
    v = (v or "").strip()
    if not v:
        return ""
    if len(v) <= keep:
        return v
    return f"...{v[-keep:]}"


def mask_secret(v: str, keep: int = 4) -> str:
    v = (v or "").strip()
    if not v:
        return ""
    if len(v) <= keep * 2:
        return "***hidden***"
    return f"{v[:keep]}***"

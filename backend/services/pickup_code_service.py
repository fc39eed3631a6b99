# backend/services/pickup_code_service.py
"""Shared-secret pickup codes gating the physical handoff of food."""

import hmac
import secrets

from config.settings import PICKUP_CODE_LENGTH
from domain.errors import CodeMismatchError

CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


def generate_pickup_code(length: int = PICKUP_CODE_LENGTH) -> str:
    if length <= 0:
        raise ValueError("Pickup code length must be positive")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def verify_pickup_code(stored_code: str, provided_code: str) -> None:
    """Plain equality check; no expiry, no attempt counting."""
    if provided_code is None or not hmac.compare_digest(
        stored_code.encode("utf-8"), str(provided_code).encode("utf-8")
    ):
        raise CodeMismatchError("Invalid pickup code")

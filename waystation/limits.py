"""Tier limits and signed licence key checks."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

logger = logging.getLogger(__name__)

PUBLIC_KEY_HEX = "3af8f9593b3331c27994f1eeacf111c727ff6015016b0af44ed3ca6934d40b13"
PRODUCT = "waystation"
LICENSE_ENV = "STOCKYARD_LICENSE_KEY"

_SIGNATURE_SIZE = 64
_PUBLIC_KEY_SIZE = 32
_RAW_URL_B64 = re.compile(r"[A-Za-z0-9_-]*")


@dataclass(frozen=True)
class Limits:
    """How many items a tier may hold; 0 means unlimited."""

    max_items: int
    tier: str


def free_limits() -> Limits:
    return Limits(max_items=5, tier="free")


def pro_limits() -> Limits:
    return Limits(max_items=0, tier="pro")


def default_limits(env: Mapping[str, str] | None = None) -> Limits:
    """Pick the tier from the licence key in the environment."""
    environ = os.environ if env is None else env
    key = environ.get(LICENSE_ENV, "")
    if not key:
        logger.info("[license] Free tier (5 items). Set %s for Pro.", LICENSE_ENV)
        return free_limits()
    if validate_license_key(key, PRODUCT):
        logger.info("[license] Pro license valid — unlimited")
        return pro_limits()
    logger.info("[license] Invalid key — free tier")
    return free_limits()


def limit_reached(limit: int, current: int) -> bool:
    if limit == 0:
        return False
    return current >= limit


def _decode_raw_url(text: str) -> bytes | None:
    if not _RAW_URL_B64.fullmatch(text) or len(text) % 4 == 1:
        return None
    try:
        return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError):
        return None


def validate_license_key(key: str, product: str) -> bool:
    """Check an "SY-<payload>.<signature>" key signed for this product."""
    if not key.startswith("SY-"):
        return False
    payload_text, sep, signature_text = key[3:].partition(".")
    if not sep:
        return False
    payload = _decode_raw_url(payload_text)
    if payload is None:
        return False
    signature = _decode_raw_url(signature_text)
    if signature is None or len(signature) != _SIGNATURE_SIZE:
        return False
    try:
        public_bytes = binascii.unhexlify(PUBLIC_KEY_HEX)
    except (binascii.Error, ValueError):
        return False
    if len(public_bytes) != _PUBLIC_KEY_SIZE:
        return False
    try:
        Ed25519PublicKey.from_public_bytes(public_bytes).verify(signature, payload)
    except (InvalidSignature, ValueError):
        return False
    try:
        claims = json.loads(payload)
    except (ValueError, UnicodeDecodeError):
        return False
    if claims is None:
        claims = {}
    if not isinstance(claims, dict):
        return False
    licensed = claims.get("p")
    expires = claims.get("x")
    if licensed is None:
        licensed = ""
    if expires is None:
        expires = 0
    if not isinstance(licensed, str):
        return False
    if isinstance(expires, bool) or not isinstance(expires, int):
        return False
    if expires > 0 and int(time.time()) > expires:
        return False
    return licensed in ("*", "stockyard", product)
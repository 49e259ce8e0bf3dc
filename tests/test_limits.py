import base64
import json

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from waystation import limits
from waystation.limits import (
    LICENSE_ENV,
    Limits,
    default_limits,
    free_limits,
    limit_reached,
    pro_limits,
    validate_license_key,
)


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


@pytest.fixture
def signing_key(monkeypatch):
    private = Ed25519PrivateKey.generate()
    public_hex = private.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()
    monkeypatch.setattr(limits, "PUBLIC_KEY_HEX", public_hex)
    return private


def _make_key(private, claims) -> str:
    payload = json.dumps(claims).encode()
    return "SY-" + _b64(payload) + "." + _b64(private.sign(payload))


def test_free_and_pro_limits():
    assert free_limits() == Limits(max_items=5, tier="free")
    assert pro_limits() == Limits(max_items=0, tier="pro")


@pytest.mark.parametrize(
    "limit,current,expected",
    [(0, 100, False), (5, 4, False), (5, 5, True), (5, 6, True)],
)
def test_limit_reached(limit, current, expected):
    assert limit_reached(limit, current) is expected


@pytest.mark.parametrize("product", ["waystation", "*", "stockyard"])
def test_valid_key_for_product(signing_key, product):
    key = _make_key(signing_key, {"p": product, "x": 0})
    assert validate_license_key(key, "waystation") is True


def test_key_for_other_product_rejected(signing_key):
    key = _make_key(signing_key, {"p": "otherapp"})
    assert validate_license_key(key, "waystation") is False


def test_expired_key_rejected(signing_key):
    key = _make_key(signing_key, {"p": "waystation", "x": 1})
    assert validate_license_key(key, "waystation") is False


def test_future_expiry_accepted(signing_key):
    key = _make_key(signing_key, {"p": "waystation", "x": 2**40})
    assert validate_license_key(key, "waystation") is True


def test_tampered_payload_rejected(signing_key):
    key = _make_key(signing_key, {"p": "otherapp"})
    payload_text, signature_text = key[3:].split(".")
    forged = _b64(json.dumps({"p": "waystation"}).encode())
    assert validate_license_key(f"SY-{forged}.{signature_text}", "waystation") is False


def test_key_signed_by_other_key_rejected(signing_key):
    other = Ed25519PrivateKey.generate()
    key = _make_key(other, {"p": "waystation"})
    assert validate_license_key(key, "waystation") is False


def test_wrong_claim_types_rejected(signing_key):
    assert validate_license_key(_make_key(signing_key, {"p": 1}), "waystation") is False
    assert (
        validate_license_key(_make_key(signing_key, {"p": "*", "x": "soon"}), "waystation")
        is False
    )


@pytest.mark.parametrize(
    "key",
    ["", "placeholder", "SY-", "SY-abc", "SY-abc.def", "SY-a=b.c", "XX-abc.def"],
)
def test_malformed_keys_rejected(key):
    assert validate_license_key(key, "waystation") is False


def test_real_public_key_rejects_unsigned_key():
    payload = _b64(b'{"p":"*"}')
    signature = _b64(bytes(64))
    assert validate_license_key(f"SY-{payload}.{signature}", "waystation") is False


def test_default_limits_without_key():
    assert default_limits({}) == free_limits()


def test_default_limits_invalid_key():
    assert default_limits({LICENSE_ENV: "placeholder"}) == free_limits()


def test_default_limits_valid_key(signing_key):
    key = _make_key(signing_key, {"p": "waystation"})
    assert default_limits({LICENSE_ENV: key}) == pro_limits()


def test_default_limits_reads_process_environment(monkeypatch):
    monkeypatch.delenv(LICENSE_ENV, raising=False)
    assert default_limits().tier == "free"
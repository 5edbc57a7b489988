import base64
import hashlib
import hmac

import pytest

from moneybuddy.services.square_verify import compute_signature, verify

SECRET = "sq0wss-test-key"
BODY = b'{"type":"payment.created","data":{"object":{"payment":{"id":"pay_1"}}}}'


def test_compute_signature_is_base64_hmac_sha256():
    expected = base64.b64encode(
        hmac.new(SECRET.encode(), BODY, hashlib.sha256).digest()
    ).decode()
    assert compute_signature(BODY, SECRET) == expected


@pytest.mark.parametrize("body", [b"", b"{}", BODY, "café ☃".encode("utf-8")])
def test_verify_accepts_own_signature(body):
    assert verify(body, compute_signature(body, SECRET), SECRET) is True


def test_verify_rejects_any_single_byte_mutation():
    signature = compute_signature(BODY, SECRET)
    for i in range(len(BODY)):
        mutated = bytearray(BODY)
        mutated[i] ^= 0x01
        assert verify(bytes(mutated), signature, SECRET) is False, f"byte {i}"


def test_verify_rejects_reserialised_body():
    pretty = b'{"type": "payment.created"}'
    compact = b'{"type":"payment.created"}'
    assert verify(compact, compute_signature(pretty, SECRET), SECRET) is False


def test_verify_rejects_other_secret():
    signature = compute_signature(BODY, "secret-one")
    assert verify(BODY, signature, "secret-two") is False


@pytest.mark.parametrize(
    "signature",
    ["", "not base64 !!", "====", "ééé", "dGVzdA=="],
)
def test_verify_returns_false_on_malformed_signature(signature):
    assert verify(BODY, signature, SECRET) is False


def test_verify_never_raises_on_bad_input_types():
    assert verify(BODY, None, SECRET) is False
    assert verify("not bytes", compute_signature(BODY, SECRET), SECRET) is False
    assert verify(BODY, compute_signature(BODY, SECRET), None) is False

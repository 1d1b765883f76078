import re
import time

import pytest
from jose import JWTError

from app.services.call import MediaCredentialError, MediaTokenService, generate_room_name


def test_room_names_are_random_and_prefixed():
    names = {generate_room_name() for _ in range(50)}

    assert len(names) == 50
    assert all(re.fullmatch(r"room_[0-9a-f]{32}", name) for name in names)


def test_token_claims():
    service = MediaTokenService(api_key="testkey", api_secret="testsecret")

    token = service.generate_token("room_abc", "user-1", "Alice", "callee")
    claims = service.decode_token(token)

    assert claims["iss"] == "testkey"
    assert claims["sub"] == "user-1::callee::room_abc"
    assert claims["jti"] == claims["sub"]
    assert claims["name"] == "Alice"
    assert claims["video"] == {
        "roomJoin": True,
        "room": "room_abc",
        "canPublish": True,
        "canSubscribe": True,
        "canPublishData": True,
    }
    assert claims["exp"] - claims["nbf"] == 24 * 3600
    assert abs(claims["nbf"] - int(time.time())) < 5


def test_caller_and_callee_identities_differ():
    service = MediaTokenService(api_key="testkey", api_secret="testsecret")

    caller = service.decode_token(service.generate_token("room_abc", "u1", "u1", "caller"))
    callee = service.decode_token(service.generate_token("room_abc", "u2", "u2", "callee"))

    assert caller["sub"] != callee["sub"]


def test_token_from_other_secret_is_rejected():
    issuer = MediaTokenService(api_key="testkey", api_secret="one-secret")
    verifier = MediaTokenService(api_key="testkey", api_secret="another-secret")

    with pytest.raises(JWTError):
        verifier.decode_token(issuer.generate_token("room_abc", "u1", "u1", "caller"))


def test_signing_failure_becomes_media_error(monkeypatch):
    from app.services.call import media

    def broken_encode(*args, **kwargs):
        raise JWTError("bad key")

    monkeypatch.setattr(media.jwt, "encode", broken_encode)

    with pytest.raises(MediaCredentialError):
        MediaTokenService(api_key="k", api_secret="s").generate_token("room_abc", "u1", "u1", "caller")

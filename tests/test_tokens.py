"""Unit tests for auth/tokens.py -- token issuance, verification and password hashing.

Covers:
- Issued tokens are three base64url segments with an HS256 header
- Round trip: decode_access_token() returns the claims that were issued
- Every issuance gets a fresh jti
- Tampering with the payload (bit flip or re-encoded role claim) fails verification
- A token older than its validity window fails with ExpiredTokenError
- Wrong secret, wrong issuer and garbage input fail with InvalidTokenError
- Tokens without an aud claim are rejected
- bcrypt hash / verify behaviour, including the 72-byte input limit
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import (
    CLAIM_ROLES,
    CLAIM_USER_ID,
    ExpiredTokenError,
    InvalidTokenError,
    TokenError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from core.config import get_settings

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _b64decode(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _payload(token: str) -> dict:
    return json.loads(_b64decode(token.split(".")[1]))


# ---------------------------------------------------------------------------
# Format and round trip
# ---------------------------------------------------------------------------


class TestIssue:
    def test_compact_three_part_format(self) -> None:
        token = create_access_token("u-1", "a@b.com", ["Administrator"])
        parts = token.split(".")
        assert len(parts) == 3
        header = json.loads(_b64decode(parts[0]))
        assert header["alg"] == "HS256"
        assert header["typ"] == "JWT"

    def test_payload_claim_layout(self) -> None:
        settings = get_settings()
        token = create_access_token("u-1", "a@b.com", ["Customer", "Administrator"])
        payload = _payload(token)
        assert payload["sub"] == "a@b.com"
        assert payload[CLAIM_USER_ID] == "u-1"
        assert payload[CLAIM_ROLES] == ["Administrator", "Customer"]
        assert payload["iss"] == settings.jwt_issuer
        assert payload["aud"] == settings.jwt_issuer
        assert payload["exp"] - payload["iat"] == settings.token_expire_minutes * 60

    def test_round_trip_yields_original_claims(self) -> None:
        token = create_access_token("u-42", "a@b.com", ["Administrator", "Customer"])
        claims = decode_access_token(token)
        assert claims.subject == "a@b.com"
        assert claims.user_id == "u-42"
        assert claims.roles == frozenset({"Administrator", "Customer"})
        assert claims.issuer == get_settings().jwt_issuer
        assert claims.expires_at > claims.issued_at

    def test_empty_role_set_round_trips(self) -> None:
        claims = decode_access_token(create_access_token("u-1", "a@b.com", []))
        assert claims.roles == frozenset()

    def test_duplicate_roles_collapse(self) -> None:
        payload = _payload(create_access_token("u-1", "a@b.com", ["Customer", "Customer"]))
        assert payload[CLAIM_ROLES] == ["Customer"]

    def test_each_token_has_unique_jti(self) -> None:
        now = datetime.now(timezone.utc)
        first = create_access_token("u-1", "a@b.com", ["Customer"], issued_at=now)
        second = create_access_token("u-1", "a@b.com", ["Customer"], issued_at=now)
        assert first != second
        assert decode_access_token(first).token_id != decode_access_token(second).token_id


# ---------------------------------------------------------------------------
# Tampering and expiry
# ---------------------------------------------------------------------------


class TestVerify:
    def test_flipped_payload_character_fails(self) -> None:
        token = create_access_token("u-1", "a@b.com", ["Customer"])
        header, payload, signature = token.split(".")
        mid = len(payload) // 2
        flipped = "A" if payload[mid] != "A" else "B"
        tampered = ".".join([header, payload[:mid] + flipped + payload[mid + 1 :], signature])
        with pytest.raises(InvalidTokenError):
            decode_access_token(tampered)

    def test_every_payload_byte_is_covered(self) -> None:
        token = create_access_token("u-1", "a@b.com", ["Customer"])
        header, payload, signature = token.split(".")
        raw = bytearray(_b64decode(payload))
        for i in range(0, len(raw), 7):
            mutated = bytearray(raw)
            mutated[i] ^= 0x01
            tampered = ".".join([header, _b64encode(bytes(mutated)), signature])
            with pytest.raises(InvalidTokenError):
                decode_access_token(tampered)

    def test_role_escalation_fails(self) -> None:
        token = create_access_token("u-1", "reader@example.com", ["Customer"])
        header, payload, signature = token.split(".")
        claims = json.loads(_b64decode(payload))
        claims[CLAIM_ROLES] = ["Administrator"]
        forged = ".".join([header, _b64encode(json.dumps(claims).encode()), signature])
        with pytest.raises(InvalidTokenError):
            decode_access_token(forged)

    def test_token_older_than_window_is_expired(self) -> None:
        settings = get_settings()
        issued = datetime.now(timezone.utc) - timedelta(minutes=settings.token_expire_minutes + 1)
        token = create_access_token("u-1", "a@b.com", ["Customer"], issued_at=issued)
        with pytest.raises(ExpiredTokenError):
            decode_access_token(token)

    def test_token_inside_window_is_valid(self) -> None:
        issued = datetime.now(timezone.utc) - timedelta(minutes=1)
        token = create_access_token("u-1", "a@b.com", ["Customer"], issued_at=issued, expire_minutes=5)
        assert decode_access_token(token).subject == "a@b.com"

    def test_expired_is_distinct_from_invalid(self) -> None:
        assert issubclass(ExpiredTokenError, TokenError)
        assert issubclass(InvalidTokenError, TokenError)
        assert not issubclass(ExpiredTokenError, InvalidTokenError)

    def test_wrong_secret_fails(self) -> None:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        forged = jwt.encode(
            {
                "sub": "a@b.com",
                "jti": "x",
                CLAIM_USER_ID: "u-1",
                CLAIM_ROLES: ["Administrator"],
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_issuer,
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            "a-different-secret-that-is-long-enough-0000",
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(forged)

    def test_wrong_issuer_fails(self) -> None:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        foreign = jwt.encode(
            {
                "sub": "a@b.com",
                "jti": "x",
                CLAIM_USER_ID: "u-1",
                "iss": "someone-else",
                "aud": "someone-else",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            settings.secret_key,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(foreign)

    def test_missing_user_id_claim_fails(self) -> None:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        partial = jwt.encode(
            {
                "sub": "a@b.com",
                "jti": "x",
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_issuer,
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            settings.secret_key,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(partial)

    def test_missing_audience_claim_fails(self) -> None:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        no_audience = jwt.encode(
            {
                "sub": "a@b.com",
                "jti": "x",
                CLAIM_USER_ID: "user-1",
                CLAIM_ROLES: ["Administrator"],
                "iss": settings.jwt_issuer,
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            settings.secret_key,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            decode_access_token(no_audience)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "...."])
    def test_garbage_fails(self, garbage: str) -> None:
        with pytest.raises(InvalidTokenError):
            decode_access_token(garbage)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


class TestPasswords:
    def test_hash_verifies(self) -> None:
        hashed = hash_password("Secret123")
        assert hashed != "Secret123"
        assert verify_password("Secret123", hashed)

    def test_wrong_password_rejected(self) -> None:
        assert not verify_password("wrong", hash_password("Secret123"))

    def test_corrupt_hash_is_a_mismatch(self) -> None:
        assert not verify_password("Secret123", "not-a-bcrypt-hash")

    def test_password_over_bcrypt_limit_is_not_hashed(self) -> None:
        with pytest.raises(ValueError):
            hash_password("Aa1" + "\U0001F600" * 22)

    def test_password_over_bcrypt_limit_never_matches(self, caplog) -> None:
        hashed = hash_password("Secret123")
        with caplog.at_level("WARNING", logger="bookstore.auth.tokens"):
            assert not verify_password("Secret123" + "\U0001F600" * 16, hashed)
        assert "could not be parsed" not in caplog.text

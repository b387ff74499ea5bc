from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from pacs_presence.application.exceptions import InvalidCredentialError
from pacs_presence.infrastructure.auth.claims_decoder import ClaimsDecoder
from pacs_presence.infrastructure.auth.hs256_decoder import HS256Decoder
from tests.conftest import T0, TEST_SECRET, make_token


@pytest.mark.asyncio
async def test_claims_decoder_ignores_signature(clock):
    token = make_token(sub="staff01", auth="ROLE_STAFF", username="Kim", secret="another-signing-key-0123456789abcdef-xyz")

    session = await ClaimsDecoder(clock=clock).decode(token)

    assert session.subject_id == "staff01"
    assert session.role == "ROLE_STAFF"
    assert session.display_name == "Kim"
    assert session.expires_at == T0 + timedelta(hours=1)


@pytest.mark.asyncio
async def test_missing_sub_is_invalid(clock):
    token = jwt.encode({"exp": int((T0 + timedelta(hours=1)).timestamp())}, TEST_SECRET, algorithm="HS256")

    with pytest.raises(InvalidCredentialError, match="sub"):
        await ClaimsDecoder(clock=clock).decode(token)


@pytest.mark.asyncio
async def test_missing_exp_is_invalid(clock):
    token = jwt.encode({"sub": "x"}, TEST_SECRET, algorithm="HS256")

    with pytest.raises(InvalidCredentialError, match="exp"):
        await ClaimsDecoder(clock=clock).decode(token)


@pytest.mark.asyncio
async def test_display_name_defaults_to_subject(clock):
    token = jwt.encode(
        {"sub": "x9", "exp": int((T0 + timedelta(hours=1)).timestamp())},
        TEST_SECRET,
        algorithm="HS256",
    )

    session = await ClaimsDecoder(clock=clock).decode(token)

    assert session.display_name == "x9"
    assert session.role == ""


@pytest.mark.asyncio
async def test_hs256_decoder_accepts_valid_signature(clock):
    session = await HS256Decoder(TEST_SECRET, clock=clock).decode(make_token(sub="rad02"))

    assert session.subject_id == "rad02"


@pytest.mark.asyncio
async def test_hs256_decoder_rejects_wrong_signature(clock):
    with pytest.raises(InvalidCredentialError):
        await HS256Decoder(TEST_SECRET, clock=clock).decode(make_token(secret="forged-signing-key-0123456789abcdef-xyz"))


@pytest.mark.asyncio
async def test_hs256_decoder_rejects_expired(clock):
    with pytest.raises(InvalidCredentialError, match="expired"):
        await HS256Decoder(TEST_SECRET, clock=clock).decode(make_token(exp=T0 - timedelta(seconds=30)))

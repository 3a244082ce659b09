import pytest
from fastapi import HTTPException
from jose import jwt

from psychnorm.core.config import settings
from psychnorm.services.security import (
    OwnerContext,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_owner,
)


def test_token_roundtrip_carries_claims():
    payload = decode_access_token(create_access_token("42"))
    assert payload["sub"] == "42"
    assert payload["iss"] == settings.jwt_issuer
    assert payload["aud"] == settings.jwt_audience


def test_token_signed_with_other_key_is_rejected():
    forged = jwt.encode(
        {"sub": "1", "iss": settings.jwt_issuer, "aud": settings.jwt_audience},
        "another-secret",
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(ValueError):
        decode_access_token(forged)


def test_token_without_subject_is_rejected():
    token = jwt.encode(
        {"iss": settings.jwt_issuer, "aud": settings.jwt_audience},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(ValueError, match="sub"):
        decode_access_token(token)


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer"])
def test_malformed_authorization_header(db, header):
    with pytest.raises(HTTPException) as excinfo:
        get_current_user(header, db)
    assert excinfo.value.status_code == 401


def test_unknown_user_is_unauthorized(db):
    with pytest.raises(HTTPException) as excinfo:
        get_current_user(f"Bearer {create_access_token('999')}", db)
    assert excinfo.value.status_code == 401


def test_owner_context_from_token(db, seed):
    user = seed.user(role="psicologo_externo")
    owner = get_owner(f"Bearer {create_access_token(str(user.id))}", db)
    assert owner == OwnerContext(owner_id=user.id, role="psicologo_externo")

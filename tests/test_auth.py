"""Tests for bearer token authentication."""

import pytest
from jose import jwt

from portfolio_explainer.config import settings


def make_token(claims, secret=None):
    return jwt.encode(
        claims,
        secret or settings.auth_jwt_secret,
        algorithm=settings.auth_jwt_algorithm,
    )


@pytest.mark.asyncio
async def test_missing_token_rejected(anonymous_client):
    response = await anonymous_client.get("/portfolio/current")
    assert response.status_code == 401
    assert response.json()["detail"] == "missing_token"


@pytest.mark.asyncio
async def test_bad_signature_rejected(anonymous_client):
    token = make_token({"sub": "alice"}, secret="not-the-secret")
    response = await anonymous_client.get(
        "/portfolio/current", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "unauthorized"


@pytest.mark.asyncio
async def test_token_without_subject_rejected(anonymous_client):
    token = make_token({"role": "viewer"})
    response = await anonymous_client.get(
        "/portfolio/current", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_valid_token_scopes_to_subject(anonymous_client):
    alice = {"Authorization": f"Bearer {make_token({'sub': 'alice'})}"}
    bob = {"Authorization": f"Bearer {make_token({'sub': 'bob'})}"}

    response = await anonymous_client.post(
        "/portfolio/import",
        json={"csv_text": "symbol,shares,price\nAAPL,1,100\n"},
        headers=alice,
    )
    assert response.status_code == 200

    assert (await anonymous_client.get("/portfolio/current", headers=alice)).status_code == 200
    assert (await anonymous_client.get("/portfolio/current", headers=bob)).status_code == 404

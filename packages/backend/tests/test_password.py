"""Password hashing tests."""

import pytest

from ticketdesk.auth.password import (
    hash_password,
    hash_password_async,
    verify_password,
    verify_password_async,
)


def test_hash_is_bcrypt_and_salted():
    h1 = hash_password("secret1", rounds=4)
    h2 = hash_password("secret1", rounds=4)
    assert h1.startswith("$2b$04$")
    assert h1 != h2  # fresh salt each time
    assert "secret1" not in h1


@pytest.mark.parametrize("password", ["secret1", "longer pass phrase", "ünïcødé!", "x" * 100])
def test_verify_matches_original_password(password):
    assert verify_password(password, hash_password(password, rounds=4))


def test_verify_rejects_other_password():
    h = hash_password("secret1", rounds=4)
    assert not verify_password("secret2", h)
    assert not verify_password("Secret1", h)
    assert not verify_password("", h)


def test_verify_rejects_malformed_hash():
    assert not verify_password("secret1", "not-a-bcrypt-hash")


@pytest.mark.asyncio
async def test_async_helpers_round_trip():
    h = await hash_password_async("secret1", rounds=4)
    assert await verify_password_async("secret1", h)
    assert not await verify_password_async("wrong", h)

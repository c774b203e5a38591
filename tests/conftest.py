"""Shared fixtures for envseal tests."""

import pytest

from envseal.security.kdf import Argon2Parameters

SECRET = "0123456789abcdef"
OTHER_SECRET = "fedcba9876543210"


@pytest.fixture
def fast_params():
    """Very low Argon2 costs so the suite stays quick; output length stays 64."""
    return Argon2Parameters(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def other_secret():
    return OTHER_SECRET

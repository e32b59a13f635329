"""
Tests for request parsing and GitHub username validation.
"""

import pytest

from pudim.shared.errors import InvalidRequestError
from pudim.shared.request_utils import get_limit, get_username, validate_username


@pytest.mark.parametrize("username", ["a", "octocat", "Octo-Cat", "a1-b2-c3", "x" * 39])
def test_valid_usernames(username):
    assert validate_username(username) == (True, None)


@pytest.mark.parametrize(
    "username",
    ["", "-octocat", "octocat-", "octo--cat", "octo_cat", "octo cat", "octo/cat", "x" * 40, "ö"],
)
def test_invalid_usernames(username):
    is_valid, error = validate_username(username)
    assert is_valid is False
    assert error


def test_get_username_unquotes_and_strips():
    assert get_username({"pathParameters": {"username": "%20octocat"}}) == "octocat"


def test_get_username_missing():
    with pytest.raises(InvalidRequestError):
        get_username({"pathParameters": None})


def test_get_limit_default():
    assert get_limit({}) == 10
    assert get_limit({"queryStringParameters": {"limit": ""}}) == 10


def test_get_limit_bounds():
    assert get_limit({"queryStringParameters": {"limit": "100"}}) == 100
    with pytest.raises(InvalidRequestError):
        get_limit({"queryStringParameters": {"limit": "101"}})

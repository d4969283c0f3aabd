"""
Error type tests.
"""

import pytest

from errors import (
    AuthError,
    Conflict,
    Expired,
    ForbiddenError,
    LimitExceeded,
    NotFound,
    StoreError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_cls,status",
    [
        (ValidationError, 400),
        (AuthError, 401),
        (ForbiddenError, 403),
        (NotFound, 404),
        (Conflict, 400),
        (Expired, 400),
        (LimitExceeded, 400),
    ],
)
def test_status_codes(error_cls, status):
    err = error_cls("boom")
    assert isinstance(err, StoreError)
    assert err.status_code == status
    assert err.message == "boom"


def test_error_str():
    assert str(NotFound("Product not found")) == "[NOT_FOUND] Product not found"


def test_forbidden_is_an_auth_error():
    with pytest.raises(AuthError):
        raise ForbiddenError("Invalid or expired token")

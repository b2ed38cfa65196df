import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from auth.middleware import create_access_token, decode_access_token
from auth.session_gate import GateState, SessionGate, SignInRequired, is_protected_path
from fakes import TEST_JWT_SECRET


def _credentials(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def _verify(token):
    return decode_access_token(token, secret=TEST_JWT_SECRET)


def test_missing_session_redirects_to_signin_with_origin():
    gate = SessionGate("/checkout", _verify)

    with pytest.raises(SignInRequired) as excinfo:
        gate.check(None)

    assert excinfo.value.to_response_body() == {
        "redirect": "/signin",
        "state": {"from": "/checkout", "message": "Please sign in to access this page"},
    }
    assert gate.state == GateState.CHECKING


def test_invalid_token_reports_expired_session():
    gate = SessionGate("/dashboard", _verify)

    with pytest.raises(SignInRequired) as excinfo:
        gate.check(_credentials("not-a-jwt"))

    assert excinfo.value.from_path == "/dashboard"
    assert excinfo.value.message == "Your session has expired. Please sign in again."


def test_token_signed_with_other_secret_is_rejected():
    token = create_access_token("auth-1", "buyer@example.com", secret="another-secret-that-is-long-enough-000")
    with pytest.raises(HTTPException) as excinfo:
        _verify(token)
    assert excinfo.value.status_code == 401


def test_valid_session_resolves_once():
    calls = []

    def verify(token):
        calls.append(token)
        return _verify(token)

    gate = SessionGate("/dashboard", verify)
    token = create_access_token("auth-1", "buyer@example.com", secret=TEST_JWT_SECRET)

    user = gate.check(_credentials(token))
    assert user["id"] == "auth-1"
    assert user["email"] == "buyer@example.com"
    assert gate.state == GateState.RESOLVED

    assert gate.check(None) == user
    assert len(calls) == 1


@pytest.mark.parametrize("path, protected", [
    ("/checkout", True),
    ("/checkout/orders", True),
    ("/dashboard", True),
    ("/cart", False),
    ("/checkouts", False),
])
def test_protected_paths(path, protected):
    assert is_protected_path(path) is protected

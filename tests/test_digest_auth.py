# tests/test_digest_auth.py
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from nvr_rpc.digest_auth import (
    DigestAuthenticator,
    DigestChallenge,
    DigestState,
    build_authorization_header,
    compute_digest_response,
    generate_client_nonce,
    parse_challenge,
)
from nvr_rpc.errors import AuthError, InvalidDigestHeader, MissingAuthHeader, TransportError

PROBE = "/cgi-bin/magicBox.cgi?action=getLanguageCaps"


def http_response(status, headers=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.headers = headers or {}
    return response


# --- Header parsing ---

def test_parse_quoted_header():
    challenge = parse_challenge('Digest realm="Device_X", nonce="abc", qop="auth", opaque="y"')
    assert challenge == DigestChallenge(realm="Device_X", nonce="abc", qop="auth", opaque="y")
    assert challenge.algorithm is None


def test_parse_unquoted_values():
    challenge = parse_challenge("Digest realm=Device_X, nonce=abc, algorithm=MD5, qop=auth")
    assert challenge.realm == "Device_X"
    assert challenge.nonce == "abc"
    assert challenge.algorithm == "MD5"
    assert challenge.qop == "auth"


def test_parse_realm_with_spaces_and_commas():
    challenge = parse_challenge('Digest realm="Login to 6G0, Main", nonce="n1"')
    assert challenge.realm == "Login to 6G0, Main"


def test_parse_missing_realm_and_nonce():
    with pytest.raises(InvalidDigestHeader):
        parse_challenge('Digest qop="auth", opaque="y"')
    with pytest.raises(InvalidDigestHeader):
        parse_challenge('Digest realm="x"')


def test_qop_list_selects_auth():
    assert DigestChallenge(realm="r", nonce="n", qop="auth,auth-int").selected_qop() == "auth"
    assert DigestChallenge(realm="r", nonce="n").selected_qop() is None


def test_qop_without_auth_is_rejected():
    with pytest.raises(AuthError):
        DigestChallenge(realm="r", nonce="n", qop="auth-int").selected_qop()


# --- Response computation ---

def test_rfc2617_vector():
    response = compute_digest_response(
        "Mufasa", "Circle Of Life", "testrealm@host.com", "dcd98b7102dd2f0e8b11d0f600bfb0c093",
        "GET", "/dir/index.html", qop="auth", client_nonce="0a4f113b", nonce_count="00000001",
    )
    assert response == "6629fae49393a05397450978507c4ef1"


def test_rfc2069_form_without_qop():
    response = compute_digest_response("user", "pass", "realm", "nonce", "GET", "/x")
    assert re.fullmatch(r"[0-9a-f]{32}", response)
    assert response != compute_digest_response(
        "user", "pass", "realm", "nonce", "GET", "/x", qop="auth", client_nonce="c", nonce_count="00000001"
    )


def test_response_is_deterministic_and_input_sensitive():
    base = dict(username="admin", password="pw", realm="r", nonce="n", method="GET", uri="/a",
                qop="auth", client_nonce="abcd1234", nonce_count="00000001")
    reference = compute_digest_response(**base)
    assert compute_digest_response(**base) == reference

    for field, value in [("password", "pw2"), ("nonce", "n2"), ("method", "POST"), ("uri", "/b")]:
        changed = dict(base, **{field: value})
        assert compute_digest_response(**changed) != reference, field


def test_client_nonce():
    nonce = generate_client_nonce()
    assert re.fullmatch(r"[a-z0-9]{8}", nonce)
    assert len({generate_client_nonce() for _ in range(200)}) == 200


def test_authorization_header_fields():
    challenge = DigestChallenge(realm="r", nonce="n", qop="auth", opaque="op")
    header = build_authorization_header("admin", "pw", challenge, "GET", PROBE, client_nonce="abcd1234")

    assert header.startswith('Digest username="admin", realm="r", nonce="n", ')
    assert f'uri="{PROBE}"' in header
    assert 'qop=auth, nc=00000001, cnonce="abcd1234"' in header
    assert header.endswith('opaque="op"')
    expected = compute_digest_response("admin", "pw", "r", "n", "GET", PROBE, "auth", "abcd1234", "00000001")
    assert f'response="{expected}"' in header


def test_authorization_header_rejects_unknown_algorithm():
    with pytest.raises(AuthError):
        build_authorization_header("a", "b", DigestChallenge(realm="r", nonce="n", algorithm="SHA-256"), "GET", "/")


# --- Handshake ---

@pytest.fixture
def transport():
    t = MagicMock()
    t.url_for.side_effect = lambda path: f"http://nvr{path}"
    t.request = AsyncMock()
    return t


CHALLENGE = {"WWW-Authenticate": 'Digest realm="Login to NVR", qop="auth", nonce="123", opaque="o"'}


@pytest.mark.asyncio
async def test_handshake_success(transport):
    transport.request.side_effect = [http_response(401, CHALLENGE), http_response(200)]
    auth = DigestAuthenticator(transport, "admin", "pw")

    assert await auth.authenticate() is True
    assert auth.state is DigestState.AUTHENTICATED

    second = transport.request.call_args_list[1]
    assert second.args == ("GET", PROBE)
    authorization = second.kwargs["headers"]["Authorization"]
    assert authorization.startswith("Digest ")
    assert "nc=00000001" in authorization


@pytest.mark.asyncio
async def test_no_challenge_means_authenticated(transport):
    transport.request.return_value = http_response(200)
    auth = DigestAuthenticator(transport, "admin", "pw")

    assert await auth.authenticate() is True
    assert auth.is_authenticated
    assert transport.request.await_count == 1


@pytest.mark.asyncio
async def test_second_challenge_is_final(transport):
    transport.request.side_effect = [http_response(401, CHALLENGE), http_response(401, CHALLENGE)]
    auth = DigestAuthenticator(transport, "admin", "wrong")

    with pytest.raises(AuthError) as exc:
        await auth.authenticate()

    assert exc.value.code == 401
    assert transport.request.await_count == 2
    assert auth.state is DigestState.UNAUTHENTICATED


@pytest.mark.asyncio
async def test_missing_challenge_header(transport):
    transport.request.return_value = http_response(401)
    with pytest.raises(MissingAuthHeader):
        await DigestAuthenticator(transport, "admin", "pw").authenticate()


@pytest.mark.asyncio
async def test_unexpected_status(transport):
    transport.request.return_value = http_response(500)
    with pytest.raises(TransportError):
        await DigestAuthenticator(transport, "admin", "pw").authenticate()


@pytest.mark.asyncio
async def test_reset(transport):
    transport.request.return_value = http_response(200)
    auth = DigestAuthenticator(transport, "admin", "pw")
    await auth.authenticate()
    auth.reset()
    assert not auth.is_authenticated

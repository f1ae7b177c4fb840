# tests/test_rpc_client.py
import asyncio
import base64

import pytest

from nvr_rpc.crypto_config import CryptoNegotiationStore
from nvr_rpc.encryption import CryptoProfile, HybridEncryptionEngine
from nvr_rpc.errors import DecodeError, PreconditionError, RemoteError, TransportError
from nvr_rpc.protocol.envelope import RPCRequest, RPCResponse
from nvr_rpc.rpc_client import RPCClient, SessionState
from tests.mock_nvr import InProcessTransport, MockNVR, ScriptedTransport


# --- Envelopes ---

def test_request_omits_absent_fields():
    assert RPCRequest("global.login", id=1).to_json() == {"method": "global.login", "id": 1}
    body = RPCRequest("a.b", params={"x": 1}, session="s", id=2, object=7).to_json()
    assert body == {"method": "a.b", "params": {"x": 1}, "session": "s", "id": 2, "object": 7}


def test_response_boolean_result_has_no_payload():
    response = RPCResponse.from_json({"result": False, "id": 1})
    assert response.payload is None
    assert response.result is False
    assert not response.succeeded

    typed = RPCResponse.from_json({"result": {"DeviceType": "NVR"}, "id": 2})
    assert typed.payload == {"DeviceType": "NVR"}


def test_response_numeric_session_is_normalized():
    assert RPCResponse.from_json({"result": True, "session": 123456}).session == "123456"


def test_response_rejects_bad_shapes():
    for bad in [[], "x", {"error": "boom"}, {"error": {"message": "no code"}}, {"id": "one"}, {"session": [1]}]:
        with pytest.raises(DecodeError):
            RPCResponse.from_json(bad)
    with pytest.raises(DecodeError) as exc:
        RPCResponse.from_bytes(b"<html>")
    assert exc.value.code == -1


def test_challenge_detection():
    assert RPCResponse.from_json({"error": {"code": 268632079, "message": ""}}).is_challenge
    assert RPCResponse.from_json({"error": {"code": 401, "message": ""}}).is_challenge
    assert not RPCResponse.from_json({"error": {"code": 287637505, "message": ""}}).is_challenge


# --- Plain calls ---

@pytest.mark.asyncio
async def test_requires_session():
    client = RPCClient(ScriptedTransport())
    with pytest.raises(PreconditionError):
        await client.send("system.getSystemInfo")


@pytest.mark.asyncio
async def test_ids_increment_and_session_included():
    transport = ScriptedTransport({"result": True}, {"result": True})
    client = RPCClient(transport)
    client.set_session("S1")

    await client.send("a.one")
    await client.send("a.two", {"k": "v"})

    (path1, first), (path2, second) = transport.sent
    assert path1 == path2 == "/RPC2"
    assert first == {"method": "a.one", "session": "S1", "id": 1}
    assert second == {"method": "a.two", "session": "S1", "id": 2, "params": {"k": "v"}}


@pytest.mark.asyncio
async def test_login_endpoint_without_session():
    transport = ScriptedTransport({"result": True, "session": "x"})
    client = RPCClient(transport)

    await client.send("global.login", {"userName": "admin"}, use_login_endpoint=True, include_session=False)

    path, body = transport.sent[0]
    assert path == "/RPC2_Login"
    assert "session" not in body
    assert body["id"] == 1


@pytest.mark.asyncio
async def test_remote_error_preserves_code():
    transport = ScriptedTransport({"result": False, "error": {"code": 287637505, "message": "Invalid session"}})
    client = RPCClient(transport)
    client.set_session("S1")

    with pytest.raises(RemoteError) as exc:
        await client.send("a.b")
    assert exc.value.code == 287637505
    assert exc.value.message == "Invalid session"


@pytest.mark.asyncio
async def test_challenge_returned_only_when_allowed():
    challenge = {"result": False, "error": {"code": 268632079, "message": "challenge"}}
    transport = ScriptedTransport(challenge, challenge)
    client = RPCClient(transport)

    response = await client.send("global.login", use_login_endpoint=True, include_session=False,
                                 allow_challenge=True)
    assert response.is_challenge

    with pytest.raises(RemoteError):
        await client.send("global.login", use_login_endpoint=True, include_session=False)


@pytest.mark.asyncio
async def test_transport_errors_propagate():
    client = RPCClient(ScriptedTransport(TransportError("down")))
    client.set_session("S1")
    with pytest.raises(TransportError):
        await client.send("a.b")


@pytest.mark.asyncio
async def test_malformed_body_is_decode_error():
    client = RPCClient(ScriptedTransport(b"not json"))
    client.set_session("S1")
    with pytest.raises(DecodeError):
        await client.send("a.b")


@pytest.mark.asyncio
async def test_outside_cmd_has_no_session():
    transport = ScriptedTransport({"result": True, "params": {"asymmetric": "RSA"}})
    client = RPCClient(transport)
    client.set_session("S1")

    reply = await client.send_outside_cmd("Security.getEncryptInfo")

    path, body = transport.sent[0]
    assert path == "/OutsideCmd"
    assert "session" not in body
    assert reply["params"] == {"asymmetric": "RSA"}


def test_session_lifecycle():
    client = RPCClient(ScriptedTransport())
    assert client.state is SessionState.NEW

    client.set_session(98765)
    assert client.session_id == "98765"
    assert client.state is SessionState.AUTHENTICATED
    client.next_request_id()
    client.next_request_id()
    assert client.request_counter == 2

    client.clear_session()
    assert client.session_id is None
    assert client.request_counter == 0
    assert client.state is SessionState.LOGGED_OUT


# --- Encrypted calls ---

@pytest.fixture
def nvr():
    device = MockNVR()
    device.logged_in = True
    return device


@pytest.fixture
def encrypted_client(nvr):
    store = CryptoNegotiationStore()
    store.update("RSA", nvr.ciphers, nvr.public_key)
    client = RPCClient(InProcessTransport(nvr), store)
    client.set_session(nvr.session)
    return client


@pytest.mark.asyncio
async def test_send_encrypted_round_trip(nvr, encrypted_client):
    result = await encrypted_client.send_encrypted("test.echo", {"hello": "world"})

    assert result == {"echo": {"hello": "world"}}
    path, body = nvr.requests[-1]
    assert body["method"] == "system.multiSec"
    assert body["params"]["cipher"] == "RPAC-256"
    assert set(body["params"]) == {"salt", "cipher", "content"}


@pytest.mark.asyncio
async def test_send_encrypted_with_decoder(encrypted_client):
    result = await encrypted_client.send_encrypted("test.echo", {"n": 3}, decoder=lambda v: v["echo"]["n"] * 2)
    assert result == 6


@pytest.mark.asyncio
async def test_send_encrypted_aes_profile(nvr):
    nvr.ciphers = ["AES-128"]
    store = CryptoNegotiationStore()
    store.update("RSA", nvr.ciphers, nvr.public_key)
    client = RPCClient(InProcessTransport(nvr), store)
    client.set_session(nvr.session)

    assert await client.send_encrypted("test.echo", [1, 2]) == {"echo": [1, 2]}
    assert nvr.requests[-1][1]["params"]["cipher"] == "AES-128"


@pytest.mark.asyncio
async def test_send_encrypted_requires_session_and_crypto(nvr):
    client = RPCClient(InProcessTransport(nvr))
    with pytest.raises(PreconditionError):
        await client.send_encrypted("test.echo", {})

    client.set_session(nvr.session)
    with pytest.raises(PreconditionError):
        await client.send_encrypted("test.echo", {})


@pytest.mark.asyncio
async def test_send_encrypted_missing_content():
    store = CryptoNegotiationStore()
    store.update("RSA", ["AES-128"], "N:ff,E:3")
    client = RPCClient(ScriptedTransport({"result": True, "params": None}), store)
    client.set_session("S1")

    with pytest.raises(DecodeError):
        await client.send_encrypted("test.echo", {})


@pytest.mark.asyncio
async def test_send_encrypted_undecodable_content():
    store = CryptoNegotiationStore()
    store.update("RSA", ["AES-128"], "N:ff,E:3")
    garbage = base64.b64encode(b"\x13" * 16).decode()
    client = RPCClient(ScriptedTransport({"result": True, "params": {"content": garbage}}), store)
    client.set_session("S1")

    with pytest.raises(DecodeError):
        await client.send_encrypted("test.echo", {})


@pytest.mark.asyncio
async def test_concurrent_encrypted_calls_use_own_keys(nvr, encrypted_client):
    issued = []
    original_encrypt = encrypted_client.engine.encrypt

    def recording_encrypt(payload, server_ciphers=None):
        packet, key = original_encrypt(payload, server_ciphers)
        issued.append(key)
        return packet, key

    encrypted_client.engine.encrypt = recording_encrypt

    results = await asyncio.gather(*[
        encrypted_client.send_encrypted("test.echo", {"call": i}) for i in range(10)
    ])

    assert results == [{"echo": {"call": i}} for i in range(10)]
    assert len(set(issued)) == 10
    assert set(nvr.unwrapped_keys) == set(issued)


@pytest.mark.asyncio
async def test_encrypted_command_returns_plain_response(nvr, encrypted_client):
    response = await encrypted_client.send_encrypted_command(
        "LogicDeviceManager.secSetCamera", {"cameras": []}
    )
    assert response.result is True
    path, body = nvr.requests[-1]
    assert body["method"] == "LogicDeviceManager.secSetCamera"
    assert CryptoProfile.from_cipher_name(body["params"]["cipher"]) is CryptoProfile.RPAC


def test_engine_is_per_client():
    a = RPCClient(ScriptedTransport())
    b = RPCClient(ScriptedTransport())
    assert isinstance(a.engine, HybridEncryptionEngine)
    assert a.crypto_store is not b.crypto_store

# nvr_rpc/encryption.py
"""
Hybrid RSA/AES encryption for the device's encrypted RPC calls.

Flow for one call:
    1. Pick a profile from the ciphers the device advertised (RPAC first, then AES).
    2. Generate a fresh symmetric key of the profile's length.
    3. Wrap the key with the device's RSA public key (raw modular exponentiation).
    4. Encrypt the JSON payload with AES (zero padding, static zero IV for CBC).
    5. Send {cipher, salt, content}; decrypt the paired response with the same key.

The zero IV, zero padding and unpadded RSA are what the device implements.
Changing any of them breaks compatibility.
"""
import base64
import binascii
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from Crypto.Cipher import AES
from Crypto.Random import get_random_bytes

from nvr_rpc import config
from nvr_rpc.crypto_config import CryptoNegotiationStore
from nvr_rpc.errors import (
    DecryptionFailed,
    EncryptionFailed,
    InvalidBase64,
    InvalidKeySize,
    NoCipherMatch,
    PreconditionError,
    RandomGenerationFailed,
)
from nvr_rpc.protocol import bigint

logger = logging.getLogger(__name__)


class CryptoProfile(Enum):
    # Declaration order is the client's preference order.
    RPAC = ("RPAC", 32, "CBC")
    AES = ("AES", 16, "ECB")

    def __init__(self, label: str, key_length: int, block_mode: str):
        self.label = label
        self.key_length = key_length
        self.block_mode = block_mode

    @property
    def cipher_name(self) -> str:
        """Wire name, e.g. "RPAC-256"."""
        return f"{self.label}-{self.key_length * 8}"

    @classmethod
    def from_cipher_name(cls, cipher_name: str) -> "CryptoProfile":
        for profile in cls:
            if _advertises(cipher_name, profile):
                return profile
        raise NoCipherMatch([p.cipher_name for p in cls], [cipher_name])


CLIENT_PROFILES = tuple(CryptoProfile)


@dataclass(frozen=True)
class EncryptedPacket:
    cipher: str
    salt: str
    content: str

    def to_params(self) -> Dict[str, str]:
        return {"salt": self.salt, "cipher": self.cipher, "content": self.content}


def _advertises(server_cipher: str, profile: CryptoProfile) -> bool:
    name = server_cipher.strip().upper()
    return name == profile.label or name.startswith(profile.label + "-")


def select_profile(server_ciphers: Iterable[str]) -> CryptoProfile:
    """First client profile (in preference order) the server advertises."""
    server_ciphers = list(server_ciphers)
    for profile in CLIENT_PROFILES:
        if any(_advertises(c, profile) for c in server_ciphers):
            return profile
    raise NoCipherMatch([p.cipher_name for p in CLIENT_PROFILES], server_ciphers)


def generate_symmetric_key(length: int) -> bytes:
    if length <= 0:
        raise RandomGenerationFailed(f"Invalid key length: {length}")
    try:
        return get_random_bytes(length)
    except OSError as e:
        raise RandomGenerationFailed(f"Entropy source failure: {e}") from e


def wrap_key(key: bytes, modulus: int, exponent: int) -> str:
    """
    Raw RSA: c = m^e mod n, with m the big-endian integer of the key bytes.
    No OAEP / PKCS#1 padding. Returns the even-length hex of c.
    """
    m = bigint.from_bytes(key)
    c = bigint.mod_pow(m, exponent, modulus)
    return bigint.to_bytes(c).hex()


def _check_key(key: bytes, profile: CryptoProfile):
    if len(key) != profile.key_length:
        raise InvalidKeySize(profile.key_length, len(key))


def _new_cipher(key: bytes, profile: CryptoProfile):
    if profile.block_mode == "CBC":
        return AES.new(key, AES.MODE_CBC, iv=config.CBC_IV)
    return AES.new(key, AES.MODE_ECB)


def zero_pad(data: bytes, block_size: int = config.AES_BLOCK_SIZE) -> bytes:
    remainder = len(data) % block_size
    if remainder == 0:
        return data
    return data + b"\x00" * (block_size - remainder)


def canonical_json(payload: Any) -> bytes:
    """JSON text as the device's web client produces it (compact, UTF-8)."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encrypt_payload(payload: Any, key: bytes, profile: CryptoProfile) -> str:
    _check_key(key, profile)
    try:
        plaintext = canonical_json(payload)
    except (TypeError, ValueError) as e:
        raise EncryptionFailed(f"Payload is not JSON serializable: {e}") from e

    ciphertext = _new_cipher(key, profile).encrypt(zero_pad(plaintext))
    return base64.b64encode(ciphertext).decode("ascii")


def _parse_json_with_fallback(data: bytes) -> Optional[Any]:
    # The device has been seen emitting non-UTF-8 bytes; retry those as Latin-1.
    for encoding in ("utf-8", "latin-1"):
        try:
            return json.loads(data.decode(encoding))
        except (UnicodeDecodeError, ValueError):
            logger.debug(f"[CRYPTO] Decrypted payload is not valid {encoding} JSON")
    return None


def decrypt_payload(content: str, key: bytes, profile: CryptoProfile) -> Optional[Any]:
    """
    Decrypts a base64 AES payload and parses it as JSON.

    Returns None when the plaintext is not usable JSON. Callers must treat
    None as "no payload", not as success.
    """
    _check_key(key, profile)
    try:
        ciphertext = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBase64(str(e)) from e

    if len(ciphertext) % config.AES_BLOCK_SIZE != 0:
        raise DecryptionFailed(f"Ciphertext length {len(ciphertext)} is not a multiple of the block size")

    plaintext = _new_cipher(key, profile).decrypt(ciphertext).rstrip(b"\x00")
    return _parse_json_with_fallback(plaintext)


class HybridEncryptionEngine:
    """Encrypts request payloads against the negotiated crypto of one connection."""

    def __init__(self, store: CryptoNegotiationStore):
        self.store = store

    def encrypt(self, payload: Any, server_ciphers: Optional[Iterable[str]] = None) -> Tuple[EncryptedPacket, bytes]:
        """
        Returns the packet to send and the plaintext ephemeral key.

        The key belongs to this call only: it is needed to decrypt the paired
        response and must not be kept anywhere after that.
        """
        negotiated = self.store.snapshot()
        if negotiated is None:
            raise PreconditionError("No negotiated crypto: call Security.getEncryptInfo first")

        ciphers = list(server_ciphers) if server_ciphers is not None else list(negotiated.ciphers)
        profile = select_profile(ciphers)
        key = generate_symmetric_key(profile.key_length)

        packet = EncryptedPacket(
            cipher=profile.cipher_name,
            salt=wrap_key(key, negotiated.modulus, negotiated.exponent),
            content=encrypt_payload(payload, key, profile),
        )
        logger.debug(f"[CRYPTO] Encrypted payload with {packet.cipher} ({len(packet.content)} b64 chars)")
        return packet, key

# nvr_rpc/crypto_config.py
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from nvr_rpc.errors import InvalidPublicKey
from nvr_rpc.protocol import bigint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NegotiatedCrypto:
    asymmetric: str
    ciphers: Tuple[str, ...]
    public_key: str
    modulus: int
    exponent: int


def parse_public_key(public_key: str) -> Tuple[int, int]:
    """
    Parses the device's public key string.

    Format: "N:<hexModulus>,E:<hexExponent>"

    Returns:
        (modulus, exponent) as integers.
    """
    components = public_key.split(",")
    if len(components) != 2:
        raise InvalidPublicKey(f"expected 'N:modulus,E:exponent', got {public_key!r}")

    modulus_part, exponent_part = (c.strip() for c in components)
    if not modulus_part.startswith("N:") or not exponent_part.startswith("E:"):
        raise InvalidPublicKey("missing N: or E: prefix")

    try:
        modulus = bigint.from_hex(modulus_part[2:])
        exponent = bigint.from_hex(exponent_part[2:])
    except ValueError as e:
        raise InvalidPublicKey(str(e)) from e

    if modulus == 0:
        raise InvalidPublicKey("modulus must be non-zero")

    return modulus, exponent


class CryptoNegotiationStore:
    """
    Holds the crypto parameters negotiated with one device connection.

    The whole record is a single immutable snapshot swapped under a lock, so a
    reader sees either the previous record or the new one, never a mix.
    One store belongs to one connection; create a fresh instance per device.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Optional[NegotiatedCrypto] = None

    def update(self, asymmetric: str, ciphers: Iterable[str], public_key: str) -> NegotiatedCrypto:
        # Parse outside the lock; a bad key leaves the store untouched.
        modulus, exponent = parse_public_key(public_key)
        snapshot = NegotiatedCrypto(
            asymmetric=asymmetric,
            ciphers=tuple(ciphers),
            public_key=public_key,
            modulus=modulus,
            exponent=exponent,
        )
        with self._lock:
            self._snapshot = snapshot

        logger.debug(
            f"[CRYPTO] Negotiated {asymmetric}, ciphers={', '.join(snapshot.ciphers)}, "
            f"modulus bits={modulus.bit_length()}, exponent={exponent}"
        )
        return snapshot

    def reset(self):
        with self._lock:
            self._snapshot = None
        logger.debug("[CRYPTO] Reset crypto configuration")

    def snapshot(self) -> Optional[NegotiatedCrypto]:
        with self._lock:
            return self._snapshot

    @property
    def is_configured(self) -> bool:
        return self.snapshot() is not None

    @property
    def current_asymmetric(self) -> Optional[str]:
        snap = self.snapshot()
        return snap.asymmetric if snap else None

    @property
    def current_ciphers(self) -> Optional[Tuple[str, ...]]:
        snap = self.snapshot()
        return snap.ciphers if snap else None

    @property
    def current_modulus(self) -> Optional[int]:
        snap = self.snapshot()
        return snap.modulus if snap else None

    @property
    def current_exponent(self) -> Optional[int]:
        snap = self.snapshot()
        return snap.exponent if snap else None

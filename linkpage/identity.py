"""
secp256k1 keypairs and signatures.

Each published document gets its own keypair; the public half becomes the
document's permanent identifier.
"""

import logging
from dataclasses import dataclass

from coincurve import PrivateKey, PublicKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Keypair:
    pub_key: str
    private_key: str


def generate_keypair() -> Keypair:
    """Generate a fresh keypair (compressed public key, hex encoded)."""
    key = PrivateKey()
    return Keypair(
        pub_key=key.public_key.format(compressed=True).hex(),
        private_key=key.to_hex(),
    )


def sign(message: str, private_key: str) -> str:
    """Sign ``message`` (SHA-256 digest, DER encoded ECDSA) and return hex."""
    key = PrivateKey.from_hex(private_key)
    return key.sign(message.encode("utf-8")).hex()


def verify(signature: str, message: str, pub_key: str) -> bool:
    """
    Verify a hex signature over ``message`` for ``pub_key``.

    Malformed keys or signatures verify as False rather than raising.
    """
    try:
        return PublicKey(bytes.fromhex(pub_key)).verify(bytes.fromhex(signature), message.encode("utf-8"))
    except (TypeError, ValueError) as e:
        logger.debug("Signature verify rejected malformed input: %s", e)
        return False

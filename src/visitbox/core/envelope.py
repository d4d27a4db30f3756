"""
Envelope encryption walkthrough built on the AWS Encryption SDK.

The SDK does all the cryptography: it generates a data key per message,
wraps it with the RSA key held by the keyring and frames the ciphertext.
This module only picks the keys, binds an encryption context and checks
that context after decryption.

The encryption context is *not* secret. It is an authenticated assertion
about the ciphertext: being able to decrypt something does not mean it is
what you expected, so the expected pairs are always verified after decrypt.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from aws_encryption_sdk import CommitmentPolicy, EncryptionSDKClient
from aws_encryption_sdk.identifiers import EncryptionKeyType, WrappingAlgorithm
from aws_encryption_sdk.internal.crypto.wrapping_keys import WrappingKey
from aws_encryption_sdk.key_providers.raw import RawMasterKey
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from pydantic import BaseModel, ConfigDict

from visitbox.core.errors import EncryptionContextMismatch
from visitbox.shared import Logger
from visitbox.shared.config import EncryptionContext

__all__ = [
    "DEMO_CONTEXT",
    "KeyringName",
    "RoundTrip",
    "RsaKeyPair",
    "build_client",
    "build_keyring",
    "decrypt",
    "encrypt",
    "generate_rsa_keys",
    "load_rsa_keys",
    "rsa_round_trip",
    "verify_encryption_context",
]

logger = Logger(__name__).get_logger()

WRAPPING_ALGORITHM = WrappingAlgorithm.RSA_OAEP_SHA256_MGF1
PUBLIC_EXPONENT = 65537

DEMO_CONTEXT = EncryptionContext(
    stage="demo",
    purpose="simple demonstration app",
    origin="us-west-2",
)


class KeyringName(BaseModel):
    # Decryption needs an exact, case-sensitive match of both fields
    model_config = ConfigDict(frozen=True)

    key_name: str = "rsa-name"
    key_namespace: str = "rsa-namespace"


@dataclass(frozen=True)
class RsaKeyPair:
    public_key: bytes  # PEM
    private_key: bytes  # PEM


@dataclass(frozen=True)
class RoundTrip:
    plaintext: bytes
    result: bytes
    cleartext: str
    encryption_context: dict[str, str]


def _serialize(private_key: rsa.RSAPrivateKey) -> RsaKeyPair:
    return RsaKeyPair(
        public_key=private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.PKCS1,
        ),
        private_key=private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        ),
    )


def generate_rsa_keys(modulus_length: int = 3072) -> RsaKeyPair:
    """Generate a throwaway PKCS#1 key pair. For demos and tests only."""
    logger.debug("Generating %s-bit RSA key pair", modulus_length)
    private_key = rsa.generate_private_key(
        public_exponent=PUBLIC_EXPONENT,
        key_size=modulus_length,
    )
    return _serialize(private_key)


def load_rsa_keys(private_key_path: str | Path) -> RsaKeyPair:
    """Read an unencrypted PEM private key and derive its public half."""
    pem = Path(private_key_path).read_bytes()
    private_key = serialization.load_pem_private_key(pem, password=None)
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ValueError(f"{private_key_path} does not hold an RSA private key")

    logger.info("Loaded RSA private key from %s", private_key_path)
    return _serialize(private_key)


def build_keyring(
    name: KeyringName,
    keys: RsaKeyPair,
    *,
    public_only: bool = False,
) -> RawMasterKey:
    """
    Raw RSA keyring for the given name/namespace.

    With ``public_only`` the keyring can encrypt but never decrypt.
    """
    if public_only:
        wrapping_key = WrappingKey(
            wrapping_algorithm=WRAPPING_ALGORITHM,
            wrapping_key=keys.public_key,
            wrapping_key_type=EncryptionKeyType.PUBLIC,
        )
    else:
        wrapping_key = WrappingKey(
            wrapping_algorithm=WRAPPING_ALGORITHM,
            wrapping_key=keys.private_key,
            wrapping_key_type=EncryptionKeyType.PRIVATE,
        )

    return RawMasterKey(
        provider_id=name.key_namespace,
        key_id=name.key_name,
        wrapping_key=wrapping_key,
    )


def build_client() -> EncryptionSDKClient:
    # Only committing algorithm suites, for both encrypt and decrypt
    return EncryptionSDKClient(
        commitment_policy=CommitmentPolicy.REQUIRE_ENCRYPT_REQUIRE_DECRYPT
    )


def encrypt(
    client: EncryptionSDKClient,
    keyring: RawMasterKey,
    cleartext: str | bytes,
    context: Mapping[str, str],
) -> bytes:
    ciphertext, _header = client.encrypt(
        source=cleartext,
        key_provider=keyring,
        encryption_context=dict(context),
    )
    logger.debug("Encrypted %s byte(s) of cleartext", len(cleartext))
    return ciphertext


def decrypt(
    client: EncryptionSDKClient,
    keyring: RawMasterKey,
    ciphertext: bytes,
) -> tuple[bytes, dict[str, str]]:
    """Return the plaintext and the encryption context found in the header."""
    plaintext, header = client.decrypt(source=ciphertext, key_provider=keyring)
    return plaintext, dict(header.encryption_context)


def verify_encryption_context(
    expected: Mapping[str, str],
    actual: Mapping[str, str],
) -> None:
    """
    Check that every expected pair came back unchanged.

    Signing algorithm suites add their own pairs (the public verification
    key), so extra keys in ``actual`` are fine. Only the expected ones are
    compared.
    """
    mismatched = [key for key, value in expected.items() if actual.get(key) != value]
    if mismatched:
        logger.warning("Encryption context mismatch on: %s", ", ".join(mismatched))
        raise EncryptionContextMismatch(mismatched)

    logger.debug("Encryption context verified (%s pairs)", len(expected))


def rsa_round_trip(
    cleartext: str = "asdf",
    context: EncryptionContext | None = None,
    name: KeyringName | None = None,
    keys: RsaKeyPair | None = None,
    modulus_length: int = 3072,
) -> RoundTrip:
    """Encrypt ``cleartext`` with an RSA keyring, decrypt it and verify the context."""
    context = context or DEMO_CONTEXT
    name = name or KeyringName()
    keys = keys or generate_rsa_keys(modulus_length)

    expected = context.model_dump()
    client = build_client()
    keyring = build_keyring(name, keys)

    result = encrypt(client, keyring, cleartext, expected)
    plaintext, encryption_context = decrypt(client, keyring, result)

    verify_encryption_context(expected, encryption_context)

    logger.info(
        "Round trip with keyring %s/%s succeeded",
        name.key_namespace,
        name.key_name,
    )
    return RoundTrip(
        plaintext=plaintext,
        result=result,
        cleartext=cleartext,
        encryption_context=encryption_context,
    )

# envelope_demo.py
from visitbox.core.envelope import (
    KeyringName,
    RsaKeyPair,
    generate_rsa_keys,
    load_rsa_keys,
    rsa_round_trip,
)
from visitbox.core.errors import EncryptionContextMismatch
from visitbox.shared import load_config

config = load_config()


def run_demo(cleartext: str, keys: RsaKeyPair) -> bool:
    name = KeyringName(
        key_name=config.crypto.key_name,
        key_namespace=config.crypto.key_namespace,
    )
    try:
        trip = rsa_round_trip(
            cleartext=cleartext,
            context=config.crypto.context,
            name=name,
            keys=keys,
        )
    except EncryptionContextMismatch as e:
        print(f"[!] {e}")
        return False

    print(f"[✔] Encrypted {len(trip.cleartext)} byte(s) into {len(trip.result)}")
    print(f"[✔] Decrypted: {trip.plaintext.decode()}")
    for key, value in sorted(trip.encryption_context.items()):
        print(f"    {key} = {value}")

    return trip.plaintext == cleartext.encode()


if __name__ == "__main__":
    import argparse
    import sys

    def parse_args():
        parser = argparse.ArgumentParser(
            description="Encrypt and decrypt a string with a raw RSA keyring"
        )
        parser.add_argument(
            "--cleartext", type=str, default="asdf", help="Text to round trip"
        )
        parser.add_argument(
            "--private-key",
            type=str,
            default=config.crypto.private_key_path,
            help="PEM private key (default: generate a fresh pair)",
        )
        return parser.parse_args()

    args = parse_args()
    if args.private_key:
        keys = load_rsa_keys(args.private_key)
    else:
        keys = generate_rsa_keys(config.crypto.modulus_length)

    sys.exit(0 if run_demo(args.cleartext, keys) else 1)

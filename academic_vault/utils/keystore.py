import json
import logging
import secrets
from base64 import b64encode, b64decode
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes
from academic_vault.models import (bcolors)

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100000

# -----------------------------
# Key Management
# -----------------------------
def _derive_fernet(passphrase: str, salt: bytes) -> Fernet:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,                # 256-bit key for Fernet
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return Fernet(b64encode(kdf.derive(passphrase.encode())))


def _write_keystore(keystore: dict, keystore_file: str):
    with open(keystore_file, "w") as kf:
        json.dump(keystore, kf, indent=2)


def create_keystore(passphrase: str, keystore_file: str):
    """
    Create an encrypted keystore for RSA private keys.

    The passphrase is stretched with PBKDF2-HMAC-SHA256 over a random salt
    into a Fernet key (AES-128-CBC + HMAC-SHA256). Only the salt and the
    Fernet tokens are written to disk, as JSON.

    Args:
        passphrase: User passphrase for keystore encryption
        keystore_file: File path for keystore storage
    """
    salt = secrets.token_bytes(16)
    # Derive once so a broken passphrase fails here rather than on first use
    _derive_fernet(passphrase, salt)

    keystore = {"salt": b64encode(salt).decode(), "keys": {}}
    _write_keystore(keystore, keystore_file)
    logger.info("Keystore created at %s", keystore_file)


def load_keystore(passphrase: str, keystore_file: str):
    """
    Load a keystore and rebuild its Fernet cipher from the passphrase.

    Returns:
        Tuple of (keystore_data, fernet_cipher)
    """
    with open(keystore_file, "r") as kf:
        keystore = json.load(kf)
    salt = b64decode(keystore["salt"])
    return keystore, _derive_fernet(passphrase, salt)


def store_key_in_keystore(passphrase: str, key_name: str, key_data: dict, keystore_file: str):
    """
    Encrypt ``key_data`` as JSON under the keystore passphrase and store it as ``key_name``.
    """
    keystore, fernet = load_keystore(passphrase, keystore_file)
    keystore["keys"][key_name] = fernet.encrypt(json.dumps(key_data).encode()).decode()
    _write_keystore(keystore, keystore_file)
    logger.info("Stored key %s in %s", key_name, keystore_file)


def retrieve_key_from_keystore(passphrase: str, key_name: str, keystore_file: str) -> dict:
    """
    Retrieve and decrypt a key from the keystore.

    Raises:
        ValueError: If the key is not found or the passphrase is wrong
    """
    keystore, fernet = load_keystore(passphrase, keystore_file)
    if key_name not in keystore["keys"]:
        raise ValueError(f"{bcolors.FAIL}Key {key_name} not found in keystore{bcolors.ENDC}")

    try:
        decrypted_key = fernet.decrypt(keystore["keys"][key_name].encode())
    except InvalidToken:
        raise ValueError(f"{bcolors.FAIL}Failed to decrypt key. Wrong passphrase?{bcolors.ENDC}") from None
    return json.loads(decrypted_key.decode())


def list_keystore_keys(keystore_file: str) -> list[str]:
    with open(keystore_file, "r") as kf:
        return sorted(json.load(kf)["keys"])

import json
import logging
import time
from datetime import datetime, timezone

from academic_vault.errors import (MalformedInput)
from academic_vault.models import (CryptoParams, HeadKeyPair, RSAKeyPair, RSAPrivateKey, RSAPublicKey)
from academic_vault.utils.bbs import (generate_secure_hex)
from academic_vault.utils.rsa import (generate_key_pair)

logger = logging.getLogger(__name__)

# -----------------------------
# Key Encoding
# -----------------------------
# Keys travel as JSON objects of lowercase hex strings without a 0x prefix.
def public_key_to_json(public_key: RSAPublicKey) -> str:
    return json.dumps({"n": format(public_key.n, "x"), "e": format(public_key.e, "x")})


def private_key_to_json(private_key: RSAPrivateKey) -> str:
    data = {"n": format(private_key.n, "x"), "d": format(private_key.d, "x")}
    if private_key.p is not None and private_key.q is not None:
        data["p"] = format(private_key.p, "x")
        data["q"] = format(private_key.q, "x")
    return json.dumps(data)


def _load_hex_fields(key_json, required: tuple, optional: tuple = ()) -> dict:
    try:
        data = json.loads(key_json) if isinstance(key_json, str) else dict(key_json)
        fields = {name: int(data[name], 16) for name in required}
        for name in optional:
            if data.get(name):
                fields[name] = int(data[name], 16)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise MalformedInput(f"Malformed key JSON: {e}") from None
    return fields


def public_key_from_json(key_json) -> RSAPublicKey:
    """Parse a public key from its JSON string (or already decoded dict)."""
    return RSAPublicKey(**_load_hex_fields(key_json, ("n", "e")))


def private_key_from_json(key_json) -> RSAPrivateKey:
    return RSAPrivateKey(**_load_hex_fields(key_json, ("n", "d"), ("p", "q")))

# -----------------------------
# Key Pairs
# -----------------------------
def generate_keypair(key_size: int = CryptoParams.rsa_key_size) -> dict:
    """
    Generates an RSA key pair in its storage encoding.

    Returns:
        dict: {"public_key": json, "private_key": json, "key_size": int}
    """
    pair = generate_key_pair(key_size)
    return keypair_to_dict(pair, key_size)


def keypair_to_dict(pair: RSAKeyPair, key_size: int) -> dict:
    return {
        "public_key": public_key_to_json(pair.public_key),
        "private_key": private_key_to_json(pair.private_key),
        "key_size": key_size,
    }


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while True:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
        if value == 0:
            return out


def generate_key_id(prefix: str = "key") -> str:
    """Identifier of the form ``<prefix>_<base36 millis>_<8 hex>``."""
    return f"{prefix}_{_base36(int(time.time() * 1000))}_{generate_secure_hex(4)}"


def generate_head_key_pair(study_program: str, key_size: int = CryptoParams.rsa_key_size) -> HeadKeyPair:
    """
    Generates the signing key pair of a study program head.

    Key IDs are prefixed ``inf_head`` for INFORMATICS and ``sis_head`` for
    any other program.
    """
    prefix = "inf_head" if study_program == "INFORMATICS" else "sis_head"
    data = generate_keypair(key_size)
    key_id = generate_key_id(prefix)
    logger.info("Generated %d-bit head key pair %s for %s", key_size, key_id, study_program)
    return HeadKeyPair(
        key_id=key_id,
        public_key=data["public_key"],
        private_key=data["private_key"],
        key_size=key_size,
        created_at=datetime.now(timezone.utc),
        study_program=study_program,
    )

import json
from academic_vault.models import (AccessResponse, AccessType, CryptoParams, DigitalSignature, SignatureVerification,
                                   VerificationStatus, bcolors)
from academic_vault.utils.aes import (generate_key)
from academic_vault.utils.keystore import (create_keystore, store_key_in_keystore)
from academic_vault.utils.keygen import (generate_head_key_pair, generate_keypair)
from academic_vault.utils.rc4 import (decrypt_binary, encrypt_binary)
from academic_vault.utils.sha3 import (sha3_hash, shake128, shake256)
from academic_vault.core import (
    direct_access_file, group_access_file, load_private_key, load_public_key, load_record_file, protect_record_file
)
from academic_vault.signature import (sign_academic_record, verify_academic_record)

# -----------------------------
# Output Helpers
# -----------------------------
STATUS_COLORS = {
    VerificationStatus.VERIFIED: bcolors.OKGREEN,
    VerificationStatus.UNVERIFIED: bcolors.WARNING,
    VerificationStatus.INVALID: bcolors.FAIL,
}


def print_verification(result: SignatureVerification):
    color = bcolors.OKGREEN if result.is_valid else bcolors.FAIL
    print(f"{color}{result.message}{bcolors.ENDC}")
    if result.key_id:
        print(f"Key ID: {result.key_id}")


def print_access_response(response: AccessResponse):
    color = bcolors.OKGREEN if response.success else bcolors.FAIL
    print(f"{color}{response.access_type.value}{bcolors.ENDC}: {response.message}")
    if response.access_type == AccessType.GROUP_REQUIRED:
        print(f"Shares required: {response.required_share_count}")
    if response.data is not None:
        status = response.verification_status
        print(f"Signature: {STATUS_COLORS.get(status, '')}{status.value if status else '-'}{bcolors.ENDC}")
        print(json.dumps(response.data.to_dict(), indent=2))


def _private_key_prompt() -> str:
    use_keystore = input("Load private key from keystore? (y/n) [y]: ").strip().lower() or "y"
    if use_keystore == "y":
        keystore = input("Keystore filename (default keystore.json): ").strip() or "keystore.json"
        passphrase = input("Keystore passphrase: ")
        key_name = input("Key name in keystore: ")
        return load_private_key(keystore=keystore, passphrase=passphrase, key_name=key_name)
    privfile = input("Private key filename (default private_key.json): ").strip() or "private_key.json"
    return load_private_key(privfile=privfile)

# -----------------------------
# Interactive Menu Actions
# -----------------------------
def menu_generate_keystore():
    """
    Interactive keystore creation.

    Cryptographic principles:
    - Password-based encryption: PBKDF2 stretches the passphrase into a Fernet key
    """
    passphrase = input("Enter keystore passphrase: ")
    keystore_file = input("Keystore filename (default keystore.json): ").strip() or "keystore.json"
    create_keystore(passphrase, keystore_file)


def menu_generate_keypair():
    """
    Interactive RSA key pair generation, optionally a program head signing key.

    The private key goes either into an encrypted keystore or a separate file.
    """
    pubfile = input("Public key filename (default public_key.json): ").strip() or "public_key.json"
    key_size = int(input(f"Key size in bits (default {CryptoParams.rsa_key_size}): ").strip()
                   or CryptoParams.rsa_key_size)
    study_program = input("Study program for a head signing key (blank for a user key): ").strip()
    if study_program:
        head = generate_head_key_pair(study_program, key_size)
        keypair = {"key_id": head.key_id, "public_key": head.public_key,
                   "private_key": head.private_key, "key_size": head.key_size}
        print(f"Key ID: {bcolors.OKCYAN}{head.key_id}{bcolors.ENDC}")
    else:
        keypair = generate_keypair(key_size)

    with open(pubfile, "w") as f:
        json.dump({k: v for k, v in keypair.items() if k != "private_key"}, f)

    use_keystore = input("Store private key in keystore? (y/n) [y]: ").strip().lower() or "y"
    if use_keystore == "y":
        keystore = input("Keystore filename (default keystore.json): ").strip() or "keystore.json"
        passphrase = input("Keystore passphrase: ")
        key_name = input("Key name in keystore: ")
        store_key_in_keystore(passphrase, key_name, keypair, keystore)
        print(f"RSA keys generated: {pubfile} (public), private stored in keystore")
    else:
        privfile = input("Private key filename (default private_key.json): ").strip() or "private_key.json"
        with open(privfile, "w") as f:
            json.dump(keypair, f)
        print(f"RSA keys generated: {pubfile} (public), {privfile} (private)")


def menu_hash():
    variant = (input("Variant [SHA3-224/SHA3-256/SHA3-384/SHA3-512/SHAKE128/SHAKE256] (default SHA3-256): ")
               .strip().upper() or "SHA3-256")
    in_path = input("File to hash (blank to enter text): ").strip()
    if in_path:
        with open(in_path, "rb") as f:
            data = f.read()
    else:
        data = input("Text: ").encode("utf-8")
    match variant:
        case "SHAKE128" | "SHAKE256":
            length = int(input("Output bytes (default 32): ").strip() or 32)
            digest = shake128(data, length) if variant == "SHAKE128" else shake256(data, length)
        case _:
            digest = sha3_hash(data, variant)
    print(f"{variant}: {bcolors.OKCYAN}{digest.hex()}{bcolors.ENDC}")


def menu_sign_record():
    record = load_record_file(input("Record input JSON: ").strip())
    key_id = input("Signing key ID: ").strip()
    private_key = _private_key_prompt()
    out_file = input("Signature output (default signature.json): ").strip() or "signature.json"
    signature = sign_academic_record(record, private_key, key_id)
    with open(out_file, "w") as f:
        json.dump(signature.to_dict(), f, indent=2)
    print(f"Record signed: {out_file}")


def menu_verify_record():
    record = load_record_file(input("Record input JSON: ").strip())
    sigfile = input("Signature file (default signature.json): ").strip() or "signature.json"
    pubfile = input("Head public key file (default public_key.json): ").strip() or "public_key.json"
    with open(sigfile, "r") as f:
        signature = DigitalSignature.from_dict(json.load(f))
    print_verification(verify_academic_record(record, signature, load_public_key(pubfile)))


def menu_protect_record():
    """
    Interactive dual-access protection of a record.

    Collects the three direct access identities with their public key files,
    the advisor pool and the head signing key.
    """
    record_file = input("Record input JSON: ").strip()
    identities, pubfiles = {}, {}
    for role in ("student", "advisor", "head"):
        user_id = input(f"{role.capitalize()} user ID: ").strip()
        identities[role] = user_id
        pubfiles[user_id] = input(f"{role.capitalize()} public key file: ").strip()
    advisors = [a.strip() for a in input("Advisor pool (comma separated): ").split(",") if a.strip()]
    head_key_id = input("Head key ID: ").strip()
    print("Head private key:")
    private_key = _private_key_prompt()
    out_file = input("Output bundle (default protected_record.json): ").strip() or "protected_record.json"
    protect_record_file(record_file, identities, advisors, pubfiles, private_key, head_key_id, out_file)
    print(f"Protected record written: {out_file}")


def menu_direct_access():
    bundle = input("Bundle file (default protected_record.json): ").strip() or "protected_record.json"
    user_id = input("Your user ID: ").strip()
    private_key = _private_key_prompt()
    head_pub = input("Head public key file: ").strip()
    print_access_response(direct_access_file(bundle, user_id, private_key, head_pub))


def menu_group_access():
    bundle = input("Bundle file (default protected_record.json): ").strip() or "protected_record.json"
    advisors = [a.strip() for a in input("Participating advisors (comma separated): ").split(",") if a.strip()]
    head_pub = input("Head public key file: ").strip()
    threshold = int(input(f"Share threshold (default {CryptoParams.shamir_threshold}): ").strip()
                    or CryptoParams.shamir_threshold)
    params = CryptoParams(shamir_threshold=threshold)
    print_access_response(group_access_file(bundle, advisors, head_pub, params))


def menu_rc4():
    mode = input("Encrypt or decrypt? (e/d) [e]: ").strip().lower() or "e"
    in_path = input("Input file: ").strip()
    key = input("RC4 key: ")
    out_file = input("Output file: ").strip()
    with open(in_path, "rb") as f:
        data = f.read()
    process = encrypt_binary if mode == "e" else decrypt_binary
    with open(out_file, "wb") as f:
        f.write(process(data, key))
    print(f"Written: {out_file}")


def menu_aes_key():
    key_size = int(input(f"Key size [128/192/256] (default {CryptoParams.aes_key_size}): ").strip()
                   or CryptoParams.aes_key_size)
    source = input(f"Source [bbs/system] (default {CryptoParams.key_source}): ").strip() or CryptoParams.key_source
    print(f"AES-{key_size} key: {bcolors.OKCYAN}{generate_key(key_size, source)}{bcolors.ENDC}")

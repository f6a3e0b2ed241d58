import os
import sys
import json
import logging
import argparse
from academic_vault.utils.aes import (generate_key)
from academic_vault.utils.keygen import (generate_head_key_pair, generate_keypair)
from academic_vault.utils.keystore import (create_keystore, store_key_in_keystore)
from academic_vault.utils.rc4 import (decrypt_binary, encrypt_binary)
from academic_vault.utils.sha3 import (SHA3_VARIANTS, hash_file, sha3_hash, shake128, shake256)
from academic_vault.utils.menu import (
    menu_generate_keystore, menu_generate_keypair, menu_hash, menu_sign_record, menu_verify_record,
    menu_protect_record, menu_direct_access, menu_group_access, menu_rc4, menu_aes_key,
    print_access_response, print_verification
)
from academic_vault.models import (CryptoParams, DigitalSignature, bcolors)
from academic_vault.core import (
    direct_access_file, group_access_file, load_private_key, load_public_key, load_record_file, protect_record_file
)
from academic_vault.signature import (sign_academic_record, verify_academic_record)


def add_private_key_args(p: argparse.ArgumentParser):
    p.add_argument("--privfile", default="private_key.json", help="Private key file")
    p.add_argument("--keystore", help="Keystore filename")
    p.add_argument("--passphrase", help="Keystore passphrase")
    p.add_argument("--key_name", help="Key name in keystore")


def hash_command(args) -> str:
    data = None
    if args.in_path:
        if args.variant.upper() in SHA3_VARIANTS:
            return hash_file(args.in_path, args.variant).hex()
        with open(args.in_path, "rb") as f:
            data = f.read()
    else:
        data = (args.text or "").encode("utf-8")
    match args.variant.upper():
        case "SHAKE128":
            return shake128(data, args.length).hex()
        case "SHAKE256":
            return shake256(data, args.length).hex()
        case _:
            return sha3_hash(data, args.variant).hex()


def main():
    parser = argparse.ArgumentParser(description="Academic Vault - protected academic records")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    create_keystore_parser = subparsers.add_parser("create_keystore", help="Create encrypted keystore")
    create_keystore_parser.add_argument("--passphrase", required=True, help="Keystore passphrase")
    create_keystore_parser.add_argument("--keystore_file", default="keystore.json", help="Keystore filename")

    generate_parser = subparsers.add_parser("generate_keypair", help="Generate RSA keypair")
    generate_parser.add_argument("--pubfile", default="public_key.json", help="Public key filename")
    generate_parser.add_argument("--privfile", default="private_key.json", help="Private key filename")
    generate_parser.add_argument("--keystore", default="keystore.json", help="Keystore filename")
    generate_parser.add_argument("--passphrase", help="Keystore passphrase")
    generate_parser.add_argument("--key_name", help="Key name in keystore")
    generate_parser.add_argument("--key_size", type=int, default=CryptoParams.rsa_key_size)
    generate_parser.add_argument("--study_program", help="Generate a program head signing key")

    hash_parser = subparsers.add_parser("hash", help="SHA-3 / SHAKE digest")
    hash_parser.add_argument("--text", help="Text to hash")
    hash_parser.add_argument("--in_path", help="File to hash")
    hash_parser.add_argument("--variant", default="SHA3-256",
                             choices=list(SHA3_VARIANTS) + ["SHAKE128", "SHAKE256"])
    hash_parser.add_argument("--length", type=int, default=32, help="SHAKE output bytes")

    sign_parser = subparsers.add_parser("sign_record", help="Sign an academic record")
    sign_parser.add_argument("--record", required=True, help="Record input JSON")
    sign_parser.add_argument("--key_id", required=True, help="Signing key identifier")
    sign_parser.add_argument("--out_file", default="signature.json")
    add_private_key_args(sign_parser)

    verify_parser = subparsers.add_parser("verify_record", help="Verify an academic record signature")
    verify_parser.add_argument("--record", required=True, help="Record input JSON")
    verify_parser.add_argument("--sigfile", default="signature.json")
    verify_parser.add_argument("--pubfile", default="public_key.json")

    protect_parser = subparsers.add_parser("protect_record", help="Encrypt, wrap, share and sign a record")
    protect_parser.add_argument("--record", required=True, help="Record input JSON")
    protect_parser.add_argument("--student", required=True)
    protect_parser.add_argument("--advisor", required=True)
    protect_parser.add_argument("--head", required=True)
    protect_parser.add_argument("--student_pub", required=True)
    protect_parser.add_argument("--advisor_pub", required=True)
    protect_parser.add_argument("--head_pub", required=True)
    protect_parser.add_argument("--advisors", required=True, help="Comma separated advisor pool")
    protect_parser.add_argument("--head_key_id", required=True)
    protect_parser.add_argument("--threshold", type=int, default=CryptoParams.shamir_threshold)
    protect_parser.add_argument("--key_source", choices=["bbs", "system"], default=CryptoParams.key_source)
    protect_parser.add_argument("--out_file", default="protected_record.json")
    add_private_key_args(protect_parser)

    direct_parser = subparsers.add_parser("direct_access", help="Open a record with a wrapped key")
    direct_parser.add_argument("--bundle", default="protected_record.json")
    direct_parser.add_argument("--user_id", required=True)
    direct_parser.add_argument("--head_pub", required=True)
    add_private_key_args(direct_parser)

    group_parser = subparsers.add_parser("group_access", help="Open a record with advisor shares")
    group_parser.add_argument("--bundle", default="protected_record.json")
    group_parser.add_argument("--advisors", required=True, help="Comma separated participating advisors")
    group_parser.add_argument("--head_pub", required=True)
    group_parser.add_argument("--threshold", type=int, default=CryptoParams.shamir_threshold)

    rc4_encrypt_parser = subparsers.add_parser("rc4_encrypt", help="RC4-encrypt a transcript file")
    rc4_encrypt_parser.add_argument("--in_path", required=True)
    rc4_encrypt_parser.add_argument("--key", required=True)
    rc4_encrypt_parser.add_argument("--out_file", default="transcript_encrypted.bin")

    rc4_decrypt_parser = subparsers.add_parser("rc4_decrypt", help="RC4-decrypt a transcript file")
    rc4_decrypt_parser.add_argument("--in_path", required=True)
    rc4_decrypt_parser.add_argument("--key", required=True)
    rc4_decrypt_parser.add_argument("--out_file", default="transcript.bin")

    aes_key_parser = subparsers.add_parser("aes_key", help="Generate an AES key")
    aes_key_parser.add_argument("--key_size", type=int, choices=[128, 192, 256], default=CryptoParams.aes_key_size)
    aes_key_parser.add_argument("--key_source", choices=["bbs", "system"], default=CryptoParams.key_source)

    args = parser.parse_known_args()[0]
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        match args.command:
            case "create_keystore":
                create_keystore(args.passphrase, args.keystore_file)
                print(f"Keystore created: {args.keystore_file}")
            case "generate_keypair":
                if args.study_program:
                    head = generate_head_key_pair(args.study_program, args.key_size)
                    keypair = {"key_id": head.key_id, "public_key": head.public_key,
                               "private_key": head.private_key, "key_size": head.key_size}
                else:
                    keypair = generate_keypair(args.key_size)
                public = {k: v for k, v in keypair.items() if k != "private_key"}
                with open(args.pubfile, "w") as f:
                    json.dump(public, f)
                if args.keystore and args.passphrase and args.key_name:
                    store_key_in_keystore(args.passphrase, args.key_name, keypair, args.keystore)
                    print(f"RSA keys generated: {args.pubfile} (public), private stored in keystore")
                else:
                    with open(args.privfile, "w") as f:
                        json.dump(keypair, f)
                    print(f"RSA keys generated: {args.pubfile} (public), {args.privfile} (private)")
                if "key_id" in keypair:
                    print(f"Key ID: {bcolors.OKCYAN}{keypair['key_id']}{bcolors.ENDC}")
            case "hash":
                print(hash_command(args))
            case "sign_record":
                record = load_record_file(args.record)
                private_key = load_private_key(args.privfile, args.keystore, args.passphrase, args.key_name)
                signature = sign_academic_record(record, private_key, args.key_id)
                with open(args.out_file, "w") as f:
                    json.dump(signature.to_dict(), f, indent=2)
                print(f"Record signed: {args.out_file}")
            case "verify_record":
                record = load_record_file(args.record)
                with open(args.sigfile, "r") as f:
                    signature = DigitalSignature.from_dict(json.load(f))
                result = verify_academic_record(record, signature, load_public_key(args.pubfile))
                print_verification(result)
                if not result.is_valid:
                    sys.exit(2)
            case "protect_record":
                params = CryptoParams(shamir_threshold=args.threshold, key_source=args.key_source)
                private_key = load_private_key(args.privfile, args.keystore, args.passphrase, args.key_name)
                out_file = protect_record_file(
                    record_file=args.record,
                    identities={"student": args.student, "advisor": args.advisor, "head": args.head},
                    advisor_pool=[a.strip() for a in args.advisors.split(",") if a.strip()],
                    pubfiles={args.student: args.student_pub, args.advisor: args.advisor_pub,
                              args.head: args.head_pub},
                    head_private_key=private_key,
                    head_key_id=args.head_key_id,
                    out_file=args.out_file,
                    params=params,
                )
                print(f"Protected record written: {out_file}")
            case "direct_access":
                private_key = load_private_key(args.privfile, args.keystore, args.passphrase, args.key_name)
                print_access_response(direct_access_file(args.bundle, args.user_id, private_key, args.head_pub))
            case "group_access":
                advisors = [a.strip() for a in args.advisors.split(",") if a.strip()]
                params = CryptoParams(shamir_threshold=args.threshold)
                print_access_response(group_access_file(args.bundle, advisors, args.head_pub, params))
            case "rc4_encrypt" | "rc4_decrypt":
                with open(args.in_path, "rb") as f:
                    data = f.read()
                process = encrypt_binary if args.command == "rc4_encrypt" else decrypt_binary
                with open(args.out_file, "wb") as f:
                    f.write(process(data, args.key))
                print(f"Written: {args.out_file}")
            case "aes_key":
                print(generate_key(args.key_size, args.key_source))
            case _:
                _=os.system("cls") | os.system("clear")
                while True:
                    print(f"{bcolors.WARNING}{bcolors.BOLD}Academic Vault - Protected Academic Records{bcolors.ENDC}")
                    print(f"{bcolors.GREY}{bcolors.BOLD}RSA · SHA-3 · AES · Shamir · BBS · RC4{bcolors.ENDC}")
                    print("")
                    print(f"{bcolors.BOLD}1){bcolors.ENDC} Create encrypted keystore")
                    print(f"{bcolors.BOLD}2){bcolors.ENDC} Generate RSA keypair")
                    print(f"{bcolors.BOLD}3){bcolors.ENDC} Hash text or file (SHA-3 / SHAKE)")
                    print(f"{bcolors.BOLD}4){bcolors.ENDC} Sign academic record")
                    print(f"{bcolors.BOLD}5){bcolors.ENDC} Verify academic record")
                    print(f"{bcolors.BOLD}6){bcolors.ENDC} Protect academic record")
                    print(f"{bcolors.BOLD}7){bcolors.ENDC} Direct access with private key")
                    print(f"{bcolors.BOLD}8){bcolors.ENDC} Group access with advisor shares")
                    print(f"{bcolors.BOLD}9){bcolors.ENDC} RC4 encrypt/decrypt transcript file")
                    print(f"{bcolors.BOLD}10){bcolors.ENDC} Generate AES key")
                    print(f"{bcolors.BOLD}0){bcolors.ENDC} Exit")
                    print("")
                    choice = input(f"{bcolors.BOLD}Choice: {bcolors.ENDC}").strip()
                    try:
                        match choice:
                            case "0":
                                break
                            case "1":
                                menu_generate_keystore()
                            case "2":
                                menu_generate_keypair()
                            case "3":
                                menu_hash()
                            case "4":
                                menu_sign_record()
                            case "5":
                                menu_verify_record()
                            case "6":
                                menu_protect_record()
                            case "7":
                                menu_direct_access()
                            case "8":
                                menu_group_access()
                            case "9":
                                menu_rc4()
                            case "10":
                                menu_aes_key()
                            case _:
                                print("Invalid choice")
                    except (ValueError, OSError, KeyError) as e:
                        print(f"{bcolors.FAIL}ERROR:{bcolors.ENDC}", e)
                    _=input(f"{bcolors.OKGREEN}Enter to continue...{bcolors.ENDC}")
                    _=os.system("cls") | os.system("clear")
    except (ValueError, OSError, KeyError) as e:
        print(f"{bcolors.FAIL}ERROR:{bcolors.ENDC}", e)
        sys.exit(1)

if __name__ == "__main__":
    main()

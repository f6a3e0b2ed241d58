"""
Academic Vault - protected academic records from first-principles cryptography

Key Cryptographic Principles Documented:
Asymmetric Cryptography:

Textbook RSA (e = 65537) for key wrapping and record signatures
Miller-Rabin probabilistic primality testing with bounded prime searches
Hash-then-sign over SHA3-256 digests

Hashing:

Keccak-f[1600] sponge construction (theta, rho, pi, chi, iota)
SHA3-224/256/384/512 fixed-output and SHAKE128/256 extendable-output
Delimiter-free canonical serialization of records for signing

Symmetric Cryptography:

AES-128/192/256 (FIPS-197) in ECB mode with PKCS#7 padding
RC4 stream cipher for transcript files

Randomness:

Blum-Blum-Shub generator (x <- x^2 mod pq, Blum primes) for AES keys
Platform CSPRNG for Shamir coefficients and primality witnesses

Access Control:

Dual access: record key wrapped for student, advisor and program head
Threshold access: (3, n) Shamir shares of the key across the advisor pool
Three-way signature state: verified, unverified (unsigned) and invalid
Secure key storage with PBKDF2 + Fernet encryption

This implementation is for educational purposes: it is not constant-time and
uses unpadded RSA, so it is not cryptographically secure.
"""
from academic_vault.errors import (
    CryptoError, DataTooLarge, InsufficientShares, InvalidKeySize, InvalidPadding, InvalidThreshold,
    NoInverseExists, PrimeGenerationTimeout, SecretTooLarge
)

from academic_vault.models import (
    AcademicRecord, AccessResponse, AccessType, Course, CryptoParams, DigitalSignature, RSAKeyPair,
    RSAPrivateKey, RSAPublicKey, SecretShare, VerificationStatus, bcolors
)

from academic_vault.utils.keygen import (
    generate_keypair, generate_head_key_pair, public_key_to_json, public_key_from_json,
    private_key_to_json, private_key_from_json
)

from academic_vault.utils.keystore import (
    create_keystore, retrieve_key_from_keystore, load_keystore, store_key_in_keystore
)

from academic_vault.core import (
    access_record, calculate_ipk, create_direct_access_keys, decrypt_direct_access_key, group_decrypt,
    prepare_record, protect_record
)

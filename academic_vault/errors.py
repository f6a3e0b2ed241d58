# -----------------------------
# Error Taxonomy
# -----------------------------
# Every error raised by the toolkit subclasses ValueError so callers that
# already guard with ``except ValueError`` keep working.


class CryptoError(ValueError):
    """Base class for all academic_vault errors."""


# -----------------------------
# Parameter validation
# -----------------------------
class InvalidKeySize(CryptoError):
    pass


class InvalidThreshold(CryptoError):
    pass


class SecretTooLarge(CryptoError):
    pass


class DataTooLarge(CryptoError):
    pass


class MalformedInput(CryptoError):
    pass


class InvalidHashLength(CryptoError):
    pass


class InvalidPadding(CryptoError):
    pass


class InvalidBlumPrime(CryptoError):
    pass


class InvalidShare(CryptoError):
    pass


class InvalidRecord(CryptoError):
    pass


# -----------------------------
# Cryptographic inconsistency
# -----------------------------
class NoInverseExists(CryptoError):
    pass


class ExponentNotCoprime(CryptoError):
    pass


# -----------------------------
# Resource exhaustion
# -----------------------------
class PrimeGenerationTimeout(CryptoError):
    pass


# -----------------------------
# Insufficient shares
# -----------------------------
class InsufficientShares(CryptoError):
    pass


class InsufficientAdvisors(CryptoError):
    pass


# -----------------------------
# Orchestration wrappers
# -----------------------------
class RecordEncryptionError(CryptoError):
    pass


class RecordDecryptionError(CryptoError):
    pass


class KeySharingError(CryptoError):
    pass


class SigningError(CryptoError):
    pass

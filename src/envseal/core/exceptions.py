"""
Exceptions for envseal
Everything derives from EnvSealError so callers have a single catch-all
"""


class EnvSealError(Exception):
    # general container for errors
    pass


class ValidationError(EnvSealError):
    # raised on malformed envelopes, bad base64, short master secrets or empty values
    pass


class KeyDerivationError(EnvSealError):
    # raised when the argon2 call itself fails (not for bad input)
    pass


class IntegrityError(EnvSealError):
    # common parent for the two ways an envelope can fail to open
    pass


class AuthenticationError(IntegrityError):
    # raised on an HMAC mismatch (tampered fields or wrong secret)
    pass


class DecryptionError(IntegrityError):
    # raised when the AES-GCM tag does not verify
    pass


class SecretNotFoundError(EnvSealError):
    # raised when a requested variable or stage secret DNE
    pass


class ConfigurationError(EnvSealError):
    # raised for unknown stages or unusable settings
    pass


class EnvFileNotFoundError(ConfigurationError):
    # raised when a required .env file is missing
    pass

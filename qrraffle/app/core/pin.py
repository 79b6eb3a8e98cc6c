"""5-digit confirmation codes.

Not a password mechanism: the code space is small enough to brute force, it
only gates the "confirm attendance" step of a raffle. Raw codes are never
stored, only their SHA-256 hex digest.
"""
import hashlib
import hmac
import re

PIN_LENGTH = 5

_PIN_RE = re.compile(r"[0-9]{%d}" % PIN_LENGTH)


def is_valid_pin(pin: str) -> bool:
    return isinstance(pin, str) and _PIN_RE.fullmatch(pin) is not None


def hash_pin(pin: str) -> str:
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


def verify_pin(pin: str, pin_hash: str) -> bool:
    return hmac.compare_digest(hash_pin(pin), pin_hash)

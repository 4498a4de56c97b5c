# src/dblocator/core/passwords.py

import re
import secrets
import string

MIN_LENGTH = 8
MAX_LENGTH = 50
SPECIAL_CHARACTERS = "!@#$%^&*()"
_ALPHABET = string.ascii_letters + string.digits + SPECIAL_CHARACTERS

def is_strong_password(password: str) -> bool:
    """8-50 characters with an upper-case letter, a lower-case letter, a digit and a special character."""
    if not password or not MIN_LENGTH <= len(password) <= MAX_LENGTH:
        return False
    return all((
        re.search(r"[A-Z]", password),
        re.search(r"[a-z]", password),
        re.search(r"[0-9]", password),
        re.search(r"[^A-Za-z0-9]", password),
    ))

def generate_password(length: int = 50) -> str:
    length = max(MIN_LENGTH, min(MAX_LENGTH, length))
    while True:
        candidate = "".join(secrets.choice(_ALPHABET) for _ in range(length))
        if is_strong_password(candidate):
            return candidate

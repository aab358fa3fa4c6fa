"""
Collab Platform API - Password Hasher
======================================

What:  bcrypt hashing and verification for account passwords.
How:   bcrypt.hashpw with a salt of fixed cost (rounds), bcrypt.checkpw to
       verify. The cost is chosen when the hasher is constructed
       (Settings.password_hash_rounds, default 12) and never per call.

Hashing runs on the event loop thread. At cost 12 a hash takes a few
hundred milliseconds, which the expected request volume tolerates.

bcrypt only reads the first 72 bytes of a password; longer input is cut to
72 bytes explicitly so every bcrypt release treats it the same way.
"""

import bcrypt

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """
    Args:
        rounds: bcrypt cost factor (4-31; 12 in production, 4 in tests).
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        # Hash compared against when the account does not exist, so unknown
        # emails cost the same bcrypt work as wrong passwords
        self._dummy_hash = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(rounds=rounds))

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    def verify_dummy(self, password: str) -> None:
        bcrypt.checkpw(_encode(password), self._dummy_hash)

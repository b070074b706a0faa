"""
Application-layer encryption for clinical note bodies.

Note content is PHI, so it is stored as Fernet ciphertext and only turned
back into text when a note is read or projected onto the timeline.
"""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from records_timeline.config import settings


class NoteDecryptionError(ValueError):
    """Ciphertext could not be decrypted with the configured key."""


class NoteCipher:
    """Wraps Fernet symmetric encryption for note content."""

    def __init__(self, key: str | bytes | None = None):
        raw_key = key or settings.PHI_ENCRYPTION_KEY
        if not raw_key:
            # Development only; production keys come from the environment
            raw_key = Fernet.generate_key()
        self._fernet = Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)

    def encrypt(self, plaintext: str) -> str:
        if not plaintext:
            return ""
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str | None) -> str:
        if not ciphertext:
            return ""
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as exc:
            raise NoteDecryptionError("Note content could not be decrypted") from exc


note_cipher = NoteCipher()

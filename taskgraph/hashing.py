"""Content hashing used as the idempotency key for transcripts."""
import hashlib

from .errors import ValidationError


def hash_transcript(transcript: str) -> str:
    """Return the hex SHA-256 digest of the UTF-8 encoded transcript text."""
    try:
        encoded = transcript.encode("utf-8")
    except UnicodeEncodeError as e:
        # Lone surrogates can arrive through JSON escapes but cannot be stored.
        raise ValidationError(f"Transcript is not valid UTF-8 text: {e.reason}", field="transcript") from e
    return hashlib.sha256(encoded).hexdigest()

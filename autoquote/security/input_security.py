"""Validation of user supplied text before it reaches prompts, logs or disk."""

import re

MAX_TEXT_LENGTH = 2000
MAX_NAME_LENGTH = 200

_TAG_RE = re.compile(r"<[^>]*>")
_PHONE_CHARS_RE = re.compile(r"[\s().-]")
_PHONE_RE = re.compile(r"^\+?\d{7,15}$")

DANGEROUS_PATTERNS = [
    "<script",
    "</script>",
    "javascript:",
    "onclick=",
    "onerror=",
    "onload=",
]


class InputValidationError(ValueError):
    """User input rejected as unsafe or malformed."""


def sanitize_input(text: str | None, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Sanitize free text.

    Rejects script injection attempts, strips markup and control characters
    (newlines and tabs are kept) and truncates to ``max_length``.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text

    Raises:
        InputValidationError: If the text contains a script injection pattern
    """
    if not text:
        return ""

    text_lower = text.lower()
    for pattern in DANGEROUS_PATTERNS:
        if pattern in text_lower:
            raise InputValidationError("Invalid input detected")

    text = _TAG_RE.sub("", text)
    text = "".join(char for char in text if ord(char) >= 32 or char in "\n\t")
    return text[:max_length].strip()


def sanitize_name(text: str | None) -> str:
    return sanitize_input(text, max_length=MAX_NAME_LENGTH).replace("\n", " ")


def validate_phone(phone: str) -> str:
    """Normalize a phone number by dropping formatting characters.

    Raises:
        InputValidationError: If what remains is not 7 to 15 digits
    """
    compact = _PHONE_CHARS_RE.sub("", phone or "")
    if not _PHONE_RE.match(compact):
        raise InputValidationError(f"Invalid phone number: {phone!r}")
    return compact

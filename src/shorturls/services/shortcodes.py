from __future__ import annotations

import secrets
import string
from typing import Callable, Optional

from shorturls.core.errors import GenerationExhausted, ShortcodeConflict
from shorturls.core.link_rules import RESERVED_CODES, validate_shortcode

_BASE62_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase

BASE_LENGTH = 6
MAX_ATTEMPTS = 6
ATTEMPTS_PER_LENGTH = 4


def _base62_code(length: int) -> str:
    return "".join(secrets.choice(_BASE62_ALPHABET) for _ in range(length))


def _code_length(attempt: int) -> int:
    # 6,6,6,6,7,7
    return BASE_LENGTH + attempt // ATTEMPTS_PER_LENGTH


def is_taken(code: str, exists: Callable[[str], bool]) -> bool:
    return code in RESERVED_CODES or exists(code)


def allocate(
    exists: Callable[[str], bool],
    preferred: Optional[str] = None,
) -> str:
    """
    Picks the shortcode for a new link.

    ``exists`` answers whether a code is already stored. Nothing is reserved
    here: the insert can still lose a race against another request.
    """
    if preferred is not None:
        code = validate_shortcode(preferred)
        if is_taken(code, exists):
            raise ShortcodeConflict()
        return code

    for attempt in range(MAX_ATTEMPTS):
        code = _base62_code(_code_length(attempt))
        if not is_taken(code, exists):
            return code

    raise GenerationExhausted()

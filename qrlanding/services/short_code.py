"""Short code generation for public QR URLs."""

import logging
import secrets
import string
from collections.abc import Awaitable, Callable

from qrlanding.errors import ShortCodeRetryExhausted

logger = logging.getLogger(__name__)

SHORT_CODE_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
DEFAULT_LENGTH = 8
DEFAULT_MAX_ATTEMPTS = 20


def generate_short_code(length: int = DEFAULT_LENGTH) -> str:
    """Return a uniformly random string over the 62-symbol alphabet."""
    if length < 1:
        raise ValueError("Short code length must be positive")
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))


async def ensure_unique(
    exists: Callable[[str], Awaitable[bool]],
    length: int = DEFAULT_LENGTH,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Generate codes until ``exists`` reports one as unused.

    Raises:
        ShortCodeRetryExhausted: every candidate within ``max_attempts`` was taken.
    """
    for attempt in range(1, max_attempts + 1):
        code = generate_short_code(length)
        if not await exists(code):
            if attempt > 1:
                logger.info(f"Found free short code after {attempt} attempts")
            return code

    logger.warning(f"Short code space exhausted after {max_attempts} attempts (length={length})")
    raise ShortCodeRetryExhausted(max_attempts)

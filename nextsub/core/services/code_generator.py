"""
Generation of high-entropy one-time admin codes.

"""

import secrets
import string

from nextsub.core.config import auth_logger, settings

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

CHARACTER_CLASSES = (UPPERCASE, LOWERCASE, DIGITS, SYMBOLS)
ALPHABET = "".join(CHARACTER_CLASSES)

_random = secrets.SystemRandom()


class SecureCodeGenerator:
    """
    Generates admin login codes from the operating system's CSPRNG.

    Every code has a length drawn uniformly from
    [ADMIN_CODE_LENGTH_MIN, ADMIN_CODE_LENGTH_MAX] and contains at least one
    uppercase letter, one lowercase letter, one digit and one symbol.
    """

    @classmethod
    def pick_length(
        cls, min_length: int | None = None, max_length: int | None = None
    ) -> int:
        low = min_length if min_length is not None else settings.ADMIN_CODE_LENGTH_MIN
        high = max_length if max_length is not None else settings.ADMIN_CODE_LENGTH_MAX
        if low < len(CHARACTER_CLASSES) or low > high:
            raise ValueError(
                f"Invalid code length bounds: [{low}, {high}]"
            )
        return low + secrets.randbelow(high - low + 1)

    @classmethod
    def generate(cls, length: int | None = None) -> str:
        """
        Generate a new admin code.

        One character is drawn from each class, the rest from the full
        alphabet, and the result is shuffled so the guaranteed characters
        do not sit at fixed positions.

        Args:
            length: Exact length to use. Defaults to a random length within
                    the configured bounds.

        Returns:
            str: The plaintext code.

        Raises:
            ValueError: If the length cannot hold one character of each class.
        """
        if length is None:
            length = cls.pick_length()
        if length < len(CHARACTER_CLASSES):
            raise ValueError(
                f"Code length must be at least {len(CHARACTER_CLASSES)}, got {length}"
            )

        chars = [secrets.choice(char_class) for char_class in CHARACTER_CLASSES]
        chars.extend(
            secrets.choice(ALPHABET) for _ in range(length - len(CHARACTER_CLASSES))
        )
        _random.shuffle(chars)

        auth_logger.debug(f"Admin code of length {length} generated")
        return "".join(chars)


__all__ = [
    "ALPHABET",
    "CHARACTER_CLASSES",
    "SYMBOLS",
    "SecureCodeGenerator",
]

"""Human-presentable identifiers: INC-/EVT- prefix, base36 time token, random suffix."""

import secrets
import threading
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


class IdGenerator:
    """Issues ids that are never repeated for the lifetime of the generator."""

    def __init__(self, prefix: str, suffix_length: int = 5):
        self._prefix = prefix
        self._suffix_length = suffix_length
        self._issued: set[str] = set()
        self._lock = threading.Lock()

    def _candidate(self) -> str:
        token = to_base36(time.time_ns() // 1_000_000)
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(self._suffix_length))
        return f"{self._prefix}-{token}-{suffix}".upper()

    def next_id(self) -> str:
        with self._lock:
            candidate = self._candidate()
            while candidate in self._issued:
                candidate = self._candidate()
            self._issued.add(candidate)
            return candidate

"""Zeroable buffers for session keys and intermediate plaintext."""

import ctypes
import hmac
import warnings
from collections.abc import Iterator
from typing import Self


def _buffer_address(data: bytearray) -> int:
    return ctypes.addressof((ctypes.c_char * len(data)).from_buffer(data))


def _secure_zero(data: bytearray) -> None:
    if len(data) == 0:
        return
    try:
        ctypes.memset(_buffer_address(data), 0, len(data))
    except (TypeError, ValueError, BufferError) as exc:
        # Exported memoryviews pin the buffer; fall back to a slice assignment.
        warnings.warn(f"ctypes.memset failed, using fallback: {exc}", RuntimeWarning)
        data[:] = bytes(len(data))


class SecureBytes:
    """
    Owned copy of sensitive bytes that is zeroed on clear().

    Use as context manager for guaranteed cleanup. The `buffer` property hands out
    the live bytearray so primitives can read it without an immutable copy.
    """

    __slots__ = ("_data", "_cleared")

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytearray(data)
        self._cleared = False

    def __del__(self) -> None:
        self.clear()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.clear()

    @staticmethod
    def wipe(*buffers: bytearray) -> None:
        """Zero caller-owned bytearrays in place."""
        for buffer in buffers:
            _secure_zero(buffer)

    def clear(self) -> None:
        """Zero memory. Idempotent."""
        if self._cleared:
            return
        _secure_zero(self._data)
        self._cleared = True

    @property
    def buffer(self) -> bytearray:
        self._check_cleared()
        return self._data

    @property
    def is_cleared(self) -> bool:
        return self._cleared

    def __bytes__(self) -> bytes:
        """Warning: creates an insecure copy."""
        self._check_cleared()
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return not self._cleared and len(self._data) > 0

    def __iter__(self) -> Iterator[int]:
        self._check_cleared()
        return iter(self._data)

    def __repr__(self) -> str:
        if self._cleared:
            return "SecureBytes(<cleared>)"
        return f"SecureBytes(<{len(self._data)} bytes>)"

    def __eq__(self, other: object) -> bool:
        """Constant-time comparison."""
        if isinstance(other, SecureBytes):
            if self._cleared or other._cleared:
                return False
            return hmac.compare_digest(self._data, other._data)
        if isinstance(other, (bytes, bytearray)):
            if self._cleared:
                return False
            return hmac.compare_digest(self._data, other)
        return NotImplemented

    def __hash__(self) -> int:
        raise TypeError("SecureBytes is not hashable")

    def _check_cleared(self) -> None:
        if self._cleared:
            raise RuntimeError("SecureBytes has been cleared")

"""PKCS#7 padding with a configurable block size.

The WeCom callback protocol pads to 32 bytes (two AES blocks) rather
than the AES block size, so the block size is a parameter here and the
cipher layer runs with its own padding disabled.
"""

from __future__ import annotations

import logging

_logger = logging.getLogger(__name__)

#: Block size used by the WeCom frame padding.
WECOM_BLOCK_SIZE = 32

#: Native AES block size, used by the Feishu payload padding.
AES_BLOCK_SIZE = 16


def add_pkcs7(data: bytes, block_size: int = AES_BLOCK_SIZE) -> bytes:
    """Add PKCS#7 padding.

    If *data* length is already a multiple of *block_size*, a full block
    of padding is appended, as PKCS#7 requires.

    Parameters
    ----------
    data : bytes
        Data to pad.
    block_size : int
        Block size in bytes, 1 to 255.

    Returns
    -------
    bytes
        Padded data whose length is a multiple of *block_size*.
    """
    if not 0 < block_size < 256:
        raise ValueError(f"PKCS#7 block size must be 1..255 (got {block_size})")
    remainder = len(data) % block_size
    pad_len = block_size if remainder == 0 else block_size - remainder
    return data + bytes([pad_len] * pad_len)


def strip_pkcs7(data: bytes, block_size: int = AES_BLOCK_SIZE) -> bytes:
    """Strip PKCS#7 padding, returning data as-is if padding is invalid.

    A pad byte outside ``1..block_size``, longer than the buffer, or a
    padding run whose bytes disagree leaves *data* untouched so callers
    can still attempt a best-effort parse.

    Parameters
    ----------
    data : bytes
        Potentially padded data.
    block_size : int
        Largest pad length accepted.

    Returns
    -------
    bytes
        Unpadded data, or *data* unchanged if padding is invalid.
    """
    if not data:
        return data
    pad = data[-1]
    if pad == 0 or pad > block_size or pad > len(data):
        _logger.warning("Padding value %d out of range, keeping %d bytes as-is", pad, len(data))
        return data
    if all(b == pad for b in data[-pad:]):
        return data[:-pad]
    _logger.warning("Padding run of %d bytes is inconsistent, keeping data as-is", pad)
    return data

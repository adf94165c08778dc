"""WeCom plaintext frame layout.

Frame layout (before padding)::

    random (16 bytes) | msg_len (uint32 BE) | msg (msg_len bytes) | corp_id

Parsing is deliberately tolerant: a buffer that is too short or whose
length prefix does not fit is returned as a best-effort message with
``fallback=True`` rather than rejected. Callers wanting strict
validation should check :attr:`Frame.fallback`.
"""

from __future__ import annotations

import enum
import logging
import struct
from dataclasses import dataclass

from pyimbridge.exceptions import PartyMismatchError

_logger = logging.getLogger(__name__)

RANDOM_SIZE = 16
_LENGTH = struct.Struct(">I")
HEADER_SIZE = RANDOM_SIZE + _LENGTH.size


class PartyMismatchPolicy(enum.Enum):
    """What to do when a frame's party identifier is not the configured one."""

    LOG = "log"
    STRICT = "strict"


@dataclass(frozen=True)
class Frame:
    """Parsed plaintext frame."""

    random: bytes
    message: bytes
    party_identifier: bytes = b""
    fallback: bool = False

    @property
    def text(self) -> str:
        """Message decoded as UTF-8, replacing undecodable bytes."""
        return self.message.decode("utf-8", errors="replace")

    @property
    def party(self) -> str:
        return self.party_identifier.decode("utf-8", errors="replace")


def build_frame(random16: bytes, message: bytes | str, party_identifier: bytes | str) -> bytes:
    """Concatenate ``random || uint32BE(len(message)) || message || party``.

    Padding is not applied here.
    """
    if len(random16) != RANDOM_SIZE:
        raise ValueError(f"Frame random prefix must be {RANDOM_SIZE} bytes (got {len(random16)})")
    msg = message.encode("utf-8") if isinstance(message, str) else bytes(message)
    party = party_identifier.encode("utf-8") if isinstance(party_identifier, str) else bytes(party_identifier)
    return bytes(random16) + _LENGTH.pack(len(msg)) + msg + party


def parse_frame(buf: bytes) -> Frame:
    """Split a decrypted, unpadded buffer into its frame fields."""
    if len(buf) < HEADER_SIZE:
        _logger.warning("Frame too short (%d bytes), returning best-effort message", len(buf))
        offset = RANDOM_SIZE if len(buf) >= RANDOM_SIZE else 0
        return Frame(random=bytes(buf[:offset]), message=bytes(buf[offset:]), fallback=True)

    random = bytes(buf[:RANDOM_SIZE])
    (msg_len,) = _LENGTH.unpack_from(buf, RANDOM_SIZE)
    if msg_len <= 0 or msg_len > len(buf) - HEADER_SIZE:
        _logger.warning("Frame length prefix %d does not fit %d-byte buffer, using raw body", msg_len, len(buf))
        return Frame(random=random, message=bytes(buf[RANDOM_SIZE:]), fallback=True)

    end = HEADER_SIZE + msg_len
    return Frame(
        random=random,
        message=bytes(buf[HEADER_SIZE:end]),
        party_identifier=bytes(buf[end:]),
    )


def check_party(frame: Frame, expected: str, policy: PartyMismatchPolicy) -> None:
    """Apply the mismatch *policy* to *frame*'s party identifier.

    An empty identifier (including every fallback frame) is never a
    mismatch.
    """
    if not frame.party_identifier:
        return
    received = frame.party
    if received == expected:
        return
    if policy is PartyMismatchPolicy.STRICT:
        raise PartyMismatchError(
            "Frame party identifier does not match configuration",
            expected=expected,
            received=received,
        )
    _logger.warning("Frame party identifier mismatch: expected=%s received=%s", expected, received)

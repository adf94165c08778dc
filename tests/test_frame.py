from __future__ import annotations

import logging
import struct

import pytest

from pyimbridge._crypto.frame import (
    Frame,
    PartyMismatchPolicy,
    build_frame,
    check_party,
    parse_frame,
)
from pyimbridge.exceptions import PartyMismatchError

RANDOM = bytes(range(16))


def test_build_frame_layout() -> None:
    frame = build_frame(RANDOM, "hello", "wwCORP123")
    assert frame[:16] == RANDOM
    assert frame[16:20] == b"\x00\x00\x00\x05"
    assert frame[20:25] == b"hello"
    assert frame[25:] == b"wwCORP123"


def test_build_frame_counts_utf8_bytes() -> None:
    frame = build_frame(RANDOM, "你好", b"corp")
    (length,) = struct.unpack(">I", frame[16:20])
    assert length == 6
    assert parse_frame(frame).text == "你好"


@pytest.mark.parametrize("random16", [b"", b"x" * 15, b"x" * 17])
def test_build_frame_requires_16_byte_random(random16: bytes) -> None:
    with pytest.raises(ValueError, match="16 bytes"):
        build_frame(random16, "m", "p")


def test_parse_frame_splits_fields() -> None:
    parsed = parse_frame(build_frame(RANDOM, "hello", "wwCORP123"))
    assert parsed == Frame(random=RANDOM, message=b"hello", party_identifier=b"wwCORP123")
    assert parsed.text == "hello"
    assert parsed.party == "wwCORP123"


def test_parse_frame_empty_party_is_allowed() -> None:
    parsed = parse_frame(build_frame(RANDOM, "echo", b""))
    assert parsed.message == b"echo"
    assert parsed.party_identifier == b""
    assert not parsed.fallback


def test_parse_frame_short_buffer_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        parsed = parse_frame(RANDOM + b"abc")
    assert parsed.fallback
    assert parsed.random == RANDOM
    assert parsed.message == b"abc"
    assert "too short" in caplog.text


def test_parse_frame_tiny_buffer_keeps_everything() -> None:
    parsed = parse_frame(b"hi")
    assert parsed.fallback
    assert parsed.random == b""
    assert parsed.message == b"hi"


@pytest.mark.parametrize("declared", [0, 100, 0xFFFFFFFF])
def test_parse_frame_bad_length_prefix_uses_raw_body(declared: int) -> None:
    buf = RANDOM + struct.pack(">I", declared) + b"hello"
    parsed = parse_frame(buf)
    assert parsed.fallback
    assert parsed.message == buf[16:]
    assert parsed.party_identifier == b""


def test_check_party_accepts_match_and_empty() -> None:
    check_party(Frame(RANDOM, b"m", b"wwCORP123"), "wwCORP123", PartyMismatchPolicy.STRICT)
    check_party(Frame(RANDOM, b"m", b""), "wwCORP123", PartyMismatchPolicy.STRICT)
    check_party(Frame(b"", b"m", fallback=True), "wwCORP123", PartyMismatchPolicy.STRICT)


def test_check_party_strict_raises() -> None:
    with pytest.raises(PartyMismatchError) as info:
        check_party(Frame(RANDOM, b"m", b"wwOTHER"), "wwCORP123", PartyMismatchPolicy.STRICT)
    assert info.value.expected == "wwCORP123"
    assert info.value.received == "wwOTHER"


def test_check_party_log_only_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="pyimbridge._crypto.frame"):
        check_party(Frame(RANDOM, b"m", b"wwOTHER"), "wwCORP123", PartyMismatchPolicy.LOG)
    assert "mismatch" in caplog.text
    assert "wwOTHER" in caplog.text

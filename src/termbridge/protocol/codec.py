"""Framing rules for the single WebSocket carrying a terminal session.

Client to server, every message is one of two variants:

    Control  binary, byte 0 == 0xFF, then UTF-8 "<columns>,<rows>"
    Data     any text message, or any binary message not starting with 0xFF

Server to client, every message is Data: raw rendered output with no
framing at all.

0xFF can never start legitimate client input. It is not a valid byte
anywhere in UTF-8, and terminal input sequences (keys, SGR mouse reports,
bracketed paste) start with printable ASCII, a C0 control or ESC.
"""

from __future__ import annotations

import re

from termbridge.domain.models import MAX_DIMENSION, ControlPacket, DataFrame, WireMessage

RESIZE_MARKER = 0xFF

# Digit runs are bounded so oversized bodies fail the match before int()
_GEOMETRY = re.compile(rb"([0-9]{1,5}),([0-9]{1,5})")


def encode_resize(columns: int, rows: int) -> bytes:
    """Build a Control message announcing new viewport geometry."""
    if not (0 < columns <= MAX_DIMENSION and 0 < rows <= MAX_DIMENSION):
        raise ValueError(
            f"Geometry must be between 1 and {MAX_DIMENSION}, got {columns}x{rows}"
        )
    return bytes([RESIZE_MARKER]) + f"{columns},{rows}".encode("utf-8")


def encode_packet(packet: ControlPacket) -> bytes:
    return encode_resize(packet.columns, packet.rows)


def decode_message(message: bytes | bytearray | memoryview | str) -> WireMessage:
    """Classify one received message as Control or Data.

    Only the first byte of a binary message is inspected to tell the
    variants apart. Data payloads are returned unchanged.

    Raises:
        MalformedControlPacket: The marker is present but the remainder is
            not two decimal integers in 1..MAX_DIMENSION separated by a
            comma.
    """
    if isinstance(message, str):
        return DataFrame(payload=message.encode("utf-8"))

    raw = bytes(message)
    if not raw or raw[0] != RESIZE_MARKER:
        return DataFrame(payload=raw)

    body = raw[1:]
    match = _GEOMETRY.fullmatch(body)
    if match is None:
        raise MalformedControlPacket("Control packet is not '<columns>,<rows>'", body)

    columns, rows = int(match.group(1)), int(match.group(2))
    if not (0 < columns <= MAX_DIMENSION and 0 < rows <= MAX_DIMENSION):
        raise MalformedControlPacket(
            f"Control packet geometry must be between 1 and {MAX_DIMENSION}", body
        )
    return ControlPacket(columns=columns, rows=rows)


class MalformedControlPacket(ValueError):
    """Raised when a marker-prefixed message does not carry valid geometry."""

    def __init__(self, message: str, body: bytes = b"") -> None:
        super().__init__(message)
        self.body = body

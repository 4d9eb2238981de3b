"""Wire framing for termbridge.

Public API:
    decode_message -- Classify a received message as Control or Data
    encode_resize -- Build a Control message for new viewport geometry
    MalformedControlPacket -- Raised for marker-prefixed garbage
"""

from termbridge.protocol.codec import (
    RESIZE_MARKER,
    MalformedControlPacket,
    decode_message,
    encode_packet,
    encode_resize,
)

__all__ = [
    "RESIZE_MARKER",
    "MalformedControlPacket",
    "decode_message",
    "encode_packet",
    "encode_resize",
]

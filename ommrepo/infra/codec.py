"""
Encoding helpers for the repository index transport format.

Logos and descriptions are stored inside the index as data URIs:
- logo: data:<mime>;base64,<image bytes>
- description: data:application/octet-stream;base64,<zlib(CRLF text)>
"""

import base64
import binascii
import re
import zlib
from typing import Tuple
from urllib.parse import quote, unquote

OCTET_STREAM = "application/octet-stream"
COMPRESSION_LEVEL = 9

_LONE_LF = re.compile(r"(?<!\r)\n")
_DATA_URI = re.compile(r"^data:(?P<mime>[^;,]*);base64,(?P<data>.*)$", re.DOTALL)


def data_uri(mime_type: str, payload: bytes) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


def parse_data_uri(uri: str) -> Tuple[str, bytes]:
    """Split a base64 data URI into (mime type, raw bytes)."""
    match = _DATA_URI.match(uri.strip())
    if not match:
        raise ValueError("Not a base64 data URI")
    try:
        raw = base64.b64decode(match.group('data'), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return match.group('mime'), raw


def encode_logo(image_bytes: bytes, mime_type: str) -> str:
    if not image_bytes:
        raise ValueError("No logo data was given to be encoded.")
    return data_uri(mime_type, image_bytes)


def normalize_line_endings(text: str) -> str:
    """Convert LF line endings to CRLF, leaving existing CRLF pairs alone."""
    return _LONE_LF.sub("\r\n", text)


def encode_description(text: str) -> Tuple[str, int]:
    """
    Encode description text for the index.

    Returns:
        (payload, byte_length) where byte_length is the UTF-8 size of the
        normalized text plus one terminator byte
    """
    if not text:
        raise ValueError("No description text was given to be encoded.")

    data = normalize_line_endings(text).encode('utf-8')
    byte_length = len(data) + 1
    compressed = zlib.compress(data, COMPRESSION_LEVEL)
    return data_uri(OCTET_STREAM, compressed), byte_length


def decode_description(payload: str) -> str:
    """Inverse of encode_description (line endings stay CRLF)."""
    _, compressed = parse_data_uri(payload)
    try:
        return zlib.decompress(compressed).decode('utf-8')
    except zlib.error as e:
        raise ValueError(f"Description payload is not zlib data: {e}") from e


def url_encode_path(path: str) -> str:
    """
    Percent-encode a file path segment by segment so it can be embedded
    in a download URL. Directory separators become forward slashes and a
    leading './' is dropped.
    """
    posix = path.replace('\\', '/')
    while posix.startswith('./'):
        posix = posix[2:]
    return '/'.join(quote(segment, safe='') for segment in posix.split('/'))


def url_decode_path(path: str) -> str:
    return unquote(path)

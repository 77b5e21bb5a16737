# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Base64 codec for payloads that travel inside a protocol line."""

import base64
import binascii

from .exceptions import CodecError


def encode(data: bytes) -> str:
    """Encode bytes to standard base64 text"""
    return base64.b64encode(data).decode("ascii")


def decode(text: str) -> bytes:
    """Decode standard base64 text, rejecting anything outside the alphabet"""
    try:
        return base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise CodecError(f"Invalid base64 payload: {e}", cause=e)

import io
import logging
import os
import struct

import pytest


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)


@pytest.fixture
def uint32_stream():
    """Factory of streams containing a single unsigned little endian 4 bytes integer."""
    def _stream(value):
        return io.BytesIO(struct.pack('<I', value))

    return _stream

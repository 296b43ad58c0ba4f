# stegscan test configuration
# Shared fixtures: synthetic host images and a hand-built ZIP payload

import io
import os
import struct
import sys

import numpy as np
import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))


ZIP_DATA_SIZE = 0xC800  # 51200


def build_zip_payload():
    """
    Build a single-entry stored ZIP archive.

    The local header plus the first 994 bytes after it hold eight byte values
    128 times each, so the first 1024 bytes of the archive have exactly
    3 bits of entropy (0.375 normalized).
    """
    local_header = (
        b'PK\x03\x04'
        + struct.pack('<HHHHH', 0x14, 0, 0, 0, 0)   # version, flags, method, time, date
        + struct.pack('<III', 0, ZIP_DATA_SIZE, ZIP_DATA_SIZE)  # crc, sizes
        + struct.pack('<HH', 8, 0)                  # name length, extra length
    )
    balancing = (
        b'\x50' * 127 + b'\x4b' * 127 + b'\x03' * 127 + b'\x04' * 127
        + b'\x14' * 127 + b'\x00' * 106 + b'\xc8' * 126 + b'\x08' * 127
    )
    file_name = balancing[:8]
    file_data = balancing[8:] + b'\x00' * (ZIP_DATA_SIZE - len(balancing[8:]))

    local_entry = local_header + file_name + file_data
    central_directory = (
        b'PK\x01\x02'
        + struct.pack('<HHHHHH', 0x14, 0x14, 0, 0, 0, 0)  # made by, needed, flags, method, time, date
        + struct.pack('<III', 0, ZIP_DATA_SIZE, ZIP_DATA_SIZE)
        + struct.pack('<HHHHHII', 8, 0, 0, 0, 0, 0, 0)     # lengths, disk, attributes, offset
        + file_name
    )
    end_of_directory = (
        b'PK\x05\x06'
        + struct.pack('<HHHHIIH', 0, 0, 1, 1, len(central_directory), len(local_entry), 0)
    )
    return local_entry + central_directory + end_of_directory


def encode_image(pixels, fmt="PNG"):
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def noise_pixels():
    """60x60 RGB noise with a fixed seed."""
    return np.random.RandomState(7).randint(0, 256, (60, 60, 3)).astype(np.uint8)


@pytest.fixture(scope="session")
def png_bytes(noise_pixels):
    return encode_image(noise_pixels, "PNG")


@pytest.fixture(scope="session")
def jpeg_bytes():
    gradient = np.tile(np.arange(64, dtype=np.uint8) * 4, (64, 1))
    pixels = np.stack([gradient, gradient.T, np.full_like(gradient, 90)], axis=2)
    return encode_image(pixels, "JPEG")


@pytest.fixture(scope="session")
def zip_payload():
    return build_zip_payload()


@pytest.fixture(scope="session")
def scenario_bytes(png_bytes, zip_payload):
    """A PNG with a ZIP archive appended after its IEND chunk."""
    return png_bytes + zip_payload


@pytest.fixture
def image_dir(tmp_path, png_bytes, scenario_bytes):
    """Directory with one clean and one suspicious image."""
    directory = tmp_path / "images"
    directory.mkdir()
    (directory / "clean.png").write_bytes(png_bytes)
    (directory / "suspicious.png").write_bytes(scenario_bytes)
    (directory / "notes.txt").write_text("not an image")
    return directory

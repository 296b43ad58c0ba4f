"""
Least Significant Bit extraction and text recovery.

Least Significant Bit (LSB) steganography hides data in the lowest bits of
pixel channel values. The extractor reads those bits back with one of
several channel orders and tries to recover a readable message from them.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from stegscan import config

logger = logging.getLogger("stegscan.lsb.extractor")

# Printable ASCII plus tab, newline and carriage return
PRINTABLE_CHAR = rb"[\x20-\x7e\t\n\r]"
PRINTABLE_CHARS = re.compile(PRINTABLE_CHAR)

# Printable run of at least 10 characters closed by a null terminator
NULL_TERMINATED_TEXT = re.compile(rb"^(" + PRINTABLE_CHAR + rb"{10,})\x00")

# Start/end markers commonly wrapped around hidden messages
MESSAGE_MARKERS = [
    ("#####", "*****"),
    ("BEGIN_MESSAGE", "END_MESSAGE"),
    ("<!----", "---->"),
    ("-----BEGIN", "-----END"),
]


class LSBMethod(str, Enum):
    """Bit orders supported by the extractor."""
    STANDARD = "standard"
    TWO_BIT = "two_bit"
    RED_ONLY = "red_only"
    SEQUENTIAL = "sequential"

    @property
    def bits_per_pixel(self) -> int:
        return {"standard": 3, "two_bit": 6, "red_only": 1, "sequential": 1}[self.value]


@dataclass
class LSBExtraction:
    method: LSBMethod
    bit_count: int
    data: bytes
    text: Optional[str] = None
    heuristic: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "bit_count": self.bit_count,
            "byte_count": len(self.data),
            "text": self.text,
            "heuristic": self.heuristic,
            "found_text": self.text is not None,
        }


def as_pixel_rows(pixels) -> np.ndarray:
    """
    Reshape a pixel buffer to one row per pixel.

    Args:
        pixels: (H, W, C) array, (N, C) array, or a flat RGBA-interleaved buffer

    Returns:
        uint8 array of shape (N, C)

    Raises:
        ValueError: If the buffer has fewer than 3 channels
    """
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        array = np.frombuffer(bytes(pixels), dtype=np.uint8)
    else:
        array = np.asarray(pixels, dtype=np.uint8)
    if array.ndim == 1:
        array = array[:array.size - array.size % 4].reshape(-1, 4)
    elif array.ndim == 3:
        array = array.reshape(-1, array.shape[2])
    elif array.ndim != 2:
        raise ValueError(f"Unsupported pixel buffer shape: {array.shape}")

    if array.shape[1] < 3:
        raise ValueError(f"Expected at least 3 color channels, got {array.shape[1]}")
    return array


def extract_bits(pixels, method=LSBMethod.STANDARD, max_bits: Optional[int] = None) -> np.ndarray:
    """
    Read the low bits of a pixel buffer in the order of an LSB method.

    Args:
        pixels: Pixel buffer accepted by as_pixel_rows
        method: LSBMethod or its string value
        max_bits: Optional cap on the number of bits returned

    Returns:
        1-D uint8 array of 0/1 values

    Raises:
        ValueError: If the method is unknown or the buffer is unusable
    """
    method = LSBMethod(method)
    rows = as_pixel_rows(pixels)
    if max_bits is not None:
        # Only decode as many pixels as the cap needs
        needed = -(-max_bits // method.bits_per_pixel)
        rows = rows[:needed]

    rgb = rows[:, :3]
    if method == LSBMethod.STANDARD:
        bits = (rgb & 1).reshape(-1)
    elif method == LSBMethod.TWO_BIT:
        # Higher bit first for each channel
        bits = np.stack([(rgb >> 1) & 1, rgb & 1], axis=2).reshape(-1)
    elif method == LSBMethod.RED_ONLY:
        bits = rgb[:, 0] & 1
    else:
        count = rgb.shape[0]
        bits = rgb[np.arange(count), np.arange(count) % 3] & 1

    bits = bits.astype(np.uint8)
    if max_bits is not None:
        bits = bits[:max_bits]
    return bits


def pack_bits(bits: np.ndarray) -> bytes:
    """Pack 0/1 values into bytes, most significant bit first. Trailing partial bytes are dropped."""
    bits = np.asarray(bits, dtype=np.uint8)
    usable = bits.size - bits.size % 8
    return np.packbits(bits[:usable]).tobytes()


def recover_text(data: bytes) -> Tuple[Optional[str], Optional[str]]:
    """
    Try to recover a readable message from extracted bytes.

    Heuristics, in order:
        null_terminated: a run of printable characters ended by a null byte
        delimited: text between a known start and end marker
        printable: printable characters before the first null, capped

    Args:
        data: Packed LSB bytes

    Returns:
        Tuple of (text, heuristic name), or (None, None)
    """
    min_length = config.LSB_ANALYSIS["min_text_length"]
    text_cap = config.LSB_ANALYSIS["text_cap"]

    match = NULL_TERMINATED_TEXT.match(data)
    if match:
        return match.group(1).decode("ascii")[:text_cap], "null_terminated"

    head = data.split(b"\x00", 1)[0]
    printable = b"".join(PRINTABLE_CHARS.findall(head)).decode("ascii")

    for start, end in MESSAGE_MARKERS:
        start_index = printable.find(start)
        end_index = printable.find(end)
        if start_index != -1 and end_index > start_index:
            content = printable[start_index + len(start):end_index].strip()
            if content:
                return content[:text_cap], "delimited"

    printable = printable[:text_cap].strip()
    if len(printable) >= min_length:
        return printable, "printable"
    return None, None


def extract_lsb(pixels, method=LSBMethod.STANDARD) -> LSBExtraction:
    """
    Extract LSB data from pixels and look for a hidden text message.

    The amount of data read is bounded by config.LSB_ANALYSIS["max_text_bytes"].

    Args:
        pixels: Pixel buffer accepted by as_pixel_rows
        method: LSBMethod or its string value

    Returns:
        LSBExtraction with the packed bytes and any recovered text
    """
    method = LSBMethod(method)
    max_bits = config.LSB_ANALYSIS["max_text_bytes"] * 8
    bits = extract_bits(pixels, method, max_bits=max_bits)
    data = pack_bits(bits)
    text, heuristic = recover_text(data)

    if text is not None:
        logger.info(f"Recovered {len(text)} characters with {method.value} LSB ({heuristic})")
    else:
        logger.debug(f"No readable text in {len(data)} bytes of {method.value} LSB data")

    return LSBExtraction(method=method, bit_count=int(bits.size), data=data, text=text, heuristic=heuristic)


def embed_lsb_text(pixels, message: str) -> np.ndarray:
    """
    Hide a null-terminated ASCII message in the R, G, B low bits.

    This writes the layout that extract_lsb reads with the standard method.

    Args:
        pixels: (H, W, C) uint8 array with C >= 3
        message: Text to embed

    Returns:
        A modified copy of the pixels

    Raises:
        ValueError: If the image is too small for the message
    """
    carrier = np.array(pixels, dtype=np.uint8, copy=True)
    rows = as_pixel_rows(carrier)
    payload = message.encode("ascii") + b"\x00"
    bits = np.unpackbits(np.frombuffer(payload, dtype=np.uint8))

    capacity = rows.shape[0] * 3
    if bits.size > capacity:
        raise ValueError(f"Message needs {bits.size} bits but the image holds {capacity}")

    rgb = rows[:, :3].reshape(-1).copy()
    rgb[:bits.size] = (rgb[:bits.size] & 0xFE) | bits
    rows[:, :3] = rgb.reshape(-1, 3)
    return rows.reshape(carrier.shape)

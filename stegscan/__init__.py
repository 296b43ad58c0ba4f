"""
stegscan - detection of data hidden inside image files.

Finds files embedded in or appended to images, scores every match with a
multi-factor confidence model and runs statistical LSB steganalysis on the
decoded pixels.
"""

__version__ = "0.1.0"

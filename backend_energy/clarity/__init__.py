"""
Clarity (Stacks smart-contract language) value decoding for contract logs.
"""

from backend_energy.clarity.codec import (
    ClarityResponse,
    c32_address,
    decode_clarity_bytes,
    decode_clarity_hex,
)

__all__ = ["ClarityResponse", "c32_address", "decode_clarity_bytes", "decode_clarity_hex"]

# Overview: Barcode check-digit validation for EAN-8, UPC-A and EAN-13.

from __future__ import annotations

from dataclasses import dataclass


MIN_LENGTH = 8
MAX_LENGTH = 14

# Weight applied to payload digit i is WEIGHTS[i % 2]
EAN8_WEIGHTS = (3, 1)
UPCA_WEIGHTS = (3, 1)
EAN13_WEIGHTS = (1, 3)

# Length -> (symbology name, weights). Other lengths in range carry no check.
CHECKED_FORMATS = {
    8: ("EAN-8", EAN8_WEIGHTS),
    12: ("UPC-A", UPCA_WEIGHTS),
    13: ("EAN-13", EAN13_WEIGHTS),
}


@dataclass(frozen=True)
class BarcodeValidation:
    valid: bool
    error: str = ""

    def to_dict(self) -> dict:
        return {"valid": self.valid, "error": self.error}


def calculate_check_digit(payload: str, weights: tuple[int, int]) -> int:
    total = sum(int(d) * weights[i % 2] for i, d in enumerate(payload))
    return (10 - total % 10) % 10


def symbology_for(code: str) -> str | None:
    """Name of the check-digit format a code of this length is verified as."""
    fmt = CHECKED_FORMATS.get(len(code))
    return fmt[0] if fmt else None


def validate_barcode(code: str | None) -> BarcodeValidation:
    """
    Validate an optional product barcode.

    Blank is valid. 9, 10, 11 and 14 digit codes pass on format alone; only
    8, 12 and 13 digit codes have their check digit verified.
    """
    if code is None or not code.strip():
        return BarcodeValidation(True)

    clean = code.strip()

    if len(clean) < MIN_LENGTH or len(clean) > MAX_LENGTH:
        return BarcodeValidation(False, f"Barcode must be between {MIN_LENGTH} and {MAX_LENGTH} digits")

    # str.isdigit accepts non-ASCII digits
    if not (clean.isascii() and clean.isdigit()):
        return BarcodeValidation(False, "Barcode must contain only numbers")

    fmt = CHECKED_FORMATS.get(len(clean))
    if fmt is not None:
        name, weights = fmt
        if calculate_check_digit(clean[:-1], weights) != int(clean[-1]):
            return BarcodeValidation(False, f"Invalid {name} barcode checksum")

    return BarcodeValidation(True)

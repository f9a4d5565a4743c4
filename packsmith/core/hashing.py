# packsmith/core/hashing.py
from __future__ import annotations

import hashlib

__all__ = ["sha1Hex", "sha512Hex", "hashesEqual"]



def sha1Hex(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()



def sha512Hex(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()



def hashesEqual(expected: str, actual: str) -> bool:
    # Catalogs are not consistent about hex case
    return expected.strip().lower() == actual.strip().lower()

"""MAPLEAD Stealth — Fingerprints and human-paced delays."""
from .fingerprint import FingerprintManager
from .behavior import HumanBehavior

__all__ = ["FingerprintManager", "HumanBehavior"]

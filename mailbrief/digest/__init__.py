"""Digest pipeline: raw message -> cleaned text -> bounded summary."""

from mailbrief.digest.builder import Digest, build_digest
from mailbrief.digest.classifier import CATEGORIES, classify_email
from mailbrief.digest.cleaner import clean_email_body
from mailbrief.digest.extractor import KeyInfo, extract_key_info

__all__ = [
    "Digest",
    "build_digest",
    "CATEGORIES",
    "classify_email",
    "clean_email_body",
    "KeyInfo",
    "extract_key_info",
]

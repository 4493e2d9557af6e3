"""Inference module - signature matching, page classification and URL prioritization."""

from .signatures import SignatureDatabase, load_signatures, default_signatures
from .page_analyzer import SignatureAnalyzer
from .url_priority import normalize_url, score_url, pick_next, extract_links

__all__ = [
    "SignatureDatabase",
    "load_signatures",
    "default_signatures",
    "SignatureAnalyzer",
    "normalize_url",
    "score_url",
    "pick_next",
    "extract_links",
]

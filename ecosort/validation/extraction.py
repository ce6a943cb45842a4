"""Extract structured sources from free-text guidance."""

import re
from typing import List, Tuple

from ..models import SourceMetadata, SourceType, Stability
from .stability import classify_stability

_URL_RE = re.compile(r"(https?://[^\s]+|www\.[^\s]+)")
_PHONE_RE = re.compile(r"(?:(?:Call|Phone|Contact)\s*)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_FACILITY_RES = [
    re.compile(
        r"\b([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\s+"
        r"(?:Transfer Station|Recycling Center|HHW|Household Hazardous Waste)\b"
    ),
    re.compile(r"\b(?:Drop off at|Visit)\s+([A-Z][^.!?]*(?:Station|Center|Facility))"),
]
_TRAILING_PUNCT = ".,;:!?)]"


def extract_source_metadata(guidance_text: str) -> Tuple[str, List[SourceMetadata]]:
    """
    Split guidance text into cleaned text and the sources it mentions.

    URLs and phone numbers are removed from the text; facility names stay in
    place since they read naturally. Phone and facility sources need no URL
    probe and are marked verified.

    Returns:
        Tuple of (cleaned_text, sources)
    """
    sources: List[SourceMetadata] = []
    cleaned = guidance_text

    for raw in _URL_RE.findall(guidance_text):
        url = raw.rstrip(_TRAILING_PUNCT)
        normalized = url if url.startswith("http") else f"https://{url}"
        sources.append(
            SourceMetadata(
                type=SourceType.URL,
                value=normalized,
                stability=classify_stability(normalized),
            )
        )
        cleaned = cleaned.replace(url, "")

    for phone in _PHONE_RE.findall(cleaned):
        digits = re.sub(r"\D", "", phone)
        if len(digits) != 10:
            continue
        sources.append(
            SourceMetadata(
                type=SourceType.PHONE,
                value=digits,
                verified=True,
                stability=Stability.HIGH,
            )
        )
        cleaned = cleaned.replace(phone, "")

    for pattern in _FACILITY_RES:
        for match in pattern.finditer(guidance_text):
            sources.append(
                SourceMetadata(
                    type=SourceType.FACILITY,
                    value=match.group(1).strip(),
                    verified=True,
                    stability=Stability.MEDIUM,
                )
            )

    # Clean up multiple spaces and punctuation artifacts
    cleaned = re.sub(r"\s{2,}", " ", cleaned)
    cleaned = re.sub(r"\s+([.,!?])", r"\1", cleaned).strip()
    return cleaned, sources

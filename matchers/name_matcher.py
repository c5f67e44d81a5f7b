"""
Name Matcher — Dispatch & Payment Label Normalization

Maps free-text dispatch and payment method names, as shop owners typed
them, onto a small set of canonical labels so benchmark data from different
shops can be compared.

Matching order:
  1. normalize the raw name (case-fold, strip accents, punctuation → spaces)
  2. whole-word keyword hit, in table order
  3. fuzzy similarity against every keyword (difflib ratio ≥ threshold)
  4. fallback label
"""

import logging
import re
import unicodedata
from difflib import SequenceMatcher
from typing import Optional

from benchmark_settings import matcher_similarity_threshold

logger = logging.getLogger(__name__)

FALLBACK_LABEL = "others"

# -------------------------------------------------------------------
# Default label tables (first matching label wins)
# -------------------------------------------------------------------
PAYMENT_MATCHES = {
    "sofort": ["sofort", "sofortuberweisung", "klarna sofort"],
    "amazon_pay": ["amazon pay", "amazon payments", "amazonpay"],
    "klarna": ["klarna", "klarna rechnung", "klarna ratenkauf"],
    "paypal": ["paypal", "paypal plus", "paypal express"],
    "prepayment": ["prepayment", "vorkasse", "advance payment", "bank transfer", "uberweisung"],
    "invoice": ["invoice", "rechnung", "kauf auf rechnung"],
    "debit": ["debit", "lastschrift", "sepa", "direct debit"],
    "cash_on_delivery": ["cash on delivery", "nachnahme", "cod"],
    "credit_card": ["credit card", "kreditkarte", "visa", "mastercard", "american express"],
    "cash": ["cash", "barzahlung", "bar"],
}

SHIPMENT_MATCHES = {
    "dhl": ["dhl", "dhl paket", "dhl express"],
    "dpd": ["dpd"],
    "ups": ["ups"],
    "gls": ["gls"],
    "hermes": ["hermes"],
    "fedex": ["fedex"],
    "deutsche_post": ["deutsche post", "post", "warenpost", "briefversand"],
    "pickup": ["pickup", "pick up", "selbstabholung", "abholung", "click and collect"],
    "express": ["express", "overnight", "next day"],
    "freight": ["spedition", "freight", "palette"],
    "standard": ["standard", "standardversand", "standard shipping", "versand"],
}


def normalize_name(value: Optional[str]) -> str:
    """Lower-case ASCII words separated by single spaces."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    ascii_only = decomposed.encode("ascii", "ignore").decode("ascii")
    words = re.sub(r"[^a-z0-9]+", " ", ascii_only.casefold())
    return words.strip()


class NameMatcher:
    """Labels raw method names using an ordered ``{label: [keywords]}`` table."""

    def __init__(
        self,
        matches: dict[str, list[str]],
        similarity_threshold: Optional[float] = None,
        fallback: str = FALLBACK_LABEL,
    ):
        if similarity_threshold is None:
            similarity_threshold = matcher_similarity_threshold()
        if not 0.0 < similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be in (0, 1], got {similarity_threshold}"
            )

        self.similarity_threshold = similarity_threshold
        self.fallback = fallback
        self._keywords = [
            (label, normalize_name(keyword))
            for label, keywords in matches.items()
            for keyword in keywords
            if normalize_name(keyword)
        ]
        self._patterns = [
            (label, re.compile(rf"\b{re.escape(keyword)}\b"))
            for label, keyword in self._keywords
        ]

    def match_string(self, value: Optional[str]) -> str:
        normalized = normalize_name(value)
        if not normalized:
            return self.fallback

        for label, pattern in self._patterns:
            if pattern.search(normalized):
                return label

        best_label, best_ratio = None, 0.0
        for label, keyword in self._keywords:
            ratio = SequenceMatcher(None, normalized, keyword).ratio()
            if ratio > best_ratio:
                best_label, best_ratio = label, ratio

        if best_label is not None and best_ratio >= self.similarity_threshold:
            logger.debug(f"Fuzzy match '{value}' → {best_label} ({best_ratio:.2f})")
            return best_label

        return self.fallback

    def __call__(self, value: Optional[str]) -> str:
        return self.match_string(value)


def payment_matcher(similarity_threshold: Optional[float] = None) -> NameMatcher:
    return NameMatcher(PAYMENT_MATCHES, similarity_threshold)


def shipment_matcher(similarity_threshold: Optional[float] = None) -> NameMatcher:
    return NameMatcher(SHIPMENT_MATCHES, similarity_threshold)

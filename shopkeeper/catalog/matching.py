"""
Product Matching Strategies

Two deliberately separate policies:

1. ExactNameMatcher - used when receipt items are reconciled into stock.
   The shopkeeper has already reviewed and edited the item names, so we
   only accept a literal (case and whitespace insensitive) match.

2. FuzzyLabelMatcher - used at the till. The label comes from an image
   recognizer and rarely matches the hand-entered catalog name exactly.

Both are pure functions of (label, products); no AI or network access.
"""

import re
import unicodedata
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from shopkeeper.config.settings import IntakeMatchPolicy
from shopkeeper.models.catalog import Product


# Scores for the fuzzy tiers. Tiers are ordered so that any containment
# match outranks any amount of token overlap short of 100 tokens.
EXACT_SCORE = float("inf")
SUBSTRING_SCORE = 1000
TOKEN_SCORE = 10

# Single characters ("1", "l") overlap with almost everything.
MIN_TOKEN_LENGTH = 2

_WHITESPACE = re.compile(r"\s+")


def _is_separator(char: str) -> bool:
    # Unicode punctuation (P*), symbols (S*) and separators (Z*)
    return unicodedata.category(char)[0] in ("P", "S", "Z")


def normalize_name(name: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", name.strip().lower())


def compact_name(name: str) -> str:
    """
    Normalized name with whitespace and punctuation removed.

    'Coca-Cola 1.25L' and 'coca cola 1.25l' both become 'cocacola125l'.
    """
    return "".join(
        char for char in normalize_name(name)
        if not char.isspace() and not _is_separator(char)
    )


def tokenize(name: str) -> list[str]:
    """Split a name on whitespace and punctuation."""
    tokens = []
    current = []
    for char in normalize_name(name):
        if char.isspace() or _is_separator(char):
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)
    if current:
        tokens.append("".join(current))
    return [token for token in tokens if len(token) >= MIN_TOKEN_LENGTH]


class ProductMatcher(ABC):
    """Maps a free-text name to at most one catalog product."""

    name: str = "matcher"

    @abstractmethod
    def match(self, label: str, products: Iterable[Product]) -> Optional[Product]:
        """Return the matching product or None."""
        pass


class ExactNameMatcher(ProductMatcher):
    """
    Literal name match: case-insensitive and whitespace-trimmed.

    Punctuation is significant here. 'Coca-Cola' and 'Coca Cola' are
    different names for intake reconciliation.
    """

    name = "exact"

    def match(self, label: str, products: Iterable[Product]) -> Optional[Product]:
        wanted = normalize_name(label)
        if not wanted:
            return None
        for product in products:
            if normalize_name(product.name) == wanted:
                return product
        return None


class FuzzyLabelMatcher(ProductMatcher):
    """
    Multi-tier fuzzy match for recognizer labels.

    Tier 1: exact after normalization (case, spacing and punctuation
            ignored) wins outright.
    Tier 2: containment in either direction scores
            SUBSTRING_SCORE + length of the shorter compact name, so the
            more specific of two contained names wins.
            A shorter name under MIN_TOKEN_LENGTH never counts.
    Tier 3: each scanned token that contains or is contained by a product
            token adds TOKEN_SCORE.

    Ties go to the product that comes first in catalog order.
    """

    name = "fuzzy"

    def score(self, label: str, product: Product) -> float:
        """Aggregate score of one product for a label (0 = no match)."""
        scanned = compact_name(label)
        candidate = compact_name(product.name)
        if not scanned or not candidate:
            return 0

        if scanned == candidate:
            return EXACT_SCORE

        total = 0
        shorter = min(len(scanned), len(candidate))
        if shorter >= MIN_TOKEN_LENGTH and (scanned in candidate or candidate in scanned):
            total += SUBSTRING_SCORE + shorter

        product_tokens = tokenize(product.name)
        for token in tokenize(label):
            if any(token in other or other in token for other in product_tokens):
                total += TOKEN_SCORE

        return total

    def rank(
        self,
        label: str,
        products: Iterable[Product],
    ) -> list[tuple[Product, float]]:
        """All products scoring above zero, best first, catalog order on ties."""
        scored = [
            (product, self.score(label, product))
            for product in products
        ]
        # sorted() is stable, so equal scores keep catalog order
        return sorted(
            [(product, score) for product, score in scored if score > 0],
            key=lambda pair: pair[1],
            reverse=True,
        )

    def match(self, label: str, products: Iterable[Product]) -> Optional[Product]:
        best: Optional[Product] = None
        best_score: float = 0
        for product in products:
            score = self.score(label, product)
            if score == EXACT_SCORE:
                return product
            if score > best_score:
                best, best_score = product, score
        return best


def build_intake_matcher(policy: IntakeMatchPolicy) -> ProductMatcher:
    """Matcher used to reconcile receipt items into stock."""
    if IntakeMatchPolicy(policy) == IntakeMatchPolicy.FUZZY:
        return FuzzyLabelMatcher()
    return ExactNameMatcher()

"""Product catalog and matching strategies."""

from shopkeeper.catalog.catalog import ProductCatalog
from shopkeeper.catalog.matching import (
    ExactNameMatcher,
    FuzzyLabelMatcher,
    ProductMatcher,
    build_intake_matcher,
    compact_name,
    normalize_name,
    tokenize,
)

__all__ = [
    "ExactNameMatcher",
    "FuzzyLabelMatcher",
    "ProductCatalog",
    "ProductMatcher",
    "build_intake_matcher",
    "compact_name",
    "normalize_name",
    "tokenize",
]

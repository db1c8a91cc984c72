"""Tests for product matching strategies and the catalog."""

import pytest
from decimal import Decimal

from shopkeeper.catalog import (
    ExactNameMatcher,
    FuzzyLabelMatcher,
    ProductCatalog,
    build_intake_matcher,
    compact_name,
    normalize_name,
    tokenize,
)
from shopkeeper.catalog.matching import EXACT_SCORE, SUBSTRING_SCORE, TOKEN_SCORE
from shopkeeper.config import IntakeMatchPolicy
from shopkeeper.errors import PermissionDeniedError, ProductNotFoundError
from shopkeeper.models import ActorRole, Product


@pytest.fixture
def products():
    return [
        Product(name="Coca-Cola 1.25L", price=25),
        Product(name="Pepsi 1.45L", price=24),
        Product(name="Crystal Water 600ml", price=7),
    ]


class TestNormalization:
    """Tests for name normalization helpers."""

    def test_normalize_name(self):
        assert normalize_name("  Coca   Cola  ") == "coca cola"

    def test_compact_name_drops_spaces_and_punctuation(self):
        assert compact_name("Coca-Cola 1.25L") == "cocacola125l"
        assert compact_name("coca cola 1.25l") == "cocacola125l"

    def test_tokenize_skips_single_characters(self):
        assert tokenize("Coca-Cola 1.25L") == ["coca", "cola", "25l"]


class TestFuzzyLabelMatcher:
    """Tests for the point-of-sale fuzzy matcher."""

    def test_match_ignores_case_spacing_and_punctuation(self, products):
        """'coca cola 1.25l' finds 'Coca-Cola 1.25L'."""
        match = FuzzyLabelMatcher().match("coca cola 1.25l", products)
        assert match is products[0]

    def test_unknown_label_returns_none(self, products):
        assert FuzzyLabelMatcher().match("xyz-unknown-item", products) is None

    def test_single_character_label_matches_nothing(self):
        """One letter is contained in almost every name; it is not a match."""
        soda = Product(name="Singha Soda", price=15)
        matcher = FuzzyLabelMatcher()
        assert matcher.match("a", [soda]) is None
        assert matcher.match("o", [soda]) is None
        assert matcher.score("a", soda) == 0

    def test_empty_label_returns_none(self, products):
        assert FuzzyLabelMatcher().match("   ", products) is None

    def test_exact_match_scores_highest(self, products):
        assert FuzzyLabelMatcher().score("PEPSI 1.45L", products[1]) == EXACT_SCORE

    def test_containment_match(self, products):
        """A brand alone is contained in the full catalog name."""
        matcher = FuzzyLabelMatcher()
        assert matcher.match("Pepsi", products) is products[1]
        assert matcher.score("Pepsi", products[1]) == SUBSTRING_SCORE + len("pepsi") + TOKEN_SCORE

    def test_token_overlap_match(self, products):
        """Shared words are enough when neither name contains the other."""
        matcher = FuzzyLabelMatcher()
        assert matcher.match("water bottle", products) is products[2]
        assert matcher.score("water bottle", products[2]) == TOKEN_SCORE

    def test_more_specific_containment_wins(self):
        """The longer contained name beats a generic one."""
        generic = Product(name="Cola", price=10)
        specific = Product(name="Coca-Cola 1.25L", price=25)
        match = FuzzyLabelMatcher().match("coca cola 1.25l big", [generic, specific])
        assert match is specific

    def test_ties_go_to_catalog_order(self):
        """Equal scores keep the product that comes first in the catalog."""
        small = Product(name="Ice Bag Small", price=20)
        large = Product(name="Ice Bag Large", price=40)
        matcher = FuzzyLabelMatcher()
        assert matcher.score("ice bag", small) == matcher.score("ice bag", large)
        assert matcher.match("ice bag", [small, large]) is small
        assert matcher.match("ice bag", [large, small]) is large

    def test_rank_orders_by_score(self, products):
        ranked = FuzzyLabelMatcher().rank("cola", products)
        assert [product.name for product, _ in ranked] == ["Coca-Cola 1.25L"]

    def test_match_is_pure(self, products):
        """Same inputs, same answer, nothing mutated."""
        matcher = FuzzyLabelMatcher()
        first = matcher.match("pepsi", products)
        second = matcher.match("pepsi", products)
        assert first is second
        assert [p.stock_quantity for p in products] == [0, 0, 0]


class TestExactNameMatcher:
    """Tests for the intake exact matcher."""

    def test_case_and_whitespace_insensitive(self, products):
        assert ExactNameMatcher().match("  coca-cola 1.25l ", products) is products[0]

    def test_punctuation_is_significant(self, products):
        assert ExactNameMatcher().match("Coca Cola 1.25L", products) is None

    def test_blank_name_never_matches(self, products):
        assert ExactNameMatcher().match("", products) is None

    def test_build_intake_matcher(self):
        assert isinstance(build_intake_matcher(IntakeMatchPolicy.EXACT), ExactNameMatcher)
        assert isinstance(build_intake_matcher(IntakeMatchPolicy.FUZZY), FuzzyLabelMatcher)
        assert isinstance(build_intake_matcher("fuzzy"), FuzzyLabelMatcher)


class TestProductCatalog:
    """Tests for catalog edits and permissions."""

    def test_owner_can_add_and_remove(self):
        catalog = ProductCatalog()
        product = catalog.add(Product(name="Ice", price=20), ActorRole.OWNER)
        assert product.id in catalog
        assert catalog.remove(product.id, ActorRole.OWNER) is True
        assert len(catalog) == 0

    def test_staff_cannot_change_catalog(self, products):
        catalog = ProductCatalog(products)
        with pytest.raises(PermissionDeniedError):
            catalog.add(Product(name="Ice", price=20), ActorRole.STAFF)
        with pytest.raises(PermissionDeniedError):
            catalog.remove(products[0].id, ActorRole.STAFF)
        assert len(catalog) == 3

    def test_remove_unknown_returns_false(self, products):
        catalog = ProductCatalog(products)
        assert catalog.remove(Product(name="X", price=1).id, ActorRole.OWNER) is False

    def test_update_revalidates(self, products):
        """A bad value leaves the product untouched."""
        catalog = ProductCatalog(products)
        with pytest.raises(ValueError):
            catalog.update(products[0].id, ActorRole.OWNER, price=Decimal("-1"))
        assert catalog.get(products[0].id).price == Decimal("25.00")

        updated = catalog.update(products[0].id, ActorRole.OWNER, price=Decimal("27"))
        assert catalog.get(products[0].id).price == Decimal("27.00")
        assert updated.id == products[0].id

    def test_require_unknown_product(self):
        with pytest.raises(ProductNotFoundError):
            ProductCatalog().require(Product(name="X", price=1).id)

    def test_find_by_name(self, products):
        catalog = ProductCatalog(products)
        assert catalog.find_by_name("pepsi 1.45l") is products[1]

    def test_set_stock_clamps_at_zero(self, products):
        catalog = ProductCatalog(products)
        assert catalog.set_stock(products[0].id, -4).stock_quantity == 0

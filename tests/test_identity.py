"""Tests for listing identity."""

from src.pipeline.identity import listing_identity


class TestListingIdentity:
    def test_case_and_punctuation_insensitive(self):
        assert listing_identity("2024 Lund!", "$1,000") == listing_identity("2024 lund", "1000")

    def test_deterministic(self):
        assert listing_identity("Tracker Pro 170", "$18,995") == listing_identity("Tracker Pro 170", "$18,995")

    def test_different_items_differ(self):
        assert listing_identity("2023 Sea Ray SPX 190", "$42,000") != listing_identity("2023 Sea Ray SPX 210", "$42,000")

    def test_missing_components_fall_back_to_empty(self):
        assert listing_identity(None, None) == ""
        assert listing_identity("Bayliner", None) == "bayliner"
        assert listing_identity(None, "$5") == "5"

    def test_strips_non_ascii(self):
        assert listing_identity("Bénéteau  Flyer", "€9.500") == "bnteauflyer9500"

    def test_hyphen_variant(self):
        assert listing_identity("Sea-Doo GTX", "$1,000", keep_hyphen=True) == "sea-doogtx1000"
        assert listing_identity("Sea-Doo GTX", "$1,000") == "seadoogtx1000"

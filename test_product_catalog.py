"""
Tests for the product lookup implementations.
"""

import json
from unittest.mock import patch, MagicMock

import pytest
import requests

from models import ProductRecord
from product_catalog import CatalogLookup, SearchLookup, DEFAULT_CATALOG, get_product_lookup


class TestCatalogLookup:
    def test_matches_in_request_order(self):
        lookup = CatalogLookup()
        results = lookup.lookup(["monochrome cap", "Hoodie"])
        assert [r.name for r in results] == ["Monochrome Cap", "Minimalist Hoodie"]

    def test_pads_with_other_products(self):
        lookup = CatalogLookup()
        results = lookup.lookup(["Classic White Tee", "Something Else", "Another"])
        assert len(results) == 3
        assert results[0].name == "Classic White Tee"
        assert len({r.name for r in results}) == 3

    def test_empty_catalog_returns_nothing(self):
        assert CatalogLookup([]).lookup(["Lamp"]) == []

    def test_search_ranks_name_hits_first(self):
        results = CatalogLookup().search("essentials tee")
        assert [r.name for r in results] == ["Classic White Tee", "Relaxed Fit Tee"]

    def test_search_respects_limit_and_skips_misses(self):
        lookup = CatalogLookup()
        assert len(lookup.search("minimalist tee", limit=2)) == 2
        assert lookup.search("velvet sofa") == []

    def test_from_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([
            {"name": "Arco Lamp", "price": 1800, "url": "/arco"},
            "not a product",
        ]), encoding="utf-8")

        lookup = CatalogLookup.from_json(path)

        assert lookup.products == [ProductRecord(name="Arco Lamp", price="1800", url="/arco")]

    def test_from_json_rejects_non_array(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"name": "Arco"}), encoding="utf-8")
        with pytest.raises(ValueError):
            CatalogLookup.from_json(path)


class TestSearchLookup:
    def _lookup_with(self, *responses):
        lookup = SearchLookup(api_key="key", engine_id="cx")
        lookup.session = MagicMock()
        lookup.session.get.side_effect = list(responses)
        return lookup

    def _ok(self, payload):
        resp = MagicMock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = payload
        return resp

    def test_maps_first_hit(self):
        lookup = self._lookup_with(self._ok({"items": [{
            "title": "Anglepoise Type 75",
            "link": "https://shop.example.co.uk/type-75",
            "snippet": "Iconic desk lamp.",
            "pagemap": {"cse_image": [{"src": "https://img.example.com/75.jpg"}]},
        }]}))

        results = lookup.lookup(["Anglepoise"])

        assert results == [ProductRecord(
            name="Anglepoise Type 75",
            description="Iconic desk lamp.",
            image="https://img.example.com/75.jpg",
            url="https://shop.example.co.uk/type-75",
        )]
        params = lookup.session.get.call_args.kwargs["params"]
        assert params["q"] == "Anglepoise uk"
        assert params["cx"] == "cx"

    def test_search_returns_several_hits(self):
        lookup = self._lookup_with(self._ok({"items": [
            {"title": "Rug A", "link": "https://example.com/a"},
            {"title": "Rug B", "link": "https://example.com/b"},
            {"title": "Rug C", "link": "https://example.com/c"},
        ]}))

        results = lookup.search("wool rug uk", limit=2)

        assert [r.name for r in results] == ["Rug A", "Rug B"]
        assert lookup.session.get.call_args.kwargs["params"]["q"] == "wool rug uk"

    def test_search_failure_returns_empty(self):
        lookup = self._lookup_with(requests.exceptions.ConnectionError("down"))
        assert lookup.search("rug") == []

    def test_failed_and_empty_searches_are_skipped(self):
        lookup = self._lookup_with(
            requests.exceptions.Timeout("slow"),
            self._ok({}),
            self._ok({"items": [{"title": "Rug", "link": "https://example.com/rug"}]}),
        )

        results = lookup.lookup(["Lamp", "Chair", "Rug"])

        assert [r.name for r in results] == ["Rug"]
        assert results[0].image is None


class TestGetProductLookup:
    def test_defaults_to_builtin_catalog(self):
        with patch("product_catalog.GOOGLE_SEARCH_API_KEY", ""), \
                patch("product_catalog.PRODUCT_CATALOG_PATH", ""):
            lookup = get_product_lookup()
        assert isinstance(lookup, CatalogLookup)
        assert lookup.products == DEFAULT_CATALOG

    def test_search_when_configured(self):
        with patch("product_catalog.GOOGLE_SEARCH_API_KEY", "key"), \
                patch("product_catalog.GOOGLE_SEARCH_ENGINE_ID", "cx"):
            assert isinstance(get_product_lookup(), SearchLookup)

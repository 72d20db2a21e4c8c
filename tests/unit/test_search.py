"""
Unit tests for site/zone search and result helpers
"""

import pytest

from conftest import make_zone
from district_atlas.search import (
    SearchOptions,
    filter_sites,
    filter_zones,
    is_active,
    results_bounds,
    search,
    site_stats,
    sort_sites_by_name,
    sort_zones_by_index,
    sort_zones_by_representative,
    zone_stats,
)


@pytest.fixture
def zones():
    return [
        make_zone(1, representative="Moran, Nathaniel"),
        make_zone(7, representative="Fletcher, Lizzie"),
        make_zone(17, representative="Sessions, Pete"),
    ]


class TestActivation:

    @pytest.mark.parametrize("query, active", [
        ("", False),
        (None, False),
        ("a", False),
        ("  a  ", False),
        ("au", True),
        (" au ", True),
    ])
    def test_minimum_length_gate(self, query, active):
        assert is_active(query, SearchOptions()) is active

    def test_inactive_filters_return_input(self, sample_sites, zones):
        assert filter_sites(sample_sites, "a") is sample_sites
        assert filter_zones(zones, "") is zones

    def test_inactive_search_is_empty(self, sample_sites, zones):
        results = search(sample_sites, zones, "a")
        assert results.active is False
        assert results.sites == []
        assert results.zones == []
        assert results.total == 0


class TestFilters:

    def test_site_name_is_case_insensitive(self, sample_sites):
        assert [s.id for s in filter_sites(sample_sites, "HOUSTON")] == ["program-1"]

    def test_site_address_and_sponsor(self, sample_sites):
        assert [s.id for s in filter_sites(sample_sites, "marilla")] == ["program-2"]
        assert [s.id for s in filter_sites(sample_sites, "travis county")] == ["program-0"]

    def test_query_is_trimmed(self, sample_sites):
        assert [s.id for s in filter_sites(sample_sites, "  dallas  ")] == ["program-2"]

    def test_zone_by_representative_and_code(self, zones):
        assert [z.index for z in filter_zones(zones, "fletcher")] == [7]
        assert [z.index for z in filter_zones(zones, "tx-1")] == [1, 17]

    def test_zone_by_index(self, zones):
        assert [z.index for z in filter_zones(zones, "17")] == [17]

    def test_result_is_subset_in_catalogue_order(self, sample_sites):
        results = filter_sites(sample_sites, "head start")
        assert [s.id for s in results] == ["program-0", "program-1", "program-2"]


class TestSearch:

    def test_combined_results(self, sample_sites, zones):
        results = search(sample_sites, zones, "austin")
        assert results.active is True
        assert [s.id for s in results.sites] == ["program-0"]
        assert results.zones == []
        assert results.total == 1

    def test_excluded_types_contribute_nothing(self, sample_sites, zones):
        options = SearchOptions(include_sites=False)
        results = search(sample_sites, zones, "tx", options)
        assert results.sites == []
        assert len(results.zones) == 3
        assert results.total == 3

    def test_custom_min_length(self, sample_sites, zones):
        results = search(sample_sites, zones, "7", SearchOptions(min_length=1))
        assert [z.index for z in results.zones] == [7, 17]


class TestResultHelpers:

    def test_results_bounds(self, sample_sites, zones):
        results = search(sample_sites, zones, "head start", SearchOptions(include_zones=False))
        bounds = results_bounds(results)
        assert bounds.north == pytest.approx(32.7767)
        assert bounds.west == pytest.approx(-97.7431)

    def test_results_bounds_none_when_no_hits(self, sample_sites, zones):
        assert results_bounds(search(sample_sites, zones, "a")) is None
        assert results_bounds(search(sample_sites, zones, "nowhere")) is None

    def test_sorting(self, sample_sites, zones):
        assert [s.id for s in sort_sites_by_name(sample_sites)] == ["program-0", "program-2", "program-1"]
        assert [z.index for z in sort_zones_by_representative(zones)] == [7, 1, 17]
        assert [z.index for z in sort_zones_by_index(list(reversed(zones)))] == [1, 7, 17]

    def test_search_applies_requested_order(self, sample_sites, zones):
        options = SearchOptions(site_order="name", zone_order="representative")
        results = search(sample_sites, zones, "tx", options)

        assert [s.id for s in results.sites] == ["program-0", "program-2", "program-1"]
        assert [z.index for z in results.zones] == [7, 1, 17]

    def test_default_order_is_catalogue_order(self, sample_sites, zones):
        results = search(sample_sites, zones, "tx")
        assert [s.id for s in results.sites] == ["program-0", "program-1", "program-2"]
        assert [z.index for z in results.zones] == [1, 7, 17]

    @pytest.mark.parametrize("overrides", [{"site_order": "funding"}, {"zone_order": "name"}])
    def test_unknown_order_rejected(self, overrides):
        with pytest.raises(ValueError):
            SearchOptions(**overrides)

    def test_stats(self, sample_sites, zones):
        stats = site_stats(sample_sites)
        assert stats["total"] == 3
        assert stats["by_category"] == {"early-head-start": 1, "head-start": 2}

        summary = zone_stats(zones)
        assert summary["min_index"] == 1
        assert summary["max_index"] == 17
        assert zone_stats([])["min_index"] is None

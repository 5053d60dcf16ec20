"""Catalog index, facet option and cascade tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from app import catalog_index
from app.catalog_index import CatalogIndex, build_facets, cascade_selection
from app.models import FilterSelection

from .factories import SAMPLE_DESCRIPTIONS, make_entries, make_record


def _index(*descriptions: str) -> CatalogIndex:
    records = [
        make_record(f"r{index}", description)
        for index, description in enumerate(descriptions)
    ]
    return CatalogIndex.build(records)


def test_contents_are_distinct_and_prefixed_with_wildcard() -> None:
    options = build_facets(make_entries(*SAMPLE_DESCRIPTIONS))

    assert options.contents == ["All", "ShowB", "ShowA", "Movie Night"]


def test_build_sorts_entries_before_collecting_facets() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)

    assert index.options.contents == ["All", "Movie Night", "ShowA", "ShowB"]
    assert index.options.seasons_for("ShowA") == ["All", "Season 2", "Season 10"]
    assert index.options.episodes_for("ShowA", "Season 2") == [
        "All",
        "Episode 1",
        "Episode 5",
    ]


def test_every_content_has_seasons_covering_observed_values() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS, "ShowC", "ShowC/Season 3")

    for entry in index.entries:
        seasons = index.options.seasons_for(entry.meta.content)
        assert seasons and seasons[0] == "All"
        assert entry.meta.season in seasons
        episodes = index.options.episodes_for(entry.meta.content, entry.meta.season)
        assert episodes and episodes[0] == "All"
        assert entry.meta.episode in episodes


def test_unknown_keys_fall_back_to_wildcard_only() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)

    assert index.options.seasons_for("All") == ["All"]
    assert index.options.seasons_for("Missing") == ["All"]
    assert index.options.episodes_for("ShowA", "Season 99") == ["All"]


def test_empty_catalog_offers_only_wildcards() -> None:
    index = CatalogIndex.build([])

    assert len(index) == 0
    assert index.options.contents == ["All"]
    assert index.filter(FilterSelection()) == []


def test_extraction_runs_once_per_record() -> None:
    records = [make_record("r1", "ShowA/S1/E1"), make_record("r2", "ShowA/S1/E2")]

    with patch.object(catalog_index, "extract", wraps=catalog_index.extract) as spy:
        index = CatalogIndex.build(records)
        index.meta_for(records[0])
        index.meta_for(records[1])

    assert spy.call_count == 2


def test_records_are_not_mutated() -> None:
    record = make_record("r1", "ShowA/S1/E1")

    index = CatalogIndex.build([record])

    assert record.meta is None
    assert index.get("r1").meta.content == "ShowA"


def test_get_unknown_record_raises_key_error() -> None:
    with pytest.raises(KeyError, match="Record nope not found"):
        CatalogIndex.build([]).get("nope")


def test_changing_content_resets_season_and_episode() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)
    selection = FilterSelection(
        content="ShowB", season="Season 1", episode="Episode 2", search="pilot"
    )

    updated = index.cascade(selection, "content", "ShowA")

    assert updated == FilterSelection(
        content="ShowA", season="All", episode="All", search="pilot"
    )


def test_changing_season_resets_episode_only() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)
    selection = FilterSelection(content="ShowA", season="Season 2", episode="Episode 5")

    updated = index.cascade(selection, "season", "Season 10")

    assert updated == FilterSelection(content="ShowA", season="Season 10", episode="All")


@pytest.mark.parametrize(("field_name", "value"), [("episode", "Episode 1"), ("search", "x")])
def test_episode_and_search_changes_reset_nothing(field_name: str, value: str) -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)
    selection = FilterSelection(content="ShowA", season="Season 2", episode="Episode 5")

    updated = index.cascade(selection, field_name, value)

    assert getattr(updated, field_name) == value
    assert (updated.content, updated.season) == ("ShowA", "Season 2")


def test_cascade_rejects_unknown_fields() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)

    with pytest.raises(ValueError, match="Unknown facet field"):
        cascade_selection(index.options, FilterSelection(), "title", "x")


def test_reconcile_keeps_values_that_still_exist() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)
    selection = FilterSelection(content="ShowA", season="Season 2", episode="Episode 5")

    assert index.reconcile(selection) == selection


def test_reconcile_drops_values_missing_from_the_snapshot() -> None:
    index = _index(*SAMPLE_DESCRIPTIONS)

    gone_content = index.reconcile(FilterSelection(content="Gone", season="Season 1"))
    gone_episode = index.reconcile(
        FilterSelection(content="ShowA", season="Season 2", episode="Episode 9")
    )

    assert gone_content == FilterSelection()
    assert gone_episode == FilterSelection(content="ShowA", season="Season 2")

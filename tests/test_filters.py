"""Filter engine behaviour tests."""

from __future__ import annotations

import pytest

from app.catalog_index import CatalogIndex
from app.filters import apply_filters
from app.models import FilterSelection

from .factories import SAMPLE_DESCRIPTIONS, make_entries, make_record


def test_identity_selection_returns_catalog_unchanged() -> None:
    entries = make_entries(*SAMPLE_DESCRIPTIONS)

    result = apply_filters(FilterSelection(), entries)

    assert result == entries
    assert result is not entries


def test_identity_selection_on_empty_catalog() -> None:
    assert apply_filters(FilterSelection(), []) == []


def test_facets_filter_by_exact_values_and_keep_order() -> None:
    entries = make_entries(*SAMPLE_DESCRIPTIONS)

    result = apply_filters(
        FilterSelection(content="ShowA", season="Season 2"), entries
    )

    assert [entry.id for entry in result] == ["r1", "r3"]


def test_episode_facet() -> None:
    entries = make_entries(*SAMPLE_DESCRIPTIONS)

    result = apply_filters(
        FilterSelection(content="ShowB", season="Season 1", episode="Episode 1"),
        entries,
    )

    assert [entry.id for entry in result] == ["r4"]


def test_search_is_case_insensitive_over_title_content_and_description() -> None:
    records = [
        make_record("a", "Nature/S1/E1", title="Ocean Deep"),
        make_record("b", "Cooking/S1/E1", title="Pasta Basics"),
        make_record("c", "Travel/S1/E1 filmed in the OCEANIA region", title="Road"),
    ]
    entries = list(CatalogIndex.build(records, sort=False).entries)

    assert [e.id for e in apply_filters(FilterSelection(search="ocea"), entries)] == [
        "a",
        "c",
    ]
    assert [e.id for e in apply_filters(FilterSelection(search="COOKING"), entries)] == [
        "b"
    ]


def test_whitespace_only_search_is_identity() -> None:
    entries = make_entries(*SAMPLE_DESCRIPTIONS)

    assert apply_filters(FilterSelection(search="   "), entries) == entries


@pytest.mark.parametrize(
    "constraint",
    [
        {"content": "ShowA"},
        {"season": "Season 1"},
        {"episode": "Episode 1"},
        {"search": "show"},
    ],
)
def test_adding_a_constraint_never_grows_the_result(constraint: dict[str, str]) -> None:
    entries = make_entries(*SAMPLE_DESCRIPTIONS)
    base_selections = [
        FilterSelection(),
        FilterSelection(content="ShowB"),
        FilterSelection(season="Season 2"),
        FilterSelection(search="episode"),
    ]

    for base in base_selections:
        (field_name,) = constraint
        if getattr(base, field_name) not in ("All", ""):
            continue
        narrowed = base.model_copy(update=constraint)
        assert len(apply_filters(narrowed, entries)) <= len(apply_filters(base, entries))

from __future__ import annotations

import pytest

from theater_booking.application.use_cases.steps import (
    OCCASION_STEP,
    OVERVIEW_STEP,
    TERMS_STEP,
    StepNavigator,
    visible_steps,
)
from theater_booking.domain.entities.booking_draft import BookingDraft
from theater_booking.domain.entities.catalog import Catalog, OccasionDefinition


def test_steps_follow_catalog_order_for_enabled_services(catalog):
    draft = BookingDraft(service_flags={"Food": True, "Cakes": True, "Gifts": False})
    assert visible_steps(draft, catalog) == [OVERVIEW_STEP, OCCASION_STEP, "Cakes", "Food", TERMS_STEP]


def test_occasion_step_hidden_when_every_occasion_needs_decoration():
    catalog = Catalog(occasions=(OccasionDefinition("Birthday", include_in_decoration=True),))
    assert OCCASION_STEP not in visible_steps(BookingDraft(decoration_enabled=False), catalog)
    assert OCCASION_STEP in visible_steps(BookingDraft(decoration_enabled=True), catalog)


def test_occasion_step_shown_with_empty_occasion_list():
    assert visible_steps(BookingDraft(), Catalog()) == [OVERVIEW_STEP, OCCASION_STEP, TERMS_STEP]


def test_navigator_advances_and_stops_on_last_step(catalog):
    steps = visible_steps(BookingDraft(service_flags={"Food": True}), catalog)
    nav = StepNavigator()

    assert nav.advance(steps) == OCCASION_STEP
    assert nav.advance(steps) == "Food"
    assert nav.advance(steps) == TERMS_STEP
    assert nav.is_last(steps)
    assert nav.advance(steps) is None
    assert nav.active == TERMS_STEP


def test_navigator_back_stops_on_first_step():
    steps = [OVERVIEW_STEP, OCCASION_STEP, TERMS_STEP]
    nav = StepNavigator()
    assert nav.go_back(steps) is False
    nav.advance(steps)
    assert nav.go_back(steps) is True
    assert nav.active == OVERVIEW_STEP


def test_removed_active_step_falls_back_to_overview(catalog):
    nav = StepNavigator()
    nav.jump_to("Cakes", visible_steps(BookingDraft(service_flags={"Cakes": True}), catalog))

    moved = nav.reconcile(visible_steps(BookingDraft(service_flags={"Cakes": False}), catalog))

    assert moved is True
    assert nav.active == OVERVIEW_STEP


def test_jump_to_hidden_step_is_rejected():
    nav = StepNavigator()
    with pytest.raises(ValueError):
        nav.jump_to("Cakes", [OVERVIEW_STEP, TERMS_STEP])

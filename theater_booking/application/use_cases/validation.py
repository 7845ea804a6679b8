from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from theater_booking.application.exceptions import FormValidationError
from theater_booking.application.use_cases.steps import OCCASION_STEP, OVERVIEW_STEP, TERMS_STEP
from theater_booking.domain.entities.booking_draft import BookingDraft
from theater_booking.domain.entities.catalog import Catalog
from theater_booking.domain.entities.pricing import TheaterCapacity

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")


@dataclass(frozen=True)
class ValidationIssue:
    title: str
    message: str

    def to_error(self) -> FormValidationError:
        return FormValidationError(self.title, self.message)


@dataclass(frozen=True)
class ValidationInput:
    draft: BookingDraft
    catalog: Catalog
    time_slot: str | None
    capacity: TheaterCapacity


def validate_step(step: str, data: ValidationInput) -> ValidationIssue | None:
    """Checks run on Continue from a non-final step. First failure wins."""
    if step == OVERVIEW_STEP:
        return next(_overview_issues(data), None)
    if step == OCCASION_STEP:
        return next(_occasion_step_issues(data), None)
    if step == TERMS_STEP:
        return next(_terms_issues(data.draft), None)
    if data.catalog.service(step) is not None:
        return next(_service_issues(data, only=step), None)
    return None


def validate_final(data: ValidationInput) -> ValidationIssue | None:
    """Checks run before submission: every step check plus cross-step consistency."""
    return next(_final_issues(data), None)


def _final_issues(data: ValidationInput) -> Iterator[ValidationIssue]:
    draft = data.draft
    yield from _contact_issues(draft)
    yield from _schedule_issues(data)

    if draft.decoration_enabled and not draft.occasion.strip():
        yield ValidationIssue("Missing Occasion", "Please select an occasion to continue.")

    yield from _decoration_choice_issues(draft, detailed=True)
    yield from _occasion_compatibility_issues(data)
    yield from _movie_issues(draft)
    yield from _occasion_field_issues(data)
    yield from _service_issues(data)
    yield from _terms_issues(draft)


def _overview_issues(data: ValidationInput) -> Iterator[ValidationIssue]:
    yield from _contact_issues(data.draft)
    yield from _schedule_issues(data)
    yield from _decoration_choice_issues(data.draft)
    yield from _movie_issues(data.draft)


def _occasion_step_issues(data: ValidationInput) -> Iterator[ValidationIssue]:
    draft = data.draft
    if draft.decoration_enabled and not draft.occasion.strip():
        yield ValidationIssue("Missing Occasion", "Please select an occasion to continue.")
    yield from _decoration_choice_issues(draft)
    yield from _occasion_field_issues(data)


def _contact_issues(draft: BookingDraft) -> Iterator[ValidationIssue]:
    if not draft.name.strip():
        yield ValidationIssue("Missing Name", "Please enter your name to continue.")

    if not draft.phone.strip():
        yield ValidationIssue("Missing WhatsApp Number", "Please enter your WhatsApp number to continue.")
    if len(re.sub(r"\D", "", draft.phone)) != 10:
        yield ValidationIssue("Invalid WhatsApp Number", "Please enter a valid 10-digit mobile number.")

    if not draft.email.strip():
        yield ValidationIssue("Missing Email Address", "Please enter your email address to continue.")
    if not _EMAIL_PATTERN.match(draft.email):
        yield ValidationIssue(
            "Invalid Email Address",
            "Please enter a valid email address (e.g., name@example.com).",
        )


def _schedule_issues(data: ValidationInput) -> Iterator[ValidationIssue]:
    if not data.time_slot:
        yield ValidationIssue(
            "Missing Time Slot",
            "Please select a time slot by clicking on the time area in the header to continue.",
        )

    capacity = data.capacity
    if data.draft.headcount < capacity.min:
        yield ValidationIssue(
            "Minimum Guests Required",
            f"This theater requires minimum {capacity.min} people. "
            "Please increase the number of people to continue.",
        )
    if data.draft.headcount > capacity.max:
        yield ValidationIssue(
            "Maximum Guests Exceeded",
            f"This theater allows maximum {capacity.max} people. "
            "Please reduce the number of people to continue.",
        )


def _decoration_choice_issues(draft: BookingDraft, detailed: bool = False) -> Iterator[ValidationIssue]:
    if draft.decoration_enabled is None:
        message = "Please choose whether you want decoration (Yes or No) to continue."
        if detailed:
            message += (
                ' If you choose "Yes", you can select occasion-wise decoration, gifts and decor items.'
                ' If you choose "No", you will continue only with food and basic booking.'
            )
        yield ValidationIssue("Decoration Selection Required", message)


def _occasion_compatibility_issues(data: ValidationInput) -> Iterator[ValidationIssue]:
    occasion = data.catalog.occasion(data.draft.occasion)
    if data.draft.decoration_enabled:
        if occasion is None or not occasion.include_in_decoration:
            yield ValidationIssue(
                "Invalid Occasion for Decoration",
                "You chose decoration = Yes, so please select an occasion that is marked for decoration.",
            )
    elif data.draft.decoration_enabled is False:
        if occasion is not None and occasion.include_in_decoration:
            yield ValidationIssue(
                "Invalid Occasion for Normal Booking",
                "You chose decoration = No, so please select a normal occasion (not marked for decoration).",
            )


def _movie_issues(draft: BookingDraft) -> Iterator[ValidationIssue]:
    if draft.want_movies and draft.movie is None:
        yield ValidationIssue(
            "Movie Selection Required",
            'You selected "Yes" for movies, but did not choose any movie. '
            'Please select at least one movie or select "No" for movies in the Overview tab.',
        )


def _occasion_field_issues(data: ValidationInput) -> Iterator[ValidationIssue]:
    occasion = data.catalog.occasion(data.draft.occasion)
    if occasion is None:
        return
    for field_key in occasion.required_fields:
        value = data.draft.occasion_fields.get(field_key) or ""
        if not value.strip():
            label = occasion.label_for(field_key)
            yield ValidationIssue(f"Missing {label}", f"Please enter {label.lower()} to continue.")


def _service_issues(data: ValidationInput, only: str | None = None) -> Iterator[ValidationIssue]:
    draft = data.draft
    for service in data.catalog.services:
        if only is not None and service.name != only:
            continue
        if draft.decoration_enabled and service.include_in_decoration:
            continue
        if service.name in draft.skipped_services:
            continue
        if draft.is_service_enabled(service.name) and not draft.items_for(service.name):
            yield ValidationIssue(
                f"{service.name} Selection Required",
                f'You selected "Yes" for {service.name} but didn\'t choose any items. '
                'Please select at least one item or click "Skip" to skip this service.',
            )


def _terms_issues(draft: BookingDraft) -> Iterator[ValidationIssue]:
    if not draft.agree_to_terms:
        yield ValidationIssue(
            "Terms & Conditions Required",
            "Please agree to the terms & conditions to continue.",
        )

from __future__ import annotations

import hashlib

from programs.form_pipeline.domain_templates import (
    BUG_REPORT_TITLES,
    FEEDBACK_FORM_TITLE,
    area_options,
    bug_report_form,
    match_domain_template,
    stable_choice,
)
from programs.form_pipeline.lowering import lower_form
from programs.form_pipeline.structured_text import (
    PREFERRED_METHOD_OPTIONS,
    TIME_OF_DAY_OPTIONS,
    parse_structured_sections,
)
from schemas.form_model import FieldKind

VOLUNTEER_PROMPT = """
Title: Volunteer Signup
Intro: Thanks for helping out!
We appreciate you.
Section 1: About You
Tell us a bit about yourself.
1. Full name (required)
2. Email (email, required)
3. Shirt size (dropdown: S, M, L, XL)
4. Do you have a car? (yes/no)
5. If yes, how many seats? (number)
Section 2: Availability
- Days available (checkboxes: Mon, Tue, Wed, Other)
- Consent checkbox: I agree to the volunteer code of conduct
End / Thank You Page:
Message: "See you there!"
"""


def _labels(section):
    return [f.label for f in section.fields]


def test_sections_fields_and_trailer():
    parsed = parse_structured_sections(VOLUNTEER_PROMPT)
    assert parsed is not None
    assert parsed.title == "Volunteer Signup"
    assert parsed.description == "Thanks for helping out! We appreciate you."
    assert [s.title for s in parsed.sections] == ["About You", "Availability"]
    assert parsed.settings.confirmation_message == "See you there!"

    about, availability = parsed.sections
    assert about.description == "Tell us a bit about yourself."
    assert _labels(about) == ["Full name", "Email", "Shirt size", "Do you have a car?", "If yes, how many seats?"]
    name, email, shirt, car, seats = about.fields
    assert (name.kind, name.required) == (FieldKind.TEXT, True)
    assert (email.kind, email.required) == (FieldKind.EMAIL, True)
    assert (shirt.kind, shirt.options) == (FieldKind.DROPDOWN, ["S", "M", "L", "XL"])
    assert (car.kind, car.options) == (FieldKind.MULTIPLE_CHOICE, ["Yes", "No"])
    assert seats.kind is FieldKind.NUMBER
    assert seats.show_if == "Do you have a car? = Yes"

    assert _labels(availability) == ["Days available", "Days available: please specify", "Consent"]
    days, specify, consent = availability.fields
    assert days.kind is FieldKind.CHECKBOXES
    assert specify.show_if == "Days available = Other"
    assert consent.kind is FieldKind.CONSENT_CHECKBOX
    assert consent.required is True
    assert consent.options == ["I agree to the volunteer code of conduct"]


def test_heuristic_conditions_resolve_when_lowered():
    lowered = lower_form(parse_structured_sections(VOLUNTEER_PROMPT))
    assert lowered.unresolved_conditions == []
    rules = [b.payload.conditional_logic for b in lowered.blocks if b.payload.conditional_logic]
    assert len(rules) == 2


def test_if_yes_without_prior_choice_stays_unconditional():
    parsed = parse_structured_sections("Section: Trip\n1. If yes, where to? (text)")
    assert parsed.sections[0].fields[0].show_if is None


def test_bare_mentions_become_canned_fields():
    parsed = parse_structured_sections(
        "Section: Contact\nPreferred method of contact\nBest time of day to call\nSome other note"
    )
    method, time_of_day = parsed.sections[0].fields
    assert (method.kind, method.options) == (FieldKind.MULTIPLE_CHOICE, PREFERRED_METHOD_OPTIONS)
    assert (time_of_day.kind, time_of_day.options) == (FieldKind.DROPDOWN, TIME_OF_DAY_OPTIONS)
    # Already present: enrichment does not add duplicates.
    assert parsed.field_count() == 2


def test_ranges_for_rating_and_scales():
    parsed = parse_structured_sections(
        "Section: Scores\n1. Rate us (rating 1-10)\n2. Recommend us? (nps 0-10)\n3. Effort (scale 1 to 7)"
    )
    rating, nps, scale = parsed.sections[0].fields
    assert (rating.kind, rating.max_rating) == (FieldKind.RATING, 10)
    assert (nps.kind, nps.min_value, nps.max_value) == (FieldKind.NPS, 0, 10)
    assert (scale.kind, scale.min_value, scale.max_value) == (FieldKind.LINEAR_SCALE, 1, 7)


def test_multi_select_is_checkboxes_and_listed_options_imply_single_choice():
    parsed = parse_structured_sections("Section: Prefs\n- Colors (multi-select: Red, Blue)")
    colors = parsed.sections[0].fields[0]
    assert (colors.kind, colors.options) == (FieldKind.CHECKBOXES, ["Red", "Blue"])
    parsed = parse_structured_sections("Section: Prefs\n- Size (pick one: S, M, L)")
    assert parsed.sections[0].fields[0].kind is FieldKind.MULTIPLE_CHOICE
    assert parsed.sections[0].fields[0].options == ["S", "M", "L"]


def test_sections_without_fields_are_dropped():
    parsed = parse_structured_sections("Section: Empty\nJust words here\nSection: Real\n1. Age (number)")
    assert [s.title for s in parsed.sections] == ["Real"]


def test_title_falls_back_to_prompt_phrase():
    parsed = parse_structured_sections("Create a volunteer form\nSection: You\n1. Name (text)")
    assert parsed.title == "Volunteer"


def test_enrichment_adds_severity_and_consent():
    parsed = parse_structured_sections(
        "Section: Contact Info\n1. Name (required)\nSection: Wrap up\n1. Notes (long text)\n"
        "Also capture severity and a consent line."
    )
    first, last = parsed.sections
    assert _labels(first) == ["Name", "Severity"]
    assert first.fields[1].kind is FieldKind.DROPDOWN
    assert _labels(last) == ["Notes", "Consent"]
    assert last.fields[0].kind is FieldKind.TEXTAREA


def test_enrichment_places_contact_fields_by_section_keyword():
    parsed = parse_structured_sections(
        "Ask for their preferred method and the time of day.\n"
        "Section: Project\n1. Budget (number)\nSection: Contact details\n1. Email (email)"
    )
    project, contact = parsed.sections
    assert _labels(project) == ["Budget"]
    assert _labels(contact) == ["Email", "Preferred contact method", "Best time of day to reach you"]


def test_no_sections_and_no_template_returns_none():
    assert parse_structured_sections("Tell me a joke about forms") is None
    assert parse_structured_sections("") is None


def test_bug_report_template():
    prompt = "I need a bug report form for our mobile app, we follow up on Slack"
    parsed = parse_structured_sections(prompt)
    assert parsed is not None
    assert parsed.title in BUG_REPORT_TITLES
    assert [s.title for s in parsed.sections] == [
        "Reporter Details",
        "Bug Summary",
        "Reproduction",
        "Environment & Attachments",
    ]
    assert parsed.has_field_labeled("severity")
    area = next(f for f in parsed.iter_fields() if f.label == "Affected area")
    assert "Mobile App" in area.options
    assert area.options[-1] == "Other"
    contact = next(f for f in parsed.iter_fields() if f.label == "Preferred contact method")
    assert "Slack" in contact.options
    assert parsed.settings.confirmation_message

    lowered = lower_form(parsed)
    assert lowered.unresolved_conditions == []


def test_bug_report_title_is_deterministic():
    prompt = "bug report for the billing page"
    expected = BUG_REPORT_TITLES[int(hashlib.sha256(prompt.encode("utf-8")).hexdigest(), 16) % len(BUG_REPORT_TITLES)]
    titles = {bug_report_form(prompt).title for _ in range(5)}
    assert titles == {expected}
    assert stable_choice(prompt, BUG_REPORT_TITLES) == expected


def test_area_options_keyword_enrichment():
    assert area_options("slow analytics and billing") == [
        "UI",
        "Login & Authentication",
        "Performance",
        "Data & Sync",
        "Dashboard & Analytics",
        "Payments & Billing",
        "Other",
    ]
    assert "API & Integrations" not in area_options("rapid crashes")


def test_customer_feedback_template():
    parsed = match_domain_template("Customer feedback survey with a satisfaction rating")
    assert parsed.title == FEEDBACK_FORM_TITLE
    assert parsed.field_count() == 8
    lowered = lower_form(parsed)
    assert lowered.unresolved_conditions == []
    assert len([b for b in lowered.blocks if b.payload.conditional_logic]) == 3

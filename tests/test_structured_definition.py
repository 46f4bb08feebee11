from __future__ import annotations

import json

import pytest

from programs.form_pipeline.structured_definition import DEFAULT_TITLE, extract_structured_definition
from schemas.form_model import FieldKind


def _fenced(obj, lang: str = "json") -> str:
    return f"```{lang}\n{json.dumps(obj)}\n```"


def test_fenced_json_round_trip():
    parsed = extract_structured_definition(_fenced({"title": "X", "fields": [{"type": "text", "label": "Name"}]}))
    assert parsed is not None
    assert parsed.title == "X"
    assert len(parsed.sections) == 1
    assert len(parsed.sections[0].fields) == 1
    f = parsed.sections[0].fields[0]
    assert (f.kind, f.label, f.required) == (FieldKind.TEXT, "Name", False)
    assert f.placeholder == "Enter name"


def test_plain_fence_and_bare_json_are_accepted():
    obj = {"title": "Bare", "fields": [{"type": "email", "label": "Email", "required": True}]}
    assert extract_structured_definition(_fenced(obj, lang="")).title == "Bare"
    assert extract_structured_definition(json.dumps(obj)).sections[0].fields[0].required is True


def test_blocks_key_is_accepted_in_place_of_fields():
    parsed = extract_structured_definition(json.dumps({"title": "B", "blocks": [{"type": "long_text", "label": "Bio"}]}))
    assert parsed.sections[0].fields[0].kind is FieldKind.TEXTAREA


@pytest.mark.parametrize(
    "raw_type, kind",
    [
        ("short_text", FieldKind.TEXT),
        ("input_text", FieldKind.TEXT),
        ("phone_number", FieldKind.PHONE),
        ("message", FieldKind.TEXTAREA),
        ("website", FieldKind.URL),
        ("link", FieldKind.URL),
        ("number", FieldKind.NUMBER),
        ("date", FieldKind.DATE),
        ("upload", FieldKind.FILE_UPLOAD),
        ("input_file_upload", FieldKind.FILE_UPLOAD),
        ("sign", FieldKind.SIGNATURE),
        ("Long Text", FieldKind.TEXTAREA),
        ("nps", FieldKind.NPS),
    ],
)
def test_type_aliases(raw_type, kind):
    parsed = extract_structured_definition(json.dumps({"fields": [{"type": raw_type, "label": "Field"}]}))
    assert parsed is not None
    assert parsed.sections[0].fields[0].kind is kind


@pytest.mark.parametrize("raw_type, level", [("h1", 1), ("heading_2", 2), ("heading", 2), ("h3", 3)])
def test_heading_levels(raw_type, level):
    parsed = extract_structured_definition(json.dumps({"fields": [{"type": raw_type, "content": "About you"}]}))
    f = parsed.sections[0].fields[0]
    assert f.kind is FieldKind.HEADING
    assert f.level == level
    assert f.content == "About you"


@pytest.mark.parametrize("raw_type", ["paragraph", "content", "description", "text_block"])
def test_paragraph_aliases(raw_type):
    parsed = extract_structured_definition(json.dumps({"fields": [{"type": raw_type, "text": "Read me"}]}))
    f = parsed.sections[0].fields[0]
    assert f.kind is FieldKind.TEXT_BLOCK
    assert f.content == "Read me"


def test_choice_items_without_options_are_dropped():
    parsed = extract_structured_definition(
        json.dumps(
            {
                "title": "Choices",
                "fields": [
                    {"type": "select", "label": "Empty"},
                    {"type": "radio", "label": "Size", "choices": ["S", "M"]},
                    {"type": "checkbox", "label": "Toppings", "options": []},
                ],
            }
        )
    )
    fields = parsed.sections[0].fields
    assert [(f.label, f.kind) for f in fields] == [("Size", FieldKind.MULTIPLE_CHOICE)]
    assert fields[0].options == ["S", "M"]


def test_unknown_types_are_dropped_and_all_dropped_returns_none():
    obj = {"title": "T", "fields": [{"type": "hologram", "label": "?"}, {"type": "text", "label": "Name"}]}
    assert [f.label for f in extract_structured_definition(json.dumps(obj)).sections[0].fields] == ["Name"]
    assert extract_structured_definition(json.dumps({"title": "T", "fields": [{"type": "hologram"}]})) is None


def test_title_items_fill_missing_title_and_are_not_fields():
    parsed = extract_structured_definition(
        json.dumps({"fields": [{"type": "form_title", "label": "From Item"}, {"type": "text", "label": "Name"}]})
    )
    assert parsed.title == "From Item"
    assert parsed.field_count() == 1

    parsed = extract_structured_definition(
        json.dumps({"title": "Top", "fields": [{"type": "title", "label": "Ignored"}, {"type": "text", "label": "A"}]})
    )
    assert parsed.title == "Top"


def test_missing_title_defaults():
    parsed = extract_structured_definition(json.dumps({"fields": [{"type": "text", "label": "Name"}]}))
    assert parsed.title == DEFAULT_TITLE


def test_rating_file_and_signature_attributes():
    parsed = extract_structured_definition(
        json.dumps(
            {
                "fields": [
                    {"type": "rating", "label": "Stars", "scale": 10, "shape": "heart"},
                    {
                        "type": "file",
                        "label": "Docs",
                        "multiple": True,
                        "maximumFiles": 3,
                        "sizeLimit": "5",
                        "accept": "pdf, png",
                    },
                    {"type": "signature", "label": "Sign here", "penWidth": 2},
                ]
            }
        )
    )
    rating, upload, signature = parsed.sections[0].fields
    assert (rating.max_rating, rating.shape) == (10, "HEART")
    assert upload.allow_multiple is True
    assert upload.max_files == 3
    assert upload.max_file_size == 5
    assert upload.allowed_file_types == ["pdf", "png"]
    assert signature.stroke_width == 2


def test_settings_and_show_if_are_carried():
    parsed = extract_structured_definition(
        json.dumps(
            {
                "title": "Event",
                "description": "RSVP",
                "confirmationMessage": "See you!",
                "redirectUrl": "https://example.com/done",
                "fields": [
                    {"type": "choice", "label": "Coming", "options": ["Yes", "No"]},
                    {"type": "number", "label": "Guests", "show_if": "Coming = Yes"},
                ],
            }
        )
    )
    assert parsed.description == "RSVP"
    assert parsed.settings.confirmation_message == "See you!"
    assert parsed.settings.redirect_url == "https://example.com/done"
    assert parsed.sections[0].fields[1].show_if == "Coming = Yes"


@pytest.mark.parametrize(
    "prompt",
    [
        "Create a contact form with name and email",
        "```json\n{not json}\n```",
        '{"title": "No fields"}',
        '{"title": "Empty", "fields": []}',
        '["just", "a", "list"]',
        "```python\nprint('hi')\n```",
        "",
    ],
)
def test_malformed_or_absent_definitions_return_none(prompt):
    assert extract_structured_definition(prompt) is None


def test_numeric_scale_labels_become_text():
    parsed = extract_structured_definition(
        json.dumps({"title": "S", "fields": [{"type": "linear_scale", "label": "Score", "minLabel": 1, "maxLabel": 10}]})
    )
    assert parsed is not None
    f = parsed.sections[0].fields[0]
    assert (f.min_label, f.max_label) == ("1", "10")


def test_numeric_currency_becomes_text():
    parsed = extract_structured_definition(
        json.dumps({"title": "Pay", "fields": [{"type": "payment", "label": "Deposit", "amount": 20, "currency": 5}]})
    )
    assert parsed.sections[0].fields[0].currency == "5"


@pytest.mark.parametrize(
    "item",
    [
        {"type": "linear_scale", "label": "Score", "minLabel": {"x": 1}, "minValue": "low", "step": [2]},
        {"type": "nps", "label": "Recommend", "maxLabel": 10, "maxValue": "ten"},
        {"type": "likert", "label": "Agree", "minLabel": True, "rows": "one"},
        {"type": "matrix", "label": "Grid", "rows": 3, "columns": "A", "allowMultiple": "maybe"},
        {"type": "media", "label": "Intro", "url": 123, "alt": ["x"], "content": {"k": "v"}},
        {"type": "payment", "label": "Fee", "amount": "lots", "currency": ["USD"], "description": 7},
    ],
)
def test_wrong_typed_attributes_never_raise(item):
    prompt = json.dumps({"title": "Odd", "fields": [{"type": "text", "label": "Name"}, item]})
    parsed = extract_structured_definition(prompt)
    assert parsed is not None
    assert parsed.sections[0].fields[0].label == "Name"


def test_item_failing_validation_is_dropped():
    # `allowMultiple` has no boolean reading; the matrix item goes, the rest stays.
    parsed = extract_structured_definition(
        json.dumps({"title": "T", "fields": [{"type": "email", "label": "Email"}, {"type": "matrix", "label": "Grid", "allowMultiple": "maybe"}]})
    )
    assert [f.label for f in parsed.sections[0].fields] == ["Email"]

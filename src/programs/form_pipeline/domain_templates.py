"""
Canned domain forms used when a prompt has no recognizable section structure.

Each template is keyed by keyword sniffing on the lowercased prompt. Anything
"random" (the witty bug-report title) is derived from a hash of the prompt text so
the same prompt always compiles to the same form.
"""

from __future__ import annotations

import hashlib
import re
from typing import Callable, List, Optional, Tuple

from schemas.form_model import FormField, FormSection, FormSettings, ParsedForm

BUG_REPORT_TITLES: List[str] = [
    "Bug Busters Unite! 🐛",
    "Squash That Bug 🪲",
    "Houston, We Have a Problem 🚀",
    "Glitch in the Matrix? 🕶️",
    "Report a Gremlin 👾",
]

SEVERITY_OPTIONS: List[str] = ["Critical", "High", "Medium", "Low"]

_BASE_AREA_OPTIONS: List[str] = ["UI", "Login & Authentication", "Performance", "Data & Sync"]

# keyword(s) -> extra "affected area" option
_AREA_ENRICHMENTS: List[Tuple[Tuple[str, ...], str]] = [
    (("analytics",), "Dashboard & Analytics"),
    (("payment", "billing"), "Payments & Billing"),
    (("mobile",), "Mobile App"),
    (("api", "integration"), "API & Integrations"),
]

FEEDBACK_FORM_TITLE = "Customer Feedback"
SATISFACTION_LABEL = "How satisfied are you with our service?"
RECOMMEND_LABEL = "Would you recommend us to a friend?"


def stable_choice(prompt: str, choices: List[str]) -> str:
    """
    Pick from `choices` by sha256 of the prompt; stable across runs and processes.
    """
    digest = hashlib.sha256(str(prompt or "").encode("utf-8")).hexdigest()
    return choices[int(digest, 16) % len(choices)]


def _mentions(lowered: str, keyword: str) -> bool:
    return re.search(r"\b" + re.escape(keyword), lowered) is not None


def is_bug_report_prompt(lowered: str) -> bool:
    if "bug report" in lowered:
        return True
    return "bug" in lowered and ("report" in lowered or "issue" in lowered)


def is_feedback_prompt(lowered: str) -> bool:
    topical = "feedback" in lowered or "satisfaction" in lowered
    scaled = "rating" in lowered or "scale" in lowered or "satisf" in lowered
    return topical and scaled


def area_options(lowered: str) -> List[str]:
    options = list(_BASE_AREA_OPTIONS)
    for keywords, option in _AREA_ENRICHMENTS:
        if any(_mentions(lowered, k) for k in keywords):
            options.append(option)
    options.append("Other")
    return options


def contact_preference_options(lowered: str) -> List[str]:
    options = ["Email", "Phone"]
    if "slack" in lowered:
        options.append("Slack")
    options.append("No follow-up needed")
    return options


def severity_field() -> FormField:
    return FormField(
        type="dropdown",
        label="Severity",
        required=True,
        placeholder="Select severity",
        options=list(SEVERITY_OPTIONS),
    )


def bug_report_form(prompt: str) -> ParsedForm:
    lowered = str(prompt or "").lower()
    sections = [
        FormSection(
            title="Reporter Details",
            description="Tell us who you are so we can follow up.",
            fields=[
                FormField(type="text", label="Your Name", required=True, placeholder="Enter your name"),
                FormField(type="email", label="Email", required=True, placeholder="you@example.com"),
                FormField(
                    type="multiple_choice",
                    label="Preferred contact method",
                    required=False,
                    options=contact_preference_options(lowered),
                ),
            ],
        ),
        FormSection(
            title="Bug Summary",
            description="A short description of what went wrong.",
            fields=[
                FormField(type="text", label="Bug title", required=True, placeholder="One-line summary"),
                severity_field(),
                FormField(type="checkboxes", label="Affected area", required=False, options=area_options(lowered)),
                FormField(
                    type="text",
                    label="Please specify the affected area",
                    required=False,
                    showIf="Affected area = Other",
                ),
            ],
        ),
        FormSection(
            title="Reproduction",
            description="Help us see the bug for ourselves.",
            fields=[
                FormField(type="textarea", label="Steps to reproduce", required=True, placeholder="1. Go to...\n2. Click on..."),
                FormField(type="textarea", label="Expected behavior", required=False),
                FormField(type="textarea", label="Actual behavior", required=True),
            ],
        ),
        FormSection(
            title="Environment & Attachments",
            description="Where did it happen, and do you have proof?",
            fields=[
                FormField(type="text", label="Browser / OS / App version", required=False, placeholder="e.g. Chrome 120 on macOS"),
                FormField(
                    type="file_upload",
                    label="Screenshots or recordings",
                    required=False,
                    maxFileSize=10,
                    allowedFileTypes=["png", "jpg", "gif", "mp4"],
                    allowMultiple=True,
                ),
            ],
        ),
    ]
    return ParsedForm(
        title=stable_choice(prompt, BUG_REPORT_TITLES),
        description="Found something broken? Walk us through it and we'll get squashing.",
        sections=sections,
        settings=FormSettings(confirmation_message="Thanks! Our team is on the case."),
    )


def customer_feedback_form(prompt: str) -> ParsedForm:
    fields = [
        FormField(type="text", label="Full Name", required=True),
        FormField(type="email", label="Email", required=True),
        FormField(type="text", label="Country", required=True),
        FormField(type="rating", label=SATISFACTION_LABEL, required=True, maxRating=5),
        FormField(
            type="textarea",
            label="Please tell us what went wrong",
            required=False,
            showIf=f"{SATISFACTION_LABEL.lower()} <= 3",
        ),
        FormField(
            type="multiple_choice",
            label="What did you like the most?",
            required=False,
            options=["Speed", "Quality", "Support", "Price"],
            showIf=f"{SATISFACTION_LABEL.lower()} >= 4",
        ),
        FormField(type="multiple_choice", label=RECOMMEND_LABEL, required=True, options=["Yes", "No"]),
        FormField(
            type="email",
            label="Friend's email for referral",
            required=False,
            showIf=f"{RECOMMEND_LABEL.lower()} = Yes",
        ),
    ]
    return ParsedForm(
        title=FEEDBACK_FORM_TITLE,
        sections=[FormSection(title="Information", description="Please provide your details", fields=fields)],
    )


# Checked in order; first match wins.
DOMAIN_TEMPLATES: List[Tuple[str, Callable[[str], bool], Callable[[str], ParsedForm]]] = [
    ("bug_report", is_bug_report_prompt, bug_report_form),
    ("customer_feedback", is_feedback_prompt, customer_feedback_form),
]


def match_domain_template(prompt: str) -> Optional[ParsedForm]:
    lowered = str(prompt or "").lower()
    for _name, matches, build in DOMAIN_TEMPLATES:
        if matches(lowered):
            return build(prompt)
    return None


__all__ = [
    "BUG_REPORT_TITLES",
    "DOMAIN_TEMPLATES",
    "SEVERITY_OPTIONS",
    "area_options",
    "bug_report_form",
    "contact_preference_options",
    "customer_feedback_form",
    "is_bug_report_prompt",
    "is_feedback_prompt",
    "match_domain_template",
    "severity_field",
    "stable_choice",
]

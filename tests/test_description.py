"""Unit tests for business-name substitution in requirement descriptions."""

from __future__ import annotations

from app.services.description import effective_description, resolve_description


def test_resolve_replaces_every_token_case_insensitively():
    text = "License to operate [businessName]. Keep [BUSINESSNAME] compliant."
    assert resolve_description(text, "Acme") == "License to operate Acme. Keep Acme compliant."


def test_resolve_missing_description_is_empty():
    assert resolve_description(None, "Acme") == ""


def test_resolve_keeps_special_characters_in_name_literal():
    assert resolve_description("Permit for [businessName]", r"A\1 & Co") == r"Permit for A\1 & Co"


def test_resolve_is_stable_across_calls():
    text = "Insurance for [businessName]"
    assert resolve_description(text, "Acme") == resolve_description(text, "Acme")


def test_override_wins_over_template_text():
    assert effective_description("Custom text", "License to operate [businessName]", "Beta") == "Custom text"


def test_empty_override_is_still_an_override():
    assert effective_description("", "License to operate [businessName]", "Beta") == ""


def test_no_override_falls_back_to_resolved_template():
    assert effective_description(None, "License to operate [businessName]", "Acme") == "License to operate Acme"

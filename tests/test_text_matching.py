"""Tests for the pure text helpers: phones, FAQs, ordering and urgency keywords."""

import pytest

from app.services.faq import FAQEntry, match_faq, normalize_text, parse_faqs
from app.services.ordering import build_ordering_reply, is_ordering_request, ordering_link_line
from app.services.urgency import UrgencySource, detect_keyword_urgency, match_alert_keyword
from app.utils.phone import mask_phone, normalize_phone, phone_variants


class TestNormalizePhone:
    """Tests for normalize_phone."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+15551234567", "+15551234567"),
            ("5551234567", "+15551234567"),
            ("(555) 123-4567", "+15551234567"),
            ("15551234567", "+15551234567"),
            ("whatsapp:+5215512345678", "+5215512345678"),
            (" 15551234567", "+15551234567"),
        ],
    )
    def test_normalizes_to_e164(self, raw, expected):
        assert normalize_phone(raw) == expected

    def test_empty_input_returns_empty_string(self):
        assert normalize_phone(None) == ""
        assert normalize_phone("") == ""
        assert normalize_phone("---") == ""

    def test_variants_include_form_without_plus(self):
        variants = phone_variants("+15551234567")
        assert "+15551234567" in variants
        assert "15551234567" in variants

    def test_mask_keeps_last_four_digits(self):
        assert mask_phone("+15551234567") == "***4567"
        assert mask_phone(None) == "<none>"


class TestFAQ:
    """Tests for FAQ parsing and matching."""

    def test_normalize_text_strips_punctuation_and_case(self):
        assert normalize_text("  Are YOU open,   today?! ") == "are you open today"

    def test_parse_accepts_json_string(self):
        faqs = parse_faqs('[{"question": "Do you deliver?", "answer": "Yes!"}]')
        assert faqs == [FAQEntry(question="Do you deliver?", answer="Yes!")]

    def test_parse_skips_incomplete_entries(self):
        faqs = parse_faqs([
            {"question": "Parking?", "answer": "Out back."},
            {"question": "No answer"},
            {"answer": "No question"},
            "not a dict",
        ])
        assert len(faqs) == 1
        assert faqs[0].question == "Parking?"

    @pytest.mark.parametrize("raw", ["{not json", {"question": "x"}, 42, None])
    def test_parse_malformed_returns_empty(self, raw):
        assert parse_faqs(raw) == []

    def test_match_is_substring_of_normalized_message(self):
        faqs = [FAQEntry("Are you open on Sunday?", "Closed Sundays.")]
        assert match_faq("Hey, ARE you open on sunday??", faqs) == faqs[0]

    def test_no_match_when_question_not_contained(self):
        faqs = [FAQEntry("Are you open on Sunday?", "Closed Sundays.")]
        assert match_faq("Do you have gluten free crust?", faqs) is None

    def test_first_matching_faq_wins(self):
        faqs = [FAQEntry("hours", "9-5"), FAQEntry("your hours", "Also 9-5")]
        assert match_faq("What are your hours?", faqs).answer == "9-5"


class TestOrdering:
    """Tests for ordering intent detection."""

    @pytest.mark.parametrize(
        "message",
        ["Can I place an order?", "do you do DELIVERY", "Is pickup available", "can I pick up at 6", "menu please"],
    )
    def test_detects_ordering_phrases(self, message):
        assert is_ordering_request(message) is True

    @pytest.mark.parametrize("message", ["What time do you close?", "bordering town", ""])
    def test_ignores_other_messages(self, message):
        assert is_ordering_request(message) is False

    def test_reply_includes_name_and_link(self):
        reply = build_ordering_reply("Joe's Pizza", "https://order.example.com")
        assert reply == "Thanks for reaching out to Joe's Pizza! Order online here: https://order.example.com"
        assert ordering_link_line("https://x.test") == "Order online here: https://x.test"


class TestUrgencyKeywords:
    """Tests for keyword urgency detection."""

    def test_matches_whole_word_case_insensitively(self):
        assert match_alert_keyword("There's a LEAK in the kitchen!", ["leak"]) == "leak"

    def test_does_not_match_inside_other_words(self):
        assert match_alert_keyword("the faucet is leaky", ["leak"]) is None

    def test_skips_blank_keywords(self):
        assert match_alert_keyword("anything", ["", "  "]) is None

    def test_detect_reports_source_and_keyword(self):
        result = detect_keyword_urgency("This is an emergency", ["fire", "emergency"])
        assert result.is_urgent is True
        assert result.source == UrgencySource.CUSTOM_KEYWORDS
        assert result.matched_keyword == "emergency"

    def test_no_keywords_is_not_urgent(self):
        result = detect_keyword_urgency("This is an emergency", [])
        assert result.is_urgent is False
        assert result.source is None

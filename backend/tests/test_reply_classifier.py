"""Tests for broker reply classification."""

import pytest

from app.services.reply_classifier import ReplyCategory, ReplyRule, classify_reply


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Your personal information has been removed from our website.", ReplyCategory.CONFIRMED_REMOVAL),
        ("We have processed your request. Your listing will be deleted within 72 hours.", ReplyCategory.CONFIRMED_REMOVAL),
        ("Your opt-out request has been processed.", ReplyCategory.CONFIRMED_REMOVAL),
        ("We were unable to locate any records matching the information you provided.", ReplyCategory.NO_RECORD),
        ("After searching our database we could not find a profile for you.", ReplyCategory.NO_RECORD),
        ("There are no records associated with this email address.", ReplyCategory.NO_RECORD),
        ("To complete your request, please verify your identity by clicking the link below.", ReplyCategory.REQUIRES_VERIFICATION),
        ("Click this link to confirm your request.", ReplyCategory.REQUIRES_VERIFICATION),
        ("We cannot process requests via email. Please submit our online form.", ReplyCategory.REQUIRES_MANUAL),
        ("Please visit our privacy center to submit a deletion request.", ReplyCategory.REQUIRES_MANUAL),
        ("Thanks for reaching out, we'll get back to you shortly.", ReplyCategory.UNKNOWN),
        ("", ReplyCategory.UNKNOWN),
    ],
)
def test_classify_reply(text, expected):
    assert classify_reply(text) == expected


def test_first_matching_rule_wins():
    # Contains both a removal phrase and a no-record phrase
    text = "We could not find your data, so nothing has been deleted."
    assert classify_reply(text) == ReplyCategory.NO_RECORD


def test_custom_rules():
    rules = [
        ReplyRule.compile(r"ticket\s+#\d+", ReplyCategory.REQUIRES_MANUAL),
        ReplyRule.compile(r"removed", ReplyCategory.CONFIRMED_REMOVAL),
    ]
    assert classify_reply("Ticket #123 opened: record removed", rules) == ReplyCategory.REQUIRES_MANUAL
    assert classify_reply("record removed", rules) == ReplyCategory.CONFIRMED_REMOVAL
    assert classify_reply("hello", rules) == ReplyCategory.UNKNOWN

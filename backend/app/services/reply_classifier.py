"""Classify broker reply emails into removal outcomes.

Rules are checked in order and the first match wins, so more specific
phrasings must come before broader ones.
"""

import enum
import re
from dataclasses import dataclass
from typing import Sequence


class ReplyCategory(str, enum.Enum):
    CONFIRMED_REMOVAL = "CONFIRMED_REMOVAL"
    NO_RECORD = "NO_RECORD"
    REQUIRES_VERIFICATION = "REQUIRES_VERIFICATION"
    REQUIRES_MANUAL = "REQUIRES_MANUAL"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class ReplyRule:
    pattern: re.Pattern
    category: ReplyCategory

    @classmethod
    def compile(cls, pattern: str, category: ReplyCategory) -> "ReplyRule":
        return cls(re.compile(pattern, re.IGNORECASE), category)


REPLY_RULES: list[ReplyRule] = [
    # "we could not locate any records" must beat the removal patterns below
    ReplyRule.compile(
        r"\b(?:no|not\s+(?:find|locate)\s+any)\s+(?:matching\s+)?(?:records?|information|data|profiles?)"
        r"|(?:could|were|was)\s+not\s+(?:find|locate|match)|unable\s+to\s+(?:find|locate|identify)"
        r"|do(?:es)?\s+not\s+have\s+any\s+(?:records?|information|data)",
        ReplyCategory.NO_RECORD,
    ),
    ReplyRule.compile(
        r"verify\s+your\s+identity|verification\s+(?:link|code|email)|confirm\s+your\s+(?:email|identity|request)"
        r"|click\s+(?:the|this)\s+link\s+to\s+(?:confirm|verify)",
        ReplyCategory.REQUIRES_VERIFICATION,
    ),
    ReplyRule.compile(
        r"(?:use|submit|complete|visit)\s+(?:our|the)\s+(?:online\s+)?(?:form|portal|web\s*form|privacy\s+center)"
        r"|(?:cannot|can\s*not|unable\s+to)\s+(?:process|accept|honor)\s+(?:requests?\s+)?(?:by|via|through)\s+email"
        r"|do\s+not\s+accept\s+(?:requests?\s+(?:by|via)\s+)?email",
        ReplyCategory.REQUIRES_MANUAL,
    ),
    ReplyRule.compile(
        r"(?:has|have)\s+been\s+(?:removed|deleted|suppressed|opted\s+out)"
        r"|will\s+be\s+(?:removed|deleted|suppressed)|(?:removal|deletion|opt[-\s]?out)\s+(?:request\s+)?"
        r"(?:has\s+been\s+)?(?:processed|completed|confirmed)",
        ReplyCategory.CONFIRMED_REMOVAL,
    ),
]


def classify_reply(text: str, rules: Sequence[ReplyRule] = REPLY_RULES) -> ReplyCategory:
    """Category of the first rule matching ``text``, UNKNOWN otherwise."""
    if not text:
        return ReplyCategory.UNKNOWN
    for rule in rules:
        if rule.pattern.search(text):
            return rule.category
    return ReplyCategory.UNKNOWN

"""
Content Tagger

Tags coach content with intent and situation categories by
case-insensitive substring matching against keyword tables.
A category is either present or absent; there is no weighting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from .taxonomies import CONTENT_TYPE_INTENT_TAGS, INTENT_KEYWORDS, SITUATION_KEYWORDS


@dataclass
class ContentTags:
    intent_tags: List[str] = field(default_factory=list)
    situation_tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"intent_tags": list(self.intent_tags), "situation_tags": list(self.situation_tags)}


def match_categories(text: str, table: Mapping[str, Sequence[str]]) -> List[str]:
    """Return every category with at least one keyword found in text, in table order."""
    lowered = (text or "").lower()
    return [
        category
        for category, keywords in table.items()
        if any(keyword in lowered for keyword in keywords)
    ]


class ContentTagger:
    """Applies the intent / situation tables to a piece of content."""

    def __init__(
        self,
        intent_keywords: Mapping[str, Sequence[str]] = INTENT_KEYWORDS,
        situation_keywords: Mapping[str, Sequence[str]] = SITUATION_KEYWORDS,
        content_type_tags: Mapping[str, str] = CONTENT_TYPE_INTENT_TAGS,
    ):
        self.intent_keywords = intent_keywords
        self.situation_keywords = situation_keywords
        self.content_type_tags = content_type_tags

    def intent_tags(self, text: str, content_type: Optional[str] = None) -> List[str]:
        tags = match_categories(text, self.intent_keywords)
        extra = self.content_type_tags.get(content_type or "")
        if extra and extra not in tags:
            tags.append(extra)
        return tags

    def situation_tags(self, text: str) -> List[str]:
        return match_categories(text, self.situation_keywords)

    def tag(self, text: str, content_type: Optional[str] = None) -> ContentTags:
        return ContentTags(
            intent_tags=self.intent_tags(text, content_type),
            situation_tags=self.situation_tags(text),
        )


content_tagger = ContentTagger()

"""Prompt templates for topic discovery and bookmark classification."""

from __future__ import annotations

from collections.abc import Iterable
from xml.sax.saxutils import escape

from xmarks.models import CategoryRecord

# escape() covers & < >; quotes are added for attribute safety
_XML_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}

DISCOVERY_PROMPT = """\
You are classifying X/Twitter bookmarks into semantic topics.
Generate {min_categories}-{max_categories} broad, practical categories that can cover this dataset.
Each category must include:
- name: concise title (2-4 words)
- description: one sentence explaining inclusion criteria
- emoji: a single emoji that represents the category

Return JSON only with this exact shape:
{{"categories":[{{"name":"...","description":"...","emoji":"..."}}]}}

Constraints:
- {min_categories} to {max_categories} categories exactly
- Non-overlapping where possible
- Avoid overly generic buckets like "Misc"

Sample tweets:
{samples}"""

CLASSIFICATION_PROMPT = """\
Assign each tweet to exactly one category from the list.
If unsure, choose the closest category from the provided options.

Categories:
{categories}

Tweets (XML):
{tweets_xml}

Return JSON only with this exact shape:
{{"assignments":[{{"tweetId":"...","categoryName":"..."}}]}}
Only use categoryName values exactly as listed above."""


def escape_xml(value: str) -> str:
    return escape(value, _XML_QUOTE_ENTITIES)


def build_discovery_prompt(
    samples: Iterable[tuple[str, str]],
    *,
    min_categories: int,
    max_categories: int,
) -> str:
    """``samples`` are ``(author_handle, text)`` pairs."""
    sample_text = "\n".join(f"- @{handle}: {text}" for handle, text in samples)
    return DISCOVERY_PROMPT.format(
        min_categories=min_categories,
        max_categories=max_categories,
        samples=sample_text,
    )


def build_posts_xml(posts: Iterable[tuple[str, str, str]]) -> str:
    """``posts`` are ``(post_id, author_handle, text)`` triples."""
    lines = [
        f'  <tweet id="{escape_xml(post_id)}">@{escape_xml(handle)}: {escape_xml(text)}</tweet>'
        for post_id, handle, text in posts
    ]
    return "<tweets>\n" + "\n".join(lines) + "\n</tweets>"


def build_classification_prompt(categories: Iterable[CategoryRecord], tweets_xml: str) -> str:
    category_list = "\n".join(f"- {c.name}: {c.description or ''}" for c in categories)
    return CLASSIFICATION_PROMPT.format(categories=category_list, tweets_xml=tweets_xml)

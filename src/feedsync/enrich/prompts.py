"""Enrichment prompt templates, one per record type.

Templates are formatted with ``{record}`` (the record content as indented
JSON). Every prompt ends with the same output contract so the response parser
can stay source-agnostic.
"""

from __future__ import annotations

import json
from typing import Any

OUTPUT_INSTRUCTION = (
    "Return the result as a raw JSON object with keys 'summary' and 'insight'. "
    "Do not include markdown formatting or explanations."
)

_PROJECT = """\
Turn this project record into a short, friendly newsfeed update. Summarize what \
the project is about, note its current status, and add a brief piece of insight \
or encouragement.

Record:
{record}
"""

_NOTE = """\
Convert this note record into a concise newsfeed entry. Include the note's title \
and a quick summary of its content. Then offer a small reflection or suggestion.

Record:
{record}
"""

_THOUGHT = """\
Take this quick thought record and turn it into a brief, casual newsfeed item. \
Summarize the raw idea and add a little nudge or encouragement.

Record:
{record}
"""

_CAPTURE = """\
Transform this captured content into a newsfeed highlight. Mention the title and \
source, and provide a brief insight such as key takeaways or why it is interesting.

Record:
{record}
"""

_CONVERSATION = """\
Summarize this LLM conversation into a newsfeed entry. Include what was asked and \
a key part of the AI's response. Then add a quick reflective comment.

Record:
{record}
"""

_SOLILOQUY = """\
Convert this voice note into a newsfeed snippet. Summarize the main point of what \
was said and add a friendly nudge.

Record:
{record}
"""

_CONTACT = """\
Summarize this contact record into a brief newsfeed entry. Mention the person's \
name and role, and add a short note about following up.

Record:
{record}
"""

_WORKBOARD = """\
Describe this workboard item as a one-line newsfeed status update and suggest a \
next step.

Record:
{record}
"""

DEFAULT_TEMPLATE = """\
Summarize the following record into a brief newsfeed entry and provide a short insight.

Record:
{record}
"""

PROMPT_TEMPLATES: dict[str, str] = {
    "PROJECT": _PROJECT,
    "NOTE": _NOTE,
    "THOUGHT": _THOUGHT,
    "CAPTURE": _CAPTURE,
    "LLM_CONVERSATION": _CONVERSATION,
    "MCP_CONVERSATION": _CONVERSATION,
    "SOLILOQUY": _SOLILOQUY,
    "CONTACT": _CONTACT,
    "WORKBOARD": _WORKBOARD,
}


def template_for(record_type: str) -> str:
    """Template for *record_type*, or the default for unrecognised types."""
    return PROMPT_TEMPLATES.get(record_type, DEFAULT_TEMPLATE)


def build_prompt(record_type: str, content: dict[str, Any]) -> str:
    """Render the full enrichment prompt for a record."""
    record_json = json.dumps(content, indent=2, ensure_ascii=False, default=str)
    body = template_for(record_type).format(record=record_json)
    return f"{body}\n{OUTPUT_INSTRUCTION}"

"""
Assistant Prompts - the portfolio assistant's personality.

The system prompt is assembled per request from:
1. The persona (site_content["assistant_persona"] or DEFAULT_PERSONA_PROMPT)
2. Every other site content entry, rendered as a labelled context section
3. The response-language rule for the visitor's selected language

Usage:
    prompt = build_system_prompt({"about": "...", "skills": [...]}, language="hi")
"""

import json
from typing import Any, Dict, Optional

PERSONA_KEY = "assistant_persona"

DEFAULT_PERSONA_PROMPT = """You are the AI assistant on a personal portfolio website. You represent the site owner in a professional, friendly, and helpful manner.

Your responsibilities:
- Answer questions about the owner's skills, projects, education, and background
- Be helpful and professional when visitors ask about collaboration or job opportunities
- Encourage visitors to reach out through the contact form for detailed discussions
- Be concise but informative in your responses
- If asked something you don't know about the owner, politely suggest they reach out directly

Keep responses concise (2-4 sentences typically) unless more detail is requested."""


# ---------------------------------------------------------------------------
# LANGUAGE RULES
# ---------------------------------------------------------------------------

LANGUAGE_RULES = {
    "en": """
LANGUAGE RULE:
==============
Respond in English.""",
    "hi": """
LANGUAGE RULE:
==============
Respond in Hindi. If the visitor writes in Hinglish (Hindi in Latin script
mixed with English), reply in the same Hinglish style. Keep technical terms
(React, Python, API) in English.""",
}


def language_rule(language: Optional[str]) -> str:
    """The language rule for a language code; English when unknown."""
    return LANGUAGE_RULES.get((language or "en").lower(), LANGUAGE_RULES["en"])


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return "\n".join(f"- {item}" for item in value)
    return json.dumps(value, ensure_ascii=False, indent=2)


def _section_title(key: str) -> str:
    return key.replace("_", " ").replace("-", " ").strip().upper()


def build_system_prompt(site_content: Dict[str, Any], language: Optional[str] = "en") -> str:
    """
    Build the chat system prompt from site content.

    Args:
        site_content: key -> JSON value, as stored in the site_content table
        language: "en" or "hi"

    Returns:
        The full system instruction string
    """
    persona = site_content.get(PERSONA_KEY)
    parts = [persona.strip() if isinstance(persona, str) and persona.strip() else DEFAULT_PERSONA_PROMPT]

    for key in sorted(site_content):
        if key == PERSONA_KEY:
            continue
        value = site_content[key]
        if value in (None, "", [], {}):
            continue
        parts.append(f"{_section_title(key)}:\n{_render_value(value)}")

    parts.append(language_rule(language).strip())
    return "\n\n".join(parts)

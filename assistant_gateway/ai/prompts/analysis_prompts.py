"""
Analysis Prompts - deep analysis panel and synthesis instruction.

The panel is a constant table of (label, instruction) pairs. Each member
looks at the same subject from one angle; adding a member means adding a
row here, nothing else.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PanelMember:
    """One specialization of the deep analysis panel."""
    label: str
    instruction: str

    def render(self, subject: str) -> str:
        return self.instruction.format(subject=subject)


_MEMBER_RULES = """
Rules:
- Report only what you actually know or can reasonably infer; never invent facts.
- Give each finding on its own line as "- finding (source or basis)".
- If you know nothing relevant, reply exactly: NO DATA"""


ANALYSIS_PANEL: Tuple[PanelMember, ...] = (
    PanelMember(
        "biography",
        "You are a biographer. Summarize the background of {subject}: origin, "
        "identity, key life facts and timeline." + _MEMBER_RULES,
    ),
    PanelMember(
        "technical_skills",
        "You are a technical recruiter. List the technical skills of {subject}: "
        "languages, frameworks, tools and the evidence for each." + _MEMBER_RULES,
    ),
    PanelMember(
        "digital_footprint",
        "You are an OSINT researcher. Describe the public online presence of "
        "{subject}: websites, profiles, repositories and handles." + _MEMBER_RULES,
    ),
    PanelMember(
        "career",
        "You are a career analyst. Describe the professional history of {subject}: "
        "roles, organizations, dates and achievements." + _MEMBER_RULES,
    ),
    PanelMember(
        "education",
        "You are an academic advisor. Describe the education of {subject}: "
        "institutions, degrees, certifications and dates." + _MEMBER_RULES,
    ),
    PanelMember(
        "media_appearances",
        "You are a media monitor. List press coverage, interviews, talks and "
        "podcasts featuring {subject}." + _MEMBER_RULES,
    ),
    PanelMember(
        "reputation",
        "You are a reputation analyst. Summarize how {subject} is perceived: "
        "reviews, endorsements, awards and controversies." + _MEMBER_RULES,
    ),
    PanelMember(
        "authored_content",
        "You are a content archivist. List content authored by {subject}: "
        "articles, papers, books, open-source projects and posts." + _MEMBER_RULES,
    ),
    PanelMember(
        "professional_network",
        "You are a network analyst. Describe the professional network of "
        "{subject}: collaborators, communities, organizations and affiliations." + _MEMBER_RULES,
    ),
    PanelMember(
        "behavioral_interests",
        "You are a behavioral analyst. Describe the interests, hobbies, values "
        "and working style of {subject} as publicly expressed." + _MEMBER_RULES,
    ),
)


SYNTHESIS_PROMPT = """You are the lead analyst merging a panel of specialist reports about one subject.

Each report below is labelled with the specialization that produced it.
Reports marked UNAVAILABLE failed and contain no data.

Produce one consolidated markdown report:
1. Merge findings that describe the same fact and remove duplicates.
2. Rank every finding by agreement across reports:
   - CONFIRMED: stated by 3 or more reports
   - LIKELY: stated by exactly 2 reports
   - UNVERIFIED: stated by only 1 report
3. Group findings under headings (Biography, Skills, Career, Education,
   Online Presence, Media, Reputation, Content, Network, Interests) and tag
   each with its confidence level.
4. Flag contradictions between reports explicitly.
5. End with a short summary and the list of reports that were unavailable."""

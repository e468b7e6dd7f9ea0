"""Enhancement prompt templates, input truncation, and message construction.

Every enhancement sends a single user turn:

    Here is the resume content to enhance:

    <resume text, truncated to the input budget>

    <template for the requested kind>

Truncation keeps the request inside the model context window. The budget in
characters is (context tokens - completion reserve - prompt overhead) * chars
per token, computed by Settings.input_budget_chars.
"""

from groundup.db.models import EnhancementType
from groundup.services.llm.types import Turn

_OUTPUT_RULES = """Output requirements:
- Output ONLY the resume content, with no code fences and no commentary
- Use only facts present in the resume; never invent placeholders like [Your Name]
- Keep every real name, date, employer and number from the original
- Format in Markdown: # for the name, ## for sections, - for bullets, **bold** for key terms"""

ENHANCEMENT_PROMPTS: dict[str, str] = {
    EnhancementType.skills_certifications.value: f"""You are enhancing a resume for a home services or skilled trades professional. Bring the candidate's technical skills, licenses and certifications to the front.

Focus:
- Trade-specific skills (plumbing, electrical, HVAC, carpentry, roofing and similar)
- Licenses, certifications and safety training (OSHA, EPA, state licenses)
- Equipment and tool proficiency
- Apprenticeships, vocational training, union or trade association membership

{_OUTPUT_RULES}""",
    EnhancementType.project_experience.value: f"""You are enhancing a resume for a home services or skilled trades professional. Showcase completed projects and hands-on experience.

Focus:
- Specific residential, commercial or industrial projects
- Measurable scope: square footage, budgets, timelines, crew size
- Troubleshooting and problem solving on the job
- Code compliance, inspections passed and quality of workmanship

{_OUTPUT_RULES}""",
    EnhancementType.client_quality.value: f"""You are enhancing a resume for a home services or skilled trades professional. Emphasize customer service, reliability and work quality.

Focus:
- Customer satisfaction, repeat clients, referrals and reviews
- Communication with homeowners, contractors and inspectors
- Reliability: punctuality, safety record, clean job sites
- Estimating, scheduling and on-site professionalism

{_OUTPUT_RULES}""",
}

# Characters after which a cut leaves a complete sentence or line.
# Sentence marks only count when whitespace follows them (not "example.com", "3.5").
SENTENCE_MARKS = (".", "!", "?")
LINE_BREAK = "\n"


def get_enhancement_prompt(enhancement_type: str) -> str | None:
    """Template for a kind, or None if the kind is unknown."""
    return ENHANCEMENT_PROMPTS.get(enhancement_type)


def truncate_to_budget(text: str, budget_chars: int) -> tuple[str, bool]:
    """Cap text at budget_chars without splitting a word.

    Prefers the latest newline, or sentence mark followed by whitespace,
    at or before the budget (the boundary character is kept). Without one,
    cuts at the latest whitespace. A single unbroken run longer than the
    budget is hard-cut, since the result must never exceed the budget.

    Returns:
        Tuple of (text, was_truncated).
    """
    if len(text) <= budget_chars:
        return text, False

    window = text[:budget_chars]

    # text is longer than the window, so text[index + 1] always exists
    for index in range(len(window) - 1, -1, -1):
        char = window[index]
        if char == LINE_BREAK or (char in SENTENCE_MARKS and text[index + 1].isspace()):
            return window[: index + 1], True

    # If the budget lands exactly on a word break, the whole window is whole words
    if text[budget_chars].isspace():
        return window, True

    for index in range(len(window) - 1, -1, -1):
        if window[index].isspace():
            return window[:index], True

    return window, True


def build_messages(resume_text: str, enhancement_type: str) -> list[Turn]:
    """Build the upstream conversation for one enhancement.

    Raises:
        KeyError: If the enhancement type has no template.
    """
    template = ENHANCEMENT_PROMPTS[enhancement_type]
    return [
        Turn(
            role="user",
            content=f"Here is the resume content to enhance:\n\n{resume_text}\n\n{template}",
        )
    ]

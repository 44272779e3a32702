from typing import List, Optional

from creative_pipeline.core.languages import language_name
from creative_pipeline.core.models import CreativeMode, ScoredExample
from creative_pipeline.core.primer import PrimerPattern, render_primer

SYSTEM_PROMPT = (
    "You are an expert marketing creative analyst who excels at identifying winning "
    "creative patterns and writing high-performing voiceover scripts for video ads. "
    "Always answer with valid JSON only."
)

CLOSE_MARKER = "MODE: CLOSE TO PRIMER"
EXPERIMENTAL_MARKER = "MODE: EXPERIMENTAL"
TRANSLATE_MARKER = "TASK: TRANSLATE TO ENGLISH"

CLOSE_INSTRUCTIONS = f"""{CLOSE_MARKER}
Follow the proven patterns closely: reuse the hooks, tone, structure and call-to-action
style of the high performers and the primer, and keep the guidance front and centre."""

EXPERIMENTAL_INSTRUCTIONS = f"""{EXPERIMENTAL_MARKER}
Deliberately diverge from the dominant patterns above. Try a hook, structure or angle
that none of the high performers use, while staying on brand and respecting the guidance."""

RESPONSE_FORMAT = """Respond in JSON format:
{
  "suggestions": [
    {
      "title": "Voiceover concept name",
      "content": "Complete voiceover script - spoken words only",
      "reasoning": "Which patterns were used or deliberately broken, and why",
      "targetMetrics": ["app_installs", "save_location", "search_3wa"]
    }
  ]
}"""


def average_length(examples: List[ScoredExample], default: int = 150) -> int:
    lengths = [len(e.content) for e in examples if e.content]
    if not lengths:
        return default
    return round(sum(lengths) / len(lengths))


def build_context(
    top: List[ScoredExample],
    bottom: List[ScoredExample],
    guidance: Optional[str] = None,
    primer: Optional[List[PrimerPattern]] = None,
) -> str:
    """
    Shared conditioning block for every generation call: scored examples,
    the creative primer and the caller's guidance. Sections without data are left out.
    """
    sections = [
        "CONTEXT:",
        "- These are voiceover scripts for video ads; the background visuals are constant.",
        "- Write only the spoken narration, never visual directions.",
        f"- Target script length: approximately {average_length(top)} characters.",
        '- "Score" is overall performance: higher is better.',
    ]

    if top:
        sections.append("\nHIGH-PERFORMING SCRIPTS (learn from these success patterns):")
        sections.extend(f'- Score: {e.score:g} | Voiceover: "{e.content}"' for e in top)
    if bottom:
        sections.append("\nLOW-PERFORMING SCRIPTS (learn from these failure patterns):")
        sections.extend(f'- Score: {e.score:g} | Voiceover: "{e.content}"' for e in bottom)
    if not top and not bottom:
        sections.append("\nNo historical performance data is available; rely on the guidance and primer.")

    primer_text = render_primer(primer or [])
    if primer_text:
        sections.append("\nCREATIVE PRIMER (measured pattern effects):")
        sections.append(primer_text)

    if guidance and guidance.strip():
        sections.append("\nCREATIVE GUIDANCE FROM THE TEAM:")
        sections.append(guidance.strip())

    return "\n".join(sections)


def _language_line(language: str) -> str:
    if language == "en":
        return "Write the scripts in English."
    name = language_name(language)
    return (
        f"Write every script natively in {name} (not a translation from English). "
        f"The title, reasoning and targetMetrics stay in English."
    )


def build_batch_prompt(context: str, count: int, close_count: int, language: str) -> str:
    experimental = count - close_count
    parts = [
        context,
        "",
        f"TASK: Write exactly {count} voiceover script{'s' if count != 1 else ''}.",
    ]
    if close_count:
        parts.append(f"\nThe first {close_count}:\n{CLOSE_INSTRUCTIONS}")
    if experimental:
        label = "The remaining" if close_count else "All"
        parts.append(f"\n{label} {experimental}:\n{EXPERIMENTAL_INSTRUCTIONS}")
    parts.append("")
    parts.append(_language_line(language))
    parts.append(RESPONSE_FORMAT)
    return "\n".join(parts)


def build_single_prompt(context: str, mode: CreativeMode, language: str, index: int) -> str:
    instructions = CLOSE_INSTRUCTIONS if mode is CreativeMode.CLOSE else EXPERIMENTAL_INSTRUCTIONS
    return "\n".join([
        context,
        "",
        "TASK: Write exactly 1 voiceover script.",
        f"(Variation #{index + 1}; make it distinct from any other variation.)",
        instructions,
        "",
        _language_line(language),
        RESPONSE_FORMAT,
    ])


def build_translation_prompt(text: str, language: str) -> str:
    return f"""{TRANSLATE_MARKER}
Translate this {language_name(language)} voiceover script into natural English.
Keep the meaning and the call to action; do not add anything.

SCRIPT:
{text}

Respond in JSON format: {{"content": "English translation"}}"""

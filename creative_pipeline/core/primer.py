import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

logger = logging.getLogger("CreativePipeline")

LEAN_INTO = "Lean into"
AVOID = "Avoid / soften"
CONFIDENCE_LEVELS = ("Very Confident", "Quite Confident", "Low Confidence")


@dataclass(frozen=True)
class PrimerPattern:
    feature: str
    direction: str
    percentage_change: str
    potential_impact: str
    evidence: str
    example_snippet: str

    @property
    def lean_into(self) -> bool:
        return self.direction.strip().lower().startswith("lean")


def parse_primer_csv(content: Union[str, bytes]) -> List[PrimerPattern]:
    """
    Parses a primer CSV (header row + six columns per pattern).
    Rows with fewer than six fields are skipped.
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")

    rows = list(csv.reader(io.StringIO(content.strip())))
    if len(rows) < 2:
        raise ValueError("Invalid primer CSV: missing header or data")

    patterns = []
    for row in rows[1:]:
        fields = [f.strip() for f in row]
        if len(fields) < 6:
            continue
        patterns.append(PrimerPattern(*fields[:6]))
    return patterns


def load_primer(path: str) -> List[PrimerPattern]:
    with open(path, "r", encoding="utf-8") as f:
        return parse_primer_csv(f.read())


def resolve_primer(override: Optional[bytes], default_path: str) -> List[PrimerPattern]:
    """
    Custom primer bytes win over the default file. A broken custom primer is
    a caller error; a missing default file just means no primer.
    """
    if override:
        try:
            return parse_primer_csv(override)
        except (ValueError, UnicodeDecodeError, csv.Error) as e:
            raise ValueError(f"Failed to parse custom primer CSV: {e}")
    try:
        return load_primer(default_path)
    except (OSError, ValueError) as e:
        logger.warning(f"⚠️ Default primer unavailable ({default_path}): {e}")
        return []


def group_by_confidence(patterns: List[PrimerPattern]) -> Dict[str, List[PrimerPattern]]:
    groups: Dict[str, List[PrimerPattern]] = {level: [] for level in CONFIDENCE_LEVELS}
    for p in patterns:
        groups.setdefault(p.potential_impact, []).append(p)
    return groups


def render_primer(patterns: List[PrimerPattern]) -> str:
    """Formats patterns for a prompt, most confident first."""
    if not patterns:
        return ""
    lines = []
    for level, group in group_by_confidence(patterns).items():
        if not group:
            continue
        lines.append(f"{level}:")
        for p in group:
            verb = "LEAN INTO" if p.lean_into else "AVOID"
            line = f"- {verb}: {p.feature} ({p.percentage_change})"
            if p.example_snippet:
                line += f' e.g. "{p.example_snippet}"'
            lines.append(line)
    return "\n".join(lines)

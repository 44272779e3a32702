import logging
import math
from typing import List, Optional, Tuple

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import SourceUnavailable
from creative_pipeline.core.models import ScoredExample
from creative_pipeline.sheets.base import TabularStore, cell, column_index, column_letter

logger = logging.getLogger("CreativePipeline")


def _parse_score(raw: str) -> Optional[float]:
    text = raw.strip().replace(",", "")
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


class PerformanceSource:
    """Reads scored historical scripts (score + content columns) from a tab."""

    def __init__(self, store: TabularStore, score_column: Optional[str] = None, content_column: Optional[str] = None):
        self.store = store
        self.score_idx = column_index(score_column or settings.score_column)
        self.content_idx = column_index(content_column or settings.content_column)

    async def fetch_scored_examples(self, source_ref: str, tab: Optional[str] = None) -> List[ScoredExample]:
        tab = tab or settings.source_tab
        last = column_letter(max(self.score_idx, self.content_idx))

        try:
            rows = await self.store.read_range_async(source_ref, tab, f"A:{last}")
        except Exception as e:
            raise SourceUnavailable(f"Cannot read tab '{tab}' from {source_ref}: {e}") from e

        examples = []
        for row in rows[1:]:  # header
            score = _parse_score(cell(row, self.score_idx))
            content = cell(row, self.content_idx).strip()
            if score is None or not content:
                continue
            examples.append(ScoredExample(content=content, score=score))

        logger.info(f"📊 Read {len(rows)} rows from '{tab}', {len(examples)} usable scored scripts")
        return examples


def rank_examples(
    examples: List[ScoredExample], top_limit: int = 8, bottom_limit: int = 5
) -> Tuple[List[ScoredExample], List[ScoredExample]]:
    """
    Splits the corpus into top performers (up to 25%, max ``top_limit``) and
    bottom performers (up to 15%, max ``bottom_limit``). The two never overlap.
    """
    if not examples:
        return [], []
    ordered = sorted(examples, key=lambda e: e.score, reverse=True)
    top_n = min(top_limit, math.ceil(len(ordered) * 0.25))
    top = ordered[:top_n]
    rest = ordered[top_n:]
    bottom_n = min(bottom_limit, math.ceil(len(ordered) * 0.15), len(rest))
    bottom = rest[len(rest) - bottom_n:] if bottom_n else []
    return top, bottom

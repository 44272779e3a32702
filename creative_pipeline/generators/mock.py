import hashlib
import logging
import re

from creative_pipeline.engine.prompts import EXPERIMENTAL_MARKER, TRANSLATE_MARKER
from creative_pipeline.generators.base import TextModel

logger = logging.getLogger("CreativePipeline")

_COUNT = re.compile(r"Write exactly (\d+) voiceover script")
_SCRIPT = re.compile(r"SCRIPT:\n(.*?)\n\nRespond", re.S)


class MockTextModel(TextModel):
    """Deterministic stand-in used for tests and local runs without an API key."""

    name = "mock-text"

    def complete_json(self, prompt, system_prompt=None, temperature=None):
        if prompt.startswith(TRANSLATE_MARKER):
            match = _SCRIPT.search(prompt)
            source = match.group(1).strip() if match else ""
            return {"content": f"[EN] {source}"}

        match = _COUNT.search(prompt)
        count = int(match.group(1)) if match else 1
        digest = hashlib.md5(prompt.encode("utf-8")).hexdigest()[:6]
        flavour = "experimental" if EXPERIMENTAL_MARKER in prompt and count == 1 else "proven"

        return {
            "suggestions": [
                {
                    "title": f"Mock concept {digest}-{i + 1}",
                    "content": f"Lost again? Three words get you there. Download the free app today. ({digest}-{i + 1})",
                    "reasoning": f"Mock {flavour} variation built from the supplied patterns.",
                    "targetMetrics": ["app_installs", "search_3wa"],
                }
                for i in range(count)
            ]
        }

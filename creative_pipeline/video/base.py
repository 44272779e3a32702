from typing import Optional


class Compositor:
    """
    Abstract interface for laying a narration track over a background video.
    Implementations are natively async (subprocess based).
    """

    name: str = "abstract"

    async def compose(
        self,
        audio_path: str,
        background_path: str,
        output_path: str,
        subtitle_text: Optional[str] = None,
    ) -> str:
        """
        Writes the composited video to ``output_path`` and returns it.

        Raises:
            CompositionFailed: Missing inputs or a failed render.
        """
        raise NotImplementedError("Subclasses must implement compose()")

    async def is_available(self) -> bool:
        return True

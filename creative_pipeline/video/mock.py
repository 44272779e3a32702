import os
import shutil

from creative_pipeline.core.errors import CompositionFailed
from creative_pipeline.video.base import Compositor


class MockCompositor(Compositor):
    """Copies the background to the output path. Used for tests and local runs."""

    name = "mock-compositor"

    async def compose(self, audio_path, background_path, output_path, subtitle_text=None):
        if not os.path.exists(audio_path):
            raise CompositionFailed(f"Audio file not found: {audio_path}")
        if os.path.exists(background_path):
            shutil.copyfile(background_path, output_path)
        else:
            with open(output_path, "wb") as f:
                f.write(b"MOCK_VIDEO")
        return output_path

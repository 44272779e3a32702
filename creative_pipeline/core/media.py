import os
import re
import time
import uuid
from typing import Optional

from creative_pipeline.config.settings import settings

PUBLIC_PREFIX = "/uploads"
VIDEO_EXTENSIONS = (".mp4", ".mov", ".avi", ".mkv")


class MediaStore:
    """
    Maps artifact refs (public URL paths such as ``/uploads/audio/x.mp3``)
    to files under the output root and back.
    """

    def __init__(self, root: Optional[str] = None, background_dir: Optional[str] = None):
        self.root = root or settings.output_root
        self.background_dir = background_dir or settings.background_videos_dir

    def directory(self, kind: str) -> str:
        path = os.path.join(self.root, kind)
        os.makedirs(path, exist_ok=True)
        return path

    def new_path(self, kind: str, stem: str, extension: str) -> str:
        timestamp = time.strftime("%Y-%m-%d_%H-%M-%S")
        safe = re.sub(r"[^a-zA-Z0-9]", "_", stem)[:50] or "script"
        return os.path.join(self.directory(kind), f"{safe}_{timestamp}_{uuid.uuid4().hex[:6]}{extension}")

    def to_ref(self, path: str) -> str:
        rel = os.path.relpath(path, self.root).replace("\\", "/")
        return f"{PUBLIC_PREFIX}/{rel}"

    def to_path(self, ref: str) -> str:
        if ref.startswith(PUBLIC_PREFIX + "/"):
            return os.path.join(self.root, ref[len(PUBLIC_PREFIX) + 1:])
        return ref

    def resolve_background(self, ref: str) -> str:
        """A bare filename is looked up in the background directory."""
        if os.path.dirname(ref) or ref.startswith(PUBLIC_PREFIX):
            return self.to_path(ref)
        return os.path.join(self.background_dir, ref)

    def list_background_videos(self):
        if not os.path.isdir(self.background_dir):
            return []
        return sorted(
            os.path.join(self.background_dir, name)
            for name in os.listdir(self.background_dir)
            if name.lower().endswith(VIDEO_EXTENSIONS)
        )

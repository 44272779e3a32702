import asyncio
import logging
import os
from typing import List, Optional

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import CompositionFailed
from creative_pipeline.video.base import Compositor
from creative_pipeline.video.subtitles import write_srt

logger = logging.getLogger("CreativePipeline")

FADE_SECONDS = 0.5
SUBTITLE_STYLE = (
    "force_style='FontName=Arial,FontSize=14,PrimaryColour=&H00FFFFFF,"
    "OutlineColour=&H00000000,BackColour=&H80000000,Outline=1,Shadow=1,MarginV=80,Alignment=2'"
)


async def _run(*cmd: str) -> str:
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CompositionFailed(f"{cmd[0]} not installed: {e}")
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        tail = stderr.decode("utf-8", "replace").strip().splitlines()[-3:]
        raise CompositionFailed(f"{os.path.basename(cmd[0])} exited {proc.returncode}: {' | '.join(tail)}")
    return stdout.decode("utf-8", "replace")


class FfmpegCompositor(Compositor):
    """
    Keeps the background's full length and video stream, replaces its audio
    with the narration (AAC, short fades). Subtitles force a re-encode.
    """

    name = "ffmpeg"

    def __init__(self, ffmpeg: Optional[str] = None, ffprobe: Optional[str] = None, burn_subtitles: Optional[bool] = None):
        self.ffmpeg = ffmpeg or settings.ffmpeg_binary
        self.ffprobe = ffprobe or settings.ffprobe_binary
        self.burn_subtitles = settings.burn_subtitles if burn_subtitles is None else burn_subtitles

    async def probe_duration(self, path: str) -> float:
        out = await _run(
            self.ffprobe, "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            path,
        )
        try:
            return float(out.strip())
        except ValueError:
            raise CompositionFailed(f"Could not read duration of {path}")

    def build_command(
        self,
        audio_path: str,
        background_path: str,
        output_path: str,
        audio_duration: float,
        video_duration: float,
        subtitle_path: Optional[str] = None,
    ) -> List[str]:
        fade_out_start = max(0.0, audio_duration - FADE_SECONDS)
        cmd = [
            self.ffmpeg, "-y",
            "-i", background_path,
            "-i", audio_path,
            "-af", f"afade=t=in:st=0:d={FADE_SECONDS},afade=t=out:st={fade_out_start:.3f}:d={FADE_SECONDS}",
        ]
        if subtitle_path:
            escaped = subtitle_path.replace("\\", "/").replace(":", "\\:")
            cmd += ["-vf", f"subtitles={escaped}:{SUBTITLE_STYLE}", "-c:v", "libx264", "-crf", "23", "-preset", "fast"]
        else:
            cmd += ["-c:v", "copy"]
        cmd += [
            "-c:a", "aac",
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-t", f"{video_duration:.3f}",
            "-avoid_negative_ts", "make_zero",
            "-fflags", "+genpts",
            output_path,
        ]
        return cmd

    async def compose(self, audio_path, background_path, output_path, subtitle_text=None):
        if not os.path.exists(background_path):
            raise CompositionFailed(f"Background video not found: {background_path}")
        if not os.path.exists(audio_path):
            raise CompositionFailed(f"Audio file not found: {audio_path}")

        video_duration = await self.probe_duration(background_path)
        audio_duration = await self.probe_duration(audio_path)
        logger.info(f"🎞️ Video duration: {video_duration:.1f}s, audio duration: {audio_duration:.1f}s")

        subtitle_path = None
        if self.burn_subtitles and subtitle_text:
            subtitle_path = os.path.splitext(output_path)[0] + ".srt"
            write_srt(subtitle_text, audio_duration, subtitle_path)

        await _run(*self.build_command(audio_path, background_path, output_path, audio_duration, video_duration, subtitle_path))
        if not os.path.exists(output_path):
            raise CompositionFailed("Output file was not created")
        return output_path

    async def is_available(self) -> bool:
        try:
            await _run(self.ffmpeg, "-version")
            return True
        except CompositionFailed as e:
            logger.warning(f"⚠️ FFmpeg check failed: {e}")
            return False

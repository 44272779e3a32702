import argparse
import asyncio

from creative_pipeline.core.models import GenerationRequest, Strategy
from creative_pipeline.pipeline.manager import build_pipeline
from creative_pipeline.utils.logger import setup_logging

# Configure Logging
logger = setup_logging()


async def main(args: argparse.Namespace):
    """
    Local one-shot run: generate scripts for a spreadsheet and print them.
    """
    # 1. Initialize
    engine = build_pipeline()

    # 2. Request
    request = GenerationRequest.build(
        source_ref=args.spreadsheet,
        source_tab=args.tab,
        count=args.count,
        language=args.language,
        experimental_ratio=args.experimental / 100.0,
        strategy=Strategy.PER_ITEM if args.individual else Strategy.BATCH,
        with_audio=args.audio or bool(args.background),
        background_video_ref=args.background,
        guidance=args.guidance,
    )

    # 3. Execute
    try:
        logger.info("🚀 Starting one-shot generation...")
        result = await engine.run_generate(request)

        logger.info(f"🏆 {result.message}")
        for s in result.suggestions:
            status = f"ERROR {s.stage_error.stage.value}: {s.stage_error.message}" if s.failed else (s.preview_ref or "text only")
            logger.info(f"#{s.index + 1} {s.title} | {status}")

        await engine.sink.notifier.drain()
    except Exception as e:
        logger.critical(f"🔥 Critical Failure: {e}", exc_info=True)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate ad scripts from a performance spreadsheet")
    parser.add_argument("spreadsheet", help="Spreadsheet id or URL")
    parser.add_argument("--tab", default=None)
    parser.add_argument("--count", type=int, default=None)
    parser.add_argument("--language", default=None)
    parser.add_argument("--experimental", type=int, default=0, help="Percentage of experimental scripts (0-100)")
    parser.add_argument("--individual", action="store_true", help="One model call per script")
    parser.add_argument("--audio", action="store_true")
    parser.add_argument("--background", default=None, help="Background video for compositing")
    parser.add_argument("--guidance", default=None)
    return parser.parse_args()


if __name__ == "__main__":
    try:
        asyncio.run(main(parse_args()))
    except KeyboardInterrupt:
        logger.info("Captured KeyboardInterrupt. Exiting...")

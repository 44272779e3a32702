import uvicorn
import os
from creative_pipeline.config.settings import settings

if __name__ == "__main__":
    # Ensure output directories exist
    os.makedirs(settings.output_root, exist_ok=True)
    os.makedirs(settings.background_videos_dir, exist_ok=True)

    print(f"🚀 Starting Creative Pipeline API on {settings.api_host}:{settings.api_port}...")
    uvicorn.run(
        "api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )

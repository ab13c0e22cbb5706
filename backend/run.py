import os
import uvicorn

from ads_sync.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "ads_sync.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
        reload=not settings.is_production,
        # Each sync request is long-lived, so production wants several workers
        workers=1 if not settings.is_production else int(os.environ.get("WEB_CONCURRENCY", 4)),
    )

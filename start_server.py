#!/usr/bin/env python3
"""
Start script for the District Atlas API server
"""

import os
import sys
import uvicorn
from pathlib import Path

# Add current directory to Python path
sys.path.insert(0, str(Path(__file__).parent))

from district_atlas.config import AtlasConfig


def main():
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", 8000))
    reload = os.getenv("API_RELOAD", "true").lower() == "true"
    log_level = os.getenv("LOG_LEVEL", "info")
    config = AtlasConfig.from_env()

    print("🚀 Starting District Atlas API")
    print(f"📡 Host: {host}:{port}")
    print(f"🔄 Reload: {reload}")
    print(f"🔍 Log Level: {log_level}")
    print(f"🗺️  Feeds: {config.feed_base_url}")
    print(f"🏛️  Enrichment: {'enabled' if config.enrichment_enabled else 'disabled (no CONGRESS_API_KEY)'}")
    print(f"📋 Available endpoints:")
    print(f"   - GET  /health - Service health check")
    print(f"   - GET  /api/snapshot - Sites, districts, layers and load status")
    print(f"   - POST /api/layers/{{layer}}/toggle - Flip a map layer")
    print(f"   - POST /api/retry - Retry failed data sources")
    print(f"   - GET  /api/search?q= - Search programs and districts")
    print(f"   - GET  /api/zones/at?lat=&lng= - District containing a point")
    print(f"   - GET  /api/viewport - Map framing for the loaded data")
    print(f"   - GET  /api/sites/{{site_id}} - One Head Start program")
    print(f"   - GET  /api/stats - Catalogue summary")
    print()

    uvicorn.run(
        "api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level
    )


if __name__ == "__main__":
    main()

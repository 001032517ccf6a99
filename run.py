import os
import uvicorn

from refurb.settings import LOG_LEVEL, _env_bool


if __name__ == "__main__":
    # UVICORN_HOST/PORT win over HOST/PORT; bind all interfaces so shop-floor
    # tablets on the LAN can reach the label pages.
    host = os.getenv("UVICORN_HOST", os.getenv("HOST", "0.0.0.0"))
    try:
        port = int(os.getenv("UVICORN_PORT", os.getenv("PORT", "8000")))
    except ValueError:
        port = 8000

    uvicorn.run(
        "refurb.main:app",
        host=host,
        port=port,
        reload=_env_bool("RELOAD", False),
        log_level=LOG_LEVEL.lower(),
    )

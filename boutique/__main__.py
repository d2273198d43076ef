"""
Usage:
    python -m boutique

Variables lues: PORT (8000), UVICORN_RELOAD ("1"/"true"/"yes"), LOG_LEVEL ("info").
"""
import os
import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    log_level = os.environ.get("LOG_LEVEL", "info")
    uvicorn.run("boutique.asgi:app", host="0.0.0.0", port=port, reload=reload_flag, log_level=log_level)

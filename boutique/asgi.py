"""
Entrypoint ASGI: `uvicorn boutique.asgi:app` (ou gunicorn -k uvicorn.workers.UvicornWorker).
"""
from boutique.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run("boutique.asgi:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=True)

from fastapi import FastAPI
from fastapi.responses import RedirectResponse, Response
from starlette.status import HTTP_204_NO_CONTENT, HTTP_307_TEMPORARY_REDIRECT

def register_routes(app: FastAPI) -> None:
    """Le front est servi à part: la racine renvoie vers la documentation de l'API."""
    @app.get("/", include_in_schema=False)
    def root_redirect():
        return RedirectResponse(url="/docs", status_code=HTTP_307_TEMPORARY_REDIRECT)

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=HTTP_204_NO_CONTENT)

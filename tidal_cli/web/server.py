from __future__ import annotations

from html import escape
from typing import Callable, Dict

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse

CallbackHandler = Callable[[Dict[str, str]], None]

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>tidal-cli</title></head>
<body style="font-family: -apple-system, sans-serif; max-width: 600px; margin: 50px auto;">
{body}
</body>
</html>"""


def _page(body: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(PAGE_TEMPLATE.format(body=body), status_code=status_code)


def build_callback_app(on_callback: CallbackHandler, *, path: str = "/callback") -> FastAPI:
    """Local app receiving the OAuth redirect.

    ``on_callback`` receives the query parameters of the first redirect that
    carries either ``code`` or ``error``.
    """
    app = FastAPI()

    @app.get(path, response_class=HTMLResponse)
    async def auth_callback(request: Request) -> HTMLResponse:
        params = dict(request.query_params)
        error = params.get("error")
        if error:
            on_callback(params)
            return _page(f"<h2>Error: {escape(error)}</h2><p>You can close this window.</p>", 400)
        if not params.get("code"):
            return _page("<h2>Missing authorization code.</h2>", 400)
        on_callback(params)
        return _page("<h2>Authorization received.</h2><p>You can close this window.</p>", 200)

    return app

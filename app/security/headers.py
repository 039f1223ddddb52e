from fastapi import FastAPI, Request
from starlette.responses import Response

# Every response may carry cart or session state, so none of it is cacheable.
RESPONSE_HEADERS = {
    "Cache-Control": "no-store",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "same-origin",
}


def install_security_headers(app: FastAPI) -> None:
    @app.middleware("http")
    async def add_response_headers(request: Request, call_next):
        response: Response = await call_next(request)
        for name, value in RESPONSE_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

"""FastAPI app exposing RepackHub aggregation, decrypt and image proxy endpoints."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from ..core.errors import RepackHubError
from ..core.response_cache import RECENT_UPLOADS_KEY
from .runtime import RepackHubRuntime, build_runtime


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, DELETE",
    "Access-Control-Allow-Headers": "Content-Type",
}
ALLOWED_METHODS = {"GET", "POST"}
# Left unescaped in search cache keys.
QUERY_SAFE_CHARS = "-_.!~*'()"


def _worker_url(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _served(served) -> JSONResponse:
    headers = {"X-Cache-Status": served.cache_status} if served.cache_status else None
    return JSONResponse(served.payload, status_code=served.status_code, headers=headers)


def create_app(runtime: Optional[RepackHubRuntime] = None) -> FastAPI:
    runtime = runtime or build_runtime()
    site_options = ", ".join(runtime.registry.ids())

    async def cors_middleware(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        if request.method not in ALLOWED_METHODS:
            return PlainTextResponse("Method not allowed", status_code=405, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    app = FastAPI(title="RepackHub API", version="2.0.0")
    app.state.runtime = runtime
    app.middleware("http")(cors_middleware)

    @app.api_route("/clearcache", methods=["GET", "POST"])
    def clear_cache():
        try:
            deleted = runtime.cache_shell.invalidate(runtime.cache_shell.key(RECENT_UPLOADS_KEY))
        except Exception as e:
            return _error(f"Failed to clear cache: {e}", 500)
        if deleted:
            return {"success": True, "message": "Successfully cleared cache for recent uploads."}
        return {"success": True, "message": "No cache entry found for recent uploads to clear."}

    @app.api_route("/clear-decrypt-cache", methods=["GET", "POST"])
    def clear_decrypt_cache():
        try:
            count = runtime.decrypt.clear_cache()
        except Exception as e:
            return _error(f"Failed to clear decrypt cache: {e}", 500)
        return {
            "success": True,
            "message": f"Cleared {count} decrypted links from KV cache",
            "count": count,
        }

    @app.api_route("/proxy-image", methods=["GET", "POST"])
    def proxy_image(url: Optional[str] = None):
        if not runtime.images.is_acceptable(url):
            return PlainTextResponse("Invalid image URL", status_code=400)
        image = runtime.images.fetch(url)
        if not image.ok:
            return PlainTextResponse(image.error, status_code=image.status_code)
        return Response(
            content=image.content,
            media_type=image.content_type,
            headers={"Cache-Control": runtime.images.cache_control()},
        )

    @app.api_route("/recent", methods=["GET", "POST"])
    def recent(request: Request):
        worker_url = _worker_url(request)
        served = runtime.cache_shell.serve(
            runtime.cache_shell.key(RECENT_UPLOADS_KEY),
            lambda: runtime.aggregator.recent(worker_url).to_dict(),
            "recent uploads",
        )
        return _served(served)

    @app.api_route("/post", methods=["GET", "POST"])
    def post_details(request: Request, id: Optional[str] = None, site: Optional[str] = None):
        if not id:
            return _error("Missing post ID parameter", 400)
        if not site:
            return _error(f"Missing site parameter ({site_options})", 400)
        if runtime.registry.get(site) is None:
            return _error(f"Invalid site parameter. Valid options: {site_options}", 400)
        try:
            post = runtime.aggregator.fetch_post(site, id, _worker_url(request))
        except RepackHubError as e:
            print(f"Error fetching post details ({site}/{id}): {e}")
            return _error(str(e), 500)
        return {"success": True, "post": post.to_dict(), "cached": False}

    @app.api_route("/decrypt", methods=["GET", "POST"])
    def decrypt(hash: Optional[str] = None):
        if not hash:
            return _error("Missing hash", 400)
        outcome = runtime.decrypt.resolve(hash)
        return JSONResponse(outcome.payload, status_code=outcome.status_code, headers=outcome.headers)

    def run_search(request: Request, search: Optional[str], site: Optional[str]):
        if not search or not search.strip():
            return JSONResponse({"success": False, "error": "Search query required"}, status_code=400)
        site_param = site or "all"
        worker_url = _worker_url(request)
        cache_key = runtime.cache_shell.key(f"search:{quote(search, safe=QUERY_SAFE_CHARS)}:{site_param}")
        served = runtime.cache_shell.serve(
            cache_key,
            lambda: runtime.aggregator.search(search, site_param, worker_url).to_dict(),
            "search",
        )
        return _served(served)

    @app.api_route("/", methods=["GET", "POST"])
    def search_root(request: Request, search: Optional[str] = None, site: Optional[str] = None):
        return run_search(request, search, site)

    @app.api_route("/{path:path}", methods=["GET", "POST"])
    def search_any_path(request: Request, path: str, search: Optional[str] = None, site: Optional[str] = None):
        return run_search(request, search, site)

    return app


app = create_app()


def main():
    """Serve the module-level app with uvicorn (install the "server" extra)."""
    import uvicorn

    settings = app.state.runtime.settings
    uvicorn.run(
        app,
        host=str(settings.get("server_host", "127.0.0.1")),
        port=int(settings.get("server_port", 8787)),
    )


if __name__ == "__main__":
    main()

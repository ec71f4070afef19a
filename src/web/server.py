from __future__ import annotations

import argparse
import json
import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, unquote, urlparse

from src.database.supabase_client import SupabaseClient, SupabaseConfig, SupabaseError
from src.utils.env import current_season, getenv_int, getenv_str, load_env
from src.utils.logging import configure_logging
from src.web import api, pages
from src.web.queries_supabase import RowSource


logger = logging.getLogger(__name__)


class Handler(BaseHTTPRequestHandler):
    client: RowSource
    season: int

    def _send(self, code: int, body: bytes, content_type: str) -> None:
        self.send_response(code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _json(self, obj: Any, code: int = 200) -> None:
        body = json.dumps(obj, default=str).encode("utf-8")
        self._send(code, body, "application/json; charset=utf-8")

    def _html(self, page: pages.Page) -> None:
        code, html = page
        self._send(code, html.encode("utf-8"), "text/html; charset=utf-8")

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("%s - %s", self.address_string(), format % args)

    def _route(self, path: str, qs: dict[str, list[str]]) -> pages.Page:
        sb, season = self.client, self.season
        if path == "/":
            return pages.home_page(sb, season)
        if path == "/players":
            return pages.projections_page(sb, qs)
        if path.startswith("/players/"):
            slug = path[len("/players/"):]
            if not slug or "/" in slug:
                return pages.not_found_page()
            return pages.projection_detail_page(sb, slug)
        if path == "/ff-opp":
            return pages.opportunity_page(sb, season, qs)
        if path == "/ff-opp/combined":
            return pages.combined_page(sb, season, qs)
        if path.startswith("/ff-opp/"):
            slug = path[len("/ff-opp/"):]
            if not slug or "/" in slug:
                return pages.not_found_page()
            # Percent-escapes stay in the slug; slug_to_player_key decodes them once.
            return pages.opportunity_detail_page(sb, season, slug, qs)
        return pages.not_found_page()

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"
        qs = parse_qs(parsed.query)

        if path.startswith("/api/"):
            self._json({"error": "Method not allowed"}, code=405)
            return

        try:
            page = self._route(path, qs)
        except SupabaseError as e:
            logger.error("Failed to render %s: %s", unquote(path), e)
            page = pages.error_page()
        except Exception:
            logger.exception("Unhandled error rendering %s", unquote(path))
            page = pages.error_page()
        self._html(page)

    def do_POST(self) -> None:  # noqa: N802
        path = urlparse(self.path).path.rstrip("/")
        endpoint = api.ROUTES.get(path)
        if endpoint is None:
            self._json({"error": "not found", "path": path}, code=404)
            return

        try:
            length = int(self.headers.get("Content-Length") or 0)
            raw = self.rfile.read(length) if length > 0 else b""
            code, payload = endpoint(self.client, self.season, raw)
        except Exception:
            logger.exception("Unhandled error in %s", path)
            code, payload = 500, {"error": "Internal server error"}
        self._json(payload, code=code)


def make_server(client: RowSource, host: str, port: int, *, season: Optional[int] = None) -> ThreadingHTTPServer:
    handler = type("BoundHandler", (Handler,), {"client": client, "season": season or current_season()})
    return ThreadingHTTPServer((host, port), handler)


def run(host: str, port: int, *, client: Optional[RowSource] = None, season: Optional[int] = None) -> None:
    if client is None:
        client = SupabaseClient(SupabaseConfig.from_env())
    server = make_server(client, host, port, season=season)
    logger.info("Serving Fantasy Freaks HQ at http://%s:%d/ (season=%d)", host, port, server.RequestHandlerClass.season)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


def main(argv: Optional[list[str]] = None) -> int:
    load_env()
    configure_logging()

    p = argparse.ArgumentParser(description="Fantasy Freaks HQ web dashboard")
    p.add_argument("--host", default=getenv_str("FF_HOST", "127.0.0.1"))
    p.add_argument("--port", type=int, default=getenv_int("FF_PORT", 8000))
    p.add_argument("--season", type=int, default=None, help="Season to show (defaults to FF_SEASON)")
    args = p.parse_args(argv)

    try:
        run(args.host, args.port, season=args.season)
    except SupabaseError as e:
        logger.error("Cannot start: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

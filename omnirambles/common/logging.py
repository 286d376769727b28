# omnirambles/common/logging.py
import logging, sys, time, uuid
from pythonjsonlogger.json import JsonFormatter
from flask import g, has_request_context, request

FORMAT = (
    "%(asctime)s %(levelname)s %(name)s %(message)s "
    "%(request_id)s %(user_id)s %(method)s %(path)s %(status)s %(latency_ms)s"
)

request_logger = logging.getLogger("omnirambles.request")
error_logger = logging.getLogger("omnirambles.error")


class RequestContextFilter(logging.Filter):
    """Ajoute request_id / user_id à tout record émis pendant une requête,
    y compris les événements métier des services (user_registered, note_versioned...).
    """

    def filter(self, record):
        if has_request_context():
            if not hasattr(record, "request_id"):
                record.request_id = g.get("request_id", "-")
            if not hasattr(record, "user_id"):
                # posé par login_required une fois la session résolue
                record.user_id = g.get("user_id")
        return True


def setup_json_logging(app):
    # DEBUG en dev (app.debug), INFO sinon
    root = logging.getLogger()
    root.handlers = []
    root.setLevel(logging.DEBUG if app.debug else logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(FORMAT))
    handler.addFilter(RequestContextFilter())
    root.addHandler(handler)


def register_request_logging(app):
    @app.before_request
    def _start_request():
        # X-Request-Id entrant ou généré
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        g.user_id = None
        g._started = time.perf_counter()

    @app.after_request
    def _log_request(resp):
        latency = int((time.perf_counter() - g.get("_started", time.perf_counter())) * 1000)
        resp.headers.setdefault("X-Request-Id", g.get("request_id", "-"))
        request_logger.info(
            "http_request",
            extra={
                "method": request.method,
                "path": request.path,
                "status": resp.status_code,
                "latency_ms": latency,
            },
        )
        return resp

    @app.teardown_request
    def _teardown(exc):
        if exc:
            error_logger.error("unhandled_exception", exc_info=exc)

# omnirambles/common/security.py
from flask import request

# API JSON uniquement: aucune ressource HTML à autoriser
API_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}
HSTS = "max-age=31536000; includeSubDomains; preload"


def _behind_https() -> bool:
    return request.is_secure or request.headers.get("X-Forwarded-Proto", "") == "https"


def register_security_headers(app):
    enforce_https = app.config["APP_ENV"] == "production" or app.config.get("ENFORCE_HTTPS")

    @app.after_request
    def set_security_headers(resp):
        for name, value in API_HEADERS.items():
            resp.headers[name] = value
        # HSTS seulement si la requête est réellement arrivée en HTTPS
        if enforce_https and _behind_https():
            resp.headers["Strict-Transport-Security"] = HSTS
        return resp

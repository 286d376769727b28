# omnirambles/docs/routes.py
from flask import Blueprint, jsonify
from .openapi import build_openapi

bp = Blueprint("docs", __name__)


@bp.get("/openapi.json")
def openapi_json():
    return jsonify(build_openapi())

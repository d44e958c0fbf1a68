from __future__ import annotations

from flask import jsonify


def ok(data=None, status=200, **extra):
    """Success envelope used by the storefront API: {"success": true, "data": ...}."""
    if data is None and not extra:
        return ("", status)
    payload = {"success": True, "data": data}
    payload.update(extra)
    return jsonify(payload), status

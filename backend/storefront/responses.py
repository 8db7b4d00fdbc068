# Overview: JSON envelope shared by every API response.

from __future__ import annotations

from flask import jsonify


def ok(data=None, status: int = 200, **extra):
    """{success: true, data, ...extra}"""
    body = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def fail(message: str, status: int = 400, details=None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status

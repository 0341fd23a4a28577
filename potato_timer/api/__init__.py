"""
HTTP adapter. Routers translate requests into core operations and wrap the
results in the ``{"success": ..., "data": ...}`` envelope.
"""


def ok(data=None, message: str = "ok") -> dict:
    return {"success": True, "message": message, "data": data}

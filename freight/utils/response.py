from typing import Any


def success_response(data: Any = None, message: str = "Request completed successfully") -> dict:
    return {
        "success": True,
        "message": message,
        "data": data,
    }


def error_response(message: str, data: Any = None) -> dict:
    return {
        "success": False,
        "message": message,
        "data": data,
    }

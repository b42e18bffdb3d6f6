"""Helpers for describing HubSpot HTTP failures in log messages"""

from typing import Optional

import httpx


def provider_message(response: httpx.Response) -> str:
    """Extract HubSpot's error message from a response body

    HubSpot error format: {"status": "error", "message": "...", "errors": [...]}
    """
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] if response.text else f"HTTP {response.status_code}"

    if isinstance(body, dict) and body.get("message"):
        message = str(body["message"])
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            details = [e.get("message", str(e)) if isinstance(e, dict) else str(e) for e in errors]
            message = f"{message}: {'; '.join(details)}"
        return message
    return response.text[:500] if response.text else f"HTTP {response.status_code}"


def describe_error(error: BaseException) -> str:
    """Prefer the provider's message when the error carries a response"""
    response: Optional[httpx.Response] = getattr(error, "response", None)
    if isinstance(error, httpx.HTTPStatusError) and response is not None:
        return provider_message(response)
    return str(error) or error.__class__.__name__

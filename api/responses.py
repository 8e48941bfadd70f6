"""Response envelope shared by every endpoint."""

from typing import Any, Dict, Optional

def ok(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a successful result as {success, data?, message?}."""
    body: Dict[str, Any] = {'success': True}
    if data is not None:
        body['data'] = data
    if message:
        body['message'] = message
    return body

def error(message: str) -> Dict[str, Any]:
    """Build the body of an error response."""
    return {'success': False, 'message': message}

__all__ = ['ok', 'error']

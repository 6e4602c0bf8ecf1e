from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware

from canteen.services.sessions import SESSION_COOKIE, decode_session


class UserSessionMiddleware(BaseHTTPMiddleware):
    """Decodes the signed session cookie once per request.

    The payload (or ``None``) lands on ``request.state.session_payload``;
    loading the user row is left to the ``canteen.deps`` dependencies.
    """

    async def dispatch(self, request, call_next):
        request.state.session_payload = None
        request.state.user = None

        token = request.cookies.get(SESSION_COOKIE)
        if token:
            request.state.session_payload = decode_session(token)

        return await call_next(request)

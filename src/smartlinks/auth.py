"""Authentication header injection."""

from smartlinks.session import Session


def prepare_headers(session: Session | None) -> dict[str, str]:
    """Headers for one outgoing request.

    ``Content-Type`` is always JSON. ``Authorization`` is added only when the
    session carries a token; a missing session or token just omits it.
    """
    headers = {"Content-Type": "application/json"}
    token = session.token if session is not None else None
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers

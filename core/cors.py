"""CORS policy - decides which response headers a browser origin gets."""

from core.config import CorsSettings


class CorsPolicy:
    """Static origin allow-list with a fixed method and header set.

    Origins are compared by exact string match. Origins outside the list get
    no Access-Control-Allow-Origin header; the browser then refuses to expose
    the response to the page.
    """

    def __init__(self, settings: CorsSettings) -> None:
        self._origins = frozenset(settings.allowed_origins)
        self._methods = ", ".join(_ensure(settings.allowed_methods, ("POST", "OPTIONS")))
        self._headers = ", ".join(
            _ensure(tuple(h.lower() for h in settings.allowed_headers), ("content-type",))
        )
        self._credentials = settings.allow_credentials
        self._max_age = str(settings.max_age)
        self.preflight_status = settings.preflight_status

    def is_allowed(self, origin: str | None) -> bool:
        return bool(origin) and origin in self._origins

    def preflight_headers(
        self,
        origin: str | None,
        requested_method: str | None = None,
        requested_headers: str | None = None,
    ) -> dict[str, str]:
        """Headers answering an OPTIONS preflight.

        The requested method and headers do not narrow the answer; the policy
        always advertises its full sets and lets the browser compare.
        """
        headers = {"Vary": "Origin"}
        if not self.is_allowed(origin):
            return headers
        headers.update(self._grant(origin))
        headers["Access-Control-Allow-Methods"] = self._methods
        headers["Access-Control-Allow-Headers"] = self._headers
        headers["Access-Control-Max-Age"] = self._max_age
        return headers

    def response_headers(self, origin: str | None) -> dict[str, str]:
        """Headers appended to an actual (non-preflight) response."""
        headers = {"Vary": "Origin"}
        if self.is_allowed(origin):
            headers.update(self._grant(origin))
        return headers

    def _grant(self, origin: str) -> dict[str, str]:
        headers = {"Access-Control-Allow-Origin": origin}
        if self._credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers


def _ensure(values: tuple[str, ...], required: tuple[str, ...]) -> list[str]:
    """Return values with each required entry appended if missing."""
    result = list(values)
    for item in required:
        if item not in result:
            result.append(item)
    return result

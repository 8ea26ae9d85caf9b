"""Header construction for downstream requests."""

from core.config import DownstreamSettings


class HeaderBuilder:
    """Build downstream headers. Caller headers are never copied."""

    def __init__(self, settings: DownstreamSettings) -> None:
        self._api_key = settings.api_key

    def build_downstream_headers(self) -> dict[str, str]:
        """Content type plus the backend key when one is configured."""
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

"""Forward request preparation."""

from typing import Any

from core.config import Config
from core.envelope import parse_envelope
from core.headers import HeaderBuilder
from core.request_types import PreparedRequest


class RelayService:
    """Turn an inbound envelope into a downstream request."""

    def __init__(
        self,
        config: Config,
        header_builder: HeaderBuilder | None = None,
    ) -> None:
        self._downstream = config.downstream
        self._headers = header_builder or HeaderBuilder(config.downstream)

    def prepare(self, endpoint: str, body: Any) -> PreparedRequest:
        """Validate the envelope and attach downstream headers.

        Raises:
            InvalidEnvelope: target missing, malformed or not allow-listed.
        """
        target_url, payload = parse_envelope(body, self._downstream)
        return PreparedRequest(
            endpoint=endpoint,
            target_url=target_url,
            headers=self._headers.build_downstream_headers(),
            payload=payload,
        )

    @staticmethod
    def usage(endpoint: str) -> dict[str, Any]:
        """Describe the POST contract for GET callers."""
        return {
            "message": "This endpoint only accepts POST requests",
            "usage": f"POST /proxy/{endpoint} with a JSON body containing "
            "{ target_url, ...otherData }",
            "example": {
                "target_url": "https://your-project.supabase.co/functions/v1/your-function",
                "user_id": "user123",
                "meter_number": "meter456",
                "kwh_consumed": 10.5,
            },
        }

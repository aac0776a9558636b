"""HTTP transport to the gateway, built on requests."""

import requests
import structlog

from payments.errors import GatewayUnreachable
from payments.gateway.port import GatewayTransport

logger = structlog.get_logger(__name__)


class RequestsTransport(GatewayTransport):
    """Form POSTs over a shared ``requests.Session``."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    def post_form(self, url: str, fields: dict[str, str], timeout: float) -> str:
        try:
            response = self.session.post(
                url,
                data=fields,
                headers={"Content-Type": "application/x-www-form-urlencoded; charset=utf-8"},
                timeout=timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Gateway request failed", url=url, error=str(exc))
            raise GatewayUnreachable(str(exc)) from exc

        if response.encoding is None:
            response.encoding = "utf-8"
        return response.text

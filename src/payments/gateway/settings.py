"""Gateway configuration, read from the environment."""

import os
from dataclasses import dataclass

DEFAULT_AUTH_URL = "https://web.nicepay.co.kr/v3/v3Payment.jsp"
DEFAULT_CANCEL_URL = "https://web.nicepay.co.kr/v3/cancel.jsp"
DEFAULT_APPROVAL_TIMEOUT = 10.0
# Domains a callback's approval URL may point at when none are configured
DEFAULT_APPROVAL_HOSTS = ("nicepay.co.kr",)


@dataclass(frozen=True)
class GatewaySettings:
    merchant_id: str = ""
    merchant_key: str = ""
    site_url: str = ""
    auth_url: str = DEFAULT_AUTH_URL
    cancel_url: str = DEFAULT_CANCEL_URL
    return_url: str = ""
    approval_timeout: float = DEFAULT_APPROVAL_TIMEOUT
    # Domains the approval URL in a callback may point at, subdomains included
    approval_hosts: tuple[str, ...] = DEFAULT_APPROVAL_HOSTS

    def allows_approval_host(self, host: str) -> bool:
        host = host.lower().rstrip(".")
        allowed = self.approval_hosts or DEFAULT_APPROVAL_HOSTS
        return any(host == domain or host.endswith("." + domain) for domain in allowed)

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        site_url = os.environ.get("SITE_URL", "").rstrip("/")
        hosts = os.environ.get("GATEWAY_APPROVAL_HOSTS", "")
        return cls(
            merchant_id=os.environ.get("GATEWAY_MERCHANT_ID", ""),
            merchant_key=os.environ.get("GATEWAY_MERCHANT_KEY", ""),
            site_url=site_url,
            auth_url=os.environ.get("GATEWAY_AUTH_URL", DEFAULT_AUTH_URL),
            cancel_url=os.environ.get("GATEWAY_CANCEL_URL", DEFAULT_CANCEL_URL),
            return_url=os.environ.get("GATEWAY_RETURN_URL", f"{site_url}/payments/result"),
            approval_timeout=float(os.environ.get("GATEWAY_APPROVAL_TIMEOUT", DEFAULT_APPROVAL_TIMEOUT)),
            approval_hosts=tuple(h.strip().lower() for h in hosts.split(",") if h.strip()) or DEFAULT_APPROVAL_HOSTS,
        )

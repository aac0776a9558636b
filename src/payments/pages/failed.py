"""Failure page — the payment did not go through."""

DEFAULT_ERROR = "Payment could not be completed."


class FailedPage:
    page = "failed"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Payment failed",
            "heading": "Your payment could not be completed",
            "message": "Taking you back to your order...",
            "accent": "#ef4444",
            "path": "/order-failed",
            "params": {
                "orderId": context.get("order_number"),
                "error": context.get("error") or DEFAULT_ERROR,
            },
        }

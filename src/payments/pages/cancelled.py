"""Cancellation page — the payer left the payment window without paying."""


class CancelledPage:
    page = "cancelled"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Payment cancelled",
            "heading": "Payment was cancelled",
            "message": "Taking you back to your order...",
            "accent": "#f59e0b",
            "path": "/order-cancelled",
            "params": {
                "orderId": context.get("order_number"),
                "error": context.get("error"),
            },
        }

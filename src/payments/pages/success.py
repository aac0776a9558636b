"""Success page — the payment was approved and recorded."""


class SuccessPage:
    page = "success"

    @staticmethod
    def render(context: dict) -> dict:
        return {
            "title": "Payment complete",
            "heading": "Your payment was completed successfully",
            "message": "Taking you to your order confirmation...",
            "accent": "#10b981",
            "path": "/order-success",
            "params": {
                "orderId": context.get("order_number"),
                "amount": context.get("amount"),
                "tid": context.get("transaction_id"),
            },
        }

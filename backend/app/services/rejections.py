from fastapi import HTTPException, status


OUT_OF_STOCK_MESSAGE = "One or more products in your cart are out of stock."
PROMOTION_INVALID_MESSAGE = "Promotion is not valid."


class OrderRejected(HTTPException):
    """Business-rule rejection raised by the order pipeline; `code` is carried into the error body."""

    def __init__(self, detail: str, *, code: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


def out_of_stock() -> OrderRejected:
    return OrderRejected(OUT_OF_STOCK_MESSAGE, code="out_of_stock")


def promotion_invalid() -> OrderRejected:
    return OrderRejected(PROMOTION_INVALID_MESSAGE, code="promotion_invalid")

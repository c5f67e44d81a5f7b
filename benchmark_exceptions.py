# benchmark_exceptions.py

class BenchmarkError(Exception):
    """Base class for errors raised by the benchmark order extraction."""


class StorageAccessError(BenchmarkError):
    """The shop database could not be reached or a query against it failed."""


class BenchmarkConfigError(BenchmarkError):
    """No usable cursor row exists for the requested shop."""

    def __init__(self, message: str, shop_id: int | None = None):
        super().__init__(message)
        self.shop_id = shop_id


class OrderDataError(BenchmarkError):
    """
    Raised when fetched order data violates an integrity assumption:
    an unparseable date, or a dispatch/payment/customer id that has no
    matching row.
    """

    def __init__(self, message: str, *, order_ids: list[int] | None = None):
        super().__init__(message)
        self.order_ids = order_ids or []


class CategoryTreeError(BenchmarkError):
    """A category parent chain is cyclic or points at a missing category."""

    def __init__(self, message: str, category_id: int | None = None):
        super().__init__(message)
        self.category_id = category_id

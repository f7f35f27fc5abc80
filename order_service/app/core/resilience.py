"""
Store timeouts and transient-failure retries, shared with the catalog so a
catalog timeout and an order-store timeout are the same ``TransientError``.
"""

from product_service.app.core.resilience import retry_transient, run_with_timeout

__all__ = ["retry_transient", "run_with_timeout"]

"""Orders bounded context — the order records checkout reads and finalizes.

Stands in for the storefront's persistence service: orders are created
before payment starts, and only their status fields change as payment
outcomes arrive.
"""

from protean.domain import Domain

from shared.logging import configure_logging, get_logger

configure_logging()

orders = Domain(name="orders")

logger = get_logger(__name__)

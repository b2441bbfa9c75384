"""Commerce bounded context: cart pricing, checkout, payment reconciliation, stock.

Everything that must change together (an order, the stock of its products and
the gateway transaction that paid for it) lives in this one domain so that a
single unit of work covers it.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)

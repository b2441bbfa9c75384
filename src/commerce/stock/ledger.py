"""Stock ledger: the only code that moves ``Product.stock``.

The ledger works inside the caller's unit of work. It loads each product once,
checks the whole demand before touching anything, then decrements. Products
are written back through the repository, so a concurrent writer that saved the
same product first makes the whole unit fail on its version check instead of
silently losing an update.

An order's stock is committed at most once. ``commit_order`` is a no-op for an
order that already carries ``stock_committed_at``. That makes a repeated
approval or payment confirmation harmless.
"""

import structlog
from protean.utils.globals import current_domain

from commerce.catalogue.product import Product
from commerce.errors import InsufficientStock, ProductInactive, ProductNotFound
from commerce.tenancy import Tenant

logger = structlog.get_logger(__name__)


class StockLedger:
    def __init__(self, tenant):
        self.tenant = Tenant(tenant).value
        self._products = current_domain.repository_for(Product)

    def check(self, demand: dict[str, int], require_active: bool = True) -> dict[str, Product]:
        """Verify every product can cover its quantity. Mutates nothing.

        Raises ``ProductNotFound``, ``ProductInactive`` or ``InsufficientStock``
        for the first line that fails.
        """
        products = {}
        for product_id, quantity in demand.items():
            product = self._products.get_for_tenant(self.tenant, product_id)
            if require_active and not product.is_active:
                raise ProductInactive(product_id)
            if product.stock < quantity:
                raise InsufficientStock(product_id, available=product.stock, requested=quantity)
            products[product_id] = product
        return products

    def try_deduct(self, product_id, quantity, order_id=None) -> Product:
        product = self._products.get_for_tenant(self.tenant, product_id)
        product.deduct_stock(quantity, order_id=order_id)
        self._products.add(product)
        return product

    def commit_order(self, order, trigger: str) -> bool:
        """Deduct stock for every line of ``order``, once.

        Returns False when the order's stock was already committed. The caller
        persists the order.
        """
        if order.stock_committed:
            logger.info("stock_already_committed", order_id=str(order.id), trigger=trigger)
            return False

        demand = order.demand()
        products = self.check(demand, require_active=False)
        for product_id, quantity in demand.items():
            product = products[product_id]
            product.deduct_stock(quantity, order_id=order.id)
            self._products.add(product)

        order.mark_stock_committed(trigger)
        logger.info(
            "stock_committed",
            order_id=str(order.id),
            trigger=trigger,
            products=len(demand),
            units=sum(demand.values()),
        )
        return True

    def release_order(self, order) -> bool:
        """Put a cancelled order's committed stock back on the shelf, once."""
        if not order.stock_committed or order.stock_released_at is not None:
            return False

        for product_id, quantity in order.demand().items():
            try:
                product = self._products.get_for_tenant(self.tenant, product_id)
            except ProductNotFound:
                logger.warning("restock_skipped_missing_product", order_id=str(order.id), product_id=product_id)
                continue
            product.restock_units(quantity, reason="order_cancelled", order_id=order.id)
            self._products.add(product)

        order.mark_stock_released()
        logger.info("stock_released", order_id=str(order.id))
        return True

    def receive(self, product_id, quantity, reason="restock") -> Product:
        """Add incoming units to a product."""
        product = self._products.get_for_tenant(self.tenant, product_id)
        product.restock_units(quantity, reason=reason)
        self._products.add(product)
        return product

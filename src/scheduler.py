"""Periodic abandoned-cart and abandoned-checkout sweeps.

Runs outside the request path, once per interval, for every tenant.

Usage:
    python src/scheduler.py                     # Loop forever, every SCAN_INTERVAL_SECONDS
    python src/scheduler.py --once              # One sweep, then exit
    python src/scheduler.py --tenant flowers    # Only one storefront
"""

import argparse
import asyncio

import structlog

from commerce.abandonment import scan_abandoned_carts, scan_abandoned_orders
from commerce.domain import commerce
from commerce.settings import get_settings
from commerce.tenancy import Tenant
from commerce.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


def sweep(tenants) -> dict[str, dict[str, int]]:
    """Run both scans for each tenant and return the flagged counts."""
    summary = {}
    with commerce.domain_context():
        for tenant in tenants:
            summary[tenant.value] = {
                "carts": scan_abandoned_carts(tenant),
                "orders": scan_abandoned_orders(tenant),
            }
    logger.info("abandonment_sweep_finished", summary=summary)
    return summary


async def run(tenants, interval, once=False):
    while True:
        try:
            # Sweeps touch the database synchronously; keep them off the loop
            await asyncio.to_thread(sweep, tenants)
        except Exception:
            logger.exception("abandonment_sweep_failed")
        if once:
            return
        await asyncio.sleep(interval)


def main():
    parser = argparse.ArgumentParser(description="Commerce abandonment scheduler")
    parser.add_argument(
        "--tenant",
        choices=[t.value for t in Tenant],
        help="Sweep a single tenant (default: all)",
    )
    parser.add_argument("--once", action="store_true", help="Run one sweep and exit")
    args = parser.parse_args()

    configure_logging()
    commerce.init()

    tenants = [Tenant(args.tenant)] if args.tenant else list(Tenant)
    asyncio.run(run(tenants, get_settings().scan_interval_seconds, once=args.once))


if __name__ == "__main__":
    main()

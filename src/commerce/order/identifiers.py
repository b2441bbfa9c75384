"""Human-facing identifiers: short display ids and invoice numbers.

Both are checked against storage before use. The checks are injected as
callables so the generation rules can be exercised without a repository.
"""

import random
from collections.abc import Callable
from datetime import UTC, date, datetime

from commerce.errors import DataIntegrityError

DISPLAY_ID_LENGTH = 6
MAX_DISPLAY_ID_SUFFIX = 100
MAX_INVOICE_ATTEMPTS = 10


def display_id_base(order_id: str) -> str:
    """Last six characters of the internal id, uppercased."""
    return str(order_id).replace("-", "")[-DISPLAY_ID_LENGTH:].upper()


def allocate_display_id(order_id: str, is_taken: Callable[[str], bool]) -> str:
    """``AB12CD``, or ``AB12CD-1``, ``AB12CD-2``... when the shorter forms are in use."""
    base = display_id_base(order_id)
    if not is_taken(base):
        return base

    for suffix in range(1, MAX_DISPLAY_ID_SUFFIX + 1):
        candidate = f"{base}-{suffix}"
        if not is_taken(candidate):
            return candidate

    raise DataIntegrityError(f"No free display id for order {order_id}")


def invoice_number_candidate(today: date, rng: random.Random | None = None) -> str:
    rng = rng or random
    return f"INV-{today:%Y%m%d}-{rng.randint(100000, 999999)}"


def allocate_invoice_number(
    is_taken: Callable[[str], bool],
    today: date | None = None,
    rng: random.Random | None = None,
) -> str:
    """``INV-YYYYMMDD-XXXXXX`` with six random digits, retried on collision."""
    today = today or datetime.now(UTC).date()

    for _ in range(MAX_INVOICE_ATTEMPTS):
        candidate = invoice_number_candidate(today, rng)
        if not is_taken(candidate):
            return candidate

    raise DataIntegrityError(f"Could not allocate a unique invoice number after {MAX_INVOICE_ATTEMPTS} attempts")

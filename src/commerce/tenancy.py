"""Tenants, buyer roles and the values derived from them.

Each aggregate in this domain carries a ``tenant`` discriminator and every
repository finder takes the tenant explicitly. There is no implicit default
tenant: callers always say which storefront they are acting for.
"""

from enum import Enum


class Tenant(Enum):
    FLOWERS = "flowers"
    LAPTOPS = "laptops"


class BuyerRole(Enum):
    B2C_BUYER = "B2C_BUYER"
    B2B_BUYER = "B2B_BUYER"
    ADMIN = "ADMIN"


class BuyerClass(Enum):
    B2B = "B2B"
    B2C = "B2C"


TENANT_CURRENCY = {
    Tenant.FLOWERS: "KWD",
    Tenant.LAPTOPS: "INR",
}


def buyer_class_for(role) -> BuyerClass:
    """B2B pricing and B2B orders are reserved for the B2B buyer role.

    The class is never taken from the client; it only follows from the role the
    authentication layer attached to the request.
    """
    value = role.value if isinstance(role, BuyerRole) else role
    if value == BuyerRole.B2B_BUYER.value:
        return BuyerClass.B2B
    return BuyerClass.B2C


def currency_for(tenant) -> str:
    return TENANT_CURRENCY[Tenant(tenant)]

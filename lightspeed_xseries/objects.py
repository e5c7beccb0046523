"""Entity wrappers over decoded API objects with change tracking."""

import copy
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from .exceptions import EntityError

if TYPE_CHECKING:
    from .client import LightspeedClient


def unwrap(result: Any) -> Dict[str, Any]:
    """Return the entity mapping from an API result, unwrapping a `data` envelope."""
    if isinstance(result, dict):
        data = result.get("data")
        if isinstance(data, dict):
            return data
        return result
    return {}


def _first(mapping: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key present with a non-null value."""
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return default


def _as_mapping(item: Any) -> Dict[str, Any]:
    return item if isinstance(item, dict) else {}


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class LightspeedObject(ABC):
    """Property mapping plus a snapshot of the last saved state.

    The changed set is every key whose value differs from the snapshot,
    always including `id` when present. A key whose snapshot value is null
    counts as unset, so it is always in the changed set.
    """

    entity_name = "object"

    def __init__(
        self,
        data: Optional[Dict[str, Any]] = None,
        api: Optional["LightspeedClient"] = None,
    ):
        self.api = api
        self._properties: Dict[str, Any] = {}
        self._initial: Dict[str, Any] = {}
        if data is not None:
            self._properties = dict(data)
            self._initial = copy.deepcopy(self._properties)

    def get(self, key: str, default: Any = None) -> Any:
        return self._properties.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._properties[key] = value

    def delete(self, key: str) -> None:
        self._properties.pop(key, None)

    def __getitem__(self, key: str) -> Any:
        return self._properties[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self._properties.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"

    def clear(self) -> None:
        """Drop all properties (the snapshot is kept)."""
        self._properties = {}

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._properties)

    @property
    def id(self) -> Optional[str]:
        return self._properties.get("id")

    def changed_properties(self) -> Dict[str, Any]:
        """Properties that differ from the snapshot, plus `id`."""
        changed = {}
        for key, value in self._properties.items():
            initial = self._initial.get(key)
            if key == "id" or initial is None or initial != value:
                changed[key] = value
        return changed

    def has_changed(self, key: str) -> bool:
        if self._initial.get(key) is None:
            return self._properties.get(key) is not None
        return self._properties.get(key) != self._initial[key]

    def is_dirty(self) -> bool:
        return any(self.has_changed(key) for key in self._properties if key != "id")

    def refresh_from(self, result: Any) -> None:
        """Replace properties with a save result and reset the snapshot."""
        data = unwrap(result)
        if data:
            self._properties = dict(data)
        self._initial = copy.deepcopy(self._properties)

    def _require_api(self, action: str) -> "LightspeedClient":
        if self.api is None:
            raise EntityError(f"API instance required to {action}")
        return self.api

    @abstractmethod
    def save(self) -> None:
        """Persist the entity through the attached client."""


class Product(LightspeedObject):
    """A product."""

    entity_name = "product"

    def save(self) -> None:
        """Create the product, or update it with only the changed properties."""
        api = self._require_api("save product")
        if self.id:
            result = api.update_product(self.id, self.changed_properties())
        else:
            result = api.create_product(self.to_dict())
        self.refresh_from(result)

    def get_inventory(self, outlet: Optional[str] = None) -> float:
        """Inventory at `outlet`, or the total across outlets when None."""
        inventory = self._properties.get("inventory")
        if not isinstance(inventory, list):
            return 0.0

        total = 0.0
        for item in inventory:
            item = _as_mapping(item)
            count = _as_float(_first(item, "count", "inventory_level"))
            if outlet is not None and _first(item, "outlet_name", "outlet_id") == outlet:
                return count
            total += count
        return total

    def set_inventory(self, count: float, outlet: Optional[str] = None) -> None:
        """Set the count for `outlet` (the first outlet when None)."""
        inventory = self._properties.get("inventory")
        if isinstance(inventory, list):
            for item in inventory:
                if isinstance(item, dict) and (outlet is None or item.get("outlet_name") == outlet):
                    item["count"] = count
                    return

        self._properties["inventory"] = [
            {"outlet_name": outlet or "Main Outlet", "count": count}
        ]

    @property
    def name(self) -> Optional[str]:
        return self._properties.get("name")

    @property
    def sku(self) -> Optional[str]:
        return self._properties.get("sku")

    @property
    def handle(self) -> Optional[str]:
        return self._properties.get("handle")

    @property
    def price(self) -> Optional[float]:
        """Retail price, tax inclusive."""
        price = _first(self._properties, "price", "price_including_tax")
        return _as_float(price) if price is not None else None

    @property
    def supply_price(self) -> Optional[float]:
        price = self._properties.get("supply_price")
        return _as_float(price) if price is not None else None

    @property
    def is_active(self) -> bool:
        return bool(_first(self._properties, "active", default=True))

    @property
    def brand_id(self) -> Optional[str]:
        return self._properties.get("brand_id")

    @property
    def category_ids(self) -> List[str]:
        # product types are called categories in newer schemas
        return _first(self._properties, "product_type_id", "category_ids", default=[])

    @property
    def supplier_id(self) -> Optional[str]:
        return self._properties.get("supplier_id")


class Customer(LightspeedObject):
    """A customer."""

    entity_name = "customer"

    def save(self) -> None:
        api = self._require_api("save customer")
        if self.id:
            result = api.update_customer(self.id, self.changed_properties())
        else:
            result = api.create_customer(self.to_dict())
        self.refresh_from(result)

    @property
    def customer_code(self) -> Optional[str]:
        return self._properties.get("customer_code")

    @property
    def first_name(self) -> Optional[str]:
        return self._properties.get("first_name")

    @property
    def last_name(self) -> Optional[str]:
        return self._properties.get("last_name")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def email(self) -> Optional[str]:
        return self._properties.get("email")

    @property
    def phone(self) -> Optional[str]:
        return self._properties.get("phone")

    @property
    def mobile(self) -> Optional[str]:
        return self._properties.get("mobile")

    @property
    def company_name(self) -> Optional[str]:
        return self._properties.get("company_name")

    @property
    def customer_group_id(self) -> Optional[str]:
        return self._properties.get("customer_group_id")

    @property
    def accepts_marketing(self) -> bool:
        return not bool(self._properties.get("do_not_email") or False)

    @property
    def loyalty_balance(self) -> float:
        return _as_float(self._properties.get("loyalty_balance"))

    @property
    def store_credit_balance(self) -> float:
        return _as_float(self._properties.get("balance"))

    def _address(self, prefix: str) -> Dict[str, Optional[str]]:
        return {
            "street": self._properties.get(f"{prefix}_address1"),
            "street2": self._properties.get(f"{prefix}_address2"),
            "city": self._properties.get(f"{prefix}_city"),
            "state": self._properties.get(f"{prefix}_state"),
            "postcode": self._properties.get(f"{prefix}_postcode"),
            "country": self._properties.get(f"{prefix}_country_id"),
        }

    @property
    def physical_address(self) -> Dict[str, Optional[str]]:
        return self._address("physical")

    @property
    def postal_address(self) -> Dict[str, Optional[str]]:
        return self._address("postal")


ON_ACCOUNT_STATUSES = ("LAYBY", "ONACCOUNT", "LAYBY_CLOSED", "ONACCOUNT_CLOSED")


class Sale(LightspeedObject):
    """A sale (register sale / order)."""

    entity_name = "sale"

    def save(self) -> None:
        """Sales are only ever created; the register_sales endpoint upserts by id."""
        api = self._require_api("save sale")
        result = api.create_sale(self.to_dict())
        # register_sales answers with {"register_sale": {...}}
        if isinstance(result, dict) and isinstance(result.get("register_sale"), dict):
            result = result["register_sale"]
        self.refresh_from(result)

    def get_customer(self) -> Customer:
        api = self._require_api("fetch customer")
        if not self.customer_id:
            raise EntityError("Sale has no customer ID")
        return api.get_customer(self.customer_id)

    def get_products(self) -> List[Product]:
        """Fetch the product of every line item that has one."""
        api = self._require_api("fetch products")
        products = []
        for item in self.line_items:
            product_id = _as_mapping(item).get("product_id")
            if product_id:
                products.append(api.get_product(product_id))
        return products

    @property
    def customer_id(self) -> Optional[str]:
        return self._properties.get("customer_id")

    @property
    def invoice_number(self) -> Optional[str]:
        return self._properties.get("invoice_number")

    @property
    def status(self) -> Optional[str]:
        return self._properties.get("status")

    @property
    def is_complete(self) -> bool:
        return self.status == "CLOSED"

    @property
    def is_on_account(self) -> bool:
        """Layby or on-account sale, open or closed."""
        return self.status in ON_ACCOUNT_STATUSES

    @property
    def _totals(self) -> Dict[str, Any]:
        return _as_mapping(self._properties.get("totals"))

    @property
    def total_price(self) -> float:
        """Total, tax inclusive."""
        return _as_float(
            _first(self._properties, "total_price", default=self._totals.get("total_payment"))
        )

    @property
    def total_tax(self) -> float:
        return _as_float(
            _first(self._properties, "total_tax", default=self._totals.get("total_tax"))
        )

    @property
    def line_items(self) -> List[Dict[str, Any]]:
        return _first(self._properties, "register_sale_products", "line_items", default=[])

    @property
    def payments(self) -> List[Dict[str, Any]]:
        return _first(self._properties, "register_sale_payments", "payments", default=[])

    @property
    def total_paid(self) -> float:
        return sum(_as_float(_as_mapping(p).get("amount")) for p in self.payments)

    @property
    def balance_due(self) -> float:
        return self.total_price - self.total_paid

    @property
    def outlet_id(self) -> Optional[str]:
        return self._properties.get("outlet_id")

    @property
    def register_id(self) -> Optional[str]:
        return self._properties.get("register_id")

    @property
    def user_id(self) -> Optional[str]:
        """The salesperson."""
        return self._properties.get("user_id")

    @property
    def sale_date(self) -> Optional[str]:
        return self._properties.get("sale_date")

    @property
    def note(self) -> Optional[str]:
        return self._properties.get("note")

"""
Customer Management Module

Customer identity records attached to accounts. Customers are immutable
once created; the only behavioural difference between customer types is
the fee waiver granted to premium customers.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import re
import threading

from .config import get_config
from .money import to_amount
from .sequence import IdSequence


# Input patterns used by the console when collecting customer details
NAME_PATTERN = r"^[A-Za-z]+([ '-][A-Za-z]+)*$"      # John Doe, Anne-Marie, O'Brien
CONTACT_PATTERN = r"^\+1-\d{3}-\d{4}$"               # +1-555-1234
ADDRESS_PATTERN = r"^[A-Za-z0-9\s,.\-#/]+$"


def is_valid_name(value: str) -> bool:
    return bool(re.match(NAME_PATTERN, value or ""))


def is_valid_contact(value: str) -> bool:
    return bool(re.match(CONTACT_PATTERN, value or ""))


def is_valid_address(value: str) -> bool:
    return bool(re.match(ADDRESS_PATTERN, value or ""))


class CustomerConflictError(ValueError):
    """A customer with the same name and contact exists with other details"""

    def __init__(self, customer: 'Customer', field: str):
        super().__init__(
            f"Customer {customer.name} ({customer.contact}) already exists as "
            f"{customer.customer_id} with a different {field}."
        )
        self.reason = str(self)
        self.customer = customer
        self.field = field


class CustomerType(Enum):
    """Customer tiers"""
    REGULAR = "Regular"
    PREMIUM = "Premium"  # Monthly fees waived

    @classmethod
    def from_label(cls, label: str) -> 'CustomerType':
        for member in cls:
            if member.value.lower() == (label or "").strip().lower():
                return member
        raise ValueError(f"Unknown customer type: {label!r}")


@dataclass(frozen=True)
class Customer:
    """
    Customer profile shared by every account the customer owns
    """
    customer_id: str
    name: str
    age: int
    contact: str
    address: str
    customer_type: CustomerType = CustomerType.REGULAR

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Customer name is required")
        if self.age <= 0:
            raise ValueError("Customer age must be positive")

    @property
    def has_waived_fees(self) -> bool:
        """Premium customers pay no monthly fees"""
        return self.customer_type == CustomerType.PREMIUM

    @property
    def is_premium(self) -> bool:
        return self.customer_type == CustomerType.PREMIUM

    @property
    def minimum_balance(self) -> Optional[Decimal]:
        """Balance a premium relationship is expected to hold (informational)"""
        if self.is_premium:
            return to_amount(get_config().premium_minimum_balance)
        return None

    def describe(self) -> str:
        label = "Premium (Fees Waived)" if self.is_premium else "Regular"
        return f"ID: {self.customer_id} | Name: {self.name} | Type: {label}"


class CustomerManager:
    """
    Creates customers and keeps them addressable by id
    """

    def __init__(self, sequence: Optional[IdSequence] = None):
        if sequence is None:
            cfg = get_config()
            sequence = IdSequence(cfg.customer_id_prefix, cfg.id_width)
        self.sequence = sequence
        self._customers: Dict[str, Customer] = {}
        self._lock = threading.RLock()

    def create_customer(
        self,
        customer_type: CustomerType,
        name: str,
        age: int,
        contact: str,
        address: str
    ) -> Customer:
        """
        Create and register a new customer

        Args:
            customer_type: Regular or premium
            name: Full name
            age: Age in years (must be positive)
            contact: Contact number
            address: Postal address

        Returns:
            Created Customer with a freshly allocated id
        """
        with self._lock:
            customer = Customer(
                customer_id=self.sequence.next_id(),
                name=name,
                age=age,
                contact=contact,
                address=address,
                customer_type=customer_type
            )
            self._customers[customer.customer_id] = customer
            return customer

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        with self._lock:
            return self._customers.get(customer_id)

    def find_customer(self, name: str, contact: str) -> Optional[Customer]:
        """Find an existing customer by name and contact (used when loading files)"""
        with self._lock:
            for customer in self._customers.values():
                if customer.name == name and customer.contact == contact:
                    return customer
            return None

    def get_or_create_customer(
        self,
        customer_type: CustomerType,
        name: str,
        age: int,
        contact: str,
        address: str
    ) -> Customer:
        """
        Return the customer with this name and contact, creating it if new

        Raises:
            CustomerConflictError: If the existing customer has a different
                type, age or address
        """
        with self._lock:
            customer = self.find_customer(name, contact)
            if customer is None:
                return self.create_customer(customer_type, name, age, contact, address)

        if customer.customer_type != customer_type:
            raise CustomerConflictError(customer, "customer type")
        if customer.age != age:
            raise CustomerConflictError(customer, "age")
        if customer.address != address:
            raise CustomerConflictError(customer, "address")
        return customer

    def get_all_customers(self) -> List[Customer]:
        with self._lock:
            return list(self._customers.values())

    def get_customer_count(self) -> int:
        with self._lock:
            return len(self._customers)

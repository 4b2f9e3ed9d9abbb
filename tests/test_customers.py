"""
Test suite for customers module

Tests customer creation, lookup, tier behaviour and input validators.
"""

import pytest
from decimal import Decimal

from bankapp.customers import (
    Customer, CustomerConflictError, CustomerManager, CustomerType,
    is_valid_name, is_valid_contact, is_valid_address
)


class TestCustomer:
    """Test Customer record"""

    def test_regular_customer(self):
        customer = Customer("CUST001", "John Doe", 30, "+1-555-0101", "NY")

        assert customer.customer_type == CustomerType.REGULAR
        assert not customer.has_waived_fees
        assert not customer.is_premium
        assert customer.minimum_balance is None
        assert customer.describe() == "ID: CUST001 | Name: John Doe | Type: Regular"

    def test_premium_customer(self):
        customer = Customer(
            "CUST002", "Jane Smith", 45, "+1-555-0202", "CA", CustomerType.PREMIUM
        )

        assert customer.has_waived_fees
        assert customer.minimum_balance == Decimal('10000.00')
        assert customer.describe() == (
            "ID: CUST002 | Name: Jane Smith | Type: Premium (Fees Waived)"
        )

    def test_validation(self):
        """Test name and age checks"""
        with pytest.raises(ValueError, match="name is required"):
            Customer("CUST001", "  ", 30, "+1-555-0101", "NY")
        with pytest.raises(ValueError, match="age must be positive"):
            Customer("CUST001", "John Doe", 0, "+1-555-0101", "NY")

    def test_customer_type_from_label(self):
        assert CustomerType.from_label("premium") == CustomerType.PREMIUM
        assert CustomerType.from_label(" Regular ") == CustomerType.REGULAR
        with pytest.raises(ValueError):
            CustomerType.from_label("Gold")


class TestCustomerManager:
    """Test CustomerManager registry"""

    def setup_method(self):
        self.manager = CustomerManager()

    def test_create_and_get(self):
        customer = self.manager.create_customer(
            CustomerType.REGULAR, "John Doe", 30, "+1-555-0101", "NY"
        )

        assert customer.customer_id == "CUST001"
        assert self.manager.get_customer("CUST001") is customer
        assert self.manager.get_customer("CUST999") is None
        assert self.manager.get_customer_count() == 1

    def test_find_customer(self):
        """Test lookup by name and contact"""
        john = self.manager.create_customer(
            CustomerType.REGULAR, "John Doe", 30, "+1-555-0101", "NY"
        )
        self.manager.create_customer(
            CustomerType.PREMIUM, "Jane Smith", 45, "+1-555-0202", "CA"
        )

        assert self.manager.find_customer("John Doe", "+1-555-0101") is john
        assert self.manager.find_customer("John Doe", "+1-555-0202") is None
        assert len(self.manager.get_all_customers()) == 2

    def test_get_or_create_customer(self):
        john = self.manager.get_or_create_customer(
            CustomerType.REGULAR, "John Doe", 30, "+1-555-0101", "NY"
        )

        assert self.manager.get_or_create_customer(
            CustomerType.REGULAR, "John Doe", 30, "+1-555-0101", "NY"
        ) is john
        assert self.manager.get_customer_count() == 1

    def test_get_or_create_rejects_conflicting_details(self):
        """Test an existing customer is never reused with other details"""
        self.manager.create_customer(CustomerType.REGULAR, "John Doe", 30, "+1-555-0101", "NY")

        with pytest.raises(CustomerConflictError, match="different customer type"):
            self.manager.get_or_create_customer(
                CustomerType.PREMIUM, "John Doe", 30, "+1-555-0101", "NY"
            )
        with pytest.raises(CustomerConflictError, match="different age"):
            self.manager.get_or_create_customer(
                CustomerType.REGULAR, "John Doe", 31, "+1-555-0101", "NY"
            )
        with pytest.raises(CustomerConflictError, match="different address"):
            self.manager.get_or_create_customer(
                CustomerType.REGULAR, "John Doe", 30, "+1-555-0101", "CA"
            )
        assert self.manager.get_customer_count() == 1

    def test_invalid_customer_does_not_register(self):
        with pytest.raises(ValueError):
            self.manager.create_customer(CustomerType.REGULAR, "John Doe", -1, "+1-555-0101", "NY")

        assert self.manager.get_customer_count() == 0


class TestValidators:
    """Test console input validators"""

    def test_names(self):
        assert is_valid_name("John Doe")
        assert is_valid_name("Anne-Marie")
        assert is_valid_name("O'Brien")
        assert not is_valid_name("John3")
        assert not is_valid_name("")

    def test_contacts(self):
        assert is_valid_contact("+1-555-1234")
        assert not is_valid_contact("555-1234")
        assert not is_valid_contact("+1-5555-1234")

    def test_addresses(self):
        assert is_valid_address("12 Main St, Apt #4")
        assert not is_valid_address("Main|St")
        assert not is_valid_address("")

"""Pytest fixtures for Stampman tests."""

import pytest
from django.core.cache import cache

from stampman.models import Customer
from stampman.services.session import EmployeeSessionService

EMPLOYEE_PASSWORD = "test-employee-password"


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_customer(db):
    """Create a customer with a consistent free item flag."""

    def _make(name: str, phone: str, stamps: int = 0) -> Customer:
        return Customer.objects.create(
            name=name,
            phone_full=phone,
            stamps=stamps,
            free_item_available=stamps >= 10,
        )

    return _make


@pytest.fixture
def woobin(make_customer):
    return make_customer("Woo-bin Lee", "010-1234-5678", stamps=2)


@pytest.fixture
def minsu(make_customer, woobin):
    return make_customer("Min-su Park", "010-1111-1234", stamps=4)


@pytest.fixture
def sora(make_customer, minsu):
    """Created last: shares the 5678 suffix with woobin."""
    return make_customer("Sora Kim", "010-9876-5678", stamps=7)


@pytest.fixture
def employee_session():
    return EmployeeSessionService.login(EMPLOYEE_PASSWORD, label="counter-1")

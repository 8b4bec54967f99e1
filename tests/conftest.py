from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from accounts.models import User
from customers.models import Customer
from sales.models import Sale
from stores.models import Enterprise, Store


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def manager_user(db):
    return User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Manager",
        last_name="User",
        role=User.Role.MANAGER,
    )


@pytest.fixture
def sales_user(db):
    return User.objects.create_user(
        email="sales@test.com",
        password="testpass123",
        first_name="Sales",
        last_name="User",
        role=User.Role.SALES,
    )


@pytest.fixture
def enterprise(db):
    return Enterprise.objects.create(
        name="Entreprise Test",
        code="ENT-TEST",
        legal_name="Entreprise Test SARL",
        currency="FCFA",
    )


@pytest.fixture
def store(db, enterprise):
    return Store.objects.create(
        enterprise=enterprise,
        name="Boutique Test",
        code="BT-001",
        address="123 Rue de Test",
        phone="+237600000000",
        email="boutique@test.com",
    )


@pytest.fixture
def other_store(db, enterprise):
    return Store.objects.create(
        enterprise=enterprise,
        name="Boutique Annexe",
        code="BT-002",
    )


@pytest.fixture
def now():
    return timezone.now()


@pytest.fixture
def make_customer(enterprise):
    counter = {"n": 0}

    def _make(first_name=None, last_name="Client", **kwargs):
        counter["n"] += 1
        return Customer.objects.create(
            enterprise=enterprise,
            first_name=first_name or f"Client{counter['n']}",
            last_name=last_name,
            phone=kwargs.pop("phone", f"+23769{counter['n']:07d}"),
            **kwargs,
        )

    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer(first_name="Jean", last_name="Dupont")


@pytest.fixture
def make_sale(store, sales_user, now):
    """Create a completed sale ``days_ago`` days before now."""

    def _make(customer, total="10000.00", days_ago=1, status=Sale.Status.DONE, sale_store=None, **kwargs):
        return Sale.objects.create(
            store=sale_store or store,
            seller=sales_user,
            customer=customer,
            status=status,
            total=Decimal(str(total)),
            order_date=now - timedelta(days=days_ago),
            **kwargs,
        )

    return _make

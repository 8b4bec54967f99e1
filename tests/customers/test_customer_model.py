import pytest
from django.db import IntegrityError

from customers.models import Customer


@pytest.mark.django_db
def test_identified_excludes_walk_in_customer(make_customer):
    walk_in = make_customer(first_name="Client", last_name="Comptant", is_default=True)
    regular = make_customer()
    inactive = make_customer(is_active=False)

    assert set(Customer.objects.identified()) == {regular, inactive}
    assert set(Customer.objects.active()) == {walk_in, regular}
    assert list(Customer.objects.active().identified()) == [regular]


@pytest.mark.django_db
def test_only_one_default_customer_per_enterprise(make_customer):
    make_customer(is_default=True)

    with pytest.raises(IntegrityError):
        make_customer(is_default=True)


@pytest.mark.django_db
def test_full_name(customer):
    assert customer.full_name == "Jean Dupont"
    assert str(customer) == "Jean Dupont"

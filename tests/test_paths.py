"""Tests for wire-name field paths."""

from dataclasses import dataclass
from typing import Dict, List, Optional

import pytest

from bsonderive.derivation.fields import bson_field
from bsonderive.exceptions import ConfigurationError
from bsonderive.paths import field_path


@dataclass
class Address:
    street: str
    zip_code: int = bson_field(name="zipCode")


@dataclass
class Phone:
    number: str = bson_field(name="num")


class Payment:
    pass


@dataclass
class Card(Payment):
    card_number: str = bson_field(name="cardNumber")


@dataclass
class Transfer(Payment):
    iban: str


@dataclass
class Person:
    name: str
    home: Optional[Address] = bson_field(name="homeAddress", default=None)
    phones: List[Phone] = bson_field(name="phoneNumbers", default_factory=list)
    addresses: Dict[str, Address] = bson_field(default_factory=dict)
    payment: Optional[Payment] = None


class TestFieldPath:
    """Tests for field_path."""

    def test_plain_field(self):
        assert field_path(Person, "name") == "name"

    def test_renamed_field(self):
        assert field_path(Address, "zip_code") == "zipCode"

    def test_nested_through_optional(self):
        assert field_path(Person, "home.zip_code") == "homeAddress.zipCode"

    def test_collection_elements(self):
        assert field_path(Person, "phones.number") == "phoneNumbers.num"

    def test_array_index(self):
        assert field_path(Person, "phones.0.number") == "phoneNumbers.0.num"

    def test_map_key(self):
        assert field_path(Person, "addresses.work.zip_code") == "addresses.work.zipCode"

    def test_sum_type_variants(self):
        assert field_path(Person, "payment.card_number") == "payment.cardNumber"
        assert field_path(Person, "payment.iban") == "payment.iban"

    def test_wire_name_is_not_accepted(self):
        with pytest.raises(ConfigurationError):
            field_path(Address, "zipCode")

    @pytest.mark.parametrize("path", ["", "home..street", "home."])
    def test_empty_segments(self, path):
        with pytest.raises(ConfigurationError):
            field_path(Person, path)

    def test_unknown_field(self):
        with pytest.raises(ConfigurationError) as exc_info:
            field_path(Person, "home.country")
        assert "Unknown field 'country'" in str(exc_info.value)

    def test_descend_into_primitive(self):
        with pytest.raises(ConfigurationError):
            field_path(Person, "name.first")

    def test_subclassed_dataclass_searches_variants(self):
        @dataclass
        class Base:
            label: str

        @dataclass
        class Derived(Base):
            extra_value: int = bson_field(name="extraValue", default=0)

        @dataclass
        class Holder:
            item: Base

        assert field_path(Holder, "item.extra_value") == "item.extraValue"

"""Tests for field metadata resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import pytest

from bsonderive.derivation.descriptors import (
    CollectionType,
    OptionalType,
    PrimitiveType,
    ProductType,
)
from bsonderive.derivation.fields import BSON_NAME, FieldMetadataResolver, bson_field
from bsonderive.exceptions import DerivationError, DuplicateWireName, NotARecord


def describe(tp):
    if tp in (str, int):
        return PrimitiveType(tp)
    if getattr(tp, "__origin__", None) is list:
        return CollectionType(describe(tp.__args__[0]))
    args = getattr(tp, "__args__", ())
    if type(None) in args:
        return OptionalType(describe(args[0]))
    raise AssertionError(f"unexpected annotation {tp!r}")


@dataclass
class Address:
    street: str
    city: str
    zip_code: int = bson_field(name="zipCode")


@dataclass
class Counter:
    count: int = 0
    tags: List[str] = field(default_factory=list)
    note: Optional[str] = None
    computed: int = field(default=0, init=False)


@dataclass
class Clash:
    a: str = bson_field(name="x")
    x: str = ""


class TestBsonField:
    """Tests for bson_field."""

    def test_sets_wire_name_metadata(self):
        f = bson_field(name="zipCode", metadata={"other": 1})
        assert f.metadata[BSON_NAME] == "zipCode"
        assert f.metadata["other"] == 1

    def test_rejects_empty_name(self):
        with pytest.raises(DerivationError):
            bson_field(name="")


class TestFieldMetadataResolver:
    """Tests for FieldMetadataResolver."""

    def test_resolves_fields_in_declaration_order(self):
        product = FieldMetadataResolver(describe).resolve(Address)
        assert isinstance(product, ProductType)
        assert [f.declared_name for f in product.fields] == ["street", "city", "zip_code"]
        assert [f.declaration_order for f in product.fields] == [0, 1, 2]

    def test_wire_name_from_metadata(self):
        product = FieldMetadataResolver(describe).resolve(Address)
        assert product.field("zip_code").wire_name == "zipCode"
        assert product.field("street").wire_name == "street"

    def test_string_annotations_are_resolved(self):
        product = FieldMetadataResolver(describe).resolve(Counter)
        assert product.field("count").type_descriptor == PrimitiveType(int)
        assert product.field("tags").type_descriptor == CollectionType(PrimitiveType(str))
        assert product.field("note").is_optional

    def test_default_providers(self):
        product = FieldMetadataResolver(describe).resolve(Counter)
        assert product.field("count").default_provider() == 0
        assert product.field("street") is None
        assert FieldMetadataResolver(describe).resolve(Address).field("city").has_default is False

    def test_default_factory_is_called_each_time(self):
        provider = FieldMetadataResolver(describe).resolve(Counter).field("tags").default_provider
        first = provider()
        assert first == []
        assert provider() is not first

    def test_init_false_fields_are_skipped(self):
        product = FieldMetadataResolver(describe).resolve(Counter)
        assert product.field("computed") is None

    def test_duplicate_wire_name(self):
        with pytest.raises(DuplicateWireName) as exc_info:
            FieldMetadataResolver(describe).resolve(Clash)
        assert exc_info.value.wire_name == "x"
        assert exc_info.value.fields == ("a", "x")

    def test_not_a_dataclass(self):
        with pytest.raises(NotARecord):
            FieldMetadataResolver(describe).resolve(dict)

    def test_dataclass_instance_is_rejected(self):
        with pytest.raises(NotARecord):
            FieldMetadataResolver(describe).resolve(Address("a", "b", 1))

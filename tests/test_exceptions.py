"""Unit tests for bsonderive.exceptions module."""

import pytest

from bsonderive.exceptions import (
    BsonDeriveException,
    ConfigurationError,
    DerivationError,
    NotARecord,
    DuplicateRegistration,
    DuplicateInBatch,
    DuplicateWireName,
    UnsupportedFieldType,
    EncodeError,
    NullRootValue,
    NullFieldValue,
    UnknownVariant,
    ValueOutOfRange,
    DecodeError,
    MissingRequiredField,
    MissingDiscriminator,
    UnknownDiscriminator,
    TypeMismatch,
    UnknownEnumValue,
    DocumentFormatError,
)
from bsonderive.registry import Provenance


class RoleAssignment:
    pass


class Dog:
    pass


class Animal:
    pass


class TestBsonDeriveException:
    """Tests for BsonDeriveException base class."""

    def test_create_with_message(self):
        ex = BsonDeriveException("test message")
        assert str(ex) == "test message"
        assert ex.cause is None

    def test_create_with_message_and_cause(self):
        cause = ValueError("original error")
        ex = BsonDeriveException("wrapper message", cause=cause)
        assert str(ex) == "wrapper message"
        assert ex.cause is cause

    def test_create_empty(self):
        ex = BsonDeriveException()
        assert str(ex) == ""

    def test_families(self):
        for family in (ConfigurationError, DerivationError, EncodeError, DecodeError):
            assert isinstance(family("x"), BsonDeriveException)


class TestDerivationErrors:
    """Tests for assembly-time errors."""

    def test_not_a_record(self):
        ex = NotARecord(int)
        assert isinstance(ex, DerivationError)
        assert ex.value_type is int
        assert "int" in str(ex)

    def test_duplicate_registration_names_type_and_provenance(self):
        ex = DuplicateRegistration(RoleAssignment, Provenance.EXPLICIT)
        assert isinstance(ex, DerivationError)
        assert ex.value_type is RoleAssignment
        assert ex.provenance is Provenance.EXPLICIT
        assert "RoleAssignment" in str(ex)
        assert "explicit" in str(ex)

    def test_duplicate_registration_names_owner(self):
        ex = DuplicateRegistration(RoleAssignment, Provenance.DERIVED, owner=int)
        assert ex.owner is int
        assert "codec of int already derived" in str(ex)

    def test_duplicate_in_batch(self):
        ex = DuplicateInBatch(RoleAssignment)
        assert isinstance(ex, DerivationError)
        assert "RoleAssignment" in str(ex)
        assert "single batch" in str(ex)

    def test_duplicate_wire_name(self):
        ex = DuplicateWireName(RoleAssignment, "role", ["role", "role_name"])
        assert ex.wire_name == "role"
        assert ex.fields == ("role", "role_name")
        assert "'role'" in str(ex)

    def test_unsupported_field_type_reason(self):
        ex = UnsupportedFieldType(object, "no codec")
        assert "no codec" in str(ex)
        assert ex.annotation is object


class TestEncodeErrors:
    """Tests for encode-time errors."""

    def test_null_root_value(self):
        ex = NullRootValue(Dog)
        assert isinstance(ex, EncodeError)
        assert "Dog" in str(ex)

    def test_null_field_value_path(self):
        ex = NullFieldValue("owner.address.city")
        assert ex.path == "owner.address.city"
        assert "owner.address.city" in str(ex)

    def test_unknown_variant_lists_known(self):
        ex = UnknownVariant(RoleAssignment, Animal, [Dog])
        assert "RoleAssignment" in str(ex)
        assert "Known variants: Dog" in str(ex)

    def test_value_out_of_range(self):
        ex = ValueOutOfRange("count", "int32", 2 ** 40)
        assert ex.kind == "int32"
        assert ex.value == 2 ** 40
        assert "'count'" in str(ex)


class TestDecodeErrors:
    """Tests for decode-time errors."""

    def test_missing_required_field(self):
        ex = MissingRequiredField("address.zipCode")
        assert isinstance(ex, DecodeError)
        assert str(ex) == "Missing required field 'address.zipCode'"

    def test_missing_discriminator(self):
        ex = MissingDiscriminator("Animal", "_type")
        assert ex.type_name == "Animal"
        assert ex.field_name == "_type"
        assert "'_type'" in str(ex)

    def test_unknown_discriminator_lists_valid_tags(self):
        ex = UnknownDiscriminator("Bird", ["Dog", "Cat"], "Animal")
        assert ex.tag == "Bird"
        assert ex.known_tags == ("Dog", "Cat")
        assert "Valid discriminators: Dog, Cat" in str(ex)

    def test_type_mismatch(self):
        ex = TypeMismatch("age", "INT32", "STRING")
        assert str(ex) == "Expected INT32 at 'age' but found STRING"

    def test_type_mismatch_at_root(self):
        assert "document root" in str(TypeMismatch("", "DOCUMENT", "ARRAY"))

    def test_unknown_enum_value(self):
        ex = UnknownEnumValue("color", "PURPLE", ["RED", "GREEN"])
        assert ex.known == ("RED", "GREEN")
        assert "PURPLE" in str(ex)

    def test_document_format_error_position(self):
        ex = DocumentFormatError("Unexpected end of BSON data", 12)
        assert ex.position == 12
        assert "(at byte 12)" in str(ex)

    def test_catch_by_family(self):
        with pytest.raises(DecodeError):
            raise MissingRequiredField("x")

"""
Structural diff engine tests
"""

import pytest

from docmodel import NotARecordError, TypeMismatchError, get_changed_fields

from .models import Address, Audit, Money, Person, Pet


class TestChangedFields:
    def test_identical_records_have_no_changes(self):
        person = Person(name="Ada", age=36, address=Address(street="Main", city="Paris"))
        assert get_changed_fields(person, person) == []
        assert get_changed_fields(person, person.model_copy(deep=True)) == []

    def test_changes_are_symmetric(self):
        left = Person(name="Ada", age=36)
        right = Person(name="Grace", age=36, tags=["navy"])

        assert set(get_changed_fields(left, right)) == set(get_changed_fields(right, left))
        assert get_changed_fields(left, right) == ["name", "tags"]

    def test_nested_record_reports_dotted_path(self):
        left = Person(address=Address(street="Main", city="Paris"))
        right = Person(address=Address(street="Main", city="Lyon"))

        assert get_changed_fields(left, right) == ["address.city"]

    def test_external_names(self):
        left = Person(name="Ada", address=Address(city="Paris"))
        right = Person(name="Bob", address=Address(city="Lyon"))

        assert get_changed_fields(left, right, use_external_names=True) == [
            "fullName", "address.cityName",
        ]

    def test_inline_record_paths_are_not_prefixed(self):
        left = Person(audit=Audit(created_by="ada", revision=1))
        right = Person(audit=Audit(created_by="ada", revision=2))

        assert get_changed_fields(left, right) == ["revision"]
        right.audit.created_by = "bob"
        assert get_changed_fields(left, right, use_external_names=True) == ["createdBy", "revision"]

    def test_optional_record_set_on_one_side_reports_all_leaves(self):
        left = Person()
        right = Person(previous_address=Address(street="Old", city="Rome"))

        expected = ["previous_address.street", "previous_address.city"]
        assert get_changed_fields(left, right) == expected
        assert get_changed_fields(right, left) == expected
        assert get_changed_fields(left, right, use_external_names=True) == [
            "previousAddress.street", "previousAddress.cityName",
        ]

    def test_optional_record_absent_on_both_sides(self):
        assert get_changed_fields(Person(), Person()) == []

    def test_stringer_record_reports_its_own_path(self):
        left = Person(salary=Money(amount=10, currency="EUR"))
        right = Person(salary=Money(amount=10, currency="USD"))

        assert get_changed_fields(left, right) == ["salary"]

    def test_excluded_fields_are_ignored(self):
        assert get_changed_fields(Person(secret="a"), Person(secret="b")) == []

    def test_leaves_compare_on_text(self):
        assert get_changed_fields(Person(score=1.5), Person(score=1.5)) == []
        assert get_changed_fields(Person(score=1.5), Person(score=1.25)) == ["score"]

    def test_different_types_raise(self):
        with pytest.raises(TypeMismatchError):
            get_changed_fields(Person(), Pet())

    def test_non_records_raise(self):
        with pytest.raises(NotARecordError):
            get_changed_fields({"name": "Ada"}, {"name": "Bob"})
        with pytest.raises(NotARecordError):
            get_changed_fields(Person(), "Person")

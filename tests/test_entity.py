"""Tests for entity construction, change tracking, identity and validation."""

import pytest

from factum import Attribute, Entity, TempId, TempRefCounter, ValueType
from factum.errors import (
    DuplicateAttributeError,
    IdAlreadyAssignedError,
    InvalidOptionError,
    NotPersistedError,
    UnknownAttributeError,
)
from factum.values import DB_RETRACT_ENTITY, Keyword


# ============================================================================
# DECLARATION
# ============================================================================


def test_class_body_declarations(mouse_class):
    assert mouse_class.attribute_names() == ["name", "tags"]
    assert mouse_class.entity_type().spec("tags").many


def test_attribute_classmethod_adds_accessor(mouse_class):
    mouse_class.attribute("age", int, index=True)
    mouse = mouse_class(age=3)

    assert mouse.age == 3
    assert mouse_class.attribute_names() == ["name", "tags", "age"]
    assert mouse_class.schema()[-1]["db/ident"] == "mouse/age"


def test_redeclaration_fails(mouse_class):
    with pytest.raises(DuplicateAttributeError):
        mouse_class.attribute("name", str)


def test_reserved_names_are_rejected(mouse_class):
    with pytest.raises(InvalidOptionError):
        mouse_class.attribute("id", int)

    with pytest.raises(InvalidOptionError):

        class Broken(Entity):
            changes = Attribute(str)


def test_subclass_inherits_attributes_and_counter(counter):
    class Animal(Entity, counter=counter):
        name = Attribute(str)

    class Dog(Animal):
        breed = Attribute(str)

    assert Animal.attribute_names() == ["name"]
    assert Dog.attribute_names() == ["name", "breed"]
    assert Dog.prefix() == "dog"
    assert Dog.entity_type().counter is counter


def test_partition_defaults_and_overrides():
    class Mouse(Entity):
        pass

    class Rat(Entity, partition="db.part/rodents"):
        pass

    assert Mouse.partition() == "db.part/user"
    assert Rat.partition() == Keyword("db.part/rodents")

    Mouse.set_partition(":db.part/app")
    assert Mouse.partition() == "db.part/app"
    assert Mouse().tempid().partition == "db.part/app"


def test_attribute_after_subclassing_is_refused(counter):
    class Animal(Entity, counter=counter):
        name = Attribute(str)

    class Dog(Animal):
        pass

    with pytest.raises(InvalidOptionError, match="subclasses"):
        Animal.attribute("age", int)

    assert "age" not in Animal.entity_type()
    assert not hasattr(Dog, "age")

    Dog.attribute("age", int)
    assert Dog(age=3).age == 3


def test_define_builds_subclass():
    Mouse = Entity.define("Mouse", {"name": Attribute(str)}, prefix="mice")

    assert issubclass(Mouse, Entity)
    assert Mouse.__name__ == "Mouse"
    assert Mouse.prefix() == "mice"
    assert Mouse(name="Jerry").name == "Jerry"


# ============================================================================
# CONSTRUCTION AND ACCESS
# ============================================================================


def test_construction_applies_defaults(counter):
    class Mouse(Entity, counter=counter):
        name = Attribute(str, default="anonymous")
        tags = Attribute(ValueType.SYMBOL, cardinality="many", default=["fast"])

    plain = Mouse()
    named = Mouse({"name": "Jerry"}, tags=["sneaky"])

    assert plain.name == "anonymous"
    assert plain.tags == {"fast"}
    assert named.name == "Jerry"
    assert named.tags == {"sneaky"}


def test_defaults_are_copied_per_instance(counter):
    class Mouse(Entity, counter=counter):
        tags = Attribute(ValueType.SYMBOL, cardinality="many", default=["fast"])

    first, second = Mouse(), Mouse()
    first.tags.add("sneaky")
    assert second.tags == {"fast"}


def test_construction_does_not_mark_changes(mouse_class):
    mouse = mouse_class(name="Jerry", tags=["fast"])
    assert mouse.changed == []
    assert mouse.tx_data() == []


def test_many_values_are_coerced_to_sets(mouse_class):
    mouse = mouse_class(tags=("fast", "fast"))
    assert mouse.tags == {"fast"}

    mouse.tags = "sneaky"
    assert mouse.tags == {"sneaky"}

    mouse.tags = None
    assert mouse.tags == set()


def test_unset_attributes_read_as_none(mouse_class):
    mouse = mouse_class()
    assert mouse.name is None
    assert mouse.tags is None
    assert mouse.attributes == {"name": None, "tags": None}


def test_get_and_set_dispatch(mouse_class):
    mouse = mouse_class()
    mouse.set("name", "Jerry")
    assert mouse.get("name") == "Jerry"
    assert mouse.name == "Jerry"


def test_unknown_attributes(mouse_class):
    with pytest.raises(UnknownAttributeError):
        mouse_class(whiskers=12)

    mouse = mouse_class()
    with pytest.raises(UnknownAttributeError):
        mouse.get("whiskers")
    with pytest.raises(UnknownAttributeError):
        mouse.set("whiskers", 12)


# ============================================================================
# CHANGE TRACKING
# ============================================================================


def test_first_change_records_previous_value(mouse_class):
    mouse = mouse_class(name="x")
    mouse.name = "y"
    mouse.name = "z"

    assert mouse.changed == ["name"]
    assert mouse.changed_attributes == {"name": "x"}
    assert mouse.changes == {"name": ("x", "z")}
    assert mouse.attribute_changed("name")
    assert not mouse.attribute_changed("tags")


def test_assigning_same_value_is_not_a_change(mouse_class):
    mouse = mouse_class(name="x", tags=["a", "b"])
    mouse.name = "x"
    mouse.tags = ["b", "a"]
    assert mouse.changed == []


def test_changes_applied_reconciles(mouse_class):
    mouse = mouse_class(name="x")
    mouse.name = "y"
    mouse.changes_applied()

    assert mouse.changed == []
    assert mouse.tx_data() == []


def test_update_marks_every_given_attribute(mouse_class):
    saved = []

    class SavingMouse(mouse_class):
        def save(self):
            saved.append(self.tx_data())

    mouse = SavingMouse(name="Jerry")
    assert mouse.update({"name": "Jerry", "tags": ["fast"]}) is True

    assert mouse.changed == ["name", "tags"]
    assert len(saved) == 1
    add, entity_map = saved[0]
    assert add[3] == {"fast"}
    assert entity_map["saving_mouse/name"] == "Jerry"


def test_update_without_save(mouse_class):
    mouse = mouse_class()
    assert mouse.update({"name": "Jerry"}) is True
    assert mouse.name == "Jerry"


# ============================================================================
# QUERY RE-HYDRATION
# ============================================================================


def test_from_query(mouse_class):
    mouse = mouse_class.from_query([17592186045418, "Jerry", [Keyword("fast")]])

    assert mouse.id == 17592186045418
    assert mouse.persisted
    assert not mouse.new_record
    assert mouse.name == "Jerry"
    assert mouse.tags == {"fast"}
    assert mouse.changed == []
    assert mouse.to_key() == [17592186045418]


# ============================================================================
# IDENTITY
# ============================================================================


def test_temp_ref_is_cached_per_instance(mouse_class):
    mouse = mouse_class()
    assert mouse.temp_ref() == mouse.temp_ref() == -1001


def test_temp_refs_strictly_decrease_across_instances(mouse_class):
    first, second = mouse_class(), mouse_class()
    assert first.temp_ref() > second.temp_ref()
    assert first.temp_ref() != second.temp_ref()


def test_tempid_uses_partition_and_ref(mouse_class):
    mouse = mouse_class()
    assert mouse.tempid() == TempId("db.part/user", mouse.temp_ref())
    assert mouse.entity_ref() == mouse.tempid()

    mouse.id = 42
    assert mouse.entity_ref() == 42


def test_new_record_state(mouse_class):
    mouse = mouse_class()
    assert not mouse.persisted
    assert mouse.new_record
    assert mouse.destroyed is False
    assert mouse.to_key() is None


def test_equality_by_permanent_id(mouse_class):
    a = mouse_class.from_query([1, "Jerry", ["fast"]])
    b = mouse_class.from_query([1, "Tom", []])
    c = mouse_class.from_query([2, "Jerry", ["fast"]])

    assert a == b
    assert a != c
    assert len({a, b, c}) == 2


def test_hash_is_stable_across_persistence(mouse_class):
    mouse = mouse_class(name="Jerry")
    with pytest.raises(TypeError):
        hash(mouse)

    mouse.id = 42
    seen = {mouse}
    mouse.id = 42
    assert mouse in seen

    with pytest.raises(IdAlreadyAssignedError):
        mouse.id = 43
    assert mouse.id == 42
    assert mouse in seen


def test_new_records_are_never_equal(mouse_class):
    a, b = mouse_class(name="Jerry"), mouse_class(name="Jerry")
    persisted = mouse_class.from_query([1, "Jerry", []])

    assert a != b
    assert not (a == a)
    assert a != persisted
    assert persisted != a
    assert a != "Jerry"


def test_eql_requires_type_and_values(counter, mouse_class):
    class Rat(Entity, counter=counter):
        name = Attribute(str)
        tags = Attribute(ValueType.SYMBOL, cardinality="many")

    a = mouse_class.from_query([1, "Jerry", ["fast"]])
    same = mouse_class.from_query([1, "Jerry", ["fast"]])
    renamed = mouse_class.from_query([1, "Tom", ["fast"]])
    rat = Rat.from_query([1, "Jerry", ["fast"]])

    assert a.eql(same)
    assert a == renamed and not a.eql(renamed)
    assert a == rat and not a.eql(rat)
    assert not mouse_class(name="Jerry").eql(mouse_class(name="Jerry"))


# ============================================================================
# DESTROY
# ============================================================================


def test_destroy_persisted_entity(mouse_class):
    mouse = mouse_class.from_query([42, "Jerry", []])
    assert mouse.destroy() == [DB_RETRACT_ENTITY, 42]


def test_destroy_requires_permanent_id(mouse_class):
    with pytest.raises(NotPersistedError):
        mouse_class(name="Jerry").destroy()


# ============================================================================
# VALIDATION
# ============================================================================


def test_valid_without_rules(mouse_class):
    mouse = mouse_class()
    assert mouse.is_valid()
    assert len(mouse.errors) == 0


def test_validate_hook_collects_errors():
    class Cat(Entity, counter=TempRefCounter()):
        name = Attribute(str)

        def validate(self):
            if not self.name:
                self.errors.add("name", "can't be blank")

    cat = Cat()
    assert not cat.is_valid()
    assert cat.errors.get("name") == ["can't be blank"]
    assert cat.errors.full_messages() == ["name can't be blank"]

    cat.name = "Tom"
    assert cat.is_valid()
    assert "name" not in cat.errors


def test_repr(mouse_class):
    mouse = mouse_class.from_query([7, "Jerry", []])
    assert repr(mouse) == "<Mouse id=7 name='Jerry' tags=set()>"

"""Tests for synchronize() and create_model()."""

import gc
import math

import pytest

from observify import _anchor
from observify import (
    BridgedList,
    Computed,
    Model,
    Observable,
    ObservableArray,
    autorun,
    create_model,
    define_computed_property,
    synchronize,
)


def _cells(value, found=None):
    """Every cell reachable from value, keyed by id."""
    found = {} if found is None else found
    if isinstance(value, Model):
        for name in value:
            cell = value.cell_of(name)
            if cell is not None:
                found[id(cell)] = cell
            _cells(value.peek(name), found)
    elif isinstance(value, list):
        for item in value:
            _cells(item, found)
    return found


def _watch_all(model):
    log = []
    for cell in _cells(model).values():
        cell.subscribe(lambda v, cell=cell: log.append((cell, v)))
    return log


class TestCreateModel:
    def test_observable_properties(self):
        m = create_model({"name": "Bob", "age": None})
        assert isinstance(m, Model)
        assert m.is_reified("name") and m.is_reified("age")
        assert m.name == "Bob"
        assert m.age is None

    def test_deep(self):
        m = create_model({"name": "Bob", "job": {"title": None, "company": "acme"}})
        assert isinstance(m.job, Model)
        assert m.job.is_reified("title")
        assert m.job.company == "acme"

    def test_shallow(self):
        job = {"title": None, "company": "acme"}
        m = create_model({"name": "Bob", "job": job}, deep=False)
        assert m.is_reified("job")
        assert m.job is job

    def test_arrays_become_array_cells(self):
        m = create_model({"name": "Bob", "friends": ["Jane", "Jill"]})
        assert isinstance(m._friends, ObservableArray)
        assert isinstance(m.friends, BridgedList)
        assert m.friends[0] == "Jane"

    def test_arrays_of_objects(self):
        m = create_model({"friends": [{"name": "Jill"}, {"name": Computed(lambda: "Jane")}]})
        assert m.friends[0].name == "Jill"
        assert isinstance(m.friends[0]._name, Observable)
        assert isinstance(m.friends[1]._name, Computed)
        assert m.friends[1].name == "Jane"
        with pytest.raises(TypeError):
            m.friends[1].name = "Bob"

    def test_list_defaults(self):
        items = create_model([{"name": "Bob"}, 3])
        assert isinstance(items, list)
        assert isinstance(items[0], Model)
        assert items[1] == 3

    def test_scalar_defaults_pass_through(self):
        assert create_model(5) == 5
        assert create_model(None) is None


class TestSynchronizeCallForms:
    def test_returns_same_instance(self):
        orig = Model({"name": "Bob", "age": 30})
        assert synchronize(orig) is orig
        assert orig.is_reified("name")

    def test_bool_second_argument_is_deep_flag(self):
        m = Model({"job": {"title": "dev"}})
        synchronize(m, False)
        assert m.is_reified("job")
        assert not isinstance(m.job, Model)

    def test_non_composite_incoming_is_returned(self):
        m = create_model({"name": "Bob"})
        assert synchronize(m, 5) == 5
        assert synchronize(m, None) is None
        assert m.name == "Bob"

    def test_plain_dict_model_rejected(self):
        with pytest.raises(TypeError, match="Model"):
            synchronize({"name": "Bob"}, {"name": "Jill"})

    def test_kind_mismatch_rejected(self):
        with pytest.raises(TypeError):
            synchronize(Model(), [1, 2])
        with pytest.raises(TypeError):
            synchronize([], {"a": 1})

    def test_list_model(self):
        model = [{"name": "Bob", "age": 30}, {"name": "Jane", "age": 25}]
        synchronize(model)
        assert isinstance(model[0], Model)
        assert model[0]._name.peek() == "Bob"
        assert model[1]._age.peek() == 25
        assert model == [{"name": "Bob", "age": 30}, {"name": "Jane", "age": 25}]


class TestMerge:
    def test_idempotent_reification_keeps_cells(self):
        m = create_model({"name": "Bob", "friends": [{"name": "Jane"}, {"name": "John"}]})
        friends_log = []
        m._friends.subscribe(friends_log.append)

        m.friends.append({"name": "Jill"})
        assert not isinstance(m.friends[2], Model)
        assert len(friends_log) == 1

        synchronize(m)
        assert isinstance(m.friends[2], Model)
        assert m.friends[2].is_reified("name")
        assert len(friends_log) == 1

        m.friends.append({"name": "Thomas"})
        assert len(friends_log) == 2
        assert friends_log[-1][3] == {"name": "Thomas"}

    def test_merges_values_into_existing_cells(self):
        m = create_model({"name": "Bob", "friends": [{"name": "Jane"}, {"name": "John"}]})
        friends_log, first_log, second_log = [], [], []
        m._friends.subscribe(friends_log.append)
        m.friends[0]._name.subscribe(first_log.append)
        m.friends[1]._name.subscribe(second_log.append)

        synchronize(m, {"friends": [{"name": "Jill"}, {"name": "John"}, {"name": "Thomas"}]})

        assert len(friends_log) == 1
        assert first_log == ["Jill"]
        assert second_log == []
        assert [f.name for f in m.friends] == ["Jill", "John", "Thomas"]
        assert m.friends[2].is_reified("name")

        m.friends[1].name = "Bob"
        assert second_log == ["Bob"]

    def test_arrays_of_scalars_are_not_reified(self):
        m = create_model({"name": "Bob", "friends": []})
        friends_cell, name_cell = m._friends, m._name

        synchronize(m, {"name": "Brian", "friends": ["Jill", "Jane"]})

        assert m._friends is friends_cell
        assert m._name is name_cell
        assert m.name == "Brian"
        assert m.friends == ["Jill", "Jane"]
        assert all(isinstance(f, str) for f in m.friends)

    def test_shallow_merge_assigns_by_reference(self):
        """Values are stored as given; only lists are copied into the bridge."""
        m = Model({"name": "Bob", "friends": [{"name": "Jane"}, {"name": Observable("John")}]})
        synchronize(m, m, deep=False)
        assert m.is_reified("name") and m.is_reified("friends")
        assert m.friends[0] == {"name": "Jane"}
        assert not isinstance(m.friends[0], Model)
        assert m.friends[1]["name"].peek() == "John"

    def test_shallow_merge_copies_lists(self):
        m = create_model({"tags": ["a"]}, deep=False)
        tags = ["b"]
        synchronize(m, {"tags": tags}, deep=False)
        assert m.tags == ["b"]
        assert m.tags is not tags
        tags.append("c")
        assert m.tags == ["b"]

    def test_scalar_type_change_is_a_change(self):
        m = create_model({"flag": 1, "ratio": 1, "off": 0})
        log = []
        for name in ("flag", "ratio", "off"):
            m.cell_of(name).subscribe(log.append)

        synchronize(m, {"flag": True, "ratio": 1.0, "off": False})

        assert m.flag is True
        assert type(m.ratio) is float
        assert m.off is False
        assert [type(v) for v in log] == [bool, float, bool]

        synchronize(m, {"flag": True, "ratio": 1.0, "off": False})
        assert len(log) == 3

    def test_shallow_replaces_nested_object(self):
        m = create_model({"job": {"title": "dev"}}, deep=False)
        job = {"title": "lead", "company": "acme"}
        synchronize(m, {"job": job}, deep=False)
        assert m.job is job
        assert not isinstance(m.job, Model)

    def test_unspecified_properties_are_kept(self):
        m = create_model({"name": "Bob", "age": 30})
        synchronize(m, {"age": 31})
        assert m == {"name": "Bob", "age": 31}

    def test_new_properties_are_added(self):
        m = create_model({"name": "Bob"})
        synchronize(m, {"email": "bob@example.com"})
        assert m.is_reified("email")
        assert m.email == "bob@example.com"

    def test_shorter_incoming_array_does_not_truncate(self):
        m = create_model({"matrix": [[{"id": 2}], [{"id": 8}], [{"id": 10}]]})
        synchronize(m, {"matrix": [[{"id": 0}], [{"id": 5}]]})
        assert m.matrix == [[{"id": 0}], [{"id": 5}], [{"id": 10}]]

    def test_scalar_slots_overwrite_composites(self):
        m = create_model({"items": [{"a": 1}, "x"]})
        synchronize(m, {"items": [7, {"b": 2}]})
        assert m["items"] == [7, {"b": 2}]
        assert isinstance(m["items"][1], Model)

    def test_prebuilt_cell_is_bound(self):
        m = create_model({"first": "Bob", "last": "Doe"})
        full = Computed(lambda: f"{m.first} {m.last}")
        synchronize(m, {"full": full})
        assert m._full is full
        assert m.full == "Bob Doe"
        m.first = "Jim"
        assert m.full == "Jim Doe"

    def test_incoming_tree_is_not_mutated(self):
        incoming = {"friends": [{"id": 2, "age": 31}, {"id": 3, "name": "Jill"}]}
        m = create_model({"friends": [{"id": 1}, {"id": 2, "age": 35}]})
        synchronize(m, incoming, reconciliation={"friends": "id"})
        assert incoming == {"friends": [{"id": 2, "age": 31}, {"id": 3, "name": "Jill"}]}
        m.friends[2].name = "Jane"
        assert incoming["friends"][1]["name"] == "Jill"


class TestIdempotence:
    DATA = {
        "name": "Bob",
        "age": 30,
        "job": {"title": "dev", "tags": ["a", "b"]},
        "friends": [{"id": 1, "name": "Jane", "kids": [{"name": "Sally"}]}, {"id": 2, "name": "John"}],
        "matrix": [[1, 2], [3]],
    }

    def test_repeat_creates_no_cells_and_notifies_nobody(self):
        m = create_model(self.DATA, reconciliation={"friends": "id"})
        before = _cells(m)
        log = _watch_all(m)

        synchronize(m, self.DATA, reconciliation={"friends": "id"})
        synchronize(m, self.DATA, reconciliation={"friends": "id"})

        assert _cells(m).keys() == before.keys()
        assert log == []
        assert m == self.DATA

    def test_self_merge_is_silent(self):
        m = create_model(self.DATA)
        log = _watch_all(m)
        synchronize(m)
        assert log == []

    def test_siblings_untouched(self):
        m = create_model(self.DATA)
        log = _watch_all(m)
        synchronize(m, {"job": {"title": "lead"}})
        assert [(cell, v) for cell, v in log] == [(m.job._title, "lead")]


class TestBatching:
    def test_reactions_see_the_final_tree(self):
        m = create_model({"first": "Ada", "last": "Byron"})
        log = []
        autorun(lambda: log.append(f"{m.first} {m.last}"))
        synchronize(m, {"first": "Augusta", "last": "King"})
        assert log == ["Ada Byron", "Augusta King"]

    def test_array_growth_notifies_once(self):
        m = create_model({"friends": [{"name": "Jane"}]})
        log = []
        m._friends.subscribe(lambda v: log.append(len(v)))
        synchronize(m, {"friends": [{"name": "Jane"}, {"name": "Jill"}, {"name": "John"}]})
        assert log == [3]


class TestCycles:
    def test_cyclic_data_is_not_detected(self):
        data = {"name": "loop"}
        data["self"] = data
        with pytest.raises(RecursionError):
            create_model(data)


def test_nan_in_array_slots():
    m = create_model({"values": [1]})
    synchronize(m, {"values": [1, float("nan")]})
    assert len(m["values"]) == 2
    assert math.isnan(m["values"][1])


class TestLifetime:
    def test_dropped_models_release_their_cells(self):
        gc.collect()
        before = len(_anchor.values)
        models = [create_model({"a": i, "b": {"c": [1, 2]}}) for i in range(100)]
        assert len(_anchor.values) == before + 300
        del models
        gc.collect()
        assert len(_anchor.values) == before

    def test_subscribed_model_is_released(self):
        gc.collect()
        before = len(_anchor.observers)
        m = create_model({"name": "Bob", "friends": ["Jill"]})
        m._name.subscribe(print)
        m._friends.subscribe(print)
        del m
        gc.collect()
        assert len(_anchor.observers) == before

    def test_computed_property_does_not_pin_its_model(self):
        gc.collect()
        before = len(_anchor.observers), len(_anchor.cached_values)
        m = create_model({"first": "Bob"})
        define_computed_property(m, "greeting", lambda p: f"hi {p.first}")
        assert m.greeting == "hi Bob"
        del m
        gc.collect()
        assert (len(_anchor.observers), len(_anchor.cached_values)) == before

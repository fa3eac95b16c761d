from modelctx.annotations import Annotations


def test_defaults_are_empty():
    a = Annotations()
    assert a.all_items is False
    assert a.all_properties is False
    assert a.end_index == 0
    assert a.evaluated_indexes == set()
    assert a.evaluated_properties == set()


def test_note_index():
    a = Annotations()
    a.note_index(3)
    a.note_index(7)
    assert a.evaluated_indexes == {3, 7}


def test_note_end_index_keeps_maximum():
    a = Annotations()
    a.note_end_index(5)
    a.note_end_index(2)
    assert a.end_index == 5
    a.note_end_index(9)
    assert a.end_index == 9


def test_note_property_and_properties():
    a = Annotations()
    a.note_property("x")
    a.note_properties({"y", "z"})
    a.note_properties([])
    assert a.evaluated_properties == {"x", "y", "z"}


def test_merge_none_leaves_unchanged():
    a = Annotations(end_index=4, evaluated_indexes={1})
    a.merge(None)
    assert a == Annotations(end_index=4, evaluated_indexes={1})


def test_merge_combines():
    a = Annotations(end_index=2, evaluated_indexes={1}, evaluated_properties={"a"})
    b = Annotations(
        all_items=True,
        end_index=6,
        evaluated_indexes={8},
        all_properties=True,
        evaluated_properties={"b"},
    )
    a.merge(b)
    assert a.all_items is True
    assert a.all_properties is True
    assert a.end_index == 6
    assert a.evaluated_indexes == {1, 8}
    assert a.evaluated_properties == {"a", "b"}


def test_merge_keeps_larger_end_index_and_flags():
    a = Annotations(all_items=True, end_index=10)
    a.merge(Annotations(end_index=3))
    assert a.end_index == 10
    assert a.all_items is True


def test_merge_does_not_alias():
    a = Annotations()
    b = Annotations(evaluated_indexes={2}, evaluated_properties={"p"})
    a.merge(b)
    a.note_index(5)
    a.note_property("q")
    assert b.evaluated_indexes == {2}
    assert b.evaluated_properties == {"p"}
    assert a.evaluated_indexes == {2, 5}
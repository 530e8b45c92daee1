from classgrid.services.constraint_index import ConstraintIndex
from classgrid.services.snapshots import TeacherSnapshot


def test_room_without_suitability_accepts_any_subject():
    index = ConstraintIndex.build(suitability=[("lab", "chemistry")])

    assert index.is_room_suitable("room-101", "math")
    assert index.is_room_suitable("lab", "chemistry")
    assert not index.is_room_suitable("lab", "math")


def test_qualification_and_blocked_slots():
    index = ConstraintIndex.build(
        qualifications=[("t1", "math"), ("t1", "physics"), ("t2", "art")],
        unavailability=[("t1", 5, "p1")],
    )

    assert index.is_qualified("t1", "physics")
    assert not index.is_qualified("t2", "math")
    assert not index.is_qualified("unknown", "math")
    assert index.is_blocked("t1", 5, "p1")
    assert not index.is_blocked("t1", 4, "p1")


def test_qualified_teachers_keep_roster_order():
    index = ConstraintIndex.build(qualifications=[("t3", "math"), ("t1", "math"), ("t2", "art")])
    roster = [TeacherSnapshot("t1"), TeacherSnapshot("t2"), TeacherSnapshot("t3")]

    assert [item.teacher_id for item in index.qualified_teachers("math", roster)] == ["t1", "t3"]
    assert index.qualified_teachers("latin", roster) == []

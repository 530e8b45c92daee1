import pytest

from classgrid.models.teacher import TeacherStatus


@pytest.fixture()
def world(school):
    year = school.academic_year()
    term = school.term(year)
    class_a = school.class_section(year, "7A")
    class_b = school.class_section(year, "7B")
    math = school.subject("MATH", "Mathematics")
    art = school.subject("ART", "Art")
    ada = school.teacher("Ada", "Lovelace", subjects=[math])
    grace = school.teacher("Grace", "Hopper", subjects=[math])
    alan = school.teacher("Alan", "Turing", subjects=[art])
    room = school.room("Room 101")
    other_room = school.room("Room 102")
    period_set, _ = school.period_set(year)
    slots = school.time_slots(period_set)
    lesson = school.lesson(term, class_a, math, ada, room, slots[(1, 1)])
    return locals()


def cover(client, world, teacher, on_date="2026-10-19", lesson=None):
    return client.post(
        "/api/substitutions",
        json={
            "lessonId": (lesson or world["lesson"]).id,
            "substituteTeacherId": teacher.id,
            "date": on_date,
            "reason": "Conference",
        },
    )


def test_create_and_list_substitution(client, world):
    response = cover(client, world, world["grace"])

    assert response.status_code == 201
    data = response.json()
    assert data["originalTeacherId"] == world["ada"].id
    assert data["substituteTeacherId"] == world["grace"].id
    assert data["date"] == "2026-10-19"

    listed = client.get("/api/substitutions", params={"date": "2026-10-19"})
    assert [item["id"] for item in listed.json()] == [data["id"]]
    assert client.get("/api/substitutions", params={"date": "2026-10-20"}).json() == []
    by_teacher = client.get("/api/substitutions", params={"teacher_id": world["ada"].id}).json()
    assert len(by_teacher) == 1


def test_substitute_must_differ_and_be_qualified(client, world):
    same = cover(client, world, world["ada"])
    unqualified = cover(client, world, world["alan"])

    assert same.status_code == 422
    assert same.json()["code"] == "SUBSTITUTE_IS_ORIGINAL_TEACHER"
    assert unqualified.status_code == 422
    assert unqualified.json()["code"] == "TEACHER_NOT_QUALIFIED"


def test_substitute_with_own_lesson_at_that_time_is_rejected(client, school, world):
    school.lesson(
        world["term"], world["class_b"], world["math"], world["grace"], world["other_room"], world["slots"][(1, 1)]
    )

    response = cover(client, world, world["grace"])

    assert response.status_code == 409
    assert response.json()["code"] == "SUBSTITUTE_HAS_CONFLICT"


def test_substitute_cannot_cover_two_lessons_in_one_slot(client, school, world):
    parallel = school.lesson(
        world["term"], world["class_b"], world["math"], world["alan"], world["other_room"], world["slots"][(1, 1)]
    )
    assert cover(client, world, world["grace"]).status_code == 201

    response = cover(client, world, world["grace"], lesson=parallel)
    other_day = cover(client, world, world["grace"], on_date="2026-10-26", lesson=parallel)

    assert response.status_code == 409
    assert response.json()["code"] == "SUBSTITUTE_ALREADY_ASSIGNED"
    assert other_day.status_code == 201


def test_inactive_substitute_and_missing_lesson(client, school, world):
    retired = school.teacher("Emmy", "Noether", subjects=[world["math"]], status=TeacherStatus.inactive)

    inactive = cover(client, world, retired)
    missing = client.post(
        "/api/substitutions",
        json={"lessonId": "missing", "substituteTeacherId": world["grace"].id, "date": "2026-10-19"},
    )

    assert inactive.status_code == 422
    assert inactive.json()["code"] == "SUBSTITUTE_INACTIVE"
    assert missing.status_code == 404
    assert missing.json()["code"] == "LESSON_NOT_FOUND"


def test_delete_substitution(client, world):
    created = cover(client, world, world["grace"]).json()

    assert client.delete(f"/api/substitutions/{created['id']}").json() == {"success": True}
    again = client.delete(f"/api/substitutions/{created['id']}")
    assert again.status_code == 404
    assert again.json()["code"] == "SUBSTITUTION_NOT_FOUND"

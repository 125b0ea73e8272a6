import asyncio
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursehours.api.v1.consumption import service
from coursehours.api.v1.consumption.schemas import ConsumeRequest
from coursehours.core.models import ConsumptionRecord, StudentCoursePackage

from conftest import assign_package, create_activity, create_package, create_student, hours


async def _remaining(session_factory: async_sessionmaker, assignment_id: int) -> Decimal:
    async with session_factory() as session:
        result = await session.execute(
            select(StudentCoursePackage.remaining_hours).where(StudentCoursePackage.id == assignment_id)
        )
        return result.scalar_one()


async def _record_count(session_factory: async_sessionmaker) -> int:
    async with session_factory() as session:
        result = await session.execute(select(ConsumptionRecord.id))
        return len(result.scalars().all())


@pytest.mark.asyncio
async def test_batch_consume_mixed_success_and_failure(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    s1 = await create_student(client, "Alice")
    s2 = await create_student(client, "Bob")
    pkg = await create_package(client, course_type="A")
    scp = await assign_package(client, s1["id"], pkg["id"], remaining_hours=5)
    activity = await create_activity(client, course_type="A", days=1, total_hours=2)
    assert hours(activity["hours_per_class"]) == hours(2)

    response = await client.post(
        "/api/v1/consume",
        json={"student_ids": [s1["id"], s2["id"]], "activity_id": activity["id"], "remark": "camp"},
    )
    assert response.status_code == 200
    data = response.json()

    assert hours(data["hours_consumed"]) == hours(2)
    assert data["success_students"] == [s1["id"]]
    assert data["failed_students"] == [s2["id"]]
    assert data["success_count"] == 1
    assert data["failed_count"] == 1
    assert data["failures"] == [{"student_id": s2["id"], "reason": "no_eligible_package"}]
    assert await _remaining(session_factory, scp["id"]) == 3


@pytest.mark.asyncio
async def test_explicit_hours_override_activity_rule(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    s1 = await create_student(client, "Alice")
    s2 = await create_student(client, "Bob")
    pkg = await create_package(client, course_type="A")
    scp1 = await assign_package(client, s1["id"], pkg["id"], remaining_hours=10)
    scp2 = await assign_package(client, s2["id"], pkg["id"], remaining_hours=4)
    activity = await create_activity(client, course_type="A", days=1, total_hours=3)

    response = await client.post(
        "/api/v1/consume",
        json={"student_ids": [s1["id"], s2["id"]], "activity_id": activity["id"], "hours_consumed": 1.5},
    )
    data = response.json()

    assert hours(data["hours_consumed"]) == hours(1.5)
    assert data["success_count"] == 2
    assert await _remaining(session_factory, scp1["id"]) == 8.5
    assert await _remaining(session_factory, scp2["id"]) == 2.5


@pytest.mark.asyncio
async def test_non_positive_hours_fall_back_to_activity(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client, course_type="A")
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=10)
    activity = await create_activity(client, course_type="A", days=2, total_hours=5)

    response = await client.post(
        "/api/v1/consume",
        json={"student_ids": [student["id"]], "activity_id": activity["id"], "hours_consumed": 0},
    )

    assert hours(response.json()["hours_consumed"]) == hours(2.5)
    assert await _remaining(session_factory, scp["id"]) == 7.5


@pytest.mark.asyncio
async def test_unknown_activity_consumes_one_hour_from_any_package(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client, course_type="violin")
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=3)

    response = await client.post("/api/v1/consume", json={"student_ids": [student["id"]], "activity_id": 999})

    data = response.json()
    assert response.status_code == 200
    assert hours(data["hours_consumed"]) == hours(1)
    assert data["success_students"] == [student["id"]]
    assert await _remaining(session_factory, scp["id"]) == 2

    records = (await client.get("/api/v1/consumption-records")).json()
    assert records[0]["activity_id"] is None


@pytest.mark.asyncio
async def test_selects_smallest_positive_balance(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client, course_type="A")
    large = await assign_package(client, student["id"], pkg["id"], remaining_hours=8)
    small = await assign_package(client, student["id"], pkg["id"], remaining_hours=2)
    medium = await assign_package(client, student["id"], pkg["id"], remaining_hours=5)

    await client.post("/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 1})

    assert await _remaining(session_factory, small["id"]) == 1
    assert await _remaining(session_factory, medium["id"]) == 5
    assert await _remaining(session_factory, large["id"]) == 8


@pytest.mark.asyncio
async def test_course_type_restricts_eligible_packages(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    piano = await create_package(client, name="Piano", course_type="piano")
    art = await create_package(client, name="Art", course_type="art")
    piano_scp = await assign_package(client, student["id"], piano["id"], remaining_hours=1)
    art_scp = await assign_package(client, student["id"], art["id"], remaining_hours=6)
    activity = await create_activity(client, course_type="art", days=1, total_hours=2)

    response = await client.post(
        "/api/v1/consume", json={"student_ids": [student["id"]], "activity_id": activity["id"]}
    )

    assert response.json()["success_students"] == [student["id"]]
    assert await _remaining(session_factory, art_scp["id"]) == 4
    assert await _remaining(session_factory, piano_scp["id"]) == 1


@pytest.mark.asyncio
async def test_insufficient_balance_fails_without_trying_larger_package(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    small = await assign_package(client, student["id"], pkg["id"], remaining_hours=1)
    large = await assign_package(client, student["id"], pkg["id"], remaining_hours=10)

    response = await client.post(
        "/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 2}
    )
    data = response.json()

    assert data["failed_students"] == [student["id"]]
    assert data["failures"][0]["reason"] == "insufficient_hours"
    assert await _remaining(session_factory, small["id"]) == 1
    assert await _remaining(session_factory, large["id"]) == 10
    assert await _record_count(session_factory) == 0


@pytest.mark.asyncio
async def test_repeated_debits_never_go_negative(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=5)

    outcomes = []
    for _ in range(4):
        response = await client.post(
            "/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 2}
        )
        outcomes.append(response.json()["success_count"])

    assert outcomes == [1, 1, 0, 0]
    assert await _remaining(session_factory, scp["id"]) == 1
    assert await _record_count(session_factory) == 2


@pytest.mark.asyncio
async def test_empty_student_ids_rejected(client: AsyncClient) -> None:
    response = await client.post("/api/v1/consume", json={"student_ids": []})
    assert response.status_code == 400

    response = await client.post("/api/v1/consume", json={"activity_id": 1})
    assert response.status_code == 400

    response = await client.post("/api/v1/consume", json={"student_ids": "everyone"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_concurrent_batches_cannot_overspend(
    client: AsyncClient, db_session: AsyncSession, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=3)

    async def consume_once():
        async with session_factory() as session:
            return await service.consume_hours(
                session,
                session_factory,
                ConsumeRequest(student_ids=[student["id"]], hours_consumed=2),
            )

    results = await asyncio.gather(consume_once(), consume_once())

    assert sorted(r.success_count for r in results) == [0, 1]
    assert await _remaining(session_factory, scp["id"]) == 1
    assert await _record_count(session_factory) == 1


@pytest.mark.asyncio
async def test_duplicate_student_in_batch_is_debited_per_entry(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=3)

    response = await client.post(
        "/api/v1/consume",
        json={"student_ids": [student["id"], student["id"]], "hours_consumed": 2},
    )
    data = response.json()

    assert data["success_count"] == 1
    assert data["failed_count"] == 1
    assert await _remaining(session_factory, scp["id"]) == 1


@pytest.mark.asyncio
async def test_reverse_restores_balance_and_deletes_record(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=6)
    await client.post("/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 2.5})
    records = (await client.get("/api/v1/consumption-records")).json()
    assert len(records) == 1
    assert records[0]["student_course_package_id"] == scp["id"]
    assert await _remaining(session_factory, scp["id"]) == 3.5

    response = await client.delete(f"/api/v1/consumption-records/{records[0]['id']}")

    assert response.status_code == 200
    assert hours(response.json()["hours_restored"]) == hours(2.5)
    assert await _remaining(session_factory, scp["id"]) == 6
    assert await _record_count(session_factory) == 0

    again = await client.delete(f"/api/v1/consumption-records/{records[0]['id']}")
    assert again.status_code == 404
    assert await _remaining(session_factory, scp["id"]) == 6


@pytest.mark.asyncio
async def test_reverse_refunds_the_assignment_that_was_debited(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    first = await assign_package(client, student["id"], pkg["id"], remaining_hours=2)
    await client.post("/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 1})
    second = await assign_package(client, student["id"], pkg["id"], remaining_hours=9)
    record = (await client.get("/api/v1/consumption-records")).json()[0]

    await client.delete(f"/api/v1/consumption-records/{record['id']}")

    assert await _remaining(session_factory, first["id"]) == 2
    assert await _remaining(session_factory, second["id"]) == 9


@pytest.mark.asyncio
async def test_reverse_record_without_assignment_reference_matches_by_package(
    client: AsyncClient, db_session: AsyncSession, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=4)
    record = ConsumptionRecord(
        student_id=student["id"],
        course_package_id=pkg["id"],
        student_course_package_id=None,
        hours_consumed=1.5,
        remark="imported",
    )
    db_session.add(record)
    await db_session.commit()

    response = await client.delete(f"/api/v1/consumption-records/{record.id}")

    assert response.status_code == 200
    assert await _remaining(session_factory, scp["id"]) == 5.5


@pytest.mark.asyncio
async def test_reverse_unknown_record_is_not_found(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=4)

    response = await client.delete("/api/v1/consumption-records/12345")

    assert response.status_code == 404
    assert response.json()["detail"] == "Consumption record not found"
    assert await _remaining(session_factory, scp["id"]) == 4


@pytest.mark.asyncio
async def test_list_records_filters_and_orders_newest_first(client: AsyncClient) -> None:
    alice = await create_student(client, "Alice")
    bob = await create_student(client, "Bob")
    piano = await create_package(client, name="Piano", course_type="piano")
    art = await create_package(client, name="Art", course_type="art")
    await assign_package(client, alice["id"], piano["id"], remaining_hours=10)
    await assign_package(client, bob["id"], art["id"], remaining_hours=10)
    activity = await create_activity(client, name="Recital", course_type="piano")

    await client.post(
        "/api/v1/consume",
        json={"student_ids": [alice["id"]], "activity_id": activity["id"], "consume_date": "2024-01-01T10:00:00"},
    )
    await client.post(
        "/api/v1/consume",
        json={"student_ids": [alice["id"], bob["id"]], "hours_consumed": 1, "consume_date": "2024-02-01T10:00:00"},
    )

    records = (await client.get("/api/v1/consumption-records")).json()
    assert len(records) == 3
    assert records[-1]["activity_name"] == "Recital"
    assert records[-1]["package_name"] == "Piano"

    alice_records = (await client.get("/api/v1/consumption-records", params={"student_name": "ali"})).json()
    assert [r["student_name"] for r in alice_records] == ["Alice", "Alice"]
    assert alice_records[0]["consume_date"].startswith("2024-02-01")

    art_records = (await client.get("/api/v1/consumption-records", params={"course_package": art["id"]})).json()
    assert [r["student_id"] for r in art_records] == [bob["id"]]

    page = (await client.get("/api/v1/consumption-records", params={"page": 2, "limit": 2})).json()
    assert len(page) == 1


@pytest.mark.asyncio
async def test_fractional_debits_drain_balance_to_exactly_zero(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client, course_type="A")
    old = await assign_package(client, student["id"], pkg["id"], remaining_hours=9.9)
    activity = await create_activity(client, course_type="A", days=3, total_hours=10)
    payload = {"student_ids": [student["id"]], "activity_id": activity["id"]}

    for _ in range(3):
        response = await client.post("/api/v1/consume", json=payload)
        assert response.json()["success_count"] == 1
    assert await _remaining(session_factory, old["id"]) == 0

    new = await assign_package(client, student["id"], pkg["id"], remaining_hours=10)
    response = await client.post("/api/v1/consume", json=payload)

    assert response.json()["success_students"] == [student["id"]]
    assert await _remaining(session_factory, new["id"]) == Decimal("6.7")
    assert await _remaining(session_factory, old["id"]) == 0


@pytest.mark.asyncio
async def test_tenth_hour_debits_use_the_whole_balance(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=0.3)

    outcomes = []
    for _ in range(3):
        response = await client.post(
            "/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 0.1}
        )
        outcomes.append(response.json()["success_count"])

    assert outcomes == [1, 1, 1]
    assert await _remaining(session_factory, scp["id"]) == 0
    assert await _record_count(session_factory) == 3


@pytest.mark.asyncio
async def test_hours_consumed_is_kept_to_one_decimal(
    client: AsyncClient, session_factory: async_sessionmaker
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=5)

    response = await client.post(
        "/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 1.25}
    )

    assert hours(response.json()["hours_consumed"]) == Decimal("1.3")
    assert await _remaining(session_factory, scp["id"]) == Decimal("3.7")


@pytest.mark.asyncio
async def test_failed_record_write_keeps_debit_and_reports_success(
    client: AsyncClient, session_factory: async_sessionmaker, monkeypatch: pytest.MonkeyPatch
) -> None:
    student = await create_student(client)
    pkg = await create_package(client)
    scp = await assign_package(client, student["id"], pkg["id"], remaining_hours=5)

    def record_without_student(**kwargs):
        kwargs["student_id"] = None
        return ConsumptionRecord(**kwargs)

    monkeypatch.setattr(service, "ConsumptionRecord", record_without_student)

    response = await client.post(
        "/api/v1/consume", json={"student_ids": [student["id"]], "hours_consumed": 2}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success_students"] == [student["id"]]
    assert data["failed_count"] == 0
    assert await _remaining(session_factory, scp["id"]) == 3
    assert await _record_count(session_factory) == 0


@pytest.mark.asyncio
async def test_store_error_fails_only_that_student(
    client: AsyncClient, session_factory: async_sessionmaker, monkeypatch: pytest.MonkeyPatch
) -> None:
    alice = await create_student(client, "Alice")
    bob = await create_student(client, "Bob")
    pkg = await create_package(client)
    alice_scp = await assign_package(client, alice["id"], pkg["id"], remaining_hours=5)
    bob_scp = await assign_package(client, bob["id"], pkg["id"], remaining_hours=5)

    real_select = service.select_assignment

    async def locked_for_bob(db, student_id, course_type=None):
        if student_id == bob["id"]:
            raise OperationalError("SELECT student_course_packages", {}, Exception("database is locked"))
        return await real_select(db, student_id, course_type)

    monkeypatch.setattr(service, "select_assignment", locked_for_bob)

    response = await client.post(
        "/api/v1/consume", json={"student_ids": [alice["id"], bob["id"]], "hours_consumed": 1}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success_students"] == [alice["id"]]
    assert data["failures"] == [{"student_id": bob["id"], "reason": "store_error"}]
    assert await _remaining(session_factory, alice_scp["id"]) == 4
    assert await _remaining(session_factory, bob_scp["id"]) == 5
    assert await _record_count(session_factory) == 1

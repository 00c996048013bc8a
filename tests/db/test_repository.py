import pytest
import pytest_asyncio
from unittest.mock import AsyncMock

from lms.auth.models import TokenClaims
from lms.db.entities import (
    CATEGORIES,
    COURSES,
    MODULES,
    SESSIONS,
    SUB_CATEGORIES,
    SUBJECTS,
    TOPICS,
)
from lms.db.repository import EntityRepository
from lms.db.user import insert_user
from lms.errors import (
    Forbidden,
    InvalidReference,
    MissingField,
    NotFound,
    StorageError,
    UnknownIdentity,
)


@pytest_asyncio.fixture
async def admin(pool):
    user = await insert_user(pool, "admin", "admin@x.com", "hash", "Ada Admin", "Admin")
    return TokenClaims(user_id=user["id"], role="Admin")


@pytest_asyncio.fixture
async def mentors(pool):
    first = await insert_user(pool, "mentor_a", "a@x.com", "hash", "Mentor A", "Mentor")
    second = await insert_user(pool, "mentor_b", "b@x.com", "hash", "Mentor B", "Mentor")
    return (
        TokenClaims(user_id=first["id"], role="Mentor"),
        TokenClaims(user_id=second["id"], role="Mentor"),
    )


@pytest.mark.asyncio
class TestHierarchyRepository:
    async def test_create_assigns_id_owner_and_defaults(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)

        created = await categories.create(admin, {"name": "Math"})

        assert created["id"] == 1
        assert created["name"] == "Math"
        assert created["status"] == "Active"
        assert created["created_by"] == admin.user_id
        assert created["created_at"]
        assert created["updated_at"]

    async def test_create_requires_fields(self, pool, admin):
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)

        with pytest.raises(MissingField) as exc_info:
            await sub_categories.create(admin, {"description": "no name"})

        assert exc_info.value.fields == ["name", "category_id"]
        assert exc_info.value.status_code == 400

    async def test_blank_required_field_counts_as_missing(self, pool, admin):
        with pytest.raises(MissingField):
            await EntityRepository(CATEGORIES, pool).create(admin, {"name": ""})

    async def test_create_rejects_unknown_parent(self, pool, admin):
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)

        with pytest.raises(InvalidReference) as exc_info:
            await sub_categories.create(admin, {"name": "Algebra", "category_id": 42})

        assert exc_info.value.message == "Category not found"
        assert await sub_categories.list(admin) == []

    async def test_create_rejects_token_for_deleted_user(self, pool):
        ghost = TokenClaims(user_id=999, role="Admin")

        with pytest.raises(UnknownIdentity) as exc_info:
            await EntityRepository(CATEGORIES, pool).create(ghost, {"name": "Math"})

        assert exc_info.value.status_code == 400
        assert exc_info.value.error == "User not found"

    async def test_list_includes_counts_and_creator(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)
        subjects = EntityRepository(SUBJECTS, pool)
        topics = EntityRepository(TOPICS, pool)

        math = await categories.create(admin, {"name": "Math"})
        await categories.create(admin, {"name": "Art"})
        algebra = await sub_categories.create(admin, {"name": "Algebra", "category_id": math["id"]})
        await sub_categories.create(
            admin, {"name": "Old", "category_id": math["id"], "status": "Inactive"}
        )
        linear = await subjects.create(admin, {"name": "Linear", "sub_category_id": algebra["id"]})
        await topics.create(admin, {"name": "Matrices", "subject_id": linear["id"]})

        rows = await categories.list(admin)

        assert [row["name"] for row in rows] == ["Art", "Math"]
        math_row = rows[1]
        assert math_row["created_by_name"] == "Ada Admin"
        assert math_row["subCategories_count"] == 1
        assert math_row["subjects_count"] == 1
        assert math_row["topics_count"] == 1

        topic_rows = await topics.list(admin)
        assert topic_rows[0]["subject_name"] == "Linear"
        assert topic_rows[0]["sub_category_name"] == "Algebra"
        assert topic_rows[0]["category_name"] == "Math"

    async def test_list_filters_by_parent(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)
        math = await categories.create(admin, {"name": "Math"})
        art = await categories.create(admin, {"name": "Art"})
        await sub_categories.create(admin, {"name": "Algebra", "category_id": math["id"]})
        await sub_categories.create(admin, {"name": "Painting", "category_id": art["id"]})

        rows = await sub_categories.list(admin, parent_id=art["id"])

        assert [row["name"] for row in rows] == ["Painting"]
        assert rows[0]["category_name"] == "Art"

    async def test_get_missing_raises_not_found(self, pool, admin):
        with pytest.raises(NotFound) as exc_info:
            await EntityRepository(CATEGORIES, pool).get(admin, 7)
        assert exc_info.value.message == "Category not found"

    async def test_partial_update_keeps_omitted_fields(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        created = await categories.create(admin, {"name": "Math", "description": "Numbers"})

        updated = await categories.update(admin, created["id"], {"status": "Inactive"})

        assert updated["name"] == "Math"
        assert updated["description"] == "Numbers"
        assert updated["status"] == "Inactive"

    async def test_blank_status_keeps_stored_value(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        created = await categories.create(admin, {"name": "Math", "status": "Inactive"})

        updated = await categories.update(
            admin, created["id"], {"status": "", "description": ""}
        )

        assert updated["status"] == "Inactive"
        assert updated["description"] == ""

    async def test_update_ignores_parent_link(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)
        math = await categories.create(admin, {"name": "Math"})
        art = await categories.create(admin, {"name": "Art"})
        algebra = await sub_categories.create(admin, {"name": "Algebra", "category_id": math["id"]})

        updated = await sub_categories.update(
            admin, algebra["id"], {"name": "Algebra I", "category_id": art["id"]}
        )

        assert updated["name"] == "Algebra I"
        assert updated["category_id"] == math["id"]

    async def test_update_missing_raises_not_found(self, pool, admin):
        with pytest.raises(NotFound):
            await EntityRepository(CATEGORIES, pool).update(admin, 3, {"name": "X"})

    async def test_delete_is_not_repeatable(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        created = await categories.create(admin, {"name": "Math"})

        assert await categories.delete(admin, created["id"]) == {
            "message": "Category deleted successfully"
        }
        with pytest.raises(NotFound):
            await categories.delete(admin, created["id"])

    async def test_delete_leaves_children_in_place(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)
        math = await categories.create(admin, {"name": "Math"})
        algebra = await sub_categories.create(admin, {"name": "Algebra", "category_id": math["id"]})

        await categories.delete(admin, math["id"])

        orphan = await sub_categories.get(admin, algebra["id"])
        assert orphan["category_id"] == math["id"]
        assert orphan["category_name"] is None


@pytest.mark.asyncio
class TestModuleOwnership:
    async def test_owner_is_taken_from_token(self, pool, mentors):
        mentor_a, _ = mentors
        modules = EntityRepository(MODULES, pool)

        created = await modules.create(mentor_a, {"title": "Intro"})

        assert created["mentor_id"] == mentor_a.user_id
        assert created["status"] == "Draft"
        assert created["order_number"] == 0

    async def test_other_mentor_cannot_update_or_delete(self, pool, mentors):
        mentor_a, mentor_b = mentors
        modules = EntityRepository(MODULES, pool)
        created = await modules.create(mentor_a, {"title": "Intro"})

        with pytest.raises(Forbidden):
            await modules.update(mentor_b, created["id"], {"title": "Hijacked"})
        with pytest.raises(Forbidden):
            await modules.delete(mentor_b, created["id"])
        with pytest.raises(Forbidden):
            await modules.get(mentor_b, created["id"])

        assert (await modules.get(mentor_a, created["id"]))["title"] == "Intro"

    async def test_mentor_lists_only_own_modules(self, pool, mentors, admin):
        mentor_a, mentor_b = mentors
        modules = EntityRepository(MODULES, pool)
        await modules.create(mentor_a, {"title": "A1"})
        await modules.create(mentor_b, {"title": "B1"})

        own = await modules.list(mentor_a)
        everything = await modules.list(admin)

        assert [row["title"] for row in own] == ["A1"]
        assert own[0]["mentor_name"] == "Mentor A"
        assert {row["title"] for row in everything} == {"A1", "B1"}

    async def test_blank_order_and_status_keep_stored_values(self, pool, mentors):
        mentor_a, _ = mentors
        modules = EntityRepository(MODULES, pool)
        created = await modules.create(
            mentor_a, {"title": "Intro", "order_number": 3, "status": "Published"}
        )

        updated = await modules.update(
            mentor_a, created["id"], {"title": "", "order_number": 0, "status": "", "duration": 0}
        )

        assert updated["title"] == "Intro"
        assert updated["order_number"] == 3
        assert updated["status"] == "Published"
        assert updated["duration"] == 0

    async def test_module_course_must_exist(self, pool, mentors):
        mentor_a, _ = mentors

        with pytest.raises(InvalidReference) as exc_info:
            await EntityRepository(MODULES, pool).create(
                mentor_a, {"title": "Intro", "course_id": 12}
            )
        assert exc_info.value.message == "Course not found"


@pytest.mark.asyncio
class TestCourseRepository:
    async def _category_tree(self, pool, admin):
        categories = EntityRepository(CATEGORIES, pool)
        sub_categories = EntityRepository(SUB_CATEGORIES, pool)
        math = await categories.create(admin, {"name": "Math"})
        art = await categories.create(admin, {"name": "Art"})
        algebra = await sub_categories.create(admin, {"name": "Algebra", "category_id": math["id"]})
        painting = await sub_categories.create(admin, {"name": "Painting", "category_id": art["id"]})
        return math, art, algebra, painting

    async def test_subcategory_must_belong_to_category(self, pool, admin):
        math, _, _, painting = await self._category_tree(pool, admin)

        with pytest.raises(InvalidReference) as exc_info:
            await EntityRepository(COURSES, pool).create(
                admin,
                {"title": "Calculus", "category_id": math["id"], "sub_category_id": painting["id"]},
            )

        assert (
            exc_info.value.message
            == "SubCategory not found or does not belong to the selected category"
        )

    async def test_update_checks_subcategory_against_stored_category(self, pool, admin):
        math, _, algebra, painting = await self._category_tree(pool, admin)
        courses = EntityRepository(COURSES, pool)
        course = await courses.create(
            admin, {"title": "Calculus", "category_id": math["id"], "sub_category_id": algebra["id"]}
        )

        with pytest.raises(InvalidReference):
            await courses.update(admin, course["id"], {"sub_category_id": painting["id"]})

    async def test_read_shape(self, pool, admin):
        math, _, algebra, _ = await self._category_tree(pool, admin)
        courses = EntityRepository(COURSES, pool)
        created = await courses.create(
            admin,
            {
                "title": "Calculus",
                "description": "Limits",
                "category_id": math["id"],
                "sub_category_id": algebra["id"],
            },
        )

        course = await courses.get(admin, created["id"])

        assert course["title"] == "Calculus"
        assert course["category"] == "Math"
        assert course["subCategory"] == "Algebra"
        assert course["author"] == "Ada Admin"
        assert course["author_id"] == admin.user_id
        assert course["status"] == "Draft"
        assert course["enrollments"] == 0
        assert len(course["creationDate"]) == 10

    async def test_tutor_is_scoped_admin_is_not(self, pool, admin):
        math, _, _, _ = await self._category_tree(pool, admin)
        tutor_row = await insert_user(pool, "tutor", "t@x.com", "hash", "Tutor", "Tutor")
        tutor = TokenClaims(user_id=tutor_row["id"], role="Tutor")
        courses = EntityRepository(COURSES, pool)
        admin_course = await courses.create(admin, {"title": "Admin's", "category_id": math["id"]})
        tutor_course = await courses.create(tutor, {"title": "Tutor's", "category_id": math["id"]})

        assert [c["title"] for c in await courses.list(tutor)] == ["Tutor's"]
        with pytest.raises(Forbidden):
            await courses.update(tutor, admin_course["id"], {"title": "Mine now"})

        updated = await courses.update(admin, tutor_course["id"], {"status": "Published"})
        assert updated["status"] == "Published"
        assert updated["title"] == "Tutor's"


@pytest.mark.asyncio
class TestSessionRepository:
    async def test_date_and_time_are_combined(self, pool, admin):
        sessions = EntityRepository(SESSIONS, pool)

        created = await sessions.create(
            admin, {"title": "Kickoff", "date": "2025-03-01", "time": "10:30:00"}
        )

        assert created["date"] == "2025-03-01T10:30:00"
        assert created["duration"] == 60
        assert created["status"] == "Upcoming"

    async def test_list_falls_back_to_simple_query(self, pool, admin):
        sessions = EntityRepository(SESSIONS, pool)
        fallback_rows = [{"id": 1, "title": "Kickoff"}]
        pool.execute = AsyncMock(side_effect=[StorageError("no such table: batches"), fallback_rows])

        rows = await sessions.list(admin)

        assert rows == fallback_rows
        joined_query = pool.execute.call_args_list[0].args[0]
        simple_query = pool.execute.call_args_list[1].args[0]
        assert "LEFT JOIN" in joined_query
        assert "LEFT JOIN" not in simple_query

    async def test_list_raises_original_error_when_fallback_fails(self, pool, admin):
        sessions = EntityRepository(SESSIONS, pool)
        original = StorageError("join failed")
        pool.execute = AsyncMock(side_effect=[original, StorageError("simple failed")])

        with pytest.raises(StorageError) as exc_info:
            await sessions.list(admin)
        assert exc_info.value is original

    async def test_other_entities_do_not_fall_back(self, pool, admin):
        pool.execute = AsyncMock(side_effect=StorageError("boom"))

        with pytest.raises(StorageError):
            await EntityRepository(CATEGORIES, pool).list(admin)
        assert pool.execute.await_count == 1

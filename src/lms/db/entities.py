from datetime import date, datetime
from typing import Dict

from lms.config import (
    ROLE_ADMIN,
    ROLE_MENTOR,
    ROLE_TUTOR,
    STATUS_ACTIVE,
    STATUS_DRAFT,
    STATUS_UPCOMING,
    users_table_name,
    categories_table_name,
    sub_categories_table_name,
    subjects_table_name,
    topics_table_name,
    batches_table_name,
    batch_enrollments_table_name,
    sessions_table_name,
    courses_table_name,
    modules_table_name,
)
from lms.db.repository import EntityDescriptor, ForeignKey
from lms.errors import ValidationFailed

ADMIN_ONLY = (ROLE_ADMIN,)
HIERARCHY_UPDATABLE = ("name", "description", "status")
COURSE_FIELDS = ("title", "description", "thumbnail", "category_id", "sub_category_id", "status")


def _parse_date(value: str, field_name: str) -> str:
    try:
        return date.fromisoformat(value[:10]).isoformat()
    except ValueError:
        raise ValidationFailed(f"Invalid {field_name}: expected YYYY-MM-DD")


def normalize_batch_dates(values: Dict) -> Dict:
    for field_name in ("start_date", "end_date"):
        if values.get(field_name):
            values[field_name] = _parse_date(values[field_name], field_name)
    return values


def normalize_session_date(values: Dict) -> Dict:
    """Accept either a full datetime or a bare date combined with ``time``."""
    raw = values.get("date")
    if not raw:
        return values

    if "T" not in raw:
        raw = f"{raw}T{values.get('time') or '00:00:00'}"

    try:
        values["date"] = datetime.fromisoformat(raw.replace("Z", "+00:00")).isoformat()
    except ValueError:
        raise ValidationFailed("Invalid date")

    return values


def serialize_course(course: Dict) -> Dict:
    created_at = course.get("created_at")
    return {
        "id": course["id"],
        "title": course["title"],
        "description": course.get("description"),
        "thumbnail": course.get("thumbnail"),
        "category": course.get("category_name") or "",
        "category_id": course.get("category_id"),
        "subCategory": course.get("sub_category_name") or "",
        "sub_category_id": course.get("sub_category_id"),
        "creationDate": str(created_at)[:10] if created_at else "",
        "enrollments": course.get("enrollments_count") or 0,
        "status": course.get("status") or STATUS_DRAFT,
        "author": course.get("author_name") or "",
        "author_id": course.get("author_id"),
    }


CATEGORIES = EntityDescriptor(
    name="Category",
    plural="categories",
    table=categories_table_name,
    alias="c",
    fields=("name", "description", "status"),
    required=("name",),
    updatable=HIERARCHY_UPDATABLE,
    keep_when_blank=("status",),
    defaults={"status": STATUS_ACTIVE},
    lookup_columns=("u.name AS created_by_name",),
    joins=f"LEFT JOIN {users_table_name} u ON c.created_by = u.id",
    list_columns=(
        f"""(SELECT COUNT(*) FROM {sub_categories_table_name}
             WHERE category_id = c.id AND status = '{STATUS_ACTIVE}') AS subCategories_count""",
        f"""(SELECT COUNT(*) FROM {subjects_table_name} s
             INNER JOIN {sub_categories_table_name} sc ON s.sub_category_id = sc.id
             WHERE sc.category_id = c.id AND s.status = '{STATUS_ACTIVE}') AS subjects_count""",
        f"""(SELECT COUNT(*) FROM {topics_table_name} t
             INNER JOIN {subjects_table_name} s ON t.subject_id = s.id
             INNER JOIN {sub_categories_table_name} sc ON s.sub_category_id = sc.id
             WHERE sc.category_id = c.id AND t.status = '{STATUS_ACTIVE}') AS topics_count""",
    ),
    order_by="name ASC",
    read_roles=ADMIN_ONLY,
    create_roles=ADMIN_ONLY,
    write_roles=ADMIN_ONLY,
)

SUB_CATEGORIES = EntityDescriptor(
    name="SubCategory",
    plural="subcategories",
    table=sub_categories_table_name,
    alias="sc",
    fields=("name", "description", "category_id", "status"),
    required=("name", "category_id"),
    updatable=HIERARCHY_UPDATABLE,
    keep_when_blank=("status",),
    defaults={"status": STATUS_ACTIVE},
    foreign_keys=(ForeignKey("category_id", categories_table_name, "Category"),),
    lookup_columns=("c.name AS category_name", "u.name AS created_by_name"),
    joins=f"""
        LEFT JOIN {categories_table_name} c ON sc.category_id = c.id
        LEFT JOIN {users_table_name} u ON sc.created_by = u.id
    """,
    list_columns=(
        f"""(SELECT COUNT(*) FROM {subjects_table_name}
             WHERE sub_category_id = sc.id AND status = '{STATUS_ACTIVE}') AS subjects_count""",
        f"""(SELECT COUNT(*) FROM {topics_table_name} t
             INNER JOIN {subjects_table_name} s ON t.subject_id = s.id
             WHERE s.sub_category_id = sc.id AND t.status = '{STATUS_ACTIVE}') AS topics_count""",
    ),
    order_by="name ASC",
    parent_filter="category_id",
    read_roles=ADMIN_ONLY,
    create_roles=ADMIN_ONLY,
    write_roles=ADMIN_ONLY,
)

SUBJECTS = EntityDescriptor(
    name="Subject",
    plural="subjects",
    table=subjects_table_name,
    alias="s",
    fields=("name", "description", "sub_category_id", "status"),
    required=("name", "sub_category_id"),
    updatable=HIERARCHY_UPDATABLE,
    keep_when_blank=("status",),
    defaults={"status": STATUS_ACTIVE},
    foreign_keys=(ForeignKey("sub_category_id", sub_categories_table_name, "SubCategory"),),
    lookup_columns=(
        "sc.name AS sub_category_name",
        "c.name AS category_name",
        "u.name AS created_by_name",
    ),
    joins=f"""
        LEFT JOIN {sub_categories_table_name} sc ON s.sub_category_id = sc.id
        LEFT JOIN {categories_table_name} c ON sc.category_id = c.id
        LEFT JOIN {users_table_name} u ON s.created_by = u.id
    """,
    list_columns=(
        f"""(SELECT COUNT(*) FROM {topics_table_name}
             WHERE subject_id = s.id AND status = '{STATUS_ACTIVE}') AS topics_count""",
    ),
    order_by="name ASC",
    parent_filter="sub_category_id",
    read_roles=ADMIN_ONLY,
    create_roles=ADMIN_ONLY,
    write_roles=ADMIN_ONLY,
)

TOPICS = EntityDescriptor(
    name="Topic",
    plural="topics",
    table=topics_table_name,
    alias="t",
    fields=("name", "description", "subject_id", "status"),
    required=("name", "subject_id"),
    updatable=HIERARCHY_UPDATABLE,
    keep_when_blank=("status",),
    defaults={"status": STATUS_ACTIVE},
    foreign_keys=(ForeignKey("subject_id", subjects_table_name, "Subject"),),
    lookup_columns=(
        "s.name AS subject_name",
        "sc.name AS sub_category_name",
        "c.name AS category_name",
        "u.name AS created_by_name",
    ),
    joins=f"""
        LEFT JOIN {subjects_table_name} s ON t.subject_id = s.id
        LEFT JOIN {sub_categories_table_name} sc ON s.sub_category_id = sc.id
        LEFT JOIN {categories_table_name} c ON sc.category_id = c.id
        LEFT JOIN {users_table_name} u ON t.created_by = u.id
    """,
    order_by="name ASC",
    parent_filter="subject_id",
    read_roles=ADMIN_ONLY,
    create_roles=ADMIN_ONLY,
    write_roles=ADMIN_ONLY,
)

BATCHES = EntityDescriptor(
    name="Batch",
    plural="batches",
    table=batches_table_name,
    alias="b",
    fields=("name", "description", "start_date", "end_date", "capacity", "status"),
    required=("name", "start_date"),
    updatable=("name", "description", "start_date", "end_date", "capacity", "status"),
    keep_when_blank=("start_date", "capacity", "status"),
    defaults={"capacity": 50, "status": STATUS_ACTIVE},
    lookup_columns=("u.name AS created_by_name",),
    joins=f"LEFT JOIN {users_table_name} u ON b.created_by = u.id",
    list_columns=(
        f"""(SELECT COUNT(*) FROM {batch_enrollments_table_name}
             WHERE batch_id = b.id AND status = '{STATUS_ACTIVE}') AS enrolled_count""",
    ),
    order_by="start_date DESC",
    normalize=normalize_batch_dates,
    read_roles=ADMIN_ONLY,
    create_roles=ADMIN_ONLY,
    write_roles=ADMIN_ONLY,
)

SESSIONS = EntityDescriptor(
    name="Session",
    plural="sessions",
    table=sessions_table_name,
    alias="s",
    fields=(
        "title",
        "description",
        "tutor_id",
        "batch_id",
        "date",
        "time",
        "duration",
        "status",
        "meeting_link",
    ),
    required=("title", "date"),
    updatable=(
        "title",
        "description",
        "tutor_id",
        "batch_id",
        "date",
        "time",
        "duration",
        "status",
        "meeting_link",
    ),
    keep_when_blank=("date", "duration", "status"),
    defaults={"duration": 60, "status": STATUS_UPCOMING},
    foreign_keys=(
        ForeignKey("tutor_id", users_table_name, "Tutor"),
        ForeignKey("batch_id", batches_table_name, "Batch"),
    ),
    lookup_columns=("u.name AS tutor_name", "b.name AS batch_name"),
    joins=f"""
        LEFT JOIN {users_table_name} u ON s.tutor_id = u.id
        LEFT JOIN {batches_table_name} b ON s.batch_id = b.id
    """,
    order_by="date DESC",
    parent_filter="batch_id",
    fallback_on_list_error=True,
    normalize=normalize_session_date,
    read_roles=ADMIN_ONLY,
    create_roles=ADMIN_ONLY,
    write_roles=ADMIN_ONLY,
)

MODULES = EntityDescriptor(
    name="Module",
    plural="modules",
    table=modules_table_name,
    alias="m",
    fields=("title", "description", "content", "course_id", "duration", "order_number", "status"),
    required=("title",),
    updatable=("title", "description", "content", "course_id", "duration", "order_number", "status"),
    keep_when_blank=("title", "order_number", "status"),
    defaults={"order_number": 0, "status": STATUS_DRAFT},
    owner_field="mentor_id",
    owner_scoped_roles=frozenset({ROLE_MENTOR}),
    foreign_keys=(ForeignKey("course_id", courses_table_name, "Course"),),
    lookup_columns=("u.name AS mentor_name",),
    joins=f"LEFT JOIN {users_table_name} u ON m.mentor_id = u.id",
    order_by="created_at DESC",
    parent_filter="course_id",
    create_roles=(ROLE_MENTOR,),
    write_roles=(ROLE_MENTOR,),
)

COURSES = EntityDescriptor(
    name="Course",
    plural="courses",
    table=courses_table_name,
    alias="c",
    fields=COURSE_FIELDS,
    required=("title", "category_id"),
    updatable=COURSE_FIELDS,
    keep_when_blank=COURSE_FIELDS,
    defaults={"status": STATUS_DRAFT},
    owner_field="author_id",
    owner_scoped_roles=frozenset({ROLE_MENTOR, ROLE_TUTOR}),
    foreign_keys=(
        ForeignKey("category_id", categories_table_name, "Category"),
        ForeignKey(
            "sub_category_id",
            sub_categories_table_name,
            "SubCategory",
            scope_field="category_id",
        ),
    ),
    lookup_columns=(
        "cat.name AS category_name",
        "sc.name AS sub_category_name",
        "u.name AS author_name",
    ),
    joins=f"""
        LEFT JOIN {categories_table_name} cat ON c.category_id = cat.id
        LEFT JOIN {sub_categories_table_name} sc ON c.sub_category_id = sc.id
        LEFT JOIN {users_table_name} u ON c.author_id = u.id
    """,
    order_by="created_at DESC",
    parent_filter="category_id",
    serialize=serialize_course,
    create_roles=(ROLE_ADMIN, ROLE_MENTOR, ROLE_TUTOR),
    write_roles=(ROLE_ADMIN, ROLE_MENTOR, ROLE_TUTOR),
)

# URL path segment -> descriptor, in mount order
ENTITIES = {
    "sessions": SESSIONS,
    "batches": BATCHES,
    "modules": MODULES,
    "categories": CATEGORIES,
    "subcategories": SUB_CATEGORIES,
    "subjects": SUBJECTS,
    "topics": TOPICS,
    "courses": COURSES,
}

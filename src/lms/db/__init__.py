from lms.config import (
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
from lms.utils.db import DatabasePool
from lms.utils.logging import db_logger


# Foreign keys are declared for documentation only; SQLite leaves them
# unenforced unless PRAGMA foreign_keys is switched on, so deleting a parent
# neither cascades nor fails.
SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {users_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    password TEXT NOT NULL,
    name TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'Student',
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {categories_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'Active',
    created_by INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {sub_categories_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    category_id INTEGER NOT NULL REFERENCES {categories_table_name}(id),
    status TEXT NOT NULL DEFAULT 'Active',
    created_by INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {subjects_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    sub_category_id INTEGER NOT NULL REFERENCES {sub_categories_table_name}(id),
    status TEXT NOT NULL DEFAULT 'Active',
    created_by INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {topics_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    subject_id INTEGER NOT NULL REFERENCES {subjects_table_name}(id),
    status TEXT NOT NULL DEFAULT 'Active',
    created_by INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {batches_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    start_date DATE NOT NULL,
    end_date DATE,
    capacity INTEGER DEFAULT 50,
    status TEXT NOT NULL DEFAULT 'Active',
    created_by INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {batch_enrollments_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    batch_id INTEGER NOT NULL REFERENCES {batches_table_name}(id),
    user_id INTEGER NOT NULL REFERENCES {users_table_name}(id),
    status TEXT NOT NULL DEFAULT 'Active',
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {sessions_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    tutor_id INTEGER REFERENCES {users_table_name}(id),
    batch_id INTEGER REFERENCES {batches_table_name}(id),
    date DATETIME NOT NULL,
    time TEXT,
    duration INTEGER DEFAULT 60,
    status TEXT NOT NULL DEFAULT 'Upcoming',
    meeting_link TEXT,
    created_by INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {courses_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    thumbnail TEXT,
    category_id INTEGER NOT NULL REFERENCES {categories_table_name}(id),
    sub_category_id INTEGER REFERENCES {sub_categories_table_name}(id),
    status TEXT NOT NULL DEFAULT 'Draft',
    author_id INTEGER REFERENCES {users_table_name}(id),
    enrollments_count INTEGER DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS {modules_table_name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    content TEXT,
    course_id INTEGER REFERENCES {courses_table_name}(id),
    duration INTEGER,
    order_number INTEGER DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'Draft',
    mentor_id INTEGER REFERENCES {users_table_name}(id),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


async def init_db(pool: DatabasePool):
    """Create every table the service reads or writes, if missing."""
    await pool.execute_script(SCHEMA)
    db_logger.info("Database schema initialized")

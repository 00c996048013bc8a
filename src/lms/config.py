import os
from os.path import join

root_dir = os.path.dirname(os.path.abspath(__file__))

log_dir = os.environ.get("LMS_LOG_DIR", join(root_dir, "logs"))
os.makedirs(log_dir, exist_ok=True)

log_file_path = join(log_dir, "backend.log")
db_log_file_path = join(log_dir, "db.log")

users_table_name = "users"
categories_table_name = "categories"
sub_categories_table_name = "sub_categories"
subjects_table_name = "subjects"
topics_table_name = "topics"
batches_table_name = "batches"
batch_enrollments_table_name = "batch_enrollments"
sessions_table_name = "sessions"
courses_table_name = "courses"
modules_table_name = "modules"

ROLE_ADMIN = "Admin"
ROLE_MENTOR = "Mentor"
ROLE_TUTOR = "Tutor"
ROLE_STUDENT = "Student"

ROLES = (ROLE_ADMIN, ROLE_MENTOR, ROLE_TUTOR, ROLE_STUDENT)
DEFAULT_ROLE = ROLE_STUDENT

STATUS_ACTIVE = "Active"
STATUS_DRAFT = "Draft"
STATUS_UPCOMING = "Upcoming"

MIN_PASSWORD_LENGTH = 6

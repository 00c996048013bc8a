from typing import Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    name: str
    role: str


class AuthResponse(BaseModel):
    user: UserResponse
    token: str


class VerifyResponse(BaseModel):
    valid: bool
    userId: int
    role: str


# Entity payloads leave every field optional: required fields are checked by
# the repository so that a missing one is reported as a 400, not a 422.


class CategoryPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None


class SubCategoryPayload(CategoryPayload):
    category_id: Optional[int] = None


class SubjectPayload(CategoryPayload):
    sub_category_id: Optional[int] = None


class TopicPayload(CategoryPayload):
    subject_id: Optional[int] = None


class BatchPayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    capacity: Optional[int] = None
    status: Optional[str] = None


class SessionPayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    tutor_id: Optional[int] = None
    batch_id: Optional[int] = None
    date: Optional[str] = None
    time: Optional[str] = None
    duration: Optional[int] = None
    status: Optional[str] = None
    meeting_link: Optional[str] = None


class ModulePayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    course_id: Optional[int] = None
    duration: Optional[int] = None
    order_number: Optional[int] = None
    status: Optional[str] = None


class CoursePayload(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    status: Optional[str] = None

"""
Central constants for the StudyLinker application.
"""
from __future__ import annotations

# Account roles
ROLE_PARENT = "PARENT"
ROLE_TEACHER = "TEACHER"
ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
USER_ROLES = (ROLE_PARENT, ROLE_TEACHER, ROLE_ADMIN, ROLE_MANAGER)
# Roles a user may pick for themselves; staff roles are granted by scripts/promote_admin.py
SELF_SERVICE_ROLES = (ROLE_PARENT, ROLE_TEACHER)
STAFF_ROLES = (ROLE_ADMIN, ROLE_MANAGER)

JOB_STATUSES = ("OPEN", "CLOSED", "FILLED", "CANCELLED")
APPLICATION_MODES = ("OPEN", "CURATED")
APPLICATION_STATUSES = ("PENDING", "ACCEPTED", "REJECTED", "WITHDRAWN")
CONTRACT_STATUSES = ("ACTIVE", "PAUSED", "COMPLETED", "CANCELLED")
CLASS_STATUSES = ("SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED", "MISSED")
PAYMENT_STATUSES = ("PENDING", "COMPLETED", "FAILED", "REFUNDED")
CONTACT_STATUSES = ("NEW", "IN_PROGRESS", "RESOLVED", "ARCHIVED")
TEACHER_APPLICATION_STATUSES = (
    "PENDING",
    "UNDER_REVIEW",
    "INTERVIEW_SCHEDULED",
    "INTERVIEW_COMPLETED",
    "APPROVED",
    "REJECTED",
)

DEFAULT_CURRENCY = "USD"

# Permission keys checked by app.studylinker.rbac
PERM_ADMIN_VIEW = "admin.view"
PERM_TEACHER_APPLICATIONS_REVIEW = "teacher_applications.review"
PERM_CONTACTS_MANAGE = "contacts.manage"
PERM_JOBS_MODERATE = "jobs.moderate"
PERM_USERS_MANAGE = "users.manage"

_STAFF_PERMISSIONS = frozenset(
    {PERM_ADMIN_VIEW, PERM_TEACHER_APPLICATIONS_REVIEW, PERM_CONTACTS_MANAGE, PERM_JOBS_MODERATE}
)

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    # role changes are admin-only
    ROLE_ADMIN: _STAFF_PERMISSIONS | {PERM_USERS_MANAGE},
    ROLE_MANAGER: _STAFF_PERMISSIONS,
    ROLE_PARENT: frozenset(),
    ROLE_TEACHER: frozenset(),
}

# Pagination
DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
DEFAULT_MESSAGE_PAGE_LIMIT = 50

# File uploads
DEFAULT_UPLOAD_BUCKET = "teacher-photos"
IMAGE_EXTENSIONS = frozenset({"jpeg", "jpg", "png", "webp"})
IMAGE_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"})
DOCUMENT_EXTENSIONS = frozenset({"pdf", "doc", "docx", "txt"})
DOCUMENT_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    }
)
MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024

# Tables whose row changes are broadcast to realtime subscribers
REALTIME_TABLES = frozenset(
    {
        "messages",
        "classes",
        "applications",
        "contracts",
        "payments",
        "job_postings",
        "reviews",
        "teacher_applications",
        "contacts",
    }
)
# Readable by any signed-in caller without a filter
PUBLIC_REALTIME_TABLES = frozenset({"job_postings", "reviews"})

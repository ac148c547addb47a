from enum import Enum


class EntityType(str, Enum):
    CLASS = "class"
    STUDENT = "student"
    TEACHER = "teacher"
    SUBJECT = "subject"
    GRADE = "grade"


class OperationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    RUNNING = "running"


class SchoolStage(str, Enum):
    PRIMARY = "Primary"
    JUNIOR_SECONDARY = "Junior Secondary"
    SENIOR_SECONDARY = "Senior Secondary"


class AssignmentStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class RecipientType(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    PARENT = "parent"
    MBSSE = "mbsse"
    SYSTEM = "system"


class NotificationType(str, Enum):
    WELCOME = "welcome"
    PASSWORD_CHANGE = "password_change"
    SYSTEM = "system"
    INFO = "info"


class EmailType(str, Enum):
    WELCOME = "welcome"
    PASSWORD_CHANGE = "password_change"
    TEACHER_ASSIGNMENT = "teacher_assignment"
    TEACHER_CLASS_ASSIGNMENT = "teacher_class_assignment"
    PASSWORD_RESET_CODE = "password_reset_code"


# Remote tables each offline-capable entity type is written to.
ENTITY_TABLES = {
    EntityType.CLASS: "classes",
    EntityType.STUDENT: "students",
    EntityType.TEACHER: "teachers",
    EntityType.SUBJECT: "subjects",
    EntityType.GRADE: "grades",
}

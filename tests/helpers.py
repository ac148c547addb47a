from datetime import datetime, timedelta, timezone

SCHOOL_ID = "school-1"
ADMIN_ID = "admin-1"


class FakeClock:
    """Manually advanced clock for the scheduler and expiry checks."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def seed_teacher(services, teacher_id: str = "T1", school_id: str = SCHOOL_ID, **extra) -> dict:
    row = {
        "id": teacher_id,
        "school_id": school_id,
        "firstname": "Kadi",
        "lastname": "Sesay",
        "email": f"{teacher_id.lower()}@example.com",
        **extra,
    }
    services.remote.rows("teachers").append(row)
    return row


def seed_student(services, student_id: str, class_id: str = None, school_id: str = SCHOOL_ID) -> dict:
    row = {"id": student_id, "school_id": school_id, "class_id": class_id, "firstname": "Student", "lastname": student_id}
    services.remote.rows("students").append(row)
    return row


def seed_admin(services, admin_id: str = ADMIN_ID, email: str = "principal@example.com", password: str = "secret123"):
    """Auth account plus schooladmin row, the way provisioning leaves them."""
    services.auth.users[admin_id] = {"id": admin_id, "email": email, "password": password, "user_metadata": {}}
    services.remote.rows("schooladmin").append(
        {
            "id": admin_id,
            "emailaddress": email,
            "adminname": "Ada Principal",
            "role": "Principal",
            "school_id": SCHOOL_ID,
            "hasloggedinbefore": False,
        }
    )
    services.remote.rows("schools").append({"id": SCHOOL_ID, "name": "Hill Station Secondary", "stage": "Senior Secondary"})

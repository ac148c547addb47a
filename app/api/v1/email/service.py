"""Templated transactional emails.

Delivery problems never fail the caller: notification flows depend on this
call, so a failed send is logged and reported as ``success=False`` in the body.
"""

import logging
from typing import Tuple

from fastapi import status

from app.core.email_service import EmailService
from app.core.enums import EmailType
from app.core.exceptions import ServiceError

from .schemas import SendEmailRequest, SendEmailResponse

logger = logging.getLogger(__name__)

SIGNATURE = "Best regards,\nThe Skultek Team"


def _welcome(req: SendEmailRequest) -> Tuple[str, str]:
    return (
        "Welcome to Skultek School Management System!",
        f"Dear {req.name or 'Admin'},\n\n"
        "Welcome to Skultek! We're excited to have you on board our school management system.\n\n"
        "Here are some key features you can explore:\n"
        "- Student Management\n- Teacher Management\n- Attendance Tracking\n"
        "- Grade Management\n- Timetable Management\n- Reports and Analytics\n\n"
        "If you have any questions or need assistance, please contact our support team.\n\n"
        f"{SIGNATURE}",
    )


def _password_change(req: SendEmailRequest) -> Tuple[str, str]:
    return (
        "Password Changed - Skultek Security Alert",
        f"Dear {req.name or 'Admin'},\n\n"
        "Your password was recently changed in the Skultek School Management System.\n\n"
        "If this was you, no action is required. If you did not make this change, please:\n"
        "1. Change your password immediately\n2. Contact our support team\n3. Review your account security\n\n"
        "The Skultek Security Team",
    )


def _teacher_assignment(req: SendEmailRequest) -> Tuple[str, str]:
    subject = req.subjectName or "a subject"
    code = f" ({req.subjectCode})" if req.subjectCode else ""
    return (
        f"New Subject Assignment: {subject}",
        f"Dear {req.name or 'Teacher'},\n\n"
        f"You have been assigned to teach {subject}{code}.\n"
        "Please review your teaching schedule and prepare accordingly.\n\n"
        f"{SIGNATURE}",
    )


def _teacher_class_assignment(req: SendEmailRequest) -> Tuple[str, str]:
    class_name = req.className or "a class"
    level = f" ({req.classLevel})" if req.classLevel else ""
    return (
        f"Class Teacher Assignment: {class_name}",
        f"Dear {req.name or 'Teacher'},\n\n"
        f"You have been assigned as the class teacher for {class_name}{level}.\n"
        "Please review your class details and prepare for the academic year.\n\n"
        f"{SIGNATURE}",
    )


def _password_reset_code(req: SendEmailRequest) -> Tuple[str, str]:
    return (
        "Password Reset Verification Code",
        f"Hello {req.name or 'Admin'},\n\n"
        f"Your verification code is: {req.code}\n\n"
        "This code will expire in 15 minutes.\n"
        "If you did not request this, please ignore this email.",
    )


TEMPLATES = {
    EmailType.WELCOME: _welcome,
    EmailType.PASSWORD_CHANGE: _password_change,
    EmailType.TEACHER_ASSIGNMENT: _teacher_assignment,
    EmailType.TEACHER_CLASS_ASSIGNMENT: _teacher_class_assignment,
    EmailType.PASSWORD_RESET_CODE: _password_reset_code,
}


def render_email(req: SendEmailRequest) -> Tuple[str, str]:
    """Subject and body for a request. Raises ServiceError(400) for a bad request."""
    if not req.email or not req.type:
        raise ServiceError("Email and type are required", status.HTTP_400_BAD_REQUEST)
    try:
        email_type = EmailType(req.type)
    except ValueError:
        raise ServiceError("Invalid notification type", status.HTTP_400_BAD_REQUEST)
    return TEMPLATES[email_type](req)


async def send_templated_email(mailer: EmailService, req: SendEmailRequest) -> SendEmailResponse:
    subject, body = render_email(req)
    result = await mailer.send(req.email, subject, body)
    if not result.success:
        logger.error("Email '%s' to %s failed: %s", req.type, req.email, result.error)
        return SendEmailResponse(success=False, simulated=False, message="Email could not be sent")
    message = "Email simulated (no SMTP credentials)" if result.simulated else "Email sent successfully"
    return SendEmailResponse(success=True, simulated=result.simulated, message=message)


async def send_email_type(mailer: EmailService, email_type: EmailType, email: str, **fields) -> SendEmailResponse:
    return await send_templated_email(mailer, SendEmailRequest(type=email_type.value, email=email, **fields))

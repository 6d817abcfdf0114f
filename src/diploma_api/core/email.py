"""
Email Service using Resend

Handles sending emails for university onboarding, student verification
and degree linking.
"""

import asyncio
import logging
from html import escape

import resend

from diploma_api.core.config import settings

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = (
    settings.resend_api_key.get_secret_value() if settings.resend_api_key else None
)

EMAIL_FROM = settings.email_from
FRONTEND_URL = settings.frontend_url.rstrip("/")

_STYLE = """
        body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
        .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
        .header { color: #1a365d; margin-bottom: 24px; }
        .button { display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
        .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


def _render(title: str, body: str, footer: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>{footer}</p>
                <p>Diploma Verification Platform</p>
            </div>
        </div>
    </body>
    </html>
    """


def _hours(hours: int) -> str:
    return "1 hour" if hours == 1 else f"{hours} hours"


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_university_admin_invitation(
    to_email: str,
    university_name: str,
    token: str,
) -> bool:
    """Invite a university admin to create their account."""
    safe_university_name = escape(university_name)

    registration_url = f"{FRONTEND_URL}/university/register?token={token}"
    body = f"""
            <p>Hello,</p>

            <p>You have been invited to manage degree records for
            <strong>{safe_university_name}</strong>.</p>

            <p>Create your administrator account by clicking the button below:</p>

            <a href="{registration_url}" class="button">Create Account</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{registration_url}</p>

            <p><strong>This link expires in {_hours(settings.invitation_token_expiry_hours)}.</strong></p>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Invitation to administer {safe_university_name}",
        html_content=_render(
            "You're Invited",
            body,
            "If you weren't expecting this invitation, you can safely ignore this email.",
        ),
    )


async def send_student_verification(
    to_email: str,
    university_name: str,
    token: str,
) -> bool:
    """Send the email verification link to a newly registered student."""
    safe_university_name = escape(university_name)

    verification_url = f"{FRONTEND_URL}/student/verify-email?token={token}"
    body = f"""
            <p>Hello,</p>

            <p>Thank you for registering as a <strong>{safe_university_name}</strong> student.</p>

            <p>Please verify your email address by clicking the button below. Any
            degree your university has issued to this address will then appear in
            your account.</p>

            <a href="{verification_url}" class="button">Verify Email</a>

            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #3b82f6;">{verification_url}</p>

            <p><strong>This link expires in {_hours(settings.verification_token_expiry_hours)}.</strong></p>
    """
    return await send_email(
        to_email=to_email,
        subject="Verify your email address",
        html_content=_render(
            "Verify Your Email",
            body,
            "If you didn't create an account, you can safely ignore this email.",
        ),
    )


async def send_degree_linked(
    to_email: str,
    university_name: str,
    degree_type: str,
    major: str,
) -> bool:
    """Tell a student their degree is now attached to their account."""
    safe_university_name = escape(university_name)
    safe_degree_type = escape(degree_type)
    safe_major = escape(major)

    dashboard_url = f"{FRONTEND_URL}/student/dashboard"
    body = f"""
            <p>Hello,</p>

            <p>Your <strong>{safe_degree_type} in {safe_major}</strong> issued by
            <strong>{safe_university_name}</strong> has been linked to your account.</p>

            <a href="{dashboard_url}" class="button">View Degree</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Degree Linked to Your Account",
        html_content=_render(
            "Degree Linked",
            body,
            "If you don't recognise this degree, contact your university registrar.",
        ),
    )

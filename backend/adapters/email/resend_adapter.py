"""
Resend email service adapter.
"""

import asyncio
import logging
from html import escape
from typing import Optional

import resend

from core.exceptions import AppError, EmailDeliveryError
from infrastructure.config.settings import Settings

logger = logging.getLogger(__name__)


class ResendEmailService:
    """Email service using Resend API.

    Without an API key (local development) messages are logged instead of sent.
    Send failures raise :class:`EmailDeliveryError`, which callers may retry.
    """

    def __init__(self, settings: Settings):
        self._api_key = settings.resend_api_key
        if self._api_key:
            resend.api_key = self._api_key
        self._from_email = settings.resend_from_email
        self._frontend_url = settings.primary_frontend_url
        self._feedback_email = settings.feedback_email
        self._app_name = settings.app_name

    def invitation_url(self, token: str) -> str:
        """Link the invitee opens to view and answer an invitation."""
        return f"{self._frontend_url}/invitation/{token}"

    async def _send(self, params: dict) -> None:
        if not self._api_key:
            logger.info("[DEV] Email to %s: %s", params["to"], params["subject"])
            return
        try:
            # The Resend SDK is synchronous
            await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            logger.error("Failed to send email '%s' to %s: %s", params["subject"], params["to"], e)
            raise EmailDeliveryError() from e

    async def send_project_invitation_email(
        self,
        to_email: str,
        inviter_name: str,
        project_name: str,
        role: str,
        token: str,
    ) -> None:
        """
        Send project invitation email.

        Args:
            to_email: Recipient email address
            inviter_name: Name of the person who sent the invitation
            project_name: Name of the project
            role: Role the user will have in the project
            token: Invitation token used to build the accept link
        """
        invitation_url = self.invitation_url(token)
        if not self._api_key:
            logger.info("[DEV] Project invitation for %s: %s", to_email, invitation_url)
            return

        await self._send({
            "from": self._from_email,
            "to": to_email,
            "subject": f"You've been invited to join {project_name} on {self._app_name}",
            "html": self._get_project_invitation_email_html(
                inviter_name, project_name, role, invitation_url
            ),
        })

    async def send_feedback_email(
        self,
        user_name: str,
        user_email: str,
        subject: str,
        content: str,
    ) -> None:
        """Forward user feedback to the configured feedback inbox."""
        if not self._feedback_email:
            raise AppError("Feedback email is not configured")

        await self._send({
            "from": self._from_email,
            "to": self._feedback_email,
            "reply_to": user_email,
            "subject": f"[Feedback] {subject}",
            "html": self._get_feedback_email_html(user_name, user_email, subject, content),
        })

    def _get_project_invitation_email_html(
        self, inviter_name: str, project_name: str, role: str, invitation_url: str
    ) -> str:
        """Generate project invitation email HTML."""
        role_display = role.title()
        inviter_name = escape(inviter_name)
        project_name = escape(project_name)

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #F5F7FA; padding: 40px 20px;">
            <div style="max-width: 560px; margin: 0 auto; background: white; border-radius: 16px; padding: 40px;">
                <h2 style="color: #1A1A2E; font-size: 20px; margin-bottom: 16px;">You've been invited to join a project</h2>

                <p style="color: #4A4A68; line-height: 1.6; margin-bottom: 24px;">
                    {inviter_name} has invited you to collaborate on <strong>{project_name}</strong>.
                </p>

                <ul style="color: #4A4A68; line-height: 1.8;">
                    <li><strong>Project:</strong> {project_name}</li>
                    <li><strong>Your role:</strong> {role_display}</li>
                    <li><strong>Invited by:</strong> {inviter_name}</li>
                </ul>

                <div style="text-align: center; margin: 32px 0;">
                    <a href="{invitation_url}" style="display: inline-block; background: #3B82F6; color: white; text-decoration: none; padding: 14px 32px; border-radius: 12px;">
                        View Invitation
                    </a>
                </div>

                <p style="color: #8B8BA7; font-size: 12px; text-align: center;">
                    This invitation will expire in 7 days.<br>
                    If you didn't expect this invitation, you can safely ignore this email.
                </p>
            </div>
        </body>
        </html>
        """

    def _get_feedback_email_html(
        self, user_name: str, user_email: str, subject: str, content: Optional[str]
    ) -> str:
        """Generate feedback email HTML."""
        body = escape(content or "").replace("\n", "<br>")
        return f"""
        <h2>{escape(subject)}</h2>
        <p><strong>From:</strong> {escape(user_name)} &lt;{escape(user_email)}&gt;</p>
        <hr>
        <div>{body}</div>
        """

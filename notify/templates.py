"""
notify/templates.py -- Subject, plain-text and HTML bodies for outbound mail.

Every template returns an EmailContent. Values interpolated into HTML are
escaped; codes are digits only but names come from user input.
"""

from __future__ import annotations

import html
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailContent:
    subject: str
    text: str
    html: str


_FRAME = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; background: #f5f5f5; padding: 20px;">
  <div style="background: white; padding: 30px; border-radius: 10px;">
    <h1 style="color: #32b8c6; margin: 0 0 24px 0; text-align: center;">{title}</h1>
    {body}
  </div>
</div>
"""

_CODE_BLOCK = """\
<div style="text-align: center; margin: 30px 0;">
  <span style="display: inline-block; padding: 20px 40px; border: 2px dashed #32b8c6; border-radius: 10px;
               font-size: 32px; font-weight: bold; color: #32b8c6; letter-spacing: 8px;">{code}</span>
</div>
<p style="font-size: 14px; color: #666; text-align: center;">This code expires in <strong>{minutes} minutes</strong>.</p>
<p style="font-size: 13px; color: #999; text-align: center;">If you didn't request this, please ignore this email.</p>
"""


def _minutes(ttl_seconds: int) -> int:
    return max(1, ttl_seconds // 60)


def welcome(name: str, client_url: str) -> EmailContent:
    safe_name = html.escape(name)
    body = (
        f'<p style="font-size: 16px;">Hi <strong>{safe_name}</strong>,</p>'
        "<p>Thank you for registering with <strong>InternHub</strong>. You can now browse internship "
        "programs, submit applications and track their status.</p>"
        f'<p style="text-align: center;"><a href="{html.escape(client_url, quote=True)}">Log in</a></p>'
    )
    text = (
        f"Hi {name},\n\n"
        "Thank you for registering with InternHub. You can now browse internship programs, "
        "submit applications and track their status.\n\n"
        f"Log in: {client_url}\n"
    )
    return EmailContent(
        subject="Welcome to InternHub",
        text=text,
        html=_FRAME.format(title="Welcome to InternHub!", body=body),
    )


def verification_code(code: str, ttl_seconds: int) -> EmailContent:
    minutes = _minutes(ttl_seconds)
    body = "<p>Your one-time code for email verification is:</p>" + _CODE_BLOCK.format(code=code, minutes=minutes)
    text = (
        f"Your one-time code for email verification is: {code}\n"
        f"It expires in {minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email.\n"
    )
    return EmailContent(
        subject="Your InternHub verification code",
        text=text,
        html=_FRAME.format(title="Your verification code", body=body),
    )


def password_reset_code(name: str, code: str, ttl_seconds: int) -> EmailContent:
    minutes = _minutes(ttl_seconds)
    body = (
        f"<p>Hi <strong>{html.escape(name)}</strong>,</p><p>Your code for resetting your password is:</p>"
        + _CODE_BLOCK.format(code=code, minutes=minutes)
    )
    text = (
        f"Hi {name},\n\n"
        f"Your code for resetting your password is: {code}\n"
        f"It expires in {minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email.\n"
    )
    return EmailContent(
        subject="InternHub password reset code",
        text=text,
        html=_FRAME.format(title="Password reset", body=body),
    )


_STATUS_COLOURS = {
    "approved": "#2e7d32",
    "rejected": "#c62828",
    "in-progress": "#1565c0",
    "completed": "#32b8c6",
}


def _program_title(program: str) -> str:
    # "web-development" -> "Web Development"
    return program.replace("-", " ").title()


def application_status(name: str, program: str, status: str, notes: str, client_url: str) -> EmailContent:
    """Sent when an administrator changes an application's status."""
    program_title = _program_title(program)
    colour = _STATUS_COLOURS.get(status, "#666")
    body = (
        f"<p>Hi <strong>{html.escape(name)}</strong>,</p>"
        f"<p>Your application for <strong>{html.escape(program_title)}</strong> is now "
        f'<strong style="color: {colour};">{html.escape(status)}</strong>.</p>'
    )
    text = f"Hi {name},\n\nYour application for {program_title} is now {status}.\n"
    if notes:
        body += f'<p style="background: #f5f5f5; padding: 12px; border-radius: 6px;">{html.escape(notes)}</p>'
        text += f"\nNotes from the team:\n{notes}\n"
    body += f'<p style="text-align: center;"><a href="{html.escape(client_url, quote=True)}">View your applications</a></p>'
    text += f"\nView your applications: {client_url}\n"
    return EmailContent(
        subject=f"Your {program_title} application: {status}",
        text=text,
        html=_FRAME.format(title="Application update", body=body),
    )

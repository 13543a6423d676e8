"""Subject / plain-text / HTML bodies for account emails."""
from __future__ import annotations

from html import escape


def _wrap_html(app_name: str, company: str, support_url: str, body: str) -> str:
    return f"""<html>
<body style="font-family: Arial, sans-serif; color: #1f2937;">
  <h2>{escape(app_name)}</h2>
  {body}
  <p><small>Need help? <a href="{escape(support_url)}">Contact support</a>.</small></p>
  <p><small>&copy; {escape(company)}</small></p>
</body>
</html>"""


def reset_password_email(*, app_name, company, reset_url, support_url, username, expiry_minutes):
    subject = f"Reset your {app_name} password"
    text = f"""Hi {username},

We received a request to reset your {app_name} password. Open the link below:

{reset_url}

This link expires in {expiry_minutes} minutes. If you didn't request this, ignore this email.

{company}
"""
    body = f"""<p>Hi {escape(username)},</p>
  <p>We received a request to reset your password.</p>
  <p>
    <a href="{escape(reset_url)}"
       style="background-color: #2563eb; color: white; padding: 12px 22px;
              text-decoration: none; display: inline-block; border-radius: 4px;">
      Reset password
    </a>
  </p>
  <p>Or copy this link: {escape(reset_url)}</p>
  <p><small>This link expires in {expiry_minutes} minutes.</small></p>"""
    return {"subject": subject, "text": text, "html": _wrap_html(app_name, company, support_url, body)}


def password_changed_email(*, app_name, company, support_url, username):
    subject = f"Your {app_name} password was changed"
    text = f"""Hi {username},

Your {app_name} password was just changed and you were signed out everywhere.
If this wasn't you, contact support right away: {support_url}

{company}
"""
    body = f"""<p>Hi {escape(username)},</p>
  <p>Your password was just changed and you were signed out everywhere.</p>
  <p>If this wasn't you, contact support right away.</p>"""
    return {"subject": subject, "text": text, "html": _wrap_html(app_name, company, support_url, body)}

# app/services/email_service.py
# Transactional email via SendGrid
#
# Usage (from any endpoint or service):
#   from app.services import email_service
#   email_service.dispatch(
#       email_service.approval_email(profile.full_name, user.email, "student")
#   )
#
# dispatch() is best effort: a failed send is logged and never raised,
# so an email problem can not fail or roll back the triggering operation.

import html
import logging
from dataclasses import dataclass
from typing import Optional

import sendgrid
from sendgrid.helpers.mail import Mail

from app.core.config import settings

logger = logging.getLogger("freetutor.email")

ROLE_LABELS = {"student": "學生", "tutor": "導師"}


@dataclass(frozen=True)
class EmailTemplate:
    to: str
    subject: str
    html: str


# ── Sending ───────────────────────────────────────────────────────────────────

def send_email(template: EmailTemplate) -> bool:
    """
    Send one email via SendGrid.
    No-op in dev mode if SENDGRID_API_KEY is not configured (returns False).
    Raises RuntimeError if SendGrid rejects the message.
    """
    if not settings.sendgrid_api_key:
        logger.info(f"[DEV] Email skipped (no SendGrid key): to={template.to} subject={template.subject}")
        return False

    try:
        sg = sendgrid.SendGridAPIClient(api_key=settings.sendgrid_api_key)
        message = Mail(
            from_email=(settings.email_from, settings.email_from_name),
            to_emails=template.to,
            subject=template.subject,
            html_content=template.html,
        )
        response = sg.send(message)
    except Exception as e:
        raise RuntimeError(f"SendGrid error: {e}") from e

    logger.info(f"Email sent to {template.to}: {template.subject} (status={response.status_code})")
    return True


def dispatch(template: EmailTemplate) -> bool:
    """Fire-and-forget wrapper around send_email()."""
    try:
        return send_email(template)
    except Exception as e:
        # Email failure should never block the main flow
        logger.warning(f"Email notification failed for {template.to}: {e}")
        return False


# ── Templates ─────────────────────────────────────────────────────────────────

def _build_email_html(heading: str, tagline: str, body_html: str) -> str:
    """Shared HTML shell for every FreeTutor email."""
    return f"""
<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: auto; padding: 20px; color: #333;">
    <div style="background: #667eea; padding: 24px; border-radius: 8px 8px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0;">{heading}</h1>
        <p style="color: #e0e7ff; margin: 4px 0 0 0;">{tagline}</p>
    </div>
    <div style="background: #f9fafb; padding: 24px; border-radius: 0 0 8px 8px; line-height: 1.6;">
        {body_html}
    </div>
    <p style="text-align: center; color: #9ca3af; font-size: 12px;">© FreeTutor. 保留所有權利。</p>
</body>
</html>
"""


def registration_email(full_name: str, email: str, profile_type: str) -> EmailTemplate:
    full_name = html.escape(full_name)
    label = ROLE_LABELS.get(profile_type, "用戶")
    body = f"""
        <h2>您好，{full_name}！</h2>
        <p>感謝您在 FreeTutor 註冊成為{label}用戶。</p>
        <p>我們已收到您的註冊申請，管理團隊將在 <strong>3-5 個工作天</strong>內審核您提交的文件。</p>
        <p>審核完成後，您會收到電子郵件通知。</p>
    """
    return EmailTemplate(
        to=email,
        subject=f"FreeTutor - {label}註冊申請已收到",
        html=_build_email_html("FreeTutor", "免費導師配對平台", body),
    )


def approval_email(full_name: str, email: str, profile_type: str) -> EmailTemplate:
    full_name = html.escape(full_name)
    if profile_type == "student":
        next_steps = "<li>發佈補習需求</li><li>查看導師申請並選擇合適的導師</li>"
        link = f"{settings.site_url}/dashboard/student"
    else:
        next_steps = "<li>瀏覽學生的補習需求</li><li>提交申請，與學生建立聯繫</li>"
        link = f"{settings.site_url}/dashboard/tutor"
    body = f"""
        <h2>您好，{full_name}！</h2>
        <p>您的 FreeTutor 帳戶已通過審核。</p>
        <h3>您現在可以:</h3>
        <ul>{next_steps}</ul>
        <p><a href="{link}">前往我的儀表板</a></p>
    """
    return EmailTemplate(
        to=email,
        subject="FreeTutor - 您的申請已獲批准",
        html=_build_email_html("🎉 恭喜您！", "您的申請已獲批准", body),
    )


def rejection_email(
    full_name: str,
    email: str,
    profile_type: str,
    notes: Optional[str] = None,
) -> EmailTemplate:
    full_name = html.escape(full_name)
    notes_html = f"<p><strong>審核意見：</strong><br>{html.escape(notes)}</p>" if notes else ""
    body = f"""
        <h2>您好，{full_name}</h2>
        <p>感謝您對 FreeTutor 的興趣。很遺憾，您的{ROLE_LABELS.get(profile_type, "")}申請暫未獲批准。</p>
        {notes_html}
        <p>您可以檢查並補充所需文件，然後重新提交申請。</p>
    """
    return EmailTemplate(
        to=email,
        subject="FreeTutor - 申請審核結果",
        html=_build_email_html("FreeTutor", "申請審核結果", body),
    )


def tutor_matched_email(tutor_name: str, email: str, request_title: str) -> EmailTemplate:
    # User-supplied text is escaped before it goes into the HTML body
    tutor_name = html.escape(tutor_name)
    request_title = html.escape(request_title)
    body = f"""
        <h2>您好，{tutor_name}！</h2>
        <p>學生已接受您對補習需求「{request_title}」的申請。</p>
        <p>學生已取得您的聯絡資料，將會盡快與您聯繫。</p>
        <p><a href="{settings.site_url}/dashboard/tutor">查看配對詳情</a></p>
    """
    return EmailTemplate(
        to=email,
        subject="FreeTutor - 您的申請已被接受",
        html=_build_email_html("FreeTutor", "配對成功", body),
    )

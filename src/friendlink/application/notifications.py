"""Mail payloads for the application lifecycle, and best-effort delivery."""

import logging
from concurrent.futures import Executor, Future
from datetime import datetime
from html import escape

from friendlink.application.dto import MailMessage
from friendlink.application.ports import Mailer
from friendlink.config import Settings
from friendlink.domain import FriendApplication, FriendProfile
from friendlink.domain.entities import utcnow

logger = logging.getLogger(__name__)

NO_REASON = "No reason provided"

_CARD = (
    '<div style="font-family: \'Segoe UI\', Arial, sans-serif; max-width: 480px; '
    'margin: 0 auto; border: 1px solid #eee; border-radius: 10px; padding: 24px;">'
)
_BUTTON = (
    'display:inline-block;margin-top:18px;padding:10px 24px;background:#1677ff;'
    'color:#fff;border-radius:6px;text-decoration:none;font-weight:bold;'
)


def _timestamp(when: datetime | None) -> str:
    return (when or utcnow()).strftime("%Y-%m-%d %H:%M:%S UTC")


def _profile_block(profile: FriendProfile) -> str:
    return (
        '<div style="display: flex; align-items: center; margin-bottom: 16px;">'
        f'<img src="{escape(profile.avatar_link)}" alt="avatar" '
        'style="width: 64px; height: 64px; border-radius: 50%; margin-right: 16px;">'
        "<div>"
        f'<div style="font-size: 18px; font-weight: bold;">{escape(profile.name)}</div>'
        f'<a href="{escape(profile.link)}" style="color: #1677ff;">{escape(profile.link)}</a>'
        "</div></div>"
        f'<div style="margin-bottom: 8px;"><b>Description:</b> {escape(profile.descr)}</div>'
    )


def _review_mail(
    application: FriendApplication,
    settings: Settings,
    heading: str,
    button: str,
    when: datetime | None,
) -> str:
    original = ""
    if application.original_link:
        original = (
            '<div style="color: #888; font-size: 12px; margin-bottom: 8px;">'
            f"Original link: {escape(application.original_link)}</div>"
        )
    return (
        f"{_CARD}"
        f'<h2 style="color: #1677ff;">{heading}</h2>'
        f"{original}"
        f"{_profile_block(application.profile)}"
        f'<div style="margin-bottom: 8px;"><b>Contact:</b> {escape(application.email)}</div>'
        f'<div style="color: #888; font-size: 12px;">Submitted: {_timestamp(when)}</div>'
        f'<a href="{escape(settings.review_link(application.id))}" style="{_BUTTON}">{button}</a>'
        "</div>"
    )


def new_application_message(
    application: FriendApplication, settings: Settings, when: datetime | None = None
) -> MailMessage:
    return MailMessage(
        to=settings.admin_email,
        subject=f"New friend link application: {application.name} - {application.link}",
        html=_review_mail(
            application, settings, "New friend link application", "Review application", when
        ),
    )


def update_application_message(
    application: FriendApplication, settings: Settings, when: datetime | None = None
) -> MailMessage:
    return MailMessage(
        to=settings.admin_email,
        subject=(
            f"Friend link update request: {application.name} - {application.original_link}"
        ),
        html=_review_mail(
            application, settings, "Friend link update request", "Review update", when
        ),
    )


def decision_message(
    application: FriendApplication,
    settings: Settings,
    approved: bool,
    reason: str = "",
    when: datetime | None = None,
) -> MailMessage:
    """Result mail to the applicant. Rejections carry the reason and an admin contact."""
    if approved:
        subject = "Your friend link application was approved"
        color = "#52c41a"
        outcome = (
            '<div style="background-color: #f6ffed; border: 1px solid #b7eb8f; '
            'border-radius: 8px; padding: 15px;">'
            "<p><b>Your site has been added to the friend link list.</b></p>"
            "<p>It will show up once the site is rebuilt and the CDN refreshes. Thanks!</p>"
            "</div>"
        )
    else:
        subject = "Your friend link application was not approved"
        color = "#ff4d4f"
        outcome = (
            '<div style="background-color: #fff2f0; border: 1px solid #ffccc7; '
            'border-radius: 8px; padding: 15px;">'
            f"<p><b>Reason:</b> {escape(reason or NO_REASON)}</p>"
            "</div>"
            f'<p style="color: #888;">Questions? Contact {escape(settings.admin_email)}.</p>'
        )
    html = (
        f"{_CARD}"
        f'<h2 style="color: {color};">{escape(subject)}</h2>'
        f'<p style="color: #888;">Reviewed: {_timestamp(when)}</p>'
        f"{_profile_block(application.profile)}"
        f"{outcome}"
        '<p style="color: #888; font-size: 12px;">This mail was sent automatically, '
        "please do not reply.</p>"
        "</div>"
    )
    return MailMessage(to=application.email, subject=subject, html=html)


def publish_failure_message(
    application: FriendApplication, settings: Settings, error: str
) -> MailMessage:
    """Tell the admin that an approved application did not make it into the link list."""
    profile = application.profile
    target = application.original_link or application.link
    return MailMessage(
        to=settings.admin_email,
        subject=f"Friend link publish failed: {target}",
        html=(
            f"<p>Publishing the approved application {escape(application.id)} failed.</p>"
            f"<p>Original link: {escape(application.original_link or '-')}</p>"
            f"<p>Error: {escape(error)}</p>"
            "<p>New entry:</p>"
            "<ul>"
            f"<li>Name: {escape(profile.name)}</li>"
            f"<li>Link: {escape(profile.link)}</li>"
            f"<li>Avatar: {escape(profile.avatar_link)}</li>"
            f"<li>Description: {escape(profile.descr)}</li>"
            "</ul>"
            "<p>The application is already marked approved; fix the link list by hand "
            "or approve it again.</p>"
        ),
    )


class Notifier:
    """Fire-and-forget mail delivery. Failures are logged, never raised."""

    def __init__(self, mailer: Mailer, executor: Executor | None = None) -> None:
        self._mailer = mailer
        self._executor = executor

    def dispatch(self, message: MailMessage) -> Future | None:
        if self._executor is None:
            self._deliver(message)
            return None
        future = self._executor.submit(self._deliver, message)
        future.add_done_callback(_log_failed_future)
        return future

    def _deliver(self, message: MailMessage) -> bool:
        try:
            ok = self._mailer.send(message.to, message.subject, message.html)
        except Exception:
            logger.exception("Mail to %s failed: %s", message.to, message.subject)
            return False
        if not ok:
            logger.warning("Mail to %s not delivered: %s", message.to, message.subject)
        return bool(ok)


def _log_failed_future(future: Future) -> None:
    if future.cancelled():
        logger.warning("Mail delivery cancelled")
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Mail delivery task failed: %s", exc)

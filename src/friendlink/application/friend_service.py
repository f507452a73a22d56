"""Friend-link application lifecycle: submit -> review -> approve (publish) or reject."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from friendlink.application.dto import ApprovalResult, DiffPreview, PullRequest
from friendlink.application.errors import (
    AuthorizationError,
    ExternalServiceError,
    NotFoundError,
    StateTransitionError,
    ValidationError,
)
from friendlink.application.notifications import (
    NO_REASON,
    Notifier,
    decision_message,
    new_application_message,
    publish_failure_message,
    update_application_message,
)
from friendlink.application.ports import ApplicationRepository, LinkHost
from friendlink.application.publisher import (
    LinkListPublisher,
    add_branch_name,
    update_branch_name,
)
from friendlink.config import Settings
from friendlink.domain import (
    ApplicationState,
    FriendApplication,
    FriendProfile,
    LinkEntry,
    LinkListFormatError,
    dump_entry,
    find_entry,
    format_entry,
    normalize_link,
    parse_link_list,
    patch_entry,
    render_diff,
    serialize_link_list,
)
from friendlink.domain.entities import utcnow

logger = logging.getLogger(__name__)

PR_BODY = "Submitted automatically by friendlink"
EDITABLE_FIELDS = ("name", "link", "avatar_link", "descr", "email")


def _missing(values: dict[str, str | None]) -> list[str]:
    return [key for key, value in values.items() if not value or not value.strip()]


class FriendLinkService:
    """Core flow: submit application -> admin review -> publish to the link list or reject."""

    def __init__(
        self,
        settings: Settings,
        repository: ApplicationRepository,
        host: LinkHost,
        notifier: Notifier,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = settings
        self._repo = repository
        self._publisher = LinkListPublisher(host, settings.link_file_path)
        self._notifier = notifier
        self._clock = clock

    # --- submission (public) ---

    def submit(self, profile: FriendProfile, email: str) -> str:
        """Store a new-friend application and tell the admin. Returns the application id."""
        application = self._create(profile, email, original_link=None)
        self._notifier.dispatch(new_application_message(application, self._settings))
        return application.id

    def submit_update(self, original_link: str, profile: FriendProfile, email: str) -> str:
        """Store a request to update the entry currently listed under original_link."""
        if not original_link or not original_link.strip():
            raise ValidationError("Missing required fields: original_link")
        application = self._create(profile, email, original_link=original_link.strip())
        self._notifier.dispatch(update_application_message(application, self._settings))
        return application.id

    def _create(
        self, profile: FriendProfile, email: str, original_link: str | None
    ) -> FriendApplication:
        values = {
            "name": profile.name,
            "link": profile.link,
            "avatar_link": profile.avatar_link,
            "descr": profile.descr,
            "email": email,
        }
        missing = _missing(values)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        application = FriendApplication(
            **{key: value.strip() for key, value in values.items()},
            state=ApplicationState.PENDING,
            original_link=original_link,
            created_at=self._clock(),
        )
        application_id = self._repo.add(application)
        logger.info("Stored application %s for %s", application_id, application.link)
        return application

    def match_link(self, url: str) -> LinkEntry | None:
        """Look a link up in the current link list (first match in file order)."""
        if not url or not url.strip():
            raise ValidationError("Missing required fields: url")
        return find_entry(self._read_document()[1], normalize_link(url.strip()))

    # --- review (credential required) ---

    def get(self, application_id: str, credential: str | None) -> FriendApplication:
        self._check_credential(credential)
        return self._load(application_id)

    def list_applications(self, credential: str | None) -> list[FriendApplication]:
        self._check_credential(credential)
        return self._repo.list_all()

    def edit(self, application_id: str, credential: str | None, **changes) -> FriendApplication:
        """Correct applicant fields before a decision. The state is not editable here."""
        self._check_credential(credential)
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
        changes = {key: value for key, value in changes.items() if value is not None}
        empty = _missing(changes)
        if empty:
            raise ValidationError(f"Fields must be non-empty: {', '.join(empty)}")
        application = self._load(application_id)
        if not changes:
            return application
        changes = {key: value.strip() for key, value in changes.items()}
        now = self._clock()
        self._repo.update(application.id, **changes, updated_at=now)
        return replace(application, **changes, updated_at=now)

    def approve(self, application_id: str, credential: str | None) -> ApprovalResult:
        """Mark approved, then publish the entry as a pull request.

        The state change is not rolled back when publishing fails: the record
        stays APPROVED, the admin is mailed and the error propagates. Approving
        again re-runs the publish until a pull request has been recorded.
        """
        self._check_credential(credential)
        application = self._load(application_id)
        self._ensure_transition(application, ApplicationState.APPROVED)
        if application.is_published:
            raise StateTransitionError(
                f"Application {application.id} is already published as {application.pr_url}"
            )

        now = self._clock()
        self._repo.update(application.id, state=ApplicationState.APPROVED, updated_at=now)
        application = replace(application, state=ApplicationState.APPROVED, updated_at=now)

        kind = "update" if application.is_update else "new"
        try:
            if application.is_update:
                pr = self._publish_update(application)
            else:
                pr = self._publish_new(application)
        except (NotFoundError, ExternalServiceError) as exc:
            logger.error("Publishing application %s failed: %s", application.id, exc)
            self._notifier.dispatch(
                publish_failure_message(application, self._settings, str(exc))
            )
            raise

        self._repo.update(application.id, pr_url=pr.url, pr_number=pr.number)
        application = replace(application, pr_url=pr.url, pr_number=pr.number)
        self._notifier.dispatch(decision_message(application, self._settings, approved=True))
        return ApprovalResult(pr_url=pr.url, pr_number=pr.number, kind=kind)

    def reject(
        self, application_id: str, credential: str | None, reason: str | None = None
    ) -> FriendApplication:
        self._check_credential(credential)
        application = self._load(application_id)
        self._ensure_transition(application, ApplicationState.REJECTED)

        reason = (reason or "").strip() or NO_REASON
        now = self._clock()
        self._repo.update(
            application.id,
            state=ApplicationState.REJECTED,
            reject_reason=reason,
            updated_at=now,
        )
        application = replace(
            application,
            state=ApplicationState.REJECTED,
            reject_reason=reason,
            updated_at=now,
        )
        self._notifier.dispatch(
            decision_message(application, self._settings, approved=False, reason=reason)
        )
        return application

    def preview_diff(self, application_id: str, credential: str | None) -> DiffPreview:
        """Show what approve would write for this application. Read-only."""
        self._check_credential(credential)
        application = self._load(application_id)
        new_entry = format_entry(application.profile)
        if not application.is_update:
            return DiffPreview(
                diff=render_diff("", new_entry), old_entry="", new_entry=new_entry, kind="new"
            )
        _, document = self._read_document()
        entry = find_entry(document, normalize_link(application.original_link))
        if entry is None:
            old_entry = f"# Original entry not found: {application.original_link}"
        else:
            old_entry = dump_entry(entry)
        return DiffPreview(
            diff=render_diff(old_entry, new_entry),
            old_entry=old_entry,
            new_entry=new_entry,
            kind="update",
        )

    # --- helpers ---

    def _check_credential(self, credential: str | None) -> None:
        expected = self._settings.review_password
        if not credential or not expected or not secrets.compare_digest(
            credential.encode("utf-8"), expected.encode("utf-8")
        ):
            raise AuthorizationError("Wrong or missing review password.")

    def _load(self, application_id: str) -> FriendApplication:
        if not application_id or not str(application_id).strip():
            raise ValidationError("Missing required fields: id")
        application = self._repo.get_by_id(str(application_id).strip())
        if application is None:
            raise NotFoundError(f"Application {application_id} not found.")
        return application

    @staticmethod
    def _ensure_transition(application: FriendApplication, target: ApplicationState) -> None:
        if not application.state.can_become(target):
            raise StateTransitionError(
                f"Application {application.id} is {application.state.value}, "
                f"cannot become {target.value}."
            )

    def _read_document(self):
        source = self._publisher.read()
        try:
            return source, parse_link_list(source.content)
        except LinkListFormatError as exc:
            raise ExternalServiceError(
                f"Could not read {self._publisher.path}: {exc}"
            ) from exc

    def _publish_new(self, application: FriendApplication) -> PullRequest:
        profile = application.profile
        source = self._publisher.read()
        entry = format_entry(profile)
        return self._publisher.publish(
            source,
            source.content + entry,
            branch=add_branch_name(profile),
            message=f"add friend link: {profile.name}",
            title=f"Friend link application: {profile.link}",
            body=f"{PR_BODY}\n\n{entry}",
            labels=["friend"],
        )

    def _publish_update(self, application: FriendApplication) -> PullRequest:
        profile = application.profile
        source, document = self._read_document()
        result = patch_entry(document, normalize_link(application.original_link), profile)
        if not result.found:
            raise NotFoundError(
                f"Original entry vanished from the link list: {application.original_link}"
            )
        return self._publisher.publish(
            source,
            serialize_link_list(result.document),
            branch=update_branch_name(profile),
            message=f"update friend link: {profile.name}",
            title=f"Friend link update: {profile.link}",
            body=f"{PR_BODY}\n\n{format_entry(profile)}",
            labels=["friend", "update"],
        )

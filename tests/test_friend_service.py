"""Unit tests for FriendLinkService. In-memory repo, fake link host and recording mailer."""

from datetime import datetime, timedelta, timezone

import pytest
from fakes import LINK_FILE, FakeLinkHost, RecordingMailer

from friendlink.application import (
    AuthorizationError,
    ExternalServiceError,
    FriendLinkService,
    NotFoundError,
    Notifier,
    StateTransitionError,
    ValidationError,
)
from friendlink.config import Settings
from friendlink.domain import ApplicationState, FriendProfile, find_entry, parse_link_list
from friendlink.infrastructure import InMemoryApplicationRepository

PASSWORD = "s3cret"
ADMIN = "admin@blog.example"
APPLICANT = "dave@dave.dev"


def _settings() -> Settings:
    return Settings(
        review_password=PASSWORD,
        admin_email=ADMIN,
        api_domain="https://api.blog.example/",
        github_owner="me",
        github_repo="blog",
    )


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def _service(host=None, mailer=None, repo=None):
    repo = repo or InMemoryApplicationRepository()
    host = host or FakeLinkHost()
    mailer = mailer or RecordingMailer()
    service = FriendLinkService(
        _settings(), repo, host, Notifier(mailer), clock=_Clock()
    )
    return service, repo, host, mailer


def _profile(**overrides) -> FriendProfile:
    data = {
        "name": "Dave",
        "link": "https://dave.dev",
        "avatar_link": "https://dave.dev/me.png",
        "descr": "Dave's notes",
    }
    data.update(overrides)
    return FriendProfile(**data)


# --- submit ---


def test_submit_stores_pending_and_notifies_admin():
    service, repo, _, mailer = _service()
    application_id = service.submit(_profile(), APPLICANT)

    stored = repo.get_by_id(application_id)
    assert stored.state is ApplicationState.PENDING
    assert stored.original_link is None
    assert stored.email == APPLICANT
    assert stored.updated_at is None

    [(to, subject, html)] = mailer.sent
    assert to == ADMIN
    assert "Dave" in subject and "https://dave.dev" in subject
    assert f"https://api.blog.example/api/friend-review?id={application_id}&amp;pwd={PASSWORD}" in html


def test_submit_strips_whitespace():
    service, repo, _, _ = _service()
    application_id = service.submit(_profile(name="  Dave  "), f" {APPLICANT} ")
    stored = repo.get_by_id(application_id)
    assert stored.name == "Dave"
    assert stored.email == APPLICANT


def test_submit_missing_fields_rejected_before_side_effects():
    service, repo, _, mailer = _service()
    with pytest.raises(ValidationError) as info:
        service.submit(_profile(name="", descr="   "), "")
    assert "name" in str(info.value)
    assert "descr" in str(info.value)
    assert "email" in str(info.value)
    assert repo.list_all() == []
    assert mailer.sent == []


def test_submit_succeeds_when_mail_fails():
    service, repo, _, _ = _service(mailer=RecordingMailer(raises=True))
    application_id = service.submit(_profile(), APPLICANT)
    assert repo.get_by_id(application_id) is not None


def test_submit_succeeds_when_mail_not_delivered():
    service, repo, _, _ = _service(mailer=RecordingMailer(result=False))
    application_id = service.submit(_profile(), APPLICANT)
    assert repo.get_by_id(application_id).state is ApplicationState.PENDING


def test_submit_update_requires_original_link():
    service, repo, _, _ = _service()
    with pytest.raises(ValidationError, match="original_link"):
        service.submit_update("  ", _profile(), APPLICANT)
    assert repo.list_all() == []


def test_submit_update_notifies_admin_with_original_link():
    service, repo, _, mailer = _service()
    application_id = service.submit_update("https://b.com", _profile(), APPLICANT)
    assert repo.get_by_id(application_id).original_link == "https://b.com"
    [(to, subject, html)] = mailer.sent
    assert to == ADMIN
    assert "https://b.com" in subject
    assert "Original link: https://b.com" in html


# --- credential checks ---


@pytest.mark.parametrize("credential", [None, "", "wrong", PASSWORD + "x"])
def test_approve_wrong_credential_never_changes_state(credential):
    service, repo, host, mailer = _service()
    application_id = service.submit(_profile(), APPLICANT)
    mailer.sent.clear()

    with pytest.raises(AuthorizationError):
        service.approve(application_id, credential)

    assert repo.get_by_id(application_id).state is ApplicationState.PENDING
    assert host.calls == []
    assert mailer.sent == []


def test_credential_checked_before_lookup():
    service, _, _, _ = _service()
    with pytest.raises(AuthorizationError):
        service.approve("does-not-exist", "wrong")
    with pytest.raises(AuthorizationError):
        service.reject("does-not-exist", "wrong")
    with pytest.raises(AuthorizationError):
        service.preview_diff("does-not-exist", "wrong")
    with pytest.raises(AuthorizationError):
        service.get("does-not-exist", None)
    with pytest.raises(AuthorizationError):
        service.list_applications("wrong")
    with pytest.raises(AuthorizationError):
        service.edit("does-not-exist", "wrong", name="x")


def test_empty_configured_password_rejects_everything():
    repo = InMemoryApplicationRepository()
    settings = Settings(review_password="", admin_email=ADMIN)
    service = FriendLinkService(settings, repo, FakeLinkHost(), Notifier(RecordingMailer()))
    with pytest.raises(AuthorizationError):
        service.list_applications("")


def test_unknown_id_not_found():
    service, _, _, _ = _service()
    with pytest.raises(NotFoundError):
        service.approve("missing", PASSWORD)
    with pytest.raises(NotFoundError):
        service.reject("missing", PASSWORD, "no")
    with pytest.raises(NotFoundError):
        service.get("missing", PASSWORD)


# --- approve: append flow ---


def test_end_to_end_new_application_append_flow():
    service, repo, host, mailer = _service()
    application_id = service.submit(_profile(), APPLICANT)
    stored = repo.get_by_id(application_id)
    assert stored.state is ApplicationState.PENDING
    assert stored.original_link is None

    result = service.approve(application_id, PASSWORD)

    assert result.kind == "new"
    assert result.pr_url == "https://github.com/o/r/pull/1"
    approved = repo.get_by_id(application_id)
    assert approved.state is ApplicationState.APPROVED
    assert approved.updated_at is not None

    [branch] = host.branches
    assert branch.startswith("add-friend-Dave-httpsdavedev-")
    assert host.written[branch] == LINK_FILE + (
        "\n    - name: Dave"
        "\n      link: https://dave.dev"
        "\n      avatar: https://dave.dev/me.png"
        "\n      descr: Dave's notes"
    )
    [pr] = host.pull_requests
    assert pr["base"] == "main"
    assert pr["title"] == "Friend link application: https://dave.dev"
    assert host.labels == {1: ["friend"]}
    assert host.call_names() == [
        "get_file",
        "get_default_branch",
        "get_branch_head_sha",
        "create_branch",
        "put_file",
        "create_pull_request",
        "add_labels",
    ]
    put = [c for c in host.calls if c[0] == "put_file"][0]
    assert put[3] == "file-sha-1"

    [(to, subject, _)] = mailer.to(APPLICANT)
    assert to == APPLICANT
    assert "approved" in subject


def test_approve_succeeds_when_applicant_mail_fails():
    service, repo, _, _ = _service(mailer=RecordingMailer(raises=True))
    application_id = service.submit(_profile(), APPLICANT)
    result = service.approve(application_id, PASSWORD)
    assert result.pr_number == 1
    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED


def test_external_failure_keeps_approved_state_and_propagates():
    host = FakeLinkHost(fail_on="put_file")
    service, repo, _, mailer = _service(host=host)
    application_id = service.submit(_profile(), APPLICANT)
    mailer.sent.clear()

    with pytest.raises(ExternalServiceError):
        service.approve(application_id, PASSWORD)

    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED
    assert len(host.branches) == 1
    assert host.pull_requests == []
    assert mailer.to(APPLICANT) == []
    [(_, subject, html)] = mailer.to(ADMIN)
    assert "publish failed" in subject
    assert "put_file failed" in html


def test_approve_again_republishes():
    host = FakeLinkHost(fail_on="create_pull_request")
    service, repo, _, _ = _service(host=host)
    application_id = service.submit(_profile(), APPLICANT)
    with pytest.raises(ExternalServiceError):
        service.approve(application_id, PASSWORD)

    host.fail_on = None
    result = service.approve(application_id, PASSWORD)
    assert result.pr_number == 1
    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED


def test_approve_records_pull_request():
    service, repo, _, _ = _service()
    application_id = service.submit(_profile(), APPLICANT)

    service.approve(application_id, PASSWORD)

    stored = repo.get_by_id(application_id)
    assert stored.pr_url == "https://github.com/o/r/pull/1"
    assert stored.pr_number == 1


def test_approve_after_successful_publish_is_refused():
    service, repo, host, mailer = _service()
    application_id = service.submit(_profile(), APPLICANT)
    service.approve(application_id, PASSWORD)
    sent = len(mailer.sent)

    with pytest.raises(StateTransitionError, match="already published"):
        service.approve(application_id, PASSWORD)

    assert len(host.pull_requests) == 1
    assert len(host.branches) == 1
    assert len(mailer.sent) == sent
    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED


# --- approve: patch flow ---


def test_update_application_patches_matched_entry():
    service, repo, host, mailer = _service()
    application_id = service.submit_update(
        "http://www.b.com/", _profile(name="Bob", link="https://bob.rs"), "bob@bob.rs"
    )

    result = service.approve(application_id, PASSWORD)

    assert result.kind == "update"
    [branch] = host.branches
    assert branch.startswith("update-friend-Bob-")
    written = parse_link_list(host.written[branch])
    assert find_entry(written, "b.com") is None
    assert find_entry(written, "bob.rs").name == "Bob"
    assert sum(len(c["link_list"]) for c in written) == 3
    assert host.labels == {1: ["friend", "update"]}
    assert host.pull_requests[0]["title"] == "Friend link update: https://bob.rs"
    assert "\n\n- class_name: Tools" in host.written[branch]
    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED
    assert len(mailer.to("bob@bob.rs")) == 1


def test_update_for_vanished_entry_fails_but_stays_approved():
    service, repo, host, mailer = _service()
    application_id = service.submit_update("https://gone.example", _profile(), APPLICANT)
    mailer.sent.clear()

    with pytest.raises(NotFoundError, match="vanished"):
        service.approve(application_id, PASSWORD)

    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED
    assert host.branches == {}
    assert host.pull_requests == []
    [(_, subject, html)] = mailer.to(ADMIN)
    assert "https://gone.example" in subject
    assert mailer.to(APPLICANT) == []


def test_update_with_broken_link_file_is_external_error():
    host = FakeLinkHost(content="categories: {")
    service, repo, _, _ = _service(host=host)
    application_id = service.submit_update("https://b.com", _profile(), APPLICANT)
    with pytest.raises(ExternalServiceError):
        service.approve(application_id, PASSWORD)
    assert repo.get_by_id(application_id).state is ApplicationState.APPROVED


# --- reject ---


def test_reject_stores_reason_and_notifies_applicant():
    service, repo, host, mailer = _service()
    application_id = service.submit(_profile(), APPLICANT)

    service.reject(application_id, PASSWORD, "No backlink found")

    stored = repo.get_by_id(application_id)
    assert stored.state is ApplicationState.REJECTED
    assert stored.reject_reason == "No backlink found"
    assert stored.updated_at is not None
    assert host.calls == []
    [(_, subject, html)] = mailer.to(APPLICANT)
    assert "not approved" in subject
    assert "No backlink found" in html
    assert ADMIN in html


def test_reject_empty_reason_uses_placeholder():
    service, repo, _, _ = _service()
    application_id = service.submit(_profile(), APPLICANT)
    service.reject(application_id, PASSWORD, "  ")
    assert repo.get_by_id(application_id).reject_reason == "No reason provided"


def test_decisions_cannot_flip():
    service, repo, _, _ = _service()
    rejected = service.submit(_profile(), APPLICANT)
    service.reject(rejected, PASSWORD, "nope")
    with pytest.raises(StateTransitionError):
        service.approve(rejected, PASSWORD)
    assert repo.get_by_id(rejected).state is ApplicationState.REJECTED

    approved = service.submit(_profile(), APPLICANT)
    service.approve(approved, PASSWORD)
    with pytest.raises(StateTransitionError):
        service.reject(approved, PASSWORD, "changed my mind")
    assert repo.get_by_id(approved).state is ApplicationState.APPROVED


# --- preview_diff ---


def test_preview_new_application_has_only_additions():
    service, repo, host, _ = _service()
    application_id = service.submit(_profile(), APPLICANT)
    preview = service.preview_diff(application_id, PASSWORD)
    assert preview.kind == "new"
    assert preview.old_entry == ""
    assert all(line.startswith("+ ") for line in preview.diff.split("\n"))
    assert host.calls == []
    assert repo.get_by_id(application_id).state is ApplicationState.PENDING


def test_preview_update_shows_matched_entry():
    service, repo, _, _ = _service()
    application_id = service.submit_update("b.com", _profile(), APPLICANT)
    preview = service.preview_diff(application_id, PASSWORD)
    assert preview.kind == "update"
    assert preview.old_entry.startswith("- name: Bob\n  link: https://www.b.com\n")
    assert "- - name: Bob" in preview.diff
    assert "+     - name: Dave" in preview.diff
    assert repo.get_by_id(application_id).state is ApplicationState.PENDING


def test_preview_update_missing_entry_uses_placeholder():
    service, _, _, _ = _service()
    application_id = service.submit_update("https://gone.example", _profile(), APPLICANT)
    preview = service.preview_diff(application_id, PASSWORD)
    assert preview.old_entry == "# Original entry not found: https://gone.example"
    assert preview.diff.startswith("- # Original entry not found")


def test_preview_is_idempotent():
    service, repo, _, _ = _service()
    application_id = service.submit_update("https://a.com", _profile(), APPLICANT)
    before = repo.get_by_id(application_id)
    first = service.preview_diff(application_id, PASSWORD)
    second = service.preview_diff(application_id, PASSWORD)
    assert first == second
    assert repo.get_by_id(application_id) == before


def test_preview_network_failure_is_not_not_found():
    host = FakeLinkHost(fail_on="get_file")
    service, _, _, _ = _service(host=host)
    application_id = service.submit_update("https://a.com", _profile(), APPLICANT)
    with pytest.raises(ExternalServiceError):
        service.preview_diff(application_id, PASSWORD)


# --- admin helpers and lookup ---


def test_list_applications_newest_first():
    service, _, _, _ = _service()
    first = service.submit(_profile(name="First"), APPLICANT)
    second = service.submit(_profile(name="Second"), APPLICANT)
    listed = service.list_applications(PASSWORD)
    assert [a.id for a in listed] == [second, first]


def test_edit_updates_fields_but_not_state():
    service, repo, _, _ = _service()
    application_id = service.submit(_profile(), APPLICANT)
    edited = service.edit(application_id, PASSWORD, descr="Better description", name=None)
    assert edited.descr == "Better description"
    assert edited.name == "Dave"
    assert repo.get_by_id(application_id).descr == "Better description"
    assert repo.get_by_id(application_id).updated_at is not None

    with pytest.raises(ValidationError):
        service.edit(application_id, PASSWORD, state="approved")
    with pytest.raises(ValidationError):
        service.edit(application_id, PASSWORD, link="  ")
    assert repo.get_by_id(application_id).state is ApplicationState.PENDING


def test_match_link():
    service, _, _, _ = _service()
    entry = service.match_link("https://www.a.com")
    assert entry.name == "Alice"
    assert service.match_link("https://nobody.example") is None
    with pytest.raises(ValidationError):
        service.match_link("")

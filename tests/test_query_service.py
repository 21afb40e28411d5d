import asyncio

import pytest

from querydesk.application.services import query_service
from querydesk.core.exceptions import (
    ConflictException,
    EntityNotFoundException,
    ForbiddenException,
    InvalidStateTransitionException,
    ValidationException,
)
from querydesk.domain.models.query import ANSWER_MAX_LENGTH, Query, QueryStatus
from querydesk.infrastructure.repositories.query_repository import SQLAlchemyQueryRepository


def _create(query_repo, participant, title="Hostel rooms", description="Do we get bedding?"):
    return query_service.create_query(query_repo, participant, title, description)


def test_full_lifecycle_request_then_answer(query_repo, notifier, participant, team_head):
    query = _create(query_repo, participant)
    assert query.status == QueryStatus.UNASSIGNED
    assert query.assigned_to_id is None

    query = asyncio.run(query_service.request_query(query_repo, notifier, team_head, query.id))
    assert query.status == QueryStatus.ASSIGNED
    assert query.assigned_to_id == team_head.id
    assert query.requested_by_id is None

    query = asyncio.run(
        query_service.answer_query(query_repo, notifier, team_head, query.id, "  Yes, bedding is provided  ")
    )
    assert query.status == QueryStatus.RESOLVED
    assert query.answer == "Yes, bedding is provided"
    assert query.resolved_by_id == team_head.id
    assert query.assigned_to_id == team_head.id

    assert notifier.kinds() == ["assignment", "resolution"]


def test_admin_assign_reassign_and_dismantle(query_repo, user_repo, notifier, participant, admin, team_head, other_team_head):
    query = _create(query_repo, participant)

    query = asyncio.run(
        query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id)
    )
    assert (query.status, query.assigned_to_id) == (QueryStatus.ASSIGNED, team_head.id)

    query = asyncio.run(
        query_service.reassign_query(query_repo, user_repo, notifier, admin, query.id, other_team_head.id)
    )
    assert (query.status, query.assigned_to_id) == (QueryStatus.ASSIGNED, other_team_head.id)

    query = asyncio.run(
        query_service.dismantle_query(query_repo, notifier, admin, query.id, "Asked twice")
    )
    assert query.status == QueryStatus.DISMANTLED
    assert query.dismantled_reason == "Asked twice"
    # dismantling keeps the last assignee
    assert query.assigned_to_id == other_team_head.id
    assert query.answer is None

    assert notifier.calls == [
        ("assignment", query.id, team_head.id),
        ("assignment", query.id, other_team_head.id),
        ("dismantle", query.id, admin.id),
    ]


def test_admin_can_answer_query_assigned_to_someone_else(query_repo, user_repo, notifier, participant, admin, team_head):
    query = _create(query_repo, participant)
    asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id))

    query = asyncio.run(query_service.answer_query(query_repo, notifier, admin, query.id, "Handled by admin"))

    assert query.status == QueryStatus.RESOLVED
    assert query.resolved_by_id == admin.id
    assert query.assigned_to_id == team_head.id


def test_unassigned_query_can_be_dismantled_directly(query_repo, notifier, participant, admin):
    query = _create(query_repo, participant)

    query = asyncio.run(query_service.dismantle_query(query_repo, notifier, admin, query.id, "Spam"))

    assert query.status == QueryStatus.DISMANTLED
    assert query.assigned_to_id is None


@pytest.mark.parametrize("terminal", [QueryStatus.RESOLVED, QueryStatus.DISMANTLED])
def test_terminal_queries_reject_every_transition(
    terminal, query_repo, user_repo, notifier, make_query, participant, admin, team_head
):
    query = make_query(participant, status=terminal, assignee=team_head)

    attempts = [
        lambda: query_service.request_query(query_repo, notifier, team_head, query.id),
        lambda: query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id),
        lambda: query_service.reassign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id),
        lambda: query_service.answer_query(query_repo, notifier, team_head, query.id, "Late answer"),
        lambda: query_service.dismantle_query(query_repo, notifier, admin, query.id, "Late reason"),
    ]
    for attempt in attempts:
        with pytest.raises(InvalidStateTransitionException) as exc_info:
            asyncio.run(attempt())
        assert exc_info.value.current_status == terminal.value
        assert exc_info.value.status_code == 400

    assert query_repo.get_by_id(query.id).status == terminal
    assert notifier.calls == []


def test_invalid_transition_message_lists_allowed_statuses(query_repo, notifier, make_query, participant, team_head):
    query = make_query(participant, status=QueryStatus.RESOLVED, assignee=team_head)

    with pytest.raises(InvalidStateTransitionException) as exc_info:
        asyncio.run(query_service.answer_query(query_repo, notifier, team_head, query.id, "Again"))

    assert exc_info.value.message == "Cannot answer query with status RESOLVED. Allowed statuses: ASSIGNED."
    assert exc_info.value.details == {"current_status": "RESOLVED", "allowed_statuses": ["ASSIGNED"]}


def test_answer_on_unassigned_query_is_invalid_for_admin(query_repo, notifier, participant, admin):
    query = _create(query_repo, participant)

    with pytest.raises(InvalidStateTransitionException):
        asyncio.run(query_service.answer_query(query_repo, notifier, admin, query.id, "Yes"))


def test_reassign_requires_assigned_status(query_repo, user_repo, notifier, participant, admin, team_head):
    query = _create(query_repo, participant)

    with pytest.raises(InvalidStateTransitionException):
        asyncio.run(query_service.reassign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id))


def test_foreign_team_head_is_forbidden_before_status_check(
    query_repo, notifier, make_query, participant, team_head, other_team_head
):
    assigned = make_query(participant, status=QueryStatus.ASSIGNED, assignee=team_head)
    resolved = make_query(participant, status=QueryStatus.RESOLVED, assignee=team_head)

    for query in (assigned, resolved):
        with pytest.raises(ForbiddenException) as exc_info:
            asyncio.run(query_service.answer_query(query_repo, notifier, other_team_head, query.id, "Mine now"))
        assert exc_info.value.message == "Not authorized. Query is not assigned to you."

        with pytest.raises(ForbiddenException):
            asyncio.run(query_service.dismantle_query(query_repo, notifier, other_team_head, query.id, "Nope"))

    assert query_repo.get_by_id(assigned.id).status == QueryStatus.ASSIGNED


def test_team_head_cannot_dismantle_unassigned_query(query_repo, notifier, participant, team_head):
    query = _create(query_repo, participant)

    with pytest.raises(ForbiddenException):
        asyncio.run(query_service.dismantle_query(query_repo, notifier, team_head, query.id, "Not relevant"))


def test_role_gates(query_repo, user_repo, notifier, participant, admin, team_head):
    query = _create(query_repo, participant)

    with pytest.raises(ForbiddenException):
        query_service.create_query(query_repo, team_head, "Title", "Body")
    with pytest.raises(ForbiddenException):
        asyncio.run(query_service.request_query(query_repo, notifier, admin, query.id))
    with pytest.raises(ForbiddenException):
        asyncio.run(query_service.request_query(query_repo, notifier, participant, query.id))
    with pytest.raises(ForbiddenException):
        asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, team_head, query.id, team_head.id))
    with pytest.raises(ForbiddenException):
        asyncio.run(query_service.answer_query(query_repo, notifier, participant, query.id, "Self answer"))


def test_role_gate_runs_before_lookup(query_repo, notifier, participant):
    with pytest.raises(ForbiddenException):
        asyncio.run(query_service.request_query(query_repo, notifier, participant, 9999))


def test_unknown_query_is_not_found(query_repo, user_repo, notifier, admin, team_head):
    with pytest.raises(EntityNotFoundException):
        asyncio.run(query_service.request_query(query_repo, notifier, team_head, 9999))
    with pytest.raises(EntityNotFoundException):
        asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, 9999, team_head.id))
    with pytest.raises(EntityNotFoundException):
        query_service.get_query(query_repo, admin, 9999)


@pytest.mark.parametrize(
    "title, description",
    [("", "Body"), ("Title", "   "), (None, "Body"), ("Title", None)],
)
def test_create_requires_title_and_description(query_repo, participant, title, description):
    with pytest.raises(ValidationException) as exc_info:
        query_service.create_query(query_repo, participant, title, description)
    assert exc_info.value.message == "Please provide title and description"


def test_create_rejects_overlong_title(query_repo, participant):
    with pytest.raises(ValidationException):
        query_service.create_query(query_repo, participant, "x" * 201, "Body")


def test_answer_and_reason_are_required(query_repo, user_repo, notifier, participant, admin, team_head):
    query = _create(query_repo, participant)
    asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id))

    with pytest.raises(ValidationException):
        asyncio.run(query_service.answer_query(query_repo, notifier, team_head, query.id, "   "))
    with pytest.raises(ValidationException):
        asyncio.run(query_service.answer_query(query_repo, notifier, team_head, query.id, "a" * (ANSWER_MAX_LENGTH + 1)))
    with pytest.raises(ValidationException):
        asyncio.run(query_service.dismantle_query(query_repo, notifier, admin, query.id, None))

    assert query_repo.get_by_id(query.id).status == QueryStatus.ASSIGNED


def test_assign_validates_target_team_head(query_repo, user_repo, notifier, participant, other_participant, admin):
    query = _create(query_repo, participant)

    with pytest.raises(ValidationException, match="Please provide team_head_id"):
        asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, None))
    with pytest.raises(ValidationException, match="Team Head not found"):
        asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, 9999))
    with pytest.raises(ValidationException, match="User is not a Team Head"):
        asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, other_participant.id))


def test_participants_only_see_their_own_queries(query_repo, participant, other_participant, admin, team_head):
    mine = _create(query_repo, participant, title="Mine")
    theirs = _create(query_repo, other_participant, title="Theirs")

    assert [q.id for q in query_service.list_queries(query_repo, participant)] == [mine.id]
    assert {q.id for q in query_service.list_queries(query_repo, admin)} == {mine.id, theirs.id}
    assert {q.id for q in query_service.list_queries(query_repo, team_head)} == {mine.id, theirs.id}

    with pytest.raises(ForbiddenException):
        query_service.get_query(query_repo, participant, theirs.id)
    assert query_service.get_query(query_repo, team_head, theirs.id).id == theirs.id


def test_notification_failure_does_not_undo_transition(query_repo, failing_notifier, participant, team_head):
    notifier = failing_notifier
    query = _create(query_repo, participant)

    query = asyncio.run(query_service.request_query(query_repo, notifier, team_head, query.id))
    query = asyncio.run(query_service.answer_query(query_repo, notifier, team_head, query.id, "Yes"))

    assert query.status == QueryStatus.RESOLVED
    assert query_repo.get_by_id(query.id).status == QueryStatus.RESOLVED
    assert notifier.kinds() == ["assignment", "resolution"]


def test_stale_reader_loses_request_race(session_factory, query_repo, notifier, participant, team_head, other_team_head):
    query = _create(query_repo, participant)

    stale_session = session_factory()
    try:
        stale_repo = SQLAlchemyQueryRepository(stale_session, Query)
        assert stale_repo.get_by_id(query.id).status == QueryStatus.UNASSIGNED

        asyncio.run(query_service.request_query(query_repo, notifier, team_head, query.id))

        with pytest.raises(InvalidStateTransitionException) as exc_info:
            asyncio.run(query_service.request_query(stale_repo, notifier, other_team_head, query.id))
        assert exc_info.value.current_status == "ASSIGNED"
    finally:
        stale_session.close()

    fresh = query_repo.get_by_id(query.id)
    assert fresh.assigned_to_id == team_head.id
    assert notifier.calls == [("assignment", query.id, team_head.id)]


def test_stale_assignee_cannot_answer_after_reassignment(
    session_factory, query_repo, user_repo, notifier, participant, admin, team_head, other_team_head
):
    query = _create(query_repo, participant)
    asyncio.run(query_service.assign_query(query_repo, user_repo, notifier, admin, query.id, team_head.id))

    stale_session = session_factory()
    try:
        stale_repo = SQLAlchemyQueryRepository(stale_session, Query)
        assert stale_repo.get_by_id(query.id).assigned_to_id == team_head.id

        asyncio.run(query_service.reassign_query(query_repo, user_repo, notifier, admin, query.id, other_team_head.id))

        with pytest.raises(ForbiddenException):
            asyncio.run(query_service.answer_query(stale_repo, notifier, team_head, query.id, "Stale answer"))
    finally:
        stale_session.close()

    query_repo.db.expire_all()
    fresh = query_repo.get_by_id(query.id)
    assert fresh.status == QueryStatus.ASSIGNED
    assert fresh.answer is None


def test_unexplained_lost_write_is_a_conflict(monkeypatch, query_repo, notifier, participant, team_head):
    query = _create(query_repo, participant)
    monkeypatch.setattr(query_repo, "apply_transition", lambda *args, **kwargs: False)

    with pytest.raises(ConflictException):
        asyncio.run(query_service.request_query(query_repo, notifier, team_head, query.id))

    assert notifier.calls == []

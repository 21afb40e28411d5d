import pytest

from querydesk.domain.models.query import Query, QueryStatus
from querydesk.domain.models.user import Role, User
from querydesk.domain.policies import (
    QueryAction,
    TERMINAL_STATUSES,
    can_perform,
    can_view,
    required_assignee,
    status_permits,
)


def _user(id, role):
    return User(id=id, name=f"u{id}", email=f"u{id}@example.com", password_hash="x", role=role, is_verified=True)


PARTICIPANT = _user(1, Role.PARTICIPANT)
ADMIN = _user(2, Role.ADMIN)
HEAD = _user(3, Role.TEAM_HEAD)
OTHER_HEAD = _user(4, Role.TEAM_HEAD)


def _query(status=QueryStatus.ASSIGNED, assigned_to_id=HEAD.id, created_by_id=PARTICIPANT.id):
    return Query(id=10, title="t", description="d", status=status,
                 created_by_id=created_by_id, assigned_to_id=assigned_to_id)


@pytest.mark.parametrize("action", list(QueryAction))
def test_terminal_statuses_permit_nothing(action):
    if action == QueryAction.CREATE:
        pytest.skip("create has no source status")
    for status in TERMINAL_STATUSES:
        assert not status_permits(action, status)


def test_requested_is_accepted_wherever_unassigned_is():
    for action in (QueryAction.REQUEST, QueryAction.ASSIGN, QueryAction.DISMANTLE):
        assert status_permits(action, QueryStatus.UNASSIGNED)
        assert status_permits(action, QueryStatus.REQUESTED)


def test_answer_needs_assignee_or_admin():
    query = _query()

    assert can_perform(HEAD, QueryAction.ANSWER, query)
    assert can_perform(ADMIN, QueryAction.ANSWER, query)
    assert not can_perform(OTHER_HEAD, QueryAction.ANSWER, query)
    assert not can_perform(PARTICIPANT, QueryAction.ANSWER, query)


def test_unassigned_query_belongs_to_no_team_head():
    query = _query(status=QueryStatus.UNASSIGNED, assigned_to_id=None)

    assert not can_perform(HEAD, QueryAction.DISMANTLE, query)
    assert can_perform(ADMIN, QueryAction.DISMANTLE, query)
    assert can_perform(HEAD, QueryAction.REQUEST, query)


def test_visibility():
    mine = _query()
    theirs = _query(created_by_id=99)

    assert can_view(PARTICIPANT, mine)
    assert not can_view(PARTICIPANT, theirs)
    assert can_view(HEAD, theirs) and can_view(ADMIN, theirs)


def test_write_guard_pins_team_head_ownership_only():
    assert required_assignee(HEAD, QueryAction.ANSWER) == HEAD.id
    assert required_assignee(HEAD, QueryAction.DISMANTLE) == HEAD.id
    assert required_assignee(HEAD, QueryAction.REQUEST) is None
    assert required_assignee(ADMIN, QueryAction.ANSWER) is None

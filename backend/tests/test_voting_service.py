import pytest
from datetime import timedelta

from hubapi.enums import RegistrationStatus
from hubapi.models.event import Event
from hubapi.models.submission import Submission
from hubapi.errors import (
    AlreadyVoted, NotVoted, QuotaExhausted, RegistrationRequired,
    SelfVoteForbidden, SubmissionNotFound, VotingClosed, VotingNotEnabled,
)
from hubapi.services import voting
from helpers import make_event, make_submission, make_user, now, register


async def _voting_event(session_factory, *, voting=None, registered=True, **event_fields):
    """Organizer, one registered voter and four submissions led by other users."""
    async with session_factory() as s:
        organizer = await make_user(s, "organizer")
        voter = await make_user(s, "voter")
        ev = await make_event(s, organizer, voting=voting, **event_fields)
        if registered:
            await register(s, ev, voter)
        subs = []
        for title in ("A", "B", "C", "D"):
            leader = await make_user(s, "leader")
            subs.append(await make_submission(s, ev, leader, title=title))
    return ev.id, voter.id, [sub.id for sub in subs]

async def _vote(session_factory, user_id, submission_id, event_id):
    async with session_factory() as s:
        return await voting.cast_vote(s, user_id=user_id, submission_id=submission_id, event_id=event_id)

async def _unvote(session_factory, user_id, submission_id, event_id):
    async with session_factory() as s:
        return await voting.revoke_vote(s, user_id=user_id, submission_id=submission_id, event_id=event_id)


@pytest.mark.asyncio
async def test_quota_counts_down_then_exhausts(session_factory):
    event_id, voter_id, (a, b, c, d) = await _voting_event(session_factory)

    remaining = [(await _vote(session_factory, voter_id, sid, event_id)).remaining_votes for sid in (a, b, c)]
    assert remaining == [2, 1, 0]

    with pytest.raises(QuotaExhausted):
        await _vote(session_factory, voter_id, d, event_id)

    async with session_factory() as s:
        assert await voting.get_remaining_votes(s, voter_id, event_id) == 0
        assert sorted(await voting.voted_submission_ids(s, voter_id, event_id)) == sorted([a, b, c])


@pytest.mark.asyncio
async def test_unvote_frees_a_vote(session_factory):
    event_id, voter_id, (a, b, c, d) = await _voting_event(session_factory)
    for sid in (a, b, c):
        await _vote(session_factory, voter_id, sid, event_id)

    result = await _unvote(session_factory, voter_id, b, event_id)
    assert result.remaining_votes == 1
    assert result.vote_count == 0

    result = await _vote(session_factory, voter_id, d, event_id)
    assert result.remaining_votes == 0
    assert result.vote_count == 1


@pytest.mark.asyncio
async def test_team_cannot_vote_for_own_submission(session_factory):
    async with session_factory() as s:
        organizer = await make_user(s, "organizer")
        leader = await make_user(s, "leader")
        teammate = await make_user(s, "mate")
        ev = await make_event(s, organizer)
        await register(s, ev, leader)
        await register(s, ev, teammate)
        sub = await make_submission(s, ev, leader, members=(teammate,))

    for user_id in (leader.id, teammate.id):
        with pytest.raises(SelfVoteForbidden):
            await _vote(session_factory, user_id, sub.id, ev.id)

    async with session_factory() as s:
        # quota untouched
        assert await voting.get_remaining_votes(s, leader.id, ev.id) == 3


@pytest.mark.asyncio
async def test_double_vote_is_rejected(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory)
    await _vote(session_factory, voter_id, a, event_id)

    with pytest.raises(AlreadyVoted):
        await _vote(session_factory, voter_id, a, event_id)

    async with session_factory() as s:
        assert await voting.get_remaining_votes(s, voter_id, event_id) == 2


@pytest.mark.asyncio
async def test_unique_constraint_maps_to_already_voted(session_factory, monkeypatch):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory)
    await _vote(session_factory, voter_id, a, event_id)

    # Simulate a concurrent request that passed the pre-check before the first insert landed
    async def _no_existing_vote(*args, **kwargs):
        return None
    monkeypatch.setattr(voting, "_find_vote", _no_existing_vote)

    with pytest.raises(AlreadyVoted):
        await _vote(session_factory, voter_id, a, event_id)

    async with session_factory() as s:
        assert await voting.count_user_votes(s, voter_id, event_id) == 1


@pytest.mark.asyncio
async def test_like_mode_is_unlimited(session_factory):
    event_id, voter_id, subs = await _voting_event(session_factory, voting={"mode": "PER_PROJECT_LIKE"})

    for sid in subs:
        result = await _vote(session_factory, voter_id, sid, event_id)
        assert result.remaining_votes is None

    async with session_factory() as s:
        assert await voting.get_remaining_votes(s, voter_id, event_id) is None
        assert await voting.count_user_votes(s, voter_id, event_id) == 4


@pytest.mark.asyncio
async def test_closed_flag_blocks_votes(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory, voting_open=False)
    with pytest.raises(VotingClosed):
        await _vote(session_factory, voter_id, a, event_id)


@pytest.mark.asyncio
async def test_vote_outside_window_is_closed(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(
        session_factory, voting_ends_at=now() - timedelta(minutes=1),
    )
    with pytest.raises(VotingClosed):
        await _vote(session_factory, voter_id, a, event_id)

    event_id, voter_id, (a, *_rest) = await _voting_event(
        session_factory, voting_starts_at=now() + timedelta(hours=1),
    )
    with pytest.raises(VotingClosed):
        await _vote(session_factory, voter_id, a, event_id)


@pytest.mark.asyncio
async def test_public_voting_disabled(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory, voting={"allow_public_voting": False})
    with pytest.raises(VotingNotEnabled):
        await _vote(session_factory, voter_id, a, event_id)


@pytest.mark.asyncio
async def test_participants_scope_needs_active_registration(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory, registered=False)
    with pytest.raises(RegistrationRequired):
        await _vote(session_factory, voter_id, a, event_id)


@pytest.mark.asyncio
async def test_cancelled_registration_does_not_count(session_factory):
    async with session_factory() as s:
        organizer = await make_user(s, "organizer")
        voter = await make_user(s, "voter")
        leader = await make_user(s, "leader")
        ev = await make_event(s, organizer)
        await register(s, ev, voter, RegistrationStatus.CANCELLED)
        sub = await make_submission(s, ev, leader)

    with pytest.raises(RegistrationRequired):
        await _vote(session_factory, voter.id, sub.id, ev.id)


@pytest.mark.asyncio
async def test_open_scopes_skip_registration(session_factory):
    for scope in ("ALL", "REGISTERED"):
        event_id, voter_id, (a, *_rest) = await _voting_event(
            session_factory, voting={"scope": scope}, registered=False,
        )
        result = await _vote(session_factory, voter_id, a, event_id)
        assert result.remaining_votes == 2


@pytest.mark.asyncio
async def test_submission_must_belong_to_event(session_factory):
    event_id, voter_id, _subs = await _voting_event(session_factory)
    _other_event, _other_voter, (foreign, *_rest) = await _voting_event(session_factory)
    with pytest.raises(SubmissionNotFound):
        await _vote(session_factory, voter_id, foreign, event_id)


@pytest.mark.asyncio
async def test_unvote_without_vote(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory)
    with pytest.raises(NotVoted):
        await _unvote(session_factory, voter_id, a, event_id)


@pytest.mark.asyncio
async def test_unvote_after_voting_closes(session_factory):
    event_id, voter_id, (a, *_rest) = await _voting_event(session_factory)
    await _vote(session_factory, voter_id, a, event_id)

    async with session_factory() as s:
        ev = await s.get(Event, event_id)
        ev.voting_open = False
        await s.commit()

    with pytest.raises(VotingClosed):
        await _unvote(session_factory, voter_id, a, event_id)


@pytest.mark.asyncio
async def test_vote_count_includes_base_and_adjustment(session_factory):
    async with session_factory() as s:
        organizer = await make_user(s, "organizer")
        voter = await make_user(s, "voter")
        leader = await make_user(s, "leader")
        ev = await make_event(s, organizer, voting={"scope": "ALL"})
        sub = await make_submission(s, ev, leader, base_vote_count=5, manual_vote_adjustment=-2)

    result = await _vote(session_factory, voter.id, sub.id, ev.id)
    assert result.vote_count == 4

    async with session_factory() as s:
        sub = await s.get(Submission, sub.id)
        await voting.override_vote_count(s, sub, 10)
        await s.commit()
        assert await voting.submission_vote_count(s, sub) == 10

        await voting.override_vote_count(s, sub, 0)
        await s.commit()
        assert await voting.submission_vote_count(s, sub) == 0


@pytest.mark.asyncio
async def test_voting_stats(session_factory):
    event_id, voter_id, (a, b, c, d) = await _voting_event(session_factory, voting={"scope": "ALL"})
    async with session_factory() as s:
        second = await make_user(s, "second")
    await _vote(session_factory, voter_id, a, event_id)
    await _vote(session_factory, voter_id, b, event_id)
    await _vote(session_factory, second.id, b, event_id)

    async with session_factory() as s:
        stats = await voting.voting_stats(s, event_id)

    assert stats.total_votes == 3
    assert stats.unique_voters == 2
    assert stats.total_participants == 1
    assert [t.id for t in stats.top_submissions[:2]] == [b, a]
    assert stats.top_submissions[0].vote_count == 2
    assert stats.top_submissions[0].rank == 1
    assert len(stats.top_submissions) == 4


@pytest.mark.asyncio
async def test_recount_rolls_back_overshoot(session_factory, monkeypatch):
    event_id, voter_id, (a, b, c, d) = await _voting_event(session_factory)
    for sid in (a, b, c):
        await _vote(session_factory, voter_id, sid, event_id)

    # A racing request already spent the budget after this one passed its pre-check
    real_count = voting.count_user_votes
    calls = []

    async def _stale_first_count(session, user_id, event_id):
        calls.append(user_id)
        if len(calls) == 1:
            return 0
        return await real_count(session, user_id, event_id)

    monkeypatch.setattr(voting, "count_user_votes", _stale_first_count)

    with pytest.raises(QuotaExhausted):
        await _vote(session_factory, voter_id, d, event_id)
    assert len(calls) == 2

    monkeypatch.undo()
    async with session_factory() as s:
        assert await voting.count_user_votes(s, voter_id, event_id) == 3
        assert d not in await voting.voted_submission_ids(s, voter_id, event_id)

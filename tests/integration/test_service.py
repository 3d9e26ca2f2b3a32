"""
Service Integration Tests

Read paths publish whole snapshots; write paths are gated by the caller's
profile and insert optimistic entries only after a successful submission.
"""

import asyncio

import pytest

from reputation.contracts.base import (
    ProfileLockedError, ProfileNotFoundError, ProfilePendingError, SubmissionError,
)
from reputation.service import SPAM_PLACEHOLDER_TEXT

from conftest import StaticWallet, hex_id

DISCUSSION = "market-thread"
PROFILE = hex_id(0x7777)
ROOT = hex_id(0x101)
REPLY = hex_id(0x201)
OTHER_TOKEN = hex_id(0x8888)


def _seed(ledger, config, alice, bob, profile_locked=False, profile_amount=100):
    ledger.emissions[PROFILE] = config.profile_total_supply
    ledger.emissions[OTHER_TOKEN] = 10
    ledger.blocks['b1'] = 1700000000000
    ledger.add_box(hex_id(1), PROFILE, config.profile_type_id, PROFILE, alice.commitment,
                   locked=profile_locked, amount=profile_amount, content={"name": "alice"})
    ledger.add_box(ROOT, PROFILE, config.discussion_type_id, DISCUSSION, alice.commitment,
                   content="first!", block_id='b1')
    ledger.add_box(REPLY, OTHER_TOKEN, config.comment_type_id, ROOT, bob.commitment,
                   content="welcome", block_id='b1')


def _run(service, action):
    async def scenario():
        async with service:
            return await action(service)
    return asyncio.run(scenario())


class TestReadPaths:

    def test_load_threads_publishes_snapshot(self, ledger, config, alice, bob, make_service):
        _seed(ledger, config, alice, bob)
        service = make_service()
        snapshot = _run(service, lambda s: s.load_threads(DISCUSSION))

        assert service.store.get_thread(DISCUSSION) is snapshot
        assert [c.id for c in snapshot.comments] == [ROOT]
        assert snapshot.comments[0].replies[0].text == "welcome"
        assert service.store.discussion_of(REPLY) == DISCUSSION

    def test_anonymous_proof_listing_covers_every_owner(self, ledger, config, alice, bob,
                                                        make_service):
        _seed(ledger, config, alice, bob)
        service = make_service()
        result = _run(service, lambda s: s.load_proofs())

        assert {p.token_id for p in result.proofs} == {PROFILE, OTHER_TOKEN}
        assert not any(p.can_be_spend for p in result.proofs)
        assert service.store.proofs is result

    def test_wallet_listing_is_narrowed_to_the_caller(self, ledger, config, alice, bob,
                                                      make_service):
        _seed(ledger, config, alice, bob)
        service = make_service(wallet=StaticWallet(alice.address))
        result = _run(service, lambda s: s.load_proofs())

        assert [p.token_id for p in result.proofs] == [PROFILE]
        assert result.proofs[0].can_be_spend

        everyone = _run(make_service(wallet=StaticWallet(alice.address)),
                        lambda s: s.load_proofs(all_owners=True))
        assert len(everyone) == 2

    def test_load_types_publishes_registry(self, ledger, config, make_service):
        ledger.add_type(hex_id(0xABC), "Review")
        service = make_service()
        registry = _run(service, lambda s: s.load_types())

        assert service.store.types is registry
        assert registry.get(hex_id(0xABC)).type_name == "Review"

    def test_load_profile(self, ledger, config, alice, bob, make_service):
        _seed(ledger, config, alice, bob)
        service = make_service(wallet=StaticWallet(alice.address))
        profile = _run(service, lambda s: s.load_profile())

        assert profile.token_id == PROFILE
        assert service.profiles.repository.get() is profile


class TestWritePaths:

    def test_post_comment_submits_and_inserts_pending(self, ledger, config, alice, bob,
                                                      submitter, make_service):
        _seed(ledger, config, alice, bob)
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)

        async def action(s):
            await s.load_threads(DISCUSSION)
            return await s.post_comment(DISCUSSION, "hello market")

        pending = _run(service, action)

        assert len(submitter.calls) == 1
        call = submitter.calls[0]
        assert call['type_id'] == config.discussion_type_id
        assert call['target_pointer'] == DISCUSSION
        assert call['content'] == "hello market"
        assert call['amount'] == 1
        assert call['total_supply'] == config.profile_total_supply
        assert call['locked'] is True
        assert call['input_box'].box_id == hex_id(1)

        assert pending.submitting is True
        assert pending.author_profile_token_id == PROFILE
        thread = service.store.get_thread(DISCUSSION)
        assert thread.comments[0].id == pending.id
        assert thread.node_count == 3

    def test_reply_lands_under_its_parent(self, ledger, config, alice, bob, submitter,
                                          make_service):
        _seed(ledger, config, alice, bob)
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)

        async def action(s):
            await s.load_threads(DISCUSSION)
            return await s.reply_to_comment(REPLY, "thanks")

        pending = _run(service, action)

        assert submitter.calls[0]['type_id'] == config.comment_type_id
        assert submitter.calls[0]['target_pointer'] == REPLY
        assert pending.discussion == DISCUSSION
        reply = service.store.get_thread(DISCUSSION).find(REPLY)
        assert [r.id for r in reply.replies] == [pending.id]

    def test_flag_spam_marks_published_comment(self, ledger, config, alice, bob, submitter,
                                               make_service):
        _seed(ledger, config, alice, bob)
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)

        async def action(s):
            await s.load_threads(DISCUSSION)
            return await s.flag_spam(REPLY)

        _run(service, action)

        assert submitter.calls[0]['type_id'] == config.spam_flag_type_id
        flagged = service.store.get_thread(DISCUSSION).find(REPLY)
        assert flagged.is_spam
        assert flagged.text == SPAM_PLACEHOLDER_TEXT

    def test_missing_profile_blocks_the_comment(self, ledger, config, alice, submitter,
                                                make_service):
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)

        with pytest.raises(ProfilePendingError):
            _run(service, lambda s: s.post_comment(DISCUSSION, "hi"))

        assert len(submitter.calls) == 1
        assert submitter.calls[0]['type_id'] == config.profile_type_id
        assert service.store.get_thread(DISCUSSION) is None

    def test_locked_profile_blocks_the_comment(self, ledger, config, alice, bob, submitter,
                                               make_service):
        _seed(ledger, config, alice, bob, profile_locked=True)
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)

        with pytest.raises(ProfileLockedError):
            _run(service, lambda s: s.post_comment(DISCUSSION, "hi"))
        assert submitter.calls == []

    def test_no_wallet_raises_not_found(self, config, submitter, make_service):
        service = make_service(submitter=submitter)
        with pytest.raises(ProfileNotFoundError):
            _run(service, lambda s: s.post_comment(DISCUSSION, "hi"))

    def test_no_submitter_raises(self, config, alice, make_service):
        service = make_service(wallet=StaticWallet(alice.address))
        with pytest.raises(SubmissionError):
            _run(service, lambda s: s.post_comment(DISCUSSION, "hi"))

    def test_failed_submission_inserts_nothing(self, ledger, config, alice, bob, submitter,
                                               make_service):
        _seed(ledger, config, alice, bob)
        submitter.error = RuntimeError("rejected")
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)

        async def action(s):
            await s.load_threads(DISCUSSION)
            await s.post_comment(DISCUSSION, "hello")

        with pytest.raises(SubmissionError):
            _run(service, action)
        assert service.store.get_thread(DISCUSSION).node_count == 2

    def test_empty_text_is_rejected(self, config, alice, submitter, make_service):
        service = make_service(wallet=StaticWallet(alice.address), submitter=submitter)
        with pytest.raises(ValueError):
            _run(service, lambda s: s.post_comment(DISCUSSION, "   "))
        assert submitter.calls == []

import queue

import pytest

from kaspaindex.checkpoint import (
    CheckpointBlock,
    CheckpointOrigin,
    CheckpointTracker,
    process_checkpoints,
)
from kaspaindex.types import Hash

H1 = Hash(bytes([1]) * 32)
H2 = Hash(bytes([2]) * 32)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def block(origin, h=H1, blue_score=100):
    return CheckpointBlock(origin=origin, hash=h, timestamp=1000, daa_score=blue_score, blue_score=blue_score)


@pytest.fixture
def clock():
    return FakeClock()


def make_tracker(clock, saved, **kwargs):
    return CheckpointTracker(save=saved.append, net_bps=10, clock=clock, **kwargs)


def test_no_candidate_before_save_interval(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 30
    assert tracker.process(block(CheckpointOrigin.VCP)) is None
    assert tracker.candidate is None
    assert saved == []


def test_vcp_then_blocks_then_transactions_saves(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    assert tracker.process(block(CheckpointOrigin.VCP)) is None
    assert tracker.candidate == block(CheckpointOrigin.VCP)
    assert tracker.process(block(CheckpointOrigin.BLOCKS)) is None
    result = tracker.process(block(CheckpointOrigin.TRANSACTIONS))
    assert result == block(CheckpointOrigin.VCP)
    assert saved == [str(H1)]
    assert tracker.candidate is None
    assert tracker.last_saved_block == result


def test_already_processed_blocks_save_immediately(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.BLOCKS))
    tracker.process(block(CheckpointOrigin.TRANSACTIONS))
    assert tracker.process(block(CheckpointOrigin.VCP)) is not None
    assert saved == [str(H1)]


def test_disabled_transaction_processing_needs_only_blocks(clock):
    saved = []
    tracker = make_tracker(clock, saved, disable_transaction_processing=True)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.VCP))
    tracker.process(block(CheckpointOrigin.BLOCKS))
    assert saved == [str(H1)]


def test_disabled_vcp_selects_from_blocks(clock):
    saved = []
    tracker = make_tracker(clock, saved, disable_virtual_chain_processing=True)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.BLOCKS))
    assert tracker.candidate is not None
    assert saved == []
    tracker.process(block(CheckpointOrigin.TRANSACTIONS))
    assert saved == [str(H1)]


def test_no_new_candidate_until_interval_after_save(clock):
    saved = []
    tracker = make_tracker(clock, saved, disable_transaction_processing=True)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.VCP))
    tracker.process(block(CheckpointOrigin.BLOCKS))
    clock.now = 70
    tracker.process(block(CheckpointOrigin.VCP, H2))
    assert tracker.candidate is None
    assert saved == [str(H1)]


def test_mismatched_hash_keeps_candidate(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.VCP))
    tracker.process(block(CheckpointOrigin.BLOCKS, H2))
    tracker.process(block(CheckpointOrigin.TRANSACTIONS, H2))
    assert saved == []
    assert tracker.candidate.hash == H1


def test_candidate_dropped_after_failed_timeout(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.VCP, blue_score=100))
    far = 100 + 600 * 10 + 1
    tracker.process(block(CheckpointOrigin.BLOCKS, H2, blue_score=far))
    assert tracker.candidate is not None
    tracker.process(block(CheckpointOrigin.TRANSACTIONS, H2, blue_score=far))
    assert tracker.candidate is None
    assert saved == []


def test_warning_keeps_candidate(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    tracker.process(block(CheckpointOrigin.VCP))
    clock.now = 61 + 121
    tracker.process(block(CheckpointOrigin.BLOCKS, H2))
    assert tracker.candidate.hash == H1
    assert saved == []


def test_save_errors_propagate(clock):
    def failing(_):
        raise RuntimeError("db down")

    tracker = CheckpointTracker(
        save=failing, net_bps=10, disable_transaction_processing=True, clock=clock
    )
    clock.now = 61
    tracker.process(block(CheckpointOrigin.VCP))
    with pytest.raises(RuntimeError):
        tracker.process(block(CheckpointOrigin.BLOCKS))


def test_process_checkpoints_drains_queue(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    q = queue.Queue()
    for origin in (CheckpointOrigin.VCP, CheckpointOrigin.BLOCKS, CheckpointOrigin.TRANSACTIONS):
        q.put(block(origin))
    process_checkpoints(tracker, q, q.empty, poll_interval=0)
    assert q.empty()
    assert saved == [str(H1)]


def test_initial_origin_is_ignored(clock):
    saved = []
    tracker = make_tracker(clock, saved)
    clock.now = 61
    assert tracker.process(block(CheckpointOrigin.INITIAL)) is None
    assert tracker.candidate is None
    assert CheckpointOrigin.INITIAL.value == "Initial"
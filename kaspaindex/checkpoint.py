"""Selection and saving of block checkpoints once all processors have caught up."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from queue import Empty, Queue

from kaspaindex.types import Hash

logger = logging.getLogger(__name__)

CHECKPOINT_SAVE_INTERVAL = 60
CHECKPOINT_WARN_INTERVAL = 120
CHECKPOINT_FAILED_TIMEOUT = 600


class CheckpointOrigin(Enum):
    """The processor that reported a block."""

    BLOCKS = "Blocks"
    TRANSACTIONS = "Transactions"
    VCP = "Vcp"
    INITIAL = "Initial"  # only set at startup, ignored by checkpoint processing


@dataclass(frozen=True)
class CheckpointBlock:
    origin: CheckpointOrigin
    hash: Hash
    timestamp: int
    daa_score: int
    blue_score: int


@dataclass
class CheckpointTracker:
    """Picks checkpoint candidates and saves them once blocks and transactions have both covered them.

    ``save`` receives the hex form of the checkpoint hash; ``clock`` returns seconds.
    """

    save: Callable[[str], object]
    net_bps: int
    disable_virtual_chain_processing: bool = False
    disable_transaction_processing: bool = False
    clock: Callable[[], float] = time.monotonic
    candidate: CheckpointBlock | None = field(default=None, init=False)
    last_saved_block: CheckpointBlock | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        now = self.clock()
        self._last_saved = now
        self._last_warned = now
        self._last_block_blue_score = 0
        self._last_tx_blue_score = 0
        self._blocks_processed: set[Hash] = set()
        self._txs_processed: set[Hash] = set()
        self._ok_blocks = False
        self._ok_txs = False

    def _elapsed(self, since: float) -> int:
        return int(self.clock() - since)

    def _select(self, block: CheckpointBlock, ok_blocks: bool) -> None:
        if self.candidate is None and self._elapsed(self._last_saved) > CHECKPOINT_SAVE_INTERVAL:
            logger.debug("Selected block_checkpoint candidate %s", block.hash)
            self.candidate = block
            self._last_warned = self.clock()
            self._ok_blocks = ok_blocks
            self._ok_txs = False

    def process(self, checkpoint_block: CheckpointBlock) -> CheckpointBlock | None:
        """Handle one reported block; return the checkpoint saved as a result, if any."""
        origin = checkpoint_block.origin
        if origin is CheckpointOrigin.BLOCKS:
            self._last_block_blue_score = checkpoint_block.blue_score
            if self.disable_virtual_chain_processing:
                self._select(checkpoint_block, ok_blocks=True)
            else:
                self._blocks_processed.add(checkpoint_block.hash)
        elif origin is CheckpointOrigin.TRANSACTIONS:
            self._last_tx_blue_score = checkpoint_block.blue_score
            self._txs_processed.add(checkpoint_block.hash)
        elif origin is CheckpointOrigin.VCP:
            self._select(checkpoint_block, ok_blocks=False)

        checkpoint = self.candidate
        if checkpoint is None:
            return None

        checkpoint_string = str(checkpoint.hash)
        if not self._ok_blocks and checkpoint.hash in self._blocks_processed:
            self._ok_blocks = True
        self._blocks_processed = set()
        if not self._ok_txs and (
            self.disable_transaction_processing or checkpoint.hash in self._txs_processed
        ):
            self._ok_txs = True
        self._txs_processed = set()

        threshold = checkpoint.blue_score + CHECKPOINT_FAILED_TIMEOUT * self.net_bps
        if self._ok_blocks and self._ok_txs:
            logger.info("Saving block_checkpoint %s", checkpoint_string)
            self.save(checkpoint_string)
            self.last_saved_block = checkpoint
            self._last_saved = self.clock()
            self.candidate = None
            return checkpoint
        if self._elapsed(self._last_warned) > CHECKPOINT_WARN_INTERVAL:
            logger.warning("Still unable to save block_checkpoint %s", checkpoint_string)
            self._last_warned = self.clock()
        elif self._last_block_blue_score > threshold and (
            self.disable_transaction_processing or self._last_tx_blue_score > threshold
        ):
            logger.error("Failed to synchronize on block_checkpoint %s", checkpoint_string)
            self._last_saved = self.clock()  # reset to avoid selecting again at once
            self.candidate = None
        return None


def process_checkpoints(
    tracker: CheckpointTracker,
    queue: Queue,
    is_shutdown: Callable[[], bool],
    poll_interval: float = 0.1,
) -> None:
    """Feed blocks from the queue to the tracker until shutdown is requested."""
    while not is_shutdown():
        try:
            block = queue.get_nowait()
        except Empty:
            time.sleep(poll_interval)
            continue
        tracker.process(block)
"""Delete and prune statements for the indexer's PostgreSQL schema."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from kaspaindex.statements import Executor
from kaspaindex.types import Hash

logger = logging.getLogger(__name__)


def _raw_list(values: Iterable[Hash]) -> list[bytes]:
    return [v.as_bytes() for v in values]


def _prune_in_batches(sql: str, block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Run a batched delete until it affects no rows; return the total affected."""
    total = 0
    while rows := executor.execute(sql, (block_time_lt, batch_size)):
        total += rows
    return total


def delete_transaction_acceptances(block_hashes: Sequence[Hash], executor: Executor) -> int:
    """Delete the acceptances recorded for the given blocks."""
    return executor.execute(
        "DELETE FROM transactions_acceptances WHERE block_hash = ANY($1)",
        (_raw_list(block_hashes),),
    )


_PRUNE_BLOCK_PARENT = """
        DELETE FROM block_parent
        WHERE ctid IN (
            SELECT bp.ctid
            FROM block_parent bp
            JOIN blocks b ON bp.block_hash = b.hash
            WHERE b.timestamp < $1
            LIMIT $2
        )
    """

_PRUNE_BLOCKS_TRANSACTIONS_USING_BLOCKS = """
        DELETE FROM blocks_transactions
        WHERE ctid IN (
            SELECT bt.ctid
            FROM blocks_transactions bt
            JOIN blocks b ON bt.block_hash = b.hash
            WHERE b.timestamp < $1
            LIMIT $2
        )
    """

_PRUNE_BLOCKS_TRANSACTIONS_USING_TRANSACTIONS = """
        DELETE FROM blocks_transactions
        WHERE ctid IN (
            SELECT bt.ctid
            FROM blocks_transactions bt
            JOIN transactions t ON bt.transaction_id = t.transaction_id
            WHERE t.block_time < $1
            LIMIT $2
        )
    """

_PRUNE_TRANSACTIONS_ACCEPTANCES_USING_BLOCKS = """
        DELETE FROM transactions_acceptances
        WHERE ctid IN (
            SELECT ta.ctid
            FROM transactions_acceptances ta
            JOIN blocks b ON ta.block_hash = b.hash
            WHERE b.timestamp < $1
            LIMIT $2
        )
    """

_PRUNE_BLOCKS = """
        DELETE FROM blocks
        WHERE ctid IN (
            SELECT b.ctid
            FROM blocks b
            WHERE b.timestamp < $1
            LIMIT $2
        )
    """

_PRUNE_ADDRESSES_TRANSACTIONS = """
        DELETE FROM addresses_transactions
        WHERE ctid IN (
            SELECT a.ctid
            FROM addresses_transactions a
            WHERE a.block_time < $1
            LIMIT $2
        )
    """

_PRUNE_SCRIPTS_TRANSACTIONS = """
        DELETE FROM scripts_transactions
        WHERE ctid IN (
            SELECT s.ctid
            FROM scripts_transactions s
            WHERE s.block_time < $1
            LIMIT $2
        )
    """


def prune_block_parent(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete parent links of blocks older than block_time_lt."""
    return _prune_in_batches(_PRUNE_BLOCK_PARENT, block_time_lt, batch_size, executor)


def prune_blocks_transactions_using_blocks(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete block/transaction links of blocks older than block_time_lt."""
    return _prune_in_batches(_PRUNE_BLOCKS_TRANSACTIONS_USING_BLOCKS, block_time_lt, batch_size, executor)


def prune_blocks_transactions_using_transactions(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete block/transaction links of transactions older than block_time_lt."""
    return _prune_in_batches(
        _PRUNE_BLOCKS_TRANSACTIONS_USING_TRANSACTIONS, block_time_lt, batch_size, executor
    )


def prune_transactions_acceptances_using_blocks(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete acceptances recorded by blocks older than block_time_lt."""
    return _prune_in_batches(
        _PRUNE_TRANSACTIONS_ACCEPTANCES_USING_BLOCKS, block_time_lt, batch_size, executor
    )


def prune_blocks(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete blocks older than block_time_lt."""
    return _prune_in_batches(_PRUNE_BLOCKS, block_time_lt, batch_size, executor)


def prune_transactions(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Prune expired transactions chunk by chunk until a chunk removes nothing."""
    total = 0
    while rows := prune_transactions_chunk(block_time_lt, batch_size, executor):
        total += rows
    return total


def prune_transactions_chunk(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Prune one chunk of expired transactions and their dependent rows in a single transaction."""
    total = 0
    with executor.transaction() as tx:
        # A sequential scan is never a good plan when pruning.
        tx.execute("SET LOCAL enable_seqscan = off", ())

        expired = [
            Hash(row[0])
            for row in tx.fetch_all(
                "DELETE FROM transactions WHERE ctid IN "
                "(SELECT t.ctid FROM transactions t WHERE t.block_time < $1 LIMIT $2) "
                "RETURNING transaction_id",
                (block_time_lt, batch_size),
            )
        ]
        total += len(expired)
        logger.debug("prune_transactions: Found & deleted %d expired transactions", len(expired))

        accepted_set = {
            Hash(row[0])
            for row in tx.fetch_all(
                "SELECT transaction_id FROM transactions_acceptances WHERE transaction_id = ANY($1)",
                (_raw_list(expired),),
            )
        }
        accepted = list(dict.fromkeys(h for h in expired if h in accepted_set))
        rejected = [h for h in expired if h not in accepted_set]
        logger.debug("prune_transactions: Found %d expired rejected transactions", len(rejected))

        rows = tx.execute(
            "DELETE FROM transactions_inputs WHERE transaction_id = ANY($1)", (_raw_list(rejected),)
        )
        logger.debug("prune_transactions: Deleted %d expired rejected transactions_inputs", rows)
        total += rows

        rows = tx.execute(
            "DELETE FROM transactions_outputs WHERE transaction_id = ANY($1)", (_raw_list(rejected),)
        )
        logger.debug("prune_transactions: Deleted %d expired rejected transactions_outputs", rows)
        total += rows

        spent_outputs = [
            (Hash(row[0]), row[1])
            for row in tx.fetch_all(
                "DELETE FROM transactions_inputs WHERE transaction_id = ANY($1) "
                "RETURNING previous_outpoint_hash, previous_outpoint_index",
                (_raw_list(accepted),),
            )
        ]
        logger.debug("prune_transactions: Deleted %d expired transactions_inputs", len(spent_outputs))
        total += len(spent_outputs)

        rows = tx.execute(
            "DELETE FROM transactions_outputs WHERE (transaction_id, index) IN (SELECT * FROM UNNEST($1, $2))",
            ([h.as_bytes() for h, _ in spent_outputs], [i for _, i in spent_outputs]),
        )
        logger.debug("prune_transactions: Deleted %d expired spent transactions_outputs", rows)
        total += rows

        possibly_spent = list(dict.fromkeys(h for h, _ in spent_outputs))
        unspent = {
            Hash(row[0])
            for row in tx.fetch_all(
                "SELECT transaction_id FROM transactions_outputs WHERE transaction_id = ANY($1)",
                (_raw_list(possibly_spent),),
            )
        }
        fully_spent = [h for h in possibly_spent if h not in unspent]
        logger.debug("prune_transactions: Found %d expired fully spent transactions", len(fully_spent))

        rows = tx.execute(
            "DELETE FROM transactions_acceptances WHERE transaction_id = ANY($1)",
            (_raw_list(fully_spent),),
        )
        logger.debug("prune_transactions: Pruned %d expired spent transactions_acceptances", rows)
        total += rows
    return total


def prune_addresses_transactions(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete address rows older than block_time_lt."""
    return _prune_in_batches(_PRUNE_ADDRESSES_TRANSACTIONS, block_time_lt, batch_size, executor)


def prune_scripts_transactions(block_time_lt: int, batch_size: int, executor: Executor) -> int:
    """Delete script rows older than block_time_lt."""
    return _prune_in_batches(_PRUNE_SCRIPTS_TRANSACTIONS, block_time_lt, batch_size, executor)
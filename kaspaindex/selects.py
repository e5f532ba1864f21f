"""Select queries against the indexer's PostgreSQL schema."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from kaspaindex.models import Block, DatabaseDetails, SequencingCommitment, Subnetwork, TableDetails
from kaspaindex.statements import Executor
from kaspaindex.types import Hash


def _fetch_one(executor: Executor, sql: str, params: Sequence[Any]) -> tuple:
    rows = executor.fetch_all(sql, params)
    if not rows:
        raise LookupError("Query returned no rows")
    return rows[0]


def _fetch_optional(executor: Executor, sql: str, params: Sequence[Any]) -> tuple | None:
    rows = executor.fetch_all(sql, params)
    return rows[0] if rows else None


def _hash(value: bytes | None) -> Hash | None:
    return None if value is None else Hash(value)


def _hashes(values: Sequence[bytes] | None) -> list[Hash] | None:
    return None if values is None else [Hash(v) for v in values]


def _bytes(value: Any) -> bytes | None:
    return None if value is None else bytes(value)


def select_database_details(executor: Executor) -> DatabaseDetails:
    """Return size and activity figures for the current database."""
    row = _fetch_one(
        executor,
        """
        SELECT
            current_database() AS database_name,
            current_schema() AS schema_name,
            pg_database_size(current_database()) AS database_size,
            (SELECT count(*) AS active_queries FROM pg_stat_activity WHERE state = 'active' AND pid <> pg_backend_pid()) AS active_queries,
            (SELECT count(*) FROM pg_locks WHERE NOT granted) AS blocked_queries,
            (SELECT count(*) FROM pg_stat_activity) AS active_connections,
            (SELECT setting::int FROM pg_settings WHERE name = 'max_connections') AS max_connections;
        """,
        (),
    )
    return DatabaseDetails(*row)


def select_all_table_details(executor: Executor) -> list[TableDetails]:
    """Return size figures for every table in the current schema, by name."""
    rows = executor.fetch_all(
        """
        SELECT
            cls.relname AS name,
            pg_total_relation_size(cls.relname::text) AS total_size,
            pg_indexes_size(cls.relname::text) AS indexes_size,
            cls.reltuples::bigint AS approximate_row_count
        FROM pg_class cls
        JOIN pg_namespace nsp ON cls.relnamespace = nsp.oid
        WHERE nsp.nspname = current_schema()
        AND cls.relkind = 'r'
        ORDER BY cls.relname
        """,
        (),
    )
    return [TableDetails(*row) for row in rows]


def select_var(key: str, executor: Executor) -> str:
    """Return the value stored under key; raises LookupError if absent."""
    return _fetch_one(executor, "SELECT value FROM vars WHERE key = $1", (key,))[0]


def select_subnetworks(executor: Executor) -> list[Subnetwork]:
    rows = executor.fetch_all("SELECT id, subnetwork_id FROM subnetworks", ())
    return [Subnetwork(id=row_id, subnetwork_id=subnetwork_id) for row_id, subnetwork_id in rows]


def select_tx_count(block_hash: Hash, executor: Executor) -> int:
    """Number of transactions linked to a block."""
    return _fetch_one(
        executor,
        "SELECT COUNT(*) FROM blocks_transactions WHERE block_hash = $1",
        (block_hash.as_bytes(),),
    )[0]


def select_is_chain_block(block_hash: Hash, executor: Executor) -> bool:
    """Whether the block has accepted transactions, i.e. is on the selected chain."""
    row = _fetch_one(
        executor,
        "SELECT EXISTS(SELECT 1 FROM transactions_acceptances WHERE block_hash = $1)",
        (block_hash.as_bytes(),),
    )
    return bool(row[0])


def select_sequencing_commitment(block_hash: Hash, executor: Executor) -> SequencingCommitment | None:
    row = _fetch_optional(
        executor,
        "SELECT block_hash, seqcom_hash, parent_seqcom_hash FROM sequencing_commitments WHERE block_hash = $1",
        (block_hash.as_bytes(),),
    )
    if row is None:
        return None
    block, seqcom, parent = row
    return SequencingCommitment(
        block_hash=Hash(block), seqcom_hash=Hash(seqcom), parent_seqcom_hash=_hash(parent)
    )


def select_block(block_hash: Hash, executor: Executor) -> Block | None:
    row = _fetch_optional(
        executor,
        "SELECT hash, accepted_id_merkle_root, merge_set_blues_hashes, merge_set_reds_hashes, "
        "selected_parent_hash, bits, blue_score, blue_work, daa_score, hash_merkle_root, nonce, "
        "pruning_point, timestamp, utxo_commitment, version FROM blocks WHERE hash = $1",
        (block_hash.as_bytes(),),
    )
    if row is None:
        return None
    (
        hash_,
        accepted_id_merkle_root,
        blues,
        reds,
        selected_parent_hash,
        bits,
        blue_score,
        blue_work,
        daa_score,
        hash_merkle_root,
        nonce,
        pruning_point,
        timestamp,
        utxo_commitment,
        version,
    ) = row
    return Block(
        hash=Hash(hash_),
        accepted_id_merkle_root=_hash(accepted_id_merkle_root),
        merge_set_blues_hashes=_hashes(blues),
        merge_set_reds_hashes=_hashes(reds),
        selected_parent_hash=_hash(selected_parent_hash),
        bits=bits,
        blue_score=blue_score,
        blue_work=_bytes(blue_work),
        daa_score=daa_score,
        hash_merkle_root=_hash(hash_merkle_root),
        nonce=_bytes(nonce),
        pruning_point=_hash(pruning_point),
        timestamp=timestamp,
        utxo_commitment=_hash(utxo_commitment),
        version=version,
    )
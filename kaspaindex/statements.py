"""Insert, upsert and DDL statements for the indexer's PostgreSQL schema."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol

from kaspaindex.models import (
    AddressTransaction,
    Block,
    BlockParent,
    BlockTransaction,
    ScriptTransaction,
    SequencingCommitment,
    Transaction,
    TransactionAcceptance,
    TransactionInput,
    TransactionOutput,
)
from kaspaindex.types import Hash

logger = logging.getLogger(__name__)


class Executor(Protocol):
    """A database connection that runs statements with positional ($n) parameters."""

    def execute(self, sql: str, params: Sequence[Any]) -> int:
        """Run a statement and return the number of rows affected."""
        ...

    def fetch_all(self, sql: str, params: Sequence[Any]) -> list[tuple]:
        """Run a query and return all result rows."""
        ...

    def transaction(self) -> AbstractContextManager[Executor]:
        """Open a transaction, committed on normal exit and rolled back on error."""
        ...


def _raw(value: Hash | None) -> bytes | None:
    return None if value is None else value.as_bytes()


def _raw_list(values: Iterable[Hash] | None) -> list[bytes] | None:
    return None if values is None else [v.as_bytes() for v in values]


def generate_placeholders(rows: int, columns: int) -> str:
    """Return '($1, $2), ($3, $4)'-style groups for a multi-row VALUES clause."""
    return ", ".join(
        "(" + ", ".join(f"${c + i * columns}" for c in range(1, columns + 1)) + ")"
        for i in range(rows)
    )


def _values(rows: int, columns: int) -> str:
    if rows == 0:
        raise ValueError("Cannot insert an empty set of rows")
    return generate_placeholders(rows, columns)


def _fetch_one_value(executor: Executor, sql: str, params: Sequence[Any]) -> Any:
    rows = executor.fetch_all(sql, params)
    if not rows:
        raise LookupError("Query returned no rows")
    return rows[0][0]


def insert_subnetwork(subnetwork_id: str, executor: Executor) -> int:
    """Insert a subnetwork and return its id; raises LookupError if it already exists."""
    return _fetch_one_value(
        executor,
        "INSERT INTO subnetworks (subnetwork_id) VALUES ($1) ON CONFLICT DO NOTHING RETURNING id",
        (subnetwork_id,),
    )


def insert_blocks(blocks: Sequence[Block], executor: Executor) -> int:
    """Insert blocks in a single transaction, skipping ones already present."""
    sql = (
        "INSERT INTO blocks (hash, accepted_id_merkle_root, merge_set_blues_hashes, merge_set_reds_hashes,\n"
        "    selected_parent_hash, bits, blue_score, blue_work, daa_score, hash_merkle_root, nonce, pruning_point,\n"
        "    timestamp, utxo_commitment, version\n"
        f") VALUES {_values(len(blocks), 15)} ON CONFLICT DO NOTHING"
    )
    params: list[Any] = []
    for b in blocks:
        params.extend((
            _raw(b.hash),
            _raw(b.accepted_id_merkle_root),
            _raw_list(b.merge_set_blues_hashes),
            _raw_list(b.merge_set_reds_hashes),
            _raw(b.selected_parent_hash),
            b.bits,
            b.blue_score,
            b.blue_work,
            b.daa_score,
            _raw(b.hash_merkle_root),
            b.nonce,
            _raw(b.pruning_point),
            b.timestamp,
            _raw(b.utxo_commitment),
            b.version,
        ))
    with executor.transaction() as tx:
        return tx.execute(sql, params)


def insert_block_parents(block_parents: Sequence[BlockParent], executor: Executor) -> int:
    sql = (
        "INSERT INTO block_parent (block_hash, parent_hash)\n"
        f"VALUES {_values(len(block_parents), 2)} ON CONFLICT DO NOTHING"
    )
    params = [v for bp in block_parents for v in (_raw(bp.block_hash), _raw(bp.parent_hash))]
    return executor.execute(sql, params)


def insert_transactions(transactions: Sequence[Transaction], executor: Executor) -> int:
    sql = (
        "INSERT INTO transactions (transaction_id, subnetwork_id, hash, mass, payload, block_time, tag_id)\n"
        f"VALUES {_values(len(transactions), 7)} ON CONFLICT DO NOTHING"
    )
    params: list[Any] = []
    for tx in transactions:
        params.extend((
            _raw(tx.transaction_id),
            tx.subnetwork_id,
            _raw(tx.hash),
            tx.mass,
            tx.payload,
            tx.block_time,
            tx.tag_id,
        ))
    return executor.execute(sql, params)


_INPUT_COLUMNS = (
    "transaction_id, index, previous_outpoint_hash, previous_outpoint_index,\n"
    "    signature_script, sig_op_count, block_time, previous_outpoint_script, previous_outpoint_amount"
)


def insert_transaction_inputs(
    resolve_previous_outpoints: bool,
    transaction_inputs: Sequence[TransactionInput],
    executor: Executor,
) -> int:
    """Insert inputs, optionally filling missing outpoint script/amount from stored outputs."""
    values = _values(len(transaction_inputs), 9)
    if resolve_previous_outpoints:
        sql = (
            f"INSERT INTO transactions_inputs ({_INPUT_COLUMNS})\n"
            "SELECT\n"
            "    i.transaction_id, i.index, i.previous_outpoint_hash, i.previous_outpoint_index, "
            "i.signature_script, i.sig_op_count, i.block_time,\n"
            "    COALESCE(i.previous_outpoint_script, o.script_public_key),\n"
            "    COALESCE(i.previous_outpoint_amount, o.amount)\n"
            f"FROM (VALUES {values}) AS i ({_INPUT_COLUMNS})\n"
            "LEFT JOIN transactions_outputs o\n"
            "    ON i.previous_outpoint_hash = o.transaction_id\n"
            "    AND i.previous_outpoint_index = o.index\n"
            "ON CONFLICT DO NOTHING"
        )
    else:
        sql = (
            f"INSERT INTO transactions_inputs ({_INPUT_COLUMNS})\n"
            f"VALUES {values} ON CONFLICT DO NOTHING"
        )
    params: list[Any] = []
    for tin in transaction_inputs:
        params.extend((
            _raw(tin.transaction_id),
            tin.index,
            _raw(tin.previous_outpoint_hash),
            tin.previous_outpoint_index,
            tin.signature_script,
            tin.sig_op_count,
            tin.block_time,
            tin.previous_outpoint_script,
            tin.previous_outpoint_amount,
        ))
    return executor.execute(sql, params)


def insert_transaction_outputs(transaction_outputs: Sequence[TransactionOutput], executor: Executor) -> int:
    sql = (
        "INSERT INTO transactions_outputs (transaction_id, index, amount, script_public_key, "
        "script_public_key_address, block_time)\n"
        f"VALUES {_values(len(transaction_outputs), 6)} ON CONFLICT DO NOTHING"
    )
    params: list[Any] = []
    for tout in transaction_outputs:
        params.extend((
            _raw(tout.transaction_id),
            tout.index,
            tout.amount,
            tout.script_public_key,
            tout.script_public_key_address,
            tout.block_time,
        ))
    return executor.execute(sql, params)


def insert_address_transactions(address_transactions: Sequence[AddressTransaction], executor: Executor) -> int:
    sql = (
        "INSERT INTO addresses_transactions (address, transaction_id, block_time)\n"
        f"VALUES {_values(len(address_transactions), 3)} ON CONFLICT DO NOTHING"
    )
    params = [
        v for at in address_transactions for v in (at.address, _raw(at.transaction_id), at.block_time)
    ]
    return executor.execute(sql, params)


def insert_script_transactions(script_transactions: Sequence[ScriptTransaction], executor: Executor) -> int:
    sql = (
        "INSERT INTO scripts_transactions (script_public_key, transaction_id, block_time)\n"
        f"VALUES {_values(len(script_transactions), 3)} ON CONFLICT DO NOTHING"
    )
    params = [
        v
        for st in script_transactions
        for v in (st.script_public_key, _raw(st.transaction_id), st.block_time)
    ]
    return executor.execute(sql, params)


def insert_address_transactions_from_inputs(
    use_tx: bool, transaction_ids: Sequence[Hash], executor: Executor
) -> int:
    """Derive address rows for the given transactions from their spent outputs."""
    if use_tx:
        sql = (
            "INSERT INTO addresses_transactions (address, transaction_id, block_time)\n"
            "SELECT o.script_public_key_address, i.transaction_id, t.block_time\n"
            "    FROM transactions_inputs i\n"
            "    JOIN transactions t ON t.transaction_id = i.transaction_id\n"
            "    JOIN transactions_outputs o ON o.transaction_id = i.previous_outpoint_hash "
            "AND o.index = i.previous_outpoint_index\n"
            "WHERE i.transaction_id = ANY($1) AND t.transaction_id = ANY($1)\n"
            "ON CONFLICT DO NOTHING"
        )
    else:
        sql = (
            "INSERT INTO addresses_transactions (address, transaction_id, block_time)\n"
            "SELECT o.script_public_key_address, i.transaction_id, i.block_time\n"
            "    FROM transactions_inputs i\n"
            "    JOIN transactions_outputs o ON o.transaction_id = i.previous_outpoint_hash "
            "AND o.index = i.previous_outpoint_index\n"
            "WHERE i.transaction_id = ANY($1)\n"
            "ON CONFLICT DO NOTHING"
        )
    return executor.execute(sql, (_raw_list(transaction_ids),))


def insert_script_transactions_from_inputs(
    use_tx: bool, transaction_ids: Sequence[Hash], executor: Executor
) -> int:
    """Derive script rows for the given transactions from their spent outputs."""
    if use_tx:
        sql = (
            "INSERT INTO scripts_transactions (script_public_key, transaction_id, block_time)\n"
            "SELECT o.script_public_key, i.transaction_id, t.block_time\n"
            "    FROM transactions_inputs i\n"
            "    JOIN transactions t ON t.transaction_id = i.transaction_id\n"
            "    JOIN transactions_outputs o ON o.transaction_id = i.previous_outpoint_hash "
            "AND o.index = i.previous_outpoint_index\n"
            "WHERE i.transaction_id = ANY($1) AND t.transaction_id = ANY($1)\n"
            "ON CONFLICT DO NOTHING"
        )
    else:
        sql = (
            "INSERT INTO scripts_transactions (script_public_key, transaction_id, block_time)\n"
            "SELECT o.script_public_key, i.transaction_id, i.block_time\n"
            "    FROM transactions_inputs i\n"
            "    JOIN transactions_outputs o ON o.transaction_id = i.previous_outpoint_hash "
            "AND o.index = i.previous_outpoint_index\n"
            "WHERE i.transaction_id = ANY($1)\n"
            "ON CONFLICT DO NOTHING"
        )
    return executor.execute(sql, (_raw_list(transaction_ids),))


def insert_block_transactions(block_transactions: Sequence[BlockTransaction], executor: Executor) -> int:
    sql = (
        "INSERT INTO blocks_transactions (block_hash, transaction_id)\n"
        f"VALUES {_values(len(block_transactions), 2)} ON CONFLICT DO NOTHING"
    )
    params = [v for bt in block_transactions for v in (_raw(bt.block_hash), _raw(bt.transaction_id))]
    return executor.execute(sql, params)


def insert_transaction_acceptances(tx_acceptances: Sequence[TransactionAcceptance], executor: Executor) -> int:
    sql = (
        "INSERT INTO transactions_acceptances (transaction_id, block_hash) "
        f"VALUES {_values(len(tx_acceptances), 2)} ON CONFLICT DO NOTHING"
    )
    params = [v for ta in tx_acceptances for v in (_raw(ta.transaction_id), _raw(ta.block_hash))]
    return executor.execute(sql, params)


def insert_sequencing_commitments(commitments: Sequence[SequencingCommitment], executor: Executor) -> int:
    sql = (
        "INSERT INTO sequencing_commitments (block_hash, seqcom_hash, parent_seqcom_hash)\n"
        f"VALUES {_values(len(commitments), 3)} ON CONFLICT DO NOTHING"
    )
    params = [
        v
        for c in commitments
        for v in (_raw(c.block_hash), _raw(c.seqcom_hash), _raw(c.parent_seqcom_hash))
    ]
    return executor.execute(sql, params)


def insert_tag_provider(
    tag: str,
    module: str | None,
    prefix: str,
    repository_url: str | None,
    description: str | None,
    category: str | None,
    executor: Executor,
) -> int:
    """Insert or update a tag provider keyed by (tag, module) and return its id."""
    sql = (
        "INSERT INTO tag_providers (tag, module, prefix, repository_url, description, category)\n"
        " VALUES ($1, $2, $3, $4, $5, $6)\n"
        " ON CONFLICT (tag, module) DO UPDATE SET\n"
        "     prefix = EXCLUDED.prefix,\n"
        "     repository_url = EXCLUDED.repository_url,\n"
        "     description = EXCLUDED.description,\n"
        "     category = EXCLUDED.category\n"
        " RETURNING id"
    )
    return _fetch_one_value(
        executor, sql, (tag, module, prefix, repository_url, description, category)
    )


def get_tag_id_by_name(tag: str, executor: Executor) -> int | None:
    """Return the id of the tag provider with this tag, or None."""
    rows = executor.fetch_all("SELECT id FROM tag_providers WHERE tag = $1", (tag,))
    return rows[0][0] if rows else None


def upsert_var(key: str, value: str, executor: Executor) -> int:
    """Set a key in the vars table, replacing any existing value."""
    logger.debug("Saving database var with key '%s' value: %s", key, value)
    return executor.execute(
        "INSERT INTO vars (key, value) VALUES ($1, $2) ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value",
        (key, value),
    )


def execute_ddl(ddl: str, executor: Executor) -> None:
    """Run each non-blank ';'-separated statement of a DDL script in order."""
    for statement in ddl.split(";"):
        if statement.strip():
            executor.execute(statement, ())
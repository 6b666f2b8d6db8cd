"""Tests for UTXOBuilder — two-pass reconciliation of fetched transactions."""

from __future__ import annotations

import pytest

from cardano_wallet.chain.blockfrost.models import (
    LOVELACE,
    Amount,
    TransactionDetails,
    TxInput,
    TxOutput,
)
from cardano_wallet.engine.models.utxo import UTXOOrigin
from cardano_wallet.engine.sync.utxo_builder import UTXOBuilder, UTXOEntry, utxo_key
from cardano_wallet.errors.indexer_errors import ConflictingSpendError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_OWN = "addr_test1qown"
_OWN_2 = "addr_test1qown2"
_EXT = "addr_test1qexternal"

_FUNDING = "f" * 64
_TX_A = "a" * 64
_TX_B = "b" * 64
_TX_C = "c" * 64


def _ada(quantity: int) -> tuple[Amount, ...]:
    return (Amount(LOVELACE, quantity),)


def _out(address: str, quantity: int, index: int = 0, **kw) -> TxOutput:
    return TxOutput(address=address, amount=_ada(quantity), output_index=index, **kw)


def _in(address: str, quantity: int, tx_hash: str, index: int = 0, **kw) -> TxInput:
    return TxInput(address=address, amount=_ada(quantity), tx_hash=tx_hash, output_index=index, **kw)


def _tx(
    tx_hash: str,
    height: int,
    *,
    inputs: tuple[TxInput, ...] = (),
    outputs: tuple[TxOutput, ...] = (),
    index: int = 0,
    valid_contract: bool = True,
) -> TransactionDetails:
    return TransactionDetails(
        hash=tx_hash,
        block=f"block{height}",
        block_height=height,
        index=index,
        valid_contract=valid_contract,
        inputs=inputs,
        outputs=outputs,
    )


def _builder(**kw) -> UTXOBuilder:
    return UTXOBuilder({_OWN, _OWN_2}, **kw)


def _receive() -> TransactionDetails:
    """5 ADA from an external address to the wallet at output 0."""
    return _tx(
        _TX_A,
        100,
        inputs=(_in(_EXT, 6_000_000, _FUNDING),),
        outputs=(_out(_OWN, 5_000_000), _out(_EXT, 800_000, index=1)),
    )


def _spend() -> TransactionDetails:
    """Spends the received UTXO, change back to the wallet."""
    return _tx(
        _TX_B,
        200,
        inputs=(_in(_OWN, 5_000_000, _TX_A),),
        outputs=(_out(_EXT, 2_000_000), _out(_OWN_2, 2_830_000, index=1)),
    )


def _assert_consistent(utxos: dict[str, UTXOEntry]) -> None:
    for entry in utxos.values():
        assert entry.is_spent == (entry.spent_in_tx is not None)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestReceive:
    def test_output_becomes_unspent_utxo(self) -> None:
        result = _builder().build([_receive()])
        utxo = result.utxos[utxo_key(_TX_A, 0)]
        assert utxo.is_spent is False
        assert utxo.spent_in_tx is None
        assert utxo.amount == _ada(5_000_000)
        assert utxo.is_external is False
        assert utxo.origin == UTXOOrigin.OUTPUT
        assert utxo.block == "block100"
        assert utxo.is_complete

    def test_external_output_is_tracked_as_external(self) -> None:
        result = _builder().build([_receive()])
        assert result.utxos[utxo_key(_TX_A, 1)].is_external is True

    def test_funding_input_becomes_external_placeholder(self) -> None:
        result = _builder().build([_receive()])
        placeholder = result.utxos[utxo_key(_FUNDING, 0)]
        assert placeholder.is_external is True
        assert placeholder.is_spent is True
        assert placeholder.spent_in_tx == _TX_A
        assert placeholder.block == ""
        assert placeholder.origin == UTXOOrigin.EXTERNAL_INPUT
        assert placeholder.data_hash is None
        assert placeholder.inline_datum is None
        assert placeholder.reference_script_hash is None
        assert not placeholder.is_complete

    def test_created_keys(self) -> None:
        result = _builder().build([_receive()])
        assert set(result.created) == {
            utxo_key(_TX_A, 0), utxo_key(_TX_A, 1), utxo_key(_FUNDING, 0),
        }
        assert result.updated == []
        assert result.has_changes


class TestSpend:
    def test_spend_in_same_batch(self) -> None:
        result = _builder().build([_spend(), _receive()])
        original = result.utxos[utxo_key(_TX_A, 0)]
        assert original.is_spent is True
        assert original.spent_in_tx == _TX_B
        unspent_own = [u for u in result.utxos.values() if not u.is_spent and not u.is_external]
        assert [u.key for u in unspent_own] == [utxo_key(_TX_B, 1)]

    def test_spend_in_later_batch(self) -> None:
        first = _builder().build([_receive()])
        second = _builder().build([_spend()], first.utxos.values())
        original = second.utxos[utxo_key(_TX_A, 0)]
        assert original.is_spent is True
        assert original.spent_in_tx == _TX_B
        assert utxo_key(_TX_A, 0) in second.updated
        new_unspent = [
            k for k in second.created
            if not second.utxos[k].is_spent and not second.utxos[k].is_external
        ]
        assert new_unspent == [utxo_key(_TX_B, 1)]

    def test_own_input_never_seen_is_historical(self) -> None:
        result = _builder().build([_spend()])
        historical = result.utxos[utxo_key(_TX_A, 0)]
        assert historical.origin == UTXOOrigin.HISTORICAL
        assert historical.is_external is False
        assert historical.is_spent is True
        assert historical.spent_in_tx == _TX_B
        assert historical.block == ""
        assert historical.amount == _ada(5_000_000)

    def test_later_output_completes_historical_record(self) -> None:
        early = _builder().build([_spend()])
        late = _builder().build([_receive()], early.utxos.values())
        completed = late.utxos[utxo_key(_TX_A, 0)]
        assert completed.origin == UTXOOrigin.OUTPUT
        assert completed.block == "block100"
        assert completed.is_spent is True
        assert completed.spent_in_tx == _TX_B

    def test_script_fields_copied(self) -> None:
        tx = _tx(
            _TX_C,
            300,
            outputs=(
                _out(_OWN, 2_000_000, data_hash="d" * 64, inline_datum="d87980",
                     reference_script_hash="e" * 56),
            ),
        )
        utxo = _builder().build([tx]).utxos[utxo_key(_TX_C, 0)]
        assert utxo.data_hash == "d" * 64
        assert utxo.inline_datum == "d87980"
        assert utxo.reference_script_hash == "e" * 56


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestProperties:
    def test_idempotence(self) -> None:
        batch = [_receive(), _spend()]
        once = _builder().build(batch)
        twice = _builder().build(batch, once.utxos.values())
        assert twice.utxos == once.utxos
        assert twice.created == []
        assert twice.updated == []
        assert not twice.has_changes

    def test_uniqueness(self) -> None:
        result = _builder().build([_receive(), _spend(), _receive()])
        keys = [(u.tx_hash, u.output_index) for u in result.utxos.values()]
        assert len(keys) == len(set(keys))

    def test_consistency(self) -> None:
        first = _builder().build([_spend()])
        _assert_consistent(first.utxos)
        second = _builder().build([_receive()], first.utxos.values())
        _assert_consistent(second.utxos)

    def test_order_independent_input(self) -> None:
        forward = _builder().build([_receive(), _spend()])
        backward = _builder().build([_spend(), _receive()])
        assert forward.utxos == backward.utxos

    def test_changed_lists_created_then_updated(self) -> None:
        first = _builder().build([_receive()])
        second = _builder().build([_spend()], first.utxos.values())
        changed = [e.key for e in second.changed()]
        assert changed == [*second.created, *second.updated]

    def test_empty_batch(self) -> None:
        first = _builder().build([_receive()])
        result = _builder().build([], first.utxos.values())
        assert result.utxos == first.utxos
        assert not result.has_changes


# ---------------------------------------------------------------------------
# Conflicting spends
# ---------------------------------------------------------------------------


def _double_spend() -> TransactionDetails:
    return _tx(_TX_C, 300, inputs=(_in(_OWN, 5_000_000, _TX_A),), outputs=(_out(_EXT, 1),))


class TestConflicts:
    def test_last_write_wins_and_reports(self) -> None:
        result = _builder().build([_receive(), _spend(), _double_spend()])
        assert result.utxos[utxo_key(_TX_A, 0)].spent_in_tx == _TX_C
        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.utxo_key == utxo_key(_TX_A, 0)
        assert conflict.previous_spender == _TX_B
        assert conflict.new_spender == _TX_C

    def test_conflict_against_stored_record(self) -> None:
        first = _builder().build([_receive(), _spend()])
        result = _builder().build([_double_spend()], first.utxos.values())
        assert len(result.conflicts) == 1

    def test_reject_mode_raises(self) -> None:
        with pytest.raises(ConflictingSpendError) as exc_info:
            _builder(reject_conflicting_spends=True).build([_receive(), _spend(), _double_spend()])
        assert exc_info.value.first_spender == _TX_B
        assert exc_info.value.second_spender == _TX_C

    def test_same_spender_is_not_a_conflict(self) -> None:
        first = _builder(reject_conflicting_spends=True).build([_receive(), _spend()])
        again = _builder(reject_conflicting_spends=True).build([_spend()], first.utxos.values())
        assert again.conflicts == []


# ---------------------------------------------------------------------------
# Plutus collateral and reference inputs
# ---------------------------------------------------------------------------


class TestScriptInputs:
    def test_reference_input_is_not_spent(self) -> None:
        first = _builder().build([_receive()])
        tx = _tx(
            _TX_B,
            200,
            inputs=(_in(_OWN, 5_000_000, _TX_A, reference=True),),
            outputs=(_out(_OWN, 1),),
        )
        result = _builder().build([tx], first.utxos.values())
        assert result.utxos[utxo_key(_TX_A, 0)].is_spent is False

    def test_collateral_untouched_on_success(self) -> None:
        first = _builder().build([_receive()])
        tx = _tx(
            _TX_B,
            200,
            inputs=(
                _in(_OWN, 5_000_000, _TX_A, collateral=True),
                _in(_EXT, 9, _FUNDING, index=3),
            ),
            outputs=(_out(_OWN, 1), _out(_OWN, 4_000_000, index=1, collateral=True)),
        )
        result = _builder().build([tx], first.utxos.values())
        assert result.utxos[utxo_key(_TX_A, 0)].is_spent is False
        assert utxo_key(_TX_B, 1) not in result.utxos
        assert result.utxos[utxo_key(_TX_B, 0)].is_spent is False

    def test_failed_scripts_consume_collateral(self) -> None:
        first = _builder().build([_receive()])
        tx = _tx(
            _TX_B,
            200,
            valid_contract=False,
            inputs=(
                _in(_OWN, 5_000_000, _TX_A, collateral=True),
                _in(_EXT, 9, _FUNDING, index=3),
            ),
            outputs=(_out(_OWN, 1), _out(_OWN, 4_000_000, index=1, collateral=True)),
        )
        result = _builder().build([tx], first.utxos.values())
        assert result.utxos[utxo_key(_TX_A, 0)].spent_in_tx == _TX_B
        assert utxo_key(_FUNDING, 3) not in result.utxos
        assert utxo_key(_TX_B, 0) not in result.utxos
        assert result.utxos[utxo_key(_TX_B, 1)].lovelace == 4_000_000


class TestEntry:
    def test_quantity_of(self) -> None:
        unit = "ab" * 28 + "01"
        entry = UTXOEntry(
            tx_hash=_TX_A,
            output_index=0,
            address=_OWN,
            amount=(Amount(LOVELACE, 2), Amount(unit, 9), Amount(unit, 1)),
        )
        assert entry.lovelace == 2
        assert entry.quantity_of(unit) == 10
        assert entry.key == f"{_TX_A}:0"
